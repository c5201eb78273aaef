"""
FastAPI application factory for SchemaForm.

Creates and configures the FastAPI app, the session store and routes.

Run with:
    uvicorn schemaform.api.app:app --reload
"""

import logging
import os

from dotenv import load_dotenv
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from schemaform.api.routes import configure_routes, router
from schemaform.core.session import DEFAULT_SESSION_TIMEOUT_SECONDS, SessionStore

# Load environment variables from .env
load_dotenv()

# Logging
logging.basicConfig(
    level=os.getenv("LOG_LEVEL", "INFO").upper(),
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""

    application = FastAPI(
        title="SchemaForm",
        description="Schema-driven form engine",
        version="0.1.0",
    )

    # CORS: allow all origins in development
    allowed_origins = os.getenv("CORS_ALLOWED_ORIGINS", "*").split(",")
    application.add_middleware(
        CORSMiddleware,
        allow_origins=allowed_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    session_timeout = int(
        os.getenv("SESSION_TIMEOUT_SECONDS", str(DEFAULT_SESSION_TIMEOUT_SECONDS))
    )
    session_store = SessionStore(timeout_seconds=session_timeout)

    configure_routes(session_store)
    application.include_router(router, prefix="/api")

    logger.info("SchemaForm app created (session timeout: %d seconds)", session_timeout)
    return application


# Create the app instance (used by uvicorn)
app = create_app()
