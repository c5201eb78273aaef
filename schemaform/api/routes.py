"""
FastAPI routes for the SchemaForm service.

Endpoints:
- POST /validate-schema         : check a schema for authoring errors
- POST /forms                   : mount a schema as a new form session
- GET  /forms/{session_id}      : composed form view
- POST /forms/{session_id}/values: write one or more field values
- POST /forms/{session_id}/touch : mark a field touched (blur)
- POST /forms/{session_id}/submit: validate and return the submitted data
- POST /sessions/reset          : delete a form session
- GET  /health                  : health check
"""

import logging
from typing import Any

from fastapi import APIRouter, HTTPException, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ValidationError

from schemaform.core.form_state import UnknownFieldError
from schemaform.core.layout import compose_form
from schemaform.core.loader import SchemaLoadError, decode_json, parse_schema
from schemaform.core.session import Session

logger = logging.getLogger(__name__)

router = APIRouter()

# Injected by the app factory
_session_store = None


def configure_routes(session_store):
    """Inject the session store into the routes module.

    Called by the app factory during startup.
    """
    global _session_store
    _session_store = session_store


# --- Request / Response Models ---


class ValidateSchemaRequest(BaseModel):
    form_schema: dict[str, Any]


class MountFormRequest(BaseModel):
    """Request body for mounting a schema."""

    form_schema: dict[str, Any]
    session_id: str | None = None


class SetValuesRequest(BaseModel):
    values: dict[str, Any]


class TouchRequest(BaseModel):
    field_id: str


class ResetRequest(BaseModel):
    session_id: str


class FormResponse(BaseModel):
    """A session's composed form and its raw values."""

    session_id: str
    form: dict[str, Any]
    values: dict[str, Any]


# --- Helpers ---


def _require_store():
    if _session_store is None:
        raise HTTPException(status_code=500, detail="Server not properly configured")
    return _session_store


def _get_session(session_id: str) -> Session:
    session = _require_store().get_session(session_id)
    if session is None:
        raise HTTPException(status_code=404, detail=f"Session '{session_id}' not found")
    return session


def _form_response(session_id: str, session: Session) -> FormResponse:
    return FormResponse(
        session_id=session_id,
        form=compose_form(session.form),
        values=session.form.get_values(),
    )


def _schema_errors(e: ValidationError) -> list[str]:
    return [
        f"{'.'.join(str(p) for p in err['loc']) or 'schema'}: {err['msg']}"
        for err in e.errors()
    ]


async def _parse_body(request: Request, model: type[BaseModel]) -> BaseModel:
    """Decode a request body that carries a schema.

    The body is decoded with duplicate-key rejection before validation,
    so a repeated field key raises SchemaLoadError instead of the last
    definition silently winning.

    Raises:
        SchemaLoadError: On malformed JSON or a duplicate key.
        HTTPException: 422 if the body does not match `model`.
    """
    data = decode_json(await request.body())
    try:
        return model.model_validate(data)
    except ValidationError as e:
        raise HTTPException(status_code=422, detail=_schema_errors(e))


# --- Endpoints ---


@router.post("/validate-schema")
async def validate_schema(request: Request):
    """Report whether a schema is well formed, without mounting it."""
    try:
        body = await _parse_body(request, ValidateSchemaRequest)
        parse_schema(body.form_schema)
    except SchemaLoadError as e:
        return {"valid": False, "errors": [str(e)]}
    except ValidationError as e:
        return {"valid": False, "errors": _schema_errors(e)}
    return {"valid": True, "errors": []}


@router.post("/forms", response_model=FormResponse)
async def mount_form(request: Request):
    """Mount a schema as a new form session seeded with its defaults."""
    store = _require_store()

    try:
        body = await _parse_body(request, MountFormRequest)
        schema = parse_schema(body.form_schema)
    except ValidationError as e:
        raise HTTPException(status_code=422, detail=_schema_errors(e))
    except SchemaLoadError as e:
        raise HTTPException(status_code=422, detail=[str(e)])

    session_id, session = store.create_session(schema, session_id=body.session_id)
    with session.lock:
        return _form_response(session_id, session)


@router.get("/forms/{session_id}", response_model=FormResponse)
def get_form(session_id: str):
    session = _get_session(session_id)
    with session.lock:
        return _form_response(session_id, session)


@router.post("/forms/{session_id}/values", response_model=FormResponse)
def set_values(session_id: str, request: SetValuesRequest):
    """Write field values; visibility and errors are recomputed before returning."""
    session = _get_session(session_id)
    with session.lock:
        try:
            session.form.set_values(request.values)
        except UnknownFieldError as e:
            raise HTTPException(status_code=400, detail=str(e))
        return _form_response(session_id, session)


@router.post("/forms/{session_id}/touch", response_model=FormResponse)
def touch_field(session_id: str, request: TouchRequest):
    session = _get_session(session_id)
    with session.lock:
        try:
            session.form.touch(request.field_id)
        except UnknownFieldError as e:
            raise HTTPException(status_code=400, detail=str(e))
        return _form_response(session_id, session)


@router.post("/forms/{session_id}/submit")
def submit_form(session_id: str):
    """Validate the form; the submitted data is the response body on success."""
    session = _get_session(session_id)
    submitted: list[dict[str, Any]] = []

    with session.lock:
        result = session.form.submit(submitted.append)

    if not result.valid:
        return JSONResponse(
            status_code=422,
            content={"submitted": False, "errors": result.errors},
        )
    return {"submitted": True, "data": submitted[0]}


@router.post("/sessions/reset")
def reset_session(request: ResetRequest):
    """Delete a form session."""
    deleted = _require_store().delete_session(request.session_id)
    return {
        "success": deleted,
        "message": "Session reset" if deleted else "Session not found",
    }


@router.get("/health")
def health_check():
    """Health check endpoint."""
    session_count = _session_store.count() if _session_store else 0
    return {
        "status": "healthy",
        "active_sessions": session_count,
    }
