"""
Session store for mounted forms.

Each stored session wraps one FormSession. Sessions are created when a
schema is mounted and cleaned up after an idle timeout. Every stored
session carries its own lock so that concurrent requests against the
same form are applied one at a time.
"""

import logging
import threading
import time
import uuid

from schemaform.core.form_state import FormSession
from schemaform.core.schema import FormSchema

logger = logging.getLogger(__name__)

# Default session timeout: 30 minutes
DEFAULT_SESSION_TIMEOUT_SECONDS = 30 * 60


class Session:
    """A single mounted form plus its bookkeeping."""

    def __init__(self, form: FormSession):
        self.form = form
        self.lock = threading.RLock()
        self.created_at: float = time.time()
        self.last_accessed_at: float = time.time()

    def touch(self) -> None:
        """Update the last accessed timestamp."""
        self.last_accessed_at = time.time()

    def is_expired(self, timeout_seconds: int = DEFAULT_SESSION_TIMEOUT_SECONDS) -> bool:
        return (time.time() - self.last_accessed_at) > timeout_seconds


class SessionStore:
    """In-memory store of mounted form sessions.

    Thread-safe for basic use. Sessions hold live Python objects
    (including custom validators), so they are not persisted.
    """

    def __init__(self, timeout_seconds: int = DEFAULT_SESSION_TIMEOUT_SECONDS):
        self._sessions: dict[str, Session] = {}
        self._timeout_seconds = timeout_seconds
        self._lock = threading.RLock()

    def create_session(
        self,
        schema: FormSchema,
        session_id: str | None = None,
    ) -> tuple[str, Session]:
        """Mount a schema as a new form session.

        Expired sessions are swept before the new one is stored.

        Args:
            schema: A validated FormSchema.
            session_id: Optional custom ID. Auto-generated if not provided.
                An existing session with the same ID is replaced.

        Returns:
            Tuple of (session_id, Session).
        """
        if session_id is None:
            session_id = str(uuid.uuid4())

        removed = self.cleanup_expired()
        if removed:
            logger.info("Removed %d expired session(s)", removed)

        session = Session(FormSession(schema))

        with self._lock:
            self._sessions[session_id] = session
        logger.info("Mounted form '%s' as session %s", schema.id, session_id)
        return session_id, session

    def get_session(self, session_id: str) -> Session | None:
        """Retrieve a session by ID.

        Returns None if the session doesn't exist or has expired.
        Expired sessions are removed on access.
        """
        with self._lock:
            session = self._sessions.get(session_id)
            if session is None:
                return None

            if session.is_expired(self._timeout_seconds):
                del self._sessions[session_id]
                logger.info("Session %s expired", session_id)
                return None

        session.touch()
        return session

    def delete_session(self, session_id: str) -> bool:
        """Delete a session. Returns True if it existed."""
        with self._lock:
            if session_id in self._sessions:
                del self._sessions[session_id]
                return True
            return False

    def cleanup_expired(self) -> int:
        """Remove all expired sessions. Returns the count of removed sessions."""
        with self._lock:
            expired = [
                sid for sid, session in self._sessions.items()
                if session.is_expired(self._timeout_seconds)
            ]
            for sid in expired:
                del self._sessions[sid]
        return len(expired)

    def count(self) -> int:
        with self._lock:
            return len(self._sessions)

    def list_session_ids(self) -> list[str]:
        with self._lock:
            return list(self._sessions.keys())
