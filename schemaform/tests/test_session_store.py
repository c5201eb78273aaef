"""
Unit tests for the in-memory SessionStore.
"""

import time

import pytest

from schemaform.core.form_state import FormSession
from schemaform.core.session import Session, SessionStore


@pytest.fixture
def store() -> SessionStore:
    return SessionStore(timeout_seconds=3600)


class TestSessionStore:

    def test_create_generates_id(self, store, contact_schema):
        session_id, session = store.create_session(contact_schema)
        assert session_id
        assert isinstance(session.form, FormSession)
        assert store.count() == 1

    def test_create_with_custom_id(self, store, contact_schema):
        session_id, _ = store.create_session(contact_schema, session_id="abc")
        assert session_id == "abc"
        assert store.list_session_ids() == ["abc"]

    def test_get_returns_same_session(self, store, contact_schema):
        session_id, session = store.create_session(contact_schema)
        assert store.get_session(session_id) is session

    def test_get_unknown(self, store):
        assert store.get_session("missing") is None

    def test_delete(self, store, contact_schema):
        session_id, _ = store.create_session(contact_schema)
        assert store.delete_session(session_id) is True
        assert store.delete_session(session_id) is False
        assert store.count() == 0

    def test_expired_session_removed_on_access(self, contact_schema):
        store = SessionStore(timeout_seconds=0)
        session_id, session = store.create_session(contact_schema)
        session.last_accessed_at = time.time() - 10
        assert store.get_session(session_id) is None
        assert store.count() == 0

    def test_cleanup_expired(self, contact_schema):
        store = SessionStore(timeout_seconds=60)
        old_id, old = store.create_session(contact_schema)
        store.create_session(contact_schema)
        old.last_accessed_at = time.time() - 120
        assert store.cleanup_expired() == 1
        assert old_id not in store.list_session_ids()

    def test_expired_sessions_swept_on_create(self, contact_schema):
        store = SessionStore(timeout_seconds=60)
        abandoned = [store.create_session(contact_schema)[1] for _ in range(5)]
        for session in abandoned:
            session.last_accessed_at = time.time() - 120

        fresh_id, _ = store.create_session(contact_schema)
        assert store.list_session_ids() == [fresh_id]

    def test_sessions_are_independent(self, store, contact_schema):
        _, first = store.create_session(contact_schema)
        _, second = store.create_session(contact_schema)
        first.form.set_value("name", "Ann")
        assert second.form.get_value("name") == ""


def test_session_touch_updates_timestamp(contact_schema):
    session = Session(FormSession(contact_schema))
    session.last_accessed_at = 0
    session.touch()
    assert session.last_accessed_at > 0
    assert session.is_expired(timeout_seconds=60) is False
