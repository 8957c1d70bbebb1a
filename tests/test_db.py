"""Tests for tenant binding on database sessions."""
from types import SimpleNamespace

from sqlalchemy import event
from sqlalchemy.orm import Session

from app.ledgerly.db import apply_tenant_setting, bind_tenant, session_scope
from app.ledgerly.models import User
from tests.conftest import OWNER_EMAIL


class RecordingConnection:
    def __init__(self, dialect_name):
        self.dialect = SimpleNamespace(name=dialect_name)
        self.calls = []

    def execute(self, statement, params=None):
        self.calls.append((str(statement), params))


def test_tenant_is_reapplied_per_transaction(app):
    assert event.contains(Session, "after_begin", apply_tenant_setting)

    s = app.extensions["sqlalchemy_sessionmaker"]()
    try:
        bind_tenant(s, "user-1")
        assert s.info["tenant_id"] == "user-1"

        pg = RecordingConnection("postgresql")
        apply_tenant_setting(s, None, pg)
        assert pg.calls == [("SELECT set_config('app.current_user_id', :uid, true)", {"uid": "user-1"})]

        sqlite = RecordingConnection("sqlite")
        apply_tenant_setting(s, None, sqlite)
        assert sqlite.calls == []

        bind_tenant(s, None)
        assert "tenant_id" not in s.info
        apply_tenant_setting(s, None, pg)
        assert len(pg.calls) == 1
    finally:
        s.close()


def test_session_survives_commit_after_binding(app):
    with session_scope(app) as s:
        user = s.query(User).filter(User.email == OWNER_EMAIL).one()
        bind_tenant(s, user.id)
        s.commit()
        # A new transaction starts cleanly with the tenant still recorded.
        assert s.query(User).filter(User.id == user.id).count() == 1
        assert s.info["tenant_id"] == user.id

