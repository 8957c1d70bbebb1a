from __future__ import annotations

from contextlib import contextmanager
from collections.abc import Generator

from flask import Flask, current_app, g
from sqlalchemy import create_engine, event, text
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker

_POSTGRES_POOL = {
    "pool_recycle": 1800,
    "pool_size": 5,
    "max_overflow": 10,
    "pool_timeout": 30,
}


def _engine_options(db_url: str) -> dict[str, object]:
    options: dict[str, object] = {"future": True, "pool_pre_ping": True}
    if db_url.startswith("postgres"):
        options.update(_POSTGRES_POOL)
    return options


def build_engine(db_url: str) -> Engine:
    engine = create_engine(db_url, **_engine_options(db_url))
    if engine.dialect.name == "sqlite":
        # ON DELETE CASCADE / SET NULL only fire with foreign keys switched on per connection.
        @event.listens_for(engine, "connect")
        def _enable_sqlite_fks(dbapi_connection, _record):
            cur = dbapi_connection.cursor()
            cur.execute("PRAGMA foreign_keys=ON")
            cur.close()

    return engine


def init_db(app: Flask) -> None:
    engine = build_engine(app.config["DATABASE_URL"])
    if app.config.get("ENV") != "production":
        @event.listens_for(engine, "checkout")
        def _log_checkout(dbapi_connection, connection_record, connection_proxy):
            app.logger.debug("DB connection checkout from pool")

    app.extensions["sqlalchemy_engine"] = engine
    app.extensions["sqlalchemy_sessionmaker"] = sessionmaker(
        bind=engine,
        class_=Session,
        autoflush=False,
        expire_on_commit=False,
        future=True,
    )


def db_session(app: Flask | None = None) -> Session:
    """
    Request-scoped session. Use inside request handlers.
    """
    s = getattr(g, "db_session", None)
    if s is None:
        sm = (app or current_app).extensions["sqlalchemy_sessionmaker"]
        s = g.db_session = sm()
    return s


_SET_TENANT = text("SELECT set_config('app.current_user_id', :uid, true)")


@event.listens_for(Session, "after_begin")
def apply_tenant_setting(session: Session, _transaction, connection) -> None:
    """
    Re-apply the bound tenant at the start of every transaction.
    set_config(..., true) is transaction-local, so nothing survives a commit
    and a pooled connection is never handed back carrying a user id.
    """
    user_id = session.info.get("tenant_id")
    if user_id and connection.dialect.name == "postgresql":
        connection.execute(_SET_TENANT, {"uid": user_id})


def bind_tenant(s: Session, user_id: str | None) -> None:
    """
    Expose the requesting user to Postgres row-level security policies.

    Policies created by the initial migration compare `user_id` against
    `current_setting('app.current_user_id')`. They only bind roles that do not
    own the tables, so production should connect as a separate app role.
    Other dialects rely on the owner-scoped queries in `app.ledgerly.tenancy` alone.
    """
    if user_id:
        s.info["tenant_id"] = user_id
    else:
        s.info.pop("tenant_id", None)
    if s.in_transaction() and s.get_bind().dialect.name == "postgresql":
        s.connection().execute(_SET_TENANT, {"uid": user_id or ""})


def teardown_db_session(_exc: BaseException | None) -> None:
    s: Session | None = getattr(g, "db_session", None)
    if s is not None:
        try:
            if _exc is not None:
                s.rollback()
        finally:
            s.close()
        g.db_session = None


@contextmanager
def session_scope(app: Flask) -> Generator[Session, None, None]:
    """
    Non-request helper for scripts: yields a session and commits/rolls back.
    """
    sm = app.extensions["sqlalchemy_sessionmaker"]
    s: Session = sm()
    try:
        yield s
        s.commit()
    except Exception:
        s.rollback()
        raise
    finally:
        s.close()
