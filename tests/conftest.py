import pytest

from app.ledgerly import auth, create_app
from app.ledgerly.auth import create_account
from app.ledgerly.db import session_scope
from app.ledgerly.models import Base

OWNER_EMAIL = "owner@example.com"
OTHER_EMAIL = "other@example.com"
PASSWORD = "password123"


@pytest.fixture()
def app(tmp_path, monkeypatch):
    monkeypatch.setenv("SECRET_KEY", "test-secret")
    monkeypatch.setenv("DATABASE_URL", f"sqlite:///{tmp_path/'test.db'}")
    monkeypatch.setenv("ENV", "test")
    monkeypatch.setenv("STORAGE_BACKEND", "local")
    monkeypatch.setenv("STORAGE_ROOT", str(tmp_path / "storage"))
    for k in ("S3_ENDPOINT", "S3_REGION", "S3_ACCESS_KEY_ID", "S3_SECRET_ACCESS_KEY", "PUBLIC_STORAGE_BASE_URL"):
        monkeypatch.delenv(k, raising=False)

    auth._login_attempts.clear()
    app = create_app()
    engine = app.extensions["sqlalchemy_engine"]
    Base.metadata.create_all(bind=engine)

    with session_scope(app) as s:
        create_account(s, OWNER_EMAIL, PASSWORD, full_name="Olive Owner")
        create_account(s, OTHER_EMAIL, PASSWORD, full_name="Oscar Other")

    return app


@pytest.fixture()
def client(app):
    return app.test_client()


def login(client, email=OWNER_EMAIL, password=PASSWORD):
    return client.post("/auth/login", data={"email": email, "password": password}, follow_redirects=False)


def csrf(client) -> str:
    """The session's CSRF token, created if the session has none yet."""
    with client.session_transaction() as sess:
        token = sess.get("csrf_token")
        if not token:
            token = "test-csrf-token"
            sess["csrf_token"] = token
    return token


def post(client, url, data=None, **kwargs):
    payload = dict(data or {})
    payload["csrf_token"] = csrf(client)
    return client.post(url, data=payload, **kwargs)
