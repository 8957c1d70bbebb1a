from __future__ import annotations

import os
import sys
from contextlib import contextmanager
from pathlib import Path

from sqlalchemy.orm import Session

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from app.ledgerly.db import build_engine  # noqa: E402

DEFAULT_DATABASE_URL = "sqlite:///ledgerly.db"


def database_url(explicit: str | None = None) -> str:
    return (explicit or os.environ.get("DATABASE_URL") or DEFAULT_DATABASE_URL).strip()


def create_script_engine(db_url: str):
    """Same engine options the web app uses, minus the Flask app."""
    return build_engine(db_url)


@contextmanager
def script_session(db_url: str):
    """Session that commits on success; the engine is disposed afterwards."""
    engine = create_script_engine(db_url)
    s = Session(bind=engine, autoflush=False, expire_on_commit=False)
    try:
        yield s
        s.commit()
    except Exception:
        s.rollback()
        raise
    finally:
        s.close()
        engine.dispose()


def find_user(s: Session, email: str):
    from app.ledgerly.models import User

    return s.query(User).filter(User.email == email.strip().lower()).one_or_none()
