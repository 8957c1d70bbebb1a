"""
Release phase: migrate the database, then optionally seed the demo account.

Runs before the web process starts (see scripts/start.py). It refuses to
migrate a SQLite database when ENV is production.

Usage:
  DATABASE_URL=postgresql://... python scripts/release.py
  MIGRATION_DATABASE_URL=postgresql://owner@... DATABASE_URL=postgresql://app@... python scripts/release.py
  SEED_DEMO_USER=1 python scripts/release.py
"""
from __future__ import annotations

import os
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

TRUTHY = ("1", "true", "yes", "on")


def _flag(name: str) -> bool:
    return (os.environ.get(name) or "").strip().lower() in TRUTHY


def release_database_url() -> str:
    """
    MIGRATION_DATABASE_URL connects as the role that owns the tables; it falls
    back to DATABASE_URL, which the web app uses.
    """
    db_url = (os.environ.get("MIGRATION_DATABASE_URL") or os.environ.get("DATABASE_URL") or "").strip()
    if not db_url:
        raise RuntimeError("Missing required environment variable DATABASE_URL.")
    env = (os.environ.get("ENV") or "").strip().lower()
    if env in ("prod", "production") and db_url.startswith("sqlite"):
        raise RuntimeError("Refusing to run release on sqlite DATABASE_URL in production. Set DATABASE_URL to Postgres.")
    return db_url


def upgrade_to_head(db_url: str) -> None:
    from alembic import command
    from alembic.config import Config

    cfg = Config(str(ROOT / "alembic.ini"))
    cfg.set_main_option("script_location", str(ROOT / "migrations"))
    cfg.set_main_option("sqlalchemy.url", db_url)
    command.upgrade(cfg, "head")


def run_release() -> None:
    db_url = release_database_url()
    print(f"[release] ENV={os.environ.get('ENV') or '(unset)'}", flush=True)

    print("[release] alembic upgrade head", flush=True)
    upgrade_to_head(db_url)

    if _flag("SEED_DEMO_USER"):
        from scripts import init_db

        print("[release] seeding demo account", flush=True)
        init_db.seed_only(database_url_override=db_url)
    print("[release] done", flush=True)


if __name__ == "__main__":
    run_release()
