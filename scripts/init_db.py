"""
Seed a demo account (idempotent; never overwrites an existing password).

Usage:
  python scripts/init_db.py
  python scripts/init_db.py --create-tables   # local sqlite without alembic
"""
from __future__ import annotations

import argparse
import os
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from scripts._db_utils import create_script_engine, database_url, find_user, script_session  # noqa: E402


def seed_only(*, database_url_override: str | None = None) -> None:
    """
    Create the demo user with its profile and business settings.
    Skipped when DEMO_EMAIL is blank.
    """
    from app.ledgerly.auth import create_account

    demo_email = os.environ.get("DEMO_EMAIL", "demo@ledgerly.app").strip().lower()
    demo_password = os.environ.get("DEMO_PASSWORD") or "change-me-please"
    if not demo_email:
        print("DEMO_EMAIL is blank; nothing to seed.")
        return

    with script_session(database_url(database_url_override)) as s:
        if find_user(s, demo_email) is not None:
            print(f"Demo user already exists: {demo_email}")
            return
        create_account(s, demo_email, demo_password, full_name="Demo User")

    print("Initialized database (seed_only).")
    print(f"Demo email: {demo_email}")
    print("Demo password: (from DEMO_PASSWORD)")


def create_tables(db_url: str) -> None:
    from app.ledgerly.models import Base

    engine = create_script_engine(db_url)
    try:
        Base.metadata.create_all(engine)
    finally:
        engine.dispose()
    print("Created tables from models.")


def main() -> None:
    parser = argparse.ArgumentParser(description="Seed the Ledgerly database")
    parser.add_argument("--create-tables", action="store_true", help="Create tables directly (no migrations)")
    args = parser.parse_args()

    if args.create_tables:
        create_tables(database_url())
    seed_only()


if __name__ == "__main__":
    main()
