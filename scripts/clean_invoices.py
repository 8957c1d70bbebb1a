#!/usr/bin/env python
"""
Delete invoices for one account, optionally only those whose number starts with a prefix.

Usage:
    # Show what would be deleted
    python scripts/clean_invoices.py --email demo@ledgerly.app --pattern SEED-

    # Delete
    python scripts/clean_invoices.py --email demo@ledgerly.app --pattern SEED- --confirm

Environment:
    DATABASE_URL: database connection string (defaults to sqlite:///ledgerly.db)
"""
from __future__ import annotations

import argparse
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from app.ledgerly.db import bind_tenant  # noqa: E402
from scripts._db_utils import database_url, find_user, script_session  # noqa: E402


def clean(email: str, pattern: str | None, confirm: bool) -> int:
    from app.ledgerly.modules.invoices.models import Invoice

    with script_session(database_url()) as s:
        user = find_user(s, email)
        if user is None:
            print(f"No user with email {email}.")
            sys.exit(1)
        bind_tenant(s, user.id)

        q = s.query(Invoice).filter(Invoice.user_id == user.id)
        if pattern:
            q = q.filter(Invoice.invoice_number.like(f"{pattern}%"))
        count = q.count()

        if count == 0:
            print("No invoices found to delete.")
            return 0

        scope = f'numbers starting with "{pattern}"' if pattern else f"all invoices for {email}"
        print(f"Found {count} invoice(s): {scope}.")
        if not confirm:
            print("Dry run. Re-run with --confirm to delete.")
            return 0

        q.delete(synchronize_session=False)
    print(f"Deleted {count} invoice(s).")
    return count


def main() -> None:
    parser = argparse.ArgumentParser(description="Delete invoices for an account")
    parser.add_argument("--email", required=True, help="Account whose invoices are deleted")
    parser.add_argument("--pattern", default=None, help="Only invoice numbers starting with this prefix")
    parser.add_argument("--confirm", action="store_true", help="Actually delete")
    args = parser.parse_args()

    clean(args.email, args.pattern, args.confirm)


if __name__ == "__main__":
    main()
