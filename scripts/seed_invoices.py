#!/usr/bin/env python
"""
Fill an account with sample invoices for local development.

Invoices get numbers SEED-0001, SEED-0002, ... so clean_invoices.py can
remove them again with --pattern SEED-.

Usage:
    python scripts/seed_invoices.py --email demo@ledgerly.app
    python scripts/seed_invoices.py --email demo@ledgerly.app --years 2024 2025 --per-year 10

Environment:
    DATABASE_URL: database connection string (defaults to sqlite:///ledgerly.db)
"""
from __future__ import annotations

import argparse
import random
import sys
from datetime import date
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from app.ledgerly.db import bind_tenant  # noqa: E402
from scripts._db_utils import database_url, find_user, script_session  # noqa: E402

SAMPLE_CLIENTS = [
    ("Acme Corporation", "billing@acme.example"),
    ("Tech Innovations Inc", "accounts@techinnovations.example"),
    ("Global Solutions LLC", "finance@globalsolutions.example"),
    ("Creative Studios", "payments@creativestudios.example"),
    ("Digital Marketing Co", "billing@digitalmarketing.example"),
    ("Cloud Services Ltd", "billing@cloudservices.example"),
    ("Design Agency", "finance@designagency.example"),
    ("Consulting Group", "payments@consultinggroup.example"),
]

SAMPLE_SERVICES = [
    ("Website Development", 125, 40),
    ("Mobile App Development", 150, 80),
    ("UI/UX Design", 100, 20),
    ("SEO Optimization", 85, 10),
    ("Content Writing", 75, 15),
    ("Consulting Services", 175, 10),
    ("Technical Support", 95, 5),
    ("Project Management", 120, 25),
]

SAMPLE_PAYMENT_METHODS = ["check", "direct_deposit", "paypal", "venmo", "wire_transfer"]


def _random_date(rng: random.Random, year: int) -> date:
    return date(year, rng.randint(1, 12), rng.randint(1, 28))


def _line_items(rng: random.Random) -> list[dict]:
    rows = []
    for _ in range(rng.randint(1, 3)):
        description, rate, max_qty = rng.choice(SAMPLE_SERVICES)
        rows.append({"description": description, "quantity": str(rng.randint(1, max_qty)), "rate": str(rate)})
    return rows


def seed(email: str, years: list[int], per_year: int, seed_value: int | None) -> int:
    from app.ledgerly.modules.invoices.service import create_invoice, mark_invoice_paid

    rng = random.Random(seed_value)
    created = 0
    with script_session(database_url()) as s:
        user = find_user(s, email)
        if user is None:
            print(f"No user with email {email}.")
            sys.exit(1)
        bind_tenant(s, user.id)

        counter = 1
        for year in years:
            for _ in range(per_year):
                name, client_email = rng.choice(SAMPLE_CLIENTS)
                status = rng.choice(["draft", "sent", "paid", "overdue"])
                invoice_date = _random_date(rng, year)
                payload = {
                    "invoice_name": f"Invoice for {name}",
                    "invoice_number": f"SEED-{counter:04d}",
                    "date": invoice_date.isoformat(),
                    "terms": "Net 30",
                    "status": "sent" if status == "paid" else status,
                    "from_name": "Your Business Name",
                    "from_email": "you@business.example",
                    "bill_to_name": name,
                    "bill_to_email": client_email,
                    "line_items": _line_items(rng),
                }
                invoice = create_invoice(s, payload, user)
                if status == "paid":
                    mark_invoice_paid(
                        s,
                        invoice,
                        {
                            "payment_method": rng.choice(SAMPLE_PAYMENT_METHODS),
                            "payment_date": invoice_date.isoformat(),
                            "payment_reference": None,
                        },
                        user,
                    )
                counter += 1
                created += 1
    return created


def main() -> None:
    this_year = date.today().year
    parser = argparse.ArgumentParser(description="Seed sample invoices")
    parser.add_argument("--email", required=True, help="Account to seed")
    parser.add_argument("--years", type=int, nargs="+", default=[this_year - 2, this_year - 1, this_year])
    parser.add_argument("--per-year", type=int, default=15)
    parser.add_argument("--seed", type=int, default=None, help="Random seed for repeatable data")
    args = parser.parse_args()

    created = seed(args.email, args.years, args.per_year, args.seed)
    print(f"Created {created} invoice(s) for {args.email}.")


if __name__ == "__main__":
    main()
