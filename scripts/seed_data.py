#!/usr/bin/env python3
"""
Seed the database with the default pockets and categories.

Creates the tables if needed, then creates every pocket and category named
in the seed file that does not exist yet.  Running it twice is harmless.

Usage:
    python3 scripts/seed_data.py [SEED_FILE] [--database-url URL]
"""

import argparse
import sys
from dataclasses import replace
from pathlib import Path
from uuid import UUID

import yaml

# ---------------------------------------------------------------------------
# Project root on sys.path
# ---------------------------------------------------------------------------
ROOT = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(ROOT))

DEFAULT_SEED_FILE = Path(__file__).resolve().parent / "seed_data.yaml"

# Fixed actor for seeding runs
SEED_ACTOR = UUID("00000000-0000-0000-0000-000000000001")


def seed(ledger, auth, data: dict) -> dict[str, int]:
    """Create missing pockets and categories.  Returns counts created."""
    from pocket_ledger.models.category import CategoryKind

    created = {"pockets": 0, "donation_categories": 0, "expense_categories": 0}

    existing = {p.name for p in ledger.list_pockets(auth, active_only=False)}
    for entry in data.get("pockets", []):
        if entry["name"] not in existing:
            ledger.create_pocket(auth, entry["name"], entry.get("description"))
            created["pockets"] += 1

    for key, kind in (
        ("donation_categories", CategoryKind.DONATION),
        ("expense_categories", CategoryKind.EXPENSE),
    ):
        existing = {c.name for c in ledger.list_categories(auth, kind, active_only=False)}
        for entry in data.get(key, []):
            if entry["name"] not in existing:
                ledger.create_category(auth, kind, entry["name"], entry.get("description"))
                created[key] += 1

    return created


def main() -> int:
    parser = argparse.ArgumentParser(description=__doc__.splitlines()[1])
    parser.add_argument("seed_file", nargs="?", type=Path, default=DEFAULT_SEED_FILE)
    parser.add_argument("--database-url", default=None)
    args = parser.parse_args()

    from pocket_ledger.config import get_settings
    from pocket_ledger.db.engine import create_tables, init_engine_from_settings, session_scope
    from pocket_ledger.domain.authorization import AuthContext, Role
    from pocket_ledger.services.ledger_service import PocketLedgerService

    settings = get_settings()
    if args.database_url:
        settings = replace(settings, database_url=args.database_url)
    init_engine_from_settings(settings)
    create_tables()

    with open(args.seed_file) as f:
        data = yaml.safe_load(f) or {}

    auth = AuthContext(role=Role.ADMIN, actor_id=SEED_ACTOR)
    with session_scope() as session:
        ledger = PocketLedgerService(session, settings=settings, auto_commit=False)
        created = seed(ledger, auth, data)

    for key, count in created.items():
        print(f"  {key:<22} {count} created")
    return 0


if __name__ == "__main__":
    sys.exit(main())
