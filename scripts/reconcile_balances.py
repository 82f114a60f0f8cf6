#!/usr/bin/env python3
"""
Compare cached pocket balances with a full re-aggregation of line items.

Prints one row per drifted pocket.  With --fix, overwrites each drifted
balance with the re-aggregated value and commits.  Exit status is 1 when
drift was found and not fixed.

Usage:
    python3 scripts/reconcile_balances.py [--fix] [--database-url URL]
"""

import argparse
import sys
from dataclasses import replace
from pathlib import Path
from uuid import UUID

# ---------------------------------------------------------------------------
# Project root on sys.path
# ---------------------------------------------------------------------------
ROOT = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(ROOT))

RECONCILE_ACTOR = UUID("00000000-0000-0000-0000-000000000002")


def main() -> int:
    parser = argparse.ArgumentParser(description=__doc__.splitlines()[1])
    parser.add_argument("--fix", action="store_true", help="repair drifted balances")
    parser.add_argument("--database-url", default=None)
    args = parser.parse_args()

    from pocket_ledger.config import get_settings
    from pocket_ledger.db.engine import init_engine_from_settings, session_scope
    from pocket_ledger.domain.authorization import AuthContext, Role
    from pocket_ledger.services.ledger_service import PocketLedgerService

    settings = get_settings()
    if args.database_url:
        settings = replace(settings, database_url=args.database_url)
    init_engine_from_settings(settings)

    auth = AuthContext(role=Role.ADMIN, actor_id=RECONCILE_ACTOR)
    with session_scope() as session:
        ledger = PocketLedgerService(session, settings=settings, auto_commit=False)
        drifts = ledger.reconcile_balances(auth, fix=args.fix)

    if not drifts:
        print("All pocket balances match their line items.")
        return 0

    print(f"{'Pocket':<30} {'Cached':>18} {'Computed':>18} {'Difference':>18}")
    for d in drifts:
        print(
            f"{d.pocket_name:<30} {d.cached_balance:>18} "
            f"{d.computed_balance:>18} {d.difference:>18}"
        )
    if args.fix:
        print(f"\nRepaired {len(drifts)} pocket balance(s).")
        return 0
    return 1


if __name__ == "__main__":
    sys.exit(main())
