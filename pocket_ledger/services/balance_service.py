"""
BalanceService -- keeps Pocket.current_balance equal to its definition.

Responsibility:
    Recompute cached pocket balances by full re-aggregation of line items
    after every mutation that can change them, and reconcile the cache
    against a fresh aggregation on demand.

Invariants enforced:
    - current_balance == donation items - approved expense items, after
      every successful ledger operation.
    - Recalculation is idempotent: running it twice with no intervening
      write yields the same balance.  Incremental deltas are never applied.
    - Pocket rows are locked (SELECT ... FOR NO KEY UPDATE, ascending id) before
      aggregation, so concurrent writers to one pocket serialize and the
      last writer sees every committed item.
    - Runs inside the caller's transaction; a failure here rolls back the
      triggering write with it.
"""

from decimal import Decimal
from typing import Iterable
from uuid import UUID

from sqlalchemy import select

from pocket_ledger.db.types import to_money
from pocket_ledger.domain.dtos import BalanceDrift
from pocket_ledger.logging_config import get_logger
from pocket_ledger.models.pocket import Pocket
from pocket_ledger.selectors.pocket_selector import PocketSelector
from pocket_ledger.services.base import BaseService
from pocket_ledger.services.pocket_service import PocketService

logger = get_logger("services.balance")


class BalanceService(BaseService[Pocket]):
    """Balance recalculation engine."""

    def __init__(self, session, pockets: PocketService | None = None):
        super().__init__(session)
        self._pockets = pockets or PocketService(session)
        self._selector = PocketSelector(session)

    def recalculate(self, pocket_ids: Iterable[UUID]) -> dict[UUID, Decimal]:
        """
        Recompute and store the balance of each given pocket.

        Returns:
            {pocket_id: new_balance}
        """
        with self._storage_guard("recalculate_balance"):
            self.session.flush()
            locked = self._pockets.lock_pockets(pocket_ids)
            results: dict[UUID, Decimal] = {}
            for pocket in locked:
                results[pocket.id] = self._apply(pocket, self._selector.compute_balance(pocket.id))
            self.session.flush()
        return results

    def recalculate_all(self) -> dict[UUID, Decimal]:
        """Recompute every pocket's balance."""
        with self._storage_guard("recalculate_all_balances"):
            self.session.flush()
            computed = self._selector.compute_all_balances()
            locked = self._pockets.lock_pockets(computed.keys())
            # Recompute under the locks; the unlocked pass only named the pockets.
            computed = self._selector.compute_all_balances()
            results = {
                pocket.id: self._apply(pocket, computed[pocket.id]) for pocket in locked
            }
            self.session.flush()
        return results

    def reconcile(self, fix: bool = False) -> list[BalanceDrift]:
        """
        Compare cached balances with a fresh aggregation.

        Args:
            fix: When True, overwrite drifted caches with the fresh value.

        Returns:
            One BalanceDrift per pocket whose cache was wrong, ordered by name.
        """
        with self._storage_guard("reconcile_balances"):
            self.session.flush()
            computed = self._selector.compute_all_balances()
            if fix:
                locked = self._pockets.lock_pockets(computed.keys())
            else:
                locked = self.session.execute(
                    select(Pocket)
                    .where(Pocket.id.in_(list(computed)))
                    .execution_options(populate_existing=True)
                ).scalars().all()
            drifts: list[BalanceDrift] = []
            for pocket in sorted(locked, key=lambda p: p.name):
                cached = to_money(pocket.current_balance)
                fresh = computed[pocket.id]
                if cached == fresh:
                    continue
                drift = BalanceDrift(
                    pocket_id=pocket.id,
                    pocket_name=pocket.name,
                    cached_balance=cached,
                    computed_balance=fresh,
                )
                drifts.append(drift)
                logger.warning(
                    "balance_drift_detected",
                    extra={
                        "pocket_id": str(pocket.id),
                        "cached_balance": str(cached),
                        "computed_balance": str(fresh),
                        "fixed": fix,
                    },
                )
                if fix:
                    self._apply(pocket, fresh)
            self.session.flush()
        return drifts

    def _apply(self, pocket: Pocket, balance: Decimal) -> Decimal:
        previous = to_money(pocket.current_balance)
        pocket.current_balance = balance
        logger.info(
            "pocket_balance_recalculated",
            extra={
                "pocket_id": str(pocket.id),
                "previous_balance": str(previous),
                "balance": str(balance),
            },
        )
        return balance
