"""Transaction mutations that keep weekly budgets in sync.

Every create, delete, or edit that can change a week's expense total is
followed by a resync of each affected (category, week) pair.
"""

from __future__ import annotations

import logging
from datetime import datetime

from budget_coach.core.engine import WeeklyBudgetEngine
from budget_coach.core.errors import NotFoundError
from budget_coach.core.repositories import TransactionRepository
from budget_coach.core.weeks import start_of_week
from budget_coach.models.schemas import (
    NewTransaction,
    Transaction,
    TransactionUpdate,
)

logger = logging.getLogger(__name__)

# Fields whose change can move money between weekly totals
_SYNC_FIELDS = ("category_id", "amount", "type", "date")


def affected_weeks(
    before: Transaction | None,
    after: Transaction | None,
) -> set[tuple[str, datetime]]:
    """(category_id, week_start) pairs whose ``spent`` may have changed.

    *before* is ``None`` for a create and *after* is ``None`` for a delete.
    For an edit nothing is returned unless a field that feeds the weekly
    total actually changed; otherwise both the old and new week are included.
    """
    if before is not None and after is not None:
        if all(getattr(before, f) == getattr(after, f) for f in _SYNC_FIELDS):
            return set()

    targets: set[tuple[str, datetime]] = set()
    for t in (before, after):
        if t is not None and t.is_categorized_expense:
            targets.add((t.category_id, start_of_week(t.date)))
    return targets


class TransactionLedger:
    """Records, edits and deletes transactions for the budget engine."""

    def __init__(self, transactions: TransactionRepository, engine: WeeklyBudgetEngine):
        self.transactions = transactions
        self.engine = engine

    async def _resync(self, user_id: str, targets: set[tuple[str, datetime]]) -> int:
        """Sync each target, logging and skipping failures. Returns the failure count."""
        failures = 0
        for category_id, week_start in sorted(targets, key=lambda t: (t[1], t[0])):
            try:
                await self.engine.sync_weekly_spending(category_id, user_id, week_start)
            except Exception:
                failures += 1
                logger.exception(
                    "Failed to update weekly budget for category %s week %s",
                    category_id, week_start.date(),
                )
        return failures

    async def record(
        self,
        user_id: str,
        entries: list[NewTransaction],
    ) -> list[Transaction]:
        """Store *entries* and resync every week they touch."""
        created: list[Transaction] = []
        targets: set[tuple[str, datetime]] = set()

        for entry in entries:
            transaction = await self.transactions.add(
                Transaction(user_id=user_id, **entry.model_dump())
            )
            created.append(transaction)
            targets |= affected_weeks(None, transaction)

        await self._resync(user_id, targets)
        return created

    async def update(
        self,
        transaction_id: str,
        user_id: str,
        changes: TransactionUpdate,
    ) -> Transaction:
        before = await self.transactions.get(transaction_id, user_id)
        if before is None:
            raise NotFoundError("transaction", transaction_id)

        after = await self.transactions.update(transaction_id, user_id, changes.changes())
        if after is None:
            raise NotFoundError("transaction", transaction_id)

        await self._resync(user_id, affected_weeks(before, after))
        return after

    async def delete(self, transaction_id: str, user_id: str) -> Transaction:
        existing = await self.transactions.get(transaction_id, user_id)
        if existing is None or not await self.transactions.delete(transaction_id, user_id):
            raise NotFoundError("transaction", transaction_id)

        await self._resync(user_id, affected_weeks(existing, None))
        return existing
