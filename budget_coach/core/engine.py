"""Weekly budget calculation and carryover engine.

Derives a rolling weekly spending limit per category from its monthly
ceiling, rolls last week's under/overspend into this week, keeps each
week's ``spent`` in sync with the transaction store, and reports status
and threshold alerts.

The engine owns the weekly budget rows: it is the only writer. Rows are
created lazily the first time a (user, category, week) is needed.
"""

from __future__ import annotations

import logging
from datetime import date, datetime
from typing import Callable

from budget_coach.core.calculations import (
    DEFAULT_MONTHLY_CEILING,
    build_status,
    compute_carryover,
    compute_weekly_limit,
    estimate_monthly_ceiling,
    evaluate_threshold,
    summarize_statuses,
    sum_expenses,
)
from budget_coach.core.errors import ConstraintViolation, NotFoundError
from budget_coach.core.repositories import (
    CategoryRepository,
    TransactionRepository,
    WeeklyBudgetRepository,
)
from budget_coach.core.weeks import (
    end_of_week,
    previous_week_start,
    start_of_week,
    subtract_months,
)
from budget_coach.models.results import (
    ThresholdAlert,
    WeeklyBudgetReport,
    WeeklyBudgetStatus,
)
from budget_coach.models.schemas import Category, WeeklyBudget, to_money

logger = logging.getLogger(__name__)


class WeeklyBudgetEngine:
    """Computes weekly limits, carryover, status and alerts for a user's categories."""

    def __init__(
        self,
        categories: CategoryRepository,
        transactions: TransactionRepository,
        weekly_budgets: WeeklyBudgetRepository,
        clock: Callable[[], datetime] | None = None,
    ):
        self.categories = categories
        self.transactions = transactions
        self.weekly_budgets = weekly_budgets
        self._clock = clock or datetime.now

    def now(self) -> datetime:
        return self._clock()

    async def _require_category(self, category_id: str, user_id: str) -> Category:
        category = await self.categories.get(category_id, user_id)
        if category is None:
            raise NotFoundError("category", category_id)
        return category

    # --- Ceilings, limits and carryover ---

    async def calculate_monthly_ceiling(
        self,
        category_id: str,
        user_id: str,
        months: int = 3,
    ):
        """Estimate a monthly ceiling from the last *months* of expenses.

        With no history this falls back to the category's stored ceiling,
        or to the 500 default when the category itself does not exist.
        """
        now = self.now()
        history = await self.transactions.list_expenses(
            user_id, category_id, subtract_months(now, months), now
        )
        if not history:
            category = await self.categories.get(category_id, user_id)
            return category.monthly_ceiling if category else DEFAULT_MONTHLY_CEILING

        return estimate_monthly_ceiling(sum_expenses(history), months)

    async def calculate_carryover(
        self,
        category_id: str,
        user_id: str,
        week_start: date | datetime,
    ):
        """Last week's ``weekly_limit - spent``; zero when that row is missing.

        Only the direct predecessor is consulted. A skipped week's outcome
        is not chained any further back.
        """
        previous = await self.weekly_budgets.find(
            user_id, category_id, previous_week_start(week_start)
        )
        return compute_carryover(previous)

    async def calculate_weekly_limit(
        self,
        category_id: str,
        user_id: str,
        week_start: date | datetime,
    ):
        """Limit for one (category, week). Raises :class:`NotFoundError`."""
        category = await self._require_category(category_id, user_id)
        carryover = await self.calculate_carryover(category_id, user_id, week_start)
        return compute_weekly_limit(category.monthly_ceiling, carryover)

    # --- Weekly budget rows ---

    async def _get_or_create(
        self,
        category: Category,
        user_id: str,
        week_start: datetime,
    ) -> tuple[WeeklyBudget, bool]:
        """Load the row for (user, category, week), creating it if missing.

        Returns the row and whether this call created it. A concurrent
        creator winning the race is not an error: the existing row is
        reloaded and returned.
        """
        existing = await self.weekly_budgets.find(user_id, category.id, week_start)
        if existing is not None:
            return existing, False

        carryover = await self.calculate_carryover(category.id, user_id, week_start)
        budget = WeeklyBudget(
            user_id=user_id,
            category_id=category.id,
            week_start=week_start,
            week_end=end_of_week(week_start),
            weekly_limit=compute_weekly_limit(category.monthly_ceiling, carryover),
            spent=to_money(0),
            carryover=carryover,
            status="active",
            updated_at=self.now(),
        )
        try:
            created = await self.weekly_budgets.create(budget)
        except ConstraintViolation:
            logger.info(
                "Weekly budget for category %s week %s created concurrently, reusing it",
                category.id, week_start.date(),
            )
            existing = await self.weekly_budgets.find(user_id, category.id, week_start)
            if existing is None:
                raise
            return existing, False

        logger.debug(
            "Created weekly budget %s for category %s week %s (limit %s, carryover %s)",
            created.id, category.id, week_start.date(), created.weekly_limit, carryover,
        )
        return created, True

    async def sync_weekly_spending(
        self,
        category_id: str,
        user_id: str,
        transaction_date: date | datetime,
    ) -> WeeklyBudget:
        """Re-sum the expenses of the week containing *transaction_date*.

        The week's row is created first if needed. ``spent`` is always
        recomputed from the transaction store rather than adjusted by a
        delta, so edits and deletes are reflected automatically.
        """
        week_start = start_of_week(transaction_date)
        week_end = end_of_week(transaction_date)
        category = await self._require_category(category_id, user_id)

        budget, _ = await self._get_or_create(category, user_id, week_start)

        expenses = await self.transactions.list_expenses(
            user_id, category_id, week_start, week_end
        )
        spent = sum_expenses(expenses)
        logger.debug(
            "Synced category %s week %s: %d expense(s), spent %s",
            category_id, week_start.date(), len(expenses), spent,
        )
        return await self.weekly_budgets.update_spent(budget.id, spent, self.now())

    # --- Status, alerts and initialization ---

    def _target_week(self, week_start: date | datetime | None) -> datetime:
        return start_of_week(week_start if week_start is not None else self.now())

    async def get_weekly_status(
        self,
        user_id: str,
        week_start: date | datetime | None = None,
    ) -> list[WeeklyBudgetStatus]:
        """One status per active category for the target week (default: this week)."""
        target = self._target_week(week_start)
        today = self.now()

        statuses: list[WeeklyBudgetStatus] = []
        for category in await self.categories.list_active(user_id):
            budget, _ = await self._get_or_create(category, user_id, target)
            statuses.append(build_status(category, budget, today))
        return statuses

    async def get_weekly_report(
        self,
        user_id: str,
        week_start: date | datetime | None = None,
    ) -> WeeklyBudgetReport:
        """Weekly statuses plus totals across all categories."""
        target = self._target_week(week_start)
        statuses = await self.get_weekly_status(user_id, target)
        return WeeklyBudgetReport(
            week_start=target,
            week_end=end_of_week(target),
            budgets=statuses,
            summary=summarize_statuses(statuses),
        )

    async def check_thresholds(
        self,
        category_id: str,
        user_id: str,
    ) -> ThresholdAlert | None:
        """Highest 80/90/100% threshold crossed this week, or ``None``.

        Read-only: a missing row for this week means no alert, and no row
        is created. Whether an alert is *new* is for the caller to decide.
        """
        category = await self._require_category(category_id, user_id)
        budget = await self.weekly_budgets.find(
            user_id, category_id, self._target_week(None)
        )
        if budget is None:
            return None
        return evaluate_threshold(category, budget)

    async def initialize_weekly_budgets(
        self,
        user_id: str,
        week_start: date | datetime | None = None,
    ) -> int:
        """Create missing rows for every active category; returns how many were created.

        Idempotent. A failure on one category is logged and the remaining
        categories are still processed.
        """
        target = self._target_week(week_start)
        created_count = 0

        for category in await self.categories.list_active(user_id):
            try:
                _, created = await self._get_or_create(category, user_id, target)
            except Exception:
                logger.exception(
                    "Failed to initialize weekly budget for category %s (%s)",
                    category.id, category.name,
                )
                continue
            if created:
                created_count += 1

        logger.info(
            "Initialized %d weekly budget(s) for user %s week %s",
            created_count, user_id, target.date(),
        )
        return created_count
