"""Shared test fixtures for budget coach tests."""

from datetime import datetime
from decimal import Decimal

import pytest

from budget_coach.core.engine import WeeklyBudgetEngine
from budget_coach.core.repositories import (
    InMemoryCategoryRepository,
    InMemoryTransactionRepository,
    InMemoryWeeklyBudgetRepository,
)
from budget_coach.core.weeks import end_of_week, start_of_week
from budget_coach.models.schemas import (
    Category,
    Transaction,
    TransactionType,
    WeeklyBudget,
)

USER = "user-1"

# Wednesday; its week runs Mon 2024-01-15 .. Sun 2024-01-21
NOW = datetime(2024, 1, 17, 12, 0)
WEEK = start_of_week(NOW)


def make_category(
    name: str = "Food & Dining",
    monthly_ceiling: str | Decimal = "800",
    user_id: str = USER,
    is_active: bool = True,
    emoji: str = "🍽️",
) -> Category:
    return Category(
        id=f"cat-{name.lower().replace(' ', '-')}",
        user_id=user_id,
        name=name,
        emoji=emoji,
        monthly_ceiling=Decimal(monthly_ceiling),
        is_active=is_active,
    )


def make_transaction(
    amount: str | Decimal = "10",
    category_id: str | None = "cat-food-&-dining",
    date: datetime = NOW,
    type_: TransactionType = TransactionType.EXPENSE,
    description: str = "Grocery Store",
    user_id: str = USER,
    id: str | None = None,
) -> Transaction:
    kwargs = {"id": id} if id else {}
    return Transaction(
        user_id=user_id,
        category_id=category_id,
        date=date,
        description=description,
        amount=Decimal(amount),
        type=type_,
        **kwargs,
    )


def make_weekly_budget(
    weekly_limit: str | Decimal = "184.76",
    spent: str | Decimal = "0",
    category_id: str = "cat-food-&-dining",
    week_start: datetime = WEEK,
    carryover: str | Decimal = "0",
    user_id: str = USER,
) -> WeeklyBudget:
    return WeeklyBudget(
        user_id=user_id,
        category_id=category_id,
        week_start=start_of_week(week_start),
        week_end=end_of_week(week_start),
        weekly_limit=Decimal(weekly_limit),
        spent=Decimal(spent),
        carryover=Decimal(carryover),
        updated_at=NOW,
    )


@pytest.fixture
def categories():
    return InMemoryCategoryRepository([make_category()])


@pytest.fixture
def transactions():
    return InMemoryTransactionRepository()


@pytest.fixture
def weekly_budgets():
    return InMemoryWeeklyBudgetRepository()


@pytest.fixture
def engine(categories, transactions, weekly_budgets):
    return WeeklyBudgetEngine(categories, transactions, weekly_budgets, clock=lambda: NOW)
