"""Storage interfaces the engine depends on, plus in-memory implementations.

The engine only talks to these protocols, so any backend (SQL, the remote
Financial Helm API, or the dictionaries below) can be swapped in.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Protocol

from budget_coach.core.errors import ConstraintViolation
from budget_coach.models.schemas import (
    Category,
    Transaction,
    TransactionType,
    WeeklyBudget,
)


class CategoryRepository(Protocol):
    async def get(self, category_id: str, user_id: str) -> Category | None: ...

    async def list_active(self, user_id: str) -> list[Category]: ...

    async def list_all(self, user_id: str) -> list[Category]: ...

    async def add(self, category: Category) -> Category: ...

    async def update(
        self, category_id: str, user_id: str, changes: dict[str, Any]
    ) -> Category | None: ...

    async def delete(self, category_id: str, user_id: str) -> bool: ...


class TransactionRepository(Protocol):
    async def get(self, transaction_id: str, user_id: str) -> Transaction | None: ...

    async def list_expenses(
        self, user_id: str, category_id: str, start: datetime, end: datetime
    ) -> list[Transaction]: ...

    async def add(self, transaction: Transaction) -> Transaction: ...

    async def update(
        self, transaction_id: str, user_id: str, changes: dict[str, Any]
    ) -> Transaction | None: ...

    async def delete(self, transaction_id: str, user_id: str) -> bool: ...

    async def detach_category(self, user_id: str, category_id: str) -> int: ...


class WeeklyBudgetRepository(Protocol):
    async def find(
        self, user_id: str, category_id: str, week_start: datetime
    ) -> WeeklyBudget | None: ...

    async def create(self, budget: WeeklyBudget) -> WeeklyBudget:
        """Insert a row; raises :class:`ConstraintViolation` on a duplicate week."""
        ...

    async def update_spent(
        self, budget_id: str, spent, updated_at: datetime
    ) -> WeeklyBudget: ...


# --- In-memory implementations ---


class InMemoryCategoryRepository:
    def __init__(self, categories: list[Category] | None = None):
        self._items: dict[str, Category] = {}
        for c in categories or []:
            self._items[c.id] = c

    async def get(self, category_id: str, user_id: str) -> Category | None:
        c = self._items.get(category_id)
        return c if c is not None and c.user_id == user_id else None

    async def list_active(self, user_id: str) -> list[Category]:
        return [c for c in self._items.values() if c.user_id == user_id and c.is_active]

    async def list_all(self, user_id: str) -> list[Category]:
        return [c for c in self._items.values() if c.user_id == user_id]

    def _check_name(self, user_id: str, name: str, exclude_id: str | None = None):
        for c in self._items.values():
            if c.user_id == user_id and c.name == name and c.id != exclude_id:
                raise ConstraintViolation("category", (user_id, name))

    async def add(self, category: Category) -> Category:
        self._check_name(category.user_id, category.name)
        self._items[category.id] = category
        return category

    async def update(
        self, category_id: str, user_id: str, changes: dict[str, Any]
    ) -> Category | None:
        existing = await self.get(category_id, user_id)
        if existing is None:
            return None
        if "name" in changes:
            self._check_name(user_id, changes["name"], exclude_id=category_id)
        updated = existing.model_copy(update=changes)
        self._items[category_id] = updated
        return updated

    async def delete(self, category_id: str, user_id: str) -> bool:
        if await self.get(category_id, user_id) is None:
            return False
        del self._items[category_id]
        return True


class InMemoryTransactionRepository:
    def __init__(self, transactions: list[Transaction] | None = None):
        self._items: dict[str, Transaction] = {}
        for t in transactions or []:
            self._items[t.id] = t

    async def get(self, transaction_id: str, user_id: str) -> Transaction | None:
        t = self._items.get(transaction_id)
        return t if t is not None and t.user_id == user_id else None

    async def list_expenses(
        self, user_id: str, category_id: str, start: datetime, end: datetime
    ) -> list[Transaction]:
        return [
            t for t in self._items.values()
            if t.user_id == user_id
            and t.category_id == category_id
            and t.type == TransactionType.EXPENSE
            and start <= t.date <= end
        ]

    async def add(self, transaction: Transaction) -> Transaction:
        self._items[transaction.id] = transaction
        return transaction

    async def update(
        self, transaction_id: str, user_id: str, changes: dict[str, Any]
    ) -> Transaction | None:
        existing = await self.get(transaction_id, user_id)
        if existing is None:
            return None
        updated = existing.model_copy(update=changes)
        self._items[transaction_id] = updated
        return updated

    async def delete(self, transaction_id: str, user_id: str) -> bool:
        if await self.get(transaction_id, user_id) is None:
            return False
        del self._items[transaction_id]
        return True

    async def detach_category(self, user_id: str, category_id: str) -> int:
        count = 0
        for t in list(self._items.values()):
            if t.user_id == user_id and t.category_id == category_id:
                self._items[t.id] = t.model_copy(update={"category_id": None})
                count += 1
        return count


class InMemoryWeeklyBudgetRepository:
    def __init__(self, budgets: list[WeeklyBudget] | None = None):
        self._items: dict[str, WeeklyBudget] = {}
        for b in budgets or []:
            self._items[b.id] = b

    def all(self) -> list[WeeklyBudget]:
        return list(self._items.values())

    async def find(
        self, user_id: str, category_id: str, week_start: datetime
    ) -> WeeklyBudget | None:
        for b in self._items.values():
            if (
                b.user_id == user_id
                and b.category_id == category_id
                and b.week_start == week_start
            ):
                return b
        return None

    async def create(self, budget: WeeklyBudget) -> WeeklyBudget:
        if await self.find(budget.user_id, budget.category_id, budget.week_start):
            raise ConstraintViolation(
                "weekly budget", (budget.user_id, budget.category_id, budget.week_start)
            )
        self._items[budget.id] = budget
        return budget

    async def update_spent(
        self, budget_id: str, spent, updated_at: datetime
    ) -> WeeklyBudget:
        updated = self._items[budget_id].model_copy(
            update={"spent": spent, "updated_at": updated_at}
        )
        self._items[budget_id] = updated
        return updated
