"""SQLAlchemy (async) storage backend.

Money columns hold integer cents. The (user, category, week_start)
uniqueness of weekly budgets and the (user, name) uniqueness of categories
are enforced by the database; violations surface as
:class:`ConstraintViolation`.
"""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Any, Optional

from sqlalchemy import (
    Boolean,
    DateTime,
    ForeignKey,
    Integer,
    String,
    Text,
    UniqueConstraint,
    select,
    update,
)
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column
from sqlalchemy.types import TypeDecorator

from budget_coach.core.errors import ConstraintViolation
from budget_coach.models.schemas import (
    Category,
    Transaction,
    TransactionType,
    WeeklyBudget,
    cents_to_money,
    money_to_cents,
)


class Money(TypeDecorator):
    """Decimal amount stored as integer cents."""

    impl = Integer
    cache_ok = True

    def process_bind_param(self, value, dialect):
        return None if value is None else money_to_cents(Decimal(value))

    def process_result_value(self, value, dialect):
        return None if value is None else cents_to_money(value)


class Base(DeclarativeBase):
    pass


class CategoryRow(Base):
    __tablename__ = "categories"
    __table_args__ = (UniqueConstraint("user_id", "name", name="uq_category_user_name"),)

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    user_id: Mapped[str] = mapped_column(String(64), index=True)
    name: Mapped[str] = mapped_column(String(100))
    emoji: Mapped[str] = mapped_column(String(16), default="📊")
    monthly_ceiling: Mapped[Decimal] = mapped_column(Money, default=Decimal("0"))
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)
    is_custom: Mapped[bool] = mapped_column(Boolean, default=False)


class TransactionRow(Base):
    __tablename__ = "transactions"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    user_id: Mapped[str] = mapped_column(String(64), index=True)
    category_id: Mapped[Optional[str]] = mapped_column(
        ForeignKey("categories.id", ondelete="SET NULL"), nullable=True, index=True
    )
    date: Mapped[datetime] = mapped_column(DateTime, index=True)
    description: Mapped[str] = mapped_column(String(200))
    amount: Mapped[Decimal] = mapped_column(Money)
    type: Mapped[str] = mapped_column(String(10))  # "income" or "expense"
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    source: Mapped[str] = mapped_column(String(16), default="manual")


class WeeklyBudgetRow(Base):
    __tablename__ = "weekly_budgets"
    __table_args__ = (
        UniqueConstraint(
            "user_id", "category_id", "week_start", name="uq_weekly_budget_user_category_week"
        ),
    )

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    user_id: Mapped[str] = mapped_column(String(64), index=True)
    # No foreign key: categories may live in the remote Financial Helm API
    category_id: Mapped[str] = mapped_column(String(64), index=True)
    week_start: Mapped[datetime] = mapped_column(DateTime)
    week_end: Mapped[datetime] = mapped_column(DateTime)
    weekly_limit: Mapped[Decimal] = mapped_column(Money)
    spent: Mapped[Decimal] = mapped_column(Money, default=Decimal("0"))
    carryover: Mapped[Decimal] = mapped_column(Money, default=Decimal("0"))
    status: Mapped[str] = mapped_column(String(20), default="active")
    updated_at: Mapped[datetime] = mapped_column(DateTime)


def _plain(value: Any) -> Any:
    return value.value if isinstance(value, Enum) else value


def _plain_values(data: dict[str, Any]) -> dict[str, Any]:
    return {k: _plain(v) for k, v in data.items()}


class SqlCategoryRepository:
    def __init__(self, sessions: async_sessionmaker[AsyncSession]):
        self._sessions = sessions

    async def get(self, category_id: str, user_id: str) -> Category | None:
        async with self._sessions() as session:
            row = await session.scalar(
                select(CategoryRow).where(
                    CategoryRow.id == category_id, CategoryRow.user_id == user_id
                )
            )
            return Category.model_validate(row) if row else None

    async def list_active(self, user_id: str) -> list[Category]:
        async with self._sessions() as session:
            rows = await session.scalars(
                select(CategoryRow)
                .where(CategoryRow.user_id == user_id, CategoryRow.is_active.is_(True))
                .order_by(CategoryRow.name)
            )
            return [Category.model_validate(r) for r in rows]

    async def list_all(self, user_id: str) -> list[Category]:
        async with self._sessions() as session:
            rows = await session.scalars(
                select(CategoryRow).where(CategoryRow.user_id == user_id).order_by(CategoryRow.name)
            )
            return [Category.model_validate(r) for r in rows]

    async def add(self, category: Category) -> Category:
        async with self._sessions() as session:
            session.add(CategoryRow(**category.model_dump()))
            try:
                await session.commit()
            except IntegrityError as exc:
                await session.rollback()
                raise ConstraintViolation("category", (category.user_id, category.name)) from exc
        return category

    async def update(
        self, category_id: str, user_id: str, changes: dict[str, Any]
    ) -> Category | None:
        async with self._sessions() as session:
            row = await session.scalar(
                select(CategoryRow).where(
                    CategoryRow.id == category_id, CategoryRow.user_id == user_id
                )
            )
            if row is None:
                return None
            for key, value in _plain_values(changes).items():
                setattr(row, key, value)
            try:
                await session.commit()
            except IntegrityError as exc:
                await session.rollback()
                raise ConstraintViolation("category", (user_id, changes.get("name"))) from exc
            await session.refresh(row)
            return Category.model_validate(row)

    async def delete(self, category_id: str, user_id: str) -> bool:
        async with self._sessions() as session:
            row = await session.scalar(
                select(CategoryRow).where(
                    CategoryRow.id == category_id, CategoryRow.user_id == user_id
                )
            )
            if row is None:
                return False
            await session.delete(row)
            await session.commit()
            return True


class SqlTransactionRepository:
    def __init__(self, sessions: async_sessionmaker[AsyncSession]):
        self._sessions = sessions

    async def get(self, transaction_id: str, user_id: str) -> Transaction | None:
        async with self._sessions() as session:
            row = await session.scalar(
                select(TransactionRow).where(
                    TransactionRow.id == transaction_id, TransactionRow.user_id == user_id
                )
            )
            return Transaction.model_validate(row) if row else None

    async def list_expenses(
        self, user_id: str, category_id: str, start: datetime, end: datetime
    ) -> list[Transaction]:
        async with self._sessions() as session:
            rows = await session.scalars(
                select(TransactionRow).where(
                    TransactionRow.user_id == user_id,
                    TransactionRow.category_id == category_id,
                    TransactionRow.type == TransactionType.EXPENSE.value,
                    TransactionRow.date >= start,
                    TransactionRow.date <= end,
                )
            )
            return [Transaction.model_validate(r) for r in rows]

    async def add(self, transaction: Transaction) -> Transaction:
        async with self._sessions() as session:
            session.add(TransactionRow(**_plain_values(transaction.model_dump())))
            await session.commit()
        return transaction

    async def update(
        self, transaction_id: str, user_id: str, changes: dict[str, Any]
    ) -> Transaction | None:
        async with self._sessions() as session:
            row = await session.scalar(
                select(TransactionRow).where(
                    TransactionRow.id == transaction_id, TransactionRow.user_id == user_id
                )
            )
            if row is None:
                return None
            for key, value in _plain_values(changes).items():
                setattr(row, key, value)
            await session.commit()
            await session.refresh(row)
            return Transaction.model_validate(row)

    async def delete(self, transaction_id: str, user_id: str) -> bool:
        async with self._sessions() as session:
            row = await session.scalar(
                select(TransactionRow).where(
                    TransactionRow.id == transaction_id, TransactionRow.user_id == user_id
                )
            )
            if row is None:
                return False
            await session.delete(row)
            await session.commit()
            return True

    async def detach_category(self, user_id: str, category_id: str) -> int:
        async with self._sessions() as session:
            result = await session.execute(
                update(TransactionRow)
                .where(TransactionRow.user_id == user_id, TransactionRow.category_id == category_id)
                .values(category_id=None)
            )
            await session.commit()
            return result.rowcount or 0


class SqlWeeklyBudgetRepository:
    def __init__(self, sessions: async_sessionmaker[AsyncSession]):
        self._sessions = sessions

    async def find(
        self, user_id: str, category_id: str, week_start: datetime
    ) -> WeeklyBudget | None:
        async with self._sessions() as session:
            row = await session.scalar(
                select(WeeklyBudgetRow).where(
                    WeeklyBudgetRow.user_id == user_id,
                    WeeklyBudgetRow.category_id == category_id,
                    WeeklyBudgetRow.week_start == week_start,
                )
            )
            return WeeklyBudget.model_validate(row) if row else None

    async def create(self, budget: WeeklyBudget) -> WeeklyBudget:
        async with self._sessions() as session:
            session.add(WeeklyBudgetRow(**budget.model_dump()))
            try:
                await session.commit()
            except IntegrityError as exc:
                await session.rollback()
                raise ConstraintViolation(
                    "weekly budget", (budget.user_id, budget.category_id, budget.week_start)
                ) from exc
        return budget

    async def update_spent(
        self, budget_id: str, spent, updated_at: datetime
    ) -> WeeklyBudget:
        async with self._sessions() as session:
            row = await session.get(WeeklyBudgetRow, budget_id)
            if row is None:
                raise LookupError(f"weekly budget {budget_id} vanished")
            row.spent = spent
            row.updated_at = updated_at
            await session.commit()
            await session.refresh(row)
            return WeeklyBudget.model_validate(row)


class SqlStore:
    """Owns the async engine and hands out repositories bound to it."""

    def __init__(self, url: str, echo: bool = False):
        self.engine = create_async_engine(url, echo=echo)
        self.sessions = async_sessionmaker(self.engine, expire_on_commit=False)
        self.categories = SqlCategoryRepository(self.sessions)
        self.transactions = SqlTransactionRepository(self.sessions)
        self.weekly_budgets = SqlWeeklyBudgetRepository(self.sessions)

    async def create_schema(self):
        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

    async def close(self):
        await self.engine.dispose()
