"""Category management: creation, archiving, deletion and default seeding."""

from __future__ import annotations

import logging
from decimal import Decimal

from budget_coach.core.engine import WeeklyBudgetEngine
from budget_coach.core.errors import ConstraintViolation, InvalidInputError, NotFoundError
from budget_coach.core.repositories import CategoryRepository, TransactionRepository
from budget_coach.core.resolvers import find_category_by_name
from budget_coach.models.schemas import Category

logger = logging.getLogger(__name__)

# Ceiling given to categories created on the fly, e.g. during an import
IMPORTED_CATEGORY_CEILING = Decimal("500")

CATEGORY_EMOJIS = {
    "Housing": "🏠",
    "Food & Dining": "🍽️",
    "Transportation": "🚗",
    "Entertainment": "🎬",
    "Shopping": "🛍️",
    "Healthcare": "⚕️",
    "Utilities": "💡",
    "Subscriptions": "📱",
    "Other": "📊",
}

DEFAULT_CATEGORIES: list[tuple[str, Decimal]] = [
    ("Housing", Decimal("1500")),
    ("Food & Dining", Decimal("800")),
    ("Transportation", Decimal("400")),
    ("Entertainment", Decimal("300")),
    ("Shopping", Decimal("500")),
    ("Healthcare", Decimal("300")),
    ("Utilities", Decimal("200")),
    ("Subscriptions", Decimal("100")),
]


def category_emoji(name: str) -> str:
    return CATEGORY_EMOJIS.get(name, "📊")


class CategoryManager:
    """Creates and retires categories, keeping weekly budgets initialized."""

    def __init__(
        self,
        categories: CategoryRepository,
        transactions: TransactionRepository,
        engine: WeeklyBudgetEngine,
    ):
        self.categories = categories
        self.transactions = transactions
        self.engine = engine

    async def create(
        self,
        user_id: str,
        name: str,
        monthly_ceiling: Decimal,
        emoji: str | None = None,
        is_custom: bool = True,
        initialize: bool = True,
    ) -> Category:
        """Create a category; names are unique per user, archived ones included."""
        if monthly_ceiling < 0:
            raise InvalidInputError("monthly_ceiling must be zero or positive")

        existing = find_category_by_name(await self.categories.list_all(user_id), name)
        if existing is not None:
            raise ConstraintViolation(
                "category", (user_id, name), f"Category \"{name}\" already exists"
            )

        category = await self.categories.add(Category(
            user_id=user_id,
            name=name,
            emoji=emoji or category_emoji(name),
            monthly_ceiling=monthly_ceiling,
            is_custom=is_custom,
        ))
        logger.info("Created category %s (%s) for user %s", category.id, name, user_id)

        if initialize:
            await self.engine.initialize_weekly_budgets(user_id)
        return category

    async def find_or_create(self, user_id: str, name: str) -> Category:
        """Look a category up by exact name, creating it with the import defaults.

        An archived category is not reused.
        """
        existing = find_category_by_name(await self.categories.list_all(user_id), name)
        if existing is not None:
            if not existing.is_active:
                raise InvalidInputError(
                    f"Category '{existing.name}' is archived. "
                    "Pick another category or restore it first."
                )
            return existing
        return await self.create(user_id, name, IMPORTED_CATEGORY_CEILING)

    async def set_monthly_ceiling(
        self, category_id: str, user_id: str, monthly_ceiling: Decimal
    ) -> Category:
        if monthly_ceiling < 0:
            raise InvalidInputError("monthly_ceiling must be zero or positive")
        updated = await self.categories.update(
            category_id, user_id, {"monthly_ceiling": monthly_ceiling}
        )
        if updated is None:
            raise NotFoundError("category", category_id)
        return updated

    async def archive(self, category_id: str, user_id: str) -> Category:
        updated = await self.categories.update(category_id, user_id, {"is_active": False})
        if updated is None:
            raise NotFoundError("category", category_id)
        return updated

    async def delete(self, category_id: str, user_id: str) -> int:
        """Hard-delete a category. Returns how many transactions were uncategorized."""
        if await self.categories.get(category_id, user_id) is None:
            raise NotFoundError("category", category_id)
        detached = await self.transactions.detach_category(user_id, category_id)
        await self.categories.delete(category_id, user_id)
        logger.info(
            "Deleted category %s for user %s, %d transaction(s) uncategorized",
            category_id, user_id, detached,
        )
        return detached

    async def seed_defaults(self, user_id: str) -> list[Category]:
        """Create the default categories a new user starts with. Existing names are kept."""
        existing = {c.name for c in await self.categories.list_all(user_id)}
        created: list[Category] = []
        for name, ceiling in DEFAULT_CATEGORIES:
            if name in existing:
                continue
            created.append(await self.create(
                user_id, name, ceiling, is_custom=False, initialize=False
            ))
        if created:
            await self.engine.initialize_weekly_budgets(user_id)
        return created
