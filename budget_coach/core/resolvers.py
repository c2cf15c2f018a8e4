"""Entity resolution helpers for budget coach resources.

Pure functions that resolve user-friendly names (partial, case-insensitive)
to domain objects. They operate on already-fetched data.
"""

from __future__ import annotations

from budget_coach.core.errors import NotFoundError
from budget_coach.models.schemas import Category


class ResolverError(NotFoundError):
    """Raised when an entity cannot be resolved by name."""

    def __init__(
        self,
        entity_type: str,
        query: str,
        available: list[str] | None = None,
    ):
        self.query = query
        self.available = available or []
        detail = f"No {entity_type} found matching '{query}'."
        if self.available:
            detail += f" Available: {', '.join(self.available)}"
        super().__init__(entity_type, query, detail)


def resolve_category(
    categories: list[Category],
    name: str,
    include_archived: bool = False,
) -> Category:
    """Find a category by name, preferring an exact (case-insensitive) match.

    Archived categories are skipped unless *include_archived* is set.
    Raises :class:`ResolverError` if nothing matches.
    """
    candidates = [c for c in categories if include_archived or c.is_active]
    query = name.strip().lower()

    for c in candidates:
        if c.name.lower() == query:
            return c
    for c in candidates:
        if query in c.name.lower():
            return c

    raise ResolverError(
        "category",
        name,
        available=[c.name for c in candidates[:20]],
    )


def find_category_by_name(categories: list[Category], name: str) -> Category | None:
    """Exact, case-sensitive lookup used to enforce per-user name uniqueness."""
    for c in categories:
        if c.name == name:
            return c
    return None
