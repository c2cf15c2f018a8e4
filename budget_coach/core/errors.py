"""Exceptions raised by the budget coach core."""


class BudgetCoachError(Exception):
    """Base exception for budget coach errors."""


class NotFoundError(BudgetCoachError):
    """Raised when an entity does not resolve for the given user."""

    def __init__(self, entity_type: str, entity_id: str, detail: str | None = None):
        self.entity_type = entity_type
        self.entity_id = entity_id
        super().__init__(detail or f"{entity_type.capitalize()} '{entity_id}' not found.")


class InvalidInputError(BudgetCoachError):
    """Raised for caller-level validation failures, e.g. a missing user id."""


class ConstraintViolation(BudgetCoachError):
    """Raised by a store when a uniqueness invariant would be broken."""

    def __init__(self, entity_type: str, key: tuple, detail: str | None = None):
        self.entity_type = entity_type
        self.key = key
        super().__init__(detail or f"{entity_type} {key!r} already exists.")
