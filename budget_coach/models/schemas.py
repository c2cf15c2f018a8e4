"""Pydantic models for budget coach data types."""

from datetime import datetime
from decimal import ROUND_HALF_UP, Decimal
from enum import Enum
from typing import Annotated, Optional
from uuid import uuid4

from pydantic import AfterValidator, BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel

from budget_coach.core.weeks import naive_local


# --- Money is Decimal, quantized to cents (half-up) ---

CENT = Decimal("0.01")


def to_money(value) -> Decimal:
    """Quantize a number to cents using half-up rounding."""
    if not isinstance(value, Decimal):
        value = Decimal(str(value))
    return value.quantize(CENT, rounding=ROUND_HALF_UP)


def money_to_cents(value: Decimal) -> int:
    """Convert a money amount to integer cents."""
    return int(to_money(value) * 100)


def cents_to_money(cents: int) -> Decimal:
    """Convert integer cents to a money amount."""
    return to_money(Decimal(cents) / 100)


def new_id() -> str:
    return uuid4().hex


# Aware datetimes are converted to naive local time so week keys compare equal
LocalDateTime = Annotated[datetime, AfterValidator(naive_local)]


# --- Enums ---

class TransactionType(str, Enum):
    INCOME = "income"
    EXPENSE = "expense"


class TransactionSource(str, Enum):
    MANUAL = "manual"
    CSV = "csv"
    API = "api"


class BudgetHealth(str, Enum):
    GOOD = "good"
    WARNING = "warning"
    CRITICAL = "critical"
    OVER = "over"


class AlertSeverity(str, Enum):
    INFO = "info"
    WARNING = "warning"
    CRITICAL = "critical"


# --- Stored entities ---

_ENTITY_CONFIG = ConfigDict(
    extra="ignore",
    alias_generator=to_camel,
    populate_by_name=True,
    from_attributes=True,
)


class Category(BaseModel):
    model_config = _ENTITY_CONFIG

    id: str = Field(default_factory=new_id)
    user_id: str
    name: str
    emoji: str = "📊"
    monthly_ceiling: Decimal = Field(default=Decimal("0"), ge=0)
    is_active: bool = True
    is_custom: bool = False


class Transaction(BaseModel):
    model_config = _ENTITY_CONFIG

    id: str = Field(default_factory=new_id)
    user_id: str
    category_id: Optional[str] = None
    date: LocalDateTime
    description: str
    amount: Decimal = Field(..., ge=0)  # unsigned magnitude, direction is `type`
    type: TransactionType
    notes: Optional[str] = None
    source: TransactionSource = TransactionSource.MANUAL

    @property
    def is_categorized_expense(self) -> bool:
        return self.type == TransactionType.EXPENSE and self.category_id is not None


class WeeklyBudget(BaseModel):
    model_config = _ENTITY_CONFIG

    id: str = Field(default_factory=new_id)
    user_id: str
    category_id: str
    week_start: LocalDateTime
    week_end: LocalDateTime
    weekly_limit: Decimal
    spent: Decimal = Decimal("0.00")
    carryover: Decimal = Decimal("0.00")  # signed: + underspent, - overspent
    status: str = "active"
    updated_at: LocalDateTime = Field(default_factory=datetime.now)


# --- Input Models for Creating/Updating ---

class NewTransaction(BaseModel):
    """A transaction to record for a user."""
    model_config = ConfigDict(str_strip_whitespace=True)

    date: LocalDateTime = Field(..., description="Transaction date (ISO format)")
    description: str = Field(..., description="What the money was for", min_length=1, max_length=200)
    amount: Decimal = Field(..., description="Unsigned amount; direction comes from type", ge=0)
    type: TransactionType = Field(default=TransactionType.EXPENSE)
    category_id: Optional[str] = Field(None, description="Category ID, omit for uncategorized")
    notes: Optional[str] = Field(None, max_length=500)
    source: TransactionSource = Field(default=TransactionSource.MANUAL)


class TransactionUpdate(BaseModel):
    """Partial update of a transaction. Only fields that are set are applied."""
    model_config = ConfigDict(str_strip_whitespace=True, extra="forbid")

    date: Optional[LocalDateTime] = None
    description: Optional[str] = Field(None, max_length=200)
    amount: Optional[Decimal] = Field(None, ge=0)
    type: Optional[TransactionType] = None
    category_id: Optional[str] = None
    notes: Optional[str] = Field(None, max_length=500)

    def changes(self) -> dict:
        return self.model_dump(exclude_unset=True)


# --- MCP Tool Input Models ---

_TOOL_CONFIG = ConfigDict(str_strip_whitespace=True, extra="forbid")


class WeeklyStatusInput(BaseModel):
    """Input for the weekly budget overview."""
    model_config = _TOOL_CONFIG

    user_id: Optional[str] = Field(None, description="User ID. Defaults to the configured user.")
    week_start: Optional[LocalDateTime] = Field(
        None, description="Any date in the target week (YYYY-MM-DD). Defaults to this week."
    )


class CheckThresholdsInput(BaseModel):
    """Input for checking the 80/90/100% alerts of one category."""
    model_config = _TOOL_CONFIG

    user_id: Optional[str] = Field(None, description="User ID. Defaults to the configured user.")
    category_name: str = Field(..., description="Category name (partial match)", min_length=1)


class InitializeWeekInput(BaseModel):
    """Input for creating the weekly budget rows of a week."""
    model_config = _TOOL_CONFIG

    user_id: Optional[str] = Field(None, description="User ID. Defaults to the configured user.")
    week_start: Optional[LocalDateTime] = Field(
        None, description="Any date in the target week (YYYY-MM-DD). Defaults to this week."
    )


class RecordTransactionInput(BaseModel):
    """Input for recording a single transaction."""
    model_config = _TOOL_CONFIG

    user_id: Optional[str] = Field(None, description="User ID. Defaults to the configured user.")
    amount: Decimal = Field(..., description="Dollar amount (always positive)", gt=0)
    description: str = Field(..., description="What it was for (e.g. 'Grocery Store')", min_length=1)
    type: TransactionType = Field(default=TransactionType.EXPENSE)
    category_name: Optional[str] = Field(
        None, description="Category name. Created with a default ceiling if it does not exist."
    )
    date: Optional[LocalDateTime] = Field(None, description="Transaction date (YYYY-MM-DD). Defaults to today.")
    notes: Optional[str] = Field(None, description="Optional note")


class UpdateTransactionInput(BaseModel):
    """Input for editing a transaction."""
    model_config = _TOOL_CONFIG

    user_id: Optional[str] = Field(None, description="User ID. Defaults to the configured user.")
    transaction_id: str = Field(..., min_length=1)
    amount: Optional[Decimal] = Field(None, ge=0)
    description: Optional[str] = None
    type: Optional[TransactionType] = None
    category_name: Optional[str] = Field(None, description="Move to this category (partial match)")
    date: Optional[LocalDateTime] = None
    notes: Optional[str] = None
    uncategorize: bool = Field(default=False, description="Remove the transaction from its category")

    @model_validator(mode="after")
    def _require_a_change(self):
        if self.uncategorize and self.category_name is not None:
            raise ValueError("Use either category_name or uncategorize, not both")
        fields = ("amount", "description", "type", "category_name", "date", "notes")
        if not self.uncategorize and all(getattr(self, f) is None for f in fields):
            raise ValueError("At least one field to update is required")
        return self


class DeleteTransactionInput(BaseModel):
    """Input for deleting a transaction."""
    model_config = _TOOL_CONFIG

    user_id: Optional[str] = Field(None, description="User ID. Defaults to the configured user.")
    transaction_id: str = Field(..., min_length=1)


class EstimateCeilingInput(BaseModel):
    """Input for estimating a category's monthly ceiling from history."""
    model_config = _TOOL_CONFIG

    user_id: Optional[str] = Field(None, description="User ID. Defaults to the configured user.")
    category_name: str = Field(..., description="Category name (partial match)", min_length=1)
    months: int = Field(default=3, ge=1, le=12, description="Months of history to average")
    apply: bool = Field(
        default=False,
        description="If False, returns a preview. If True, saves the estimate as the new ceiling.",
    )


class CreateCategoryInput(BaseModel):
    """Input for creating a custom category."""
    model_config = _TOOL_CONFIG

    user_id: Optional[str] = Field(None, description="User ID. Defaults to the configured user.")
    name: str = Field(..., min_length=1, max_length=100)
    monthly_ceiling: Decimal = Field(..., ge=0, description="Monthly spending ceiling in dollars")
    emoji: Optional[str] = Field(None, max_length=8)

    @field_validator("name")
    @classmethod
    def _collapse_whitespace(cls, v: str) -> str:
        return " ".join(v.split())


class CategoryActionInput(BaseModel):
    """Input for archiving a category."""
    model_config = _TOOL_CONFIG

    user_id: Optional[str] = Field(None, description="User ID. Defaults to the configured user.")
    category_name: str = Field(..., min_length=1)


class UserInput(BaseModel):
    """Input for tools that only need a user."""
    model_config = _TOOL_CONFIG

    user_id: Optional[str] = Field(None, description="User ID. Defaults to the configured user.")


class ListCategoriesInput(BaseModel):
    """Input for listing categories."""
    model_config = _TOOL_CONFIG

    user_id: Optional[str] = Field(None, description="User ID. Defaults to the configured user.")
    include_archived: bool = Field(default=False, description="Also list archived categories")
