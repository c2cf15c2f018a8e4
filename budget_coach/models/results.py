"""Result dataclasses for weekly budget engine outputs.

Internal types consumed by the formatters. Plain dataclasses, no validation.
"""

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal

from budget_coach.models.schemas import AlertSeverity, BudgetHealth


@dataclass
class WeeklyBudgetStatus:
    """One category's standing for a week."""
    id: str                       # weekly budget row id
    category_id: str
    category_name: str
    category_emoji: str
    week_start: datetime
    week_end: datetime
    weekly_limit: Decimal
    spent: Decimal
    remaining: Decimal            # negative when over the limit
    percentage_used: Decimal      # rounded to 1 decimal, e.g. 81.2
    status: BudgetHealth
    carryover: Decimal
    daily_safe_to_spend: Decimal  # never negative
    message: str
    last_updated: datetime


@dataclass
class WeeklyBudgetSummary:
    """Totals across every category of a week."""
    total_limit: Decimal = Decimal("0.00")
    total_spent: Decimal = Decimal("0.00")
    total_remaining: Decimal = Decimal("0.00")
    overall_percentage: Decimal = Decimal("0.0")
    categories_count: int = 0
    categories_over_budget: int = 0
    categories_at_risk: int = 0   # warning + critical


@dataclass
class WeeklyBudgetReport:
    """Weekly statuses plus their summary."""
    week_start: datetime
    week_end: datetime
    budgets: list[WeeklyBudgetStatus] = field(default_factory=list)
    summary: WeeklyBudgetSummary = field(default_factory=WeeklyBudgetSummary)


@dataclass
class ThresholdAlert:
    """The single highest threshold a category has crossed this week."""
    category_id: str
    category_name: str
    threshold: int                # 80, 90 or 100
    severity: AlertSeverity
    message: str
    percentage_used: Decimal
    remaining: Decimal


@dataclass
class CeilingEstimate:
    """A monthly ceiling derived from spending history."""
    category_id: str
    category_name: str
    current_ceiling: Decimal
    estimated_ceiling: Decimal
    months: int
    applied: bool = False
