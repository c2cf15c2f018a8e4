"""Pure budget math for the weekly budget coach.

All functions take already-fetched domain objects or plain Decimals and
return values or result dataclasses. No I/O.
"""

from datetime import datetime
from decimal import ROUND_CEILING, ROUND_HALF_UP, Decimal
from typing import Iterable

from budget_coach.core.weeks import days_remaining_in_week
from budget_coach.models.results import (
    ThresholdAlert,
    WeeklyBudgetStatus,
    WeeklyBudgetSummary,
)
from budget_coach.models.schemas import (
    AlertSeverity,
    BudgetHealth,
    Category,
    Transaction,
    TransactionType,
    WeeklyBudget,
    to_money,
)

# Fixed average weeks per month, independent of the calendar month
WEEKS_PER_MONTH = Decimal("4.33")

DEFAULT_MONTHLY_CEILING = Decimal("500")
CEILING_BUFFER = Decimal("1.1")

WARNING_THRESHOLD = Decimal("80")
CRITICAL_THRESHOLD = Decimal("90")
OVER_THRESHOLD = Decimal("100")

_ZERO = Decimal("0")
_PERCENT_STEP = Decimal("0.1")


def round_percentage(value: Decimal) -> Decimal:
    return value.quantize(_PERCENT_STEP, rounding=ROUND_HALF_UP)


def format_currency(amount: Decimal) -> str:
    sign = "-" if amount < 0 else ""
    return f"{sign}${abs(to_money(amount)):,.2f}"


# --- Limits and carryover ---


def base_weekly_limit(monthly_ceiling: Decimal) -> Decimal:
    return monthly_ceiling / WEEKS_PER_MONTH


def compute_weekly_limit(monthly_ceiling: Decimal, carryover: Decimal) -> Decimal:
    """Weekly limit = ceiling / 4.33 + carryover, never below zero, in cents."""
    limit = base_weekly_limit(monthly_ceiling) + carryover
    return to_money(max(_ZERO, limit))


def compute_carryover(previous: WeeklyBudget | None) -> Decimal:
    """What last week's outcome adds to (or takes from) this week.

    Positive when last week was underspent, negative when overspent, and
    zero when there is no row for last week.
    """
    if previous is None:
        return to_money(_ZERO)
    return to_money(previous.weekly_limit - previous.spent)


def sum_expenses(transactions: Iterable[Transaction]) -> Decimal:
    total = sum(
        (t.amount for t in transactions if t.type == TransactionType.EXPENSE),
        _ZERO,
    )
    return to_money(total)


def estimate_monthly_ceiling(total_spent: Decimal, months: int) -> Decimal:
    """Average monthly spend plus a 10% buffer, rounded up to a whole unit."""
    average = total_spent / Decimal(months)
    return (average * CEILING_BUFFER).to_integral_value(rounding=ROUND_CEILING)


# --- Status ---


def percentage_used(spent: Decimal, weekly_limit: Decimal) -> Decimal:
    if weekly_limit <= 0:
        return _ZERO
    return spent / weekly_limit * 100


def classify_status(pct: Decimal) -> BudgetHealth:
    """Map exact usage to a band, checking the highest band first."""
    if pct >= OVER_THRESHOLD:
        return BudgetHealth.OVER
    if pct >= CRITICAL_THRESHOLD:
        return BudgetHealth.CRITICAL
    if pct >= WARNING_THRESHOLD:
        return BudgetHealth.WARNING
    return BudgetHealth.GOOD


def daily_safe_to_spend(remaining: Decimal, days_remaining: int) -> Decimal:
    days = max(1, days_remaining)
    return to_money(max(_ZERO, remaining / days))


def generate_message(status: BudgetHealth, remaining: Decimal, pct: Decimal) -> str:
    """Empathetic one-liner for a category's weekly standing."""
    amount = format_currency(abs(remaining))

    if status == BudgetHealth.GOOD:
        if pct < 50:
            return f"Great start! You have {amount} left for the week 🎉"
        return f"You're doing well! {amount} remaining 👍"
    if status == BudgetHealth.WARNING:
        return f"Approaching your limit. {amount} left for the week ⚡"
    if status == BudgetHealth.CRITICAL:
        return f"Almost at your limit! {amount} remaining. You've got this! 💪"
    if remaining < 0:
        return f"Over budget by {amount}. Let's adjust together 🤝"
    return "You've reached your limit. Let's look at options 🤝"


def build_status(
    category: Category,
    budget: WeeklyBudget,
    today: datetime,
) -> WeeklyBudgetStatus:
    """Derive the user-facing status of one category from its weekly row."""
    remaining = to_money(budget.weekly_limit - budget.spent)
    pct = percentage_used(budget.spent, budget.weekly_limit)
    status = classify_status(pct)
    days = days_remaining_in_week(today, budget.week_start)

    return WeeklyBudgetStatus(
        id=budget.id,
        category_id=category.id,
        category_name=category.name,
        category_emoji=category.emoji,
        week_start=budget.week_start,
        week_end=budget.week_end,
        weekly_limit=budget.weekly_limit,
        spent=budget.spent,
        remaining=remaining,
        percentage_used=round_percentage(pct),
        status=status,
        carryover=budget.carryover,
        daily_safe_to_spend=daily_safe_to_spend(remaining, days),
        message=generate_message(status, remaining, pct),
        last_updated=budget.updated_at,
    )


def summarize_statuses(statuses: list[WeeklyBudgetStatus]) -> WeeklyBudgetSummary:
    total_limit = sum((s.weekly_limit for s in statuses), _ZERO)
    total_spent = sum((s.spent for s in statuses), _ZERO)
    overall = total_spent / total_limit * 100 if total_limit > 0 else _ZERO

    return WeeklyBudgetSummary(
        total_limit=to_money(total_limit),
        total_spent=to_money(total_spent),
        total_remaining=to_money(total_limit - total_spent),
        overall_percentage=round_percentage(overall),
        categories_count=len(statuses),
        categories_over_budget=sum(1 for s in statuses if s.status == BudgetHealth.OVER),
        categories_at_risk=sum(
            1 for s in statuses
            if s.status in (BudgetHealth.WARNING, BudgetHealth.CRITICAL)
        ),
    )


# --- Threshold alerts ---


def evaluate_threshold(category: Category, budget: WeeklyBudget) -> ThresholdAlert | None:
    """Return the highest threshold crossed, or ``None`` below 80%."""
    pct = percentage_used(budget.spent, budget.weekly_limit)
    remaining = to_money(budget.weekly_limit - budget.spent)
    name = category.name

    if pct >= OVER_THRESHOLD:
        threshold, severity = 100, AlertSeverity.CRITICAL
        message = f"You've reached your weekly limit for {name}. Let's look at options together 🤝"
    elif pct >= CRITICAL_THRESHOLD:
        threshold, severity = 90, AlertSeverity.WARNING
        message = (
            f"You're at 90% of your {name} budget. "
            f"You have {format_currency(remaining)} left ⚡"
        )
    elif pct >= WARNING_THRESHOLD:
        threshold, severity = 80, AlertSeverity.INFO
        message = (
            f"Heads up! You've used 80% of your {name} budget. "
            f"{format_currency(remaining)} remaining 👍"
        )
    else:
        return None

    return ThresholdAlert(
        category_id=category.id,
        category_name=name,
        threshold=threshold,
        severity=severity,
        message=message,
        percentage_used=round_percentage(pct),
        remaining=remaining,
    )
