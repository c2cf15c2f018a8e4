"""Markdown formatters for MCP tool responses.

Pure functions that take domain objects and return human-readable Markdown strings.
"""

from __future__ import annotations

from datetime import datetime

from budget_coach.core.calculations import format_currency
from budget_coach.models.results import (
    CeilingEstimate,
    ThresholdAlert,
    WeeklyBudgetReport,
)
from budget_coach.models.schemas import BudgetHealth, Category, Transaction

_STATUS_TAGS = {
    BudgetHealth.GOOD: "OK",
    BudgetHealth.WARNING: "80%",
    BudgetHealth.CRITICAL: "90%",
    BudgetHealth.OVER: "!!",
}


def _week_label(week_start: datetime, week_end: datetime) -> str:
    return f"{week_start:%b %d} - {week_end:%b %d, %Y}"


def format_weekly_report(report: WeeklyBudgetReport) -> str:
    if not report.budgets:
        return "No active categories. Create a category or set up the defaults first."

    lines = [f"## Weekly Budgets ({_week_label(report.week_start, report.week_end)})\n"]
    for b in report.budgets:
        lines.append(
            f"- [{_STATUS_TAGS[b.status]}] {b.category_emoji} **{b.category_name}**: "
            f"{format_currency(b.spent)} of {format_currency(b.weekly_limit)} "
            f"({b.percentage_used}%) | {format_currency(b.remaining)} left"
        )
        details = f"  _{b.message}_"
        if b.carryover != 0:
            details += f" (carryover {format_currency(b.carryover)})"
        if b.daily_safe_to_spend > 0:
            details += f" | safe to spend {format_currency(b.daily_safe_to_spend)}/day"
        lines.append(details)

    s = report.summary
    lines.append("\n---")
    lines.append(
        f"**Totals:** {format_currency(s.total_spent)} spent of "
        f"{format_currency(s.total_limit)} ({s.overall_percentage}%) | "
        f"{format_currency(s.total_remaining)} remaining"
    )
    if s.categories_over_budget or s.categories_at_risk:
        lines.append(
            f"{s.categories_over_budget} of {s.categories_count} categories over budget, "
            f"{s.categories_at_risk} at risk."
        )
    return "\n".join(lines)


def format_threshold_alert(alert: ThresholdAlert | None, category_name: str) -> str:
    if alert is None:
        return f"No threshold alerts for {category_name} this week."
    return (
        f"## {alert.severity.value.upper()}: {alert.threshold}% threshold\n\n"
        f"{alert.message}\n\n"
        f"- Used: {alert.percentage_used}%\n"
        f"- Remaining: {format_currency(alert.remaining)}"
    )


def format_initialized(created_count: int, week_start: datetime) -> str:
    return f"Initialized {created_count} weekly budget(s) for the week of {week_start:%b %d, %Y}."


def format_transaction_recorded(
    transaction: Transaction,
    category_name: str | None,
    alert: ThresholdAlert | None = None,
) -> str:
    lines = [
        "## Transaction Recorded\n",
        f"- **Date:** {transaction.date:%Y-%m-%d}",
        f"- **Description:** {transaction.description}",
        f"- **Amount:** {format_currency(transaction.amount)} ({transaction.type.value})",
        f"- **Category:** {category_name or 'Uncategorized'}",
        f"- **ID:** `{transaction.id}`",
    ]
    if transaction.notes:
        lines.append(f"- **Notes:** {transaction.notes}")
    if alert is not None:
        lines.append(f"\n> {alert.message}")
    return "\n".join(lines)


def format_transaction_updated(transaction: Transaction) -> str:
    return (
        f"Updated transaction `{transaction.id}`: {transaction.description} "
        f"{format_currency(transaction.amount)} ({transaction.type.value}) "
        f"on {transaction.date:%Y-%m-%d}."
    )


def format_transaction_deleted(transaction: Transaction) -> str:
    return (
        f"Deleted transaction `{transaction.id}`: {transaction.description} "
        f"{format_currency(transaction.amount)} on {transaction.date:%Y-%m-%d}."
    )


def format_ceiling_estimate(estimate: CeilingEstimate) -> str:
    lines = [
        f"## Monthly Ceiling: {estimate.category_name}\n",
        f"- Current ceiling: {format_currency(estimate.current_ceiling)}",
        f"- Estimated from the last {estimate.months} month(s): "
        f"{format_currency(estimate.estimated_ceiling)}",
    ]
    if estimate.applied:
        lines.append("\nSaved as the new monthly ceiling.")
    else:
        lines.append("\n_Preview only. Run again with apply=true to save it._")
    return "\n".join(lines)


def format_categories(categories: list[Category]) -> str:
    if not categories:
        return "No categories found."
    lines = ["## Categories\n"]
    for c in sorted(categories, key=lambda c: c.name):
        archived = " _(archived)_" if not c.is_active else ""
        lines.append(
            f"- {c.emoji} **{c.name}**: {format_currency(c.monthly_ceiling)}/month{archived}"
        )
    return "\n".join(lines)


def format_category_created(category: Category) -> str:
    return (
        f"Created {category.emoji} **{category.name}** with a monthly ceiling of "
        f"{format_currency(category.monthly_ceiling)}."
    )


def format_category_archived(category: Category) -> str:
    return f"Archived **{category.name}**. Its history is kept, but it no longer gets a weekly budget."


def format_defaults_seeded(created: list[Category]) -> str:
    if not created:
        return "All default categories already exist."
    names = ", ".join(f"{c.emoji} {c.name}" for c in created)
    return f"Created {len(created)} default categories: {names}"
