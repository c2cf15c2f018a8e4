"""Tests for Pydantic schemas and money helpers."""

from datetime import datetime, timezone
from decimal import Decimal

import pytest
from pydantic import ValidationError

from budget_coach.models.schemas import (
    Category,
    CreateCategoryInput,
    EstimateCeilingInput,
    RecordTransactionInput,
    Transaction,
    TransactionType,
    UpdateTransactionInput,
    WeeklyBudget,
    cents_to_money,
    money_to_cents,
    to_money,
)


class TestMoney:
    def test_half_up(self):
        assert to_money(Decimal("0.125")) == Decimal("0.13")
        assert to_money(Decimal("2.675")) == Decimal("2.68")

    def test_from_float_uses_its_repr(self):
        assert to_money(0.1 + 0.2) == Decimal("0.30")

    def test_cents(self):
        assert money_to_cents(Decimal("184.76")) == 18476
        assert cents_to_money(18476) == Decimal("184.76")


class TestEntities:
    def test_category_accepts_camel_case(self):
        c = Category.model_validate({
            "id": "c1", "userId": "u1", "name": "Housing", "monthlyCeiling": "1500",
        })
        assert c.user_id == "u1"
        assert c.is_active
        assert c.emoji == "📊"

    def test_category_rejects_negative_ceiling(self):
        with pytest.raises(ValidationError):
            Category(user_id="u1", name="Housing", monthly_ceiling=Decimal("-1"))

    def test_transaction_is_categorized_expense(self):
        t = Transaction(
            user_id="u1", category_id="c1", date="2024-01-17T12:00:00",
            description="Rent", amount=Decimal("10"), type=TransactionType.EXPENSE,
        )
        assert t.is_categorized_expense
        assert not t.model_copy(update={"category_id": None}).is_categorized_expense


class TestToolInputs:
    def test_record_requires_positive_amount(self):
        with pytest.raises(ValidationError):
            RecordTransactionInput(amount=Decimal("0"), description="Coffee")

    def test_record_defaults_to_expense(self):
        params = RecordTransactionInput(amount=Decimal("4.50"), description="  Coffee  ")
        assert params.type == TransactionType.EXPENSE
        assert params.description == "Coffee"

    def test_update_requires_a_change(self):
        with pytest.raises(ValidationError, match="At least one field"):
            UpdateTransactionInput(transaction_id="t1")

    def test_update_with_one_field(self):
        params = UpdateTransactionInput(transaction_id="t1", notes="split")
        assert params.notes == "split"

    def test_uncategorize_counts_as_a_change(self):
        params = UpdateTransactionInput(transaction_id="t1", uncategorize=True)
        assert params.uncategorize

    def test_uncategorize_conflicts_with_category_name(self):
        with pytest.raises(ValidationError, match="either category_name or uncategorize"):
            UpdateTransactionInput(transaction_id="t1", category_name="Food", uncategorize=True)

    def test_aware_date_becomes_naive_local(self):
        aware = datetime(2024, 1, 17, 12, 0, tzinfo=timezone.utc)
        params = RecordTransactionInput(amount=Decimal("1"), description="x", date=aware)
        assert params.date == aware.astimezone().replace(tzinfo=None)

    def test_iso_string_with_offset_becomes_naive(self):
        budget = WeeklyBudget(
            user_id="u", category_id="c", weekly_limit=Decimal("1"),
            week_start="2024-01-15T00:00:00Z", week_end="2024-01-21T23:59:59Z",
        )
        assert budget.week_start.tzinfo is None
        assert budget.week_end.tzinfo is None

    def test_create_category_collapses_whitespace(self):
        params = CreateCategoryInput(name="  Pet   Supplies ", monthly_ceiling=Decimal("50"))
        assert params.name == "Pet Supplies"

    def test_estimate_months_bounds(self):
        assert EstimateCeilingInput(category_name="Food").months == 3
        with pytest.raises(ValidationError):
            EstimateCeilingInput(category_name="Food", months=0)
        with pytest.raises(ValidationError):
            EstimateCeilingInput(category_name="Food", months=13)

    def test_extra_fields_forbidden(self):
        with pytest.raises(ValidationError):
            RecordTransactionInput(amount=Decimal("1"), description="x", bogus=True)
