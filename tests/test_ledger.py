"""Tests for transaction mutations and the weekly resync they trigger."""

from datetime import datetime, timedelta, timezone
from decimal import Decimal

import pytest
from pydantic import ValidationError

from budget_coach.core.errors import NotFoundError
from budget_coach.core.ledger import TransactionLedger, affected_weeks
from budget_coach.models.schemas import NewTransaction, TransactionType, TransactionUpdate
from tests.conftest import NOW, USER, WEEK, make_category, make_transaction

FOOD = "cat-food-&-dining"
LAST_WEEK = WEEK - timedelta(days=7)


@pytest.fixture
def ledger(transactions, engine):
    return TransactionLedger(transactions, engine)


def _entry(amount="30", category_id=FOOD, date=NOW, type_=TransactionType.EXPENSE):
    return NewTransaction(
        date=date,
        description="Grocery Store",
        amount=Decimal(amount),
        type=type_,
        category_id=category_id,
    )


class TestAffectedWeeks:
    def test_create_of_categorized_expense(self):
        t = make_transaction()
        assert affected_weeks(None, t) == {(FOOD, WEEK)}

    def test_income_affects_nothing(self):
        t = make_transaction(type_=TransactionType.INCOME)
        assert affected_weeks(None, t) == set()

    def test_uncategorized_affects_nothing(self):
        assert affected_weeks(make_transaction(category_id=None), None) == set()

    def test_description_edit_affects_nothing(self):
        before = make_transaction()
        after = before.model_copy(update={"description": "Farmers market"})
        assert affected_weeks(before, after) == set()

    def test_date_move_touches_both_weeks(self):
        before = make_transaction()
        after = before.model_copy(update={"date": NOW - timedelta(days=7)})
        assert affected_weeks(before, after) == {(FOOD, WEEK), (FOOD, LAST_WEEK)}

    def test_category_move_touches_both_categories(self):
        before = make_transaction()
        after = before.model_copy(update={"category_id": "cat-rent"})
        assert affected_weeks(before, after) == {(FOOD, WEEK), ("cat-rent", WEEK)}

    def test_expense_turned_income_still_resyncs_old_week(self):
        before = make_transaction()
        after = before.model_copy(update={"type": TransactionType.INCOME})
        assert affected_weeks(before, after) == {(FOOD, WEEK)}


class TestRecord:
    async def test_updates_weekly_spent(self, ledger, weekly_budgets):
        created = await ledger.record(USER, [_entry("30"), _entry("45")])

        assert len(created) == 2
        assert all(t.user_id == USER for t in created)
        budget = await weekly_budgets.find(USER, FOOD, WEEK)
        assert budget.spent == Decimal("75.00")

    async def test_aware_and_naive_dates_share_one_week_row(self, ledger, weekly_budgets):
        aware = datetime(2024, 1, 17, 12, 0, tzinfo=timezone.utc)
        [_, t] = await ledger.record(USER, [_entry("30"), _entry("45", date=aware)])

        assert t.date.tzinfo is None
        rows = [b for b in weekly_budgets.all() if b.category_id == FOOD]
        assert len(rows) == 1
        assert rows[0].week_start == WEEK
        assert rows[0].spent == Decimal("75.00")

    async def test_income_creates_no_weekly_row(self, ledger, weekly_budgets):
        await ledger.record(USER, [_entry("2000", type_=TransactionType.INCOME)])
        assert weekly_budgets.all() == []

    async def test_failed_resync_keeps_transaction(self, ledger, transactions, caplog):
        [t] = await ledger.record(USER, [_entry(category_id="cat-missing")])

        assert await transactions.get(t.id, USER) is not None
        assert "Failed to update weekly budget" in caplog.text


class TestUpdate:
    async def test_amount_change_resyncs(self, ledger, weekly_budgets):
        [t] = await ledger.record(USER, [_entry("30")])

        updated = await ledger.update(t.id, USER, TransactionUpdate(amount=Decimal("50")))

        assert updated.amount == Decimal("50")
        budget = await weekly_budgets.find(USER, FOOD, WEEK)
        assert budget.spent == Decimal("50.00")

    async def test_moving_week_resyncs_both(self, ledger, weekly_budgets):
        [t] = await ledger.record(USER, [_entry("30")])

        await ledger.update(t.id, USER, TransactionUpdate(date=NOW - timedelta(days=7)))

        assert (await weekly_budgets.find(USER, FOOD, WEEK)).spent == Decimal("0.00")
        assert (await weekly_budgets.find(USER, FOOD, LAST_WEEK)).spent == Decimal("30.00")

    async def test_moving_category_resyncs_both(self, ledger, categories, weekly_budgets):
        await categories.add(make_category("Rent", "1500"))
        [t] = await ledger.record(USER, [_entry("30")])

        await ledger.update(t.id, USER, TransactionUpdate(category_id="cat-rent"))

        assert (await weekly_budgets.find(USER, FOOD, WEEK)).spent == Decimal("0.00")
        assert (await weekly_budgets.find(USER, "cat-rent", WEEK)).spent == Decimal("30.00")

    async def test_unknown_transaction(self, ledger):
        with pytest.raises(NotFoundError):
            await ledger.update("missing", USER, TransactionUpdate(amount=Decimal("1")))

    async def test_other_users_transaction(self, ledger):
        [t] = await ledger.record(USER, [_entry("30")])
        with pytest.raises(NotFoundError):
            await ledger.update(t.id, "intruder", TransactionUpdate(amount=Decimal("1")))

    def test_update_rejects_unknown_fields(self):
        with pytest.raises(ValidationError):
            TransactionUpdate(user_id="x")

    def test_changes_only_include_set_fields(self):
        assert TransactionUpdate(notes="split with Sam").changes() == {"notes": "split with Sam"}


class TestDelete:
    async def test_resyncs_week(self, ledger, weekly_budgets):
        first, _ = await ledger.record(USER, [_entry("30"), _entry("45")])

        deleted = await ledger.delete(first.id, USER)

        assert deleted.id == first.id
        assert (await weekly_budgets.find(USER, FOOD, WEEK)).spent == Decimal("45.00")

    async def test_unknown_transaction(self, ledger):
        with pytest.raises(NotFoundError):
            await ledger.delete("missing", USER)
