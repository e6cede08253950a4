"""Tests for the aggregate calculator."""

import pytest
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from zoneinfo import ZoneInfo

from pocketbudget.aggregates import (
    apply_transaction_delta,
    period_window,
    progress_percent,
    recent_transactions,
    spending_by_category,
    spent_for_period,
    summarize_transactions,
)
from pocketbudget.models.ledger import (
    BudgetPeriod,
    Category,
    CategoryKind,
    Summary,
    Transaction,
    TransactionType,
)


NOW = datetime(2025, 3, 15, 12, 0, tzinfo=timezone.utc)


def tx(
    key: str,
    amount: str,
    type: str = "expense",
    category_id: str = "groceries",
    date: datetime = NOW,
) -> Transaction:
    return Transaction(
        id=key,
        date=date,
        amount=Decimal(amount),
        type=TransactionType(type),
        category_id=category_id,
    )


class TestPeriodWindow:
    """Tests for period_window."""

    def test_monthly(self):
        window = period_window(BudgetPeriod.MONTHLY, NOW)
        assert window.start == datetime(2025, 3, 1, tzinfo=timezone.utc)
        assert window.end == datetime(2025, 4, 1, tzinfo=timezone.utc)

    def test_monthly_december_rolls_year(self):
        window = period_window("monthly", datetime(2025, 12, 31, 23, 59, tzinfo=timezone.utc))
        assert window.end == datetime(2026, 1, 1, tzinfo=timezone.utc)

    def test_yearly(self):
        window = period_window(BudgetPeriod.YEARLY, NOW)
        assert window.start == datetime(2025, 1, 1, tzinfo=timezone.utc)
        assert window.end == datetime(2026, 1, 1, tzinfo=timezone.utc)

    def test_follows_now_timezone(self):
        """Test month boundaries are taken in the reference clock's zone."""
        tokyo = ZoneInfo("Asia/Tokyo")
        now = datetime(2025, 4, 1, 3, 0, tzinfo=tokyo)
        window = period_window("monthly", now)
        assert window.start == datetime(2025, 4, 1, tzinfo=tokyo)
        # 2025-03-31T20:00Z is already April in Tokyo
        assert window.contains(datetime(2025, 3, 31, 20, 0, tzinfo=timezone.utc))

    def test_unknown_period(self):
        with pytest.raises(ValueError):
            period_window("weekly", NOW)


class TestSpentForPeriod:
    """Tests for spent_for_period."""

    def test_boundary_start_included_instant_before_excluded(self):
        """Test the first instant of the month counts and the one before does not."""
        start = datetime(2025, 3, 1, tzinfo=timezone.utc)
        transactions = [
            tx("a", "10", date=start),
            tx("b", "20", date=start - timedelta(microseconds=1)),
        ]
        assert spent_for_period(transactions, "groceries", "monthly", NOW) == Decimal("10")

    def test_boundary_end_excluded(self):
        """Test the first instant of next month belongs to next month only."""
        end = datetime(2025, 4, 1, tzinfo=timezone.utc)
        transactions = [tx("a", "10", date=end)]
        assert spent_for_period(transactions, "groceries", "monthly", NOW) == Decimal("0")
        assert spent_for_period(transactions, "groceries", "monthly", end) == Decimal("10")

    def test_only_expenses_of_category(self):
        transactions = [
            tx("a", "75.50"),
            tx("b", "3000", type="income", category_id="salary"),
            tx("c", "12", category_id="transport"),
            tx("d", "5", type="income"),
        ]
        assert spent_for_period(transactions, "groceries", "monthly", NOW) == Decimal("75.50")

    def test_yearly_includes_earlier_months(self):
        transactions = [
            tx("a", "10", date=datetime(2025, 1, 5, tzinfo=timezone.utc)),
            tx("b", "15"),
            tx("c", "99", date=datetime(2024, 12, 31, 23, 59, tzinfo=timezone.utc)),
        ]
        assert spent_for_period(transactions, "groceries", "yearly", NOW) == Decimal("25")

    def test_empty(self):
        assert spent_for_period([], "groceries", "monthly", NOW) == Decimal("0")


class TestTransactionDelta:
    """Tests for apply_transaction_delta and summarize_transactions."""

    def test_income_and_expense(self):
        summary = apply_transaction_delta(Summary.zero(), tx("a", "3000", type="income"), +1)
        summary = apply_transaction_delta(summary, tx("b", "75.50"), +1)
        assert summary.total_income == Decimal("3000")
        assert summary.total_expenses == Decimal("75.50")
        assert summary.current_balance == Decimal("2924.50")

    def test_revert_restores_previous(self):
        start = Summary.with_totals(Decimal("100"), Decimal("40"))
        expense = tx("a", "12.34")
        assert apply_transaction_delta(
            apply_transaction_delta(start, expense, +1), expense, -1
        ) == start

    def test_rejects_bad_sign(self):
        with pytest.raises(ValueError):
            apply_transaction_delta(Summary.zero(), tx("a", "1"), 2)

    def test_incremental_matches_recomputed(self):
        """Test a sequence of deltas agrees with a full recomputation."""
        transactions = [
            tx("a", "3000", type="income"),
            tx("b", "75.50"),
            tx("c", "0.10"),
            tx("d", "0.20"),
            tx("e", "19.99", type="income"),
        ]
        summary = Summary.zero()
        for item in transactions:
            summary = apply_transaction_delta(summary, item, +1)
            assert summary.is_balanced
        summary = apply_transaction_delta(summary, transactions[2], -1)

        expected = summarize_transactions(
            [item for item in transactions if item.id != "c"]
        )
        assert summary == expected
        assert expected.total_expenses == Decimal("75.70")
        assert expected.total_income == Decimal("3019.99")


class TestProgressPercent:
    """Tests for progress_percent."""

    def test_exact_value(self):
        percent = progress_percent(Decimal("75.50"), Decimal("300"))
        assert percent.quantize(Decimal("0.01")) == Decimal("25.17")
        assert percent != Decimal("25.17")

    def test_clamped_at_hundred(self):
        assert progress_percent(Decimal("450"), Decimal("300")) == Decimal("100")

    @pytest.mark.parametrize("goal", [Decimal("0"), Decimal("-5")])
    def test_non_positive_goal_is_zero(self, goal):
        assert progress_percent(Decimal("10"), goal) == Decimal("0")

    def test_accepts_plain_numbers(self):
        assert progress_percent(50, "200") == Decimal("25")


class TestBreakdowns:
    """Tests for spending_by_category and recent_transactions."""

    def test_spending_by_category_sorted_and_filtered(self):
        categories = [
            Category(id="groceries", name="Groceries"),
            Category(id="transport", name="Transport"),
            Category(id="salary", name="Salary", kind=CategoryKind.INCOME),
            Category(id="gifts", name="Gifts"),
        ]
        transactions = [
            tx("a", "75.50"),
            tx("b", "120", category_id="transport"),
            tx("c", "3000", type="income", category_id="salary"),
            tx("d", "4.50"),
        ]
        breakdown = spending_by_category(transactions, categories)
        assert [item.category_id for item in breakdown] == ["transport", "groceries"]
        assert breakdown[1].total == Decimal("80.00")

    def test_spending_by_category_window(self):
        categories = [Category(id="groceries", name="Groceries")]
        transactions = [
            tx("a", "10"),
            tx("b", "20", date=datetime(2025, 2, 10, tzinfo=timezone.utc)),
        ]
        window = period_window("monthly", NOW)
        breakdown = spending_by_category(transactions, categories, window)
        assert breakdown[0].total == Decimal("10")

    def test_recent_transactions_newest_first(self):
        transactions = [
            tx(str(day), "1", date=datetime(2025, 3, day, tzinfo=timezone.utc))
            for day in range(1, 9)
        ]
        recent = recent_transactions(transactions, limit=3)
        assert [item.id for item in recent] == ["8", "7", "6"]
