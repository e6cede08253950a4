"""Aggregate calculations package."""

from pocketbudget.aggregates.calculator import (
    CategorySpending,
    PeriodWindow,
    apply_transaction_delta,
    period_window,
    progress_percent,
    recent_transactions,
    spending_by_category,
    spent_for_period,
    summarize_transactions,
)

__all__ = [
    "CategorySpending",
    "PeriodWindow",
    "apply_transaction_delta",
    "period_window",
    "progress_percent",
    "recent_transactions",
    "spending_by_category",
    "spent_for_period",
    "summarize_transactions",
]
