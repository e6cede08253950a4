"""
Aggregate Calculator

DESIGN DECISION: Every derived number in the ledger (budget spent
amounts, the running summary, dashboard breakdowns) is computed by the
pure functions in this module. They take plain model lists and return
new values; nothing here touches the store.

PERIOD WINDOWS are half-open: [start, end). A transaction at the first
instant of the month counts for that month; the first instant of the
next month does not. This guarantees every instant belongs to exactly
one window.
"""

from datetime import datetime, timezone
from decimal import Decimal
from typing import Iterable, NamedTuple, Optional, Union

from pocketbudget.models.ledger import (
    ZERO,
    BudgetPeriod,
    Category,
    Summary,
    Transaction,
    TransactionInput,
    TransactionType,
)


HUNDRED = Decimal("100")

Number = Union[Decimal, int, float, str]


class PeriodWindow(NamedTuple):
    """Half-open calendar interval [start, end)."""
    start: datetime
    end: datetime

    def contains(self, instant: datetime) -> bool:
        return self.start <= _as_aware(instant) < self.end


class CategorySpending(NamedTuple):
    """One slice of the spending-by-category breakdown."""
    category_id: str
    name: str
    color: Optional[str]
    total: Decimal


def _as_aware(instant: datetime) -> datetime:
    """Naive instants are taken to be UTC."""
    if instant.tzinfo is None:
        return instant.replace(tzinfo=timezone.utc)
    return instant


def _to_decimal(value: Number) -> Decimal:
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


def period_window(period: Union[BudgetPeriod, str], now: datetime) -> PeriodWindow:
    """
    Calendar window containing now.

    The window is computed in now's timezone, so "this month" follows
    the clock of whoever supplies now.

    Args:
        period: monthly or yearly
        now: Reference instant

    Returns:
        PeriodWindow for now's month (monthly) or year (yearly)
    """
    period = BudgetPeriod(period)
    now = _as_aware(now)
    tz = now.tzinfo

    if period == BudgetPeriod.MONTHLY:
        start = datetime(now.year, now.month, 1, tzinfo=tz)
        if now.month == 12:
            end = datetime(now.year + 1, 1, 1, tzinfo=tz)
        else:
            end = datetime(now.year, now.month + 1, 1, tzinfo=tz)
    else:
        start = datetime(now.year, 1, 1, tzinfo=tz)
        end = datetime(now.year + 1, 1, 1, tzinfo=tz)

    return PeriodWindow(start, end)


def spent_for_period(
    transactions: Iterable[TransactionInput],
    category_id: str,
    period: Union[BudgetPeriod, str],
    now: Optional[datetime] = None,
) -> Decimal:
    """
    Sum of expenses for a category inside the current period window.

    Args:
        transactions: All transactions of the user
        category_id: Category to total
        period: Budget period defining the window
        now: Reference instant (defaults to the current UTC time)

    Returns:
        Total expense amount, Decimal("0") if nothing matches
    """
    window = period_window(period, now or datetime.now(timezone.utc))
    return sum(
        (
            tx.amount
            for tx in transactions
            if tx.type == TransactionType.EXPENSE
            and tx.category_id == category_id
            and window.contains(tx.date)
        ),
        ZERO,
    )


def apply_transaction_delta(
    summary: Summary,
    transaction: TransactionInput,
    sign: int,
) -> Summary:
    """
    Add (sign=+1) or remove (sign=-1) a transaction's contribution.

    Income adjusts total_income, expense adjusts total_expenses; the
    balance is always recomputed from the two totals.
    """
    if sign not in (1, -1):
        raise ValueError(f"sign must be +1 or -1, got {sign}")

    delta = transaction.amount * sign
    total_income = summary.total_income
    total_expenses = summary.total_expenses
    if transaction.type == TransactionType.INCOME:
        total_income += delta
    else:
        total_expenses += delta

    return Summary.with_totals(total_income, total_expenses)


def summarize_transactions(transactions: Iterable[TransactionInput]) -> Summary:
    """Summary recomputed from scratch."""
    total_income = ZERO
    total_expenses = ZERO
    for tx in transactions:
        if tx.type == TransactionType.INCOME:
            total_income += tx.amount
        else:
            total_expenses += tx.amount
    return Summary.with_totals(total_income, total_expenses)


def progress_percent(spent: Number, goal_amount: Number) -> Decimal:
    """
    Share of a budget goal used, clamped to [0, 100].

    A goal of zero or less always reads as 0%. The value is exact;
    rounding for display is the caller's business.
    """
    spent = _to_decimal(spent)
    goal_amount = _to_decimal(goal_amount)
    if goal_amount <= 0:
        return ZERO
    percent = spent / goal_amount * HUNDRED
    return max(ZERO, min(percent, HUNDRED))


def spending_by_category(
    transactions: Iterable[Transaction],
    categories: Iterable[Category],
    window: Optional[PeriodWindow] = None,
) -> list[CategorySpending]:
    """
    Expense totals per category, largest first.

    Categories without spending are left out. When window is given,
    only expenses inside it count.
    """
    totals: dict[str, Decimal] = {}
    for tx in transactions:
        if tx.type != TransactionType.EXPENSE:
            continue
        if window is not None and not window.contains(tx.date):
            continue
        totals[tx.category_id] = totals.get(tx.category_id, ZERO) + tx.amount

    breakdown = [
        CategorySpending(
            category_id=category.id,
            name=category.name,
            color=category.color,
            total=totals[category.id],
        )
        for category in categories
        if totals.get(category.id, ZERO) > 0
    ]
    breakdown.sort(key=lambda item: item.total, reverse=True)
    return breakdown


def recent_transactions(transactions: Iterable[Transaction], limit: int = 5) -> list[Transaction]:
    """Newest transactions first."""
    ordered = sorted(transactions, key=lambda tx: tx.date, reverse=True)
    return ordered[:limit]
