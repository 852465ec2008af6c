"""Aggregation engine: totals, category breakdowns and monthly series.

Every function here is pure.  It takes the transaction collection,
builds a fresh DataFrame from it, and derives the requested summary, so
the result always reflects the current collection.  No index or cache
is kept between calls.

Selection rules:

* a transaction belongs to a month when its ``date`` string starts with
  that ``YYYY-MM`` key;
* it belongs to a date range ``[start, end]`` when its parsed date is on
  or after ``start`` and on or before ``end``.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass
from datetime import date
from typing import Any, Callable, Dict, Iterable, List, Optional, Sequence

import pandas as pd

from .config import EXPENSE, INCOME
from .models import DateRange, Transaction, month_key, parse_date, parse_month

FRAME_COLUMNS = ['id', 'type', 'amount', 'category', 'date', 'description']


@dataclass
class PeriodTotals:
    income: float
    expenses: float
    savings: float

    def to_dict(self) -> Dict[str, float]:
        return asdict(self)


@dataclass
class MonthlyTrend:
    month: str
    income: float
    expenses: float
    savings: float
    savings_rate: float

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def savings_rate(income: float, expenses: float) -> float:
    """Net savings as a percentage of income; ``0`` when there is no income."""
    if income > 0:
        return (income - expenses) / income * 100
    return 0.0


# ---------------------------------------------------------------------------
# Frame helpers
# ---------------------------------------------------------------------------


def transactions_frame(transactions: Iterable[Transaction]) -> pd.DataFrame:
    """Build an analysis frame, one row per transaction, in collection order."""
    records = [t.to_dict() if isinstance(t, Transaction) else dict(t) for t in transactions]
    df = pd.DataFrame(records).reindex(columns=FRAME_COLUMNS)
    df['amount'] = pd.to_numeric(df['amount'], errors='coerce').fillna(0.0).astype(float)
    df['type'] = df['type'].fillna('').astype(str)
    df['category'] = df['category'].fillna('').astype(str)
    df['date'] = df['date'].fillna('').astype(str)
    df['month'] = df['date'].str[:7]
    df['parsed_date'] = pd.to_datetime(df['date'], format='%Y-%m-%d', errors='coerce')
    return df


def select(
    df: pd.DataFrame,
    type: Optional[str] = None,
    month: Optional[str] = None,
    start: Optional[date] = None,
    end: Optional[date] = None,
    category: Optional[str] = None,
) -> pd.DataFrame:
    """Rows matching every supplied criterion."""
    mask = pd.Series(True, index=df.index)
    if type:
        mask &= df['type'] == type
    if month:
        mask &= df['month'] == month
    if start is not None:
        mask &= df['parsed_date'] >= pd.Timestamp(start)
    if end is not None:
        mask &= df['parsed_date'] <= pd.Timestamp(end)
    if category:
        mask &= df['category'] == category
    return df[mask]


def _total(df: pd.DataFrame) -> float:
    return float(df['amount'].sum()) if not df.empty else 0.0


# ---------------------------------------------------------------------------
# Aggregates
# ---------------------------------------------------------------------------


def sum_by_type(
    transactions: Iterable[Transaction],
    type: str,
    month: Optional[str] = None,
    start: Optional[date] = None,
    end: Optional[date] = None,
) -> float:
    return _total(select(transactions_frame(transactions), type=type, month=month, start=start, end=end))


def calculate_total_balance(
    transactions: Iterable[Transaction],
    month: Optional[str] = None,
    start: Optional[date] = None,
    end: Optional[date] = None,
) -> float:
    """Income minus expenses within the selection."""
    totals = period_totals(transactions, month=month, start=start, end=end)
    return totals.income - totals.expenses


def group_by_category(
    transactions: Iterable[Transaction],
    type: str = EXPENSE,
    month: Optional[str] = None,
    start: Optional[date] = None,
    end: Optional[date] = None,
) -> Dict[str, float]:
    """Summed amount per category; categories with no rows are absent."""
    df = select(transactions_frame(transactions), type=type, month=month, start=start, end=end)
    if df.empty:
        return {}
    totals = df.groupby('category', sort=False)['amount'].sum()
    return {str(category): float(amount) for category, amount in totals.items()}


def period_totals(
    transactions: Iterable[Transaction],
    month: Optional[str] = None,
    start: Optional[date] = None,
    end: Optional[date] = None,
) -> PeriodTotals:
    df = select(transactions_frame(transactions), month=month, start=start, end=end)
    income = _total(df[df['type'] == INCOME])
    expenses = _total(df[df['type'] == EXPENSE])
    return PeriodTotals(income=income, expenses=expenses, savings=income - expenses)


def monthly_summary(transactions: Iterable[Transaction], month: str) -> PeriodTotals:
    return period_totals(transactions, month=parse_month(month))


def monthly_series(transactions: Iterable[Transaction], start: date, end: date) -> List[MonthlyTrend]:
    """One entry per calendar month from ``start`` to ``end`` inclusive.

    Month totals use the month-prefix rule over the whole collection, so a
    range starting mid-month still reports that month in full.
    """
    df = transactions_frame(transactions)
    by_month = df.groupby(['month', 'type'])['amount'].sum() if not df.empty else pd.Series(dtype=float)

    series: List[MonthlyTrend] = []
    for month in DateRange(start, end).months():
        income = float(by_month.get((month, INCOME), 0.0))
        expenses = float(by_month.get((month, EXPENSE), 0.0))
        series.append(MonthlyTrend(
            month=month,
            income=income,
            expenses=expenses,
            savings=income - expenses,
            savings_rate=savings_rate(income, expenses),
        ))
    return series


def daily_total(transactions: Iterable[Transaction], day: Any, type: str = EXPENSE) -> float:
    """Total of one transaction type dated exactly ``day``."""
    df = transactions_frame(transactions)
    return _total(df[(df['type'] == type) & (df['date'] == parse_date(day))])


def filter_transactions(
    transactions: Iterable[Transaction],
    type: Optional[str] = None,
    category: Optional[str] = None,
    month: Optional[str] = None,
) -> List[Transaction]:
    """Matching transactions, newest date first."""
    items = list(transactions)
    df = transactions_frame(items)
    selected = select(df, type=type, category=category, month=month)
    matches = [items[position] for position in selected.index]
    return sorted(matches, key=lambda t: t.date, reverse=True)


def calculate_file_stats(transactions: Iterable[Transaction]) -> Dict[str, float]:
    totals = period_totals(transactions)
    return {
        'income': totals.income,
        'expense': totals.expenses,
        'balance': totals.income - totals.expenses,
    }


def calculate_overall_stats(collections: Sequence[Iterable[Transaction]]) -> Dict[str, float]:
    total_income = 0.0
    total_expense = 0.0
    for transactions in collections:
        stats = calculate_file_stats(transactions)
        total_income += stats['income']
        total_expense += stats['expense']
    return {
        'total_income': total_income,
        'total_expense': total_expense,
        'total_balance': total_income - total_expense,
        'total_savings': total_income - total_expense,
    }


# ---------------------------------------------------------------------------
# Facade
# ---------------------------------------------------------------------------


class FinanceAnalytics:
    """Aggregation queries over a live transaction source.

    ``source`` is anything exposing a ``transactions`` attribute (a
    :class:`~finance_tracker.store.TransactionStore`, a
    :class:`~finance_tracker.models.Ledger`) or a zero-argument callable
    returning the transactions.  It is read again on every query.
    """

    def __init__(self, source: Any, today: Callable[[], date] = date.today):
        self._source = source
        self.today = today

    @property
    def transactions(self) -> List[Transaction]:
        if callable(self._source):
            return list(self._source())
        return list(self._source.transactions)

    def current_month(self) -> str:
        return month_key(self.today())

    def total_balance(self, **selection: Any) -> float:
        return calculate_total_balance(self.transactions, **selection)

    def total_income(self, **selection: Any) -> float:
        return sum_by_type(self.transactions, INCOME, **selection)

    def total_expenses(self, **selection: Any) -> float:
        return sum_by_type(self.transactions, EXPENSE, **selection)

    def category_totals(self, type: str = EXPENSE, **selection: Any) -> Dict[str, float]:
        return group_by_category(self.transactions, type=type, **selection)

    def monthly_summary(self, month: Optional[str] = None) -> PeriodTotals:
        return monthly_summary(self.transactions, month or self.current_month())

    def period_totals(self, start: date, end: date) -> PeriodTotals:
        return period_totals(self.transactions, start=start, end=end)

    def monthly_series(self, start: date, end: date) -> List[MonthlyTrend]:
        return monthly_series(self.transactions, start, end)

    def daily_total(self, day: Any = None, type: str = EXPENSE) -> float:
        return daily_total(self.transactions, day or self.today(), type=type)

    def filter_transactions(self, **criteria: Any) -> List[Transaction]:
        return filter_transactions(self.transactions, **criteria)
