"""Report engine: period reports with trends against the preceding period.

A report covers a calendar-aligned, inclusive date range resolved from a
named period (``current_month``, ``last_month``, ``last_3_months``,
``last_6_months``, ``current_year``, ``custom``) or given explicitly.
It is compared with a window of the same length that ends the day
before the range starts.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from decimal import ROUND_HALF_UP, Decimal
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence, Tuple, Union

import pandas as pd

from .aggregation import FinanceAnalytics, MonthlyTrend, PeriodTotals, savings_rate
from .config import (
    DEFAULT_REPORT_PERIOD,
    EXPENSE,
    REPORTS_DIR,
    SAVINGS_EXCELLENT_THRESHOLD,
    SAVINGS_GOOD_THRESHOLD,
    SAVINGS_POSITIVE_THRESHOLD,
    ensure_data_directories,
)
from .exceptions import InvalidInput
from .models import DateRange, month_end, month_key, month_start, parse_date, shift_month

logger = logging.getLogger(__name__)

INSIGHT_MESSAGES = {
    'excellent': "Excellent! Your savings rate is above 20%. Keep up the great work!",
    'good': (
        "Good job! Your savings rate is healthy. Consider increasing it to 20% "
        "for better financial security."
    ),
    'low': "You're saving money! Try to increase your savings rate by reducing unnecessary expenses.",
    'overspending': (
        "You're spending more than you earn. Review your expenses and create a budget "
        "to bring spending under control."
    ),
}

# Evaluated top to bottom; the first threshold the rate exceeds wins.
INSIGHT_RULES: Sequence[Tuple[float, str]] = (
    (SAVINGS_EXCELLENT_THRESHOLD, 'excellent'),
    (SAVINGS_GOOD_THRESHOLD, 'good'),
    (SAVINGS_POSITIVE_THRESHOLD, 'low'),
)


# ---------------------------------------------------------------------------
# Date ranges
# ---------------------------------------------------------------------------


def resolve_date_range(
    period: str,
    today: date,
    start_month: Optional[str] = None,
    end_month: Optional[str] = None,
) -> DateRange:
    """Map a named period onto an inclusive calendar date range.

    ``custom`` needs both ``start_month`` and ``end_month`` (``YYYY-MM``)
    and falls back to the current month when either is missing, as does
    any unrecognised period name.
    """
    current = month_key(today)
    if period == 'current_month':
        return DateRange(month_start(current), month_end(current))
    if period == 'last_month':
        previous = month_key(shift_month(today, -1))
        return DateRange(month_start(previous), month_end(previous))
    if period == 'last_3_months':
        return DateRange(shift_month(today, -3), month_end(current))
    if period == 'last_6_months':
        return DateRange(shift_month(today, -6), month_end(current))
    if period == 'current_year':
        return DateRange(date(today.year, 1, 1), date(today.year, 12, 31))
    if period == 'custom':
        if start_month and end_month:
            return DateRange(month_start(start_month), month_end(end_month))
        return resolve_date_range('current_month', today)
    logger.debug("Unknown report period %r, using current month", period)
    return resolve_date_range('current_month', today)


def previous_period(date_range: DateRange) -> Tuple[date, date]:
    """The comparison window: same length, ending the day before ``start``.

    For a single-day range the window is empty (start after end).
    """
    length = date_range.end - date_range.start
    return date_range.start - length, date_range.start - timedelta(days=1)


def coerce_date_range(value: Union[DateRange, Tuple[Any, Any], Dict[str, Any]]) -> DateRange:
    """Accept a DateRange, a ``(start, end)`` pair or a ``{start, end}`` mapping."""
    if isinstance(value, DateRange):
        return value
    if isinstance(value, dict):
        start, end = value.get('start'), value.get('end')
    else:
        try:
            start, end = value
        except (TypeError, ValueError):
            raise InvalidInput(f"Expected a (start, end) date pair, got {value!r}") from None
    return DateRange(date.fromisoformat(parse_date(start)), date.fromisoformat(parse_date(end)))


# ---------------------------------------------------------------------------
# Trends and insights
# ---------------------------------------------------------------------------


def calculate_trend(current: float, previous: float) -> float:
    """Percentage change rounded to one decimal; ``0`` when ``previous`` is 0."""
    if previous == 0:
        return 0.0
    change = (current - previous) / previous * 100
    # Exact halves round away from zero: 1.25 -> 1.3
    return float(Decimal(repr(change)).quantize(Decimal('0.1'), rounding=ROUND_HALF_UP))


def classify_savings_rate(rate: float) -> str:
    for threshold, level in INSIGHT_RULES:
        if rate > threshold:
            return level
    return 'overspending'


def generate_insights(rate: float) -> List[str]:
    return [INSIGHT_MESSAGES[classify_savings_rate(rate)]]


# ---------------------------------------------------------------------------
# Report
# ---------------------------------------------------------------------------


@dataclass
class Report:
    period: str
    date_range: DateRange
    total_income: float
    total_expenses: float
    net_savings: float
    savings_rate: float
    expense_by_category: Dict[str, float]
    monthly_trends: List[MonthlyTrend]
    previous_start: date
    previous_end: date
    previous_period: PeriodTotals
    income_trend: float
    expenses_trend: float
    savings_trend: float
    insight_level: str
    insights: List[str] = field(default_factory=list)

    @property
    def category_breakdown(self) -> List[Dict[str, Any]]:
        """Expense categories by amount, largest first, with their share."""
        total = sum(self.expense_by_category.values())
        rows = sorted(self.expense_by_category.items(), key=lambda item: item[1], reverse=True)
        return [
            {
                'category': category,
                'amount': amount,
                'percentage': (amount / total * 100) if total > 0 else 0.0,
            }
            for category, amount in rows
        ]

    def to_dict(self) -> Dict[str, Any]:
        return {
            'period': self.period,
            'range': self.date_range.to_dict(),
            'total_income': self.total_income,
            'total_expenses': self.total_expenses,
            'net_savings': self.net_savings,
            'savings_rate': self.savings_rate,
            'expense_by_category': dict(self.expense_by_category),
            'category_breakdown': self.category_breakdown,
            'monthly_trends': [t.to_dict() for t in self.monthly_trends],
            'previous_period': {
                'start': self.previous_start.isoformat(),
                'end': self.previous_end.isoformat(),
                **self.previous_period.to_dict(),
            },
            'trends': {
                'income': self.income_trend,
                'expenses': self.expenses_trend,
                'savings': self.savings_trend,
            },
            'insight_level': self.insight_level,
            'insights': list(self.insights),
        }


class ReportBuilder:
    """Composes aggregation results into period reports."""

    def __init__(self, analytics: FinanceAnalytics):
        self.analytics = analytics

    def build_report(
        self,
        period: Union[str, DateRange, Tuple[Any, Any], Dict[str, Any]] = DEFAULT_REPORT_PERIOD,
        start_month: Optional[str] = None,
        end_month: Optional[str] = None,
    ) -> Report:
        if isinstance(period, str):
            date_range = resolve_date_range(period, self.analytics.today(), start_month, end_month)
            label = period
        else:
            date_range = coerce_date_range(period)
            label = 'range'

        start, end = date_range.start, date_range.end
        totals = self.analytics.period_totals(start, end)
        rate = savings_rate(totals.income, totals.expenses)

        prev_start, prev_end = previous_period(date_range)
        previous = self.analytics.period_totals(prev_start, prev_end)

        level = classify_savings_rate(rate)
        logger.debug("Built %s report for %s..%s", label, start, end)
        return Report(
            period=label,
            date_range=date_range,
            total_income=totals.income,
            total_expenses=totals.expenses,
            net_savings=totals.savings,
            savings_rate=rate,
            expense_by_category=self.analytics.category_totals(EXPENSE, start=start, end=end),
            monthly_trends=self.analytics.monthly_series(start, end),
            previous_start=prev_start,
            previous_end=prev_end,
            previous_period=previous,
            income_trend=calculate_trend(totals.income, previous.income),
            expenses_trend=calculate_trend(totals.expenses, previous.expenses),
            savings_trend=calculate_trend(totals.savings, previous.savings),
            insight_level=level,
            insights=generate_insights(rate),
        )


def export_report_csv(report: Report, filename: Optional[Union[str, Path]] = None) -> Path:
    """Write ``report`` as a flat CSV and return the file path."""
    if filename is None:
        ensure_data_directories()
        stamp = datetime.now().strftime('%Y%m%d_%H%M%S')
        filename = REPORTS_DIR / f"finance_report_{report.period}_{stamp}.csv"
    target = Path(filename)
    target.parent.mkdir(parents=True, exist_ok=True)

    report_data: List[Dict[str, Any]] = [{
        'Section': 'Summary',
        'Period': f"{report.date_range.start.isoformat()} to {report.date_range.end.isoformat()}",
        'Income': report.total_income,
        'Expenses': report.total_expenses,
        'Savings': report.net_savings,
        'Savings Rate': report.savings_rate,
    }, {
        'Section': 'Previous Period',
        'Period': f"{report.previous_start.isoformat()} to {report.previous_end.isoformat()}",
        'Income': report.previous_period.income,
        'Expenses': report.previous_period.expenses,
        'Savings': report.previous_period.savings,
    }]
    for trend in report.monthly_trends:
        report_data.append({
            'Section': 'Monthly Trend',
            'Period': trend.month,
            'Income': trend.income,
            'Expenses': trend.expenses,
            'Savings': trend.savings,
            'Savings Rate': trend.savings_rate,
        })
    for row in report.category_breakdown:
        report_data.append({
            'Section': 'Category Spending',
            'Category': row['category'],
            'Expenses': row['amount'],
            'Share': row['percentage'],
        })

    columns = ['Section', 'Period', 'Category', 'Income', 'Expenses', 'Savings', 'Savings Rate', 'Share']
    pd.DataFrame(report_data, columns=columns).to_csv(target, index=False)
    logger.info("Exported %s report to %s", report.period, target)
    return target
