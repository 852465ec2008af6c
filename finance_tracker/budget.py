"""Budget engine: monthly and per-category spending limits.

Budgets are stored by value: the monthly budget under its ``YYYY-MM``
key and each category budget under ``(YYYY-MM, category)``.  Spent
amounts always come from the aggregation engine, so a status reflects
the transactions as they are at the time of the call.  Category budgets
are tracked independently of the monthly budget; nothing checks that
they add up to it.
"""

from __future__ import annotations

import logging
from dataclasses import asdict, dataclass
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from .aggregation import FinanceAnalytics, PeriodTotals
from .config import (
    BUDGET_HISTORY_LIMIT,
    EXPENSE,
    PROGRESS_CRITICAL_THRESHOLD,
    PROGRESS_WARNING_THRESHOLD,
)
from .exceptions import InvalidInput
from .models import BudgetEntry, parse_month, validate_amount, validate_text

logger = logging.getLogger(__name__)

CRITICAL = 'critical'
WARNING = 'warning'
NOMINAL = 'nominal'


def progress_band(progress_percent: float) -> str:
    """Classify budget progress: above 90 is critical, above 75 warning."""
    if progress_percent > PROGRESS_CRITICAL_THRESHOLD:
        return CRITICAL
    if progress_percent > PROGRESS_WARNING_THRESHOLD:
        return WARNING
    return NOMINAL


def progress_percent(spent: float, budget_amount: float) -> float:
    if budget_amount <= 0:
        return 100.0 if spent > 0 else 0.0
    return min(spent / budget_amount * 100, 100.0)


@dataclass
class BudgetStatus:
    """Spending against one budget.

    Attributes:
        month: Budget month (``YYYY-MM``)
        budget_amount: The limit that was set
        spent: Expenses recorded against it
        remaining: ``budget_amount - spent`` (negative when overspent)
        progress_percent: ``spent / budget_amount * 100`` capped at 100
        category: Category name for category budgets, else ``None``
    """

    month: str
    budget_amount: float
    spent: float
    remaining: float
    progress_percent: float
    category: Optional[str] = None

    @classmethod
    def compute(cls, month: str, budget_amount: float, spent: float, category: Optional[str] = None) -> 'BudgetStatus':
        return cls(
            month=month,
            budget_amount=budget_amount,
            spent=spent,
            remaining=budget_amount - spent,
            progress_percent=progress_percent(spent, budget_amount),
            category=category,
        )

    @property
    def band(self) -> str:
        return progress_band(self.progress_percent)

    @property
    def overspent(self) -> bool:
        return self.remaining < 0

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data['band'] = self.band
        return data


class BudgetManager:
    """Stores budgets and compares them with aggregated spending."""

    def __init__(self, storage, analytics: FinanceAnalytics):
        self._storage = storage
        self.analytics = analytics
        self._budgets: Dict[str, BudgetEntry] = self._load_budgets()
        self._category_budgets: Dict[str, Dict[str, BudgetEntry]] = self._load_category_budgets()

    # Persistence -------------------------------------------------------------

    @staticmethod
    def _stored_month(month: Any, key: str) -> Optional[str]:
        try:
            return parse_month(month)
        except InvalidInput:
            logger.warning("Skipping stored %s entry with malformed month %r", key, month)
            return None

    @staticmethod
    def _stored_entry(raw: Any) -> Optional[BudgetEntry]:
        if not isinstance(raw, dict):
            return None
        try:
            return BudgetEntry.from_dict(raw)
        except (TypeError, ValueError) as exc:
            logger.warning("Skipping malformed stored budget %r: %s", raw, exc)
            return None

    def _load_budgets(self) -> Dict[str, BudgetEntry]:
        raw = self._storage.load('budgets')
        if not isinstance(raw, dict):
            return {}
        budgets: Dict[str, BudgetEntry] = {}
        for month, stored in raw.items():
            month = self._stored_month(month, 'budgets')
            entry = self._stored_entry(stored)
            if month is not None and entry is not None:
                budgets[month] = entry
        return budgets

    def _load_category_budgets(self) -> Dict[str, Dict[str, BudgetEntry]]:
        raw = self._storage.load('categoryBudgets')
        if not isinstance(raw, dict):
            return {}
        result: Dict[str, Dict[str, BudgetEntry]] = {}
        for month, stored in raw.items():
            month = self._stored_month(month, 'categoryBudgets')
            if month is None or not isinstance(stored, dict):
                continue
            entries = {}
            for category, raw_entry in stored.items():
                entry = self._stored_entry(raw_entry)
                if entry is not None:
                    entries[category] = entry
            if entries:
                result[month] = entries
        return result

    def _save_budgets(self) -> None:
        self._storage.save('budgets', {m: e.to_dict() for m, e in self._budgets.items()})

    def _save_category_budgets(self) -> None:
        self._storage.save('categoryBudgets', {
            month: {category: e.to_dict() for category, e in entries.items()}
            for month, entries in self._category_budgets.items()
        })

    @staticmethod
    def _stamp() -> str:
        return datetime.now(timezone.utc).isoformat()

    # Setters -----------------------------------------------------------------

    def set_monthly_budget(self, month: str, amount: Any) -> BudgetEntry:
        month = parse_month(month)
        entry = BudgetEntry(amount=validate_amount(amount), set_date=self._stamp())
        self._budgets[month] = entry
        self._save_budgets()
        logger.info("Monthly budget for %s set to %.2f", month, entry.amount)
        return entry

    def set_category_budget(self, month: str, category: str, amount: Any) -> BudgetEntry:
        month = parse_month(month)
        category = validate_text(category, 'category')
        entry = BudgetEntry(amount=validate_amount(amount), set_date=self._stamp())
        self._category_budgets.setdefault(month, {})[category] = entry
        self._save_category_budgets()
        logger.info("Budget for %s in %s set to %.2f", category, month, entry.amount)
        return entry

    def get_monthly_budget(self, month: str) -> Optional[BudgetEntry]:
        return self._budgets.get(parse_month(month))

    def get_category_budgets(self, month: str) -> Dict[str, BudgetEntry]:
        return dict(self._category_budgets.get(parse_month(month), {}))

    def delete_monthly_budget(self, month: str) -> bool:
        if self._budgets.pop(parse_month(month), None) is None:
            return False
        self._save_budgets()
        return True

    def delete_category_budget(self, month: str, category: str) -> bool:
        month = parse_month(month)
        entries = self._category_budgets.get(month, {})
        if entries.pop(category, None) is None:
            return False
        if not entries:
            self._category_budgets.pop(month, None)
        self._save_category_budgets()
        return True

    # Status ------------------------------------------------------------------

    def budget_status(self, month: Optional[str] = None) -> Optional[BudgetStatus]:
        """Status of the monthly budget, or ``None`` when none is set."""
        month = parse_month(month or self.analytics.current_month())
        entry = self._budgets.get(month)
        if entry is None:
            return None
        spent = self.analytics.monthly_summary(month).expenses
        return BudgetStatus.compute(month, entry.amount, spent)

    def category_budget_status(self, month: Optional[str] = None) -> Dict[str, BudgetStatus]:
        month = parse_month(month or self.analytics.current_month())
        entries = self._category_budgets.get(month, {})
        if not entries:
            return {}
        spent_by_category = self.analytics.category_totals(EXPENSE, month=month)
        return {
            category: BudgetStatus.compute(month, entry.amount, spent_by_category.get(category, 0.0), category)
            for category, entry in entries.items()
        }

    def budget_overview(self, month: Optional[str] = None) -> Dict[str, Any]:
        """Income, expenses and savings for the month alongside its budget status."""
        month = parse_month(month or self.analytics.current_month())
        totals: PeriodTotals = self.analytics.monthly_summary(month)
        return {
            'month': month,
            'totals': totals,
            'status': self.budget_status(month),
        }

    def budget_history(self, limit: int = BUDGET_HISTORY_LIMIT) -> List[Dict[str, Any]]:
        """Most recent budgeted months first, with the saved/overspent outcome."""
        history: List[Dict[str, Any]] = []
        for month in sorted(self._budgets, reverse=True)[:limit]:
            status = self.budget_status(month)
            history.append({
                'month': month,
                'status': status,
                'outcome': 'overspent' if status.overspent else 'saved',
                'difference': abs(status.remaining),
            })
        return history
