"""Formatting utilities for currency, months and category display.

These helpers belong to the presentation side only; the engines return
raw numbers and keys.
"""

from __future__ import annotations

from datetime import date
from typing import Optional, Union

from .config import CURRENCY_SYMBOL
from .models import month_start

CATEGORY_LABELS = {
    'housing': '🏠 Housing',
    'food': '🍔 Food & Groceries',
    'transport': '🚗 Transportation',
    'utilities': '💡 Utilities',
    'healthcare': '🏥 Healthcare',
    'entertainment': '🎬 Entertainment',
    'shopping': '🛍️ Shopping',
    'salary': 'Salary',
    'freelance': 'Freelance',
    'business': 'Business',
    'investment': 'Investment',
    'other': '📦 Other',
}


def format_currency(amount: Union[float, int], include_sign: bool = True, symbol: Optional[str] = None) -> str:
    """Format a currency amount with proper formatting.

    Args:
        amount: The amount to format
        include_sign: Whether to include the currency symbol
        symbol: Symbol to use, defaults to ``FINTRACK_CURRENCY_SYMBOL``

    Returns:
        Formatted currency string (e.g., "$1,234.56" or "1,234.56")

    Example:
        >>> format_currency(1234.56)
        '$1,234.56'
        >>> format_currency(-20)
        '-$20.00'
    """
    formatted = f"{abs(amount):,.2f}"
    if include_sign:
        formatted = f"{symbol if symbol is not None else CURRENCY_SYMBOL}{formatted}"
    return f"-{formatted}" if amount < 0 else formatted


def format_month(month: str) -> str:
    """Render a ``YYYY-MM`` key as e.g. ``June 2024``."""
    return month_start(month).strftime('%B %Y')


def format_date(value: str) -> str:
    """Render an ISO date as e.g. ``Jun 05, 2024``."""
    return date.fromisoformat(value).strftime('%b %d, %Y')


def format_percent(value: float) -> str:
    return f"{value:.1f}%"


def format_trend(value: float) -> str:
    """Signed trend percentage, e.g. ``+12.5%``."""
    return f"{'+' if value > 0 else ''}{value}%"


def format_category(category: str) -> str:
    return CATEGORY_LABELS.get(category, category)
