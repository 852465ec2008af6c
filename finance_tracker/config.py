"""Configuration management for the finance tracker.

This module centralizes all configuration values including paths,
thresholds, default category vocabularies and environment variable
overrides.
"""

from __future__ import annotations

import os
from pathlib import Path

# Base project root - assumes this file is in finance_tracker/
_PROJECT_ROOT = Path(__file__).parent.parent.resolve()

# Data directories
DATA_DIR = Path(os.getenv("FINTRACK_DATA_DIR", _PROJECT_ROOT / "data"))
REPORTS_DIR = DATA_DIR / "reports"

# Key-value storage file
STORAGE_PATH = Path(
    os.getenv("FINTRACK_STORAGE_PATH", DATA_DIR / "finance_storage.json")
).resolve()
STORAGE_KEY_PREFIX = "finance_"

# Display
CURRENCY_SYMBOL = os.getenv("FINTRACK_CURRENCY_SYMBOL", "$")
LOG_LEVEL = os.getenv("FINTRACK_LOG_LEVEL", "WARNING").upper()

# Budget progress bands (strictly greater than)
PROGRESS_CRITICAL_THRESHOLD = 90.0
PROGRESS_WARNING_THRESHOLD = 75.0
BUDGET_HISTORY_LIMIT = 6

# Savings rate insight thresholds (strictly greater than)
SAVINGS_EXCELLENT_THRESHOLD = 20.0
SAVINGS_GOOD_THRESHOLD = 10.0
SAVINGS_POSITIVE_THRESHOLD = 0.0

INCOME = "income"
EXPENSE = "expense"
TRANSACTION_TYPES = (INCOME, EXPENSE)

REPORT_PERIODS = (
    "current_month",
    "last_month",
    "last_3_months",
    "last_6_months",
    "current_year",
    "custom",
)
DEFAULT_REPORT_PERIOD = "current_month"

INCOME_CATEGORIES = ("salary", "freelance", "business", "investment", "other")
EXPENSE_CATEGORIES = (
    "housing",
    "food",
    "transport",
    "utilities",
    "healthcare",
    "entertainment",
    "shopping",
    "other",
)

# Shared category list seeded into a fresh multi-file workspace
DEFAULT_LEDGER_CATEGORIES = [
    "Salary", "Business", "Investment", "Freelance",
    "Food", "Transport", "Rent", "Utilities",
    "Healthcare", "Entertainment", "Shopping", "Other",
]


def ensure_data_directories() -> None:
    """Create all required data directories if they don't exist."""
    for directory in [DATA_DIR, REPORTS_DIR, STORAGE_PATH.parent]:
        directory.mkdir(parents=True, exist_ok=True)
