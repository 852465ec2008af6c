"""Record types and input validation for the finance tracker.

Transactions, ledgers and budget entries are plain dataclasses that
serialize to the JSON-compatible dicts kept in storage.  The ``parse_*``
and ``validate_*`` helpers normalise raw user input and raise
:class:`~finance_tracker.exceptions.InvalidInput` on anything malformed.
"""

from __future__ import annotations

import calendar
import logging
import re
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Any, Dict, List, Optional

import numpy as np
import pandas as pd

from .config import TRANSACTION_TYPES
from .exceptions import InvalidInput

logger = logging.getLogger(__name__)

_MONTH_PATTERN = re.compile(r"^(\d{4})-(\d{2})$")


# ---------------------------------------------------------------------------
# Validators
# ---------------------------------------------------------------------------


def validate_amount(value: Any, field_name: str = "amount") -> float:
    """Return ``value`` as a positive finite float or raise InvalidInput."""
    if value is None or isinstance(value, bool):
        raise InvalidInput(f"{field_name} is required", field=field_name)
    if isinstance(value, str):
        value = value.strip().replace(",", "")
        if not value:
            raise InvalidInput(f"{field_name} is required", field=field_name)
    try:
        amount = float(value)
    except (TypeError, ValueError):
        raise InvalidInput(f"{field_name} must be a number, got {value!r}", field=field_name) from None
    if not np.isfinite(amount) or amount <= 0:
        raise InvalidInput(f"{field_name} must be a positive number, got {value!r}", field=field_name)
    return amount


def validate_type(value: Any) -> str:
    kind = str(value or "").strip().lower()
    if kind not in TRANSACTION_TYPES:
        raise InvalidInput(
            f"type must be one of {', '.join(TRANSACTION_TYPES)}, got {value!r}", field="type"
        )
    return kind


def validate_text(value: Any, field_name: str) -> str:
    text = str(value).strip() if value is not None else ""
    if not text:
        raise InvalidInput(f"{field_name} is required", field=field_name)
    return text


def parse_month(value: Any) -> str:
    """Validate a ``YYYY-MM`` month key and return it unchanged."""
    text = str(value or "").strip()
    match = _MONTH_PATTERN.match(text)
    if not match or not 1 <= int(match.group(2)) <= 12:
        raise InvalidInput(f"month must be formatted YYYY-MM, got {value!r}", field="month")
    return text


def parse_date(value: Any) -> str:
    """Convert a date-like value into an ISO ``YYYY-MM-DD`` string."""
    if value is None or (isinstance(value, str) and not value.strip()):
        raise InvalidInput("date is required", field="date")
    if isinstance(value, datetime):
        return value.date().isoformat()
    if isinstance(value, date):
        return value.isoformat()
    ts = pd.to_datetime(str(value).strip(), format="%Y-%m-%d", errors="coerce")
    if pd.isna(ts):
        raise InvalidInput(f"date must be formatted YYYY-MM-DD, got {value!r}", field="date")
    return ts.date().isoformat()


# ---------------------------------------------------------------------------
# Calendar helpers
# ---------------------------------------------------------------------------


def month_key(day: date) -> str:
    return f"{day.year:04d}-{day.month:02d}"


def month_start(month: str) -> date:
    year, mon = (int(part) for part in parse_month(month).split("-"))
    return date(year, mon, 1)


def month_end(month: str) -> date:
    year, mon = (int(part) for part in parse_month(month).split("-"))
    return date(year, mon, calendar.monthrange(year, mon)[1])


def shift_month(day: date, months: int) -> date:
    """First day of the month ``months`` away from ``day``'s month."""
    index = day.year * 12 + (day.month - 1) + months
    return date(index // 12, index % 12 + 1, 1)


# ---------------------------------------------------------------------------
# Records
# ---------------------------------------------------------------------------


@dataclass
class Transaction:
    id: int
    type: str
    amount: float
    category: str
    date: str
    description: str = ""
    image: Optional[str] = None
    created_at: Optional[str] = None

    @property
    def month(self) -> str:
        return self.date[:7]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "type": self.type,
            "amount": self.amount,
            "category": self.category,
            "date": self.date,
            "description": self.description,
            "image": self.image,
            "createdAt": self.created_at,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Transaction":
        """Rebuild a stored transaction.

        Raises InvalidInput when the record breaks a transaction invariant
        (unknown type, negative or non-finite amount, unparseable date).
        """
        amount = float(data.get("amount") or 0.0)
        if not np.isfinite(amount) or amount < 0:
            raise InvalidInput(f"stored amount must be non-negative, got {amount!r}", field="amount")
        return cls(
            id=int(data["id"]),
            type=validate_type(data.get("type")),
            amount=amount,
            category=str(data.get("category") or ""),
            date=parse_date(data.get("date")),
            description=data.get("description") or "",
            image=data.get("image"),
            created_at=data.get("createdAt"),
        )


@dataclass
class Ledger:
    """A named file holding its own transaction list."""

    id: int
    name: str
    description: str = ""
    created_at: Optional[str] = None
    transactions: List[Transaction] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "createdAt": self.created_at,
            "transactions": [t.to_dict() for t in self.transactions],
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Ledger":
        return cls(
            id=int(data["id"]),
            name=str(data.get("name") or ""),
            description=data.get("description") or "",
            created_at=data.get("createdAt"),
            transactions=load_transactions(data.get("transactions")),
        )


@dataclass
class BudgetEntry:
    amount: float
    set_date: str

    def to_dict(self) -> Dict[str, Any]:
        return {"amount": self.amount, "setDate": self.set_date}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "BudgetEntry":
        return cls(amount=float(data.get("amount") or 0.0), set_date=str(data.get("setDate") or ""))


@dataclass(frozen=True)
class DateRange:
    """Inclusive calendar date range."""

    start: date
    end: date

    def __post_init__(self) -> None:
        if self.end < self.start:
            raise InvalidInput(f"range end {self.end} precedes start {self.start}", field="end")

    def months(self) -> List[str]:
        """Every ``YYYY-MM`` the range touches, in order."""
        periods = pd.period_range(self.start.isoformat(), self.end.isoformat(), freq="M")
        return [str(p) for p in periods]

    def to_dict(self) -> Dict[str, str]:
        return {"start": self.start.isoformat(), "end": self.end.isoformat()}


def load_transactions(records: Any) -> List[Transaction]:
    """Rebuild stored transaction dicts, skipping malformed ones."""
    if records is None:
        return []
    if not isinstance(records, list):
        logger.warning("Ignoring stored transactions: expected a list, got %s", type(records).__name__)
        return []
    transactions: List[Transaction] = []
    for raw in records:
        try:
            transactions.append(Transaction.from_dict(raw))
        except (KeyError, TypeError, ValueError) as exc:
            logger.warning("Skipping malformed stored transaction %r: %s", raw, exc)
    return transactions
