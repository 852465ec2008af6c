"""Exception types raised by the finance tracker core."""

from __future__ import annotations


class FinanceTrackerError(Exception):
    """Base class for finance tracker errors."""


class InvalidInput(FinanceTrackerError, ValueError):
    """Raised when a caller supplies a missing or malformed value.

    The operation that raises it leaves all prior state untouched.
    """

    def __init__(self, message: str, field: str | None = None):
        super().__init__(message)
        self.field = field
