"""Top‑level package for the finance tracker.

The primary modules are:

* ``store`` – the transaction store and the multi-file ledger manager
* ``aggregation`` – totals, category breakdowns and monthly series
* ``budget`` – monthly and per-category budgets and their progress
* ``reports`` – period reports, trends and insights
* ``storage`` – JSON file and in-memory key-value persistence

To use the tracker from the command line you can execute:

```bash
python -m finance_tracker report last_3_months
```
"""

from .aggregation import FinanceAnalytics
from .budget import BudgetManager, BudgetStatus, progress_band
from .exceptions import FinanceTrackerError, InvalidInput
from .models import BudgetEntry, DateRange, Ledger, Transaction
from .reports import Report, ReportBuilder, export_report_csv
from .storage import JsonFileStorage, MemoryStorage
from .store import IdGenerator, LedgerManager, PendingTransaction, TransactionStore

__all__ = [
    "BudgetEntry",
    "BudgetManager",
    "BudgetStatus",
    "DateRange",
    "FinanceAnalytics",
    "FinanceTrackerError",
    "IdGenerator",
    "InvalidInput",
    "JsonFileStorage",
    "Ledger",
    "LedgerManager",
    "MemoryStorage",
    "PendingTransaction",
    "Report",
    "ReportBuilder",
    "Transaction",
    "TransactionStore",
    "export_report_csv",
    "progress_band",
]
