"""Command-line front end for the finance tracker.

Examples::

    finance-tracker add expense 42.50 food --date 2024-06-03 --description Groceries
    finance-tracker budget set 2024-06 1000
    finance-tracker budget status 2024-06
    finance-tracker report custom --start 2024-01 --end 2024-03 --export q1.csv
"""

from __future__ import annotations

import argparse
import logging
import sys
from dataclasses import dataclass
from datetime import date
from pathlib import Path
from typing import Callable, List, Optional

from .aggregation import FinanceAnalytics
from .budget import BudgetManager, BudgetStatus
from .config import (
    EXPENSE_CATEGORIES,
    INCOME_CATEGORIES,
    LOG_LEVEL,
    REPORT_PERIODS,
    STORAGE_PATH,
    TRANSACTION_TYPES,
)
from .exceptions import InvalidInput
from .formatting import (
    format_category,
    format_currency,
    format_date,
    format_month,
    format_percent,
    format_trend,
)
from .reports import ReportBuilder, export_report_csv
from .storage import JsonFileStorage
from .store import TransactionStore

logger = logging.getLogger(__name__)


@dataclass
class Services:
    store: TransactionStore
    analytics: FinanceAnalytics
    budgets: BudgetManager
    reports: ReportBuilder


def build_services(storage, today: Callable[[], date] = date.today) -> Services:
    """Wire the store and engines together around one storage backend."""
    store = TransactionStore.load(storage, today=today)
    analytics = FinanceAnalytics(store, today=today)
    return Services(
        store=store,
        analytics=analytics,
        budgets=BudgetManager(storage, analytics),
        reports=ReportBuilder(analytics),
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog='finance-tracker', description='Track income, expenses and budgets.')
    parser.add_argument('--storage', type=Path, default=None, help=f'Storage file (default {STORAGE_PATH})')
    commands = parser.add_subparsers(dest='command', required=True)

    add = commands.add_parser('add', help='Record an income or expense')
    add.add_argument('type', choices=TRANSACTION_TYPES)
    add.add_argument('amount')
    add.add_argument(
        'category',
        help=f"Income: {', '.join(INCOME_CATEGORIES)}. Expense: {', '.join(EXPENSE_CATEGORIES)}",
    )
    add.add_argument('--date', default=None, help='YYYY-MM-DD, defaults to today')
    add.add_argument('--description', default='')
    add.add_argument('--image', default=None, help='Receipt image file or URL')

    delete = commands.add_parser('delete', help='Delete a transaction')
    delete.add_argument('id', type=int)

    listing = commands.add_parser('list', help='List transactions, newest first')
    listing.add_argument('--type', choices=TRANSACTION_TYPES, default=None)
    listing.add_argument('--category', default=None)
    listing.add_argument('--month', default=None, help='YYYY-MM')

    commands.add_parser('balance', help='Show total income, expenses and balance')

    budget = commands.add_parser('budget', help='Manage budgets')
    budget_commands = budget.add_subparsers(dest='budget_command', required=True)
    budget_set = budget_commands.add_parser('set', help='Set a monthly or category budget')
    budget_set.add_argument('month', help='YYYY-MM')
    budget_set.add_argument('amount')
    budget_set.add_argument('--category', default=None)
    budget_status = budget_commands.add_parser('status', help='Show budget progress for a month')
    budget_status.add_argument('month', nargs='?', default=None)
    budget_commands.add_parser('history', help='Show recent monthly budgets')

    report = commands.add_parser('report', help='Build a period report')
    report.add_argument('period', nargs='?', default='current_month', choices=REPORT_PERIODS)
    report.add_argument('--start', default=None, help='Custom start month YYYY-MM')
    report.add_argument('--end', default=None, help='Custom end month YYYY-MM')
    report.add_argument('--export', type=Path, default=None, help='Write the report to a CSV file')
    return parser


# ---------------------------------------------------------------------------
# Command handlers
# ---------------------------------------------------------------------------


def _print_status(label: str, status: BudgetStatus) -> None:
    print(
        f"{label}: {format_currency(status.spent)} of {format_currency(status.budget_amount)} "
        f"({format_percent(status.progress_percent)}, {status.band}), "
        f"{format_currency(status.remaining)} remaining"
    )


def _cmd_add(services: Services, args: argparse.Namespace) -> None:
    transaction = services.store.add_transaction(
        args.type, args.amount, args.category,
        date=args.date, description=args.description, image=args.image,
    )
    print(f"Added {transaction.type} #{transaction.id}: {format_currency(transaction.amount)} on {transaction.date}")


def _cmd_delete(services: Services, args: argparse.Namespace) -> int:
    if not services.store.delete_transaction(args.id):
        print(f"No transaction with id {args.id}", file=sys.stderr)
        return 1
    print(f"Deleted transaction #{args.id}")
    return 0


def _cmd_list(services: Services, args: argparse.Namespace) -> None:
    transactions = services.analytics.filter_transactions(type=args.type, category=args.category, month=args.month)
    if not transactions:
        print("No transactions found.")
        return
    for t in transactions:
        sign = '+' if t.type == 'income' else '-'
        line = f"#{t.id}  {format_date(t.date)}  {sign}{format_currency(t.amount)}  {format_category(t.category)}"
        if t.description:
            line += f"  {t.description}"
        print(line)


def _cmd_balance(services: Services, args: argparse.Namespace) -> None:
    print(f"Income:   {format_currency(services.analytics.total_income())}")
    print(f"Expenses: {format_currency(services.analytics.total_expenses())}")
    print(f"Balance:  {format_currency(services.analytics.total_balance())}")


def _cmd_budget(services: Services, args: argparse.Namespace) -> None:
    budgets = services.budgets
    if args.budget_command == 'set':
        if args.category:
            budgets.set_category_budget(args.month, args.category, args.amount)
            print(f"Budget for {format_category(args.category)} in {format_month(args.month)} set.")
        else:
            budgets.set_monthly_budget(args.month, args.amount)
            print(f"Monthly budget for {format_month(args.month)} set.")
    elif args.budget_command == 'status':
        month = args.month or services.analytics.current_month()
        status = budgets.budget_status(month)
        if status is None:
            print(f"No budget set for {format_month(month)}")
        else:
            _print_status(format_month(month), status)
        for category, category_status in budgets.category_budget_status(month).items():
            _print_status(f"  {format_category(category)}", category_status)
    else:
        history = budgets.budget_history()
        if not history:
            print("No budget history")
        for entry in history:
            status = entry['status']
            print(
                f"{format_month(entry['month'])}: budget {format_currency(status.budget_amount)}, "
                f"spent {format_currency(status.spent)}, "
                f"{'Overspent' if entry['outcome'] == 'overspent' else 'Saved'} {format_currency(entry['difference'])}"
            )


def _cmd_report(services: Services, args: argparse.Namespace) -> None:
    report = services.reports.build_report(args.period, start_month=args.start, end_month=args.end)
    start, end = report.date_range.start, report.date_range.end
    print(f"Report {start.isoformat()} to {end.isoformat()}")
    print(f"  Income:       {format_currency(report.total_income)} ({format_trend(report.income_trend)})")
    print(f"  Expenses:     {format_currency(report.total_expenses)} ({format_trend(report.expenses_trend)})")
    print(f"  Net savings:  {format_currency(report.net_savings)} ({format_trend(report.savings_trend)})")
    print(f"  Savings rate: {format_percent(report.savings_rate)}")
    print("\nMonthly trend:")
    for trend in report.monthly_trends:
        print(
            f"  {format_month(trend.month):<15} {format_currency(trend.income):>12} "
            f"{format_currency(trend.expenses):>12} {format_percent(trend.savings_rate):>8}"
        )
    if report.category_breakdown:
        print("\nExpenses by category:")
        for row in report.category_breakdown:
            print(f"  {format_category(row['category']):<20} {format_currency(row['amount']):>12} {format_percent(row['percentage']):>8}")
    print()
    for insight in report.insights:
        print(insight)
    if args.export is not None:
        path = export_report_csv(report, args.export)
        print(f"\nReport exported to {path}")


def main(argv: Optional[List[str]] = None, storage=None, today: Callable[[], date] = date.today) -> int:
    logging.basicConfig(
        level=getattr(logging, LOG_LEVEL, logging.WARNING),
        format='%(asctime)s %(levelname)s %(name)s: %(message)s',
    )
    args = build_parser().parse_args(argv)
    if storage is None:
        storage = JsonFileStorage(args.storage)
    services = build_services(storage, today=today)

    handlers = {
        'add': _cmd_add,
        'delete': _cmd_delete,
        'list': _cmd_list,
        'balance': _cmd_balance,
        'budget': _cmd_budget,
        'report': _cmd_report,
    }
    try:
        result = handlers[args.command](services, args)
    except InvalidInput as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 2
    return result or 0


if __name__ == '__main__':
    sys.exit(main())
