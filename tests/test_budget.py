"""Tests for budgets and their progress against recorded expenses."""

from __future__ import annotations

from datetime import date

import pytest

from finance_tracker.aggregation import FinanceAnalytics
from finance_tracker.budget import (
    CRITICAL,
    NOMINAL,
    WARNING,
    BudgetManager,
    BudgetStatus,
    progress_band,
    progress_percent,
)
from finance_tracker.exceptions import InvalidInput
from finance_tracker.storage import MemoryStorage
from finance_tracker.store import TransactionStore


def _setup(storage=None):
    storage = storage or MemoryStorage()
    today = lambda: date(2024, 6, 15)  # noqa: E731
    store = TransactionStore.load(storage, today=today)
    analytics = FinanceAnalytics(store, today=today)
    return store, BudgetManager(storage, analytics), storage


def test_budget_status_scenario():
    store, budgets, _ = _setup()
    budgets.set_monthly_budget('2024-06', 1000)
    store.add_transaction('expense', 300, 'food', date='2024-06-03')
    store.add_transaction('expense', 400, 'housing', date='2024-06-10')
    store.add_transaction('income', 5000, 'salary', date='2024-06-01')
    store.add_transaction('expense', 999, 'food', date='2024-05-31')

    status = budgets.budget_status('2024-06')
    assert status.spent == pytest.approx(700.0)
    assert status.remaining == pytest.approx(300.0)
    assert status.progress_percent == pytest.approx(70.0)
    assert status.band == NOMINAL
    assert not status.overspent


def test_status_defaults_to_current_month():
    store, budgets, _ = _setup()
    budgets.set_monthly_budget('2024-06', 200)
    store.add_transaction('expense', 190, 'food')
    assert budgets.budget_status().band == CRITICAL


def test_unset_budget_has_no_status():
    _, budgets, _ = _setup()
    assert budgets.budget_status('2024-06') is None
    assert budgets.budget_overview('2024-06')['status'] is None


def test_progress_is_capped_but_remaining_goes_negative():
    store, budgets, _ = _setup()
    budgets.set_monthly_budget('2024-06', 100)
    store.add_transaction('expense', 250, 'food', date='2024-06-02')

    status = budgets.budget_status('2024-06')
    assert status.progress_percent == 100.0
    assert status.remaining == pytest.approx(-150.0)
    assert status.overspent


@pytest.mark.parametrize(
    'percent, band',
    [
        (0.0, NOMINAL),
        (75.0, NOMINAL),
        (75.5, WARNING),
        (90.0, WARNING),
        (90.01, CRITICAL),
        (100.0, CRITICAL),
    ],
)
def test_progress_band_boundaries(percent, band):
    assert progress_band(percent) == band


def test_progress_percent_without_budget():
    assert progress_percent(0, 0) == 0.0
    assert progress_percent(10, 0) == 100.0


def test_status_to_dict_includes_band():
    data = BudgetStatus.compute('2024-06', 1000, 800).to_dict()
    assert data['band'] == WARNING
    assert data['remaining'] == 200


@pytest.mark.parametrize('amount', [0, -10, 'ten', None, float('inf')])
def test_invalid_budget_amount_rejected(amount):
    _, budgets, storage = _setup()
    with pytest.raises(InvalidInput):
        budgets.set_monthly_budget('2024-06', amount)
    assert budgets.get_monthly_budget('2024-06') is None
    assert storage.load('budgets') is None


@pytest.mark.parametrize('month', ['2024-6', '2024-13', 'June', ''])
def test_invalid_budget_month_rejected(month):
    _, budgets, _ = _setup()
    with pytest.raises(InvalidInput):
        budgets.set_monthly_budget(month, 100)


def test_budgets_stored_by_month_with_set_date():
    _, budgets, storage = _setup()
    budgets.set_monthly_budget('2024-06', 1000)
    budgets.set_category_budget('2024-06', 'food', 300)

    stored = storage.load('budgets')
    assert stored['2024-06']['amount'] == 1000.0
    assert stored['2024-06']['setDate']
    assert storage.load('categoryBudgets')['2024-06']['food']['amount'] == 300.0

    _, reloaded, _ = _setup(storage)
    assert reloaded.get_monthly_budget('2024-06').amount == 1000.0
    assert set(reloaded.get_category_budgets('2024-06')) == {'food'}


def test_category_budget_status():
    store, budgets, _ = _setup()
    budgets.set_category_budget('2024-06', 'food', 200)
    budgets.set_category_budget('2024-06', 'entertainment', 100)
    store.add_transaction('expense', 170, 'food', date='2024-06-05')

    statuses = budgets.category_budget_status('2024-06')
    assert statuses['food'].spent == 170.0
    assert statuses['food'].band == WARNING
    assert statuses['entertainment'].spent == 0.0
    assert statuses['entertainment'].progress_percent == 0.0
    assert budgets.category_budget_status('2024-05') == {}


def test_delete_budgets():
    _, budgets, _ = _setup()
    budgets.set_monthly_budget('2024-06', 1000)
    budgets.set_category_budget('2024-06', 'food', 300)

    assert budgets.delete_monthly_budget('2024-06') is True
    assert budgets.delete_monthly_budget('2024-06') is False
    assert budgets.delete_category_budget('2024-06', 'food') is True
    assert budgets.delete_category_budget('2024-06', 'food') is False
    assert budgets.get_category_budgets('2024-06') == {}


def test_budget_history_newest_first_and_limited():
    store, budgets, _ = _setup()
    for month in ['2023-12', '2024-01', '2024-02', '2024-03', '2024-04', '2024-05', '2024-06']:
        budgets.set_monthly_budget(month, 500)
    store.add_transaction('expense', 650, 'housing', date='2024-05-01')
    store.add_transaction('expense', 100, 'food', date='2024-06-01')

    history = budgets.budget_history()
    assert [entry['month'] for entry in history] == [
        '2024-06', '2024-05', '2024-04', '2024-03', '2024-02', '2024-01',
    ]
    assert history[0]['outcome'] == 'saved'
    assert history[0]['difference'] == pytest.approx(400.0)
    assert history[1]['outcome'] == 'overspent'
    assert history[1]['difference'] == pytest.approx(150.0)
    assert len(budgets.budget_history(limit=2)) == 2


def test_malformed_stored_budgets_are_skipped():
    storage = MemoryStorage({
        'budgets': {
            'bad': {'amount': 100, 'setDate': 'x'},
            '2024-06': {'amount': 500, 'setDate': 'x'},
            '2024-05': {'amount': 'lots', 'setDate': 'x'},
            '2024-04': 7,
        },
        'categoryBudgets': {'June': {'food': {'amount': 50}}, '2024-06': {'food': {'amount': 80}}},
    })
    _, budgets, _ = _setup(storage)

    assert [entry['month'] for entry in budgets.budget_history()] == ['2024-06']
    assert set(budgets.category_budget_status('2024-06')) == {'food'}
