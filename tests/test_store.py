from datetime import date

import pytest

from finance_tracker import aggregation as agg
from finance_tracker.exceptions import InvalidInput
from finance_tracker.storage import MemoryStorage
from finance_tracker.store import IdGenerator, LedgerManager, TransactionStore

PNG_BYTES = b'\x89PNG\r\n\x1a\n' + b'\x00' * 8


def _store(**kwargs):
    kwargs.setdefault('today', lambda: date(2024, 6, 15))
    return TransactionStore(**kwargs)


def test_add_transaction_defaults_date_to_today():
    store = _store()
    tx = store.add_transaction('expense', '42.50', 'food', description='  Groceries ')
    assert tx.date == '2024-06-15'
    assert tx.amount == 42.5
    assert tx.description == 'Groceries'
    assert tx.created_at is not None
    assert store.get_transaction(tx.id) is tx


def test_type_is_normalised():
    tx = _store().add_transaction('INCOME', 100, 'salary', date='2024-06-01')
    assert tx.type == 'income'


@pytest.mark.parametrize(
    'kwargs',
    [
        {'type': 'expense', 'amount': 0, 'category': 'food'},
        {'type': 'expense', 'amount': -5, 'category': 'food'},
        {'type': 'expense', 'amount': 'abc', 'category': 'food'},
        {'type': 'expense', 'amount': float('nan'), 'category': 'food'},
        {'type': 'expense', 'amount': '', 'category': 'food'},
        {'type': 'transfer', 'amount': 10, 'category': 'food'},
        {'type': 'expense', 'amount': 10, 'category': '  '},
        {'type': 'expense', 'amount': 10, 'category': 'food', 'date': '2024-13-01'},
        {'type': 'expense', 'amount': 10, 'category': 'food', 'date': 'yesterday'},
    ],
)
def test_invalid_input_leaves_store_unchanged(kwargs):
    calls = []
    store = _store(on_change=calls.append)
    store.add_transaction('income', 1000, 'salary', date='2024-06-01')
    before = [t.to_dict() for t in store]

    with pytest.raises(InvalidInput):
        store.add_transaction(**kwargs)

    assert [t.to_dict() for t in store] == before
    assert len(calls) == 1


def test_update_transaction():
    store = _store()
    tx = store.add_transaction('expense', 50, 'food', date='2024-06-02')

    assert store.update_transaction(tx.id, amount='75', category='shopping') is True
    updated = store.get_transaction(tx.id)
    assert updated.amount == 75.0
    assert updated.category == 'shopping'
    assert updated.date == '2024-06-02'

    assert store.update_transaction(999, amount=10) is False


def test_invalid_update_writes_nothing():
    store = _store()
    tx = store.add_transaction('expense', 50, 'food', date='2024-06-02')

    with pytest.raises(InvalidInput):
        store.update_transaction(tx.id, category='rent', amount=-1)
    assert store.get_transaction(tx.id).category == 'food'

    with pytest.raises(InvalidInput):
        store.update_transaction(tx.id, id=5)


def test_delete_transaction_reports_unknown_ids():
    store = _store()
    tx = store.add_transaction('expense', 50, 'food')
    assert store.delete_transaction(tx.id) is True
    assert store.delete_transaction(tx.id) is False
    assert len(store) == 0


def test_add_then_delete_restores_aggregates():
    store = _store()
    store.add_transaction('income', 3000, 'salary', date='2024-06-01')
    store.add_transaction('expense', 900, 'housing', date='2024-06-03')
    balance = agg.calculate_total_balance(store.transactions)
    by_category = agg.group_by_category(store.transactions)

    tx = store.add_transaction('expense', 120, 'food', date='2024-06-04')
    assert agg.calculate_total_balance(store.transactions) == pytest.approx(balance - 120)

    store.delete_transaction(tx.id)
    assert agg.calculate_total_balance(store.transactions) == pytest.approx(balance)
    assert agg.group_by_category(store.transactions) == by_category


def test_id_generator_never_repeats():
    generate = IdGenerator(clock=lambda: 1000)
    assert [generate(), generate(), generate()] == [1000, 1001, 1002]


def test_id_generator_skips_observed_ids():
    generate = IdGenerator(clock=lambda: 10)
    generate.observe([10, 25])
    assert generate() == 26


def test_ids_unique_within_same_millisecond():
    store = _store(id_generator=IdGenerator(clock=lambda: 1718000000000))
    ids = [store.add_transaction('expense', 1, 'food').id for _ in range(5)]
    assert len(set(ids)) == 5


def test_store_persists_and_reloads():
    storage = MemoryStorage()
    store = TransactionStore.load(storage, today=lambda: date(2024, 6, 15))
    tx = store.add_transaction('expense', 12.5, 'food', description='Lunch')

    stored = storage.load('transactions')
    assert stored[0]['createdAt'] == tx.created_at

    reloaded = TransactionStore.load(storage)
    assert [t.to_dict() for t in reloaded] == [tx.to_dict()]


def test_load_skips_malformed_records():
    storage = MemoryStorage({'transactions': [
        {'id': 1, 'type': 'expense', 'amount': 5, 'category': 'food', 'date': '2024-06-01'},
        {'type': 'expense'},
    ]})
    store = TransactionStore.load(storage)
    assert [t.id for t in store] == [1]


def test_two_phase_add_with_image(tmp_path):
    image = tmp_path / 'receipt.png'
    image.write_bytes(PNG_BYTES)
    store = _store()

    pending = store.stage_transaction('expense', 30, 'shopping', date='2024-06-10')
    assert len(store) == 0

    pending.attach_image(image)
    tx = store.commit(pending)
    assert tx.image.startswith('data:image/png;base64,')
    assert len(store) == 1

    with pytest.raises(InvalidInput):
        store.commit(pending)
    with pytest.raises(InvalidInput):
        pending.attach_image(image)


def test_image_must_be_an_image(tmp_path):
    notes = tmp_path / 'notes.txt'
    notes.write_text('not an image')
    store = _store()
    with pytest.raises(InvalidInput):
        store.add_transaction('expense', 10, 'food', image=notes)
    assert len(store) == 0


def test_image_urls_pass_through():
    tx = _store().add_transaction('expense', 10, 'food', image='https://example.com/r.jpg')
    assert tx.image == 'https://example.com/r.jpg'


# Multi-file ledgers -------------------------------------------------------------


def test_ledger_files_keep_separate_transactions():
    storage = MemoryStorage()
    manager = LedgerManager(storage, today=lambda: date(2024, 6, 15))
    home = manager.create_file('Home', 'Household')
    work = manager.create_file('Work')

    manager.add_transaction(home.id, 'income', 2000, 'Salary')
    manager.add_transaction(home.id, 'expense', 800, 'Rent')
    manager.add_transaction(work.id, 'expense', 50, 'Transport')

    assert manager.file_stats(home.id) == {'income': 2000.0, 'expense': 800.0, 'balance': 1200.0}
    assert manager.overall_stats()['total_balance'] == pytest.approx(1150.0)
    assert manager.add_transaction(12345, 'expense', 1, 'Other') is None


def test_ledger_state_round_trips_through_storage():
    storage = MemoryStorage()
    manager = LedgerManager(storage)
    ledger = manager.create_file('Trip')
    tx = manager.add_transaction(ledger.id, 'expense', 99, 'Transport', date='2024-05-01')

    reloaded = LedgerManager(storage)
    stored = reloaded.get_file(ledger.id)
    assert stored.name == 'Trip'
    assert [t.id for t in stored.transactions] == [tx.id]


def test_ledger_update_and_delete():
    manager = LedgerManager(MemoryStorage())
    ledger = manager.create_file('Old')
    tx = manager.add_transaction(ledger.id, 'expense', 10, 'Food')

    assert manager.update_file(ledger.id, name='New') is True
    assert manager.get_file(ledger.id).name == 'New'
    assert manager.update_transaction(ledger.id, tx.id, amount=20) is True
    assert manager.get_file(ledger.id).transactions[0].amount == 20.0
    assert manager.delete_transaction(ledger.id, tx.id) is True
    assert manager.delete_transaction(ledger.id, tx.id) is False

    assert manager.delete_file(ledger.id) is True
    assert manager.delete_file(ledger.id) is False
    assert manager.update_file(ledger.id, name='x') is False


def test_ledger_categories():
    storage = MemoryStorage()
    manager = LedgerManager(storage)
    assert 'Salary' in manager.categories
    assert manager.add_category('Pets') is True
    assert manager.add_category('Pets') is False
    assert 'Pets' in LedgerManager(storage).categories


@pytest.mark.parametrize('stored', [5, 'oops', {'id': 1}])
def test_non_list_stored_values_load_as_empty(stored):
    storage = MemoryStorage({'transactions': stored, 'files': stored})
    assert len(TransactionStore.load(storage)) == 0
    assert LedgerManager(storage).files == []


@pytest.mark.parametrize(
    'record',
    [
        {'id': 2, 'type': 'expense', 'amount': -5, 'category': 'food', 'date': '2024-06-01'},
        {'id': 2, 'type': 'transfer', 'amount': 5, 'category': 'food', 'date': '2024-06-01'},
        {'id': 2, 'type': 'expense', 'amount': 5, 'category': 'food', 'date': '2024-02-30'},
        {'id': 2, 'type': 'expense', 'amount': 5, 'category': 'food', 'date': None},
        {'id': 2, 'type': 'expense', 'amount': 'NaN', 'category': 'food', 'date': '2024-06-01'},
    ],
)
def test_load_skips_records_breaking_invariants(record):
    valid = {'id': 1, 'type': 'expense', 'amount': 5, 'category': 'food', 'date': '2024-06-01'}
    storage = MemoryStorage({
        'transactions': [valid, record],
        'files': [{'id': 10, 'name': 'Home', 'transactions': [valid, record]}],
    })

    assert [t.id for t in TransactionStore.load(storage)] == [1]
    ledger = LedgerManager(storage).get_file(10)
    assert [t.id for t in ledger.transactions] == [1]
