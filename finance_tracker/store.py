"""Transaction ownership: the flat store and the multi-file ledger manager.

:class:`TransactionStore` is the single source of truth for one ordered
transaction list.  Every mutation validates first, changes the list in
place, and then hands the whole list to its ``on_change`` hook, which
persists it.  :class:`LedgerManager` owns a list of named files, each
with its own transaction list, and reuses :class:`TransactionStore` to
mutate them.

Adding a transaction with a receipt image is a two-phase operation:
``stage_transaction`` validates and captures the fields,
:meth:`PendingTransaction.attach_image` reads the image, and ``commit``
creates the record.  Nothing is stored until ``commit`` runs.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from datetime import date, datetime, timezone
from pathlib import Path
from typing import Any, Callable, Dict, Iterable, Iterator, List, Optional, Union

from . import aggregation
from .attachments import resolve_image
from .config import DEFAULT_LEDGER_CATEGORIES
from .exceptions import InvalidInput
from .models import (
    Ledger,
    Transaction,
    load_transactions,
    parse_date,
    validate_amount,
    validate_text,
    validate_type,
)

logger = logging.getLogger(__name__)

UPDATABLE_FIELDS = ('type', 'amount', 'category', 'date', 'description', 'image')


def _now_millis() -> int:
    return int(time.time() * 1000)


def _utc_timestamp() -> str:
    return datetime.now(timezone.utc).isoformat()


class IdGenerator:
    """Millisecond timestamp ids that never repeat.

    Two ids requested within the same millisecond (or after the clock
    moves backwards) are bumped past the last one issued.
    """

    def __init__(self, clock: Callable[[], int] = _now_millis, last_id: int = 0):
        self._clock = clock
        self._last = last_id

    def observe(self, ids: Iterable[int]) -> None:
        """Make sure future ids sort after every id in ``ids``."""
        self._last = max([self._last, *ids])

    def __call__(self) -> int:
        candidate = int(self._clock())
        if candidate <= self._last:
            candidate = self._last + 1
        self._last = candidate
        return candidate


@dataclass
class PendingTransaction:
    """Validated transaction fields waiting to be committed."""

    type: str
    amount: float
    category: str
    date: str
    description: str = ''
    image: Optional[str] = None
    committed: bool = False

    def attach_image(self, reference: Union[str, Path]) -> 'PendingTransaction':
        """Read the receipt image; must finish before ``commit``."""
        if self.committed:
            raise InvalidInput("transaction already committed", field="image")
        self.image = resolve_image(reference)
        return self


class TransactionStore:
    """Ordered transaction list with validated add/update/delete."""

    def __init__(
        self,
        transactions: Optional[List[Transaction]] = None,
        on_change: Optional[Callable[[List[Transaction]], Any]] = None,
        id_generator: Optional[IdGenerator] = None,
        today: Callable[[], date] = date.today,
    ):
        self._transactions: List[Transaction] = transactions if transactions is not None else []
        self._on_change = on_change
        self._today = today
        self._next_id = id_generator or IdGenerator()
        self._next_id.observe(t.id for t in self._transactions)

    @classmethod
    def load(cls, storage, key: str = 'transactions', **kwargs) -> 'TransactionStore':
        """Build a store from ``storage`` that saves back under ``key``."""
        transactions = load_transactions(storage.load(key))

        def persist(items: List[Transaction]) -> None:
            storage.save(key, [t.to_dict() for t in items])

        return cls(transactions, on_change=persist, **kwargs)

    @property
    def transactions(self) -> List[Transaction]:
        return list(self._transactions)

    def __len__(self) -> int:
        return len(self._transactions)

    def __iter__(self) -> Iterator[Transaction]:
        return iter(list(self._transactions))

    def _changed(self) -> None:
        if self._on_change is not None:
            self._on_change(self._transactions)

    def _index_of(self, transaction_id: int) -> int:
        for index, transaction in enumerate(self._transactions):
            if transaction.id == transaction_id:
                return index
        return -1

    # Add -------------------------------------------------------------------

    def stage_transaction(
        self,
        type: str,
        amount: Any,
        category: str,
        date: Any = None,
        description: Optional[str] = '',
    ) -> PendingTransaction:
        """Validate fields for a new transaction without storing it."""
        return PendingTransaction(
            type=validate_type(type),
            amount=validate_amount(amount),
            category=validate_text(category, 'category'),
            date=parse_date(date if date not in (None, '') else self._today()),
            description=(description or '').strip(),
        )

    def commit(self, pending: PendingTransaction) -> Transaction:
        """Create the transaction described by ``pending``."""
        if pending.committed:
            raise InvalidInput("transaction already committed")
        transaction = Transaction(
            id=self._next_id(),
            type=pending.type,
            amount=pending.amount,
            category=pending.category,
            date=pending.date,
            description=pending.description,
            image=pending.image,
            created_at=_utc_timestamp(),
        )
        pending.committed = True
        self._transactions.append(transaction)
        self._changed()
        logger.info("Added %s %s of %.2f (%s)", transaction.type, transaction.id, transaction.amount, transaction.date)
        return transaction

    def add_transaction(
        self,
        type: str,
        amount: Any,
        category: str,
        date: Any = None,
        description: Optional[str] = '',
        image: Optional[Union[str, Path]] = None,
    ) -> Transaction:
        pending = self.stage_transaction(type, amount, category, date, description)
        if image:
            pending.attach_image(image)
        return self.commit(pending)

    # Read / update / delete --------------------------------------------------

    def get_transaction(self, transaction_id: int) -> Optional[Transaction]:
        index = self._index_of(transaction_id)
        return self._transactions[index] if index >= 0 else None

    def update_transaction(self, transaction_id: int, **changes: Any) -> bool:
        """Apply ``changes`` to a transaction.

        Returns ``False`` when the id is unknown.  Every change is validated
        before any field is written.
        """
        unknown = set(changes) - set(UPDATABLE_FIELDS)
        if unknown:
            raise InvalidInput(f"Cannot update field(s): {', '.join(sorted(unknown))}")

        index = self._index_of(transaction_id)
        if index < 0:
            return False

        validated: Dict[str, Any] = {}
        if 'type' in changes:
            validated['type'] = validate_type(changes['type'])
        if 'amount' in changes:
            validated['amount'] = validate_amount(changes['amount'])
        if 'category' in changes:
            validated['category'] = validate_text(changes['category'], 'category')
        if 'date' in changes:
            validated['date'] = parse_date(changes['date'])
        if 'description' in changes:
            validated['description'] = (changes['description'] or '').strip()
        if 'image' in changes:
            validated['image'] = resolve_image(changes['image']) if changes['image'] else None

        transaction = self._transactions[index]
        for name, value in validated.items():
            setattr(transaction, name, value)
        self._changed()
        logger.info("Updated transaction %s: %s", transaction_id, ', '.join(sorted(validated)) or 'no changes')
        return True

    def delete_transaction(self, transaction_id: int) -> bool:
        index = self._index_of(transaction_id)
        if index < 0:
            return False
        del self._transactions[index]
        self._changed()
        logger.info("Deleted transaction %s", transaction_id)
        return True


class LedgerManager:
    """Owns the named files of the multi-file variant and their transactions."""

    def __init__(
        self,
        storage,
        id_generator: Optional[IdGenerator] = None,
        today: Callable[[], date] = date.today,
    ):
        self._storage = storage
        self._today = today
        self._next_id = id_generator or IdGenerator()
        self._files: List[Ledger] = []
        stored_files = storage.load('files')
        if stored_files is not None and not isinstance(stored_files, list):
            logger.warning("Ignoring stored files: expected a list, got %s", type(stored_files).__name__)
            stored_files = None
        for raw in stored_files or []:
            try:
                self._files.append(Ledger.from_dict(raw))
            except (KeyError, TypeError, ValueError) as exc:
                logger.warning("Skipping malformed stored file %r: %s", raw, exc)
        stored_categories = storage.load('categories')
        self._categories: List[str] = (
            list(stored_categories) if isinstance(stored_categories, list) else list(DEFAULT_LEDGER_CATEGORIES)
        )
        self._next_id.observe(f.id for f in self._files)
        self._next_id.observe(t.id for f in self._files for t in f.transactions)

    def _save(self, *_: Any) -> None:
        if not self._storage.save('files', [f.to_dict() for f in self._files]):
            logger.warning("Files were not persisted; changes are held in memory only")

    # Files -------------------------------------------------------------------

    @property
    def files(self) -> List[Ledger]:
        return list(self._files)

    def create_file(self, name: str, description: Optional[str] = '') -> Ledger:
        ledger = Ledger(
            id=self._next_id(),
            name=validate_text(name, 'name'),
            description=(description or '').strip(),
            created_at=_utc_timestamp(),
        )
        self._files.append(ledger)
        self._save()
        logger.info("Created file %s (%s)", ledger.id, ledger.name)
        return ledger

    def get_file(self, file_id: int) -> Optional[Ledger]:
        return next((f for f in self._files if f.id == file_id), None)

    def update_file(self, file_id: int, name: Optional[str] = None, description: Optional[str] = None) -> bool:
        ledger = self.get_file(file_id)
        if ledger is None:
            return False
        new_name = validate_text(name, 'name') if name is not None else ledger.name
        ledger.name = new_name
        if description is not None:
            ledger.description = description.strip()
        self._save()
        return True

    def delete_file(self, file_id: int) -> bool:
        remaining = [f for f in self._files if f.id != file_id]
        if len(remaining) == len(self._files):
            return False
        self._files = remaining
        self._save()
        logger.info("Deleted file %s", file_id)
        return True

    def open_file(self, file_id: int) -> Optional[TransactionStore]:
        """Return a store bound to the file's own transaction list."""
        ledger = self.get_file(file_id)
        if ledger is None:
            return None
        return TransactionStore(
            ledger.transactions,
            on_change=self._save,
            id_generator=self._next_id,
            today=self._today,
        )

    # Transactions ------------------------------------------------------------

    def add_transaction(self, file_id: int, type: str, amount: Any, category: str, **fields: Any) -> Optional[Transaction]:
        store = self.open_file(file_id)
        if store is None:
            return None
        return store.add_transaction(type, amount, category, **fields)

    def update_transaction(self, file_id: int, transaction_id: int, **changes: Any) -> bool:
        store = self.open_file(file_id)
        return store.update_transaction(transaction_id, **changes) if store is not None else False

    def delete_transaction(self, file_id: int, transaction_id: int) -> bool:
        store = self.open_file(file_id)
        return store.delete_transaction(transaction_id) if store is not None else False

    # Stats -------------------------------------------------------------------

    def file_stats(self, file_id: int) -> Optional[Dict[str, float]]:
        ledger = self.get_file(file_id)
        return aggregation.calculate_file_stats(ledger.transactions) if ledger is not None else None

    def overall_stats(self) -> Dict[str, float]:
        return aggregation.calculate_overall_stats([f.transactions for f in self._files])

    # Categories --------------------------------------------------------------

    @property
    def categories(self) -> List[str]:
        return list(self._categories)

    def add_category(self, name: str) -> bool:
        category = validate_text(name, 'category')
        if category in self._categories:
            return False
        self._categories.append(category)
        self._storage.save('categories', self._categories)
        return True
