"""Key-value persistence for finance tracker state.

The core only needs two calls from its storage collaborator:
``load(key)`` which returns ``None`` when nothing usable is stored, and
``save(key, value)`` which reports success as a bool and never raises.
:class:`JsonFileStorage` keeps every key in a single JSON document on
disk; :class:`MemoryStorage` keeps them in a dict for tests and
throwaway sessions.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Dict, Optional

from .config import STORAGE_KEY_PREFIX, STORAGE_PATH

logger = logging.getLogger(__name__)


class JsonFileStorage:
    """Stores prefixed keys in one JSON file."""

    def __init__(self, path: Optional[Path] = None, prefix: str = STORAGE_KEY_PREFIX):
        self.path = Path(path) if path is not None else STORAGE_PATH
        self.prefix = prefix

    def _key(self, key: str) -> str:
        return f"{self.prefix}{key}"

    def _read_all(self) -> Dict[str, Any]:
        if not self.path.exists():
            return {}
        try:
            with self.path.open('r', encoding='utf-8') as handle:
                data = json.load(handle)
        except (json.JSONDecodeError, OSError) as exc:
            logger.warning("Could not read storage file %s: %s", self.path, exc)
            return {}
        if not isinstance(data, dict):
            logger.warning("Ignoring storage file %s: expected a JSON object", self.path)
            return {}
        return data

    def load(self, key: str) -> Optional[Any]:
        return self._read_all().get(self._key(key))

    def save(self, key: str, value: Any) -> bool:
        data = self._read_all()
        data[self._key(key)] = value
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with self.path.open('w', encoding='utf-8') as handle:
                json.dump(data, handle, indent=2, sort_keys=True)
        except (OSError, TypeError, ValueError) as exc:
            logger.error("Error saving %s to %s: %s", key, self.path, exc)
            return False
        logger.debug("Saved %s to %s", key, self.path)
        return True


class MemoryStorage:
    """In-process storage with the same JSON round-trip semantics."""

    def __init__(self, initial: Optional[Dict[str, Any]] = None):
        self._data: Dict[str, str] = {}
        for key, value in (initial or {}).items():
            self.save(key, value)

    def load(self, key: str) -> Optional[Any]:
        raw = self._data.get(key)
        return json.loads(raw) if raw is not None else None

    def save(self, key: str, value: Any) -> bool:
        try:
            self._data[key] = json.dumps(value)
        except (TypeError, ValueError) as exc:
            logger.error("Error saving %s: %s", key, exc)
            return False
        return True

    def keys(self):
        return list(self._data)
