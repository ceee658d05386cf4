#!/usr/bin/env python3
"""
Key-value storage boundary for persisted runner state.

The recommender only needs get(key) -> str | None, set(key, str) and
remove(key). Values are JSON documents; load_json/save_json wrap the
encoding. Two backends:
  - MemoryStore: process-local dict (tests, API previews)
  - FileStore:   one <key>.json file per key under a directory, written
                 atomically
"""

import json
import re
from pathlib import Path
from typing import Any, Dict, Optional

from atomic_write import safe_write_text

STORAGE_KEY_PATTERN = re.compile(r'^[A-Za-z0-9][A-Za-z0-9_.-]{0,127}$')


class StoreError(Exception):
    """Raised when a storage key is invalid or the backend fails."""


def _check_key(key: str) -> str:
    if not isinstance(key, str) or not STORAGE_KEY_PATTERN.match(key) or '..' in key:
        raise StoreError(f"Invalid storage key: {key!r}")
    return key


class MemoryStore:
    """In-memory store."""

    def __init__(self, initial: Optional[Dict[str, str]] = None):
        self._data: Dict[str, str] = dict(initial or {})

    def get(self, key: str) -> Optional[str]:
        return self._data.get(_check_key(key))

    def set(self, key: str, value: str):
        self._data[_check_key(key)] = value

    def remove(self, key: str):
        self._data.pop(_check_key(key), None)

    def keys(self):
        return sorted(self._data)


class FileStore:
    """Directory-backed store: one JSON document per key."""

    def __init__(self, root: Path):
        self.root = Path(root)

    def _path(self, key: str) -> Path:
        return self.root / f"{_check_key(key)}.json"

    def get(self, key: str) -> Optional[str]:
        path = self._path(key)
        if not path.exists():
            return None
        try:
            return path.read_text(encoding='utf-8')
        except OSError as e:
            raise StoreError(f"Could not read {key}: {e}") from e

    def set(self, key: str, value: str):
        try:
            safe_write_text(self._path(key), value)
        except OSError as e:
            raise StoreError(f"Could not write {key}: {e}") from e

    def remove(self, key: str):
        path = self._path(key)
        try:
            path.unlink()
        except FileNotFoundError:
            pass
        except OSError as e:
            raise StoreError(f"Could not remove {key}: {e}") from e

    def keys(self):
        if not self.root.exists():
            return []
        return sorted(p.stem for p in self.root.glob('*.json'))


def load_json(store, key: str) -> Any:
    """Decode a stored JSON value; None if absent.

    Raises ValueError (json.JSONDecodeError) on corrupt data.
    """
    raw = store.get(key)
    if raw is None:
        return None
    return json.loads(raw)


def save_json(store, key: str, value: Any):
    store.set(key, json.dumps(value, ensure_ascii=False))
