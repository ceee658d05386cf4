#!/usr/bin/env python3
"""Tests for kv_store.py and atomic_write.py.

Run with: pytest runners/scripts/tests/test_kv_store.py -v
"""

import sys
from pathlib import Path

import pytest

# Add script path for imports
sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from atomic_write import atomic_write, safe_write_text
from kv_store import FileStore, MemoryStore, StoreError, load_json, save_json


@pytest.fixture(params=['memory', 'file'])
def store(request, tmp_path):
    """Both backends behave the same."""
    if request.param == 'memory':
        return MemoryStore()
    return FileStore(tmp_path / 'runner')


class TestStoreBackends:

    def test_missing_key(self, store):
        assert store.get('saved_races') is None

    def test_set_get(self, store):
        store.set('saved_races', '[]')
        assert store.get('saved_races') == '[]'

    def test_overwrite(self, store):
        store.set('k', 'one')
        store.set('k', 'two')
        assert store.get('k') == 'two'

    def test_remove(self, store):
        store.set('k', 'v')
        store.remove('k')
        assert store.get('k') is None

    def test_remove_missing_is_noop(self, store):
        store.remove('never_set')

    def test_keys(self, store):
        store.set('b', '1')
        store.set('a', '2')
        assert store.keys() == ['a', 'b']

    @pytest.mark.parametrize('key', ['../escape', 'a/b', '', '.hidden', 'x..y'])
    def test_invalid_keys(self, store, key):
        with pytest.raises(StoreError):
            store.set(key, 'v')


class TestFileStore:

    def test_one_file_per_key(self, tmp_path):
        store = FileStore(tmp_path)
        store.set('user_location', '{}')
        assert (tmp_path / 'user_location.json').read_text() == '{}'

    def test_creates_directory(self, tmp_path):
        store = FileStore(tmp_path / 'new' / 'runner')
        store.set('k', 'v')
        assert store.get('k') == 'v'

    def test_keys_without_directory(self, tmp_path):
        assert FileStore(tmp_path / 'missing').keys() == []


class TestJsonHelpers:

    def test_round_trip(self):
        store = MemoryStore()
        save_json(store, 'k', {'a': [1, 2], 'b': 'ü'})
        assert load_json(store, 'k') == {'a': [1, 2], 'b': 'ü'}

    def test_absent(self):
        assert load_json(MemoryStore(), 'k') is None

    def test_corrupt_raises_value_error(self):
        store = MemoryStore({'k': '{not json'})
        with pytest.raises(ValueError):
            load_json(store, 'k')


class TestAtomicWrite:

    def test_writes_file(self, tmp_path):
        target = tmp_path / 'out.json'
        with atomic_write(target) as f:
            f.write('hello')
        assert target.read_text() == 'hello'

    def test_failure_keeps_original(self, tmp_path):
        target = tmp_path / 'out.json'
        target.write_text('original')
        with pytest.raises(RuntimeError):
            with atomic_write(target) as f:
                f.write('partial')
                raise RuntimeError("boom")
        assert target.read_text() == 'original'
        assert list(tmp_path.iterdir()) == [target]

    def test_safe_write_text(self, tmp_path):
        target = tmp_path / 'nested' / 'x.txt'
        safe_write_text(target, 'data')
        assert target.read_text() == 'data'


if __name__ == '__main__':
    pytest.main([__file__, '-v'])
