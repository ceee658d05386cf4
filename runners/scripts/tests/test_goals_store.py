#!/usr/bin/env python3
"""Tests for goals_store.py.

Covers:
- Pure transitions: update, confirm, dismiss and their tag invariants
- GoalsStore persistence through FileStore and MemoryStore
- Corrupt stored data falls back to an empty state

Run with: pytest runners/scripts/tests/test_goals_store.py -v
"""

import sys
from datetime import datetime, timezone
from pathlib import Path

import pytest

# Add script path for imports
sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from constants import GOALS_STORAGE_KEY
from goal_patterns import get_tag
from goals_store import (
    GoalsState,
    GoalsStore,
    confirm_tag,
    dismiss_tag,
    empty_goals_state,
    has_goals,
    update_goal_text,
)
from kv_store import FileStore, MemoryStore

NOW = datetime(2026, 1, 1, 12, 0, tzinfo=timezone.utc)
TRAIL_BQ = "trail running, then qualify for Boston"


# =============================================================================
# TRANSITIONS
# =============================================================================

class TestUpdateGoalText:

    def test_auto_confirms_detected(self):
        state = update_goal_text(empty_goals_state(), TRAIL_BQ, now=NOW)
        assert state.raw_text == TRAIL_BQ
        assert state.confirmed_tag_ids == ['bq', 'pref-trail']
        assert state.parsed_goals.tag_ids == ['bq', 'pref-trail']
        assert state.updated_at == NOW.isoformat()
        assert has_goals(state)

    def test_drops_tags_no_longer_detected(self):
        state = update_goal_text(empty_goals_state(), TRAIL_BQ)
        state = update_goal_text(state, "qualify for Boston")
        assert state.confirmed_tag_ids == ['bq']

    def test_dismissed_not_reconfirmed(self):
        state = update_goal_text(empty_goals_state(), TRAIL_BQ)
        state = dismiss_tag(state, 'bq')
        state = update_goal_text(state, TRAIL_BQ)
        assert state.confirmed_tag_ids == ['pref-trail']
        assert state.dismissed_tag_ids == ['bq']

    def test_empty_text(self):
        state = update_goal_text(empty_goals_state(), '')
        assert not has_goals(state)
        assert state.parsed_goals.tags == []

    def test_input_state_unchanged(self):
        original = empty_goals_state()
        update_goal_text(original, TRAIL_BQ)
        assert original == GoalsState()


class TestConfirmAndDismiss:

    def test_confirm_adds_tag(self):
        state = confirm_tag(empty_goals_state(), get_tag('charity'), now=NOW)
        assert state.confirmed_tag_ids == ['charity']

    def test_confirm_is_idempotent(self):
        state = confirm_tag(empty_goals_state(), get_tag('charity'))
        assert confirm_tag(state, get_tag('charity')) is state

    def test_confirm_clears_dismissal(self):
        state = dismiss_tag(empty_goals_state(), 'charity')
        state = confirm_tag(state, get_tag('charity'))
        assert state.confirmed_tag_ids == ['charity']
        assert state.dismissed_tag_ids == []

    def test_dismiss_removes_confirmed(self):
        state = update_goal_text(empty_goals_state(), TRAIL_BQ)
        state = dismiss_tag(state, 'pref-trail')
        assert state.confirmed_tag_ids == ['bq']
        assert state.dismissed_tag_ids == ['pref-trail']

    def test_dismiss_twice_recorded_once(self):
        state = dismiss_tag(dismiss_tag(empty_goals_state(), 'bq'), 'bq')
        assert state.dismissed_tag_ids == ['bq']

    def test_confirmed_and_dismissed_disjoint(self):
        state = update_goal_text(empty_goals_state(), TRAIL_BQ)
        for step in (lambda s: dismiss_tag(s, 'bq'),
                     lambda s: confirm_tag(s, get_tag('bq')),
                     lambda s: dismiss_tag(s, 'pref-trail'),
                     lambda s: update_goal_text(s, TRAIL_BQ)):
            state = step(state)
            assert not set(state.confirmed_tag_ids) & set(state.dismissed_tag_ids)
            assert len(state.confirmed_tag_ids) == len(set(state.confirmed_tag_ids))


# =============================================================================
# PERSISTENCE
# =============================================================================

class TestGoalsStore:

    def test_empty_store(self):
        assert GoalsStore(MemoryStore()).load() == GoalsState()

    def test_persists_across_instances(self, tmp_path):
        GoalsStore(FileStore(tmp_path)).update_goal_text(TRAIL_BQ)

        loaded = GoalsStore(FileStore(tmp_path)).load()
        assert loaded.raw_text == TRAIL_BQ
        assert loaded.confirmed_tag_ids == ['bq', 'pref-trail']
        assert loaded.confirmed_tags[0] == get_tag('bq')
        assert (tmp_path / f"{GOALS_STORAGE_KEY}.json").exists()

    def test_confirm_and_dismiss_persist(self):
        store = MemoryStore()
        goals = GoalsStore(store)
        goals.confirm_tag(get_tag('streak'))
        goals.dismiss_tag('bq')

        loaded = GoalsStore(store).load()
        assert loaded.confirmed_tag_ids == ['streak']
        assert loaded.dismissed_tag_ids == ['bq']

    @pytest.mark.parametrize('raw', [
        '{not json',
        '[1, 2]',
        '"text"',
        '{"confirmed_tags": ["bq"]}',
        '{"parsed_goals": "oops"}',
        '{"dismissed_tag_ids": 5}',
    ])
    def test_corrupt_data_gives_empty_state(self, raw):
        store = MemoryStore({GOALS_STORAGE_KEY: raw})
        assert GoalsStore(store).load() == GoalsState()

    def test_unknown_stored_tag_kept(self):
        store = MemoryStore()
        GoalsStore(store).save(GoalsState(confirmed_tags=[get_tag('bq')]))
        raw = store.get(GOALS_STORAGE_KEY).replace('"bq"', '"custom"')
        store.set(GOALS_STORAGE_KEY, raw)

        tag = GoalsStore(store).load().confirmed_tags[0]
        assert tag.id == 'custom'
        assert tag.label == 'BQ Goal'

    def test_clear(self):
        store = MemoryStore()
        goals = GoalsStore(store)
        goals.update_goal_text(TRAIL_BQ)
        assert goals.clear() == GoalsState()
        assert store.get(GOALS_STORAGE_KEY) is None
        assert goals.load() == GoalsState()


if __name__ == '__main__':
    pytest.main([__file__, '-v'])
