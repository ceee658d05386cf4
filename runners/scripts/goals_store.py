#!/usr/bin/env python3
"""
Runner goals state and its persistence.

GoalsState is explicit data: the transitions below are pure functions
returning a new state, and GoalsStore is the thin adapter that loads and
saves that state through a key-value store.

Invariants kept by every transition:
  - a tag id in dismissed_tag_ids never appears in confirmed_tags
  - confirmed_tags holds each tag id at most once
"""

from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from typing import Dict, List, Optional

from constants import GOALS_STORAGE_KEY
from goal_analyzer import ParsedGoals, analyze_goals
from goal_patterns import GoalTag
from kv_store import load_json, save_json
from logger import get_logger


@dataclass
class GoalsState:
    raw_text: str = ''
    parsed_goals: ParsedGoals = field(default_factory=ParsedGoals)
    confirmed_tags: List[GoalTag] = field(default_factory=list)
    dismissed_tag_ids: List[str] = field(default_factory=list)
    updated_at: Optional[str] = None

    @property
    def confirmed_tag_ids(self) -> List[str]:
        return [t.id for t in self.confirmed_tags]

    def to_dict(self) -> Dict:
        return {
            'raw_text': self.raw_text,
            'parsed_goals': self.parsed_goals.to_dict(),
            'confirmed_tags': [t.to_dict() for t in self.confirmed_tags],
            'dismissed_tag_ids': list(self.dismissed_tag_ids),
            'updated_at': self.updated_at,
        }

    @classmethod
    def from_dict(cls, data: Optional[Dict]) -> 'GoalsState':
        data = data or {}
        return cls(
            raw_text=data.get('raw_text') or '',
            parsed_goals=ParsedGoals.from_dict(data.get('parsed_goals')),
            confirmed_tags=[GoalTag.from_dict(t) for t in data.get('confirmed_tags') or []],
            dismissed_tag_ids=list(data.get('dismissed_tag_ids') or []),
            updated_at=data.get('updated_at'),
        )


def _timestamp(now: Optional[datetime] = None) -> str:
    return (now or datetime.now(timezone.utc)).isoformat()


# =============================================================================
# TRANSITIONS
# =============================================================================

def empty_goals_state() -> GoalsState:
    return GoalsState()


def has_goals(state: GoalsState) -> bool:
    return bool(state.confirmed_tags)


def update_goal_text(state: GoalsState, text: str, now: Optional[datetime] = None) -> GoalsState:
    """Re-analyze the goal text.

    Previously confirmed tags survive only if still detected; newly detected
    tags are auto-confirmed unless the runner dismissed them before.
    """
    parsed = analyze_goals(text)
    detected_ids = set(parsed.tag_ids)
    confirmed_ids = set(state.confirmed_tag_ids)

    kept = [t for t in state.confirmed_tags if t.id in detected_ids]
    added = [
        t for t in parsed.tags
        if t.id not in state.dismissed_tag_ids and t.id not in confirmed_ids
    ]

    return GoalsState(
        raw_text=text or '',
        parsed_goals=parsed,
        confirmed_tags=kept + added,
        dismissed_tag_ids=list(state.dismissed_tag_ids),
        updated_at=_timestamp(now),
    )


def confirm_tag(state: GoalsState, tag: GoalTag, now: Optional[datetime] = None) -> GoalsState:
    """Accept a tag; no-op if it is already confirmed."""
    if tag.id in state.confirmed_tag_ids:
        return state
    return replace(
        state,
        confirmed_tags=state.confirmed_tags + [tag],
        dismissed_tag_ids=[i for i in state.dismissed_tag_ids if i != tag.id],
        updated_at=_timestamp(now),
    )


def dismiss_tag(state: GoalsState, tag_id: str, now: Optional[datetime] = None) -> GoalsState:
    """Reject a tag so later re-analysis does not auto-confirm it."""
    dismissed = list(state.dismissed_tag_ids)
    if tag_id not in dismissed:
        dismissed.append(tag_id)
    return replace(
        state,
        confirmed_tags=[t for t in state.confirmed_tags if t.id != tag_id],
        dismissed_tag_ids=dismissed,
        updated_at=_timestamp(now),
    )


# =============================================================================
# PERSISTENCE ADAPTER
# =============================================================================

class GoalsStore:
    """Loads and saves GoalsState under one storage key."""

    def __init__(self, store, key: str = GOALS_STORAGE_KEY):
        self.store = store
        self.key = key

    def load(self) -> GoalsState:
        """Stored state, or an empty state if none/corrupt."""
        try:
            data = load_json(self.store, self.key)
            if not isinstance(data, dict):
                raise ValueError(f"expected an object, got {type(data).__name__}")
            return GoalsState.from_dict(data)
        except (AttributeError, TypeError, ValueError) as e:
            get_logger().error("Error loading goals, starting fresh", error=str(e))
            return empty_goals_state()

    def save(self, state: GoalsState) -> GoalsState:
        save_json(self.store, self.key, state.to_dict())
        return state

    def update_goal_text(self, text: str) -> GoalsState:
        state = self.save(update_goal_text(self.load(), text))
        get_logger().info("Updated goals", confirmed=len(state.confirmed_tags))
        return state

    def confirm_tag(self, tag: GoalTag) -> GoalsState:
        return self.save(confirm_tag(self.load(), tag))

    def dismiss_tag(self, tag_id: str) -> GoalsState:
        return self.save(dismiss_tag(self.load(), tag_id))

    def clear(self) -> GoalsState:
        self.store.remove(self.key)
        get_logger().info("Cleared goals")
        return empty_goals_state()
