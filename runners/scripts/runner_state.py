#!/usr/bin/env python3
"""
Per-runner persisted state: saved races, location, personality,
preferences and behavior.

All functions take the key-value store as their first argument, so the
same code serves the file-backed runner directories and in-memory tests.
Loads never raise on corrupt data; they log and return the empty default
so a damaged file cannot keep a runner from getting a feed.

Usage:
    from kv_store import FileStore
    from runner_state import save_race, set_manual_location, load_runner_profile

    store = FileStore(get_runner_dir('jane-doe'))
    set_manual_location(store, 'Boulder, CO')
    profile = load_runner_profile(store, 'jane-doe')
"""

import copy
from datetime import datetime, timezone
from typing import Dict, List, Optional

from constants import (
    BEHAVIOR_STORAGE_KEY,
    DEFAULT_LOCATION_RADIUS_MILES,
    LOCATION_STORAGE_KEY,
    PERSONALITY_STORAGE_KEY,
    PREFERENCES_STORAGE_KEY,
    SAVED_RACES_STORAGE_KEY,
)
from goal_analyzer import ParsedGoals, goals_from_tags
from goals_store import GoalsStore
from kv_store import load_json, save_json
from location_service import geocode_city, reverse_geocode
from logger import get_logger
from runner_profile import apply_goal_traits, build_personality, build_runner_profile


def _load(store, key: str, expected_type, what: str):
    """Stored JSON value of the expected type, or None."""
    try:
        data = load_json(store, key)
    except (ValueError, TypeError) as e:
        get_logger().error(f"Error loading {what}, using defaults", key=key, error=str(e))
        return None
    if data is not None and not isinstance(data, expected_type):
        get_logger().error(f"Unexpected {what} format, using defaults", key=key)
        return None
    return data


def _now_iso(now: Optional[datetime] = None) -> str:
    return (now or datetime.now(timezone.utc)).isoformat()


# =============================================================================
# SAVED RACES
# =============================================================================

def load_saved_races(store) -> List[Dict]:
    races = _load(store, SAVED_RACES_STORAGE_KEY, list, 'saved races') or []
    return [r for r in races if isinstance(r, dict) and r.get('id')]


def is_race_saved(store, race_id: str) -> bool:
    return any(r['id'] == race_id for r in load_saved_races(store))


def save_race(store, race: Dict, now: Optional[datetime] = None) -> List[Dict]:
    """Add a race to the saved list (stamped with saved_at); no-op if present."""
    saved = load_saved_races(store)
    if any(r['id'] == race.get('id') for r in saved):
        return saved
    entry = copy.deepcopy(race)
    entry['saved_at'] = _now_iso(now)
    saved.append(entry)
    save_json(store, SAVED_RACES_STORAGE_KEY, saved)
    get_logger().info("Saved race", race_id=race.get('id'), total=len(saved))
    return saved


def unsave_race(store, race_id: str) -> List[Dict]:
    saved = load_saved_races(store)
    remaining = [r for r in saved if r['id'] != race_id]
    if len(remaining) != len(saved):
        save_json(store, SAVED_RACES_STORAGE_KEY, remaining)
        get_logger().info("Removed saved race", race_id=race_id, total=len(remaining))
    return remaining


def toggle_save_race(store, race: Dict, now: Optional[datetime] = None) -> bool:
    """Save or unsave a race; returns the new saved flag."""
    if is_race_saved(store, race.get('id')):
        unsave_race(store, race['id'])
        return False
    save_race(store, race, now=now)
    return True


def clear_saved_races(store):
    store.remove(SAVED_RACES_STORAGE_KEY)
    get_logger().info("Cleared saved races")


# =============================================================================
# LOCATION
# =============================================================================

def _valid_coordinates(coordinates) -> bool:
    return isinstance(coordinates, dict) and all(
        isinstance(coordinates.get(axis), (int, float)) and not isinstance(coordinates.get(axis), bool)
        for axis in ('latitude', 'longitude')
    )


def load_location(store) -> Optional[Dict]:
    location = _load(store, LOCATION_STORAGE_KEY, dict, 'location')
    if not location or not _valid_coordinates(location.get('coordinates')):
        return None
    return location


def _store_location(store, coordinates: Dict, city: str, state: str,
                    radius: Optional[int], source: str) -> Dict:
    location = {
        'coordinates': dict(coordinates),
        'city': city,
        'state': state,
        'radius': radius or DEFAULT_LOCATION_RADIUS_MILES,
        'source': source,
    }
    save_json(store, LOCATION_STORAGE_KEY, location)
    get_logger().info("Location set", city=city, state=state, source=source)
    return location


def _current_radius(store) -> int:
    current = load_location(store)
    return (current or {}).get('radius') or DEFAULT_LOCATION_RADIUS_MILES


def set_manual_location(store, text: str, radius: Optional[int] = None) -> Optional[Dict]:
    """Geocode a typed city/state and store it; None if not recognized."""
    resolved = geocode_city(text)
    if not resolved:
        get_logger().warning("Could not find location", query=text)
        return None
    return _store_location(store, resolved['coordinates'], resolved['city'],
                           resolved['state'], radius or _current_radius(store), 'manual')


def set_location_from_coordinates(store, coordinates: Dict,
                                  radius: Optional[int] = None) -> Dict:
    """Store device coordinates, naming them via reverse geocoding."""
    place = reverse_geocode(coordinates) or {'city': '', 'state': ''}
    return _store_location(store, coordinates, place['city'], place['state'],
                           radius or _current_radius(store), 'gps')


def set_radius(store, radius: int) -> Optional[Dict]:
    """Change the search radius of the stored location; None without one."""
    location = load_location(store)
    if location is None:
        return None
    location['radius'] = radius
    save_json(store, LOCATION_STORAGE_KEY, location)
    return location


def clear_location(store):
    store.remove(LOCATION_STORAGE_KEY)
    get_logger().info("Cleared location")


# =============================================================================
# PERSONALITY / PREFERENCES / BEHAVIOR
# =============================================================================

def load_personality(store) -> Optional[Dict]:
    personality = _load(store, PERSONALITY_STORAGE_KEY, dict, 'personality')
    if not personality or not isinstance(personality.get('traits'), dict):
        return None
    return personality


def save_personality(store, traits: Dict) -> Dict:
    """Build the full personality from traits and persist it."""
    personality = build_personality(traits)
    save_json(store, PERSONALITY_STORAGE_KEY, personality)
    get_logger().info("Saved personality", primary_type=personality['primary_type'])
    return personality


def load_preferences(store) -> Dict:
    return _load(store, PREFERENCES_STORAGE_KEY, dict, 'preferences') or {}


def save_preferences(store, preferences: Dict):
    save_json(store, PREFERENCES_STORAGE_KEY, preferences)


def load_behavior(store) -> Dict:
    return _load(store, BEHAVIOR_STORAGE_KEY, dict, 'behavior') or {}


def save_behavior(store, behavior: Dict):
    save_json(store, BEHAVIOR_STORAGE_KEY, behavior)


# =============================================================================
# PROFILE ASSEMBLY
# =============================================================================

def load_runner_goals(store) -> Optional[ParsedGoals]:
    """ParsedGoals rebuilt from the confirmed tags, or None without any."""
    goals_state = GoalsStore(store).load()
    return goals_from_tags(goals_state.confirmed_tags) if goals_state.confirmed_tags else None


def load_runner_profile(store, runner_id: str) -> Dict:
    """Assemble a scoring profile from everything stored for a runner.

    Traits come from the stored personality; without one they are derived
    from the confirmed goal tags. Confirmed tags also feed the preferences.
    """
    goals_state = GoalsStore(store).load()
    goals = goals_from_tags(goals_state.confirmed_tags) if goals_state.confirmed_tags else None

    personality = load_personality(store)
    if personality:
        traits = personality['traits']
    else:
        traits = apply_goal_traits(None, goals_state.confirmed_tags)

    behavior = load_behavior(store)
    behavior['saved_races'] = [r['id'] for r in load_saved_races(store)]

    return build_runner_profile(
        traits=traits,
        goals=goals,
        location=load_location(store),
        preferences=load_preferences(store),
        behavior=behavior,
        runner_id=runner_id,
    )
