#!/usr/bin/env python3
"""
Single source of truth for constants used across the recommender.

All shared constants should be defined here to avoid duplication.
"""

import re
from pathlib import Path
from typing import Dict, List


# === RUNNER PATH UTILITIES ===
# Use these instead of constructing paths manually throughout the codebase

# Get the absolute path to the runners directory (scripts/../)
RUNNERS_BASE_DIR: Path = Path(__file__).parent.parent.resolve()

# Lowercase alphanumeric, hyphens, underscores; no leading/trailing separators
RUNNER_ID_PATTERN = re.compile(r'^[a-z0-9][a-z0-9_-]{0,62}[a-z0-9]$|^[a-z0-9]$')
MAX_RUNNER_ID_LENGTH: int = 64

# Directory names under runners/ that are not runner state
RESERVED_RUNNER_IDS = {'scripts'}


def validate_runner_id(runner_id: str) -> bool:
    """Validate runner ID is safe for filesystem use."""
    if not runner_id or len(runner_id) > MAX_RUNNER_ID_LENGTH:
        return False
    if not RUNNER_ID_PATTERN.match(runner_id):
        return False
    if runner_id in RESERVED_RUNNER_IDS:
        return False
    if '..' in runner_id or '/' in runner_id or '\\' in runner_id:
        return False
    return True


def get_runner_dir(runner_id: str, base_dir: Path = None) -> Path:
    """Get the state directory for a runner."""
    return Path(base_dir or RUNNERS_BASE_DIR) / runner_id


# === RACE TYPES ===

RACE_CATEGORIES: List[str] = ['5k', '10k', 'half', 'marathon', 'ultra']

RACE_TERRAINS: List[str] = ['road', 'trail', 'track', 'mixed']

CATEGORY_LABELS: Dict[str, str] = {
    '5k': '5K',
    '10k': '10K',
    'half': 'Half Marathon',
    'marathon': 'Marathon',
    'ultra': 'Ultra',
}

# Keys of the race affinity vector
AFFINITY_KEYS: List[str] = [
    '5k', '10k', 'half', 'marathon', 'ultra',
    'trail', 'road', 'themed', 'destination', 'local',
]

HOME_COUNTRY: str = 'US'


# === TRAITS ===

TRAIT_NAMES: List[str] = [
    'adventurous',
    'competitive',
    'social',
    'endurance',
    'explorer',
    'casual',
]

TRAIT_MIN: int = 0
TRAIT_MAX: int = 100
TRAIT_DEFAULT: int = 50


# === PERSONALITY TYPES ===

PERSONALITY_TYPES: List[str] = [
    'trail_seeker',
    'urban_speedster',
    'bucket_lister',
    'community_runner',
    'ultra_curious',
    'casual_adventurer',
    'pr_hunter',
    'scenic_explorer',
    'family_runner',
    'newbie',
]

DEFAULT_PERSONALITY_TYPE: str = 'newbie'


# === GOAL SCORING (points per factor, normalized by factors * 25) ===

GOAL_NEUTRAL_SCORE: int = 50
GOAL_FACTOR_SCALE: int = 25

GOAL_DISTANCE_POINTS: int = 30
GOAL_TERRAIN_POINTS: int = 25
GOAL_COURSE_POINTS: int = 20
GOAL_BQ_ROAD_MARATHON_POINTS: int = 25
GOAL_BQ_FLAT_POINTS: int = 10
GOAL_BQ_QUALIFIER_POINTS: int = 15
GOAL_BEGINNER_FRIENDLY_POINTS: int = 20
GOAL_BEGINNER_SHORT_POINTS: int = 15
GOAL_BUCKET_LIST_POINTS: int = 25

# Elevation thresholds (meters of gain)
HILLY_ELEVATION_MIN: int = 200
FLAT_ELEVATION_MAX: int = 100
BQ_FLAT_ELEVATION_MAX: int = 150
PR_COURSE_ELEVATION_MAX: int = 100
SCENIC_ELEVATION_MIN: int = 500


# === RACE SCORING ===

RACE_BASE_SCORE: int = 50

EXPLORER_TRAIT_THRESHOLD: int = 70
DESTINATION_AFFINITY_THRESHOLD: int = 70
TRAIL_PERSON_THRESHOLD: int = 60

# Ideal training window (days until race)
TIMING_IDEAL_MIN_DAYS: int = 60
TIMING_IDEAL_MAX_DAYS: int = 180
TIMING_GOOD_MIN_DAYS: int = 30
TIMING_SOON_MIN_DAYS: int = 14

# Budget tolerance before price points drop to zero
PRICE_TOLERANCE: float = 1.2

FEATURED_BOOST: int = 8

# Fixed three-region US grouping
US_REGIONS: Dict[str, List[str]] = {
    'east_coast': ['MA', 'NY', 'NJ', 'PA', 'CT', 'RI', 'ME', 'NH', 'VT', 'DC', 'MD', 'VA'],
    'west_coast': ['CA', 'WA', 'OR'],
    'midwest': ['IL', 'OH', 'MI', 'MN', 'WI', 'IN', 'MO'],
}


# === FEED ===

DIVERSITY_WINDOW: int = 5
DIVERSITY_CATEGORY_LIMIT: int = 2     # same category seen >= 2 times in window
DIVERSITY_STATE_LIMIT: int = 3        # same state seen >= 3 times in window
DIVERSITY_CATEGORY_PENALTY: float = 0.8
DIVERSITY_STATE_PENALTY: float = 0.9

FOR_YOU_LIMIT: int = 10
FEED_SECTION_LIMIT: int = 6
COMING_SOON_DAYS: int = 60


# === STORAGE KEYS ===

GOALS_STORAGE_KEY: str = 'user_goals_v2'
PERSONALITY_STORAGE_KEY: str = 'runner_personality'
LOCATION_STORAGE_KEY: str = 'user_location'
SAVED_RACES_STORAGE_KEY: str = 'saved_races'
PREFERENCES_STORAGE_KEY: str = 'runner_preferences'
BEHAVIOR_STORAGE_KEY: str = 'runner_behavior'

DEFAULT_LOCATION_RADIUS_MILES: int = 50
