#!/usr/bin/env python3
"""Race scorer -- relevance of one race for one runner profile.

Starting from a neutral base of 50, eight independent factors each add
points and may contribute a human-readable reason:

  factor        max   reason examples
  distance       25   "Matches your Marathon preference"
  terrain        20   "Trail run for the adventurous"
  location       20   "Local race in CA", "In your region"
  personality    15   "Perfect for trail seekers"
  timing         10   "Perfect timing to train"
  behavior       15   "Based on your browsing"
  price          10   (no reason)
  featured        8   "Popular race"

The total is clamped to [0, 100] and the first three reasons, in factor
order, are kept. Scoring never mutates the race; it returns a new
ScoredRace dict (the race fields plus relevance_score and match_reasons).

Usage:
    from race_scorer import score_race
    from runner_profile import build_runner_profile

    scored = score_race(race, build_runner_profile(traits))
"""

from datetime import date
from typing import Dict, List, Optional, Tuple

from constants import (
    DESTINATION_AFFINITY_THRESHOLD,
    EXPLORER_TRAIT_THRESHOLD,
    FEATURED_BOOST,
    HOME_COUNTRY,
    PR_COURSE_ELEVATION_MAX,
    PRICE_TOLERANCE,
    RACE_BASE_SCORE,
    SCENIC_ELEVATION_MIN,
    TIMING_GOOD_MIN_DAYS,
    TIMING_IDEAL_MAX_DAYS,
    TIMING_IDEAL_MIN_DAYS,
    TIMING_SOON_MIN_DAYS,
    TRAIL_PERSON_THRESHOLD,
    TRAIT_DEFAULT,
    US_REGIONS,
)
from race_records import (
    category_label,
    days_until,
    get_country,
    get_elevation,
    get_price,
    is_featured,
)
from runner_profile import build_personality

MAX_MATCH_REASONS = 3

SubScore = Tuple[float, Optional[str]]


def _personality(profile: Dict) -> Dict:
    personality = profile.get('personality')
    if not personality:
        personality = build_personality()
    return personality


def _traits(profile: Dict) -> Dict:
    return _personality(profile).get('traits') or {}


# =============================================================================
# SUB-SCORES
# =============================================================================

def score_distance_match(race: Dict, profile: Dict) -> SubScore:
    """Explicit distance preference first, then personality affinity."""
    personality = _personality(profile)
    preferences = profile.get('preferences') or {}
    category = race.get('category')

    if category and category in (preferences.get('preferred_distances') or []):
        return 25, f"Matches your {category_label(race)} preference"

    affinity = (personality.get('race_affinities') or {}).get(category) or TRAIT_DEFAULT
    if affinity > 75:
        primary = personality.get('primary_type', 'newbie').replace('_', ' ', 1)
        return 20, f"Great for {primary}s"
    if affinity > 50:
        return 12, None
    return 5, None


def score_terrain_match(race: Dict, profile: Dict) -> SubScore:
    terrain = race.get('terrain')
    if not terrain:
        return 10, None

    terrain_prefs = (profile.get('preferences') or {}).get('terrain') or {}
    terrain_pref = terrain_prefs.get(terrain) or TRAIT_DEFAULT
    adventurous = _traits(profile).get('adventurous', TRAIT_DEFAULT)

    if terrain == 'trail' and adventurous > TRAIL_PERSON_THRESHOLD:
        return 20, 'Trail run for the adventurous'
    if terrain_pref > 75:
        return 18, f"{str(terrain).capitalize()} terrain you love"
    if terrain_pref > 50:
        return 12, None
    return 5, None


def get_region(state: Optional[str]) -> Optional[str]:
    """Name of the fixed US region containing a state code, or None."""
    for region, states in US_REGIONS.items():
        if state in states:
            return region
    return None


def score_location_match(race: Dict, profile: Dict) -> SubScore:
    location = profile.get('location')
    if not location:
        return 10, None

    user_state = location.get('state')
    race_state = race.get('state')
    if race_state and race_state == user_state:
        return 18, f"Local race in {race_state}"

    personality = _personality(profile)
    if _traits(profile).get('explorer', TRAIT_DEFAULT) > EXPLORER_TRAIT_THRESHOLD:
        destination = (personality.get('race_affinities') or {}).get('destination', 0)
        if get_country(race) != HOME_COUNTRY or destination > DESTINATION_AFFINITY_THRESHOLD:
            return 15, 'Destination race for your bucket list'

    user_region = get_region(user_state)
    if user_region and user_region == get_region(race_state):
        return 12, 'In your region'

    return 5, None


def score_personality_match(race: Dict, profile: Dict) -> SubScore:
    personality_type = _personality(profile).get('primary_type')
    elevation = get_elevation(race)

    if personality_type == 'trail_seeker' and race.get('terrain') == 'trail':
        return 15, 'Perfect for trail seekers'
    if personality_type == 'pr_hunter' and elevation and elevation < PR_COURSE_ELEVATION_MAX:
        return 15, 'Fast, flat PR course'
    if personality_type == 'bucket_lister' and is_featured(race):
        return 15, 'Bucket list worthy'
    if personality_type == 'ultra_curious' and race.get('category') == 'ultra':
        return 15, 'For the ultra curious'
    if personality_type == 'community_runner' and race.get('category') == '5k':
        return 12, 'Great community event'
    if personality_type == 'scenic_explorer' and elevation and elevation > SCENIC_ELEVATION_MIN:
        return 15, 'Stunning views await'
    return 5, None


def score_timing_match(race: Dict, today: Optional[date] = None) -> SubScore:
    days = days_until(race, today)
    if days is None:
        return 3, None
    if TIMING_IDEAL_MIN_DAYS <= days <= TIMING_IDEAL_MAX_DAYS:
        return 10, 'Perfect timing to train'
    if TIMING_GOOD_MIN_DAYS <= days < TIMING_IDEAL_MIN_DAYS:
        return 7, None
    if TIMING_SOON_MIN_DAYS <= days < TIMING_GOOD_MIN_DAYS:
        return 5, 'Coming up soon!'
    return 3, None


def score_behavioral_signals(race: Dict, profile: Dict) -> SubScore:
    behavior = profile.get('behavior') or {}
    points = 0

    views = (behavior.get('category_views') or {}).get(race.get('category')) or 0
    if views > 10:
        points += 10
    elif views >= 5:
        points += 5

    # Any saved race is a weak similarity signal
    if behavior.get('saved_races'):
        points += 5

    return points, ('Based on your browsing' if points > 5 else None)


def score_price_match(race: Dict, profile: Dict) -> SubScore:
    price = get_price(race)
    max_price = (profile.get('preferences') or {}).get('max_price')
    if not price or not max_price:
        return 5, None
    if price <= max_price:
        return 10, None
    if price <= max_price * PRICE_TOLERANCE:
        return 5, None
    return 0, None


def score_featured(race: Dict) -> SubScore:
    if is_featured(race):
        return FEATURED_BOOST, 'Popular race'
    return 0, None


# =============================================================================
# SCORE A RACE
# =============================================================================

def score_race(race: Dict, profile: Dict, today: Optional[date] = None) -> Dict:
    """Score one race for a runner; returns a new ScoredRace dict."""
    sub_scores: List[SubScore] = [
        score_distance_match(race, profile),
        score_terrain_match(race, profile),
        score_location_match(race, profile),
        score_personality_match(race, profile),
        score_timing_match(race, today),
        score_behavioral_signals(race, profile),
        score_price_match(race, profile),
        score_featured(race),
    ]

    score = RACE_BASE_SCORE + sum(points for points, _ in sub_scores)
    reasons = [reason for _, reason in sub_scores if reason]

    scored = dict(race)
    scored['relevance_score'] = max(0, min(100, score))
    scored['match_reasons'] = reasons[:MAX_MATCH_REASONS]
    return scored
