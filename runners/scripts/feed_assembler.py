#!/usr/bin/env python3
"""Feed assembler -- ranked, diversified and sectioned race feeds.

Pipeline:
  1. score every eligible race (race_scorer.score_race)
  2. sort by relevance, highest first
  3. diversity pass: walk the sorted list once, penalizing a race whose
     category already appeared twice, or whose state already appeared
     three times, among the previous five races; then re-sort once
  4. optionally cut the result into home-feed sections

The diversity pass is a single greedy pass with one re-sort. It is not
globally optimal: a race pushed down by a penalty is never re-examined
against its new neighbours.
"""

from collections import deque
from datetime import date
from typing import Dict, Iterable, List, Optional

from constants import (
    COMING_SOON_DAYS,
    DIVERSITY_CATEGORY_LIMIT,
    DIVERSITY_CATEGORY_PENALTY,
    DIVERSITY_STATE_LIMIT,
    DIVERSITY_STATE_PENALTY,
    DIVERSITY_WINDOW,
    FEED_SECTION_LIMIT,
    FOR_YOU_LIMIT,
)
from logger import get_logger
from race_records import days_until, is_featured
from race_scorer import score_race

FEED_SECTION_NAMES = ('for_you', 'near_you', 'bucket_list', 'coming_soon', 'based_on_history')


def _sort_by_score(races: List[Dict]) -> List[Dict]:
    return sorted(races, key=lambda r: -r['relevance_score'])


def apply_diversity_rules(scored_races: Iterable[Dict]) -> List[Dict]:
    """Penalize runs of the same category/state and re-sort.

    Expects races already sorted by relevance_score descending. Returns new
    dicts; the inputs are left untouched.
    """
    result = []
    recent_categories = deque(maxlen=DIVERSITY_WINDOW)
    recent_states = deque(maxlen=DIVERSITY_WINDOW)
    penalized = 0

    for race in scored_races:
        race = dict(race)
        category = race.get('category')
        state = race.get('state')

        if recent_categories.count(category) >= DIVERSITY_CATEGORY_LIMIT:
            race['relevance_score'] *= DIVERSITY_CATEGORY_PENALTY
            penalized += 1
        if recent_states.count(state) >= DIVERSITY_STATE_LIMIT:
            race['relevance_score'] *= DIVERSITY_STATE_PENALTY
            penalized += 1

        result.append(race)
        recent_categories.append(category)
        recent_states.append(state)

    get_logger().debug("Applied diversity rules", races=len(result), penalties=penalized)
    return _sort_by_score(result)


def get_personalized_feed(profile: Dict,
                          races: Iterable[Dict],
                          exclude_ids: Optional[Iterable[str]] = None,
                          today: Optional[date] = None) -> List[Dict]:
    """Score, rank and diversify a race list for one runner."""
    excluded = set(exclude_ids or [])
    eligible = [race for race in races if race.get('id') not in excluded]

    scored = _sort_by_score([score_race(race, profile, today) for race in eligible])
    return apply_diversity_rules(scored)


def _has_reason(race: Dict, *fragments: str) -> bool:
    return any(
        fragment in reason
        for reason in race.get('match_reasons') or []
        for fragment in fragments
    )


def get_feed_sections(scored_races: List[Dict],
                      today: Optional[date] = None,
                      for_you_limit: int = FOR_YOU_LIMIT,
                      section_limit: int = FEED_SECTION_LIMIT) -> Dict[str, List[Dict]]:
    """Cut a ranked feed into home-screen sections.

    Sections may overlap; a race can appear in several of them.
    """
    def coming_soon(race: Dict) -> bool:
        days = days_until(race, today)
        return days is not None and 0 < days <= COMING_SOON_DAYS

    return {
        'for_you': scored_races[:for_you_limit],
        'near_you': [
            r for r in scored_races if _has_reason(r, 'Local', 'your region')
        ][:section_limit],
        'bucket_list': [
            r for r in scored_races
            if is_featured(r) or _has_reason(r, 'bucket list', 'Bucket list')
        ][:section_limit],
        'coming_soon': [r for r in scored_races if coming_soon(r)][:section_limit],
        'based_on_history': [
            r for r in scored_races if _has_reason(r, 'browsing', 'preference')
        ][:section_limit],
    }


def generate_match_explanation(scored_race: Dict) -> str:
    """One-line "why you'll love this" text for a scored race."""
    reasons = scored_race.get('match_reasons') or []
    if not reasons:
        return 'Popular race in your area'
    if len(reasons) == 1:
        return reasons[0]
    return ' • '.join(reasons[:2])
