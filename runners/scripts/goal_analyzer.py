#!/usr/bin/env python3
"""Goal analyzer -- turns a runner's free-form goals into structured intent.

The analysis is a fixed rule table (goal_patterns.PATTERN_RULES), not a
learned model: every rule is tested against the text in table order and
each match contributes its tag plus one field of ParsedGoals.

Usage:
    from goal_analyzer import analyze_goals, score_race_for_goals

    goals = analyze_goals("I want to qualify for Boston. I love trail races.")
    goals.special_goals      # ['bq']
    goals.preferred_terrain  # ['trail']
    score_race_for_goals(race, goals)  # 0-100, 50 when nothing was detected
"""

import re
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from constants import (
    BQ_FLAT_ELEVATION_MAX,
    FLAT_ELEVATION_MAX,
    GOAL_BEGINNER_FRIENDLY_POINTS,
    GOAL_BEGINNER_SHORT_POINTS,
    GOAL_BQ_FLAT_POINTS,
    GOAL_BQ_QUALIFIER_POINTS,
    GOAL_BQ_ROAD_MARATHON_POINTS,
    GOAL_BUCKET_LIST_POINTS,
    GOAL_COURSE_POINTS,
    GOAL_DISTANCE_POINTS,
    GOAL_FACTOR_SCALE,
    GOAL_NEUTRAL_SCORE,
    GOAL_TERRAIN_POINTS,
    HILLY_ELEVATION_MIN,
)
from goal_patterns import PATTERN_RULES, TARGET_TIME_TAG_PREFIX, GoalTag
from logger import get_logger
from race_records import get_characteristic, get_elevation, is_featured, round_half_up

BEGINNER_TAG_IDS = ('first-race', 'first-marathon', 'first-half')
ADVANCED_TAG_IDS = ('sub-3', 'pref-ultra')

# Bare H:MM / HH:MM fallback for target times the table does not name
CLOCK_TIME_PATTERN = re.compile(r'\b(\d{1,2}):(\d{2})\b')


@dataclass
class ParsedGoals:
    """Structured result of one analysis pass."""
    tags: List[GoalTag] = field(default_factory=list)
    preferred_distances: List[str] = field(default_factory=list)
    preferred_terrain: List[str] = field(default_factory=list)
    target_time: Optional[str] = None
    experience_level: Optional[str] = None
    course_preferences: List[str] = field(default_factory=list)
    special_goals: List[str] = field(default_factory=list)

    @property
    def tag_ids(self) -> List[str]:
        return [t.id for t in self.tags]

    def to_dict(self) -> Dict:
        return {
            'tags': [t.to_dict() for t in self.tags],
            'preferred_distances': list(self.preferred_distances),
            'preferred_terrain': list(self.preferred_terrain),
            'target_time': self.target_time,
            'experience_level': self.experience_level,
            'course_preferences': list(self.course_preferences),
            'special_goals': list(self.special_goals),
        }

    @classmethod
    def from_dict(cls, data: Optional[Dict]) -> 'ParsedGoals':
        data = data or {}
        return cls(
            tags=[GoalTag.from_dict(t) for t in data.get('tags') or []],
            preferred_distances=list(data.get('preferred_distances') or []),
            preferred_terrain=list(data.get('preferred_terrain') or []),
            target_time=data.get('target_time'),
            experience_level=data.get('experience_level'),
            course_preferences=list(data.get('course_preferences') or []),
            special_goals=list(data.get('special_goals') or []),
        )


# =============================================================================
# ANALYSIS
# =============================================================================

def _infer_experience_level(tag_ids: List[str]) -> Optional[str]:
    if any(t in tag_ids for t in BEGINNER_TAG_IDS):
        return 'beginner'
    if any(t in tag_ids for t in ADVANCED_TAG_IDS):
        return 'advanced'
    if tag_ids:
        return 'intermediate'
    return None


def _find_clock_time(text: str) -> Optional[str]:
    for match in CLOCK_TIME_PATTERN.finditer(text):
        hours, minutes = int(match.group(1)), int(match.group(2))
        if 1 <= hours <= 12 and 0 <= minutes < 60:
            return f"{hours}:{match.group(2)}"
    return None


def _apply_rule(goals: ParsedGoals, rule) -> None:
    """Record one matched rule: its tag (once) plus its category's field."""
    if rule.tag.id not in goals.tag_ids:
        goals.tags.append(rule.tag)

    category = rule.category
    if category == 'distance':
        goals.preferred_distances.append(rule.key)
    elif category == 'terrain':
        goals.preferred_terrain.append(rule.key)
    elif category == 'course':
        goals.course_preferences.append(rule.key)
    elif category == 'special':
        goals.special_goals.append(rule.tag.id)
    elif category == 'time' and rule.tag.id.startswith(TARGET_TIME_TAG_PREFIX):
        # Later time rules overwrite earlier ones
        goals.target_time = rule.tag.label


def analyze_goals(text: str) -> ParsedGoals:
    """Extract structured goals from free-form text.

    Deterministic: the same text always yields the same ParsedGoals. Empty
    or whitespace-only text yields an empty result with no experience level.
    """
    goals = ParsedGoals()
    text = text or ''
    if not text.strip():
        return goals

    for rule in PATTERN_RULES:
        if rule.matches(text):
            _apply_rule(goals, rule)

    goals.experience_level = _infer_experience_level(goals.tag_ids)
    if goals.target_time is None:
        goals.target_time = _find_clock_time(text)

    get_logger().debug(
        "Analyzed goal text",
        tags=len(goals.tags),
        experience=goals.experience_level,
    )
    return goals


def goals_from_tags(tags: List[GoalTag]) -> ParsedGoals:
    """Rebuild ParsedGoals from a set of confirmed tags.

    Used when the runner has edited the detected tags: only the rules whose
    tag survived contribute, in table order.
    """
    wanted = {t.id for t in tags}
    goals = ParsedGoals()
    for rule in PATTERN_RULES:
        if rule.tag.id in wanted:
            _apply_rule(goals, rule)
    goals.experience_level = _infer_experience_level(goals.tag_ids)
    return goals


# =============================================================================
# GOAL-BASED RACE SCORING
# =============================================================================

def score_race_for_goals(race: Dict, goals: ParsedGoals) -> int:
    """Score how well a race matches the parsed goals (0-100).

    Each applicable goal factor adds one to `factors` whether or not the race
    scored on it; the raw points are normalized against factors * 25, so the
    score is relative to what was applicable. With no tags at all the result
    is the neutral 50.
    """
    if not goals.tags:
        return GOAL_NEUTRAL_SCORE

    score = 0
    factors = 0
    category = race.get('category')
    terrain = race.get('terrain')
    elevation = get_elevation(race)

    if goals.preferred_distances:
        factors += 1
        if category in goals.preferred_distances:
            score += GOAL_DISTANCE_POINTS

    if goals.preferred_terrain:
        factors += 1
        if terrain and terrain in goals.preferred_terrain:
            score += GOAL_TERRAIN_POINTS

    if goals.course_preferences:
        factors += 1
        if 'hilly' in goals.course_preferences and elevation and elevation > HILLY_ELEVATION_MIN:
            score += GOAL_COURSE_POINTS
        if 'flat' in goals.course_preferences and (not elevation or elevation < FLAT_ELEVATION_MAX):
            score += GOAL_COURSE_POINTS
        if 'scenic' in goals.course_preferences and get_characteristic(race, 'is_scenic'):
            score += GOAL_COURSE_POINTS

    # BQ: fast, flat road marathons
    if 'bq' in goals.special_goals:
        factors += 1
        if category == 'marathon' and terrain == 'road':
            score += GOAL_BQ_ROAD_MARATHON_POINTS
            if not elevation or elevation < BQ_FLAT_ELEVATION_MAX:
                score += GOAL_BQ_FLAT_POINTS
            if get_characteristic(race, 'is_bq_qualifier'):
                score += GOAL_BQ_QUALIFIER_POINTS

    if goals.experience_level == 'beginner':
        factors += 1
        if get_characteristic(race, 'is_beginner_friendly'):
            score += GOAL_BEGINNER_FRIENDLY_POINTS
        if category in ('5k', '10k'):
            score += GOAL_BEGINNER_SHORT_POINTS

    if 'bucket-list' in goals.special_goals:
        factors += 1
        if is_featured(race):
            score += GOAL_BUCKET_LIST_POINTS

    if factors == 0:
        return GOAL_NEUTRAL_SCORE
    return min(100, round_half_up(score / (factors * GOAL_FACTOR_SCALE) * 100))
