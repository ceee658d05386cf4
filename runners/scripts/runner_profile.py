#!/usr/bin/env python3
"""Runner profile -- trait vector, personality archetypes and race affinities.

A runner's racing disposition is six traits in [0, 100] (default 50),
moved by onboarding quiz answers or by confirmed goal tags. The trait
vector is classified into one of ten archetypes by an ordered decision
table (first matching rule wins) and projected onto a race-affinity
vector by fixed linear formulas.

All functions return new dicts; nothing here mutates its inputs.

Usage:
    from runner_profile import apply_quiz_answers, build_personality

    traits = apply_quiz_answers([('terrain', 'trail', None), ('distance', 'ultra', None)])
    personality = build_personality(traits)
    personality['primary_type']   # 'trail_seeker'
"""

import copy
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from constants import (
    AFFINITY_KEYS,
    DEFAULT_PERSONALITY_TYPE,
    RACE_CATEGORIES,
    RACE_TERRAINS,
    TRAIT_DEFAULT,
    TRAIT_MAX,
    TRAIT_MIN,
    TRAIT_NAMES,
)
from logger import get_logger
from race_records import round_half_up


class QuizAnswerError(ValueError):
    """Raised when a quiz answer names an unknown question or option."""


# =============================================================================
# ONBOARDING QUIZ
# =============================================================================

QUIZ_QUESTIONS: List[Dict] = [
    {
        'id': 'terrain',
        'question': "Your ideal running surface?",
        'options': [
            {'value': 'road', 'label': 'Smooth pavement', 'traits': {'adventurous': -10, 'competitive': 10}},
            {'value': 'trail', 'label': 'Dirt trails', 'traits': {'adventurous': 20, 'explorer': 15}},
            {'value': 'mixed', 'label': 'Mix it up!', 'traits': {'adventurous': 10, 'explorer': 10}},
        ],
    },
    {
        'id': 'motivation',
        'question': "What gets you to the start line?",
        'options': [
            {'value': 'pr', 'label': 'Chasing a PR', 'traits': {'competitive': 25, 'casual': -15}},
            {'value': 'experience', 'label': 'The experience', 'traits': {'social': 15, 'casual': 10}},
            {'value': 'challenge', 'label': 'The challenge', 'traits': {'adventurous': 15, 'endurance': 10}},
            {'value': 'social', 'label': 'Running with friends', 'traits': {'social': 25, 'competitive': -10}},
        ],
    },
    {
        'id': 'distance',
        'question': "Your sweet spot distance?",
        'options': [
            {'value': '5k', 'label': '5K - Quick & fun', 'traits': {'casual': 10, 'endurance': -10}},
            {'value': '10k', 'label': '10K - Just right', 'traits': {'competitive': 5}},
            {'value': 'half', 'label': 'Half Marathon - The classic', 'traits': {'endurance': 10}},
            {'value': 'marathon', 'label': 'Marathon - Go big', 'traits': {'endurance': 20, 'competitive': 10}},
            {'value': 'ultra', 'label': 'Ultra - No limits', 'traits': {'endurance': 30, 'adventurous': 20}},
        ],
    },
    {
        'id': 'travel',
        'question': "Would you travel for an amazing race?",
        'options': [
            {'value': 'local', 'label': 'Keep it local', 'traits': {'explorer': -15}},
            {'value': 'regional', 'label': 'A few hours drive', 'traits': {'explorer': 5}},
            {'value': 'destination', 'label': 'Absolutely! Race-cations are the best', 'traits': {'explorer': 25}},
        ],
    },
    {
        'id': 'crowd',
        'question': "Race day crowd preference?",
        'options': [
            {'value': 'big', 'label': 'Big energy, big crowds', 'traits': {'social': 15, 'competitive': 10}},
            {'value': 'small', 'label': 'Intimate, community feel', 'traits': {'social': 5, 'casual': 10}},
            {'value': 'solo', 'label': 'Just me and the course', 'traits': {'social': -10, 'adventurous': 10}},
        ],
    },
    {
        'id': 'priority',
        'question': "Most important race feature?",
        'options': [
            {'value': 'scenery', 'label': 'Beautiful scenery', 'traits': {'adventurous': 10, 'explorer': 15}},
            {'value': 'organization', 'label': 'Well organized', 'traits': {'competitive': 10}},
            {'value': 'swag', 'label': 'Great swag & medal', 'traits': {'casual': 10, 'social': 5}},
            {'value': 'course', 'label': 'Fast course for PRs', 'traits': {'competitive': 20, 'casual': -10}},
            {'value': 'party', 'label': 'Post-race party', 'traits': {'social': 20, 'casual': 15}},
        ],
    },
]


def get_quiz_option(question_id: str, value: str) -> Optional[Dict]:
    """Find a quiz option by question id and option value."""
    for question in QUIZ_QUESTIONS:
        if question['id'] != question_id:
            continue
        for option in question['options']:
            if option['value'] == value:
                return option
    return None


# =============================================================================
# TRAIT VECTOR
# =============================================================================

def default_traits() -> Dict[str, int]:
    return {name: TRAIT_DEFAULT for name in TRAIT_NAMES}


def _clamp(value: float, low: int = TRAIT_MIN, high: int = TRAIT_MAX) -> int:
    return int(max(low, min(high, value)))


def normalize_traits(traits: Optional[Dict]) -> Dict[str, int]:
    """Complete a partial trait dict with defaults and clamp every value."""
    result = default_traits()
    for name, value in (traits or {}).items():
        if name in result and isinstance(value, (int, float)) and not isinstance(value, bool):
            result[name] = _clamp(value)
    return result


def apply_quiz_answer(traits: Dict, delta: Optional[Dict]) -> Dict[str, int]:
    """Add one answer's trait deltas, clamping each trait to [0, 100].

    Traits absent from the delta are unchanged; unknown trait names and
    non-numeric deltas are ignored.
    """
    updated = normalize_traits(traits)
    for name, change in (delta or {}).items():
        if name not in updated:
            continue
        if not isinstance(change, (int, float)) or isinstance(change, bool):
            continue
        updated[name] = _clamp(updated[name] + change)
    return updated


def apply_quiz_answers(selections: Iterable[Sequence],
                       traits: Optional[Dict] = None) -> Dict[str, int]:
    """Apply an ordered sequence of quiz selections.

    Each selection is (question_id, option_value, trait_deltas). When
    trait_deltas is None the deltas are looked up in QUIZ_QUESTIONS.
    A question answered twice in one pass only counts the first time.
    """
    current = normalize_traits(traits)
    answered = set()

    for selection in selections:
        question_id, value = selection[0], selection[1]
        deltas = selection[2] if len(selection) > 2 else None

        if question_id in answered:
            get_logger().warning("Ignoring repeated quiz answer", question=question_id)
            continue
        answered.add(question_id)

        if deltas is None:
            option = get_quiz_option(question_id, value)
            deltas = option['traits'] if option else {}
        current = apply_quiz_answer(current, deltas)

    return current


def new_quiz_state(traits: Optional[Dict] = None) -> Dict:
    """Explicit state for one quiz pass."""
    return {'traits': normalize_traits(traits), 'answers': {}}


def answer_question(quiz_state: Dict, question_id: str, value: str) -> Dict:
    """Record one answer against a quiz pass and return the new state.

    Raises QuizAnswerError for unknown questions/options. Re-answering a
    question already answered in this pass leaves the state unchanged.
    """
    option = get_quiz_option(question_id, value)
    if option is None:
        raise QuizAnswerError(f"Unknown quiz answer: {question_id}={value}")

    if question_id in quiz_state.get('answers', {}):
        return copy.deepcopy(quiz_state)

    answers = dict(quiz_state.get('answers', {}))
    answers[question_id] = value
    return {
        'traits': apply_quiz_answer(quiz_state.get('traits'), option['traits']),
        'answers': answers,
    }


def is_quiz_complete(quiz_state: Dict) -> bool:
    return all(q['id'] in quiz_state.get('answers', {}) for q in QUIZ_QUESTIONS)


# =============================================================================
# TRAITS FROM GOAL TAGS
# =============================================================================
# Confirmed goal tags nudge the trait vector the same way quiz answers do,
# one clamped step per tag.
# =============================================================================

GOAL_TRAIT_DELTAS: Dict[str, Dict[str, int]] = {
    'bq': {'competitive': 25, 'endurance': 10},
    'first-marathon': {'endurance': 10, 'casual': 5},
    'first-half': {'endurance': 5, 'casual': 5},
    'first-race': {'casual': 15, 'competitive': -10},
    'pr-goal': {'competitive': 20, 'casual': -10},
    'sub-3': {'competitive': 25, 'casual': -15},
    'sub-330': {'competitive': 20, 'casual': -10},
    'sub-4': {'competitive': 15},
    'sub-2-half': {'competitive': 15},
    'pref-marathon': {'endurance': 20, 'competitive': 10},
    'pref-half': {'endurance': 10},
    'pref-ultra': {'endurance': 30, 'adventurous': 20},
    'pref-5k': {'casual': 10, 'endurance': -10},
    'pref-10k': {'competitive': 5},
    'pref-trail': {'adventurous': 20, 'explorer': 10},
    'pref-road': {'adventurous': -10, 'competitive': 10},
    'pref-hilly': {'adventurous': 10, 'endurance': 5},
    'pref-flat': {'competitive': 10},
    'pref-scenic': {'adventurous': 10, 'explorer': 15},
    'streak': {'endurance': 5, 'social': 5},
    'charity': {'social': 20, 'casual': 10},
    'bucket-list': {'explorer': 25},
}


def apply_goal_traits(traits: Optional[Dict], tags: Iterable) -> Dict[str, int]:
    """Apply the trait deltas of each goal tag (GoalTag or tag id)."""
    current = normalize_traits(traits)
    for tag in tags:
        tag_id = getattr(tag, 'id', tag)
        current = apply_quiz_answer(current, GOAL_TRAIT_DELTAS.get(tag_id))
    return current


# =============================================================================
# PERSONALITY CLASSIFICATION
# =============================================================================
# Evaluated top to bottom; the first rule whose conditions all hold wins.
# Trait combinations can satisfy several rules, so this order is fixed.
# =============================================================================

PERSONALITY_RULES: List[Tuple[str, Tuple[Tuple[str, str, int], ...]]] = [
    ('trail_seeker', (('adventurous', '>', 70), ('endurance', '>', 60))),
    ('pr_hunter', (('competitive', '>', 70), ('adventurous', '<', 40))),
    ('bucket_lister', (('explorer', '>', 70),)),
    ('community_runner', (('social', '>', 70), ('casual', '>', 50))),
    ('ultra_curious', (('endurance', '>', 80),)),
    ('casual_adventurer', (('casual', '>', 70), ('social', '>', 50))),
    ('scenic_explorer', (('adventurous', '>', 60), ('explorer', '>', 50))),
    ('urban_speedster', (('competitive', '>', 60), ('adventurous', '<', 50))),
    ('family_runner', (('casual', '>', 60), ('social', '>', 40))),
]


def _rule_matches(conditions, traits: Dict[str, int]) -> bool:
    for trait, op, threshold in conditions:
        value = traits[trait]
        if op == '>' and not value > threshold:
            return False
        if op == '<' and not value < threshold:
            return False
    return True


def calculate_personality_type(traits: Dict) -> str:
    """Classify a trait vector; total over every vector (falls back to 'newbie')."""
    normalized = normalize_traits(traits)
    for personality_type, conditions in PERSONALITY_RULES:
        if _rule_matches(conditions, normalized):
            return personality_type
    return DEFAULT_PERSONALITY_TYPE


def calculate_secondary_types(traits: Dict) -> List[str]:
    """Other archetypes whose rule also holds, in table order."""
    normalized = normalize_traits(traits)
    matches = [t for t, conditions in PERSONALITY_RULES if _rule_matches(conditions, normalized)]
    return matches[1:]


def calculate_race_affinities(traits: Dict) -> Dict[str, int]:
    """Project a trait vector onto race types, each clamped to [0, 100]."""
    t = normalize_traits(traits)
    raw = {
        '5k': 50 + t['casual'] * 0.3 - t['endurance'] * 0.2,
        '10k': 50 + t['competitive'] * 0.2,
        'half': 50 + t['endurance'] * 0.2 + t['competitive'] * 0.1,
        'marathon': 50 + t['endurance'] * 0.3 + t['competitive'] * 0.2,
        'ultra': 30 + t['endurance'] * 0.4 + t['adventurous'] * 0.3,
        'trail': 30 + t['adventurous'] * 0.5 + t['explorer'] * 0.2,
        'road': 50 + t['competitive'] * 0.3 - t['adventurous'] * 0.1,
        'themed': 40 + t['casual'] * 0.4 + t['social'] * 0.2,
        'destination': 30 + t['explorer'] * 0.5 + t['adventurous'] * 0.2,
        'local': 50 + t['social'] * 0.3 - t['explorer'] * 0.2,
    }
    return {key: _clamp(round_half_up(raw[key])) for key in AFFINITY_KEYS}


PERSONALITY_DESCRIPTIONS: Dict[str, Dict] = {
    'trail_seeker': {
        'title': 'Trail Seeker',
        'icon': '🌲',
        'description': "You crave dirt under your feet and views that make the climb worth it. Technical terrain? Bring it on.",
        'recommended_races': ['Ultra marathons', 'Trail races', 'Mountain runs', 'Adventure races'],
    },
    'urban_speedster': {
        'title': 'Urban Speedster',
        'icon': '🏙️',
        'description': "Fast courses, city vibes, and convenient logistics. You know every PR-friendly race in town.",
        'recommended_races': ['City marathons', 'Fast 5Ks', 'Downtown 10Ks', 'Turkey trots'],
    },
    'bucket_lister': {
        'title': 'Bucket Lister',
        'icon': '✈️',
        'description': "Running is your passport. You're collecting bibs from iconic races around the world.",
        'recommended_races': ['World Marathon Majors', 'Iconic destination races', 'International events'],
    },
    'community_runner': {
        'title': 'Community Runner',
        'icon': '🤝',
        'description': "It's about the people, not the pace. You love local races and the running community.",
        'recommended_races': ['Local 5Ks', 'Charity runs', 'Park runs', 'Community events'],
    },
    'ultra_curious': {
        'title': 'Ultra Curious',
        'icon': '🦁',
        'description': "Distance is just a number, and you want to see how far you can go. 50K? 100 miles? Let's find out.",
        'recommended_races': ['50Ks', '100-milers', 'Multi-day events', 'Endurance challenges'],
    },
    'casual_adventurer': {
        'title': 'Casual Adventurer',
        'icon': '🎈',
        'description': "Running should be fun! You're here for color runs, costume races, and good vibes.",
        'recommended_races': ['Color runs', 'Themed races', 'Fun runs', 'Obstacle courses'],
    },
    'pr_hunter': {
        'title': 'PR Hunter',
        'icon': '⏱️',
        'description': "Every race is a chance to beat your best. Flat, fast, and net downhill? Yes please.",
        'recommended_races': ['BQ-qualifying marathons', 'Fast half marathons', 'Downhill courses'],
    },
    'scenic_explorer': {
        'title': 'Scenic Explorer',
        'icon': '🏞️',
        'description': "Who cares about the clock when the views are this good? You run for the experience.",
        'recommended_races': ['Coastal runs', 'National park races', 'Wine country races', 'Island races'],
    },
    'family_runner': {
        'title': 'Family Runner',
        'icon': '👨‍👩‍👧‍👦',
        'description': "Running is a family affair. You look for races everyone can enjoy together.",
        'recommended_races': ['Family-friendly 5Ks', 'Kids runs', 'Stroller-friendly races', 'Holiday fun runs'],
    },
    'newbie': {
        'title': 'Rising Runner',
        'icon': '🌱',
        'description': "Every expert was once a beginner. You're just getting started on an amazing journey!",
        'recommended_races': ['Couch to 5K races', 'Beginner-friendly events', 'Supportive community runs'],
    },
}


def get_personality_description(personality_type: str) -> Dict:
    """Display copy for an archetype; unknown types get the newbie entry."""
    entry = PERSONALITY_DESCRIPTIONS.get(personality_type)
    if entry is None:
        entry = PERSONALITY_DESCRIPTIONS[DEFAULT_PERSONALITY_TYPE]
    return copy.deepcopy(entry)


def build_personality(traits: Optional[Dict] = None) -> Dict:
    """Full personality record derived from a trait vector."""
    normalized = normalize_traits(traits)
    return {
        'primary_type': calculate_personality_type(normalized),
        'secondary_types': calculate_secondary_types(normalized),
        'traits': normalized,
        'race_affinities': calculate_race_affinities(normalized),
    }


# =============================================================================
# RUNNER PROFILE
# =============================================================================

def default_preferences() -> Dict:
    return {
        'preferred_distances': [],
        'terrain': {terrain: TRAIT_DEFAULT for terrain in RACE_TERRAINS},
        'max_price': None,
        'max_travel_distance': None,
        'preferred_days': [],
        'vibes': [],
    }


def default_behavior() -> Dict:
    return {
        'viewed_races': [],
        'saved_races': [],
        'registered_races': [],
        'completed_races': [],
        'category_views': {category: 0 for category in RACE_CATEGORIES},
    }


GOAL_TERRAIN_PREFERENCE: int = 90


def _is_number(value) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _numeric_map(value) -> Dict:
    if not isinstance(value, dict):
        return {}
    return {key: score for key, score in value.items() if _is_number(score)}


def _clean_fields(data: Optional[Dict], defaults: Dict, what: str) -> Dict:
    """Deep copy of stored data with wrongly typed fields reset to their defaults.

    List and dict defaults require the same container type; None defaults
    hold an optional number.
    """
    cleaned = copy.deepcopy(data) if isinstance(data, dict) else {}
    for key, default in defaults.items():
        if key not in cleaned:
            continue
        value = cleaned[key]
        if isinstance(default, (list, dict)):
            valid = isinstance(value, type(default))
        else:
            valid = value is None or _is_number(value)
        if not valid:
            get_logger().warning(f"Ignoring malformed {what} field", field=key)
            cleaned[key] = copy.deepcopy(default)
    return cleaned


def merge_goal_preferences(preferences: Optional[Dict], goals) -> Dict:
    """Fold ParsedGoals distances and terrains into explicit preferences."""
    merged = default_preferences()
    merged.update(_clean_fields(preferences, default_preferences(), 'preferences'))
    merged['terrain'] = {**default_preferences()['terrain'], **_numeric_map(merged['terrain'])}

    if goals is None:
        return merged

    distances = list(merged['preferred_distances'])
    for category in goals.preferred_distances:
        if category in RACE_CATEGORIES and category not in distances:
            distances.append(category)
    merged['preferred_distances'] = distances

    for terrain in goals.preferred_terrain:
        if terrain in merged['terrain']:
            merged['terrain'][terrain] = max(merged['terrain'][terrain], GOAL_TERRAIN_PREFERENCE)

    return merged


def clean_behavior(behavior: Optional[Dict]) -> Dict:
    """Behavior signals over the defaults, ignoring malformed stored fields."""
    cleaned = {**default_behavior(), **_clean_fields(behavior, default_behavior(), 'behavior')}
    cleaned['category_views'] = _numeric_map(cleaned['category_views'])
    return cleaned


def build_runner_profile(traits: Optional[Dict] = None,
                         goals=None,
                         location: Optional[Dict] = None,
                         preferences: Optional[Dict] = None,
                         behavior: Optional[Dict] = None,
                         runner_id: str = 'local') -> Dict:
    """Assemble the explicit profile state consumed by race_scorer.score_race."""
    return {
        'id': runner_id,
        'location': copy.deepcopy(location) if location else None,
        'personality': build_personality(traits),
        'preferences': merge_goal_preferences(preferences, goals),
        'behavior': clean_behavior(behavior),
    }
