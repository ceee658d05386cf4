#!/usr/bin/env python3
"""Goal pattern table -- maps free-text phrasing to structured goal tags.

Each rule is plain data: a key, a list of case-insensitive regular
expressions (the rule matches if ANY of them is found in the text) and
exactly one GoalTag. The analyzer iterates PATTERN_RULES in declaration
order; adding a goal is a matter of appending a rule here.

Rule keys carry meaning for some categories:
  - distance rules: key is the race category they prefer ('marathon', '5k', ...)
  - terrain rules:  key is the terrain ('trail', 'road')
  - course rules:   key is the course characteristic ('hilly', 'flat', 'scenic')

Usage:
    from goal_patterns import PATTERN_RULES, get_tag

    for rule in PATTERN_RULES:
        if rule.matches(text):
            ...
"""

import re
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple

GOAL_CATEGORIES = ('distance', 'time', 'terrain', 'course', 'experience', 'special')

# Time tags with this id prefix set ParsedGoals.target_time
TARGET_TIME_TAG_PREFIX = 'sub-'


@dataclass(frozen=True)
class GoalTag:
    """A labeled, iconified unit representing one detected goal or preference."""
    id: str
    label: str
    category: str
    icon: str
    color: str

    def to_dict(self) -> Dict[str, str]:
        return {
            'id': self.id,
            'label': self.label,
            'category': self.category,
            'icon': self.icon,
            'color': self.color,
        }

    @classmethod
    def from_dict(cls, data: Dict) -> 'GoalTag':
        # Prefer the canonical table entry so stored tags stay in sync with it
        known = get_tag(data.get('id', ''))
        if known is not None:
            return known
        return cls(
            id=data.get('id', ''),
            label=data.get('label', ''),
            category=data.get('category', 'special'),
            icon=data.get('icon', ''),
            color=data.get('color', ''),
        )


@dataclass(frozen=True)
class PatternRule:
    """One entry of the pattern table."""
    key: str
    patterns: Tuple[re.Pattern, ...]
    tag: GoalTag

    @property
    def category(self) -> str:
        return self.tag.category

    def matches(self, text: str) -> bool:
        return any(p.search(text) for p in self.patterns)


def _rule(key: str, patterns: List[str], tag_id: str, label: str,
          category: str, icon: str, color: str) -> PatternRule:
    return PatternRule(
        key=key,
        patterns=tuple(re.compile(p, re.IGNORECASE) for p in patterns),
        tag=GoalTag(id=tag_id, label=label, category=category, icon=icon, color=color),
    )


# =============================================================================
# PATTERN TABLE
# =============================================================================
# Order matters: tags are reported in this order, and when several time rules
# match, the later one sets target_time.
# =============================================================================

PATTERN_RULES: List[PatternRule] = [
    # --- Boston qualifying ---
    _rule('bq', [
        r'\b(bq|boston qualif|qualify for boston|boston marathon|boston goal)\b',
        r'\bqualify\b.*\b(boston|baa)\b',
    ], 'bq', 'BQ Goal', 'special', 'star', '#F59E0B'),

    # --- First race goals ---
    _rule('first_marathon', [
        r'\b(first|1st)\s*(full\s*)?marathon\b',
        r'\bnever\s*(run|done|completed)\s*a?\s*marathon\b',
    ], 'first-marathon', 'First Marathon', 'special', 'ribbon', '#8B5CF6'),
    _rule('first_half', [
        r'\b(first|1st)\s*half\s*marathon\b',
        r'\bnever\s*(run|done|completed)\s*a?\s*half\b',
    ], 'first-half', 'First Half Marathon', 'special', 'ribbon', '#8B5CF6'),
    _rule('first_race', [
        r'\b(first|1st)\s*(ever\s*)?(race|5k|10k|run)\b',
        r'\bbeginner\b',
        r'\bnew\s*(to\s*)?running\b',
        r'\bjust\s*start(ed|ing)\b',
    ], 'first-race', 'First Race', 'experience', 'heart', '#EC4899'),

    # --- PR / speed ---
    _rule('pr', [
        r'\b(pr|personal record|personal best|pb|new record)\b',
        r'\bfaster\b',
        r'\bimprove\s*(my\s*)?(time|pace)\b',
        r'\bspeed\b',
    ], 'pr-goal', 'PR Attempt', 'time', 'timer', '#EF4444'),

    # --- Time targets ---
    _rule('sub_3', [
        r'\bsub[\s-]?3(:00)?\s*(hour|hr|marathon)?\b',
        r'\bunder\s*3\s*(hour|hr)\b',
        r'\b(break|beat)\s*3\s*(hour|hr)\b',
    ], 'sub-3', 'Sub-3:00 Marathon', 'time', 'flash', '#EF4444'),
    _rule('sub_330', [
        r'\bsub[\s-]?3:30\b',
        r'\bunder\s*3[\s:]30\b',
        r'\b(break|beat)\s*3[\s:]30\b',
    ], 'sub-330', 'Sub-3:30 Marathon', 'time', 'flash', '#F97316'),
    _rule('sub_4', [
        r'\bsub[\s-]?4(:00)?\s*(hour|hr|marathon)?\b',
        r'\bunder\s*4\s*(hour|hr)\b',
        r'\b(break|beat)\s*4\s*(hour|hr)\b',
    ], 'sub-4', 'Sub-4:00 Marathon', 'time', 'flash', '#F59E0B'),
    _rule('sub_2_half', [
        r'\bsub[\s-]?2(:00)?\s*(hour|hr)?\s*(half)?\b',
        r'\bunder\s*2\s*(hour|hr)?\s*(half)?\b',
    ], 'sub-2-half', 'Sub-2:00 Half', 'time', 'flash', '#F97316'),

    # --- Distance preferences (key == race category) ---
    _rule('marathon', [
        r'\bmarathon\b',
        r'\b26\.2\b',
        r'\bfull\s*marathon\b',
    ], 'pref-marathon', 'Marathon', 'distance', 'trophy', '#00C9A7'),
    _rule('half', [
        r'\bhalf\s*marathon\b',
        r'\b13\.1\b',
        r'\bhalf\b(?!.*time)',
    ], 'pref-half', 'Half Marathon', 'distance', 'medal', '#00C9A7'),
    _rule('ultra', [
        r'\bultra\b',
        r'\b50k\b',
        r'\b50\s*mile\b',
        r'\b100k\b',
        r'\b100\s*mile\b',
        r'\bendurance\b',
    ], 'pref-ultra', 'Ultra Running', 'distance', 'flame', '#DC2626'),
    _rule('5k', [
        r'\b5k\b',
        r'\bfive\s*k\b',
    ], 'pref-5k', '5K', 'distance', 'walk', '#00C9A7'),
    _rule('10k', [
        r'\b10k\b',
        r'\bten\s*k\b',
    ], 'pref-10k', '10K', 'distance', 'fitness', '#00C9A7'),

    # --- Terrain preferences (key == terrain) ---
    _rule('trail', [
        r'\btrail\b',
        r'\bmountain\b',
        r'\boff[\s-]?road\b',
        r'\bsingle[\s-]?track\b',
        r'\bwild(erness)?\b',
    ], 'pref-trail', 'Trail Running', 'terrain', 'leaf', '#16A34A'),
    _rule('road', [
        r'\broad\s*(race|running)\b',
        r'\bcity\s*run\b',
        r'\bpavement\b',
    ], 'pref-road', 'Road Racing', 'terrain', 'car', '#6366F1'),

    # --- Course characteristics ---
    _rule('hilly', [
        r'\bhilly?\b',
        r'\belev(ation)?\b',
        r'\bclimb(ing)?\b',
        r'\bascent\b',
        r'\bmountain(ous)?\b',
    ], 'pref-hilly', 'Hilly Courses', 'course', 'trending-up', '#D97706'),
    _rule('flat', [
        r'\bflat\b',
        r'\bfast\s*(course|race)?\b',
        r'\bno\s*hills?\b',
    ], 'pref-flat', 'Flat & Fast', 'course', 'arrow-forward', '#0EA5E9'),
    _rule('scenic', [
        r'\bscenic\b',
        r'\bbeautiful\b',
        r'\bview(s)?\b',
        r'\bnature\b',
        r'\bocean\b',
        r'\bbeach\b',
        r'\bcoast(al)?\b',
        r'\blake\b',
    ], 'pref-scenic', 'Scenic Routes', 'course', 'image', '#14B8A6'),

    # --- Special goals ---
    _rule('streak', [
        r'\bstreak\b',
        r'\b(run\s*)?every\s*(month|week)\b',
        r'\bmultiple\s*races\b',
        r'\brace\s*series\b',
    ], 'streak', 'Race Streak', 'special', 'calendar', '#8B5CF6'),
    _rule('charity', [
        r'\bcharity\b',
        r'\bfundrais(e|ing)\b',
        r'\bcause\b',
    ], 'charity', 'Charity Runs', 'special', 'heart', '#EC4899'),
    _rule('bucket_list', [
        r'\bbucket\s*list\b',
        r'\bdream\s*race\b',
        r'\bonce\s*in\s*a\s*lifetime\b',
        r'\biconic\b',
        r'\bmajor(s)?\b',
        r'\bworld\s*marathon\b',
    ], 'bucket-list', 'Bucket List Races', 'special', 'globe', '#6366F1'),
]


_TAGS_BY_ID: Dict[str, GoalTag] = {}
for _r in PATTERN_RULES:
    _TAGS_BY_ID.setdefault(_r.tag.id, _r.tag)


def get_tag(tag_id: str) -> Optional[GoalTag]:
    """Look up the canonical tag for an id, or None."""
    return _TAGS_BY_ID.get(tag_id)


def get_all_tags() -> List[GoalTag]:
    """All distinct tags in table order."""
    return list(_TAGS_BY_ID.values())


def get_rules_by_category(category: str) -> List[PatternRule]:
    """Rules of one goal category, in table order."""
    return [r for r in PATTERN_RULES if r.category == category]
