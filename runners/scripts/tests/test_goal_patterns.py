#!/usr/bin/env python3
"""Tests for goal_patterns.py.

Covers:
- Table shape: every rule has patterns and a tag in a known category
- Rule keys for distance/terrain/course rules
- Tag lookup helpers

Run with: pytest runners/scripts/tests/test_goal_patterns.py -v
"""

import sys
from pathlib import Path

import pytest

# Add script path for imports
sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from constants import RACE_CATEGORIES, RACE_TERRAINS
from goal_patterns import (
    GOAL_CATEGORIES,
    PATTERN_RULES,
    GoalTag,
    get_all_tags,
    get_rules_by_category,
    get_tag,
)


class TestPatternTable:
    """Static shape of the rule table."""

    def test_every_rule_has_patterns(self):
        """A rule with no patterns could never match."""
        for rule in PATTERN_RULES:
            assert rule.patterns, rule.key

    def test_every_tag_category_known(self):
        """Tags only use the six goal categories."""
        for rule in PATTERN_RULES:
            assert rule.tag.category in GOAL_CATEGORIES, rule.key

    def test_rule_keys_unique(self):
        """Rule keys identify rules."""
        keys = [rule.key for rule in PATTERN_RULES]
        assert len(keys) == len(set(keys))

    def test_distance_keys_are_race_categories(self):
        """Distance rule keys feed preferred_distances directly."""
        for rule in get_rules_by_category('distance'):
            assert rule.key in RACE_CATEGORIES

    def test_terrain_keys_are_terrains(self):
        """Terrain rule keys feed preferred_terrain directly."""
        for rule in get_rules_by_category('terrain'):
            assert rule.key in RACE_TERRAINS

    def test_course_keys(self):
        """Course rules are hilly, flat and scenic in that order."""
        assert [r.key for r in get_rules_by_category('course')] == ['hilly', 'flat', 'scenic']

    def test_first_race_is_experience_tag(self):
        """first-race is the only experience-category tag."""
        assert [r.tag.id for r in get_rules_by_category('experience')] == ['first-race']


class TestRuleMatching:
    """Case-insensitive, any-pattern matching."""

    @pytest.mark.parametrize('text', [
        'I want to BQ this year',
        'hoping to qualify for Boston',
        'running the Boston Marathon',
    ])
    def test_bq_rule_matches(self, text):
        rule = next(r for r in PATTERN_RULES if r.key == 'bq')
        assert rule.matches(text)

    def test_marathon_rule_word_boundary(self):
        """'marathoner' is not the word marathon."""
        rule = next(r for r in PATTERN_RULES if r.key == 'marathon')
        assert rule.matches('running a marathon')
        assert not rule.matches('a seasoned marathoner')

    def test_no_rule_matches_empty_text(self):
        assert not any(rule.matches('') for rule in PATTERN_RULES)


class TestTagLookup:
    """get_tag / get_all_tags / GoalTag.from_dict."""

    def test_get_tag_known(self):
        tag = get_tag('pref-trail')
        assert tag.label == 'Trail Running'
        assert tag.category == 'terrain'

    def test_get_tag_unknown(self):
        assert get_tag('not-a-tag') is None

    def test_all_tags_distinct(self):
        ids = [t.id for t in get_all_tags()]
        assert len(ids) == len(set(ids))
        assert ids[0] == 'bq'

    def test_from_dict_prefers_table_entry(self):
        """Stored tags resolve to the canonical table tag."""
        tag = GoalTag.from_dict({'id': 'bq', 'label': 'old label'})
        assert tag is get_tag('bq')

    def test_from_dict_unknown_tag(self):
        tag = GoalTag.from_dict({'id': 'custom', 'label': 'Custom'})
        assert tag.id == 'custom'
        assert tag.category == 'special'

    def test_to_dict_round_trip(self):
        tag = get_tag('charity')
        assert GoalTag.from_dict(tag.to_dict()) == tag


if __name__ == '__main__':
    pytest.main([__file__, '-v'])
