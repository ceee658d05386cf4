#!/usr/bin/env python3
"""Tests for feed_assembler.py.

Covers:
- Diversity pass: category and state penalties inside the 5-race window
- Personalized feed: exclusion, ordering
- Feed sections and match explanations

Run with: pytest runners/scripts/tests/test_feed_assembler.py -v
"""

import sys
from datetime import date
from pathlib import Path

import pytest

# Add script path for imports
sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from feed_assembler import (
    FEED_SECTION_NAMES,
    apply_diversity_rules,
    generate_match_explanation,
    get_feed_sections,
    get_personalized_feed,
)
from runner_profile import build_runner_profile

TODAY = date(2026, 1, 1)


def scored(race_id, score, category='marathon', state=None, reasons=None, **fields):
    race = {
        'id': race_id,
        'category': category,
        'state': state,
        'relevance_score': score,
        'match_reasons': reasons or [],
    }
    race.update(fields)
    return race


# =============================================================================
# DIVERSITY
# =============================================================================

class TestApplyDiversityRules:
    """Greedy single pass with one re-sort."""

    def test_six_marathons(self):
        """Third and later same-category races are cut to 0.8x."""
        races = [scored(f"m{i}", s, state=st) for i, (s, st) in
                 enumerate(zip([90, 85, 80, 75, 70, 65], ['CA', 'NY', 'TX', 'MA', 'OR', 'IL']))]
        result = apply_diversity_rules(races)

        by_id = {r['id']: r['relevance_score'] for r in result}
        assert by_id['m0'] == 90
        assert by_id['m1'] == 85
        for i, original in enumerate([80, 75, 70, 65], start=2):
            assert by_id[f"m{i}"] == pytest.approx(original * 0.8)
            assert by_id[f"m{i}"] <= original * 0.8 + 1e-9

    def test_result_sorted_descending(self):
        races = [scored(f"m{i}", s) for i, s in enumerate([90, 85, 80, 75, 70, 65])]
        scores = [r['relevance_score'] for r in apply_diversity_rules(races)]
        assert scores == sorted(scores, reverse=True)

    def test_state_penalty(self):
        """Fourth race from the same state is cut to 0.9x."""
        races = [
            scored('a', 90, '5k', 'CA'),
            scored('b', 80, '10k', 'CA'),
            scored('c', 70, 'half', 'CA'),
            scored('d', 60, 'marathon', 'CA'),
        ]
        scores = [r['relevance_score'] for r in apply_diversity_rules(races)]
        assert scores == [90, 80, 70, pytest.approx(54)]

    def test_both_penalties_stack(self):
        races = [scored(str(i), 100 - i, 'marathon', 'CA') for i in range(4)]
        result = {r['id']: r['relevance_score'] for r in apply_diversity_rules(races)}
        assert result['3'] == pytest.approx(97 * 0.8 * 0.9)

    def test_window_slides(self):
        """A category seen only outside the last five races is not penalized."""
        races = [
            scored('m1', 100, 'marathon', 'A1'),
            scored('m2', 99, 'marathon', 'A2'),
            scored('x1', 98, '5k', 'A3'),
            scored('x2', 97, '10k', 'A4'),
            scored('x3', 96, 'half', 'A5'),
            scored('x4', 95, 'ultra', 'A6'),
            scored('x5', 94, '5k', 'A7'),
            scored('m3', 93, 'marathon', 'A8'),
        ]
        result = {r['id']: r['relevance_score'] for r in apply_diversity_rules(races)}
        assert result['m3'] == 93

    def test_inputs_not_mutated(self):
        races = [scored(f"m{i}", 90) for i in range(4)]
        apply_diversity_rules(races)
        assert all(r['relevance_score'] == 90 for r in races)

    def test_empty(self):
        assert apply_diversity_rules([]) == []


# =============================================================================
# PERSONALIZED FEED
# =============================================================================

class TestGetPersonalizedFeed:

    @pytest.fixture
    def races(self):
        return [
            {'id': 'local-5k', 'category': '5k', 'state': 'CO', 'date': '2026-03-15'},
            {'id': 'leadville', 'category': 'ultra', 'terrain': 'trail', 'state': 'CO',
             'date': '2026-08-15', 'elevation': 4700},
            {'id': 'nyc', 'category': 'marathon', 'terrain': 'road', 'state': 'NY',
             'date': '2026-11-01', 'is_featured': True},
        ]

    def test_scores_every_race(self, races):
        feed = get_personalized_feed(build_runner_profile(), races, today=TODAY)
        assert {r['id'] for r in feed} == {'local-5k', 'leadville', 'nyc'}
        assert all('relevance_score' in r and 'match_reasons' in r for r in feed)

    def test_excludes_ids(self, races):
        feed = get_personalized_feed(build_runner_profile(), races, exclude_ids=['nyc'], today=TODAY)
        assert [r['id'] for r in feed if r['id'] == 'nyc'] == []
        assert len(feed) == 2

    def test_sorted(self, races):
        feed = get_personalized_feed(build_runner_profile(), races, today=TODAY)
        scores = [r['relevance_score'] for r in feed]
        assert scores == sorted(scores, reverse=True)

    def test_trail_seeker_prefers_trail_ultra(self, races):
        profile = build_runner_profile(traits={
            'adventurous': 85, 'competitive': 30, 'social': 40,
            'endurance': 75, 'explorer': 20, 'casual': 30,
        })
        feed = get_personalized_feed(profile, races, today=TODAY)
        assert feed[0]['id'] == 'leadville'


# =============================================================================
# SECTIONS
# =============================================================================

class TestGetFeedSections:

    @pytest.fixture
    def feed(self):
        return [
            scored('local', 95, reasons=['Local race in CO'], date='2026-02-01'),
            scored('region', 90, reasons=['In your region'], date='2026-06-01'),
            scored('featured', 85, is_featured=True, date='2026-09-01'),
            scored('bucket', 80, reasons=['Destination race for your bucket list']),
            scored('browse', 75, reasons=['Based on your browsing'], date='2025-12-01'),
            scored('pref', 70, reasons=['Matches your 5K preference'], date='2026-03-02'),
        ]

    def test_all_sections_present(self, feed):
        sections = get_feed_sections(feed, today=TODAY)
        assert tuple(sections) == FEED_SECTION_NAMES

    def test_for_you_is_top_of_feed(self, feed):
        sections = get_feed_sections(feed, today=TODAY, for_you_limit=3)
        assert [r['id'] for r in sections['for_you']] == ['local', 'region', 'featured']

    def test_near_you(self, feed):
        sections = get_feed_sections(feed, today=TODAY)
        assert [r['id'] for r in sections['near_you']] == ['local', 'region']

    def test_bucket_list(self, feed):
        sections = get_feed_sections(feed, today=TODAY)
        assert [r['id'] for r in sections['bucket_list']] == ['featured', 'bucket']

    def test_coming_soon(self, feed):
        """Races 1-60 days out; past and undated races are left out."""
        sections = get_feed_sections(feed, today=TODAY)
        assert [r['id'] for r in sections['coming_soon']] == ['local', 'pref']

    def test_based_on_history(self, feed):
        sections = get_feed_sections(feed, today=TODAY)
        assert [r['id'] for r in sections['based_on_history']] == ['browse', 'pref']

    def test_section_limit(self):
        many = [scored(str(i), 100 - i, reasons=['Local race in CA']) for i in range(10)]
        sections = get_feed_sections(many, today=TODAY, section_limit=6)
        assert len(sections['near_you']) == 6
        assert len(sections['for_you']) == 10

    def test_empty_feed(self):
        sections = get_feed_sections([], today=TODAY)
        assert all(v == [] for v in sections.values())


class TestGenerateMatchExplanation:

    def test_no_reasons(self):
        assert generate_match_explanation({'match_reasons': []}) == 'Popular race in your area'
        assert generate_match_explanation({}) == 'Popular race in your area'

    def test_one_reason(self):
        assert generate_match_explanation({'match_reasons': ['Popular race']}) == 'Popular race'

    def test_two_of_three(self):
        race = {'match_reasons': ['Local race in CA', 'Perfect timing to train', 'Popular race']}
        assert generate_match_explanation(race) == 'Local race in CA • Perfect timing to train'


if __name__ == '__main__':
    pytest.main([__file__, '-v'])
