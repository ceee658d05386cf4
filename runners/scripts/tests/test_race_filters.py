#!/usr/bin/env python3
"""Tests for race_filters.py.

Run with: pytest runners/scripts/tests/test_race_filters.py -v
"""

import sys
from datetime import date
from pathlib import Path

import pytest

# Add script path for imports
sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from location_service import CITY_COORDINATES
from race_filters import filter_races, race_matches, validate_filters


@pytest.fixture
def races():
    return [
        {'id': 'boston', 'name': 'Boston Marathon', 'city': 'Boston', 'state': 'MA',
         'category': 'marathon', 'terrain': 'road', 'date': '2026-04-20', 'price': 250},
        {'id': 'bolder', 'name': 'Bolder Boulder', 'city': 'Boulder', 'state': 'CO',
         'category': '10k', 'terrain': 'road', 'date': '2026-05-25', 'price': 70},
        {'id': 'leadville', 'name': 'Leadville Trail 100', 'city': 'Leadville', 'state': 'CO',
         'category': 'ultra', 'terrain': 'trail', 'date': '2026-08-15T06:00:00'},
        {'id': 'mystery', 'name': 'Mystery Run', 'category': '5k'},
    ]


def ids(races):
    return [r['id'] for r in races]


class TestFilterRaces:

    def test_no_filters(self, races):
        assert filter_races(races, None) == races
        assert filter_races(races, {}) == races

    def test_search_name_city_state(self, races):
        assert ids(filter_races(races, {'search': 'boulder'})) == ['bolder']
        assert ids(filter_races(races, {'search': 'co'})) == ['bolder', 'leadville']
        assert ids(filter_races(races, {'search': 'MYSTERY'})) == ['mystery']

    def test_categories(self, races):
        assert ids(filter_races(races, {'categories': ['ultra', '5k']})) == ['leadville', 'mystery']

    def test_date_range_inclusive(self, races):
        filters = {'start_date': '2026-04-20', 'end_date': date(2026, 8, 15)}
        assert ids(filter_races(races, filters)) == ['boston', 'bolder', 'leadville']

    def test_date_filter_drops_undated(self, races):
        assert 'mystery' not in ids(filter_races(races, {'start_date': '2026-01-01'}))

    def test_location(self, races):
        assert ids(filter_races(races, {'location': 'ma'})) == ['boston']

    def test_terrain_keeps_unknown(self, races):
        assert ids(filter_races(races, {'terrain': ['trail']})) == ['leadville', 'mystery']

    def test_max_price_keeps_unpriced(self, races):
        assert ids(filter_races(races, {'max_price': 100})) == ['bolder', 'leadville', 'mystery']

    def test_radius(self, races):
        denver = CITY_COORDINATES[('denver', 'CO')]
        result = filter_races(races, {'max_distance_miles': 100, 'origin': denver})
        assert ids(result) == ['bolder', 'leadville', 'mystery']

    def test_radius_needs_origin(self, races):
        assert filter_races(races, {'max_distance_miles': 10}) == races

    def test_combined(self, races):
        filters = {'location': 'co', 'categories': ['10k'], 'max_price': 100}
        assert ids(filter_races(races, filters)) == ['bolder']

    def test_race_matches_single(self, races):
        assert race_matches(races[0], {'search': 'boston'})
        assert not race_matches(races[0], {'categories': ['5k']})


class TestValidateFilters:

    def test_valid_filters_pass(self):
        filters = {'search': 'boston', 'categories': ['marathon'], 'terrain': ['road'],
                   'start_date': '2026-01-01', 'end_date': '2026-12-31',
                   'max_price': 100, 'max_distance_miles': 50.5, 'location': None}
        assert validate_filters(filters) == {k: v for k, v in filters.items() if v is not None}

    def test_missing_filters(self):
        assert validate_filters(None) == {}

    def test_origin_coerced_to_floats(self):
        cleaned = validate_filters({'origin': {'latitude': '42.36', 'longitude': -71}})
        assert cleaned['origin'] == {'latitude': 42.36, 'longitude': -71.0}

    @pytest.mark.parametrize('filters', [
        ['search'],
        {'search': 5},
        {'location': ['co']},
        {'categories': 'marathon'},
        {'terrain': ['trail', 3]},
        {'max_price': '100'},
        {'max_price': 0},
        {'max_distance_miles': True},
        {'start_date': 'soon'},
        {'end_date': 20260101},
        {'origin': [39.7, -104.9]},
        {'origin': {'lat': 1}},
        {'origin': {'latitude': True, 'longitude': 1}},
    ])
    def test_malformed_filters_rejected(self, filters):
        with pytest.raises(ValueError):
            validate_filters(filters)


if __name__ == '__main__':
    pytest.main([__file__, '-v'])
