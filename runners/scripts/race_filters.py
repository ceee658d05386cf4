#!/usr/bin/env python3
"""
Race list filtering for search and browse.

Filters are a plain dict; every key is optional:
    search             substring of name, city or state (case-insensitive)
    categories         list of race categories to keep
    start_date         earliest race date (date or 'YYYY-MM-DD'), inclusive
    end_date           latest race date, inclusive
    location           substring of city or state
    terrain            list of terrains; races with no terrain pass
    max_price          budget; races with no price pass
    max_distance_miles radius around `origin` ({'latitude', 'longitude'});
                       races that cannot be located pass
"""

from datetime import date, datetime
from typing import Dict, Iterable, List, Optional, Union

from location_service import get_distance_miles, get_race_coordinates
from race_records import get_price, parse_race_date


def _to_date(value: Union[date, str, None]) -> Optional[date]:
    if value is None or value == '':
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    try:
        return datetime.strptime(str(value)[:10], '%Y-%m-%d').date()
    except ValueError:
        return None


def _contains(haystacks: Iterable, needle: str) -> bool:
    return any(needle in str(h or '').lower() for h in haystacks)


def race_matches(race: Dict, filters: Dict) -> bool:
    """True if a single race passes every filter."""
    search = (filters.get('search') or '').lower().strip()
    if search and not _contains((race.get('name'), race.get('city'), race.get('state')), search):
        return False

    categories = filters.get('categories') or []
    if categories and race.get('category') not in categories:
        return False

    start, end = _to_date(filters.get('start_date')), _to_date(filters.get('end_date'))
    if start or end:
        race_day = parse_race_date(race)
        if race_day is None:
            return False
        if start and race_day < start:
            return False
        if end and race_day > end:
            return False

    location = (filters.get('location') or '').lower().strip()
    if location and not _contains((race.get('city'), race.get('state')), location):
        return False

    terrains = filters.get('terrain') or []
    if terrains and race.get('terrain') and race['terrain'] not in terrains:
        return False

    max_price = filters.get('max_price')
    price = get_price(race)
    if max_price and price and price > max_price:
        return False

    max_distance = filters.get('max_distance_miles')
    origin = filters.get('origin')
    if max_distance and origin:
        coords = get_race_coordinates(race.get('city') or '', race.get('state') or '')
        if coords and get_distance_miles(origin, coords) > max_distance:
            return False

    return True


def filter_races(races: Iterable[Dict], filters: Optional[Dict]) -> List[Dict]:
    """Apply search/browse filters to a race list, preserving order."""
    filters = filters or {}
    return [race for race in races if race_matches(race, filters)]


# =============================================================================
# VALIDATION
# =============================================================================

TEXT_FILTERS = ('search', 'location')
LIST_FILTERS = ('categories', 'terrain')
NUMBER_FILTERS = ('max_price', 'max_distance_miles')
DATE_FILTERS = ('start_date', 'end_date')


def _is_positive_number(value) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool) and value > 0


def validate_filters(filters: Optional[Dict]) -> Dict:
    """Check client-supplied filters; returns a copy with origin as floats.

    Raises ValueError naming the first malformed key. Null values are
    treated as absent.
    """
    if filters is None:
        return {}
    if not isinstance(filters, dict):
        raise ValueError("'filters' must be an object")

    cleaned = {key: value for key, value in filters.items() if value is not None}
    for key in TEXT_FILTERS:
        if key in cleaned and not isinstance(cleaned[key], str):
            raise ValueError(f"'{key}' must be a string")
    for key in LIST_FILTERS:
        if key in cleaned and not (isinstance(cleaned[key], list)
                                   and all(isinstance(item, str) for item in cleaned[key])):
            raise ValueError(f"'{key}' must be a list of strings")
    for key in NUMBER_FILTERS:
        if key in cleaned and not _is_positive_number(cleaned[key]):
            raise ValueError(f"'{key}' must be a positive number")
    for key in DATE_FILTERS:
        if key in cleaned and (not isinstance(cleaned[key], str) or _to_date(cleaned[key]) is None):
            raise ValueError(f"'{key}' must be a YYYY-MM-DD string")

    if 'origin' in cleaned:
        origin = cleaned['origin']
        if not isinstance(origin, dict) or any(isinstance(v, bool) for v in origin.values()):
            raise ValueError("'origin' needs numeric latitude and longitude")
        try:
            cleaned['origin'] = {axis: float(origin[axis]) for axis in ('latitude', 'longitude')}
        except (KeyError, TypeError, ValueError):
            raise ValueError("'origin' needs numeric latitude and longitude")
    return cleaned
