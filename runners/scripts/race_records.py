#!/usr/bin/env python3
"""
Tolerant accessors for race records.

Race records come from an external listing source as plain dicts and may
be missing any optional field, or carry it with the wrong type. Scoring
code reads fields only through these helpers so a malformed record
degrades to "not applicable" instead of raising.
"""

import math
from datetime import date, datetime
from typing import Any, Dict, Optional

from constants import CATEGORY_LABELS, HOME_COUNTRY


def _number(value: Any) -> Optional[float]:
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return value
    if isinstance(value, str):
        try:
            return float(value)
        except ValueError:
            return None
    return None


def get_elevation(race: Dict) -> Optional[float]:
    """Elevation gain in meters, or None."""
    return _number(race.get('elevation'))


def get_price(race: Dict) -> Optional[float]:
    """Entry price, or None."""
    return _number(race.get('price'))


def get_characteristic(race: Dict, name: str) -> bool:
    """True only if race.characteristics[name] is truthy."""
    characteristics = race.get('characteristics')
    if not isinstance(characteristics, dict):
        return False
    return bool(characteristics.get(name))


def is_featured(race: Dict) -> bool:
    return bool(race.get('is_featured'))


def get_country(race: Dict) -> str:
    return race.get('country') or HOME_COUNTRY


def category_label(race: Dict) -> str:
    """Display label for the race distance."""
    if race.get('distance_label'):
        return race['distance_label']
    category = race.get('category')
    return CATEGORY_LABELS.get(category, str(category or 'race'))


def parse_race_date(race: Dict) -> Optional[date]:
    """Race date from its ISO string (time part ignored), or None."""
    raw = race.get('date')
    if isinstance(raw, datetime):
        return raw.date()
    if isinstance(raw, date):
        return raw
    if not isinstance(raw, str) or len(raw) < 10:
        return None
    try:
        return datetime.strptime(raw[:10], '%Y-%m-%d').date()
    except ValueError:
        return None


def days_until(race: Dict, today: Optional[date] = None) -> Optional[int]:
    """Whole calendar days from today to race day, or None if undated."""
    race_day = parse_race_date(race)
    if race_day is None:
        return None
    return (race_day - (today or date.today())).days


def round_half_up(value: float) -> int:
    """Round .5 away from zero for positives, matching display rounding."""
    return int(math.floor(value + 0.5))
