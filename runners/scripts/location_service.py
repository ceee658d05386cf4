#!/usr/bin/env python3
"""
Location service for distance calculation and city geocoding.

Coordinates are plain dicts: {'latitude': float, 'longitude': float}.
Geocoding is a static lookup over known race cities and US state centres;
there is no network geocoder.
"""

import math
from typing import Dict, Optional, Tuple

EARTH_RADIUS_MILES = 3959
REVERSE_GEOCODE_MAX_MILES = 100


def _coords(latitude: float, longitude: float) -> Dict[str, float]:
    return {'latitude': latitude, 'longitude': longitude}


# ---------------------------------------------------------------------------
# US city coordinates (major metros + race towns), keyed by (city, state)
# ---------------------------------------------------------------------------
CITY_COORDINATES: Dict[Tuple[str, str], Dict[str, float]] = {
    ('new york', 'NY'): _coords(40.7128, -74.006),
    ('brooklyn', 'NY'): _coords(40.6782, -73.9442),
    ('los angeles', 'CA'): _coords(34.0522, -118.2437),
    ('chicago', 'IL'): _coords(41.8781, -87.6298),
    ('houston', 'TX'): _coords(29.7604, -95.3698),
    ('phoenix', 'AZ'): _coords(33.4484, -112.074),
    ('philadelphia', 'PA'): _coords(39.9526, -75.1652),
    ('san antonio', 'TX'): _coords(29.4241, -98.4936),
    ('san diego', 'CA'): _coords(32.7157, -117.1611),
    ('dallas', 'TX'): _coords(32.7767, -96.797),
    ('san francisco', 'CA'): _coords(37.7749, -122.4194),
    ('austin', 'TX'): _coords(30.2672, -97.7431),
    ('seattle', 'WA'): _coords(47.6062, -122.3321),
    ('denver', 'CO'): _coords(39.7392, -104.9903),
    ('boston', 'MA'): _coords(42.3601, -71.0589),
    ('nashville', 'TN'): _coords(36.1627, -86.7816),
    ('portland', 'OR'): _coords(45.5051, -122.675),
    ('atlanta', 'GA'): _coords(33.749, -84.388),
    ('miami', 'FL'): _coords(25.7617, -80.1918),
    ('orlando', 'FL'): _coords(28.5383, -81.3792),
    ('minneapolis', 'MN'): _coords(44.9778, -93.265),
    ('detroit', 'MI'): _coords(42.3314, -83.0458),
    ('cincinnati', 'OH'): _coords(39.1031, -84.512),
    ('pittsburgh', 'PA'): _coords(40.4406, -79.9959),
    ('richmond', 'VA'): _coords(37.5407, -77.436),
    ('arlington', 'VA'): _coords(38.8816, -77.0910),
    ('charleston', 'SC'): _coords(32.7765, -79.9311),
    ('new orleans', 'LA'): _coords(29.9511, -90.0715),
    ('honolulu', 'HI'): _coords(21.3069, -157.8583),
    ('duluth', 'MN'): _coords(46.7867, -92.1005),
    ('burlington', 'VT'): _coords(44.4759, -73.2121),
    ('mobile', 'AL'): _coords(30.6954, -88.0399),
    ('boulder', 'CO'): _coords(40.015, -105.2705),
    # Race towns
    ('big sur', 'CA'): _coords(36.2704, -121.8081),
    ('olympic valley', 'CA'): _coords(39.1968, -120.2354),
    ('leadville', 'CO'): _coords(39.2508, -106.2925),
    ('manitou springs', 'CO'): _coords(38.8586, -104.9175),
    ('moab', 'UT'): _coords(38.5733, -109.5498),
    ('springdale', 'UT'): _coords(37.1889, -112.9988),
    ('fountain hills', 'AZ'): _coords(33.6117, -111.7173),
    ('ashford', 'WA'): _coords(46.7542, -122.0607),
    ('harpers ferry', 'WV'): _coords(39.3251, -77.7286),
    ('marin', 'CA'): _coords(37.9735, -122.5311),
    ('mill valley', 'CA'): _coords(37.906, -122.5419),
    ('napa', 'CA'): _coords(38.2975, -122.2869),
    ('grand canyon', 'AZ'): _coords(36.0544, -112.1401),
    ('chamonix', ''): _coords(45.9237, 6.8694),
}

# State centre coordinates (fallback when the city is unknown)
STATE_CENTERS: Dict[str, Dict[str, float]] = {
    'AL': _coords(32.806, -86.791),
    'AK': _coords(61.370, -152.404),
    'AZ': _coords(34.049, -111.094),
    'AR': _coords(34.800, -92.199),
    'CA': _coords(36.778, -119.418),
    'CO': _coords(39.550, -105.782),
    'CT': _coords(41.597, -72.755),
    'DE': _coords(39.319, -75.507),
    'DC': _coords(38.907, -77.037),
    'FL': _coords(27.665, -81.516),
    'GA': _coords(33.040, -83.643),
    'HI': _coords(21.094, -157.498),
    'ID': _coords(44.068, -114.742),
    'IL': _coords(40.633, -89.399),
    'IN': _coords(40.267, -86.135),
    'IA': _coords(42.011, -93.210),
    'KS': _coords(38.527, -96.726),
    'KY': _coords(37.839, -84.270),
    'LA': _coords(30.985, -91.962),
    'ME': _coords(45.254, -69.446),
    'MD': _coords(39.046, -76.641),
    'MA': _coords(42.407, -71.382),
    'MI': _coords(44.314, -85.602),
    'MN': _coords(46.730, -94.685),
    'MS': _coords(32.354, -89.398),
    'MO': _coords(38.573, -92.603),
    'MT': _coords(46.879, -110.363),
    'NE': _coords(41.493, -99.902),
    'NV': _coords(38.802, -116.420),
    'NH': _coords(43.193, -71.572),
    'NJ': _coords(40.059, -74.406),
    'NM': _coords(34.519, -105.870),
    'NY': _coords(42.165, -74.948),
    'NC': _coords(35.630, -79.806),
    'ND': _coords(47.528, -99.784),
    'OH': _coords(40.417, -82.907),
    'OK': _coords(35.007, -97.093),
    'OR': _coords(43.804, -120.554),
    'PA': _coords(41.203, -77.195),
    'RI': _coords(41.580, -71.478),
    'SC': _coords(33.836, -81.164),
    'SD': _coords(43.969, -99.902),
    'TN': _coords(35.517, -86.580),
    'TX': _coords(31.969, -99.902),
    'UT': _coords(39.321, -111.093),
    'VT': _coords(44.559, -72.578),
    'VA': _coords(37.431, -78.656),
    'WA': _coords(47.751, -120.740),
    'WV': _coords(38.598, -80.455),
    'WI': _coords(43.784, -88.788),
    'WY': _coords(43.076, -107.290),
}


def get_distance_miles(origin: Dict[str, float], destination: Dict[str, float]) -> float:
    """Great-circle distance in miles (haversine)."""
    lat1 = math.radians(origin['latitude'])
    lat2 = math.radians(destination['latitude'])
    d_lat = lat2 - lat1
    d_lon = math.radians(destination['longitude'] - origin['longitude'])

    a = (math.sin(d_lat / 2) ** 2
         + math.cos(lat1) * math.cos(lat2) * math.sin(d_lon / 2) ** 2)
    return EARTH_RADIUS_MILES * 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))


def format_distance(miles: float) -> str:
    if miles < 1:
        return '<1 mi'
    return f"{round(miles)} mi"


def _display_city(city: str) -> str:
    return city.title()


def get_race_coordinates(city: str, state: str) -> Optional[Dict[str, float]]:
    """Coordinates for a city/state: exact match, then city only, then state centre."""
    city_key = (city or '').lower().strip()

    exact = CITY_COORDINATES.get((city_key, state or ''))
    if exact:
        return exact

    for (known_city, _), coords in CITY_COORDINATES.items():
        if known_city == city_key:
            return coords

    if state and state in STATE_CENTERS:
        return STATE_CENTERS[state]

    return None


def reverse_geocode(coords: Dict[str, float]) -> Optional[Dict[str, str]]:
    """Nearest known city within 100 miles, else nearest state centre."""
    closest = None
    for (city, state), city_coords in CITY_COORDINATES.items():
        distance = get_distance_miles(coords, city_coords)
        if closest is None or distance < closest[0]:
            closest = (distance, city, state)

    if closest and closest[0] < REVERSE_GEOCODE_MAX_MILES:
        return {'city': _display_city(closest[1]), 'state': closest[2]}

    closest_state = None
    for state, state_coords in STATE_CENTERS.items():
        distance = get_distance_miles(coords, state_coords)
        if closest_state is None or distance < closest_state[0]:
            closest_state = (distance, state)

    if closest_state:
        return {'city': '', 'state': closest_state[1]}
    return None


def geocode_city(text: str) -> Optional[Dict]:
    """Resolve user-typed text ("boston", "Boston, MA", "CO") to a location.

    Returns {'coordinates', 'city', 'state'} or None.
    """
    query = (text or '').lower().strip()
    if not query:
        return None

    for (city, state), coords in CITY_COORDINATES.items():
        if city == query or f"{city}, {state.lower()}" == query:
            return {'coordinates': coords, 'city': _display_city(city), 'state': state}

    # Two-letter input is a state code before it is a city fragment
    state_code = query.upper()
    if state_code in STATE_CENTERS:
        return {'coordinates': STATE_CENTERS[state_code], 'city': '', 'state': state_code}

    for (city, state), coords in CITY_COORDINATES.items():
        if query in city or city in query:
            return {'coordinates': coords, 'city': _display_city(city), 'state': state}

    return None
