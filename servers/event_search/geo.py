"""Distance math and coordinate helpers. Coordinates are (longitude, latitude)."""

import math
import re
from typing import Any, Optional

from .models import Coordinates


EARTH_RADIUS_KM = 6371.0
KM_TO_MILES = 0.621371
MILES_TO_KM = 1.60934

_LAT_LNG_PATTERN = re.compile(r"^\s*(-?\d+(?:\.\d+)?)\s*,\s*(-?\d+(?:\.\d+)?)\s*$")


def miles_to_km(miles: float) -> float:
    return miles * MILES_TO_KM


def km_to_miles(km: float) -> float:
    return km * KM_TO_MILES


def haversine_km(a: Coordinates, b: Coordinates) -> float:
    """Great-circle distance in kilometres between two (lon, lat) points."""
    lon1, lat1 = a
    lon2, lat2 = b
    d_lat = math.radians(lat2 - lat1)
    d_lon = math.radians(lon2 - lon1)
    h = (
        math.sin(d_lat / 2) ** 2
        + math.cos(math.radians(lat1)) * math.cos(math.radians(lat2)) * math.sin(d_lon / 2) ** 2
    )
    return EARTH_RADIUS_KM * 2 * math.atan2(math.sqrt(h), math.sqrt(1 - h))


def haversine_miles(a: Coordinates, b: Coordinates) -> float:
    return km_to_miles(haversine_km(a, b))


def _to_float(value: Any) -> Optional[float]:
    if value is None or isinstance(value, bool):
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    if math.isnan(number) or math.isinf(number):
        return None
    return number


def make_coordinates(longitude: Any, latitude: Any) -> Optional[Coordinates]:
    """Build a validated (lon, lat) pair, or None when either value is unusable.

    Accepts numbers or numeric strings. (0, 0) is treated as missing data.
    """
    lon = _to_float(longitude)
    lat = _to_float(latitude)
    if lon is None or lat is None:
        return None
    if not (-180.0 <= lon <= 180.0 and -90.0 <= lat <= 90.0):
        return None
    if lon == 0.0 and lat == 0.0:
        return None
    return (lon, lat)


def parse_lat_lng(text: Optional[str]) -> Optional[Coordinates]:
    """Parse a ``"lat,lng"`` string into (lon, lat)."""
    if not text:
        return None
    match = _LAT_LNG_PATTERN.match(text)
    if not match:
        return None
    return make_coordinates(match.group(2), match.group(1))
