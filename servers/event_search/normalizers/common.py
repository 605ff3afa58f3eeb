"""Helpers shared by the per-provider normalizers."""

import hashlib
import re
from datetime import datetime
from typing import Any, Iterable, Optional

from dateutil import parser, tz
from rapidfuzz import fuzz, utils

from ..geo import make_coordinates
from ..models import LOCATION_UNKNOWN, Coordinates


UNTITLED = "Untitled Event"

# Fragments at or above this token-set score are treated as repeats
FRAGMENT_SIMILARITY = 90

_ADDRESS_COORDS = re.compile(r"(-?\d{1,2}\.\d+)\s*,\s*(-?\d{1,3}\.\d+)")
_WHITESPACE = re.compile(r"\s+")
_TAGS = re.compile(r"<[^>]+>")


def clean_text(value: Optional[str]) -> str:
    """Strip markup and collapse whitespace."""
    if not value:
        return ""
    return _WHITESPACE.sub(" ", _TAGS.sub(" ", value)).strip()


def first_coordinates(candidates: Iterable[Optional[tuple[Any, Any]]]) -> Optional[Coordinates]:
    """First valid (lon, lat) among candidates, checked in order."""
    for candidate in candidates:
        if not candidate:
            continue
        coords = make_coordinates(candidate[0], candidate[1])
        if coords is not None:
            return coords
    return None


def pair(values: Optional[list[Any]]) -> Optional[tuple[Any, Any]]:
    """A two-element list as a tuple, else None."""
    if not values or len(values) != 2:
        return None
    return (values[0], values[1])


def coordinates_from_address(address: Optional[str]) -> Optional[tuple[Any, Any]]:
    """Find an embedded ``lat, lng`` in an address string. Returns (lon, lat)."""
    if not address:
        return None
    match = _ADDRESS_COORDS.search(address)
    if not match:
        return None
    return (match.group(2), match.group(1))


def build_location(fragments: Iterable[Optional[str]]) -> str:
    """Join location fragments, dropping blanks and repeats.

    "The Venue, 1 Main St, New York, New York, NY" -> "The Venue, 1 Main St, New York, NY"
    """
    kept: list[str] = []
    for raw in fragments:
        fragment = clean_text(raw).strip(" ,")
        if not fragment:
            continue
        processed = utils.default_process(fragment)
        repeat = False
        for existing in kept:
            other = utils.default_process(existing)
            if processed == other or set(processed.split()) <= set(other.split()):
                repeat = True
                break
            if fuzz.token_set_ratio(processed, other) >= FRAGMENT_SIMILARITY and len(processed) > 3:
                repeat = True
                break
        if not repeat:
            kept.append(fragment)
    return ", ".join(kept) if kept else LOCATION_UNKNOWN


def parse_timestamp(value: Optional[str], timezone_name: Optional[str] = None) -> Optional[datetime]:
    """Parse a provider timestamp into naive local wall-clock time.

    Offset-aware values are converted to ``timezone_name`` when it is known,
    then the offset is dropped.
    """
    if not value:
        return None
    try:
        parsed = parser.parse(value)
    except (ValueError, TypeError, OverflowError):
        return None
    if parsed.tzinfo is not None:
        zone = tz.gettz(timezone_name) if timezone_name else None
        if zone is not None:
            parsed = parsed.astimezone(zone)
        parsed = parsed.replace(tzinfo=None)
    return parsed


def display_fields(start: Optional[datetime]) -> tuple[Optional[str], Optional[str]]:
    """``date``/``time`` display strings derived from ``start``."""
    if start is None:
        return None, None
    return start.strftime("%Y-%m-%d"), start.strftime("%H:%M")


def event_id(provider: str, provider_id: Optional[str], title: str, start: Optional[datetime]) -> str:
    """Namespaced id; deterministic hash when the provider gives none."""
    if provider_id:
        return f"{provider}:{provider_id}"
    stamp = start.isoformat() if start else ""
    digest = hashlib.md5(f"{title.lower()}|{stamp}".encode()).hexdigest()[:16]
    return f"{provider}:{digest}"


def synthesize_description(
    title: str,
    category: str,
    venue_name: Optional[str] = None,
    date: Optional[str] = None,
) -> str:
    """Fallback description from metadata."""
    text = f"{title} ({category})"
    if venue_name:
        text += f" at {venue_name}"
    if date:
        text += f" on {date}"
    return text + "."


def format_price(
    minimum: Optional[float],
    maximum: Optional[float],
    currency: Optional[str] = None,
) -> Optional[str]:
    if minimum is None and maximum is None:
        return None
    symbol = "$" if (currency or "USD").upper() == "USD" else f"{currency} "
    if minimum is not None and maximum is not None and maximum != minimum:
        return f"{symbol}{minimum:.2f} - {symbol}{maximum:.2f}"
    value = minimum if minimum is not None else maximum
    if value == 0:
        return "Free"
    return f"{symbol}{value:.2f}"
