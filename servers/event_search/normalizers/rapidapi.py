"""RapidAPI real-time events record -> canonical Event."""

from typing import Optional

import structlog

from ..classifier import resolve_category
from ..models import Event, Venue
from ..sources.rapidapi import RapidAPIEvent
from .common import (
    UNTITLED,
    build_location,
    clean_text,
    coordinates_from_address,
    display_fields,
    event_id,
    first_coordinates,
    parse_timestamp,
    synthesize_description,
)

logger = structlog.get_logger()

SOURCE = "rapidapi"


def normalize_rapidapi(raw: RapidAPIEvent) -> Optional[Event]:
    """Map a RapidAPI record; None when it cannot form a valid Event."""
    try:
        return _normalize(raw)
    except Exception as e:
        logger.debug("record_dropped", source=SOURCE, stage="normalize", error=str(e))
        return None


def _normalize(raw: RapidAPIEvent) -> Optional[Event]:
    if not raw.event_id and not raw.name:
        logger.debug("record_dropped", source=SOURCE, stage="normalize", reason="no id or title")
        return None

    title = clean_text(raw.name) or UNTITLED
    rv = raw.venue
    timezone_name = rv.timezone if rv else None

    # start_time is already local; start_time_utc needs the venue timezone
    start = parse_timestamp(raw.start_time) or parse_timestamp(raw.start_time_utc, timezone_name)
    end = parse_timestamp(raw.end_time) or parse_timestamp(raw.end_time_utc, timezone_name)
    date_str, time_str = display_fields(start)

    venue = None
    coordinates = None
    location_fragments: list[Optional[str]] = []
    if rv is not None:
        street = " ".join(p for p in (rv.street_number, rv.street) if p) or None
        address = rv.full_address or street
        coordinates = first_coordinates([
            (rv.longitude, rv.latitude),
            coordinates_from_address(rv.full_address),
        ])
        venue = Venue(
            name=rv.name,
            address=address,
            city=rv.city,
            state=rv.state,
            country=rv.country,
            postal_code=rv.zipcode,
            coordinates=coordinates,
        )
        location_fragments = [rv.name, address, rv.city, rv.state]

    description = clean_text(raw.description)
    category = resolve_category(SOURCE, None, title, description)
    synthesized = not description
    if synthesized:
        description = synthesize_description(title, category, rv.name if rv else None, date_str)

    url = raw.link
    if not url:
        url = next((t.link for t in raw.ticket_links if t.link), None)

    return Event(
        id=event_id(SOURCE, raw.event_id, title, start),
        source=SOURCE,
        title=title,
        description=description,
        description_synthesized=synthesized,
        start=start,
        end=end,
        date=date_str,
        time=time_str,
        location=build_location(location_fragments),
        venue=venue,
        coordinates=coordinates,
        category=category,
        subcategories=tuple(raw.tags),
        url=url,
        image=raw.thumbnail,
    )
