"""PredictHQ event -> canonical Event."""

from typing import Any, Optional

import structlog

from ..classifier import resolve_category
from ..models import Attendance, Event, Venue
from ..sources.predicthq import PredictHQEvent
from .common import (
    UNTITLED,
    build_location,
    clean_text,
    coordinates_from_address,
    display_fields,
    event_id,
    first_coordinates,
    pair,
    parse_timestamp,
    synthesize_description,
)

logger = structlog.get_logger()

SOURCE = "predicthq"


def _coordinate_candidates(raw: PredictHQEvent) -> list[Optional[tuple[Any, Any]]]:
    """(lon, lat) candidates, most precise first."""
    geometry = raw.geo.geometry if raw.geo else None
    point = None
    if geometry is not None and (geometry.type or "Point") == "Point":
        point = pair(geometry.coordinates)
    venue = raw.venue_entity
    addresses = [
        venue.formatted_address if venue else None,
        raw.geo.address.formatted_address if raw.geo and raw.geo.address else None,
    ]
    return [
        pair(raw.location),
        point,
        pair(venue.coordinates) if venue else None,
        pair(raw.place.location) if raw.place else None,
        *(coordinates_from_address(a) for a in addresses),
    ]


def normalize_predicthq(raw: PredictHQEvent) -> Optional[Event]:
    """Map a PredictHQ record; None when it cannot form a valid Event."""
    try:
        return _normalize(raw)
    except Exception as e:
        logger.debug("record_dropped", source=SOURCE, stage="normalize", error=str(e))
        return None


def _normalize(raw: PredictHQEvent) -> Optional[Event]:
    if not raw.id and not raw.title:
        logger.debug("record_dropped", source=SOURCE, stage="normalize", reason="no id or title")
        return None

    title = clean_text(raw.title) or UNTITLED
    start = parse_timestamp(raw.start, raw.timezone)
    end = parse_timestamp(raw.end, raw.timezone)
    date_str, time_str = display_fields(start)

    coordinates = first_coordinates(_coordinate_candidates(raw))

    venue_entity = raw.venue_entity
    address = raw.geo.address if raw.geo else None
    venue_name = (venue_entity.name if venue_entity else None) or (raw.place.name if raw.place else None)
    formatted_address = (venue_entity.formatted_address if venue_entity else None) or (
        address.formatted_address if address else None
    )
    city = (address.locality if address else None) or (raw.place.city if raw.place else None)
    state = (address.region if address else None) or (raw.place.state if raw.place else None) or raw.state
    country = (address.country_code if address else None) or raw.country

    venue = None
    if venue_name or formatted_address or coordinates:
        venue = Venue(
            name=venue_name,
            address=formatted_address,
            city=city,
            state=state,
            country=country,
            postal_code=address.postcode if address else None,
            coordinates=coordinates,
        )

    labels = tuple(raw.labels)
    description = clean_text(raw.description)
    category = resolve_category(SOURCE, raw.category, title, description, labels)
    synthesized = not description
    if synthesized:
        description = synthesize_description(title, category, venue_name, date_str)

    attendance = None
    if raw.phq_attendance is not None or raw.actual_attendance is not None:
        attendance = Attendance(forecast=raw.phq_attendance, actual=raw.actual_attendance)

    return Event(
        id=event_id(SOURCE, raw.id, title, start),
        source=SOURCE,
        title=title,
        description=description,
        description_synthesized=synthesized,
        start=start,
        end=end,
        date=date_str,
        time=time_str,
        location=build_location([venue_name, formatted_address, city, state, country]),
        venue=venue,
        coordinates=coordinates,
        category=category,
        subcategories=labels,
        rank=raw.rank,
        local_relevance=raw.local_rank,
        attendance=attendance,
        demand_surge=1 if "demand_surge" in labels else 0,
    )
