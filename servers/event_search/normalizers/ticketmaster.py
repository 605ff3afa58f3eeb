"""Ticketmaster Discovery event -> canonical Event."""

from datetime import datetime
from typing import Optional

import structlog

from ..classifier import resolve_category
from ..models import Event, Venue
from ..sources.ticketmaster import TicketmasterEvent, TMDateInfo
from .common import (
    UNTITLED,
    build_location,
    clean_text,
    coordinates_from_address,
    display_fields,
    event_id,
    first_coordinates,
    format_price,
    parse_timestamp,
    synthesize_description,
)

logger = structlog.get_logger()

SOURCE = "ticketmaster"


def _parse_date_info(info: Optional[TMDateInfo], timezone_name: Optional[str]) -> Optional[datetime]:
    """Local date/time first; the UTC ``dateTime`` only as a fallback."""
    if info is None:
        return None
    if info.local_date:
        return parse_timestamp(f"{info.local_date}T{info.local_time or '00:00:00'}")
    return parse_timestamp(info.date_time, timezone_name)


def _genres(raw: TicketmasterEvent) -> tuple[str, ...]:
    names: list[str] = []
    for classification in raw.classifications[:1]:
        for named in (classification.genre, classification.sub_genre):
            if named and named.name and named.name != "Undefined" and named.name not in names:
                names.append(named.name)
    return tuple(names)


def normalize_ticketmaster(raw: TicketmasterEvent) -> Optional[Event]:
    """Map a Ticketmaster record; None when it cannot form a valid Event."""
    try:
        return _normalize(raw)
    except Exception as e:
        logger.debug("record_dropped", source=SOURCE, stage="normalize", error=str(e))
        return None


def _normalize(raw: TicketmasterEvent) -> Optional[Event]:
    if not raw.id and not raw.name:
        logger.debug("record_dropped", source=SOURCE, stage="normalize", reason="no id or title")
        return None

    title = clean_text(raw.name) or UNTITLED
    timezone_name = raw.dates.timezone if raw.dates else None
    start = _parse_date_info(raw.dates.start if raw.dates else None, timezone_name)
    end = _parse_date_info(raw.dates.end if raw.dates else None, timezone_name)
    date_str, time_str = display_fields(start)

    tm_venue = raw.venue
    venue = None
    coordinates = None
    location_fragments: list[Optional[str]] = []
    if tm_venue is not None:
        address = tm_venue.address.line1 if tm_venue.address else None
        city = tm_venue.city.name if tm_venue.city else None
        state = None
        if tm_venue.state:
            state = tm_venue.state.state_code or tm_venue.state.name
        country = tm_venue.country.name if tm_venue.country else None

        coordinates = first_coordinates([
            (tm_venue.location.longitude, tm_venue.location.latitude) if tm_venue.location else None,
            coordinates_from_address(address),
        ])
        venue = Venue(
            name=tm_venue.name,
            address=address,
            city=city,
            state=state,
            country=country,
            postal_code=tm_venue.postal_code,
            coordinates=coordinates,
        )
        location_fragments = [tm_venue.name, address, city, state]

    segment = None
    if raw.classifications and raw.classifications[0].segment:
        segment = raw.classifications[0].segment.name

    description = clean_text(raw.description or raw.info or raw.please_note)
    category = resolve_category(SOURCE, segment, title, description)
    synthesized = not description
    if synthesized:
        description = synthesize_description(title, category, venue.name if venue else None, date_str)

    image = None
    if raw.images:
        widest = max(raw.images, key=lambda img: img.width or 0)
        image = widest.url

    price_min = price_max = None
    price = None
    if raw.price_ranges:
        price_range = raw.price_ranges[0]
        price_min, price_max = price_range.min, price_range.max
        price = format_price(price_min, price_max, price_range.currency)

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
        location=build_location(location_fragments),
        venue=venue,
        coordinates=coordinates,
        category=category,
        subcategories=_genres(raw),
        url=raw.url,
        image=image,
        price=price,
        price_min=price_min,
        price_max=price_max,
    )
