"""
Ticketmaster Discovery API v2 client.

Docs: https://developer.ticketmaster.com/products-and-docs/apis/discovery-api/v2/
Searches by ``latlong`` + ``radius`` (miles) or by city name.
"""

import math
from datetime import date
from typing import Any, Optional, Union

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from ..classifier import TICKETMASTER_SEGMENT_NAMES
from ..models import SearchParams
from ..processing import date_window
from .base import SourceClient


TICKETMASTER_BASE = "https://app.ticketmaster.com/discovery/v2/events.json"
MAX_PAGE_SIZE = 200


class _TMModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")


class TMNamed(_TMModel):
    name: Optional[str] = None


class TMAddress(_TMModel):
    line1: Optional[str] = None
    line2: Optional[str] = None


class TMState(_TMModel):
    name: Optional[str] = None
    state_code: Optional[str] = None


class TMCountry(_TMModel):
    name: Optional[str] = None
    country_code: Optional[str] = None


class TMLocation(_TMModel):
    # Ticketmaster sends these as strings
    latitude: Optional[Union[float, str]] = None
    longitude: Optional[Union[float, str]] = None


class TMVenue(_TMModel):
    id: Optional[str] = None
    name: Optional[str] = None
    address: Optional[TMAddress] = None
    city: Optional[TMNamed] = None
    state: Optional[TMState] = None
    country: Optional[TMCountry] = None
    postal_code: Optional[str] = None
    location: Optional[TMLocation] = None


class TMEmbedded(_TMModel):
    venues: list[TMVenue] = Field(default_factory=list)


class TMDateInfo(_TMModel):
    local_date: Optional[str] = None
    local_time: Optional[str] = None
    date_time: Optional[str] = None
    date_tba: Optional[bool] = None
    time_tba: Optional[bool] = None


class TMDates(_TMModel):
    start: Optional[TMDateInfo] = None
    end: Optional[TMDateInfo] = None
    timezone: Optional[str] = None


class TMImage(_TMModel):
    url: Optional[str] = None
    width: Optional[int] = None
    height: Optional[int] = None


class TMPriceRange(_TMModel):
    min: Optional[float] = None
    max: Optional[float] = None
    currency: Optional[str] = None


class TMClassification(_TMModel):
    segment: Optional[TMNamed] = None
    genre: Optional[TMNamed] = None
    sub_genre: Optional[TMNamed] = None


class TicketmasterEvent(_TMModel):
    """One item of ``_embedded.events``."""

    id: Optional[str] = None
    name: Optional[str] = None
    url: Optional[str] = None
    info: Optional[str] = None
    description: Optional[str] = None
    please_note: Optional[str] = None
    dates: Optional[TMDates] = None
    images: list[TMImage] = Field(default_factory=list)
    price_ranges: list[TMPriceRange] = Field(default_factory=list)
    classifications: list[TMClassification] = Field(default_factory=list)
    embedded: Optional[TMEmbedded] = Field(default=None, alias="_embedded")

    @property
    def venue(self) -> Optional[TMVenue]:
        if self.embedded and self.embedded.venues:
            return self.embedded.venues[0]
        return None


class TicketmasterClient(SourceClient):
    name = "ticketmaster"
    base_url = TICKETMASTER_BASE
    record_model = TicketmasterEvent

    def __init__(self, *args: Any, today: Optional[date] = None, **kwargs: Any):
        super().__init__(*args, **kwargs)
        self._today = today

    def build_query(self, params: SearchParams) -> dict[str, Any]:
        query: dict[str, Any] = {
            "size": MAX_PAGE_SIZE,
            "sort": "date,asc",
            "includeTBA": "no",
            "includeTBD": "no",
        }

        if params.center is not None:
            lon, lat = params.center
            query["latlong"] = f"{lat},{lon}"
            query["radius"] = str(max(1, math.ceil(params.radius)))
            query["unit"] = "miles"
        elif params.location:
            query["city"] = params.location

        start, end = date_window(params, self._today or date.today())
        query["startDateTime"] = f"{start.isoformat()}T00:00:00Z"
        if end is not None:
            query["endDateTime"] = f"{end.isoformat()}T23:59:59Z"

        if params.keyword:
            query["keyword"] = params.keyword

        segments = list(dict.fromkeys(
            TICKETMASTER_SEGMENT_NAMES[c] for c in params.categories if c in TICKETMASTER_SEGMENT_NAMES
        ))
        if segments:
            query["segmentName"] = ",".join(segments)

        return query

    def authorize(self, key: str, query: dict[str, Any]) -> tuple[dict[str, Any], dict[str, str]]:
        return {**query, "apikey": key}, {}

    def extract_items(self, payload: Any) -> list[Any]:
        if not isinstance(payload, dict):
            return []
        embedded = payload.get("_embedded") or {}
        events = embedded.get("events") if isinstance(embedded, dict) else None
        return events if isinstance(events, list) else []
