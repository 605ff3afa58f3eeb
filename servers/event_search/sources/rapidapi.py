"""
RapidAPI "Real-Time Events Search" client.

Free-text search (Google Events backed). Location goes into the query
string, so a radius cannot be expressed; the geo filter trims the results.
"""

from typing import Any, Optional, Union

from pydantic import BaseModel, ConfigDict, Field

from ..models import SearchParams
from .base import SourceClient


RAPIDAPI_HOST = "real-time-events-search.p.rapidapi.com"
RAPIDAPI_BASE = f"https://{RAPIDAPI_HOST}/search-events"

CATEGORY_QUERY_TERMS = {
    "music": "concerts",
    "sports": "sports games",
    "arts": "theater art shows",
    "family": "family events",
    "food": "food and drink events",
    "other": "events",
}
PARTY_QUERY_TERMS = "parties events nightlife"


class _RapidModel(BaseModel):
    model_config = ConfigDict(extra="ignore")


class RapidLink(_RapidModel):
    source: Optional[str] = None
    link: Optional[str] = None


class RapidVenue(_RapidModel):
    google_id: Optional[str] = None
    name: Optional[str] = None
    full_address: Optional[str] = None
    latitude: Optional[Union[float, str]] = None
    longitude: Optional[Union[float, str]] = None
    street_number: Optional[str] = None
    street: Optional[str] = None
    district: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    country: Optional[str] = None
    zipcode: Optional[str] = None
    timezone: Optional[str] = None
    subtype: Optional[str] = None
    subtypes: list[str] = Field(default_factory=list)


class RapidAPIEvent(_RapidModel):
    """One item of ``data``."""

    event_id: Optional[str] = None
    name: Optional[str] = None
    link: Optional[str] = None
    description: Optional[str] = None
    date_human_readable: Optional[str] = None
    start_time: Optional[str] = None
    start_time_utc: Optional[str] = None
    end_time: Optional[str] = None
    end_time_utc: Optional[str] = None
    is_virtual: Optional[bool] = None
    thumbnail: Optional[str] = None
    publisher: Optional[str] = None
    ticket_links: list[RapidLink] = Field(default_factory=list)
    info_links: list[RapidLink] = Field(default_factory=list)
    venue: Optional[RapidVenue] = None
    tags: list[str] = Field(default_factory=list)


def build_search_text(params: SearchParams) -> str:
    """Compose the free-text query.

    ``"parties events nightlife near 40.7128,-74.006 in New York"``
    """
    terms: list[str] = []
    for category in params.categories:
        term = PARTY_QUERY_TERMS if category == "party" else CATEGORY_QUERY_TERMS.get(category)
        if term and term not in terms:
            terms.append(term)
    parts = [" ".join(terms) if terms else "events"]

    if params.center is not None:
        lon, lat = params.center
        parts.append(f"near {lat},{lon}")
    if params.location:
        parts.append(f"in {params.location}")
    if params.keyword:
        parts.append(params.keyword)

    return " ".join(parts)


class RapidAPIClient(SourceClient):
    name = "rapidapi"
    base_url = RAPIDAPI_BASE
    record_model = RapidAPIEvent

    def build_query(self, params: SearchParams) -> dict[str, Any]:
        return {
            "query": build_search_text(params),
            "date": params.date_preset or "any",
            "is_virtual": "false",
            "start": "0",
        }

    def authorize(self, key: str, query: dict[str, Any]) -> tuple[dict[str, Any], dict[str, str]]:
        return query, {"x-rapidapi-key": key, "x-rapidapi-host": RAPIDAPI_HOST}

    def extract_items(self, payload: Any) -> list[Any]:
        if not isinstance(payload, dict):
            return []
        data = payload.get("data")
        return data if isinstance(data, list) else []
