"""
PredictHQ Events API client.

Docs: https://docs.predicthq.com/resources/events
Radius is sent in kilometres (``within=25km@lat,lng``).
PredictHQ reports ``location`` as [longitude, latitude].
"""

from datetime import date
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field

from ..classifier import PREDICTHQ_SEARCH_CATEGORIES
from ..geo import miles_to_km
from ..models import SearchParams
from ..processing import date_window
from .base import SourceClient


PREDICTHQ_BASE = "https://api.predicthq.com/v1/events/"
MAX_PAGE_SIZE = 200


class _PHQModel(BaseModel):
    model_config = ConfigDict(extra="ignore")


class PHQEntity(_PHQModel):
    entity_id: Optional[str] = None
    name: Optional[str] = None
    type: Optional[str] = None
    formatted_address: Optional[str] = None
    coordinates: Optional[list[Any]] = None


class PHQGeometry(_PHQModel):
    type: Optional[str] = None
    coordinates: Optional[list[Any]] = None


class PHQGeoAddress(_PHQModel):
    formatted_address: Optional[str] = None
    locality: Optional[str] = None
    region: Optional[str] = None
    country_code: Optional[str] = None
    postcode: Optional[str] = None


class PHQGeo(_PHQModel):
    geometry: Optional[PHQGeometry] = None
    address: Optional[PHQGeoAddress] = None


class PHQPlace(_PHQModel):
    name: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    country: Optional[str] = None
    location: Optional[list[Any]] = None


class PredictHQEvent(_PHQModel):
    """One item of ``results``."""

    id: Optional[str] = None
    title: Optional[str] = None
    description: Optional[str] = None
    category: Optional[str] = None
    labels: list[str] = Field(default_factory=list)
    start: Optional[str] = None
    end: Optional[str] = None
    timezone: Optional[str] = None
    location: Optional[list[Any]] = None
    geo: Optional[PHQGeo] = None
    entities: list[PHQEntity] = Field(default_factory=list)
    place: Optional[PHQPlace] = None
    country: Optional[str] = None
    state: Optional[str] = None
    rank: Optional[float] = None
    local_rank: Optional[float] = None
    phq_attendance: Optional[int] = None
    actual_attendance: Optional[int] = None

    @property
    def venue_entity(self) -> Optional[PHQEntity]:
        for entity in self.entities:
            if entity.type == "venue":
                return entity
        return None


class PredictHQClient(SourceClient):
    name = "predicthq"
    base_url = PREDICTHQ_BASE
    record_model = PredictHQEvent

    def __init__(self, *args: Any, today: Optional[date] = None, **kwargs: Any):
        super().__init__(*args, **kwargs)
        self._today = today

    def build_query(self, params: SearchParams) -> dict[str, Any]:
        query: dict[str, Any] = {
            "limit": MAX_PAGE_SIZE,
            "sort": "start",
        }

        if params.center is not None:
            lon, lat = params.center
            radius_km = round(miles_to_km(params.radius), 1)
            query["within"] = f"{radius_km}km@{lat},{lon}"
        elif params.location:
            query["place.name"] = params.location

        start, end = date_window(params, self._today or date.today())
        query["start.gte"] = start.isoformat()
        if end is not None:
            query["active.lte"] = end.isoformat()

        categories: list[str] = []
        for category in params.categories:
            for phq in PREDICTHQ_SEARCH_CATEGORIES.get(category, []):
                if phq not in categories:
                    categories.append(phq)
        if categories:
            query["category"] = ",".join(categories)

        if params.keyword:
            query["q"] = params.keyword

        return query

    def authorize(self, key: str, query: dict[str, Any]) -> tuple[dict[str, Any], dict[str, str]]:
        return query, {"Authorization": f"Bearer {key}", "Accept": "application/json"}

    def extract_items(self, payload: Any) -> list[Any]:
        if not isinstance(payload, dict):
            return []
        results = payload.get("results")
        return results if isinstance(results, list) else []
