"""
Pydantic models for event search.

These models define the core data types used throughout the engine:
- Venue / Event: the canonical, immutable event record every provider is
  normalized into
- SearchParams: a validated search request
- SourceResult / SourceStats: per-provider outcome of one fan-out
- ProcessedResult: the pipeline output that gets cached
- SearchResponse: what callers receive

Wire format is camelCase; Python attributes are snake_case.
"""

from datetime import date, datetime
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, computed_field
from pydantic.alias_generators import to_camel

from .errors import ErrorKind


Category = Literal["music", "sports", "arts", "family", "food", "party", "other"]
PartySubcategory = Literal[
    "day-party",
    "brunch",
    "club",
    "networking",
    "celebration",
    "immersive",
    "popup",
    "silent",
    "rooftop",
    "social",
    "general",
]
DatePreset = Literal["today", "week", "month"]
SortBy = Literal["date", "distance"]

CATEGORIES: tuple[str, ...] = ("music", "sports", "arts", "family", "food", "party", "other")
PROVIDERS: tuple[str, ...] = ("ticketmaster", "predicthq", "rapidapi")

# (longitude, latitude)
Coordinates = tuple[float, float]

LOCATION_UNKNOWN = "Location not specified"


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class Venue(CamelModel):
    """Structured venue information when a provider supplies it."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    name: Optional[str] = None
    address: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    country: Optional[str] = None
    postal_code: Optional[str] = None
    coordinates: Optional[Coordinates] = None


class Attendance(CamelModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    forecast: Optional[int] = None
    actual: Optional[int] = None


class Event(CamelModel):
    """Canonical event record. Never mutated; use ``model_copy(update=...)``."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    # Identity
    id: str  # provider:providerId
    source: str

    # Core info
    title: str
    description: str = ""
    # Built from metadata because the provider sent none; not on the wire
    description_synthesized: bool = Field(default=False, exclude=True)

    # Timing (local wall-clock)
    start: Optional[datetime] = None
    end: Optional[datetime] = None
    date: Optional[str] = None  # YYYY-MM-DD
    time: Optional[str] = None  # HH:MM

    # Location
    location: str = LOCATION_UNKNOWN
    venue: Optional[Venue] = None
    coordinates: Optional[Coordinates] = None

    # Classification
    category: Category = "other"
    party_subcategory: Optional[PartySubcategory] = None
    subcategories: tuple[str, ...] = ()

    # Details
    url: Optional[str] = None
    image: Optional[str] = None
    price: Optional[str] = None
    price_min: Optional[float] = None
    price_max: Optional[float] = None

    # Provider signals
    rank: Optional[float] = None
    local_relevance: Optional[float] = None
    attendance: Optional[Attendance] = None
    demand_surge: Optional[int] = None

    # Set by the geo filter, miles from the search center
    distance: Optional[float] = None

    @property
    def has_coordinates(self) -> bool:
        return self.coordinates is not None

    @property
    def provider_description(self) -> str:
        """Description text the provider actually sent."""
        return "" if self.description_synthesized else self.description


class SearchParams(CamelModel):
    """A validated search request. See ``validation.validate_request``."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    latitude: Optional[float] = None
    longitude: Optional[float] = None
    radius: float = 25.0  # miles
    location: Optional[str] = None
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    date_preset: Optional[DatePreset] = None
    categories: tuple[Category, ...] = ()
    keyword: Optional[str] = None
    limit: int = 100
    page: int = 1
    offset: Optional[int] = None
    sort_by: SortBy = "date"
    exclude_ids: tuple[str, ...] = ()
    use_cache: bool = True
    request_id: Optional[str] = None

    @property
    def center(self) -> Optional[Coordinates]:
        """Search center as (longitude, latitude), if coordinates were given."""
        if self.latitude is None or self.longitude is None:
            return None
        return (self.longitude, self.latitude)

    @property
    def resolved_offset(self) -> int:
        if self.offset is not None:
            return self.offset
        return (self.page - 1) * self.limit


class SourceStats(CamelModel):
    """Per-provider diagnostics in the response."""

    count: int = 0
    error: Optional[str] = None
    error_kind: Optional[ErrorKind] = None
    duration_ms: Optional[int] = None


class SourceResult(BaseModel):
    """Outcome of one provider call after normalization."""

    source: str
    events: list[Event] = Field(default_factory=list)
    error: Optional[str] = None
    error_kind: Optional[ErrorKind] = None
    duration_ms: Optional[int] = None

    @computed_field
    @property
    def ok(self) -> bool:
        return self.error is None

    def to_stats(self) -> SourceStats:
        return SourceStats(
            count=len(self.events),
            error=self.error,
            error_kind=self.error_kind,
            duration_ms=self.duration_ms,
        )


class DuplicateMatch(BaseModel):
    """Records a duplicate match for audit trail."""

    key: str
    kept_event_id: str
    merged_event_id: str
    reason: str


class DedupeResult(BaseModel):
    """Result of deduplication with audit trail."""

    events: list[Event]
    original_count: int
    duplicates_removed: int
    audit_trail: list[DuplicateMatch] = Field(default_factory=list)

    @computed_field
    @property
    def dedup_rate(self) -> float:
        """Percentage of events that were duplicates."""
        if self.original_count == 0:
            return 0.0
        return self.duplicates_removed / self.original_count * 100


class ProcessedResult(BaseModel):
    """Filtered, deduplicated, sorted events before pagination. Cached as a whole."""

    model_config = ConfigDict(frozen=True)

    events: tuple[Event, ...]
    source_stats: dict[str, SourceStats]
    pipeline: dict[str, int] = Field(default_factory=dict)


class SearchMeta(CamelModel):
    execution_time: int  # ms
    total_events: int
    events_with_coordinates: int
    timestamp: datetime
    page: int
    limit: int
    offset: int
    has_more: bool
    cached: bool = False
    request_id: Optional[str] = None
    pipeline: dict[str, int] = Field(default_factory=dict)


class SearchResponse(CamelModel):
    events: list[Event]
    source_stats: dict[str, SourceStats]
    meta: SearchMeta

    def to_wire(self) -> dict:
        """JSON-ready dict with camelCase keys."""
        return self.model_dump(mode="json", by_alias=True)


def empty_source_stats(error: Optional[str] = None) -> dict[str, SourceStats]:
    """Stats with every known provider key present."""
    return {name: SourceStats(error=error) for name in PROVIDERS}
