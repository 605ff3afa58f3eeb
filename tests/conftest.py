"""Shared pytest fixtures for event search tests."""

import json
from datetime import date, datetime
from typing import Any, Callable

import httpx
import pytest

from servers.event_search.config import Settings
from servers.event_search.keys import ApiKeyManager
from servers.event_search.models import Event, Venue
from servers.event_search.resilience.retry import RetryPolicy

# Wednesday
FIXED_NOW = datetime(2025, 6, 11, 12, 0)
FIXED_TODAY = date(2025, 6, 11)

# Lower Manhattan, as (longitude, latitude)
NYC = (-74.0060, 40.7128)

VALID_KEYS = {
    "ticketmaster": "tm-test-key-1234567890",
    "predicthq": "phq-test-key-1234567890",
    "rapidapi": "rapid-test-key-1234567890",
}


@pytest.fixture
def fixed_now() -> datetime:
    return FIXED_NOW


@pytest.fixture
def settings() -> Settings:
    """Settings with valid keys and fast retries."""
    return Settings(
        api_keys=dict(VALID_KEYS),
        request_timeout=1.0,
        provider_deadline=5.0,
        max_attempts=3,
        backoff_base=0.0,
        max_retry_wait=0.0,
    )


@pytest.fixture
def keys() -> ApiKeyManager:
    return ApiKeyManager(VALID_KEYS)


@pytest.fixture
def fast_policy() -> RetryPolicy:
    """Retry policy with no waiting."""
    return RetryPolicy(
        max_attempts=3,
        base_delay=0.0,
        rate_limit_base_delay=0.0,
        max_rate_limit_wait=0.0,
        jitter=False,
    )


@pytest.fixture
def make_event() -> Callable[..., Event]:
    """Factory for canonical events with sensible defaults."""

    def _make(**overrides: Any) -> Event:
        values: dict[str, Any] = {
            "id": "ticketmaster:evt-1",
            "source": "ticketmaster",
            "title": "Indie Rock Night",
            "description": "Local indie bands showcase",
            "start": datetime(2025, 6, 12, 20, 0),
            "date": "2025-06-12",
            "time": "20:00",
            "location": "Bowery Ballroom, New York, NY",
            "coordinates": NYC,
            "category": "music",
        }
        values.update(overrides)
        return Event(**values)

    return _make


@pytest.fixture
def sample_venue() -> Venue:
    return Venue(
        name="Bowery Ballroom",
        address="6 Delancey St",
        city="New York",
        state="NY",
        country="United States Of America",
        postal_code="10002",
        coordinates=(-73.9937, 40.7204),
    )


@pytest.fixture
def ticketmaster_payload() -> dict:
    """Discovery API response with one complete and one broken event."""
    return {
        "_embedded": {
            "events": [
                {
                    "id": "vvG1zZ9",
                    "name": "Friday Night Club Party",
                    "url": "https://www.ticketmaster.com/event/vvG1zZ9",
                    "info": "21+ dance floor with resident DJs",
                    "dates": {
                        "start": {"localDate": "2025-06-13", "localTime": "22:00:00"},
                        "timezone": "America/New_York",
                    },
                    "images": [
                        {"url": "https://img.example.com/small.jpg", "width": 100},
                        {"url": "https://img.example.com/large.jpg", "width": 1024},
                    ],
                    "priceRanges": [{"min": 20.0, "max": 45.0, "currency": "USD"}],
                    "classifications": [
                        {
                            "segment": {"name": "Music"},
                            "genre": {"name": "Dance/Electronic"},
                            "subGenre": {"name": "Undefined"},
                        }
                    ],
                    "_embedded": {
                        "venues": [
                            {
                                "name": "Webster Hall",
                                "address": {"line1": "125 E 11th St"},
                                "city": {"name": "New York"},
                                "state": {"name": "New York", "stateCode": "NY"},
                                "country": {"name": "United States Of America"},
                                "postalCode": "10003",
                                "location": {"latitude": "40.7128", "longitude": "-74.0060"},
                            }
                        ]
                    },
                },
                {"id": 12345, "name": ["not", "a", "string"]},
            ]
        },
        "page": {"size": 2, "totalElements": 2},
    }


@pytest.fixture
def predicthq_payload() -> dict:
    """PredictHQ response; ``start`` is UTC."""
    return {
        "count": 2,
        "results": [
            {
                "id": "phq123",
                "title": "Jazz in the Park",
                "description": "",
                "category": "concerts",
                "labels": ["concert", "music", "outdoor"],
                "start": "2025-06-14T22:00:00Z",
                "end": "2025-06-15T01:00:00Z",
                "timezone": "America/New_York",
                "location": [-73.9654, 40.7829],
                "entities": [
                    {
                        "entity_id": "v1",
                        "name": "Central Park SummerStage",
                        "type": "venue",
                        "formatted_address": "Rumsey Playfield, New York, NY 10021",
                    }
                ],
                "rank": 62,
                "local_rank": 71,
                "phq_attendance": 4500,
            },
            {
                "id": "phq456",
                "title": "Street Festival",
                "category": "festivals",
                "start": "2025-06-15T14:00:00Z",
                "timezone": "America/New_York",
                "geo": {
                    "geometry": {"type": "Point", "coordinates": [-73.99, 40.73]},
                    "address": {"locality": "New York", "region": "NY", "country_code": "US"},
                },
            },
        ],
    }


@pytest.fixture
def rapidapi_payload() -> dict:
    """Real-time events search response."""
    return {
        "status": "OK",
        "data": [
            {
                "event_id": "L2F1dGhvcml0eS9ob3Jpem9u",
                "name": "friday night club party!!",
                "link": "https://www.eventbrite.com/e/123",
                "description": "Dance all night",
                "start_time": "2025-06-13 23:00:00",
                "start_time_utc": "2025-06-14 03:00:00",
                "is_virtual": False,
                "thumbnail": "https://img.example.com/thumb.jpg",
                "venue": {
                    "name": "Le Bain",
                    "full_address": "444 W 13th St, New York, NY 10014",
                    "latitude": 40.7410,
                    "longitude": -74.0080,
                    "city": "New York",
                    "state": "NY",
                    "country": "US",
                    "timezone": "America/New_York",
                },
            }
        ],
    }


def json_response(payload: Any, status: int = 200, headers: dict | None = None) -> httpx.Response:
    return httpx.Response(status, content=json.dumps(payload).encode(), headers={
        "Content-Type": "application/json", **(headers or {})
    })


@pytest.fixture
def provider_router(ticketmaster_payload: dict, predicthq_payload: dict, rapidapi_payload: dict):
    """MockTransport serving all three providers, with per-host call counts.

    Override a host's handler via ``router.handlers[host] = fn``.
    """

    class Router:
        def __init__(self) -> None:
            self.calls: dict[str, int] = {}
            self.requests: list[httpx.Request] = []
            self.handlers: dict[str, Callable[[httpx.Request], httpx.Response]] = {
                "app.ticketmaster.com": lambda r: json_response(ticketmaster_payload),
                "api.predicthq.com": lambda r: json_response(predicthq_payload),
                "real-time-events-search.p.rapidapi.com": lambda r: json_response(rapidapi_payload),
            }

        def __call__(self, request: httpx.Request) -> httpx.Response:
            host = request.url.host
            self.calls[host] = self.calls.get(host, 0) + 1
            self.requests.append(request)
            return self.handlers[host](request)

        @property
        def total_calls(self) -> int:
            return sum(self.calls.values())

        @property
        def transport(self) -> httpx.MockTransport:
            return httpx.MockTransport(self)

    return Router()
