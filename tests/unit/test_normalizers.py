"""Tests for per-provider normalizers."""

from datetime import datetime

import pytest

from servers.event_search.models import LOCATION_UNKNOWN
from servers.event_search.normalizers import (
    normalize_predicthq,
    normalize_rapidapi,
    normalize_records,
    normalize_ticketmaster,
)
from servers.event_search.normalizers.common import (
    build_location,
    coordinates_from_address,
    event_id,
    first_coordinates,
    format_price,
    parse_timestamp,
)
from servers.event_search.sources import PredictHQEvent, RapidAPIEvent, TicketmasterEvent


class TestCommonHelpers:
    """Tests for shared normalizer helpers."""

    def test_build_location_dedupes_fragments(self):
        location = build_location(["Webster Hall", "125 E 11th St", "New York", "new york", "NY"])
        assert location == "Webster Hall, 125 E 11th St, New York, NY"

    def test_build_location_drops_blanks(self):
        assert build_location([None, "", "  ", "Brooklyn"]) == "Brooklyn"

    def test_build_location_default(self):
        assert build_location([None, ""]) == LOCATION_UNKNOWN

    def test_first_coordinates_priority(self):
        """The first valid candidate wins; invalid ones are skipped."""
        coords = first_coordinates([None, (999, 40.0), (-74.0, 40.7), (-73.0, 41.0)])
        assert coords == (-74.0, 40.7)

    def test_coordinates_from_address(self):
        assert coordinates_from_address("Pier 17 (40.7061, -74.0037)") == ("-74.0037", "40.7061")
        assert coordinates_from_address("89 South St") is None

    def test_parse_timestamp_converts_utc(self):
        """UTC values are converted to the event timezone and made naive."""
        assert parse_timestamp("2025-06-14T22:00:00Z", "America/New_York") == datetime(2025, 6, 14, 18, 0)

    def test_parse_timestamp_unknown_zone_keeps_wall_clock(self):
        assert parse_timestamp("2025-06-14T22:00:00Z", "Mars/Olympus") == datetime(2025, 6, 14, 22, 0)

    def test_parse_timestamp_garbage(self):
        assert parse_timestamp("not a date") is None
        assert parse_timestamp(None) is None

    def test_event_id_namespaced(self):
        assert event_id("predicthq", "abc", "Title", None) == "predicthq:abc"

    def test_event_id_fallback_is_deterministic(self):
        start = datetime(2025, 6, 14, 18, 0)
        assert event_id("rapidapi", None, "Title", start) == event_id("rapidapi", None, "Title", start)
        assert event_id("rapidapi", None, "Title", start).startswith("rapidapi:")

    def test_format_price(self):
        assert format_price(20.0, 45.0, "USD") == "$20.00 - $45.00"
        assert format_price(0.0, 0.0) == "Free"
        assert format_price(None, None) is None


class TestTicketmasterNormalizer:
    """Tests for Ticketmaster records."""

    @pytest.fixture
    def raw(self, ticketmaster_payload) -> TicketmasterEvent:
        return TicketmasterEvent.model_validate(ticketmaster_payload["_embedded"]["events"][0])

    def test_core_fields(self, raw):
        event = normalize_ticketmaster(raw)
        assert event.id == "ticketmaster:vvG1zZ9"
        assert event.source == "ticketmaster"
        assert event.title == "Friday Night Club Party"
        assert event.start == datetime(2025, 6, 13, 22, 0)
        assert (event.date, event.time) == ("2025-06-13", "22:00")

    def test_venue_and_coordinates(self, raw):
        event = normalize_ticketmaster(raw)
        assert event.coordinates == (-74.006, 40.7128)
        assert event.venue.name == "Webster Hall"
        assert event.venue.state == "NY"
        assert event.location == "Webster Hall, 125 E 11th St, New York, NY"

    def test_details(self, raw):
        event = normalize_ticketmaster(raw)
        assert event.image == "https://img.example.com/large.jpg"
        assert event.price == "$20.00 - $45.00"
        assert event.category == "music"
        assert event.subcategories == ("Dance/Electronic",)
        assert event.description == "21+ dance floor with resident DJs"
        assert event.description_synthesized is False

    def test_idempotent(self, raw):
        """Normalizing the same record twice yields identical events."""
        assert normalize_ticketmaster(raw) == normalize_ticketmaster(raw)

    def test_rejects_no_id_and_no_title(self):
        assert normalize_ticketmaster(TicketmasterEvent()) is None

    def test_untitled_with_id(self):
        event = normalize_ticketmaster(TicketmasterEvent(id="x1"))
        assert event.title == "Untitled Event"
        assert event.start is None
        assert event.location == LOCATION_UNKNOWN
        assert event.coordinates is None

    def test_invalid_coordinates_discarded(self, ticketmaster_payload):
        item = ticketmaster_payload["_embedded"]["events"][0]
        item["_embedded"]["venues"][0]["location"] = {"latitude": "NaN", "longitude": "-74.0"}
        event = normalize_ticketmaster(TicketmasterEvent.model_validate(item))
        assert event.coordinates is None


class TestPredictHQNormalizer:
    """Tests for PredictHQ records."""

    @pytest.fixture
    def raws(self, predicthq_payload) -> list[PredictHQEvent]:
        return [PredictHQEvent.model_validate(r) for r in predicthq_payload["results"]]

    def test_core_fields(self, raws):
        event = normalize_predicthq(raws[0])
        assert event.id == "predicthq:phq123"
        assert event.start == datetime(2025, 6, 14, 18, 0)
        assert event.category == "music"
        assert event.rank == 62
        assert event.local_relevance == 71
        assert event.attendance.forecast == 4500

    def test_location_is_lon_lat(self, raws):
        """PredictHQ ``location`` is already [lon, lat]."""
        assert normalize_predicthq(raws[0]).coordinates == (-73.9654, 40.7829)

    def test_geometry_fallback(self, raws):
        """Without ``location`` the geo point is used."""
        event = normalize_predicthq(raws[1])
        assert event.coordinates == (-73.99, 40.73)
        assert event.location == "New York, NY, US"

    def test_synthesized_description(self, raws):
        event = normalize_predicthq(raws[0])
        assert "Jazz in the Park" in event.description
        assert "Central Park SummerStage" in event.description
        assert event.description_synthesized is True
        assert event.provider_description == ""
        assert "descriptionSynthesized" not in event.model_dump(by_alias=True)

    def test_demand_surge_label(self):
        raw = PredictHQEvent(id="x", title="Big Game", labels=["demand_surge"])
        assert normalize_predicthq(raw).demand_surge == 1


class TestRapidAPINormalizer:
    """Tests for RapidAPI records."""

    @pytest.fixture
    def raw(self, rapidapi_payload) -> RapidAPIEvent:
        return RapidAPIEvent.model_validate(rapidapi_payload["data"][0])

    def test_core_fields(self, raw):
        event = normalize_rapidapi(raw)
        assert event.id == "rapidapi:L2F1dGhvcml0eS9ob3Jpem9u"
        assert event.start == datetime(2025, 6, 13, 23, 0)
        assert event.coordinates == (-74.008, 40.741)
        assert event.image == "https://img.example.com/thumb.jpg"
        assert event.url == "https://www.eventbrite.com/e/123"

    def test_keyword_category(self, raw):
        """No provider category: the text decides."""
        assert normalize_rapidapi(raw).category == "party"

    def test_utc_fallback(self):
        raw = RapidAPIEvent(
            name="Late Show",
            start_time_utc="2025-06-14 03:00:00+00:00",
            venue={"name": "Le Bain", "timezone": "America/New_York"},
        )
        assert normalize_rapidapi(raw).start == datetime(2025, 6, 13, 23, 0)


class TestNormalizeRecords:
    """Tests for batch normalization."""

    def test_skips_rejected_records(self, ticketmaster_payload):
        good = TicketmasterEvent.model_validate(ticketmaster_payload["_embedded"]["events"][0])
        events = normalize_records("ticketmaster", [good, TicketmasterEvent()])
        assert [e.id for e in events] == ["ticketmaster:vvG1zZ9"]
