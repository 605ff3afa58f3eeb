"""Tests for request validation."""

from datetime import date

import pytest

from servers.event_search.errors import RequestValidationError
from servers.event_search.validation import validate_request


def invalid_fields(payload) -> set[str]:
    with pytest.raises(RequestValidationError) as exc_info:
        validate_request(payload)
    return {e.field for e in exc_info.value.errors}


class TestValidRequests:
    """Tests for accepted requests."""

    def test_coordinates(self):
        params = validate_request({"latitude": 40.7128, "longitude": -74.006, "radius": 10})
        assert params.center == (-74.006, 40.7128)
        assert params.radius == 10

    def test_defaults(self):
        params = validate_request({"location": "Brooklyn, NY"})
        assert params.radius == 25
        assert params.limit == 100
        assert params.page == 1
        assert params.sort_by == "date"
        assert params.use_cache is True

    def test_lat_lng_string_location(self):
        """A "lat,lng" location becomes coordinates."""
        params = validate_request({"location": "40.7128,-74.0060"})
        assert params.center == (-74.006, 40.7128)
        assert params.location is None

    def test_full_request(self):
        params = validate_request({
            "latitude": "40.7128",
            "longitude": "-74.006",
            "startDate": "2025-06-11",
            "endDate": "2025-06-20",
            "datePreset": "week",
            "categories": ["party", "music", "party"],
            "keyword": " jazz ",
            "limit": 20,
            "offset": 40,
            "sortBy": "distance",
            "excludeIds": ["ticketmaster:1"],
            "useCache": False,
            "requestId": "abc",
        })
        assert params.start_date == date(2025, 6, 11)
        assert params.categories == ("party", "music")
        assert params.keyword == "jazz"
        assert params.resolved_offset == 40
        assert params.exclude_ids == ("ticketmaster:1",)
        assert params.use_cache is False

    def test_comma_separated_categories(self):
        params = validate_request({"location": "NYC", "categories": "music,food"})
        assert params.categories == ("music", "food")


class TestInvalidRequests:
    """Tests for rejected requests."""

    def test_reports_every_invalid_field(self):
        """All problems are listed, not just the first."""
        fields = invalid_fields({
            "latitude": 123,
            "longitude": -74.0,
            "radius": 0,
            "startDate": "06/11/2025",
            "categories": ["music", "raves"],
            "limit": 500,
            "page": 0,
        })
        assert fields == {"latitude", "radius", "startDate", "categories", "limit", "page"}

    def test_location_required(self):
        assert invalid_fields({}) == {"location"}

    def test_latitude_without_longitude(self):
        assert invalid_fields({"latitude": 40.0}) == {"longitude"}

    def test_end_before_start(self):
        fields = invalid_fields({"location": "NYC", "startDate": "2025-06-20", "endDate": "2025-06-10"})
        assert fields == {"endDate"}

    def test_impossible_date(self):
        assert invalid_fields({"location": "NYC", "startDate": "2025-02-30"}) == {"startDate"}

    def test_bad_enums(self):
        fields = invalid_fields({"location": "NYC", "datePreset": "year", "sortBy": "price"})
        assert fields == {"datePreset", "sortBy"}

    def test_bool_is_not_a_number(self):
        assert invalid_fields({"location": "NYC", "radius": True}) == {"radius"}

    def test_non_object_body(self):
        assert invalid_fields(["not", "an", "object"]) == {"body"}

    def test_use_cache_type(self):
        assert invalid_fields({"location": "NYC", "useCache": "yes"}) == {"useCache"}

    def test_error_message_lists_fields(self):
        with pytest.raises(RequestValidationError) as exc_info:
            validate_request({"location": "NYC", "limit": 0, "offset": -1})
        assert "limit" in str(exc_info.value)
        assert "offset" in str(exc_info.value)
        assert exc_info.value.http_status == 400
