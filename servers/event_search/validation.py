"""
Request validation.

Every field is checked and every problem collected, so a 400 response lists
all invalid fields at once instead of stopping at the first.
"""

import re
from datetime import date
from typing import Any, Mapping, Optional

from .errors import FieldError, RequestValidationError
from .geo import parse_lat_lng
from .models import CATEGORIES, SearchParams


MIN_RADIUS = 1.0
MAX_RADIUS = 500.0
DEFAULT_RADIUS = 25.0
MAX_LIMIT = 100
DEFAULT_LIMIT = 100
MAX_KEYWORD_LENGTH = 200
DATE_PRESETS = ("today", "week", "month")
SORT_OPTIONS = ("date", "distance")

_DATE = re.compile(r"^\d{4}-\d{2}-\d{2}$")


class _Collector:
    def __init__(self) -> None:
        self.errors: list[FieldError] = []

    def add(self, field: str, message: str) -> None:
        self.errors.append(FieldError(field=field, message=message))


def _number(value: Any) -> Optional[float]:
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return float(value)
    if isinstance(value, str):
        try:
            return float(value.strip())
        except ValueError:
            return None
    return None


def _integer(value: Any) -> Optional[int]:
    number = _number(value)
    if number is None or not number.is_integer():
        return None
    return int(number)


def _parse_date(value: Any) -> Optional[date]:
    if not isinstance(value, str) or not _DATE.match(value):
        return None
    try:
        return date.fromisoformat(value)
    except ValueError:
        return None


def _ranged(errors: _Collector, payload: Mapping, field: str, low: float, high: float) -> Optional[float]:
    if payload.get(field) is None:
        return None
    value = _number(payload[field])
    if value is None:
        errors.add(field, f"{field} must be a number")
        return None
    if not low <= value <= high:
        errors.add(field, f"{field} must be between {low:g} and {high:g}")
        return None
    return value


def _string_list(errors: _Collector, payload: Mapping, field: str) -> list[str]:
    raw = payload.get(field)
    if raw is None:
        return []
    if isinstance(raw, str):
        raw = [part for part in raw.split(",")]
    if not isinstance(raw, (list, tuple)) or not all(isinstance(v, str) for v in raw):
        errors.add(field, f"{field} must be a list of strings")
        return []
    return [v.strip() for v in raw if v.strip()]


def validate_request(payload: Any) -> SearchParams:
    """Validate a raw search request.

    Raises:
        RequestValidationError: Listing every invalid field
    """
    errors = _Collector()
    if not isinstance(payload, Mapping):
        errors.add("body", "Request body must be a JSON object")
        raise RequestValidationError(errors.errors)

    values: dict[str, Any] = {}

    # Location
    latitude = _ranged(errors, payload, "latitude", -90.0, 90.0)
    longitude = _ranged(errors, payload, "longitude", -180.0, 180.0)
    has_lat = payload.get("latitude") is not None
    has_lng = payload.get("longitude") is not None
    if has_lat and not has_lng:
        errors.add("longitude", "longitude is required when latitude is given")
    if has_lng and not has_lat:
        errors.add("latitude", "latitude is required when longitude is given")

    location = payload.get("location")
    if location is not None and not isinstance(location, str):
        errors.add("location", "location must be a string")
        location = None
    location = location.strip() if location else None

    if latitude is None and longitude is None and not (has_lat or has_lng) and location:
        parsed = parse_lat_lng(location)
        if parsed is not None:
            longitude, latitude = parsed
            location = None

    if not (has_lat or has_lng) and not location and latitude is None:
        errors.add("location", "Either latitude/longitude or location is required")

    values.update(latitude=latitude, longitude=longitude, location=location)

    radius = _ranged(errors, payload, "radius", MIN_RADIUS, MAX_RADIUS)
    values["radius"] = DEFAULT_RADIUS if radius is None else radius

    # Dates
    for field in ("startDate", "endDate"):
        if payload.get(field) is None:
            continue
        parsed_date = _parse_date(payload[field])
        if parsed_date is None:
            errors.add(field, f"{field} must be a date in YYYY-MM-DD format")
        values[field] = parsed_date
    start_date, end_date = values.pop("startDate", None), values.pop("endDate", None)
    if start_date and end_date and end_date < start_date:
        errors.add("endDate", "endDate must not be before startDate")
    values.update(start_date=start_date, end_date=end_date)

    preset = payload.get("datePreset")
    if preset is not None and preset not in DATE_PRESETS:
        errors.add("datePreset", f"datePreset must be one of: {', '.join(DATE_PRESETS)}")
        preset = None
    values["date_preset"] = preset

    # Filters
    categories = _string_list(errors, payload, "categories")
    invalid = [c for c in categories if c not in CATEGORIES]
    if invalid:
        errors.add("categories", f"Unknown categories: {', '.join(invalid)}")
    values["categories"] = tuple(dict.fromkeys(c for c in categories if c in CATEGORIES))

    keyword = payload.get("keyword")
    if keyword is not None:
        if not isinstance(keyword, str):
            errors.add("keyword", "keyword must be a string")
            keyword = None
        elif len(keyword) > MAX_KEYWORD_LENGTH:
            errors.add("keyword", f"keyword must be at most {MAX_KEYWORD_LENGTH} characters")
            keyword = None
    values["keyword"] = (keyword.strip() or None) if keyword else None

    values["exclude_ids"] = tuple(_string_list(errors, payload, "excludeIds"))

    # Pagination
    limit = DEFAULT_LIMIT
    if payload.get("limit") is not None:
        parsed_limit = _integer(payload["limit"])
        if parsed_limit is None or not 1 <= parsed_limit <= MAX_LIMIT:
            errors.add("limit", f"limit must be an integer between 1 and {MAX_LIMIT}")
        else:
            limit = parsed_limit
    values["limit"] = limit

    if payload.get("page") is not None:
        page = _integer(payload["page"])
        if page is None or page < 1:
            errors.add("page", "page must be an integer of at least 1")
        else:
            values["page"] = page

    if payload.get("offset") is not None:
        offset = _integer(payload["offset"])
        if offset is None or offset < 0:
            errors.add("offset", "offset must be a non-negative integer")
        else:
            values["offset"] = offset

    sort_by = payload.get("sortBy", "date")
    if sort_by not in SORT_OPTIONS:
        errors.add("sortBy", f"sortBy must be one of: {', '.join(SORT_OPTIONS)}")
        sort_by = "date"
    values["sort_by"] = sort_by

    use_cache = payload.get("useCache", True)
    if not isinstance(use_cache, bool):
        errors.add("useCache", "useCache must be a boolean")
        use_cache = True
    values["use_cache"] = use_cache

    request_id = payload.get("requestId")
    if request_id is not None and not isinstance(request_id, str):
        errors.add("requestId", "requestId must be a string")
        request_id = None
    values["request_id"] = request_id

    if errors.errors:
        raise RequestValidationError(errors.errors)

    return SearchParams(**values)
