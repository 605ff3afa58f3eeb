"""
Aggregation pipeline over per-provider results.

Steps, each over the whole in-memory set:
1. Flatten source results in provider order
2. Field filter: required fields, excluded ids, keyword, category
3. Deduplicate (see dedup.py)
4. Geo filter: haversine miles from the search center, distance attached
5. Date filter: nothing before today's midnight, then the requested window
6. Stable sort by start (or by distance)
Pagination happens per request on the cached, processed list.
"""

import calendar
from datetime import date, datetime, timedelta
from typing import Callable, Optional

import structlog

from .dedup import deduplicate, format_audit_summary
from .geo import haversine_miles
from .models import (
    PROVIDERS,
    Event,
    ProcessedResult,
    SearchParams,
    SourceResult,
    SourceStats,
)

logger = structlog.get_logger()

# Slack for floating-point error at the radius boundary, in miles
DISTANCE_TOLERANCE = 1e-9


def preset_range(preset: str, today: date) -> tuple[date, date]:
    """Calendar window for a date preset, starting today.

    week ends on Sunday, month on the last day of the month.
    """
    if preset == "today":
        return today, today
    if preset == "week":
        return today, today + timedelta(days=6 - today.weekday())
    if preset == "month":
        last_day = calendar.monthrange(today.year, today.month)[1]
        return today, today.replace(day=last_day)
    raise ValueError(f"Unknown date preset: {preset}")


def date_window(params: SearchParams, today: date) -> tuple[date, Optional[date]]:
    """Inclusive (start, end) dates for a search. ``end`` None means open-ended."""
    start = max(params.start_date or today, today)
    end = params.end_date
    if params.date_preset:
        preset_start, preset_end = preset_range(params.date_preset, today)
        start = max(start, preset_start)
        end = preset_end if end is None else min(end, preset_end)
    return start, end


def has_required_fields(event: Event) -> bool:
    return bool(event.id and event.title and event.start is not None)


def matches_keyword(event: Event, keyword: Optional[str]) -> bool:
    if not keyword:
        return True
    needle = keyword.strip().lower()
    return needle in event.title.lower() or needle in (event.description or "").lower()


def matches_categories(event: Event, categories: tuple[str, ...]) -> bool:
    return not categories or event.category in categories


def geo_filter(events: list[Event], params: SearchParams) -> list[Event]:
    """Keep events within the radius and attach their distance.

    Without a search center the list passes through untouched.
    """
    center = params.center
    if center is None:
        return events

    kept = []
    for event in events:
        if event.coordinates is None:
            continue
        distance = haversine_miles(center, event.coordinates)
        if distance <= params.radius + DISTANCE_TOLERANCE:
            kept.append(event.model_copy(update={"distance": round(distance, 2)}))
    return kept


def date_filter(events: list[Event], params: SearchParams, today: date) -> list[Event]:
    start, end = date_window(params, today)
    floor = datetime.combine(start, datetime.min.time())
    kept = []
    for event in events:
        if event.start is None or event.start < floor:
            continue
        if end is not None and event.start.date() > end:
            continue
        kept.append(event)
    return kept


def sort_events(events: list[Event], sort_by: str = "date") -> list[Event]:
    """Stable sort; ties keep arrival order."""
    if sort_by == "distance":
        return sorted(events, key=lambda e: (e.distance is None, e.distance or 0.0))
    return sorted(events, key=lambda e: e.start)


def paginate(events: tuple[Event, ...], params: SearchParams) -> tuple[list[Event], bool]:
    """Slice a page. Returns (page, has_more)."""
    offset = params.resolved_offset
    page = list(events[offset:offset + params.limit])
    return page, offset + params.limit < len(events)


def build_source_stats(results: list[SourceResult]) -> dict[str, SourceStats]:
    """Stats for every known provider, from pre-merge results."""
    stats = {name: SourceStats() for name in PROVIDERS}
    for result in results:
        stats[result.source] = result.to_stats()
    return stats


class EventProcessor:
    """Merge, filter, deduplicate and sort provider results."""

    def __init__(self, clock: Callable[[], datetime] = datetime.now):
        self._clock = clock

    def process(self, results: list[SourceResult], params: SearchParams) -> ProcessedResult:
        today = self._clock().date()
        pipeline: dict[str, int] = {}

        merged = [event for result in results for event in result.events]
        pipeline["merged"] = len(merged)

        excluded = set(params.exclude_ids)
        filtered = [
            e for e in merged
            if has_required_fields(e)
            and e.id not in excluded
            and matches_keyword(e, params.keyword)
            and matches_categories(e, params.categories)
        ]
        pipeline["filtered"] = len(filtered)

        deduped = deduplicate(filtered)
        pipeline["deduplicated"] = len(deduped.events)
        if deduped.duplicates_removed:
            logger.debug(
                "duplicates_removed",
                removed=deduped.duplicates_removed,
                dedup_rate=round(deduped.dedup_rate, 1),
                summary=format_audit_summary(deduped),
            )

        located = geo_filter(deduped.events, params)
        pipeline["geoFiltered"] = len(located)

        dated = date_filter(located, params, today)
        pipeline["dateFiltered"] = len(dated)

        ordered = sort_events(dated, params.sort_by)

        logger.info("events_processed", **pipeline)
        return ProcessedResult(
            events=tuple(ordered),
            source_stats=build_source_stats(results),
            pipeline=pipeline,
        )
