"""
Cross-provider deduplication.

Two events are the same real-world event when they share a key of
normalized title + calendar date of start. Normalization lowercases, strips
punctuation and collapses whitespace, so "Friday Night Club Party" and
"friday night club party!!" collide.

When records collide the survivor is picked by, in order:
1. Has coordinates
2. Has an image
3. Longer provider description (synthesized text counts as none)
4. Higher rank
Full ties keep the record that arrived first.
"""

import re
from typing import Optional

from rapidfuzz import utils

from .models import DedupeResult, DuplicateMatch, Event


_WHITESPACE = re.compile(r"\s+")


def normalize_title(text: Optional[str]) -> str:
    """Normalize a title for key comparison."""
    if not text:
        return ""
    return _WHITESPACE.sub(" ", utils.default_process(text)).strip()


def dedup_key(event: Event) -> str:
    """Composite key: normalized title | YYYY-MM-DD."""
    day = event.start.date().isoformat() if event.start else (event.date or "")
    return f"{normalize_title(event.title)}|{day}"


def preference(event: Event) -> tuple[bool, bool, int, float]:
    """Sort key for choosing between duplicates; larger wins."""
    return (
        event.coordinates is not None,
        bool(event.image),
        len(event.provider_description),
        event.rank if event.rank is not None else float("-inf"),
    )


def _reason(primary: Event, secondary: Event) -> str:
    p, s = preference(primary), preference(secondary)
    for label, a, b in zip(("coordinates", "image", "description", "rank"), p, s):
        if a != b:
            return f"kept {primary.source} record: better {label}"
    return f"kept {primary.source} record: arrived first"


def choose_primary_event(current: Event, challenger: Event) -> tuple[Event, Event]:
    """
    Choose which event to keep.

    The challenger only replaces the current record when it is strictly
    preferred.

    Returns: (primary_event, secondary_event)
    """
    if preference(challenger) > preference(current):
        return (challenger, current)
    return (current, challenger)


def deduplicate(events: list[Event]) -> DedupeResult:
    """
    Collapse events sharing a dedup key.

    Output keeps the position of each key's first occurrence.

    Args:
        events: Events in arrival order

    Returns:
        DedupeResult with one event per key and an audit trail
    """
    if not events:
        return DedupeResult(events=[], original_count=0, duplicates_removed=0)

    slots: dict[str, int] = {}
    result_events: list[Event] = []
    audit_trail: list[DuplicateMatch] = []

    for event in events:
        key = dedup_key(event)
        index = slots.get(key)
        if index is None:
            slots[key] = len(result_events)
            result_events.append(event)
            continue

        primary, secondary = choose_primary_event(result_events[index], event)
        result_events[index] = primary
        audit_trail.append(DuplicateMatch(
            key=key,
            kept_event_id=primary.id,
            merged_event_id=secondary.id,
            reason=_reason(primary, secondary),
        ))

    return DedupeResult(
        events=result_events,
        original_count=len(events),
        duplicates_removed=len(events) - len(result_events),
        audit_trail=audit_trail,
    )


def format_audit_summary(result: DedupeResult) -> str:
    """Format audit trail as human-readable summary."""
    if not result.audit_trail:
        return "No duplicates found."

    lines = [
        "Deduplication Summary:",
        f"  Original events: {result.original_count}",
        f"  Duplicates removed: {result.duplicates_removed}",
        f"  Final events: {len(result.events)}",
        f"  Dedup rate: {result.dedup_rate:.1f}%",
        "",
        "Merged events:",
    ]
    for match in result.audit_trail:
        lines.append(f"  - {match.merged_event_id} -> {match.kept_event_id} ({match.reason})")

    return "\n".join(lines)
