"""
Per-provider normalizers.

Each normalizer maps one validated raw record to a canonical Event, or
returns None. Normalizers never raise.
"""

from typing import Callable, Optional

from pydantic import BaseModel

from ..models import Event
from .predicthq import normalize_predicthq
from .rapidapi import normalize_rapidapi
from .ticketmaster import normalize_ticketmaster

NORMALIZERS: dict[str, Callable[..., Optional[Event]]] = {
    "ticketmaster": normalize_ticketmaster,
    "predicthq": normalize_predicthq,
    "rapidapi": normalize_rapidapi,
}


def normalize_records(source: str, records: list[BaseModel]) -> list[Event]:
    """Normalize a provider's records, skipping the ones that yield None."""
    normalize = NORMALIZERS[source]
    events = []
    for record in records:
        event = normalize(record)
        if event is not None:
            events.append(event)
    return events


__all__ = [
    "NORMALIZERS",
    "normalize_records",
    "normalize_ticketmaster",
    "normalize_predicthq",
    "normalize_rapidapi",
]
