"""
Event provider clients.

Each client implements:
- build_query(params) -> provider query parameters
- fetch(params) -> FetchOutcome with validated raw records or an error
"""

from .base import FetchOutcome, SourceClient
from .predicthq import PredictHQClient, PredictHQEvent
from .rapidapi import RapidAPIClient, RapidAPIEvent
from .ticketmaster import TicketmasterClient, TicketmasterEvent

__all__ = [
    "FetchOutcome",
    "SourceClient",
    "TicketmasterClient",
    "TicketmasterEvent",
    "PredictHQClient",
    "PredictHQEvent",
    "RapidAPIClient",
    "RapidAPIEvent",
]
