"""
Local Event Search

Aggregates events near a location from several providers:
- Fetches from Ticketmaster, PredictHQ and RapidAPI concurrently
- Normalizes every provider into one canonical Event
- Classifies parties, deduplicates across providers, geo-filters by radius
- Caches processed results for a short TTL

Entry points: ``python -m servers.event_search`` and ``servers.event_search.api:app``
"""

__version__ = "2.0.0"
