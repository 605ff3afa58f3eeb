"""
Tool server entry point for event search.

This server provides tools for:
- Searching events across all providers
- Reporting provider health and cache status
- Clearing the result cache
- Classifying a single event

Run with: python -m servers.event_search [--test]
"""

import asyncio
import json
import sys
from typing import Any, Optional

from .classifier import classify
from .config import load_settings
from .log import configure_logging
from .service import EventSearchService


class EventSearchServer:
    """Tool dispatch over an EventSearchService."""

    def __init__(self, service: Optional[EventSearchService] = None):
        self.service = service or EventSearchService()
        self.tools = {
            "search_events": self.search_events,
            "get_health": self.get_health,
            "clear_cache": self.clear_cache,
            "classify": self.classify,
        }

    async def search_events(self, **request: Any) -> dict:
        """
        Search events near a location.

        Accepts the same fields as POST /search-events (latitude, longitude,
        radius, location, startDate, endDate, categories, keyword, ...).
        Returns the response body; errors come back with an ``error`` field.
        """
        status, body = await self.service.handle_request(request)
        body["status"] = status
        return body

    async def get_health(self) -> dict:
        """Provider health, key status and cache statistics."""
        return self.service.health_report()

    async def clear_cache(self) -> dict:
        """Drop every cached search result."""
        return {"cleared": self.service.cache.clear()}

    async def classify(self, title: str, description: str = "", time: Optional[str] = None) -> dict:
        """Party classification for a title/description and optional HH:MM start."""
        is_party, subcategory = classify(title, description, time)
        return {"isParty": is_party, "partySubcategory": subcategory}

    async def call(self, tool: str, arguments: Optional[dict] = None) -> dict:
        if tool not in self.tools:
            return {"error": f"Unknown tool: {tool}", "available": list(self.tools)}
        return await self.tools[tool](**(arguments or {}))


async def main():
    """Main entry point."""
    settings = load_settings()
    configure_logging(settings.log_level, settings.log_json)
    server = EventSearchServer(EventSearchService(settings=settings))

    print("Local Event Search Server")
    print("Available tools:", list(server.tools.keys()))

    if "--test" in sys.argv:
        print("\n--- Running test search ---")
        try:
            result = await server.search_events(
                latitude=40.7128,
                longitude=-74.0060,
                radius=10,
                datePreset="week",
                limit=10,
            )
        finally:
            await server.service.aclose()
        print(f"Found {result['meta']['totalEvents']} events")
        for name, stats in result["sourceStats"].items():
            print(f"  {name}: {stats['count']} events (error: {stats['error']})")
        for event in result["events"]:
            print(f"  - {event['date']} {event['time']} {event['title']} [{event['category']}]")
        return

    # One JSON request per line: {"tool": "...", "arguments": {...}}
    await server.service.start()
    try:
        while True:
            line = await asyncio.to_thread(sys.stdin.readline)
            if not line:
                break
            line = line.strip()
            if not line:
                continue
            try:
                request = json.loads(line)
            except ValueError:
                print(json.dumps({"error": "Invalid JSON"}), flush=True)
                continue
            if not isinstance(request, dict):
                print(json.dumps({"error": "Request must be a JSON object"}), flush=True)
                continue
            result = await server.call(request.get("tool", ""), request.get("arguments"))
            print(json.dumps(result, default=str), flush=True)
    finally:
        await server.service.aclose()


if __name__ == "__main__":
    asyncio.run(main())
