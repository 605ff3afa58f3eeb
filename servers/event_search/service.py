"""
Event search service.

Owns every stateful collaborator (clients, cache, health monitor, key
manager) and runs one request through:

validate -> cache lookup -> concurrent provider fetch -> normalize -> tag
-> process -> cache write -> paginate -> response
"""

import asyncio
import time
from datetime import datetime, timezone
from typing import Any, Optional

import httpx
import structlog

from .cache import ResultCache, build_cache_key
from .classifier import tag
from .config import Settings, load_settings
from .errors import (
    ErrorKind,
    EventSearchError,
    InternalError,
    ProviderUnavailableError,
    format_error,
)
from .keys import ApiKeyManager
from .models import (
    SearchMeta,
    SearchParams,
    SearchResponse,
    SourceResult,
    empty_source_stats,
)
from .normalizers import normalize_records
from .processing import EventProcessor, paginate
from .resilience.health import HealthMonitor
from .resilience.retry import RetryPolicy
from .sources import PredictHQClient, RapidAPIClient, SourceClient, TicketmasterClient
from .validation import validate_request

logger = structlog.get_logger()


def build_clients(
    settings: Settings,
    keys: ApiKeyManager,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> list[SourceClient]:
    """One client per provider, sharing the configured retry policy."""
    policy = RetryPolicy(
        max_attempts=settings.max_attempts,
        base_delay=settings.backoff_base,
        max_rate_limit_wait=settings.max_retry_wait,
    )
    options = dict(
        keys=keys,
        timeout=settings.request_timeout,
        deadline=settings.provider_deadline,
        policy=policy,
        transport=transport,
    )
    return [
        TicketmasterClient(**options),
        PredictHQClient(**options),
        RapidAPIClient(**options),
    ]


class EventSearchService:
    """Aggregated event search across all providers."""

    def __init__(
        self,
        settings: Optional[Settings] = None,
        clients: Optional[list[SourceClient]] = None,
        cache: Optional[ResultCache] = None,
        health: Optional[HealthMonitor] = None,
        keys: Optional[ApiKeyManager] = None,
        processor: Optional[EventProcessor] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.settings = settings or load_settings()
        self.keys = keys or ApiKeyManager(self.settings.api_keys)
        self.clients = clients if clients is not None else build_clients(self.settings, self.keys, transport)
        self.cache = cache or ResultCache(ttl=self.settings.cache_ttl)
        self.health = health or HealthMonitor(
            error_threshold=self.settings.error_threshold,
            cooldown=self.settings.cooldown,
        )
        self.processor = processor or EventProcessor()
        self._health_task: Optional[asyncio.Task] = None

    async def start(self) -> None:
        """Start background maintenance: cache sweep and health checks."""
        self.cache.start_sweeper(self.settings.cache_sweep_interval)
        if self._health_task is None:
            self._health_task = asyncio.get_running_loop().create_task(
                self.health.run_periodic_checks(self.settings.health_check_interval)
            )
        logger.info("service_started", providers=[c.name for c in self.clients])

    async def aclose(self) -> None:
        await self.cache.stop_sweeper()
        if self._health_task is not None:
            self._health_task.cancel()
            try:
                await self._health_task
            except asyncio.CancelledError:
                pass
            self._health_task = None
        for client in self.clients:
            await client.aclose()

    async def _fetch_source(self, client: SourceClient, params: SearchParams) -> SourceResult:
        """Fetch, normalize and tag one provider. Failures are contained."""
        if not self.health.is_available(client.name):
            error = ProviderUnavailableError(
                "provider disabled after repeated errors", source=client.name
            )
            logger.info("provider_skipped", source=client.name, reason="unhealthy")
            return SourceResult(source=client.name, error=error.describe(), error_kind=error.kind)

        outcome = await client.fetch(params)
        if outcome.error is not None:
            error = outcome.error
            if error.kind != ErrorKind.UNAVAILABLE:
                self.health.record_failure(client.name, error.describe(), error.kind)
            return SourceResult(
                source=client.name,
                error=error.describe(),
                error_kind=error.kind,
                duration_ms=outcome.duration_ms,
            )

        self.health.record_success(client.name, len(outcome.records))
        events = [tag(event) for event in normalize_records(client.name, outcome.records)]
        return SourceResult(source=client.name, events=events, duration_ms=outcome.duration_ms)

    async def fetch_all(self, params: SearchParams) -> list[SourceResult]:
        """Query every provider concurrently and wait for all to settle."""
        outcomes = await asyncio.gather(
            *(self._fetch_source(client, params) for client in self.clients),
            return_exceptions=True,
        )
        results = []
        for client, outcome in zip(self.clients, outcomes):
            if isinstance(outcome, BaseException):
                if isinstance(outcome, asyncio.CancelledError):
                    raise outcome
                logger.error("provider_pipeline_crashed", source=client.name, error=str(outcome))
                outcome = SourceResult(
                    source=client.name,
                    error=f"{ErrorKind.SERVER.value}: {outcome}",
                    error_kind=ErrorKind.SERVER,
                )
            results.append(outcome)
        return results

    async def search(self, params: SearchParams) -> SearchResponse:
        """Run a validated search."""
        started = time.perf_counter()
        key = build_cache_key(params)

        processed = self.cache.get(key) if params.use_cache else None
        cached = processed is not None
        if cached:
            logger.info("cache_hit", key=key, request_id=params.request_id)
        else:
            results = await self.fetch_all(params)
            try:
                processed = self.processor.process(results, params)
            except Exception as e:
                logger.exception("processing_failed", request_id=params.request_id)
                raise InternalError("Failed to process events", details=str(e)) from e
            # Total outages are not cached so the next request retries
            if any(r.ok for r in results):
                self.cache.set(key, processed)

        page, has_more = paginate(processed.events, params)
        meta = SearchMeta(
            execution_time=int((time.perf_counter() - started) * 1000),
            total_events=len(processed.events),
            events_with_coordinates=sum(1 for e in processed.events if e.has_coordinates),
            timestamp=datetime.now(timezone.utc),
            page=params.page if params.offset is None else params.resolved_offset // params.limit + 1,
            limit=params.limit,
            offset=params.resolved_offset,
            has_more=has_more,
            cached=cached,
            request_id=params.request_id,
            pipeline=processed.pipeline,
        )
        return SearchResponse(events=page, source_stats=processed.source_stats, meta=meta)

    async def handle_request(self, payload: Any) -> tuple[int, dict]:
        """Validate and run a raw request.

        Returns:
            (http_status, JSON-ready body)
        """
        try:
            params = validate_request(payload)
            response = await self.search(params)
            return 200, response.to_wire()
        except EventSearchError as e:
            logger.warning("request_failed", error_type=e.error_type, error=e.message)
            return e.http_status, error_body(e)
        except Exception as e:
            logger.exception("request_crashed")
            return 500, error_body(e)

    def health_report(self) -> dict[str, Any]:
        return {
            "providers": self.health.get_status(),
            "keys": self.keys.status(),
            "cache": self.cache.stats(),
        }


def error_body(exc: Exception) -> dict:
    """Top-level error response, still carrying the full response shape."""
    meta = SearchMeta(
        execution_time=0,
        total_events=0,
        events_with_coordinates=0,
        timestamp=datetime.now(timezone.utc),
        page=1,
        limit=0,
        offset=0,
        has_more=False,
    )
    stats = empty_source_stats()
    return {
        **format_error(exc),
        "events": [],
        "sourceStats": {name: s.model_dump(mode="json", by_alias=True) for name, s in stats.items()},
        "meta": meta.model_dump(mode="json", by_alias=True),
    }
