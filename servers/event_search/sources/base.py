"""
Shared HTTP plumbing for provider clients.

A client turns SearchParams into a provider query, performs the call under
the shared retry policy and an overall deadline, and validates each raw
record into the provider's payload model. ``fetch`` never raises a
provider failure; it comes back in ``FetchOutcome.error``.
"""

import asyncio
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Optional

import httpx
import structlog
from pydantic import BaseModel, ValidationError

from ..errors import (
    ErrorKind,
    NetworkError,
    ProviderError,
    ProviderTimeoutError,
    RateLimitedError,
    UnauthorizedError,
)
from ..keys import ApiKeyManager
from ..models import SearchParams
from ..resilience.retry import RetryPolicy, retry_call

logger = structlog.get_logger()


@dataclass
class FetchOutcome:
    """Raw result of one provider call."""

    source: str
    records: list[BaseModel] = field(default_factory=list)
    error: Optional[ProviderError] = None
    dropped: int = 0
    duration_ms: int = 0


def parse_retry_after(value: Optional[str]) -> Optional[float]:
    """Seconds from a Retry-After header; HTTP-date values are ignored."""
    if not value:
        return None
    try:
        return max(float(value.strip()), 0.0)
    except ValueError:
        return None


def raise_for_status(source: str, response: httpx.Response) -> None:
    """Map a non-2xx response onto the provider error taxonomy."""
    status = response.status_code
    if 200 <= status < 300:
        return
    if status in (401, 403):
        raise UnauthorizedError(f"HTTP {status} from {source}", source=source, status_code=status)
    if status == 429:
        raise RateLimitedError(
            f"HTTP 429 from {source}",
            source=source,
            retry_after=parse_retry_after(response.headers.get("Retry-After")),
        )
    if status >= 500:
        raise ProviderError(
            f"HTTP {status} from {source}",
            source=source,
            status_code=status,
            kind=ErrorKind.SERVER,
            retryable=True,
        )
    raise ProviderError(
        f"HTTP {status} from {source}",
        source=source,
        status_code=status,
        kind=ErrorKind.CLIENT,
        retryable=False,
    )


class SourceClient(ABC):
    """Base class for provider clients."""

    name: str = ""
    base_url: str = ""
    record_model: type[BaseModel]

    def __init__(
        self,
        keys: ApiKeyManager,
        timeout: float = 8.0,
        deadline: float = 25.0,
        policy: Optional[RetryPolicy] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.keys = keys
        self.timeout = timeout
        self.deadline = deadline
        self.policy = policy or RetryPolicy()
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    @abstractmethod
    def build_query(self, params: SearchParams) -> dict[str, Any]:
        """Provider query parameters for a search."""

    @abstractmethod
    def extract_items(self, payload: Any) -> list[Any]:
        """Pull the list of raw records out of a response body."""

    def authorize(self, key: str, query: dict[str, Any]) -> tuple[dict[str, Any], dict[str, str]]:
        """Attach credentials. Returns (query, headers)."""
        return query, {}

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self.timeout, transport=self._transport)
        return self._client

    async def aclose(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    async def _request(self, query: dict[str, Any], headers: dict[str, str]) -> Any:
        client = self._get_client()
        try:
            response = await client.get(self.base_url, params=query, headers=headers)
        except httpx.TimeoutException as e:
            raise ProviderTimeoutError(
                f"{self.name} did not respond within {self.timeout}s", source=self.name
            ) from e
        except httpx.HTTPError as e:
            raise NetworkError(f"{type(e).__name__}: {e}", source=self.name) from e

        raise_for_status(self.name, response)

        try:
            return response.json()
        except ValueError as e:
            raise ProviderError(
                f"Invalid JSON from {self.name}",
                source=self.name,
                kind=ErrorKind.SERVER,
                retryable=False,
            ) from e

    def parse_records(self, payload: Any) -> tuple[list[BaseModel], int]:
        """Validate raw records one by one; invalid ones are dropped.

        Returns:
            (records, dropped_count)
        """
        records: list[BaseModel] = []
        dropped = 0
        for item in self.extract_items(payload):
            try:
                records.append(self.record_model.model_validate(item))
            except ValidationError as e:
                dropped += 1
                logger.debug(
                    "record_dropped",
                    source=self.name,
                    stage="payload",
                    errors=e.error_count(),
                )
        return records, dropped

    async def fetch(self, params: SearchParams) -> FetchOutcome:
        """Query the provider. Failures are returned, never raised."""
        start = time.perf_counter()

        def elapsed() -> int:
            return int((time.perf_counter() - start) * 1000)

        try:
            key = self.keys.get_key(self.name)
            query, headers = self.authorize(key, self.build_query(params))
            payload = await asyncio.wait_for(
                retry_call(self._request, query, headers, policy=self.policy, source=self.name),
                timeout=self.deadline,
            )
            records, dropped = self.parse_records(payload)
        except asyncio.TimeoutError:
            error = ProviderTimeoutError(
                f"{self.name} exceeded {self.deadline}s deadline", source=self.name
            )
            logger.warning("provider_fetch_failed", source=self.name, error=error.describe())
            return FetchOutcome(source=self.name, error=error, duration_ms=elapsed())
        except ProviderError as e:
            logger.warning("provider_fetch_failed", source=self.name, error=e.describe())
            return FetchOutcome(source=self.name, error=e, duration_ms=elapsed())
        except Exception as e:
            logger.exception("provider_fetch_crashed", source=self.name)
            error = ProviderError(f"Unexpected error: {e}", source=self.name, retryable=False)
            return FetchOutcome(source=self.name, error=error, duration_ms=elapsed())

        logger.info(
            "provider_fetch_complete",
            source=self.name,
            records=len(records),
            dropped=dropped,
            duration_ms=elapsed(),
        )
        return FetchOutcome(source=self.name, records=records, dropped=dropped, duration_ms=elapsed())
