"""Health monitoring for event providers.

Each provider moves through::

    valid --(threshold consecutive errors, or one auth error)--> invalid
    invalid --(cooldown elapsed, or a successful call)--> valid

Only providers in the valid state are dispatched.
"""

import asyncio
import threading
import time
from datetime import datetime, timezone
from typing import Any, Callable, Optional

import structlog
from pydantic import BaseModel

from ..errors import ErrorKind

logger = structlog.get_logger()


class ProviderHealth(BaseModel):
    """Health record for one provider."""

    is_valid: bool = True
    error_count: int = 0
    last_error: Optional[str] = None
    last_error_kind: Optional[ErrorKind] = None
    last_used_at: Optional[float] = None
    disabled_at: Optional[float] = None
    total_calls: int = 0
    total_failures: int = 0


def _iso(ts: Optional[float]) -> Optional[str]:
    if ts is None:
        return None
    return datetime.fromtimestamp(ts, tz=timezone.utc).isoformat()


class HealthMonitor:
    """Track provider validity across requests.

    Safe to share between concurrent requests; every read-modify-write
    happens under one lock.
    """

    def __init__(
        self,
        error_threshold: int = 5,
        cooldown: float = 1800.0,
        clock: Callable[[], float] = time.time,
    ):
        self.error_threshold = error_threshold
        self.cooldown = cooldown
        self._clock = clock
        self._lock = threading.Lock()
        self._records: dict[str, ProviderHealth] = {}

    def _record(self, source: str) -> ProviderHealth:
        record = self._records.get(source)
        if record is None:
            record = ProviderHealth()
            self._records[source] = record
        return record

    def _cooldown_elapsed(self, record: ProviderHealth, now: float) -> bool:
        return record.disabled_at is not None and now - record.disabled_at >= self.cooldown

    def _enable(self, source: str, record: ProviderHealth) -> None:
        record.is_valid = True
        record.error_count = 0
        record.disabled_at = None
        logger.info("provider_reenabled", source=source)

    def is_available(self, source: str) -> bool:
        """Check whether a provider may be called now.

        An invalid provider whose cooldown has elapsed is re-enabled here.
        """
        with self._lock:
            record = self._record(source)
            if record.is_valid:
                return True
            if self._cooldown_elapsed(record, self._clock()):
                self._enable(source, record)
                return True
            return False

    def record_success(self, source: str, event_count: int = 0) -> None:
        """Record a successful call; resets the consecutive error count.

        Args:
            source: Provider name
            event_count: Number of raw records returned
        """
        with self._lock:
            record = self._record(source)
            was_invalid = not record.is_valid
            record.total_calls += 1
            record.last_used_at = self._clock()
            record.error_count = 0
            record.last_error = None
            record.last_error_kind = None
            if was_invalid:
                self._enable(source, record)
        logger.debug("provider_healthy", source=source, event_count=event_count)

    def record_failure(self, source: str, error: str, kind: Optional[ErrorKind] = None) -> None:
        """Record a failed call.

        Args:
            source: Provider name
            error: Error description
            kind: Error classification; AUTH invalidates immediately
        """
        with self._lock:
            record = self._record(source)
            now = self._clock()
            record.total_calls += 1
            record.total_failures += 1
            record.last_used_at = now
            record.error_count += 1
            record.last_error = error
            record.last_error_kind = kind

            should_disable = kind == ErrorKind.AUTH or record.error_count >= self.error_threshold
            if record.is_valid and should_disable:
                record.is_valid = False
                record.disabled_at = now
                logger.warning(
                    "provider_disabled",
                    source=source,
                    error_count=record.error_count,
                    error=error,
                    cooldown=self.cooldown,
                )
            else:
                logger.warning(
                    "provider_failure",
                    source=source,
                    error_count=record.error_count,
                    error=error,
                )

    def check_health(self) -> list[str]:
        """Re-enable every provider whose cooldown has elapsed.

        Returns:
            Names of providers that were re-enabled
        """
        reenabled = []
        with self._lock:
            now = self._clock()
            for source, record in self._records.items():
                if not record.is_valid and self._cooldown_elapsed(record, now):
                    self._enable(source, record)
                    reenabled.append(source)
        return reenabled

    async def run_periodic_checks(self, interval: float) -> None:
        """Run ``check_health`` every ``interval`` seconds until cancelled."""
        while True:
            await asyncio.sleep(interval)
            self.check_health()

    def get_source_status(self, source: str) -> Optional[ProviderHealth]:
        with self._lock:
            record = self._records.get(source)
            return record.model_copy() if record else None

    def get_status(self) -> dict[str, Any]:
        """Get full health status report.

        Returns:
            Dict with timestamp, summary counts and per-provider records
        """
        with self._lock:
            sources = {
                name: {
                    "isValid": r.is_valid,
                    "errorCount": r.error_count,
                    "lastError": r.last_error,
                    "lastErrorKind": r.last_error_kind.value if r.last_error_kind else None,
                    "lastUsedAt": _iso(r.last_used_at),
                    "disabledAt": _iso(r.disabled_at),
                    "totalCalls": r.total_calls,
                    "totalFailures": r.total_failures,
                }
                for name, r in self._records.items()
            }
        healthy = sum(1 for s in sources.values() if s["isValid"])
        return {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "summary": {
                "healthy": healthy,
                "unhealthy": len(sources) - healthy,
                "total": len(sources),
            },
            "sources": sources,
        }

    def reset(self, source: Optional[str] = None) -> None:
        """Reset health status.

        Args:
            source: Specific provider to reset, or None to reset all
        """
        with self._lock:
            if source:
                self._records.pop(source, None)
            else:
                self._records.clear()
