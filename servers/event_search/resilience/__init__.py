"""Resilience patterns for provider calls."""

from .health import HealthMonitor, ProviderHealth
from .retry import RetryPolicy, retry_call

__all__ = [
    "retry_call",
    "RetryPolicy",
    "HealthMonitor",
    "ProviderHealth",
]
