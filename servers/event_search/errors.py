"""
Error taxonomy for event search.

Two families live here:
- Request-level errors (validation, internal) that become the HTTP status
  of the whole response.
- Provider-level errors (auth, rate limit, timeout, server, network) that are
  contained per source and reported in ``sourceStats``.
"""

from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel


class ErrorKind(str, Enum):
    """Cause classification for a failed provider call."""

    AUTH = "auth"
    RATE_LIMIT = "rate_limit"
    TIMEOUT = "timeout"
    SERVER = "server"
    NETWORK = "network"
    CLIENT = "client"
    UNAVAILABLE = "unavailable"


class FieldError(BaseModel):
    """A single invalid request field."""

    field: str
    message: str


class EventSearchError(Exception):
    """Base class for every error raised by the search engine."""

    http_status: int = 500
    error_type: str = "InternalError"

    def __init__(self, message: str, details: Optional[Any] = None):
        super().__init__(message)
        self.message = message
        self.details = details


class ConfigError(EventSearchError):
    """Environment configuration could not be parsed."""

    error_type = "ConfigError"


class RequestValidationError(EventSearchError):
    """The incoming request has one or more invalid fields."""

    http_status = 400
    error_type = "ValidationError"

    def __init__(self, errors: list[FieldError]):
        fields = ", ".join(e.field for e in errors)
        super().__init__(f"Invalid request fields: {fields}", details=errors)
        self.errors = errors


class InternalError(EventSearchError):
    """Unexpected failure inside the processing pipeline."""

    http_status = 500
    error_type = "InternalError"


class ProviderError(EventSearchError):
    """A provider call failed. Carries the provider name and an ErrorKind."""

    http_status = 502
    error_type = "ProviderError"
    kind: ErrorKind = ErrorKind.SERVER
    retryable: bool = True

    def __init__(
        self,
        message: str,
        source: Optional[str] = None,
        status_code: Optional[int] = None,
        kind: Optional[ErrorKind] = None,
        retryable: Optional[bool] = None,
    ):
        super().__init__(message)
        self.source = source
        self.status_code = status_code
        if kind is not None:
            self.kind = kind
        if retryable is not None:
            self.retryable = retryable

    def describe(self) -> str:
        """Render as ``kind: message`` for source statistics."""
        return f"{self.kind.value}: {self.message}"


class UnauthorizedError(ProviderError):
    """Credentials were rejected (401/403) or are unusable."""

    http_status = 401
    error_type = "UnauthorizedError"
    kind = ErrorKind.AUTH
    retryable = False


class MissingApiKeyError(UnauthorizedError):
    """No API key is configured for the provider."""

    error_type = "MissingApiKeyError"
    kind = ErrorKind.UNAVAILABLE


class InvalidApiKeyError(UnauthorizedError):
    """The configured key is a placeholder or malformed."""

    error_type = "InvalidApiKeyError"


class RateLimitedError(ProviderError):
    """Provider answered 429."""

    http_status = 429
    error_type = "RateLimited"
    kind = ErrorKind.RATE_LIMIT
    retryable = True

    def __init__(self, message: str, source: Optional[str] = None, retry_after: Optional[float] = None):
        super().__init__(message, source=source, status_code=429)
        self.retry_after = retry_after


class ProviderTimeoutError(ProviderError):
    """The provider did not answer within its time budget."""

    http_status = 504
    error_type = "Timeout"
    kind = ErrorKind.TIMEOUT
    retryable = True


class NetworkError(ProviderError):
    """Transport-level failure (DNS, connection reset, ...)."""

    error_type = "NetworkError"
    kind = ErrorKind.NETWORK
    retryable = True


class ProviderUnavailableError(ProviderError):
    """Provider skipped without a call: disabled by the health monitor."""

    http_status = 503
    error_type = "ProviderUnavailable"
    kind = ErrorKind.UNAVAILABLE
    retryable = False


def format_error(exc: Exception) -> dict:
    """Render an exception as the top-level error fields of a response body."""
    if isinstance(exc, RequestValidationError):
        return {
            "error": exc.message,
            "errorType": exc.error_type,
            "details": [e.model_dump() for e in exc.errors],
        }
    if isinstance(exc, EventSearchError):
        return {
            "error": exc.message,
            "errorType": exc.error_type,
            "details": exc.details,
        }
    return {
        "error": "Internal server error",
        "errorType": InternalError.error_type,
        "details": str(exc),
    }
