"""
Runtime settings loaded from environment variables.

API keys:
- TICKETMASTER_KEY (or TICKETMASTER_API_KEY)
- PREDICTHQ_API_KEY (or PREDICTHQ_KEY)
- RAPIDAPI_KEY (or REAL_TIME_EVENTS_API_KEY, X_RAPIDAPI_KEY)

Tunables use the EVENT_SEARCH_ prefix; see ``_TUNABLES``.
"""

import os
from typing import Mapping, Optional

from pydantic import BaseModel, Field

from .errors import ConfigError


KEY_ENV_VARS = {
    "ticketmaster": ("TICKETMASTER_KEY", "TICKETMASTER_API_KEY"),
    "predicthq": ("PREDICTHQ_API_KEY", "PREDICTHQ_KEY"),
    "rapidapi": ("RAPIDAPI_KEY", "REAL_TIME_EVENTS_API_KEY", "X_RAPIDAPI_KEY"),
}

# env var -> (settings field, type)
_TUNABLES = {
    "EVENT_SEARCH_REQUEST_TIMEOUT": ("request_timeout", float),
    "EVENT_SEARCH_PROVIDER_DEADLINE": ("provider_deadline", float),
    "EVENT_SEARCH_MAX_ATTEMPTS": ("max_attempts", int),
    "EVENT_SEARCH_BACKOFF_BASE": ("backoff_base", float),
    "EVENT_SEARCH_MAX_RETRY_WAIT": ("max_retry_wait", float),
    "EVENT_SEARCH_CACHE_TTL": ("cache_ttl", float),
    "EVENT_SEARCH_CACHE_SWEEP_INTERVAL": ("cache_sweep_interval", float),
    "EVENT_SEARCH_ERROR_THRESHOLD": ("error_threshold", int),
    "EVENT_SEARCH_COOLDOWN": ("cooldown", float),
    "EVENT_SEARCH_HEALTH_CHECK_INTERVAL": ("health_check_interval", float),
}


class Settings(BaseModel):
    """Configuration for the search service."""

    api_keys: dict[str, Optional[str]] = Field(default_factory=dict)

    # Provider calls
    request_timeout: float = 8.0  # per attempt
    provider_deadline: float = 25.0  # whole call including retries
    max_attempts: int = 3
    backoff_base: float = 0.5
    max_retry_wait: float = 10.0

    # Cache
    cache_ttl: float = 300.0
    cache_sweep_interval: float = 60.0

    # Provider health
    error_threshold: int = 5
    cooldown: float = 1800.0
    health_check_interval: float = 300.0

    log_level: str = "INFO"
    log_json: bool = False


def _first_set(environ: Mapping[str, str], names: tuple[str, ...]) -> Optional[str]:
    for name in names:
        value = environ.get(name)
        if value and value.strip():
            return value.strip()
    return None


def load_settings(environ: Optional[Mapping[str, str]] = None) -> Settings:
    """Build Settings from the environment.

    Raises:
        ConfigError: If a numeric tunable cannot be parsed or is not positive
    """
    env = os.environ if environ is None else environ

    values: dict = {
        "api_keys": {name: _first_set(env, names) for name, names in KEY_ENV_VARS.items()},
        "log_level": env.get("LOG_LEVEL", "INFO"),
        "log_json": env.get("LOG_JSON", "").lower() in ("1", "true", "yes"),
    }

    for var, (field, cast) in _TUNABLES.items():
        raw = env.get(var)
        if raw is None or raw == "":
            continue
        try:
            parsed = cast(raw)
        except ValueError:
            raise ConfigError(f"{var} must be a number, got {raw!r}")
        if parsed <= 0:
            raise ConfigError(f"{var} must be positive, got {raw!r}")
        values[field] = parsed

    return Settings(**values)
