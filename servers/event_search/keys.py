"""API key lookup, validation and masking."""

import threading
from typing import Mapping, Optional

import structlog

from .errors import InvalidApiKeyError, MissingApiKeyError

logger = structlog.get_logger()


PLACEHOLDER_MARKERS = ("placeholder", "example", "your_", "your-", "changeme", "xxx", "<")
MIN_KEY_LENGTH = 8


def mask_key(key: Optional[str]) -> str:
    """Mask a key for logging: first and last four characters only."""
    if not key:
        return "<none>"
    if len(key) <= 8:
        return "****"
    return f"{key[:4]}...{key[-4:]}"


def is_valid_key(key: Optional[str]) -> bool:
    """Reject empty, too-short and placeholder keys."""
    if not key or len(key.strip()) < MIN_KEY_LENGTH:
        return False
    lowered = key.lower()
    return not any(marker in lowered for marker in PLACEHOLDER_MARKERS)


class ApiKeyManager:
    """Holds one key per provider and counts how often each is used."""

    def __init__(self, keys: Mapping[str, Optional[str]]):
        self._keys = dict(keys)
        self._usage: dict[str, int] = {name: 0 for name in self._keys}
        self._lock = threading.Lock()

    def has_key(self, provider: str) -> bool:
        return is_valid_key(self._keys.get(provider))

    def get_key(self, provider: str) -> str:
        """Return a usable key for ``provider``.

        Raises:
            MissingApiKeyError: No key is configured
            InvalidApiKeyError: The key looks like a placeholder
        """
        key = self._keys.get(provider)
        if not key:
            raise MissingApiKeyError(f"{provider} API key not configured", source=provider)
        if not is_valid_key(key):
            logger.warning("api_key_invalid", provider=provider, key=mask_key(key))
            raise InvalidApiKeyError(f"{provider} API key is invalid", source=provider)
        with self._lock:
            self._usage[provider] = self._usage.get(provider, 0) + 1
        return key

    def usage(self) -> dict[str, int]:
        with self._lock:
            return dict(self._usage)

    def status(self) -> dict[str, dict]:
        """Per-provider key report, safe to expose."""
        usage = self.usage()
        return {
            name: {
                "configured": bool(key),
                "valid": is_valid_key(key),
                "key": mask_key(key),
                "uses": usage.get(name, 0),
            }
            for name, key in self._keys.items()
        }
