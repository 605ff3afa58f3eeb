"""Tests for API key handling."""

import pytest

from servers.event_search.errors import ErrorKind, InvalidApiKeyError, MissingApiKeyError
from servers.event_search.keys import ApiKeyManager, is_valid_key, mask_key


class TestMaskKey:
    def test_long_key(self):
        assert mask_key("abcd1234efgh5678") == "abcd...5678"

    def test_short_key(self):
        assert mask_key("abc") == "****"

    def test_missing(self):
        assert mask_key(None) == "<none>"


class TestIsValidKey:
    @pytest.mark.parametrize("key", [None, "", "short", "your_api_key_here", "PLACEHOLDER-KEY-123"])
    def test_invalid(self, key):
        assert is_valid_key(key) is False

    def test_valid(self):
        assert is_valid_key("Zx81kQp2Lm0vRt7a") is True


class TestApiKeyManager:
    """Tests for ApiKeyManager."""

    def test_get_key_counts_usage(self, keys: ApiKeyManager):
        keys.get_key("ticketmaster")
        keys.get_key("ticketmaster")
        assert keys.usage()["ticketmaster"] == 2
        assert keys.usage()["predicthq"] == 0

    def test_missing_key(self):
        manager = ApiKeyManager({"predicthq": None})
        with pytest.raises(MissingApiKeyError) as exc_info:
            manager.get_key("predicthq")
        assert exc_info.value.kind == ErrorKind.UNAVAILABLE
        assert exc_info.value.retryable is False

    def test_unknown_provider_is_missing(self, keys: ApiKeyManager):
        with pytest.raises(MissingApiKeyError):
            keys.get_key("eventbrite")

    def test_placeholder_key(self):
        manager = ApiKeyManager({"rapidapi": "your_rapidapi_key"})
        with pytest.raises(InvalidApiKeyError) as exc_info:
            manager.get_key("rapidapi")
        assert exc_info.value.kind == ErrorKind.AUTH
        assert manager.has_key("rapidapi") is False

    def test_status_never_exposes_keys(self, keys: ApiKeyManager):
        status = keys.status()
        assert status["ticketmaster"] == {
            "configured": True,
            "valid": True,
            "key": "tm-t...7890",
            "uses": 0,
        }
        assert "tm-test-key-1234567890" not in str(status)
