"""Tests for the processed-result cache."""

import asyncio
from datetime import date

import pytest

from servers.event_search.cache import ResultCache, build_cache_key
from servers.event_search.models import ProcessedResult, SearchParams, empty_source_stats


class FakeClock:
    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def cache(clock: FakeClock) -> ResultCache:
    return ResultCache(ttl=300, clock=clock)


@pytest.fixture
def result(make_event) -> ProcessedResult:
    return ProcessedResult(events=(make_event(),), source_stats=empty_source_stats())


class TestCacheKey:
    """Tests for cache key construction."""

    def test_ignores_request_id(self):
        a = SearchParams(latitude=40.7128, longitude=-74.006, request_id="req-1")
        b = SearchParams(latitude=40.7128, longitude=-74.006, request_id="req-2")
        assert build_cache_key(a) == build_cache_key(b)

    def test_ignores_pagination_and_use_cache(self):
        a = SearchParams(latitude=40.7128, longitude=-74.006, page=1, limit=10)
        b = SearchParams(latitude=40.7128, longitude=-74.006, page=3, limit=50, use_cache=False)
        assert build_cache_key(a) == build_cache_key(b)

    def test_rounds_coordinates(self):
        a = SearchParams(latitude=40.712801, longitude=-74.006001)
        b = SearchParams(latitude=40.712799, longitude=-74.005999)
        assert build_cache_key(a) == build_cache_key(b)

    def test_category_order_irrelevant(self):
        a = SearchParams(location="NYC", categories=("music", "party"))
        b = SearchParams(location="NYC", categories=("party", "music"))
        assert build_cache_key(a) == build_cache_key(b)

    @pytest.mark.parametrize(
        "change",
        [
            {"radius": 5},
            {"categories": ("food",)},
            {"keyword": "jazz"},
            {"start_date": date(2025, 6, 20)},
            {"date_preset": "week"},
            {"sort_by": "distance"},
        ],
    )
    def test_result_affecting_fields_change_key(self, change):
        base = SearchParams(latitude=40.7128, longitude=-74.006)
        changed = base.model_copy(update=change)
        assert build_cache_key(base) != build_cache_key(changed)


class TestResultCache:
    """Tests for TTL behaviour."""

    def test_get_missing(self, cache):
        assert cache.get("nope") is None

    def test_set_then_get(self, cache, result):
        cache.set("k", result)
        assert cache.get("k") is result

    def test_expires_on_read(self, cache, clock, result):
        """An entry older than its TTL is treated as absent and removed."""
        cache.set("k", result)
        clock.advance(301)
        assert cache.get("k") is None
        assert len(cache) == 0

    def test_alive_before_ttl(self, cache, clock, result):
        cache.set("k", result)
        clock.advance(299)
        assert cache.get("k") is result

    def test_custom_ttl(self, cache, clock, result):
        cache.set("k", result, ttl=10)
        clock.advance(11)
        assert cache.get("k") is None

    def test_replace_whole_entry(self, cache, result, make_event):
        other = ProcessedResult(events=(make_event(id="b:1"),), source_stats=empty_source_stats())
        cache.set("k", result)
        cache.set("k", other)
        assert cache.get("k") is other

    def test_sweep_removes_only_expired(self, cache, clock, result):
        cache.set("old", result)
        clock.advance(200)
        cache.set("new", result)
        clock.advance(150)
        assert cache.sweep() == 1
        assert cache.get("new") is result

    def test_delete_and_clear(self, cache, result):
        cache.set("a", result)
        cache.set("b", result)
        assert cache.delete("a") is True
        assert cache.delete("a") is False
        assert cache.clear() == 1

    def test_stats(self, cache, result):
        cache.set("k", result)
        cache.get("k")
        cache.get("missing")
        stats = cache.stats()
        assert stats["hits"] == 1
        assert stats["misses"] == 1
        assert stats["hitRate"] == 0.5

    @pytest.mark.asyncio
    async def test_sweeper_task(self, clock, result):
        """The background sweep purges expired entries without reads."""
        cache = ResultCache(ttl=1, clock=clock)
        cache.set("k", result)
        clock.advance(5)
        cache.start_sweeper(interval=0.01)
        for _ in range(50):
            if len(cache) == 0:
                break
            await asyncio.sleep(0.01)
        await cache.stop_sweeper()
        assert len(cache) == 0
