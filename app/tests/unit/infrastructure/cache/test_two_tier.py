"""Unit tests for TwoTierCache."""

import pytest

from infrastructure.cache import (
    InMemorySharedTier,
    LocalCacheTier,
    SharedCacheTier,
    TwoTierCache,
)
from infrastructure.resilience import CacheUnavailableError


class UnreachableSharedTier(SharedCacheTier):
    """Shared tier whose every call fails as if the server were down."""

    name = "unreachable"

    def __init__(self):
        self.calls = 0

    def _fail(self):
        self.calls += 1
        raise CacheUnavailableError("connection refused")

    async def get(self, key):
        self._fail()

    async def get_with_ttl(self, key):
        self._fail()

    async def set(self, key, value, ttl_seconds):
        self._fail()

    async def delete(self, key):
        self._fail()

    async def delete_pattern(self, pattern):
        self._fail()

    async def exists(self, key):
        self._fail()

    async def clear(self):
        self._fail()

    async def ping(self):
        return False


@pytest.mark.unit
class TestTwoTierConstruction:
    def test_keeps_injected_empty_local_tier(self, clock):
        local = LocalCacheTier(max_bytes=2048, clock=clock)

        cache = TwoTierCache(local, None)

        assert len(local) == 0
        assert cache.local is local
        assert cache.local.max_bytes == 2048

    def test_default_local_tier_when_omitted(self):
        assert isinstance(TwoTierCache().local, LocalCacheTier)


@pytest.mark.unit
class TestTwoTierReads:
    @pytest.mark.asyncio
    async def test_miss_on_both_tiers(self, two_tier_cache):
        assert await two_tier_cache.get("get:users:x") is None
        assert two_tier_cache.get_stats()["misses"] == 1

    @pytest.mark.asyncio
    async def test_set_populates_both_tiers(self, two_tier_cache):
        await two_tier_cache.set("get:users:1", {"id": "u-1"})

        assert two_tier_cache.local.get("get:users:1") == {"id": "u-1"}
        assert await two_tier_cache.shared.get("get:users:1") == {"id": "u-1"}
        assert await two_tier_cache.get("get:users:1") == {"id": "u-1"}
        assert two_tier_cache.get_stats()["local_hits"] == 1

    @pytest.mark.asyncio
    async def test_shared_hit_backfills_local_with_remaining_ttl(self, clock):
        shared = InMemorySharedTier(clock=clock)
        cache = TwoTierCache(LocalCacheTier(clock=clock), shared, default_ttl_seconds=300)
        await shared.set("k", "v", 100)
        clock.advance(40)

        assert await cache.get("k") == "v"
        assert cache.get_stats()["shared_hits"] == 1

        await shared.delete("k")
        clock.advance(59)
        assert await cache.get("k") == "v"

        clock.advance(1)
        assert await cache.get("k") is None

    @pytest.mark.asyncio
    async def test_hit_rate(self, two_tier_cache):
        await two_tier_cache.set("k", 1)
        await two_tier_cache.get("k")
        await two_tier_cache.get("missing")

        assert two_tier_cache.get_stats()["hit_rate"] == 0.5

    @pytest.mark.asyncio
    async def test_has(self, two_tier_cache):
        await two_tier_cache.shared.set("only-shared", 1, 60)

        assert await two_tier_cache.has("only-shared")
        assert not await two_tier_cache.has("nowhere")

    @pytest.mark.asyncio
    async def test_non_serializable_value_is_skipped(self, two_tier_cache):
        await two_tier_cache.set("k", object())

        assert await two_tier_cache.get("k") is None
        assert two_tier_cache.get_stats()["sets"] == 0

    @pytest.mark.asyncio
    async def test_local_only_cache(self, clock):
        cache = TwoTierCache(LocalCacheTier(clock=clock), None, default_ttl_seconds=10)
        await cache.set("k", "v")

        assert await cache.get("k") == "v"
        clock.advance(10)
        assert await cache.get("k") is None
        assert (await cache.health_check())["healthy"] is True


@pytest.mark.unit
class TestTwoTierInvalidation:
    @pytest.mark.asyncio
    async def test_delete_removes_from_both_tiers(self, two_tier_cache):
        await two_tier_cache.set("k", "v")

        await two_tier_cache.delete("k")

        assert await two_tier_cache.get("k") is None
        assert not await two_tier_cache.shared.exists("k")

    @pytest.mark.asyncio
    async def test_trailing_star_deletes_prefix(self, two_tier_cache):
        await two_tier_cache.set("query:users:a", 1)
        await two_tier_cache.set("query:users:b", 2)
        await two_tier_cache.set("get:users:a", 3)

        await two_tier_cache.delete("query:users:*")

        assert await two_tier_cache.get("query:users:a") is None
        assert await two_tier_cache.get("query:users:b") is None
        assert await two_tier_cache.get("get:users:a") == 3
        assert two_tier_cache.get_stats()["invalidations"] == 1

    @pytest.mark.asyncio
    async def test_prefix_with_glob_characters_matches_literally(self, two_tier_cache):
        await two_tier_cache.set("query:logs[1]:abc", 1)
        await two_tier_cache.set("query:logs1:abc", 2)

        await two_tier_cache.delete("query:logs[1]:*")

        assert await two_tier_cache.get("query:logs[1]:abc") is None
        assert not await two_tier_cache.shared.exists("query:logs[1]:abc")
        assert await two_tier_cache.get("query:logs1:abc") == 2

    @pytest.mark.asyncio
    async def test_delete_pattern_returns_count(self, two_tier_cache):
        await two_tier_cache.set("count:users:a", 1)
        await two_tier_cache.shared.set("count:users:b", 2, 60)

        assert await two_tier_cache.delete_pattern("count:users:*") == 2

    @pytest.mark.asyncio
    async def test_clear_outside_production_clears_shared(self, two_tier_cache):
        await two_tier_cache.set("k", "v")

        await two_tier_cache.clear()

        assert len(two_tier_cache.local) == 0
        assert not await two_tier_cache.shared.exists("k")

    @pytest.mark.asyncio
    async def test_clear_in_production_keeps_shared(self, clock):
        shared = InMemorySharedTier(clock=clock)
        cache = TwoTierCache(LocalCacheTier(clock=clock), shared, is_production=True)
        await cache.set("k", "v")

        await cache.clear()

        assert len(cache.local) == 0
        assert await shared.exists("k")


@pytest.mark.unit
class TestTwoTierDegradation:
    @pytest.fixture
    def degraded_cache(self, clock):
        return TwoTierCache(
            LocalCacheTier(clock=clock), UnreachableSharedTier(), default_ttl_seconds=60
        )

    @pytest.mark.asyncio
    async def test_shared_failure_on_read_is_a_miss(self, degraded_cache):
        assert await degraded_cache.get("k") is None

        stats = degraded_cache.get_stats()
        assert stats["misses"] == 1
        assert stats["shared_errors"] == 1

    @pytest.mark.asyncio
    async def test_shared_failure_on_write_keeps_local(self, degraded_cache):
        await degraded_cache.set("k", "v")

        assert await degraded_cache.get("k") == "v"
        assert degraded_cache.get_stats()["shared_errors"] == 1

    @pytest.mark.asyncio
    async def test_shared_failure_on_invalidation_still_clears_local(self, degraded_cache):
        await degraded_cache.set("query:users:a", 1)
        await degraded_cache.set("get:users:a", 2)

        await degraded_cache.delete("query:users:*")
        await degraded_cache.delete("get:users:a")
        await degraded_cache.clear()

        assert len(degraded_cache.local) == 0
        assert await degraded_cache.has("get:users:a") is False

    @pytest.mark.asyncio
    async def test_health_check_reports_unreachable(self, degraded_cache):
        health = await degraded_cache.health_check()

        assert health["healthy"] is False
        assert health["shared"] == {"tier": "unreachable"}
