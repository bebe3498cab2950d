"""Unit tests for LocalCacheTier."""

import pytest

from infrastructure.cache import LocalCacheTier


def entry_size(key, payload):
    return len(key) + len(payload)


@pytest.mark.unit
class TestLocalCacheTier:
    def test_set_and_get_round_trip(self, clock):
        tier = LocalCacheTier(clock=clock)

        assert tier.set("get:users:1", {"id": "u-1"}, ttl_seconds=60)

        assert tier.get("get:users:1") == {"id": "u-1"}
        assert "get:users:1" in tier
        assert len(tier) == 1

    def test_get_returns_copy(self, clock):
        tier = LocalCacheTier(clock=clock)
        tier.set("k", {"items": [1]}, ttl_seconds=60)

        tier.get("k")["items"].append(2)

        assert tier.get("k") == {"items": [1]}

    def test_entry_expires_at_ttl(self, clock):
        tier = LocalCacheTier(clock=clock)
        tier.set("k", "v", ttl_seconds=10)

        clock.advance(9.9)
        assert tier.get("k") == "v"

        clock.advance(0.1)
        assert tier.get("k") is None
        assert tier.get_stats()["expirations"] == 1
        assert tier.size_bytes == 0

    def test_reads_do_not_extend_ttl(self, clock):
        tier = LocalCacheTier(clock=clock)
        tier.set("k", "v", ttl_seconds=10)

        for _ in range(3):
            clock.advance(3)
            assert tier.has("k")

        clock.advance(1)
        assert not tier.has("k")

    def test_evicts_least_recently_used_by_bytes(self, clock):
        # each entry: 2-byte key + 5-byte payload ('"aaa"')
        tier = LocalCacheTier(max_bytes=21, clock=clock)
        tier.set("k1", "aaa", 60)
        tier.set("k2", "bbb", 60)
        tier.set("k3", "ccc", 60)
        tier.get("k1")

        tier.set("k4", "ddd", 60)

        assert tier.get("k2") is None
        assert tier.get("k1") == "aaa"
        assert tier.get("k3") == "ccc"
        assert tier.get("k4") == "ddd"
        assert tier.size_bytes <= 21
        assert tier.get_stats()["evictions"] == 1

    def test_oversized_entry_is_rejected(self, clock):
        tier = LocalCacheTier(max_bytes=10, clock=clock)

        assert tier.set("key", "x" * 50, 60) is False
        assert len(tier) == 0

    def test_overwrite_replaces_size(self, clock):
        tier = LocalCacheTier(clock=clock)
        tier.set("k", "short", 60)
        tier.set("k", "a much longer value", 60)

        assert len(tier) == 1
        assert tier.size_bytes == entry_size("k", '"a much longer value"')

    def test_non_serializable_value_raises(self, clock):
        tier = LocalCacheTier(clock=clock)

        with pytest.raises(TypeError):
            tier.set("k", object(), 60)

    def test_delete_pattern(self, clock):
        tier = LocalCacheTier(clock=clock)
        tier.set("query:users:a", 1, 60)
        tier.set("query:users:b", 2, 60)
        tier.set("query:orders:a", 3, 60)

        assert tier.delete_pattern("query:users:*") == 2

        assert tier.get("query:orders:a") == 3
        assert len(tier) == 1

    def test_delete_pattern_is_a_literal_prefix(self, clock):
        tier = LocalCacheTier(clock=clock)
        tier.set("query:logs[1]:a", 1, 60)
        tier.set("query:logs?:a", 2, 60)
        tier.set("query:logsX:a", 3, 60)

        assert tier.delete_pattern("query:logs[1]:*") == 1
        assert tier.delete_pattern("query:logs?:*") == 1

        assert tier.get("query:logsX:a") == 3

    def test_delete_and_clear(self, clock):
        tier = LocalCacheTier(clock=clock)
        tier.set("a", 1, 60)
        tier.set("b", 2, 60)

        assert tier.delete("a") is True
        assert tier.delete("a") is False

        tier.clear()
        assert len(tier) == 0
        assert tier.size_bytes == 0

    def test_rejects_invalid_budget(self):
        with pytest.raises(ValueError):
            LocalCacheTier(max_bytes=0)

    def test_stats_shape(self, clock):
        stats = LocalCacheTier(max_bytes=1000, clock=clock).get_stats()

        assert stats == {
            "tier": "local",
            "entries": 0,
            "size_bytes": 0,
            "max_bytes": 1000,
            "evictions": 0,
            "expirations": 0,
        }
