"""Tests for the TTL cache and watermark store."""

from datetime import datetime, timedelta, timezone

import pytest

from duri_tracking.services.cache import TTLCache, WatermarkStore, make_cache_key


class FakeClock:
    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now


class TestTTLCache:
    """Expiry and eviction."""

    def test_returns_value_within_ttl(self) -> None:
        clock = FakeClock()
        cache = TTLCache(ttl_seconds=120, clock=clock)
        cache.set("k", "v")

        clock.now += 119

        assert cache.get("k") == "v"

    def test_expires_after_ttl(self) -> None:
        clock = FakeClock()
        cache = TTLCache(ttl_seconds=120, clock=clock)
        cache.set("k", "v")

        clock.now += 120

        assert cache.get("k") is None
        assert len(cache) == 0

    def test_evicts_oldest_when_full(self) -> None:
        cache = TTLCache(ttl_seconds=60, max_entries=2, clock=FakeClock())
        cache.set("a", 1)
        cache.set("b", 2)
        cache.set("c", 3)

        assert cache.get("a") is None
        assert cache.get("b") == 2
        assert cache.get("c") == 3

    def test_rewriting_a_key_refreshes_its_position(self) -> None:
        cache = TTLCache(ttl_seconds=60, max_entries=2, clock=FakeClock())
        cache.set("a", 1)
        cache.set("b", 2)
        cache.set("a", 10)
        cache.set("c", 3)

        assert cache.get("a") == 10
        assert cache.get("b") is None

    def test_invalidate(self) -> None:
        cache = TTLCache(ttl_seconds=60)
        cache.set("a", 1)
        cache.set("b", 2)

        cache.invalidate("a")
        assert cache.get("a") is None
        assert cache.get("b") == 2

        cache.invalidate()
        assert len(cache) == 0

    @pytest.mark.parametrize("ttl, max_entries", [(0, 10), (-1, 10), (10, 0)])
    def test_rejects_non_positive_limits(self, ttl: float, max_entries: int) -> None:
        with pytest.raises(ValueError):
            TTLCache(ttl_seconds=ttl, max_entries=max_entries)


def test_cache_key_ignores_blank_params() -> None:
    assert make_cache_key("response", "unified", company=None, status="") == make_cache_key(
        "response", "unified"
    )
    assert make_cache_key("r", status="A") != make_cache_key("r", status="B")


class TestWatermarkStore:
    """Per-user last-checked marks."""

    def test_set_defaults_to_now(self) -> None:
        now = datetime(2025, 3, 10, 12, tzinfo=timezone.utc)
        store = WatermarkStore(now=lambda: now)

        assert store.set("u1") == now
        assert store.get("u1") == now

    def test_naive_timestamps_are_treated_as_utc(self) -> None:
        store = WatermarkStore()

        mark = store.set("u1", datetime(2025, 3, 10, 12))

        assert mark.tzinfo == timezone.utc

    def test_marks_expire_after_retention(self) -> None:
        current = {"now": datetime(2025, 3, 10, tzinfo=timezone.utc)}
        store = WatermarkStore(retention=timedelta(days=1), now=lambda: current["now"])
        store.set("u1")

        current["now"] += timedelta(days=2)

        assert store.get("u1") is None

    def test_bounded_number_of_users(self) -> None:
        store = WatermarkStore(max_entries=1)
        store.set("u1")
        store.set("u2")

        assert store.get("u1") is None
        assert store.get("u2") is not None
