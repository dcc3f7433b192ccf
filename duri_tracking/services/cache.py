"""In-process keyed stores injected into request handlers.

Both stores are created in the application lifespan and held on
``app.state``; handlers reach them through dependencies, never through
module globals.
"""

import time
from collections import OrderedDict
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Generic, Hashable, Optional, TypeVar

V = TypeVar("V")


class TTLCache(Generic[V]):
    """Time-boxed cache with least-recently-written eviction.

    Entries expire ``ttl_seconds`` after they were stored. When the cache is
    full, the oldest entry is evicted. No locking: concurrent refreshes of
    the same key simply overwrite each other.
    """

    def __init__(
        self,
        ttl_seconds: float,
        max_entries: int = 256,
        clock: Callable[[], float] = time.monotonic,
    ):
        if ttl_seconds <= 0:
            raise ValueError("ttl_seconds must be positive")
        if max_entries <= 0:
            raise ValueError("max_entries must be positive")
        self.ttl_seconds = ttl_seconds
        self.max_entries = max_entries
        self._clock = clock
        self._entries: OrderedDict[Hashable, tuple[float, V]] = OrderedDict()

    def get(self, key: Hashable) -> Optional[V]:
        entry = self._entries.get(key)
        if entry is None:
            return None
        expires_at, value = entry
        if expires_at <= self._clock():
            self._entries.pop(key, None)
            return None
        return value

    def set(self, key: Hashable, value: V) -> None:
        self._entries.pop(key, None)
        self._entries[key] = (self._clock() + self.ttl_seconds, value)
        self._evict()

    def invalidate(self, key: Optional[Hashable] = None) -> None:
        """Drop one key, or everything when ``key`` is None."""
        if key is None:
            self._entries.clear()
        else:
            self._entries.pop(key, None)

    def __len__(self) -> int:
        return len(self._entries)

    def _evict(self) -> None:
        now = self._clock()
        for key in [k for k, (expires_at, _) in self._entries.items() if expires_at <= now]:
            del self._entries[key]
        while len(self._entries) > self.max_entries:
            self._entries.popitem(last=False)


def make_cache_key(*parts: Any, **params: Any) -> tuple:
    """Build a hashable key from positional parts and filter parameters.

    ``None`` and empty-string parameters are ignored so that omitted and
    blank query parameters share a key.
    """
    filtered = tuple(
        sorted((name, str(value)) for name, value in params.items() if value not in (None, ""))
    )
    return (*parts, filtered)


class WatermarkStore:
    """Per-user "last checked" timestamps for notifications.

    Bounded like ``TTLCache``: entries idle longer than ``retention`` are
    dropped, and at most ``max_entries`` users are remembered.
    """

    def __init__(
        self,
        retention: timedelta = timedelta(days=30),
        max_entries: int = 10_000,
        now: Callable[[], datetime] = lambda: datetime.now(timezone.utc),
    ):
        self.retention = retention
        self.max_entries = max_entries
        self._now = now
        # user_id -> (written_at, mark)
        self._marks: OrderedDict[str, tuple[datetime, datetime]] = OrderedDict()

    def get(self, user_id: str) -> Optional[datetime]:
        entry = self._marks.get(user_id)
        if entry is None:
            return None
        written_at, mark = entry
        if self._now() - written_at > self.retention:
            self._marks.pop(user_id, None)
            return None
        return mark

    def set(self, user_id: str, timestamp: Optional[datetime] = None) -> datetime:
        mark = timestamp or self._now()
        if mark.tzinfo is None:
            mark = mark.replace(tzinfo=timezone.utc)
        self._marks.pop(user_id, None)
        self._marks[user_id] = (self._now(), mark)
        while len(self._marks) > self.max_entries:
            self._marks.popitem(last=False)
        return mark
