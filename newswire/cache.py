"""Time-bounded cache of fetched items keyed by source URL."""

import time
from collections.abc import Callable, Sequence

from .models import CacheEntry, Item


class TTLCache:
    """Entries expire purely by age; there is no explicit invalidation."""

    def __init__(self, ttl: float = 300.0, clock: Callable[[], float] = time.monotonic):
        self.ttl = ttl
        self.clock = clock
        self._entries: dict[str, CacheEntry] = {}

    def get(self, key: str) -> list[Item] | None:
        entry = self._entries.get(key)
        if entry is None:
            return None
        if self.clock() - entry.timestamp >= self.ttl:
            return None
        return list(entry.data)

    def set(self, key: str, items: Sequence[Item]) -> None:
        # Last write wins between concurrent fetches of the same source
        self._entries[key] = CacheEntry(data=tuple(items), timestamp=self.clock())

    def __len__(self) -> int:
        """Number of entries that have not expired yet."""
        now = self.clock()
        return sum(1 for entry in self._entries.values() if now - entry.timestamp < self.ttl)

    def __contains__(self, key: str) -> bool:
        return self.get(key) is not None
