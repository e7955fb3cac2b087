"""Bounded least-recently-used cache used for compiled-query caching."""
from __future__ import annotations

from collections import OrderedDict
from typing import Generic, Hashable, TypeVar

K = TypeVar("K", bound=Hashable)
V = TypeVar("V")


class LRUCache(Generic[K, V]):
    """Mapping with a maximum size that evicts the least recently used entry.

    ``get`` marks an entry as recently used; ``set`` inserts or refreshes
    an entry and evicts the oldest one once ``max_size`` is exceeded.
    Hit / miss counters are kept for :meth:`stats`.

    Args:
        max_size: Maximum number of entries; must be at least 1.
    """

    def __init__(self, max_size: int = 500) -> None:
        if max_size < 1:
            raise ValueError("LRUCache max_size must be at least 1.")
        self._entries: OrderedDict[K, V] = OrderedDict()
        self._max_size = max_size
        self._hits = 0
        self._misses = 0

    @property
    def max_size(self) -> int:
        return self._max_size

    def get(self, key: K) -> V | None:
        """Return the cached value for ``key`` or ``None`` on a miss."""
        try:
            value = self._entries[key]
        except KeyError:
            self._misses += 1
            return None
        self._entries.move_to_end(key)
        self._hits += 1
        return value

    def set(self, key: K, value: V) -> None:
        """Insert ``value`` under ``key``, evicting the oldest entry if full."""
        if key in self._entries:
            self._entries.move_to_end(key)
        self._entries[key] = value
        if len(self._entries) > self._max_size:
            self._entries.popitem(last=False)

    def __contains__(self, key: object) -> bool:
        return key in self._entries

    def __len__(self) -> int:
        return len(self._entries)

    def clear(self) -> None:
        """Drop every entry and reset the counters."""
        self._entries.clear()
        self._hits = 0
        self._misses = 0

    def hit_rate(self) -> float:
        total = self._hits + self._misses
        return 0.0 if total == 0 else self._hits / total

    def stats(self) -> dict[str, float | int]:
        """Return ``{hits, misses, hit_rate, size}``."""
        return {
            "hits": self._hits,
            "misses": self._misses,
            "hit_rate": self.hit_rate(),
            "size": len(self._entries),
        }
