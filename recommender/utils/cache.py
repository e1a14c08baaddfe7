"""
Result cache abstraction.

ResultCache is the injected interface (get / set with TTL). TTLCache is the in-process
implementation: entries expire after their TTL and the cache is size-bounded with
least-recently-used eviction. Both the size bound and the clock are parameters.
"""

import time
from collections import OrderedDict
from typing import Any, Callable, Generic, Optional, Protocol, Tuple, TypeVar

V = TypeVar("V")


class ResultCache(Protocol):
    """Protocol for short-lived result caches keyed by string."""

    def get(self, key: str) -> Optional[Any]:
        """Return the cached value, or None if absent or expired."""
        ...

    def set(self, key: str, value: Any, ttl_s: Optional[float] = None) -> None:
        """Store value under key for ttl_s seconds (cache default when None)."""
        ...


class TTLCache(Generic[V]):
    """
    In-memory TTL cache with LRU eviction.

    Usage:
        cache = TTLCache(max_entries=256, default_ttl_s=60.0)
        cache.set("retrieve:abc", result)
        cache.get("retrieve:abc")
    """

    def __init__(
        self,
        max_entries: int = 256,
        default_ttl_s: float = 60.0,
        clock: Callable[[], float] = time.monotonic,
    ):
        if max_entries < 1:
            raise ValueError(f"max_entries must be >= 1, got {max_entries}")
        self.max_entries = max_entries
        self.default_ttl_s = default_ttl_s
        self._clock = clock
        self._entries: "OrderedDict[str, Tuple[float, V]]" = OrderedDict()

    def get(self, key: str) -> Optional[V]:
        entry = self._entries.get(key)
        if entry is None:
            return None
        expires_at, value = entry
        if self._clock() >= expires_at:
            del self._entries[key]
            return None
        self._entries.move_to_end(key)
        return value

    def set(self, key: str, value: V, ttl_s: Optional[float] = None) -> None:
        ttl = self.default_ttl_s if ttl_s is None else ttl_s
        self._entries[key] = (self._clock() + ttl, value)
        self._entries.move_to_end(key)
        while len(self._entries) > self.max_entries:
            self._entries.popitem(last=False)

    def clear(self) -> None:
        self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)
