"""A small thread-safe least-recently-used cache."""

from __future__ import annotations

import threading
from collections import OrderedDict
from typing import Generic, Hashable, TypeVar

K = TypeVar("K", bound=Hashable)
V = TypeVar("V")


class LruCache(Generic[K, V]):
    """Bounded mapping that evicts the least recently used entry when full."""

    def __init__(self, capacity: int) -> None:
        if capacity <= 0:
            raise ValueError("capacity must be positive")
        self.capacity = capacity
        self._items: OrderedDict[K, V] = OrderedDict()
        self._lock = threading.Lock()

    def __len__(self) -> int:
        with self._lock:
            return len(self._items)

    def __contains__(self, key: object) -> bool:
        with self._lock:
            return key in self._items

    def get(self, key: K) -> V | None:
        """Return the value for ``key`` and mark it as recently used, or None."""
        with self._lock:
            try:
                value = self._items[key]
            except KeyError:
                return None
            self._items.move_to_end(key)
            return value

    def put(self, key: K, value: V) -> V | None:
        """Store ``value`` under ``key``.

        Returns the value that was displaced: the previous value for the same
        key, or the evicted least recently used value, or None.
        """
        with self._lock:
            displaced = self._items.pop(key, None)
            self._items[key] = value
            if displaced is None and len(self._items) > self.capacity:
                _, displaced = self._items.popitem(last=False)
            return displaced

    def remove(self, key: K) -> V | None:
        """Drop ``key`` and return its value, or None if it was absent."""
        with self._lock:
            return self._items.pop(key, None)

    def keys_with_prefix(self, prefix: str) -> set[K]:
        """Return every string key that starts with ``prefix``."""
        with self._lock:
            return {
                key
                for key in self._items
                if isinstance(key, str) and key.startswith(prefix)
            }