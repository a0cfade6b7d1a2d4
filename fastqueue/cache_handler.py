"""In-memory caching of messages and index pages, flushed and unflushed."""

from __future__ import annotations

import threading
import time
from typing import Callable, Iterable

from fastqueue.lru import LruCache

DEFAULT_MAX_CACHED_MESSAGES = 10_000
DEFAULT_MAX_CACHED_INDEX_PAGES = 1_000
DEFAULT_KEY_TTL_MS = 30_000
DEFAULT_LAZY_EXPIRATION_COUNTER = 1_000


def _now_ms() -> int:
    return time.time_ns() // 1_000_000


def message_cache_key(
    queue_name: str, partition: int, segment_id: int, message_id: int
) -> str:
    return f"{queue_name}_{partition}_{segment_id}_m_{message_id}"


def index_page_cache_key(
    queue_name: str,
    partition: int,
    segment_id: int,
    page_offset: int,
    compaction_segment: bool = False,
) -> str:
    suffix = "_c" if compaction_segment else ""
    return f"{queue_name}_{partition}_{segment_id}_i_{page_offset}{suffix}"


class CacheHandler:
    """Holds recently written or read messages and index pages.

    Unflushed data stays in a separate map until it is flushed to disk, after
    which it moves to the LRU caches where entries expire after a TTL.
    """

    def __init__(
        self,
        max_cached_messages: int = DEFAULT_MAX_CACHED_MESSAGES,
        max_cached_index_pages: int = DEFAULT_MAX_CACHED_INDEX_PAGES,
        key_ttl_ms: int = DEFAULT_KEY_TTL_MS,
        lazy_expiration_counter: int = DEFAULT_LAZY_EXPIRATION_COUNTER,
        clock: Callable[[], int] = _now_ms,
    ) -> None:
        self._messages: LruCache[str, bytes] = LruCache(max_cached_messages)
        self._index_pages: LruCache[str, bytes] = LruCache(max_cached_index_pages)
        self._unflushed: dict[str, tuple[bytes, bool]] = {}
        self._inserted_at: dict[str, int] = {}
        self._search_count = 0
        self._key_ttl_ms = key_ttl_ms
        self._lazy_expiration_counter = lazy_expiration_counter
        self._clock = clock
        self._lock = threading.RLock()

    def get_message(self, key: str) -> bytes | None:
        return self._lookup(key, self._messages)

    def get_index_page(self, key: str) -> bytes | None:
        return self._lookup(key, self._index_pages)

    def cache_messages(
        self, keyed_messages: Iterable[tuple[str, bytes]], is_unflushed_data: bool = False
    ) -> None:
        """Cache each ``(key, message)`` pair."""
        with self._lock:
            for key, message in keyed_messages:
                self._store(key, bytes(message), True, is_unflushed_data)

    def cache_index_page(
        self, key: str, page_data: bytes, is_unflushed_data: bool = False
    ) -> None:
        with self._lock:
            self._store(key, bytes(page_data), False, is_unflushed_data)

    def clear_unflushed_data_cache(self) -> None:
        """Move recently flushed data into the LRU caches."""
        with self._lock:
            now = self._clock()
            for key, (data, is_message) in self._unflushed.items():
                cache = self._messages if is_message else self._index_pages
                cache.put(key, data)
                self._inserted_at[key] = now
            self._unflushed.clear()

    def remove_expired_keys(self) -> None:
        with self._lock:
            expired = [k for k, t in self._inserted_at.items() if self._expired(t)]
            for key in expired:
                del self._inserted_at[key]
                self._messages.remove(key)
                self._index_pages.remove(key)
            self._search_count = 0

    def _lookup(self, key: str, cache: LruCache[str, bytes]) -> bytes | None:
        with self._lock:
            count = self._search_count
            self._search_count += 1
            if count >= self._lazy_expiration_counter:
                self.remove_expired_keys()
            elif key in self._inserted_at and self._expired(self._inserted_at[key]):
                return None
            entry = self._unflushed.get(key)
            if entry is not None:
                return entry[0]
            return cache.get(key)

    def _store(self, key: str, data: bytes, is_message: bool, is_unflushed: bool) -> None:
        cache = self._messages if is_message else self._index_pages
        if is_unflushed:
            self._unflushed[key] = (data, is_message)
            cache.remove(key)
            self._inserted_at.pop(key, None)
        else:
            cache.put(key, data)
            self._inserted_at[key] = self._clock()

    def _expired(self, inserted_at: int) -> bool:
        return self._clock() - inserted_at > self._key_ttl_ms