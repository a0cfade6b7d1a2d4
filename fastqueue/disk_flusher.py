"""Buffered writes to queue files with periodic flushing to disk."""

from __future__ import annotations

import threading
import time
from dataclasses import dataclass
from typing import Sequence

from fastqueue.cache_handler import (
    CacheHandler,
    index_page_cache_key,
    message_cache_key,
)
from fastqueue.file_handler import FileHandler
from fastqueue.logger import Logger

DEFAULT_FLUSH_INTERVAL_MS = 1_000
DEFAULT_MAX_CACHED_MEMORY = 16 * 1024 * 1024
_WAIT_SLICE_S = 0.05


@dataclass(frozen=True)
class CacheKeyInfo:
    """Where written data lives, used to build its cache keys."""

    queue_name: str
    partition: int
    segment_id: int
    page_offset: int = 0
    compaction_segment: bool = False


class DiskFlusher:
    """Writes data through a FileHandler and flushes pending bytes periodically.

    Writes that are not flushed immediately are counted; once the count reaches
    ``max_cached_memory`` or ``flush_interval_ms`` passes, the flushing loop
    flushes the output streams and moves unflushed cache entries to the LRU caches.
    """

    def __init__(
        self,
        file_handler: FileHandler,
        cache_handler: CacheHandler,
        flush_interval_ms: int = DEFAULT_FLUSH_INTERVAL_MS,
        max_cached_memory: int = DEFAULT_MAX_CACHED_MEMORY,
        logger: Logger | None = None,
    ) -> None:
        self._fh = file_handler
        self._ch = cache_handler
        self._flush_interval_ms = flush_interval_ms
        self._max_cached_memory = max_cached_memory
        self._logger = logger
        self._bytes_to_flush = 0
        self._cond = threading.Condition()

    @property
    def bytes_to_flush(self) -> int:
        """Number of bytes written but not yet flushed."""
        with self._cond:
            return self._bytes_to_flush

    def flush_to_disk_periodically(self, should_terminate: threading.Event) -> None:
        """Run the flushing loop until ``should_terminate`` is set."""
        while not should_terminate.is_set():
            with self._cond:
                deadline = time.monotonic() + self._flush_interval_ms / 1000
                while (
                    self._bytes_to_flush < self._max_cached_memory
                    and not should_terminate.is_set()
                ):
                    remaining = deadline - time.monotonic()
                    if remaining <= 0:
                        break
                    self._cond.wait(min(remaining, _WAIT_SLICE_S))

                if self._bytes_to_flush == 0:
                    continue

                try:
                    self._fh.flush_output_streams()
                    self._ch.clear_unflushed_data_cache()
                    self._bytes_to_flush = 0
                except (OSError, ValueError) as exc:
                    if self._logger is not None:
                        self._logger.log_error(
                            "Error occured while flushing data to disk periodically. "
                            f"Reason: {exc}"
                        )

    def append_data_to_end_of_file(
        self,
        key: str,
        path: str,
        data: bytes,
        flush_immediately: bool = False,
        cache_key_info: CacheKeyInfo | None = None,
        message_ids: Sequence[tuple[int, int]] | None = None,
    ) -> int:
        """Append ``data`` and return the position it was written at.

        With ``cache_key_info`` the data is cached as well: as messages when
        ``message_ids`` gives each message's ``(id, size)``, otherwise as an
        index page.
        """
        if cache_key_info is not None:
            self._cache_data(data, flush_immediately, cache_key_info, message_ids)
        return self.write_data_to_file(key, path, data, -1, flush_immediately)

    def write_data_to_specific_file_location(
        self,
        key: str,
        path: str,
        data: bytes,
        pos: int,
        flush_immediately: bool = False,
        cache_key_info: CacheKeyInfo | None = None,
        message_ids: Sequence[tuple[int, int]] | None = None,
    ) -> None:
        """Write ``data`` at ``pos``, caching it like ``append_data_to_end_of_file``."""
        if cache_key_info is not None:
            self._cache_data(data, flush_immediately, cache_key_info, message_ids)
        self.write_data_to_file(key, path, data, pos, flush_immediately)

    def flush_metadata_updates_to_disk(
        self, key: str, path: str, data: bytes, pos: int
    ) -> None:
        """Write metadata at ``pos`` and flush it at once."""
        self.write_data_to_file(key, path, data, pos, True)

    def write_data_to_file(
        self,
        key: str,
        path: str,
        data: bytes,
        pos: int = -1,
        flush_immediately: bool = False,
    ) -> int:
        """Write ``data`` at ``pos`` (-1 appends) and return where it began."""
        with self._cond:
            begin = self._fh.write_to_file(key, path, data, pos, flush_immediately)
            if flush_immediately:
                return begin
            self._bytes_to_flush += len(data)
            if self._bytes_to_flush >= self._max_cached_memory:
                self._cond.notify_all()
            return begin

    def path_exists(self, path: str) -> bool:
        return self._fh.check_if_exists(path)

    def _cache_data(
        self,
        data: bytes,
        flush_immediately: bool,
        info: CacheKeyInfo,
        message_ids: Sequence[tuple[int, int]] | None,
    ) -> None:
        if message_ids is None:
            self._ch.cache_index_page(
                index_page_cache_key(
                    info.queue_name,
                    info.partition,
                    info.segment_id,
                    info.page_offset,
                    info.compaction_segment,
                ),
                data,
                not flush_immediately,
            )
            return

        if sum(size for _, size in message_ids) != len(data):
            raise ValueError("message sizes do not add up to the data length")

        keyed: list[tuple[str, bytes]] = []
        offset = 0
        for message_id, size in message_ids:
            key = message_cache_key(
                info.queue_name, info.partition, info.segment_id, message_id
            )
            keyed.append((key, bytes(data[offset : offset + size])))
            offset += size
        self._ch.cache_messages(keyed, not flush_immediately)