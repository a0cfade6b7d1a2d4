"""Reads of queue data from the caches and from disk."""

from __future__ import annotations

from fastqueue.cache_handler import CacheHandler, index_page_cache_key, message_cache_key
from fastqueue.file_handler import FileHandler


class DiskReader:
    """Looks data up in the caches or reads it through a FileHandler."""

    def __init__(self, file_handler: FileHandler, cache_handler: CacheHandler) -> None:
        self._fh = file_handler
        self._ch = cache_handler

    def read_message_from_cache(
        self, queue_name: str, partition: int, segment_id: int, message_id: int
    ) -> bytes | None:
        return self._ch.get_message(
            message_cache_key(queue_name, partition, segment_id, message_id)
        )

    def read_index_page_from_cache(
        self,
        queue_name: str,
        partition: int,
        segment_id: int,
        page_offset: int,
        compaction_segment: bool = False,
    ) -> bytes | None:
        return self._ch.get_index_page(
            index_page_cache_key(
                queue_name, partition, segment_id, page_offset, compaction_segment
            )
        )

    def read_data_from_disk(self, key: str, path: str, size: int, pos: int = 0) -> bytes:
        """Read up to ``size`` bytes from ``pos`` of the file at ``path``."""
        return self._fh.read_from_file(key, path, size, pos)