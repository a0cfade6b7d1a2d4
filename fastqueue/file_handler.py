"""Cached, keyed access to the files that hold queue data."""

from __future__ import annotations

import os
import shutil
import threading
from typing import Callable

from fastqueue.lru import LruCache

DEFAULT_MAX_OPEN_FILES = 1000


class FileStream:
    """An open binary file together with its known end position."""

    def __init__(self, path: str, file) -> None:
        self.path = path
        self.file = file
        self.lock = threading.Lock()
        file.seek(0, os.SEEK_END)
        self.end_pos = file.tell()

    @classmethod
    def open(cls, path: str, is_new_file: bool = False) -> "FileStream":
        """Open ``path`` for reading and writing, creating it if asked to."""
        mode = "wb+" if is_new_file and not os.path.exists(path) else "rb+"
        return cls(path, open(path, mode))

    @property
    def closed(self) -> bool:
        return self.file.closed

    def close(self) -> None:
        """Close the underlying file if it is still open."""
        with self.lock:
            if not self.file.closed:
                self.file.close()


class FileHandler:
    """Reads and writes files through a bounded cache of open streams."""

    def __init__(self, max_open_files: int = DEFAULT_MAX_OPEN_FILES) -> None:
        self._streams: LruCache[str, FileStream] = LruCache(max_open_files)
        self._unflushed: dict[int, FileStream] = {}
        self._unflushed_lock = threading.Lock()

    def __enter__(self) -> "FileHandler":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close_all()

    def create_new_file(
        self, path: str, data: bytes = b"", key: str = "", flush_data: bool = True
    ) -> None:
        """Create ``path`` (or open it if present) and write ``data`` at its start."""
        fs = FileStream.open(path, is_new_file=True)
        if data:
            self._write(fs, data, 0, flush_data)
        if key:
            self._cache_stream(key, fs)
        else:
            self._close_stream(fs)

    def check_if_exists(self, path: str) -> bool:
        return os.path.exists(path)

    def create_directory(self, path: str) -> bool:
        """Create ``path`` with its parents; False if it already existed."""
        if self.check_if_exists(path):
            return False
        os.makedirs(path)
        return True

    def delete_dir_or_file(self, path: str, key: str = "", key_prefix: str = "") -> None:
        """Remove a file or directory tree, closing the streams that refer to it."""
        if not self.check_if_exists(path):
            return
        if key:
            self.close_file(key)
        if key_prefix:
            for matched in self._streams.keys_with_prefix(key_prefix):
                self.close_file(matched)
        if os.path.isdir(path):
            shutil.rmtree(path)
        else:
            os.remove(path)

    def execute_action_to_dir_subfiles(
        self, path: str, action: Callable[[os.DirEntry], object]
    ) -> None:
        """Call ``action`` with each entry of the directory ``path``."""
        if not self.check_if_exists(path):
            return
        with os.scandir(path) as entries:
            for entry in entries:
                action(entry)

    def get_complete_file_content(self, path: str) -> bytes:
        fs = FileStream.open(path)
        try:
            return self._read(fs, fs.end_pos, 0)
        finally:
            self._close_stream(fs)

    def get_dir_entry_path(self, dir_entry) -> str:
        """Return the entry's path with forward slashes only."""
        return os.fspath(dir_entry).replace("\\", "/")

    def write_to_file(
        self,
        key: str,
        path: str,
        data: bytes,
        pos: int = -1,
        flush_data: bool = True,
    ) -> int:
        """Write ``data`` at ``pos`` (-1 appends); return where it was written."""
        if not self.check_if_exists(path):
            raise FileNotFoundError(f"Invalid path {path}")
        return self._write(self._stream_for(key, path), data, pos, flush_data)

    def read_from_file(self, key: str, path: str, size: int, pos: int = 0) -> bytes:
        """Read up to ``size`` bytes from ``pos``."""
        if not self.check_if_exists(path):
            raise FileNotFoundError(f"Invalid path {path}")
        return self._read(self._stream_for(key, path), size, pos)

    def flush_output_streams(self) -> None:
        with self._unflushed_lock:
            for fs in self._unflushed.values():
                if not fs.closed:
                    fs.file.flush()
            self._unflushed.clear()

    def close_file(self, key: str) -> None:
        fs = self._streams.remove(key)
        if fs is not None:
            self._close_stream(fs)

    def close_all(self) -> None:
        """Close every cached stream."""
        for key in self._streams.keys_with_prefix(""):
            self.close_file(key)

    def rename_file(self, current_key: str, current_name: str, new_name: str) -> None:
        if not self.check_if_exists(current_name):
            return
        self.close_file(current_key)
        try:
            os.rename(current_name, new_name)
        except OSError as exc:
            raise OSError(f"Error renaming file {current_name}") from exc

    def _stream_for(self, key: str, path: str) -> FileStream:
        fs = self._streams.get(key) if key else None
        if fs is None:
            fs = FileStream.open(path)
            if key:
                self._cache_stream(key, fs)
        return fs

    def _cache_stream(self, key: str, fs: FileStream) -> None:
        old = self._streams.put(key, fs)
        if old is not None and old is not fs:
            self._close_stream(old)

    def _write(self, fs: FileStream, data: bytes, pos: int, flush_data: bool) -> int:
        with fs.lock:
            if not data:
                return -1
            prev_end_pos = fs.end_pos
            if pos == -1:
                fs.file.seek(0, os.SEEK_END)
                start = prev_end_pos
            else:
                fs.file.seek(pos)
                start = pos
            fs.file.write(data)
            fs.end_pos = max(fs.end_pos, start + len(data))
            if flush_data:
                fs.file.flush()
        if not flush_data:
            with self._unflushed_lock:
                self._unflushed[id(fs)] = fs
        return prev_end_pos if pos == -1 else pos

    def _read(self, fs: FileStream, size: int, pos: int) -> bytes:
        with fs.lock:
            if size <= 0:
                return b""
            fs.file.seek(pos)
            return fs.file.read(size)

    def _close_stream(self, fs: FileStream) -> None:
        with self._unflushed_lock:
            self._unflushed.pop(id(fs), None)
        fs.close()