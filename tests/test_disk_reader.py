import pytest

from fastqueue.cache_handler import CacheHandler, index_page_cache_key, message_cache_key
from fastqueue.disk_reader import DiskReader
from fastqueue.file_handler import FileHandler


@pytest.fixture
def parts():
    fh = FileHandler()
    ch = CacheHandler()
    yield fh, ch, DiskReader(fh, ch)
    fh.close_all()


def test_reads_cached_message(parts):
    _, ch, reader = parts
    ch.cache_messages([(message_cache_key("orders", 1, 3, 42), b"payload")])
    assert reader.read_message_from_cache("orders", 1, 3, 42) == b"payload"


def test_missing_message_is_none(parts):
    _, _, reader = parts
    assert reader.read_message_from_cache("orders", 1, 3, 99) is None


def test_reads_unflushed_message(parts):
    _, ch, reader = parts
    ch.cache_messages([(message_cache_key("q", 0, 0, 1), b"m")], True)
    assert reader.read_message_from_cache("q", 0, 0, 1) == b"m"


def test_reads_cached_index_page(parts):
    _, ch, reader = parts
    ch.cache_index_page(index_page_cache_key("q", 0, 2, 8, True), b"index")
    assert reader.read_index_page_from_cache("q", 0, 2, 8, True) == b"index"
    assert reader.read_index_page_from_cache("q", 0, 2, 8, False) is None


def test_reads_from_disk(parts, tmp_path):
    fh, _, reader = parts
    path = str(tmp_path / "data.fq")
    fh.create_new_file(path, b"0123456789", "data", True)
    assert reader.read_data_from_disk("data", path, 4, 3) == b"3456"


def test_read_past_end_returns_what_exists(parts, tmp_path):
    fh, _, reader = parts
    path = str(tmp_path / "data.fq")
    fh.create_new_file(path, b"abc", "", True)
    assert reader.read_data_from_disk("", path, 10, 1) == b"bc"


def test_read_missing_file_raises(parts, tmp_path):
    _, _, reader = parts
    with pytest.raises(FileNotFoundError):
        reader.read_data_from_disk("x", str(tmp_path / "missing.fq"), 1, 0)