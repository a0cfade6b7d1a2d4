import os

import pytest

from fastqueue.file_handler import FileHandler, FileStream


@pytest.fixture
def handler():
    with FileHandler() as fh:
        yield fh


def test_create_and_read_whole_file(handler, tmp_path):
    path = str(tmp_path / "data.bin")
    handler.create_new_file(path, b"abc", "k", True)
    assert handler.get_complete_file_content(path) == b"abc"


def test_create_new_file_on_existing_overwrites_prefix(handler, tmp_path):
    path = tmp_path / "data.bin"
    path.write_bytes(b"hello world")
    handler.create_new_file(str(path), b"HE")
    assert handler.get_complete_file_content(str(path)) == b"HEllo world"


def test_append_returns_previous_end(handler, tmp_path):
    path = str(tmp_path / "data.bin")
    handler.create_new_file(path, b"abc", "k")
    pos = handler.write_to_file("k", path, b"de")
    assert pos == len(b"abc")
    assert handler.get_complete_file_content(path) == b"abc" + b"de"


def test_write_at_position(handler, tmp_path):
    path = str(tmp_path / "data.bin")
    handler.create_new_file(path, b"abcd", "k")
    assert handler.write_to_file("k", path, b"X", 1) == 1
    assert handler.read_from_file("k", path, 4, 0) == b"aXcd"


def test_write_beyond_end_extends_file(handler, tmp_path):
    path = str(tmp_path / "data.bin")
    handler.create_new_file(path, b"ab", "k")
    handler.write_to_file("k", path, b"cd", 2)
    assert handler.write_to_file("k", path, b"e") == 4
    assert handler.read_from_file("k", path, 10, 0) == b"abcde"


def test_write_empty_data_returns_minus_one(handler, tmp_path):
    path = str(tmp_path / "data.bin")
    handler.create_new_file(path)
    assert handler.write_to_file("", path, b"") == -1


def test_missing_path_raises(handler, tmp_path):
    missing = str(tmp_path / "missing.bin")
    with pytest.raises(FileNotFoundError):
        handler.write_to_file("k", missing, b"x")
    with pytest.raises(FileNotFoundError):
        handler.read_from_file("k", missing, 1, 0)


def test_read_past_end_is_short(handler, tmp_path):
    path = str(tmp_path / "data.bin")
    handler.create_new_file(path, b"abcdef")
    assert handler.read_from_file("", path, 100, 4) == b"ef"
    assert handler.read_from_file("", path, 0, 0) == b""


def test_unflushed_write_visible_after_flush(handler, tmp_path):
    path = str(tmp_path / "data.bin")
    handler.create_new_file(path, b"a", "k")
    handler.write_to_file("k", path, b"bc", -1, False)
    handler.flush_output_streams()
    with open(path, "rb") as f:
        assert f.read() == b"abc"


def test_close_file_then_reopen(handler, tmp_path):
    path = str(tmp_path / "data.bin")
    handler.create_new_file(path, b"one", "k")
    handler.close_file("k")
    handler.write_to_file("k", path, b"two")
    assert handler.get_complete_file_content(path) == b"onetwo"


def test_delete_directory_with_open_streams(handler, tmp_path):
    directory = tmp_path / "queue"
    handler.create_directory(str(directory))
    path = str(directory / "seg.bin")
    handler.create_new_file(path, b"x", "queue_seg")
    handler.delete_dir_or_file(str(directory), key_prefix="queue_")
    assert not directory.exists()


def test_delete_file_by_key(handler, tmp_path):
    path = str(tmp_path / "f.bin")
    handler.create_new_file(path, b"x", "f")
    handler.delete_dir_or_file(path, key="f")
    assert not handler.check_if_exists(path)


def test_create_directory(handler, tmp_path):
    target = str(tmp_path / "a" / "b")
    assert handler.create_directory(target) is True
    assert handler.create_directory(target) is False
    assert os.path.isdir(target)


def test_execute_action_to_dir_subfiles(handler, tmp_path):
    for name in ("x.bin", "y.bin"):
        (tmp_path / name).write_bytes(b"")
    seen = []
    handler.execute_action_to_dir_subfiles(str(tmp_path), lambda e: seen.append(e.name))
    assert sorted(seen) == ["x.bin", "y.bin"]


def test_execute_action_on_missing_dir_does_nothing(handler, tmp_path):
    seen = []
    handler.execute_action_to_dir_subfiles(str(tmp_path / "nope"), seen.append)
    assert seen == []


def test_get_dir_entry_path_uses_forward_slashes(handler, tmp_path):
    (tmp_path / "f.bin").write_bytes(b"")
    with os.scandir(tmp_path) as entries:
        result = [handler.get_dir_entry_path(e) for e in entries]
    assert all("\\" not in p for p in result)
    assert handler.get_dir_entry_path("dir\\sub\\file") == "dir/sub/file"


def test_rename_file(handler, tmp_path):
    old = str(tmp_path / "old.bin")
    new = str(tmp_path / "new.bin")
    handler.create_new_file(old, b"data", "old")
    handler.rename_file("old", old, new)
    assert not os.path.exists(old)
    assert handler.get_complete_file_content(new) == b"data"


def test_rename_missing_file_does_nothing(handler, tmp_path):
    new = tmp_path / "new.bin"
    handler.rename_file("k", str(tmp_path / "missing.bin"), str(new))
    assert not new.exists()


def test_close_all_closes_cached_streams(tmp_path):
    path = str(tmp_path / "data.bin")
    handler = FileHandler()
    handler.create_new_file(path, b"a", "k")
    handler.write_to_file("k", path, b"b", -1, False)
    handler.close_all()
    with open(path, "rb") as f:
        assert f.read() == b"ab"


def test_eviction_closes_old_stream(tmp_path):
    handler = FileHandler(max_open_files=1)
    first = str(tmp_path / "1.bin")
    second = str(tmp_path / "2.bin")
    handler.create_new_file(first, b"1", "a")
    handler.create_new_file(second, b"2", "b")
    handler.write_to_file("a", first, b"x")
    assert handler.get_complete_file_content(first) == b"1x"
    handler.close_all()


def test_file_stream_close(tmp_path):
    path = tmp_path / "s.bin"
    path.write_bytes(b"abc")
    fs = FileStream.open(str(path))
    assert fs.end_pos == 3
    fs.close()
    assert fs.closed is True