import json
import os

import pytest

from kncode.tools.file_write import MAX_FILE_SIZE, FileWriteTool
from kncode.tools.traits import PermissionDenied, ToolContext, ToolIOError, ValidationFailed


def _ctx(path):
    return ToolContext(cwd=path)


def test_create_file(tmp_path):
    result = FileWriteTool().call({"file_path": "new.txt", "content": "hello"}, _ctx(tmp_path))
    assert (tmp_path / "new.txt").read_bytes() == b"hello"
    expected = {"type": "create", "file_path": "new.txt", "content_length": len(b"hello")}
    assert json.loads(result.text()) == expected
    assert result.structured_content == expected


def test_text_is_compact_json(tmp_path):
    result = FileWriteTool().call({"file_path": "c.txt", "content": "x"}, _ctx(tmp_path))
    assert " " not in result.text()


def test_update_existing_file(tmp_path):
    (tmp_path / "f.txt").write_bytes(b"old content")
    result = FileWriteTool().call({"file_path": "f.txt", "content": "new"}, _ctx(tmp_path))
    assert (tmp_path / "f.txt").read_bytes() == b"new"
    assert result.structured_content["type"] == "update"


def test_content_length_counts_bytes(tmp_path):
    text = "héllo"
    result = FileWriteTool().call({"file_path": "u.txt", "content": text}, _ctx(tmp_path))
    assert result.structured_content["content_length"] == len(text.encode("utf-8"))


def test_creates_missing_directories(tmp_path):
    FileWriteTool().call({"file_path": "a/b/c.txt", "content": "deep"}, _ctx(tmp_path))
    assert (tmp_path / "a" / "b" / "c.txt").read_bytes() == b"deep"
    assert sorted(p.name for p in (tmp_path / "a" / "b").iterdir()) == ["c.txt"]


def test_absolute_path_inside_cwd(tmp_path):
    target = tmp_path / "abs.txt"
    FileWriteTool().call({"file_path": str(target), "content": "z"}, _ctx(tmp_path))
    assert target.read_bytes() == b"z"


def test_outside_cwd_in_existing_dir_denied(tmp_path):
    proj = tmp_path / "proj"
    proj.mkdir()
    with pytest.raises(PermissionDenied) as info:
        FileWriteTool().call({"file_path": "../x.txt", "content": "z"}, _ctx(proj))
    assert "is outside the working directory" in info.value.message
    assert not (tmp_path / "x.txt").exists()


def test_outside_cwd_in_missing_dir_denied(tmp_path):
    proj = tmp_path / "proj"
    proj.mkdir()
    with pytest.raises(PermissionDenied):
        FileWriteTool().call({"file_path": "../missing/x.txt", "content": "z"}, _ctx(proj))
    assert not (tmp_path / "missing").exists()


def test_symlink_escape_denied(tmp_path):
    outside = tmp_path / "outside.txt"
    outside.write_bytes(b"keep")
    proj = tmp_path / "proj"
    proj.mkdir()
    os.symlink(outside, proj / "link.txt")
    with pytest.raises(PermissionDenied):
        FileWriteTool().call({"file_path": "link.txt", "content": "over"}, _ctx(proj))
    assert outside.read_bytes() == b"keep"


def test_content_too_large(tmp_path):
    big = "a" * (MAX_FILE_SIZE + 1)
    result = FileWriteTool().call({"file_path": "big.txt", "content": big}, _ctx(tmp_path))
    assert result.text() == (
        f"Content too large ({MAX_FILE_SIZE + 1} bytes, max {MAX_FILE_SIZE} bytes)"
    )
    assert not (tmp_path / "big.txt").exists()


def test_writing_onto_directory_fails(tmp_path):
    (tmp_path / "dir").mkdir()
    with pytest.raises(ToolIOError):
        FileWriteTool().call({"file_path": "dir", "content": "z"}, _ctx(tmp_path))
    assert [p.name for p in tmp_path.iterdir()] == ["dir"]


def test_missing_cwd_denied(tmp_path):
    with pytest.raises(PermissionDenied) as info:
        FileWriteTool().call({"file_path": "a", "content": "b"}, _ctx(tmp_path / "gone"))
    assert info.value.message.startswith("Cannot resolve working directory")


@pytest.mark.parametrize(
    "bad",
    [{}, {"file_path": "a"}, {"content": "b"}, {"file_path": "a", "content": None}, "text"],
)
def test_validation(tmp_path, bad):
    with pytest.raises(ValidationFailed):
        FileWriteTool().call(bad, _ctx(tmp_path))