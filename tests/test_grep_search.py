from pathlib import Path

import pytest

from kncode.tools.grep_search import GrepTool
from kncode.tools.traits import ToolContext, ValidationFailed


@pytest.fixture
def root(tmp_path: Path) -> Path:
    base = tmp_path.resolve()
    (base / "a.py").write_text("def foo():\n    pass\ndef bar():\n")
    (base / "notes.txt").write_text("nothing here\n")
    return base


def run(root: Path, **input):
    return GrepTool().call(input, ToolContext(cwd=root))


def test_content_mode_lists_matching_lines(root):
    result = run(root, pattern=r"^def ")
    assert result.text() == (
        "Found 2 match(es) in 1 file(s):\na.py:1:def foo():\na.py:3:def bar():"
    )
    assert result.structured_content == {
        "match_count": 2,
        "file_count": 1,
        "output_mode": "content",
    }


def test_no_matches(root):
    result = run(root, pattern="zzz")
    assert result.text() == "No matches found."
    assert result.structured_content["match_count"] == 0


def test_count_mode_counts_but_lists_nothing(root):
    result = run(root, pattern="def", output_mode="count")
    assert result.text() == "No matches found."
    assert result.structured_content["match_count"] == 2
    assert result.structured_content["file_count"] == 0
    assert result.structured_content["output_mode"] == "count"


def test_hidden_files_are_skipped(root):
    (root / ".hidden.py").write_text("def secret():\n")
    result = run(root, pattern="secret")
    assert result.text() == "No matches found."


def test_gitignore_applies_inside_repository(root):
    (root / ".git").mkdir()
    (root / ".gitignore").write_text("ignored.txt\nbuild/\n")
    (root / "ignored.txt").write_text("needle\n")
    (root / "build").mkdir()
    (root / "build" / "out.txt").write_text("needle\n")
    (root / "kept.txt").write_text("needle\n")
    result = run(root, pattern="needle")
    assert result.text() == "Found 1 match(es) in 1 file(s):\nkept.txt:1:needle"


def test_gitignore_negation(root):
    (root / ".git").mkdir()
    (root / ".gitignore").write_text("*.log\n!keep.log\n")
    (root / "drop.log").write_text("needle\n")
    (root / "keep.log").write_text("needle\n")
    result = run(root, pattern="needle")
    assert result.text() == "Found 1 match(es) in 1 file(s):\nkeep.log:1:needle"


def test_gitignore_ignored_outside_repository(root):
    (root / ".gitignore").write_text("ignored.txt\n")
    (root / "ignored.txt").write_text("needle\n")
    result = run(root, pattern="needle")
    assert result.structured_content["file_count"] == 1
    assert "ignored.txt:1:needle" in result.text()


def test_ignore_file_applies_without_repository(root):
    (root / ".ignore").write_text("skip.txt\n")
    (root / "skip.txt").write_text("needle\n")
    result = run(root, pattern="needle")
    assert result.text() == "No matches found."


def test_search_single_file(root):
    (root / "other.py").write_text("def foo():\n")
    result = run(root, pattern="foo", path="other.py")
    assert result.text() == "Found 1 match(es) in 1 file(s):\nother.py:1:def foo():"


def test_invalid_utf8_files_are_skipped(root):
    (root / "bin.dat").write_bytes(b"\xff\xfeneedle\n")
    result = run(root, pattern="needle")
    assert result.structured_content["match_count"] == 0


def test_invalid_regex(root):
    with pytest.raises(ValidationFailed) as info:
        run(root, pattern="(unclosed")
    assert "Invalid regex" in str(info.value)


def test_missing_pattern(root):
    with pytest.raises(ValidationFailed):
        GrepTool().call({"path": "."}, ToolContext(cwd=root))


def test_path_not_found(root):
    result = run(root, pattern="x", path="missing")
    assert result.text() == f"Path not found: {root / 'missing'}"


def test_path_outside_cwd(root):
    inner = root / "sub"
    inner.mkdir()
    result = GrepTool().call({"pattern": "x", "path": ".."}, ToolContext(cwd=inner))
    assert result.text().startswith("Error: search path")
    assert result.structured_content is None


def test_results_truncated(root):
    (root / "big.txt").write_text("hit\n" * 1200)
    result = run(root, pattern="hit")
    lines = result.text().split("\n")
    assert lines[-1] == "... (truncated to 1000 results)"
    assert result.structured_content["match_count"] == 1200