"""Find files under the working directory whose relative paths match a glob."""

from __future__ import annotations

import os
import re
from collections.abc import Iterator
from pathlib import Path
from typing import Any, Optional

from kncode.tools.traits import (
    PermissionDenied,
    TextContent,
    Tool,
    ToolContext,
    ToolResult,
    ValidationFailed,
)

MAX_RESULTS = 1000
MAX_DEPTH = 15
SKIP_DIRS = frozenset(
    {
        ".git",
        "node_modules",
        "target",
        ".venv",
        "vendor",
        "__pycache__",
        ".next",
        "dist",
        "build",
    }
)


def _parse_class(pattern: str, start: int) -> tuple[str, int]:
    """Translate the character class opening at ``start``; return regex and next index."""
    n = len(pattern)
    j = start + 1
    negate = False
    if j < n and pattern[j] in "!^":
        negate = True
        j += 1
    items: list[str] = []
    first = True
    while True:
        if j >= n:
            raise ValidationFailed(f"unclosed character class in glob: {pattern}")
        ch = pattern[j]
        if ch == "]" and not first:
            break
        first = False
        if j + 2 < n and pattern[j + 1] == "-" and pattern[j + 2] != "]":
            low, high = ch, pattern[j + 2]
            if low > high:
                raise ValidationFailed(f"invalid range {low}-{high} in glob: {pattern}")
            items.append(f"{re.escape(low)}-{re.escape(high)}")
            j += 3
        else:
            items.append(re.escape(ch))
            j += 1
    return "[" + ("^" if negate else "") + "".join(items) + "]", j + 1


def _translate(pattern: str, literal_separator: bool) -> str:
    """Turn a glob into regex source meant for ``fullmatch``."""
    star = "[^/]*" if literal_separator else ".*"
    single = "[^/]" if literal_separator else "."
    out: list[str] = []
    alternates: Optional[list[list[str]]] = None
    n = len(pattern)
    i = 0

    def emit(piece: str) -> None:
        (alternates[-1] if alternates is not None else out).append(piece)

    while i < n:
        c = pattern[i]
        if c == "\\":
            if i + 1 >= n:
                raise ValidationFailed(f"dangling '\\' in glob: {pattern}")
            emit(re.escape(pattern[i + 1]))
            i += 2
        elif c == "/":
            if alternates is None and pattern.startswith("**", i + 1):
                after = i + 3
                if after == n:
                    emit("/.*")
                    i = after
                    continue
                if pattern[after] == "/":
                    emit("(?:/|/.*/)")
                    i = after + 1
                    continue
            emit("/")
            i += 1
        elif c == "*":
            if i + 1 < n and pattern[i + 1] == "*":
                after = i + 2
                if i == 0 and alternates is None:
                    if after == n:
                        emit(".*")
                        i = after
                        continue
                    if pattern[after] == "/":
                        emit("(?:/?|.*/)")
                        i = after + 1
                        continue
                emit(star + star)
                i = after
            else:
                emit(star)
                i += 1
        elif c == "?":
            emit(single)
            i += 1
        elif c == "[":
            piece, i = _parse_class(pattern, i)
            emit(piece)
        elif c == "{":
            if alternates is not None:
                raise ValidationFailed(f"nested alternate groups are not allowed: {pattern}")
            alternates = [[]]
            i += 1
        elif c == "}" and alternates is not None:
            out.append("(?:" + "|".join("".join(alt) for alt in alternates) + ")")
            alternates = None
            i += 1
        elif c == "," and alternates is not None:
            alternates.append([])
            i += 1
        else:
            emit(re.escape(c))
            i += 1

    if alternates is not None:
        raise ValidationFailed(f"unclosed alternate group in glob: {pattern}")
    return "".join(out)


def glob_to_regex(pattern: str) -> re.Pattern[str]:
    """Compile a case-sensitive glob; match paths with ``fullmatch``.

    ``*`` and ``?`` may cross '/', ``**`` spans directories, ``[...]`` and
    ``{a,b}`` work as usual, and a backslash escapes the next character.
    """
    return re.compile(_translate(pattern, literal_separator=False), re.DOTALL)


def _children(directory: Path, prefix: str, depth: int) -> Iterator[tuple[Path, str]]:
    try:
        with os.scandir(directory) as scan:
            entries = sorted(scan, key=lambda entry: entry.name)
    except OSError:
        return
    for entry in entries:
        if entry.name in SKIP_DIRS:
            continue
        relative = f"{prefix}/{entry.name}" if prefix else entry.name
        path = Path(entry.path)
        yield path, relative
        try:
            is_dir = entry.is_dir(follow_symlinks=False)
        except OSError:
            continue
        if is_dir and depth < MAX_DEPTH:
            yield from _children(path, relative, depth + 1)


def _walk(root: Path) -> Iterator[tuple[Path, str]]:
    """Yield every entry under ``root`` (root included) with its relative path."""
    if root.name in SKIP_DIRS:
        return
    yield root, ""
    yield from _children(root, "", 1)


class GlobTool(Tool):
    """Lists files whose paths match a glob pattern."""

    name = "Glob"
    description = "Find files matching a glob pattern"
    prompt = "Use this to find files by pattern."
    is_read_only = True

    def input_schema(self) -> dict[str, Any]:
        return {
            "type": "object",
            "properties": {
                "pattern": {"type": "string", "description": "Glob pattern"},
                "path": {
                    "type": "string",
                    "description": "Directory to search in (optional, defaults to cwd)",
                },
            },
            "required": ["pattern"],
        }

    def call(self, input: Any, context: ToolContext) -> ToolResult:
        if not isinstance(input, dict):
            raise ValidationFailed("input must be an object")
        if "pattern" not in input:
            raise ValidationFailed("missing field `pattern`")
        pattern = input["pattern"]
        if not isinstance(pattern, str):
            raise ValidationFailed("field `pattern` must be a string")
        requested_path = input.get("path")
        if requested_path is not None and not isinstance(requested_path, str):
            raise ValidationFailed("field `path` must be a string")

        try:
            cwd = context.cwd.resolve(strict=True)
        except OSError as error:
            raise PermissionDenied(f"Cannot resolve working directory: {error}") from error

        if requested_path is not None:
            requested = Path(requested_path)
            path = requested if requested.is_absolute() else cwd / requested
            if not path.exists():
                return ToolResult(content=TextContent(f"Directory not found: {path}"))
            try:
                search_dir = path.resolve(strict=True)
            except OSError as error:
                raise PermissionDenied(f"Cannot resolve search path: {error}") from error
        else:
            search_dir = cwd

        if not search_dir.is_relative_to(cwd):
            return ToolResult(
                content=TextContent(
                    f"Error: search path '{search_dir}' is outside the working directory '{cwd}'."
                )
            )

        matcher = glob_to_regex(pattern)
        matches: list[str] = []
        for path, relative in _walk(search_dir):
            if matcher.fullmatch(relative):
                matches.append(str(path))
                if len(matches) >= MAX_RESULTS:
                    break
        matches.sort()

        if not matches:
            return ToolResult(
                content=TextContent(f"No files matching pattern: {pattern}"),
                structured_content={"matches": []},
            )
        listing = "\n".join(matches)
        return ToolResult(
            content=TextContent(
                f"Found {len(matches)} file(s) matching '{pattern}':\n{listing}"
            ),
            structured_content={"matches": matches},
        )