"""Search file contents with a regular expression, honouring ignore files."""

from __future__ import annotations

import os
import re
from collections.abc import Iterator
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Optional

from kncode.tools.glob_search import _translate
from kncode.tools.traits import (
    PermissionDenied,
    TextContent,
    Tool,
    ToolContext,
    ToolResult,
    ValidationFailed,
)

MAX_FILE_SIZE = 10 * 1024 * 1024
MAX_RESULTS = 1000
MAX_DEPTH = 25


@dataclass(frozen=True)
class _IgnoreRule:
    base: Path
    regex: re.Pattern[str]
    negated: bool
    dir_only: bool


def _parse_rule(base: Path, raw: str) -> Optional[_IgnoreRule]:
    line = raw.rstrip("\r")
    if not line or line.startswith("#"):
        return None
    stripped = line.rstrip(" ")
    if stripped.endswith("\\") and len(stripped) < len(line):
        stripped += " "
    negated = stripped.startswith("!")
    if negated:
        stripped = stripped[1:]
    dir_only = stripped.endswith("/")
    if dir_only:
        stripped = stripped[:-1]
    if not stripped:
        return None
    anchored = "/" in stripped
    if stripped.startswith("/"):
        stripped = stripped[1:]
    if not anchored:
        stripped = "**/" + stripped
    try:
        regex = re.compile(_translate(stripped, literal_separator=True), re.DOTALL)
    except (ValidationFailed, re.error):
        return None
    return _IgnoreRule(base=base, regex=regex, negated=negated, dir_only=dir_only)


def _load_rules(directory: Path, in_repo: bool) -> list[_IgnoreRule]:
    names = ([".gitignore"] if in_repo else []) + [".ignore"]
    rules: list[_IgnoreRule] = []
    for name in names:
        try:
            text = (directory / name).read_text(encoding="utf-8", errors="replace")
        except OSError:
            continue
        for raw in text.split("\n"):
            rule = _parse_rule(directory, raw)
            if rule is not None:
                rules.append(rule)
    return rules


def _is_ignored(path: Path, is_dir: bool, rules: list[_IgnoreRule]) -> bool:
    verdict = False
    for rule in rules:
        if rule.dir_only and not is_dir:
            continue
        try:
            relative = path.relative_to(rule.base).as_posix()
        except ValueError:
            continue
        if rule.regex.fullmatch(relative):
            verdict = not rule.negated
    return verdict


def _repo_root(start: Path) -> Optional[Path]:
    for directory in (start, *start.parents):
        if (directory / ".git").exists():
            return directory
    return None


def _visit(directory: Path, depth: int, rules: list[_IgnoreRule], in_repo: bool) -> Iterator[Path]:
    rules = rules + _load_rules(directory, in_repo)
    try:
        with os.scandir(directory) as scan:
            entries = sorted(scan, key=lambda entry: entry.name)
    except OSError:
        return
    child_depth = depth + 1
    for entry in entries:
        if entry.name.startswith("."):
            continue
        path = Path(entry.path)
        try:
            is_dir = entry.is_dir(follow_symlinks=False)
        except OSError:
            continue
        if _is_ignored(path, is_dir, rules):
            continue
        yield path
        if is_dir and child_depth < MAX_DEPTH:
            yield from _visit(path, child_depth, rules, in_repo)


def _walk(root: Path) -> Iterator[Path]:
    """Yield the root and every entry below it that hidden and ignore rules allow."""
    yield root
    if not root.is_dir():
        return
    repo = _repo_root(root)
    in_repo = repo is not None
    inherited: list[_IgnoreRule] = []
    if repo is not None and repo != root:
        ancestors = [d for d in root.parents if d.is_relative_to(repo)]
        for directory in reversed(ancestors):
            inherited.extend(_load_rules(directory, in_repo))
    yield from _visit(root, 0, inherited, in_repo)


def _read_text(path: Path) -> Optional[str]:
    try:
        return path.read_bytes().decode("utf-8")
    except (OSError, UnicodeDecodeError):
        return None


def _lines(text: str) -> list[str]:
    pieces = text.split("\n")
    if pieces[-1] == "":
        pieces.pop()
    return [piece[:-1] if piece.endswith("\r") else piece for piece in pieces]


class GrepTool(Tool):
    """Searches file contents line by line with a regex."""

    name = "Grep"
    description = "Search file contents with regex"
    prompt = "Use this to search file contents with regex. Respects .gitignore."
    is_read_only = True

    def input_schema(self) -> dict[str, Any]:
        return {
            "type": "object",
            "properties": {
                "pattern": {"type": "string", "description": "Regex pattern"},
                "path": {
                    "type": "string",
                    "description": "File or directory to search in (optional, defaults to cwd)",
                },
                "output_mode": {
                    "type": "string",
                    "enum": ["content", "files_with_matches", "count"],
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
        for key in ("path", "output_mode"):
            value = input.get(key)
            if value is not None and not isinstance(value, str):
                raise ValidationFailed(f"field `{key}` must be a string")

        try:
            regex = re.compile(pattern)
        except re.error as error:
            raise ValidationFailed(f"Invalid regex: {error}") from error

        try:
            cwd = context.cwd.resolve(strict=True)
        except OSError as error:
            raise PermissionDenied(f"Cannot resolve working directory: {error}") from error

        requested_path = input.get("path")
        if requested_path is not None:
            requested = Path(requested_path)
            path = requested if requested.is_absolute() else cwd / requested
            if not path.exists():
                return ToolResult(content=TextContent(f"Path not found: {path}"))
            try:
                search_path = path.resolve(strict=True)
            except OSError as error:
                raise PermissionDenied(f"Cannot resolve search path: {error}") from error
        else:
            search_path = cwd

        if not search_path.is_relative_to(cwd):
            return ToolResult(
                content=TextContent(
                    f"Error: search path '{search_path}' is outside the working directory '{cwd}'."
                )
            )

        output_mode = input.get("output_mode") or "content"
        results: list[str] = []
        file_count = 0
        match_count = 0

        for path in _walk(search_path):
            if not path.is_file():
                continue
            try:
                if path.stat().st_size > MAX_FILE_SIZE:
                    continue
            except OSError:
                pass

            content = _read_text(path)
            if content is not None:
                hits = [
                    (number, line)
                    for number, line in enumerate(_lines(content), start=1)
                    if regex.search(line)
                ]
                match_count += len(hits)
                # Only content mode collects per-line matches, so only it lists files.
                if output_mode == "content" and hits:
                    file_count += 1
                    relative = path.relative_to(cwd) if path.is_relative_to(cwd) else path
                    results.extend(f"{relative}:{number}:{line}" for number, line in hits)

            if len(results) >= MAX_RESULTS:
                results.append(f"... (truncated to {MAX_RESULTS} results)")
                break

        output = "\n".join(results)
        text = (
            "No matches found."
            if not output
            else f"Found {match_count} match(es) in {file_count} file(s):\n{output}"
        )
        return ToolResult(
            content=TextContent(text),
            structured_content={
                "match_count": match_count,
                "file_count": file_count,
                "output_mode": output_mode,
            },
        )