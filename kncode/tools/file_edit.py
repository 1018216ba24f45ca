"""Find-and-replace edits of a file inside the working directory."""

from __future__ import annotations

from pathlib import Path
from typing import Any

from kncode.tools.paths import atomic_write, resolve_target
from kncode.tools.traits import (
    PermissionDenied,
    TextContent,
    Tool,
    ToolContext,
    ToolIOError,
    ToolResult,
    ValidationFailed,
)

MAX_FILE_SIZE = 10 * 1024 * 1024


def _required_str(data: dict[str, Any], key: str) -> str:
    if key not in data:
        raise ValidationFailed(f"missing field `{key}`")
    value = data[key]
    if not isinstance(value, str):
        raise ValidationFailed(f"field `{key}` must be a string")
    return value


def _read_utf8(path: Path) -> str:
    try:
        data = path.read_bytes()
    except OSError as error:
        raise ToolIOError(error) from error
    try:
        return data.decode("utf-8")
    except UnicodeDecodeError as error:
        raise ToolIOError(OSError("stream did not contain valid UTF-8")) from error


def _line_count(text: str) -> int:
    pieces = text.split("\n")
    return len(pieces) - 1 if pieces[-1] == "" else len(pieces)


def _text(message: str) -> ToolResult:
    return ToolResult(content=TextContent(message))


class FileEditTool(Tool):
    """Replaces one or all occurrences of a string in a file."""

    name = "FileEdit"
    description = "Edit a file by finding and replacing text"
    prompt = "Use this to edit files by replacing text."
    is_destructive = True

    def input_schema(self) -> dict[str, Any]:
        return {
            "type": "object",
            "properties": {
                "file_path": {"type": "string"},
                "old_string": {"type": "string"},
                "new_string": {"type": "string"},
                "replace_all": {"type": "boolean"},
            },
            "required": ["file_path", "old_string", "new_string"],
        }

    def call(self, input: Any, context: ToolContext) -> ToolResult:
        if not isinstance(input, dict):
            raise ValidationFailed("input must be an object")
        file_path = _required_str(input, "file_path")
        old = _required_str(input, "old_string")
        new = _required_str(input, "new_string")
        replace_all = input.get("replace_all")
        if replace_all is None:
            replace_all = False
        elif not isinstance(replace_all, bool):
            raise ValidationFailed("field `replace_all` must be a boolean")

        try:
            cwd = context.cwd.resolve(strict=True)
        except OSError as error:
            raise PermissionDenied(f"Cannot resolve working directory: {error}") from error

        resolved = resolve_target(cwd, file_path)
        if not resolved.is_relative_to(cwd):
            return _text(
                f"Error: path '{resolved}' is outside the working directory '{cwd}'. "
                "Access to files outside the project directory is not allowed."
            )

        content = _read_utf8(resolved)
        size = len(content.encode("utf-8"))
        if size > MAX_FILE_SIZE:
            return _text(f"File too large to edit ({size} bytes, max {MAX_FILE_SIZE} bytes)")

        if replace_all:
            new_content = content.replace(old, new)
            replace_count = content.count(old)
        else:
            position = content.find(old)
            if position < 0:
                return _text("String not found in file.")
            new_content = content[:position] + new + content[position + len(old):]
            replace_count = 1

        new_size = len(new_content.encode("utf-8"))
        if new_size > MAX_FILE_SIZE:
            return _text(
                f"Result too large after replacement ({new_size} bytes, "
                f"max {MAX_FILE_SIZE} bytes)"
            )

        if replace_count == 0:
            return _text("No changes made — old_string not found in file.")

        atomic_write(resolved, new_content)

        return ToolResult(
            content=TextContent(
                f"Edited {resolved}: replaced {replace_count} occurrence(s) of string."
            ),
            structured_content={
                "file_path": file_path,
                "replacements": replace_count,
                "line_delta": _line_count(new_content) - _line_count(content),
            },
        )