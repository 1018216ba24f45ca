"""Read a file, or a range of its lines, inside the working directory."""

from __future__ import annotations

from pathlib import Path
from typing import Any, Optional

from kncode.tools.traits import (
    PermissionDenied,
    TextContent,
    Tool,
    ToolContext,
    ToolIOError,
    ToolResult,
    ValidationFailed,
)


def _optional_count(data: dict[str, Any], key: str) -> Optional[int]:
    value = data.get(key)
    if value is None:
        return None
    if isinstance(value, bool) or not isinstance(value, int) or value < 0:
        raise ValidationFailed(f"field `{key}` must be a non-negative integer")
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


def _lines(text: str) -> list[str]:
    pieces = text.split("\n")
    if pieces[-1] == "":
        pieces.pop()
    return [piece[:-1] if piece.endswith("\r") else piece for piece in pieces]


class FileReadTool(Tool):
    """Reads text files, optionally a window of lines."""

    name = "FileRead"
    description = "Read the contents of a file"
    prompt = "Use this to read file contents."
    is_read_only = True

    def input_schema(self) -> dict[str, Any]:
        return {
            "type": "object",
            "properties": {
                "file_path": {"type": "string", "description": "Absolute path to the file"},
                "offset": {
                    "type": "integer",
                    "description": "Line number to start from (1-indexed)",
                },
                "limit": {"type": "integer", "description": "Number of lines to read"},
            },
            "required": ["file_path"],
        }

    def call(self, input: Any, context: ToolContext) -> ToolResult:
        if not isinstance(input, dict):
            raise ValidationFailed("input must be an object")
        if "file_path" not in input:
            raise ValidationFailed("missing field `file_path`")
        file_path = input["file_path"]
        if not isinstance(file_path, str):
            raise ValidationFailed("field `file_path` must be a string")
        offset_arg = _optional_count(input, "offset")
        limit_arg = _optional_count(input, "limit")

        requested = Path(file_path)
        path = requested if requested.is_absolute() else context.cwd / requested

        try:
            canonical = path.resolve(strict=True)
        except OSError as error:
            raise PermissionDenied("File not found or not accessible") from error
        try:
            cwd = context.cwd.resolve(strict=True)
        except OSError as error:
            raise PermissionDenied("Cannot resolve working directory") from error

        if not canonical.is_relative_to(cwd):
            return ToolResult(
                content=TextContent(
                    "Error: file is outside the working directory. Access to files "
                    "outside the project directory is not allowed."
                )
            )

        path_str = str(canonical)
        if (
            path_str.startswith("/dev/")
            and not path_str.startswith("/dev/null")
            and not path_str.startswith("/dev/zero")
        ):
            return ToolResult(content=TextContent(f"Reading from {canonical} is not allowed."))

        lines = _lines(_read_utf8(canonical))
        total = len(lines)

        offset = max((offset_arg if offset_arg is not None else 1) - 1, 0)
        limit = limit_arg if limit_arg is not None else total
        end = min(offset + limit, total)
        selected = lines[offset:end] if offset < total else []

        if not selected:
            output = (
                f"File is empty or offset ({offset + 1}) exceeds total lines ({total})."
            )
        else:
            header = f"Read lines {offset + 1}-{end} of {total} from {canonical}:\n"
            output = header + "\n".join(selected)

        return ToolResult(
            content=TextContent(output),
            structured_content={
                "file_path": file_path,
                "total_lines": total,
                "lines_read": len(selected),
                "offset": offset + 1,
            },
        )

    def get_path(self, input: Any) -> Optional[Path]:
        if isinstance(input, dict):
            value = input.get("file_path")
            if isinstance(value, str):
                return Path(value)
        return None