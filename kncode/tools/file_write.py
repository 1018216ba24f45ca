"""Create or overwrite a file inside the working directory."""

from __future__ import annotations

import json
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


class FileWriteTool(Tool):
    """Writes whole files atomically."""

    name = "FileWrite"
    description = "Write content to a file"
    prompt = "Use this to create or overwrite files."
    is_destructive = True

    def input_schema(self) -> dict[str, Any]:
        return {
            "type": "object",
            "properties": {
                "file_path": {
                    "type": "string",
                    "description": "Path relative to working directory or absolute",
                },
                "content": {"type": "string", "description": "Content to write"},
            },
            "required": ["file_path", "content"],
        }

    def call(self, input: Any, context: ToolContext) -> ToolResult:
        if not isinstance(input, dict):
            raise ValidationFailed("input must be an object")
        file_path = _required_str(input, "file_path")
        content = _required_str(input, "content")

        size = len(content.encode("utf-8"))
        if size > MAX_FILE_SIZE:
            return ToolResult(
                content=TextContent(
                    f"Content too large ({size} bytes, max {MAX_FILE_SIZE} bytes)"
                )
            )

        try:
            cwd = context.cwd.resolve(strict=True)
        except OSError as error:
            raise PermissionDenied(f"Cannot resolve working directory: {error}") from error

        resolved = resolve_target(cwd, file_path)
        if not resolved.is_relative_to(cwd):
            raise PermissionDenied(
                f"Error: path '{resolved}' is outside the working directory '{cwd}'. "
                "Access to files outside the project directory is not allowed."
            )

        existed = resolved.exists()
        try:
            resolved.parent.mkdir(parents=True, exist_ok=True)
        except OSError as error:
            raise ToolIOError(error) from error
        atomic_write(resolved, content)

        kind = "update" if existed else "create"
        summary = {"type": kind, "file_path": file_path, "content_length": size}
        return ToolResult(
            content=TextContent(json.dumps(summary, separators=(",", ":"), ensure_ascii=False)),
            structured_content=dict(summary),
        )