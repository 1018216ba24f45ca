"""Session todo list that is replaced wholesale on each call."""

from __future__ import annotations

import threading
from dataclasses import asdict, dataclass
from typing import Any

from kncode.tools.traits import TextContent, Tool, ToolContext, ToolResult, ValidationFailed


@dataclass(frozen=True)
class TodoItem:
    """One entry of the todo list."""

    content: str
    status: str

    @classmethod
    def from_dict(cls, data: Any) -> "TodoItem":
        if not isinstance(data, dict):
            raise ValidationFailed("todo item must be an object")
        fields = {}
        for key in ("content", "status"):
            if key not in data:
                raise ValidationFailed(f"missing field `{key}`")
            if not isinstance(data[key], str):
                raise ValidationFailed(f"field `{key}` must be a string")
            fields[key] = data[key]
        return cls(**fields)


class TodoWriteTool(Tool):
    """Keeps the todo list of the current session."""

    name = "TodoWrite"
    description = "Manage a todo list for the current session"
    prompt = "Use this to manage todos. Replaces the entire list on each call."

    def __init__(self) -> None:
        self._todos: list[TodoItem] = []
        self._lock = threading.Lock()

    def input_schema(self) -> dict[str, Any]:
        return {
            "type": "object",
            "properties": {
                "todos": {
                    "type": "array",
                    "items": {
                        "type": "object",
                        "properties": {
                            "content": {"type": "string"},
                            "status": {
                                "type": "string",
                                "enum": ["pending", "in_progress", "completed"],
                            },
                        },
                        "required": ["content", "status"],
                    },
                }
            },
            "required": ["todos"],
        }

    def call(self, input: Any, context: ToolContext) -> ToolResult:
        if not isinstance(input, dict):
            raise ValidationFailed("input must be an object")
        if "todos" not in input:
            raise ValidationFailed("missing field `todos`")
        raw = input["todos"]
        if not isinstance(raw, list):
            raise ValidationFailed("field `todos` must be an array")
        items = [TodoItem.from_dict(entry) for entry in raw]

        with self._lock:
            self._todos = items
            snapshot = list(self._todos)

        summary = "\n".join(f"[{item.status}] {item.content}" for item in snapshot)

        def count(status: str) -> int:
            return sum(1 for item in snapshot if item.status == status)

        return ToolResult(
            content=TextContent(f"Todo list updated ({len(snapshot)} items):\n{summary}"),
            structured_content={
                "todos": [asdict(item) for item in snapshot],
                "total": len(snapshot),
                "pending": count("pending"),
                "in_progress": count("in_progress"),
                "completed": count("completed"),
            },
        )