"""Tools that depend on services this build does not provide; each call fails cleanly."""

from __future__ import annotations

from typing import Any, Optional

from kncode.tools.traits import (
    ExecutionFailed,
    Tool,
    ToolContext,
    ToolResult,
    ValidationFailed,
)


def _as_object(input: Any) -> dict[str, Any]:
    if not isinstance(input, dict):
        raise ValidationFailed("input must be an object")
    return input


def _optional_str(data: dict[str, Any], key: str) -> Optional[str]:
    value = data.get(key)
    if value is not None and not isinstance(value, str):
        raise ValidationFailed(f"field `{key}` must be a string")
    return value


def _required_str(data: dict[str, Any], key: str) -> str:
    if key not in data:
        raise ValidationFailed(f"missing field `{key}`")
    value = _optional_str(data, key)
    if value is None:
        raise ValidationFailed(f"field `{key}` must be a string")
    return value


class AgentTool(Tool):
    """Delegation to sub-agents."""

    name = "Agent"
    description = "Spawn a sub-agent"
    prompt = "Use this to delegate tasks to sub-agents."
    is_destructive = True

    def input_schema(self) -> dict[str, Any]:
        return {
            "type": "object",
            "properties": {
                "description": {"type": "string", "description": "What this agent will do"},
                "prompt": {"type": "string", "description": "Instructions for the agent"},
                "model": {"type": "string"},
                "run_in_background": {"type": "boolean"},
            },
            "required": ["description", "prompt"],
        }

    def call(self, input: Any, context: ToolContext) -> ToolResult:
        raise ExecutionFailed("Sub-agent delegation is not supported")


class AskUserTool(Tool):
    """Questions addressed to the user."""

    name = "AskUser"
    description = "Ask the user a question"
    prompt = "Use this to ask the user questions."

    def input_schema(self) -> dict[str, Any]:
        return {
            "type": "object",
            "properties": {
                "question": {"type": "string"},
                "choices": {
                    "type": "array",
                    "items": {
                        "type": "object",
                        "properties": {
                            "label": {"type": "string"},
                            "description": {"type": "string"},
                        },
                    },
                },
            },
            "required": ["question"],
        }

    def call(self, input: Any, context: ToolContext) -> ToolResult:
        if context.is_headless:
            raise ExecutionFailed("Cannot ask user in headless mode")
        raise ExecutionFailed("Interactive user prompts are not supported")


class LspTool(Tool):
    """Language-server queries."""

    name = "LSP"
    description = "Query LSP diagnostics for a file"
    prompt = "Use this to check for LSP diagnostics (errors, warnings) in files."
    is_read_only = True

    def input_schema(self) -> dict[str, Any]:
        return {
            "type": "object",
            "properties": {
                "action": {
                    "type": "string",
                    "enum": ["diagnostics", "hover", "definition"],
                    "description": "LSP action to perform",
                },
                "file_path": {"type": "string", "description": "File to check"},
            },
            "required": ["action"],
        }

    def call(self, input: Any, context: ToolContext) -> ToolResult:
        data = _as_object(input)
        action = _optional_str(data, "action") or "diagnostics"
        file_path = _optional_str(data, "file_path")
        raise ExecutionFailed(
            f"LSP {action} for {file_path!r} — LSP server integration is not configured"
        )


class McpTool(Tool):
    """Calls to MCP servers."""

    name = "MCP"
    description = "Interact with MCP servers"
    prompt = "Use this to interact with MCP servers."

    def input_schema(self) -> dict[str, Any]:
        return {
            "type": "object",
            "properties": {
                "server": {"type": "string"},
                "tool": {"type": "string"},
                "input": {"type": "object"},
            },
            "required": ["server", "tool"],
        }

    def call(self, input: Any, context: ToolContext) -> ToolResult:
        raise ExecutionFailed("MCP server interaction is not supported")


class SkillTool(Tool):
    """Named skills and commands."""

    name = "Skill"
    description = "Execute a skill/command"
    prompt = "Use this to execute skills."

    def input_schema(self) -> dict[str, Any]:
        return {
            "type": "object",
            "properties": {
                "skill": {"type": "string", "description": "Skill name"},
                "args": {"type": "string", "description": "Optional arguments"},
            },
            "required": ["skill"],
        }

    def call(self, input: Any, context: ToolContext) -> ToolResult:
        raise ExecutionFailed("Skill execution is not supported")


class WebSearchTool(Tool):
    """Web search through an external API."""

    name = "WebSearch"
    description = "Search the web"
    prompt = "Use this to search the web for information."
    is_read_only = True

    def input_schema(self) -> dict[str, Any]:
        return {
            "type": "object",
            "properties": {
                "query": {"type": "string", "description": "Search query"},
                "num_results": {"type": "integer", "description": "Number of results"},
            },
            "required": ["query"],
        }

    def call(self, input: Any, context: ToolContext) -> ToolResult:
        data = _as_object(input)
        query = _required_str(data, "query")
        num_results = data.get("num_results", 10)
        if isinstance(num_results, bool) or not isinstance(num_results, int) or num_results < 0:
            raise ValidationFailed("field `num_results` must be a non-negative integer")
        raise ExecutionFailed(
            f"Web search for '{query}' — search API integration is not configured"
        )