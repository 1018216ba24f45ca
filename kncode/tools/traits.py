"""Core types shared by every tool: context, results, errors and the Tool base."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, ClassVar, Optional, Union


@dataclass(frozen=True)
class ToolContext:
    """Where and how a tool call runs."""

    cwd: Path
    is_headless: bool = False
    session_id: Optional[str] = None
    tool_use_id: str = ""

    def __post_init__(self) -> None:
        object.__setattr__(self, "cwd", Path(self.cwd))


@dataclass(frozen=True)
class TextContent:
    """Plain text output."""

    text: str


@dataclass(frozen=True)
class ImageContent:
    """A base64-encoded image."""

    base64: str
    media_type: str


@dataclass(frozen=True)
class ErrorBlock:
    """An error reported as part of multi-block output."""

    message: str
    code: str


ContentBlock = Union[TextContent, ImageContent, ErrorBlock]


@dataclass(frozen=True)
class MultiContent:
    """Several content blocks in order."""

    blocks: tuple = ()

    def __post_init__(self) -> None:
        object.__setattr__(self, "blocks", tuple(self.blocks))


ToolContent = Union[TextContent, ImageContent, MultiContent]


@dataclass
class ToolResult:
    """What a successful tool call hands back."""

    content: ToolContent
    new_messages: list[str] = field(default_factory=list)
    persisted: bool = False
    persisted_path: Optional[Path] = None
    structured_content: Optional[Any] = None

    def text(self) -> str:
        """Return the textual part of the content, joining text blocks by newlines."""
        if isinstance(self.content, TextContent):
            return self.content.text
        if isinstance(self.content, MultiContent):
            return "\n".join(
                block.text for block in self.content.blocks if isinstance(block, TextContent)
            )
        return ""


class ToolError(Exception):
    """Base class for errors raised by tool calls."""

    prefix: ClassVar[str] = "Tool error"

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(f"{self.prefix}: {message}")


class ValidationFailed(ToolError):
    """The input did not match what the tool expects."""

    prefix = "Validation failed"


class PermissionDenied(ToolError):
    """The call was refused for safety or access reasons."""

    prefix = "Permission denied"


class ExecutionFailed(ToolError):
    """The tool could not carry out the call."""

    prefix = "Execution failed"


class ToolIOError(ToolError):
    """An operating-system I/O error during the call."""

    prefix = "IO error"

    def __init__(self, error: OSError) -> None:
        self.error = error
        super().__init__(str(error))


class Tool(ABC):
    """A capability the agent can invoke with JSON-like input."""

    name: ClassVar[str] = ""
    aliases: ClassVar[tuple[str, ...]] = ()
    description: ClassVar[str] = ""
    prompt: ClassVar[str] = ""
    is_enabled: ClassVar[bool] = True
    is_concurrency_safe: ClassVar[bool] = False
    is_read_only: ClassVar[bool] = False
    is_destructive: ClassVar[bool] = False
    max_result_size_chars: ClassVar[int] = 100_000
    strict_schema: ClassVar[bool] = True

    @abstractmethod
    def input_schema(self) -> dict[str, Any]:
        """JSON schema of the accepted input."""

    def output_schema(self) -> Optional[dict[str, Any]]:
        """JSON schema of the structured output, if any."""
        return None

    @abstractmethod
    def call(self, input: Any, context: ToolContext) -> ToolResult:
        """Run the tool; raise a ToolError on failure."""

    def get_path(self, input: Any) -> Optional[Path]:
        """The file path the input refers to, if the tool works on one."""
        return None

    def __repr__(self) -> str:
        return f"{type(self).__name__}()"