from pathlib import Path

import pytest

from kncode.tools.traits import (
    ErrorBlock,
    ExecutionFailed,
    ImageContent,
    MultiContent,
    PermissionDenied,
    TextContent,
    Tool,
    ToolContext,
    ToolError,
    ToolIOError,
    ToolResult,
    ValidationFailed,
)


class EchoTool(Tool):
    name = "Echo"
    description = "Echo input"
    prompt = "Echo it."

    def input_schema(self):
        return {"type": "object"}

    def call(self, input, context):
        return ToolResult(content=TextContent(str(input)))


def test_context_converts_cwd_to_path():
    ctx = ToolContext(cwd="/tmp/project")
    assert ctx.cwd == Path("/tmp/project")
    assert ctx.is_headless is False
    assert ctx.session_id is None


def test_result_text_from_text_content():
    result = ToolResult(content=TextContent("hello"))
    assert result.text() == "hello"
    assert result.new_messages == []
    assert result.persisted is False


def test_result_text_from_multi_content_joins_text_blocks():
    content = MultiContent(
        [TextContent("a"), ImageContent("AAAA", "image/png"), ErrorBlock("bad", "E1"), TextContent("b")]
    )
    assert ToolResult(content=content).text() == "a\nb"


def test_result_text_from_image_is_empty():
    assert ToolResult(content=ImageContent("AAAA", "image/png")).text() == ""


def test_multi_content_blocks_are_tuple():
    content = MultiContent([TextContent("x")])
    assert content.blocks == (TextContent("x"),)


@pytest.mark.parametrize(
    "cls, prefix",
    [
        (ValidationFailed, "Validation failed"),
        (PermissionDenied, "Permission denied"),
        (ExecutionFailed, "Execution failed"),
    ],
)
def test_error_messages(cls, prefix):
    err = cls("boom")
    assert str(err) == f"{prefix}: boom"
    assert err.message == "boom"
    assert isinstance(err, ToolError)


def test_io_error_wraps_os_error():
    original = FileNotFoundError("missing")
    err = ToolIOError(original)
    assert err.error is original
    assert str(err) == "IO error: missing"


def test_tool_defaults():
    tool = EchoTool()
    assert Tool.get_path(tool, {"file_path": "x"}) is None
    assert Tool.output_schema(tool) is None
    assert Tool.max_result_size_chars == 100_000
    assert Tool.is_enabled is True
    assert Tool.strict_schema is True
    assert Tool.is_read_only is False
    assert Tool.aliases == ()


def test_tool_call_on_subclass():
    result = EchoTool().call("ping", ToolContext(cwd="."))
    assert result.text() == "ping"


def test_tool_is_abstract():
    with pytest.raises(TypeError):
        Tool()