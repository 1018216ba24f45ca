from kncode.tools.registry import ToolRegistry
from kncode.tools.traits import TextContent, Tool, ToolResult


class _Base(Tool):
    description = "d"
    prompt = "p"

    def input_schema(self):
        return {"type": "object"}

    def call(self, input, context):
        return ToolResult(content=TextContent(self.name))


class Alpha(_Base):
    name = "Alpha"
    aliases = ("a", "first")


class Beta(_Base):
    name = "Beta"
    is_enabled = False


class AlphaReplacement(_Base):
    name = "Alpha"


def test_get_by_name_and_alias():
    registry = ToolRegistry()
    alpha = Alpha()
    registry.register(alpha)
    assert registry.get("Alpha") is alpha
    assert registry.get("a") is alpha
    assert registry.get("first") is alpha
    assert "first" in registry


def test_get_missing_returns_none():
    registry = ToolRegistry()
    registry.register(Alpha())
    assert registry.get("Gamma") is None
    assert "Gamma" not in registry


def test_get_all_and_enabled():
    registry = ToolRegistry()
    alpha, beta = Alpha(), Beta()
    registry.register(alpha)
    registry.register(beta)
    assert set(registry.get_all()) == {alpha, beta}
    assert registry.get_enabled() == [alpha]


def test_register_overwrites_same_name():
    registry = ToolRegistry()
    registry.register(Alpha())
    replacement = AlphaReplacement()
    registry.register(replacement)
    assert len(registry) == 1
    assert registry.get("Alpha") is replacement
    # old aliases still point at the canonical name
    assert registry.get("a") is replacement