"""Lookup table of tools by name and alias."""

from __future__ import annotations

import logging
from typing import Optional

from kncode.tools.traits import Tool

logger = logging.getLogger(__name__)


class ToolRegistry:
    """Holds tools keyed by their canonical name, with alias lookup."""

    def __init__(self) -> None:
        self._tools: dict[str, Tool] = {}
        self._aliases: dict[str, str] = {}

    def register(self, tool: Tool) -> None:
        """Add a tool, replacing any tool of the same name."""
        name = tool.name
        if name in self._tools:
            logger.warning("Tool registration overwriting existing tool: %s", name)
        for alias in tool.aliases:
            self._aliases[alias] = name
        self._tools[name] = tool

    def get(self, name: str) -> Optional[Tool]:
        """Find a tool by name, falling back to its aliases."""
        tool = self._tools.get(name)
        if tool is not None:
            return tool
        canonical = self._aliases.get(name)
        return self._tools.get(canonical) if canonical is not None else None

    def get_all(self) -> list[Tool]:
        """All registered tools."""
        return list(self._tools.values())

    def get_enabled(self) -> list[Tool]:
        """Registered tools that are enabled."""
        return [tool for tool in self._tools.values() if tool.is_enabled]

    def __len__(self) -> int:
        return len(self._tools)

    def __contains__(self, name: object) -> bool:
        return isinstance(name, str) and self.get(name) is not None