"""Tool catalogue exposed over ``tools/list`` and ``tools/call``.

Usage:
    registry = default_registry()
    tool = registry.get("ghl_get_contact")
    result = await tool.run(ghl, tool.parse({"contactId": "abc123"}))
"""

from __future__ import annotations

from typing import Iterable, Iterator

from .base import Tool, ToolInput, tool


class ToolRegistry:
    def __init__(self, tools: Iterable[Tool] = ()):
        self._tools: dict[str, Tool] = {}
        for t in tools:
            self.register(t)

    def register(self, t: Tool) -> None:
        if t.name in self._tools:
            raise ValueError(f"Duplicate tool name: {t.name}")
        self._tools[t.name] = t

    def get(self, name: str) -> Tool | None:
        return self._tools.get(name)

    def definitions(self) -> list[dict]:
        return [t.definition() for t in self._tools.values()]

    def __contains__(self, name: object) -> bool:
        return name in self._tools

    def __iter__(self) -> Iterator[Tool]:
        return iter(self._tools.values())

    def __len__(self) -> int:
        return len(self._tools)


def default_registry() -> ToolRegistry:
    from . import (
        calendars,
        contacts,
        conversations,
        custom_objects,
        forms,
        locations,
        media,
        opportunities,
        tags,
        users,
        workflows,
    )

    registry = ToolRegistry()
    modules = (
        contacts,
        tags,
        opportunities,
        conversations,
        calendars,
        locations,
        workflows,
        forms,
        users,
        custom_objects,
        media,
    )
    for module in modules:
        for t in module.TOOLS:
            registry.register(t)
    return registry


__all__ = ["Tool", "ToolInput", "ToolRegistry", "default_registry", "tool"]
