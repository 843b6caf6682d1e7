"""Tool definition primitives shared by every tool module."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Awaitable, Callable

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from ...ghl.client import GHLClient


class ToolInput(BaseModel):
    """Base for tool arguments: snake_case in Python, camelCase on the wire."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="forbid")

    def payload(self, *exclude: str) -> dict[str, Any]:
        """Non-empty fields as a GHL request body, minus ``exclude``."""
        return self.model_dump(by_alias=True, exclude_none=True, exclude=set(exclude))


Handler = Callable[[GHLClient, Any], Awaitable[Any]]


@dataclass(frozen=True)
class Tool:
    name: str
    description: str
    input_model: type[ToolInput]
    handler: Handler

    def input_schema(self) -> dict[str, Any]:
        return self.input_model.model_json_schema(by_alias=True)

    def definition(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "description": self.description,
            "inputSchema": self.input_schema(),
        }

    def parse(self, arguments: dict[str, Any] | None) -> ToolInput:
        return self.input_model.model_validate(arguments or {})

    async def run(self, ghl: GHLClient, args: ToolInput) -> Any:
        return await self.handler(ghl, args)


def tool(name: str, description: str, input_model: type[ToolInput]) -> Callable[[Handler], Tool]:
    """Decorator turning an async handler into a :class:`Tool`."""

    def decorator(handler: Handler) -> Tool:
        return Tool(name=name, description=description, input_model=input_model, handler=handler)

    return decorator
