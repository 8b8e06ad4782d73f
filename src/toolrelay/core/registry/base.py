from __future__ import annotations

from typing import Protocol

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class ToolInfo(BaseModel):
    model_config = ConfigDict(extra="ignore")

    name: str
    description: str = ""


class Server(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")

    server_id: str
    name: str
    description: str | None = None
    tools: list[ToolInfo] = Field(default_factory=list)

    def has_tool(self, tool_id: str) -> bool:
        return any(tool.name == tool_id for tool in self.tools)


class RegistryLookup(Protocol):
    async def list_servers(self) -> list[Server]: ...

    async def get_server(self, server_id: str) -> Server | None: ...


class UnconfiguredRegistry:
    """Registry used when no registry source is configured: knows no servers."""

    async def list_servers(self) -> list[Server]:
        return []

    async def get_server(self, server_id: str) -> Server | None:
        return None
