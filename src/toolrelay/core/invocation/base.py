from __future__ import annotations

from typing import Any, Protocol

from toolrelay.core.errors import InvocationError


class ToolInvoker(Protocol):
    async def invoke(self, server_id: str, tool_id: str, arguments: dict[str, Any]) -> Any: ...


class UnconfiguredInvoker:
    async def invoke(self, server_id: str, tool_id: str, arguments: dict[str, Any]) -> Any:
        raise InvocationError("tool invocation is not configured", server_id=server_id, tool_id=tool_id)
