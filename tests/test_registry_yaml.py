from __future__ import annotations

import asyncio

from toolrelay.core.config import Settings
from toolrelay.core.registry.base import UnconfiguredRegistry
from toolrelay.core.registry.memory import InMemoryRegistry
from toolrelay.core.runtime import build_registry

def test_registry_loads_servers_from_yaml(tmp_path) -> None:
    path = tmp_path / "servers.yaml"
    path.write_text(
        "servers:\n"
        "  - serverId: io.github.exa-labs/exa-mcp-server\n"
        "    name: Exa Search\n"
        "    tools:\n"
        "      - name: web_search_exa\n"
        "        description: Search the web with Exa\n"
        "  - serverId: empty/server\n"
        "    name: Empty\n",
        encoding="utf-8",
    )

    registry = InMemoryRegistry.from_yaml(path)
    servers = asyncio.run(registry.list_servers())
    exa = asyncio.run(registry.get_server("io.github.exa-labs/exa-mcp-server"))

    assert [server.server_id for server in servers] == ["io.github.exa-labs/exa-mcp-server", "empty/server"]
    assert exa is not None and exa.has_tool("web_search_exa")
    assert servers[1].tools == []


def test_build_registry_picks_source_from_settings(tmp_path) -> None:
    path = tmp_path / "servers.yaml"
    path.write_text("servers: []\n", encoding="utf-8")

    assert isinstance(build_registry(Settings()), UnconfiguredRegistry)
    assert isinstance(build_registry(Settings(registry={"path": str(path)})), InMemoryRegistry)
    assert asyncio.run(UnconfiguredRegistry().list_servers()) == []
    assert not hasattr(UnconfiguredRegistry(), "configured")
    assert not hasattr(InMemoryRegistry(), "configured")
