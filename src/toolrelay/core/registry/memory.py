from __future__ import annotations

from pathlib import Path

import yaml

from .base import Server


class InMemoryRegistry:
    def __init__(self, servers: list[Server] | None = None) -> None:
        self._servers: dict[str, Server] = {}
        for server in servers or []:
            self.upsert(server)

    @classmethod
    def from_yaml(cls, path: str | Path) -> "InMemoryRegistry":
        """Load servers from a YAML document with a top-level `servers` list."""
        with Path(path).expanduser().open("r", encoding="utf-8") as handle:
            data = yaml.safe_load(handle) or {}
        raw_servers = data.get("servers", []) if isinstance(data, dict) else data
        return cls([Server.model_validate(item) for item in raw_servers or []])

    def upsert(self, server: Server) -> None:
        self._servers[server.server_id] = server

    def remove(self, server_id: str) -> None:
        self._servers.pop(server_id, None)

    async def list_servers(self) -> list[Server]:
        return list(self._servers.values())

    async def get_server(self, server_id: str) -> Server | None:
        return self._servers.get(server_id)
