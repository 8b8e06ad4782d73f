from __future__ import annotations

import logging
from urllib.parse import quote

import httpx

from toolrelay.core.config import HttpSettings
from toolrelay.core.http.client import RetryPolicy, create_http_client, request_with_retry

from .base import Server

logger = logging.getLogger("toolrelay.registry")


class HttpRegistry:
    """Registry lookup against the registry service's `/servers` endpoints."""

    def __init__(
        self,
        base_url: str,
        client: httpx.AsyncClient | None = None,
        *,
        http: HttpSettings | None = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.http_settings = http or HttpSettings()
        self.policy = RetryPolicy.from_settings(self.http_settings)
        self._client = client
        self._owns_client = client is None

    async def list_servers(self) -> list[Server]:
        response = await request_with_retry(self._http(), "GET", f"{self.base_url}/servers", policy=self.policy)
        payload = response.json()
        if isinstance(payload, dict):
            payload = payload.get("servers", [])
        return [Server.model_validate(item) for item in payload or []]

    async def get_server(self, server_id: str) -> Server | None:
        response = await request_with_retry(
            self._http(),
            "GET",
            f"{self.base_url}/servers/{quote(server_id, safe='')}",
            policy=self.policy,
            allowed_statuses={404},
        )
        if response.status_code == 404:
            logger.debug("registry_server_missing", extra={"extra_fields": {"server_id": server_id}})
            return None
        return Server.model_validate(response.json())

    async def aclose(self) -> None:
        if self._client is not None and self._owns_client:
            await self._client.aclose()
            self._client = None

    def _http(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = create_http_client(self.http_settings)
        return self._client
