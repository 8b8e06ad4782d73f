from __future__ import annotations

import logging
from typing import Any

import httpx

from toolrelay.core.config import HttpSettings
from toolrelay.core.errors import HttpError, HttpStatusError, InvocationError
from toolrelay.core.http.client import RetryPolicy, create_http_client, request_with_retry

logger = logging.getLogger("toolrelay.invocation")


class HttpToolInvoker:
    """Invokes tools through the invoke service's `POST /invoke` endpoint.

    The service answers `{success, result, error}`. Anything other than a 2xx
    with `success: true` becomes an `InvocationError` carrying the remote
    message when there is one. Invocations are not idempotent, so retries
    stay off unless configured.
    """

    def __init__(
        self,
        base_url: str,
        client: httpx.AsyncClient | None = None,
        *,
        http: HttpSettings | None = None,
        timeout_s: float | None = None,
        retries: int = 0,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.http_settings = http or HttpSettings()
        self.timeout_s = timeout_s
        self.policy = RetryPolicy.from_settings(self.http_settings, retries=retries)
        self._client = client
        self._owns_client = client is None

    async def invoke(self, server_id: str, tool_id: str, arguments: dict[str, Any]) -> Any:
        try:
            response = await request_with_retry(
                self._http(),
                "POST",
                f"{self.base_url}/invoke",
                json={"serverId": server_id, "tool": tool_id, "arguments": arguments or {}},
                policy=self.policy,
            )
        except HttpStatusError as exc:
            raise InvocationError(_remote_error(exc.body) or str(exc), server_id=server_id, tool_id=tool_id) from exc
        except HttpError as exc:
            raise InvocationError(str(exc), server_id=server_id, tool_id=tool_id) from exc

        try:
            payload = response.json()
        except ValueError as exc:
            raise InvocationError("invoke service returned a non-JSON response", server_id=server_id, tool_id=tool_id) from exc

        if not isinstance(payload, dict) or not payload.get("success"):
            message = _remote_error(payload) or f"Tool {tool_id} invocation failed"
            raise InvocationError(message, server_id=server_id, tool_id=tool_id)

        logger.info("tool_invoked", extra={"extra_fields": {"tool_path": f"{server_id}/{tool_id}"}})
        return payload.get("result")

    async def aclose(self) -> None:
        if self._client is not None and self._owns_client:
            await self._client.aclose()
            self._client = None

    def _http(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = create_http_client(self.http_settings, timeout_s=self.timeout_s)
        return self._client


def _remote_error(body: object) -> str | None:
    if isinstance(body, dict):
        error = body.get("error")
        if isinstance(error, dict):
            error = error.get("message")
        if error:
            return str(error)
    return None
