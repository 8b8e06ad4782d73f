"""httpx plumbing shared by the registry and invoke service clients."""

from __future__ import annotations

import asyncio
import logging
import random
from dataclasses import dataclass

import httpx

from toolrelay.core.config import HttpSettings
from toolrelay.core.errors import HttpNetworkError, HttpStatusError

logger = logging.getLogger("toolrelay.http")

RETRYABLE_STATUS_CODES = frozenset({429, 500, 502, 503, 504})
_RETRYABLE_EXCEPTIONS = (httpx.ConnectError, httpx.ReadTimeout, httpx.RemoteProtocolError)


@dataclass(frozen=True)
class RetryPolicy:
    retries: int = 2
    backoff_base_s: float = 0.25
    backoff_max_s: float = 2.0

    @classmethod
    def from_settings(cls, settings: HttpSettings, retries: int | None = None) -> "RetryPolicy":
        return cls(
            retries=settings.retries if retries is None else max(0, retries),
            backoff_base_s=settings.backoff_base_s,
            backoff_max_s=settings.backoff_max_s,
        )

    def delay_s(self, attempt: int) -> float:
        """Exponential backoff for the given zero-based attempt, with jitter."""
        return min(self.backoff_max_s, self.backoff_base_s * (2**attempt)) * (0.5 + random.random())


def create_http_client(settings: HttpSettings | None = None, *, timeout_s: float | None = None) -> httpx.AsyncClient:
    settings = settings or HttpSettings()
    total_s = timeout_s if timeout_s is not None else settings.timeout_s
    timeout = httpx.Timeout(total_s, connect=min(settings.connect_timeout_s, total_s))
    return httpx.AsyncClient(timeout=timeout, headers={"User-Agent": settings.user_agent})


async def request_with_retry(
    client: httpx.AsyncClient,
    method: str,
    url: str,
    *,
    json: object | None = None,
    policy: RetryPolicy | None = None,
    allowed_statuses: set[int] | None = None,
) -> httpx.Response:
    """Send a request, retrying transport failures and retryable statuses.

    2xx responses and any status in `allowed_statuses` are returned. Other
    statuses raise `HttpStatusError` carrying the decoded body; transport
    failures raise `HttpNetworkError` once the policy is exhausted.
    """
    policy = policy or RetryPolicy()
    attempt = 0
    while True:
        try:
            response = await client.request(method, url, json=json)
        except _RETRYABLE_EXCEPTIONS as exc:
            if attempt >= policy.retries:
                raise HttpNetworkError(f"{method} {url} failed after {attempt + 1} attempts: {exc.__class__.__name__}") from exc
            logger.debug("http_retry", extra={"extra_fields": {"url": url, "attempt": attempt, "reason": exc.__class__.__name__}})
        except httpx.HTTPError as exc:
            raise HttpNetworkError(f"{method} {url} failed: {exc.__class__.__name__}") from exc
        else:
            status = response.status_code
            if 200 <= status < 300 or (allowed_statuses is not None and status in allowed_statuses):
                return response
            if status not in RETRYABLE_STATUS_CODES or attempt >= policy.retries:
                raise HttpStatusError(f"HTTP {status} from {method} {url}", status_code=status, body=_decoded_body(response))
            logger.debug("http_retry", extra={"extra_fields": {"url": url, "attempt": attempt, "status": status}})

        await asyncio.sleep(policy.delay_s(attempt))
        attempt += 1


def _decoded_body(response: httpx.Response) -> object | None:
    try:
        return response.json()
    except ValueError:
        return response.text or None
