from __future__ import annotations

import time
from collections.abc import Callable
from typing import Literal

from toolrelay.core.cache.ttl import TTLCache

ClaimReason = Literal["tool", "plan"]

DEFAULT_CLAIM_TTL_S = 5 * 60


class ClaimTable:
    """First-writer-wins record of which path resolved a request.

    A claim lives for `ttl_s`; once it expires a late event for the same
    request could claim again, but results already published stand.
    """

    def __init__(self, ttl_s: float = DEFAULT_CLAIM_TTL_S, clock: Callable[[], float] = time.monotonic) -> None:
        self._cache = TTLCache(ttl_s, clock=clock)

    def claim(self, request_id: str, reason: ClaimReason) -> bool:
        return self._cache.set_if_absent(request_id, reason)

    def reason_for(self, request_id: str) -> ClaimReason | None:
        value = self._cache.get(request_id)
        return value if value in ("tool", "plan") else None  # type: ignore[return-value]

    def sweep(self) -> int:
        return self._cache.purge_expired()

    def clear(self) -> None:
        self._cache.clear()

    def __len__(self) -> int:
        return len(self._cache)
