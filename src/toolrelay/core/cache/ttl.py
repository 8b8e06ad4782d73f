from __future__ import annotations

import threading
import time
from collections.abc import Callable


class TTLCache:
    """Thread-safe expiring map.

    Entries expire lazily on access and eagerly through `purge_expired`, which
    the maintenance sweep runs on an interval. Nothing holds a timer per
    entry, so an early `pop` leaves no callback behind.
    """

    def __init__(self, default_ttl_s: float, clock: Callable[[], float] = time.monotonic) -> None:
        self.default_ttl_s = max(0.001, float(default_ttl_s))
        self._clock = clock
        self._data: dict[str, tuple[float, object]] = {}
        self._lock = threading.Lock()

    def get(self, key: str) -> object | None:
        now = self._clock()
        with self._lock:
            entry = self._data.get(key)
            if entry is None:
                return None
            expires_at, value = entry
            if expires_at <= now:
                self._data.pop(key, None)
                return None
            return value

    def set_if_absent(self, key: str, value: object, ttl_s: float | None = None) -> bool:
        with self._lock:
            now = self._clock()
            entry = self._data.get(key)
            if entry is not None and entry[0] > now:
                return False
            self._data[key] = (now + self._ttl(ttl_s), value)
            return True

    def pop(self, key: str) -> object | None:
        now = self._clock()
        with self._lock:
            entry = self._data.pop(key, None)
        if entry is None or entry[0] <= now:
            return None
        return entry[1]

    def purge_expired(self) -> int:
        now = self._clock()
        with self._lock:
            expired = [key for key, (expires_at, _) in self._data.items() if expires_at <= now]
            for key in expired:
                del self._data[key]
        return len(expired)

    def clear(self) -> None:
        with self._lock:
            self._data.clear()

    def __contains__(self, key: object) -> bool:
        return isinstance(key, str) and self.get(key) is not None

    def __len__(self) -> int:
        now = self._clock()
        with self._lock:
            return sum(1 for expires_at, _ in self._data.values() if expires_at > now)

    def _ttl(self, ttl_s: float | None) -> float:
        return self.default_ttl_s if ttl_s is None else max(0.001, float(ttl_s))
