"""Per-task logging context carried through contextvars.

Each consumer loop and API request binds the identifiers it knows about;
`JSONFormatter` merges whatever is bound into every record.
"""

from __future__ import annotations

from collections.abc import Iterator, Mapping
from contextlib import contextmanager
from contextvars import ContextVar
from types import MappingProxyType

CONTEXT_FIELDS = ("correlation_id", "request_id", "session_id", "component", "topic")

_EMPTY: Mapping[str, str] = MappingProxyType({})
_bound: ContextVar[Mapping[str, str]] = ContextVar("toolrelay_log_context", default=_EMPTY)


@contextmanager
def log_context(**fields: str | None) -> Iterator[None]:
    """Bind context fields for the duration of the block.

    `None` values leave an outer binding in place, so nested blocks only
    override what they actually know.
    """
    unknown = set(fields) - set(CONTEXT_FIELDS)
    if unknown:
        raise TypeError(f"unknown log context fields: {sorted(unknown)}")
    merged = dict(_bound.get())
    merged.update({key: value for key, value in fields.items() if value is not None})
    token = _bound.set(MappingProxyType(merged))
    try:
        yield
    finally:
        _bound.reset(token)


def get_log_context() -> dict[str, str]:
    return dict(_bound.get())
