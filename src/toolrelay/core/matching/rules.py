from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Any

from toolrelay.core.config import RuleSettings

EXA_SERVER_ID = "io.github.exa-labs/exa-mcp-server"
PLAYWRIGHT_SERVER_ID = "com.microsoft.playwright/mcp"

_SEARCH_QUERY_RE = re.compile(r"(?:when|where|find|search|look for)\s+(.+?)(?:\s+in|\s+at|$)", re.IGNORECASE)
_LOCATION_RE = re.compile(r"\b(?i:in|at|near)\s+([A-Z][a-z]+(?:\s+[A-Z][a-z]+)*)\b")


@dataclass(frozen=True, slots=True)
class KeywordRule:
    pattern: re.Pattern[str]
    tool_id: str
    server_id: str
    confidence: float


@dataclass(slots=True)
class RuleMatch:
    tool_id: str
    server_id: str
    confidence: float
    params: dict[str, Any] = field(default_factory=dict)


def _rule(pattern: str, tool_id: str, server_id: str, confidence: float) -> KeywordRule:
    return KeywordRule(re.compile(pattern, re.IGNORECASE), tool_id, server_id, confidence)


DEFAULT_RULES: tuple[KeywordRule, ...] = (
    _rule(
        r"\b(when|where|find|search|look for).*?(concert|playing|show|ticket|event|tour)\b",
        "web_search_exa",
        EXA_SERVER_ID,
        0.9,
    ),
    _rule(r"\b(concert|playing|show|ticket).*?(in|at|near|for)\b", "web_search_exa", EXA_SERVER_ID, 0.85),
    _rule(r"\b(check|visit|go to|navigate).*?\.(com|org|net|io)\b", "browser_navigate", PLAYWRIGHT_SERVER_ID, 0.8),
)


def rules_from_settings(settings: list[RuleSettings] | None) -> tuple[KeywordRule, ...]:
    """Compile configured rules in order; `None` keeps the built-in table."""
    if settings is None:
        return DEFAULT_RULES
    return tuple(_rule(item.pattern, item.tool_id, item.server_id, item.confidence) for item in settings)


def extract_search_params(query: str) -> dict[str, Any]:
    params: dict[str, Any] = {}

    search = _SEARCH_QUERY_RE.search(query)
    params["query"] = search.group(1).strip() if search else query

    location = _LOCATION_RE.search(query)
    if location:
        params["location"] = location.group(1).strip()
    return params


def match_keyword_rule(query: str, rules: tuple[KeywordRule, ...] = DEFAULT_RULES) -> RuleMatch | None:
    """Return the first rule matching `query`; later rules are never consulted."""
    for rule in rules:
        if rule.pattern.search(query):
            return RuleMatch(
                tool_id=rule.tool_id,
                server_id=rule.server_id,
                confidence=rule.confidence,
                params=extract_search_params(query),
            )
    return None
