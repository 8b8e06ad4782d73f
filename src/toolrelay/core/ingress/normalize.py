from __future__ import annotations

import re

_GREETING_RE = re.compile(r"^(hey|hi|hello)\s+(gemini|assistant|ai|bot)\b[,:\s]*", re.IGNORECASE)
_CONTRACTIONS: tuple[tuple[re.Pattern[str], str], ...] = (
    (re.compile(r"\bwhen's\b", re.IGNORECASE), "when is"),
    (re.compile(r"\bwhere's\b", re.IGNORECASE), "where is"),
    (re.compile(r"\bwhat's\b", re.IGNORECASE), "what is"),
    (re.compile(r"\bwho's\b", re.IGNORECASE), "who is"),
    (re.compile(r"\bhow's\b", re.IGNORECASE), "how is"),
)
_DESIGN_MARKER_RES = (
    re.compile(r"\[design[^\]]*\]", re.IGNORECASE),
    re.compile(r"\(design[^)]*\)", re.IGNORECASE),
)


def normalize_query(query: str) -> str:
    """Strip the assistant greeting, expand contractions and drop design markers.

    Casing of the remaining text is preserved; applying the function twice
    gives the same result as applying it once.
    """
    previous = query
    normalized = _normalize_once(query)
    # Dropping a marker can expose a greeting, so run to a fixed point.
    while normalized != previous:
        previous = normalized
        normalized = _normalize_once(normalized)
    return normalized


def _normalize_once(query: str) -> str:
    normalized = query.strip()
    normalized = _GREETING_RE.sub("", normalized, count=1)
    for pattern, replacement in _CONTRACTIONS:
        normalized = pattern.sub(replacement, normalized)
    for pattern in _DESIGN_MARKER_RES:
        normalized = pattern.sub("", normalized)
    return normalized.strip()
