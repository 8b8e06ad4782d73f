from __future__ import annotations

import logging
import re
from dataclasses import dataclass

from toolrelay.core.registry.base import Server

logger = logging.getLogger("toolrelay.matching.similarity")

STOP_WORDS = frozenset(
    {
        "the", "and", "for", "are", "but", "not", "you", "all", "can", "her",
        "was", "one", "our", "out", "day", "get", "has", "him", "his", "how",
        "its", "may", "new", "now", "old", "see", "two", "way", "who", "use",
        "she", "many", "some", "time", "very", "what", "when", "where", "which",
        "will", "with", "have", "this", "that", "from", "they", "know", "want",
        "been", "good", "much",
    }
)

TEXT_WEIGHT = 0.6
KEYWORD_WEIGHT = 0.4
SUBSTRING_SCORE = 0.9

_PUNCTUATION_RE = re.compile(r"[^\w\s]")


@dataclass(frozen=True, slots=True)
class ToolIndexEntry:
    server_id: str
    tool_id: str
    description: str
    keywords: frozenset[str]
    search_text: str


@dataclass(frozen=True, slots=True)
class SimilarityMatch:
    entry: ToolIndexEntry
    confidence: float


def extract_keywords(text: str) -> frozenset[str]:
    words = _PUNCTUATION_RE.sub(" ", text.lower()).split()
    return frozenset(word for word in words if len(word) > 2 and word not in STOP_WORDS)


def keyword_similarity(query_keywords: frozenset[str], tool_keywords: frozenset[str]) -> float:
    """Jaccard overlap of the two keyword sets, 0 for a tool without keywords."""
    if not tool_keywords:
        return 0.0
    union = query_keywords | tool_keywords
    return len(query_keywords & tool_keywords) / len(union)


def text_similarity(query: str, tool_text: str) -> float:
    lower_query = query.lower()
    lower_tool = tool_text.lower()
    if lower_query in lower_tool or lower_tool in lower_query:
        return SUBSTRING_SCORE

    query_words = [word for word in lower_query.split() if len(word) > 2]
    if not query_words:
        return 0.0
    tool_words = [word for word in lower_tool.split() if len(word) > 2]
    matches = sum(1 for word in query_words if any(word in tool_word or tool_word in word for tool_word in tool_words))
    return matches / len(query_words)


def build_tool_index(servers: list[Server]) -> list[ToolIndexEntry]:
    index: list[ToolIndexEntry] = []
    for server in servers:
        for tool in server.tools:
            description = tool.description or tool.name
            search_text = f"{tool.name} {description} {server.name} {server.description or ''}".lower()
            index.append(
                ToolIndexEntry(
                    server_id=server.server_id,
                    tool_id=tool.name,
                    description=description,
                    keywords=extract_keywords(search_text),
                    search_text=search_text,
                )
            )
    logger.info(
        "tool_index_built",
        extra={"extra_fields": {"tool_count": len(index), "server_count": len(servers)}},
    )
    return index


def find_best_match(query: str, index: list[ToolIndexEntry], threshold: float) -> SimilarityMatch | None:
    """Score every entry and keep the strictly best one at or above `threshold`.

    The first entry wins on ties, so catalog order decides between equally
    scored tools.
    """
    if not index:
        return None

    query_keywords = extract_keywords(query)
    best: SimilarityMatch | None = None
    for entry in index:
        confidence = TEXT_WEIGHT * text_similarity(query, entry.search_text) + KEYWORD_WEIGHT * keyword_similarity(
            query_keywords, entry.keywords
        )
        if confidence >= threshold and (best is None or confidence > best.confidence):
            best = SimilarityMatch(entry=entry, confidence=confidence)
    return best
