from __future__ import annotations

import pytest

from toolrelay.core.matching.similarity import (
    ToolIndexEntry,
    build_tool_index,
    extract_keywords,
    find_best_match,
    keyword_similarity,
    text_similarity,
)
from toolrelay.core.registry.base import Server, ToolInfo


def _entry(server_id: str, search_text: str) -> ToolIndexEntry:
    return ToolIndexEntry(
        server_id=server_id,
        tool_id="lookup",
        description="lookup",
        keywords=extract_keywords(search_text),
        search_text=search_text,
    )


def test_extract_keywords_drops_short_words_stop_words_and_punctuation() -> None:
    keywords = extract_keywords("Find the best Jazz concerts, in NYC! Find them.")

    assert keywords == frozenset({"find", "best", "jazz", "concerts", "nyc", "them"})


def test_keyword_similarity_is_jaccard() -> None:
    keywords = frozenset({"weather", "forecast"})

    assert keyword_similarity(keywords, keywords) == 1.0
    assert keyword_similarity(frozenset({"weather"}), frozenset({"weather", "lookup"})) == 0.5
    assert keyword_similarity(keywords, frozenset()) == 0.0


def test_text_similarity_substring_scores_point_nine() -> None:
    assert text_similarity("weather", "get weather forecast") == 0.9
    assert text_similarity("Weather Forecast Tool", "forecast tool") == 0.9


def test_text_similarity_counts_query_words_found_in_catalog_words() -> None:
    # "for" is contained in "forecast", so it counts as a hit.
    assert text_similarity("forecast for tomorrow please", "weather forecast tool") == 0.5
    assert text_similarity("a b", "xyz abc") == 0.0


def test_build_tool_index_falls_back_to_tool_name_and_skips_empty_servers() -> None:
    servers = [
        Server(server_id="empty", name="Empty", tools=[]),
        Server(server_id="s1", name="Weather", tools=[ToolInfo(name="get_forecast", description="")]),
    ]

    index = build_tool_index(servers)

    assert len(index) == 1
    entry = index[0]
    assert entry.server_id == "s1"
    assert entry.tool_id == "get_forecast"
    assert entry.description == "get_forecast"
    assert entry.search_text == "get_forecast get_forecast weather "
    assert entry.keywords == frozenset({"get_forecast", "weather"})


def test_find_best_match_keeps_first_entry_on_ties() -> None:
    index = [_entry("first", "weather lookup"), _entry("second", "weather lookup")]

    best = find_best_match("weather", index, threshold=0.7)

    assert best is not None
    assert best.entry.server_id == "first"
    assert best.confidence == pytest.approx(0.74)


def test_find_best_match_respects_threshold() -> None:
    index = [_entry("only", "weather lookup")]

    assert find_best_match("weather", index, threshold=0.8) is None
    assert find_best_match("weather", [], threshold=0.0) is None
