from .matcher import Matcher
from .rules import DEFAULT_RULES, KeywordRule, RuleMatch, extract_search_params, match_keyword_rule, rules_from_settings
from .similarity import (
    STOP_WORDS,
    SimilarityMatch,
    ToolIndexEntry,
    build_tool_index,
    extract_keywords,
    find_best_match,
    keyword_similarity,
    text_similarity,
)

__all__ = [
    "DEFAULT_RULES",
    "KeywordRule",
    "Matcher",
    "RuleMatch",
    "STOP_WORDS",
    "SimilarityMatch",
    "ToolIndexEntry",
    "build_tool_index",
    "extract_keywords",
    "extract_search_params",
    "find_best_match",
    "keyword_similarity",
    "match_keyword_rule",
    "rules_from_settings",
    "text_similarity",
]
