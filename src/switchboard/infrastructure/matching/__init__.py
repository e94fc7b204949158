"""Hybrid text matching: exact, regex and semantic."""

from switchboard.infrastructure.matching.intent_matcher import (
    EXACT_CONFIDENCE,
    REGEX_CONFIDENCE,
    IntentMatcher,
    collect_candidates,
    match_intent,
    match_utterances,
    rank_candidates,
)
from switchboard.infrastructure.matching.patterns import (
    compile_pattern,
    is_safe_pattern,
    pattern_matches,
)
from switchboard.infrastructure.matching.semantic import (
    DEFAULT_SEMANTIC_THRESHOLD,
    calculate_similarity,
    create_semantic_matcher,
    levenshtein_distance,
)

__all__ = [
    "DEFAULT_SEMANTIC_THRESHOLD",
    "EXACT_CONFIDENCE",
    "REGEX_CONFIDENCE",
    "IntentMatcher",
    "calculate_similarity",
    "collect_candidates",
    "compile_pattern",
    "create_semantic_matcher",
    "is_safe_pattern",
    "levenshtein_distance",
    "match_intent",
    "match_utterances",
    "pattern_matches",
    "rank_candidates",
]
