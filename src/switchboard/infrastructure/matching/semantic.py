"""Default semantic matcher based on normalized Levenshtein similarity."""

import logging

from switchboard.domain.model import SemanticMatcher, SemanticMatchResult

logger = logging.getLogger(__name__)

DEFAULT_SEMANTIC_THRESHOLD = 0.6


def levenshtein_distance(s1: str, s2: str) -> int:
    """Edit distance between two strings."""
    if len(s1) < len(s2):
        s1, s2 = s2, s1
    if not s2:
        return len(s1)

    previous = list(range(len(s2) + 1))
    for i, c1 in enumerate(s1, start=1):
        current = [i]
        for j, c2 in enumerate(s2, start=1):
            insertions = previous[j] + 1
            deletions = current[j - 1] + 1
            substitutions = previous[j - 1] + (c1 != c2)
            current.append(min(insertions, deletions, substitutions))
        previous = current
    return previous[-1]


def calculate_similarity(s1: str, s2: str) -> float:
    """Similarity in [0, 1] of two strings, case-insensitive."""
    a = s1.lower()
    b = s2.lower()
    longer, shorter = (a, b) if len(a) >= len(b) else (b, a)
    if not longer:
        return 1.0
    return (len(longer) - levenshtein_distance(longer, shorter)) / len(longer)


def create_semantic_matcher(threshold: float = DEFAULT_SEMANTIC_THRESHOLD) -> SemanticMatcher:
    """
    Build a semantic matcher scoring utterances by string similarity.

    Args:
        threshold: Minimum similarity for a match

    Returns:
        Async matcher ``(message, utterances) -> SemanticMatchResult``
    """
    if not 0.0 <= threshold <= 1.0:
        raise ValueError(f"threshold must be within [0, 1], got {threshold}")

    async def semantic_match(message: str, utterances: list[str]) -> SemanticMatchResult:
        best_score = 0.0
        best_utterance: str | None = None
        for utterance in utterances:
            score = calculate_similarity(message, utterance)
            if score > best_score:
                best_score = score
                best_utterance = utterance

        if best_utterance is not None and best_score >= threshold:
            return SemanticMatchResult(
                matched=True, confidence=best_score, utterance=best_utterance
            )
        return SemanticMatchResult(matched=False, confidence=best_score)

    return semantic_match
