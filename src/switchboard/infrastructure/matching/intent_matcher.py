"""Hybrid intent matcher.

Matching runs three stages in fixed order, each adding candidates rather than
short-circuiting:

1. Exact: trimmed, case-insensitive equality with an utterance (1.0)
2. Regex: each utterance searched case-insensitively in the raw message (0.8);
   unusable patterns are skipped
3. Semantic: optional caller-supplied scorer; its failures are hard errors

Candidates are ranked by match type priority (exact > regex > semantic), then
confidence descending. The sort is stable so equal candidates keep input order.
The same ranking drives agent and pipeline utterance matching.
"""

import logging
from collections.abc import Iterable, Mapping, Sequence

from switchboard.domain.exceptions import IntentMatchError
from switchboard.domain.model import (
    Intent,
    IntentCandidate,
    IntentMatch,
    MatchType,
    SemanticMatcher,
    UtteranceMatch,
)
from switchboard.infrastructure.matching.patterns import normalize_text, pattern_matches

logger = logging.getLogger(__name__)

EXACT_CONFIDENCE = 1.0
REGEX_CONFIDENCE = 0.8


async def collect_candidates(
    message: str,
    targets: Sequence[tuple[str, Sequence[str]]],
    semantic_matcher: SemanticMatcher | None = None,
) -> list[IntentCandidate]:
    """
    Run every matching stage and return the unranked candidates.

    Args:
        message: Incoming message
        targets: ``(target_id, utterances)`` pairs in registration order
        semantic_matcher: Optional semantic scorer

    Returns:
        Candidates in production order (exact stage, regex stage, semantic stage)

    Raises:
        IntentMatchError: If the semantic matcher raises
    """
    normalized = normalize_text(message)
    candidates: list[IntentCandidate] = []

    for target_id, utterances in targets:
        for utterance in utterances:
            if normalized == normalize_text(utterance):
                candidates.append(
                    IntentCandidate(
                        intent_id=target_id,
                        confidence=EXACT_CONFIDENCE,
                        match_type=MatchType.EXACT,
                        matched_utterance=utterance,
                    )
                )

    for target_id, utterances in targets:
        for utterance in utterances:
            if pattern_matches(utterance, message):
                candidates.append(
                    IntentCandidate(
                        intent_id=target_id,
                        confidence=REGEX_CONFIDENCE,
                        match_type=MatchType.REGEX,
                        matched_utterance=utterance,
                    )
                )

    if semantic_matcher is not None:
        for target_id, utterances in targets:
            if not utterances:
                continue
            try:
                result = await semantic_matcher(message, list(utterances))
            except Exception as e:
                raise IntentMatchError(cause=e) from e
            if result.matched:
                candidates.append(
                    IntentCandidate(
                        intent_id=target_id,
                        confidence=result.confidence,
                        match_type=MatchType.SEMANTIC,
                        matched_utterance=result.utterance,
                    )
                )

    return candidates


def rank_candidates(candidates: Iterable[IntentCandidate]) -> list[IntentCandidate]:
    """Rank by match type priority, then confidence, keeping input order on ties."""
    return sorted(
        candidates,
        key=lambda candidate: (-candidate.match_type.priority, -candidate.confidence),
    )


async def match_intent(
    message: str,
    intents: Sequence[Intent],
    semantic_matcher: SemanticMatcher | None = None,
) -> IntentMatch | None:
    """
    Match a message against a fixed intent set.

    Returns:
        The winning intent with every ranked candidate, or None when nothing matched

    Raises:
        IntentMatchError: If the semantic matcher raises
    """
    by_id = {intent.id: intent for intent in intents}
    candidates = await collect_candidates(
        message,
        [(intent.id, intent.utterances) for intent in intents],
        semantic_matcher,
    )
    if not candidates:
        return None

    ranked = rank_candidates(candidates)
    best = ranked[0]
    logger.debug(
        f"[IntentMatcher] Matched intent {best.intent_id} "
        f"({best.match_type.value}, confidence={best.confidence:.3f}) "
        f"from {len(ranked)} candidates"
    )
    return IntentMatch(
        intent=by_id[best.intent_id],
        confidence=best.confidence,
        match_type=best.match_type,
        matched_utterance=best.matched_utterance,
        all_candidates=tuple(ranked),
    )


async def match_utterances(
    message: str,
    targets: Mapping[str, Sequence[str]],
    semantic_matcher: SemanticMatcher | None = None,
) -> UtteranceMatch | None:
    """
    Match a message against per-target utterance lists (agents, pipelines).

    Targets without utterances never match.
    """
    pairs = [(target_id, utterances) for target_id, utterances in targets.items() if utterances]
    candidates = await collect_candidates(message, pairs, semantic_matcher)
    if not candidates:
        return None
    best = rank_candidates(candidates)[0]
    return UtteranceMatch(
        target_id=best.intent_id,
        confidence=best.confidence,
        match_type=best.match_type,
        matched_utterance=best.matched_utterance,
    )


class IntentMatcher:
    """Holds the registered intent set and matches messages against it."""

    def __init__(self, intents: Iterable[Intent] = ()):
        self._intents: list[Intent] = []
        self.register_intents(intents)

    @property
    def intents(self) -> list[Intent]:
        return list(self._intents)

    def register_intents(self, intents: Iterable[Intent]) -> None:
        """Replace the registered intent set."""
        intents = list(intents)
        seen: set[str] = set()
        for intent in intents:
            if intent.id in seen:
                raise ValueError(f"Duplicate intent id: {intent.id}")
            seen.add(intent.id)
        self._intents = intents

    def add_intent(self, intent: Intent) -> None:
        if any(existing.id == intent.id for existing in self._intents):
            raise ValueError(f"Duplicate intent id: {intent.id}")
        self._intents.append(intent)

    def get_intent(self, intent_id: str) -> Intent | None:
        return next((intent for intent in self._intents if intent.id == intent_id), None)

    async def match(
        self, message: str, semantic_matcher: SemanticMatcher | None = None
    ) -> IntentMatch | None:
        return await match_intent(message, self._intents, semantic_matcher)
