"""
Unit tests for hybrid text matching.

Tests for:
- Regex pattern guard (invalid and nested-quantifier patterns)
- Levenshtein similarity and the default semantic matcher
- IntentMatcher ranking (exact > regex > semantic, stable on ties)
- Utterance matching used by agent and pipeline registries
"""

import pytest

from switchboard.domain.exceptions import IntentMatchError
from switchboard.domain.model import (
    ActionType,
    Intent,
    IntentAction,
    IntentCandidate,
    MatchType,
    SemanticMatchResult,
)
from switchboard.infrastructure.matching import (
    EXACT_CONFIDENCE,
    REGEX_CONFIDENCE,
    IntentMatcher,
    calculate_similarity,
    compile_pattern,
    create_semantic_matcher,
    is_safe_pattern,
    levenshtein_distance,
    match_intent,
    match_utterances,
    pattern_matches,
    rank_candidates,
)


def _intent(intent_id: str, *utterances: str) -> Intent:
    return Intent(
        id=intent_id,
        utterances=utterances,
        action=IntentAction(type=ActionType.AGENT, target=f"{intent_id}-agent"),
    )


# ============================================================================
# Patterns
# ============================================================================


@pytest.mark.unit
class TestPatterns:
    def test_pattern_is_case_insensitive(self):
        assert pattern_matches("refund", "I want a REFUND now")

    def test_invalid_pattern_never_matches(self):
        assert compile_pattern("([unclosed") is None
        assert pattern_matches("([unclosed", "([unclosed") is False

    @pytest.mark.parametrize("pattern", ["(a+)+", "(a*)*", "(x?)?", "(ab{1,3}){2}"])
    def test_nested_quantifiers_are_rejected(self, pattern):
        assert is_safe_pattern(pattern) is False
        assert pattern_matches(pattern, "aaaaaaaaaaaaaaaaaaaaaaaaaaaaaaaaaaaaaaaa!") is False

    def test_overlong_pattern_is_rejected(self):
        assert compile_pattern("a" * 1001) is None

    def test_plain_pattern_is_safe(self):
        assert is_safe_pattern(r"^order \d+$")


# ============================================================================
# Semantic matcher
# ============================================================================


@pytest.mark.unit
class TestSemanticMatcher:
    def test_levenshtein_distance(self):
        assert levenshtein_distance("kitten", "sitting") == 3
        assert levenshtein_distance("", "abc") == 3
        assert levenshtein_distance("same", "same") == 0

    def test_similarity_bounds(self):
        assert calculate_similarity("", "") == 1.0
        assert calculate_similarity("Hello", "hello") == 1.0
        assert calculate_similarity("abc", "xyz") == 0.0

    async def test_match_above_threshold(self):
        matcher = create_semantic_matcher(0.6)
        result = await matcher("reset my pasword", ["reset my password", "billing"])

        assert result.matched is True
        assert result.utterance == "reset my password"
        assert result.confidence >= 0.6

    async def test_no_match_below_threshold(self):
        matcher = create_semantic_matcher(0.9)
        result = await matcher("weather today", ["reset my password"])

        assert result.matched is False
        assert result.utterance is None

    def test_invalid_threshold(self):
        with pytest.raises(ValueError):
            create_semantic_matcher(1.5)


# ============================================================================
# Intent matching
# ============================================================================


@pytest.mark.unit
class TestIntentMatcher:
    async def test_exact_match_wins(self):
        matcher = IntentMatcher([_intent("greet", "hello"), _intent("other", "hel+o")])

        match = await matcher.match("  Hello ")

        assert match is not None
        assert match.intent.id == "greet"
        assert match.match_type == MatchType.EXACT
        assert match.confidence == EXACT_CONFIDENCE

    async def test_regex_match(self):
        matcher = IntentMatcher([_intent("order", r"order \d+")])

        match = await matcher.match("where is order 42?")

        assert match.intent.id == "order"
        assert match.match_type == MatchType.REGEX
        assert match.confidence == REGEX_CONFIDENCE
        assert match.matched_utterance == r"order \d+"

    async def test_no_match_returns_none(self):
        matcher = IntentMatcher([_intent("order", "order")])
        assert await matcher.match("weather") is None

    async def test_exact_outranks_regex_from_earlier_intent(self):
        intents = [_intent("first", "refund"), _intent("second", "refund please")]

        match = await match_intent("refund please", intents)

        assert match.intent.id == "second"
        assert match.match_type == MatchType.EXACT
        types = [candidate.match_type for candidate in match.all_candidates]
        assert types[0] == MatchType.EXACT
        assert MatchType.REGEX in types

    async def test_ties_keep_registration_order(self):
        intents = [_intent("a", "help"), _intent("b", "help"), _intent("c", "help")]

        for _ in range(5):
            match = await match_intent("please help", intents)
            assert match.intent.id == "a"
            assert [c.intent_id for c in match.all_candidates] == ["a", "b", "c"]

    async def test_semantic_stage_adds_candidates(self):
        async def semantic(message, utterances):
            return SemanticMatchResult(matched=True, confidence=0.95, utterance=utterances[0])

        match = await match_intent("anything", [_intent("fuzzy", "zzz")], semantic)

        assert match.intent.id == "fuzzy"
        assert match.match_type == MatchType.SEMANTIC
        assert match.confidence == 0.95

    async def test_regex_outranks_higher_confidence_semantic(self):
        async def semantic(message, utterances):
            return SemanticMatchResult(matched=True, confidence=0.99, utterance=utterances[0])

        intents = [_intent("semantic-only", "qqq"), _intent("regex", "billing")]
        match = await match_intent("billing issue", intents, semantic)

        assert match.intent.id == "regex"
        assert match.match_type == MatchType.REGEX

    async def test_semantic_failure_raises_intent_match_error(self):
        async def broken(message, utterances):
            raise RuntimeError("embedding service down")

        with pytest.raises(IntentMatchError) as exc_info:
            await match_intent("hi", [_intent("x", "zzz")], broken)

        assert isinstance(exc_info.value.cause, RuntimeError)

    def test_duplicate_intent_ids_rejected(self):
        with pytest.raises(ValueError):
            IntentMatcher([_intent("dup", "a"), _intent("dup", "b")])

    def test_add_and_get_intent(self):
        matcher = IntentMatcher()
        matcher.add_intent(_intent("one", "1"))

        assert matcher.get_intent("one").id == "one"
        assert matcher.get_intent("missing") is None
        with pytest.raises(ValueError):
            matcher.add_intent(_intent("one", "2"))

    def test_empty_intent_id_rejected(self):
        with pytest.raises(ValueError):
            _intent("")

    def test_rank_candidates_is_stable(self):
        candidates = [
            IntentCandidate(intent_id="s", confidence=0.9, match_type=MatchType.SEMANTIC),
            IntentCandidate(intent_id="r1", confidence=0.8, match_type=MatchType.REGEX),
            IntentCandidate(intent_id="r2", confidence=0.8, match_type=MatchType.REGEX),
            IntentCandidate(intent_id="e", confidence=1.0, match_type=MatchType.EXACT),
        ]

        ranked = rank_candidates(candidates)

        assert [c.intent_id for c in ranked] == ["e", "r1", "r2", "s"]


# ============================================================================
# Utterance matching
# ============================================================================


@pytest.mark.unit
class TestUtteranceMatching:
    async def test_targets_without_utterances_never_match(self):
        match = await match_utterances("billing", {"silent": (), "billing": ("billing",)})

        assert match.target_id == "billing"

    async def test_no_candidates(self):
        assert await match_utterances("hello", {"billing": ("invoice",)}) is None
