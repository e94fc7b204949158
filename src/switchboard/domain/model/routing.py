"""Routing domain models.

Defines the tagged routing outcome produced per message, the candidates
produced by hybrid text matching, and the rule-based routing types.
"""

from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Any, Union

from switchboard.domain.model.intent import Intent
from switchboard.domain.model.response import AgentResponse

if TYPE_CHECKING:
    from switchboard.domain.ports.agent_port import AgentProtocol


class MatchType(str, Enum):
    """How an utterance matched a message."""

    EXACT = "exact"
    REGEX = "regex"
    SEMANTIC = "semantic"

    @property
    def priority(self) -> int:
        return _MATCH_PRIORITY[self]


_MATCH_PRIORITY = {MatchType.EXACT: 3, MatchType.REGEX: 2, MatchType.SEMANTIC: 1}


class RouteType(str, Enum):
    """Variant tag of a routing outcome."""

    AGENT = "agent"
    PIPELINE = "pipeline"
    INTENT = "intent"
    DEFAULT = "default"
    NONE = "none"


@dataclass(frozen=True, kw_only=True)
class IntentCandidate:
    """One candidate produced by hybrid matching."""

    intent_id: str
    confidence: float
    match_type: MatchType
    matched_utterance: str | None = None


@dataclass(frozen=True, kw_only=True)
class IntentMatch:
    """Winning intent plus every candidate, ranked."""

    intent: Intent
    confidence: float
    match_type: MatchType
    matched_utterance: str | None = None
    all_candidates: tuple[IntentCandidate, ...] = ()


@dataclass(frozen=True, kw_only=True)
class UtteranceMatch:
    """Winning agent or pipeline from utterance matching."""

    target_id: str
    confidence: float
    match_type: MatchType
    matched_utterance: str | None = None


@dataclass(frozen=True, kw_only=True)
class SemanticMatchResult:
    """Result returned by a semantic matcher."""

    matched: bool
    confidence: float = 0.0
    utterance: str | None = None


SemanticMatcher = Callable[[str, list[str]], Awaitable[SemanticMatchResult]]


@dataclass(kw_only=True)
class RouteResult:
    """
    Outcome of routing one message.

    Pipeline and intent routes execute inline, so they carry ``response``.
    Agent and default routes carry ``agent`` for the executor to invoke.
    """

    type: RouteType
    agent_id: str | None = None
    pipeline_id: str | None = None
    intent_id: str | None = None
    agent: "AgentProtocol | None" = None
    response: AgentResponse | None = None
    confidence: float | None = None
    match_type: str | None = None
    fallback: bool = False
    rule_id: str | None = None

    @property
    def is_none(self) -> bool:
        return self.type == RouteType.NONE

    @property
    def needs_execution(self) -> bool:
        """Agent/default routes still have to be executed."""
        return self.type in (RouteType.AGENT, RouteType.DEFAULT)

    @classmethod
    def none(cls) -> "RouteResult":
        return cls(type=RouteType.NONE)

    @classmethod
    def for_agent(
        cls,
        agent: "AgentProtocol",
        *,
        confidence: float | None = None,
        match_type: str | None = None,
        rule_id: str | None = None,
    ) -> "RouteResult":
        return cls(
            type=RouteType.AGENT,
            agent_id=agent.id,
            agent=agent,
            confidence=confidence,
            match_type=match_type,
            rule_id=rule_id,
        )

    @classmethod
    def for_default(
        cls, agent: "AgentProtocol", *, fallback: bool = True, rule_id: str | None = None
    ) -> "RouteResult":
        return cls(
            type=RouteType.DEFAULT,
            agent_id=agent.id,
            agent=agent,
            fallback=fallback,
            rule_id=rule_id,
        )

    @classmethod
    def for_pipeline(
        cls,
        pipeline_id: str,
        response: AgentResponse,
        *,
        confidence: float | None = None,
        match_type: str | None = None,
    ) -> "RouteResult":
        return cls(
            type=RouteType.PIPELINE,
            pipeline_id=pipeline_id,
            response=response,
            confidence=confidence,
            match_type=match_type,
        )

    @classmethod
    def for_intent(
        cls,
        intent_id: str,
        response: AgentResponse,
        *,
        confidence: float | None = None,
        match_type: str | None = None,
    ) -> "RouteResult":
        return cls(
            type=RouteType.INTENT,
            intent_id=intent_id,
            response=response,
            confidence=confidence,
            match_type=match_type,
        )

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"type": self.type.value, "fallback": self.fallback}
        for key, value in (
            ("agentId", self.agent_id),
            ("pipelineId", self.pipeline_id),
            ("intentId", self.intent_id),
            ("confidence", self.confidence),
            ("matchType", self.match_type),
            ("ruleId", self.rule_id),
        ):
            if value is not None:
                data[key] = value
        return data


# ============================================================================
# Rule-based routing
# ============================================================================


class RuleMatchType(str, Enum):
    """How a routing rule matched."""

    EXACT = "exact"
    REGEX = "regex"
    KEYWORD = "keyword"
    FUNCTION = "function"
    METADATA_ONLY = "metadata-only"


RuleMatcher = Callable[[str, dict[str, Any]], Union[bool, Awaitable[bool]]]


@dataclass(frozen=True, kw_only=True)
class RoutingRule:
    """
    A rule for the rule-based message router.

    Attributes:
        id: Unique rule identifier
        agent: Agent id the rule routes to
        patterns: Regex patterns tested case-insensitively against the message
        keywords: Whole words searched case-insensitively in the message
        metadata: Required exact-match metadata values
        matcher: Custom predicate ``(message, metadata) -> bool`` (sync or async)
        priority: Higher priority rules are evaluated first
    """

    id: str
    agent: str
    patterns: tuple[str, ...] = ()
    keywords: tuple[str, ...] = ()
    metadata: dict[str, Any] = field(default_factory=dict)
    matcher: RuleMatcher | None = None
    priority: int = 0

    def __post_init__(self) -> None:
        object.__setattr__(self, "patterns", tuple(self.patterns))
        object.__setattr__(self, "keywords", tuple(self.keywords))


@dataclass(frozen=True, kw_only=True)
class RoutingDecision:
    """Decision returned by the rule-based router."""

    agent: str
    rule: RoutingRule | None = None
    match_type: RuleMatchType | None = None
    fallback: bool = False
    specificity: int | None = None
