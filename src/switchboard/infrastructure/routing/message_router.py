"""
Rule-based message router.

Evaluates configured routing rules against a message and its metadata and
picks the most specific match. When no rule matches it falls back to the
configured default agent, then to the first registered agent.

Rule evaluation order (per rule):
1. Metadata filters: every key must equal the message metadata
2. Custom matcher: truthy -> function match, falsy -> rule does not match
3. Patterns: case-insensitive regex; ``^...$`` anchored patterns are exact
4. Keywords: whole-word, case-insensitive
5. Metadata-only rules match when their filters matched
"""

import inspect
import logging
import re
from collections.abc import Iterable
from dataclasses import dataclass, field
from typing import Any, Optional

from switchboard.domain.exceptions import NoAgentsAvailableError
from switchboard.domain.model import RoutingDecision, RoutingRule, RuleMatchType
from switchboard.domain.ports import AgentLookupPort
from switchboard.infrastructure.matching.patterns import compile_pattern

logger = logging.getLogger(__name__)

MATCH_TYPE_SCORES: dict[RuleMatchType, int] = {
    RuleMatchType.EXACT: 1000,
    RuleMatchType.REGEX: 800,
    RuleMatchType.KEYWORD: 700,
    RuleMatchType.FUNCTION: 600,
    RuleMatchType.METADATA_ONLY: 500,
}

MATCH_TYPE_CONFIDENCE: dict[RuleMatchType, float] = {
    RuleMatchType.EXACT: 1.0,
    RuleMatchType.REGEX: 0.8,
    RuleMatchType.KEYWORD: 0.7,
    RuleMatchType.FUNCTION: 0.8,
    RuleMatchType.METADATA_ONLY: 0.6,
}


@dataclass
class RuleMatch:
    """A rule that matched a message.

    Attributes:
        rule: The matching rule
        match_type: How it matched
        confidence: Confidence of the match type
        specificity: Score used to pick the winner
        matched_pattern: Pattern or keyword that matched, if any
    """

    rule: RoutingRule
    match_type: RuleMatchType
    confidence: float
    specificity: int
    matched_pattern: Optional[str] = None


@dataclass
class MessageRouterConfig:
    """Configuration for the rule-based router."""

    rules: list[RoutingRule] = field(default_factory=list)
    default_agent: Optional[str] = None


def calculate_specificity(
    rule: RoutingRule, match_type: RuleMatchType, matched_pattern: Optional[str] = None
) -> int:
    """Score a match: base by type + pattern length + 100 per metadata key + priority."""
    score = MATCH_TYPE_SCORES[match_type]
    if matched_pattern:
        score += len(matched_pattern)
    score += len(rule.metadata) * 100
    score += rule.priority
    return score


def match_keyword(message: str, keyword: str) -> bool:
    """Whole-word, case-insensitive keyword search."""
    return re.search(rf"\b{re.escape(keyword)}\b", message, re.IGNORECASE) is not None


def match_metadata(metadata: dict[str, Any], required: dict[str, Any]) -> bool:
    return all(key in metadata and metadata[key] == value for key, value in required.items())


class MessageRouter:
    """
    Routes messages to agents using configured rules.

    Example:
        router = MessageRouter(
            agent_lookup=registry,
            config=MessageRouterConfig(
                rules=[RoutingRule(id="help", agent="help-agent", patterns=["^help"])],
                default_agent="general",
            ),
        )
        decision = await router.route("help me", {})
    """

    def __init__(
        self,
        agent_lookup: AgentLookupPort,
        config: Optional[MessageRouterConfig] = None,
    ):
        """
        Initialize the rule router.

        Args:
            agent_lookup: Used to verify agents exist when falling back
            config: Rules and default agent
        """
        self._agent_lookup = agent_lookup
        self._config = config or MessageRouterConfig()
        self._rules: list[RoutingRule] = []
        for rule in self._config.rules:
            self.add_rule(rule)

    @property
    def rules(self) -> list[RoutingRule]:
        """Rules in evaluation order (priority descending, stable)."""
        return list(self._rules)

    @property
    def default_agent(self) -> Optional[str]:
        return self._config.default_agent

    def add_rule(self, rule: RoutingRule) -> None:
        if any(existing.id == rule.id for existing in self._rules):
            raise ValueError(f"Duplicate routing rule id: {rule.id}")
        self._rules.append(rule)
        self._rules.sort(key=lambda r: -r.priority)

    def remove_rule(self, rule_id: str) -> bool:
        before = len(self._rules)
        self._rules = [rule for rule in self._rules if rule.id != rule_id]
        return len(self._rules) != before

    def set_default_agent(self, agent_id: Optional[str]) -> None:
        self._config.default_agent = agent_id

    async def route(self, message: str, metadata: Optional[dict[str, Any]] = None) -> RoutingDecision:
        """
        Choose an agent for a message.

        Args:
            message: Incoming message
            metadata: Message metadata for metadata filters

        Returns:
            Decision for the most specific matching rule, or a fallback decision

        Raises:
            NoAgentsAvailableError: If nothing matched and no agent is registered
        """
        metadata = metadata or {}
        matches = await self.find_matches(message, metadata)

        if matches:
            best = matches[0]
            logger.debug(
                f"[MessageRouter] Rule {best.rule.id} matched ({best.match_type.value}, "
                f"specificity={best.specificity}) -> {best.rule.agent}"
            )
            return RoutingDecision(
                agent=best.rule.agent,
                rule=best.rule,
                match_type=best.match_type,
                fallback=False,
                specificity=best.specificity,
            )

        fallback_agent = self.get_fallback_agent()
        logger.debug(f"[MessageRouter] No rule matched, falling back to {fallback_agent}")
        return RoutingDecision(agent=fallback_agent, fallback=True)

    async def find_matches(self, message: str, metadata: dict[str, Any]) -> list[RuleMatch]:
        """Every matching rule, most specific first (ties keep rule order)."""
        matches: list[RuleMatch] = []
        for rule in self._rules:
            match = await self.match_rule(message, metadata, rule)
            if match is not None:
                matches.append(match)
        matches.sort(key=lambda m: -m.specificity)
        return matches

    async def match_rule(
        self, message: str, metadata: dict[str, Any], rule: RoutingRule
    ) -> Optional[RuleMatch]:
        """Evaluate a single rule."""
        if rule.metadata and not match_metadata(metadata, rule.metadata):
            return None

        if rule.matcher is not None:
            try:
                result = rule.matcher(message, metadata)
                if inspect.isawaitable(result):
                    result = await result
            except Exception as e:
                logger.warning(f"[MessageRouter] Matcher error for rule {rule.id}: {e}")
                return None
            if not result:
                return None
            return self._build_match(rule, RuleMatchType.FUNCTION)

        for pattern in rule.patterns:
            compiled = compile_pattern(pattern)
            if compiled is None:
                logger.debug(f"[MessageRouter] Invalid pattern {pattern!r} in rule {rule.id}")
                continue
            if compiled.search(message):
                is_exact = pattern.startswith("^") and pattern.endswith("$")
                match_type = RuleMatchType.EXACT if is_exact else RuleMatchType.REGEX
                return self._build_match(rule, match_type, pattern)

        for keyword in rule.keywords:
            if match_keyword(message, keyword):
                return self._build_match(rule, RuleMatchType.KEYWORD, keyword)

        if rule.metadata and not rule.patterns and not rule.keywords:
            return self._build_match(rule, RuleMatchType.METADATA_ONLY)

        return None

    def get_fallback_agent(self) -> str:
        """
        Resolve the fallback agent.

        Returns:
            The default agent if registered, else the first registered agent

        Raises:
            NoAgentsAvailableError: If no agent is registered
        """
        default_agent = self._config.default_agent
        if default_agent:
            if self._agent_lookup.get_agent_optional(default_agent) is not None:
                return default_agent
            logger.warning(
                f"[MessageRouter] Default agent {default_agent} not found, "
                f"falling back to first registered agent"
            )

        agent_ids = self._agent_lookup.list_agent_ids()
        if agent_ids:
            logger.warning(
                f"[MessageRouter] No usable default agent, using first registered agent: {agent_ids[0]}"
            )
            return agent_ids[0]

        raise NoAgentsAvailableError()

    @staticmethod
    def _build_match(
        rule: RoutingRule, match_type: RuleMatchType, matched_pattern: Optional[str] = None
    ) -> RuleMatch:
        return RuleMatch(
            rule=rule,
            match_type=match_type,
            confidence=MATCH_TYPE_CONFIDENCE[match_type],
            specificity=calculate_specificity(rule, match_type, matched_pattern),
            matched_pattern=matched_pattern,
        )


def create_message_router(
    agent_lookup: AgentLookupPort,
    rules: Iterable[RoutingRule] = (),
    default_agent: Optional[str] = None,
) -> MessageRouter:
    """Factory for a rule router."""
    return MessageRouter(
        agent_lookup=agent_lookup,
        config=MessageRouterConfig(rules=list(rules), default_agent=default_agent),
    )
