"""Unit tests for the rule-based message router."""

import pytest

from switchboard.domain.exceptions import NoAgentsAvailableError
from switchboard.domain.model import RoutingRule, RuleMatchType
from switchboard.infrastructure.routing import (
    MessageRouter,
    MessageRouterConfig,
    calculate_specificity,
    create_message_router,
    match_keyword,
)


@pytest.fixture
def agents(registry_of, make_agent):
    return registry_of(
        make_agent("general"),
        make_agent("help-agent"),
        make_agent("billing"),
        make_agent("vip"),
    )


# ============================================================================
# Helpers
# ============================================================================


@pytest.mark.unit
class TestRuleHelpers:
    def test_keyword_is_whole_word(self):
        assert match_keyword("Need a Refund today", "refund")
        assert not match_keyword("refunds are slow", "refund")

    def test_specificity_components(self):
        rule = RoutingRule(id="r", agent="a", metadata={"tier": "gold"}, priority=5)

        score = calculate_specificity(rule, RuleMatchType.REGEX, "abc")

        assert score == 800 + 3 + 100 + 5


# ============================================================================
# Routing
# ============================================================================


@pytest.mark.unit
class TestMessageRouter:
    async def test_help_pattern_routes_to_help_agent(self, agents):
        router = create_message_router(
            agents,
            rules=[RoutingRule(id="help", agent="help-agent", patterns=["^help"])],
            default_agent="help-agent",
        )

        decision = await router.route("help me")

        assert decision.agent == "help-agent"
        assert decision.match_type == RuleMatchType.REGEX
        assert decision.fallback is False
        assert decision.rule.id == "help"

    async def test_anchored_pattern_is_exact(self, agents):
        router = create_message_router(
            agents, rules=[RoutingRule(id="hi", agent="general", patterns=["^hi$"])]
        )

        decision = await router.route("HI")

        assert decision.match_type == RuleMatchType.EXACT
        assert decision.specificity == 1000 + len("^hi$")

    async def test_most_specific_rule_wins(self, agents):
        rules = [
            RoutingRule(id="kw", agent="billing", keywords=["refund"]),
            RoutingRule(id="rx", agent="general", patterns=["refund"]),
        ]
        router = create_message_router(agents, rules=rules)

        decision = await router.route("I want a refund")

        assert decision.rule.id == "rx"
        assert decision.match_type == RuleMatchType.REGEX

    async def test_metadata_adds_specificity(self, agents):
        rules = [
            RoutingRule(id="plain", agent="billing", keywords=["refund"]),
            RoutingRule(id="vip", agent="vip", keywords=["refund"], metadata={"tier": "gold"}),
        ]
        router = create_message_router(agents, rules=rules)

        assert (await router.route("refund", {"tier": "gold"})).agent == "vip"
        assert (await router.route("refund", {"tier": "silver"})).agent == "billing"

    async def test_metadata_only_rule(self, agents):
        router = create_message_router(
            agents, rules=[RoutingRule(id="m", agent="vip", metadata={"tier": "gold"})]
        )

        decision = await router.route("anything", {"tier": "gold"})

        assert decision.agent == "vip"
        assert decision.match_type == RuleMatchType.METADATA_ONLY

    async def test_custom_matcher_sync_and_async(self, agents):
        async def is_billing(message, metadata):
            return "invoice" in message

        rules = [
            RoutingRule(id="async", agent="billing", matcher=is_billing),
            RoutingRule(id="sync", agent="vip", matcher=lambda m, md: md.get("vip") is True),
        ]
        router = create_message_router(agents, rules=rules)

        assert (await router.route("my invoice")).agent == "billing"
        decision = await router.route("hello", {"vip": True})
        assert decision.agent == "vip"
        assert decision.match_type == RuleMatchType.FUNCTION

    async def test_matcher_error_means_no_match(self, agents):
        def broken(message, metadata):
            raise RuntimeError("boom")

        router = create_message_router(
            agents,
            rules=[RoutingRule(id="broken", agent="vip", matcher=broken)],
            default_agent="general",
        )

        decision = await router.route("hello")

        assert decision.agent == "general"
        assert decision.fallback is True

    async def test_invalid_pattern_is_skipped(self, agents):
        router = create_message_router(
            agents, rules=[RoutingRule(id="bad", agent="vip", patterns=["([", "ok"])]
        )

        decision = await router.route("ok then")

        assert decision.agent == "vip"

    async def test_fallback_to_default_agent(self, agents):
        router = create_message_router(agents, rules=[], default_agent="billing")

        decision = await router.route("unmatched")

        assert decision.agent == "billing"
        assert decision.fallback is True
        assert decision.rule is None

    async def test_fallback_to_first_agent_when_default_missing(self, agents):
        router = create_message_router(agents, rules=[], default_agent="ghost")

        assert (await router.route("unmatched")).agent == "general"

    async def test_no_agents_available(self, registry_of):
        router = create_message_router(registry_of(), rules=[])

        with pytest.raises(NoAgentsAvailableError):
            await router.route("anything")

    def test_rules_sorted_by_priority(self, agents):
        router = MessageRouter(
            agents,
            MessageRouterConfig(
                rules=[
                    RoutingRule(id="low", agent="general", priority=1),
                    RoutingRule(id="high", agent="general", priority=10),
                ]
            ),
        )

        assert [rule.id for rule in router.rules] == ["high", "low"]

    def test_duplicate_rule_id_rejected(self, agents):
        router = create_message_router(agents, rules=[RoutingRule(id="a", agent="general")])

        with pytest.raises(ValueError):
            router.add_rule(RoutingRule(id="a", agent="billing"))
        assert router.remove_rule("a") is True
        assert router.remove_rule("a") is False
