"""
Message Router - layered routing decision procedure.

Decision order (first success wins):
1. Rule router, when configured, decides alone
2. Agent utterance matching
3. Pipeline utterance matching (executed inline)
4. Intent matching (agent actions routed, other actions executed inline)
5. Default agent
6. No route

Each stage is recorded on a ``message.route`` span without affecting the
decision. The only failure mode is ``RouteExecutionError`` when an inline
pipeline or intent execution raises.
"""

import logging
from collections.abc import Awaitable, Sequence
from dataclasses import dataclass, field
from typing import Any, Optional, TypeVar

from switchboard.domain.exceptions import (
    IntentMatchError,
    NoAgentsAvailableError,
    RouteExecutionError,
)
from switchboard.domain.model import (
    ActionType,
    HistoryEntry,
    RouteResult,
    SemanticMatcher,
)
from switchboard.domain.ports import (
    AgentLookupPort,
    NoopTracer,
    PipelinePort,
    RuleRouterPort,
    SpanPort,
    TracerPort,
)
from switchboard.infrastructure.matching import IntentMatcher
from switchboard.infrastructure.routing.intent_router import IntentActionRouter
from switchboard.infrastructure.telemetry.metrics import record_routing_decision

logger = logging.getLogger(__name__)

T = TypeVar("T")


# ============================================================================
# Routing method names (span attribute ``routing.method``)
# ============================================================================

METHOD_RULE = "message.router.rule"
METHOD_RULE_FALLBACK = "message.router.fallback"
METHOD_AGENT_UTTERANCE = "agent.utterance"
METHOD_PIPELINE_UTTERANCE = "pipeline.utterance"
METHOD_INTENT = "intent.matching"
METHOD_DEFAULT = "default.agent"
METHOD_NONE = "none"


@dataclass
class RouteOptions:
    """Per-call routing options."""

    conversation_id: Optional[str] = None
    sequential_visibility: bool = True
    metadata: dict[str, Any] = field(default_factory=dict)

    def visible_history(self, previous_messages: Sequence[HistoryEntry]) -> list[HistoryEntry]:
        return list(previous_messages) if self.sequential_visibility else []

    def pipeline_options(self) -> dict[str, Any]:
        """Options every pipeline receives, however it was reached."""
        return {
            "conversation_id": self.conversation_id,
            "sequential_visibility": self.sequential_visibility,
            "metadata": self.metadata,
        }


class Router:
    """
    Chooses the handler for a message.

    Collaborators are passed explicitly; optional ones left as None disable
    their stage.
    """

    def __init__(
        self,
        agent_lookup: AgentLookupPort,
        pipelines: Optional[PipelinePort] = None,
        rule_router: Optional[RuleRouterPort] = None,
        intent_matcher: Optional[IntentMatcher] = None,
        intent_action_router: Optional[IntentActionRouter] = None,
        default_agent_id: Optional[str] = None,
        semantic_matcher: Optional[SemanticMatcher] = None,
        tracer: Optional[TracerPort] = None,
    ):
        """
        Initialize the router.

        Args:
            agent_lookup: Agent registry
            pipelines: Pipeline registry/executor
            rule_router: Rule-based router; when set it decides alone
            intent_matcher: Global intent set
            intent_action_router: Executes non-agent intent actions
            default_agent_id: Agent used when nothing else matches
            semantic_matcher: Optional semantic scorer for utterance/intent matching
            tracer: Span emitter
        """
        self._agent_lookup = agent_lookup
        self._pipelines = pipelines
        self._rule_router = rule_router
        self._intent_matcher = intent_matcher
        self._intent_action_router = intent_action_router or IntentActionRouter(
            agent_lookup=agent_lookup, pipelines=pipelines
        )
        self._default_agent_id = default_agent_id
        self._semantic_matcher = semantic_matcher
        self._tracer = tracer or NoopTracer()

    @property
    def default_agent_id(self) -> Optional[str]:
        return self._default_agent_id

    @property
    def agent_lookup(self) -> AgentLookupPort:
        return self._agent_lookup

    async def route(
        self,
        message: str,
        previous_messages: Sequence[HistoryEntry] = (),
        options: Optional[RouteOptions] = None,
    ) -> RouteResult:
        """
        Route a message to an agent, pipeline, intent, the default agent, or nothing.

        Args:
            message: Incoming message
            previous_messages: Conversation history (passed to inline executions)
            options: Conversation id, visibility and metadata

        Returns:
            The routing outcome; ``RouteType.NONE`` when nothing could handle it

        Raises:
            RouteExecutionError: If an inline pipeline or intent execution fails
        """
        options = options or RouteOptions()
        span = self._tracer.start_span(
            "message.route",
            {"message.length": len(message), "conversation.id": options.conversation_id},
        )
        try:
            result, method = await self._route(message, previous_messages, options, span)
            span.set_attribute("routing.method", method)
            span.set_attribute("routing.type", result.type.value)
            span.set_status(True)
            record_routing_decision(method, {"route.type": result.type.value})
            logger.debug(f"[Router] Routed via {method} -> {result.type.value}")
            return result
        except Exception as e:
            span.record_exception(e)
            span.set_status(False, str(e))
            raise
        finally:
            span.end()

    async def _route(
        self,
        message: str,
        previous_messages: Sequence[HistoryEntry],
        options: RouteOptions,
        span: SpanPort,
    ) -> tuple[RouteResult, str]:
        if self._rule_router is not None:
            return await self._route_by_rules(message, options, span)

        result = await self._route_by_agent_utterance(message, span)
        if result is not None:
            return result, METHOD_AGENT_UTTERANCE

        result = await self._route_by_pipeline_utterance(message, previous_messages, options, span)
        if result is not None:
            return result, METHOD_PIPELINE_UTTERANCE

        result = await self._route_by_intent(message, previous_messages, options, span)
        if result is not None:
            return result, METHOD_INTENT

        if self._default_agent_id:
            agent = self._agent_lookup.get_agent_optional(self._default_agent_id)
            if agent is not None:
                span.set_attribute("routing.agent_id", agent.id)
                return RouteResult.for_default(agent), METHOD_DEFAULT
            span.add_event("agent.not_found", {"agent.id": self._default_agent_id})
            logger.warning(f"[Router] Default agent {self._default_agent_id} is not registered")

        return RouteResult.none(), METHOD_NONE

    # ------------------------------------------------------------------
    # Stages
    # ------------------------------------------------------------------

    async def _route_by_rules(
        self, message: str, options: RouteOptions, span: SpanPort
    ) -> tuple[RouteResult, str]:
        try:
            decision = await self._rule_router.route(message, options.metadata)
        except NoAgentsAvailableError as e:
            logger.warning(f"[Router] Rule router has no agents: {e}")
            span.add_event("rule_router.no_agents")
            return RouteResult.none(), METHOD_RULE_FALLBACK

        method = METHOD_RULE_FALLBACK if decision.fallback else METHOD_RULE
        span.set_attribute("routing.agent_id", decision.agent)
        if decision.rule is not None:
            span.set_attribute("routing.rule_id", decision.rule.id)
        if decision.match_type is not None:
            span.set_attribute("routing.match_type", decision.match_type.value)

        agent = self._agent_lookup.get_agent_optional(decision.agent)
        if agent is None:
            # A rule naming a missing agent is surfaced, never recovered
            span.add_event("agent.not_found", {"agent.id": decision.agent})
            logger.warning(f"[Router] Rule router chose unknown agent {decision.agent}")
            return RouteResult.none(), method

        rule_id = decision.rule.id if decision.rule is not None else None
        if decision.fallback:
            return RouteResult.for_default(agent, fallback=True, rule_id=rule_id), method
        return (
            RouteResult.for_agent(
                agent,
                match_type=decision.match_type.value if decision.match_type else None,
                rule_id=rule_id,
            ),
            method,
        )

    async def _route_by_agent_utterance(self, message: str, span: SpanPort) -> Optional[RouteResult]:
        match = await self._guarded_match(
            self._agent_lookup.match_agent_by_utterance(message, self._semantic_matcher),
            "agent",
            span,
        )
        if match is None:
            return None

        self._record_match(span, match.target_id, match.confidence, match.match_type.value)
        agent = self._agent_lookup.get_agent_optional(match.target_id)
        if agent is None:
            span.add_event("agent.not_found", {"agent.id": match.target_id})
            return None
        return RouteResult.for_agent(
            agent, confidence=match.confidence, match_type=match.match_type.value
        )

    async def _route_by_pipeline_utterance(
        self,
        message: str,
        previous_messages: Sequence[HistoryEntry],
        options: RouteOptions,
        span: SpanPort,
    ) -> Optional[RouteResult]:
        if self._pipelines is None:
            return None

        match = await self._guarded_match(
            self._pipelines.match_pipeline_by_utterance(message, self._semantic_matcher),
            "pipeline",
            span,
        )
        if match is None:
            return None

        span.set_attribute("routing.pipeline_id", match.target_id)
        self._record_match(span, None, match.confidence, match.match_type.value)

        pipeline_span = self._tracer.start_span(
            "pipeline.process",
            {
                "pipeline.id": match.target_id,
                "pipeline.match_type": match.match_type.value,
                "pipeline.confidence": match.confidence,
            },
        )
        try:
            response = await self._pipelines.execute_pipeline(
                match.target_id,
                message,
                options.visible_history(previous_messages),
                options.pipeline_options(),
            )
            pipeline_span.set_attribute("response.length", len(response.content))
            pipeline_span.set_status(True)
        except RouteExecutionError:
            raise
        except Exception as e:
            pipeline_span.record_exception(e)
            pipeline_span.set_status(False, str(e))
            raise RouteExecutionError("pipeline", cause=e) from e
        finally:
            pipeline_span.end()

        return RouteResult.for_pipeline(
            match.target_id,
            response,
            confidence=match.confidence,
            match_type=match.match_type.value,
        )

    async def _route_by_intent(
        self,
        message: str,
        previous_messages: Sequence[HistoryEntry],
        options: RouteOptions,
        span: SpanPort,
    ) -> Optional[RouteResult]:
        if self._intent_matcher is None:
            return None

        match = await self._guarded_match(
            self._intent_matcher.match(message, self._semantic_matcher), "intent", span
        )
        if match is None:
            return None

        span.set_attribute("routing.intent_id", match.intent.id)
        self._record_match(span, None, match.confidence, match.match_type.value)

        action = match.intent.action
        if action.type == ActionType.AGENT:
            agent = self._agent_lookup.get_agent_optional(action.target)
            if agent is None:
                span.add_event("agent.not_found", {"agent.id": action.target})
                return None
            span.set_attribute("routing.agent_id", agent.id)
            return RouteResult.for_agent(
                agent, confidence=match.confidence, match_type=match.match_type.value
            )

        try:
            response = await self._intent_action_router.route_intent(
                match,
                message,
                options.visible_history(previous_messages),
                options.pipeline_options(),
            )
        except RouteExecutionError:
            raise
        except Exception as e:
            raise RouteExecutionError("intent", cause=e) from e

        return RouteResult.for_intent(
            match.intent.id,
            response,
            confidence=match.confidence,
            match_type=match.match_type.value,
        )

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    @staticmethod
    async def _guarded_match(pending: Awaitable[T], stage: str, span: SpanPort) -> Optional[T]:
        """Await a matching stage, treating matcher failures as no match."""
        try:
            return await pending
        except IntentMatchError as e:
            logger.warning(f"[Router] {stage} matching failed, skipping stage: {e}")
            span.record_exception(e)
            span.add_event(f"{stage}.match_failed", {"error": str(e)})
            return None

    @staticmethod
    def _record_match(
        span: SpanPort, agent_id: Optional[str], confidence: float, match_type: str
    ) -> None:
        if agent_id is not None:
            span.set_attribute("routing.agent_id", agent_id)
        span.set_attribute("routing.confidence", confidence)
        span.set_attribute("routing.match_type", match_type)
