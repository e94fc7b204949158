"""Factory functions for assembling a message processor."""

import logging
from collections.abc import Iterable, Sequence
from typing import Optional

from switchboard.configuration.config import Settings, get_settings
from switchboard.domain.model import Intent, RoutingRule
from switchboard.domain.ports import (
    AgentLookupPort,
    AgentProtocol,
    ConversationHistoryPort,
    PipelinePort,
    TracerPort,
)
from switchboard.infrastructure.adapters.secondary import (
    InMemoryAgentRegistry,
    InMemoryConversationHistory,
    InMemoryPipelineRegistry,
)
from switchboard.infrastructure.matching import IntentMatcher, create_semantic_matcher
from switchboard.infrastructure.processor import (
    MessageProcessor,
    MessageProcessorConfig,
    MessageProcessorDeps,
)
from switchboard.infrastructure.routing import IntentActionRouter, Router, create_message_router
from switchboard.infrastructure.routing.intent_router import IntentFunction
from switchboard.infrastructure.telemetry import configure_telemetry, create_tracer

logger = logging.getLogger(__name__)


def create_message_processor(
    agents: Iterable[AgentProtocol] | AgentLookupPort = (),
    pipelines: Optional[PipelinePort] = None,
    intents: Sequence[Intent] = (),
    rules: Optional[Sequence[RoutingRule]] = None,
    history: Optional[ConversationHistoryPort] = None,
    settings: Optional[Settings] = None,
    tracer: Optional[TracerPort] = None,
    functions: Optional[dict[str, IntentFunction]] = None,
) -> MessageProcessor:
    """
    Assemble a MessageProcessor with default collaborators.

    Args:
        agents: Agents to register, or an existing agent lookup
        pipelines: Pipeline registry (an empty in-memory one when omitted)
        intents: Global intent set
        rules: Routing rules; when given (even empty) the rule router decides alone
        history: Conversation history store (in-memory when omitted)
        settings: Settings (defaults to the cached settings)
        tracer: Span emitter (OpenTelemetry when telemetry is enabled, else no-op)
        functions: Callables for intents with a `function` action, by name

    Returns:
        A ready-to-use MessageProcessor
    """
    settings = settings or get_settings()

    if isinstance(agents, AgentLookupPort):
        agent_lookup = agents
    else:
        agent_lookup = InMemoryAgentRegistry(agents)
    pipelines = pipelines if pipelines is not None else InMemoryPipelineRegistry()
    history = history if history is not None else InMemoryConversationHistory()
    if tracer is None:
        configure_telemetry(settings)
        tracer = create_tracer(settings.service_name)

    rule_router = None
    if rules is not None:
        rule_router = create_message_router(
            agent_lookup, rules=rules, default_agent=settings.default_agent_id
        )

    semantic_matcher = None
    if settings.use_semantic_matching:
        semantic_matcher = create_semantic_matcher(settings.semantic_threshold)

    router = Router(
        agent_lookup=agent_lookup,
        pipelines=pipelines,
        rule_router=rule_router,
        intent_matcher=IntentMatcher(intents) if intents else None,
        intent_action_router=IntentActionRouter(
            agent_lookup=agent_lookup, pipelines=pipelines, functions=functions
        ),
        default_agent_id=settings.default_agent_id,
        semantic_matcher=semantic_matcher,
        tracer=tracer,
    )
    logger.info(
        f"[Factory] Message processor created (agents={len(agent_lookup.list_agent_ids())}, "
        f"intents={len(intents)}, rules={'on' if rule_router else 'off'})"
    )
    return MessageProcessor(
        MessageProcessorDeps(router=router, history=history, tracer=tracer),
        MessageProcessorConfig.from_settings(settings),
    )
