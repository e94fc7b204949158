"""
Routing module for message dispatch.

Provides:
- Router: layered decision procedure (rules, utterances, intents, default)
- MessageRouter: rule-based router with specificity scoring
- IntentActionRouter: executes matched intent actions
"""

from switchboard.infrastructure.routing.intent_router import (
    AgentActionHandler,
    FunctionActionHandler,
    IntentActionRouter,
    PipelineActionHandler,
)
from switchboard.infrastructure.routing.message_router import (
    MATCH_TYPE_SCORES,
    MessageRouter,
    MessageRouterConfig,
    RuleMatch,
    calculate_specificity,
    create_message_router,
    match_keyword,
)
from switchboard.infrastructure.routing.router import (
    METHOD_AGENT_UTTERANCE,
    METHOD_DEFAULT,
    METHOD_INTENT,
    METHOD_NONE,
    METHOD_PIPELINE_UTTERANCE,
    METHOD_RULE,
    METHOD_RULE_FALLBACK,
    RouteOptions,
    Router,
)

__all__ = [
    "MATCH_TYPE_SCORES",
    "METHOD_AGENT_UTTERANCE",
    "METHOD_DEFAULT",
    "METHOD_INTENT",
    "METHOD_NONE",
    "METHOD_PIPELINE_UTTERANCE",
    "METHOD_RULE",
    "METHOD_RULE_FALLBACK",
    "AgentActionHandler",
    "FunctionActionHandler",
    "IntentActionRouter",
    "MessageRouter",
    "MessageRouterConfig",
    "PipelineActionHandler",
    "RouteOptions",
    "Router",
    "RuleMatch",
    "calculate_specificity",
    "create_message_router",
    "match_keyword",
]
