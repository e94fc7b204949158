"""Domain ports (collaborator contracts)."""

from switchboard.domain.ports.agent_port import (
    AgentLookupPort,
    AgentProtocol,
    StreamingAgentProtocol,
    should_persist_history,
    supports_streaming,
)
from switchboard.domain.ports.conversation_history_port import ConversationHistoryPort
from switchboard.domain.ports.intent_action_port import IntentActionHandler
from switchboard.domain.ports.pipeline_port import PipelinePort
from switchboard.domain.ports.rule_router_port import RuleRouterPort
from switchboard.domain.ports.tracer_port import NoopSpan, NoopTracer, SpanPort, TracerPort

__all__ = [
    "AgentLookupPort",
    "AgentProtocol",
    "ConversationHistoryPort",
    "IntentActionHandler",
    "NoopSpan",
    "NoopTracer",
    "PipelinePort",
    "RuleRouterPort",
    "SpanPort",
    "StreamingAgentProtocol",
    "TracerPort",
    "should_persist_history",
    "supports_streaming",
]
