"""Domain models for message routing, execution and history."""

from switchboard.domain.model.handoff import (
    DEFAULT_MAX_HANDOFF_DEPTH,
    HandoffChain,
    HandoffChainState,
)
from switchboard.domain.model.history import (
    CONVERSATIONAL_ROLES,
    HistoryEntry,
    MessagePart,
    MessageRole,
    TextPart,
    ToolCallPart,
    ToolFailure,
    ToolOutcomeRecord,
    ToolResultPart,
    ToolSuccess,
    history_entry_from_dict,
    tool_outcome_from_dict,
)
from switchboard.domain.model.intent import ActionType, Intent, IntentAction
from switchboard.domain.model.processing import ProcessOptions, ProcessResult
from switchboard.domain.model.response import (
    NO_RESULT,
    AgentResponse,
    HandoffRequest,
    ToolCallRecord,
    ToolError,
    Usage,
    normalize_response,
)
from switchboard.domain.model.routing import (
    IntentCandidate,
    IntentMatch,
    MatchType,
    RouteResult,
    RouteType,
    RoutingDecision,
    RoutingRule,
    RuleMatchType,
    SemanticMatcher,
    SemanticMatchResult,
    UtteranceMatch,
)

__all__ = [
    "DEFAULT_MAX_HANDOFF_DEPTH",
    "NO_RESULT",
    "CONVERSATIONAL_ROLES",
    "ActionType",
    "AgentResponse",
    "HandoffChain",
    "HandoffChainState",
    "HandoffRequest",
    "HistoryEntry",
    "Intent",
    "IntentAction",
    "IntentCandidate",
    "IntentMatch",
    "MatchType",
    "MessagePart",
    "MessageRole",
    "ProcessOptions",
    "ProcessResult",
    "RouteResult",
    "RouteType",
    "RoutingDecision",
    "RoutingRule",
    "RuleMatchType",
    "SemanticMatcher",
    "SemanticMatchResult",
    "TextPart",
    "ToolCallPart",
    "ToolCallRecord",
    "ToolError",
    "ToolFailure",
    "ToolOutcomeRecord",
    "ToolResultPart",
    "ToolSuccess",
    "Usage",
    "UtteranceMatch",
    "history_entry_from_dict",
    "normalize_response",
    "tool_outcome_from_dict",
]
