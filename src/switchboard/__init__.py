"""
Switchboard - message routing, execution and handoff for multi-agent systems.

Quick start:
    from switchboard import create_message_processor

    processor = create_message_processor(agents=[support_agent, billing_agent])
    result = await processor.process_message("I need a refund")
    print(result.response.content)
"""

__version__ = "0.1.0"

from switchboard.configuration.config import Settings, get_settings
from switchboard.configuration.factories import create_message_processor
from switchboard.domain.events import StreamEvent, StreamEventType
from switchboard.domain.exceptions import MessageProcessorError
from switchboard.domain.model import (
    ActionType,
    AgentResponse,
    HandoffRequest,
    HistoryEntry,
    Intent,
    IntentAction,
    ProcessOptions,
    ProcessResult,
    RouteResult,
    RouteType,
    RoutingRule,
    ToolCallRecord,
    ToolError,
)
from switchboard.infrastructure.processor import MessageProcessor, StreamResult

__all__ = [
    "__version__",
    "ActionType",
    "AgentResponse",
    "HandoffRequest",
    "HistoryEntry",
    "Intent",
    "IntentAction",
    "MessageProcessor",
    "MessageProcessorError",
    "ProcessOptions",
    "ProcessResult",
    "RouteResult",
    "RouteType",
    "RoutingRule",
    "Settings",
    "StreamEvent",
    "StreamEventType",
    "StreamResult",
    "ToolCallRecord",
    "ToolError",
    "create_message_processor",
    "get_settings",
]
