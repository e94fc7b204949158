"""Domain exceptions."""

from switchboard.domain.exceptions.processor_errors import (
    ActionHandlerNotFoundError,
    AgentNotFoundError,
    ConversationIdRequiredError,
    ErrorCategory,
    ErrorContext,
    ErrorSeverity,
    HandoffError,
    IntentMatchError,
    MessageProcessorError,
    MessageValidationError,
    NoAgentsAvailableError,
    NoRouteFoundError,
    RouteExecutionError,
    error_to_http_status,
    is_message_processor_error,
)

__all__ = [
    "ActionHandlerNotFoundError",
    "AgentNotFoundError",
    "ConversationIdRequiredError",
    "ErrorCategory",
    "ErrorContext",
    "ErrorSeverity",
    "HandoffError",
    "IntentMatchError",
    "MessageProcessorError",
    "MessageValidationError",
    "NoAgentsAvailableError",
    "NoRouteFoundError",
    "RouteExecutionError",
    "error_to_http_status",
    "is_message_processor_error",
]
