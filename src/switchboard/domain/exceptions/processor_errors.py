"""Error hierarchy for message routing, execution and handoff.

Every failure raised by the message processor is a ``MessageProcessorError``
subclass carrying a stable ``code``, a category and severity, and an optional
wrapped cause. Handoff depth exhaustion is deliberately absent: it is logged
as a warning and never fails a call.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any


class ErrorSeverity(Enum):
    """Severity levels for processor errors."""
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class ErrorCategory(Enum):
    """Categories of processor errors."""
    VALIDATION = "validation"           # Bad input from the caller
    ROUTING = "routing"                 # No handler could be chosen
    EXECUTION = "execution"             # A chosen handler failed
    HANDOFF = "handoff"                 # A handoff hop failed
    NOT_FOUND = "not_found"             # Referenced agent/handler missing
    INTERNAL = "internal"


@dataclass
class ErrorContext:
    """Context information for an error."""
    operation: str
    conversation_id: str | None = None
    agent_id: str | None = None
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    details: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        """Convert context to dictionary."""
        return {
            "operation": self.operation,
            "conversation_id": self.conversation_id,
            "agent_id": self.agent_id,
            "timestamp": self.timestamp.isoformat(),
            "details": self.details,
        }


class MessageProcessorError(Exception):
    """Base exception for all message processor errors."""

    code: str = "MESSAGE_PROCESSOR_ERROR"

    def __init__(
        self,
        message: str,
        category: ErrorCategory = ErrorCategory.INTERNAL,
        severity: ErrorSeverity = ErrorSeverity.ERROR,
        context: ErrorContext | None = None,
        cause: BaseException | None = None,
    ) -> None:
        """Initialize the processor error.

        Args:
            message: Human-readable error message
            category: Error category for filtering/routing
            severity: Error severity level
            context: Additional context about the error
            cause: Original exception that caused this error
        """
        super().__init__(message)
        self.message = message
        self.category = category
        self.severity = severity
        self.context = context or ErrorContext(operation="unknown")
        self.cause = cause

    def to_dict(self) -> dict[str, Any]:
        """Convert error to dictionary for API responses."""
        data = {
            "error_type": self.__class__.__name__,
            "code": self.code,
            "message": self.message,
            "category": self.category.value,
            "severity": self.severity.value,
            "context": self.context.to_dict(),
        }
        if self.cause is not None:
            data["cause"] = str(self.cause)
        return data

    def __str__(self) -> str:
        """String representation of the error."""
        parts = [f"[{self.category.value.upper()}] {self.message}"]
        if self.context.operation != "unknown":
            parts.append(f"operation={self.context.operation}")
        if self.context.agent_id:
            parts.append(f"agent_id={self.context.agent_id}")
        return " | ".join(parts)


class MessageValidationError(MessageProcessorError):
    """Raised when an incoming message fails validation."""

    code = "MESSAGE_VALIDATION_ERROR"

    def __init__(
        self,
        message: str,
        details: dict[str, Any] | None = None,
        context: ErrorContext | None = None,
    ) -> None:
        super().__init__(
            message=message,
            category=ErrorCategory.VALIDATION,
            severity=ErrorSeverity.WARNING,
            context=context or ErrorContext(operation="validate_message"),
        )
        self.details = details or {}

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary with validation details."""
        data = super().to_dict()
        data["details"] = self.details
        return data


class NoRouteFoundError(MessageProcessorError):
    """Raised when no agent, pipeline or intent matches a message."""

    code = "NO_ROUTE_FOUND"

    def __init__(self, message_text: str, context: ErrorContext | None = None) -> None:
        preview = message_text if len(message_text) <= 100 else f"{message_text[:100]}..."
        super().__init__(
            message=f"No route found for message: {preview}",
            category=ErrorCategory.ROUTING,
            severity=ErrorSeverity.WARNING,
            context=context or ErrorContext(operation="route"),
        )
        self.message_text = message_text


class RouteExecutionError(MessageProcessorError):
    """Raised when the chosen route target fails while executing."""

    code = "ROUTE_EXECUTION_ERROR"

    def __init__(
        self,
        route_type: str,
        cause: BaseException | None = None,
        context: ErrorContext | None = None,
    ) -> None:
        reason = str(cause) if cause is not None else "unknown error"
        super().__init__(
            message=f"Failed to execute {route_type} route: {reason}",
            category=ErrorCategory.EXECUTION,
            context=context or ErrorContext(operation=f"execute_{route_type}"),
            cause=cause,
        )
        self.route_type = route_type

    def to_dict(self) -> dict[str, Any]:
        data = super().to_dict()
        data["route_type"] = self.route_type
        return data


class HandoffError(MessageProcessorError):
    """Raised when a handoff hop fails."""

    code = "HANDOFF_ERROR"

    def __init__(
        self,
        from_agent_id: str,
        to_agent_id: str,
        cause: BaseException | None = None,
        context: ErrorContext | None = None,
    ) -> None:
        reason = str(cause) if cause is not None else "unknown error"
        super().__init__(
            message=f"Handoff from {from_agent_id} to {to_agent_id} failed: {reason}",
            category=ErrorCategory.HANDOFF,
            context=context or ErrorContext(operation="handoff", agent_id=to_agent_id),
            cause=cause,
        )
        self.from_agent_id = from_agent_id
        self.to_agent_id = to_agent_id

    def to_dict(self) -> dict[str, Any]:
        data = super().to_dict()
        data["from_agent_id"] = self.from_agent_id
        data["to_agent_id"] = self.to_agent_id
        return data


class ConversationIdRequiredError(MessageProcessorError):
    """Raised when a conversation id is required but none was supplied."""

    code = "CONVERSATION_ID_REQUIRED"

    def __init__(self, context: ErrorContext | None = None) -> None:
        super().__init__(
            message="Conversation ID is required but was not provided",
            category=ErrorCategory.VALIDATION,
            severity=ErrorSeverity.WARNING,
            context=context or ErrorContext(operation="resolve_conversation_id"),
        )


class AgentNotFoundError(MessageProcessorError):
    """Raised when a referenced agent is not registered."""

    code = "AGENT_NOT_FOUND"

    def __init__(self, agent_id: str, context: ErrorContext | None = None) -> None:
        super().__init__(
            message=f"Agent not found: {agent_id}",
            category=ErrorCategory.NOT_FOUND,
            context=context or ErrorContext(operation="get_agent", agent_id=agent_id),
        )
        self.agent_id = agent_id


class IntentMatchError(MessageProcessorError):
    """Raised when the semantic stage of intent matching fails."""

    code = "INTENT_MATCH_ERROR"

    def __init__(self, cause: BaseException | None = None, context: ErrorContext | None = None) -> None:
        reason = str(cause) if cause is not None else "unknown error"
        super().__init__(
            message=f"Intent matching failed: {reason}",
            category=ErrorCategory.ROUTING,
            context=context or ErrorContext(operation="match_intent"),
            cause=cause,
        )


class NoAgentsAvailableError(MessageProcessorError):
    """Raised by the rule router when no agent can serve as fallback."""

    code = "NO_AGENTS_AVAILABLE"

    def __init__(self, context: ErrorContext | None = None) -> None:
        super().__init__(
            message="No agents available for routing",
            category=ErrorCategory.ROUTING,
            context=context or ErrorContext(operation="rule_route"),
        )


class ActionHandlerNotFoundError(MessageProcessorError):
    """Raised when an intent action type has no registered handler."""

    code = "ACTION_HANDLER_NOT_FOUND"

    def __init__(self, action_type: str, context: ErrorContext | None = None) -> None:
        super().__init__(
            message=f"No handler registered for intent action type: {action_type}",
            category=ErrorCategory.NOT_FOUND,
            context=context or ErrorContext(operation="route_intent"),
        )
        self.action_type = action_type


def is_message_processor_error(error: BaseException) -> bool:
    """Check whether an exception belongs to the processor error hierarchy."""
    return isinstance(error, MessageProcessorError)


_HTTP_STATUS_BY_CATEGORY = {
    ErrorCategory.VALIDATION: 400,
    ErrorCategory.ROUTING: 404,
    ErrorCategory.NOT_FOUND: 404,
}


def error_to_http_status(error: BaseException) -> int:
    """Map an exception to the HTTP status used by the web adapter."""
    if isinstance(error, (NoAgentsAvailableError, IntentMatchError)):
        return 500
    if isinstance(error, MessageProcessorError):
        return _HTTP_STATUS_BY_CATEGORY.get(error.category, 500)
    return 500


