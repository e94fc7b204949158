"""
Message processing: execution, handoff chains, history persistence and streaming.
"""

from switchboard.infrastructure.processor.executor import AgentExecutor, visible_history
from switchboard.infrastructure.processor.handoff import (
    HandoffOrchestrator,
    HandoffOutcome,
    PlannedHop,
    compose_handoff_message,
)
from switchboard.infrastructure.processor.history_policy import (
    HistoryPersistencePolicy,
    build_response_entries,
    tool_outcome,
)
from switchboard.infrastructure.processor.message_processor import (
    MessageProcessor,
    MessageProcessorConfig,
    MessageProcessorDeps,
    validate_message,
)
from switchboard.infrastructure.processor.stream_result import StreamResult
from switchboard.infrastructure.processor.stream_synthesizer import (
    SequenceCounter,
    StreamSynthesizer,
    TapResult,
    generate_message_id,
    generate_run_id,
)

__all__ = [
    "AgentExecutor",
    "HandoffOrchestrator",
    "HandoffOutcome",
    "HistoryPersistencePolicy",
    "MessageProcessor",
    "MessageProcessorConfig",
    "MessageProcessorDeps",
    "PlannedHop",
    "SequenceCounter",
    "StreamResult",
    "StreamSynthesizer",
    "TapResult",
    "build_response_entries",
    "compose_handoff_message",
    "generate_message_id",
    "generate_run_id",
    "tool_outcome",
    "validate_message",
    "visible_history",
]
