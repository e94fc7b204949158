"""Secondary (driven) adapters: registries and history stores."""

from switchboard.infrastructure.adapters.secondary.in_memory_agent_registry import (
    InMemoryAgentRegistry,
)
from switchboard.infrastructure.adapters.secondary.in_memory_conversation_history import (
    InMemoryConversationHistory,
)
from switchboard.infrastructure.adapters.secondary.in_memory_pipeline_registry import (
    InMemoryPipelineRegistry,
    PipelineHandler,
)

__all__ = [
    "InMemoryAgentRegistry",
    "InMemoryConversationHistory",
    "InMemoryPipelineRegistry",
    "PipelineHandler",
]
