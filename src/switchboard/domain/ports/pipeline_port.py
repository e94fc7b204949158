"""Pipeline Port - Domain interface for pipeline lookup and execution."""

from collections.abc import Sequence
from typing import Any, Optional, Protocol, runtime_checkable

from switchboard.domain.model import AgentResponse, HistoryEntry, SemanticMatcher, UtteranceMatch


@runtime_checkable
class PipelinePort(Protocol):
    """
    Protocol for pipelines.

    Pipelines are pre-defined multi-step execution units invoked by id.
    They execute inline during routing rather than through the executor.
    """

    async def match_pipeline_by_utterance(
        self, message: str, semantic_matcher: Optional[SemanticMatcher] = None
    ) -> Optional[UtteranceMatch]:
        """Match a message against each pipeline's utterance list."""
        ...

    async def execute_pipeline(
        self,
        pipeline_id: str,
        message: str,
        history: Sequence[HistoryEntry],
        options: Optional[dict[str, Any]] = None,
    ) -> AgentResponse:
        """
        Execute a pipeline.

        Args:
            pipeline_id: Pipeline to run
            message: Incoming message
            history: Conversation history visible to the pipeline
            options: Extra execution options (conversation id, metadata)

        Returns:
            The pipeline's final response
        """
        ...
