"""
In-memory implementation of PipelinePort.

A pipeline is registered as an async callable
``(message, history, options) -> response`` plus its routing utterances. The
callable's result is normalized like an agent result.
"""

import logging
from collections.abc import Awaitable, Callable, Sequence
from dataclasses import dataclass
from typing import Any, Optional

from switchboard.domain.model import (
    AgentResponse,
    HistoryEntry,
    SemanticMatcher,
    UtteranceMatch,
    normalize_response,
)
from switchboard.domain.ports import PipelinePort
from switchboard.infrastructure.matching import match_utterances

logger = logging.getLogger(__name__)

PipelineHandler = Callable[[str, Sequence[HistoryEntry], dict[str, Any]], Awaitable[Any]]


@dataclass(frozen=True)
class RegisteredPipeline:
    id: str
    handler: PipelineHandler
    utterances: tuple[str, ...] = ()


class InMemoryPipelineRegistry(PipelinePort):
    """Pipeline registry for embedding and tests."""

    def __init__(self) -> None:
        self._pipelines: dict[str, RegisteredPipeline] = {}

    def register(
        self, pipeline_id: str, handler: PipelineHandler, utterances: Sequence[str] = ()
    ) -> None:
        if pipeline_id in self._pipelines:
            raise ValueError(f"Pipeline {pipeline_id} is already registered")
        self._pipelines[pipeline_id] = RegisteredPipeline(
            id=pipeline_id, handler=handler, utterances=tuple(utterances)
        )

    def list_pipeline_ids(self) -> list[str]:
        return list(self._pipelines)

    def has_pipeline(self, pipeline_id: str) -> bool:
        return pipeline_id in self._pipelines

    async def match_pipeline_by_utterance(
        self, message: str, semantic_matcher: Optional[SemanticMatcher] = None
    ) -> Optional[UtteranceMatch]:
        targets = {pipeline.id: pipeline.utterances for pipeline in self._pipelines.values()}
        return await match_utterances(message, targets, semantic_matcher)

    async def execute_pipeline(
        self,
        pipeline_id: str,
        message: str,
        history: Sequence[HistoryEntry],
        options: Optional[dict[str, Any]] = None,
    ) -> AgentResponse:
        pipeline = self._pipelines.get(pipeline_id)
        if pipeline is None:
            raise ValueError(f"Pipeline {pipeline_id} not found")
        logger.info(f"[PipelineRegistry] Executing pipeline {pipeline_id}")
        raw = await pipeline.handler(message, list(history), dict(options or {}))
        return normalize_response(raw)
