"""
Intent action router.

Executes the action of a matched intent through a handler registered for
the action type. Default handlers cover agent, pipeline and function actions.
"""

import inspect
import logging
from collections.abc import Callable, Mapping, Sequence
from typing import Any, Optional

from switchboard.domain.exceptions import ActionHandlerNotFoundError, AgentNotFoundError
from switchboard.domain.model import (
    ActionType,
    AgentResponse,
    HistoryEntry,
    IntentAction,
    IntentMatch,
    normalize_response,
)
from switchboard.domain.ports import AgentLookupPort, IntentActionHandler, PipelinePort

logger = logging.getLogger(__name__)

IntentFunction = Callable[..., Any]


class AgentActionHandler:
    """Runs the target agent directly."""

    def __init__(self, agent_lookup: AgentLookupPort):
        self._agent_lookup = agent_lookup

    async def __call__(
        self,
        action: IntentAction,
        match: IntentMatch,
        message: str,
        previous_messages: Sequence[HistoryEntry],
        options: Mapping[str, Any],
    ) -> AgentResponse:
        agent = self._agent_lookup.get_agent_optional(action.target)
        if agent is None:
            raise AgentNotFoundError(action.target)
        return normalize_response(await agent.process_message(message, list(previous_messages)))


class PipelineActionHandler:
    """Executes the target pipeline.

    The pipeline gets the intent payload merged with the routing options; the
    routing options win on key clashes.
    """

    def __init__(self, pipelines: PipelinePort):
        self._pipelines = pipelines

    async def __call__(
        self,
        action: IntentAction,
        match: IntentMatch,
        message: str,
        previous_messages: Sequence[HistoryEntry],
        options: Mapping[str, Any],
    ) -> AgentResponse:
        return await self._pipelines.execute_pipeline(
            action.target,
            message,
            list(previous_messages),
            {**(action.payload or {}), **options},
        )


class FunctionActionHandler:
    """Calls a registered Python function by name.

    Functions receive ``(message, payload)`` and may be sync or async.
    """

    def __init__(self, functions: Optional[dict[str, IntentFunction]] = None):
        self._functions: dict[str, IntentFunction] = dict(functions or {})

    def register(self, name: str, function: IntentFunction) -> None:
        self._functions[name] = function

    async def __call__(
        self,
        action: IntentAction,
        match: IntentMatch,
        message: str,
        previous_messages: Sequence[HistoryEntry],
        options: Mapping[str, Any],
    ) -> AgentResponse:
        function = self._functions.get(action.target)
        if function is None:
            raise NotImplementedError(f"Function action {action.target!r} is not registered")
        result = function(message, dict(action.payload or {}))
        if inspect.isawaitable(result):
            result = await result
        return normalize_response(result)


class IntentActionRouter:
    """Dispatches matched intents to action handlers keyed by action type."""

    def __init__(
        self,
        agent_lookup: Optional[AgentLookupPort] = None,
        pipelines: Optional[PipelinePort] = None,
        functions: Optional[dict[str, IntentFunction]] = None,
    ):
        self._handlers: dict[str, IntentActionHandler] = {}
        self._function_handler = FunctionActionHandler(functions)
        self.register_handler(ActionType.FUNCTION, self._function_handler)
        if agent_lookup is not None:
            self.register_handler(ActionType.AGENT, AgentActionHandler(agent_lookup))
        if pipelines is not None:
            self.register_handler(ActionType.PIPELINE, PipelineActionHandler(pipelines))

    def register_handler(self, action_type: ActionType | str, handler: IntentActionHandler) -> None:
        key = action_type.value if isinstance(action_type, ActionType) else action_type
        self._handlers[key] = handler

    def register_function(self, name: str, function: IntentFunction) -> None:
        self._function_handler.register(name, function)

    def has_handler(self, action_type: ActionType | str) -> bool:
        key = action_type.value if isinstance(action_type, ActionType) else action_type
        return key in self._handlers

    async def route_intent(
        self,
        match: IntentMatch,
        message: str,
        previous_messages: Sequence[HistoryEntry] = (),
        options: Optional[Mapping[str, Any]] = None,
    ) -> AgentResponse:
        """
        Execute the action of a matched intent.

        Args:
            match: The matched intent
            message: User message
            previous_messages: History visible to the action
            options: Routing context passed to pipeline actions

        Raises:
            ActionHandlerNotFoundError: If no handler exists for the action type
        """
        action = match.intent.action
        action_type = action.type.value if isinstance(action.type, ActionType) else str(action.type)
        handler = self._handlers.get(action_type)
        if handler is None:
            raise ActionHandlerNotFoundError(action_type)

        logger.debug(
            f"[IntentActionRouter] Routing intent {match.intent.id} to {action_type}:{action.target}"
        )
        return await handler(action, match, message, previous_messages, dict(options or {}))
