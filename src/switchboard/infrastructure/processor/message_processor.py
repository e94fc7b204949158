"""
Message Processor - entry point for handling one incoming message.

Wires the Router, Executor, Handoff Orchestrator, Stream Synthesizer and
History Persistence Policy together. Collaborators are passed explicitly via
``MessageProcessorDeps``; nothing is resolved from module globals.

Flow for a single message:
1. Validate the message and resolve the conversation id (before any side effect)
2. Fetch history, keeping only user/assistant/tool entries
3. Route; no route raises ``NoRouteFoundError``
4. Pipeline/intent routes already carry a response; it is persisted as is
5. Agent/default routes are executed, persisted, then followed through any
   handoff chain, each hop persisted with its composed message
"""

import logging
import time
from collections.abc import AsyncIterator, Awaitable, Callable, Mapping, Sequence
from dataclasses import dataclass
from typing import Any, Optional

from switchboard.configuration.config import Settings, get_settings
from switchboard.domain.events import StreamEvent
from switchboard.domain.exceptions import (
    ConversationIdRequiredError,
    ErrorContext,
    HandoffError,
    MessageProcessorError,
    MessageValidationError,
    NoRouteFoundError,
    RouteExecutionError,
)
from switchboard.domain.model import (
    CONVERSATIONAL_ROLES,
    DEFAULT_MAX_HANDOFF_DEPTH,
    AgentResponse,
    HandoffChain,
    HistoryEntry,
    MessageRole,
    ProcessOptions,
    ProcessResult,
    RouteResult,
    history_entry_from_dict,
)
from switchboard.domain.ports import (
    AgentProtocol,
    ConversationHistoryPort,
    NoopTracer,
    TracerPort,
    supports_streaming,
)
from switchboard.infrastructure.processor.executor import AgentExecutor, visible_history
from switchboard.infrastructure.processor.handoff import HandoffOrchestrator, PlannedHop
from switchboard.infrastructure.processor.history_policy import HistoryPersistencePolicy
from switchboard.infrastructure.processor.stream_result import StreamResult
from switchboard.infrastructure.processor.stream_synthesizer import (
    SequenceCounter,
    StreamSynthesizer,
    TapResult,
)
from switchboard.infrastructure.routing.router import RouteOptions, Router
from switchboard.infrastructure.telemetry.metrics import record_message_duration

logger = logging.getLogger(__name__)

HistoryProvider = Callable[[], Awaitable[list[HistoryEntry]]]


@dataclass(kw_only=True)
class MessageProcessorConfig:
    """Processor behavior knobs."""

    max_message_length: int = 1_000_000
    max_handoff_depth: int = DEFAULT_MAX_HANDOFF_DEPTH
    require_conversation_id: bool = False
    sequential_visibility: bool = True

    @classmethod
    def from_settings(cls, settings: Optional[Settings] = None) -> "MessageProcessorConfig":
        settings = settings or get_settings()
        return cls(
            max_message_length=settings.max_message_length,
            max_handoff_depth=settings.max_handoff_depth,
            require_conversation_id=settings.require_conversation_id,
            sequential_visibility=settings.sequential_visibility,
        )


@dataclass(kw_only=True)
class MessageProcessorDeps:
    """Collaborators of the message processor."""

    router: Router
    history: ConversationHistoryPort
    executor: Optional[AgentExecutor] = None
    tracer: Optional[TracerPort] = None


def validate_message(message: Any, max_length: int) -> str:
    """
    Check that a message is a non-empty string within the length limit.

    Raises:
        MessageValidationError: If the message is unusable
    """
    if not isinstance(message, str):
        raise MessageValidationError(
            "Message must be a string", details={"type": type(message).__name__}
        )
    if not message.strip():
        raise MessageValidationError("Message must not be empty")
    if len(message) > max_length:
        raise MessageValidationError(
            f"Message exceeds maximum length of {max_length} characters",
            details={"length": len(message), "max_length": max_length},
        )
    return message


def conversational_history(entries: Sequence[HistoryEntry]) -> list[HistoryEntry]:
    """Drop entries (such as system prompts) agents should not see as prior turns."""
    return [entry for entry in entries if entry.role in CONVERSATIONAL_ROLES]


class MessageProcessor:
    """Routes, executes and persists messages, with or without streaming."""

    def __init__(
        self,
        deps: MessageProcessorDeps,
        config: Optional[MessageProcessorConfig] = None,
    ):
        self._config = config or MessageProcessorConfig()
        self._router = deps.router
        self._history = deps.history
        self._tracer = deps.tracer or NoopTracer()
        self._executor = deps.executor or AgentExecutor(tracer=self._tracer)
        self._policy = HistoryPersistencePolicy(deps.history)
        self._synthesizer = StreamSynthesizer(self._policy)
        self._orchestrator = HandoffOrchestrator(
            agent_lookup=deps.router.agent_lookup,
            executor=self._executor,
            max_depth=self._config.max_handoff_depth,
            tracer=self._tracer,
        )

    @property
    def config(self) -> MessageProcessorConfig:
        return self._config

    @property
    def router(self) -> Router:
        return self._router

    @property
    def history(self) -> ConversationHistoryPort:
        return self._history

    # ------------------------------------------------------------------
    # Non-streaming
    # ------------------------------------------------------------------

    async def process_message(
        self, message: str, options: Optional[ProcessOptions] = None
    ) -> ProcessResult:
        """
        Process one message end to end.

        Args:
            message: Incoming user message
            options: Conversation id, visibility override and routing metadata

        Returns:
            Final response, conversation id, route and handoff chain

        Raises:
            MessageValidationError: If the message is empty or too long
            ConversationIdRequiredError: If an id is required and missing
            NoRouteFoundError: If nothing can handle the message
            RouteExecutionError: If the chosen handler fails
            HandoffError: If a handoff target fails
        """
        return await self._process(message, options or ProcessOptions())

    async def process_message_or_none(
        self, message: str, options: Optional[ProcessOptions] = None
    ) -> Optional[ProcessResult]:
        """Like ``process_message``, but returns None when no route exists."""
        try:
            return await self.process_message(message, options)
        except NoRouteFoundError:
            return None

    async def process_chat_message(
        self,
        messages: Sequence[Mapping[str, Any]],
        options: Optional[ProcessOptions] = None,
    ) -> ProcessResult:
        """
        Process an OpenAI-style message list.

        The last message must come from the user. Earlier messages are used
        as the previous messages instead of the stored history.
        """
        message, previous = self._split_chat_messages(messages)
        return await self._process(message, options or ProcessOptions(), previous)

    async def route_message(
        self,
        message: str,
        previous_messages: Sequence[HistoryEntry] = (),
        options: Optional[ProcessOptions] = None,
    ) -> RouteResult:
        """Routing only: no execution of agent routes and no persistence."""
        validate_message(message, self._config.max_message_length)
        options = options or ProcessOptions()
        return await self._router.route(
            message, previous_messages, self._route_options(options, options.conversation_id)
        )

    async def _process(
        self,
        message: str,
        options: ProcessOptions,
        previous_override: Optional[list[HistoryEntry]] = None,
    ) -> ProcessResult:
        started = time.perf_counter()
        validate_message(message, self._config.max_message_length)
        conversation_id = self._resolve_conversation_id(options)
        visibility = self._visibility(options)

        span = self._tracer.start_span(
            "message.process",
            {"conversation.id": conversation_id, "message.length": len(message)},
        )
        try:
            history_provider = await self._history_provider(conversation_id, previous_override)
            history = await history_provider()

            route = await self._router.route(
                message, history, self._route_options(options, conversation_id)
            )
            span.set_attribute("route.type", route.type.value)
            if route.is_none:
                raise NoRouteFoundError(
                    message,
                    context=ErrorContext(
                        operation="process_message", conversation_id=conversation_id
                    ),
                )

            if not route.needs_execution:
                response = route.response or AgentResponse()
                await self._policy.persist_exchange(conversation_id, message, response)
                result = ProcessResult(response=response, conversation_id=conversation_id, route=route)
            else:
                result = await self._execute_agent_route(
                    route, message, history, history_provider, conversation_id, visibility
                )

            span.set_attribute("agent.final", result.final_agent_id)
            span.set_attribute("handoff.depth", result.handoff_chain.depth)
            span.set_status(True)
            return result
        except Exception as e:
            span.record_exception(e)
            span.set_status(False, str(e))
            raise
        finally:
            span.end()
            record_message_duration((time.perf_counter() - started) * 1000, "process")

    async def _execute_agent_route(
        self,
        route: RouteResult,
        message: str,
        history: list[HistoryEntry],
        history_provider: HistoryProvider,
        conversation_id: str,
        visibility: bool,
    ) -> ProcessResult:
        agent = route.agent
        response = await self._executor.execute(
            agent, message, history, sequential_visibility=visibility, route_type=route.type.value
        )
        await self._policy.persist_exchange(conversation_id, message, response, agent)

        async def persist_hop(hop: PlannedHop, hop_response: AgentResponse) -> None:
            await self._policy.persist_exchange(conversation_id, hop.message, hop_response, hop.target)

        outcome = await self._orchestrator.run(
            response,
            agent,
            message,
            history_provider,
            sequential_visibility=visibility,
            on_hop=persist_hop,
        )
        return ProcessResult(
            response=outcome.response,
            conversation_id=conversation_id,
            route=route,
            handoff_chain=outcome.chain,
        )

    # ------------------------------------------------------------------
    # Streaming
    # ------------------------------------------------------------------

    def stream_message(
        self, message: str, options: Optional[ProcessOptions] = None
    ) -> AsyncIterator[StreamEvent]:
        """
        Process one message as a single sequence-numbered event stream.

        Non-streaming agents have their response synthesized into events;
        streaming agents have their native events renumbered and forwarded.
        Handoff hops are announced with ``handoff-start`` and continue on the
        same sequence.

        Raises:
            Same errors as ``process_message``; validation and conversation id
            errors are raised before the first event
        """
        return self._stream(message, options or ProcessOptions())

    def stream_chat_message(
        self,
        messages: Sequence[Mapping[str, Any]],
        options: Optional[ProcessOptions] = None,
    ) -> AsyncIterator[StreamEvent]:
        """Streaming counterpart of ``process_chat_message``."""
        message, previous = self._split_chat_messages(messages)
        return self._stream(message, options or ProcessOptions(), previous)

    async def _stream(
        self,
        message: str,
        options: ProcessOptions,
        previous_override: Optional[list[HistoryEntry]] = None,
    ) -> AsyncIterator[StreamEvent]:
        validate_message(message, self._config.max_message_length)
        conversation_id = self._resolve_conversation_id(options)
        visibility = self._visibility(options)
        started = time.perf_counter()

        history_provider = await self._history_provider(conversation_id, previous_override)
        history = await history_provider()
        route = await self._router.route(
            message, history, self._route_options(options, conversation_id)
        )
        if route.is_none:
            raise NoRouteFoundError(
                message,
                context=ErrorContext(operation="stream_message", conversation_id=conversation_id),
            )

        counter = SequenceCounter()
        try:
            if not route.needs_execution:
                response = route.response or AgentResponse()
                await self._policy.persist_exchange(conversation_id, message, response)
                for event in self._synthesizer.synthesize(
                    response,
                    message=message,
                    previous_messages=history,
                    thread_id=conversation_id,
                    counter=counter,
                ):
                    yield event
                return

            async for event in self._stream_agent_chain(
                route.agent,
                message,
                history,
                history_provider,
                conversation_id,
                visibility,
                counter,
                route_type=route.type.value,
            ):
                yield event
        finally:
            record_message_duration((time.perf_counter() - started) * 1000, "stream")

    def stream_result(
        self, message: str, options: Optional[ProcessOptions] = None
    ) -> StreamResult:
        """Wrap ``stream_message`` in a single-consumption ``StreamResult``."""
        validate_message(message, self._config.max_message_length)
        return StreamResult(self.stream_message(message, options))

    async def _stream_agent_chain(
        self,
        agent: AgentProtocol,
        message: str,
        history: list[HistoryEntry],
        history_provider: HistoryProvider,
        conversation_id: str,
        visibility: bool,
        counter: SequenceCounter,
        route_type: str = "agent",
    ) -> AsyncIterator[StreamEvent]:
        chain = HandoffChain(max_depth=self._orchestrator.max_depth)
        current_agent = agent
        current_message = message
        hop: Optional[PlannedHop] = None
        hop_route_type = route_type

        while True:
            await self._policy.persist_user_message(conversation_id, current_message, current_agent)
            tap = TapResult()
            try:
                async for event in self._run_hop(
                    current_agent,
                    current_message,
                    history,
                    conversation_id,
                    visibility,
                    counter,
                    tap,
                    route_type=hop_route_type,
                ):
                    yield event
            except Exception as e:
                if hop is not None:
                    raise HandoffError(hop.state.from_agent_id, hop.state.to_agent_id, cause=e) from e
                if isinstance(e, MessageProcessorError):
                    raise
                raise RouteExecutionError(hop_route_type, cause=e) from e

            handoff = tap.handoff
            if handoff is None:
                return
            if self._orchestrator.depth_exhausted(chain.depth):
                chain.max_depth_reached = True
                self._orchestrator.warn_max_depth(current_agent.id)
                return

            hop = self._orchestrator.plan_hop(handoff, current_agent.id, message, chain.depth + 1)
            if hop is None:
                chain.stopped_on_missing_agent = handoff.target_agent_id
                return

            chain.record(hop.state)
            self._orchestrator.start_hop(hop)
            yield self._synthesizer.handoff_start(
                hop, run_id=tap.run_id or "", thread_id=conversation_id, counter=counter
            )
            history = await history_provider()
            current_agent = hop.target
            current_message = hop.message
            hop_route_type = "handoff"

    async def _run_hop(
        self,
        agent: AgentProtocol,
        message: str,
        history: list[HistoryEntry],
        conversation_id: str,
        visibility: bool,
        counter: SequenceCounter,
        tap: TapResult,
        route_type: str = "agent",
    ) -> AsyncIterator[StreamEvent]:
        """Events of one hop; fills ``tap`` with its run id and final response."""
        if supports_streaming(agent):
            native = agent.stream_events(message, visible_history(history, visibility))
            async for event in self._synthesizer.tap(
                native, conversation_id=conversation_id, counter=counter, result=tap, agent=agent
            ):
                yield event
            if tap.response is None:
                tap.response = tap.final_response()
            return

        response = await self._executor.execute(
            agent, message, history, sequential_visibility=visibility, route_type=route_type
        )
        await self._policy.persist_response(conversation_id, response, agent)
        events = self._synthesizer.synthesize(
            response,
            message=message,
            previous_messages=visible_history(history, visibility),
            thread_id=conversation_id,
            counter=counter,
        )
        tap.run_id = events[0].run_id
        tap.response = response
        for event in events:
            yield event

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _resolve_conversation_id(self, options: ProcessOptions) -> str:
        if options.conversation_id:
            return options.conversation_id
        if self._config.require_conversation_id:
            raise ConversationIdRequiredError()
        conversation_id = self._history.generate_conversation_id()
        logger.debug(f"[MessageProcessor] Generated conversation id {conversation_id}")
        return conversation_id

    def _visibility(self, options: ProcessOptions) -> bool:
        if options.sequential_visibility is None:
            return self._config.sequential_visibility
        return options.sequential_visibility

    def _route_options(self, options: ProcessOptions, conversation_id: Optional[str]) -> RouteOptions:
        return RouteOptions(
            conversation_id=conversation_id,
            sequential_visibility=self._visibility(options),
            metadata=dict(options.metadata),
        )

    async def _history_provider(
        self, conversation_id: str, previous_override: Optional[list[HistoryEntry]]
    ) -> HistoryProvider:
        """
        Build the history fetcher used before the first execution and each hop.

        With an override (chat-style input) the agent sees the supplied
        messages plus whatever this call has persisted since it started.
        """
        if previous_override is None:

            async def fetch() -> list[HistoryEntry]:
                return conversational_history(await self._history.get_history(conversation_id))

            return fetch

        baseline = len(await self._history.get_history(conversation_id))

        async def fetch_with_override() -> list[HistoryEntry]:
            stored = await self._history.get_history(conversation_id)
            return conversational_history(list(previous_override) + list(stored[baseline:]))

        return fetch_with_override

    @staticmethod
    def _split_chat_messages(
        messages: Sequence[Mapping[str, Any]],
    ) -> tuple[str, list[HistoryEntry]]:
        if not messages:
            raise MessageValidationError("Messages must not be empty")
        try:
            entries = [history_entry_from_dict(item) for item in messages]
        except (KeyError, ValueError, TypeError) as e:
            raise MessageValidationError(f"Invalid chat message: {e}") from e

        last = entries[-1]
        if last.role != MessageRole.USER:
            raise MessageValidationError(
                "Last message must be from the user", details={"role": last.role.value}
            )
        return last.text, entries[:-1]
