"""Stream synthesizer.

Produces one flat, sequence-numbered event stream per top-level message:

- Non-streaming agents: the single response is turned into a deterministic
  event sequence (run-start, tool-call/tool-result per call, token, run-end).
- Streaming agents: native events are renumbered and tapped. Per-step state
  (text and tool calls) is tracked so a step that recorded tool calls is
  flushed to history as soon as its ``step-complete`` arrives.

A single ``SequenceCounter`` is shared across every hop of a handoff chain so
numbering never restarts.
"""

import logging
import random
import string
from collections.abc import AsyncIterator, Callable, Sequence
from dataclasses import dataclass, field
from typing import Optional

from switchboard.domain.events import (
    HandoffStartEvent,
    RunEndEvent,
    RunInput,
    RunStartEvent,
    StepCompleteEvent,
    StreamEvent,
    TokenEvent,
    ToolCallEvent,
    ToolErrorEvent,
    ToolResultEvent,
    now_ms,
)
from switchboard.domain.model import (
    AgentResponse,
    HandoffRequest,
    HistoryEntry,
    ToolCallRecord,
    ToolError,
)
from switchboard.domain.ports import AgentProtocol
from switchboard.infrastructure.processor.handoff import PlannedHop
from switchboard.infrastructure.processor.history_policy import HistoryPersistencePolicy
from switchboard.infrastructure.tools.handoff import handoff_from_tool_calls

logger = logging.getLogger(__name__)

LEGACY_TOOL_ERROR_CODE = "TOOL_EXECUTION_ERROR"

_ID_ALPHABET = string.ascii_lowercase + string.digits


def _suffix(length: int) -> str:
    return "".join(random.choices(_ID_ALPHABET, k=length))


def generate_run_id(timestamp_ms: Optional[int] = None) -> str:
    return f"run_{timestamp_ms if timestamp_ms is not None else now_ms()}_{_suffix(6)}"


def generate_message_id(timestamp_ms: Optional[int] = None) -> str:
    return f"msg_{timestamp_ms if timestamp_ms is not None else now_ms()}_{_suffix(4)}"


class SequenceCounter:
    """Strictly increasing sequence numbers for one outward stream."""

    def __init__(self, start: int = 0):
        self._next = start
        self._last: Optional[int] = None

    def next(self) -> int:
        value = self._next
        self._next += 1
        self._last = value
        return value

    @property
    def last(self) -> Optional[int]:
        return self._last


# ============================================================================
# Native stream tap state
# ============================================================================


@dataclass
class StepState:
    """Accumulated output of one step of a native stream."""

    text: str = ""
    tool_calls: list[ToolCallRecord] = field(default_factory=list)
    flushed: bool = False

    def find_call(self, call_id: str) -> Optional[ToolCallRecord]:
        return next((call for call in self.tool_calls if call.call_id == call_id), None)


@dataclass
class TapResult:
    """What a tapped native stream produced."""

    run_id: Optional[str] = None
    response: Optional[AgentResponse] = None
    steps: list[StepState] = field(default_factory=list)

    @property
    def handoff(self) -> Optional[HandoffRequest]:
        return self.response.handoff if self.response is not None else None

    def step(self, index: int) -> StepState:
        """State for a step index, growing the step list as needed."""
        while len(self.steps) <= index:
            self.steps.append(StepState())
        return self.steps[index]

    def final_response(self) -> AgentResponse:
        """The run-end result, or a response rebuilt from step state."""
        if self.response is not None:
            return self.response
        return AgentResponse(
            content="".join(step.text for step in self.steps),
            tool_calls=[call for step in self.steps for call in step.tool_calls],
        )


class StreamSynthesizer:
    """Builds synthetic event sequences and taps native agent streams."""

    def __init__(
        self,
        history_policy: HistoryPersistencePolicy,
        clock: Callable[[], int] = now_ms,
    ):
        self._history_policy = history_policy
        self._clock = clock

    # ------------------------------------------------------------------
    # Non-streaming path
    # ------------------------------------------------------------------

    def synthesize(
        self,
        response: AgentResponse,
        *,
        message: str,
        previous_messages: Sequence[HistoryEntry] = (),
        thread_id: Optional[str] = None,
        counter: Optional[SequenceCounter] = None,
        run_id: Optional[str] = None,
    ) -> list[StreamEvent]:
        """
        Turn a single response into the canonical event sequence.

        Args:
            response: The finished response
            message: Message the response answers
            previous_messages: History the agent saw
            thread_id: Conversation id attached to every event
            counter: Shared sequence counter (a fresh one when omitted)
            run_id: Run id to use (generated when omitted)

        Returns:
            run-start, tool-call/tool-result per tool call, token (when there
            is content), run-end
        """
        counter = counter or SequenceCounter()
        started_at = self._clock()
        run_id = run_id or generate_run_id(started_at)
        message_id = generate_message_id(started_at)

        events: list[StreamEvent] = [
            RunStartEvent(
                sequence=counter.next(),
                emitted_at=started_at,
                run_id=run_id,
                thread_id=thread_id,
                started_at=started_at,
                input=RunInput(message=message, previous_messages=tuple(previous_messages)),
            )
        ]

        for index, call in enumerate(response.tool_calls):
            call_id = call.call_id or f"call_{call.tool_id}_{started_at}_{index}"
            events.append(
                ToolCallEvent(
                    sequence=counter.next(),
                    emitted_at=started_at,
                    run_id=run_id,
                    thread_id=thread_id,
                    message_id=message_id,
                    step=0,
                    tool_call_id=call_id,
                    tool_name=call.tool_id,
                    input=dict(call.args),
                    started_at=started_at,
                )
            )
            completed_at = self._clock()
            events.append(
                ToolResultEvent(
                    sequence=counter.next(),
                    emitted_at=completed_at,
                    run_id=run_id,
                    thread_id=thread_id,
                    message_id=message_id,
                    step=0,
                    tool_call_id=call_id,
                    tool_name=call.tool_id,
                    output=call.output,
                    completed_at=completed_at,
                    duration_ms=max(0, completed_at - started_at),
                    error=call.error,
                )
            )

        if response.content:
            events.append(
                TokenEvent(
                    sequence=counter.next(),
                    emitted_at=self._clock(),
                    run_id=run_id,
                    thread_id=thread_id,
                    message_id=message_id,
                    step=0,
                    delta=response.content,
                    accumulated=response.content,
                )
            )

        finished_at = self._clock()
        events.append(
            RunEndEvent(
                sequence=counter.next(),
                emitted_at=finished_at,
                run_id=run_id,
                thread_id=thread_id,
                finished_at=finished_at,
                duration_ms=max(0, finished_at - started_at),
                result=response,
            )
        )
        return events

    def handoff_start(
        self,
        hop: PlannedHop,
        *,
        run_id: str,
        thread_id: Optional[str],
        counter: SequenceCounter,
    ) -> HandoffStartEvent:
        """Event announcing the next hop of a handoff chain."""
        return HandoffStartEvent(
            sequence=counter.next(),
            emitted_at=self._clock(),
            run_id=run_id,
            thread_id=thread_id,
            from_agent_id=hop.state.from_agent_id,
            to_agent_id=hop.state.to_agent_id,
            message=hop.message,
            context=hop.state.carried_context,
            handoff_depth=hop.state.depth,
        )

    # ------------------------------------------------------------------
    # Streaming path
    # ------------------------------------------------------------------

    async def tap(
        self,
        native_events: AsyncIterator[StreamEvent],
        *,
        conversation_id: str,
        counter: SequenceCounter,
        result: TapResult,
        agent: Optional[AgentProtocol] = None,
    ) -> AsyncIterator[StreamEvent]:
        """
        Renumber and forward a native event stream while tracking step state.

        Steps that recorded tool calls are flushed to history on their
        ``step-complete``. When the stream ends, any step not yet flushed
        (trailing text, or tool calls without a step-complete) is flushed.

        Args:
            native_events: The agent's own events
            conversation_id: Conversation to persist into (also the thread id)
            counter: Shared sequence counter
            result: Filled with the run id, step state and final response
            agent: Agent whose ``persist_history`` flag gates persistence

        Yields:
            The native events, renumbered and tagged with the thread id
        """
        async for event in native_events:
            await self._track(event, conversation_id, result, agent)
            result.run_id = event.run_id
            yield event.with_sequence(counter.next(), thread_id=conversation_id)

        await self._flush_remaining(conversation_id, result, agent)

    async def _track(
        self,
        event: StreamEvent,
        conversation_id: str,
        result: TapResult,
        agent: Optional[AgentProtocol],
    ) -> None:
        if isinstance(event, TokenEvent):
            result.step(event.step).text = event.accumulated

        elif isinstance(event, ToolCallEvent):
            result.step(event.step).tool_calls.append(
                ToolCallRecord(
                    tool_id=event.tool_name,
                    args=dict(event.input),
                    call_id=event.tool_call_id,
                )
            )

        elif isinstance(event, ToolResultEvent):
            call = self._ensure_call(result.step(event.step), event.tool_call_id, event.tool_name)
            call.result = event.output
            if event.error is not None:
                call.error = event.error

        elif isinstance(event, ToolErrorEvent):
            call = self._ensure_call(result.step(event.step), event.tool_call_id, event.tool_name)
            call.result = event.error.message
            call.error = ToolError(
                code=event.error.name or LEGACY_TOOL_ERROR_CODE,
                message=event.error.message,
            )

        elif isinstance(event, StepCompleteEvent):
            step = result.step(event.step_index)
            if step.tool_calls and not step.flushed:
                await self._history_policy.persist_step(
                    conversation_id, step.text, step.tool_calls, agent
                )
                step.flushed = True

        elif isinstance(event, RunEndEvent):
            result.response = event.result
            if event.result.handoff is None:
                event.result.handoff = handoff_from_tool_calls(
                    event.result.tool_calls
                    or [call for step in result.steps for call in step.tool_calls]
                )
            if event.result.handoff is not None:
                logger.debug(
                    f"[StreamSynthesizer] Run {event.run_id} requested handoff to "
                    f"{event.result.handoff.target_agent_id}"
                )

    async def _flush_remaining(
        self, conversation_id: str, result: TapResult, agent: Optional[AgentProtocol]
    ) -> None:
        for step in result.steps:
            if step.flushed or (not step.text and not step.tool_calls):
                continue
            await self._history_policy.persist_step(
                conversation_id, step.text, step.tool_calls, agent
            )
            step.flushed = True

    @staticmethod
    def _ensure_call(step: StepState, call_id: str, tool_name: str) -> ToolCallRecord:
        call = step.find_call(call_id)
        if call is None:
            call = ToolCallRecord(tool_id=tool_name, call_id=call_id)
            step.tool_calls.append(call)
        return call
