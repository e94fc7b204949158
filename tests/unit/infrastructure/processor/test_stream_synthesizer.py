"""
Unit tests for the stream synthesizer.

Tests for:
- Synthesized sequences for non-streaming responses
- Tapping native streams (renumbering, step flush, legacy tool-error)
- Handoff detection from tool calls at run-end
"""

import pytest

from switchboard.domain.events import (
    RunEndEvent,
    RunInput,
    RunStartEvent,
    StepCompleteEvent,
    StreamEventType,
    TokenEvent,
    ToolCallEvent,
    ToolErrorEvent,
    ToolErrorInfo,
    ToolResultEvent,
)
from switchboard.domain.model import (
    AgentResponse,
    HistoryEntry,
    MessageRole,
    ToolCallRecord,
    ToolError,
    ToolFailure,
    ToolSuccess,
)
from switchboard.infrastructure.processor import (
    HistoryPersistencePolicy,
    SequenceCounter,
    StreamSynthesizer,
    TapResult,
    generate_message_id,
    generate_run_id,
)


@pytest.fixture
def synthesizer(history):
    return StreamSynthesizer(HistoryPersistencePolicy(history), clock=lambda: 1000)


async def _native(*events):
    for event in events:
        yield event


async def _drain(iterator):
    return [event async for event in iterator]


def _run_start(run_id="run_native"):
    return RunStartEvent(
        run_id=run_id, sequence=99, started_at=1, input=RunInput(message="hi")
    )


# ============================================================================
# Identifiers
# ============================================================================


@pytest.mark.unit
class TestIdentifiers:
    def test_run_id_format(self):
        run_id = generate_run_id(123)

        prefix, ts, suffix = run_id.split("_")
        assert (prefix, ts) == ("run", "123")
        assert len(suffix) == 6

    def test_message_id_format(self):
        assert generate_message_id(5).startswith("msg_5_")
        assert len(generate_message_id(5).split("_")[2]) == 4

    def test_sequence_counter(self):
        counter = SequenceCounter()

        assert counter.last is None
        assert [counter.next(), counter.next()] == [0, 1]
        assert counter.last == 1


# ============================================================================
# Non-streaming synthesis
# ============================================================================


@pytest.mark.unit
class TestSynthesize:
    def test_text_only_response(self, synthesizer):
        events = synthesizer.synthesize(
            AgentResponse(content="Hello!"), message="hi", thread_id="c1"
        )

        assert [e.type for e in events] == [
            StreamEventType.RUN_START,
            StreamEventType.TOKEN,
            StreamEventType.RUN_END,
        ]
        assert [e.sequence for e in events] == [0, 1, 2]
        assert len({e.run_id for e in events}) == 1
        assert all(e.thread_id == "c1" for e in events)
        token = events[1]
        assert token.delta == token.accumulated == "Hello!"
        assert events[0].input.message == "hi"
        assert events[-1].result.content == "Hello!"

    def test_tool_calls_pair_up(self, synthesizer):
        response = AgentResponse(
            content="done",
            tool_calls=[
                ToolCallRecord(tool_id="search", args={"q": "a"}, result=[1], call_id="c-1"),
                ToolCallRecord(
                    tool_id="fetch", error=ToolError(code="E", message="failed")
                ),
            ],
        )

        events = synthesizer.synthesize(response, message="hi")

        types = [e.type for e in events]
        assert types.count(StreamEventType.RUN_START) == 1
        assert types.count(StreamEventType.RUN_END) == 1
        assert types.count(StreamEventType.TOOL_CALL) == 2
        assert types.count(StreamEventType.TOOL_RESULT) == 2
        sequences = [e.sequence for e in events]
        assert sequences == sorted(set(sequences))
        call, result = events[1], events[2]
        assert (call.tool_call_id, result.tool_call_id) == ("c-1", "c-1")
        assert result.output == [1]
        generated = events[3]
        assert generated.tool_call_id == "call_fetch_1000_1"
        assert events[4].error == ToolError(code="E", message="failed")

    def test_empty_content_has_no_token(self, synthesizer):
        events = synthesizer.synthesize(AgentResponse(), message="hi")

        assert [e.type for e in events] == [StreamEventType.RUN_START, StreamEventType.RUN_END]

    def test_shared_counter_continues(self, synthesizer):
        counter = SequenceCounter(start=5)

        events = synthesizer.synthesize(AgentResponse(content="x"), message="hi", counter=counter)

        assert [e.sequence for e in events] == [5, 6, 7]


# ============================================================================
# Native stream tap
# ============================================================================


@pytest.mark.unit
class TestTap:
    async def test_renumbers_and_tags_thread(self, synthesizer):
        counter = SequenceCounter(start=3)
        result = TapResult()
        native = _native(
            _run_start(),
            TokenEvent(run_id="run_native", sequence=50, message_id="m", delta="Hi", accumulated="Hi"),
            RunEndEvent(run_id="run_native", sequence=51, result=AgentResponse(content="Hi")),
        )

        events = await _drain(
            synthesizer.tap(native, conversation_id="c1", counter=counter, result=result)
        )

        assert [e.sequence for e in events] == [3, 4, 5]
        assert all(e.thread_id == "c1" for e in events)
        assert result.run_id == "run_native"
        assert result.response.content == "Hi"

    async def test_step_with_tool_calls_flushed_on_step_complete(self, synthesizer, history):
        native = _native(
            _run_start(),
            ToolCallEvent(
                run_id="r", message_id="m", step=0, tool_call_id="t1", tool_name="search",
                input={"q": "x"},
            ),
            ToolResultEvent(
                run_id="r", message_id="m", step=0, tool_call_id="t1", tool_name="search",
                output="found",
            ),
            StepCompleteEvent(run_id="r", step_index=0),
            TokenEvent(run_id="r", message_id="m", step=1, delta="Answer", accumulated="Answer"),
            RunEndEvent(run_id="r", result=AgentResponse(content="Answer")),
        )
        seen_after_step_complete = []

        async for event in synthesizer.tap(
            native, conversation_id="c1", counter=SequenceCounter(), result=TapResult()
        ):
            if event.type == StreamEventType.STEP_COMPLETE:
                seen_after_step_complete = await history.get_history("c1")

        assert len(seen_after_step_complete) == 2
        stored = await history.get_history("c1")
        assert [entry.role for entry in stored] == [
            MessageRole.ASSISTANT,
            MessageRole.TOOL,
            MessageRole.ASSISTANT,
        ]
        assert stored[1].content[0].outcome == ToolSuccess(output="found")
        assert stored[2] == HistoryEntry.assistant("Answer")

    async def test_legacy_tool_error_becomes_failure(self, synthesizer, history):
        native = _native(
            ToolCallEvent(run_id="r", message_id="m", tool_call_id="t1", tool_name="fetch"),
            ToolErrorEvent(
                run_id="r",
                message_id="m",
                tool_call_id="t1",
                tool_name="fetch",
                error=ToolErrorInfo(message="network down"),
            ),
            StepCompleteEvent(run_id="r", step_index=0),
        )

        await _drain(
            synthesizer.tap(
                native, conversation_id="c1", counter=SequenceCounter(), result=TapResult()
            )
        )

        stored = await history.get_history("c1")
        failure = stored[1].content[0].outcome
        assert isinstance(failure, ToolFailure)
        assert failure.error_code == "TOOL_EXECUTION_ERROR"
        assert failure.error_message == "network down"

    async def test_unflushed_tool_calls_flushed_at_end(self, synthesizer, history):
        native = _native(
            ToolCallEvent(run_id="r", message_id="m", tool_call_id="t1", tool_name="search"),
            ToolResultEvent(
                run_id="r", message_id="m", tool_call_id="t1", tool_name="search", output=1
            ),
        )

        await _drain(
            synthesizer.tap(
                native, conversation_id="c1", counter=SequenceCounter(), result=TapResult()
            )
        )

        assert len(await history.get_history("c1")) == 2

    async def test_agent_opt_out_skips_persistence(self, synthesizer, history, make_agent):
        native = _native(
            TokenEvent(run_id="r", message_id="m", delta="x", accumulated="x"),
        )

        await _drain(
            synthesizer.tap(
                native,
                conversation_id="c1",
                counter=SequenceCounter(),
                result=TapResult(),
                agent=make_agent("quiet", persist_history=False),
            )
        )

        assert await history.get_history("c1") == []

    async def test_handoff_tool_call_detected_at_run_end(self, synthesizer):
        result = TapResult()
        handoff_call = ToolCallRecord(
            tool_id="handoff_to_agent",
            args={"agentId": "billing"},
            result={"type": "handoff", "agentId": "billing", "message": "refund", "context": None},
        )
        native = _native(
            RunEndEvent(run_id="r", result=AgentResponse(tool_calls=[handoff_call])),
        )

        await _drain(
            synthesizer.tap(native, conversation_id="c1", counter=SequenceCounter(), result=result)
        )

        assert result.handoff.target_agent_id == "billing"
        assert result.handoff.message == "refund"

    def test_final_response_rebuilt_from_steps(self):
        result = TapResult()
        result.step(0).text = "Hello "
        result.step(1).text = "world"

        assert result.final_response().content == "Hello world"
        assert len(result.steps) == 2
