"""History persistence policy.

Decides what part of an exchange is written to conversation history, and in
what shape, once a hop (or a streaming step) is finalized:

- the inbound message (user text, or the composed handoff message) first;
- with realized tool calls: one assistant entry holding the text plus one
  tool-call part per call, then one tool entry per realized call shaped as
  ``ToolSuccess`` or ``ToolFailure``;
- otherwise, text content becomes a single assistant text entry.

The tool-call shape and a plain assistant text entry are never both written
for the same hop.
"""

import logging
from collections.abc import Callable, Sequence
from typing import Optional

from switchboard.domain.events import now_ms
from switchboard.domain.model import (
    AgentResponse,
    HistoryEntry,
    MessagePart,
    MessageRole,
    TextPart,
    ToolCallPart,
    ToolCallRecord,
    ToolFailure,
    ToolOutcomeRecord,
    ToolResultPart,
    ToolSuccess,
)
from switchboard.domain.ports import AgentProtocol, ConversationHistoryPort, should_persist_history

logger = logging.getLogger(__name__)


def tool_outcome(call: ToolCallRecord) -> ToolOutcomeRecord:
    """Shape a realized tool call as a success or failure record."""
    if call.error is not None:
        return ToolFailure(
            error_code=call.error.code,
            error_message=call.error.message,
            output=call.output,
        )
    return ToolSuccess(output=call.output)


def tool_call_id(call: ToolCallRecord, timestamp_ms: int, index: int) -> str:
    return call.call_id or f"call_{call.tool_id}_{timestamp_ms}_{index}"


def build_response_entries(
    content: str,
    tool_calls: Sequence[ToolCallRecord],
    timestamp_ms: Optional[int] = None,
) -> list[HistoryEntry]:
    """
    Plan the history entries for one finalized response or step.

    Args:
        content: Text produced by the agent
        tool_calls: Tool calls made while producing it
        timestamp_ms: Used to derive tool call ids the agent did not supply

    Returns:
        Entries to append, in order (empty when there is nothing to record)
    """
    if any(call.has_result for call in tool_calls):
        ts = timestamp_ms if timestamp_ms is not None else now_ms()
        ids = [tool_call_id(call, ts, index) for index, call in enumerate(tool_calls)]

        parts: list[MessagePart] = []
        if content:
            parts.append(TextPart(text=content))
        parts.extend(
            ToolCallPart(tool_call_id=call_id, tool_name=call.tool_id, input=dict(call.args))
            for call_id, call in zip(ids, tool_calls)
        )
        entries = [HistoryEntry(role=MessageRole.ASSISTANT, content=tuple(parts))]

        for call_id, call in zip(ids, tool_calls):
            if not call.has_result:
                continue
            entries.append(
                HistoryEntry(
                    role=MessageRole.TOOL,
                    content=(
                        ToolResultPart(
                            tool_call_id=call_id,
                            tool_name=call.tool_id,
                            outcome=tool_outcome(call),
                        ),
                    ),
                )
            )
        return entries

    if content:
        return [HistoryEntry.assistant(content)]
    return []


class HistoryPersistencePolicy:
    """Applies the persistence rules against a conversation history store."""

    def __init__(
        self,
        history: ConversationHistoryPort,
        clock: Callable[[], int] = now_ms,
    ):
        self._history = history
        self._clock = clock

    @property
    def history(self) -> ConversationHistoryPort:
        return self._history

    async def persist_user_message(
        self, conversation_id: str, message: str, agent: Optional[AgentProtocol] = None
    ) -> bool:
        """Persist the inbound (or composed handoff) message. Returns whether it was written."""
        if not should_persist_history(agent):
            return False
        await self._history.add_message(conversation_id, HistoryEntry.user(message))
        return True

    async def persist_response(
        self,
        conversation_id: str,
        response: AgentResponse,
        agent: Optional[AgentProtocol] = None,
    ) -> list[HistoryEntry]:
        """Persist a finalized response. Returns the entries written."""
        return await self.persist_step(conversation_id, response.content, response.tool_calls, agent)

    async def persist_step(
        self,
        conversation_id: str,
        content: str,
        tool_calls: Sequence[ToolCallRecord],
        agent: Optional[AgentProtocol] = None,
    ) -> list[HistoryEntry]:
        """Persist one streaming step (text plus the tool calls it recorded)."""
        if not should_persist_history(agent):
            return []
        entries = build_response_entries(content, tool_calls, self._clock())
        for entry in entries:
            await self._history.add_message(conversation_id, entry)
        if entries:
            logger.debug(
                f"[HistoryPolicy] Persisted {len(entries)} entries to {conversation_id}"
            )
        return entries

    async def persist_exchange(
        self,
        conversation_id: str,
        message: str,
        response: AgentResponse,
        agent: Optional[AgentProtocol] = None,
    ) -> list[HistoryEntry]:
        """Persist the inbound message followed by the response."""
        if not should_persist_history(agent):
            return []
        await self.persist_user_message(conversation_id, message, agent)
        written = [HistoryEntry.user(message)]
        written.extend(await self.persist_response(conversation_id, response, agent))
        return written
