"""Conversation History Port - Domain interface for conversation history."""

from typing import Protocol, runtime_checkable

from switchboard.domain.model import HistoryEntry


@runtime_checkable
class ConversationHistoryPort(Protocol):
    """
    Protocol for the external conversation history store.

    The store is the only entity that outlives a single call.
    """

    def generate_conversation_id(self) -> str:
        """Create a new conversation identifier."""
        ...

    async def get_history(self, conversation_id: str) -> list[HistoryEntry]:
        """Return the ordered entries of a conversation."""
        ...

    async def add_message(self, conversation_id: str, entry: HistoryEntry) -> None:
        """Append one entry to a conversation."""
        ...
