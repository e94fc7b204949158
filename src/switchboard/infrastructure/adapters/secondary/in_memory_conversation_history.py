"""In-memory implementation of ConversationHistoryPort."""

import uuid
from collections import defaultdict

from switchboard.domain.model import HistoryEntry
from switchboard.domain.ports import ConversationHistoryPort


class InMemoryConversationHistory(ConversationHistoryPort):
    """Conversation history kept in process memory. Not shared across workers."""

    def __init__(self) -> None:
        self._conversations: dict[str, list[HistoryEntry]] = defaultdict(list)

    def generate_conversation_id(self) -> str:
        return f"conv_{uuid.uuid4().hex}"

    async def get_history(self, conversation_id: str) -> list[HistoryEntry]:
        return list(self._conversations.get(conversation_id, ()))

    async def add_message(self, conversation_id: str, entry: HistoryEntry) -> None:
        self._conversations[conversation_id].append(entry)

    async def clear(self, conversation_id: str) -> None:
        self._conversations.pop(conversation_id, None)

    def conversation_ids(self) -> list[str]:
        return list(self._conversations)
