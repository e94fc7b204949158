"""Intent definitions."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class ActionType(str, Enum):
    """What an intent does once it wins."""

    AGENT = "agent"
    FUNCTION = "function"
    PIPELINE = "pipeline"


@dataclass(frozen=True, kw_only=True)
class IntentAction:
    """Action executed when an intent is matched."""

    type: ActionType
    target: str
    payload: dict[str, Any] | None = None


@dataclass(frozen=True, kw_only=True)
class Intent:
    """
    A named mapping from utterances to an action.

    Attributes:
        id: Unique intent identifier
        utterances: Example phrases; each is also tried as a regex
        action: What to do when the intent wins
        description: Optional human-readable description
    """

    id: str
    utterances: tuple[str, ...] = field(default_factory=tuple)
    action: IntentAction
    description: str | None = None

    def __post_init__(self) -> None:
        if not self.id:
            raise ValueError("Intent id must not be empty")
        # Accept any iterable of utterances while staying immutable
        object.__setattr__(self, "utterances", tuple(self.utterances))
