"""Rule Router Port - Domain interface for rule-based routing."""

from typing import Any, Protocol, runtime_checkable

from switchboard.domain.model import RoutingDecision


@runtime_checkable
class RuleRouterPort(Protocol):
    """
    Protocol for a rule-based router.

    When configured, the router delegates the whole decision to it. The rule
    router applies its own fallback and reports it with ``fallback=True``.
    """

    async def route(self, message: str, metadata: dict[str, Any]) -> RoutingDecision:
        """
        Choose an agent for a message.

        Args:
            message: Incoming message
            metadata: Message metadata used by metadata filters

        Returns:
            Routing decision naming an agent id
        """
        ...
