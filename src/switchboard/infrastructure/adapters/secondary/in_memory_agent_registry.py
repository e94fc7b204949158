"""
In-memory implementation of AgentLookupPort.

Agents are kept in registration order. Each agent may carry its own utterance
list, matched with the same exact/regex/semantic ranking as intents.
"""

import logging
from collections.abc import Iterable, Sequence
from typing import Optional

from switchboard.domain.exceptions import AgentNotFoundError
from switchboard.domain.model import SemanticMatcher, UtteranceMatch
from switchboard.domain.ports import AgentLookupPort, AgentProtocol
from switchboard.infrastructure.matching import match_utterances

logger = logging.getLogger(__name__)


class InMemoryAgentRegistry(AgentLookupPort):
    """Agent registry for embedding and tests."""

    def __init__(self, agents: Iterable[AgentProtocol] = ()):
        self._agents: dict[str, AgentProtocol] = {}
        self._utterances: dict[str, tuple[str, ...]] = {}
        for agent in agents:
            self.register(agent)

    def register(
        self, agent: AgentProtocol, utterances: Optional[Sequence[str]] = None
    ) -> None:
        """
        Register an agent.

        Args:
            agent: Agent to register
            utterances: Routing utterances; defaults to the agent's own
                ``utterances`` attribute when it has one

        Raises:
            ValueError: If an agent with the same id is already registered
        """
        if agent.id in self._agents:
            raise ValueError(f"Agent {agent.id} is already registered")
        if utterances is None:
            utterances = getattr(agent, "utterances", None) or ()
        self._agents[agent.id] = agent
        self._utterances[agent.id] = tuple(utterances)
        logger.debug(
            f"[AgentRegistry] Registered agent {agent.id} "
            f"({len(self._utterances[agent.id])} utterances)"
        )

    def unregister(self, agent_id: str) -> bool:
        self._utterances.pop(agent_id, None)
        return self._agents.pop(agent_id, None) is not None

    def get_agent(self, agent_id: str) -> AgentProtocol:
        agent = self._agents.get(agent_id)
        if agent is None:
            raise AgentNotFoundError(agent_id)
        return agent

    def get_agent_optional(self, agent_id: str) -> Optional[AgentProtocol]:
        return self._agents.get(agent_id)

    def list_agent_ids(self) -> list[str]:
        return list(self._agents)

    def utterances_for(self, agent_id: str) -> tuple[str, ...]:
        return self._utterances.get(agent_id, ())

    async def match_agent_by_utterance(
        self, message: str, semantic_matcher: Optional[SemanticMatcher] = None
    ) -> Optional[UtteranceMatch]:
        return await match_utterances(message, self._utterances, semantic_matcher)
