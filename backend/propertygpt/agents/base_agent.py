"""
Base agent class providing common functionality for all agents.
"""

import logging
from abc import ABC, abstractmethod

from ..config import get_settings
from ..models.state import ChatTurnState


class BaseAgent(ABC):
    """
    Abstract base class for the workflow agents.

    Each agent reads the shared turn state and writes its own results back.
    """

    def __init__(self, agent_name: str):
        """
        Initialize the agent.

        Args:
            agent_name: Name of the agent (used in logs and error reporting)
        """
        self.agent_name = agent_name
        self._settings = get_settings()
        self.logger = logging.getLogger(f"{__package__}.{agent_name}")

    def fail(self, state: ChatTurnState, error: Exception) -> ChatTurnState:
        """Record an agent failure on the state without aborting the turn."""
        self.logger.error(f"{self.agent_name} failed: {error}", exc_info=True)
        state["error"] = str(error)
        state["error_agent"] = self.agent_name
        return state

    @abstractmethod
    def process(self, state: ChatTurnState) -> ChatTurnState:
        """
        Process the current state and return updated state.

        Args:
            state: Current workflow state

        Returns:
            Updated workflow state
        """
        pass

    def __call__(self, state: ChatTurnState) -> ChatTurnState:
        """Allow agents to be called directly."""
        return self.process(state)
