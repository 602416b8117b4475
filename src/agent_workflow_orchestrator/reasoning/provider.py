"""Abstract base class for reasoning services."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any


@dataclass(frozen=True, slots=True)
class AgentResponse:
    """Outcome of one agent invocation.

    On success `response` holds the backend's reply (typically a dict with a
    `message` and/or `result` and optional `metadata`); otherwise `error`
    carries the backend's own error text.
    """

    success: bool
    response: Any = None
    error: str | None = None

    @classmethod
    def ok(cls, response: Any) -> AgentResponse:
        return cls(success=True, response=response)

    @classmethod
    def failed(cls, error: str) -> AgentResponse:
        return cls(success=False, error=error)


class ReasoningService(ABC):
    """Abstract base class for the external AI-agent backend.

    This interface allows pluggable backends (HTTP agent service, OpenAI, etc.)
    """

    @abstractmethod
    def invoke(
        self,
        message: str,
        agent_id: str,
        user_id: str,
        session_id: str,
    ) -> AgentResponse:
        """Send a message to an agent.

        Args:
            message: The message for the agent.
            agent_id: External identifier of the agent.
            user_id: Caller identity forwarded to the backend.
            session_id: Conversation session forwarded to the backend.

        Returns:
            The agent's response. Implementations report backend failures as
            `AgentResponse(success=False, error=...)` instead of raising.
        """
        pass

    def close(self) -> None:
        """Release any underlying connections."""
