"""OpenAI-backed reasoning service implementation."""

from __future__ import annotations

import logging
import threading
from collections import OrderedDict
from typing import Any

from openai import OpenAI, OpenAIError

from agent_workflow_orchestrator.reasoning.provider import AgentResponse, ReasoningService

logger = logging.getLogger(__name__)

DEFAULT_MAX_CONVERSATIONS = 256


class OpenAIReasoningService(ReasoningService):
    """Serve agent calls from the OpenAI chat completions API.

    Each (agent, session) pair keeps its own message list so that repeated
    calls to the same agent within a session form one conversation. The agent
    identifier becomes the system prompt's persona. Only the most recently
    used `max_conversations` conversations are retained.
    """

    def __init__(
        self,
        *,
        api_key: str,
        model: str,
        temperature: float = 0.7,
        max_conversations: int = DEFAULT_MAX_CONVERSATIONS,
        client: OpenAI | None = None,
    ) -> None:
        """Initialize the OpenAI reasoning service.

        Args:
            api_key: OpenAI API key.
            model: Chat model name.
            temperature: Sampling temperature.
            max_conversations: Upper bound on retained (agent, session) histories.
            client: Optional pre-built client (useful in tests).

        Raises:
            ValueError: If API key is not provided or `max_conversations` < 1.
        """
        if max_conversations < 1:
            raise ValueError("max_conversations must be at least 1")
        if client is None and not api_key:
            raise ValueError("OPENAI_API_KEY is required")

        self.client = client or OpenAI(api_key=api_key)
        self.model = model
        self.temperature = temperature
        self.max_conversations = max_conversations
        self._conversations: OrderedDict[tuple[str, str], list[dict[str, str]]] = OrderedDict()
        self._lock = threading.Lock()

        logger.info("OpenAI reasoning service initialized", extra={"model": self.model})

    def _conversation(self, agent_id: str, session_id: str) -> list[dict[str, str]]:
        key = (agent_id, session_id)
        with self._lock:
            if key in self._conversations:
                self._conversations.move_to_end(key)
                return self._conversations[key]
            self._conversations[key] = [
                {"role": "system", "content": f"You are the agent '{agent_id}'."}
            ]
            while len(self._conversations) > self.max_conversations:
                self._conversations.popitem(last=False)
            return self._conversations[key]

    def invoke(
        self,
        message: str,
        agent_id: str,
        user_id: str,
        session_id: str,
    ) -> AgentResponse:
        conversation = self._conversation(agent_id, session_id)
        messages: list[dict[str, str]] = [*conversation, {"role": "user", "content": message}]

        logger.debug(
            "Generating chat completion",
            extra={"agent_id": agent_id, "message_count": len(messages)},
        )
        try:
            response: Any = self.client.chat.completions.create(
                model=self.model,
                messages=messages,  # type: ignore[arg-type]
                temperature=self.temperature,
                user=user_id,
            )
        except OpenAIError as e:
            logger.warning("OpenAI request failed", extra={"agent_id": agent_id})
            return AgentResponse.failed(str(e))

        content = response.choices[0].message.content or ""
        conversation.append({"role": "user", "content": message})
        conversation.append({"role": "assistant", "content": content})

        return AgentResponse.ok(
            {
                "message": content,
                "metadata": {
                    "model": self.model,
                    "agent_id": agent_id,
                    "session_id": session_id,
                },
            }
        )

    def close(self) -> None:
        with self._lock:
            self._conversations.clear()
