"""HTTP agent backend implementation."""

from __future__ import annotations

import logging
from typing import Any

import requests

from agent_workflow_orchestrator.reasoning.provider import AgentResponse, ReasoningService

logger = logging.getLogger(__name__)

_FALLBACK_TEXT = "I processed your request successfully."


class HttpReasoningService(ReasoningService):
    """Client for an agent backend exposing `POST {base}/agent/{agent_id}/chat`."""

    def __init__(
        self,
        *,
        base_url: str,
        api_key: str,
        timeout_seconds: float = 60.0,
        session: requests.Session | None = None,
    ) -> None:
        """Initialize the HTTP reasoning service.

        Args:
            base_url: Backend base URL.
            api_key: Key sent as the `x-api-key` header.
            timeout_seconds: Per-request timeout.
            session: Optional pre-configured session (useful in tests).

        Raises:
            ValueError: If the URL or API key is missing.
        """
        if not base_url.strip():
            raise ValueError("REASONING_SERVICE_URL is required")
        if not api_key.strip():
            raise ValueError("REASONING_SERVICE_API_KEY is required")

        self._base_url = base_url.rstrip("/")
        self._timeout = timeout_seconds
        self._session = session or requests.Session()
        self._session.headers.update(
            {
                "x-api-key": api_key,
                "Content-Type": "application/json",
                "User-Agent": "agent-workflow-orchestrator",
            }
        )

    def _chat_url(self, agent_id: str) -> str:
        if not agent_id.strip():
            raise ValueError("agent_id is required")
        return f"{self._base_url}/agent/{agent_id}/chat"

    def invoke(
        self,
        message: str,
        agent_id: str,
        user_id: str,
        session_id: str,
    ) -> AgentResponse:
        payload = {"user_id": user_id, "session_id": session_id, "message": message}
        try:
            resp = self._session.post(self._chat_url(agent_id), json=payload, timeout=self._timeout)
        except (requests.RequestException, ValueError) as e:
            logger.warning("Agent backend unreachable", extra={"agent_id": agent_id})
            return AgentResponse.failed(str(e))

        if not resp.ok:
            logger.warning(
                "Agent backend returned an error",
                extra={"agent_id": agent_id, "status_code": resp.status_code},
            )
            return AgentResponse.failed(f"Agent backend error: {resp.status_code} {resp.reason}")

        try:
            data: Any = resp.json()
        except ValueError:
            data = resp.text

        return AgentResponse.ok(
            {
                "message": _response_text(data),
                "result": data,
                "metadata": {
                    "agent_id": agent_id,
                    "user_id": user_id,
                    "session_id": session_id,
                },
            }
        )

    def close(self) -> None:
        self._session.close()


def _response_text(data: Any) -> str:
    if isinstance(data, str) and data:
        return data
    if isinstance(data, dict):
        for key in ("response", "message"):
            value = data.get(key)
            if isinstance(value, str) and value:
                return value
    return _FALLBACK_TEXT
