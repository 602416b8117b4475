"""In-process Slack integration over the Slack Web API."""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import Any

import requests

logger = logging.getLogger(__name__)


class SlackApiError(RuntimeError):
    """The Web API answered with `ok: false`."""


def _limit(params: dict[str, Any], default: int) -> int:
    try:
        return max(1, int(params.get("limit", default)))
    except (TypeError, ValueError):
        return default


class SlackIntegration:
    """Actions: send_message, create_channel, list_channels, get_messages."""

    def __init__(
        self,
        *,
        token: str,
        base_url: str = "https://slack.com/api",
        timeout_seconds: float = 60.0,
        session: requests.Session | None = None,
    ) -> None:
        if not token.strip():
            raise ValueError("Slack token is required")
        self._base_url = base_url.rstrip("/")
        self._timeout = timeout_seconds
        self._session = session or requests.Session()
        self._session.headers.update(
            {
                "Authorization": f"Bearer {token}",
                "User-Agent": "agent-workflow-orchestrator",
            }
        )
        self._actions: dict[str, Callable[[dict[str, Any]], Any]] = {
            "send_message": self.send_message,
            "create_channel": self.create_channel,
            "list_channels": self.list_channels,
            "get_messages": self.get_messages,
        }

    def execute(self, action: str, params: dict[str, Any], context: dict[str, Any]) -> Any:
        handler = self._actions.get(action)
        if handler is None:
            raise ValueError(f"Unknown action: {action}")
        logger.info(
            "Running Slack action",
            extra={"action": action, "execution_id": context.get("execution_id")},
        )
        return handler(params or {})

    def _call(self, method: str, payload: dict[str, Any], *, read: bool = False) -> dict[str, Any]:
        url = f"{self._base_url}/{method}"
        if read:
            resp = self._session.get(url, params=payload, timeout=self._timeout)
        else:
            resp = self._session.post(url, json=payload, timeout=self._timeout)
        resp.raise_for_status()
        data: dict[str, Any] = resp.json()
        if not data.get("ok"):
            raise SlackApiError(f"Slack {method} failed: {data.get('error', 'unknown_error')}")
        return data

    def send_message(self, params: dict[str, Any]) -> dict[str, Any]:
        channel = str(params.get("channel") or "").strip()
        text = str(params.get("text") or "")
        if not channel or not text:
            raise ValueError("channel and text are required")
        payload: dict[str, Any] = {"channel": channel, "text": text}
        if params.get("thread_ts"):
            payload["thread_ts"] = str(params["thread_ts"])
        if params.get("attachments"):
            payload["attachments"] = params["attachments"]

        data = self._call("chat.postMessage", payload)
        return {"ts": data.get("ts"), "channel": data.get("channel", channel), "text": text}

    def create_channel(self, params: dict[str, Any]) -> dict[str, Any]:
        name = str(params.get("name") or "").strip()
        if not name:
            raise ValueError("name is required")
        is_private = bool(params.get("is_private", False))
        channel = self._call("conversations.create", {"name": name, "is_private": is_private})[
            "channel"
        ]

        description = str(params.get("description") or "")
        if description:
            self._call("conversations.setPurpose", {"channel": channel["id"], "purpose": description})
        return {
            "id": channel["id"],
            "name": channel.get("name", name),
            "is_private": channel.get("is_private", is_private),
            "description": description or None,
        }

    def list_channels(self, params: dict[str, Any]) -> dict[str, Any]:
        types = str(params.get("types") or "public_channel,private_channel")
        data = self._call(
            "conversations.list", {"limit": _limit(params, 20), "types": types}, read=True
        )
        channels = [
            {
                "id": c.get("id"),
                "name": c.get("name"),
                "is_private": c.get("is_private", False),
                "member_count": c.get("num_members"),
            }
            for c in data.get("channels", [])
        ]
        return {"channels": channels, "total": len(channels)}

    def get_messages(self, params: dict[str, Any]) -> dict[str, Any]:
        channel = str(params.get("channel") or "").strip()
        if not channel:
            raise ValueError("channel is required")
        query: dict[str, Any] = {"channel": channel, "limit": _limit(params, 10)}
        for key in ("latest", "oldest"):
            if params.get(key):
                query[key] = str(params[key])

        data = self._call("conversations.history", query, read=True)
        messages = [
            {"ts": m.get("ts"), "user": m.get("user"), "text": m.get("text", "")}
            for m in data.get("messages", [])
        ]
        return {"messages": messages, "channel": channel, "total": len(messages)}

    def close(self) -> None:
        self._session.close()
