"""In-process Gmail integration.

The integration expects an OAuth access token with the `gmail.send` and
`gmail.readonly` scopes; refreshing it is left to whoever issues it.
"""

from __future__ import annotations

import base64
import logging
from collections.abc import Callable
from datetime import UTC, datetime
from email.message import EmailMessage
from typing import Any

from google.oauth2.credentials import Credentials
from googleapiclient.discovery import build

logger = logging.getLogger(__name__)

_METADATA_HEADERS = ["From", "Subject"]


def _addresses(value: object) -> str:
    if isinstance(value, list):
        return ", ".join(str(v).strip() for v in value if str(v).strip())
    return str(value or "").strip()


def _limit(params: dict[str, Any], default: int = 10) -> int:
    try:
        return max(1, int(params.get("limit", default)))
    except (TypeError, ValueError):
        return default


def _received_at(internal_date: object) -> str | None:
    try:
        return datetime.fromtimestamp(int(str(internal_date)) / 1000, tz=UTC).isoformat()
    except (TypeError, ValueError):
        return None


def build_search_query(params: dict[str, Any]) -> str:
    """Translate search params into Gmail's `q` syntax."""

    terms: list[str] = []
    if params.get("query"):
        terms.append(str(params["query"]))
    if params.get("from"):
        terms.append(f"from:{params['from']}")
    if params.get("subject"):
        terms.append(f'subject:"{params["subject"]}"')
    for key in ("after", "before"):
        if params.get(key):
            terms.append(f"{key}:{params[key]}")
    return " ".join(terms)


class GmailIntegration:
    """Actions: send_email, read_emails, search_emails."""

    def __init__(self, *, token: str, service: Any = None) -> None:
        if service is None and not token.strip():
            raise ValueError("Gmail token is required")
        self._service = service or build(
            "gmail", "v1", credentials=Credentials(token=token), cache_discovery=False
        )
        self._actions: dict[str, Callable[[dict[str, Any]], Any]] = {
            "send_email": self.send_email,
            "read_emails": self.read_emails,
            "search_emails": self.search_emails,
        }

    def execute(self, action: str, params: dict[str, Any], context: dict[str, Any]) -> Any:
        handler = self._actions.get(action)
        if handler is None:
            raise ValueError(f"Unknown action: {action}")
        logger.info(
            "Running Gmail action",
            extra={"action": action, "execution_id": context.get("execution_id")},
        )
        return handler(params or {})

    def send_email(self, params: dict[str, Any]) -> dict[str, Any]:
        to = _addresses(params.get("to"))
        subject = str(params.get("subject") or "")
        if not to or not subject:
            raise ValueError("to and subject are required")

        message = EmailMessage()
        message["To"] = to
        message["Subject"] = subject
        for header in ("cc", "bcc"):
            value = _addresses(params.get(header))
            if value:
                message[header.capitalize()] = value
        message.set_content(str(params.get("body") or ""))
        raw = base64.urlsafe_b64encode(message.as_bytes()).decode("ascii")

        sent = self._service.users().messages().send(userId="me", body={"raw": raw}).execute()
        return {
            "message_id": sent.get("id"),
            "thread_id": sent.get("threadId"),
            "to": to,
            "subject": subject,
            "status": "sent",
        }

    def _summaries(self, query: str, limit: int) -> list[dict[str, Any]]:
        messages = self._service.users().messages()
        listing = messages.list(userId="me", q=query, maxResults=limit).execute()
        summaries = []
        for ref in listing.get("messages", [])[:limit]:
            message = messages.get(
                userId="me", id=ref["id"], format="metadata", metadataHeaders=_METADATA_HEADERS
            ).execute()
            headers = {
                h.get("name", "").lower(): h.get("value", "")
                for h in message.get("payload", {}).get("headers", [])
            }
            summaries.append(
                {
                    "id": message.get("id", ref["id"]),
                    "from": headers.get("from"),
                    "subject": headers.get("subject"),
                    "snippet": message.get("snippet", ""),
                    "received_at": _received_at(message.get("internalDate")),
                    "unread": "UNREAD" in message.get("labelIds", []),
                }
            )
        return summaries

    def read_emails(self, params: dict[str, Any]) -> dict[str, Any]:
        query = "in:inbox is:unread" if params.get("unread_only") else "in:inbox"
        emails = self._summaries(query, _limit(params))
        return {"emails": emails, "total": len(emails)}

    def search_emails(self, params: dict[str, Any]) -> dict[str, Any]:
        query = build_search_query(params)
        if not query:
            raise ValueError("at least one of query, from, subject, after or before is required")
        emails = self._summaries(query, _limit(params))
        return {"emails": emails, "total": len(emails), "query": query}

    def close(self) -> None:
        self._service.close()
