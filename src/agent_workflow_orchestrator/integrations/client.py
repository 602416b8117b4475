"""Clients for external integrations (GitHub, Slack, mail, ...).

Integration nodes never talk to a third-party API directly. They go through an
`IntegrationClient`, which either forwards the call to a remote integration
gateway over HTTP or dispatches it to an in-process `Integration`.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any, Protocol

import requests

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class IntegrationResponse:
    success: bool
    result: Any = None
    error: str | None = None


class IntegrationClient(ABC):
    @abstractmethod
    def invoke(
        self,
        integration_type: str,
        action: str,
        params: dict[str, Any],
        context: dict[str, Any],
    ) -> IntegrationResponse:
        """Run `action` on the named integration.

        Failures are reported as `IntegrationResponse(success=False, error=...)`.
        """

    def close(self) -> None:
        """Release any underlying connections."""


class Integration(Protocol):
    """An in-process integration. Raise to signal failure."""

    def execute(self, action: str, params: dict[str, Any], context: dict[str, Any]) -> Any: ...


class HttpIntegrationClient(IntegrationClient):
    """Forward calls to `POST {base_url}/{integration_type}`.

    The gateway answers with `{"success": bool, "result": ..., "error": ...}`.
    """

    def __init__(
        self,
        *,
        base_url: str,
        timeout_seconds: float = 60.0,
        session: requests.Session | None = None,
    ) -> None:
        if not base_url.strip():
            raise ValueError("Integration gateway URL is required")
        self._base_url = base_url.rstrip("/")
        self._timeout = timeout_seconds
        self._session = session or requests.Session()

    def invoke(
        self,
        integration_type: str,
        action: str,
        params: dict[str, Any],
        context: dict[str, Any],
    ) -> IntegrationResponse:
        url = f"{self._base_url}/{integration_type}"
        payload = {"action": action, "params": params, "context": context}
        try:
            resp = self._session.post(url, json=payload, timeout=self._timeout)
        except requests.RequestException as e:
            return IntegrationResponse(success=False, error=str(e))

        try:
            data: Any = resp.json()
        except ValueError:
            return IntegrationResponse(
                success=False, error=f"Invalid response from gateway: HTTP {resp.status_code}"
            )

        if not isinstance(data, dict):
            return IntegrationResponse(success=False, error="Invalid response from gateway")
        if not data.get("success"):
            error = data.get("error")
            return IntegrationResponse(
                success=False,
                error=str(error) if error else "Integration execution failed",
            )
        return IntegrationResponse(success=True, result=data.get("result"))

    def close(self) -> None:
        self._session.close()


class LocalIntegrationClient(IntegrationClient):
    """Dispatch calls to integrations registered in this process."""

    def __init__(self, integrations: Mapping[str, Integration] | None = None) -> None:
        self._integrations: dict[str, Integration] = dict(integrations or {})

    def register(self, integration_type: str, integration: Integration) -> None:
        self._integrations[integration_type] = integration

    @property
    def integration_types(self) -> list[str]:
        return sorted(self._integrations)

    def invoke(
        self,
        integration_type: str,
        action: str,
        params: dict[str, Any],
        context: dict[str, Any],
    ) -> IntegrationResponse:
        integration = self._integrations.get(integration_type)
        if integration is None:
            return IntegrationResponse(
                success=False, error=f"Unknown integration: {integration_type}"
            )
        try:
            result = integration.execute(action, params, context)
        except Exception as e:
            logger.warning(
                "Integration action failed",
                extra={"integration_type": integration_type, "action": action},
                exc_info=True,
            )
            return IntegrationResponse(success=False, error=str(e))
        return IntegrationResponse(success=True, result=result)

    def close(self) -> None:
        for integration in self._integrations.values():
            close = getattr(integration, "close", None)
            if callable(close):
                close()
