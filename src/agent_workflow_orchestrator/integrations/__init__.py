"""Integration clients used by integration nodes."""

from __future__ import annotations

import logging

from agent_workflow_orchestrator.integrations.client import (
    HttpIntegrationClient,
    Integration,
    IntegrationClient,
    IntegrationResponse,
    LocalIntegrationClient,
)
from agent_workflow_orchestrator.integrations.github import GitHubIntegration
from agent_workflow_orchestrator.integrations.gmail import GmailIntegration
from agent_workflow_orchestrator.integrations.slack import SlackIntegration
from agent_workflow_orchestrator.orchestrator.config import OrchestratorSettings

logger = logging.getLogger(__name__)

__all__ = [
    "GitHubIntegration",
    "GmailIntegration",
    "HttpIntegrationClient",
    "Integration",
    "IntegrationClient",
    "IntegrationResponse",
    "LocalIntegrationClient",
    "SlackIntegration",
    "create_integration_client",
]


def create_integration_client(settings: OrchestratorSettings) -> IntegrationClient:
    """Remote gateway when configured, otherwise in-process integrations."""

    if settings.integrations_url.strip():
        return HttpIntegrationClient(
            base_url=settings.integrations_url,
            timeout_seconds=settings.request_timeout_seconds,
        )

    client = LocalIntegrationClient()
    if settings.github_token.strip():
        client.register(
            "github",
            GitHubIntegration(token=settings.github_token, base_url=settings.github_base_url),
        )
    if settings.slack_token.strip():
        client.register(
            "slack",
            SlackIntegration(
                token=settings.slack_token,
                base_url=settings.slack_base_url,
                timeout_seconds=settings.request_timeout_seconds,
            ),
        )
    if settings.gmail_token.strip():
        client.register(
            "gmail",
            GmailIntegration(token=settings.gmail_token),
        )
    logger.info(
        "Using in-process integrations", extra={"integrations": client.integration_types}
    )
    return client
