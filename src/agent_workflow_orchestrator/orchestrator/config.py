"""Configuration for the workflow orchestrator.

Configuration is loaded from:
- environment variables
- and a local `.env` file (if present)

Collaborator credentials are only checked when the collaborator is built, so
commands that never reach the reasoning service (validation, history listing)
work without them.
"""

from __future__ import annotations

from pathlib import Path
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_MAX_ITERATIONS = 50


class OrchestratorSettings(BaseSettings):
    """Settings for the orchestrator.

    Environment variables:
    - LOG_LEVEL                        (optional)
    - AGENT_STATE_PATH                 (optional)
    - ORCHESTRATOR_REASONING_PROVIDER  (optional: http | openai)
    - REASONING_SERVICE_URL / REASONING_SERVICE_API_KEY
    - OPENAI_API_KEY
    - ORCHESTRATOR_INTEGRATIONS_URL    (optional)
    - ORCHESTRATOR_GITHUB_TOKEN        (optional)
    - ORCHESTRATOR_SLACK_TOKEN         (optional)
    - ORCHESTRATOR_GMAIL_TOKEN         (optional)
    - ORCHESTRATOR_MONITOR_URL         (optional)

    Notes:
        Pydantic-settings supports overriding the env file in tests via:
        `OrchestratorSettings(_env_file=path_to_env)`.
    """

    log_level: str = Field(
        default="INFO",
        validation_alias="LOG_LEVEL",
        description="Root logging level",
    )

    agent_state_path: Path = Field(
        default=Path("agent_state"),
        validation_alias="AGENT_STATE_PATH",
        description="Directory where execution history and workflow definitions are persisted",
    )

    reasoning_provider: Literal["http", "openai"] = Field(
        default="http",
        validation_alias="ORCHESTRATOR_REASONING_PROVIDER",
        description="Backend used by agent nodes",
    )
    reasoning_service_url: str = Field(
        default="",
        validation_alias="REASONING_SERVICE_URL",
        description="Base URL of the HTTP agent backend (e.g. https://agents.example.com/v3)",
    )
    reasoning_service_api_key: str = Field(
        default="",
        validation_alias="REASONING_SERVICE_API_KEY",
        description="API key sent as `x-api-key` to the HTTP agent backend",
    )

    openai_api_key: str = Field(default="", validation_alias="OPENAI_API_KEY")
    openai_model: str = Field(default="gpt-4o-mini", validation_alias="ORCHESTRATOR_OPENAI_MODEL")
    openai_temperature: float = Field(
        default=0.7,
        ge=0.0,
        le=2.0,
        validation_alias="ORCHESTRATOR_OPENAI_TEMPERATURE",
    )
    openai_max_conversations: int = Field(
        default=256,
        ge=1,
        validation_alias="ORCHESTRATOR_OPENAI_MAX_CONVERSATIONS",
        description="Most recently used (agent, session) conversations kept in memory",
    )

    integrations_url: str = Field(
        default="",
        validation_alias="ORCHESTRATOR_INTEGRATIONS_URL",
        description=(
            "Base URL of a remote integration gateway. When empty, integrations run in-process "
            "(GitHub, Slack and Gmail, each only when its token is set)."
        ),
    )
    github_token: str = Field(
        default="",
        validation_alias="ORCHESTRATOR_GITHUB_TOKEN",
        description="GitHub token used by the in-process GitHub integration",
    )
    github_base_url: str = Field(
        default="https://api.github.com",
        validation_alias="GITHUB_BASE_URL",
        description="GitHub API base URL (useful for GitHub Enterprise)",
    )
    slack_token: str = Field(
        default="",
        validation_alias="ORCHESTRATOR_SLACK_TOKEN",
        description="Slack bot token used by the in-process Slack integration",
    )
    slack_base_url: str = Field(default="https://slack.com/api", validation_alias="SLACK_BASE_URL")
    gmail_token: str = Field(
        default="",
        validation_alias="ORCHESTRATOR_GMAIL_TOKEN",
        description="OAuth access token used by the in-process Gmail integration",
    )

    monitor_url: str = Field(
        default="",
        validation_alias="ORCHESTRATOR_MONITOR_URL",
        description="Endpoint receiving progress events (POST). Empty disables publishing.",
    )

    max_iterations: int = Field(
        default=DEFAULT_MAX_ITERATIONS,
        ge=1,
        validation_alias="ORCHESTRATOR_MAX_ITERATIONS",
        description="Upper bound on node visits per run (guards against cycles)",
    )
    fail_on_iteration_limit: bool = Field(
        default=False,
        validation_alias="ORCHESTRATOR_FAIL_ON_ITERATION_LIMIT",
        description="Mark runs that hit the iteration cap as failed instead of completed",
    )

    request_timeout_seconds: float = Field(
        default=60.0,
        gt=0,
        validation_alias="ORCHESTRATOR_REQUEST_TIMEOUT_SECONDS",
        description="Timeout for outbound HTTP calls to collaborators",
    )

    model_config = SettingsConfigDict(
        env_prefix="",
        env_file=".env",
        extra="ignore",
    )

    @property
    def executions_state_file(self) -> Path:
        """Path where finished execution records are persisted."""

        return self.agent_state_path / "executions.json"

    @property
    def workflows_state_file(self) -> Path:
        """Path where workflow definitions are persisted."""

        return self.agent_state_path / "workflows.json"
