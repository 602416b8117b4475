"""Configuration for the REST server.

The server starts without reasoning-service credentials. Workflow execution
builds its collaborators on first use, so definitions and history can be
browsed against local state alone.
"""

from __future__ import annotations

from pydantic import Field
from pydantic_settings import SettingsConfigDict

from agent_workflow_orchestrator.orchestrator.config import OrchestratorSettings


class ServerSettings(OrchestratorSettings):
    # Dev-friendly CORS. Override via ORCHESTRATOR_CORS_ORIGINS=...
    cors_origins: str = Field(
        default="http://localhost:3000,http://127.0.0.1:3000",
        validation_alias="ORCHESTRATOR_CORS_ORIGINS",
        description="Comma-separated list of allowed CORS origins.",
    )

    sse_keepalive_seconds: float = Field(
        default=15.0,
        gt=0,
        validation_alias="ORCHESTRATOR_SSE_KEEPALIVE_SECONDS",
        description="Interval between keep-alive comments on monitor streams.",
    )

    model_config = SettingsConfigDict(env_prefix="", env_file=".env", extra="ignore")

    def parsed_cors_origins(self) -> list[str]:
        return [o.strip() for o in self.cors_origins.split(",") if o.strip()]
