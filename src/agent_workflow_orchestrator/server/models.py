"""Pydantic models for the REST server."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field

from agent_workflow_orchestrator.orchestrator.workflow.models import WorkflowDefinition
from agent_workflow_orchestrator.orchestrator.workflow.state_machine import Execution


class ExecuteRequest(BaseModel):
    workflow: WorkflowDefinition | None = None
    workflow_id: str | None = None
    message: str = ""
    user_id: str = "anonymous"
    session_id: str | None = None
    variables: dict[str, Any] = Field(default_factory=dict)


class ExecuteResponse(BaseModel):
    success: bool
    execution: Execution
    timestamp: str


class MonitorPublishRequest(BaseModel):
    execution_id: str = ""
    type: str = ""
    data: dict[str, Any] = Field(default_factory=dict)
    timestamp: str | None = Field(
        default=None, description="Emission time; defaults to the time of receipt"
    )
