"""JSON-file stores kept under the agent_state directory."""

from __future__ import annotations

from agent_workflow_orchestrator.orchestrator.storage.execution_store import ExecutionStore
from agent_workflow_orchestrator.orchestrator.storage.workflow_store import (
    WorkflowAlreadyExists,
    WorkflowNotFound,
    WorkflowStore,
)

__all__ = ["ExecutionStore", "WorkflowAlreadyExists", "WorkflowNotFound", "WorkflowStore"]
