"""Workflow domain concepts.

This package holds first-class types for:
- The node graph (definitions, nodes, agent references)
- The per-run execution context and execution record
- Node handlers, one per node kind
- Progress events

Nothing here performs I/O directly; collaborators are injected.
"""

from agent_workflow_orchestrator.orchestrator.workflow.context import ExecutionContext
from agent_workflow_orchestrator.orchestrator.workflow.models import (
    AgentMessage,
    AgentRef,
    WorkflowDefinition,
    WorkflowNode,
)
from agent_workflow_orchestrator.orchestrator.workflow.state_machine import (
    Execution,
    ExecutionStatus,
)

__all__: list[str] = [
    "AgentMessage",
    "AgentRef",
    "Execution",
    "ExecutionContext",
    "ExecutionStatus",
    "WorkflowDefinition",
    "WorkflowNode",
]
