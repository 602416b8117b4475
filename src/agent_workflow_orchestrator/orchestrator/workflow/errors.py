"""Run-fatal workflow errors.

Every error here stops the run: the engine does not retry, skip the node, or
try another path. The message is stored verbatim on the execution record.
"""

from __future__ import annotations


class WorkflowError(Exception):
    """Base class for errors that fail a workflow run."""


class NodeNotFoundError(WorkflowError):
    def __init__(self, node_id: str) -> None:
        self.node_id = node_id
        super().__init__(f"Node {node_id} not found")


class AgentInvocationError(WorkflowError):
    """The reasoning service call failed or reported success=false."""

    def __init__(self, agent_name: str, detail: str) -> None:
        self.agent_name = agent_name
        self.detail = detail
        super().__init__(f"Agent {agent_name} failed: {detail}")


class MissingAgentError(WorkflowError):
    def __init__(self, node_id: str) -> None:
        self.node_id = node_id
        super().__init__("Agent node missing agent configuration")


class IntegrationError(WorkflowError):
    def __init__(self, integration_type: str, detail: str) -> None:
        self.integration_type = integration_type
        self.detail = detail
        super().__init__(f"Integration {integration_type} failed: {detail}")


class TransformError(WorkflowError):
    def __init__(self, transformation: str, detail: str) -> None:
        self.transformation = transformation
        self.detail = detail
        super().__init__(f"Transform {transformation} failed: {detail}")


class UnknownNodeKindError(WorkflowError):
    def __init__(self, kind: str) -> None:
        self.kind = kind
        super().__init__(f"Unknown node type: {kind}")


class IterationLimitError(WorkflowError):
    """Raised only when runs are configured to fail at the iteration cap."""

    def __init__(self, limit: int, next_node: str) -> None:
        self.limit = limit
        self.next_node = next_node
        super().__init__(
            f"Workflow stopped after {limit} iterations before reaching node {next_node}"
        )
