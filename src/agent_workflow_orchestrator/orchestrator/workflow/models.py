"""Workflow graph model.

Field names follow the JSON wire format used by workflow authors
(`type`, `nextNodes`, `startNode`, `agent_id`), so definitions round-trip
unchanged between the API, the store and the engine.
"""

from __future__ import annotations

from datetime import UTC, datetime
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field

NODE_KINDS: frozenset[str] = frozenset({"agent", "condition", "integration", "transform"})

AgentRole = Literal["coordinator", "specialist", "integration"]
MessageRole = Literal["user", "agent", "system"]


def utc_now_iso() -> str:
    return datetime.now(tz=UTC).isoformat()


class AgentRef(BaseModel):
    """An agent declared by a workflow and referenced by `agent` nodes."""

    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    description: str = ""
    agent_id: str
    type: AgentRole = "specialist"
    capabilities: list[str] = Field(default_factory=list)
    integrations: list[str] | None = None


class WorkflowNode(BaseModel):
    """One step of a workflow.

    `type` is kept as a plain string: unknown kinds are accepted here and
    rejected at dispatch time, so a stale definition still loads.
    """

    model_config = ConfigDict(frozen=True)

    id: str
    type: str
    agent: AgentRef | None = None
    config: dict[str, Any] = Field(default_factory=dict)
    nextNodes: list[str] = Field(default_factory=list)


class WorkflowDefinition(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    description: str = ""
    agents: list[AgentRef] = Field(default_factory=list)
    nodes: list[WorkflowNode]
    startNode: str
    created: str | None = None
    updated: str | None = None

    def find_node(self, node_id: str) -> WorkflowNode | None:
        for node in self.nodes:
            if node.id == node_id:
                return node
        return None

    def dangling_references(self) -> list[tuple[str, str]]:
        """Return `(source, missing_target)` pairs for references to absent nodes.

        The engine never calls this: missing nodes fail the run when reached.
        A missing start node is reported with an empty source.
        """

        known = {node.id for node in self.nodes}
        problems: list[tuple[str, str]] = []
        if self.startNode not in known:
            problems.append(("", self.startNode))
        for node in self.nodes:
            for target in node.nextNodes:
                if target and target not in known:
                    problems.append((node.id, target))
        return problems


class AgentMessage(BaseModel):
    """An entry in a run's conversation history."""

    role: MessageRole
    content: str
    agent_id: str | None = None
    timestamp: str = Field(default_factory=utc_now_iso)
    metadata: dict[str, Any] | None = None
