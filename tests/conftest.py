"""Test configuration and fixtures."""

from __future__ import annotations

from pathlib import Path
from typing import Any

import pytest

from agent_workflow_orchestrator.integrations.client import IntegrationClient, IntegrationResponse
from agent_workflow_orchestrator.orchestrator.workflow.context import ExecutionContext
from agent_workflow_orchestrator.orchestrator.workflow.events import ProgressEvent
from agent_workflow_orchestrator.orchestrator.workflow.models import (
    AgentRef,
    WorkflowDefinition,
    WorkflowNode,
)
from agent_workflow_orchestrator.reasoning.provider import AgentResponse, ReasoningService

_ENV_VARS = (
    "LOG_LEVEL",
    "AGENT_STATE_PATH",
    "ORCHESTRATOR_REASONING_PROVIDER",
    "REASONING_SERVICE_URL",
    "REASONING_SERVICE_API_KEY",
    "OPENAI_API_KEY",
    "ORCHESTRATOR_OPENAI_MODEL",
    "ORCHESTRATOR_INTEGRATIONS_URL",
    "ORCHESTRATOR_GITHUB_TOKEN",
    "ORCHESTRATOR_SLACK_TOKEN",
    "ORCHESTRATOR_GMAIL_TOKEN",
    "ORCHESTRATOR_OPENAI_MAX_CONVERSATIONS",
    "ORCHESTRATOR_MONITOR_URL",
    "ORCHESTRATOR_MAX_ITERATIONS",
    "ORCHESTRATOR_FAIL_ON_ITERATION_LIMIT",
    "ORCHESTRATOR_CORS_ORIGINS",
)


@pytest.fixture(autouse=True)
def isolated_environment(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    """Keep the developer's environment and `.env` out of the tests."""
    for name in _ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    monkeypatch.chdir(tmp_path)


class FakeReasoningService(ReasoningService):
    """Answers every agent with a canned response and records the calls."""

    def __init__(self, responses: dict[str, AgentResponse] | None = None) -> None:
        self.responses = responses or {}
        self.calls: list[dict[str, str]] = []
        self.closed = False

    def invoke(self, message: str, agent_id: str, user_id: str, session_id: str) -> AgentResponse:
        self.calls.append(
            {"message": message, "agent_id": agent_id, "user_id": user_id, "session_id": session_id}
        )
        default = AgentResponse.ok({"message": f"{agent_id} done", "metadata": {"agent_id": agent_id}})
        return self.responses.get(agent_id, default)

    def close(self) -> None:
        self.closed = True


class FakeIntegrationClient(IntegrationClient):
    def __init__(self, response: IntegrationResponse | None = None) -> None:
        self.response = response or IntegrationResponse(success=True, result={"ok": True})
        self.calls: list[tuple[str, str, dict[str, Any], dict[str, Any]]] = []

    def invoke(
        self,
        integration_type: str,
        action: str,
        params: dict[str, Any],
        context: dict[str, Any],
    ) -> IntegrationResponse:
        self.calls.append((integration_type, action, params, context))
        return self.response


class RecordingSink:
    def __init__(self) -> None:
        self.events: list[ProgressEvent] = []

    def publish(self, event: ProgressEvent) -> None:
        self.events.append(event)

    @property
    def types(self) -> list[str]:
        return [e.type for e in self.events]


@pytest.fixture
def reasoning() -> FakeReasoningService:
    return FakeReasoningService()


@pytest.fixture
def integrations() -> FakeIntegrationClient:
    return FakeIntegrationClient()


@pytest.fixture
def sink() -> RecordingSink:
    return RecordingSink()


@pytest.fixture
def context() -> ExecutionContext:
    return ExecutionContext(user_id="user-1", session_id="session-1", workflow_id="wf-test")


@pytest.fixture
def triage_agent() -> AgentRef:
    return AgentRef(id="a1", name="Triage", agent_id="agent-triage", type="coordinator")


def agent_node(node_id: str, agent: AgentRef, *next_nodes: str, **config: Any) -> WorkflowNode:
    return WorkflowNode(id=node_id, type="agent", agent=agent, config=config, nextNodes=list(next_nodes))


def node(node_id: str, kind: str, *next_nodes: str, **config: Any) -> WorkflowNode:
    return WorkflowNode(id=node_id, type=kind, config=config, nextNodes=list(next_nodes))


def workflow(*nodes: WorkflowNode, start: str | None = None, wf_id: str = "wf-test") -> WorkflowDefinition:
    return WorkflowDefinition(
        id=wf_id,
        name="Test workflow",
        nodes=list(nodes),
        startNode=start if start is not None else nodes[0].id,
    )
