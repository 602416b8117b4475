"""Behavioural tests for the workflow engine."""

from __future__ import annotations

import re
from pathlib import Path
from unittest.mock import Mock

import pytest
from conftest import (
    FakeIntegrationClient,
    FakeReasoningService,
    RecordingSink,
    agent_node,
    node,
    workflow,
)

from agent_workflow_orchestrator.orchestrator.config import OrchestratorSettings
from agent_workflow_orchestrator.orchestrator.engine import (
    WorkflowOrchestrator,
    WorkflowRunner,
)
from agent_workflow_orchestrator.orchestrator.monitor import HttpProgressSink
from agent_workflow_orchestrator.orchestrator.storage.execution_store import ExecutionStore
from agent_workflow_orchestrator.orchestrator.workflow.context import ExecutionContext
from agent_workflow_orchestrator.orchestrator.workflow.events import ProgressReporter
from agent_workflow_orchestrator.orchestrator.workflow.handlers import NodeOutcome, default_handlers
from agent_workflow_orchestrator.orchestrator.workflow.models import AgentRef
from agent_workflow_orchestrator.orchestrator.workflow.state_machine import ExecutionStatus
from agent_workflow_orchestrator.reasoning.http_provider import HttpReasoningService
from agent_workflow_orchestrator.reasoning.provider import AgentResponse


@pytest.fixture
def runner(
    reasoning: FakeReasoningService, integrations: FakeIntegrationClient, sink: RecordingSink
) -> WorkflowRunner:
    return WorkflowRunner(reasoning=reasoning, integrations=integrations, progress=sink)


def test_linear_workflow_event_order(
    runner: WorkflowRunner, sink: RecordingSink, triage_agent: AgentRef
) -> None:
    wf = workflow(agent_node("first", triage_agent, "second"), agent_node("second", triage_agent))

    execution = runner.run(wf, "Hello", user_id="u-1")

    assert execution.status == ExecutionStatus.COMPLETED
    assert sink.types == [
        "workflow_started",
        "node_started",
        "node_completed",
        "node_started",
        "node_completed",
        "workflow_completed",
    ]
    assert [e.data.get("node_id") for e in sink.events[1:5]] == ["first", "first", "second", "second"]
    assert all(e.execution_id == execution.id for e in sink.events)
    assert sink.events[0].data == {
        "workflow_id": "wf-test",
        "workflow_name": "Test workflow",
        "message": "Hello",
    }
    assert sink.events[1].data["agent_name"] == "Triage"
    assert sink.events[-1].data["results"] == execution.results
    assert "iteration_limit_reached" not in sink.events[-1].data


def test_execution_record_after_success(
    runner: WorkflowRunner, reasoning: FakeReasoningService, triage_agent: AgentRef
) -> None:
    wf = workflow(agent_node("first", triage_agent))

    execution = runner.run(wf, "Hello", user_id="u-1", session_id="s-9")

    assert re.fullmatch(r"exec-\d+-[0-9a-f]{9}", execution.id)
    assert execution.workflow_id == "wf-test"
    assert execution.current_node == "first"
    assert execution.path == ["first"]
    assert execution.results["first"]["message"] == "agent-triage done"
    assert execution.completed is not None
    assert execution.error is None
    assert reasoning.calls[0]["message"] == "Hello"
    assert reasoning.calls[0]["session_id"] == "s-9"


def test_session_id_defaults_to_generated_value(
    runner: WorkflowRunner, reasoning: FakeReasoningService, triage_agent: AgentRef
) -> None:
    runner.run(workflow(agent_node("first", triage_agent)), "Hello", user_id="u-1")

    assert re.fullmatch(r"session-\d+", reasoning.calls[0]["session_id"])


def test_condition_routes_to_true_branch(runner: WorkflowRunner) -> None:
    wf = workflow(
        node("start", "transform", "cond"),
        node("cond", "condition", "yes", "no", variable="x", operator="greaterThan", value=3),
        node("yes", "transform"),
        node("no", "transform"),
    )

    execution = runner.run(wf, "go", user_id="u-1", variables={"x": 5})

    assert execution.status == ExecutionStatus.COMPLETED
    assert execution.path == ["start", "cond", "yes"]
    assert execution.results["cond"] is True


def test_condition_routes_to_false_branch(runner: WorkflowRunner) -> None:
    wf = workflow(
        node("cond", "condition", "yes", "no", variable="status", operator="equals", value="open"),
        node("yes", "transform"),
        node("no", "transform"),
    )

    execution = runner.run(wf, "go", user_id="u-1", variables={"status": "closed"})

    assert execution.path == ["cond", "no"]


def test_false_condition_without_false_branch_completes(runner: WorkflowRunner) -> None:
    wf = workflow(
        node("cond", "condition", "yes", variable="status", operator="equals", value="open"),
        node("yes", "transform"),
    )

    execution = runner.run(wf, "go", user_id="u-1")

    assert execution.status == ExecutionStatus.COMPLETED
    assert execution.path == ["cond"]
    assert execution.results == {"cond": False}


def test_free_form_condition_routes(runner: WorkflowRunner) -> None:
    wf = workflow(
        node("cond", "condition", "yes", "no", condition='$tier === "gold" && $spend > 100'),
        node("yes", "transform"),
        node("no", "transform"),
    )

    execution = runner.run(wf, "go", user_id="u-1", variables={"tier": "gold", "spend": 250})

    assert execution.path == ["cond", "yes"]


def test_uppercase_transform_writes_output(runner: WorkflowRunner) -> None:
    wf = workflow(
        node("t", "transform", inputVariable="in", transformation="uppercase", outputVariable="out")
    )

    execution = runner.run(wf, "go", user_id="u-1", variables={"in": "abc"})

    assert execution.results == {"t": "ABC"}


def test_variables_flow_between_nodes(runner: WorkflowRunner) -> None:
    wf = workflow(
        node(
            "parse",
            "transform",
            "check",
            inputVariable="raw",
            transformation="json_parse",
            outputVariable="data",
        ),
        node("check", "condition", "hit", condition="$data['score'] >= 7"),
        node("hit", "transform"),
    )

    execution = runner.run(wf, "go", user_id="u-1", variables={"raw": '{"score": 9}'})

    assert execution.path == ["parse", "check", "hit"]


def test_self_loop_stops_after_fifty_visits(runner: WorkflowRunner, sink: RecordingSink) -> None:
    wf = workflow(node("loop", "transform", "loop"))

    execution = runner.run(wf, "go", user_id="u-1")

    assert execution.status == ExecutionStatus.COMPLETED
    assert execution.path == ["loop"] * 50
    assert sink.types.count("node_started") == 50
    assert sink.events[-1].type == "workflow_completed"
    assert sink.events[-1].data["iteration_limit_reached"] is True


def test_graph_ending_on_fiftieth_visit_is_not_flagged(
    runner: WorkflowRunner, sink: RecordingSink
) -> None:
    nodes = [node(f"n{i}", "transform", f"n{i + 1}") for i in range(49)]
    nodes.append(node("n49", "transform"))

    execution = runner.run(workflow(*nodes), "go", user_id="u-1")

    assert len(execution.path) == 50
    assert "iteration_limit_reached" not in sink.events[-1].data


def test_strict_iteration_mode_fails_the_run(
    reasoning: FakeReasoningService, integrations: FakeIntegrationClient, sink: RecordingSink
) -> None:
    runner = WorkflowRunner(
        reasoning=reasoning,
        integrations=integrations,
        progress=sink,
        max_iterations=3,
        fail_on_iteration_limit=True,
    )

    execution = runner.run(workflow(node("loop", "transform", "loop")), "go", user_id="u-1")

    assert execution.status == ExecutionStatus.FAILED
    assert execution.path == ["loop"] * 3
    assert execution.error == "Workflow stopped after 3 iterations before reaching node loop"
    assert sink.events[-1].type == "workflow_failed"


def test_agent_failure_fails_the_run(
    integrations: FakeIntegrationClient, sink: RecordingSink, triage_agent: AgentRef
) -> None:
    reasoning = FakeReasoningService({"agent-triage": AgentResponse.failed("model overloaded")})
    runner = WorkflowRunner(reasoning=reasoning, integrations=integrations, progress=sink)
    wf = workflow(agent_node("first", triage_agent, "second"), node("second", "transform"))

    execution = runner.run(wf, "Hello", user_id="u-1")

    assert execution.status == ExecutionStatus.FAILED
    assert execution.error == "Agent Triage failed: model overloaded"
    assert execution.current_node == "first"
    assert execution.results == {}
    assert execution.completed is not None
    assert sink.types == ["workflow_started", "node_started", "workflow_failed"]
    assert sink.events[-1].data == {"workflow_id": "wf-test", "error": execution.error}


def test_missing_node_fails_the_run(runner: WorkflowRunner) -> None:
    execution = runner.run(workflow(node("a", "transform", "ghost")), "go", user_id="u-1")

    assert execution.status == ExecutionStatus.FAILED
    assert execution.error == "Node ghost not found"
    assert execution.path == ["a"]


def test_missing_start_node_fails_the_run(runner: WorkflowRunner) -> None:
    execution = runner.run(workflow(node("a", "transform"), start="nowhere"), "go", user_id="u-1")

    assert execution.status == ExecutionStatus.FAILED
    assert execution.error == "Node nowhere not found"


def test_empty_start_node_completes_immediately(runner: WorkflowRunner, sink: RecordingSink) -> None:
    execution = runner.run(workflow(node("a", "transform"), start=""), "go", user_id="u-1")

    assert execution.status == ExecutionStatus.COMPLETED
    assert execution.path == []
    assert sink.types == ["workflow_started", "workflow_completed"]


def test_unknown_node_kind_fails_the_run(runner: WorkflowRunner) -> None:
    execution = runner.run(workflow(node("w", "webhook")), "go", user_id="u-1")

    assert execution.status == ExecutionStatus.FAILED
    assert execution.error == "Unknown node type: webhook"


def test_unexpected_handler_exception_fails_the_run(
    reasoning: FakeReasoningService, integrations: FakeIntegrationClient, context: ExecutionContext
) -> None:
    exploding = Mock()
    exploding.execute.side_effect = RuntimeError("disk on fire")
    handlers = {**default_handlers(reasoning, integrations), "transform": exploding}

    orchestrator = WorkflowOrchestrator(
        workflow(node("t", "transform")), context, handlers=handlers
    )
    execution = orchestrator.execute("go")

    assert execution.status == ExecutionStatus.FAILED
    assert execution.error == "disk on fire"


def test_initial_message_is_recorded_in_history(
    reasoning: FakeReasoningService, integrations: FakeIntegrationClient, context: ExecutionContext,
    triage_agent: AgentRef,
) -> None:
    orchestrator = WorkflowOrchestrator(
        workflow(agent_node("a", triage_agent)),
        context,
        handlers=default_handlers(reasoning, integrations),
    )

    execution = orchestrator.execute("Please triage")

    assert context.execution_id == execution.id
    assert [(m.role, m.content) for m in context.history] == [
        ("user", "Please triage"),
        ("agent", "agent-triage done"),
    ]


def test_handler_branch_signal_drives_routing(context: ExecutionContext) -> None:
    gate = Mock()
    gate.execute.return_value = NodeOutcome(result="routed", branch=False)
    passthrough = Mock()
    passthrough.execute.return_value = NodeOutcome(result=None)

    orchestrator = WorkflowOrchestrator(
        workflow(node("g", "condition", "t", "f"), node("t", "transform"), node("f", "transform")),
        context,
        handlers={"condition": gate, "transform": passthrough},
        reporter=ProgressReporter(),
    )

    assert orchestrator.execute("go").path == ["g", "f"]


def test_sink_failures_do_not_change_the_outcome(
    reasoning: FakeReasoningService, integrations: FakeIntegrationClient
) -> None:
    broken_sink = Mock()
    broken_sink.publish.side_effect = ConnectionError("monitor down")
    runner = WorkflowRunner(reasoning=reasoning, integrations=integrations, progress=broken_sink)

    execution = runner.run(workflow(node("t", "transform")), "go", user_id="u-1")

    assert execution.status == ExecutionStatus.COMPLETED
    assert broken_sink.publish.call_count == 4


def test_runner_saves_execution(
    reasoning: FakeReasoningService, integrations: FakeIntegrationClient, tmp_path: Path
) -> None:
    store = ExecutionStore(tmp_path / "executions.json")
    runner = WorkflowRunner(reasoning=reasoning, integrations=integrations, store=store)

    execution = runner.run(workflow(node("t", "transform")), "go", user_id="u-1")

    assert store.get(execution.id) == execution


def test_store_failures_do_not_change_the_outcome(
    reasoning: FakeReasoningService, integrations: FakeIntegrationClient
) -> None:
    store = Mock()
    store.save.side_effect = OSError("read-only file system")
    runner = WorkflowRunner(reasoning=reasoning, integrations=integrations, store=store)

    execution = runner.run(workflow(node("t", "transform")), "go", user_id="u-1")

    assert execution.status == ExecutionStatus.COMPLETED
    store.save.assert_called_once_with(execution)


def test_runs_do_not_share_variables(runner: WorkflowRunner) -> None:
    wf = workflow(
        node("t", "transform", inputVariable="in", transformation="uppercase", outputVariable="in")
    )
    seed = {"in": "abc"}

    first = runner.run(wf, "go", user_id="u-1", variables=seed)
    second = runner.run(wf, "go", user_id="u-1", variables=seed)

    assert first.results == second.results == {"t": "ABC"}
    assert first.id != second.id
    assert seed == {"in": "abc"}


def test_max_iterations_must_be_positive(context: ExecutionContext) -> None:
    with pytest.raises(ValueError):
        WorkflowOrchestrator(workflow(node("t", "transform")), context, handlers={}, max_iterations=0)


def test_runner_from_settings(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    monkeypatch.setenv("AGENT_STATE_PATH", str(tmp_path / "state"))
    monkeypatch.setenv("REASONING_SERVICE_URL", "https://agents.example.com")
    monkeypatch.setenv("REASONING_SERVICE_API_KEY", "secret")
    monkeypatch.setenv("ORCHESTRATOR_MONITOR_URL", "https://monitor.example.com/api/monitor")
    monkeypatch.setenv("ORCHESTRATOR_MAX_ITERATIONS", "10")

    runner = WorkflowRunner.from_settings(OrchestratorSettings(_env_file=None))

    assert isinstance(runner.reasoning, HttpReasoningService)
    assert isinstance(runner.progress, HttpProgressSink)
    assert isinstance(runner.store, ExecutionStore)
    assert runner.store.path == tmp_path / "state" / "executions.json"
    assert runner.max_iterations == 10


def test_runner_from_settings_requires_credentials() -> None:
    with pytest.raises(ValueError, match="REASONING_SERVICE_URL"):
        WorkflowRunner.from_settings(OrchestratorSettings(_env_file=None))


def test_runner_close_releases_collaborators(
    runner: WorkflowRunner, reasoning: FakeReasoningService
) -> None:
    runner.close()
    assert reasoning.closed is True
