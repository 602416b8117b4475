"""Workflow orchestration engine.

`WorkflowOrchestrator` walks one workflow graph for one run. `WorkflowRunner`
holds the long-lived collaborators and builds a fresh orchestrator and context
for every call to `run`, so concurrent runs never share state.
"""

from __future__ import annotations

import logging
import time
import uuid
from collections.abc import Mapping
from typing import Any, Protocol

from agent_workflow_orchestrator.integrations import create_integration_client
from agent_workflow_orchestrator.integrations.client import IntegrationClient
from agent_workflow_orchestrator.orchestrator.config import (
    DEFAULT_MAX_ITERATIONS,
    OrchestratorSettings,
)
from agent_workflow_orchestrator.orchestrator.monitor import HttpProgressSink
from agent_workflow_orchestrator.orchestrator.storage.execution_store import ExecutionStore
from agent_workflow_orchestrator.orchestrator.workflow.context import ExecutionContext
from agent_workflow_orchestrator.orchestrator.workflow.errors import (
    IterationLimitError,
    NodeNotFoundError,
    UnknownNodeKindError,
    WorkflowError,
)
from agent_workflow_orchestrator.orchestrator.workflow.events import (
    ProgressEventType,
    ProgressReporter,
    ProgressSink,
)
from agent_workflow_orchestrator.orchestrator.workflow.handlers import (
    NodeHandler,
    NodeOutcome,
    default_handlers,
)
from agent_workflow_orchestrator.orchestrator.workflow.models import (
    AgentMessage,
    WorkflowDefinition,
    WorkflowNode,
)
from agent_workflow_orchestrator.orchestrator.workflow.state_machine import (
    Execution,
    ExecutionStatus,
)
from agent_workflow_orchestrator.reasoning.factory import ReasoningServiceFactory
from agent_workflow_orchestrator.reasoning.provider import ReasoningService

logger = logging.getLogger(__name__)


class ExecutionHistoryStore(Protocol):
    def save(self, execution: Execution) -> None: ...


def generate_execution_id() -> str:
    return f"exec-{int(time.time() * 1000)}-{uuid.uuid4().hex[:9]}"


def generate_session_id() -> str:
    return f"session-{int(time.time() * 1000)}"


def next_node_id(node: WorkflowNode, outcome: NodeOutcome) -> str | None:
    """Pick the successor: condition nodes branch on index 0 (true) / 1 (false)."""

    if node.type == "condition":
        index = 0 if outcome.branch else 1
    else:
        index = 0
    if index < len(node.nextNodes):
        return node.nextNodes[index] or None
    return None


class WorkflowOrchestrator:
    """Executes a single run of a workflow graph."""

    def __init__(
        self,
        workflow: WorkflowDefinition,
        context: ExecutionContext,
        *,
        handlers: Mapping[str, NodeHandler],
        reporter: ProgressReporter | None = None,
        max_iterations: int = DEFAULT_MAX_ITERATIONS,
        fail_on_iteration_limit: bool = False,
    ) -> None:
        if max_iterations < 1:
            raise ValueError("max_iterations must be at least 1")
        self.workflow = workflow
        self.context = context
        self._handlers = dict(handlers)
        self._reporter = reporter or ProgressReporter()
        self._max_iterations = max_iterations
        self._fail_on_iteration_limit = fail_on_iteration_limit

    def execute(self, initial_message: str) -> Execution:
        execution = Execution(
            id=generate_execution_id(),
            workflow_id=self.workflow.id,
            current_node=self.workflow.startNode,
        )
        self.context.execution_id = execution.id
        execution.advance(ExecutionStatus.RUNNING)

        log_extra = {"execution_id": execution.id, "workflow_id": self.workflow.id}
        logger.info("Workflow started", extra=log_extra)
        self._reporter.emit(
            execution.id,
            ProgressEventType.WORKFLOW_STARTED,
            {
                "workflow_id": self.workflow.id,
                "workflow_name": self.workflow.name,
                "message": initial_message,
            },
        )

        try:
            self.context.append_message(AgentMessage(role="user", content=initial_message))
            limit_reached = self._traverse(execution)
        except Exception as e:
            if not isinstance(e, WorkflowError):
                logger.exception("Unexpected error while executing workflow", extra=log_extra)
            execution.finish(error=str(e) or type(e).__name__)
            logger.warning(
                "Workflow failed",
                extra={**log_extra, "node_id": execution.current_node, "error": execution.error},
            )
            self._reporter.emit(
                execution.id,
                ProgressEventType.WORKFLOW_FAILED,
                {"workflow_id": self.workflow.id, "error": execution.error},
            )
            return execution

        execution.finish()
        completed: dict[str, Any] = {"workflow_id": self.workflow.id, "results": execution.results}
        if limit_reached:
            completed["iteration_limit_reached"] = True
        logger.info("Workflow completed", extra={**log_extra, "nodes": len(execution.path)})
        self._reporter.emit(execution.id, ProgressEventType.WORKFLOW_COMPLETED, completed)
        return execution

    def _traverse(self, execution: Execution) -> bool:
        """Run the node loop. Returns True if it stopped at the iteration cap."""

        current_id: str | None = self.workflow.startNode
        iterations = 0

        while current_id:
            node = self.workflow.find_node(current_id)
            if node is None:
                raise NodeNotFoundError(current_id)

            execution.current_node = node.id
            agent_name = node.agent.name if node.agent is not None else None
            self._reporter.emit(
                execution.id,
                ProgressEventType.NODE_STARTED,
                {"node_id": node.id, "node_type": node.type, "agent_name": agent_name},
            )

            outcome = self._dispatch(node)
            execution.record_result(node.id, outcome.result)

            self._reporter.emit(
                execution.id,
                ProgressEventType.NODE_COMPLETED,
                {
                    "node_id": node.id,
                    "node_type": node.type,
                    "agent_name": agent_name,
                    "result": outcome.result,
                },
            )

            current_id = next_node_id(node, outcome)
            iterations += 1
            if current_id and iterations >= self._max_iterations:
                if self._fail_on_iteration_limit:
                    raise IterationLimitError(self._max_iterations, current_id)
                logger.warning(
                    "Iteration limit reached; stopping traversal",
                    extra={
                        "execution_id": execution.id,
                        "limit": self._max_iterations,
                        "next_node": current_id,
                    },
                )
                return True
        return False

    def _dispatch(self, node: WorkflowNode) -> NodeOutcome:
        handler = self._handlers.get(node.type)
        if handler is None:
            raise UnknownNodeKindError(node.type)
        logger.debug(
            "Executing node",
            extra={"execution_id": self.context.execution_id, "node_id": node.id},
        )
        return handler.execute(node, self.context)


class WorkflowRunner:
    """Entry point for running workflows against configured collaborators.

    Example:
        runner = WorkflowRunner(reasoning=service, integrations=client, progress=sink)
        execution = runner.run(workflow, "Triage ticket 42", user_id="u-1")
    """

    def __init__(
        self,
        *,
        reasoning: ReasoningService,
        integrations: IntegrationClient,
        progress: ProgressSink | None = None,
        store: ExecutionHistoryStore | None = None,
        max_iterations: int = DEFAULT_MAX_ITERATIONS,
        fail_on_iteration_limit: bool = False,
    ) -> None:
        self.reasoning = reasoning
        self.integrations = integrations
        self.progress = progress
        self.store = store
        self.max_iterations = max_iterations
        self.fail_on_iteration_limit = fail_on_iteration_limit

    @classmethod
    def from_settings(
        cls,
        settings: OrchestratorSettings,
        *,
        progress: ProgressSink | None = None,
        store: ExecutionHistoryStore | None = None,
    ) -> WorkflowRunner:
        """Wire collaborators from configuration.

        Raises:
            ValueError: If the configured reasoning provider lacks credentials.
        """
        if progress is None and settings.monitor_url.strip():
            progress = HttpProgressSink(
                url=settings.monitor_url, timeout_seconds=settings.request_timeout_seconds
            )
        return cls(
            reasoning=ReasoningServiceFactory.create(settings),
            integrations=create_integration_client(settings),
            progress=progress,
            store=store or ExecutionStore(settings.executions_state_file),
            max_iterations=settings.max_iterations,
            fail_on_iteration_limit=settings.fail_on_iteration_limit,
        )

    def run(
        self,
        workflow: WorkflowDefinition,
        initial_message: str,
        user_id: str,
        session_id: str | None = None,
        variables: Mapping[str, Any] | None = None,
    ) -> Execution:
        context = ExecutionContext(
            user_id=user_id,
            session_id=session_id or generate_session_id(),
            workflow_id=workflow.id,
            variables=dict(variables or {}),
        )
        orchestrator = WorkflowOrchestrator(
            workflow,
            context,
            handlers=default_handlers(self.reasoning, self.integrations),
            reporter=ProgressReporter(self.progress),
            max_iterations=self.max_iterations,
            fail_on_iteration_limit=self.fail_on_iteration_limit,
        )
        execution = orchestrator.execute(initial_message)

        if self.store is not None:
            try:
                self.store.save(execution)
            except Exception:
                logger.warning(
                    "Failed to save execution history",
                    extra={"execution_id": execution.id},
                    exc_info=True,
                )
        return execution

    def close(self) -> None:
        self.reasoning.close()
        self.integrations.close()
