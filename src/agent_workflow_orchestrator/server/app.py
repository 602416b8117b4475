"""FastAPI app factory.

Endpoints are thin wrappers over the workflow runner and the local stores.
Workflow execution is synchronous; FastAPI runs each request in its
threadpool, so concurrent executions never share per-run state.
"""

from __future__ import annotations

import json
import logging
import queue
import threading
from collections.abc import Iterator
from dataclasses import replace
from typing import Any

from fastapi import Body, FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import StreamingResponse
from pydantic import ValidationError

from agent_workflow_orchestrator import __version__
from agent_workflow_orchestrator.orchestrator.engine import WorkflowRunner
from agent_workflow_orchestrator.orchestrator.monitor import ProgressBroadcaster
from agent_workflow_orchestrator.orchestrator.storage.execution_store import (
    DEFAULT_LIST_LIMIT,
    ExecutionStore,
)
from agent_workflow_orchestrator.orchestrator.storage.workflow_store import (
    WorkflowAlreadyExists,
    WorkflowNotFound,
    WorkflowStore,
)
from agent_workflow_orchestrator.orchestrator.workflow.events import (
    TERMINAL_EVENT_TYPES,
    ProgressEvent,
)
from agent_workflow_orchestrator.orchestrator.workflow.models import utc_now_iso
from agent_workflow_orchestrator.orchestrator.workflow.state_machine import ExecutionStatus
from agent_workflow_orchestrator.server.config import ServerSettings
from agent_workflow_orchestrator.server.models import (
    ExecuteRequest,
    ExecuteResponse,
    MonitorPublishRequest,
)

logger = logging.getLogger(__name__)


def _sse(payload: dict[str, Any]) -> str:
    return f"data: {json.dumps(payload, default=str)}\n\n"


def _validation_detail(e: ValidationError) -> list[dict[str, Any]]:
    return json.loads(e.json())


def create_app(
    *,
    settings: ServerSettings | None = None,
    runner: WorkflowRunner | None = None,
    broadcaster: ProgressBroadcaster | None = None,
) -> FastAPI:
    settings = settings or ServerSettings()
    broadcaster = broadcaster or ProgressBroadcaster()
    execution_store = ExecutionStore(settings.executions_state_file)
    workflow_store = WorkflowStore(settings.workflows_state_file)

    app = FastAPI(
        title="Agent Workflow Orchestrator",
        version=__version__,
        description="REST API over the agent-workflow-orchestrator engine.",
        openapi_url="/api/openapi.json",
        docs_url="/api/docs",
        redoc_url="/api/redoc",
    )

    app.state.settings = settings
    app.state.broadcaster = broadcaster
    app.state.execution_store = execution_store
    app.state.workflow_store = workflow_store

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.parsed_cors_origins(),
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # The runner needs reasoning credentials; build it on first execution so
    # the rest of the API works without them.
    runner_lock = threading.Lock()
    runner_holder: list[WorkflowRunner] = [runner] if runner is not None else []

    def get_runner() -> WorkflowRunner:
        with runner_lock:
            if not runner_holder:
                try:
                    runner_holder.append(
                        WorkflowRunner.from_settings(
                            settings, progress=broadcaster, store=execution_store
                        )
                    )
                except ValueError as e:
                    raise HTTPException(status_code=503, detail=str(e)) from e
            return runner_holder[0]

    @app.get("/api/health")
    def health() -> dict[str, str]:
        return {"status": "ok"}

    # --- workflow definitions -------------------------------------------------

    @app.get("/api/workflows")
    def list_workflows() -> dict[str, Any]:
        workflows = workflow_store.list()
        return {
            "success": True,
            "workflows": [w.model_dump(mode="json") for w in workflows],
            "total": len(workflows),
        }

    @app.post("/api/workflows", status_code=201)
    def create_workflow(payload: dict[str, Any] = Body(...)) -> dict[str, Any]:
        try:
            workflow = workflow_store.create(payload)
        except ValidationError as e:
            raise HTTPException(status_code=400, detail=_validation_detail(e)) from e
        except WorkflowAlreadyExists as e:
            raise HTTPException(status_code=409, detail=str(e)) from e
        logger.info("Workflow created", extra={"workflow_id": workflow.id})
        return {"success": True, "workflow": workflow.model_dump(mode="json")}

    @app.get("/api/workflows/{workflow_id}")
    def get_workflow(workflow_id: str) -> dict[str, Any]:
        workflow = workflow_store.get(workflow_id)
        if workflow is None:
            raise HTTPException(status_code=404, detail="Workflow not found")
        return {"success": True, "workflow": workflow.model_dump(mode="json")}

    @app.put("/api/workflows/{workflow_id}")
    def update_workflow(workflow_id: str, payload: dict[str, Any] = Body(...)) -> dict[str, Any]:
        try:
            workflow = workflow_store.update(workflow_id, payload)
        except WorkflowNotFound as e:
            raise HTTPException(status_code=404, detail="Workflow not found") from e
        except ValidationError as e:
            raise HTTPException(status_code=400, detail=_validation_detail(e)) from e
        return {"success": True, "workflow": workflow.model_dump(mode="json")}

    @app.delete("/api/workflows/{workflow_id}")
    def delete_workflow(workflow_id: str) -> dict[str, Any]:
        try:
            workflow_store.delete(workflow_id)
        except WorkflowNotFound as e:
            raise HTTPException(status_code=404, detail="Workflow not found") from e
        return {"success": True, "message": "Workflow deleted successfully"}

    # --- execution ------------------------------------------------------------

    @app.post("/api/workflow/execute", response_model=ExecuteResponse)
    def execute_workflow(req: ExecuteRequest) -> ExecuteResponse:
        workflow = req.workflow
        if workflow is None and req.workflow_id:
            workflow = workflow_store.get(req.workflow_id)
            if workflow is None:
                raise HTTPException(status_code=404, detail="Workflow not found")
        if workflow is None or not req.message.strip():
            raise HTTPException(status_code=400, detail="workflow and message are required")

        try:
            execution = get_runner().run(
                workflow,
                req.message,
                user_id=req.user_id,
                session_id=req.session_id,
                variables=req.variables,
            )
        except HTTPException:
            raise
        except Exception as e:
            logger.exception("Workflow execution crashed", extra={"workflow_id": workflow.id})
            raise HTTPException(status_code=500, detail=str(e) or "Server error") from e

        return ExecuteResponse(success=True, execution=execution, timestamp=utc_now_iso())

    # --- execution history ----------------------------------------------------

    @app.get("/api/executions")
    def list_executions(
        workflow_id: str | None = None,
        status: str | None = None,
        limit: int = DEFAULT_LIST_LIMIT,
    ) -> dict[str, Any]:
        if status:
            try:
                ExecutionStatus(status)
            except ValueError as e:
                raise HTTPException(status_code=400, detail=f"Unknown status: {status}") from e
        executions = execution_store.list(workflow_id=workflow_id, status=status, limit=limit)
        return {
            "success": True,
            "executions": [e.model_dump(mode="json") for e in executions],
            "total": len(executions),
        }

    @app.delete("/api/executions")
    def delete_workflow_executions(workflow_id: str | None = None) -> dict[str, Any]:
        if not workflow_id:
            raise HTTPException(status_code=400, detail="Missing required parameter: workflow_id")
        count = execution_store.delete_for_workflow(workflow_id)
        return {"success": True, "message": f"Deleted {count} executions", "count": count}

    @app.get("/api/executions/{execution_id}")
    def get_execution(execution_id: str) -> dict[str, Any]:
        execution = execution_store.get(execution_id)
        if execution is None:
            raise HTTPException(status_code=404, detail="Execution not found")
        return {"success": True, "execution": execution.model_dump(mode="json")}

    @app.delete("/api/executions/{execution_id}")
    def delete_execution(execution_id: str) -> dict[str, Any]:
        if not execution_store.delete(execution_id):
            raise HTTPException(status_code=404, detail="Execution not found")
        return {"success": True, "message": "Execution deleted successfully"}

    # --- live progress --------------------------------------------------------

    @app.post("/api/monitor")
    def publish_progress(req: MonitorPublishRequest) -> dict[str, Any]:
        if not req.execution_id or not req.type:
            raise HTTPException(status_code=400, detail="execution_id and type are required")
        event = ProgressEvent(execution_id=req.execution_id, type=req.type, data=req.data)
        if req.timestamp:
            event = replace(event, timestamp=req.timestamp)
        broadcaster.publish(event)
        return {"success": True, "message": "Update broadcasted"}

    @app.get("/api/monitor/{execution_id}")
    def stream_progress(execution_id: str) -> StreamingResponse:
        subscriber = broadcaster.subscribe(execution_id)

        def events() -> Iterator[str]:
            try:
                yield _sse(
                    {"type": "connected", "execution_id": execution_id, "timestamp": utc_now_iso()}
                )
                while True:
                    try:
                        event = subscriber.get(timeout=settings.sse_keepalive_seconds)
                    except queue.Empty:
                        yield ": keep-alive\n\n"
                        continue
                    yield _sse(event.to_json())
                    if event.type in TERMINAL_EVENT_TYPES:
                        return
            finally:
                broadcaster.unsubscribe(execution_id, subscriber)

        return StreamingResponse(
            events(),
            media_type="text/event-stream",
            headers={"Cache-Control": "no-cache", "Connection": "keep-alive"},
        )

    @app.delete("/api/monitor/{execution_id}")
    def clear_progress(execution_id: str) -> dict[str, Any]:
        broadcaster.clear(execution_id)
        return {"success": True, "message": "Updates cleared"}

    return app
