#!/usr/bin/env python3
"""Programmatic workflow execution example.

This demonstrates using the orchestrator components directly:

* load settings from `.env`
* load a workflow definition from JSON
* run it and persist the execution to `agent_state/executions.json`

Initial variables are passed as arguments (not read from `.env`).
"""

from __future__ import annotations

import argparse
import json
from pathlib import Path
from typing import Sequence

from agent_workflow_orchestrator.orchestrator.config import OrchestratorSettings
from agent_workflow_orchestrator.orchestrator.engine import WorkflowRunner
from agent_workflow_orchestrator.orchestrator.logging import configure_logging
from agent_workflow_orchestrator.orchestrator.workflow.models import WorkflowDefinition
from agent_workflow_orchestrator.orchestrator.workflow.state_machine import ExecutionStatus


def _parse_args(argv: Sequence[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Run a workflow (programmatic example).")
    parser.add_argument(
        "--workflow",
        type=Path,
        default=Path(__file__).parent / "workflows" / "support_triage.json",
        help="Workflow definition (JSON)",
    )
    parser.add_argument("--message", required=True, help="Initial user message")
    parser.add_argument("--priority", default="normal", help='Ticket priority, e.g. "urgent"')
    return parser.parse_args(argv)


def main(argv: Sequence[str] | None = None) -> int:
    args = _parse_args(argv)

    settings = OrchestratorSettings()
    configure_logging(settings.log_level)

    workflow = WorkflowDefinition.model_validate_json(args.workflow.read_text(encoding="utf-8"))
    runner = WorkflowRunner.from_settings(settings)
    try:
        execution = runner.run(
            workflow,
            args.message,
            user_id="example-user",
            variables={"priority": args.priority},
        )
    finally:
        runner.close()

    print(f"Execution {execution.id}: {execution.status.value}")
    print(f"Path: {' -> '.join(execution.path)}")
    if execution.error:
        print(f"Error: {execution.error}")
    print(json.dumps(execution.results, indent=2, default=str))
    print(f"Persisted to: {settings.executions_state_file}")
    return 0 if execution.status == ExecutionStatus.COMPLETED else 1


if __name__ == "__main__":
    raise SystemExit(main())
