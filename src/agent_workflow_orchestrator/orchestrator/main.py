"""CLI entrypoint for the workflow orchestrator."""

from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from agent_workflow_orchestrator import __version__
from agent_workflow_orchestrator.orchestrator.config import OrchestratorSettings
from agent_workflow_orchestrator.orchestrator.engine import WorkflowRunner
from agent_workflow_orchestrator.orchestrator.logging import configure_logging
from agent_workflow_orchestrator.orchestrator.storage.execution_store import (
    DEFAULT_LIST_LIMIT,
    ExecutionStore,
)
from agent_workflow_orchestrator.orchestrator.workflow.models import NODE_KINDS, WorkflowDefinition
from agent_workflow_orchestrator.orchestrator.workflow.state_machine import ExecutionStatus

logger = logging.getLogger(__name__)


def _parse_variables(values: list[str] | None) -> dict[str, Any]:
    """Parse repeated `NAME=JSON` arguments; non-JSON values are kept as text."""

    variables: dict[str, Any] = {}
    for item in values or []:
        name, sep, raw = item.partition("=")
        name = name.strip()
        if not sep or not name:
            raise ValueError(f"Invalid --var {item!r}; expected NAME=VALUE")
        try:
            variables[name] = json.loads(raw)
        except json.JSONDecodeError:
            variables[name] = raw
    return variables


def _load_workflow(path: Path) -> WorkflowDefinition:
    return WorkflowDefinition.model_validate_json(path.read_text(encoding="utf-8"))


def _print_json(payload: object) -> None:
    print(json.dumps(payload, indent=2, ensure_ascii=False, default=str))


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="workflow-orchestrator",
        description="Run agent workflow graphs against a reasoning service",
    )
    parser.add_argument(
        "--version", action="version", version=f"agent-workflow-orchestrator {__version__}"
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    run = subparsers.add_parser("run", help="Execute a workflow definition")
    run.add_argument(
        "--workflow", type=Path, required=True, help="Path to a workflow definition (JSON)"
    )
    run.add_argument("--message", required=True, help="Initial user message")
    run.add_argument("--user-id", default="cli-user", help="User id sent to the reasoning service")
    run.add_argument(
        "--session-id",
        default=None,
        help="Session id (defaults to a generated session-<ms> id)",
    )
    run.add_argument(
        "--var",
        dest="variables",
        action="append",
        default=None,
        metavar="NAME=JSON",
        help="Initial workflow variable; repeatable. Non-JSON values are taken as text.",
    )

    validate = subparsers.add_parser(
        "validate", help="Check a workflow definition for dangling references"
    )
    validate.add_argument(
        "--workflow", type=Path, required=True, help="Path to a workflow definition (JSON)"
    )

    list_executions = subparsers.add_parser(
        "list-executions", help="List recorded executions, newest first"
    )
    list_executions.add_argument("--workflow-id", default=None, help="Filter by workflow id")
    list_executions.add_argument(
        "--status",
        default=None,
        choices=[s.value for s in ExecutionStatus],
        help="Filter by status",
    )
    list_executions.add_argument(
        "--limit", type=int, default=DEFAULT_LIST_LIMIT, help="Maximum number of records"
    )

    show_execution = subparsers.add_parser("show-execution", help="Print one execution record")
    show_execution.add_argument("execution_id", help="Execution id (exec-...)")

    return parser


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        settings = OrchestratorSettings()
    except ValidationError as e:
        # Logging isn't configured yet; keep it simple and actionable.
        print("Configuration error (check your .env):", file=sys.stderr)
        print(e, file=sys.stderr)
        return 2

    configure_logging(settings.log_level)

    try:
        if args.command == "run":
            workflow = _load_workflow(args.workflow)
            variables = _parse_variables(args.variables)

            runner = WorkflowRunner.from_settings(settings)
            try:
                execution = runner.run(
                    workflow,
                    args.message,
                    user_id=args.user_id,
                    session_id=args.session_id,
                    variables=variables,
                )
            finally:
                runner.close()

            _print_json(execution.model_dump(mode="json"))
            return 0 if execution.status == ExecutionStatus.COMPLETED else 1

        if args.command == "validate":
            workflow = _load_workflow(args.workflow)
            problems = workflow.dangling_references()
            unknown = sorted({n.type for n in workflow.nodes if n.type not in NODE_KINDS})

            for source, target in problems:
                if source:
                    print(f"Node {source} references missing node {target}")
                else:
                    print(f"Start node {target} not found")
            for kind in unknown:
                print(f"Unknown node type: {kind}")

            if problems or unknown:
                return 1
            print(f"Workflow {workflow.id} is valid ({len(workflow.nodes)} nodes)")
            return 0

        if args.command == "list-executions":
            store = ExecutionStore(settings.executions_state_file)
            executions = store.list(
                workflow_id=args.workflow_id, status=args.status, limit=args.limit
            )
            for execution in executions:
                print(
                    f"{execution.id}\t{execution.workflow_id}\t{execution.status.value}"
                    f"\t{execution.started}"
                )
            return 0

        if args.command == "show-execution":
            store = ExecutionStore(settings.executions_state_file)
            execution = store.get(args.execution_id)
            if execution is None:
                print(f"Execution {args.execution_id} not found", file=sys.stderr)
                return 1
            _print_json(execution.model_dump(mode="json"))
            return 0

        logger.error("Unknown command", extra={"command": args.command})
        return 2

    except ValidationError as e:
        print("Invalid workflow definition:", file=sys.stderr)
        print(e, file=sys.stderr)
        return 2

    except Exception:
        logger.exception("Command failed")
        return 1


if __name__ == "__main__":
    raise SystemExit(main())
