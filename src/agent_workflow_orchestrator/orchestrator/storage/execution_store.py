"""Persisted execution history.

Executions are stored as a single JSON list under the agent_state directory.
Writes are best-effort from the runner's point of view; callers that need
durability should check the file themselves.
"""

from __future__ import annotations

import json
import threading
from dataclasses import dataclass
from pathlib import Path

from agent_workflow_orchestrator.orchestrator.workflow.state_machine import (
    Execution,
    ExecutionStatus,
)

DEFAULT_LIST_LIMIT = 50


@dataclass
class ExecutionStore:
    path: Path

    def __post_init__(self) -> None:
        self._lock = threading.Lock()

    def _load_unlocked(self) -> list[Execution]:
        if not self.path.exists():
            return []
        try:
            raw = json.loads(self.path.read_text(encoding="utf-8"))
        except json.JSONDecodeError:
            return []
        if not isinstance(raw, list):
            return []
        return [Execution.model_validate(item) for item in raw]

    def _save_unlocked(self, executions: list[Execution]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        payload = [e.model_dump(mode="json") for e in executions]
        self.path.write_text(
            json.dumps(payload, indent=2, ensure_ascii=False) + "\n", encoding="utf-8"
        )

    def save(self, execution: Execution) -> None:
        with self._lock:
            executions = self._load_unlocked()
            for idx, existing in enumerate(executions):
                if existing.id == execution.id:
                    executions[idx] = execution
                    break
            else:
                executions.append(execution)
            self._save_unlocked(executions)

    def get(self, execution_id: str) -> Execution | None:
        with self._lock:
            for execution in self._load_unlocked():
                if execution.id == execution_id:
                    return execution
            return None

    def list(
        self,
        *,
        workflow_id: str | None = None,
        status: ExecutionStatus | str | None = None,
        limit: int = DEFAULT_LIST_LIMIT,
    ) -> list[Execution]:
        """Newest first, optionally filtered by workflow and status."""

        with self._lock:
            executions = self._load_unlocked()

        if workflow_id:
            executions = [e for e in executions if e.workflow_id == workflow_id]
        if status:
            wanted = ExecutionStatus(status)
            executions = [e for e in executions if e.status == wanted]

        executions.sort(key=lambda e: e.started, reverse=True)
        return executions[: max(0, limit)]

    def delete(self, execution_id: str) -> bool:
        with self._lock:
            executions = self._load_unlocked()
            kept = [e for e in executions if e.id != execution_id]
            if len(kept) == len(executions):
                return False
            self._save_unlocked(kept)
            return True

    def delete_for_workflow(self, workflow_id: str) -> int:
        with self._lock:
            executions = self._load_unlocked()
            kept = [e for e in executions if e.workflow_id != workflow_id]
            removed = len(executions) - len(kept)
            if removed:
                self._save_unlocked(kept)
            return removed
