"""Persisted workflow definitions."""

from __future__ import annotations

import json
import threading
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from agent_workflow_orchestrator.orchestrator.workflow.models import (
    WorkflowDefinition,
    utc_now_iso,
)


class WorkflowNotFound(KeyError):
    def __init__(self, workflow_id: str) -> None:
        super().__init__(workflow_id)
        self.workflow_id = workflow_id

    def __str__(self) -> str:
        return f"Workflow {self.workflow_id} not found"


class WorkflowAlreadyExists(ValueError):
    def __init__(self, workflow_id: str) -> None:
        super().__init__(f"Workflow {workflow_id} already exists")
        self.workflow_id = workflow_id


def generate_workflow_id() -> str:
    return f"wf-{int(time.time() * 1000)}"


@dataclass
class WorkflowStore:
    path: Path

    def __post_init__(self) -> None:
        self._lock = threading.Lock()

    def _load_unlocked(self) -> list[WorkflowDefinition]:
        if not self.path.exists():
            return []
        try:
            raw = json.loads(self.path.read_text(encoding="utf-8"))
        except json.JSONDecodeError:
            return []
        if not isinstance(raw, list):
            return []
        return [WorkflowDefinition.model_validate(item) for item in raw]

    def _save_unlocked(self, workflows: list[WorkflowDefinition]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        payload = [w.model_dump(mode="json") for w in workflows]
        self.path.write_text(
            json.dumps(payload, indent=2, ensure_ascii=False) + "\n", encoding="utf-8"
        )

    def list(self) -> list[WorkflowDefinition]:
        with self._lock:
            return self._load_unlocked()

    def get(self, workflow_id: str) -> WorkflowDefinition | None:
        with self._lock:
            for workflow in self._load_unlocked():
                if workflow.id == workflow_id:
                    return workflow
            return None

    def create(self, data: dict[str, Any]) -> WorkflowDefinition:
        """Validate and store a new definition, assigning an id when absent.

        Raises:
            pydantic.ValidationError: If the payload is not a valid definition.
            WorkflowAlreadyExists: If the id is already taken.
        """
        with self._lock:
            workflows = self._load_unlocked()
            now = utc_now_iso()
            workflow = WorkflowDefinition.model_validate(
                {
                    **data,
                    "id": data.get("id") or generate_workflow_id(),
                    "created": now,
                    "updated": now,
                }
            )
            if any(w.id == workflow.id for w in workflows):
                raise WorkflowAlreadyExists(workflow.id)
            workflows.append(workflow)
            self._save_unlocked(workflows)
            return workflow

    def update(self, workflow_id: str, updates: dict[str, Any]) -> WorkflowDefinition:
        """Merge top-level fields into an existing definition.

        `id` and `created` are preserved; `updated` is bumped.
        """
        with self._lock:
            workflows = self._load_unlocked()
            for idx, workflow in enumerate(workflows):
                if workflow.id != workflow_id:
                    continue
                merged = WorkflowDefinition.model_validate(
                    {
                        **workflow.model_dump(mode="json"),
                        **updates,
                        "id": workflow.id,
                        "created": workflow.created,
                        "updated": utc_now_iso(),
                    }
                )
                workflows[idx] = merged
                self._save_unlocked(workflows)
                return merged
            raise WorkflowNotFound(workflow_id)

    def delete(self, workflow_id: str) -> None:
        with self._lock:
            workflows = self._load_unlocked()
            kept = [w for w in workflows if w.id != workflow_id]
            if len(kept) == len(workflows):
                raise WorkflowNotFound(workflow_id)
            self._save_unlocked(kept)
