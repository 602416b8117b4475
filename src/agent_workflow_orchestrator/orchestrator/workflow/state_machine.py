from __future__ import annotations

from enum import Enum
from typing import Any

from pydantic import BaseModel, Field

from .models import utc_now_iso


class ExecutionStatus(str, Enum):
    PENDING = "pending"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"


ALLOWED_TRANSITIONS: dict[ExecutionStatus, set[ExecutionStatus]] = {
    ExecutionStatus.PENDING: {ExecutionStatus.RUNNING},
    ExecutionStatus.RUNNING: {ExecutionStatus.COMPLETED, ExecutionStatus.FAILED},
    ExecutionStatus.COMPLETED: set(),
    ExecutionStatus.FAILED: set(),
}

TERMINAL_STATUSES: frozenset[ExecutionStatus] = frozenset(
    {ExecutionStatus.COMPLETED, ExecutionStatus.FAILED}
)


class IllegalTransitionError(ValueError):
    pass


def transition(*, current: ExecutionStatus, to: ExecutionStatus) -> ExecutionStatus:
    allowed = ALLOWED_TRANSITIONS.get(current, set())
    if to not in allowed:
        raise IllegalTransitionError(f"Illegal transition: {current.value} -> {to.value}")
    return to


class Execution(BaseModel):
    """The record of one workflow run.

    Status only moves forward (see `ALLOWED_TRANSITIONS`); use `advance` rather
    than assigning `status` directly.
    """

    id: str
    workflow_id: str
    status: ExecutionStatus = ExecutionStatus.PENDING
    current_node: str | None = None
    results: dict[str, Any] = Field(default_factory=dict)
    path: list[str] = Field(default_factory=list)
    started: str = Field(default_factory=utc_now_iso)
    completed: str | None = None
    error: str | None = None

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES

    def advance(self, to: ExecutionStatus) -> None:
        self.status = transition(current=self.status, to=to)

    def record_result(self, node_id: str, result: Any) -> None:
        self.results[node_id] = result
        self.path.append(node_id)

    def finish(self, *, error: str | None = None) -> None:
        """Move a running execution to its terminal state."""

        if error is None:
            self.advance(ExecutionStatus.COMPLETED)
        else:
            self.advance(ExecutionStatus.FAILED)
            self.error = error
        self.completed = utc_now_iso()
