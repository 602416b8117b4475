from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from .models import AgentMessage


@dataclass
class ExecutionContext:
    """Mutable state threaded through a single workflow run.

    One instance per run; it is never shared between runs. History is
    append-only and exposed as a tuple so callers cannot reorder it.
    """

    user_id: str
    session_id: str
    workflow_id: str
    execution_id: str = ""
    variables: dict[str, Any] = field(default_factory=dict)
    _history: list[AgentMessage] = field(default_factory=list, repr=False)

    @property
    def history(self) -> tuple[AgentMessage, ...]:
        return tuple(self._history)

    def append_message(self, message: AgentMessage) -> None:
        self._history.append(message)

    def get_variable(self, name: str, default: Any = None) -> Any:
        return self.variables.get(name, default)

    def set_variable(self, name: str, value: Any) -> None:
        self.variables[name] = value

    def last_user_message(self) -> str:
        """Content of the most recent user message, or "" when there is none."""

        for message in reversed(self._history):
            if message.role == "user":
                return message.content
        return ""

    def to_json(self) -> dict[str, object]:
        return {
            "user_id": self.user_id,
            "session_id": self.session_id,
            "workflow_id": self.workflow_id,
            "execution_id": self.execution_id,
            "variables": dict(self.variables),
            "history": [m.model_dump(mode="json") for m in self._history],
        }
