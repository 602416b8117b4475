from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Protocol

from .models import utc_now_iso

logger = logging.getLogger(__name__)


class ProgressEventType(str, Enum):
    WORKFLOW_STARTED = "workflow_started"
    NODE_STARTED = "node_started"
    NODE_COMPLETED = "node_completed"
    WORKFLOW_COMPLETED = "workflow_completed"
    WORKFLOW_FAILED = "workflow_failed"


TERMINAL_EVENT_TYPES: frozenset[str] = frozenset(
    {ProgressEventType.WORKFLOW_COMPLETED.value, ProgressEventType.WORKFLOW_FAILED.value}
)


@dataclass(frozen=True, slots=True)
class ProgressEvent:
    """A lifecycle signal for observers of a run, timestamped at emission."""

    execution_id: str
    type: str
    data: dict[str, Any]
    timestamp: str = field(default_factory=utc_now_iso)

    def to_json(self) -> dict[str, object]:
        return {
            "execution_id": self.execution_id,
            "type": self.type,
            "data": self.data,
            "timestamp": self.timestamp,
        }


class ProgressSink(Protocol):
    """Receives progress events. Delivery is fire-and-forget."""

    def publish(self, event: ProgressEvent) -> None: ...


class ProgressReporter:
    """Send events to an optional sink without ever failing the run."""

    def __init__(self, sink: ProgressSink | None = None) -> None:
        self._sink = sink

    def emit(self, execution_id: str, event_type: ProgressEventType, data: dict[str, Any]) -> None:
        event = ProgressEvent(execution_id=execution_id, type=event_type.value, data=data)
        logger.debug(
            "Progress event", extra={"execution_id": execution_id, "event": event_type.value}
        )
        if self._sink is None:
            return
        try:
            self._sink.publish(event)
        except Exception:
            logger.warning(
                "Failed to deliver progress event",
                extra={"execution_id": execution_id, "event": event_type.value},
                exc_info=True,
            )
