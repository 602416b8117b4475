"""Progress sinks.

`HttpProgressSink` forwards events to a remote monitor endpoint.
`ProgressBroadcaster` keeps events in memory and fans them out to live
subscribers (the server's Server-Sent Events stream reads from it).
"""

from __future__ import annotations

import logging
import queue
import threading
from collections import defaultdict

import requests

from agent_workflow_orchestrator.orchestrator.workflow.events import ProgressEvent

logger = logging.getLogger(__name__)


class HttpProgressSink:
    def __init__(
        self,
        *,
        url: str,
        timeout_seconds: float = 30.0,
        session: requests.Session | None = None,
    ) -> None:
        if not url.strip():
            raise ValueError("Monitor URL is required")
        self._url = url
        self._timeout = timeout_seconds
        self._session = session or requests.Session()
        self._session.headers.update({"User-Agent": "agent-workflow-orchestrator"})

    def publish(self, event: ProgressEvent) -> None:
        resp = self._session.post(
            self._url,
            json=event.to_json(),
            timeout=self._timeout,
        )
        resp.raise_for_status()


class ProgressBroadcaster:
    """Thread-safe in-memory event hub.

    Each execution keeps its full event history so late subscribers can
    replay it before receiving live events.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._history: dict[str, list[ProgressEvent]] = defaultdict(list)
        self._subscribers: dict[str, list[queue.Queue[ProgressEvent]]] = defaultdict(list)

    def publish(self, event: ProgressEvent) -> None:
        with self._lock:
            self._history[event.execution_id].append(event)
            subscribers = list(self._subscribers.get(event.execution_id, ()))
        for subscriber in subscribers:
            subscriber.put(event)

    def subscribe(self, execution_id: str) -> queue.Queue[ProgressEvent]:
        subscriber: queue.Queue[ProgressEvent] = queue.Queue()
        with self._lock:
            for event in self._history.get(execution_id, ()):
                subscriber.put(event)
            self._subscribers[execution_id].append(subscriber)
        logger.debug("Monitor subscriber added", extra={"execution_id": execution_id})
        return subscriber

    def unsubscribe(self, execution_id: str, subscriber: queue.Queue[ProgressEvent]) -> None:
        with self._lock:
            subscribers = self._subscribers.get(execution_id)
            if not subscribers:
                return
            try:
                subscribers.remove(subscriber)
            except ValueError:
                return
            if not subscribers:
                del self._subscribers[execution_id]

    def history(self, execution_id: str) -> list[ProgressEvent]:
        with self._lock:
            return list(self._history.get(execution_id, ()))

    def clear(self, execution_id: str) -> bool:
        with self._lock:
            return self._history.pop(execution_id, None) is not None
