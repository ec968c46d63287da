"""Non-blocking side channel for pipeline events."""

import queue
import threading
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional

from ..logging import get_logger
from ..models.deployment import DeploymentStatus
from ..storage.records import DeploymentRecordStore

logger = get_logger(__name__)

STAGE = "stage"
DEPLOYMENT_STARTED = "deployment_started"
DEPLOYMENT_COMPLETED = "deployment_completed"


@dataclass
class DeploymentEvent:
    kind: str
    payload: Dict[str, Any]
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


Sink = Callable[[DeploymentEvent], None]

_STOP = object()


class EventChannel:
    """Bounded queue drained by a daemon thread into registered sinks.

    ``publish`` never blocks: when the queue is full the event is dropped
    and counted. A sink that raises is logged and skipped.
    """

    def __init__(self, maxsize: int = 1000):
        self._queue: "queue.Queue[Any]" = queue.Queue(maxsize=maxsize)
        self._sinks: List[Sink] = []
        self._thread: Optional[threading.Thread] = None
        self._lock = threading.Lock()
        self.dropped = 0

    def subscribe(self, sink: Sink) -> None:
        self._sinks.append(sink)

    def publish(self, kind: str, **payload: Any) -> None:
        self._ensure_started()
        try:
            self._queue.put_nowait(DeploymentEvent(kind=kind, payload=payload))
        except queue.Full:
            self.dropped += 1

    def flush(self) -> None:
        """Block until every queued event has been delivered."""
        if self._thread is not None:
            self._queue.join()

    def close(self) -> None:
        if self._thread is None:
            return
        self._queue.put(_STOP)
        self._thread.join()
        self._thread = None

    def _ensure_started(self) -> None:
        with self._lock:
            if self._thread is None:
                self._thread = threading.Thread(
                    target=self._drain, name="sitedeploy-events", daemon=True
                )
                self._thread.start()

    def _drain(self) -> None:
        while True:
            event = self._queue.get()
            try:
                if event is _STOP:
                    return
                for sink in list(self._sinks):
                    try:
                        sink(event)
                    except Exception as e:
                        logger.error("event_sink_failed", kind=event.kind, error=str(e))
            finally:
                self._queue.task_done()


def log_sink(event: DeploymentEvent) -> None:
    """Write stage transitions to the structured log."""
    if event.kind == STAGE:
        logger.info("deployment_stage", **event.payload)
    else:
        logger.info(event.kind, **event.payload)


class RecordSink:
    """Persist deployment start and completion events."""

    def __init__(self, store: DeploymentRecordStore):
        self.store = store

    def __call__(self, event: DeploymentEvent) -> None:
        payload = event.payload
        if event.kind == DEPLOYMENT_STARTED:
            self.store.start(
                project_id=payload["project_id"],
                commit_message=payload.get("commit_message"),
                record_id=payload["record_id"],
                started_at=event.created_at,
            )
        elif event.kind == DEPLOYMENT_COMPLETED:
            self.store.complete(
                payload["record_id"],
                DeploymentStatus(payload["status"]),
                commit_sha=payload.get("commit_sha"),
                build_time=payload.get("build_time"),
                error_message=payload.get("error_message"),
            )
