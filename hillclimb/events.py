"""
Events system: notifications for reporting and progress tracking.

Ordering guarantees:
- Synchronous emission: Events are emitted inline (callback blocks the emitter)
- Best-effort delivery: If callback raises, exception is logged but climbing continues
- Improvement ordering: best_improved events are emitted under the tracker lock,
  so they arrive in strictly decreasing fitness order
- Cross-worker ordering of other events: NOT guaranteed
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import TYPE_CHECKING, Any, Callable

if TYPE_CHECKING:
    from hillclimb.tracker import BestRecord

logger = logging.getLogger(__name__)


class EventKind(str, Enum):
    """Types of events emitted during a run."""

    RUN_STARTED = "run_started"
    RUN_FINISHED = "run_finished"
    WORKER_STARTED = "worker_started"
    WORKER_FINISHED = "worker_finished"
    BEST_IMPROVED = "best_improved"
    STATUS_REQUESTED = "status_requested"
    STOP_REQUESTED = "stop_requested"


@dataclass(frozen=True)
class Event:
    """
    An event emitted during a run.

    Attributes:
        kind: The type of event.
        worker_id: The climber this event relates to (None for run-wide events).
        timestamp: When the event occurred.
        payload: Event-specific data.
    """

    kind: EventKind
    worker_id: str | None
    timestamp: datetime
    payload: dict[str, Any] = field(default_factory=dict)

    @property
    def record(self) -> BestRecord | None:
        """The best record carried by improvement, status and finish events."""
        return self.payload.get("record")

    @classmethod
    def run_started(cls, **extra: Any) -> Event:
        """Create a run_started event."""
        return cls(
            kind=EventKind.RUN_STARTED,
            worker_id=None,
            timestamp=datetime.now(),
            payload=extra,
        )

    @classmethod
    def run_finished(cls, record: BestRecord, **extra: Any) -> Event:
        """Create a run_finished event."""
        return cls(
            kind=EventKind.RUN_FINISHED,
            worker_id=None,
            timestamp=datetime.now(),
            payload={"record": record, **extra},
        )

    @classmethod
    def worker_started(cls, worker_id: str) -> Event:
        return cls(
            kind=EventKind.WORKER_STARTED,
            worker_id=worker_id,
            timestamp=datetime.now(),
        )

    @classmethod
    def worker_finished(cls, worker_id: str, **extra: Any) -> Event:
        return cls(
            kind=EventKind.WORKER_FINISHED,
            worker_id=worker_id,
            timestamp=datetime.now(),
            payload=extra,
        )

    @classmethod
    def best_improved(
        cls, record: BestRecord, previous: BestRecord, worker_id: str | None = None
    ) -> Event:
        """Create a best_improved event."""
        return cls(
            kind=EventKind.BEST_IMPROVED,
            worker_id=worker_id,
            timestamp=datetime.now(),
            payload={"record": record, "previous": previous},
        )

    @classmethod
    def status_requested(cls, record: BestRecord) -> Event:
        """Create a status_requested event."""
        return cls(
            kind=EventKind.STATUS_REQUESTED,
            worker_id=None,
            timestamp=datetime.now(),
            payload={"record": record},
        )

    @classmethod
    def stop_requested(cls) -> Event:
        return cls(
            kind=EventKind.STOP_REQUESTED,
            worker_id=None,
            timestamp=datetime.now(),
        )


# Type alias for event callbacks
EventCallback = Callable[[Event], None]


def emit_event(callback: EventCallback | None, event: Event) -> None:
    """
    Emit an event to a callback, with best-effort delivery.

    If the callback raises an exception, it is logged and the climbers
    continue.

    Args:
        callback: The event callback (may be None).
        event: The event to emit.
    """
    if callback is None:
        return

    try:
        callback(event)
    except Exception as e:
        logger.warning(f"Event callback failed for {event.kind}: {e}")
        # Do NOT re-raise; climbing continues


class EventEmitter:
    """
    Helper class for emitting events.

    Wraps a callback and provides convenience methods for common events.
    """

    def __init__(self, callback: EventCallback | None = None) -> None:
        """
        Initialize the emitter.

        Args:
            callback: The event callback (may be None for no-op).
        """
        self._callback = callback

    def emit(self, event: Event) -> None:
        """Emit an event."""
        emit_event(self._callback, event)

    def run_started(self, **extra: Any) -> None:
        self.emit(Event.run_started(**extra))

    def run_finished(self, record: BestRecord, **extra: Any) -> None:
        self.emit(Event.run_finished(record, **extra))

    def worker_started(self, worker_id: str) -> None:
        self.emit(Event.worker_started(worker_id))

    def worker_finished(self, worker_id: str, **extra: Any) -> None:
        self.emit(Event.worker_finished(worker_id, **extra))

    def best_improved(
        self, record: BestRecord, previous: BestRecord, worker_id: str | None = None
    ) -> None:
        """Emit a best_improved event."""
        self.emit(Event.best_improved(record, previous, worker_id))

    def status_requested(self, record: BestRecord) -> None:
        """Emit a status_requested event."""
        self.emit(Event.status_requested(record))

    def stop_requested(self) -> None:
        self.emit(Event.stop_requested())
