"""
Control interface: cooperative cancellation and status queries.

Provides:
- CancellationToken: Run-wide stop flag observed by every climber
- SharedState: Everything climbers share, handed to each at construction
- ControlInterface: request_stop() / request_status()
- Command / Mailbox: Control messages consumed by the run's control loop
- bind_signals: Thin adapter turning OS signals into mailbox commands

Signal handlers never touch the tracker or the climbers directly; they only
post a Command. The orchestrator's control loop acts on it in the main thread.
"""

from __future__ import annotations

import logging
import queue
import signal
import threading
from contextlib import contextmanager
from enum import Enum
from typing import Iterator

from hillclimb.events import EventEmitter
from hillclimb.tracker import BestRecord, SharedBestTracker

logger = logging.getLogger(__name__)


class CancellationToken:
    """
    Simple cancellation token using threading.Event.

    Climbers check is_cancelled() between search batches and exit gracefully
    if True.
    """

    def __init__(self) -> None:
        self._event = threading.Event()

    def cancel(self) -> None:
        """Signal cancellation."""
        self._event.set()

    def is_cancelled(self) -> bool:
        """Check if cancellation has been requested."""
        return self._event.is_set()

    def wait(self, timeout: float | None = None) -> bool:
        """
        Wait for cancellation.

        Returns:
            True if cancelled, False if timeout elapsed.
        """
        return self._event.wait(timeout)


class SharedState:
    """
    State shared by all climbers of one run.

    Attributes:
        tracker: The run's best record.
        cancel_token: Run-wide stop flag.
    """

    def __init__(
        self,
        tracker: SharedBestTracker | None = None,
        cancel_token: CancellationToken | None = None,
    ) -> None:
        self.tracker = tracker or SharedBestTracker()
        self.cancel_token = cancel_token or CancellationToken()
        self._active = 0
        self._active_lock = threading.Lock()

    def worker_entered(self) -> None:
        with self._active_lock:
            self._active += 1

    def worker_exited(self) -> None:
        with self._active_lock:
            self._active -= 1

    @property
    def active_workers(self) -> int:
        """Number of climbers currently between start and Terminated."""
        with self._active_lock:
            return self._active


class ControlInterface:
    """
    External control of a running search.

    Both operations are safe to call from any thread, any number of times.
    """

    def __init__(self, state: SharedState, emitter: EventEmitter | None = None) -> None:
        self._state = state
        self._emitter = emitter or EventEmitter()
        self._stop_lock = threading.Lock()

    def request_stop(self) -> None:
        """
        Ask every climber to stop.

        Idempotent. Climbers observe the request by the end of their current
        batch; use the run's wait() to block until they have all terminated.
        """
        with self._stop_lock:
            if self._state.cancel_token.is_cancelled():
                return
            self._state.cancel_token.cancel()

        logger.info("Stop requested")
        self._emitter.stop_requested()

    def request_status(self) -> BestRecord:
        """Report the current best without affecting the climbers."""
        record = self._state.tracker.snapshot()
        self._emitter.status_requested(record)
        return record

    @property
    def stop_requested(self) -> bool:
        return self._state.cancel_token.is_cancelled()


class Command(str, Enum):
    """Messages consumed by the run's control loop."""

    STOP = "stop"
    STATUS = "status"
    WORKER_EXITED = "worker_exited"


class Mailbox:
    """
    Queue of control commands.

    post() is safe to call from signal handlers and worker threads.
    """

    def __init__(self) -> None:
        self._queue: queue.SimpleQueue[Command] = queue.SimpleQueue()

    def post(self, command: Command) -> None:
        self._queue.put(command)

    def receive(self, timeout: float | None = None) -> Command | None:
        """
        Block until a command arrives.

        Returns:
            The next command, or None if *timeout* elapsed first.
        """
        try:
            return self._queue.get(timeout=timeout)
        except queue.Empty:
            return None


@contextmanager
def bind_signals(mailbox: Mailbox) -> Iterator[None]:
    """
    Route SIGINT to Command.STOP and SIGUSR1 to Command.STATUS.

    Previous handlers are restored on exit. SIGUSR1 is skipped on platforms
    that do not define it. Must be entered from the main thread.
    """
    bindings = {signal.SIGINT: Command.STOP}
    sigusr1 = getattr(signal, "SIGUSR1", None)
    if sigusr1 is not None:
        bindings[sigusr1] = Command.STATUS

    previous = {}
    for signum, command in bindings.items():
        previous[signum] = signal.signal(
            signum, lambda _signum, _frame, command=command: mailbox.post(command)
        )

    try:
        yield
    finally:
        for signum, handler in previous.items():
            signal.signal(signum, handler)
