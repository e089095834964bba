"""
SharedBestTracker: the single best (position, fitness) record of a run.

All cross-climber synchronization lives here. One lock guards the record;
it is held only for the compare-and-overwrite in try_publish() and the
read in snapshot(), never while evaluating or sampling.
"""

from __future__ import annotations

import logging
import math
import threading
from dataclasses import dataclass
from typing import Iterable

from hillclimb.events import EventEmitter

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class BestRecord:
    """
    Best point found so far.

    Attributes:
        position: Coordinates of the point (empty before the first publish).
        fitness: Fitness at the point; +inf before the first publish.
    """

    position: tuple[float, ...] = ()
    fitness: float = math.inf

    @property
    def is_empty(self) -> bool:
        """True until a climber has published."""
        return not self.position

    @classmethod
    def of(cls, position: Iterable[float], fitness: float) -> BestRecord:
        """Build a record, copying *position* into plain floats."""
        return cls(position=tuple(float(v) for v in position), fitness=float(fitness))


class SharedBestTracker:
    """
    Holds the run's BestRecord behind a mutex.

    Published fitness never regresses: a candidate replaces the record only
    if it is strictly lower. NaN is never published.

    Example:
        tracker = SharedBestTracker(emitter)
        tracker.try_publish(position, fitness, worker_id="climber:1")
        record = tracker.snapshot()
    """

    def __init__(self, emitter: EventEmitter | None = None) -> None:
        """
        Initialize the tracker.

        Args:
            emitter: Receives a best_improved event for every accepted publish.
        """
        self._lock = threading.Lock()
        self._record = BestRecord()
        self._emitter = emitter or EventEmitter()
        self._publishes = 0

    def try_publish(
        self,
        position: Iterable[float],
        fitness: float,
        worker_id: str | None = None,
    ) -> bool:
        """
        Replace the best record if *fitness* is strictly lower.

        The best_improved notification is emitted before the lock is
        released, so notifications are delivered in improvement order.

        Returns:
            True if the record was replaced.
        """
        if math.isnan(fitness):
            return False

        with self._lock:
            if not fitness < self._record.fitness:
                return False

            previous = self._record
            self._record = BestRecord.of(position, fitness)
            self._publishes += 1
            logger.debug(f"New best {fitness:g} from {worker_id or 'unknown'}")
            self._emitter.best_improved(self._record, previous, worker_id)
            return True

    def snapshot(self) -> BestRecord:
        """Return the current best record."""
        with self._lock:
            # BestRecord is frozen, so handing out the reference is a copy
            return self._record

    @property
    def publishes(self) -> int:
        """Number of accepted publishes."""
        with self._lock:
            return self._publishes
