"""
ClimberWorker: stochastic hill climbing with restart-on-boundary-exit.

Each climber alternates between two states until the run is cancelled:

    RESTART    sample a uniform start in [-bound, bound]^D and evaluate it
    SEARCHING  evaluate a batch of perturbed neighbours, keep improvements,
               publish the current point, restart once it leaves the domain

Within a batch the comparison baseline moves as soon as a neighbour
improves on it, so later neighbours must beat the newly adopted point.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from enum import Enum

import numpy as np

from hillclimb.benchmarks import BenchmarkFunction
from hillclimb.config import NEIGHBORS, RunConfiguration
from hillclimb.control import SharedState
from hillclimb.events import EventEmitter
from hillclimb.seeds import PositionSampler

logger = logging.getLogger(__name__)


class ClimberState(str, Enum):
    """States of a climber."""

    RESTART = "restart"
    SEARCHING = "searching"
    TERMINATED = "terminated"


def is_improvement(candidate: float, incumbent: float) -> bool:
    """
    Return True if *candidate* fitness strictly beats *incumbent*.

    NaN never improves on anything, and any non-NaN value improves on NaN.
    Ties are not improvements.
    """
    if math.isnan(candidate):
        return False
    if math.isnan(incumbent):
        return True
    return candidate < incumbent


def in_bounds(position: np.ndarray, bound: float) -> bool:
    """True if every component lies in the closed interval [-bound, bound]."""
    return bool(np.all((position >= -bound) & (position <= bound)))


@dataclass
class WorkerStats:
    """
    Counters kept by one climber.

    Attributes:
        worker_id: Climber identifier, e.g. "climber:1".
        restarts: Number of RESTART transitions (including the first).
        batches: Neighbour batches evaluated.
        evaluations: Fitness evaluations, including start points.
        improvements: Neighbours adopted as the new current point.
        publishes: Publishes accepted by the shared tracker.
        best_fitness: Lowest fitness this climber offered to the tracker.
    """

    worker_id: str
    restarts: int = 0
    batches: int = 0
    evaluations: int = 0
    improvements: int = 0
    publishes: int = 0
    best_fitness: float = math.inf


class ClimberWorker:
    """
    One hill climber, run on its own thread.

    The worker owns its sampler and its current point; the only shared state
    it touches is the tracker and cancellation token inside SharedState.
    """

    def __init__(
        self,
        worker_id: str,
        config: RunConfiguration,
        sampler: PositionSampler,
        state: SharedState,
        emitter: EventEmitter | None = None,
        neighbors: int = NEIGHBORS,
    ) -> None:
        """
        Initialize the climber.

        Args:
            worker_id: Identifier used in logs and events.
            config: The run configuration.
            sampler: Random source owned by this climber.
            state: Shared tracker and cancellation token.
            emitter: Receives worker lifecycle events.
            neighbors: Candidates per search batch.
        """
        self.worker_id = worker_id
        self._benchmark: BenchmarkFunction = config.benchmark
        self._bound = config.bound
        self._perturbation = config.perturbation
        self._sampler = sampler
        self._state = state
        self._emitter = emitter or EventEmitter()
        self._neighbors = neighbors

        self.stats = WorkerStats(worker_id=worker_id)
        self.climber_state = ClimberState.RESTART
        self.position: np.ndarray | None = None
        self.fitness = math.inf

    def _evaluate(self, position: np.ndarray) -> float:
        self.stats.evaluations += 1
        return self._benchmark(position)

    def restart(self) -> None:
        """RESTART -> SEARCHING: sample and evaluate a fresh start point."""
        self.position = self._sampler.sample(-self._bound, self._bound)
        self.fitness = self._evaluate(self.position)
        self.stats.restarts += 1
        self.climber_state = ClimberState.SEARCHING
        logger.debug(
            f"{self.worker_id} restarted at fitness {self.fitness:g}"
        )

    def search_once(self) -> bool:
        """
        Evaluate one batch of neighbours around the current point.

        Publishes the current point if it is still inside the domain.

        Returns:
            True if the climber should keep searching, False if it left the
            domain and must restart.
        """
        if self.position is None:
            raise RuntimeError("search_once() called before restart()")

        for _ in range(self._neighbors):
            step = self._sampler.sample(-self._perturbation, self._perturbation)
            candidate = self.position + step
            candidate.flags.writeable = False
            candidate_fitness = self._evaluate(candidate)
            if is_improvement(candidate_fitness, self.fitness):
                self.position = candidate
                self.fitness = candidate_fitness
                self.stats.improvements += 1
        self.stats.batches += 1

        if not in_bounds(self.position, self._bound):
            self.climber_state = ClimberState.RESTART
            return False

        self._publish()
        return True

    def _publish(self) -> None:
        if is_improvement(self.fitness, self.stats.best_fitness):
            self.stats.best_fitness = self.fitness
        if self._state.tracker.try_publish(
            self.position, self.fitness, worker_id=self.worker_id
        ):
            self.stats.publishes += 1

    def run(self) -> WorkerStats:
        """
        Climb until the run is cancelled.

        Returns:
            This climber's final counters.
        """
        cancel_token = self._state.cancel_token
        self._state.worker_entered()
        self._emitter.worker_started(self.worker_id)
        logger.info(f"{self.worker_id} started")

        try:
            while not cancel_token.is_cancelled():
                self.restart()
                while not cancel_token.is_cancelled():
                    if not self.search_once():
                        break
        finally:
            self.climber_state = ClimberState.TERMINATED
            self._state.worker_exited()

        logger.info(
            f"{self.worker_id} terminated after {self.stats.batches} batches "
            f"and {self.stats.restarts} restarts"
        )
        self._emitter.worker_finished(
            self.worker_id, best_fitness=self.stats.best_fitness
        )
        return self.stats
