"""
ClimbRun: orchestration of a pool of climbers.

Runs one ClimberWorker per thread in a ThreadPoolExecutor and drives a
control loop in the calling thread. The loop blocks on the run's Mailbox
and reacts to:

- Command.STATUS: report the current best
- Command.STOP: request a stop and join every climber
- Command.WORKER_EXITED: a climber finished; stop the others
- an elapsed time limit, treated like Command.STOP

Shutdown joins every climber's future, so it completes as soon as the last
climber finishes its current batch.
"""

from __future__ import annotations

import logging
import time
from concurrent.futures import Future, ThreadPoolExecutor
from concurrent.futures import wait as wait_futures
from dataclasses import dataclass

from hillclimb.config import RunConfiguration
from hillclimb.control import Command, ControlInterface, Mailbox, SharedState
from hillclimb.events import EventCallback, EventEmitter
from hillclimb.seeds import PositionSampler, SeedBundle
from hillclimb.tracker import BestRecord, SharedBestTracker
from hillclimb.worker import ClimberWorker, WorkerStats

logger = logging.getLogger(__name__)


@dataclass
class RunSummary:
    """
    Outcome of a finished run.

    Attributes:
        config: The run configuration.
        best: Best record at shutdown.
        workers: Final counters of every climber, in climber order.
        elapsed: Wall-clock seconds between start and the last climber exiting.
        root_seed: Root seed of the run's random sources.
    """

    config: RunConfiguration
    best: BestRecord
    workers: list[WorkerStats]
    elapsed: float
    root_seed: int

    @property
    def evaluations(self) -> int:
        """Total fitness evaluations across all climbers."""
        return sum(stats.evaluations for stats in self.workers)


class ClimbRun:
    """
    A single optimization run.

    Example:
        config = RunConfiguration.create(worker_count=4, function_id=5)
        run = ClimbRun(config, on_event=reporter)
        run.start()
        summary = run.serve(time_limit=10.0)
        print(summary.best.fitness)
    """

    def __init__(
        self,
        config: RunConfiguration,
        on_event: EventCallback | None = None,
        seeds: SeedBundle | None = None,
    ) -> None:
        """
        Initialize the run. No threads are started until start().

        Args:
            config: The run configuration.
            on_event: Callback receiving every event of the run.
            seeds: Random sources; defaults to config.seed or the wall clock.
        """
        self.config = config
        self.seeds = seeds or SeedBundle.create(config.seed)
        self._emitter = EventEmitter(on_event)

        self.state = SharedState(tracker=SharedBestTracker(self._emitter))
        self.control = ControlInterface(self.state, self._emitter)
        self.mailbox = Mailbox()

        self.workers = []
        for index in range(1, config.worker_count + 1):
            worker_id = f"climber:{index}"
            sampler = PositionSampler(self.seeds.numpy(worker_id), config.dimensions)
            self.workers.append(
                ClimberWorker(worker_id, config, sampler, self.state, self._emitter)
            )

        self._pool: ThreadPoolExecutor | None = None
        self._futures: list[Future[WorkerStats]] = []
        self._started_at: float | None = None

    @property
    def tracker(self) -> SharedBestTracker:
        return self.state.tracker

    def start(self) -> None:
        """Start one thread per climber."""
        if self._pool is not None:
            raise RuntimeError("Run already started")

        benchmark = self.config.benchmark
        logger.info(
            f"Starting {self.config.worker_count} climber(s) on {benchmark.name} "
            f"(bound {benchmark.bound:g}, {self.config.dimensions} dimensions, "
            f"seed {self.seeds.root_seed})"
        )

        self._started_at = time.monotonic()
        self._pool = ThreadPoolExecutor(
            max_workers=self.config.worker_count,
            thread_name_prefix="climber",
        )
        self._emitter.run_started(
            function=benchmark.name,
            workers=self.config.worker_count,
            dimensions=self.config.dimensions,
            **self.seeds.to_dict(),
        )

        for worker in self.workers:
            future = self._pool.submit(worker.run)
            future.add_done_callback(
                lambda _future: self.mailbox.post(Command.WORKER_EXITED)
            )
            self._futures.append(future)

    def serve(self, time_limit: float | None = None) -> RunSummary:
        """
        Run the control loop until stopped, then join all climbers.

        Args:
            time_limit: Stop automatically after this many seconds.

        Returns:
            The run summary.
        """
        if self._pool is None:
            raise RuntimeError("Run not started")

        deadline = None if time_limit is None else time.monotonic() + time_limit

        while True:
            timeout = None
            if deadline is not None:
                timeout = max(0.0, deadline - time.monotonic())

            command = self.mailbox.receive(timeout)
            if command is None:
                logger.info(f"Time limit of {time_limit:g}s reached")
                break
            if command is Command.STATUS:
                self.control.request_status()
            elif command is Command.STOP:
                break
            elif command is Command.WORKER_EXITED:
                if not self.control.stop_requested:
                    logger.error("A climber exited before a stop was requested")
                break

        self.control.request_stop()
        return self.wait()

    def wait(self) -> RunSummary:
        """
        Block until every climber has terminated.

        Only returns once a stop has been requested (climbers run until
        cancelled).

        Raises:
            Exception: The first exception raised by a climber, if any.
        """
        if self._pool is None or self._started_at is None:
            raise RuntimeError("Run not started")

        wait_futures(self._futures)
        elapsed = time.monotonic() - self._started_at
        self._pool.shutdown(wait=True)

        stats = [future.result() for future in self._futures]
        best = self.tracker.snapshot()
        self._emitter.run_finished(best, elapsed=elapsed)
        logger.info(f"Run finished after {elapsed:.2f}s, best fitness {best.fitness:g}")

        return RunSummary(
            config=self.config,
            best=best,
            workers=stats,
            elapsed=elapsed,
            root_seed=self.seeds.root_seed,
        )

    def run(self, time_limit: float | None = None) -> RunSummary:
        """Start the climbers and serve until stopped."""
        self.start()
        return self.serve(time_limit=time_limit)
