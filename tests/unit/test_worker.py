"""Tests for the climber state machine."""

from __future__ import annotations

import math
import threading

import numpy as np
import pytest

from hillclimb.benchmarks import BenchmarkFunction, get_benchmark
from hillclimb.config import RunConfiguration
from hillclimb.control import SharedState
from hillclimb.events import EventEmitter, EventKind
from hillclimb.seeds import PositionSampler
from hillclimb.tracker import SharedBestTracker
from hillclimb.worker import (
    ClimberState,
    ClimberWorker,
    in_bounds,
    is_improvement,
)


class ScriptedSampler:
    """Sampler returning a fixed sequence of positions."""

    def __init__(self, *positions: list[float]) -> None:
        self._positions = [np.array(p, dtype=float) for p in positions]
        self.calls: list[tuple[float, float]] = []

    def sample(self, low: float, high: float) -> np.ndarray:
        self.calls.append((low, high))
        position = self._positions.pop(0)
        position.flags.writeable = False
        return position


class RecordingTracker(SharedBestTracker):
    """Tracker remembering every publish attempt."""

    def __init__(self) -> None:
        super().__init__()
        self.attempts: list[tuple[tuple[float, ...], float]] = []

    def try_publish(self, position, fitness, worker_id=None):
        self.attempts.append((tuple(position), fitness))
        return super().try_publish(position, fitness, worker_id)


def _custom(fn, bound: float = 1.0) -> BenchmarkFunction:
    return BenchmarkFunction(
        function_id=0,
        name="custom",
        fn=fn,
        bound=bound,
        optimum=0.0,
        minimizer=lambda dim: np.zeros(dim),
    )


def _worker(benchmark, sampler, dimensions=1, tracker=None):
    config = RunConfiguration(
        worker_count=1, benchmark=benchmark, dimensions=dimensions
    )
    state = SharedState(tracker=tracker or RecordingTracker())
    return ClimberWorker("climber:1", config, sampler, state), state


class TestIsImprovement:
    def test_strictly_lower(self):
        assert is_improvement(1.0, 2.0)

    def test_tie(self):
        assert not is_improvement(2.0, 2.0)

    def test_higher(self):
        assert not is_improvement(3.0, 2.0)

    def test_nan_candidate_never_improves(self):
        assert not is_improvement(math.nan, 2.0)
        assert not is_improvement(math.nan, math.inf)
        assert not is_improvement(math.nan, math.nan)

    def test_anything_beats_nan_incumbent(self):
        assert is_improvement(1e300, math.nan)
        assert is_improvement(math.inf, math.nan)

    def test_infinities(self):
        assert is_improvement(1.0, math.inf)
        assert not is_improvement(math.inf, math.inf)


class TestInBounds:
    def test_inside(self):
        assert in_bounds(np.array([0.0, -1.0, 1.0]), 1.0)

    def test_boundary_is_inside(self):
        assert in_bounds(np.array([512.0, -512.0]), 512.0)

    def test_outside_any_dimension(self):
        assert not in_bounds(np.array([0.0, 1.0001]), 1.0)

    def test_nan_is_outside(self):
        assert not in_bounds(np.array([math.nan]), 1.0)


class TestRestart:
    def test_samples_full_domain(self):
        sampler = ScriptedSampler([2.0])
        worker, _ = _worker(get_benchmark(5), sampler)
        worker.restart()

        assert sampler.calls == [(-5.12, 5.12)]
        assert worker.position.tolist() == [2.0]
        assert worker.fitness == 4.0
        assert worker.climber_state == ClimberState.SEARCHING
        assert worker.stats.restarts == 1
        assert worker.stats.evaluations == 1

    def test_search_before_restart_raises(self):
        worker, _ = _worker(get_benchmark(5), ScriptedSampler())
        with pytest.raises(RuntimeError):
            worker.search_once()


class TestSearchBatch:
    """One SEARCHING iteration."""

    def test_four_neighbours_with_moving_baseline(self):
        # 2.0 -> 1.5 (adopt), 1.9 (reject), 1.2 (adopt), 1.3 (reject)
        sampler = ScriptedSampler([2.0], [-0.5], [0.4], [-0.3], [0.1])
        worker, state = _worker(get_benchmark(5), sampler)
        worker.restart()

        assert worker.search_once() is True
        assert worker.position.tolist() == pytest.approx([1.2])
        assert worker.fitness == pytest.approx(1.44)
        assert worker.stats.improvements == 2
        assert worker.stats.evaluations == 5
        assert worker.stats.batches == 1

        # Perturbations span 10% of the bound
        assert len(sampler.calls) == 5
        for low, high in sampler.calls[1:]:
            assert low == pytest.approx(-0.512)
            assert high == pytest.approx(0.512)
        assert state.tracker.snapshot().fitness == pytest.approx(1.44)

    def test_tie_not_adopted(self):
        # Symmetric step keeps the same fitness on Sphere
        sampler = ScriptedSampler([1.0], [-2.0], [0.0], [0.0], [0.0])
        worker, _ = _worker(get_benchmark(5), sampler)
        worker.restart()
        worker.search_once()
        assert worker.position.tolist() == [1.0]
        assert worker.stats.improvements == 0

    def test_publishes_even_without_improvement(self):
        sampler = ScriptedSampler([1.0], [0.1], [0.1], [0.1], [0.1])
        tracker = RecordingTracker()
        worker, _ = _worker(get_benchmark(5), sampler, tracker=tracker)
        worker.restart()
        worker.search_once()
        assert tracker.attempts == [((1.0,), 1.0)]
        assert worker.stats.publishes == 1
        assert worker.stats.best_fitness == 1.0

    def test_leaving_domain_restarts_without_publishing(self):
        # Decreasing slope drives the climber out through +bound
        benchmark = _custom(lambda x: float(-np.sum(x)))
        sampler = ScriptedSampler([0.95], [0.1], [0.0], [0.0], [0.0])
        tracker = RecordingTracker()
        worker, _ = _worker(benchmark, sampler, tracker=tracker)
        worker.restart()

        assert worker.search_once() is False
        assert worker.climber_state == ClimberState.RESTART
        assert worker.position.tolist() == pytest.approx([1.05])
        assert tracker.attempts == []

    def test_nan_start_is_replaced(self):
        benchmark = _custom(lambda x: math.nan if x[0] > 0.5 else float(x[0] ** 2))
        sampler = ScriptedSampler([0.8], [-0.5], [0.0], [0.0], [0.0])
        worker, state = _worker(benchmark, sampler)
        worker.restart()
        assert math.isnan(worker.fitness)

        worker.search_once()
        assert worker.position.tolist() == pytest.approx([0.3])
        assert worker.fitness == pytest.approx(0.09)
        assert state.tracker.snapshot().fitness == pytest.approx(0.09)

    def test_nan_candidate_ignored(self):
        benchmark = _custom(lambda x: math.nan if x[0] < 0 else float(x[0] ** 2))
        sampler = ScriptedSampler([0.2], [-0.5], [0.0], [0.0], [0.0])
        worker, _ = _worker(benchmark, sampler)
        worker.restart()
        worker.search_once()
        assert worker.position.tolist() == [0.2]

    def test_positions_stay_read_only(self):
        sampler = ScriptedSampler([2.0], [-0.5], [0.0], [0.0], [0.0])
        worker, _ = _worker(get_benchmark(5), sampler)
        worker.restart()
        worker.search_once()
        with pytest.raises(ValueError):
            worker.position[0] = 0.0


class TestRun:
    """Tests for the full state machine loop."""

    def _random_worker(self, function_id=5, dimensions=2, seed=0, tracker=None):
        config = RunConfiguration.create(1, function_id, dimensions=dimensions)
        sampler = PositionSampler(np.random.default_rng(seed), dimensions)
        state = SharedState(tracker=tracker or RecordingTracker())
        received = []
        worker = ClimberWorker(
            "climber:1", config, sampler, state, EventEmitter(received.append)
        )
        return worker, state, received

    def test_cancelled_before_start(self):
        worker, state, received = self._random_worker()
        state.cancel_token.cancel()
        stats = worker.run()
        assert stats.restarts == 0
        assert worker.climber_state == ClimberState.TERMINATED
        assert [e.kind for e in received] == [
            EventKind.WORKER_STARTED,
            EventKind.WORKER_FINISHED,
        ]

    def test_runs_until_cancelled(self):
        worker, state, _ = self._random_worker()
        thread = threading.Thread(target=worker.run)
        thread.start()
        try:
            assert not state.cancel_token.wait(0.2)
            assert state.active_workers == 1
        finally:
            state.cancel_token.cancel()
            thread.join(timeout=5.0)

        assert not thread.is_alive()
        assert worker.climber_state == ClimberState.TERMINATED
        assert state.active_workers == 0
        assert worker.stats.batches > 0
        assert worker.stats.evaluations == (
            worker.stats.restarts + 4 * worker.stats.batches
        )

    @pytest.mark.parametrize("function_id", range(1, 9))
    def test_published_positions_within_bounds(self, function_id):
        tracker = RecordingTracker()
        worker, _, _ = self._random_worker(function_id, tracker=tracker)
        bound = get_benchmark(function_id).bound
        worker.restart()
        for _ in range(3000):
            if not worker.search_once():
                worker.restart()

        assert tracker.attempts
        for position, _fitness in tracker.attempts:
            assert all(-bound <= v <= bound for v in position)

    @pytest.mark.parametrize("dimensions", [1, 2, 3])
    def test_sphere_converges(self, dimensions):
        worker, state, _ = self._random_worker(5, dimensions=dimensions, seed=3)
        worker.restart()
        for _ in range(3000):
            if not worker.search_once():
                worker.restart()

        best = state.tracker.snapshot()
        assert len(best.position) == dimensions
        assert best.fitness < 0.1
        assert all(abs(v) < 0.35 for v in best.position)

    def test_snapshots_never_regress(self):
        worker, state, _ = self._random_worker(3, seed=5)
        worker.restart()
        seen = []
        for _ in range(1000):
            if not worker.search_once():
                worker.restart()
            seen.append(state.tracker.snapshot().fitness)
        assert all(a >= b for a, b in zip(seen, seen[1:]))
