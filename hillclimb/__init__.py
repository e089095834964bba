"""
hillclimb: concurrent stochastic hill climbing on benchmark functions.

A run starts a fixed pool of climbers, each repeatedly sampling a random
start inside the benchmark's domain and walking to better neighbours until
it leaves the domain. Every climber publishes into one shared best record.

Example:
    import hillclimb

    config = hillclimb.RunConfiguration.create(worker_count=4, function_id=5)
    run = hillclimb.ClimbRun(config, on_event=hillclimb.ConsoleReporter())
    summary = run.run(time_limit=5.0)
    print(hillclimb.format_best(summary.best))
"""

__version__ = "0.1.0"

# Benchmarks
from hillclimb.benchmarks import BENCHMARKS, BenchmarkFunction, get_benchmark

# Configuration
from hillclimb.config import ConfigurationError, RunConfiguration, Settings

# Control
from hillclimb.control import (
    CancellationToken,
    Command,
    ControlInterface,
    Mailbox,
    SharedState,
    bind_signals,
)

# Events
from hillclimb.events import Event, EventCallback, EventKind

# Reporting
from hillclimb.report import ConsoleReporter, format_best

# Run
from hillclimb.runner import ClimbRun, RunSummary
from hillclimb.seeds import PositionSampler, SeedBundle
from hillclimb.tracker import BestRecord, SharedBestTracker
from hillclimb.worker import ClimberState, ClimberWorker, WorkerStats

__all__ = [
    # Benchmarks
    "BENCHMARKS",
    "BenchmarkFunction",
    "get_benchmark",
    # Configuration
    "ConfigurationError",
    "RunConfiguration",
    "Settings",
    # Control
    "CancellationToken",
    "Command",
    "ControlInterface",
    "Mailbox",
    "SharedState",
    "bind_signals",
    # Events
    "Event",
    "EventCallback",
    "EventKind",
    # Reporting
    "ConsoleReporter",
    "format_best",
    # Run
    "ClimbRun",
    "RunSummary",
    "PositionSampler",
    "SeedBundle",
    "BestRecord",
    "SharedBestTracker",
    "ClimberState",
    "ClimberWorker",
    "WorkerStats",
]
