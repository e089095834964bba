"""
hillclimb CLI: run concurrent hill climbers against a benchmark function.

Usage:
    hillclimb WORKERS FUNCTION [options]

    WORKERS   number of climbers, 1..8
    FUNCTION  benchmark id:
              1 Egg Holder, 2 Schwefel, 3 Rastrigin, 4 Griewank,
              5 Sphere, 6 Dixon-Price, 7 Sum Squares, 8 Sum of Different Powers

While running, SIGINT stops the climbers and prints the best point found;
SIGUSR1 prints the current best without stopping.

Examples:
    # Four climbers on Rastrigin until interrupted
    hillclimb 4 3

    # Reproducible ten-second run with a summary table
    hillclimb 2 5 --seed 42 --time-limit 10 --summary
"""

from __future__ import annotations

import argparse
import logging
import sys

from hillclimb.config import ConfigurationError, RunConfiguration, Settings
from hillclimb.control import bind_signals
from hillclimb.display import display_summary
from hillclimb.report import ConsoleReporter
from hillclimb.runner import ClimbRun

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="hillclimb",
        description="Concurrent stochastic hill climbing on benchmark functions",
    )
    parser.add_argument(
        "selectors",
        nargs="*",
        metavar="SELECTOR",
        help="Number of climbers (1-8) and benchmark function id (1-8)",
    )
    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Enable verbose logging",
    )
    parser.add_argument(
        "-q", "--quiet",
        action="store_true",
        default=None,
        help="Do not print every new minimum",
    )
    parser.add_argument(
        "--seed",
        type=int,
        default=None,
        help="Root seed for reproducible runs (default: time-based)",
    )
    parser.add_argument(
        "--dimensions", "-d",
        type=int,
        default=None,
        help="Number of dimensions (default: 2)",
    )
    parser.add_argument(
        "--time-limit", "-t",
        type=float,
        default=None,
        help="Stop after this many seconds (default: run until interrupted)",
    )
    parser.add_argument(
        "--summary",
        action="store_true",
        default=None,
        help="Print a per-climber summary table on stderr after the run",
    )
    return parser


def _parse_int(value: str, message: str) -> int:
    try:
        return int(value)
    except ValueError:
        raise ConfigurationError(message) from None


def build_configuration(
    args: argparse.Namespace, settings: Settings
) -> RunConfiguration:
    """
    Validate the command line and merge it over file settings.

    Raises:
        ConfigurationError: On a wrong argument count or out-of-range values.
    """
    if len(args.selectors) != 2:
        raise ConfigurationError("Expected two arguments.")

    raw_workers, raw_function = args.selectors
    worker_count = _parse_int(raw_workers, f"Invalid climber count: {raw_workers!r}.")
    function_id = _parse_int(raw_function, "Invalid function type.")

    return RunConfiguration.create(
        worker_count,
        function_id,
        dimensions=args.dimensions if args.dimensions is not None else settings.dimensions,
        seed=args.seed if args.seed is not None else settings.seed,
    )


def main(argv: list[str] | None = None) -> int:
    """Main CLI entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    # Setup logging
    level = logging.DEBUG if args.verbose else logging.WARNING
    logging.basicConfig(
        level=level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    try:
        settings = Settings.load()
        config = build_configuration(args, settings)
    except ConfigurationError as e:
        print(e)
        return 1

    if settings.source is not None:
        logger.debug(f"Loaded settings from {settings.source}")

    quiet = args.quiet if args.quiet is not None else settings.quiet
    show_summary = args.summary if args.summary is not None else settings.summary
    time_limit = args.time_limit if args.time_limit is not None else settings.time_limit

    reporter = ConsoleReporter(quiet=quiet)
    run = ClimbRun(config, on_event=reporter)

    with bind_signals(run.mailbox):
        run.start()
        summary = run.serve(time_limit=time_limit)

    reporter.final(summary.best)
    if show_summary:
        display_summary(summary)
    return 0


if __name__ == "__main__":
    sys.exit(main())
