"""
Display utilities for run summaries.

Renders the per-climber counters and the best point of a finished run with
rich tables and panels.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from hillclimb.report import format_best

if TYPE_CHECKING:
    from hillclimb.runner import RunSummary


def display_summary(summary: RunSummary, console: Console | None = None) -> None:
    """
    Display a finished run.

    Args:
        summary: The run summary.
        console: Rich console (default: a new console on stderr).

    Example:
        summary = run.serve()
        display_summary(summary)
    """
    if console is None:
        console = Console(stderr=True)

    table = Table(title="Climbers", show_header=True, header_style="bold")
    table.add_column("Climber", style="cyan", no_wrap=True)
    table.add_column("Restarts", justify="right")
    table.add_column("Batches", justify="right")
    table.add_column("Evaluations", justify="right")
    table.add_column("Improvements", justify="right")
    table.add_column("Publishes", justify="right")
    table.add_column("Best", justify="right", style="green")

    for stats in summary.workers:
        table.add_row(
            stats.worker_id,
            str(stats.restarts),
            str(stats.batches),
            str(stats.evaluations),
            str(stats.improvements),
            str(stats.publishes),
            f"{stats.best_fitness:.6e}",
        )

    console.print(table)

    config = summary.config
    rate = summary.evaluations / summary.elapsed if summary.elapsed > 0 else 0.0
    lines = [
        f"Function: {config.benchmark.name} (bound {config.bound:g})",
        f"Dimensions: {config.dimensions}",
        f"Seed: {summary.root_seed}",
        f"Elapsed: {summary.elapsed:.2f}s ({rate:,.0f} evaluations/s)",
        f"Best: [bold green]{format_best(summary.best)}[/bold green]",
    ]

    console.print()
    console.print(
        Panel(
            "\n".join(lines),
            title="[bold]Best Result[/bold]",
            border_style="green",
        )
    )
