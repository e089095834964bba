"""
Plain-text best reports on standard output.

A report line has the form:

    f(v0, v1, ..., v_{D-1}) = <fitness>

with every number in %g notation.
"""

from __future__ import annotations

import sys
import threading
from typing import TextIO

from hillclimb.events import Event, EventKind
from hillclimb.tracker import BestRecord

NEW_MINIMUM_PREFIX = "New minimum: "
STATUS_PREFIX = "Best so far: "
FINAL_PREFIX = "Best in run: "


def format_best(record: BestRecord) -> str:
    """Render a record as ``f(v0, v1) = fitness`` (no trailing newline)."""
    coords = ", ".join(f"{v:g}" for v in record.position)
    return f"f({coords}) = {record.fitness:g}"


class ConsoleReporter:
    """
    Event callback printing best reports.

    Prints every improvement (unless quiet) and every status request.
    Writes are serialized so lines from different threads never interleave.

    Example:
        reporter = ConsoleReporter()
        run = ClimbRun(config, on_event=reporter)
    """

    def __init__(self, stream: TextIO | None = None, quiet: bool = False) -> None:
        """
        Initialize the reporter.

        Args:
            stream: Output stream (default: sys.stdout at write time).
            quiet: Suppress per-improvement lines.
        """
        self._stream = stream
        self.quiet = quiet
        self._lock = threading.Lock()

    def _write(self, text: str) -> None:
        stream = self._stream or sys.stdout
        with self._lock:
            stream.write(text)
            stream.flush()

    def __call__(self, event: Event) -> None:
        if event.kind == EventKind.BEST_IMPROVED and not self.quiet:
            self._write(NEW_MINIMUM_PREFIX + format_best(event.record) + "\n")
        elif event.kind == EventKind.STATUS_REQUESTED:
            self._write(STATUS_PREFIX + format_best(event.record) + "\n")

    def final(self, record: BestRecord) -> None:
        """Print the end-of-run report."""
        self._write("\n" + FINAL_PREFIX + format_best(record) + "\n")
