"""End-to-end tests for the hillclimb command line."""

from __future__ import annotations

import os
import re
import signal
import subprocess
import sys
import time
from pathlib import Path

import pytest

from hillclimb.cli import main

PROJECT_ROOT = Path(__file__).resolve().parents[2]

REPORT = re.compile(r"^f\((?P<coords>[^)]*)\) = (?P<fitness>\S+)$")


def _parse_report(line: str, prefix: str) -> tuple[list[float], float]:
    assert line.startswith(prefix), line
    match = REPORT.match(line[len(prefix):])
    assert match, line
    coords = [float(v) for v in match.group("coords").split(", ")]
    return coords, float(match.group("fitness"))


@pytest.fixture(autouse=True)
def _isolated_cwd(tmp_path, monkeypatch):
    """Keep any .hillclimb.toml above the test tree out of reach."""
    monkeypatch.setattr("hillclimb.config.find_config_file", lambda _start=None: None)
    monkeypatch.chdir(tmp_path)


class TestConfigurationErrors:
    """Invalid input exits with 1 and a message before any climber starts."""

    @pytest.mark.parametrize("argv", [[], ["1"], ["1", "2", "3"]])
    def test_argument_count(self, argv, capsys):
        assert main(argv) == 1
        assert capsys.readouterr().out == "Expected two arguments.\n"

    def test_too_many_climbers(self, capsys):
        assert main(["9", "5"]) == 1
        assert capsys.readouterr().out == "Too many climbers.\n"

    def test_too_few_climbers(self, capsys):
        assert main(["0", "5"]) == 1
        assert capsys.readouterr().out == "Too few climbers.\n"

    @pytest.mark.parametrize("function_id", ["0", "9", "x"])
    def test_invalid_function(self, function_id, capsys):
        assert main(["1", function_id]) == 1
        assert capsys.readouterr().out == "Invalid function type.\n"

    def test_non_integer_climbers(self, capsys):
        assert main(["many", "5"]) == 1
        assert "Invalid climber count" in capsys.readouterr().out

    def test_invalid_settings_value(self, tmp_path, monkeypatch, capsys):
        (tmp_path / ".hillclimb.toml").write_text('[run]\ndimensions = "two"\n')
        monkeypatch.undo()
        monkeypatch.chdir(tmp_path)
        assert main(["1", "5", "-t", "0.1"]) == 1
        out = capsys.readouterr().out
        assert out.startswith("Invalid [run] setting 'dimensions'")
        assert out.count("\n") == 1

    def test_no_threads_started(self, monkeypatch, capsys):
        started = []
        monkeypatch.setattr(
            "hillclimb.runner.ClimbRun.start", lambda self: started.append(self)
        )
        assert main(["1", "0"]) == 1
        assert started == []


class TestRun:
    """In-process runs bounded by --time-limit."""

    def test_sphere_run_reports_near_zero(self, capsys):
        assert main(["1", "5", "--seed", "7", "--time-limit", "0.5"]) == 0
        lines = capsys.readouterr().out.splitlines()

        assert lines[0].startswith("New minimum: ")
        assert lines[-2] == ""
        coords, fitness = _parse_report(lines[-1], "Best in run: ")
        assert len(coords) == 2
        assert fitness < 0.1
        assert all(abs(v) < 0.35 for v in coords)

    def test_quiet_prints_only_final(self, capsys):
        assert main(["2", "3", "-q", "-t", "0.2"]) == 0
        out = capsys.readouterr().out
        assert "New minimum" not in out
        assert out.startswith("\nBest in run: f(")

    def test_dimensions_option(self, capsys):
        assert main(["1", "7", "--dimensions", "3", "-q", "-t", "0.2"]) == 0
        coords, _ = _parse_report(
            capsys.readouterr().out.splitlines()[-1], "Best in run: "
        )
        assert len(coords) == 3

    def test_settings_file(self, tmp_path, monkeypatch, capsys):
        (tmp_path / ".hillclimb.toml").write_text(
            "[run]\nquiet = true\ntime_limit = 0.2\ndimensions = 1\n"
        )
        monkeypatch.undo()
        monkeypatch.chdir(tmp_path)
        assert main(["1", "5"]) == 0
        out = capsys.readouterr().out
        assert "New minimum" not in out
        coords, _ = _parse_report(out.splitlines()[-1], "Best in run: ")
        assert len(coords) == 1

    def test_summary_goes_to_stderr(self, monkeypatch, capsys):
        monkeypatch.setenv("COLUMNS", "160")
        assert main(["2", "5", "-q", "-t", "0.2", "--summary"]) == 0
        captured = capsys.readouterr()
        assert "climber:2" in captured.err
        assert "climber:2" not in captured.out


def _env() -> dict[str, str]:
    pythonpath = os.pathsep.join(
        p for p in (str(PROJECT_ROOT), os.environ.get("PYTHONPATH")) if p
    )
    return {**os.environ, "PYTHONPATH": pythonpath}


def _spawn(*args: str) -> subprocess.Popen:
    return subprocess.Popen(
        [sys.executable, "-u", "-m", "hillclimb", *args],
        env=_env(),
        stdout=subprocess.PIPE,
        stderr=subprocess.PIPE,
        text=True,
    )


class TestProcess:
    """The installed module run as a separate process."""

    @pytest.mark.parametrize(
        "args,message",
        [
            (["1", "0"], "Invalid function type."),
            (["1", "9"], "Invalid function type."),
            (["9", "5"], "Too many climbers."),
            (["5"], "Expected two arguments."),
        ],
    )
    def test_configuration_errors(self, args, message):
        proc = subprocess.run(
            [sys.executable, "-m", "hillclimb", *args],
            capture_output=True,
            text=True,
            timeout=30,
            env=_env(),
        )
        assert proc.returncode != 0
        assert proc.stdout.strip() == message

    @pytest.mark.skipif(sys.platform == "win32", reason="POSIX signals")
    def test_status_then_interrupt(self):
        proc = _spawn("2", "5")
        try:
            # First improvement proves the handlers are installed
            first = proc.stdout.readline()
            assert first.startswith("New minimum: ")

            os.kill(proc.pid, signal.SIGUSR1)
            time.sleep(0.3)
            os.kill(proc.pid, signal.SIGINT)
            out, _ = proc.communicate(timeout=30)
        finally:
            if proc.poll() is None:
                proc.kill()
                proc.communicate()

        assert proc.returncode == 0
        lines = out.splitlines()
        assert any(line.startswith("Best so far: f(") for line in lines)
        _parse_report(lines[-1], "Best in run: ")
