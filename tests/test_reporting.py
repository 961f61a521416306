"""Tests for result reporting."""

from __future__ import annotations

import json

import click
import pytest

from gputune.reporting import (
    Console,
    ReportStyle,
    format_database,
    format_result,
    print_formatted,
    print_json,
    print_to_file,
    print_to_screen,
)
from gputune.results import TuningResult
from gputune.space import Configuration


def _result(kernel: str, time_ms: float, status: bool, **settings: int) -> TuningResult:
    return TuningResult(kernel, time_ms, 64, status, Configuration.from_pairs(list(settings.items())))


@pytest.fixture
def results() -> list[TuningResult]:
    return [
        _result("gemm", 3.0, True, TS=16, WPT=1),
        _result("gemm", 1.0, False, TS=32, WPT=1),
        _result("gemm", 2.0, True, TS=64, WPT=2),
        _result("copy", 0.5, True, VW=4),
    ]


@pytest.fixture
def plain_console() -> Console:
    return Console(ReportStyle(color=False))


class TestReportStyle:
    """Tests for console tags."""

    def test_frozen(self) -> None:
        """Tags are an immutable value."""
        with pytest.raises(AttributeError):
            ReportStyle().best = "[BEST]"  # type: ignore[misc]

    def test_colour_can_be_disabled(self) -> None:
        """Without colour, tags are printed verbatim."""
        style = ReportStyle(color=False)
        assert style.styled(style.ok) == "[       OK ]"
        assert click.unstyle(ReportStyle().styled("[ X ]")) == "[ X ]"


class TestScreen:
    """Tests for console reports."""

    def test_format_result(self) -> None:
        """Results list kernel, time and settings."""
        line = format_result(_result("gemm", 1.5, True, TS=16))
        assert line == "gemm;      1.5 ms; TS 16;"

    def test_print_to_screen_returns_best(
        self, results: list[TuningResult], plain_console: Console, capsys: pytest.CaptureFixture
    ) -> None:
        """Correct results are printed, then the best one."""
        best_time = print_to_screen(results, plain_console)

        out = capsys.readouterr().out
        assert best_time == 0.5
        assert "TS 32" not in out
        assert out.rstrip().splitlines()[-1].startswith("[     BEST ] copy;")

    def test_print_to_screen_without_results(self, plain_console: Console) -> None:
        """No correct result returns zero."""
        assert print_to_screen([_result("k", 1.0, False, A=1)], plain_console) == 0.0

    def test_suppressed_console(self, results: list[TuningResult], capsys: pytest.CaptureFixture) -> None:
        """A disabled console prints nothing but still returns the best time."""
        assert print_to_screen(results, Console(enabled=False)) == 0.5
        assert capsys.readouterr().out == ""

    def test_database_format(self) -> None:
        """The best result renders as a C++ initialiser."""
        line = format_database(_result("gemm", 1.0, True, TS=16, WPT=2), "Test GPU")
        assert line == '{ "Test GPU", { {"TS",16}, {"WPT",2} } }'

    def test_print_formatted(
        self, results: list[TuningResult], capsys: pytest.CaptureFixture
    ) -> None:
        """The database line is printed even with a silenced console."""
        line = print_formatted(results[:3], "dev", Console(enabled=False))
        assert line == '{ "dev", { {"TS",64}, {"WPT",2} } }'
        assert capsys.readouterr().out.strip() == line


class TestFiles:
    """Tests for CSV and JSON output."""

    def test_csv_header_per_kernel(self, results: list[TuningResult], tmp_path) -> None:
        """Each kernel gets a header; incorrect results are skipped."""
        path = tmp_path / "results.csv"
        print_to_file(results, path, Console(enabled=False))

        assert path.read_text().splitlines() == [
            "name;time;threads;TS;WPT;",
            "gemm;3.00;64;16;1;",
            "gemm;2.00;64;64;2;",
            "name;time;threads;VW;",
            "copy;0.50;64;4;",
        ]

    def test_json(self, results: list[TuningResult], tmp_path) -> None:
        """JSON carries descriptions, device and correct results."""
        path = tmp_path / "results.json"
        print_json(
            results,
            path,
            {"name": "dev"},
            {"sample": "gemm"},
            Console(enabled=False),
        )

        payload = json.loads(path.read_text())
        assert payload["sample"] == "gemm"
        assert payload["device"] == {"name": "dev"}
        assert len(payload["results"]) == 3
        assert payload["results"][0] == {
            "kernel": "gemm",
            "time": 3.0,
            "threads": 64,
            "parameters": {"TS": 16, "WPT": 1},
        }
