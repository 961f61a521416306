"""Human- and machine-readable reports of tuning results.

Console output goes through ``click.echo`` with tags styled by an immutable
``ReportStyle``. File reports are plain CSV (``;``-separated) or JSON.
"""

from __future__ import annotations

import json
import math
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import click

from .results import TuningResult, best_result


@dataclass(frozen=True)
class ReportStyle:
    """Console tags and their colours."""

    full_line: str = "[==========]"
    header: str = "[----------]"
    run: str = "[ RUN      ]"
    info: str = "[   INFO   ]"
    ok: str = "[       OK ]"
    warning: str = "[  WARNING ]"
    failure: str = "[   FAILED ]"
    result: str = "[ RESULT   ]"
    best: str = "[     BEST ]"
    color: bool = True

    def styled(self, tag: str) -> str:
        if not self.color:
            return tag
        if tag == self.warning:
            return click.style(tag, fg="yellow")
        if tag == self.failure:
            return click.style(tag, fg="red")
        if tag == self.best:
            return click.style(tag, fg="cyan", bold=True)
        return click.style(tag, fg="green")


DEFAULT_STYLE = ReportStyle()


class Console:
    """Tagged console writer that can be silenced as a whole."""

    def __init__(self, style: ReportStyle = DEFAULT_STYLE, enabled: bool = True):
        self.style = style
        self.enabled = enabled

    def line(self, tag: str, message: str) -> None:
        if self.enabled:
            click.echo(f"{self.style.styled(tag)} {message}")

    def header(self, message: str) -> None:
        self.line(self.style.header, message)

    def result(self, result: TuningResult, tag: str) -> None:
        self.line(tag, format_result(result))


def format_result(result: TuningResult) -> str:
    """``name; time ms; SETTING VALUE; ...`` for one result."""
    settings = " ".join(f"{s.config_string()};" for s in result.configuration)
    time_text = "  failed" if math.isinf(result.time_ms) else f"{result.time_ms:8.1f}"
    return f"{result.kernel_name}; {time_text} ms; {settings}".rstrip()


def print_to_screen(results: Sequence[TuningResult], console: Console) -> float:
    """Print every correct result followed by the best one.

    Returns:
        The best time in milliseconds, or 0.0 when no result is correct.
    """
    best = best_result(results)
    if best is None:
        console.header("No tuner results found")
        return 0.0

    console.header("Printing results to stdout")
    for result in results:
        if result.status:
            console.result(result, console.style.result)
    console.header("Printing best result to stdout")
    console.result(best, console.style.best)
    return best.time_ms


def format_database(result: TuningResult, device_name: str) -> str:
    """Best result in C++-initialiser database form: ``{ "dev", { {"A",1}, ... } }``."""
    settings = ", ".join(s.database_string() for s in result.configuration)
    return f'{{ "{device_name}", {{ {settings} }} }}'


def print_formatted(results: Sequence[TuningResult], device_name: str, console: Console) -> str:
    """Print the best result in database form; returns the printed line ("" if none)."""
    best = best_result(results)
    if best is None:
        console.header("No tuner results found")
        return ""
    console.header("Printing best result in database format to stdout")
    line = format_database(best, device_name)
    click.echo(line)
    return line


def print_to_file(results: Sequence[TuningResult], path: str | Path, console: Console) -> None:
    """Write correct results as ``;``-separated rows, one header per kernel name."""
    console.header(f"Printing results to file: {path}")
    seen: set[str] = set()
    with open(path, "w") as fp:
        for result in results:
            if not result.status:
                continue
            if result.kernel_name not in seen:
                seen.add(result.kernel_name)
                names = "".join(f"{s.name};" for s in result.configuration)
                fp.write(f"name;time;threads;{names}\n")
            values = "".join(f"{s.value};" for s in result.configuration)
            fp.write(f"{result.kernel_name};{result.time_ms:.2f};{result.threads};{values}\n")


def results_to_json(
    results: Sequence[TuningResult],
    device: Mapping[str, Any],
    descriptions: Mapping[str, str] | None = None,
) -> dict[str, Any]:
    payload: dict[str, Any] = dict(descriptions or {})
    payload["device"] = dict(device)
    payload["results"] = [
        {
            "kernel": result.kernel_name,
            "time": result.time_ms,
            "threads": result.threads,
            "parameters": result.configuration.to_dict(),
        }
        for result in results
        if result.status
    ]
    return payload


def print_json(
    results: Sequence[TuningResult],
    path: str | Path,
    device: Mapping[str, Any],
    descriptions: Mapping[str, str] | None,
    console: Console,
) -> None:
    """Write device info, user descriptions and correct results as JSON."""
    console.header(f"Printing results to file in JSON format: {path}")
    with open(path, "w") as f:
        json.dump(results_to_json(results, device, descriptions), f, indent=2)
        f.write("\n")
