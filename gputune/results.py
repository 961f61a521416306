"""Tuning results and best-result selection."""

from __future__ import annotations

import math
from collections.abc import Iterable
from dataclasses import dataclass

from .space import Configuration


@dataclass(frozen=True)
class TuningResult:
    """One executed configuration.

    Attributes:
        kernel_name: Name of the kernel that ran.
        time_ms: Measured time in milliseconds; ``inf`` when the run failed.
        threads: Effective local thread count of the launch.
        status: True when the run succeeded and its output matched the reference.
        configuration: Parameter values the kernel was compiled with.
    """

    kernel_name: str
    time_ms: float
    threads: int
    status: bool
    configuration: Configuration

    @property
    def failed(self) -> bool:
        return math.isinf(self.time_ms)


def best_result(results: Iterable[TuningResult], kernel_name: str | None = None) -> TuningResult | None:
    """Fastest correct result, the first one on ties; ``None`` if nothing is correct."""
    best = None
    for result in results:
        if kernel_name is not None and result.kernel_name != kernel_name:
            continue
        if result.status and not result.failed and (best is None or result.time_ms < best.time_ms):
            best = result
    return best
