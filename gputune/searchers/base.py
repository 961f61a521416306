"""Common state and contract for search strategies."""

from __future__ import annotations

import math
from abc import ABC, abstractmethod
from collections.abc import Sequence
from typing import TextIO

import numpy as np

from ..space import Configuration

# Measured time recorded for a configuration whose run or verification failed
FAILED_TIME = math.inf


def validate_fraction(fraction: float) -> float:
    if not 0.0 < fraction <= 1.0:
        raise ValueError(f"Search fraction must be in (0, 1], got {fraction}")
    return float(fraction)


class Searcher(ABC):
    """Walks a fixed list of configurations, choosing which to measure next.

    The tuner drives every searcher the same way::

        for _ in range(searcher.num_configurations()):
            config = searcher.get_configuration()
            time_ms = measure(config)
            searcher.push_execution_time(time_ms)
            searcher.calculate_next_index()

    Attributes:
        configurations: Legal configurations in enumeration order (shared, never mutated).
        execution_times: Last measured time per configuration slot, ``None`` if unexplored.
        explored: Ordered log of (index, time) pairs.
        index: Cursor into ``configurations``.
    """

    def __init__(self, configurations: Sequence[Configuration], seed: int | None = None):
        self.configurations = configurations
        self.execution_times: list[float | None] = [None] * len(configurations)
        self.explored: list[tuple[int, float]] = []
        self.index = 0
        self.rng = np.random.default_rng(seed)

    def get_configuration(self) -> Configuration:
        return self.configurations[self.index]

    def push_execution_time(self, execution_time: float) -> None:
        """Record feedback for the configuration at the cursor.

        Non-finite times are stored as failures and never count as unexplored.
        """
        if not math.isfinite(execution_time):
            execution_time = FAILED_TIME
        self.explored.append((self.index, execution_time))
        self.execution_times[self.index] = execution_time

    @abstractmethod
    def calculate_next_index(self) -> None:
        """Advance the cursor for the next ``get_configuration`` call."""

    @abstractmethod
    def num_configurations(self) -> int:
        """How many configurations the tuner should measure in this run."""

    def time_at(self, index: int) -> float:
        """Comparable time for ``index``; unexplored and failed slots are infinite."""
        value = self.execution_times[index]
        return math.inf if value is None else value

    def is_explored(self, index: int) -> bool:
        return self.execution_times[index] is not None

    def explored_indices(self) -> list[int]:
        return [index for index, _ in self.explored]

    def print_log(self, fp: TextIO) -> None:
        """Write the exploration log as ``step;index;time`` rows."""
        fp.write("step;index;time\n")
        for step, (index, time_ms) in enumerate(self.explored):
            fp.write(f"{step};{index};{time_ms:.3f}\n")
