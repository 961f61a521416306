"""Random sampling of a fraction of the configuration space."""

from __future__ import annotations

from collections.abc import Sequence

from ..space import Configuration
from .base import Searcher, validate_fraction


class RandomSearch(Searcher):
    """Visits a shuffled prefix of the configuration list.

    The shuffle permutes a private copy of the index space once, so the shared
    configuration list keeps its enumeration order.
    """

    def __init__(
        self,
        configurations: Sequence[Configuration],
        fraction: float,
        seed: int | None = None,
    ):
        super().__init__(configurations, seed)
        self.fraction = validate_fraction(fraction)
        self.order = [int(i) for i in self.rng.permutation(len(configurations))]
        self._step = 0
        self.index = self.order[0] if self.order else 0

    def calculate_next_index(self) -> None:
        self._step += 1
        if self._step < len(self.order):
            self.index = self.order[self._step]

    def num_configurations(self) -> int:
        return int(len(self.configurations) * self.fraction)
