"""Simulated annealing over the configuration neighbourhood graph.

Two configurations are neighbours when they differ in exactly one parameter
value. The walk keeps a current state and a candidate neighbour; after each
measurement the candidate replaces the current state with the Kirkpatrick
acceptance probability, and a fresh random neighbour of the current state is
chosen as the next candidate. The temperature decays linearly from
``max_temperature`` to zero over the run.
"""

from __future__ import annotations

import logging
import math
from collections.abc import Sequence

from ..space import Configuration
from .base import Searcher, validate_fraction

logger = logging.getLogger(__name__)

# Successive re-draws allowed when the chosen neighbour was already measured
MAX_ALREADY_VISITED = 10


def acceptance_probability(current_time: float, neighbour_time: float, temperature: float) -> float:
    """Probability of moving from the current state to the neighbour.

    A strictly faster neighbour is always accepted. A slower one is accepted
    with probability ``exp(-(neighbour - current) / temperature)``; failed
    (infinite) neighbours and a cold (non-positive) temperature give zero.
    """
    if neighbour_time < current_time:
        return 1.0
    if math.isinf(neighbour_time) or temperature <= 0.0:
        return 0.0
    return math.exp(-(neighbour_time - current_time) / temperature)


class Annealing(Searcher):
    """Simulated-annealing searcher.

    Attributes:
        fraction: Share of the configuration list to measure.
        max_temperature: Starting temperature, in the same unit as measured times.
        max_already_visited: Retry budget for re-drawing an already-measured neighbour.
        current_state: Index of the accepted state.
        neighbour_state: Index of the candidate measured next.
    """

    def __init__(
        self,
        configurations: Sequence[Configuration],
        fraction: float,
        max_temperature: float,
        seed: int | None = None,
        max_already_visited: int = MAX_ALREADY_VISITED,
    ):
        super().__init__(configurations, seed)
        self.fraction = validate_fraction(fraction)
        self.max_temperature = float(max_temperature)
        self.max_already_visited = max_already_visited
        self.num_visited_states = 0
        self.current_state = 0
        self.neighbour_state = 0

    def get_configuration(self) -> Configuration:
        self.num_visited_states += 1
        return self.configurations[self.index]

    def temperature(self) -> float:
        total = self.num_configurations()
        progress = self.num_visited_states / total if total else 1.0
        return self.max_temperature * (1.0 - progress)

    def calculate_next_index(self) -> None:
        probability = acceptance_probability(
            self.time_at(self.current_state),
            self.time_at(self.neighbour_state),
            self.temperature(),
        )
        if probability > self.rng.random():
            self.current_state = self.neighbour_state

        neighbours = self.neighbours_of(self.current_state)
        if not neighbours:
            self.neighbour_state = self.current_state
            self.index = self.neighbour_state
            return

        candidate = neighbours[int(self.rng.integers(len(neighbours)))]
        retries = 0
        while self.is_explored(candidate) and retries < self.max_already_visited:
            retries += 1
            candidate = neighbours[int(self.rng.integers(len(neighbours)))]
        if self.is_explored(candidate):
            logger.debug(
                "No unexplored neighbour of %d after %d draws, revisiting %d",
                self.current_state,
                retries,
                candidate,
            )

        self.neighbour_state = candidate
        self.index = candidate

    def num_configurations(self) -> int:
        return int(len(self.configurations) * self.fraction)

    def neighbours_of(self, reference: int) -> list[int]:
        """Indices of configurations differing from ``reference`` in exactly one value."""
        target = self.configurations[reference]
        return [
            index
            for index, config in enumerate(self.configurations)
            if config.differences(target) == 1
        ]
