"""Particle-swarm optimisation over discrete parameter values.

Each particle sits on one configuration. On its turn, every parameter of the
particle's configuration is moved, by probability, to the swarm's best value,
to the particle's own best value, to a random candidate value, or left alone.
The resulting vector must be a legal configuration; otherwise the move is
redrawn.
"""

from __future__ import annotations

import logging
import math
from collections.abc import Sequence

from ..space import Configuration, Parameter
from .base import Searcher, validate_fraction

logger = logging.getLogger(__name__)


class PSO(Searcher):
    """Particle-swarm searcher.

    Attributes:
        swarm_size: Number of particles, visited round-robin.
        influence_global: Probability of taking the swarm-best value per parameter.
        influence_local: Probability of taking the particle-best value per parameter.
        influence_random: Probability of taking a random candidate value per parameter.
        positions: Configuration index of each particle.
        global_best_time: Lowest time measured by any particle.
        global_best_config: Configuration that achieved ``global_best_time``.
        max_attempts: Move redraws allowed before a particle stays in place.
    """

    def __init__(
        self,
        configurations: Sequence[Configuration],
        parameters: Sequence[Parameter],
        fraction: float,
        swarm_size: int,
        influence_global: float,
        influence_local: float,
        influence_random: float,
        seed: int | None = None,
    ):
        super().__init__(configurations, seed)
        if swarm_size < 1:
            raise ValueError(f"Swarm size must be positive, got {swarm_size}")
        self.parameters = tuple(parameters)
        self.fraction = validate_fraction(fraction)
        self.swarm_size = int(swarm_size)
        self.influence_global = influence_global
        self.influence_local = influence_local
        self.influence_random = influence_random
        self.max_attempts = 10 * max(1, len(configurations))

        self._lookup = {config.values: i for i, config in enumerate(configurations)}
        self.particle_index = 0
        self.positions = [
            int(p) for p in self.rng.integers(0, max(1, len(configurations)), size=self.swarm_size)
        ]
        self.global_best_time = math.inf
        self.global_best_config: Configuration | None = None
        self.local_best_times = [math.inf] * self.swarm_size
        self.local_best_configs: list[Configuration | None] = [None] * self.swarm_size
        self.index = self.positions[0]

    def push_execution_time(self, execution_time: float) -> None:
        super().push_execution_time(execution_time)
        execution_time = self.time_at(self.index)
        config = self.configurations[self.index]
        if execution_time < self.local_best_times[self.particle_index]:
            self.local_best_times[self.particle_index] = execution_time
            self.local_best_configs[self.particle_index] = config
        if execution_time < self.global_best_time:
            self.global_best_time = execution_time
            self.global_best_config = config

    def calculate_next_index(self) -> None:
        for _ in range(self.max_attempts):
            new_index = self.index_of(self._move(self.configurations[self.index]))
            if new_index is not None:
                self.positions[self.particle_index] = new_index
                break
        else:
            logger.debug(
                "Particle %d found no legal move in %d attempts, staying at %d",
                self.particle_index,
                self.max_attempts,
                self.index,
            )

        self.particle_index = (self.particle_index + 1) % self.swarm_size
        self.index = self.positions[self.particle_index]

    def num_configurations(self) -> int:
        return max(1, int(len(self.configurations) * self.fraction))

    def index_of(self, values: Sequence[int]) -> int | None:
        """Position of the configuration with exactly these values, if legal."""
        return self._lookup.get(tuple(values))

    def _move(self, config: Configuration) -> list[int]:
        local_best = self.local_best_configs[self.particle_index]
        values = list(config.values)
        for i, current in enumerate(values):
            if self.rng.random() <= self.influence_global:
                if self.global_best_config is not None:
                    values[i] = self.global_best_config[i].value
            elif self.rng.random() <= self.influence_local:
                if local_best is not None:
                    values[i] = local_best[i].value
            elif self.rng.random() <= self.influence_random:
                candidates = self.parameters[i].values
                values[i] = candidates[int(self.rng.integers(len(candidates)))]
            else:
                values[i] = current
        return values
