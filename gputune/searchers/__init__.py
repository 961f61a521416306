"""Search strategies over a fixed list of configurations.

Quick Start:
    from gputune.searchers import SearchSettings, create_searcher

    settings = SearchSettings.random(fraction=0.25)
    searcher = create_searcher(settings, configurations, parameters, seed=0)

    for _ in range(searcher.num_configurations()):
        config = searcher.get_configuration()
        searcher.push_execution_time(measure(config))
        searcher.calculate_next_index()
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from enum import Enum

from ..space import Configuration, Parameter
from .annealing import MAX_ALREADY_VISITED, Annealing, acceptance_probability
from .base import FAILED_TIME, Searcher
from .full_search import FullSearch
from .pso import PSO
from .random_search import RandomSearch


class SearchMethod(Enum):
    FULL = "full"
    RANDOM = "random"
    ANNEALING = "annealing"
    PSO = "pso"


@dataclass(frozen=True)
class SearchSettings:
    """Which strategy to use and its arguments."""

    method: SearchMethod = SearchMethod.FULL
    fraction: float = 1.0
    max_temperature: float = 4.0
    swarm_size: int = 3
    influence_global: float = 0.1
    influence_local: float = 0.3
    influence_random: float = 0.6

    @classmethod
    def full(cls) -> SearchSettings:
        return cls(SearchMethod.FULL)

    @classmethod
    def random(cls, fraction: float) -> SearchSettings:
        return cls(SearchMethod.RANDOM, fraction=fraction)

    @classmethod
    def annealing(cls, fraction: float, max_temperature: float) -> SearchSettings:
        return cls(SearchMethod.ANNEALING, fraction=fraction, max_temperature=max_temperature)

    @classmethod
    def pso(
        cls,
        fraction: float,
        swarm_size: int,
        influence_global: float,
        influence_local: float,
        influence_random: float,
    ) -> SearchSettings:
        return cls(
            SearchMethod.PSO,
            fraction=fraction,
            swarm_size=swarm_size,
            influence_global=influence_global,
            influence_local=influence_local,
            influence_random=influence_random,
        )


def create_searcher(
    settings: SearchSettings,
    configurations: Sequence[Configuration],
    parameters: Sequence[Parameter],
    seed: int | None = None,
) -> Searcher:
    """Instantiate the searcher selected by ``settings``."""
    if settings.method is SearchMethod.FULL:
        return FullSearch(configurations, seed)
    if settings.method is SearchMethod.RANDOM:
        return RandomSearch(configurations, settings.fraction, seed)
    if settings.method is SearchMethod.ANNEALING:
        return Annealing(configurations, settings.fraction, settings.max_temperature, seed)
    if settings.method is SearchMethod.PSO:
        return PSO(
            configurations,
            parameters,
            settings.fraction,
            settings.swarm_size,
            settings.influence_global,
            settings.influence_local,
            settings.influence_random,
            seed,
        )
    raise ValueError(f"Unknown search method: {settings.method}")


__all__ = [
    "Annealing",
    "FAILED_TIME",
    "FullSearch",
    "MAX_ALREADY_VISITED",
    "PSO",
    "RandomSearch",
    "SearchMethod",
    "SearchSettings",
    "Searcher",
    "acceptance_probability",
    "create_searcher",
]
