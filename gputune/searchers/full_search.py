"""Exhaustive search in enumeration order."""

from __future__ import annotations

from .base import Searcher


class FullSearch(Searcher):
    """Visits every configuration exactly once, in list order."""

    def calculate_next_index(self) -> None:
        self.index += 1

    def num_configurations(self) -> int:
        return len(self.configurations)
