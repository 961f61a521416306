"""Configuration-space model for tunable kernels.

A kernel declares named parameters, each with an ordered list of candidate
values. The space of configurations is the Cartesian product of those values,
filtered by user constraints and by what the device can actually launch.

Usage:
    from gputune.space import ParameterSpace, ModifierKind

    space = ParameterSpace()
    space.add_parameter("TS1", [8, 16])
    space.add_parameter("TS2", [8, 16])
    space.add_constraint(lambda v: v[1] <= v[0], ["TS1", "TS2"])
    space.add_thread_size_modifier(("TS1",), ModifierKind.LOCAL_MUL)

    configs = space.enumerate_configurations(global_base=(256,), local_base=(1,))
    # 3 configurations: (8, 8), (16, 8), (16, 16)

Enumeration order is the lexicographic order of the product over parameters
in declaration order and values in declared order. Searchers index into this
list, so the order must not change between calls.
"""

from __future__ import annotations

import itertools
import logging
from collections.abc import Callable, Iterator, Sequence
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING

from .errors import (
    ConfigurationError,
    DuplicateParameterError,
    MalformedConstraintError,
    UnresolvedModifierError,
)

if TYPE_CHECKING:
    from .device import DeviceCapabilities

logger = logging.getLogger(__name__)

ConstraintFunction = Callable[[list[int]], bool]
LocalMemoryFunction = Callable[[list[int]], int]
LaunchSize = tuple[int, ...]


class ModifierKind(Enum):
    """How a thread-size modifier changes the launch geometry."""

    GLOBAL_MUL = "global_mul"
    GLOBAL_DIV = "global_div"
    LOCAL_MUL = "local_mul"
    LOCAL_DIV = "local_div"


@dataclass(frozen=True)
class Parameter:
    """A tunable parameter and its candidate values."""

    name: str
    values: tuple[int, ...]


@dataclass(frozen=True)
class Setting:
    """One parameter bound to one value."""

    name: str
    value: int

    def define(self) -> str:
        """Render as a preprocessor definition line."""
        return f"#define {self.name} {self.value}\n"

    def config_string(self) -> str:
        return f"{self.name} {self.value}"

    def database_string(self) -> str:
        return f'{{"{self.name}",{self.value}}}'


@dataclass(frozen=True)
class Configuration:
    """An immutable assignment of values to every declared parameter.

    Settings appear in parameter declaration order.
    """

    settings: tuple[Setting, ...] = ()

    def __iter__(self) -> Iterator[Setting]:
        return iter(self.settings)

    def __len__(self) -> int:
        return len(self.settings)

    def __getitem__(self, index: int) -> Setting:
        return self.settings[index]

    @classmethod
    def from_pairs(cls, pairs: Sequence[tuple[str, int]]) -> Configuration:
        return cls(tuple(Setting(name, int(value)) for name, value in pairs))

    @property
    def names(self) -> tuple[str, ...]:
        return tuple(s.name for s in self.settings)

    @property
    def values(self) -> tuple[int, ...]:
        return tuple(s.value for s in self.settings)

    def to_dict(self) -> dict[str, int]:
        return {s.name: s.value for s in self.settings}

    def get(self, name: str) -> int | None:
        for setting in self.settings:
            if setting.name == name:
                return setting.value
        return None

    def defines(self) -> str:
        """All settings as preprocessor definitions, in order."""
        return "".join(s.define() for s in self.settings)

    def differences(self, other: Configuration) -> int:
        """Number of positions whose values differ from ``other``."""
        return sum(1 for a, b in zip(self.settings, other.settings) if a.value != b.value)


def _extract_values(config: Configuration, names: Sequence[str]) -> list[int]:
    """Look up the values of ``names`` in ``config``, in the order given."""
    mapping = config.to_dict()
    values = [mapping[name] for name in names if name in mapping]
    if len(values) != len(names):
        missing = [name for name in names if name not in mapping]
        raise MalformedConstraintError(
            f"Invalid tuning parameter constraint: unknown parameters {missing}"
        )
    return values


@dataclass(frozen=True)
class Constraint:
    """A predicate over the values of a subset of parameters."""

    predicate: ConstraintFunction
    parameter_names: tuple[str, ...]

    def is_satisfied(self, config: Configuration) -> bool:
        return bool(self.predicate(_extract_values(config, self.parameter_names)))


@dataclass(frozen=True)
class ThreadSizeModifier:
    """Per-dimension parameter names applied to the base launch sizes.

    An empty name leaves that dimension unmodified.
    """

    dimensions: tuple[str, ...]
    kind: ModifierKind

    def name_for(self, dim: int) -> str:
        if dim < len(self.dimensions):
            return self.dimensions[dim]
        return ""


@dataclass(frozen=True)
class LocalMemoryEstimator:
    """Estimates local (shared) memory bytes from parameter values."""

    amount_fn: LocalMemoryFunction
    parameter_names: tuple[str, ...]

    def estimate(self, config: Configuration) -> int:
        return int(self.amount_fn(_extract_values(config, self.parameter_names)))


@dataclass
class ParameterSpace:
    """Parameters, constraints and launch-size rules for one kernel.

    Built once before tuning and read-only while searching.
    """

    _parameters: list[Parameter] = field(default_factory=list)
    constraints: list[Constraint] = field(default_factory=list)
    modifiers: list[ThreadSizeModifier] = field(default_factory=list)
    local_memory: LocalMemoryEstimator | None = None

    @property
    def parameters(self) -> tuple[Parameter, ...]:
        return tuple(self._parameters)

    @property
    def parameter_names(self) -> tuple[str, ...]:
        return tuple(p.name for p in self._parameters)

    @property
    def num_permutations(self) -> int:
        """Size of the unconstrained Cartesian product."""
        total = 1
        for parameter in self._parameters:
            total *= len(parameter.values)
        return total

    def parameter_exists(self, name: str) -> bool:
        return any(p.name == name for p in self._parameters)

    def add_parameter(self, name: str, values: Sequence[int]) -> Parameter:
        """Declare a new parameter.

        Raises:
            DuplicateParameterError: If ``name`` is already declared.
            ConfigurationError: If ``values`` is empty or contains negative numbers.
        """
        if self.parameter_exists(name):
            raise DuplicateParameterError(name)
        candidates = tuple(int(v) for v in values)
        if not candidates:
            raise ConfigurationError(f"Parameter '{name}' has no candidate values")
        if any(v < 0 for v in candidates):
            raise ConfigurationError(f"Parameter '{name}' has negative candidate values")
        parameter = Parameter(name, candidates)
        self._parameters.append(parameter)
        return parameter

    def add_constraint(self, predicate: ConstraintFunction, parameter_names: Sequence[str]) -> None:
        self.constraints.append(Constraint(predicate, tuple(parameter_names)))

    def add_thread_size_modifier(self, dimensions: Sequence[str] | str, kind: ModifierKind) -> None:
        if isinstance(dimensions, str):
            dimensions = (dimensions,)
        self.modifiers.append(ThreadSizeModifier(tuple(dimensions), kind))

    def set_local_memory_estimator(
        self, amount_fn: LocalMemoryFunction, parameter_names: Sequence[str]
    ) -> None:
        self.local_memory = LocalMemoryEstimator(amount_fn, tuple(parameter_names))

    def satisfies_constraints(self, config: Configuration) -> bool:
        """Check every constraint, stopping at the first failure."""
        return all(constraint.is_satisfied(config) for constraint in self.constraints)

    def local_memory_usage(self, config: Configuration) -> int:
        if self.local_memory is None:
            return 0
        return self.local_memory.estimate(config)

    def compute_ranges(
        self,
        config: Configuration,
        global_base: Sequence[int],
        local_base: Sequence[int],
    ) -> tuple[LaunchSize, LaunchSize]:
        """Apply every modifier, in declaration order, to the base launch sizes.

        Returns:
            Tuple of (global_size, local_size).

        Raises:
            ConfigurationError: If global and local bases have different dimensionality.
            UnresolvedModifierError: If a modifier names a parameter absent from ``config``.
            ZeroDivisionError: If a divide modifier resolves to a zero value.
        """
        if len(global_base) != len(local_base):
            raise ConfigurationError("Mismatching number of global/local dimensions")

        bound = config.to_dict()
        global_values = [int(v) for v in global_base]
        local_values = [int(v) for v in local_base]

        for dim in range(len(global_values)):
            for modifier in self.modifiers:
                name = modifier.name_for(dim)
                if name == "":
                    continue
                if name not in bound:
                    raise UnresolvedModifierError(f"Invalid modifier: {name}")
                value = bound[name]
                if modifier.kind is ModifierKind.GLOBAL_MUL:
                    global_values[dim] *= value
                elif modifier.kind is ModifierKind.GLOBAL_DIV:
                    global_values[dim] //= value
                elif modifier.kind is ModifierKind.LOCAL_MUL:
                    local_values[dim] *= value
                else:
                    local_values[dim] //= value

        return tuple(global_values), tuple(local_values)

    def enumerate_configurations(
        self,
        global_base: Sequence[int] = (1,),
        local_base: Sequence[int] = (1,),
        device: DeviceCapabilities | None = None,
    ) -> list[Configuration]:
        """Generate every legal configuration in deterministic order.

        A configuration is kept when all constraints hold, its launch sizes
        resolve, and (if ``device`` is given) its local work size and estimated
        local memory fit the device.
        With no parameters the result is a single empty configuration.
        """
        names = self.parameter_names
        configurations: list[Configuration] = []
        num_rejected = 0

        for values in itertools.product(*(p.values for p in self._parameters)):
            config = Configuration(tuple(Setting(n, v) for n, v in zip(names, values)))
            if not self.satisfies_constraints(config):
                num_rejected += 1
                continue
            if not self._is_launchable(config, global_base, local_base, device):
                num_rejected += 1
                continue
            configurations.append(config)

        logger.debug(
            "Enumerated %d legal configurations (%d rejected) from %d permutations",
            len(configurations),
            num_rejected,
            self.num_permutations,
        )
        return configurations

    def _is_launchable(
        self,
        config: Configuration,
        global_base: Sequence[int],
        local_base: Sequence[int],
        device: DeviceCapabilities | None,
    ) -> bool:
        try:
            _, local_size = self.compute_ranges(config, global_base, local_base)
        except ZeroDivisionError:
            return False
        if device is None:
            return True
        if not device.is_local_work_size_valid(local_size):
            return False
        return device.is_local_memory_valid(self.local_memory_usage(config))
