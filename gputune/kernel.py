"""Kernel description: source, launch geometry and its tunable space."""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING

from .space import Configuration, LaunchSize, ParameterSpace

if TYPE_CHECKING:
    from .device import DeviceCapabilities


@dataclass
class KernelInfo:
    """A kernel to tune (or the reference kernel).

    Attributes:
        name: Entry-point name passed to the backend.
        source: Kernel source code without tuning definitions.
        global_base: Global work size before modifiers are applied.
        local_base: Local work size before modifiers are applied.
        space: Parameters, constraints and thread-size modifiers.
        configurations: Legal configurations, filled by ``set_configurations``.
    """

    name: str
    source: str
    global_base: LaunchSize
    local_base: LaunchSize
    space: ParameterSpace = field(default_factory=ParameterSpace)
    configurations: list[Configuration] = field(default_factory=list)

    def __post_init__(self) -> None:
        self.global_base = tuple(int(v) for v in self.global_base)
        self.local_base = tuple(int(v) for v in self.local_base)

    @classmethod
    def from_files(
        cls,
        paths: Sequence[str | Path],
        name: str,
        global_base: Sequence[int],
        local_base: Sequence[int],
    ) -> KernelInfo:
        """Load and concatenate source files into one kernel."""
        source = "".join(Path(p).read_text() for p in paths)
        return cls(name, source, tuple(global_base), tuple(local_base))

    @property
    def has_parameters(self) -> bool:
        return bool(self.space.parameters)

    def prepend_source(self, extra_source: str) -> None:
        self.source = extra_source + self.source

    def source_for(self, config: Configuration) -> str:
        """Kernel source with ``config`` injected as preprocessor definitions."""
        return config.defines() + self.source

    def ranges_for(self, config: Configuration) -> tuple[LaunchSize, LaunchSize]:
        return self.space.compute_ranges(config, self.global_base, self.local_base)

    def set_configurations(self, device: DeviceCapabilities | None = None) -> list[Configuration]:
        self.configurations = self.space.enumerate_configurations(
            self.global_base, self.local_base, device
        )
        return self.configurations
