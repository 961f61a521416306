"""Execution backend: compile, launch, time and read back one kernel run.

The tuner never talks to a GPU API directly. It builds a ``LaunchRequest``
(source with injected defines, effective launch geometry and kernel
arguments) and hands it to an ``ExecutionBackend``. ``CallableBackend`` is
the in-process implementation: kernels are Python callables operating on
numpy arrays or torch tensors, timed with ``time.perf_counter`` and device
synchronisation.

Example:
    backend = CallableBackend()
    backend.register("saxpy", saxpy)
    tuner = Tuner(backend=backend)
"""

from __future__ import annotations

import logging
import math
import time
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Protocol, runtime_checkable

from ._compat import synchronize, to_numpy, zeros_like
from .device import local_thread_count
from .errors import KernelExecutionError
from .space import LaunchSize

logger = logging.getLogger(__name__)

# Timed launches per configuration; the minimum is reported
DEFAULT_NUM_RUNS = 1


class ArgumentKind(Enum):
    INPUT = "input"
    OUTPUT = "output"
    SCALAR = "scalar"


@dataclass(frozen=True)
class KernelArgument:
    """One kernel argument, in kernel-signature order."""

    kind: ArgumentKind
    value: Any


@dataclass(frozen=True)
class LaunchRequest:
    """Everything a backend needs to run one configuration of one kernel."""

    kernel_name: str
    source: str
    global_size: LaunchSize
    local_size: LaunchSize
    defines: Mapping[str, int] = field(default_factory=dict)
    arguments: tuple[KernelArgument, ...] = ()
    num_runs: int = DEFAULT_NUM_RUNS


@dataclass
class ExecutionOutcome:
    """Result of a successful launch.

    Attributes:
        elapsed_ms: Minimum wall time over ``num_runs`` launches.
        threads: Effective local thread count (product of the local size).
        outputs: Host copies of the output arguments, in argument order.
    """

    elapsed_ms: float
    threads: int
    outputs: list[Any] = field(default_factory=list)


@runtime_checkable
class ExecutionBackend(Protocol):
    def execute(self, request: LaunchRequest) -> ExecutionOutcome:
        """Run the request; raise ``KernelExecutionError`` on any failure."""
        ...

    def local_memory_usage(self, request: LaunchRequest) -> int:
        """Bytes of local (shared) memory the compiled kernel needs."""
        ...


KernelCallable = Callable[..., Any]
LocalMemoryCallable = Callable[[Mapping[str, int]], int]


class CallableBackend:
    """Backend that runs registered Python callables as kernels.

    A kernel callable is invoked as ``fn(request, *buffers)`` where
    ``buffers`` follow the request's arguments: inputs as given, outputs as
    freshly zeroed copies to be written in place, and scalars as given.
    """

    def __init__(self, kernels: Mapping[str, KernelCallable] | None = None):
        self._kernels: dict[str, KernelCallable] = dict(kernels or {})
        self._local_memory: dict[str, LocalMemoryCallable] = {}

    def register(
        self,
        name: str,
        fn: KernelCallable,
        local_memory: LocalMemoryCallable | None = None,
    ) -> None:
        self._kernels[name] = fn
        if local_memory is not None:
            self._local_memory[name] = local_memory

    def local_memory_usage(self, request: LaunchRequest) -> int:
        estimate = self._local_memory.get(request.kernel_name)
        if estimate is None:
            return 0
        return int(estimate(request.defines))

    def execute(self, request: LaunchRequest) -> ExecutionOutcome:
        fn = self._kernels.get(request.kernel_name)
        if fn is None:
            raise KernelExecutionError(f"Kernel '{request.kernel_name}' is not registered")

        best_ms = math.inf
        buffers: list[Any] = []
        for _ in range(max(1, request.num_runs)):
            buffers = _prepare_buffers(request.arguments)
            start = time.perf_counter()
            try:
                fn(request, *buffers)
                synchronize(buffers)
            except KernelExecutionError:
                raise
            except Exception as e:
                raise KernelExecutionError(f"Kernel '{request.kernel_name}' failed: {e}") from e
            best_ms = min(best_ms, (time.perf_counter() - start) * 1000)

        outputs = [
            to_numpy(buffer)
            for argument, buffer in zip(request.arguments, buffers)
            if argument.kind is ArgumentKind.OUTPUT
        ]
        return ExecutionOutcome(
            elapsed_ms=best_ms,
            threads=local_thread_count(request.local_size),
            outputs=outputs,
        )


def _prepare_buffers(arguments: tuple[KernelArgument, ...]) -> list[Any]:
    return [
        zeros_like(argument.value) if argument.kind is ArgumentKind.OUTPUT else argument.value
        for argument in arguments
    ]
