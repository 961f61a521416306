"""Device capability queries used to reject unlaunchable configurations.

The tuner only needs two answers from a device: whether a local (work-group /
thread-block) size can be launched and whether an amount of local memory fits.
``DeviceInfo`` answers both from a set of limits; ``detect_device`` fills those
limits from the current CUDA device when PyTorch can see one.
"""

from __future__ import annotations

import logging
import math
from collections.abc import Sequence
from dataclasses import dataclass
from typing import Any, Protocol, runtime_checkable

from ._compat import HAS_CUDA, HAS_MPS, torch

logger = logging.getLogger(__name__)


@runtime_checkable
class DeviceCapabilities(Protocol):
    """What the configuration space asks of a device."""

    def is_local_work_size_valid(self, local_size: Sequence[int]) -> bool: ...

    def is_local_memory_valid(self, num_bytes: int) -> bool: ...


@dataclass(frozen=True)
class DeviceInfo:
    """Launch limits of a compute device.

    Attributes:
        name: Human-readable device name.
        max_local_threads: Maximum threads in one work-group.
        max_local_sizes: Maximum work-group extent per dimension.
        max_local_dims: Maximum number of work-group dimensions.
        local_memory_bytes: Local (shared) memory available to one work-group.
    """

    name: str = "Generic device"
    max_local_threads: int = 1024
    max_local_sizes: tuple[int, ...] = (1024, 1024, 64)
    max_local_dims: int = 3
    local_memory_bytes: int = 48 * 1024

    def is_local_work_size_valid(self, local_size: Sequence[int]) -> bool:
        """Check per-dimension extents, total thread count and dimensionality."""
        if len(local_size) > self.max_local_dims:
            return False
        for dim, size in enumerate(local_size):
            if size < 1:
                return False
            if dim < len(self.max_local_sizes) and size > self.max_local_sizes[dim]:
                return False
        return math.prod(local_size) <= self.max_local_threads

    def is_local_memory_valid(self, num_bytes: int) -> bool:
        return num_bytes <= self.local_memory_bytes

    def to_dict(self) -> dict[str, Any]:
        """Serialize for JSON reports."""
        return {
            "name": self.name,
            "max_local_threads": self.max_local_threads,
            "max_local_sizes": list(self.max_local_sizes),
            "max_local_dims": self.max_local_dims,
            "local_memory_bytes": self.local_memory_bytes,
        }


def local_thread_count(local_size: Sequence[int]) -> int:
    """Total threads in one work-group."""
    return math.prod(local_size) if local_size else 1


def detect_device(index: int = 0) -> DeviceInfo:
    """Detect the current device and return its limits.

    Queries CUDA properties through PyTorch when available. Apple MPS and
    CPU-only systems get the generic profile under a descriptive name.

    Args:
        index: CUDA device ordinal.

    Returns:
        DeviceInfo for the current system.
    """
    if HAS_CUDA:
        try:
            return _detect_cuda_device(index)
        except (RuntimeError, AssertionError) as e:
            logger.warning("Failed to query CUDA device %d: %s, using generic limits", index, e)
    if HAS_MPS:
        # Metal caps threadgroups at 1024 threads and 32 KiB threadgroup memory
        return DeviceInfo(name="Apple MPS", local_memory_bytes=32 * 1024)
    return DeviceInfo()


def _detect_cuda_device(index: int) -> DeviceInfo:
    props = torch.cuda.get_device_properties(index)
    shared = getattr(props, "shared_memory_per_block", None) or 48 * 1024
    max_threads = getattr(props, "max_threads_per_block", None) or 1024
    return DeviceInfo(
        name=props.name,
        max_local_threads=int(max_threads),
        max_local_sizes=(int(max_threads), int(max_threads), 64),
        max_local_dims=3,
        local_memory_bytes=int(shared),
    )
