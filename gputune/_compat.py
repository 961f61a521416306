"""Centralized optional dependency handling for gputune.

This module provides:
- Feature flags (HAS_TORCH, HAS_CUDA, HAS_MPS) for runtime detection
- Typed module references that work with type checkers
- Array conversion and device synchronization helpers for numpy/torch

Usage:
    from gputune._compat import HAS_TORCH, HAS_CUDA, torch, to_numpy
"""

from __future__ import annotations

from types import ModuleType
from typing import TYPE_CHECKING, Any

import numpy as np
from numpy.typing import NDArray

if TYPE_CHECKING:
    import torch


HAS_TORCH: bool = False
HAS_CUDA: bool = False
HAS_MPS: bool = False

# Module reference (None when unavailable)
torch: ModuleType | None = None

# Try importing torch
try:
    import torch as _torch_module

    torch = _torch_module
    HAS_TORCH = True
    try:
        HAS_CUDA = _torch_module.cuda.is_available()
    except AttributeError:
        HAS_CUDA = False
    try:
        HAS_MPS = _torch_module.backends.mps.is_available()
    except AttributeError:
        HAS_MPS = False
except ImportError:
    torch = None
    HAS_TORCH = False
    HAS_CUDA = False
    HAS_MPS = False


def require_torch(feature: str = "this operation") -> None:
    """Raise ImportError if PyTorch is not available.

    Args:
        feature: Description of what requires PyTorch (for error message).
    """
    if not HAS_TORCH:
        raise ImportError(f"PyTorch is required for {feature}. Install with: pip install torch")


def is_torch_tensor(value: Any) -> bool:
    """Check whether a value is a torch tensor without importing torch eagerly."""
    return HAS_TORCH and torch is not None and isinstance(value, torch.Tensor)


def to_numpy(value: Any) -> NDArray[Any]:
    """Convert a buffer (numpy array, torch tensor, or sequence) to a host numpy array."""
    if isinstance(value, np.ndarray):
        return value
    if is_torch_tensor(value):
        return value.detach().cpu().numpy()
    return np.asarray(value)


def zeros_like(value: Any) -> Any:
    """Allocate a zeroed buffer with the same type, shape and device as ``value``."""
    if is_torch_tensor(value):
        return torch.zeros_like(value)
    return np.zeros_like(np.asarray(value))


def synchronize(buffers: list[Any] | None = None) -> None:
    """Wait for outstanding device work touching ``buffers``.

    Host-only buffers make this a no-op, so timing code can call it
    unconditionally.
    """
    if not HAS_TORCH:
        return
    for buffer in buffers or []:
        if not is_torch_tensor(buffer):
            continue
        device_type = buffer.device.type
        if device_type == "cuda":
            torch.cuda.synchronize(buffer.device)
            return
        if device_type == "mps":
            torch.mps.synchronize()
            return
