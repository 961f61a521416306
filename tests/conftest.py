"""Pytest configuration for gputune tests.

Provides seeded random state, a permissive device and an in-process backend
so the tuning loop can be exercised without a GPU.

Usage:
    pytest tests/                     # Default suite
    pytest tests/ --run-slow          # Include slow model-training tests
    pytest tests/ -m "not slow"       # Skip slow markers
"""

from __future__ import annotations

import numpy as np
import pytest

from gputune.backend import CallableBackend
from gputune.device import DeviceInfo
from gputune.tuner import Tuner


def pytest_addoption(parser: pytest.Parser) -> None:
    parser.addoption(
        "--run-slow",
        action="store_true",
        default=False,
        help="Run slow tests (long gradient-descent runs)",
    )


def pytest_configure(config: pytest.Config) -> None:
    config.addinivalue_line("markers", "slow: mark test as slow (requires --run-slow)")
    config.addinivalue_line("markers", "requires_torch: mark test as requiring PyTorch")
    config.addinivalue_line("markers", "requires_cuda: mark test as requiring CUDA")


def pytest_collection_modifyitems(config: pytest.Config, items: list[pytest.Item]) -> None:
    # Skip slow tests unless --run-slow is specified
    if not config.getoption("--run-slow"):
        skip_slow = pytest.mark.skip(reason="Need --run-slow to run")
        for item in items:
            if "slow" in item.keywords:
                item.add_marker(skip_slow)


# ==============================================================================
# Random state fixtures
# ==============================================================================


@pytest.fixture
def rng() -> np.random.Generator:
    """Seeded generator for reproducible test data."""
    return np.random.default_rng(42)


# ==============================================================================
# Device and backend fixtures
# ==============================================================================


@pytest.fixture
def device() -> DeviceInfo:
    """Device with limits large enough to accept any test configuration."""
    return DeviceInfo(
        name="Test device",
        max_local_threads=1 << 20,
        max_local_sizes=(1 << 20, 1 << 20, 1 << 20),
        max_local_dims=3,
        local_memory_bytes=1 << 30,
    )


@pytest.fixture
def backend() -> CallableBackend:
    """Empty in-process backend; tests register their own kernels."""
    return CallableBackend()


@pytest.fixture
def tuner(backend: CallableBackend, device: DeviceInfo) -> Tuner:
    """Quiet, seeded tuner wired to the test backend and device."""
    return Tuner(backend=backend, device=device, seed=0, suppress_output=True)
