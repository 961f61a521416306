"""
Build script for gputune.

Pure Python package; no native extensions are built. PyTorch is optional and
only needed for tuning kernels that operate on torch tensors (CUDA or MPS).
Run directly for development:
    pip install -e ".[test]"
"""

from setuptools import find_packages, setup

setup(
    name="gputune",
    version="0.1.0",
    description="Autotuner for GPU compute kernels",
    python_requires=">=3.10",
    packages=find_packages(include=["gputune", "gputune.*"]),
    install_requires=[
        "numpy>=1.24",
        "click>=8.0",
    ],
    extras_require={
        "torch": ["torch>=2.0"],
        "test": ["pytest>=7.0"],
    },
    entry_points={
        "console_scripts": [
            "gputune=gputune.cli:cli",
        ],
    },
)
