"""Execution-time models used to rank unexplored configurations."""

from __future__ import annotations

from .base import COST_REPORT_AMOUNT, MLModel
from .linear_regression import LinearRegression, add_polynomial_features
from .neural_network import NeuralNetwork

__all__ = [
    "COST_REPORT_AMOUNT",
    "LinearRegression",
    "MLModel",
    "NeuralNetwork",
    "add_polynomial_features",
]
