"""Regularised linear regression on order-2 polynomial features."""

from __future__ import annotations

import numpy as np
from numpy.typing import NDArray

from .base import MLModel


def add_polynomial_features(x: NDArray[np.float64]) -> NDArray[np.float64]:
    """Append every pairwise product ``x_i * x_j`` (i <= j) to the feature matrix."""
    n = x.shape[1]
    products = [x[:, i] * x[:, j] for i in range(n) for j in range(i, n)]
    if not products:
        return x
    return np.column_stack([x, *products])


class LinearRegression(MLModel):
    """Linear model of log-time over normalised and cross-multiplied parameters.

    A leading bias column of ones is added; its weight is not regularised.
    """

    def __init__(
        self,
        learning_iterations: int = 800,
        learning_rate: float = 0.05,
        lambda_: float = 0.2,
        seed: int | None = None,
    ):
        super().__init__(learning_iterations, learning_rate, lambda_, seed)
        self.theta: NDArray[np.float64] | None = None

    def preprocess_features(self, x: NDArray[np.float64]) -> NDArray[np.float64]:
        features = add_polynomial_features(self.normalize_features(x))
        return np.column_stack([np.ones(features.shape[0]), features])

    def initialize_theta(self, n: int) -> None:
        self.theta = np.zeros(n, dtype=np.float64)

    def hypothesis(self, x: NDArray[np.float64]) -> NDArray[np.float64]:
        return x @ self.theta

    def cost(self, x: NDArray[np.float64], y: NDArray[np.float64]) -> float:
        m = x.shape[0]
        residual = self.hypothesis(x) - y
        regularization = self.lambda_ * float(np.sum(self.theta[1:] ** 2))
        return (float(residual @ residual) + regularization) / (2 * m)

    def gradient(self, x: NDArray[np.float64], y: NDArray[np.float64]) -> NDArray[np.float64]:
        m = x.shape[0]
        grad = x.T @ (self.hypothesis(x) - y)
        regularization = self.lambda_ * self.theta
        regularization[0] = 0.0
        return (grad + regularization) / m

    def gradient_step(self, x: NDArray[np.float64], y: NDArray[np.float64]) -> None:
        self.theta -= self.learning_rate * self.gradient(x, y)
