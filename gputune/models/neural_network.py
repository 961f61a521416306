"""Three-layer feed-forward network trained with backpropagation."""

from __future__ import annotations

import math
from collections.abc import Sequence

import numpy as np
from numpy.typing import NDArray

from ..errors import LayerConfigurationError
from .base import MLModel


def sigmoid(z: NDArray[np.float64]) -> NDArray[np.float64]:
    return 1.0 / (1.0 + np.exp(-z))


def sigmoid_gradient(z: NDArray[np.float64]) -> NDArray[np.float64]:
    s = sigmoid(z)
    return s * (1.0 - s)


def _with_bias(a: NDArray[np.float64]) -> NDArray[np.float64]:
    return np.column_stack([np.ones(a.shape[0]), a])


class NeuralNetwork(MLModel):
    """Input, one sigmoid hidden layer, linear output.

    ``layer_sizes`` is ``[num_features, hidden_units, 1]``; an input size of 0
    is taken from the training data. Weight matrices carry the bias in
    column 0, which is excluded from regularisation.
    """

    def __init__(
        self,
        learning_iterations: int = 800,
        learning_rate: float = 0.1,
        lambda_: float = 0.005,
        layer_sizes: Sequence[int] = (0, 20, 1),
        seed: int | None = None,
    ):
        super().__init__(learning_iterations, learning_rate, lambda_, seed)
        self.layer_sizes = [int(size) for size in layer_sizes]
        if len(self.layer_sizes) != 3:
            raise LayerConfigurationError(
                f"Only 3-layer networks are supported, got {len(self.layer_sizes)} layers"
            )
        if self.layer_sizes[1] < 1:
            raise LayerConfigurationError("Hidden layer must have at least one unit")
        if self.layer_sizes[2] != 1:
            raise LayerConfigurationError(
                f"Output layer must have exactly one unit, got {self.layer_sizes[2]}"
            )
        self.theta1: NDArray[np.float64] | None = None
        self.theta2: NDArray[np.float64] | None = None

    def preprocess_features(self, x: NDArray[np.float64]) -> NDArray[np.float64]:
        return self.normalize_features(x)

    def initialize_theta(self, n: int) -> None:
        if self.layer_sizes[0] == 0:
            self.layer_sizes[0] = n
        if self.layer_sizes[0] != n:
            raise LayerConfigurationError(
                f"Input layer has {self.layer_sizes[0]} units but data has {n} features"
            )
        self.theta1 = self._random_weights(self.layer_sizes[0], self.layer_sizes[1])
        self.theta2 = self._random_weights(self.layer_sizes[1], self.layer_sizes[2])

    def _random_weights(self, l_in: int, l_out: int) -> NDArray[np.float64]:
        eps = math.sqrt(6.0) / math.sqrt(l_in + l_out)
        return self.rng.uniform(-eps, eps, size=(l_out, l_in + 1))

    def _forward(self, x: NDArray[np.float64]):
        a0 = _with_bias(x)
        z1 = a0 @ self.theta1.T
        a1 = _with_bias(sigmoid(z1))
        a2 = a1 @ self.theta2.T
        return a0, z1, a1, a2

    def hypothesis(self, x: NDArray[np.float64]) -> NDArray[np.float64]:
        return self._forward(x)[3][:, 0]

    def cost(self, x: NDArray[np.float64], y: NDArray[np.float64]) -> float:
        m = x.shape[0]
        residual = self.hypothesis(x) - y
        regularization = float(np.sum(self.theta1[:, 1:] ** 2) + np.sum(self.theta2[:, 1:] ** 2))
        return float(residual @ residual) / m + self.lambda_ * regularization / (2 * m)

    def gradient_step(self, x: NDArray[np.float64], y: NDArray[np.float64]) -> None:
        m = x.shape[0]
        a0, z1, a1, a2 = self._forward(x)
        delta2 = a2 - y.reshape(-1, 1)
        delta1 = (delta2 @ self.theta2[:, 1:]) * sigmoid_gradient(z1)

        grad1 = delta1.T @ a0
        grad2 = delta2.T @ a1
        grad1[:, 1:] += self.lambda_ * self.theta1[:, 1:]
        grad2[:, 1:] += self.lambda_ * self.theta2[:, 1:]

        self.theta1 -= self.learning_rate * grad1 / m
        self.theta2 -= self.learning_rate * grad2 / m
