"""Gradient-descent regressors for execution-time prediction.

Each row of ``x`` is the parameter-value vector of one measured configuration
and ``y`` its measured time. Subclasses choose how features and times are
pre-processed, how weights are initialised, and how cost and gradient are
computed; this base class owns normalisation and the descent loop.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod

import numpy as np
from numpy.typing import ArrayLike, NDArray

logger = logging.getLogger(__name__)

# Number of cost reports emitted over a full gradient-descent run
COST_REPORT_AMOUNT = 10


class MLModel(ABC):
    """Base class for trainable execution-time models.

    Attributes:
        learning_iterations: Gradient-descent iterations.
        learning_rate: Step size (alpha).
        lambda_: L2 regularisation strength; bias weights are not regularised.
        ranges: Per-feature ``max - min`` from the training data (0 replaced by 1).
        means: Per-feature mean from the training data.
    """

    def __init__(
        self,
        learning_iterations: int,
        learning_rate: float,
        lambda_: float,
        seed: int | None = None,
    ):
        self.learning_iterations = int(learning_iterations)
        self.learning_rate = float(learning_rate)
        self.lambda_ = float(lambda_)
        self.rng = np.random.default_rng(seed)
        self.ranges: NDArray[np.float64] | None = None
        self.means: NDArray[np.float64] | None = None

    # -- public API -----------------------------------------------------------

    def train(self, x: ArrayLike, y: ArrayLike) -> float:
        """Fit the model and return the final training cost."""
        x_arr = _as_matrix(x)
        self.compute_normalizations(x_arr)
        features = self.preprocess_features(x_arr)
        targets = self.preprocess_times(np.asarray(y, dtype=np.float64))
        self.gradient_descent(features, targets)
        cost = self.cost(features, targets)
        logger.info("Training cost: %.2e", cost)
        return cost

    def validate(self, x: ArrayLike, y: ArrayLike) -> float:
        """Cost on held-out data, pre-processed the same way as training data."""
        features = self.preprocess_features(_as_matrix(x))
        targets = self.preprocess_times(np.asarray(y, dtype=np.float64))
        cost = self.cost(features, targets)
        logger.info("Validation cost: %.2e", cost)
        return cost

    def predict(self, x: ArrayLike) -> float:
        """Predicted execution time for a single parameter-value vector."""
        return float(self.predict_many(np.atleast_2d(np.asarray(x, dtype=np.float64)))[0])

    def predict_many(self, x: ArrayLike) -> NDArray[np.float64]:
        features = self.preprocess_features(_as_matrix(x))
        return self.postprocess_times(self.hypothesis(features))

    def success_rate(self, x: ArrayLike, y: ArrayLike, margin: float = 0.1) -> float:
        """Percentage of predictions within ``margin`` (relative) of the actual time."""
        actual = np.asarray(y, dtype=np.float64)
        if actual.size == 0:
            return 0.0
        predicted = self.predict_many(x)
        within = (predicted < actual * (1 + margin)) & (predicted > actual * (1 - margin))
        return 100.0 * float(np.mean(within))

    # -- shared machinery -----------------------------------------------------

    def compute_normalizations(self, x: NDArray[np.float64]) -> None:
        ranges = x.max(axis=0) - x.min(axis=0)
        self.ranges = np.where(ranges == 0, 1.0, ranges)
        self.means = x.mean(axis=0)

    def normalize_features(self, x: NDArray[np.float64]) -> NDArray[np.float64]:
        if self.ranges is None or self.means is None:
            raise RuntimeError("Model must be trained before use")
        return (x - self.means) / self.ranges

    def gradient_descent(self, x: NDArray[np.float64], y: NDArray[np.float64]) -> None:
        self.initialize_theta(x.shape[1])
        report_every = max(1, self.learning_iterations // COST_REPORT_AMOUNT)
        for iteration in range(self.learning_iterations):
            cost = self.cost(x, y)
            if (iteration + 1) % report_every == 0:
                logger.info(
                    "Gradient descent %d/%d: cost %.2e",
                    iteration + 1,
                    self.learning_iterations,
                    cost,
                )
            self.gradient_step(x, y)

    def preprocess_times(self, y: NDArray[np.float64]) -> NDArray[np.float64]:
        """Log-transform times; execution-time distributions are right-skewed."""
        return np.log(y)

    def postprocess_times(self, y: NDArray[np.float64]) -> NDArray[np.float64]:
        return np.exp(y)

    # -- model-specific pieces ------------------------------------------------

    @abstractmethod
    def preprocess_features(self, x: NDArray[np.float64]) -> NDArray[np.float64]: ...

    @abstractmethod
    def initialize_theta(self, n: int) -> None: ...

    @abstractmethod
    def hypothesis(self, x: NDArray[np.float64]) -> NDArray[np.float64]: ...

    @abstractmethod
    def cost(self, x: NDArray[np.float64], y: NDArray[np.float64]) -> float: ...

    @abstractmethod
    def gradient_step(self, x: NDArray[np.float64], y: NDArray[np.float64]) -> None: ...


def _as_matrix(x: ArrayLike) -> NDArray[np.float64]:
    arr = np.asarray(x, dtype=np.float64)
    if arr.ndim == 1:
        arr = arr.reshape(-1, 1) if arr.size else arr.reshape(0, 0)
    return arr
