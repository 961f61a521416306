"""Model-based prediction of unexplored configurations.

After an exploratory search, measured (configuration, time) pairs train a
regressor; the regressor then ranks every configuration that was not measured
so the most promising ones can be confirmed on hardware.
"""

from __future__ import annotations

import logging
from collections.abc import Collection, Sequence
from enum import Enum

import numpy as np
from numpy.typing import NDArray

from .errors import ModelError, UnsupportedModelError
from .models import LinearRegression, MLModel, NeuralNetwork
from .space import Configuration

logger = logging.getLogger(__name__)

# Relative error under which a prediction counts as a success
SUCCESS_MARGIN = 0.1

HIDDEN_UNITS = 20


class ModelType(Enum):
    LINEAR_REGRESSION = "linear_regression"
    NEURAL_NETWORK = "neural_network"


def create_model(model_type: ModelType, num_features: int, seed: int | None = None) -> MLModel:
    """Build a model with its default hyper-parameters."""
    if model_type is ModelType.LINEAR_REGRESSION:
        return LinearRegression(learning_iterations=800, learning_rate=0.05, lambda_=0.2, seed=seed)
    if model_type is ModelType.NEURAL_NETWORK:
        return NeuralNetwork(
            learning_iterations=800,
            learning_rate=0.1,
            lambda_=0.005,
            layer_sizes=(num_features, HIDDEN_UNITS, 1),
            seed=seed,
        )
    raise UnsupportedModelError(f"Unsupported model type: {model_type}")


def configurations_to_features(configurations: Sequence[Configuration]) -> NDArray[np.float64]:
    """One row of parameter values per configuration."""
    if not configurations:
        return np.zeros((0, 0), dtype=np.float64)
    return np.array([config.values for config in configurations], dtype=np.float64)


def split_dataset(
    x: NDArray[np.float64],
    y: NDArray[np.float64],
    validation_fraction: float,
    rng: np.random.Generator,
) -> tuple[NDArray[np.float64], NDArray[np.float64], NDArray[np.float64], NDArray[np.float64]]:
    """Shuffle and split into (x_train, y_train, x_validate, y_validate).

    Raises:
        ModelError: If the fraction is outside [0, 1) or no training sample remains.
    """
    if not 0.0 <= validation_fraction < 1.0:
        raise ModelError(f"Validation fraction must be in [0, 1), got {validation_fraction}")
    order = rng.permutation(len(y))
    num_validation = int(len(y) * validation_fraction)
    num_training = len(y) - num_validation
    if num_training < 1:
        raise ModelError("Not enough measured configurations to train a model")
    train, validate = order[:num_training], order[num_training:]
    return x[train], y[train], x[validate], y[validate]


def rank_unexplored(
    model: MLModel,
    configurations: Sequence[Configuration],
    explored: Collection[int],
) -> list[tuple[int, float]]:
    """Predict every unexplored configuration, fastest first.

    Returns:
        (index, predicted_time_ms) pairs sorted by predicted time; ties keep
        enumeration order.
    """
    candidates = [i for i in range(len(configurations)) if i not in explored]
    if not candidates:
        return []
    predictions = model.predict_many(
        configurations_to_features([configurations[i] for i in candidates])
    )
    ranked = sorted(zip(candidates, predictions.tolist()), key=lambda pair: pair[1])
    logger.debug("Ranked %d unexplored configurations", len(ranked))
    return ranked
