"""Tests for execution-time models and the prediction helpers."""

from __future__ import annotations

import logging

import numpy as np
import pytest

from gputune.errors import LayerConfigurationError, ModelError, UnsupportedModelError
from gputune.models import LinearRegression, NeuralNetwork, add_polynomial_features
from gputune.prediction import (
    ModelType,
    configurations_to_features,
    create_model,
    rank_unexplored,
    split_dataset,
)
from gputune.space import ParameterSpace


class TestNormalization:
    """Tests for feature normalisation."""

    def test_range_and_mean(self) -> None:
        """Features are centred on the mean and scaled by the range."""
        model = LinearRegression()
        x = np.array([[1.0, 10.0], [3.0, 30.0], [5.0, 20.0]])
        model.compute_normalizations(x)
        np.testing.assert_allclose(model.ranges, [4.0, 20.0])
        np.testing.assert_allclose(model.means, [3.0, 20.0])
        np.testing.assert_allclose(model.normalize_features(x)[:, 0], [-0.5, 0.0, 0.5])

    def test_constant_feature_range_guarded(self) -> None:
        """A constant feature gets range 1 instead of dividing by zero."""
        model = LinearRegression()
        x = np.array([[7.0], [7.0], [7.0]])
        model.compute_normalizations(x)
        assert model.ranges[0] == 1.0
        assert np.all(np.isfinite(model.normalize_features(x)))

    def test_untrained_model_rejects_prediction(self) -> None:
        """Normalisation needs training statistics."""
        with pytest.raises(RuntimeError):
            LinearRegression().predict([1.0])


class TestPolynomialFeatures:
    """Tests for order-2 feature expansion."""

    def test_pairwise_products(self) -> None:
        """Products x_i * x_j with i <= j are appended after the originals."""
        x = np.array([[2.0, 3.0]])
        np.testing.assert_allclose(add_polynomial_features(x), [[2.0, 3.0, 4.0, 6.0, 9.0]])


class TestLinearRegression:
    """Tests for regularised linear regression."""

    def test_round_trip_on_exact_model(self) -> None:
        """Data generated by a log-linear function is reproduced after training."""
        x = np.arange(1.0, 10.0).reshape(-1, 1)
        y = np.exp(0.5 + 0.1 * x[:, 0])
        model = LinearRegression(learning_iterations=20000, learning_rate=0.5, lambda_=0.0)

        model.train(x, y)

        np.testing.assert_allclose(model.predict_many(x), y, rtol=1e-3)
        assert model.predict(x[4]) == pytest.approx(y[4], rel=1e-3)

    def test_cost_decreases(self, rng: np.random.Generator) -> None:
        """Training lowers the cost below the zero-weight starting point."""
        x = rng.integers(1, 64, size=(40, 2)).astype(float)
        y = 1.0 + x[:, 0] * 0.2 + x[:, 1] * 0.05
        model = LinearRegression(learning_iterations=300, learning_rate=0.1, lambda_=0.1)
        model.compute_normalizations(x)
        features = model.preprocess_features(x)
        targets = model.preprocess_times(y)
        model.initialize_theta(features.shape[1])
        initial = model.cost(features, targets)

        final = model.train(x, y)

        assert final < initial

    def test_bias_not_regularised(self) -> None:
        """The regularisation gradient skips the bias weight."""
        model = LinearRegression(lambda_=10.0)
        model.initialize_theta(3)
        model.theta[:] = [1.0, 1.0, 1.0]
        x = np.zeros((2, 3))
        y = np.zeros(2)
        grad = model.gradient(x, y)
        assert grad[0] == 0.0
        np.testing.assert_allclose(grad[1:], [5.0, 5.0])

    def test_cost_logged_every_tenth(self, caplog: pytest.LogCaptureFixture) -> None:
        """Gradient descent reports its cost ten times."""
        x = np.arange(1.0, 6.0).reshape(-1, 1)
        y = np.arange(1.0, 6.0)
        model = LinearRegression(learning_iterations=50)
        with caplog.at_level(logging.INFO, logger="gputune.models.base"):
            model.train(x, y)
        reports = [r for r in caplog.records if "Gradient descent" in r.getMessage()]
        assert len(reports) == 10


class TestNeuralNetwork:
    """Tests for the three-layer network."""

    @pytest.mark.parametrize("layers", [(2, 1), (2, 4, 4, 1), ()])
    def test_requires_three_layers(self, layers: tuple[int, ...]) -> None:
        """Any layer count other than three is rejected."""
        with pytest.raises(LayerConfigurationError):
            NeuralNetwork(layer_sizes=layers)

    def test_output_layer_must_be_single(self) -> None:
        """The output layer predicts one time."""
        with pytest.raises(LayerConfigurationError):
            NeuralNetwork(layer_sizes=(2, 4, 2))

    def test_input_layer_must_match_features(self) -> None:
        """Training data must have as many features as the input layer."""
        model = NeuralNetwork(learning_iterations=5, layer_sizes=(3, 4, 1))
        with pytest.raises(LayerConfigurationError):
            model.train(np.ones((4, 2)), np.ones(4))

    def test_default_input_layer_follows_data(self) -> None:
        """The default network sizes its input layer from the training data."""
        x = np.array([[1.0], [2.0], [4.0], [8.0]])
        model = NeuralNetwork(learning_iterations=10, seed=0)
        cost = model.train(x, 1.0 + x[:, 0])

        assert np.isfinite(cost)
        assert model.layer_sizes == [1, 20, 1]
        assert model.theta1.shape == (20, 2)
        assert model.predict(np.array([3.0])) > 0

    def test_layer_error_is_model_error(self) -> None:
        """Layer errors belong to the model-error family."""
        with pytest.raises(ModelError):
            NeuralNetwork(layer_sizes=(1, 1))

    def test_weight_shapes(self) -> None:
        """Weight matrices carry a bias column."""
        model = NeuralNetwork(layer_sizes=(3, 5, 1), seed=0)
        model.initialize_theta(3)
        assert model.theta1.shape == (5, 4)
        assert model.theta2.shape == (1, 6)
        eps = np.sqrt(6.0) / np.sqrt(3 + 5)
        assert np.all(np.abs(model.theta1) <= eps)

    def test_training_reduces_cost(self, rng: np.random.Generator) -> None:
        """Backpropagation lowers the training cost."""
        x = rng.integers(1, 32, size=(30, 2)).astype(float)
        y = 0.5 + 0.1 * x[:, 0] + 0.02 * x[:, 0] * x[:, 1]
        model = NeuralNetwork(learning_iterations=400, layer_sizes=(2, 8, 1), seed=1)
        model.compute_normalizations(x)
        features = model.preprocess_features(x)
        targets = model.preprocess_times(y)
        model.initialize_theta(2)
        initial = model.cost(features, targets)

        model.rng = np.random.default_rng(1)
        final = model.train(x, y)

        assert final < initial
        assert np.all(model.predict_many(x) > 0)


class TestPredictionHelpers:
    """Tests for the prediction workflow helpers."""

    def test_create_model_defaults(self) -> None:
        """Factories apply the documented defaults."""
        lr = create_model(ModelType.LINEAR_REGRESSION, 2)
        assert (lr.learning_iterations, lr.learning_rate, lr.lambda_) == (800, 0.05, 0.2)
        nn = create_model(ModelType.NEURAL_NETWORK, 3)
        assert nn.layer_sizes == [3, 20, 1]
        assert (nn.learning_rate, nn.lambda_) == (0.1, 0.005)

    def test_unsupported_model(self) -> None:
        """Unknown model types are rejected."""
        with pytest.raises(UnsupportedModelError):
            create_model("svm", 2)  # type: ignore[arg-type]

    def test_split_sizes(self, rng: np.random.Generator) -> None:
        """The validation share is split off after shuffling."""
        x = np.arange(20.0).reshape(10, 2)
        y = np.arange(10.0)
        x_train, y_train, x_val, y_val = split_dataset(x, y, 0.2, rng)
        assert len(y_train) == 8 and len(y_val) == 2
        assert sorted(np.concatenate([y_train, y_val]).tolist()) == y.tolist()
        np.testing.assert_allclose(x_train[:, 0], y_train * 2)

    def test_split_rejects_bad_fraction(self, rng: np.random.Generator) -> None:
        """The validation fraction must leave training data."""
        with pytest.raises(ModelError):
            split_dataset(np.ones((3, 1)), np.ones(3), 1.0, rng)

    def test_rank_unexplored(self) -> None:
        """Unexplored configurations are ranked fastest first."""
        space = ParameterSpace()
        space.add_parameter("A", [1, 2, 3, 4, 5])
        configs = space.enumerate_configurations()
        x = configurations_to_features(configs)
        y = np.exp(0.1 * x[:, 0])
        model = LinearRegression(learning_iterations=5000, learning_rate=0.5, lambda_=0.0)
        model.train(x, y)

        ranked = rank_unexplored(model, configs, explored={0, 4})

        assert [index for index, _ in ranked] == [1, 2, 3]
        assert ranked[0][1] < ranked[-1][1]
