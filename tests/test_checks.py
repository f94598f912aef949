"""Unit tests for the derivative checks in gradkit.checks."""

import logging

import numpy as np
import pytest
from numpy.testing import assert_allclose, assert_array_equal

from gradkit.checks import (
    check_gradient,
    check_gradient_and_raise,
    check_jacobian,
    check_jacobian_and_raise,
    compare_gradient,
    compare_jacobian,
)
from gradkit.config import finite_difference_defaults
from gradkit.diagnostics import GradientMismatchReport, JacobianMismatchReport
from gradkit.errors import (
    DerivativeMismatch,
    DimensionMismatch,
    GradientMismatch,
    InvalidParameter,
    JacobianMismatch,
)
from gradkit.functions import (
    CallableFunction,
    DifferentiableFunction,
    QuadraticFunction,
)


class Exponential(DifferentiableFunction):
    """f(x) = [exp(x0) + x1^2, x0 * x1, exp(x1)] with an optional error in its Jacobian."""

    def __init__(self, error=None):
        super().__init__(2, 3, "exponential")
        self.error = np.zeros((3, 2)) if error is None else np.asarray(error, dtype=float)

    def _evaluate(self, x):
        return np.array([np.exp(x[0]) + x[1] ** 2, x[0] * x[1], np.exp(x[1])])

    def _jacobian(self, x):
        jac = np.array([
            [np.exp(x[0]), 2.0 * x[1]],
            [x[1], x[0]],
            [0.0, np.exp(x[1])],
        ])
        return jac + self.error


class DuckGradient:
    """Duck-typed function whose analytical derivatives have the wrong size."""

    input_size = 2
    output_size = 1
    name = "duck"

    def evaluate(self, x):
        return np.array([x[0] + x[1]])

    def gradient(self, x, output_index=0):
        return np.array([1.0, 1.0, 1.0])

    def jacobian(self, x):
        return np.ones((2, 2))


X = np.array([0.5, -0.3])


@pytest.mark.parametrize("threshold", [0.0, 1e-12, 1e-4, 10.0])
def test_null_function_passes_any_threshold(threshold):
    """Test that the zero function passes, even with a zero threshold."""
    f = QuadraticFunction(np.zeros((1, 1)), name="null function")
    assert compare_gradient(f, 0, [42.0], threshold) == (True, None)
    assert check_gradient(f, 0, [42.0], threshold)
    assert check_gradient_and_raise(f, 0, [42.0], threshold) is None
    assert check_jacobian(f, [42.0], threshold)


def test_correct_derivatives_pass():
    """Test that exact derivatives pass with the default settings."""
    f = Exponential()
    for i in range(3):
        assert check_gradient(f, i, X)
    assert check_jacobian(f, X)
    check_jacobian_and_raise(f, X)


def test_gradient_offset_fails_with_report():
    """Test that a gradient off by 1.0 fails and is located."""
    error = np.zeros((3, 2))
    error[0, 1] = 1.0
    f = Exponential(error)

    ok, report = compare_gradient(f, 0, X)
    assert not ok
    assert isinstance(report, GradientMismatchReport)
    assert report.output_index == 0
    assert report.max_delta_component == 1
    assert_allclose(report.max_delta, 1.0, atol=1e-6)
    assert report.threshold == 1e-4
    assert_array_equal(report.x, X)
    assert_allclose(report.analytical_gradient, f.gradient(X, 0))
    assert_allclose(report.finite_difference_gradient, [np.exp(0.5), -0.6], atol=1e-6)

    assert not check_gradient(f, 0, X)
    assert check_gradient(f, 1, X)
    with pytest.raises(GradientMismatch) as excinfo:
        check_gradient_and_raise(f, 0, X)
    assert excinfo.value.report.max_delta_component == 1
    assert isinstance(excinfo.value, DerivativeMismatch)


def test_jacobian_mismatch_is_located():
    """Test the row and column of the largest Jacobian error."""
    error = np.zeros((3, 2))
    error[2, 0] = -0.5
    error[1, 1] = 0.25
    f = Exponential(error)

    ok, report = compare_jacobian(f, X)
    assert not ok
    assert isinstance(report, JacobianMismatchReport)
    assert (report.max_delta_row, report.max_delta_column) == (2, 0)
    assert_allclose(report.max_delta, 0.5, atol=1e-6)
    assert report.analytical_jacobian.shape == (3, 2)
    assert report.finite_difference_jacobian.shape == (3, 2)

    assert not check_jacobian(f, X)
    with pytest.raises(JacobianMismatch) as excinfo:
        check_jacobian_and_raise(f, X)
    assert excinfo.value.report.max_delta_row == 2


def test_threshold_boundary():
    """Test that the threshold separates passing from failing deltas."""
    error = np.zeros((3, 2))
    error[1, 0] = 0.5
    f = Exponential(error)
    assert check_gradient(f, 1, X, threshold=0.75)
    assert not check_gradient(f, 1, X, threshold=0.25)


def test_nan_in_analytical_gradient_fails():
    """Test that a NaN difference counts as a mismatch at the first NaN."""
    error = np.zeros((3, 2))
    error[0, 1] = np.nan
    f = Exponential(error)
    ok, report = compare_gradient(f, 0, X, threshold=1e6)
    assert not ok
    assert report.max_delta_component == 1
    assert np.isnan(report.max_delta)

    ok, report = compare_jacobian(f, X, threshold=1e6)
    assert not ok
    assert (report.max_delta_row, report.max_delta_column) == (0, 1)


def test_five_point_policy_allows_tighter_threshold():
    """Test that the five-point rule passes where forward differences fail."""
    f = Exponential()
    assert not check_jacobian(f, X, threshold=1e-9, epsilon=1e-6)
    assert check_jacobian(f, X, threshold=1e-9, epsilon=1e-3, policy="five-points-rule")
    assert check_gradient(f, 2, X, threshold=1e-9, epsilon=1e-3, policy="central")


def test_scoped_threshold_override():
    """Test that a scoped default threshold is used when none is passed."""
    error = np.zeros((3, 2))
    error[0, 0] = 1.0
    f = Exponential(error)
    with finite_difference_defaults(threshold=2.0):
        assert check_gradient(f, 0, X)
    assert not check_gradient(f, 0, X)


def test_malformed_inputs_raise():
    """Test that programming errors raise in every flavour."""
    f = Exponential()
    with pytest.raises(DimensionMismatch):
        check_gradient(f, 0, [1.0, 2.0, 3.0])
    with pytest.raises(DimensionMismatch):
        compare_jacobian(f, [1.0])
    with pytest.raises(InvalidParameter):
        check_gradient(f, 0, X, threshold=-1.0)
    with pytest.raises(InvalidParameter):
        check_gradient_and_raise(f, 3, X)
    with pytest.raises(InvalidParameter):
        check_jacobian(f, X, epsilon=0.0)
    with pytest.raises(InvalidParameter):
        check_jacobian(f, X, policy="unknown")


def test_wrong_analytical_size_raises():
    """Test that analytical derivatives of the wrong size raise DimensionMismatch."""
    with pytest.raises(DimensionMismatch):
        compare_gradient(DuckGradient(), 0, [0.0, 0.0])
    with pytest.raises(DimensionMismatch):
        compare_jacobian(DuckGradient(), [0.0, 0.0])


def test_value_only_function_raises_type_error():
    """Test that a function without derivatives cannot be checked."""
    f = CallableFunction(lambda x: x[0], 1)
    with pytest.raises(TypeError):
        check_gradient(f, 0, [1.0])
    with pytest.raises(TypeError):
        check_jacobian(f, [1.0])


def test_failed_check_is_logged(caplog):
    """Test that the non-raising checks log failures at info level."""
    error = np.zeros((3, 2))
    error[1, 0] = 1.0
    f = Exponential(error)
    with caplog.at_level(logging.INFO, logger="gradkit"):
        assert not check_gradient(f, 1, X)
        assert not check_jacobian(f, X)
    messages = [r.getMessage() for r in caplog.records if r.levelno == logging.INFO]
    assert any("Gradient check failed for exponential" in m for m in messages)
    assert any("Jacobian check failed for exponential" in m for m in messages)


def test_passing_check_is_not_logged_at_info(caplog):
    """Test that successful checks stay quiet at info level."""
    with caplog.at_level(logging.INFO, logger="gradkit"):
        assert check_jacobian(Exponential(), X)
    assert not [r for r in caplog.records if r.levelno >= logging.INFO]


class RaggedJacobian:
    """Duck-typed function whose analytical Jacobian has rows of unequal length."""

    input_size = 2
    output_size = 2
    name = "ragged"

    def evaluate(self, x):
        return np.array([x[0], x[0] + x[1]])

    def gradient(self, x, output_index=0):
        return np.array([1.0, float(output_index)])

    def jacobian(self, x):
        return [[1.0], [0.0, 1.0]]


def test_ragged_analytical_jacobian_raises():
    """Test that a ragged analytical Jacobian raises DimensionMismatch."""
    with pytest.raises(DimensionMismatch, match="returned a ragged"):
        compare_jacobian(RaggedJacobian(), [0.0, 0.0])
    with pytest.raises(DimensionMismatch):
        check_jacobian_and_raise(RaggedJacobian(), [0.0, 0.0])
