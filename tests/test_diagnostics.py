"""Unit tests for the mismatch reports in gradkit.diagnostics."""

import dataclasses

import numpy as np
import pytest
from numpy.testing import assert_allclose

from gradkit.diagnostics import (
    GradientMismatchReport,
    JacobianMismatchReport,
    frozen_copy,
)
from gradkit.errors import GradientMismatch, GradkitError, JacobianMismatch


def _gradient_report():
    return GradientMismatchReport(
        x=frozen_copy([1.0, 2.0]),
        output_index=1,
        analytical_gradient=frozen_copy([3.0, 5.0]),
        finite_difference_gradient=frozen_copy([3.0, 4.0]),
        max_delta=1.0,
        max_delta_component=1,
        threshold=1e-4,
    )


def _jacobian_report():
    return JacobianMismatchReport(
        x=frozen_copy([0.5]),
        analytical_jacobian=frozen_copy([[1.0], [2.5]]),
        finite_difference_jacobian=frozen_copy([[1.0], [2.0]]),
        max_delta=0.5,
        max_delta_row=1,
        max_delta_column=0,
        threshold=0.1,
    )


def test_frozen_copy_is_read_only_copy():
    """Test that frozen_copy copies and locks its input."""
    src = np.array([1.0, 2.0])
    arr = frozen_copy(src)
    src[0] = 10.0
    assert arr[0] == 1.0
    with pytest.raises(ValueError):
        arr[0] = 3.0


def test_gradient_report_format():
    """Test the human-readable gradient report."""
    text = _gradient_report().format()
    assert "Gradient check failed for output 1" in text
    assert "max delta 1 > threshold 0.0001 at component 1" in text
    assert "analytical gradient: [3., 5.]" in text
    assert "finite difference gradient: [3., 4.]" in text
    assert str(_gradient_report()) == text


def test_jacobian_report_format():
    """Test the human-readable Jacobian report."""
    text = _jacobian_report().format(decimals=3)
    assert "at row 1, column 0" in text
    assert "analytical jacobian:" in text
    assert "finite difference jacobian:" in text
    assert "    [[1. ]," in text


def test_report_delta():
    """Test the signed analytical minus finite-difference difference."""
    assert_allclose(_gradient_report().delta, [0.0, 1.0])
    assert_allclose(_jacobian_report().delta, [[0.0], [0.5]])


def test_reports_are_frozen():
    """Test that report fields cannot be reassigned."""
    with pytest.raises(dataclasses.FrozenInstanceError):
        _gradient_report().max_delta = 0.0
    with pytest.raises(dataclasses.FrozenInstanceError):
        _jacobian_report().threshold = 1.0


def test_mismatch_exceptions_carry_report():
    """Test that exceptions expose their report and format it as message."""
    report = _gradient_report()
    err = GradientMismatch(report)
    assert err.report is report
    assert str(err) == report.format()
    assert isinstance(err, GradkitError)

    jreport = _jacobian_report()
    jerr = JacobianMismatch(jreport)
    assert jerr.report is jreport
    assert "Jacobian check failed" in str(jerr)
