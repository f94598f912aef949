"""Exceptions raised by GradKit.

Two families are kept apart:

* Programming errors (:class:`DimensionMismatch`, :class:`InvalidParameter`)
  are raised as soon as a call receives malformed input. They subclass
  :class:`ValueError` so that generic callers can catch them as such.
* Validation outcomes (:class:`GradientMismatch`, :class:`JacobianMismatch`)
  describe a disagreement between an analytical derivative and its
  finite-difference approximation. They are only raised by the
  ``check_*_and_raise`` entry points and carry the full mismatch report.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from gradkit.diagnostics import GradientMismatchReport, JacobianMismatchReport

__all__ = [
    "GradkitError",
    "DimensionMismatch",
    "InvalidParameter",
    "DerivativeMismatch",
    "GradientMismatch",
    "JacobianMismatch",
]


class GradkitError(Exception):
    """Base class of every exception raised by GradKit."""


class DimensionMismatch(GradkitError, ValueError):
    """Raises when an argument or result length disagrees with a declared size."""


class InvalidParameter(GradkitError, ValueError):
    """Raises when a step size, threshold, index or policy name is invalid."""


class DerivativeMismatch(GradkitError):
    """Base class for failed derivative checks.

    Attributes:
        report: Immutable snapshot describing the failed comparison.
    """

    def __init__(self, report):
        self.report = report
        super().__init__(report.format())


class GradientMismatch(DerivativeMismatch):
    """Raises when an analytical gradient disagrees with finite differences."""

    report: GradientMismatchReport


class JacobianMismatch(DerivativeMismatch):
    """Raises when an analytical Jacobian disagrees with finite differences."""

    report: JacobianMismatchReport
