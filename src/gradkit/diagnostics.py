"""Mismatch reports produced by failed derivative checks.

Reports are immutable snapshots: arrays are copied and marked read-only so a
report stays valid after the caller reuses its own buffers.
"""

from __future__ import annotations

from dataclasses import dataclass

import numpy as np

from gradkit.utils.types import Matrix, Vector

__all__ = [
    "GradientMismatchReport",
    "JacobianMismatchReport",
    "frozen_copy",
]


def frozen_copy(values) -> np.ndarray:
    """Returns a read-only float copy of ``values``."""
    arr = np.array(values, dtype=np.float64, copy=True)
    arr.setflags(write=False)
    return arr


def _preview(arr: np.ndarray, decimals: int) -> str:
    with np.printoptions(precision=decimals, suppress=False, threshold=50, edgeitems=5):
        return np.array2string(arr, separator=", ")


@dataclass(frozen=True, eq=False)
class GradientMismatchReport:
    """Snapshot of a gradient check that exceeded its threshold.

    Attributes:
        x: Point where the gradients were evaluated.
        output_index: Output component whose gradient was checked.
        analytical_gradient: Gradient returned by the function itself.
        finite_difference_gradient: Gradient computed by finite differences.
        max_delta: Largest absolute component-wise difference (NaN if any
            difference is NaN).
        max_delta_component: Input index where ``max_delta`` occurs.
        threshold: Maximum tolerated difference.
    """

    x: Vector
    output_index: int
    analytical_gradient: Vector
    finite_difference_gradient: Vector
    max_delta: float
    max_delta_component: int
    threshold: float

    @property
    def delta(self) -> Vector:
        """Component-wise ``analytical - finite difference`` difference."""
        return self.analytical_gradient - self.finite_difference_gradient

    def format(self, decimals: int = 6) -> str:
        """Formats the report into a human-readable string."""
        lines = [
            f"Gradient check failed for output {self.output_index}: "
            f"max delta {self.max_delta:.{decimals}g} > threshold {self.threshold:.{decimals}g} "
            f"at component {self.max_delta_component}.",
            f"  x: {_preview(self.x, decimals)}",
            f"  analytical gradient: {_preview(self.analytical_gradient, decimals)}",
            f"  finite difference gradient: {_preview(self.finite_difference_gradient, decimals)}",
        ]
        return "\n".join(lines)

    def __str__(self) -> str:
        return self.format()


@dataclass(frozen=True, eq=False)
class JacobianMismatchReport:
    """Snapshot of a Jacobian check that exceeded its threshold.

    Attributes:
        x: Point where the Jacobians were evaluated.
        analytical_jacobian: Jacobian returned by the function itself.
        finite_difference_jacobian: Jacobian computed by finite differences.
        max_delta: Largest absolute entry-wise difference.
        max_delta_row: Output index of the entry where ``max_delta`` occurs.
        max_delta_column: Input index of that entry.
        threshold: Maximum tolerated difference.
    """

    x: Vector
    analytical_jacobian: Matrix
    finite_difference_jacobian: Matrix
    max_delta: float
    max_delta_row: int
    max_delta_column: int
    threshold: float

    @property
    def delta(self) -> Matrix:
        """Entry-wise ``analytical - finite difference`` difference."""
        return self.analytical_jacobian - self.finite_difference_jacobian

    def format(self, decimals: int = 6) -> str:
        """Formats the report into a human-readable string."""
        lines = [
            f"Jacobian check failed: max delta {self.max_delta:.{decimals}g} > "
            f"threshold {self.threshold:.{decimals}g} "
            f"at row {self.max_delta_row}, column {self.max_delta_column}.",
            f"  x: {_preview(self.x, decimals)}",
            "  analytical jacobian:",
            _indent(_preview(self.analytical_jacobian, decimals)),
            "  finite difference jacobian:",
            _indent(_preview(self.finite_difference_jacobian, decimals)),
        ]
        return "\n".join(lines)

    def __str__(self) -> str:
        return self.format()


def _indent(text: str, prefix: str = "    ") -> str:
    return "\n".join(prefix + line for line in text.splitlines())
