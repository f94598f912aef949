"""Ready-made functions with closed-form derivatives.

They are useful as reference objects when testing derivative code: their
gradients, Jacobians and Hessians are exact.
"""

from __future__ import annotations

import numpy as np

from gradkit.errors import DimensionMismatch
from gradkit.functions.core import TwiceDifferentiableFunction
from gradkit.utils.types import ArgumentLike, Matrix, MatrixLike, Vector

__all__ = [
    "AffineFunction",
    "QuadraticFunction",
]


class AffineFunction(TwiceDifferentiableFunction):
    """Affine map ``f(x) = A x + b``.

    The Jacobian is ``A`` everywhere and every Hessian is zero.

    Attributes:
        matrix: ``A``, shape ``(output_size, input_size)``.
        offset: ``b``, shape ``(output_size,)``.
    """

    def __init__(self, matrix: MatrixLike, offset: ArgumentLike | None = None, name: str = ""):
        """Initialises the map from its matrix and offset.

        Args:
            matrix: 2D array-like ``A``.
            offset: 1D array-like ``b``. Defaults to zeros.
            name: Display name.

        Raises:
            DimensionMismatch: If ``matrix`` is not 2D or ``offset`` does not
                have one entry per row of ``matrix``.
        """
        a = np.array(matrix, dtype=np.float64, copy=True)
        if a.ndim != 2:
            raise DimensionMismatch(f"matrix must be 2D; got shape {a.shape}.")
        b = np.zeros(a.shape[0]) if offset is None else np.array(offset, dtype=np.float64, copy=True)
        if b.shape != (a.shape[0],):
            raise DimensionMismatch(
                f"offset must have shape ({a.shape[0]},); got {b.shape}."
            )
        super().__init__(a.shape[1], a.shape[0], name)
        self.matrix = a
        self.offset = b

    def _evaluate(self, argument: Vector) -> Vector:
        return self.matrix @ argument + self.offset

    def _gradient(self, argument: Vector, output_index: int) -> Vector:
        return self.matrix[output_index]

    def _jacobian(self, argument: Vector) -> Matrix:
        return self.matrix

    def _hessian(self, argument: Vector, output_index: int) -> Matrix:
        return np.zeros((self.input_size, self.input_size))

    def _describe(self) -> str:
        return "affine function"


class QuadraticFunction(TwiceDifferentiableFunction):
    """Scalar quadratic ``f(x) = 0.5 x^T A x + b^T x + c``.

    Only the symmetric part of ``A`` contributes, so the gradient is
    ``S x + b`` and the Hessian ``S`` with ``S = 0.5 (A + A^T)``.
    """

    def __init__(
        self,
        matrix: MatrixLike,
        vector: ArgumentLike | None = None,
        constant: float = 0.0,
        name: str = "",
    ):
        """Initialises the quadratic form.

        Args:
            matrix: Square 2D array-like ``A``.
            vector: Linear term ``b``. Defaults to zeros.
            constant: Constant term ``c``. Default is 0.
            name: Display name.

        Raises:
            DimensionMismatch: If ``matrix`` is not square or ``vector`` has
                the wrong length.
        """
        a = np.array(matrix, dtype=np.float64, copy=True)
        if a.ndim != 2 or a.shape[0] != a.shape[1]:
            raise DimensionMismatch(f"matrix must be square; got shape {a.shape}.")
        n = a.shape[0]
        b = np.zeros(n) if vector is None else np.array(vector, dtype=np.float64, copy=True)
        if b.shape != (n,):
            raise DimensionMismatch(f"vector must have shape ({n},); got {b.shape}.")
        super().__init__(n, 1, name)
        self.matrix = a
        self.vector = b
        self.constant = float(constant)
        self._sym = 0.5 * (a + a.T)

    def _evaluate(self, argument: Vector) -> float:
        x = argument
        return 0.5 * float(x @ self.matrix @ x) + float(self.vector @ x) + self.constant

    def _gradient(self, argument: Vector, output_index: int) -> Vector:
        return self._sym @ argument + self.vector

    def _hessian(self, argument: Vector, output_index: int) -> Matrix:
        return self._sym

    def _describe(self) -> str:
        return "quadratic function"
