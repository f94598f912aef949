"""Shared typing aliases for GradKit."""

from __future__ import annotations

from typing import Sequence, TypeAlias

import numpy as np
from numpy.typing import NDArray

#: 1D float array of length ``input_size`` or ``output_size``.
Vector: TypeAlias = NDArray[np.float64]
#: 2D float array, e.g. a Jacobian of shape ``(output_size, input_size)``.
Matrix: TypeAlias = NDArray[np.float64]

ArgumentLike: TypeAlias = Sequence[float] | NDArray[np.floating]
MatrixLike: TypeAlias = Sequence[Sequence[float]] | NDArray[np.floating]
