"""Validation utilities for GradKit.

Every public operation calls these helpers before touching any buffer, so a
malformed call fails without writing to caller-visible outputs.
"""

from __future__ import annotations

import math
from typing import Any

import numpy as np

from gradkit.errors import DimensionMismatch, InvalidParameter
from gradkit.utils.types import ArgumentLike, Matrix, Vector

__all__ = [
    "as_argument",
    "as_result",
    "as_matrix",
    "check_index",
    "check_epsilon",
    "check_threshold",
    "check_out",
]


def as_argument(argument: ArgumentLike, input_size: int) -> Vector:
    """Converts ``argument`` to a 1D float array of length ``input_size``.

    The returned array may share memory with ``argument``.

    Args:
        argument: Point at which a function or derivative is evaluated.
        input_size: Declared input size of the function.

    Returns:
        A 1D ``float64`` array.

    Raises:
        DimensionMismatch: If ``argument`` is not 1D or has the wrong length.
    """
    arr = np.asarray(argument, dtype=np.float64)
    if arr.ndim != 1:
        raise DimensionMismatch(
            f"argument must be 1D; got shape {arr.shape}."
        )
    if arr.size != input_size:
        raise DimensionMismatch(
            f"argument has size {arr.size} but the function expects {input_size}."
        )
    return arr


def as_result(value: Any, output_size: int, *, where: str) -> Vector:
    """Copies a raw function result into a fresh 1D float array.

    Scalars are accepted when ``output_size == 1``.

    Args:
        value: Raw value returned by a function hook.
        output_size: Declared output size of the function.
        where: Context string for error messages.

    Returns:
        A new 1D ``float64`` array of length ``output_size``.

    Raises:
        DimensionMismatch: If the result does not have ``output_size`` entries.
    """
    arr = _float_copy(value, where)
    if arr.ndim == 0:
        arr = arr.reshape(1)
    if arr.ndim != 1 or arr.size != output_size:
        raise DimensionMismatch(
            f"{where} returned shape {arr.shape}; expected ({output_size},)."
        )
    return arr


def as_matrix(value: Any, shape: tuple[int, int], *, where: str) -> Matrix:
    """Copies a raw matrix result (Jacobian, Hessian) into a fresh float array.

    Args:
        value: Raw value returned by a function hook.
        shape: Expected shape.
        where: Context string for error messages.

    Returns:
        A new ``float64`` array of shape ``shape``.

    Raises:
        DimensionMismatch: If the result is ragged or has another shape.
    """
    arr = _float_copy(value, where)
    if arr.shape != shape:
        raise DimensionMismatch(
            f"{where} returned shape {arr.shape}; expected {shape}."
        )
    return arr


def _float_copy(value: Any, where: str) -> np.ndarray:
    try:
        return np.array(value, dtype=np.float64, copy=True)
    except ValueError:
        raise DimensionMismatch(f"{where} returned a ragged or non-numeric array.") from None


def check_index(index: Any, size: int, *, name: str) -> int:
    """Checks that ``0 <= index < size`` and returns it as an int.

    Raises:
        InvalidParameter: If ``index`` is not an integer or is out of range.
    """
    if isinstance(index, bool) or not isinstance(index, (int, np.integer)):
        raise InvalidParameter(
            f"{name} must be an integer; got {type(index).__name__}."
        )
    if index < 0 or index >= size:
        raise InvalidParameter(
            f"{name} {index} out of range for size {size}."
        )
    return int(index)


def check_epsilon(epsilon: Any) -> float:
    """Checks that the finite-difference step is a positive finite float.

    Raises:
        InvalidParameter: If ``epsilon`` is not positive and finite.
    """
    try:
        eps = float(epsilon)
    except (TypeError, ValueError):
        raise InvalidParameter(f"epsilon must be a real number; got {epsilon!r}.") from None
    if not math.isfinite(eps) or eps <= 0.0:
        raise InvalidParameter(f"epsilon must be positive and finite; got {epsilon!r}.")
    return eps


def check_threshold(threshold: Any) -> float:
    """Checks that a comparison threshold is a non-negative float.

    Raises:
        InvalidParameter: If ``threshold`` is negative or NaN.
    """
    try:
        thr = float(threshold)
    except (TypeError, ValueError):
        raise InvalidParameter(f"threshold must be a real number; got {threshold!r}.") from None
    if math.isnan(thr) or thr < 0.0:
        raise InvalidParameter(f"threshold must be non-negative; got {threshold!r}.")
    return thr


def check_out(out: np.ndarray | None, shape: tuple[int, ...]) -> np.ndarray:
    """Returns ``out`` after checking its shape, or a new zeroed array.

    Raises:
        DimensionMismatch: If ``out`` does not have exactly ``shape``.
        TypeError: If ``out`` is not a NumPy array.
    """
    if out is None:
        return np.zeros(shape, dtype=np.float64)
    if not isinstance(out, np.ndarray):
        raise TypeError(f"out must be a numpy.ndarray; got {type(out).__name__}.")
    if out.shape != shape:
        raise DimensionMismatch(
            f"out has shape {out.shape}; expected {shape}."
        )
    return out
