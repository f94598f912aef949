"""Capability protocols and base classes for functions.

A function maps a point of ``R^input_size`` to a point of ``R^output_size``.
Capabilities are orthogonal:

* :class:`Evaluate`: ``input_size``, ``output_size``, ``name`` and
  ``evaluate(argument)``;
* :class:`Differentiate`: ``gradient(argument, output_index)`` and
  ``jacobian(argument)``;
* :class:`TwiceDifferentiate`: ``hessian(argument, output_index)``.

Any object with the right attributes satisfies a protocol. The base classes
below are a convenience: they validate arguments and results so subclasses
only write the ``_evaluate`` / ``_gradient`` / ``_jacobian`` / ``_hessian``
hooks.

Examples:
    >>> import numpy as np
    >>> from gradkit.functions.core import DifferentiableFunction
    >>> class Square(DifferentiableFunction):
    ...     def __init__(self):
    ...         super().__init__(1, 1, "square")
    ...     def _evaluate(self, x):
    ...         return x**2
    ...     def _gradient(self, x, output_index):
    ...         return 2.0 * x
    >>> f = Square()
    >>> f.gradient([3.0])
    array([6.])
"""

from __future__ import annotations

from collections.abc import Callable
from typing import Any, Protocol, runtime_checkable

import numpy as np

from gradkit.errors import InvalidParameter
from gradkit.utils.types import ArgumentLike, Matrix, Vector
from gradkit.utils.validate import as_argument, as_matrix, as_result, check_index

__all__ = [
    "Evaluate",
    "Differentiate",
    "TwiceDifferentiate",
    "Function",
    "DifferentiableFunction",
    "TwiceDifferentiableFunction",
    "CallableFunction",
]


@runtime_checkable
class Evaluate(Protocol):
    """Protocol of every function that can be wrapped or differentiated."""

    input_size: int
    output_size: int

    def evaluate(self, argument: ArgumentLike) -> Vector:
        """Return the function value at ``argument``."""
        ...


@runtime_checkable
class Differentiate(Protocol):
    """Protocol of functions exposing first derivatives."""

    def gradient(self, argument: ArgumentLike, output_index: int = 0) -> Vector:
        """Return the gradient of one output component."""
        ...

    def jacobian(self, argument: ArgumentLike) -> Matrix:
        """Return the Jacobian of all output components."""
        ...


@runtime_checkable
class TwiceDifferentiate(Protocol):
    """Protocol of functions exposing second derivatives."""

    def hessian(self, argument: ArgumentLike, output_index: int = 0) -> Matrix:
        """Return the Hessian of one output component."""
        ...


def _check_size(value: Any, *, name: str) -> int:
    if isinstance(value, bool) or not isinstance(value, (int, np.integer)):
        raise InvalidParameter(f"{name} must be an integer; got {type(value).__name__}.")
    if value < 0:
        raise InvalidParameter(f"{name} must be non-negative; got {value}.")
    return int(value)


class Function:
    """Base class for functions with a fixed input and output size.

    Attributes:
        input_size: Length of every argument.
        output_size: Length of every result.
        name: Display name; may be empty.
    """

    def __init__(self, input_size: int, output_size: int = 1, name: str = ""):
        """Initialises the declared sizes and display name.

        Args:
            input_size: Length of every argument.
            output_size: Length of every result. Default is 1.
            name: Display name. Default is empty.

        Raises:
            InvalidParameter: If a size is negative or not an integer.
        """
        self.input_size = _check_size(input_size, name="input_size")
        self.output_size = _check_size(output_size, name="output_size")
        self.name = str(name)

    def evaluate(self, argument: ArgumentLike) -> Vector:
        """Returns the value of the function at ``argument``.

        Args:
            argument: Point of length ``input_size``.

        Returns:
            A new 1D array of length ``output_size``.

        Raises:
            DimensionMismatch: If ``argument`` or the computed result have
                the wrong length.
        """
        x = as_argument(argument, self.input_size)
        return as_result(self._evaluate(x), self.output_size, where=f"{self!s}.evaluate")

    def __call__(self, argument: ArgumentLike) -> Vector:
        return self.evaluate(argument)

    def _evaluate(self, argument: Vector) -> ArgumentLike | float:
        raise NotImplementedError

    def _describe(self) -> str:
        return "function"

    def __str__(self) -> str:
        return self.name if self.name else f"{self._describe()} ({self.input_size} -> {self.output_size})"

    def __repr__(self) -> str:
        return (
            f"{type(self).__name__}(input_size={self.input_size}, "
            f"output_size={self.output_size}, name={self.name!r})"
        )


class DifferentiableFunction(Function):
    """Base class for functions exposing gradients and a Jacobian.

    Subclasses implement ``_evaluate`` and at least one of ``_gradient``
    or ``_jacobian``. The default ``_jacobian`` stacks gradients, and the
    default ``_gradient`` extracts one row of the Jacobian.
    """

    def gradient(self, argument: ArgumentLike, output_index: int = 0) -> Vector:
        """Returns the gradient of output component ``output_index``.

        Args:
            argument: Point of length ``input_size``.
            output_index: Output component to differentiate. Default is 0.

        Returns:
            A new 1D array of length ``input_size``.

        Raises:
            DimensionMismatch: If ``argument`` or the computed gradient have
                the wrong length.
            InvalidParameter: If ``output_index`` is out of range.
        """
        x = as_argument(argument, self.input_size)
        i = check_index(output_index, self.output_size, name="output_index")
        return as_result(self._gradient(x, i), self.input_size, where=f"{self!s}.gradient")

    def jacobian(self, argument: ArgumentLike) -> Matrix:
        """Returns the Jacobian matrix at ``argument``.

        Args:
            argument: Point of length ``input_size``.

        Returns:
            A new array of shape ``(output_size, input_size)``; row ``i`` is
            the gradient of output component ``i``.

        Raises:
            DimensionMismatch: If ``argument`` or the computed Jacobian have
                the wrong shape.
        """
        x = as_argument(argument, self.input_size)
        return as_matrix(
            self._jacobian(x), (self.output_size, self.input_size), where=f"{self!s}.jacobian"
        )

    def _gradient(self, argument: Vector, output_index: int) -> ArgumentLike:
        if type(self)._jacobian is DifferentiableFunction._jacobian:
            raise NotImplementedError(
                f"{type(self).__name__} must implement _gradient or _jacobian."
            )
        jac = as_matrix(
            self._jacobian(argument), (self.output_size, self.input_size), where=f"{self!s}.jacobian"
        )
        return jac[output_index]

    def _jacobian(self, argument: Vector) -> Matrix:
        jac = np.zeros((self.output_size, self.input_size), dtype=np.float64)
        for i in range(self.output_size):
            jac[i] = as_result(self._gradient(argument, i), self.input_size, where=f"{self!s}.gradient")
        return jac

    def _describe(self) -> str:
        return "differentiable function"


class TwiceDifferentiableFunction(DifferentiableFunction):
    """Base class for functions additionally exposing Hessians."""

    def hessian(self, argument: ArgumentLike, output_index: int = 0) -> Matrix:
        """Returns the Hessian of output component ``output_index``.

        Raises:
            DimensionMismatch: If ``argument`` or the computed Hessian have
                the wrong shape.
            InvalidParameter: If ``output_index`` is out of range.
        """
        x = as_argument(argument, self.input_size)
        i = check_index(output_index, self.output_size, name="output_index")
        return as_matrix(
            self._hessian(x, i), (self.input_size, self.input_size), where=f"{self!s}.hessian"
        )

    def _hessian(self, argument: Vector, output_index: int) -> Matrix:
        raise NotImplementedError

    def _describe(self) -> str:
        return "twice differentiable function"


class CallableFunction(Function):
    """Wraps a plain Python callable as a :class:`Function`.

    Examples:
        >>> import numpy as np
        >>> f = CallableFunction(lambda x: np.sin(x[0]) * x[1], 2, 1, "f")
        >>> f([0.0, 3.0])
        array([0.])
    """

    def __init__(
        self,
        function: Callable[[Vector], ArgumentLike | float],
        input_size: int,
        output_size: int = 1,
        name: str | None = None,
    ):
        """Initialises the wrapper.

        Args:
            function: Callable taking a 1D array of length ``input_size`` and
                returning ``output_size`` values (a scalar is accepted when
                ``output_size == 1``).
            input_size: Length of every argument.
            output_size: Length of every result. Default is 1.
            name: Display name. Defaults to the callable's ``__name__`` unless
                it is a lambda.

        Raises:
            TypeError: If ``function`` is not callable.
        """
        if not callable(function):
            raise TypeError(f"function must be callable; got {type(function).__name__}.")
        if name is None:
            name = getattr(function, "__name__", "")
            if name == "<lambda>":
                name = ""
        super().__init__(input_size, output_size, name)
        self.function = function

    def _evaluate(self, argument: Vector) -> ArgumentLike | float:
        return self.function(argument)
