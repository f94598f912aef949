"""Finite-difference differentiation policies.

A policy computes derivatives of a wrapped function from its values only.
Each policy offers three operations:

* ``compute_column``: derivative of every output with respect to one input,
  i.e. one column of the Jacobian;
* ``compute_gradient``: derivative of one output with respect to every input,
  i.e. one row of the Jacobian;
* ``compute_jacobian``: the full ``(output_size, input_size)`` matrix.

Two policies are provided:

* :class:`SimplePolicy` uses the forward difference
  ``(f(x + h e_j) - f(x)) / h``. Its truncation error is ``O(h)``; a full
  Jacobian costs ``input_size + 1`` evaluations.
* :class:`FivePointsRulePolicy` uses the central five-point stencil
  ``(f(x - 2h) - 8 f(x - h) + 8 f(x + h) - f(x + 2h)) / (12 h)``. Its
  truncation error is ``O(h^4)``; a full Jacobian costs ``4 * input_size``
  evaluations.

The step ``h`` is an absolute offset, never scaled by ``|x_j|``. Choose it
relative to the expected scale of the coordinates.

Examples:
    >>> import numpy as np
    >>> from gradkit.functions import CallableFunction
    >>> from gradkit.finite.policies import FivePointsRulePolicy
    >>> f = CallableFunction(lambda x: x[0] ** 2, 1, 1)
    >>> d = FivePointsRulePolicy(f).compute_gradient(1e-4, [3.0], 0)
    >>> bool(np.isclose(d[0], 6.0, atol=1e-6))
    True
"""

from __future__ import annotations

from dataclasses import dataclass

import numpy as np

from gradkit.finite.workspace import Workspace, borrow_workspace
from gradkit.functions.core import Evaluate
from gradkit.logger import gradkit_logger
from gradkit.utils.types import ArgumentLike, Matrix, Vector
from gradkit.utils.validate import (
    as_argument,
    as_result,
    check_epsilon,
    check_index,
    check_out,
)

__all__ = [
    "Policy",
    "SimplePolicy",
    "FivePointsRulePolicy",
    "StencilEstimate",
]

_MACHINE_EPSILON = float(np.finfo(np.float64).eps)

#: Offsets (in units of h) of the five-point stencil samples, in workspace row order.
FIVE_POINT_OFFSETS = (-2.0, -1.0, 1.0, 2.0)
#: Weights applied to the samples above; the sum is divided by ``12 h``.
FIVE_POINT_WEIGHTS = np.array([1.0, -8.0, 8.0, -1.0])

# Central difference for the fifth derivative on offsets -3..3 (centre weight is 0);
# the sum is divided by ``2 H^5``.
_FIFTH_OFFSETS = (-3.0, -2.0, -1.0, 1.0, 2.0, 3.0)
_FIFTH_WEIGHTS = (-1.0, 4.0, -5.0, 5.0, -4.0, 1.0)


class Policy:
    """Base class of finite-difference policies.

    Public operations validate every input before writing anything, borrow a
    :class:`~gradkit.finite.workspace.Workspace` when none is given, and
    delegate to the ``_column`` / ``_gradient`` / ``_jacobian`` hooks. The
    default ``_jacobian`` assembles the matrix column by column.

    Attributes:
        function: The wrapped function. It is referenced, not copied.
        name: Canonical policy name.
        evaluations_per_column: Function evaluations needed per Jacobian column.
    """

    name = "policy"
    evaluations_per_column = 0

    def __init__(self, function: Evaluate):
        """Initialises the policy with the function to differentiate.

        Args:
            function: Object with ``input_size``, ``output_size`` and
                ``evaluate(argument)``.

        Raises:
            TypeError: If ``function`` does not expose that interface.
        """
        if not isinstance(function, Evaluate):
            raise TypeError(
                "function must expose input_size, output_size and evaluate(); "
                f"got {type(function).__name__}."
            )
        self.function = function
        self._where = f"{function!s}.evaluate"

    def compute_column(
        self,
        epsilon: float,
        argument: ArgumentLike,
        column_index: int,
        *,
        out: Vector | None = None,
        workspace: Workspace | None = None,
    ) -> Vector:
        """Returns the derivative of every output with respect to input ``column_index``.

        Args:
            epsilon: Step size (h), must be positive.
            argument: Point of length ``input_size``.
            column_index: Input component to perturb.
            out: Optional array of shape ``(output_size,)`` receiving the result.
            workspace: Optional scratch storage; borrowed from the default
                pool when omitted.

        Returns:
            Array of shape ``(output_size,)`` (``out`` when given).

        Raises:
            InvalidParameter: If ``epsilon`` is not positive or
                ``column_index`` is out of range.
            DimensionMismatch: If ``argument``, ``out`` or ``workspace`` do
                not fit the wrapped function.
        """
        h, x = self._prepare(epsilon, argument)
        j = check_index(column_index, self.function.input_size, name="column_index")
        shape = (self.function.output_size,)
        check_out(out, shape)
        result = np.zeros(shape)
        with borrow_workspace(self.function, workspace) as ws:
            self._column(h, x, j, result, ws)
        return self._deliver(result, out)

    def compute_gradient(
        self,
        epsilon: float,
        argument: ArgumentLike,
        output_index: int,
        *,
        out: Vector | None = None,
        workspace: Workspace | None = None,
    ) -> Vector:
        """Returns the gradient of output ``output_index`` with respect to every input.

        Args:
            epsilon: Step size (h), must be positive.
            argument: Point of length ``input_size``.
            output_index: Output component to differentiate.
            out: Optional array of shape ``(input_size,)`` receiving the result.
            workspace: Optional scratch storage.

        Returns:
            Array of shape ``(input_size,)`` (``out`` when given).

        Raises:
            InvalidParameter: If ``epsilon`` is not positive or
                ``output_index`` is out of range.
            DimensionMismatch: If ``argument``, ``out`` or ``workspace`` do
                not fit the wrapped function.
        """
        h, x = self._prepare(epsilon, argument)
        i = check_index(output_index, self.function.output_size, name="output_index")
        shape = (self.function.input_size,)
        check_out(out, shape)
        result = np.zeros(shape)
        with borrow_workspace(self.function, workspace) as ws:
            self._gradient(h, x, i, result, ws)
        return self._deliver(result, out)

    def compute_jacobian(
        self,
        epsilon: float,
        argument: ArgumentLike,
        *,
        out: Matrix | None = None,
        workspace: Workspace | None = None,
    ) -> Matrix:
        """Returns the Jacobian at ``argument``.

        Args:
            epsilon: Step size (h), must be positive.
            argument: Point of length ``input_size``.
            out: Optional array of shape ``(output_size, input_size)``.
            workspace: Optional scratch storage.

        Returns:
            Array of shape ``(output_size, input_size)`` (``out`` when given).

        Raises:
            InvalidParameter: If ``epsilon`` is not positive.
            DimensionMismatch: If ``argument``, ``out`` or ``workspace`` do
                not fit the wrapped function.
        """
        h, x = self._prepare(epsilon, argument)
        shape = (self.function.output_size, self.function.input_size)
        check_out(out, shape)
        result = np.zeros(shape)
        with borrow_workspace(self.function, workspace) as ws:
            self._jacobian(h, x, result, ws)
        return self._deliver(result, out)

    def _prepare(self, epsilon: float, argument: ArgumentLike) -> tuple[float, Vector]:
        h = check_epsilon(epsilon)
        x = as_argument(argument, self.function.input_size).copy()
        return h, x

    @staticmethod
    def _deliver(result: np.ndarray, out: np.ndarray | None) -> np.ndarray:
        # Results are only copied to ``out`` once complete, so a failing
        # evaluation never leaves it half written.
        if out is None:
            return result
        np.copyto(out, result)
        return out

    def _eval(self, point: Vector) -> Vector:
        return as_result(
            self.function.evaluate(point),
            self.function.output_size,
            where=self._where,
        )

    @staticmethod
    def _warn_if_vanished(x: Vector, j: int, h: float) -> None:
        if x[j] + h == x[j]:
            gradkit_logger.warning(
                "Step %g vanished when added to coordinate %d (x[%d]=%g); "
                "the finite-difference column is zero.",
                h, j, j, x[j],
            )

    def _column(self, h: float, x: Vector, j: int, out: Vector, ws: Workspace) -> None:
        raise NotImplementedError

    def _gradient(self, h: float, x: Vector, i: int, out: Vector, ws: Workspace) -> None:
        raise NotImplementedError

    def _jacobian(self, h: float, x: Vector, out: Matrix, ws: Workspace) -> None:
        column = np.zeros(self.function.output_size)
        for j in range(self.function.input_size):
            self._column(h, x, j, column, ws)
            out[:, j] = column

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.function!s})"


class SimplePolicy(Policy):
    """Forward-difference policy.

    The baseline ``f(x)`` is evaluated once per call and shared by every
    column of that call.
    """

    name = "simple"
    evaluations_per_column = 1

    def _forward(self, h: float, x: Vector, j: int, ws: Workspace) -> Vector:
        """Returns ``(f(x + h e_j) - f(x)) / h`` using ``ws.baseline`` as ``f(x)``."""
        self._warn_if_vanished(x, j, h)
        x_eps = ws.load(x)
        x_eps[j] += h
        return (self._eval(x_eps) - ws.baseline) / h

    def _column(self, h: float, x: Vector, j: int, out: Vector, ws: Workspace) -> None:
        ws.baseline[:] = self._eval(x)
        out[:] = self._forward(h, x, j, ws)

    def _gradient(self, h: float, x: Vector, i: int, out: Vector, ws: Workspace) -> None:
        ws.baseline[:] = self._eval(x)
        for j in range(self.function.input_size):
            out[j] = self._forward(h, x, j, ws)[i]

    def _jacobian(self, h: float, x: Vector, out: Matrix, ws: Workspace) -> None:
        ws.baseline[:] = self._eval(x)
        for j in range(self.function.input_size):
            out[:, j] = self._forward(h, x, j, ws)


@dataclass(frozen=True)
class StencilEstimate:
    """Five-point derivative of one Jacobian column with error diagnostics.

    Every array has shape ``(output_size,)``. The error terms describe the
    estimate; they are never used to change the step.

    Attributes:
        derivative: Five-point estimate of the column.
        round_off: Estimated round-off error, proportional to ``1 / step``.
        truncation: Estimated truncation error ``step**4 * |f^(5)| / 30``.
        fifth_derivative: Estimate of the fifth derivative along the column
            direction, taken with spacing ``probe_step``.
        step: The step ``h`` used by the stencil.
        probe_step: The spacing used for the fifth-derivative estimate.
    """

    derivative: Vector
    round_off: Vector
    truncation: Vector
    fifth_derivative: Vector
    step: float
    probe_step: float

    @property
    def total_error(self) -> Vector:
        """Sum of the round-off and truncation estimates."""
        return self.round_off + self.truncation


class FivePointsRulePolicy(Policy):
    """Central five-point stencil policy.

    Samples ``f`` at ``x - 2h``, ``x - h``, ``x + h`` and ``x + 2h`` along
    each perturbed input; the centre value is not needed.

    Attributes:
        probe_step: Fixed spacing used by :meth:`estimate_column` to estimate
            the fifth derivative, or None to use
            ``eps_mach**(1/7) * max(1, |x_j|)``.
    """

    name = "five-points-rule"
    evaluations_per_column = 4

    def __init__(self, function: Evaluate, probe_step: float | None = None):
        """Initialises the policy.

        Args:
            function: The function to differentiate.
            probe_step: Optional fixed spacing for the fifth-derivative
                estimate used in :meth:`estimate_column`.

        Raises:
            TypeError: If ``function`` does not expose the evaluation interface.
            InvalidParameter: If ``probe_step`` is not positive.
        """
        super().__init__(function)
        self.probe_step = None if probe_step is None else check_epsilon(probe_step)

    def _samples(self, h: float, x: Vector, j: int, ws: Workspace) -> np.ndarray:
        """Fills ``ws.samples`` with ``f`` at the four stencil points along input ``j``."""
        self._warn_if_vanished(x, j, h)
        x_eps = ws.load(x)
        for row, k in enumerate(FIVE_POINT_OFFSETS):
            x_eps[j] = x[j] + k * h
            ws.samples[row] = self._eval(x_eps)
        return ws.samples

    @staticmethod
    def _combine(samples: np.ndarray, h: float) -> np.ndarray:
        return FIVE_POINT_WEIGHTS @ samples / (12.0 * h)

    def _column(self, h: float, x: Vector, j: int, out: Vector, ws: Workspace) -> None:
        out[:] = self._combine(self._samples(h, x, j, ws), h)

    def _gradient(self, h: float, x: Vector, i: int, out: Vector, ws: Workspace) -> None:
        for j in range(self.function.input_size):
            samples = self._samples(h, x, j, ws)
            out[j] = self._combine(samples[:, i], h)

    def estimate_column(
        self,
        epsilon: float,
        argument: ArgumentLike,
        column_index: int,
        *,
        workspace: Workspace | None = None,
    ) -> StencilEstimate:
        """Returns one Jacobian column together with round-off and truncation estimates.

        The round-off term bounds the cancellation error of the stencil,
        ``eps_mach * (|f(x-2h)| + 8|f(x-h)| + 8|f(x+h)| + |f(x+2h)|) / (12 h)``,
        plus the error from representing ``x_j`` and the step,
        ``eps_mach * |x_j| * |f'| / h``. The truncation term is the leading
        error of the stencil, ``h^4 |f^(5)| / 30``, with ``f^(5)`` estimated by
        a central six-point difference of fixed spacing (``probe_step``). This
        costs six evaluations on top of the four stencil evaluations.

        Args:
            epsilon: Step size (h), must be positive.
            argument: Point of length ``input_size``.
            column_index: Input component to perturb.
            workspace: Optional scratch storage.

        Returns:
            A :class:`StencilEstimate`.

        Raises:
            InvalidParameter: If ``epsilon`` is not positive or
                ``column_index`` is out of range.
            DimensionMismatch: If ``argument`` or ``workspace`` do not fit
                the wrapped function.
        """
        h, x = self._prepare(epsilon, argument)
        j = check_index(column_index, self.function.input_size, name="column_index")
        probe = self.probe_step
        if probe is None:
            probe = _MACHINE_EPSILON ** (1.0 / 7.0) * max(1.0, abs(float(x[j])))

        with borrow_workspace(self.function, workspace) as ws:
            samples = self._samples(h, x, j, ws)
            derivative = self._combine(samples, h)
            magnitude = np.abs(FIVE_POINT_WEIGHTS) @ np.abs(samples)
            fifth = self._fifth_derivative(probe, x, j, ws)

        round_off = _MACHINE_EPSILON * (magnitude / (12.0 * h) + abs(x[j]) * np.abs(derivative) / h)
        truncation = h**4 * np.abs(fifth) / 30.0
        return StencilEstimate(
            derivative=derivative,
            round_off=round_off,
            truncation=truncation,
            fifth_derivative=fifth,
            step=h,
            probe_step=float(probe),
        )

    def _fifth_derivative(self, spacing: float, x: Vector, j: int, ws: Workspace) -> Vector:
        x_eps = ws.load(x)
        acc = np.zeros(self.function.output_size)
        for k, w in zip(_FIFTH_OFFSETS, _FIFTH_WEIGHTS):
            x_eps[j] = x[j] + k * spacing
            acc += w * self._eval(x_eps)
        return acc / (2.0 * spacing**5)

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.function!s}, probe_step={self.probe_step!r})"
