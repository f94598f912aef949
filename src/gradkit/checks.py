"""Checks analytical derivatives against finite differences.

Each check builds a temporary
:class:`~gradkit.finite.gradient.FiniteDifferenceGradient` around the function
under test and compares the two derivatives component-wise. A check passes
when the largest absolute difference is at most ``threshold``.

Three flavours are offered for gradients and Jacobians alike:

* ``compare_*`` returns ``(ok, report)`` where ``report`` is None on success;
* ``check_*`` returns a bool;
* ``check_*_and_raise`` returns None on success and raises
  :class:`~gradkit.errors.GradientMismatch` /
  :class:`~gradkit.errors.JacobianMismatch` on failure.

Malformed inputs (wrong dimensions, invalid step, threshold or index) are
programming errors and raise immediately in every flavour.

Examples:
    >>> import numpy as np
    >>> from gradkit.functions import QuadraticFunction
    >>> from gradkit.checks import check_gradient
    >>> f = QuadraticFunction(np.eye(2), [1.0, -1.0])
    >>> check_gradient(f, 0, [0.3, 0.7])
    True
"""

from __future__ import annotations

from typing import Any, Type

import numpy as np

from gradkit.config import get_defaults
from gradkit.diagnostics import (
    GradientMismatchReport,
    JacobianMismatchReport,
    frozen_copy,
)
from gradkit.errors import GradientMismatch, JacobianMismatch
from gradkit.finite.gradient import FiniteDifferenceGradient
from gradkit.finite.policies import Policy
from gradkit.logger import gradkit_logger
from gradkit.utils.types import ArgumentLike
from gradkit.utils.validate import (
    as_argument,
    as_matrix,
    as_result,
    check_index,
    check_threshold,
)

__all__ = [
    "compare_gradient",
    "check_gradient",
    "check_gradient_and_raise",
    "compare_jacobian",
    "check_jacobian",
    "check_jacobian_and_raise",
]


def _require(function: Any, capability: str) -> None:
    if not callable(getattr(function, capability, None)):
        raise TypeError(
            f"{type(function).__name__} does not provide {capability}(); "
            "only differentiable functions can be checked."
        )


def _resolve_threshold(threshold: float | None) -> float:
    return check_threshold(get_defaults().threshold if threshold is None else threshold)


def compare_gradient(
    function: Any,
    output_index: int,
    x: ArgumentLike,
    threshold: float | None = None,
    *,
    epsilon: float | None = None,
    policy: str | Type[Policy] | None = None,
) -> tuple[bool, GradientMismatchReport | None]:
    """Compares the gradient of one output with its finite-difference estimate.

    Args:
        function: Differentiable function under test.
        output_index: Output component whose gradient is checked.
        x: Point where both gradients are evaluated.
        threshold: Maximum tolerated absolute error. Defaults to ``1e-4``
            (see :mod:`gradkit.config`).
        epsilon: Finite-difference step. Defaults to ``1e-8``.
        policy: Finite-difference policy. Defaults to ``"simple"``.

    Returns:
        ``(True, None)`` if the gradients agree, ``(False, report)`` otherwise.

    Raises:
        TypeError: If ``function`` has no ``gradient`` method.
        DimensionMismatch: If ``x`` or the analytical gradient have the wrong length.
        InvalidParameter: If ``threshold``, ``epsilon``, ``policy`` or
            ``output_index`` is invalid.
    """
    _require(function, "gradient")
    thr = _resolve_threshold(threshold)
    fd = FiniteDifferenceGradient(function, epsilon=epsilon, policy=policy)
    point = as_argument(x, fd.input_size)
    i = check_index(output_index, fd.output_size, name="output_index")
    gradkit_logger.debug("Checking gradient of %s (output %d).", fd.adaptee, i)

    analytical = as_result(function.gradient(point, i), fd.input_size, where=f"{function!s}.gradient")
    approx = fd.gradient(point, i)

    delta = np.abs(analytical - approx)
    if delta.size == 0:
        return True, None
    # argmax returns the first NaN when there is one.
    k = int(np.argmax(delta))
    max_delta = float(delta[k])
    if max_delta <= thr:
        return True, None

    report = GradientMismatchReport(
        x=frozen_copy(point),
        output_index=i,
        analytical_gradient=frozen_copy(analytical),
        finite_difference_gradient=frozen_copy(approx),
        max_delta=max_delta,
        max_delta_component=k,
        threshold=thr,
    )
    return False, report


def check_gradient(
    function: Any,
    output_index: int,
    x: ArgumentLike,
    threshold: float | None = None,
    *,
    epsilon: float | None = None,
    policy: str | Type[Policy] | None = None,
) -> bool:
    """Returns True if the analytical gradient matches finite differences.

    See :func:`compare_gradient` for the arguments and raised errors.
    """
    ok, report = compare_gradient(
        function, output_index, x, threshold, epsilon=epsilon, policy=policy
    )
    if not ok:
        gradkit_logger.info(
            "Gradient check failed for %s: max delta %g at component %d (threshold %g).",
            function, report.max_delta, report.max_delta_component, report.threshold,
        )
    return ok


def check_gradient_and_raise(
    function: Any,
    output_index: int,
    x: ArgumentLike,
    threshold: float | None = None,
    *,
    epsilon: float | None = None,
    policy: str | Type[Policy] | None = None,
) -> None:
    """Returns normally if the analytical gradient matches finite differences.

    See :func:`compare_gradient` for the arguments.

    Raises:
        GradientMismatch: If the gradients disagree; ``.report`` holds the
            :class:`~gradkit.diagnostics.GradientMismatchReport`.
    """
    ok, report = compare_gradient(
        function, output_index, x, threshold, epsilon=epsilon, policy=policy
    )
    if not ok:
        raise GradientMismatch(report)


def compare_jacobian(
    function: Any,
    x: ArgumentLike,
    threshold: float | None = None,
    *,
    epsilon: float | None = None,
    policy: str | Type[Policy] | None = None,
) -> tuple[bool, JacobianMismatchReport | None]:
    """Compares the Jacobian with its finite-difference estimate.

    Args:
        function: Differentiable function under test.
        x: Point where both Jacobians are evaluated.
        threshold: Maximum tolerated absolute error. Defaults to ``1e-4``.
        epsilon: Finite-difference step. Defaults to ``1e-8``.
        policy: Finite-difference policy. Defaults to ``"simple"``.

    Returns:
        ``(True, None)`` if the Jacobians agree, ``(False, report)`` otherwise.

    Raises:
        TypeError: If ``function`` has no ``jacobian`` method.
        DimensionMismatch: If ``x`` or the analytical Jacobian have the wrong shape.
        InvalidParameter: If ``threshold``, ``epsilon`` or ``policy`` is invalid.
    """
    _require(function, "jacobian")
    thr = _resolve_threshold(threshold)
    fd = FiniteDifferenceGradient(function, epsilon=epsilon, policy=policy)
    point = as_argument(x, fd.input_size)
    gradkit_logger.debug("Checking Jacobian of %s.", fd.adaptee)

    analytical = as_matrix(
        function.jacobian(point), (fd.output_size, fd.input_size), where=f"{function!s}.jacobian"
    )
    approx = fd.jacobian(point)

    delta = np.abs(analytical - approx)
    if delta.size == 0:
        return True, None
    row, col = np.unravel_index(int(np.argmax(delta)), delta.shape)
    max_delta = float(delta[row, col])
    if max_delta <= thr:
        return True, None

    report = JacobianMismatchReport(
        x=frozen_copy(point),
        analytical_jacobian=frozen_copy(analytical),
        finite_difference_jacobian=frozen_copy(approx),
        max_delta=max_delta,
        max_delta_row=int(row),
        max_delta_column=int(col),
        threshold=thr,
    )
    return False, report


def check_jacobian(
    function: Any,
    x: ArgumentLike,
    threshold: float | None = None,
    *,
    epsilon: float | None = None,
    policy: str | Type[Policy] | None = None,
) -> bool:
    """Returns True if the analytical Jacobian matches finite differences.

    See :func:`compare_jacobian` for the arguments and raised errors.
    """
    ok, report = compare_jacobian(function, x, threshold, epsilon=epsilon, policy=policy)
    if not ok:
        gradkit_logger.info(
            "Jacobian check failed for %s: max delta %g at (%d, %d) (threshold %g).",
            function, report.max_delta, report.max_delta_row, report.max_delta_column,
            report.threshold,
        )
    return ok


def check_jacobian_and_raise(
    function: Any,
    x: ArgumentLike,
    threshold: float | None = None,
    *,
    epsilon: float | None = None,
    policy: str | Type[Policy] | None = None,
) -> None:
    """Returns normally if the analytical Jacobian matches finite differences.

    See :func:`compare_jacobian` for the arguments.

    Raises:
        JacobianMismatch: If the Jacobians disagree; ``.report`` holds the
            :class:`~gradkit.diagnostics.JacobianMismatchReport`.
    """
    ok, report = compare_jacobian(function, x, threshold, epsilon=epsilon, policy=policy)
    if not ok:
        raise JacobianMismatch(report)
