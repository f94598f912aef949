"""Provides the FiniteDifferenceGradient class.

Finite difference gradient is a method to approximate a function's gradient.
It avoids writing the analytical gradient by hand: the class takes a function
that can only be evaluated and wraps it into a differentiable function whose
gradients and Jacobian are computed by a finite-difference policy.

The one dimensional forward formula is ``f'(x) ~ (f(x + eps) - f(x)) / eps``
where ``eps`` is fixed when the object is built.

Examples:
--------
>>> import numpy as np
>>> from gradkit.functions import CallableFunction
>>> from gradkit.finite.gradient import FiniteDifferenceGradient
>>> f = CallableFunction(lambda x: np.array([x[0] * x[1], np.sin(x[0])]), 2, 2, "f")
>>> g = FiniteDifferenceGradient(f, epsilon=1e-4, policy="five-points-rule")
>>> str(g)
'f (finite difference gradient)'
>>> np.allclose(g.jacobian([0.5, 2.0]), [[2.0, 0.5], [np.cos(0.5), 0.0]])
True
"""

from __future__ import annotations

from typing import Any, Type

from gradkit.config import get_defaults
from gradkit.finite.policies import Policy
from gradkit.finite.registry import resolve_policy
from gradkit.functions.core import DifferentiableFunction, Evaluate
from gradkit.logger import gradkit_logger
from gradkit.utils.types import ArgumentLike, Matrix, Vector
from gradkit.utils.validate import as_argument, check_epsilon, check_index

__all__ = ["FiniteDifferenceGradient"]

_NAME_SUFFIX = "finite difference gradient"


class FiniteDifferenceGradient(DifferentiableFunction):
    """Differentiable function computing its derivatives by finite differences.

    Dimensions are those of the wrapped function. ``evaluate`` is forwarded
    unchanged; ``gradient`` and ``jacobian`` evaluate the wrapped function at
    perturbed points, so any side effect of the wrapped function happens once
    per stencil point.

    Scratch storage is borrowed per call from a per-thread pool, so one
    instance can serve several threads as long as the wrapped function
    itself tolerates concurrent evaluation.

    Attributes:
        adaptee: The wrapped function (shared, not copied).
        epsilon: Step used by every derivative computation.
        policy: Policy instance bound to ``adaptee``.
    """

    def __init__(
        self,
        function: Evaluate,
        epsilon: float | None = None,
        policy: str | Type[Policy] | None = None,
        **policy_kwargs: Any,
    ):
        """Wraps ``function`` into a differentiable function.

        Args:
            function: Object exposing ``input_size``, ``output_size`` and
                ``evaluate(argument)``.
            epsilon: Finite-difference step. Defaults to the configured
                default (``1e-8`` unless overridden, see :mod:`gradkit.config`).
            policy: Policy name/alias (``"simple"``, ``"five-points-rule"``, ...)
                or Policy subclass. Defaults to the configured default
                (``"simple"``).
            **policy_kwargs: Extra keyword arguments for the policy
                constructor, e.g. ``probe_step`` for the five-point rule.

        Raises:
            TypeError: If ``function`` does not expose the evaluation interface.
            InvalidParameter: If ``epsilon`` is not positive or ``policy``
                is unknown.
        """
        if not isinstance(function, Evaluate):
            raise TypeError(
                "function must expose input_size, output_size and evaluate(); "
                f"got {type(function).__name__}."
            )
        defaults = get_defaults()
        eps = check_epsilon(defaults.epsilon if epsilon is None else epsilon)
        policy_cls = resolve_policy(defaults.policy if policy is None else policy)

        super().__init__(function.input_size, function.output_size, self.generate_name(function))
        self.adaptee = function
        self.epsilon = eps
        self.policy = policy_cls(function, **policy_kwargs)
        gradkit_logger.debug(
            "Built %s with policy=%s, epsilon=%g.", self.name, self.policy.name, self.epsilon
        )

    @staticmethod
    def generate_name(function: Evaluate) -> str:
        """Returns the display name of an adapter wrapping ``function``."""
        name = getattr(function, "name", "") or ""
        return f"{name} ({_NAME_SUFFIX})" if name else _NAME_SUFFIX

    def _evaluate(self, argument: Vector) -> Vector:
        return self.adaptee.evaluate(argument)

    def _gradient(self, argument: Vector, output_index: int) -> Vector:
        return self.policy.compute_gradient(self.epsilon, argument, output_index)

    def _jacobian(self, argument: Vector) -> Matrix:
        return self.policy.compute_jacobian(self.epsilon, argument)

    def column(self, argument: ArgumentLike, column_index: int) -> Vector:
        """Returns the derivative of every output with respect to input ``column_index``.

        Raises:
            DimensionMismatch: If ``argument`` has the wrong length.
            InvalidParameter: If ``column_index`` is out of range.
        """
        x = as_argument(argument, self.input_size)
        j = check_index(column_index, self.input_size, name="column_index")
        return self.policy.compute_column(self.epsilon, x, j)

    def __repr__(self) -> str:
        return (
            f"{type(self).__name__}({self.adaptee!s}, epsilon={self.epsilon!r}, "
            f"policy={self.policy.name!r})"
        )
