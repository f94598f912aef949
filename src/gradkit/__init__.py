"""Provides finite-difference derivatives and derivative checks."""

from importlib.metadata import PackageNotFoundError, version

from gradkit.checks import (
    check_gradient,
    check_gradient_and_raise,
    check_jacobian,
    check_jacobian_and_raise,
    compare_gradient,
    compare_jacobian,
)
from gradkit.config import (
    FINITE_DIFFERENCE_EPSILON,
    FINITE_DIFFERENCE_THRESHOLD,
    finite_difference_defaults,
)
from gradkit.diagnostics import GradientMismatchReport, JacobianMismatchReport
from gradkit.errors import (
    DimensionMismatch,
    GradientMismatch,
    GradkitError,
    InvalidParameter,
    JacobianMismatch,
)
from gradkit.finite import (
    FiniteDifferenceGradient,
    FivePointsRulePolicy,
    SimplePolicy,
    register_policy,
)
from gradkit.functions import (
    AffineFunction,
    CallableFunction,
    DifferentiableFunction,
    Function,
    QuadraticFunction,
    TwiceDifferentiableFunction,
)

try:
    __version__ = version("gradkit")
except PackageNotFoundError:
    pass

__all__ = [
    "Function",
    "DifferentiableFunction",
    "TwiceDifferentiableFunction",
    "CallableFunction",
    "AffineFunction",
    "QuadraticFunction",
    "FiniteDifferenceGradient",
    "SimplePolicy",
    "FivePointsRulePolicy",
    "register_policy",
    "compare_gradient",
    "check_gradient",
    "check_gradient_and_raise",
    "compare_jacobian",
    "check_jacobian",
    "check_jacobian_and_raise",
    "GradientMismatchReport",
    "JacobianMismatchReport",
    "GradkitError",
    "DimensionMismatch",
    "InvalidParameter",
    "GradientMismatch",
    "JacobianMismatch",
    "FINITE_DIFFERENCE_EPSILON",
    "FINITE_DIFFERENCE_THRESHOLD",
    "finite_difference_defaults",
]
