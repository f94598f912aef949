"""Function capability set.

Provides the capability protocols, the base classes that validate
dimensions, and a few functions with closed-form derivatives.
"""

from .core import (
    CallableFunction,
    DifferentiableFunction,
    Differentiate,
    Evaluate,
    Function,
    TwiceDifferentiableFunction,
    TwiceDifferentiate,
)
from .library import AffineFunction, QuadraticFunction

__all__ = [
    "Evaluate",
    "Differentiate",
    "TwiceDifferentiate",
    "Function",
    "DifferentiableFunction",
    "TwiceDifferentiableFunction",
    "CallableFunction",
    "AffineFunction",
    "QuadraticFunction",
]
