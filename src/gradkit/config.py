"""Library-wide defaults for finite-difference differentiation and checks.

Defaults are resolved in this order (first match wins):

1. a scoped override set with :func:`finite_difference_defaults`;
2. a process-wide value set with :func:`set_default_finite_difference`;
3. the environment variables ``GRADKIT_FD_EPSILON``, ``GRADKIT_FD_THRESHOLD``
   and ``GRADKIT_FD_POLICY``;
4. the module constants below.

Examples:
    >>> from gradkit.config import finite_difference_defaults, get_defaults
    >>> get_defaults().epsilon
    1e-08
    >>> with finite_difference_defaults(epsilon=1e-6):
    ...     get_defaults().epsilon
    1e-06
"""

from __future__ import annotations

import contextvars
import math
import os
from contextlib import contextmanager
from dataclasses import dataclass, replace
from typing import Iterator

from gradkit.errors import InvalidParameter
from gradkit.utils.validate import check_epsilon, check_threshold

__all__ = [
    "FINITE_DIFFERENCE_EPSILON",
    "FINITE_DIFFERENCE_THRESHOLD",
    "DEFAULT_POLICY",
    "FiniteDifferenceDefaults",
    "get_defaults",
    "set_default_finite_difference",
    "finite_difference_defaults",
]

#: Default step used to build finite-difference adapters.
FINITE_DIFFERENCE_EPSILON = 1e-8
#: Default maximum tolerated error when checking derivatives.
FINITE_DIFFERENCE_THRESHOLD = 1e-4
#: Default differentiation policy.
DEFAULT_POLICY = "simple"


@dataclass(frozen=True)
class FiniteDifferenceDefaults:
    """Resolved defaults used when a caller leaves a parameter as ``None``.

    Attributes:
        epsilon: Finite-difference step.
        threshold: Maximum tolerated absolute error of derivative checks.
        policy: Name of the differentiation policy.
    """

    epsilon: float = FINITE_DIFFERENCE_EPSILON
    threshold: float = FINITE_DIFFERENCE_THRESHOLD
    policy: str = DEFAULT_POLICY


_scoped_defaults_var: contextvars.ContextVar[dict | None] = contextvars.ContextVar(
    "gradkit_fd_defaults", default=None
)
_PROCESS_DEFAULTS: dict = {}


def _float_env(name: str, *, allow_zero: bool) -> float | None:
    """Reads a finite non-negative float from an environment variable, or None if unset/invalid.

    Args:
        name: Environment variable name.
        allow_zero: Whether ``0.0`` is an acceptable value.

    Returns:
        The parsed value, or None.
    """
    v = os.getenv(name)
    if not v:
        return None
    try:
        f = float(v)
    except ValueError:
        return None
    if not math.isfinite(f) or f < 0.0 or (f == 0.0 and not allow_zero):
        return None
    return f


def _env_defaults() -> dict:
    out: dict = {}
    eps = _float_env("GRADKIT_FD_EPSILON", allow_zero=False)
    if eps is not None:
        out["epsilon"] = eps
    thr = _float_env("GRADKIT_FD_THRESHOLD", allow_zero=True)
    if thr is not None:
        out["threshold"] = thr
    policy = _policy_env("GRADKIT_FD_POLICY")
    if policy is not None:
        out["policy"] = policy
    return out


def _policy_env(name: str) -> str | None:
    """Reads a registered policy name from an environment variable, or None if unset/unknown."""
    v = os.getenv(name)
    if not v:
        return None
    try:
        return _check_policy(v)
    except InvalidParameter:
        return None


def _check_policy(policy) -> str:
    """Returns the policy name after checking that it is registered.

    Raises:
        InvalidParameter: If the name is unknown.
        TypeError: If ``policy`` is not a string.
    """
    # Imported here because the finite package imports this module.
    from gradkit.finite.registry import resolve_policy

    resolve_policy(policy)
    return policy


def _clean(epsilon, threshold, policy) -> dict:
    """Validates overrides and drops the ones left as None."""
    out: dict = {}
    if epsilon is not None:
        out["epsilon"] = check_epsilon(epsilon)
    if threshold is not None:
        out["threshold"] = check_threshold(threshold)
    if policy is not None:
        out["policy"] = _check_policy(policy)
    return out


def get_defaults() -> FiniteDifferenceDefaults:
    """Returns the defaults in effect for the current context.

    Returns:
        A frozen :class:`FiniteDifferenceDefaults`.
    """
    resolved = FiniteDifferenceDefaults()
    for layer in (_env_defaults(), _PROCESS_DEFAULTS, _scoped_defaults_var.get() or {}):
        if layer:
            resolved = replace(resolved, **layer)
    return resolved


def set_default_finite_difference(
    epsilon: float | None = None,
    threshold: float | None = None,
    policy: str | None = None,
    *,
    reset: bool = False,
) -> None:
    """Sets process-wide defaults.

    Args:
        epsilon: New default step, or None to leave unchanged.
        threshold: New default threshold, or None to leave unchanged.
        policy: New default policy name, or None to leave unchanged.
        reset: If True, clear all process-wide overrides before applying
            the new values.

    Raises:
        InvalidParameter: If ``epsilon``, ``threshold`` or ``policy`` is invalid.
        TypeError: If ``policy`` is neither a name nor a Policy subclass.
    """
    values = _clean(epsilon, threshold, policy)
    if reset:
        _PROCESS_DEFAULTS.clear()
    _PROCESS_DEFAULTS.update(values)


@contextmanager
def finite_difference_defaults(
    epsilon: float | None = None,
    threshold: float | None = None,
    policy: str | None = None,
) -> Iterator[FiniteDifferenceDefaults]:
    """Temporarily overrides defaults for the current context.

    Args:
        epsilon: Scoped default step.
        threshold: Scoped default threshold.
        policy: Scoped default policy name.

    Yields:
        FiniteDifferenceDefaults: The defaults in effect inside the block.

    Raises:
        InvalidParameter: If ``epsilon``, ``threshold`` or ``policy`` is invalid.
        TypeError: If ``policy`` is neither a name nor a Policy subclass.
    """
    values = dict(_scoped_defaults_var.get() or {})
    values.update(_clean(epsilon, threshold, policy))
    token = _scoped_defaults_var.set(values)
    try:
        yield get_defaults()
    finally:
        _scoped_defaults_var.reset(token)
