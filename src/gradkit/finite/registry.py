"""Lookup of finite-difference policies by name.

Policies are selected once, when a
:class:`~gradkit.finite.gradient.FiniteDifferenceGradient` is built, either by
class or by name. Names are case/spacing/punctuation insensitive, so
``"FivePointsRule"``, ``"five-points-rule"`` and ``"five_points_rule"`` all
resolve to the same policy.

Adding policies
---------------
New policies can be registered without modifying this module:

    >>> from gradkit.finite.policies import SimplePolicy
    >>> from gradkit.finite.registry import register_policy, resolve_policy
    >>> class BackwardPolicy(SimplePolicy):
    ...     name = "backward"
    >>> register_policy("backward", BackwardPolicy, aliases=("bd",))  # doctest: +SKIP
    >>> resolve_policy("BD") is BackwardPolicy  # doctest: +SKIP
    True
"""

from __future__ import annotations

import re
from functools import lru_cache
from typing import Iterable, Mapping, Type

from gradkit.errors import InvalidParameter
from gradkit.finite.policies import FivePointsRulePolicy, Policy, SimplePolicy

__all__ = [
    "register_policy",
    "resolve_policy",
    "available_policies",
]


# These are the built-in policies available in the package by default.
_POLICY_SPECS: list[tuple[str, Type[Policy], list[str]]] = [
    ("simple", SimplePolicy, ["forward", "forward-difference", "fd"]),
    ("five-points-rule", FivePointsRulePolicy, ["five-point", "five-point-stencil", "central", "stencil"]),
]


def _norm(s: str) -> str:
    """Normalize a policy string for robust matching (case/spacing/punct insensitive)."""
    return re.sub(r"[^a-z0-9]+", "", s.lower())


@lru_cache(maxsize=1)
def _policy_maps() -> tuple[Mapping[str, Type[Policy]], tuple[str, ...]]:
    """Construct and cache lookup tables for policies.

    The cache is cleared by :func:`register_policy`.

    Returns:
        A pair ``(policy_map, canonical_names)`` where ``policy_map`` maps
        normalized names and aliases to policy classes and
        ``canonical_names`` lists the sorted canonical names.
    """
    policy_map: dict[str, Type[Policy]] = {}
    canonical: list[str] = []
    for name, cls, aliases in _POLICY_SPECS:
        policy_map[_norm(name)] = cls
        canonical.append(name)
        for a in aliases:
            policy_map[_norm(a)] = cls
    return policy_map, tuple(sorted(set(canonical)))


def register_policy(
    name: str,
    cls: Type[Policy],
    *,
    aliases: Iterable[str] = (),
) -> None:
    """Register a new differentiation policy.

    Args:
        name: Canonical public name of the policy.
        cls: Subclass of :class:`~gradkit.finite.policies.Policy`.
        aliases: Additional accepted spellings.

    Raises:
        TypeError: If ``cls`` is not a Policy subclass.
    """
    if not (isinstance(cls, type) and issubclass(cls, Policy)):
        raise TypeError(f"cls must be a Policy subclass; got {cls!r}.")
    _POLICY_SPECS.append((name, cls, list(aliases)))
    _policy_maps.cache_clear()


def resolve_policy(policy: str | Type[Policy]) -> Type[Policy]:
    """Resolve a policy name, alias, or class to a policy class.

    Args:
        policy: Registered name/alias, or a Policy subclass.

    Returns:
        The policy class.

    Raises:
        InvalidParameter: If the name is unknown.
        TypeError: If ``policy`` is neither a string nor a Policy subclass.
    """
    if isinstance(policy, type) and issubclass(policy, Policy):
        return policy
    if not isinstance(policy, str):
        raise TypeError(
            f"policy must be a name or a Policy subclass; got {type(policy).__name__}."
        )
    policy_map, canon = _policy_maps()
    try:
        return policy_map[_norm(policy)]
    except KeyError:
        opts = ", ".join(canon)
        raise InvalidParameter(
            f"Unknown finite-difference policy '{policy}'. Choose one of {{{opts}}}."
        ) from None


def available_policies() -> list[str]:
    """List canonical policy names.

    Returns:
        List of policy names.
    """
    _, canon = _policy_maps()
    return list(canon)
