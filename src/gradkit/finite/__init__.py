"""Finite-difference differentiation.

Provides the differentiation policies, their registry, the explicit scratch
storage they use, and the adapter turning a value-only function into a
differentiable one.
"""

from .gradient import FiniteDifferenceGradient
from .policies import FivePointsRulePolicy, Policy, SimplePolicy, StencilEstimate
from .registry import available_policies, register_policy, resolve_policy
from .workspace import Workspace, WorkspacePool, borrow_workspace, default_pool

__all__ = [
    "FiniteDifferenceGradient",
    "Policy",
    "SimplePolicy",
    "FivePointsRulePolicy",
    "StencilEstimate",
    "available_policies",
    "register_policy",
    "resolve_policy",
    "Workspace",
    "WorkspacePool",
    "borrow_workspace",
    "default_pool",
]
