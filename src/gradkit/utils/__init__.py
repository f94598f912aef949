"""Utility functions for GradKit package."""

from .validate import (
    as_argument,
    check_epsilon,
    check_index,
    check_threshold,
)

__all__ = [
    "as_argument",
    "check_epsilon",
    "check_index",
    "check_threshold",
]
