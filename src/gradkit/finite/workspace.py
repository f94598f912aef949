"""Explicit scratch storage for finite-difference computations.

A :class:`Workspace` holds the buffers one differentiation call needs: the
perturbed argument, the baseline value used by forward differences and the
stencil samples used by central differences. Buffers are overwritten by each
call, so a workspace must never be used by two overlapping calls.

Callers that manage their own storage pass a workspace explicitly. Otherwise
one is borrowed from :data:`default_pool`, which keeps separate free lists per
thread and hands out a distinct workspace to every call in flight, including
nested calls from inside the differentiated function.
"""

from __future__ import annotations

import threading
from contextlib import contextmanager
from typing import Iterator

import numpy as np

from gradkit.errors import DimensionMismatch
from gradkit.functions.core import Evaluate
from gradkit.utils.types import Vector

__all__ = [
    "Workspace",
    "WorkspacePool",
    "default_pool",
    "borrow_workspace",
]

#: Number of stencil samples per column kept in :attr:`Workspace.samples`.
STENCIL_SAMPLES = 4


class Workspace:
    """Scratch buffers sized for one function.

    Attributes:
        input_size: Input size the buffers were allocated for.
        output_size: Output size the buffers were allocated for.
        argument: Perturbed evaluation point, shape ``(input_size,)``.
        baseline: Unperturbed value ``f(x)``, shape ``(output_size,)``.
        samples: Stencil values, shape ``(4, output_size)``.
    """

    __slots__ = ("input_size", "output_size", "argument", "baseline", "samples")

    def __init__(self, input_size: int, output_size: int):
        self.input_size = int(input_size)
        self.output_size = int(output_size)
        self.argument = np.zeros(self.input_size, dtype=np.float64)
        self.baseline = np.zeros(self.output_size, dtype=np.float64)
        self.samples = np.zeros((STENCIL_SAMPLES, self.output_size), dtype=np.float64)

    @classmethod
    def for_function(cls, function: Evaluate) -> Workspace:
        """Allocates a workspace sized for ``function``."""
        return cls(function.input_size, function.output_size)

    def check(self, function: Evaluate) -> None:
        """Checks that the buffers fit ``function``.

        Raises:
            DimensionMismatch: If the sizes differ.
        """
        if (self.input_size, self.output_size) != (function.input_size, function.output_size):
            raise DimensionMismatch(
                f"workspace sized for ({self.input_size} -> {self.output_size}) "
                f"cannot serve a ({function.input_size} -> {function.output_size}) function."
            )

    def load(self, argument: Vector) -> Vector:
        """Copies ``argument`` into the perturbation buffer and returns the buffer."""
        np.copyto(self.argument, argument)
        return self.argument

    def __repr__(self) -> str:
        return f"Workspace(input_size={self.input_size}, output_size={self.output_size})"


class WorkspacePool:
    """Per-thread pool of reusable workspaces.

    Each thread owns its free lists, so borrowing never needs a lock.
    """

    def __init__(self):
        self._local = threading.local()

    def _free_lists(self) -> dict[tuple[int, int], list[Workspace]]:
        free = getattr(self._local, "free", None)
        if free is None:
            free = {}
            self._local.free = free
        return free

    @contextmanager
    def borrow(self, input_size: int, output_size: int) -> Iterator[Workspace]:
        """Lends a workspace for the duration of a ``with`` block.

        Args:
            input_size: Required input size.
            output_size: Required output size.

        Yields:
            Workspace: A workspace not used by any other call in flight.
        """
        stack = self._free_lists().setdefault((int(input_size), int(output_size)), [])
        ws = stack.pop() if stack else Workspace(input_size, output_size)
        try:
            yield ws
        finally:
            stack.append(ws)

    def size(self) -> int:
        """Returns the number of idle workspaces held for the current thread."""
        return sum(len(v) for v in self._free_lists().values())

    def clear(self) -> None:
        """Drops the idle workspaces held for the current thread."""
        self._free_lists().clear()


#: Pool used whenever a caller does not pass a workspace.
default_pool = WorkspacePool()


@contextmanager
def borrow_workspace(
    function: Evaluate,
    workspace: Workspace | None = None,
) -> Iterator[Workspace]:
    """Yields ``workspace`` after checking it, or one borrowed from the default pool.

    Raises:
        DimensionMismatch: If an explicit ``workspace`` does not fit ``function``.
    """
    if workspace is not None:
        workspace.check(function)
        yield workspace
        return
    with default_pool.borrow(function.input_size, function.output_size) as ws:
        yield ws
