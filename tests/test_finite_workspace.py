"""Unit tests for gradkit.finite.workspace."""

import threading

import numpy as np
import pytest

from gradkit.errors import DimensionMismatch
from gradkit.finite.workspace import (
    Workspace,
    WorkspacePool,
    borrow_workspace,
    default_pool,
)
from gradkit.functions import CallableFunction


def test_workspace_buffers_have_function_sizes():
    """Test the shapes of the scratch buffers."""
    ws = Workspace(3, 2)
    assert ws.argument.shape == (3,)
    assert ws.baseline.shape == (2,)
    assert ws.samples.shape == (4, 2)
    assert repr(ws) == "Workspace(input_size=3, output_size=2)"


def test_load_copies_argument():
    """Test that load copies into the buffer instead of aliasing."""
    ws = Workspace(2, 1)
    x = np.array([1.0, 2.0])
    buf = ws.load(x)
    assert buf is ws.argument
    buf[0] = 9.0
    assert x[0] == 1.0


def test_check_rejects_other_sizes():
    """Test that a workspace refuses functions of other sizes."""
    f = CallableFunction(lambda x: x, 2, 2)
    Workspace.for_function(f).check(f)
    with pytest.raises(DimensionMismatch):
        Workspace(2, 3).check(f)


def test_borrow_reuses_returned_workspace():
    """Test that a returned workspace is handed out again."""
    pool = WorkspacePool()
    with pool.borrow(2, 1) as first:
        pass
    assert pool.size() == 1
    with pool.borrow(2, 1) as second:
        assert pool.size() == 0
    assert second is first


def test_nested_borrows_are_distinct():
    """Test that overlapping borrows never share a workspace."""
    pool = WorkspacePool()
    with pool.borrow(2, 1) as outer:
        with pool.borrow(2, 1) as inner:
            assert inner is not outer
    assert pool.size() == 2


def test_borrow_returns_workspace_on_error():
    """Test that a workspace goes back to the pool when the block raises."""
    pool = WorkspacePool()
    with pytest.raises(RuntimeError):
        with pool.borrow(1, 1):
            raise RuntimeError("boom")
    assert pool.size() == 1


def test_clear_drops_idle_workspaces():
    """Test that clear empties the free lists of the current thread."""
    pool = WorkspacePool()
    with pool.borrow(1, 1), pool.borrow(2, 2):
        pass
    assert pool.size() == 2
    pool.clear()
    assert pool.size() == 0


def test_threads_have_separate_free_lists(extra_threads_ok):
    """Test that another thread never receives this thread's workspaces."""
    if not extra_threads_ok:
        pytest.skip("cannot spawn threads")
    pool = WorkspacePool()
    with pool.borrow(2, 2) as mine:
        pass
    seen = {}

    def worker():
        with pool.borrow(2, 2) as ws:
            seen["ws"] = ws
        seen["size"] = pool.size()

    t = threading.Thread(target=worker)
    t.start()
    t.join()
    assert seen["ws"] is not mine
    assert seen["size"] == 1
    assert pool.size() == 1


def test_borrow_workspace_uses_explicit_workspace():
    """Test that an explicit workspace is used after being checked."""
    f = CallableFunction(lambda x: x, 2, 2)
    ws = Workspace(2, 2)
    with borrow_workspace(f, ws) as got:
        assert got is ws
    assert default_pool.size() == 0
    with pytest.raises(DimensionMismatch):
        with borrow_workspace(f, Workspace(1, 2)):
            pass


def test_borrow_workspace_falls_back_to_default_pool():
    """Test that the default pool serves calls without a workspace."""
    f = CallableFunction(lambda x: x, 3, 1)
    with borrow_workspace(f) as ws:
        assert (ws.input_size, ws.output_size) == (3, 1)
    assert default_pool.size() == 1
