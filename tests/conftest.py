"""Pytest configuration file with shared fixtures."""

import os
from concurrent.futures import ThreadPoolExecutor, TimeoutError

import pytest

from gradkit.config import set_default_finite_difference
from gradkit.finite.workspace import default_pool

__all__ = ["extra_threads_ok"]


@pytest.fixture(autouse=True, scope="session")
def _limit_blas_threads():
    os.environ.setdefault("OMP_NUM_THREADS", "1")
    os.environ.setdefault("OPENBLAS_NUM_THREADS", "1")
    os.environ.setdefault("MKL_NUM_THREADS", "1")
    os.environ.setdefault("VECLIB_MAXIMUM_THREADS", "1")


@pytest.fixture(autouse=True)
def _isolated_defaults(monkeypatch):
    """Start every test from the built-in defaults and an empty workspace pool."""
    for name in ("GRADKIT_FD_EPSILON", "GRADKIT_FD_THRESHOLD", "GRADKIT_FD_POLICY"):
        monkeypatch.delenv(name, raising=False)
    set_default_finite_difference(reset=True)
    default_pool.clear()
    yield
    set_default_finite_difference(reset=True)


@pytest.fixture(scope="session")
def threads_ok():
    """Return a callable that checks thread-spawning capability.

    The returned function has signature `check(n=2, timeout=1.0) -> bool` and
    returns True if at least `n` threads can be started and joined within `timeout`.
    """
    def _can_spawn(n: int = 2, timeout: float = 1.0) -> bool:
        try:
            with ThreadPoolExecutor(max_workers=n) as ex:
                futs = [ex.submit(lambda: None) for _ in range(n)]
                for f in futs:
                    f.result(timeout=timeout)
            return True
        except (RuntimeError, MemoryError, OSError, TimeoutError):
            return False
    return _can_spawn


@pytest.fixture(scope="session")
def extra_threads_ok(threads_ok):
    """Convenience: True iff we can start >= 2 threads (common case)."""
    return threads_ok(2)
