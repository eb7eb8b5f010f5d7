"""Shared fixtures and helpers for the smoothdp test suite."""

import numpy as np
import pytest

from smoothdp.core.max_operators import EntropyMax, HardMax, LeakyMax, SquaredMax

# Time series from the soft-DTW example: a double bump against a single bump.
SERIES_X = np.array([3.0, 1.0, 0.0, 0.0, 1.0, 3.0, 5.0, 6.0, 6.0, 5.0, 3.0, 1.0, 0.0, 0.0, 1.0, 3.0])
SERIES_Y = np.array([0.0, 1.0, 3.0, 5.0, 6.0, 6.0, 5.0, 3.0])

# Distance matrix between "KPMMSQ" (rows) and "KLMSP" (columns).
SEQ_S1 = "KLMSP"
SEQ_S2 = "KPMMSQ"
SEQ_DIST = np.array(
    [
        [0.0, 2.0, 3.0, 4.0, 5.0],
        [2.0, 1.0, 2.0, 3.0, 3.0],
        [3.0, 2.0, 0.0, 2.0, 3.0],
        [4.0, 3.0, 1.0, 1.0, 2.0],
        [5.0, 4.0, 3.0, 1.0, 1.0],
        [6.0, 5.0, 4.0, 3.0, 2.0],
    ]
)

SMOOTH_OPERATORS = [LeakyMax(0.1), EntropyMax(1.0), SquaredMax(1.0)]
ALL_OPERATORS = [HardMax(), *SMOOTH_OPERATORS]


def op_id(op) -> str:
    return repr(op)


def finite_difference(f, theta: np.ndarray, eps: float = 1e-6) -> np.ndarray:
    """Central differences of scalar ``f`` w.r.t. every entry of ``theta``."""
    theta = np.array(theta, dtype=np.float64)
    grad = np.zeros_like(theta)
    for idx in np.ndindex(theta.shape):
        plus = theta.copy()
        minus = theta.copy()
        plus[idx] += eps
        minus[idx] -= eps
        grad[idx] = (f(plus) - f(minus)) / (2 * eps)
    return grad


@pytest.fixture
def rng():
    return np.random.default_rng(1234)


@pytest.fixture
def series_theta():
    """(16, 8) squared-distance matrix between SERIES_X and SERIES_Y."""
    return (SERIES_X[:, None] - SERIES_Y[None, :]) ** 2
