"""Smoothed Dynamic Time Warping with a hand-written backward pass.

Reference:
    Cuturi, M. & Blondel, M. (2017). Soft-DTW: a Differentiable Loss Function
    for Time-Series. Proceedings of ICML 2017.
    Mensch, A. & Blondel, M. (2018). Differentiable Dynamic Programming for
    Structured Prediction and Attention. Proceedings of ICML 2018.

Key notation:
    n, m  — series lengths (rows / columns of theta)
    theta — (n, m) local cost matrix, e.g. (x_i - y_j)^2
    D     — (n+2) × (m+2) accumulated cost (padded, see DPState)
    Q     — per-cell soft-argmin over (up, left, diagonal)
    E     — (n+2) × (m+2) sensitivities; E[1:n+1, 1:m+1] = ∂D[n, m] / ∂theta

Any max operator works: HardMax gives classical DTW, EntropyMax gives the
log-sum-exp soft-DTW, SquaredMax a sparse variant.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from enum import Enum

import numpy as np

from smoothdp.constants import DTW_DIAG, DTW_LEFT, DTW_UP, NUM_SLOTS
from smoothdp.core.dp_state import DPState
from smoothdp.core.math_utils import pairwise_cosine_distance, pairwise_sq_euclidean
from smoothdp.core.max_operators import MaxOperator, minimum_and_argmin
from smoothdp.exceptions import DimensionMismatchError, EmptyInputError, InvalidParameterError

logger = logging.getLogger(__name__)


class DTWBoundary(Enum):
    """Where a warping path may start."""
    CLOSED = "closed"  # path starts at cell (1, 1); standard DTW (default)
    OPEN = "open"      # path may start anywhere on the first row or column


@dataclass
class DTWResult:
    """Result of a forward + backward DTW computation."""

    value: float
    """Smoothed warping distance D[n, m]."""

    grad: np.ndarray
    """∂value / ∂theta, shape (n, m)."""

    state: DPState = field(repr=False)
    """Filled D / Q / E lattices."""

    boundary: DTWBoundary = DTWBoundary.CLOSED

    @property
    def normalized_value(self) -> float:
        """value / max(n, m) for length-independent comparisons."""
        return self.value / max(self.state.n, self.state.m)


# ---------------------------------------------------------------------------
# Input validation
# ---------------------------------------------------------------------------

def _as_theta(theta) -> np.ndarray:
    arr = np.asarray(theta, dtype=np.float64)
    if arr.ndim != 2:
        raise DimensionMismatchError(
            f"theta must be a 2-D cost matrix, got shape {arr.shape}",
            context={"shape": arr.shape},
        )
    if arr.size == 0:
        raise EmptyInputError(f"theta must be non-empty, got shape {arr.shape}", context={"shape": arr.shape})
    return arr


def _prepare_state(theta: np.ndarray, state: DPState | None) -> DPState:
    if state is None:
        return DPState.for_theta(theta, NUM_SLOTS)
    state.check_theta(theta, NUM_SLOTS)
    state.reset()
    return state


# ---------------------------------------------------------------------------
# Forward pass
# ---------------------------------------------------------------------------

def _fill_boundary(D: np.ndarray, boundary: DTWBoundary) -> None:
    if boundary is DTWBoundary.CLOSED:
        D[0, :] = np.inf
        D[:, 0] = np.inf
    else:
        D[0, :] = 0.0
        D[:, 0] = 0.0
    D[0, 0] = 0.0


def _dtw_forward(op: MaxOperator, theta: np.ndarray, state: DPState, boundary: DTWBoundary) -> float:
    """Row-major fill of D and Q.  Returns D[n, m]."""
    n, m = theta.shape
    D, Q = state.D, state.Q
    _fill_boundary(D, boundary)

    candidates = np.empty(NUM_SLOTS, dtype=np.float64)
    for i in range(1, n + 1):
        for j in range(1, m + 1):
            candidates[DTW_UP] = D[i - 1, j]
            candidates[DTW_LEFT] = D[i, j - 1]
            candidates[DTW_DIAG] = D[i - 1, j - 1]
            v, q = minimum_and_argmin(op, candidates)
            D[i, j] = theta[i - 1, j - 1] + v
            Q[i, j, :] = q

    # Terminal sentinel: (n+1, m+1) takes (n, m) as its diagonal predecessor.
    Q[n + 1, m + 1, DTW_DIAG] = 1.0
    return float(D[n, m])


# ---------------------------------------------------------------------------
# Backward pass (gradient w.r.t. theta)
# ---------------------------------------------------------------------------

def _dtw_backward(state: DPState) -> np.ndarray:
    """Reverse recursion over the stored soft-argmins.

    Cell (i, j) is the UP predecessor of (i+1, j), the LEFT predecessor of
    (i, j+1) and the DIAG predecessor of (i+1, j+1).  Seeding the
    sentinel (n+1, m+1) with 1 makes E[n, m] come out as 1 without
    special-casing.
    """
    n, m = state.n, state.m
    E, Q = state.E, state.Q
    E.fill(0.0)
    E[n + 1, m + 1] = 1.0

    for i in range(n, 0, -1):
        for j in range(m, 0, -1):
            E[i, j] = (
                Q[i + 1, j, DTW_UP] * E[i + 1, j]
                + Q[i, j + 1, DTW_LEFT] * E[i, j + 1]
                + Q[i + 1, j + 1, DTW_DIAG] * E[i + 1, j + 1]
            )

    return state.core_E().copy()


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------

def dtw(
    op: MaxOperator,
    theta,
    boundary: DTWBoundary = DTWBoundary.CLOSED,
    state: DPState | None = None,
) -> float:
    """Smoothed DTW distance between two series given their cost matrix.

    Args:
        op:       Max operator; the recursion uses its derived minimum.
        theta:    (n, m) pairwise cost matrix.  Not modified.
        boundary: Start policy for the warping path.
        state:    Optional pre-allocated DPState of matching shape (reset here).

    Returns:
        D[n, m], the smoothed total warping cost.
    """
    theta = _as_theta(theta)
    state = _prepare_state(theta, state)
    value = _dtw_forward(op, theta, state, DTWBoundary(boundary))
    if not np.isfinite(value):
        logger.warning("DTW value is not finite", extra={"operator": repr(op), "score": value})
    return value


def dtw_grad(
    op: MaxOperator,
    theta,
    boundary: DTWBoundary = DTWBoundary.CLOSED,
    state: DPState | None = None,
) -> DTWResult:
    """Smoothed DTW distance and its gradient w.r.t. every entry of theta.

    The gradient is the expected alignment matrix under the operator's
    path distribution: each entry lies in [0, 1] for the smooth variants
    and is a 0/1 path indicator for HardMax.
    """
    theta = _as_theta(theta)
    boundary = DTWBoundary(boundary)
    state = _prepare_state(theta, state)
    n, m = theta.shape

    t0 = time.perf_counter()
    value = _dtw_forward(op, theta, state, boundary)
    grad = _dtw_backward(state)
    duration_ms = (time.perf_counter() - t0) * 1000

    logger.debug(
        "dtw forward+backward",
        extra={
            "engine": "dtw",
            "operator": repr(op),
            "boundary": boundary.value,
            "n": n,
            "m": m,
            "score": value,
            "duration_ms": round(duration_ms, 3),
        },
    )
    if not np.isfinite(value):
        logger.warning("DTW value is not finite", extra={"operator": repr(op), "score": value})

    return DTWResult(value=value, grad=grad, state=state, boundary=boundary)


def dtw_divergence(
    op: MaxOperator,
    x: np.ndarray,
    y: np.ndarray,
    metric: str = "sqeuclidean",
    boundary: DTWBoundary = DTWBoundary.CLOSED,
) -> float:
    """Soft-DTW divergence ``d(x, y) - ½ (d(x, x) + d(y, y))``.

    Removes the entropic bias of the smoothed distance so that identical
    series score zero.
    """
    if metric == "sqeuclidean":
        cost = pairwise_sq_euclidean
    elif metric == "cosine":
        cost = pairwise_cosine_distance
    else:
        raise InvalidParameterError(f"Unknown metric: {metric!r}", context={"metric": metric})
    d_xy = dtw(op, cost(x, y), boundary)
    d_xx = dtw(op, cost(x, x), boundary)
    d_yy = dtw(op, cost(y, y), boundary)
    return d_xy - 0.5 * (d_xx + d_yy)
