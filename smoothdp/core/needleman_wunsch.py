"""Smoothed Needleman-Wunsch global alignment with gradients.

Reference:
    Needleman, S. B. & Wunsch, C. D. (1970). A general method applicable to
    the search for similarities in the amino acid sequence of two proteins.
    J. Mol. Biol. 48(3), 443-453.
    Mensch, A. & Blondel, M. (2018). Differentiable Dynamic Programming for
    Structured Prediction and Attention. Proceedings of ICML 2018.

Key notation:
    n, m  — sequence lengths (rows / columns of theta)
    theta — (n, m) similarity matrix, theta[i, j] = score of aligning s_i with t_j
    gs    — (n,) cost of leaving s_i unaligned (move down, i-1 -> i)
    gt    — (m,) cost of leaving t_j unaligned (move right, j-1 -> j)
    D     — (n+2) × (m+2) alignment scores, D[0, 0] = 0
    Q     — per-cell soft-argmax over (deletion, match, insertion)
    E     — (n+2) × (m+2) sensitivities ∂D[n, m] / ∂D[i, j]

The score is maximised; HardMax gives the classical optimal alignment score.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field

import numpy as np

from smoothdp.constants import NUM_SLOTS, NW_DELETION, NW_INSERTION, NW_MATCH
from smoothdp.core.dp_state import DPState
from smoothdp.core.max_operators import MaxOperator, maximum_and_argmax
from smoothdp.exceptions import DimensionMismatchError, EmptyInputError

logger = logging.getLogger(__name__)


@dataclass
class NWResult:
    """Result of a forward + backward Needleman-Wunsch computation."""

    value: float
    """Smoothed alignment score D[n, m]."""

    grad: np.ndarray
    """∂value / ∂theta, shape (n, m): expected match probability per pair."""

    grad_gs: np.ndarray
    """∂value / ∂gs, shape (n,)."""

    grad_gt: np.ndarray
    """∂value / ∂gt, shape (m,)."""

    state: DPState = field(repr=False)

    grad_gap: float | None = None
    """∂value / ∂g when a single scalar gap cost was used, else None."""


# ---------------------------------------------------------------------------
# Input validation
# ---------------------------------------------------------------------------

def _as_theta(theta) -> np.ndarray:
    arr = np.asarray(theta, dtype=np.float64)
    if arr.ndim != 2:
        raise DimensionMismatchError(
            f"theta must be a 2-D similarity matrix, got shape {arr.shape}",
            context={"shape": arr.shape},
        )
    if arr.size == 0:
        raise EmptyInputError(f"theta must be non-empty, got shape {arr.shape}", context={"shape": arr.shape})
    return arr


def _as_gaps(gap, gt, n: int, m: int) -> tuple[np.ndarray, np.ndarray, bool]:
    """Normalise the gap arguments to per-position vectors.

    Returns (gs, gt, scalar) where ``scalar`` records a single shared gap cost.
    """
    if gt is None:
        if np.ndim(gap) != 0:
            raise DimensionMismatchError(
                "per-position gap costs need both gs and gt",
                context={"gs_shape": np.shape(gap)},
            )
        g = float(gap)
        return np.full(n, g), np.full(m, g), True

    gs = np.asarray(gap, dtype=np.float64)
    gt = np.asarray(gt, dtype=np.float64)
    if gs.shape != (n,) or gt.shape != (m,):
        raise DimensionMismatchError(
            f"gap vectors must have shapes ({n},) and ({m},), got {gs.shape} and {gt.shape}",
            context={"theta": (n, m), "gs_shape": gs.shape, "gt_shape": gt.shape},
        )
    return gs, gt, False


def _prepare_state(theta: np.ndarray, state: DPState | None) -> DPState:
    if state is None:
        return DPState.for_theta(theta, NUM_SLOTS)
    state.check_theta(theta, NUM_SLOTS)
    state.reset()
    return state


# ---------------------------------------------------------------------------
# Forward pass
# ---------------------------------------------------------------------------

def _nw_forward(
    op: MaxOperator,
    theta: np.ndarray,
    gs: np.ndarray,
    gt: np.ndarray,
    state: DPState,
) -> float:
    """Fill D and Q.  Returns D[n, m]."""
    n, m = theta.shape
    D, Q = state.D, state.Q

    # Boundary: first column/row is reached only through gaps.  Recording the
    # forced move in Q lets the backward pass charge boundary gaps too.
    D[0, 0] = 0.0
    D[1 : n + 1, 0] = -np.cumsum(gs)
    D[0, 1 : m + 1] = -np.cumsum(gt)
    Q[1 : n + 1, 0, NW_DELETION] = 1.0
    Q[0, 1 : m + 1, NW_INSERTION] = 1.0

    candidates = np.empty(NUM_SLOTS, dtype=np.float64)
    for i in range(1, n + 1):
        for j in range(1, m + 1):
            candidates[NW_DELETION] = D[i - 1, j] - gs[i - 1]
            candidates[NW_MATCH] = D[i - 1, j - 1] + theta[i - 1, j - 1]
            candidates[NW_INSERTION] = D[i, j - 1] - gt[j - 1]
            v, q = maximum_and_argmax(op, candidates)
            D[i, j] = v
            Q[i, j, :] = q

    # Terminal sentinel: (n+1, m+1) takes (n, m) as its match predecessor.
    Q[n + 1, m + 1, NW_MATCH] = 1.0
    return float(D[n, m])


# ---------------------------------------------------------------------------
# Backward pass
# ---------------------------------------------------------------------------

def _nw_backward(state: DPState) -> tuple[np.ndarray, np.ndarray, np.ndarray]:
    """Reverse recursion; returns (grad_theta, grad_gs, grad_gt).

    Cell (i, j) is the deletion predecessor of (i+1, j), the match
    predecessor of (i+1, j+1) and the insertion predecessor of (i, j+1).
    """
    n, m = state.n, state.m
    E, Q = state.E, state.Q
    E.fill(0.0)
    E[n + 1, m + 1] = 1.0

    for i in range(n, -1, -1):
        for j in range(m, -1, -1):
            E[i, j] = (
                Q[i + 1, j, NW_DELETION] * E[i + 1, j]
                + Q[i + 1, j + 1, NW_MATCH] * E[i + 1, j + 1]
                + Q[i, j + 1, NW_INSERTION] * E[i, j + 1]
            )

    # Only the match move carries theta.
    grad = state.core_E() * state.core_Q()[:, :, NW_MATCH]
    # Gap costs enter with a minus sign, boundary cells included.
    grad_gs = -np.sum(Q[1 : n + 1, 0 : m + 1, NW_DELETION] * E[1 : n + 1, 0 : m + 1], axis=1)
    grad_gt = -np.sum(Q[0 : n + 1, 1 : m + 1, NW_INSERTION] * E[0 : n + 1, 1 : m + 1], axis=0)
    return grad, grad_gs, grad_gt


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------

def needleman_wunsch(
    op: MaxOperator,
    theta,
    gap,
    gt=None,
    state: DPState | None = None,
) -> float:
    """Smoothed Needleman-Wunsch alignment score.

    Args:
        op:    Max operator used at every cell.
        theta: (n, m) similarity matrix.  Not modified.
        gap:   Scalar gap cost, or the (n,) vector ``gs`` when ``gt`` is given.
        gt:    Optional (m,) gap cost vector for the second sequence.
        state: Optional pre-allocated DPState of matching shape (reset here).

    Returns:
        D[n, m], the smoothed optimal alignment score.
    """
    theta = _as_theta(theta)
    gs, gt_vec, _ = _as_gaps(gap, gt, *theta.shape)
    state = _prepare_state(theta, state)
    value = _nw_forward(op, theta, gs, gt_vec, state)
    if not np.isfinite(value):
        logger.warning("Needleman-Wunsch score is not finite", extra={"operator": repr(op), "score": value})
    return value


def needleman_wunsch_grad(
    op: MaxOperator,
    theta,
    gap,
    gt=None,
    state: DPState | None = None,
) -> NWResult:
    """Smoothed Needleman-Wunsch score with gradients w.r.t. theta and gap costs."""
    theta = _as_theta(theta)
    n, m = theta.shape
    gs, gt_vec, scalar = _as_gaps(gap, gt, n, m)
    state = _prepare_state(theta, state)

    t0 = time.perf_counter()
    value = _nw_forward(op, theta, gs, gt_vec, state)
    grad, grad_gs, grad_gt = _nw_backward(state)
    duration_ms = (time.perf_counter() - t0) * 1000

    logger.debug(
        "needleman-wunsch forward+backward",
        extra={
            "engine": "needleman_wunsch",
            "operator": repr(op),
            "n": n,
            "m": m,
            "score": value,
            "duration_ms": round(duration_ms, 3),
        },
    )
    if not np.isfinite(value):
        logger.warning("Needleman-Wunsch score is not finite", extra={"operator": repr(op), "score": value})

    return NWResult(
        value=value,
        grad=grad,
        grad_gs=grad_gs,
        grad_gt=grad_gt,
        state=state,
        grad_gap=float(grad_gs.sum() + grad_gt.sum()) if scalar else None,
    )
