"""Calling-convention shim for reverse-mode differentiation frameworks.

Each function runs the engine's forward and backward passes once and returns
``(score, vjp)``.  ``vjp(g)`` maps the incoming sensitivity ``g`` on the
scalar score to sensitivities on the differentiable inputs.  The operator
and the boundary policy are not differentiable and get no sensitivity.
"""

from __future__ import annotations

from collections.abc import Callable

import numpy as np

from smoothdp.core.dtw import DTWBoundary, dtw_grad
from smoothdp.core.max_operators import MaxOperator
from smoothdp.core.needleman_wunsch import needleman_wunsch_grad


def dtw_value_and_vjp(
    op: MaxOperator,
    theta,
    boundary: DTWBoundary = DTWBoundary.CLOSED,
) -> tuple[float, Callable[[float], tuple[np.ndarray]]]:
    """Returns (score, vjp) with ``vjp(g) -> (g * dscore/dtheta,)``."""
    result = dtw_grad(op, theta, boundary)
    grad = result.grad

    def vjp(g: float) -> tuple[np.ndarray]:
        return (g * grad,)

    return result.value, vjp


def nw_value_and_vjp(
    op: MaxOperator,
    theta,
    gap,
    gt=None,
) -> tuple[float, Callable[[float], tuple]]:
    """Returns (score, vjp) for Needleman-Wunsch.

    With a scalar gap ``vjp(g) -> (g * dtheta, g * dgap)``; with per-position
    gaps ``vjp(g) -> (g * dtheta, g * dgs, g * dgt)``.
    """
    result = needleman_wunsch_grad(op, theta, gap, gt)

    if result.grad_gap is not None:
        grad_gap = result.grad_gap

        def vjp(g: float) -> tuple:
            return g * result.grad, g * grad_gap

    else:

        def vjp(g: float) -> tuple:
            return g * result.grad, g * result.grad_gs, g * result.grad_gt

    return result.value, vjp
