"""torch.autograd wrappers around the hand-written DP backward passes.

The forward runs the numpy engine on a detached float64 copy of the input;
the backward returns the engine's stored gradient scaled by the incoming
sensitivity.  Gradients are never traced through the DP recursion itself.
"""

from __future__ import annotations

import logging

import torch
import torch.nn as nn

from smoothdp.core.dtw import DTWBoundary, dtw_grad
from smoothdp.core.max_operators import EntropyMax, MaxOperator
from smoothdp.core.needleman_wunsch import needleman_wunsch_grad
from smoothdp.exceptions import InvalidParameterError
from smoothdp.nn.functional import pairwise_cosine_dist, pairwise_euclidean_sq

logger = logging.getLogger(__name__)

__all__ = [
    "DTWFunction",
    "NeedlemanWunschFunction",
    "SmoothDTW",
    "SmoothNeedlemanWunsch",
]


def _to_numpy(t: torch.Tensor):
    return t.detach().to(device="cpu", dtype=torch.float64).numpy()


class DTWFunction(torch.autograd.Function):
    """Custom autograd for smoothed DTW on an (n, m) cost matrix."""

    @staticmethod
    def forward(ctx, theta, op, boundary=DTWBoundary.CLOSED):
        result = dtw_grad(op, _to_numpy(theta), boundary)
        ctx.save_for_backward(torch.from_numpy(result.grad).to(device=theta.device, dtype=theta.dtype))
        return theta.new_tensor(result.value)

    @staticmethod
    def backward(ctx, grad_output):
        (grad,) = ctx.saved_tensors
        return grad_output * grad, None, None


class NeedlemanWunschFunction(torch.autograd.Function):
    """Custom autograd for smoothed Needleman-Wunsch.

    ``gap`` is a 0-d tensor (shared cost, ``gt=None``) or the (n,) vector
    ``gs`` together with an (m,) ``gt``.
    """

    @staticmethod
    def forward(ctx, theta, gap, gt, op):
        gap_np = _to_numpy(gap)
        if gt is None:
            gap_np = float(gap_np)
        result = needleman_wunsch_grad(op, _to_numpy(theta), gap_np, None if gt is None else _to_numpy(gt))

        def like(arr, ref):
            return torch.as_tensor(arr).to(device=ref.device, dtype=ref.dtype)

        grad_theta = like(result.grad, theta)
        if gt is None:
            ctx.save_for_backward(grad_theta, like(result.grad_gap, gap))
        else:
            ctx.save_for_backward(grad_theta, like(result.grad_gs, gap), like(result.grad_gt, gt))
        ctx.scalar_gap = gt is None
        return theta.new_tensor(result.value)

    @staticmethod
    def backward(ctx, grad_output):
        if ctx.scalar_gap:
            grad_theta, grad_gap = ctx.saved_tensors
            return grad_output * grad_theta, grad_output * grad_gap, None, None
        grad_theta, grad_gs, grad_gt = ctx.saved_tensors
        return grad_output * grad_theta, grad_output * grad_gs, grad_output * grad_gt, None


class SmoothDTW(nn.Module):
    """Smoothed DTW distance between two series or embedding sequences."""

    def __init__(
        self,
        op: MaxOperator | None = None,
        boundary: DTWBoundary = DTWBoundary.CLOSED,
        metric: str = "sqeuclidean",
    ) -> None:
        super().__init__()
        self.op = op if op is not None else EntropyMax()
        self.boundary = DTWBoundary(boundary)
        if metric not in {"sqeuclidean", "cosine"}:
            raise InvalidParameterError(f"Unknown metric: {metric!r}", context={"metric": metric})
        self.metric = metric

    def cost_matrix(self, x: torch.Tensor, y: torch.Tensor) -> torch.Tensor:
        if self.metric == "cosine":
            return pairwise_cosine_dist(x, y)
        return pairwise_euclidean_sq(x, y)

    def forward(self, x: torch.Tensor, y: torch.Tensor) -> torch.Tensor:
        return DTWFunction.apply(self.cost_matrix(x, y), self.op, self.boundary)


class SmoothNeedlemanWunsch(nn.Module):
    """Smoothed Needleman-Wunsch score with a learnable shared gap cost."""

    def __init__(self, op: MaxOperator | None = None, gap: float = 1.0) -> None:
        super().__init__()
        self.op = op if op is not None else EntropyMax()
        self.gap = nn.Parameter(torch.tensor(float(gap), dtype=torch.float64))

    def forward(self, theta: torch.Tensor) -> torch.Tensor:
        return NeedlemanWunschFunction.apply(theta, self.gap, None, self.op)
