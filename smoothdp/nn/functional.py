"""Pairwise cost matrices in torch, so gradients reach the embeddings."""

from __future__ import annotations

import torch
import torch.nn.functional as F


def pairwise_euclidean_sq(x: torch.Tensor, y: torch.Tensor) -> torch.Tensor:
    """Squared-Euclidean pairwise distance matrix.

    Args:
        x: (M,) series or (M, D) embeddings.
        y: (N,) series or (N, D) embeddings.

    Returns:
        (M, N) squared Euclidean distances.
    """
    if x.dim() == 1:
        x = x.unsqueeze(-1)
    if y.dim() == 1:
        y = y.unsqueeze(-1)
    diff = x.unsqueeze(1) - y.unsqueeze(0)  # (M, N, D)
    return torch.sum(diff**2, dim=-1)


def pairwise_cosine_dist(x: torch.Tensor, y: torch.Tensor) -> torch.Tensor:
    """Cosine distance cost matrix: 1 - cosine_similarity, values in [0, 2].

    Accepts (M,) / (N,) series or (M, D) / (N, D) embeddings.
    """
    if x.dim() == 1:
        x = x.unsqueeze(-1)
    if y.dim() == 1:
        y = y.unsqueeze(-1)
    x_norm = F.normalize(x, dim=-1)
    y_norm = F.normalize(y, dim=-1)
    return 1.0 - x_norm @ y_norm.T
