"""Finite-aware vector helpers and pairwise cost matrices.

Entries equal to ``-inf`` mark structurally excluded candidates (e.g. the
unreachable boundary of a closed DTW lattice seen through a negated min);
the helpers here skip them instead of letting them poison sums.
"""

from __future__ import annotations

import numpy as np

from smoothdp.exceptions import DimensionMismatchError, EmptyInputError


def finite_mean(x: np.ndarray) -> float:
    """Mean over the finite entries of ``x`` (``nan`` if there are none)."""
    mask = np.isfinite(x)
    if not mask.any():
        return float("nan")
    return float(x[mask].mean())


def finite_dot(q: np.ndarray, x: np.ndarray) -> float:
    """Inner product restricted to entries where ``x`` is finite.

    Excluded entries carry zero weight in ``q``, so this avoids ``0 * -inf``.
    """
    mask = np.isfinite(x)
    return float(np.dot(q[mask], x[mask]))


def project_to_simplex(v: np.ndarray, z: float = 1.0) -> np.ndarray:
    """Euclidean projection of ``v`` onto the simplex ``{w >= 0, sum(w) = z}``.

    Sort-based algorithm of Held et al. / Duchi et al.: find the largest rho
    whose threshold keeps the partial sums positive, then clip-and-shift.
    ``-inf`` entries are projected to exactly zero.
    """
    v = np.asarray(v, dtype=np.float64)
    if v.ndim != 1:
        raise DimensionMismatchError(
            f"project_to_simplex expects a 1-D vector, got shape {v.shape}",
            context={"shape": v.shape},
        )
    mask = np.isfinite(v)
    if not mask.any():
        raise EmptyInputError("project_to_simplex needs at least one finite entry")

    finite = v[mask]
    u = np.sort(finite)[::-1]
    cssv = np.cumsum(u) - z
    ind = np.arange(1, u.size + 1)
    cond = u - cssv / ind > 0
    rho = ind[cond][-1]
    theta = cssv[cond][-1] / rho

    w = np.zeros_like(v)
    w[mask] = np.maximum(finite - theta, 0.0)
    return w


def l2_normalize(x: np.ndarray, axis: int = -1) -> np.ndarray:
    norms = np.linalg.norm(x, axis=axis, keepdims=True).clip(1e-12)
    return np.asarray(x / norms)


def _as_points(x) -> np.ndarray:
    """(n,) series -> (n, 1) points; (n, D) embeddings pass through."""
    arr = np.asarray(x, dtype=np.float64)
    if arr.ndim == 1:
        return arr[:, None]
    if arr.ndim != 2:
        raise DimensionMismatchError(
            f"expected a (n,) series or (n, D) embeddings, got shape {arr.shape}",
            context={"shape": arr.shape},
        )
    return arr


def pairwise_sq_euclidean(x: np.ndarray, y: np.ndarray) -> np.ndarray:
    """Squared-Euclidean cost matrix ``theta[i, j] = ||x_i - y_j||^2``.

    Args:
        x: (n,) series or (n, D) embeddings.
        y: (m,) series or (m, D) embeddings.

    Returns:
        (n, m) cost matrix, float64.
    """
    x2 = _as_points(x)
    y2 = _as_points(y)
    if x2.shape[1] != y2.shape[1]:
        raise DimensionMismatchError(
            f"Feature dim mismatch: x has {x2.shape[1]}, y has {y2.shape[1]}",
            context={"x_shape": x2.shape, "y_shape": y2.shape},
        )
    diff = x2[:, None, :] - y2[None, :, :]
    return np.sum(diff**2, axis=-1)


def pairwise_cosine_distance(x: np.ndarray, y: np.ndarray) -> np.ndarray:
    """Cosine distance cost matrix ``1 - cos(x_i, y_j)``, values in [0, 2].

    Accepts (n,) series or (n, D) embeddings like :func:`pairwise_sq_euclidean`.
    """
    x2 = _as_points(x)
    y2 = _as_points(y)
    if x2.shape[1] != y2.shape[1]:
        raise DimensionMismatchError(
            f"Feature dim mismatch: x has {x2.shape[1]}, y has {y2.shape[1]}",
            context={"x_shape": x2.shape, "y_shape": y2.shape},
        )
    dot = l2_normalize(x2) @ l2_normalize(y2).T
    return 1.0 - np.clip(dot, -1.0, 1.0)
