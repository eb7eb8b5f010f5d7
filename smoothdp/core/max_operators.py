"""Smoothed max operators and their gradients.

A max operator turns the hard ``max`` of a candidate vector into a smooth,
convex surrogate whose gradient is a point of the probability simplex (a
"soft argmax").  Plugging one into a dynamic program makes the optimal score
differentiable in the DP inputs.

Variants (closed set, dispatched with ``match``):
    HardMax            — ordinary max, one-hot gradient (first argmax on ties)
    LeakyMax(p)        — (1-p)·max + p·mean over finite entries
    EntropyMax(gamma)  — gamma·logsumexp(x/gamma), softmax gradient
    SquaredMax(gamma)  — squared-norm regularised max, sparsemax gradient

Reference:
    Mensch, A. & Blondel, M. (2018). Differentiable Dynamic Programming for
    Structured Prediction and Attention. Proceedings of ICML 2018.

Entries equal to ``-inf`` are structurally excluded candidates and receive
zero probability.  Inputs with no finite entry, or with a ``+inf`` entry,
are resolved by the hard max for every variant.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Union

import numpy as np
from scipy.special import logsumexp, softmax

from smoothdp.constants import DEFAULT_GAMMA, DEFAULT_LEAK
from smoothdp.core.math_utils import finite_dot, finite_mean, project_to_simplex
from smoothdp.exceptions import DimensionMismatchError, EmptyInputError, InvalidParameterError

# ---------------------------------------------------------------------------
# Operator variants
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class HardMax:
    """Ordinary (non-smoothed) max."""


@dataclass(frozen=True)
class LeakyMax:
    """Leaks a fraction ``p`` of the mass to the mean of the finite entries."""

    p: float = DEFAULT_LEAK

    def __post_init__(self) -> None:
        if not 0.0 < self.p < 1.0:
            raise InvalidParameterError(
                f"p must be in the open interval (0, 1), got {self.p}",
                context={"operator": "LeakyMax", "p": self.p},
            )


@dataclass(frozen=True)
class EntropyMax:
    """Negative-entropy regularised max (log-sum-exp with temperature gamma)."""

    gamma: float = DEFAULT_GAMMA

    def __post_init__(self) -> None:
        if not (self.gamma > 0.0 and np.isfinite(self.gamma)):
            raise InvalidParameterError(
                f"gamma must be > 0, got {self.gamma}",
                context={"operator": "EntropyMax", "gamma": self.gamma},
            )


@dataclass(frozen=True)
class SquaredMax:
    """Squared 2-norm regularised max; the gradient is a sparse simplex point."""

    gamma: float = DEFAULT_GAMMA

    def __post_init__(self) -> None:
        if not (self.gamma > 0.0 and np.isfinite(self.gamma)):
            raise InvalidParameterError(
                f"gamma must be > 0, got {self.gamma}",
                context={"operator": "SquaredMax", "gamma": self.gamma},
            )


MaxOperator = Union[HardMax, LeakyMax, EntropyMax, SquaredMax]


def make_operator(name: str, param: float | None = None) -> MaxOperator:
    """Build an operator from its short name (``max``, ``leaky``, ``entropy``, ``squared``)."""
    key = name.strip().lower()
    if key in {"max", "hard", "hardmax"}:
        return HardMax()
    if key in {"leaky", "leakymax"}:
        return LeakyMax(DEFAULT_LEAK if param is None else float(param))
    if key in {"entropy", "entropymax"}:
        return EntropyMax(DEFAULT_GAMMA if param is None else float(param))
    if key in {"squared", "squaredmax", "sparsemax"}:
        return SquaredMax(DEFAULT_GAMMA if param is None else float(param))
    raise InvalidParameterError(f"Unknown max operator: {name!r}", context={"operator": name})


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _as_vector(x) -> np.ndarray:
    arr = np.asarray(x, dtype=np.float64)
    if arr.ndim != 1:
        raise DimensionMismatchError(
            f"max operators take a 1-D vector, got shape {arr.shape}",
            context={"shape": arr.shape},
        )
    if arr.size == 0:
        raise EmptyInputError("max operators need at least one candidate")
    return arr


def _degenerate(x: np.ndarray) -> bool:
    return not np.isfinite(x).any() or bool(np.isposinf(x).any())


def _hard(x: np.ndarray) -> tuple[float, np.ndarray]:
    i = int(np.argmax(x))
    q = np.zeros_like(x)
    q[i] = 1.0
    return float(x[i]), q


# ---------------------------------------------------------------------------
# Maximum
# ---------------------------------------------------------------------------


def maximum(op: MaxOperator, x) -> float:
    """Smoothed maximum of ``x`` under ``op``."""
    x = _as_vector(x)
    match op:
        case HardMax():
            return float(np.max(x))
        case LeakyMax() | EntropyMax() | SquaredMax() if _degenerate(x):
            return float(np.max(x))
        case LeakyMax(p=p):
            return float((1.0 - p) * np.max(x) + p * finite_mean(x))
        case EntropyMax(gamma=gamma):
            return float(gamma * logsumexp(x / gamma))
        case SquaredMax(gamma=gamma):
            q = project_to_simplex(x / gamma)
            return finite_dot(q, x) - 0.5 * gamma * float(q @ q)
        case _:
            raise TypeError(f"Not a max operator: {op!r}")


def maximum_and_argmax(op: MaxOperator, x) -> tuple[float, np.ndarray]:
    """Smoothed maximum and its gradient w.r.t. ``x``.

    The gradient is non-negative and sums to one: it is the soft argmax
    distribution over the candidates.
    """
    x = _as_vector(x)
    match op:
        case HardMax():
            return _hard(x)
        case LeakyMax() | EntropyMax() | SquaredMax() if _degenerate(x):
            return _hard(x)
        case LeakyMax(p=p):
            mask = np.isfinite(x)
            i = int(np.argmax(x))
            q = np.where(mask, p / int(mask.sum()), 0.0)
            q[i] += 1.0 - p
            return float((1.0 - p) * x[i] + p * finite_mean(x)), q
        case EntropyMax(gamma=gamma):
            z = x / gamma
            return float(gamma * logsumexp(z)), softmax(z)
        case SquaredMax(gamma=gamma):
            q = project_to_simplex(x / gamma)
            return finite_dot(q, x) - 0.5 * gamma * float(q @ q), q
        case _:
            raise TypeError(f"Not a max operator: {op!r}")


# ---------------------------------------------------------------------------
# Minimum (derived from the max operator by negation)
# ---------------------------------------------------------------------------


def minimum(op: MaxOperator, x) -> float:
    """Smoothed minimum: ``-maximum(op, -x)``."""
    return -maximum(op, -_as_vector(x))


def minimum_and_argmin(op: MaxOperator, x) -> tuple[float, np.ndarray]:
    """Smoothed minimum and its gradient w.r.t. ``x``.

    d/dx [-max(-x)] = grad_max(-x), so the max operator's distribution is
    returned unchanged.
    """
    value, q = maximum_and_argmax(op, -_as_vector(x))
    return -value, q


# Short aliases.
smoothmax = maximum
smoothmin = minimum
smoothmax_argmax = maximum_and_argmax
smoothmin_argmin = minimum_and_argmin


def gumbel_softmax(
    x,
    gamma: float = DEFAULT_GAMMA,
    rng: np.random.Generator | None = None,
) -> np.ndarray:
    """Softmax of Gumbel-perturbed logits ``(x + G) / gamma``.

    As ``gamma`` shrinks the draw approaches a one-hot sample from
    ``softmax(x)``; ``-inf`` logits are never selected.
    """
    if not gamma > 0.0:
        raise InvalidParameterError(f"gamma must be > 0, got {gamma}", context={"gamma": gamma})
    x = _as_vector(x)
    rng = rng if rng is not None else np.random.default_rng()
    g = rng.gumbel(size=x.shape)
    return softmax((x + g) / gamma)
