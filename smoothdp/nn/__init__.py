"""torch integration for the smoothed DP engines.

- DTWFunction / NeedlemanWunschFunction: custom autograd over the engines
- SmoothDTW: nn.Module on two sequences with a pairwise cost
- SmoothNeedlemanWunsch: nn.Module with a learnable gap cost
"""

from __future__ import annotations

import importlib

__all__ = [
    "DTWFunction",
    "NeedlemanWunschFunction",
    "SmoothDTW",
    "SmoothNeedlemanWunsch",
    "pairwise_euclidean_sq",
    "pairwise_cosine_dist",
]


def __getattr__(name: str):
    """Lazy imports so non-torch environments don't crash on import."""
    _map = {
        "DTWFunction": ".autograd",
        "NeedlemanWunschFunction": ".autograd",
        "SmoothDTW": ".autograd",
        "SmoothNeedlemanWunsch": ".autograd",
        "pairwise_euclidean_sq": ".functional",
        "pairwise_cosine_dist": ".functional",
    }
    if name in _map:
        mod = importlib.import_module(_map[name], __package__)
        return getattr(mod, name)
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
