"""Reading alignments out of a filled DP state.

``Q[i, j, :]`` is the distribution over the predecessor a path takes when it
reaches cell (i, j).  Following its argmax from the terminal cell recovers
the optimal path (exactly, for HardMax); drawing from it gives a random
alignment from the operator's path distribution.
"""

from __future__ import annotations

from collections.abc import Callable
from typing import Literal

import numpy as np

from smoothdp.constants import DTW_DIAG, DTW_LEFT, DTW_UP, NW_DELETION, NW_INSERTION, NW_MATCH
from smoothdp.core.dp_state import DPState
from smoothdp.core.max_operators import gumbel_softmax
from smoothdp.exceptions import InvalidParameterError

Kind = Literal["dtw", "nw"]

# (di, dj) per slot
_DTW_MOVES = {DTW_UP: (1, 0), DTW_LEFT: (0, 1), DTW_DIAG: (1, 1)}
_NW_MOVES = {NW_DELETION: (1, 0), NW_MATCH: (1, 1), NW_INSERTION: (0, 1)}


def _walk(state: DPState, kind: Kind, choose: Callable[[np.ndarray], int]) -> list:
    n, m = state.n, state.m
    Q = state.Q
    i, j = n, m
    steps: list = []

    if kind == "dtw":
        # Warping paths visit theta cells; stop on the boundary row/column.
        while i >= 1 and j >= 1:
            steps.append((i - 1, j - 1))
            di, dj = _DTW_MOVES[choose(Q[i, j])]
            i, j = i - di, j - dj
    elif kind == "nw":
        # Alignment columns: (i, j) match, (i, None) gap in t, (None, j) gap in s.
        while i > 0 or j > 0:
            slot = choose(Q[i, j])
            if slot == NW_MATCH:
                steps.append((i - 1, j - 1))
            elif slot == NW_DELETION:
                steps.append((i - 1, None))
            else:
                steps.append((None, j - 1))
            di, dj = _NW_MOVES[slot]
            i, j = i - di, j - dj
    else:
        raise InvalidParameterError(f"Unknown path kind: {kind!r}", context={"kind": kind})

    steps.reverse()
    return steps


def argmax_path(state: DPState, kind: Kind) -> list[tuple]:
    """Most probable predecessor at each step, from the terminal cell back.

    Returns 0-based pairs in start-to-end order.  For ``"nw"`` a gap is
    reported with ``None`` on the side that is not consumed.
    """
    return _walk(state, kind, lambda q: int(np.argmax(q)))


def sample_path(state: DPState, kind: Kind, rng: np.random.Generator | None = None) -> list[tuple]:
    """Random walk from the terminal cell drawing each predecessor from Q."""
    rng = rng if rng is not None else np.random.default_rng()

    def choose(q: np.ndarray) -> int:
        # Gumbel-max: argmax(log q + G) is an exact draw from q.
        with np.errstate(divide="ignore"):
            logits = np.log(np.clip(q, 0.0, None))
        return int(np.argmax(gumbel_softmax(logits, 1.0, rng)))

    return _walk(state, kind, choose)


def path_matrix(path: list[tuple], shape: tuple[int, int]) -> np.ndarray:
    """0/1 matrix marking the theta cells a path visits (gaps are skipped)."""
    out = np.zeros(shape, dtype=np.float64)
    for i, j in path:
        if i is not None and j is not None:
            out[i, j] = 1.0
    return out
