"""Storage for one differentiable DP computation.

Key notation:
    n, m — lengths of the two sequences (rows / columns of theta)
    k    — number of predecessor slots per cell
    D    — (n+2) × (m+2) forward value lattice
    Q    — (n+2) × (m+2) × k per-cell soft-argmax over predecessors
    E    — (n+2) × (m+2) backward sensitivity lattice

Row/column 0 hold the boundary; row n+1 / column m+1 hold the terminal
sentinel that seeds the backward pass.  The core block ``[1:n+1, 1:m+1]``
lines up with ``theta[0:n, 0:m]``.
"""

from __future__ import annotations

from dataclasses import dataclass

import numpy as np

from smoothdp.constants import LATTICE_PADDING, NUM_SLOTS
from smoothdp.exceptions import DimensionMismatchError, EmptyInputError


@dataclass
class DPState:
    """Owns the D / Q / E buffers of a single alignment.

    A state is mutated in place by one forward pass followed by one backward
    pass.  Do not share an instance between concurrent alignments.
    """

    D: np.ndarray
    E: np.ndarray
    Q: np.ndarray

    @classmethod
    def allocate(cls, n: int, m: int, k: int = NUM_SLOTS) -> DPState:
        if n < 1 or m < 1:
            raise EmptyInputError(
                f"DP lattice needs n >= 1 and m >= 1, got n={n}, m={m}",
                context={"n": n, "m": m},
            )
        if k < 1:
            raise DimensionMismatchError(f"k must be >= 1, got {k}", context={"k": k})
        shape = (n + LATTICE_PADDING, m + LATTICE_PADDING)
        return cls(
            D=np.zeros(shape, dtype=np.float64),
            E=np.zeros(shape, dtype=np.float64),
            Q=np.zeros(shape + (k,), dtype=np.float64),
        )

    @classmethod
    def for_theta(cls, theta: np.ndarray, k: int = NUM_SLOTS) -> DPState:
        theta = np.asarray(theta)
        if theta.ndim != 2:
            raise DimensionMismatchError(
                f"theta must be 2-D, got shape {theta.shape}",
                context={"shape": theta.shape},
            )
        return cls.allocate(theta.shape[0], theta.shape[1], k)

    @property
    def n(self) -> int:
        return self.D.shape[0] - LATTICE_PADDING

    @property
    def m(self) -> int:
        return self.D.shape[1] - LATTICE_PADDING

    @property
    def k(self) -> int:
        return self.Q.shape[2]

    def reset(self) -> None:
        """Zero-fill every buffer so the state can host another pass."""
        self.D.fill(0.0)
        self.E.fill(0.0)
        self.Q.fill(0.0)

    def check_theta(self, theta: np.ndarray, k: int = NUM_SLOTS) -> None:
        """Raise DimensionMismatchError unless this state fits ``theta``."""
        if theta.ndim != 2 or theta.shape != (self.n, self.m) or self.k != k:
            raise DimensionMismatchError(
                f"DP state sized ({self.n}, {self.m}, k={self.k}) does not fit theta "
                f"of shape {theta.shape} with k={k}",
                context={"state": (self.n, self.m, self.k), "theta": theta.shape, "k": k},
            )

    # -- core (unpadded) read access ---------------------------------------

    def core_D(self) -> np.ndarray:
        return self.D[1 : self.n + 1, 1 : self.m + 1]

    def core_E(self) -> np.ndarray:
        return self.E[1 : self.n + 1, 1 : self.m + 1]

    def core_Q(self) -> np.ndarray:
        return self.Q[1 : self.n + 1, 1 : self.m + 1, :]

    def cell(self, i: int, j: int) -> tuple[float, float, np.ndarray]:
        """(D, E, Q) at padded lattice coordinates, without negative wrap-around."""
        if not (0 <= i < self.D.shape[0] and 0 <= j < self.D.shape[1]):
            raise IndexError(f"cell ({i}, {j}) outside lattice of shape {self.D.shape}")
        return float(self.D[i, j]), float(self.E[i, j]), self.Q[i, j, :].copy()

    @property
    def terminal_value(self) -> float:
        return float(self.D[self.n, self.m])
