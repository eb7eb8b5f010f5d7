"""Tests for core.dp_state — lattice allocation and bounds-safe access."""

from __future__ import annotations

import numpy as np
import pytest

from smoothdp.core.dp_state import DPState
from smoothdp.exceptions import DimensionMismatchError, EmptyInputError


class TestAllocate:
    def test_shapes_include_padding(self) -> None:
        state = DPState.allocate(4, 3)
        assert state.D.shape == (6, 5)
        assert state.E.shape == (6, 5)
        assert state.Q.shape == (6, 5, 3)
        assert (state.n, state.m, state.k) == (4, 3, 3)

    def test_zero_filled(self) -> None:
        state = DPState.allocate(2, 2, k=2)
        assert not state.D.any()
        assert not state.E.any()
        assert not state.Q.any()

    @pytest.mark.parametrize("n,m", [(0, 3), (3, 0), (-1, 2)])
    def test_empty_lattice_rejected(self, n, m) -> None:
        with pytest.raises(EmptyInputError):
            DPState.allocate(n, m)

    def test_for_theta(self) -> None:
        state = DPState.for_theta(np.zeros((5, 7)))
        assert (state.n, state.m) == (5, 7)

    def test_for_theta_rejects_vectors(self) -> None:
        with pytest.raises(DimensionMismatchError):
            DPState.for_theta(np.zeros(5))


class TestAccess:
    def test_core_views_are_views(self) -> None:
        state = DPState.allocate(2, 3)
        state.core_D()[:] = 7.0
        assert state.D[1:3, 1:4].sum() == 7.0 * 6
        assert state.D[0, :].sum() == 0.0
        assert state.core_Q().shape == (2, 3, 3)
        assert state.core_E().shape == (2, 3)

    def test_cell_bounds(self) -> None:
        state = DPState.allocate(2, 2)
        state.D[3, 3] = 1.5
        d, e, q = state.cell(3, 3)
        assert d == 1.5 and e == 0.0 and q.shape == (3,)
        with pytest.raises(IndexError):
            state.cell(-1, 0)
        with pytest.raises(IndexError):
            state.cell(4, 0)

    def test_reset(self) -> None:
        state = DPState.allocate(2, 2)
        state.D[:] = 1.0
        state.Q[:] = 1.0
        state.E[:] = 1.0
        state.reset()
        assert not state.D.any() and not state.Q.any() and not state.E.any()

    def test_check_theta(self) -> None:
        state = DPState.allocate(2, 3)
        state.check_theta(np.zeros((2, 3)))
        with pytest.raises(DimensionMismatchError) as exc:
            state.check_theta(np.zeros((3, 2)))
        assert exc.value.context["state"] == (2, 3, 3)
        with pytest.raises(DimensionMismatchError):
            state.check_theta(np.zeros((2, 3)), k=2)

    def test_terminal_value(self) -> None:
        state = DPState.allocate(2, 3)
        state.D[2, 3] = -4.0
        assert state.terminal_value == -4.0
