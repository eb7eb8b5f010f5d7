"""Tests for core.needleman_wunsch — alignment scores and gap-cost gradients."""

from __future__ import annotations

import math

import numpy as np
import pytest

from conftest import ALL_OPERATORS, SEQ_DIST, finite_difference, op_id
from smoothdp.core.dp_state import DPState
from smoothdp.core.max_operators import EntropyMax, HardMax, LeakyMax, SquaredMax
from smoothdp.core.needleman_wunsch import needleman_wunsch, needleman_wunsch_grad
from smoothdp.core.paths import argmax_path, path_matrix
from smoothdp.exceptions import DimensionMismatchError, EmptyInputError


def _all_alignment_scores(theta: np.ndarray, gs: np.ndarray, gt: np.ndarray):
    """Yield the score of every global alignment (exhaustive)."""
    n, m = theta.shape

    def walk(i: int, j: int, acc: float):
        if i == n and j == m:
            yield acc
            return
        if i < n and j < m:
            yield from walk(i + 1, j + 1, acc + theta[i, j])
        if i < n:
            yield from walk(i + 1, j, acc - gs[i])
        if j < m:
            yield from walk(i, j + 1, acc - gt[j])

    yield from walk(0, 0, 0.0)


# ---------------------------------------------------------------------------
# Forward values
# ---------------------------------------------------------------------------


class TestForward:
    @pytest.mark.parametrize("gap", [0.5, 1.0, 3.0])
    def test_hard_max_is_best_alignment(self, gap) -> None:
        theta = -SEQ_DIST
        n, m = theta.shape
        best = max(_all_alignment_scores(theta, np.full(n, gap), np.full(m, gap)))
        assert needleman_wunsch(HardMax(), theta, gap) == pytest.approx(best)

    def test_hard_max_with_gap_vectors(self, rng) -> None:
        theta = rng.normal(size=(4, 3))
        gs = rng.uniform(0.1, 2.0, size=4)
        gt = rng.uniform(0.1, 2.0, size=3)
        best = max(_all_alignment_scores(theta, gs, gt))
        assert needleman_wunsch(HardMax(), theta, gs, gt) == pytest.approx(best)

    def test_entropy_is_log_partition(self, rng) -> None:
        # With gamma = 1 the score is log-sum-exp over every alignment.
        theta = rng.normal(size=(3, 3))
        g = np.full(3, 0.7)
        scores = np.array(list(_all_alignment_scores(theta, g, g)))
        expected = float(np.log(np.sum(np.exp(scores))))
        assert needleman_wunsch(EntropyMax(1.0), theta, 0.7) == pytest.approx(expected, rel=1e-10)

    def test_scalar_gap_equals_constant_vectors(self, rng) -> None:
        theta = rng.normal(size=(5, 4))
        for op in ALL_OPERATORS:
            a = needleman_wunsch(op, theta, 0.8)
            b = needleman_wunsch(op, theta, np.full(5, 0.8), np.full(4, 0.8))
            assert a == pytest.approx(b, abs=1e-12)

    def test_boundary_rows_are_gap_runs(self) -> None:
        result = needleman_wunsch_grad(HardMax(), -SEQ_DIST, 1.0)
        D = result.state.D
        n, m = SEQ_DIST.shape
        np.testing.assert_allclose(D[: n + 1, 0], -np.arange(n + 1))
        np.testing.assert_allclose(D[0, : m + 1], -np.arange(m + 1))


# ---------------------------------------------------------------------------
# Gradients
# ---------------------------------------------------------------------------


class TestGradient:
    @pytest.mark.parametrize(
        "op", [LeakyMax(0.1), EntropyMax(1.0), EntropyMax(0.3), SquaredMax(1.0)], ids=op_id
    )
    def test_theta_matches_finite_difference(self, op, rng) -> None:
        theta = rng.normal(size=(4, 5))
        grad = needleman_wunsch_grad(op, theta, 0.6).grad
        fd = finite_difference(lambda t: needleman_wunsch(op, t, 0.6), theta)
        np.testing.assert_allclose(grad, fd, rtol=1e-4, atol=1e-6)

    @pytest.mark.parametrize("op", [EntropyMax(1.0), SquaredMax(0.5)], ids=op_id)
    def test_gap_vectors_match_finite_difference(self, op, rng) -> None:
        theta = rng.normal(size=(4, 3))
        gs = rng.uniform(0.2, 1.5, size=4)
        gt = rng.uniform(0.2, 1.5, size=3)
        result = needleman_wunsch_grad(op, theta, gs, gt)
        fd_gs = finite_difference(lambda v: needleman_wunsch(op, theta, v, gt), gs)
        fd_gt = finite_difference(lambda v: needleman_wunsch(op, theta, gs, v), gt)
        np.testing.assert_allclose(result.grad_gs, fd_gs, rtol=1e-4, atol=1e-6)
        np.testing.assert_allclose(result.grad_gt, fd_gt, rtol=1e-4, atol=1e-6)
        assert result.grad_gap is None

    def test_scalar_gap_matches_finite_difference(self, rng) -> None:
        op = EntropyMax(0.5)
        theta = rng.normal(size=(3, 4))
        result = needleman_wunsch_grad(op, theta, 0.9)
        eps = 1e-6
        fd = (needleman_wunsch(op, theta, 0.9 + eps) - needleman_wunsch(op, theta, 0.9 - eps)) / (2 * eps)
        assert result.grad_gap == pytest.approx(fd, rel=1e-4, abs=1e-6)
        assert result.grad_gap == pytest.approx(result.grad_gs.sum() + result.grad_gt.sum())

    def test_gap_gradient_counts_gaps(self) -> None:
        # Gap cost gradient = -(expected number of gaps); sign follows the score.
        result = needleman_wunsch_grad(HardMax(), -SEQ_DIST, 1.0)
        path = argmax_path(result.state, "nw")
        n_gaps = sum(1 for i, j in path if i is None or j is None)
        assert result.grad_gap == pytest.approx(-n_gaps)

    def test_hard_max_gradient_is_argmax_path(self) -> None:
        theta = -SEQ_DIST
        result = needleman_wunsch_grad(HardMax(), theta, 1.0)
        assert set(np.unique(result.state.core_Q())) <= {0.0, 1.0}
        path = argmax_path(result.state, "nw")
        np.testing.assert_array_equal(result.grad, path_matrix(path, theta.shape))
        matched = sum(theta[i, j] for i, j in path if i is not None and j is not None)
        n_gaps = sum(1 for i, j in path if i is None or j is None)
        assert matched - n_gaps == pytest.approx(result.value)

    @pytest.mark.parametrize("op", ALL_OPERATORS, ids=op_id)
    def test_match_probabilities_in_unit_interval(self, op, rng) -> None:
        result = needleman_wunsch_grad(op, rng.normal(size=(5, 6)), 0.5)
        assert np.all(result.grad >= -1e-12)
        assert np.all(result.grad <= 1.0 + 1e-9)
        assert np.all(result.grad_gs <= 1e-12)
        assert np.all(result.grad_gt <= 1e-12)


# ---------------------------------------------------------------------------
# State handling and validation
# ---------------------------------------------------------------------------


class TestStateAndValidation:
    def test_inputs_not_mutated(self, rng) -> None:
        theta = rng.normal(size=(3, 4))
        gs = np.ones(3)
        gt = np.ones(4)
        snapshot = (theta.copy(), gs.copy(), gt.copy())
        needleman_wunsch_grad(EntropyMax(), theta, gs, gt)
        for before, after in zip(snapshot, (theta, gs, gt)):
            np.testing.assert_array_equal(before, after)

    def test_repeated_runs_are_identical(self) -> None:
        a = needleman_wunsch_grad(SquaredMax(1.0), -SEQ_DIST, 1.0)
        b = needleman_wunsch_grad(SquaredMax(1.0), -SEQ_DIST, 1.0)
        assert a.value == b.value
        np.testing.assert_array_equal(a.state.E, b.state.E)
        np.testing.assert_array_equal(a.state.Q, b.state.Q)

    def test_state_reuse(self) -> None:
        state = DPState.for_theta(SEQ_DIST)
        first = needleman_wunsch_grad(EntropyMax(), -SEQ_DIST, 1.0, state=state).value
        second = needleman_wunsch_grad(EntropyMax(), -SEQ_DIST, 1.0, state=state).value
        assert first == second

    def test_state_shape_mismatch(self) -> None:
        with pytest.raises(DimensionMismatchError):
            needleman_wunsch(EntropyMax(), -SEQ_DIST, 1.0, state=DPState.allocate(5, 6))

    def test_gap_vector_shape_mismatch(self) -> None:
        with pytest.raises(DimensionMismatchError) as exc:
            needleman_wunsch(EntropyMax(), np.zeros((3, 4)), np.ones(4), np.ones(4))
        assert exc.value.context["theta"] == (3, 4)

    def test_vector_gap_requires_both_sides(self) -> None:
        with pytest.raises(DimensionMismatchError):
            needleman_wunsch(EntropyMax(), np.zeros((3, 4)), np.ones(3))

    def test_empty_theta(self) -> None:
        with pytest.raises(EmptyInputError):
            needleman_wunsch(EntropyMax(), np.zeros((2, 0)), 1.0)

    def test_minus_inf_similarity_forbids_match(self) -> None:
        theta = np.array([[-np.inf, 1.0], [1.0, -np.inf]])
        result = needleman_wunsch_grad(EntropyMax(), theta, 0.5)
        assert math.isfinite(result.value)
        assert result.grad[0, 0] == 0.0 and result.grad[1, 1] == 0.0
