"""Numpy core: max operators, DP state, DTW and Needleman-Wunsch engines."""

from smoothdp.core.adapter import dtw_value_and_vjp, nw_value_and_vjp
from smoothdp.core.dp_state import DPState
from smoothdp.core.dtw import DTWBoundary, DTWResult, dtw, dtw_divergence, dtw_grad
from smoothdp.core.max_operators import (
    EntropyMax,
    HardMax,
    LeakyMax,
    MaxOperator,
    SquaredMax,
    gumbel_softmax,
    make_operator,
    maximum,
    maximum_and_argmax,
    minimum,
    minimum_and_argmin,
    smoothmax,
    smoothmax_argmax,
    smoothmin,
    smoothmin_argmin,
)
from smoothdp.core.needleman_wunsch import NWResult, needleman_wunsch, needleman_wunsch_grad
from smoothdp.core.paths import argmax_path, path_matrix, sample_path

__all__ = [
    "DPState",
    "DTWBoundary",
    "DTWResult",
    "EntropyMax",
    "HardMax",
    "LeakyMax",
    "MaxOperator",
    "NWResult",
    "SquaredMax",
    "argmax_path",
    "dtw",
    "dtw_divergence",
    "dtw_grad",
    "dtw_value_and_vjp",
    "gumbel_softmax",
    "make_operator",
    "maximum",
    "maximum_and_argmax",
    "minimum",
    "minimum_and_argmin",
    "needleman_wunsch",
    "needleman_wunsch_grad",
    "nw_value_and_vjp",
    "path_matrix",
    "sample_path",
    "smoothmax",
    "smoothmax_argmax",
    "smoothmin",
    "smoothmin_argmin",
]
