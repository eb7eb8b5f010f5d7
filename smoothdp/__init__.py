"""smoothdp: differentiable dynamic programming with smoothed max operators.

DTW and Needleman-Wunsch whose scores are differentiable in the cost /
similarity matrix and gap costs, with hand-written backward passes.
"""

from smoothdp.core import *  # noqa: F401,F403
from smoothdp.core import __all__ as _core_all
from smoothdp.exceptions import (
    ConfigurationError,
    DimensionMismatchError,
    EmptyInputError,
    InvalidParameterError,
    SmoothDPError,
)

__version__ = "0.1.0"

__all__ = [
    *_core_all,
    "ConfigurationError",
    "DimensionMismatchError",
    "EmptyInputError",
    "InvalidParameterError",
    "SmoothDPError",
    "__version__",
]
