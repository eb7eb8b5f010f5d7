"""Shared exception hierarchy for smoothdp.

All library exceptions inherit from ``SmoothDPError`` which carries:

- ``error_code``: a machine-readable uppercase string (e.g. ``"DIMENSION_MISMATCH"``)
- ``context``: an optional dict of structured metadata for diagnostics
"""

from __future__ import annotations

from typing import Any


class SmoothDPError(ValueError):
    """Base class for all smoothdp exceptions.

    Parameters
    ----------
    message:
        Human-readable error description.
    error_code:
        Machine-readable code such as ``"INVALID_PARAMETER"`` or
        ``"EMPTY_INPUT"``.  Defaults to ``"SMOOTHDP_ERROR"``.
    context:
        Optional dict of structured metadata (shapes, parameter values, etc.)
        that will be included in log records.
    """

    def __init__(
        self,
        message: str = "",
        *,
        error_code: str = "SMOOTHDP_ERROR",
        context: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message)
        self.error_code: str = error_code
        self.context: dict[str, Any] = context or {}


class InvalidParameterError(SmoothDPError):
    """Raised when a max operator is constructed with an out-of-range parameter."""

    def __init__(
        self,
        message: str = "",
        *,
        error_code: str = "INVALID_PARAMETER",
        context: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message, error_code=error_code, context=context)


class DimensionMismatchError(SmoothDPError):
    """Raised when an input, gap vector or DP buffer has an incompatible shape."""

    def __init__(
        self,
        message: str = "",
        *,
        error_code: str = "DIMENSION_MISMATCH",
        context: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message, error_code=error_code, context=context)


class EmptyInputError(SmoothDPError):
    """Raised when an operator or engine receives a zero-length input."""

    def __init__(
        self,
        message: str = "",
        *,
        error_code: str = "EMPTY_INPUT",
        context: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message, error_code=error_code, context=context)


class ConfigurationError(SmoothDPError):
    """Raised when settings read from the environment cannot be honoured."""

    def __init__(
        self,
        message: str = "",
        *,
        error_code: str = "CONFIGURATION_ERROR",
        context: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message, error_code=error_code, context=context)
