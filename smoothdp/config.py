import math
import os
from dataclasses import dataclass
from functools import lru_cache
from typing import Literal

from smoothdp.constants import DEFAULT_DTW_BOUNDARY, DEFAULT_GAMMA, DEFAULT_LEAK, DEFAULT_OPERATOR
from smoothdp.exceptions import ConfigurationError


def _env_bool(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "y", "on"}


def _env_float(key: str, default: float) -> float:
    raw = os.getenv(key)
    if raw is None:
        return default
    try:
        return float(raw)
    except ValueError:
        return default


def _env_str(key: str, default: str) -> str:
    raw = os.getenv(key)
    if raw is None:
        return default
    return raw


_OPERATOR_NAMES = {"max", "leaky", "entropy", "squared"}
_BOUNDARIES = {"closed", "open"}
_LOG_LEVELS = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}


@dataclass(frozen=True)
class Settings:
    operator: str = DEFAULT_OPERATOR
    gamma: float = DEFAULT_GAMMA
    leak: float = DEFAULT_LEAK
    dtw_boundary: Literal["closed", "open"] = DEFAULT_DTW_BOUNDARY  # type: ignore[assignment]
    log_level: str = "INFO"
    log_json: bool = True

    def __post_init__(self) -> None:
        """Validate field values at construction time."""
        if self.operator not in _OPERATOR_NAMES:
            raise ConfigurationError(
                f"operator must be one of {sorted(_OPERATOR_NAMES)}, got {self.operator!r}",
                context={"operator": self.operator},
            )
        if self.dtw_boundary not in _BOUNDARIES:
            raise ConfigurationError(
                f"dtw_boundary must be one of {sorted(_BOUNDARIES)}, got {self.dtw_boundary!r}",
                context={"dtw_boundary": self.dtw_boundary},
            )
        if not (self.gamma > 0.0 and math.isfinite(self.gamma)):
            raise ConfigurationError(
                f"gamma must be a finite value > 0, got {self.gamma}",
                context={"gamma": self.gamma},
            )
        if not 0.0 < self.leak < 1.0:
            raise ConfigurationError(
                f"leak must be in the open interval (0, 1), got {self.leak}",
                context={"leak": self.leak},
            )
        if self.log_level not in _LOG_LEVELS:
            raise ConfigurationError(
                f"log_level must be one of {sorted(_LOG_LEVELS)}, got {self.log_level!r}",
                context={"log_level": self.log_level},
            )

    def make_operator(self):
        """Build the configured max operator (parameters validated by the operator)."""
        from smoothdp.core.max_operators import make_operator

        if self.operator == "leaky":
            return make_operator("leaky", self.leak)
        if self.operator in {"entropy", "squared"}:
            return make_operator(self.operator, self.gamma)
        return make_operator("max")

    def make_boundary(self):
        from smoothdp.core.dtw import DTWBoundary

        return DTWBoundary(self.dtw_boundary)

    @staticmethod
    def from_env() -> "Settings":
        return Settings(
            operator=_env_str("SMOOTHDP_OPERATOR", DEFAULT_OPERATOR).strip().lower(),
            gamma=_env_float("SMOOTHDP_GAMMA", DEFAULT_GAMMA),
            leak=_env_float("SMOOTHDP_LEAK", DEFAULT_LEAK),
            dtw_boundary=_env_str("SMOOTHDP_DTW_BOUNDARY", DEFAULT_DTW_BOUNDARY).strip().lower(),  # type: ignore[arg-type]
            log_level=_env_str("SMOOTHDP_LOG_LEVEL", "INFO").strip().upper(),
            log_json=_env_bool("SMOOTHDP_LOG_JSON", True),
        )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings.from_env()
