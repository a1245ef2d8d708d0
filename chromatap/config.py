"""Configuration for the spectrum-to-chroma reduction.

:class:`ChromaConfig` groups the numeric policy that used to be scattered
through the reduction formulas.  It is immutable, so a single instance can
be shared between the pipeline, the reducer and any test without copying.
"""

from __future__ import annotations

import math
import numbers
from dataclasses import dataclass

from .constants import (
    ACTIVITY_THRESHOLD,
    DECAY_FACTOR,
    DEFAULT_SENSITIVITY,
    HIGH_CUT_BIN,
    LOW_CUT_BIN,
    MUSIC_THRESHOLD,
    SENSITIVITY_RANGE,
    SKIP_BINS,
)
from .errors import ConfigurationError


@dataclass(frozen=True)
class ChromaConfig:
    """Numeric policy of the loudness gate and chroma reducer.

    Attributes:
        skip_bins: Number of lowest bins ignored when measuring loudness.
        activity_threshold: Amplified loudness at or below which the
            previous chroma vector is decayed instead of recomputed.
        decay_factor: Multiplier applied to every chroma bin per silent
            frame.  Must lie strictly between 0 and 1.
        low_cut: First bin index (inclusive) used for pitch classes.
        high_cut: Last bin index (inclusive) used for pitch classes.
        music_threshold: Amplified loudness above which a frame is
            reported as music.

    Example:
        >>> config = ChromaConfig(decay_factor=0.9)
        >>> pipeline = ChromaPipeline(44_100, config=config)
    """

    skip_bins: int = SKIP_BINS
    activity_threshold: float = ACTIVITY_THRESHOLD
    decay_factor: float = DECAY_FACTOR
    low_cut: int = LOW_CUT_BIN
    high_cut: int = HIGH_CUT_BIN
    music_threshold: float = MUSIC_THRESHOLD

    def __post_init__(self) -> None:
        """Validate configuration parameters."""
        for name in ("skip_bins", "low_cut", "high_cut"):
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, numbers.Integral):
                raise ConfigurationError(f"{name} must be an integer, got {value!r}")
        if self.skip_bins < 0:
            raise ConfigurationError(
                f"skip_bins must be non-negative, got {self.skip_bins}"
            )
        if not _non_negative(self.activity_threshold):
            raise ConfigurationError(
                f"activity_threshold must be non-negative, got {self.activity_threshold}"
            )
        if not _finite(self.decay_factor) or not 0.0 < self.decay_factor < 1.0:
            raise ConfigurationError(
                f"decay_factor must be in (0, 1), got {self.decay_factor}"
            )
        if self.low_cut < 0:
            raise ConfigurationError(f"low_cut must be non-negative, got {self.low_cut}")
        if self.high_cut < self.low_cut:
            raise ConfigurationError(
                f"high_cut ({self.high_cut}) must not be below low_cut ({self.low_cut})"
            )
        if not _non_negative(self.music_threshold):
            raise ConfigurationError(
                f"music_threshold must be non-negative, got {self.music_threshold}"
            )


def _finite(value: float) -> bool:
    try:
        return math.isfinite(value)
    except TypeError:
        return False


def _non_negative(value: float) -> bool:
    return _finite(value) and value >= 0


def _positive(name: str, value: float) -> float:
    try:
        number = float(value)
    except (TypeError, ValueError) as exc:
        raise ConfigurationError(f"{name} must be a number, got {value!r}") from exc
    if not math.isfinite(number) or number <= 0:
        raise ConfigurationError(f"{name} must be positive, got {value!r}")
    return number


def validate_sensitivity(value: float) -> float:
    """Return ``value`` as a float, rejecting non-positive sensitivities."""
    return _positive("sensitivity", value)


def validate_sample_rate(value: float) -> float:
    """Return ``value`` as a float, rejecting non-positive sample rates."""
    return _positive("sample_rate", value)


def clamp_sensitivity(value: float) -> float:
    """Clamp ``value`` to :data:`SENSITIVITY_RANGE` for user controls.

    Non-numeric input falls back to :data:`DEFAULT_SENSITIVITY`.
    """
    try:
        number = float(value)
    except (TypeError, ValueError):
        return DEFAULT_SENSITIVITY
    if math.isnan(number):
        return DEFAULT_SENSITIVITY
    low, high = SENSITIVITY_RANGE
    return max(low, min(high, number))


__all__ = [
    "ChromaConfig",
    "validate_sensitivity",
    "validate_sample_rate",
    "clamp_sensitivity",
]
