"""Exception types raised by :mod:`chromatap`.

Degenerate numeric input (silent frames, empty bands) never raises; these
types cover contract violations and failures of the collaborators around
the reduction pipeline.
"""

from __future__ import annotations


class ChromaTapError(Exception):
    """Base class for all errors raised by this package."""


class ConfigurationError(ChromaTapError, ValueError):
    """Invalid reduction policy, sensitivity or sample rate."""


class InvalidFrameError(ChromaTapError, ValueError):
    """A magnitude frame does not satisfy the pipeline contract."""


class ReferenceDataError(ChromaTapError):
    """A reference chroma sequence is missing or malformed."""


class CaptureError(ChromaTapError):
    """The audio input device could not be opened or stopped working."""


__all__ = [
    "ChromaTapError",
    "ConfigurationError",
    "InvalidFrameError",
    "ReferenceDataError",
    "CaptureError",
]
