"""Peak-based loudness estimation for magnitude frames."""

from __future__ import annotations

from typing import NamedTuple

import numpy as np

from .constants import SKIP_BINS


class LoudnessReading(NamedTuple):
    """Loudness of a single frame.

    ``level`` is clamped to ``[0, 1]`` for display.  ``raw`` is the
    amplified peak before clamping; the activity gate compares against it
    so that a saturated level still tells loud and barely-audible frames
    apart.
    """

    level: float
    raw: float


SILENT = LoudnessReading(0.0, 0.0)


def estimate_loudness(
    frame: np.ndarray, sensitivity: float, skip_bins: int = SKIP_BINS
) -> LoudnessReading:
    """Return the amplified spectral peak of ``frame``.

    Parameters
    ----------
    frame:
        One‑dimensional magnitude spectrum.
    sensitivity:
        Gain applied to the peak magnitude.
    skip_bins:
        Number of leading bins to ignore.  These carry DC offset and
        hardware noise rather than sound.

    Returns
    -------
    LoudnessReading
        The clamped level and the raw amplified peak.  A frame with no
        bins past ``skip_bins`` reads as :data:`SILENT`.
    """

    retained = np.asarray(frame)[skip_bins:]
    if retained.size == 0:
        return SILENT
    raw = float(np.max(retained)) * sensitivity
    return LoudnessReading(min(raw, 1.0), raw)


__all__ = ["LoudnessReading", "SILENT", "estimate_loudness"]
