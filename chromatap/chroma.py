"""Reduction of magnitude spectra to 12-bin pitch-class (chroma) vectors.

Each bin inside the configured band is assigned to the pitch class of its
nearest equal-tempered note.  Magnitudes are summed per pitch class and the
result is normalised against its largest class, then amplified by the
sensitivity and clamped to ``[0, 1]``.  Frames that are too quiet do not
touch the spectrum at all; the previous vector is faded instead so the
output decays smoothly into silence.
"""

from __future__ import annotations

import logging
import threading
from functools import lru_cache
from typing import Optional

import numpy as np

from .config import ChromaConfig
from .constants import A4_FREQ, A4_MIDI, NUM_PITCH_CLASSES

logger = logging.getLogger(__name__)

EXCLUDED = -1


def _freq_to_midi(freq: np.ndarray) -> np.ndarray:
    """Convert frequencies to fractional MIDI numbers using A4 reference."""
    return A4_MIDI + 12.0 * np.log2(freq / A4_FREQ)


def _round_half_away(values: np.ndarray) -> np.ndarray:
    # ``np.round`` rounds halves to even; note boundaries round away from zero.
    return np.sign(values) * np.floor(np.abs(values) + 0.5)


@lru_cache(maxsize=16)
def pitch_class_map(
    n_bins: int, sample_rate: float, low_cut: int, high_cut: int
) -> np.ndarray:
    """Return the pitch class of every bin of an ``n_bins`` spectrum.

    The bins are assumed to span 0 Hz to Nyquist linearly, giving a
    resolution of ``sample_rate / (2 * n_bins)`` hertz.  Bins outside the
    inclusive ``[low_cut, high_cut]`` band, and bins whose frequency is not
    positive, map to :data:`EXCLUDED`.

    The returned array is cached per argument tuple and is read-only.
    """

    mapping = np.full(n_bins, EXCLUDED, dtype=np.int64)
    bin_resolution = sample_rate / (2 * n_bins)
    first = max(low_cut, 0)
    last = min(high_cut, n_bins - 1)
    if first <= last:
        indices = np.arange(first, last + 1)
        freqs = indices * bin_resolution
        audible = freqs > 0
        midi = _round_half_away(_freq_to_midi(freqs[audible]))
        # Floor modulo keeps sub-MIDI-0 notes in 0..11.
        mapping[indices[audible]] = np.mod(midi.astype(np.int64), NUM_PITCH_CLASSES)
    mapping.setflags(write=False)
    logger.debug(
        "Pitch-class map built: %d bins, %.2f Hz/bin, band %d..%d",
        n_bins,
        bin_resolution,
        low_cut,
        high_cut,
    )
    return mapping


def compute_chroma(
    frame: np.ndarray, sensitivity: float, mapping: np.ndarray
) -> np.ndarray:
    """Accumulate ``frame`` into pitch classes and normalise.

    Parameters
    ----------
    frame:
        Magnitude spectrum with the same length as ``mapping``.
    sensitivity:
        Secondary gain applied after normalisation, letting several
        pitch classes reach the ceiling at once.
    mapping:
        Output of :func:`pitch_class_map`.

    Returns
    -------
    np.ndarray
        Twelve values in ``[0, 1]``; all zero when no retained bin had
        energy.
    """

    included = mapping != EXCLUDED
    accum = np.bincount(
        mapping[included],
        weights=np.asarray(frame, dtype=np.float64)[included],
        minlength=NUM_PITCH_CLASSES,
    )
    peak = float(accum.max()) if accum.size else 0.0
    if peak <= 0.0:
        return np.zeros(NUM_PITCH_CLASSES)
    return np.minimum(accum / peak * sensitivity, 1.0)


def decay_chroma(previous: np.ndarray, factor: float) -> np.ndarray:
    """Return ``previous`` faded by ``factor``."""
    return np.asarray(previous, dtype=np.float64) * factor


def reduce_chroma(
    frame: np.ndarray,
    raw_loudness: float,
    sensitivity: float,
    sample_rate: float,
    previous: np.ndarray,
    config: ChromaConfig,
) -> tuple[np.ndarray, bool]:
    """Produce the next chroma vector from ``frame`` and ``previous``.

    Returns the new vector and whether it was freshly computed (``True``)
    or decayed from ``previous`` (``False``).  The gate is inclusive: a raw
    loudness equal to ``config.activity_threshold`` decays.
    """

    if raw_loudness <= config.activity_threshold:
        return decay_chroma(previous, config.decay_factor), False
    mapping = pitch_class_map(len(frame), sample_rate, config.low_cut, config.high_cut)
    return compute_chroma(frame, sensitivity, mapping), True


class ChromaReducer:
    """Stateful chroma reduction holding the last emitted vector.

    :meth:`update` never modifies the held array in place; each call binds a
    new array, so a reference obtained from another thread stays
    consistent.
    """

    def __init__(self, config: Optional[ChromaConfig] = None) -> None:
        self.config = config or ChromaConfig()
        self._chroma = np.zeros(NUM_PITCH_CLASSES)
        self._lock = threading.Lock()

    @property
    def chroma(self) -> np.ndarray:
        """Read-only view of the current chroma vector."""
        view = self._chroma.view()
        view.setflags(write=False)
        return view

    def update(
        self,
        frame: np.ndarray,
        raw_loudness: float,
        sensitivity: float,
        sample_rate: float,
    ) -> np.ndarray:
        """Reduce ``frame`` and store the result as the new state."""
        chroma, _active = self.step(frame, raw_loudness, sensitivity, sample_rate)
        return chroma

    def step(
        self,
        frame: np.ndarray,
        raw_loudness: float,
        sensitivity: float,
        sample_rate: float,
    ) -> tuple[np.ndarray, bool]:
        """Like :meth:`update` but also report whether the gate was open."""
        with self._lock:
            chroma, active = reduce_chroma(
                frame,
                raw_loudness,
                sensitivity,
                sample_rate,
                self._chroma,
                self.config,
            )
            self._chroma = chroma
        published = chroma.view()
        published.setflags(write=False)
        return published, active

    def reset(self) -> None:
        """Return to silence."""
        with self._lock:
            self._chroma = np.zeros(NUM_PITCH_CLASSES)


__all__ = [
    "EXCLUDED",
    "pitch_class_map",
    "compute_chroma",
    "decay_chroma",
    "reduce_chroma",
    "ChromaReducer",
]
