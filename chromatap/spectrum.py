"""Turn raw audio blocks into magnitude frames for the pipeline."""

from __future__ import annotations

import numpy as np
from scipy.signal import butter, sosfilt

from .constants import BIN_COUNT, HP_FILTER_CUTOFF
from .pipeline import ChromaPipeline, FrameResult


def downmix(indata: np.ndarray) -> np.ndarray:
    """Return ``indata`` as a one‑dimensional float32 mono signal."""
    if indata.ndim == 2 and indata.shape[1] > 1:
        return indata.mean(axis=1).astype(np.float32)
    return indata.reshape(-1).astype(np.float32)


def magnitude_spectrum(samples: np.ndarray, n_bins: int = BIN_COUNT) -> np.ndarray:
    """Compute an ``n_bins`` magnitude frame from ``samples``.

    ``samples`` is zero-padded or truncated to ``2 * n_bins`` values, a Hann
    window is applied and the first ``n_bins`` magnitudes of the real FFT
    are kept.  Magnitudes are scaled by ``2 / sum(window)`` so a full-scale
    sine peaks close to ``1.0``.

    Parameters
    ----------
    samples:
        One‑dimensional mono audio block.
    n_bins:
        Number of frequency bins to return, spanning 0 Hz to Nyquist.

    Returns
    -------
    np.ndarray
        Non-negative magnitudes of length ``n_bins``.
    """

    size = 2 * n_bins
    block = np.zeros(size, dtype=np.float64)
    data = np.asarray(samples, dtype=np.float64).reshape(-1)[:size]
    block[: data.size] = data
    window = np.hanning(size)
    spectrum = np.abs(np.fft.rfft(block * window))[:n_bins]
    return spectrum * (2.0 / window.sum())


class BlockAnalyzer:
    """High-pass filter audio blocks and feed their spectra to a pipeline.

    The filter state carries over between calls, so blocks must be passed
    in capture order.

    Args:
        pipeline: Pipeline receiving one magnitude frame per block.
        hp_cutoff: High-pass filter cutoff frequency in hertz.
    """

    def __init__(
        self, pipeline: ChromaPipeline, hp_cutoff: float = HP_FILTER_CUTOFF
    ) -> None:
        self.pipeline = pipeline
        self.hp_sos = butter(
            2, hp_cutoff, "hp", fs=pipeline.sample_rate, output="sos"
        )
        # Filter starts from silence rather than a unit step.
        self.hp_zi = np.zeros((self.hp_sos.shape[0], 2))

    def __call__(self, samples: np.ndarray) -> FrameResult:
        filtered, zi = sosfilt(self.hp_sos, samples, zi=self.hp_zi)
        frame = magnitude_spectrum(filtered, self.pipeline.n_bins)
        result = self.pipeline.process(frame)
        # Rejected frames must not leave NaNs in the filter memory.
        self.hp_zi = zi
        return result

    def reset(self) -> None:
        """Clear the filter memory before a new capture session."""
        self.hp_zi = np.zeros((self.hp_sos.shape[0], 2))


__all__ = ["downmix", "magnitude_spectrum", "BlockAnalyzer"]
