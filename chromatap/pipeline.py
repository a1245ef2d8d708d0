"""Frame-by-frame driver tying loudness estimation to chroma reduction.

:class:`ChromaPipeline` owns the reducer state.  Frames are processed one
at a time under a lock so they are applied in arrival order; each result is
published as an immutable :class:`FrameResult` by replacing a single
reference, which readers on other threads can fetch with
:meth:`ChromaPipeline.snapshot` or receive through :meth:`subscribe`.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from typing import Callable, Optional

import numpy as np

from .chroma import ChromaReducer
from .config import ChromaConfig, validate_sample_rate, validate_sensitivity
from .constants import BIN_COUNT, DEFAULT_SENSITIVITY, NUM_PITCH_CLASSES
from .errors import ConfigurationError, InvalidFrameError
from .loudness import estimate_loudness

logger = logging.getLogger(__name__)

Subscriber = Callable[["FrameResult"], None]


@dataclass(frozen=True)
class FrameResult:
    """Published output of one pipeline step.

    Invariants:
        0.0 <= loudness <= 1.0
        len(chroma) == 12 and every value lies in [0, 1]
    """

    loudness: float
    """Clamped loudness for display."""

    raw_loudness: float
    """Amplified peak before clamping."""

    chroma: tuple[float, ...]
    """Pitch-class energy, index 0 = C through 11 = B."""

    active: bool = False
    """``True`` when chroma was computed from this frame, ``False`` when decayed."""

    music_detected: bool = False
    """``True`` when the raw loudness exceeds the music threshold."""

    frame_index: int = 0
    """Number of frames processed since construction or the last reset."""


SILENT_RESULT = FrameResult(0.0, 0.0, (0.0,) * NUM_PITCH_CLASSES)


class ChromaPipeline:
    """Convert magnitude frames into loudness and chroma snapshots.

    Args:
        sample_rate: Sampling frequency of the audio behind each frame.
        n_bins: Expected frame length.  Frames of any other length are
            rejected.
        config: Numeric policy; defaults to :class:`ChromaConfig`.
        sensitivity: Initial gain; may be changed at any time through the
            :attr:`sensitivity` property.

    Raises:
        ConfigurationError: If ``sample_rate`` or ``sensitivity`` is not
            positive, or ``n_bins`` is less than one.
    """

    def __init__(
        self,
        sample_rate: float,
        n_bins: int = BIN_COUNT,
        config: Optional[ChromaConfig] = None,
        sensitivity: float = DEFAULT_SENSITIVITY,
    ) -> None:
        self.sample_rate = validate_sample_rate(sample_rate)
        if n_bins < 1:
            raise ConfigurationError(f"n_bins must be at least 1, got {n_bins}")
        self.n_bins = int(n_bins)
        self.config = config or ChromaConfig()
        self._sensitivity = validate_sensitivity(sensitivity)
        self._reducer = ChromaReducer(self.config)
        self._lock = threading.Lock()
        # Held while a result is built and delivered; reentrant so a
        # subscriber may reset the pipeline.
        self._publish_lock = threading.RLock()
        self._latest = SILENT_RESULT
        self._frame_index = 0
        self._subscribers: list[Subscriber] = []

    # --------------------------------------------------------------
    @property
    def sensitivity(self) -> float:
        return self._sensitivity

    @sensitivity.setter
    def sensitivity(self, value: float) -> None:
        self._sensitivity = validate_sensitivity(value)

    # --------------------------------------------------------------
    def _validate(self, frame: np.ndarray) -> np.ndarray:
        data = np.asarray(frame, dtype=np.float64)
        if data.ndim != 1:
            raise InvalidFrameError(
                f"frame must be one-dimensional, got shape {data.shape}"
            )
        if data.size != self.n_bins:
            raise InvalidFrameError(
                f"frame must have {self.n_bins} bins, got {data.size}"
            )
        if not np.all(np.isfinite(data)):
            raise InvalidFrameError("frame contains non-finite magnitudes")
        if np.any(data < 0):
            raise InvalidFrameError("frame contains negative magnitudes")
        return data

    def process(self, frame: np.ndarray) -> FrameResult:
        """Run one frame through the pipeline and publish the result.

        Subscribers are called on the calling thread, in the same order as
        the results were produced, even when several threads feed frames.

        Raises:
            InvalidFrameError: If ``frame`` has the wrong shape or contains
                negative or non-finite values.  State is left untouched.
        """

        data = self._validate(frame)
        with self._publish_lock:
            sensitivity = self._sensitivity
            with self._lock:
                reading = estimate_loudness(data, sensitivity, self.config.skip_bins)
                chroma, active = self._reducer.step(
                    data, reading.raw, sensitivity, self.sample_rate
                )
                self._frame_index += 1
                result = FrameResult(
                    loudness=reading.level,
                    raw_loudness=reading.raw,
                    chroma=tuple(float(v) for v in chroma),
                    active=active,
                    music_detected=reading.raw > self.config.music_threshold,
                    frame_index=self._frame_index,
                )
                self._latest = result
                subscribers = list(self._subscribers)
            logger.debug(
                "Frame %d: loudness=%.3f raw=%.3f active=%s",
                result.frame_index,
                result.loudness,
                result.raw_loudness,
                result.active,
            )
            for callback in subscribers:
                callback(result)
        return result

    def snapshot(self) -> FrameResult:
        """Return the most recently published result."""
        return self._latest

    def subscribe(self, callback: Subscriber) -> Callable[[], None]:
        """Call ``callback`` with every published result.

        Returns a function that removes the subscription.
        """

        with self._lock:
            self._subscribers.append(callback)

        def unsubscribe() -> None:
            with self._lock:
                if callback in self._subscribers:
                    self._subscribers.remove(callback)

        return unsubscribe

    def reset(self) -> FrameResult:
        """Clear the chroma state, as when a listening session stops."""
        with self._publish_lock:
            with self._lock:
                self._reducer.reset()
                self._frame_index = 0
                self._latest = SILENT_RESULT
                subscribers = list(self._subscribers)
            logger.debug("Pipeline reset")
            for callback in subscribers:
                callback(SILENT_RESULT)
        return SILENT_RESULT

    def reference_compatible(self, reference: np.ndarray) -> bool:
        """Return ``True`` if ``reference`` rows have the shape of our chroma.

        Ragged or non-numeric input is reported as incompatible.
        """
        try:
            ref = np.asarray(reference, dtype=np.float64)
        except (TypeError, ValueError):
            return False
        return ref.ndim == 2 and ref.shape[1] == NUM_PITCH_CLASSES


__all__ = ["FrameResult", "SILENT_RESULT", "ChromaPipeline"]
