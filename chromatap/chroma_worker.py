"""Audio worker streaming microphone chroma to Qt consumers."""

from __future__ import annotations

import logging
import threading
from typing import Optional

import numpy as np
import sounddevice as sd
from PySide6 import QtCore

from .constants import (
    DEFAULT_SENSITIVITY,
    FFT_SIZE,
    HP_FILTER_CUTOFF,
    SAMPLE_RATE,
)
from .errors import CaptureError
from .pipeline import ChromaPipeline, FrameResult
from .spectrum import BlockAnalyzer, downmix

logger = logging.getLogger(__name__)

STATUS_MUSIC = "I hear music!"
STATUS_LISTENING = "Listening..."
STATUS_STOPPED = "Stopped."


def status_for(result: FrameResult) -> str:
    """Return the status line describing ``result``."""
    return STATUS_MUSIC if result.music_detected else STATUS_LISTENING


class ChromaWorker(QtCore.QThread):
    """Capture audio and publish loudness and chroma for every block.

    Each block of ``fft_size`` samples is high-pass filtered, windowed and
    transformed into a magnitude frame, then run through a
    :class:`~chromatap.pipeline.ChromaPipeline`.  Results are emitted as Qt
    signals so display code never touches the pipeline state directly.

    Signals:
        chromaChanged(list): Twelve pitch-class values in ``[0, 1]``.
        loudnessChanged(float): Clamped loudness in ``[0, 1]``.
        statusChanged(str): Human-readable listening status.
        errorOccurred(str): The input device failed.
    """

    chromaChanged = QtCore.Signal(list)
    loudnessChanged = QtCore.Signal(float)
    statusChanged = QtCore.Signal(str)
    errorOccurred = QtCore.Signal(str)

    def __init__(
        self,
        device_index: Optional[int] = None,
        *,
        channels: int = 1,
        parent: Optional[QtCore.QObject] = None,
        sample_rate: int = SAMPLE_RATE,
        fft_size: int = FFT_SIZE,
        hp_cutoff: float = HP_FILTER_CUTOFF,
        sensitivity: float = DEFAULT_SENSITIVITY,
        pipeline: Optional[ChromaPipeline] = None,
    ) -> None:
        """Initialise the worker thread.

        Args:
            device_index: Input device to capture from, ``None`` for the
                system default.
            channels: Number of audio channels; extra channels are averaged.
            parent: Optional Qt parent.
            sample_rate: Sampling frequency of the audio stream.
            fft_size: Samples per block; the frame has half as many bins.
            hp_cutoff: High-pass filter cutoff frequency.
            sensitivity: Initial gain when no ``pipeline`` is given.
            pipeline: Pre-built pipeline to drive instead of a new one.
        """
        super().__init__(parent)
        self.device_index = device_index
        self.channels = channels
        self.pipeline = pipeline or ChromaPipeline(
            sample_rate, n_bins=fft_size // 2, sensitivity=sensitivity
        )
        # A supplied pipeline dictates the block geometry.
        self.sample_rate = int(self.pipeline.sample_rate)
        self.n_bins = self.pipeline.n_bins
        self.fft_size = 2 * self.n_bins
        self._stop_event = threading.Event()
        self.stream: Optional[sd.InputStream] = None
        self.analyzer = BlockAnalyzer(self.pipeline, hp_cutoff=hp_cutoff)

    # --------------------------------------------------------------
    def set_sensitivity(self, value: float) -> None:
        """Change the gain used from the next block on."""
        self.pipeline.sensitivity = value

    # --------------------------------------------------------------
    def _publish(self, result: FrameResult) -> None:
        self.loudnessChanged.emit(result.loudness)
        self.chromaChanged.emit(list(result.chroma))

    def process_block(self, samples: np.ndarray) -> FrameResult:
        """Filter ``samples``, reduce them to chroma and emit the result."""
        result = self.analyzer(samples)
        self._publish(result)
        self.statusChanged.emit(status_for(result))
        return result

    def _callback(self, indata, frames, _time, status) -> None:  # noqa: D401
        if status:
            logger.warning("Input stream status: %s", status)
        try:
            self.process_block(downmix(indata))
        except Exception:
            # Keep the audio thread alive; the next block starts clean.
            logger.exception("Failed to process audio block of %d frames", frames)

    # --------------------------------------------------------------
    def open_stream(self) -> "sd.InputStream":
        """Create the input stream, raising :class:`CaptureError` on failure."""
        try:
            return sd.InputStream(
                device=self.device_index,
                channels=self.channels,
                samplerate=self.sample_rate,
                blocksize=self.fft_size,
                dtype="float32",
                callback=self._callback,
            )
        except Exception as exc:
            raise CaptureError(f"cannot open input device {self.device_index}: {exc}") from exc

    def run(self) -> None:  # noqa: D401
        self._stop_event.clear()
        try:
            self.stream = self.open_stream()
            self.stream.start()
            logger.info(
                "Listening on device %s at %d Hz", self.device_index, self.sample_rate
            )
            self.statusChanged.emit(STATUS_LISTENING)
            while not self._stop_event.is_set():
                sd.sleep(50)
        except Exception as e:
            logger.exception("Capture failed")
            self.errorOccurred.emit(str(e))
        finally:
            stream, self.stream = self.stream, None
            if stream is not None:
                stream.stop()
                stream.close()
        logger.info("Capture thread finished")

    def stop(self) -> None:
        """Abort the stream, then clear the published chroma.

        The stream is aborted first so no callback can publish a stale frame
        after the reset.  The worker may be started again afterwards.
        """
        stream, self.stream = self.stream, None
        if stream is not None:
            try:
                stream.abort()
                stream.close()
            except Exception:
                logger.exception("Failed to abort input stream")
        self._stop_event.set()
        self.wait(2000)
        self.analyzer.reset()
        self._publish(self.pipeline.reset())
        self.statusChanged.emit(STATUS_STOPPED)


__all__ = [
    "ChromaWorker",
    "status_for",
    "STATUS_MUSIC",
    "STATUS_LISTENING",
    "STATUS_STOPPED",
]
