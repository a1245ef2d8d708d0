"""Chromatap package."""

from .chroma import ChromaReducer, compute_chroma, pitch_class_map, reduce_chroma
from .config import ChromaConfig
from .errors import (
    CaptureError,
    ChromaTapError,
    ConfigurationError,
    InvalidFrameError,
    ReferenceDataError,
)
from .loudness import LoudnessReading, estimate_loudness
from .pipeline import ChromaPipeline, FrameResult
from .reference import load_reference

try:  # sounddevice needs PortAudio, which may be missing in test environments
    from .chroma_worker import ChromaWorker
except Exception:  # pragma: no cover - optional dependency
    ChromaWorker = None  # type: ignore

__all__ = [
    "CaptureError",
    "ChromaConfig",
    "ChromaPipeline",
    "ChromaReducer",
    "ChromaTapError",
    "ChromaWorker",
    "ConfigurationError",
    "FrameResult",
    "InvalidFrameError",
    "LoudnessReading",
    "ReferenceDataError",
    "compute_chroma",
    "estimate_loudness",
    "load_reference",
    "pitch_class_map",
    "reduce_chroma",
]
