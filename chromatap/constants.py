"""Application-wide constants used for chroma extraction.

The values in this module configure the audio capture side (sample rate,
FFT size) and the numeric policy of the spectrum-to-chroma reduction
(bin skipping, activity gating, decay and band limits).  Centralising the
configuration avoids magic numbers spread throughout the code base and
keeps the reduction behaviour tunable in one place.
"""

from __future__ import annotations

# ─── Audio configuration ────────────────────────────────────────────────────

# Sampling frequency used throughout the application.  Standard CD quality
# (44.1 kHz) matches what most built-in microphones deliver.
SAMPLE_RATE: int = 44_100

# Number of samples fed to each FFT.  The magnitude spectrum keeps half of
# the resulting bins, so 2048 samples yield 1024 bins of ~21.5 Hz each.
FFT_SIZE: int = 2048
BIN_COUNT: int = FFT_SIZE // 2

# Cutoff frequency for the high‑pass filter applied to raw samples before
# the FFT.  Removes mains hum and handling rumble.
HP_FILTER_CUTOFF: float = 60.0

# ─── Pitch reference ───────────────────────────────────────────────────────

A4_FREQ: float = 440.0
A4_MIDI: int = 69

NOTE_NAMES: list[str] = [
    "C",
    "C#",
    "D",
    "D#",
    "E",
    "F",
    "F#",
    "G",
    "G#",
    "A",
    "A#",
    "B",
]
NUM_PITCH_CLASSES: int = len(NOTE_NAMES)

# ─── Reduction policy ──────────────────────────────────────────────────────

# Gain applied to the spectral peak (loudness) and again to the normalised
# chroma bins.  User controls typically keep it within SENSITIVITY_RANGE.
DEFAULT_SENSITIVITY: float = 5.0
SENSITIVITY_RANGE: tuple[float, float] = (1.0, 20.0)

# The lowest bins carry DC offset and device noise; they never count
# towards loudness.
SKIP_BINS: int = 4

# Amplified (unclamped) loudness at or below this value is treated as
# silence and the previous chroma vector is faded instead of recomputed.
ACTIVITY_THRESHOLD: float = 0.1

# Per-frame multiplier applied to the chroma vector while silent.
DECAY_FACTOR: float = 0.8

# Inclusive bin band used for pitch-class accumulation.  Bins below
# LOW_CUT_BIN are rumble, bins above HIGH_CUT_BIN are ignored as hiss.
LOW_CUT_BIN: int = 10
HIGH_CUT_BIN: int = 500

# Amplified loudness above which the status line reports music.
MUSIC_THRESHOLD: float = 0.5

__all__ = [
    "SAMPLE_RATE",
    "FFT_SIZE",
    "BIN_COUNT",
    "HP_FILTER_CUTOFF",
    "A4_FREQ",
    "A4_MIDI",
    "NOTE_NAMES",
    "NUM_PITCH_CLASSES",
    "DEFAULT_SENSITIVITY",
    "SENSITIVITY_RANGE",
    "SKIP_BINS",
    "ACTIVITY_THRESHOLD",
    "DECAY_FACTOR",
    "LOW_CUT_BIN",
    "HIGH_CUT_BIN",
    "MUSIC_THRESHOLD",
]
