"""Loading of precomputed reference chroma sequences.

A reference is a JSON document holding a list of frames, each a list of 12
numbers in ``[0, 1]``, for example ``[[0.1, 0.5, ...], [0.2, ...]]``.  The
pipeline produces vectors of the same shape so a matcher can compare them
directly.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Union

import numpy as np

from .constants import NUM_PITCH_CLASSES
from .errors import ReferenceDataError

logger = logging.getLogger(__name__)


def parse_reference(data: Any) -> np.ndarray:
    """Validate decoded reference ``data`` and return a ``(frames, 12)`` array.

    Raises:
        ReferenceDataError: If ``data`` is not a list of 12-element numeric
            rows with values in ``[0, 1]``.
    """

    if not isinstance(data, list):
        raise ReferenceDataError(
            f"reference must be a list of frames, got {type(data).__name__}"
        )
    for index, row in enumerate(data):
        if not isinstance(row, list) or len(row) != NUM_PITCH_CLASSES:
            raise ReferenceDataError(
                f"frame {index} must be a list of {NUM_PITCH_CLASSES} values"
            )
        for value in row:
            # bool is an int subclass but never a valid magnitude
            if isinstance(value, bool) or not isinstance(value, (int, float)):
                raise ReferenceDataError(f"frame {index} contains non-numeric {value!r}")

    frames = np.asarray(data, dtype=np.float64).reshape(-1, NUM_PITCH_CLASSES)
    if frames.size and (
        not np.all(np.isfinite(frames)) or frames.min() < 0.0 or frames.max() > 1.0
    ):
        raise ReferenceDataError("reference values must lie in [0, 1]")
    return frames


def load_reference(path: Union[str, Path]) -> np.ndarray:
    """Read a reference chroma sequence from the JSON file at ``path``.

    Returns:
        Array of shape ``(frames, 12)``.

    Raises:
        ReferenceDataError: If the file is missing, is not valid JSON or
            does not hold a well-formed chroma sequence.
    """

    file_path = Path(path)
    try:
        text = file_path.read_text(encoding="utf-8")
    except FileNotFoundError as exc:
        raise ReferenceDataError(f"reference file not found: {file_path}") from exc
    except OSError as exc:
        raise ReferenceDataError(f"cannot read reference file {file_path}: {exc}") from exc
    try:
        data = json.loads(text)
    except json.JSONDecodeError as exc:
        raise ReferenceDataError(f"invalid JSON in {file_path}: {exc}") from exc

    frames = parse_reference(data)
    logger.info("Loaded %d reference frames from %s", len(frames), file_path)
    return frames


__all__ = ["parse_reference", "load_reference"]
