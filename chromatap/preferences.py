"""Persistence of user-tunable settings via ``QSettings``."""

from __future__ import annotations

import logging

from PySide6.QtCore import QSettings

from .config import clamp_sensitivity
from .constants import DEFAULT_SENSITIVITY

logger = logging.getLogger(__name__)

ORGANISATION = "chromatap"
APPLICATION = "chromatap"
SENSITIVITY_KEY = "sensitivity"


def default_settings() -> QSettings:
    """Return the application's ``QSettings`` store."""
    return QSettings(ORGANISATION, APPLICATION)


def load_sensitivity(settings: QSettings) -> float:
    """Read the stored sensitivity, clamped to the user range.

    ``QSettings`` may hand values back as strings depending on the backend,
    so the stored value is coerced and falls back to
    :data:`DEFAULT_SENSITIVITY` when it cannot be parsed.
    """
    stored = settings.value(SENSITIVITY_KEY, DEFAULT_SENSITIVITY)
    value = clamp_sensitivity(stored)
    logger.debug("Loaded sensitivity %.2f (stored %r)", value, stored)
    return value


def save_sensitivity(settings: QSettings, value: float) -> float:
    """Clamp ``value`` and persist it.  Returns the stored value."""
    clamped = clamp_sensitivity(value)
    settings.setValue(SENSITIVITY_KEY, clamped)
    return clamped


__all__ = ["default_settings", "load_sensitivity", "save_sensitivity"]
