"""Configuration management for the household finance dashboard.

This module centralizes all configuration values including paths,
household members, the advice generator credentials, and environment
variable overrides.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Tuple

# Base project root - assumes this file is in household_dashboard/
_PROJECT_ROOT = Path(__file__).parent.parent.resolve()

# Data directories
DATA_DIR = Path(os.getenv("HOUSEHOLD_DATA_DIR", _PROJECT_ROOT / "data"))

# Database
DB_PATH = Path(
    os.getenv("HOUSEHOLD_DB_PATH", DATA_DIR / "household.db")
).resolve()

# Persisted session preferences (theme, privacy mode, last owner)
PREFS_PATH = Path(
    os.getenv("HOUSEHOLD_PREFS_PATH", DATA_DIR / "preferences.json")
).resolve()

BOTH_OWNER = "Both"

# Static password gate for the browser client
APP_PASSWORD = os.getenv("HOUSEHOLD_APP_PASSWORD", "")

# Advice generator
GEMINI_API_KEY = os.getenv("GEMINI_API_KEY", "")
GEMINI_MODEL = os.getenv("GEMINI_MODEL", "gemini-2.0-flash")
ADVICE_TIMEOUT_SECONDS = float(os.getenv("ADVICE_TIMEOUT_SECONDS", "60"))

# Default for suffixing expanded installments with " (i/N)"
LABEL_INSTALLMENTS = os.getenv("HOUSEHOLD_LABEL_INSTALLMENTS", "").lower() in ("1", "true", "yes")

LOG_LEVEL = os.getenv("HOUSEHOLD_LOG_LEVEL", "INFO")
LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def household_members() -> Tuple[str, str]:
    """Return the two named household members.

    Read from ``HOUSEHOLD_MEMBERS`` (comma separated) on every call so tests
    and the app can override it without reloading the module.
    """
    raw = os.getenv("HOUSEHOLD_MEMBERS", "A,B")
    names = [part.strip() for part in raw.split(",") if part.strip()]
    if len(names) != 2:
        raise ValueError(
            f"HOUSEHOLD_MEMBERS must name exactly two members, got {raw!r}"
        )
    return names[0], names[1]


def owner_choices() -> Tuple[str, str, str]:
    """Members plus the ``Both`` pseudo-owner, in selector order."""
    first, second = household_members()
    return first, second, BOTH_OWNER


def ensure_data_directories() -> None:
    """Create all required data directories if they don't exist."""
    for directory in [DATA_DIR, DB_PATH.parent, PREFS_PATH.parent]:
        directory.mkdir(parents=True, exist_ok=True)


def configure_logging(level: str | None = None) -> None:
    """Configure root logging once for the Streamlit process."""
    logging.basicConfig(level=(level or LOG_LEVEL).upper(), format=LOG_FORMAT)
