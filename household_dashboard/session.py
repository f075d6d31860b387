"""Per-browser-session state: password gate, owner scope and display preferences.

Preferences survive restarts in a small JSON file, loaded with defaults
merged in the same way as the dashboard's other persisted settings.
"""

from __future__ import annotations

import hmac
import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional

from . import config
from .formatting import display_amount

logger = logging.getLogger(__name__)

DEFAULT_PREFERENCES: Dict[str, Any] = {
    'owner': config.BOTH_OWNER,
    'dark_mode': False,
    'privacy_mode': False,
}


def load_preferences(path: Path | None = None) -> Dict[str, Any]:
    target = path or config.PREFS_PATH
    if not target.exists():
        return DEFAULT_PREFERENCES.copy()
    try:
        with target.open('r', encoding='utf-8') as handle:
            data = json.load(handle)
    except (json.JSONDecodeError, OSError) as exc:
        logger.warning("Ignoring unreadable preferences at %s: %s", target, exc)
        return DEFAULT_PREFERENCES.copy()
    if not isinstance(data, dict):
        return DEFAULT_PREFERENCES.copy()
    merged = DEFAULT_PREFERENCES.copy()
    merged.update({k: v for k, v in data.items() if k in DEFAULT_PREFERENCES})
    return merged


def save_preferences(preferences: Dict[str, Any], path: Path | None = None) -> None:
    target = path or config.PREFS_PATH
    target.parent.mkdir(parents=True, exist_ok=True)
    with target.open('w', encoding='utf-8') as handle:
        json.dump(preferences, handle, indent=2, sort_keys=True)


@dataclass
class SessionContext:
    """Explicit session state handed to every page instead of ambient lookups."""

    authenticated: bool = False
    owner: str = config.BOTH_OWNER
    dark_mode: bool = False
    privacy_mode: bool = False
    prefs_path: Optional[Path] = None

    @classmethod
    def load(cls, prefs_path: Path | None = None) -> 'SessionContext':
        prefs = load_preferences(prefs_path)
        owner = prefs['owner'] if prefs['owner'] in config.owner_choices() else config.BOTH_OWNER
        return cls(
            owner=owner,
            dark_mode=bool(prefs['dark_mode']),
            privacy_mode=bool(prefs['privacy_mode']),
            prefs_path=prefs_path,
        )

    def login(self, password: str, expected: Optional[str] = None) -> bool:
        expected = config.APP_PASSWORD if expected is None else expected
        if not expected:
            logger.warning("HOUSEHOLD_APP_PASSWORD is not set; refusing login")
            self.authenticated = False
            return False
        self.authenticated = hmac.compare_digest(str(password), str(expected))
        return self.authenticated

    def logout(self) -> None:
        self.authenticated = False
        self.owner = config.BOTH_OWNER
        self.save()

    def set_owner(self, owner: str) -> None:
        if owner not in config.owner_choices():
            raise ValueError(f"Unknown owner: {owner!r}")
        self.owner = owner
        self.save()

    def toggle_dark_mode(self) -> None:
        self.dark_mode = not self.dark_mode
        self.save()

    def toggle_privacy_mode(self) -> None:
        self.privacy_mode = not self.privacy_mode
        self.save()

    def preferences(self) -> Dict[str, Any]:
        return {'owner': self.owner, 'dark_mode': self.dark_mode, 'privacy_mode': self.privacy_mode}

    def money(self, amount: float) -> str:
        """Currency text for this session, masked in privacy mode."""
        return display_amount(amount, self.privacy_mode)

    def save(self) -> None:
        save_preferences(self.preferences(), self.prefs_path)
