"""
Stored light/dark preference with change observers.

The active theme is persisted as ``<data_dir>/theme.json`` and broadcast
to subscribers (chart renderers) whenever it changes.
"""

from __future__ import annotations

import json
import threading
from pathlib import Path
from typing import Callable, Optional

import config
from editing.logging import get_logger

from .theme import THEMES

logger = get_logger()

DEFAULT_THEME_PREFERENCE = "light"


class ThemePreferenceStore:
    """Light/dark preference backed by a JSON file."""

    def __init__(self, path: Optional[Path] = None):
        self.path = path or (config.get_data_dir() / "theme.json")
        self._lock = threading.RLock()
        self._subscribers: list[Callable[[str], None]] = []
        self._theme = self._load()

    def _load(self) -> str:
        """Read the stored preference; unknown or unreadable values mean 'light'."""
        if self.path.exists():
            try:
                with open(self.path, "r", encoding="utf-8") as f:
                    stored = json.load(f).get("theme")
            except (json.JSONDecodeError, OSError, AttributeError):
                stored = None
            if stored in THEMES:
                return stored
        return config.DEFAULT_THEME if config.DEFAULT_THEME in THEMES else DEFAULT_THEME_PREFERENCE

    def get(self) -> str:
        with self._lock:
            return self._theme

    def set(self, theme: str) -> None:
        """Persist *theme* and notify subscribers if it changed."""
        if theme not in THEMES:
            raise ValueError(f"Unknown theme '{theme}'. Must be one of: {', '.join(THEMES)}")
        with self._lock:
            changed = theme != self._theme
            self._theme = theme
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with open(self.path, "w", encoding="utf-8") as f:
                json.dump({"theme": theme}, f)
            subscribers = list(self._subscribers)
        if not changed:
            return
        logger.debug(f"[Theme] Preference changed to '{theme}'")
        for callback in subscribers:
            callback(theme)

    def subscribe(self, callback: Callable[[str], None]) -> Callable[[], None]:
        """Register *callback* for theme changes; returns the unsubscribe function."""
        with self._lock:
            self._subscribers.append(callback)

        def unsubscribe() -> None:
            with self._lock:
                if callback in self._subscribers:
                    self._subscribers.remove(callback)

        return unsubscribe

    @property
    def subscriber_count(self) -> int:
        with self._lock:
            return len(self._subscribers)


_theme_store: Optional[ThemePreferenceStore] = None


def get_theme_store() -> ThemePreferenceStore:
    """Return the global ThemePreferenceStore singleton."""
    global _theme_store
    if _theme_store is None:
        _theme_store = ThemePreferenceStore()
    return _theme_store


def reset_theme_store() -> None:
    """Reset the global ThemePreferenceStore (mainly for testing)."""
    global _theme_store
    _theme_store = None
