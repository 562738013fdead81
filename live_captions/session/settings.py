"""Persisted caption settings for one session.

WHY: Users pick a language, display lines, width and break mode from the
dashboard. Those choices must survive reconnects and be applied to the
glasses display as soon as they change.

HOW: SettingsManager reads and writes string values through a
SettingsStore (InMemorySettingsStore by default; a deployment plugs in its
own). Setters validate, store, apply to the DisplayManager (which replays
history into a new formatter), then broadcast a settings_update message.

RULES:
- Validation happens before anything is stored.
- Missing or corrupt stored values fall back to the defaults.
- Language and language hints are stored and broadcast only; the display
  does not depend on them.
"""

from __future__ import annotations

import json
import logging
import threading
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional

from display_captions import BreakMode, DisplayWidth
from live_captions.session.display import (
    DisplayManager,
    InvalidSettingError,
    validate_break_mode,
    validate_display_lines,
    validate_display_width,
)
from live_captions.session.transcripts import TranscriptsManager

logger = logging.getLogger(__name__)

DEFAULT_LANGUAGE = "auto"
DEFAULT_DISPLAY_LINES = 3
DEFAULT_DISPLAY_WIDTH = DisplayWidth.MEDIUM
DEFAULT_BREAK_MODE = BreakMode.CHARACTER


class SettingsStore(ABC):
    """String key/value storage for per-user settings."""

    @abstractmethod
    def get(self, key: str) -> Optional[str]:
        ...

    @abstractmethod
    def set(self, key: str, value: str) -> None:
        ...


class InMemorySettingsStore(SettingsStore):
    def __init__(self, initial: Optional[Dict[str, str]] = None) -> None:
        self._values: Dict[str, str] = dict(initial or {})
        self._lock = threading.Lock()

    def get(self, key: str) -> Optional[str]:
        with self._lock:
            return self._values.get(key)

    def set(self, key: str, value: str) -> None:
        with self._lock:
            self._values[key] = value


class SettingsManager:
    """Validates, persists and applies one user's caption settings."""

    def __init__(
        self,
        display: DisplayManager,
        transcripts: TranscriptsManager,
        store: Optional[SettingsStore] = None,
    ) -> None:
        self._display = display
        self._transcripts = transcripts
        self._store = store if store is not None else InMemorySettingsStore()

    @property
    def store(self) -> SettingsStore:
        return self._store

    def initialize(self) -> None:
        """Apply stored settings to the display."""
        logger.info(
            "Settings initialized: language=%s, lines=%d, width=%s, mode=%s",
            self.get_language(),
            self.get_display_lines(),
            self.get_display_width().name,
            self.get_break_mode().value,
        )
        self._apply_to_display()

    # ------------------------------------------------------------------
    # Getters
    # ------------------------------------------------------------------

    def get_language(self) -> str:
        return self._store.get("language") or DEFAULT_LANGUAGE

    def get_language_hints(self) -> List[str]:
        stored = self._store.get("languageHints")
        if not stored:
            return []
        try:
            hints = json.loads(stored)
        except json.JSONDecodeError:
            return []
        if not isinstance(hints, list):
            return []
        return [str(hint) for hint in hints]

    def get_display_lines(self) -> int:
        stored = self._store.get("displayLines")
        try:
            return validate_display_lines(int(stored)) if stored else DEFAULT_DISPLAY_LINES
        except ValueError:
            return DEFAULT_DISPLAY_LINES

    def get_display_width(self) -> DisplayWidth:
        stored = self._store.get("displayWidth")
        if not stored:
            return DEFAULT_DISPLAY_WIDTH
        try:
            return validate_display_width(stored)
        except InvalidSettingError:
            return DEFAULT_DISPLAY_WIDTH

    def get_break_mode(self) -> BreakMode:
        stored = self._store.get("breakMode")
        if not stored:
            return DEFAULT_BREAK_MODE
        try:
            return validate_break_mode(stored)
        except InvalidSettingError:
            return DEFAULT_BREAK_MODE

    def get_all(self) -> Dict[str, Any]:
        return {
            "language": self.get_language(),
            "languageHints": self.get_language_hints(),
            "displayLines": self.get_display_lines(),
            "displayWidth": int(self.get_display_width()),
            "breakMode": self.get_break_mode().value,
        }

    # ------------------------------------------------------------------
    # Setters
    # ------------------------------------------------------------------

    def set_language(self, language: str) -> None:
        if not isinstance(language, str) or not language.strip():
            raise InvalidSettingError("Language must be a non-empty string")
        self._store.set("language", language.strip())
        logger.info("Language set to: %s", language.strip())
        self._broadcast()

    def set_language_hints(self, hints: List[str]) -> None:
        if not isinstance(hints, list) or not all(isinstance(h, str) for h in hints):
            raise InvalidSettingError("Language hints must be a list of strings")
        self._store.set("languageHints", json.dumps(hints))
        logger.info("Language hints set to: %s", ", ".join(hints))
        self._broadcast()

    def set_display_lines(self, lines: int) -> None:
        lines = validate_display_lines(lines)
        self._store.set("displayLines", str(lines))
        logger.info("Display lines set to: %d", lines)
        self._apply_to_display()
        self._broadcast()

    def set_display_width(self, width: Any) -> None:
        width = validate_display_width(width)
        self._store.set("displayWidth", str(int(width)))
        logger.info("Display width set to: %s", width.name)
        self._apply_to_display()
        self._broadcast()

    def set_break_mode(self, break_mode: Any) -> None:
        break_mode = validate_break_mode(break_mode)
        self._store.set("breakMode", break_mode.value)
        logger.info("Break mode set to: %s", break_mode.value)
        self._apply_to_display()
        self._broadcast()

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _apply_to_display(self) -> None:
        self._display.update_settings(
            width=self.get_display_width(),
            lines=self.get_display_lines(),
            break_mode=self.get_break_mode(),
        )

    def _broadcast(self) -> None:
        try:
            self._transcripts.broadcast_settings_update(self.get_all())
        except Exception:
            logger.warning("Failed to broadcast settings update", exc_info=True)
