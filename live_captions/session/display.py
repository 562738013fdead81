"""Per-session display controller for the glasses and the dashboard preview.

WHY: The formatting engine is pure; a live session also needs a device
profile that follows whatever glasses are connected, user settings that
can change mid-conversation, speaker-turn detection across events, a
silence timeout, and two output channels (the glasses and the web
dashboard's preview). DisplayManager owns all of that for one user.

HOW: DisplayManager holds one CaptionFormatter. Every settings or device
change builds a brand-new formatter with CaptionFormatter.rebuild(),
replaying the finalized history, then immediately re-emits the display.
Each processed event is cleaned (leading punctuation stripped, speaker
labels preserved) and sent to the DisplaySink and the PreviewSink.
A threading.Timer clears the session after a period of inactivity.

RULES:
- Settings are validated before anything is mutated; invalid values raise
  InvalidSettingError and leave the previous settings in place.
- Display lines are validated to 2..5, then clamped to the profile's
  max_lines.
- Sink failures are logged and swallowed; they never touch engine state.
- One RLock serializes events, rebuilds and the inactivity callback, since
  the timer fires on its own thread.
- Final captions show for FINAL_DISPLAY_DURATION_MS; partials indefinitely.
- After dispose() no inactivity timer is scheduled again.
"""

from __future__ import annotations

import logging
import re
import threading
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass, replace
from typing import Any, Callable, Dict, List, Optional, Union

from display_captions import (
    BASELINE_PROFILE,
    BreakMode,
    CaptionFormatter,
    DeviceProfile,
    DisplayWidth,
    FormatResult,
    Utterance,
    resolve_profile,
)
from live_captions import config

logger = logging.getLogger(__name__)

MIN_DISPLAY_LINES = 2
MAX_DISPLAY_LINES = 5

# Leading punctuation the recognizer sometimes emits at the start of a line.
_LEADING_PUNCT_RE = re.compile(r"^[.,;:!?。，；：！？]+")
_SPEAKER_LABEL_RE = re.compile(r"^\[[^\]\n]+\]:\s*")


class InvalidSettingError(ValueError):
    """Raised when a display setting is outside its allowed range or enum."""


@dataclass(frozen=True)
class DisplaySettings:
    """User-selected display settings for one session."""

    width: DisplayWidth = DisplayWidth.MEDIUM
    lines: int = 3
    break_mode: BreakMode = BreakMode.CHARACTER


# ---------------------------------------------------------------------------
# Validation
# ---------------------------------------------------------------------------


def validate_display_width(value: Union[DisplayWidth, int, str]) -> DisplayWidth:
    """Accept a DisplayWidth, its int value (0/1/2) or name (narrow/medium/wide)."""
    if isinstance(value, DisplayWidth):
        return value
    if isinstance(value, str):
        name = value.strip().upper()
        if name in DisplayWidth.__members__:
            return DisplayWidth[name]
        if name.isdigit():
            value = int(name)
    if isinstance(value, int) and not isinstance(value, bool):
        try:
            return DisplayWidth(value)
        except ValueError:
            pass
    raise InvalidSettingError(
        "Width must be 0 (Narrow), 1 (Medium), or 2 (Wide), got {!r}".format(value)
    )


def validate_display_lines(value: Any) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise InvalidSettingError("Lines must be an integer, got {!r}".format(value))
    if value < MIN_DISPLAY_LINES or value > MAX_DISPLAY_LINES:
        raise InvalidSettingError(
            "Lines must be between {} and {}, got {}".format(
                MIN_DISPLAY_LINES, MAX_DISPLAY_LINES, value
            )
        )
    return value


def validate_break_mode(value: Union[BreakMode, str]) -> BreakMode:
    try:
        return BreakMode(value)
    except ValueError:
        raise InvalidSettingError(
            "Break mode must be one of: {}, got {!r}".format(
                ", ".join(mode.value for mode in BreakMode), value
            )
        )


# ---------------------------------------------------------------------------
# Output sinks
# ---------------------------------------------------------------------------


class DisplaySink(ABC):
    """Where cleaned caption text is shown: the glasses' main view."""

    @abstractmethod
    def show(self, text: str, duration_ms: Optional[int] = None) -> None:
        """Show text; duration_ms None means until overwritten."""


class PreviewSink(ABC):
    """Where the dashboard gets a mirror of what the glasses show."""

    @abstractmethod
    def preview(self, text: str, lines: List[str], is_final: bool) -> None:
        """Publish the displayed text and its lines."""


class LastFrameSink(DisplaySink):
    """DisplaySink that remembers the most recent frame.

    Used when no glasses transport is attached (the HTTP service exposes
    the frame over GET) and in tests.
    """

    def __init__(self) -> None:
        self.text = ""
        self.duration_ms: Optional[int] = None
        self.shown_at: Optional[float] = None
        self.frame_count = 0

    def show(self, text: str, duration_ms: Optional[int] = None) -> None:
        self.text = text
        self.duration_ms = duration_ms
        self.shown_at = time.time()
        self.frame_count += 1


def clean_transcript_text(text: str) -> str:
    """Strip leading punctuation from each line, keeping "[id]:" labels.

    Handles ASCII . , ; : ! ? and their CJK full-width counterparts.
    """
    cleaned = []
    for line in text.split("\n"):
        match = _SPEAKER_LABEL_RE.match(line)
        if match:
            label = match.group(0)
            rest = line[len(label):]
            cleaned.append(label + _LEADING_PUNCT_RE.sub("", rest).strip())
        else:
            cleaned.append(_LEADING_PUNCT_RE.sub("", line).strip())
    return "\n".join(cleaned)


# ---------------------------------------------------------------------------
# DisplayManager
# ---------------------------------------------------------------------------


class DisplayManager:
    """Session-scoped owner of the caption formatter and its outputs."""

    def __init__(
        self,
        display_sink: DisplaySink,
        preview_sink: Optional[PreviewSink] = None,
        profile: DeviceProfile = BASELINE_PROFILE,
        settings: Optional[DisplaySettings] = None,
        history_capacity: int = config.HISTORY_CAPACITY,
        inactivity_timeout_s: Optional[float] = config.INACTIVITY_TIMEOUT_S,
        final_display_duration_ms: int = config.FINAL_DISPLAY_DURATION_MS,
        timer_factory: Callable[..., Any] = threading.Timer,
    ) -> None:
        self._display_sink = display_sink
        self._preview_sink = preview_sink
        self._profile = profile
        self._settings = settings or DisplaySettings()
        self._history_capacity = history_capacity
        self._inactivity_timeout_s = inactivity_timeout_s
        self._final_display_duration_ms = final_display_duration_ms
        self._timer_factory = timer_factory

        self._lock = threading.RLock()
        self._timer: Optional[Any] = None
        self._timer_generation = 0
        self._disposed = False
        self._last_speaker_id: Optional[str] = None
        self._formatter = self._build_formatter([])

    # ------------------------------------------------------------------
    # Formatter construction
    # ------------------------------------------------------------------

    @property
    def effective_max_lines(self) -> int:
        return max(MIN_DISPLAY_LINES, min(self._settings.lines, self._profile.max_lines))

    @property
    def display_width_px(self) -> int:
        return self._profile.width_for(self._settings.width)

    def _build_formatter(self, history: List[Utterance]) -> CaptionFormatter:
        return CaptionFormatter.rebuild(
            history,
            self._profile,
            max_final_transcripts=self._history_capacity,
            break_mode=self._settings.break_mode,
            display_width_px=self.display_width_px,
            max_lines=self.effective_max_lines,
        )

    def _rebuild_and_refresh(self, reason: str) -> None:
        previous = self._formatter.get_final_transcript_history()
        self._formatter = self._build_formatter(previous)
        logger.info(
            "Rebuilt formatter after %s: profile=%s width=%dpx lines=%d mode=%s, "
            "preserved %d transcripts",
            reason,
            self._profile.id,
            self.display_width_px,
            self.effective_max_lines,
            self._settings.break_mode.value,
            len(previous),
        )
        self._refresh_display()

    # ------------------------------------------------------------------
    # Settings and device profile
    # ------------------------------------------------------------------

    def update_settings(
        self,
        width: Optional[Union[DisplayWidth, int, str]] = None,
        lines: Optional[int] = None,
        break_mode: Optional[Union[BreakMode, str]] = None,
    ) -> DisplaySettings:
        """Apply new display settings and replay history into a new formatter.

        Omitted arguments keep their current values.

        Raises:
            InvalidSettingError: If any value is invalid. Nothing changes.
        """
        changes: Dict[str, Any] = {}
        if width is not None:
            changes["width"] = validate_display_width(width)
        if lines is not None:
            changes["lines"] = validate_display_lines(lines)
        if break_mode is not None:
            changes["break_mode"] = validate_break_mode(break_mode)

        with self._lock:
            self._settings = replace(self._settings, **changes)
            logger.info(
                "Settings update: width=%s (%dpx), lines=%d (effective %d), mode=%s",
                self._settings.width.name,
                self.display_width_px,
                self._settings.lines,
                self.effective_max_lines,
                self._settings.break_mode.value,
            )
            self._rebuild_and_refresh("settings change")
            return self._settings

    def set_display_width(self, width: Union[DisplayWidth, int, str]) -> DisplaySettings:
        return self.update_settings(width=validate_display_width(width))

    def set_display_lines(self, lines: int) -> DisplaySettings:
        return self.update_settings(lines=validate_display_lines(lines))

    def set_break_mode(self, break_mode: Union[BreakMode, str]) -> DisplaySettings:
        return self.update_settings(break_mode=validate_break_mode(break_mode))

    def set_device_model(self, model_name: Optional[str]) -> bool:
        """Switch to the profile for a newly detected device model.

        Returns:
            True if the profile changed and the formatter was rebuilt.
        """
        profile = resolve_profile(model_name)
        with self._lock:
            if profile.id == self._profile.id:
                logger.debug("Device model %r keeps profile %s", model_name, profile.id)
                return False
            logger.info(
                "Device model %r: switching profile %s -> %s",
                model_name, self._profile.id, profile.id,
            )
            self._profile = profile
            self._rebuild_and_refresh("device change")
            return True

    # ------------------------------------------------------------------
    # Event processing
    # ------------------------------------------------------------------

    def process_and_display(
        self,
        text: Optional[str],
        is_final: bool,
        speaker_id: Optional[str] = None,
        speaker_changed: Optional[bool] = None,
    ) -> FormatResult:
        """Format one recognition event and emit it to both sinks."""
        speaker_id = speaker_id or None
        with self._lock:
            changed = bool(speaker_changed) or (
                speaker_id is not None and speaker_id != self._last_speaker_id
            )
            if speaker_id is not None and speaker_id != self._last_speaker_id:
                logger.info(
                    "Speaker changed: %s -> %s", self._last_speaker_id or "none", speaker_id
                )
                self._last_speaker_id = speaker_id

            logger.debug(
                "Processing transcript %r (final=%s, speaker=%s, changed=%s)",
                (text or "")[:50], is_final, speaker_id or "unknown", changed,
            )
            result = self._formatter.process_transcription(
                text, is_final, speaker_id, changed
            )
            duration = self._final_display_duration_ms if is_final else None
            self._emit(clean_transcript_text(result.display_text), is_final, duration)
            self._reset_inactivity_timer()
            return result

    def refresh_display(self) -> None:
        """Re-emit the current history with the current settings."""
        with self._lock:
            self._refresh_display()

    def _refresh_display(self) -> None:
        if not self._formatter.get_final_transcript_history():
            self._preview("", [""], True)
            return

        result = self._formatter.render()
        if result.display_text.strip():
            self._emit(
                clean_transcript_text(result.display_text),
                True,
                self._final_display_duration_ms,
            )

    def _emit(self, cleaned: str, is_final: bool, duration_ms: Optional[int]) -> None:
        try:
            self._display_sink.show(cleaned, duration_ms)
        except Exception:
            logger.warning(
                "Failed to show on glasses - connection may be closed", exc_info=True
            )
        self._preview(cleaned, cleaned.split("\n"), is_final)

    def _preview(self, text: str, lines: List[str], is_final: bool) -> None:
        if self._preview_sink is None:
            return
        try:
            self._preview_sink.preview(text, lines, is_final)
        except Exception:
            logger.warning("Failed to broadcast display preview", exc_info=True)

    # ------------------------------------------------------------------
    # Inactivity
    # ------------------------------------------------------------------

    def _reset_inactivity_timer(self) -> None:
        self._cancel_timer()
        if self._disposed or not self._inactivity_timeout_s:
            return
        timer = self._timer_factory(
            self._inactivity_timeout_s,
            self._on_inactivity,
            args=(self._timer_generation,),
        )
        timer.daemon = True
        timer.start()
        self._timer = timer

    def _cancel_timer(self) -> None:
        self._timer_generation += 1
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

    def _on_inactivity(self, generation: int) -> None:
        with self._lock:
            if generation != self._timer_generation:
                # Superseded by a newer event.
                return
            self._timer = None
            logger.info("Clearing caption history due to inactivity")
            self._formatter.clear()
            self._last_speaker_id = None
            self._emit("", True, config.CLEAR_DISPLAY_DURATION_MS)

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get_final_transcript_history(self) -> List[Utterance]:
        with self._lock:
            return self._formatter.get_final_transcript_history()

    def get_combined_transcript_history(self) -> str:
        with self._lock:
            return self._formatter.get_combined_transcript_history()

    @property
    def settings(self) -> DisplaySettings:
        return self._settings

    @property
    def profile(self) -> DeviceProfile:
        return self._profile

    @property
    def formatter(self) -> CaptionFormatter:
        return self._formatter

    @property
    def last_speaker_id(self) -> Optional[str]:
        return self._last_speaker_id

    def get_settings_snapshot(self) -> Dict[str, Any]:
        with self._lock:
            return {
                "profileId": self._profile.id,
                "displayWidth": int(self._settings.width),
                "displayWidthPx": self.display_width_px,
                "displayLines": self._settings.lines,
                "effectiveLines": self.effective_max_lines,
                "breakMode": self._settings.break_mode.value,
            }

    def dispose(self) -> None:
        with self._lock:
            self._disposed = True
            self._cancel_timer()
