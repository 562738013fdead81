"""Caption formatter: history + in-flight partial to on-screen lines.

WHY: Recognition engines stream provisional (interim) results that are
revised until a final result arrives. The glasses must show the newest
words immediately, keep recent finalized speech on screen for context,
label speaker turns, and never exceed the device's line budget.

HOW: The formatter is a two-state machine keyed on PartialState:
  Idle    : no interim text in flight; the display is history only.
  Partial : an interim result is tracked with its speaker attribution.
Every call rebuilds a display string from TranscriptHistory (plus the
partial, if any), wraps it with no line limit, then keeps only the LAST
max_lines lines so the most recent speech stays visible.

RULES:
- A turn-opening entry with a speaker id starts a new line as
  "[<id>]: <text>"; other entries join the previous text with one space.
- Interim turn detection: explicit speaker_changed, or a speaker id that
  differs from the one tracked for the current partial.
- Finals fall back to the partial's tracked speaker id and turn flag, so
  attribution seen only on interims is not lost.
- Truncation is tail-keeping, never head-keeping.
- No exceptions for malformed speech input; the worst case is a blank line.
"""

import logging
from typing import Iterable, List, Optional, Union

from .history import DEFAULT_CAPACITY, TranscriptHistory
from .metrics import GlyphMetrics
from .models import BreakMode, DeviceProfile, FormatResult, PartialState, Utterance
from .profiles import G1_PROFILE
from .wrapper import LineWrapper

logger = logging.getLogger(__name__)


def speaker_label(speaker_id: str) -> str:
    """The literal label prefix for a speaker turn, e.g. "[1]: "."""
    return "[{}]: ".format(speaker_id)


class CaptionFormatter:
    """Formats transcription text for a glasses display.

    Attributes are read-only after construction; to change width, lines,
    break mode or profile, build a new formatter with rebuild().
    """

    def __init__(
        self,
        profile: DeviceProfile = G1_PROFILE,
        max_final_transcripts: int = DEFAULT_CAPACITY,
        break_mode: Union[BreakMode, str] = BreakMode.CHARACTER,
        display_width_px: Optional[int] = None,
        max_lines: Optional[int] = None,
        hyphen_char: str = "-",
        min_chars_before_hyphen: int = 3,
    ) -> None:
        self._profile = profile
        self._display_width_px = (
            profile.display_width_px if display_width_px is None else display_width_px
        )
        self._max_lines = profile.max_lines if max_lines is None else max_lines
        if self._max_lines < 1:
            raise ValueError("max_lines must be at least 1, got {}".format(self._max_lines))

        self._metrics = GlyphMetrics(profile)
        self._wrapper = LineWrapper(
            self._metrics,
            break_mode=break_mode,
            hyphen_char=hyphen_char,
            min_chars_before_hyphen=min_chars_before_hyphen,
        )
        self._history = TranscriptHistory(max_final_transcripts)
        self._partial = PartialState()

    @classmethod
    def rebuild(
        cls,
        history: Iterable[Utterance],
        profile: DeviceProfile = G1_PROFILE,
        **options,
    ) -> "CaptionFormatter":
        """Build a freshly configured formatter and replay prior history.

        WHY: Reconfiguring a live formatter in place invites half-updated
        state. Building a new one and replaying finalized history through
        it keeps every invariant of the normal final-processing path.

        RULES:
        - Each utterance is replayed as a final with its original speaker
          id and turn flag, in the original order.
        - The in-flight partial is not carried over.

        Args:
            history: Utterances to replay, oldest first.
            profile: Device profile for the new formatter.
            **options: Any other CaptionFormatter constructor arguments.

        Returns:
            The new formatter.
        """
        formatter = cls(profile, **options)
        for entry in history:
            formatter.process_transcription(
                entry.text,
                True,
                entry.speaker_id,
                entry.had_speaker_change,
            )
        return formatter

    # ------------------------------------------------------------------
    # Processing
    # ------------------------------------------------------------------

    def process_transcription(
        self,
        text: Optional[str],
        is_final: bool,
        speaker_id: Optional[str] = None,
        speaker_changed: Optional[bool] = False,
    ) -> FormatResult:
        """Process one recognition result and format the display.

        Args:
            text: Recognized text; None is treated as empty.
            is_final: True if the recognizer will not revise this text.
            speaker_id: Optional diarization label.
            speaker_changed: Caller's speaker-change flag, if it computes one.

        Returns:
            FormatResult with at most max_lines lines.
        """
        clean_text = (text or "").strip()
        if is_final:
            return self._process_final(clean_text, speaker_id, bool(speaker_changed))
        return self._process_interim(clean_text, speaker_id, bool(speaker_changed))

    def _process_interim(
        self, text: str, speaker_id: Optional[str], speaker_changed: bool
    ) -> FormatResult:
        partial = self._partial
        if speaker_id and (speaker_changed or speaker_id != partial.speaker_id):
            partial.speaker_id = speaker_id
            partial.had_speaker_change = True
        partial.text = text

        return self._wrap_and_format(self._build_display_text(partial))

    def _process_final(
        self, text: str, speaker_id: Optional[str], speaker_changed: bool
    ) -> FormatResult:
        final_speaker_id = speaker_id or self._partial.speaker_id
        final_speaker_changed = speaker_changed or self._partial.had_speaker_change
        self._partial.reset()

        if text:
            self._history.append(Utterance(text, final_speaker_id, final_speaker_changed))

        return self._wrap_and_format(self._build_display_text(None))

    def render(self) -> FormatResult:
        """Format the current state without changing it."""
        partial = self._partial if self._partial.text else None
        return self._wrap_and_format(self._build_display_text(partial))

    def _build_display_text(self, partial: Optional[PartialState]) -> str:
        result = ""
        for entry in self._history:
            result = _append_entry(result, entry.text, entry.speaker_id, entry.had_speaker_change)
        if partial is not None and partial.text:
            result = _append_entry(
                result, partial.text, partial.speaker_id, partial.had_speaker_change
            )
        return result

    def _wrap_and_format(self, display_text: str) -> FormatResult:
        # Wrap unbounded, then keep the most recent lines.
        wrapped = self._wrapper.wrap(display_text, self._display_width_px)
        lines = wrapped.lines
        metrics = wrapped.line_metrics
        truncated = len(lines) > self._max_lines
        if truncated:
            lines = lines[-self._max_lines:]
            metrics = metrics[-self._max_lines:]

        logger.debug(
            "Formatted %d of %d lines (truncated=%s)", len(lines), len(wrapped.lines), truncated
        )
        return FormatResult(
            lines=list(lines),
            display_text="\n".join(lines),
            truncated=truncated,
            line_metrics=list(metrics),
        )

    # ------------------------------------------------------------------
    # History management
    # ------------------------------------------------------------------

    def get_final_transcript_history(self) -> List[Utterance]:
        return self._history.all()

    def get_combined_transcript_history(self) -> str:
        """History texts joined by spaces, without speaker labels."""
        return self._history.combined_text()

    def clear(self) -> None:
        """Drop all history and any in-flight partial."""
        self._history.clear()
        self._partial.reset()

    def set_max_final_transcripts(self, max_final_transcripts: int) -> None:
        self._history.set_capacity(max_final_transcripts)

    # ------------------------------------------------------------------
    # Accessors
    # ------------------------------------------------------------------

    @property
    def max_final_transcripts(self) -> int:
        return self._history.capacity

    @property
    def profile(self) -> DeviceProfile:
        return self._profile

    @property
    def metrics(self) -> GlyphMetrics:
        return self._metrics

    @property
    def wrapper(self) -> LineWrapper:
        return self._wrapper

    @property
    def break_mode(self) -> BreakMode:
        return self._wrapper.break_mode

    @property
    def max_lines(self) -> int:
        return self._max_lines

    @property
    def display_width_px(self) -> int:
        return self._display_width_px

    @property
    def partial(self) -> PartialState:
        return PartialState(
            self._partial.text, self._partial.speaker_id, self._partial.had_speaker_change
        )


def _append_entry(
    result: str, text: str, speaker_id: Optional[str], had_speaker_change: bool
) -> str:
    if had_speaker_change and speaker_id:
        if result:
            result += "\n"
        return result + speaker_label(speaker_id) + text
    if result:
        result += " "
    return result + text
