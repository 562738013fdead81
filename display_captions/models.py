"""Data models for the caption display engine.

WHY: Every stage of the engine (measurement, wrapping, history, formatting)
passes the same handful of values around: the target display, finalized
utterances, and the per-line results of a wrap. Typed dataclasses keep
those contracts explicit and make the immutable ones actually immutable.

HOW: DeviceProfile and Utterance are frozen dataclasses: they are swapped,
never edited. PartialState is the only mutable record: the formatter owns
exactly one and resets it on every final transcription. WrapResult and
FormatResult are derived values, rebuilt on every call and never stored.

RULES:
- Utterance.text is sacred: the engine trims it but never rewrites it.
- DeviceProfile.glyph_widths maps single characters to pixel widths;
  anything missing falls back to default_glyph_width.
- BreakMode values are the wire strings used by settings and the CLI.
- Python 3.9 compatible (no slots=True, no match/case, no X | Y unions).
"""

import enum
from dataclasses import dataclass, field
from typing import Dict, List, Mapping, Optional, Tuple


class BreakMode(str, enum.Enum):
    """Policy governing where a line may be split to fit the width budget.

    RULES:
    - character: fill each line, hyphenating inside a word when at least
      the minimum run of characters fits before the hyphen.
    - word: break at whitespace; hyphenate only words wider than a line.
    - strict-word: break at whitespace only; long words overflow.
    """

    CHARACTER = "character"
    WORD = "word"
    STRICT_WORD = "strict-word"


class DisplayWidth(int, enum.Enum):
    """User-facing width choice, stored as 0/1/2 by the settings layer."""

    NARROW = 0
    MEDIUM = 1
    WIDE = 2


@dataclass(frozen=True)
class DeviceProfile:
    """Display geometry and font metrics of one target screen.

    Attributes:
        id: Stable profile identifier, e.g. "even-realities-g1".
        name: Human-readable device family name.
        display_width_px: Native usable line width in pixels.
        max_lines: Maximum number of text lines the device can show.
        glyph_widths: Character to rendered pixel width.
        default_glyph_width: Width used for unmapped glyphs (emoji, CJK...).
        width_percentages: DisplayWidth to fraction of display_width_px.
        model_keywords: Lowercase substrings matched against detected
            device model names.
    """

    id: str
    name: str
    display_width_px: int
    max_lines: int
    glyph_widths: Mapping[str, int]
    default_glyph_width: int
    width_percentages: Mapping[DisplayWidth, float]
    model_keywords: Tuple[str, ...] = ()

    def width_for(self, width: DisplayWidth) -> int:
        """Pixel width for a Narrow/Medium/Wide choice on this device."""
        return int(round(self.display_width_px * self.width_percentages[width]))


@dataclass(frozen=True)
class Utterance:
    """One finalized piece of recognized speech.

    Attributes:
        text: Trimmed, non-empty recognized text.
        speaker_id: Diarization label ("1", "2", ...) or None.
        had_speaker_change: True if this utterance opens a new speaker turn.
    """

    text: str
    speaker_id: Optional[str] = None
    had_speaker_change: bool = False


@dataclass
class PartialState:
    """The single in-flight interim utterance tracked by the formatter."""

    text: str = ""
    speaker_id: Optional[str] = None
    had_speaker_change: bool = False

    def reset(self) -> None:
        self.text = ""
        self.speaker_id = None
        self.had_speaker_change = False


@dataclass
class LineMetric:
    """Measurement of one wrapped line."""

    text: str
    width_px: int
    char_count: int
    byte_count: int
    utilization_percent: float
    hyphenated: bool = False


@dataclass
class WrapResult:
    """Output of LineWrapper.wrap().

    truncated is only ever True when the caller asked the wrapper for a
    finite max_lines; the formatter always wraps unbounded.
    """

    lines: List[str]
    line_metrics: List[LineMetric] = field(default_factory=list)
    truncated: bool = False


@dataclass
class FormatResult:
    """What the formatter hands to the display layer.

    Attributes:
        lines: At most max_lines strings, the tail of the wrapped text.
        display_text: lines joined with newlines.
        truncated: True if older lines were dropped to fit max_lines.
        line_metrics: Metrics for each entry in lines.
    """

    lines: List[str]
    display_text: str
    truncated: bool
    line_metrics: List[LineMetric] = field(default_factory=list)


GlyphTable = Dict[str, int]
