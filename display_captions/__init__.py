"""Caption formatting engine for smart-glasses heads-up displays.

WHY: Live captions on glasses have to fit a few short lines of a tiny
pixel-measured display while speech keeps streaming in, gets revised, and
changes speakers. This package is the pure engine that turns that stream
into stable on-screen text; the session service (live_captions) only
wires it to devices and dashboards.

HOW: Leaf-first components:
  GlyphMetrics       : character/string pixel widths for a DeviceProfile
  LineWrapper        : pixel-budget wrapping with three break modes
  TranscriptHistory  : bounded FIFO of finalized utterances
  CaptionFormatter   : history + partial to the last max_lines lines
Device profiles live in profiles.py as frozen constants.

RULES:
- No I/O and no global mutable state: each session owns its formatter.
- Profiles are never mutated; reconfigure with CaptionFormatter.rebuild().
- Python 3.9 compatible (no slots=True, no match/case, no X | Y unions).
"""

from .formatter import CaptionFormatter, speaker_label
from .history import DEFAULT_CAPACITY, TranscriptHistory
from .metrics import GlyphMetrics
from .models import (
    BreakMode,
    DeviceProfile,
    DisplayWidth,
    FormatResult,
    LineMetric,
    PartialState,
    Utterance,
    WrapResult,
)
from .profiles import (
    BASELINE_PROFILE,
    G1_PROFILE,
    NEX_PROFILE,
    PROFILES,
    Z100_PROFILE,
    get_profile,
    resolve_profile,
)
from .wrapper import LineWrapper

__all__ = [
    "BASELINE_PROFILE",
    "BreakMode",
    "CaptionFormatter",
    "DEFAULT_CAPACITY",
    "DeviceProfile",
    "DisplayWidth",
    "FormatResult",
    "G1_PROFILE",
    "GlyphMetrics",
    "LineMetric",
    "LineWrapper",
    "NEX_PROFILE",
    "PROFILES",
    "PartialState",
    "TranscriptHistory",
    "Utterance",
    "WrapResult",
    "Z100_PROFILE",
    "get_profile",
    "resolve_profile",
    "speaker_label",
]
