"""Pixel-budget line wrapping with configurable break policies.

WHY: The glasses show a handful of short lines. Captions must be split to
fit a pixel width without losing or duplicating text, and the split style
is a user preference: dense character-level filling, classic word
wrapping, or strict word wrapping that never hyphenates.

HOW: Input is split on hard newlines into paragraphs (speaker labels rely
on these forced breaks). Each paragraph is tokenized on whitespace and
packed greedily, measuring every candidate line with GlyphMetrics. Words
that do not fit are handled per BreakMode: moved to the next line,
hyphenated across lines, or left to overflow.

RULES:
- Whitespace at a break point is consumed, never carried to the next line.
- Hyphens are only inserted after at least min_chars_before_hyphen
  characters; shorter fragments move the word to the next line instead.
- The wrapper never truncates unless the caller passes max_lines.
- Empty input produces exactly one empty line.
- Always makes progress: at least one character is emitted per line even
  if the budget cannot hold a single glyph.
- When the budget cannot hold min_chars_before_hyphen characters plus the
  hyphen, an over-wide word is cut at the widest prefix that fits (at least
  one character) with no hyphen; those lines report hyphenated=False.
"""

from typing import List, Optional, Tuple, Union

from .metrics import GlyphMetrics
from .models import BreakMode, LineMetric, WrapResult

# (line text, ends with an inserted hyphen)
_Line = Tuple[str, bool]


class LineWrapper:
    """Splits text into lines that fit a pixel width.

    Attributes:
        break_mode: Default BreakMode used when wrap() is not given one.
        hyphen_char: Character appended where a word is split.
        min_chars_before_hyphen: Minimum word prefix kept before a hyphen.
    """

    def __init__(
        self,
        metrics: GlyphMetrics,
        break_mode: Union[BreakMode, str] = BreakMode.CHARACTER,
        hyphen_char: str = "-",
        min_chars_before_hyphen: int = 3,
    ) -> None:
        self._metrics = metrics
        self.break_mode = BreakMode(break_mode)
        self.hyphen_char = hyphen_char
        self.min_chars_before_hyphen = max(1, min_chars_before_hyphen)

    @property
    def metrics(self) -> GlyphMetrics:
        return self._metrics

    def wrap(
        self,
        text: Optional[str],
        max_width_px: int,
        break_mode: Optional[Union[BreakMode, str]] = None,
        max_lines: Optional[int] = None,
    ) -> WrapResult:
        """Wrap text into lines no wider than max_width_px.

        Args:
            text: Text to wrap; None is treated as empty. Newlines force breaks.
            max_width_px: Pixel budget per line.
            break_mode: Override for this call; defaults to self.break_mode.
            max_lines: Keep only the first max_lines lines. None = unbounded.

        Returns:
            WrapResult with the lines and per-line metrics.

        Raises:
            ValueError: If max_lines is given and smaller than 1.
        """
        if max_lines is not None and max_lines < 1:
            raise ValueError("max_lines must be at least 1, got {}".format(max_lines))

        mode = self.break_mode if break_mode is None else BreakMode(break_mode)
        text = "" if text is None else text.replace("\r\n", "\n").replace("\r", "\n")

        lines: List[_Line] = []
        for paragraph in text.split("\n"):
            lines.extend(self._wrap_paragraph(paragraph, max_width_px, mode))

        truncated = False
        if max_lines is not None and len(lines) > max_lines:
            lines = lines[:max_lines]
            truncated = True

        return WrapResult(
            lines=[line for line, _ in lines],
            line_metrics=[
                self._line_metric(line, hyphenated, max_width_px)
                for line, hyphenated in lines
            ],
            truncated=truncated,
        )

    def _wrap_paragraph(self, paragraph: str, max_width_px: int, mode: BreakMode) -> List[_Line]:
        words = paragraph.split()
        if not words:
            return [("", False)]

        measure = self._metrics.measure
        space_px = self._metrics.width_of(" ")
        lines: List[_Line] = []
        current = ""
        current_px = 0

        for word in words:
            word_px = measure(word)

            if current:
                needed = current_px + space_px + word_px
                if needed <= max_width_px:
                    current += " " + word
                    current_px = needed
                    continue

                head = 0
                if mode is BreakMode.CHARACTER:
                    head = self._hyphen_head(word, max_width_px - current_px - space_px)
                if head:
                    lines.append((current + " " + word[:head] + self.hyphen_char, True))
                    word = word[head:]
                    word_px = measure(word)
                else:
                    lines.append((current, False))
                current, current_px = "", 0

            # Line is empty: the word starts it.
            if word_px <= max_width_px or mode is BreakMode.STRICT_WORD:
                current, current_px = word, word_px
                continue

            while measure(word) > max_width_px:
                head = self._hyphen_head(word, max_width_px)
                if head:
                    lines.append((word[:head] + self.hyphen_char, True))
                else:
                    # Budget cannot hold the minimum run plus a hyphen.
                    head = max(1, self._metrics.max_prefix(word, max_width_px))
                    lines.append((word[:head], False))
                word = word[head:]
            current, current_px = word, measure(word)

        if current or not lines:
            lines.append((current, False))
        return lines

    def _hyphen_head(self, word: str, available_px: int) -> int:
        """Number of leading characters of word to keep before a hyphen.

        Returns 0 when fewer than min_chars_before_hyphen characters (plus
        the hyphen) fit, meaning the word should not be split here.
        """
        budget = available_px - self._metrics.measure(self.hyphen_char)
        if budget <= 0:
            return 0
        head = min(self._metrics.max_prefix(word, budget), len(word) - 1)
        if head < self.min_chars_before_hyphen:
            return 0
        return head

    def _line_metric(self, line: str, hyphenated: bool, max_width_px: int) -> LineMetric:
        width = self._metrics.measure(line)
        utilization = round(100.0 * width / max_width_px, 1) if max_width_px > 0 else 0.0
        return LineMetric(
            text=line,
            width_px=width,
            char_count=len(line),
            byte_count=len(line.encode("utf-8")),
            utilization_percent=utilization,
            hyphenated=hyphenated,
        )
