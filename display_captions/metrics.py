"""Pixel measurement of text for a device profile."""

from typing import Optional

from .models import DeviceProfile


class GlyphMetrics:
    """Measures characters and strings in rendered pixels.

    WHY: Line budgets on the glasses are in pixels, not characters; an
    "m" is several times wider than an "i". Every wrap decision goes
    through this class.

    RULES:
    - Pure function of (profile, text); no caching, no side effects.
    - Unmapped glyphs use profile.default_glyph_width, never an error.
    - Empty or None text measures as zero.
    """

    def __init__(self, profile: DeviceProfile) -> None:
        self._profile = profile

    @property
    def profile(self) -> DeviceProfile:
        return self._profile

    def width_of(self, char: str) -> int:
        """Pixel width of a single character."""
        return self._profile.glyph_widths.get(char, self._profile.default_glyph_width)

    def measure(self, text: Optional[str]) -> int:
        """Total pixel width of a string."""
        if not text:
            return 0
        return sum(self.width_of(ch) for ch in text)

    def fits(self, text: Optional[str], max_width_px: int) -> bool:
        return self.measure(text) <= max_width_px

    def max_prefix(self, text: str, max_width_px: int) -> int:
        """Length of the longest prefix of text that fits in max_width_px."""
        total = 0
        for index, ch in enumerate(text):
            total += self.width_of(ch)
            if total > max_width_px:
                return index
        return len(text)
