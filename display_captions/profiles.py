"""Device profile catalog and glyph-width tables.

WHY: Each supported pair of glasses renders text with its own font, line
width, and line count. Captions that fit one display overflow another, so
every measurement the engine makes is relative to a DeviceProfile. Keeping
the catalog as plain importable constants lets callers pick a profile by
id or by detected model name without knowing any pixel details.

HOW: All profiles share one base font table (column widths of the glasses'
bitmap font). A profile renders each column `scale` pixels wide and adds
`spacing` columns between glyphs, so its pixel table is derived rather
than hand-maintained. resolve_profile() maps a detected model string to a
profile by case-insensitive substring match on each profile's keywords.

RULES:
- Profiles are frozen constants; never mutate them at runtime.
- PROFILES is ordered: more specific keyword sets come first.
- Unknown or empty model names resolve to BASELINE_PROFILE (G1).
- Width percentages may differ per hardware generation; always go through
  DeviceProfile.width_for() rather than hard-coding 70/85/100.
"""

from typing import Dict, Optional

from .models import DeviceProfile, DisplayWidth, GlyphTable

# Column widths of the bitmap font at 1x, before inter-glyph spacing.
_BASE_FONT_COLUMNS: Dict[str, int] = {
    " ": 2,
    "!": 1, "\"": 3, "#": 6, "$": 5, "%": 6, "&": 6, "'": 1, "(": 2, ")": 2,
    "*": 5, "+": 5, ",": 1, "-": 4, ".": 1, "/": 4, ":": 1, ";": 1,
    "<": 4, "=": 4, ">": 4, "?": 5, "@": 7, "[": 2, "\\": 4, "]": 2,
    "^": 5, "_": 5, "`": 2, "{": 3, "|": 1, "}": 3, "~": 6,
    "0": 5, "1": 3, "2": 5, "3": 5, "4": 5, "5": 5, "6": 5, "7": 5, "8": 5, "9": 5,
    "a": 5, "b": 5, "c": 5, "d": 5, "e": 5, "f": 4, "g": 5, "h": 5, "i": 1,
    "j": 2, "k": 4, "l": 1, "m": 7, "n": 5, "o": 5, "p": 5, "q": 5, "r": 4,
    "s": 5, "t": 3, "u": 5, "v": 5, "w": 7, "x": 5, "y": 5, "z": 5,
    "A": 6, "B": 5, "C": 5, "D": 5, "E": 5, "F": 5, "G": 6, "H": 5, "I": 1,
    "J": 5, "K": 5, "L": 4, "M": 7, "N": 6, "O": 6, "P": 5, "Q": 6, "R": 5,
    "S": 5, "T": 5, "U": 5, "V": 6, "W": 7, "X": 6, "Y": 5, "Z": 5,
}


def build_glyph_table(scale: int, spacing: int = 1) -> GlyphTable:
    """Derive a pixel-width table from the base font columns.

    Args:
        scale: Rendered pixels per font column.
        spacing: Blank columns drawn after each glyph.

    Returns:
        Mapping of character to rendered pixel width.
    """
    return {ch: (cols + spacing) * scale for ch, cols in _BASE_FONT_COLUMNS.items()}


_G1_WIDTHS = {
    DisplayWidth.NARROW: 0.70,
    DisplayWidth.MEDIUM: 0.85,
    DisplayWidth.WIDE: 1.00,
}

# Z100 renders on a wider panel; its narrow setting is proportionally tighter.
_Z100_WIDTHS = {
    DisplayWidth.NARROW: 0.60,
    DisplayWidth.MEDIUM: 0.80,
    DisplayWidth.WIDE: 1.00,
}

# Even Realities G1: 576px usable width, 5 lines.
G1_PROFILE = DeviceProfile(
    id="even-realities-g1",
    name="Even Realities G1",
    display_width_px=576,
    max_lines=5,
    glyph_widths=build_glyph_table(scale=2),
    default_glyph_width=18,
    width_percentages=_G1_WIDTHS,
    model_keywords=("even realities", "g1"),
)

# Vuzix Z100: 640px usable width, 5 lines.
Z100_PROFILE = DeviceProfile(
    id="vuzix-z100",
    name="Vuzix Z100",
    display_width_px=640,
    max_lines=5,
    glyph_widths=build_glyph_table(scale=2),
    default_glyph_width=20,
    width_percentages=_Z100_WIDTHS,
    model_keywords=("vuzix", "z100"),
)

# Mentra Nex: larger glyphs, 4 lines.
NEX_PROFILE = DeviceProfile(
    id="mentra-nex",
    name="Mentra Nex",
    display_width_px=600,
    max_lines=4,
    glyph_widths=build_glyph_table(scale=3),
    default_glyph_width=27,
    width_percentages=_G1_WIDTHS,
    model_keywords=("mentra nex", "nex"),
)

BASELINE_PROFILE = G1_PROFILE

# Profile lookup by id. Order matters for resolve_profile().
PROFILES: Dict[str, DeviceProfile] = {
    Z100_PROFILE.id: Z100_PROFILE,
    NEX_PROFILE.id: NEX_PROFILE,
    G1_PROFILE.id: G1_PROFILE,
}


def resolve_profile(model_name: Optional[str]) -> DeviceProfile:
    """Map a detected device model name to a DeviceProfile.

    WHY: The glasses report free-form model strings ("Even Realities G1",
    "Vuzix Z100 (fw 2.1)"). The engine only needs the family.

    HOW: Lowercases the name and returns the first catalog profile with a
    keyword contained in it.

    RULES:
    - None, empty, or unmatched names return BASELINE_PROFILE.
    - Matching is case-insensitive substring matching.

    Args:
        model_name: Model string reported by the device, if any.

    Returns:
        The matching DeviceProfile.
    """
    if not model_name:
        return BASELINE_PROFILE

    needle = model_name.strip().lower()
    for profile in PROFILES.values():
        if any(keyword in needle for keyword in profile.model_keywords):
            return profile
    return BASELINE_PROFILE


def get_profile(profile_id: str) -> DeviceProfile:
    """Look up a profile by id.

    Raises:
        ValueError: If the id is not in the catalog.
    """
    if profile_id not in PROFILES:
        raise ValueError(
            "Unknown profile '{}'. Available: {}".format(
                profile_id, ", ".join(PROFILES.keys())
            )
        )
    return PROFILES[profile_id]
