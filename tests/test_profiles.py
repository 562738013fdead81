"""Tests for the device profile catalog.

WHY: Model names come from the glasses as free-form strings and must map
to the right profile; width percentages must produce the pixel widths the
display settings promise.
"""

import pytest

from display_captions import (
    BASELINE_PROFILE,
    G1_PROFILE,
    NEX_PROFILE,
    PROFILES,
    Z100_PROFILE,
    DisplayWidth,
    get_profile,
    resolve_profile,
)
from display_captions.profiles import build_glyph_table


class TestResolveProfile:

    @pytest.mark.parametrize("model_name, expected", [
        ("Even Realities G1", G1_PROFILE),
        ("EVEN REALITIES G1", G1_PROFILE),
        ("Vuzix Z100 (fw 2.1)", Z100_PROFILE),
        ("Mentra Nex", NEX_PROFILE),
    ])
    def test_known_models(self, model_name, expected):
        assert resolve_profile(model_name) is expected

    @pytest.mark.parametrize("model_name", [None, "", "Some Other Glasses"])
    def test_unknown_models_fall_back_to_baseline(self, model_name):
        assert resolve_profile(model_name) is BASELINE_PROFILE

    def test_baseline_is_g1(self):
        assert BASELINE_PROFILE is G1_PROFILE


class TestGetProfile:

    def test_by_id(self):
        assert get_profile("vuzix-z100") is Z100_PROFILE

    def test_unknown_id_raises(self):
        with pytest.raises(ValueError, match="Unknown profile"):
            get_profile("nope")

    def test_catalog_ids_match_keys(self):
        for profile_id, profile in PROFILES.items():
            assert profile.id == profile_id


class TestWidthFor:

    def test_g1_percentages(self):
        assert G1_PROFILE.width_for(DisplayWidth.NARROW) == 403
        assert G1_PROFILE.width_for(DisplayWidth.MEDIUM) == 490
        assert G1_PROFILE.width_for(DisplayWidth.WIDE) == 576

    def test_z100_has_its_own_table(self):
        assert Z100_PROFILE.width_for(DisplayWidth.NARROW) == 384
        assert Z100_PROFILE.width_for(DisplayWidth.MEDIUM) == 512

    def test_profiles_are_frozen(self):
        with pytest.raises(Exception):
            G1_PROFILE.max_lines = 9


class TestGlyphTable:

    def test_scale_and_spacing(self):
        assert build_glyph_table(scale=2)["a"] == 12
        assert build_glyph_table(scale=3)["a"] == 18
        assert build_glyph_table(scale=1, spacing=0)["m"] == 7
