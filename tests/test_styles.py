"""Unit tests for the style resolver.

WHY: Every run needs a real font. Theme snapshots often carry
placeholder values, so the font cascade and the heading size math must
be right, and identical inputs must give identical catalogs.

HOW: Tests call resolve_font(), the color helpers, ThemeSnapshot and
StyleResolver directly.
"""

import pytest

from word_converter.config import ConverterSettings
from word_converter.core.styles import (
    StyleResolver,
    ThemeSnapshot,
    css_color_to_hex,
    heading_color,
    is_valid_font_name,
    resolve_font,
)


class TestFontCascade:
    @pytest.mark.parametrize("name", ["", "   ", "undefined", "??", "Inter??", None])
    def test_invalid_names(self, name):
        assert not is_valid_font_name(name)

    def test_first_valid_candidate_wins(self):
        assert resolve_font(["undefined", " Georgia ", "Arial"], "Calibri") == "Georgia"

    def test_fallback_when_all_invalid(self):
        assert resolve_font(["", None, "??"], "Calibri") == "Calibri"

    @pytest.mark.parametrize("monospace", ["", "undefined", "??"])
    def test_bad_theme_monospace_falls_back_to_courier(self, monospace):
        settings = ConverterSettings(use_theme_appearance=True)
        snapshot = ThemeSnapshot(text_font="Inter", monospace_font=monospace, base_size_pt=16)
        catalog = StyleResolver(settings, snapshot).catalog()
        assert catalog.monospace_font == "Courier New"

    def test_run_override_validated(self):
        catalog = StyleResolver(ConverterSettings(default_font_family="Georgia")).catalog()
        assert catalog.font_for("undefined", monospace=False) == "Georgia"
        assert catalog.font_for("", monospace=True) == "Courier New"
        assert catalog.font_for("Verdana", monospace=False) == "Verdana"


class TestColors:
    def test_css_colors(self):
        assert css_color_to_hex("rgb(255, 0, 128)") == "FF0080"
        assert css_color_to_hex("rgba(1, 2, 3, 0.5)") == "010203"
        assert css_color_to_hex("#abc") == "AABBCC"
        assert css_color_to_hex("inherit") is None
        assert css_color_to_hex("papayawhip") is None

    def test_white_heading_becomes_black(self):
        assert heading_color("rgb(255, 255, 255)") == "000000"
        assert heading_color(None) == "000000"
        assert heading_color("#336699") == "336699"


class TestStandardProfile:
    def test_heading_ladder(self):
        catalog = StyleResolver(ConverterSettings(default_font_size=11)).catalog()
        assert [catalog.heading(level).size for level in range(1, 7)] == [32, 28, 26, 24, 22, 22]
        assert catalog.body_size == 22
        assert catalog.line_spacing is None
        assert not catalog.theme_active

    def test_theme_ignored_when_flag_off(self):
        snapshot = ThemeSnapshot(text_font="Inter", base_size_pt=16)
        catalog = StyleResolver(ConverterSettings(default_font_family="Georgia"), snapshot).catalog()
        assert catalog.body_font == "Georgia"
        assert not catalog.theme_active


class TestThemeProfile:
    def test_heading_sizes_scaled_by_base_ratio(self):
        settings = ConverterSettings(default_font_size=16, use_theme_appearance=True)
        snapshot = ThemeSnapshot(
            text_font="Inter",
            base_size_pt=16,
            heading_sizes_pt=(32, 24),
            line_height=1.5,
        )
        catalog = StyleResolver(settings, snapshot).catalog()
        assert catalog.theme_active
        assert catalog.body_font == "Inter"
        assert catalog.body_size == 32
        assert catalog.heading(1).size == 64
        assert catalog.heading(2).size == 48
        # H3 has no captured size: base × 1.4
        assert catalog.heading(3).size == round(16 * 1.4) * 2
        assert catalog.line_spacing == 360

    def test_from_dict_accepts_host_shape(self):
        snapshot = ThemeSnapshot.from_dict({
            "textFont": "'Inter', sans-serif",
            "monospaceFont": "\"JetBrains Mono\", monospace",
            "baseFontSize": "16px",
            "headingSizes": ["32px", None],
            "headingColors": ["rgb(10, 20, 30)"],
            "lineHeight": "1.5",
        })
        assert snapshot.text_font == "Inter"
        assert snapshot.monospace_font == "JetBrains Mono"
        assert snapshot.base_size_pt == 12.0
        assert snapshot.heading_sizes_pt == (24.0, None)
        assert snapshot.line_height == 1.5

    def test_catalog_is_deterministic(self):
        settings = ConverterSettings(use_theme_appearance=True)
        snapshot = ThemeSnapshot(text_font="Inter", base_size_pt=15, heading_colors=("#123456",))
        first = StyleResolver(settings, snapshot).catalog()
        second = StyleResolver(settings, snapshot).catalog()
        assert first == second
