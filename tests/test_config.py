"""Unit tests for ConverterSettings and settings loading."""

import json

import pytest

from word_converter.config import ConverterSettings, inches_to_twips, load_settings


class TestConverterSettings:
    def test_invalid_font_size_replaced(self):
        assert ConverterSettings(default_font_size=0).default_font_size == 11
        assert ConverterSettings(default_font_size=-3).default_font_size == 11

    def test_unknown_page_size_falls_back_to_a4(self):
        assert ConverterSettings(page_size="B5").page_size == "A4"

    def test_from_dict_ignores_unknown_keys(self):
        settings = ConverterSettings.from_dict({"page_size": "Letter", "exportFolder": "/tmp"})
        assert settings.page_size == "Letter"

    def test_from_dict_parses_numeric_strings(self):
        assert ConverterSettings.from_dict({"default_font_size": "14"}).default_font_size == 14
        assert ConverterSettings.from_dict({"default_font_size": "big"}).default_font_size == 11


class TestLoadSettings:
    def test_camel_case_keys(self, tmp_path):
        path = tmp_path / "settings.json"
        path.write_text(json.dumps({
            "defaultFontFamily": "Georgia",
            "defaultFontSize": 12,
            "includeFilenameAsHeader": True,
            "useObsidianAppearance": True,
            "pageSize": "Legal",
        }))
        settings = load_settings(path)
        assert settings.default_font_family == "Georgia"
        assert settings.default_font_size == 12
        assert settings.include_filename_as_header is True
        assert settings.use_theme_appearance is True
        assert settings.page_size == "Legal"

    def test_non_object_rejected(self, tmp_path):
        path = tmp_path / "settings.json"
        path.write_text("[1, 2]")
        with pytest.raises(ValueError):
            load_settings(path)

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_settings(tmp_path / "missing.json")


def test_inches_to_twips():
    assert inches_to_twips(1) == 1440
    assert inches_to_twips(0.18) == 259
