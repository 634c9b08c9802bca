"""Style resolution: fonts, sizes, and colors for runs and headings.

WHY: A Word document needs a concrete font, size, and color for every
run. The values come either from static settings or from a snapshot of
the note editor's theme, and captured theme values are often junk
(empty strings, "undefined", "??" placeholders from unresolved CSS
variables). Resolution must always end in a real font name.

HOW: Every font lookup is one ordered candidate cascade evaluated by
resolve_font(): per-run override → theme snapshot (theme mode only) →
static settings → hard-coded fallback. StyleResolver turns settings and
an optional ThemeSnapshot into a StyleProfile and then into an
immutable StyleCatalog that the formatters read.

RULES:
- Invalid font names: empty/blank, "undefined", "??", or containing "??"
- Monospace contexts fall back to "Courier New", text to the configured
  family and finally "Calibri"
- Sizes in the catalog are half-points (point size × 2)
- Theme heading size = round(captured × captured_base / configured_default)
- Without a theme the heading ladder is 16, 14, 13, 12, 11, 11 pt
- Heading colors that are absent, "inherit", or white become "000000"
"""

from __future__ import annotations

import logging
import math
import re
from dataclasses import dataclass
from typing import Any, Dict, Iterable, Optional, Sequence, Tuple

from word_converter.config import (
    DEFAULT_HEADING_COLOR,
    FALLBACK_MONOSPACE_FONT,
    FALLBACK_TEXT_FONT,
    STANDARD_HEADING_SIZES_PT,
    THEME_HEADING_MULTIPLIERS,
    ConverterSettings,
)

logger = logging.getLogger(__name__)

_RGB_RE = re.compile(r"rgba?\(\s*(\d+)\s*,\s*(\d+)\s*,\s*(\d+)")
_HEX_RE = re.compile(r"^#?([0-9a-fA-F]{6}|[0-9a-fA-F]{3})$")
_PX_TO_PT = 0.75


def is_valid_font_name(name: Optional[str]) -> bool:
    """Return False for empty or placeholder font names."""
    if name is None:
        return False
    stripped = name.strip()
    if not stripped or stripped == "undefined":
        return False
    return "??" not in stripped


def resolve_font(candidates: Iterable[Optional[str]], fallback: str) -> str:
    """Return the first valid candidate, or the hard-coded fallback.

    RULES:
    - Candidates are consulted in order; invalid ones are skipped
    - The fallback is returned as-is and must itself be valid
    """
    for candidate in candidates:
        if is_valid_font_name(candidate):
            return candidate.strip()  # type: ignore[union-attr]
        if candidate is not None:
            logger.debug("Skipping invalid font name %r", candidate)
    return fallback


def clean_font_family(value: Optional[str]) -> str:
    """Reduce a CSS font-family list to its first family, without quotes."""
    if not value:
        return ""
    return value.replace('"', "").replace("'", "").split(",")[0].strip()


def css_color_to_hex(value: Optional[str]) -> Optional[str]:
    """Convert "rgb(r, g, b)", "rgba(...)" or "#rrggbb" to "RRGGBB"."""
    if not value or value.strip() == "inherit":
        return None
    text = value.strip()
    match = _RGB_RE.search(text)
    if match:
        r, g, b = (min(int(part), 255) for part in match.groups())
        return "{:02X}{:02X}{:02X}".format(r, g, b)
    match = _HEX_RE.match(text)
    if match:
        digits = match.group(1)
        if len(digits) == 3:
            digits = "".join(ch * 2 for ch in digits)
        return digits.upper()
    return None


def heading_color(value: Optional[str]) -> str:
    """Resolve a captured heading color, avoiding invisible white text."""
    color = css_color_to_hex(value)
    if color is None or color == "FFFFFF":
        return DEFAULT_HEADING_COLOR
    return color


def _css_size_pt(value: Any) -> Optional[float]:
    """Parse a captured size: numbers are points, "NNpx" strings are pixels."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return float(value) if value > 0 else None
    text = str(value).strip().lower()
    try:
        if text.endswith("px"):
            return float(round(float(text[:-2]) * _PX_TO_PT))
        if text.endswith("pt"):
            return float(text[:-2])
        return float(text)
    except ValueError:
        return None


def _float_or_none(value: Any) -> Optional[float]:
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    return number if math.isfinite(number) and number > 0 else None


@dataclass(frozen=True)
class ThemeSnapshot:
    """Font metrics captured from the note editor's current theme.

    WHY: Users want the Word output to look like the note on screen. The
    host captures the editor's computed styles; this class is the plain
    data it hands over.

    HOW: from_dict() accepts the captured values as the host reports
    them (camelCase or snake_case keys, "16px" or point numbers,
    "rgb(...)" colors, CSS font-family lists).

    RULES:
    - base_size_pt and heading_sizes_pt are captured sizes in points,
      before any scaling against the configured default size
    - heading entries may be missing (None / shorter tuples)
    """

    text_font: str = ""
    monospace_font: str = ""
    base_size_pt: float = 0.0
    line_height: Optional[float] = None
    heading_sizes_pt: Tuple[Optional[float], ...] = ()
    heading_fonts: Tuple[str, ...] = ()
    heading_colors: Tuple[str, ...] = ()

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> ThemeSnapshot:
        def pick(*keys: str) -> Any:
            for key in keys:
                if key in data:
                    return data[key]
            return None

        base = _css_size_pt(pick("baseFontSize", "base_size_pt", "fontSize"))
        sizes = pick("headingSizes", "heading_sizes_pt") or []
        fonts = pick("headingFonts", "heading_fonts") or []
        colors = pick("headingColors", "heading_colors") or []
        return cls(
            text_font=clean_font_family(pick("textFont", "text_font")),
            monospace_font=clean_font_family(pick("monospaceFont", "monospace_font")),
            base_size_pt=base or 0.0,
            line_height=_float_or_none(pick("lineHeight", "line_height")),
            heading_sizes_pt=tuple(_css_size_pt(size) for size in sizes),
            heading_fonts=tuple(clean_font_family(font) for font in fonts),
            heading_colors=tuple(str(color) for color in colors),
        )


def _nth(values: Sequence[Any], index: int) -> Any:
    return values[index] if index < len(values) else None


@dataclass(frozen=True)
class StyleProfile:
    """Effective typography before it is turned into Word units."""

    body_font: str
    monospace_font: str
    base_size_pt: float
    line_height_ratio: Optional[float]
    heading_sizes_pt: Tuple[int, ...]
    heading_fonts: Tuple[str, ...]
    heading_colors: Tuple[str, ...]

    @classmethod
    def standard(cls, settings: ConverterSettings) -> StyleProfile:
        body = resolve_font([settings.default_font_family], FALLBACK_TEXT_FONT)
        return cls(
            body_font=body,
            monospace_font=FALLBACK_MONOSPACE_FONT,
            base_size_pt=float(settings.default_font_size),
            line_height_ratio=None,
            heading_sizes_pt=STANDARD_HEADING_SIZES_PT,
            heading_fonts=(body,) * 6,
            heading_colors=(DEFAULT_HEADING_COLOR,) * 6,
        )

    @classmethod
    def from_theme(cls, snapshot: ThemeSnapshot, settings: ConverterSettings) -> StyleProfile:
        """Derive a profile from a captured theme.

        RULES:
        - multiplier = captured base size / configured default size
        - captured heading size × multiplier, rounded to whole points
        - levels without a captured size use base × THEME_HEADING_MULTIPLIERS
        """
        base = snapshot.base_size_pt or float(settings.default_font_size)
        multiplier = base / settings.default_font_size
        body = resolve_font(
            [snapshot.text_font, settings.default_font_family], FALLBACK_TEXT_FONT
        )
        monospace = resolve_font([snapshot.monospace_font], FALLBACK_MONOSPACE_FONT)

        sizes = []
        fonts = []
        colors = []
        for index in range(6):
            captured = _nth(snapshot.heading_sizes_pt, index)
            if captured:
                sizes.append(round(captured * multiplier))
            else:
                sizes.append(round(base * THEME_HEADING_MULTIPLIERS[index] * multiplier))
            fonts.append(resolve_font([_nth(snapshot.heading_fonts, index), body], FALLBACK_TEXT_FONT))
            colors.append(heading_color(_nth(snapshot.heading_colors, index)))

        return cls(
            body_font=body,
            monospace_font=monospace,
            base_size_pt=base,
            line_height_ratio=snapshot.line_height,
            heading_sizes_pt=tuple(sizes),
            heading_fonts=tuple(fonts),
            heading_colors=tuple(colors),
        )


@dataclass(frozen=True)
class HeadingStyle:
    font: str
    size: int  # half-points
    color: str


@dataclass(frozen=True)
class StyleCatalog:
    """Resolved styles shared by every block of one document.

    RULES:
    - All font names are valid (already passed through the cascade)
    - body_size and heading sizes are half-points
    - line_spacing is in 240ths of a line ("auto" rule) or None for the
      Word default
    - theme_active tells formatters to emit the custom paragraph styles
    """

    body_font: str
    monospace_font: str
    body_size: int
    line_spacing: Optional[int]
    headings: Tuple[HeadingStyle, ...]
    theme_active: bool = False

    def heading(self, level: int) -> HeadingStyle:
        return self.headings[min(max(level, 1), 6) - 1]

    def font_for(self, override: Optional[str], monospace: bool) -> str:
        """Resolve the font of a run: explicit override first, then the catalog."""
        default = self.monospace_font if monospace else self.body_font
        return resolve_font([override], default)


class StyleResolver:
    """Builds the StyleCatalog for one conversion.

    WHY: Fonts and sizes must be decided once per document so that two
    conversions with the same inputs produce identical attributes.

    HOW: Chooses StyleProfile.from_theme() when theme matching is on and
    a snapshot was supplied, StyleProfile.standard() otherwise, then
    converts points to half-points and line-height ratios to twips.
    """

    def __init__(self, settings: ConverterSettings, theme: Optional[ThemeSnapshot] = None) -> None:
        self.theme_active = bool(settings.use_theme_appearance and theme is not None)
        if self.theme_active:
            self.profile = StyleProfile.from_theme(theme, settings)  # type: ignore[arg-type]
        else:
            self.profile = StyleProfile.standard(settings)

    def catalog(self) -> StyleCatalog:
        profile = self.profile
        line_spacing = None
        if self.theme_active and profile.line_height_ratio:
            line_spacing = round(240 * profile.line_height_ratio)
        headings = tuple(
            HeadingStyle(
                font=profile.heading_fonts[index],
                size=profile.heading_sizes_pt[index] * 2,
                color=profile.heading_colors[index],
            )
            for index in range(6)
        )
        return StyleCatalog(
            body_font=profile.body_font,
            monospace_font=profile.monospace_font,
            body_size=round(profile.base_size_pt * 2),
            line_spacing=line_spacing,
            headings=headings,
            theme_active=self.theme_active,
        )
