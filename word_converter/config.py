"""Configuration constants, page sizes, and converter settings.

WHY: Centralizes all configurable values so they are easy to find,
update, and override. Page sizes, heading ladders, and converter
defaults are plain data structures rather than buried in logic, so the
converter, the CLI, and the tests all read from one place.

HOW: python-dotenv loads the .env file on import. Defaults are
module-level constants that environment variables can override.
ConverterSettings bundles the per-conversion options; from_dict() and
load_settings() accept the host's persisted JSON settings.

RULES:
- PAGE_SIZES maps a page size name to (width, height) in inches
- Unknown page size names fall back to DEFAULT_PAGE_SIZE ("A4")
- Margins are fixed at 1 inch on all sides
- Invalid settings values are replaced by defaults, never raised
"""

from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass, fields
from pathlib import Path
from typing import Any, Dict, Optional, Tuple

from dotenv import load_dotenv

# Load .env from the working directory (where the converter is run from)
load_dotenv()

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Page geometry
# ---------------------------------------------------------------------------

PAGE_SIZES: Dict[str, Tuple[float, float]] = {
    "A4": (8.27, 11.69),
    "A5": (5.83, 8.27),
    "A3": (11.69, 16.54),
    "Letter": (8.5, 11.0),
    "Legal": (8.5, 14.0),
    "Tabloid": (11.0, 17.0),
}
"""Named page sizes as (width, height) in inches, portrait orientation."""

PAGE_MARGIN_INCHES = 1.0
TWIPS_PER_INCH = 1440

# ---------------------------------------------------------------------------
# Typography defaults
# ---------------------------------------------------------------------------

FALLBACK_TEXT_FONT = "Calibri"
FALLBACK_MONOSPACE_FONT = "Courier New"

STANDARD_HEADING_SIZES_PT: Tuple[int, ...] = (16, 14, 13, 12, 11, 11)
"""Heading ladder used when no theme snapshot is active (H1 → H6)."""

THEME_HEADING_MULTIPLIERS: Tuple[float, ...] = (2.0, 1.6, 1.4, 1.2, 1.1, 1.0)
"""Relative heading sizes used when a theme snapshot lacks a captured level."""

HYPERLINK_COLOR = "0563C1"
DEFAULT_HEADING_COLOR = "000000"
INLINE_CODE_SHADING = "F5F5F5"
CODE_BLOCK_SHADING = "F5F5F5"
HIGHLIGHT_COLOR = "yellow"

SYNTAX_COLORS: Dict[str, str] = {
    "keyword": "569CD6",
    "attr": "9CDCFE",
    "attribute": "9CDCFE",
    "symbol": "C586C0",
    "built_in": "4EC9B0",
    "type": "4EC9B0",
    "literal": "B5CEA8",
    "number": "B5CEA8",
    "string": "CE9178",
    "template-variable": "9CDCFE",
    "variable": "9CDCFE",
    "title": "4EC9B0",
    "function": "DCDCAA",
    "comment": "6A9955",
    "meta": "D4D4D4",
}
"""Syntax token class (as in "hljs-keyword" spans) → run color."""

MAX_IMAGE_WIDTH_PX = 680
"""Widest image (at 96 DPI, roughly 7 inches) placed without an explicit width."""

# ---------------------------------------------------------------------------
# Environment-overridable defaults
# ---------------------------------------------------------------------------


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name, "").strip()
    try:
        return int(raw) if raw else default
    except ValueError:
        logger.warning("Ignoring non-integer %s=%r", name, raw)
        return default


def _env_float(name: str, default: Optional[float]) -> Optional[float]:
    raw = os.getenv(name, "").strip()
    if not raw:
        return default
    if raw.lower() in ("none", "off", "0"):
        return None
    try:
        return float(raw)
    except ValueError:
        logger.warning("Ignoring non-numeric %s=%r", name, raw)
        return default


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name, "").strip().lower()
    if not raw:
        return default
    return raw in ("1", "true", "yes", "on")


DEFAULT_FONT_FAMILY = os.getenv("WORD_DEFAULT_FONT_FAMILY", FALLBACK_TEXT_FONT)
DEFAULT_FONT_SIZE = _env_int("WORD_DEFAULT_FONT_SIZE", 11)
DEFAULT_PAGE_SIZE = os.getenv("WORD_PAGE_SIZE", "A4")
DEFAULT_PRESERVE_FORMATTING = _env_bool("WORD_PRESERVE_FORMATTING", True)
DEFAULT_REMOTE_FETCH_TIMEOUT_S = _env_float("WORD_REMOTE_FETCH_TIMEOUT_S", 30.0)


@dataclass
class ConverterSettings:
    """Options that shape one conversion.

    WHY: The host application owns the settings UI and persistence; the
    converter only needs the values. A dataclass keeps them typed and
    gives every option a documented default.

    HOW: Construct directly, or via from_dict() from persisted JSON.
    Defaults come from the module-level constants above (which honour
    environment overrides).

    RULES:
    - default_font_size is in points and must be > 0
    - page_size must be a PAGE_SIZES key; anything else means A4
    - use_theme_appearance only has an effect when a theme snapshot is
      supplied to the conversion
    - remote_fetch_timeout_s=None disables the timeout
    """

    default_font_family: str = DEFAULT_FONT_FAMILY
    default_font_size: int = DEFAULT_FONT_SIZE
    include_metadata: bool = False
    preserve_formatting: bool = DEFAULT_PRESERVE_FORMATTING
    use_theme_appearance: bool = False
    include_filename_as_header: bool = False
    page_size: str = DEFAULT_PAGE_SIZE
    remote_fetch_timeout_s: Optional[float] = DEFAULT_REMOTE_FETCH_TIMEOUT_S

    def __post_init__(self) -> None:
        if not isinstance(self.default_font_size, int) or self.default_font_size <= 0:
            logger.warning("Invalid default font size %r, using %d", self.default_font_size, 11)
            self.default_font_size = 11
        if self.page_size not in PAGE_SIZES:
            logger.warning("Unknown page size %r, using A4", self.page_size)
            self.page_size = "A4"

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> ConverterSettings:
        """Build settings from a persisted dict, ignoring unknown keys.

        Mirrors how the host merges saved data over defaults: missing keys
        keep their default, keys this converter does not know about (such
        as output-location preferences) are dropped.
        """
        known = {f.name for f in fields(cls)}
        values = {key: value for key, value in data.items() if key in known}
        size = values.get("default_font_size")
        if isinstance(size, str):
            try:
                values["default_font_size"] = int(size)
            except ValueError:
                values.pop("default_font_size")
        return cls(**values)


# Host settings files use camelCase keys.
_CAMEL_CASE_KEYS = {
    "defaultFontFamily": "default_font_family",
    "defaultFontSize": "default_font_size",
    "includeMetadata": "include_metadata",
    "preserveFormatting": "preserve_formatting",
    "useObsidianAppearance": "use_theme_appearance",
    "useThemeAppearance": "use_theme_appearance",
    "includeFilenameAsHeader": "include_filename_as_header",
    "pageSize": "page_size",
    "remoteFetchTimeoutS": "remote_fetch_timeout_s",
}


def load_settings(path: str | Path) -> ConverterSettings:
    """Load ConverterSettings from a JSON settings file.

    Accepts both snake_case keys and the host's camelCase keys.

    Raises:
        FileNotFoundError: If the file does not exist.
        ValueError: If the file is not a JSON object.
    """
    raw = json.loads(Path(path).read_text(encoding="utf-8"))
    if not isinstance(raw, dict):
        raise ValueError(f"Settings file {path} must contain a JSON object")
    normalized = {_CAMEL_CASE_KEYS.get(key, key): value for key, value in raw.items()}
    return ConverterSettings.from_dict(normalized)


def inches_to_twips(inches: float) -> int:
    """Convert inches to twips (1/20 pt), rounded to the nearest integer."""
    return round(inches * TWIPS_PER_INCH)
