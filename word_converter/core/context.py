"""Per-conversion state.

WHY: A converter instance may run several conversions at once (the host
exports a folder of notes concurrently). Footnote numbering, the title,
and the resource loader belong to one conversion only; keeping them on
the converter instance would let concurrent calls corrupt each other.

HOW: ConversionContext bundles everything a single conversion reads or
mutates. The converter builds a fresh one per call and passes it down
explicitly to the scanner, the inline formatter, and the assembler.

RULES:
- Never shared between conversions
- footnotes is the only mutable member that changes during scanning
- resources is None when images cannot be loaded (plain build_document
  calls without a loader); image lines then become placeholders
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, Optional

from word_converter.config import ConverterSettings
from word_converter.core.footnotes import FootnoteTable
from word_converter.core.styles import StyleCatalog
from word_converter.resources.loader import ResourceLoader


@dataclass
class ConversionContext:
    settings: ConverterSettings
    styles: StyleCatalog
    title: str = ""
    footnotes: FootnoteTable = field(default_factory=FootnoteTable)
    resources: Optional[ResourceLoader] = None
    metadata: Dict[str, str] = field(default_factory=dict)

    @property
    def preserve_formatting(self) -> bool:
        return self.settings.preserve_formatting
