"""Markdown to Word converter: turns markdown notes into .docx documents.

WHY: Notes written in a markdown dialect (wikilink images, footnotes,
highlights, collapsible <details> regions) need to be shared as Word
documents that look like the note did on screen. No single library
handles the dialect and the Word styling, so this package parses the
markdown into a well-typed intermediate representation (IR) and
serializes the IR with pluggable formatters.

HOW: Four-stage pipeline: preprocess (front matter, footnotes), scan
(block scanner + inline formatter → IR blocks), assemble (title,
footnote section, styles, numbering, page geometry) and format (docx via
python-docx, or plain text). Each stage is independently testable.

RULES:
- All formatters consume the same Document IR
- All per-conversion state lives in a ConversionContext, never on the
  converter instance
- Non-fatal problems (missing images, bad font names, ragged tables)
  degrade gracefully; only packaging failures raise ConversionError
"""

from word_converter.converter import ConversionError, MarkdownToDocxConverter

__version__ = "0.1.0"

__all__ = ["ConversionError", "MarkdownToDocxConverter", "__version__"]
