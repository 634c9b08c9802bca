"""Document assembly: markdown text → complete Document IR.

WHY: Scanning only yields the body blocks. A finished document also
needs the synthesized parts around them (title heading, front matter
properties, the footnote section) plus the document-wide definitions
every formatter relies on: resolved styles, list numbering, and page
geometry. Building them in one place keeps the formatters dumb.

HOW: assemble_document() runs the preprocessing passes (front matter,
footnote definitions), scans the body with BlockScanner, then wraps the
blocks: title first, then metadata, the body, and finally the footnote
section when any reference was seen anywhere, including inside
<details> regions.

RULES:
- Title heading (level 1, plain title text) and a spacer paragraph are
  prepended only with include_filename_as_header
- Front matter is always removed from the body; it is rendered as
  definition items only with include_metadata
- Footnote entries are numbered in first-reference order; definitions
  are formatted with footnote references disabled
- Numbering: 2 kinds × 3 levels, left indent 0.18 + 0.18·level inches,
  hanging 0.18 inches, marker "%N." or "•"
- Page geometry comes from PAGE_SIZES with 1-inch margins
- C0 control characters other than tab, newline and carriage return are
  dropped from the note and the title; XML cannot carry them
"""

from __future__ import annotations

import logging
import re
from typing import Dict, List, Optional

from word_converter.config import PAGE_MARGIN_INCHES, PAGE_SIZES, inches_to_twips
from word_converter.core.context import ConversionContext
from word_converter.core.footnotes import FootnoteTable, extract_footnotes
from word_converter.core.inline import InlineFormatter
from word_converter.core.ir import (
    Block,
    DefinitionItem,
    Document,
    FootnoteSection,
    Heading,
    NumberingDefinition,
    PageGeometry,
    Paragraph,
    StyledRun,
)
from word_converter.core.metadata import split_front_matter
from word_converter.core.scanner import BlockScanner

logger = logging.getLogger(__name__)

LIST_LEVELS = 3
LIST_INDENT_STEP_INCHES = 0.18
BULLET_MARKER = "•"

_XML_INVALID_CHARS = re.compile("[\x00-\x08\x0b\x0c\x0e-\x1f]")


def strip_control_chars(text: str) -> str:
    """Remove characters that cannot appear in an XML document."""
    return _XML_INVALID_CHARS.sub("", text)


def build_numbering() -> List[NumberingDefinition]:
    """Numbering definitions for ordered and unordered lists, levels 0–2."""
    definitions = []
    for kind in ("ordered", "unordered"):
        for level in range(LIST_LEVELS):
            definitions.append(
                NumberingDefinition(
                    kind=kind,
                    level=level,
                    left_indent=inches_to_twips(LIST_INDENT_STEP_INCHES * (level + 1)),
                    hanging=inches_to_twips(LIST_INDENT_STEP_INCHES),
                    marker=f"%{level + 1}." if kind == "ordered" else BULLET_MARKER,
                )
            )
    return definitions


def page_geometry(name: str) -> PageGeometry:
    """Page geometry for a named size; unknown names fall back to A4."""
    if name not in PAGE_SIZES:
        logger.debug("Unknown page size %r, using A4", name)
        name = "A4"
    width, height = PAGE_SIZES[name]
    return PageGeometry(
        name=name,
        width=inches_to_twips(width),
        height=inches_to_twips(height),
        margin=inches_to_twips(PAGE_MARGIN_INCHES),
    )


def title_blocks(title: str) -> List[Block]:
    return [Heading(level=1, runs=[StyledRun(title)]), Paragraph([])]


def metadata_blocks(metadata: Dict[str, str], inline: InlineFormatter) -> List[Block]:
    if not metadata:
        return []
    blocks: List[Block] = [
        DefinitionItem(term=key, runs=inline.text_runs(value, allow_footnotes=False))
        for key, value in metadata.items()
    ]
    blocks.append(Paragraph([]))
    return blocks


def footnote_section(footnotes: FootnoteTable, inline: InlineFormatter) -> Optional[FootnoteSection]:
    """Build the trailing footnote section, or None if nothing was referenced."""
    if not len(footnotes):
        return None
    entries = [
        (number, inline.format(footnotes.definition(label), allow_footnotes=False))
        for number, label in enumerate(footnotes.used_labels, start=1)
    ]
    return FootnoteSection(entries=entries)


async def assemble_document(markdown: str, context: ConversionContext) -> Document:
    """Parse markdown into the complete Document IR for one conversion.

    Args:
        markdown: Raw note text, front matter and footnote definitions
            included.
        context: Fresh per-call state; its footnote table and metadata
            are replaced here.

    Returns:
        The Document, ready for any formatter.
    """
    context.title = strip_control_chars(context.title)
    body, metadata = split_front_matter(strip_control_chars(markdown.replace("\r\n", "\n")))
    body, definitions = extract_footnotes(body)
    context.footnotes = FootnoteTable(definitions)
    context.metadata = metadata

    inline = InlineFormatter(context)
    scanner = BlockScanner(context, inline)
    body_blocks = await scanner.scan(body)

    blocks: List[Block] = []
    if context.settings.include_filename_as_header:
        blocks.extend(title_blocks(context.title))
    if context.settings.include_metadata:
        blocks.extend(metadata_blocks(metadata, inline))
    blocks.extend(body_blocks)

    section = footnote_section(context.footnotes, inline)
    if section is not None:
        blocks.append(section)

    logger.debug(
        "Assembled %d blocks (%d footnotes) for %r",
        len(blocks),
        len(context.footnotes),
        context.title,
    )
    return Document(
        title=context.title,
        blocks=blocks,
        styles=context.styles,
        numbering=build_numbering(),
        page=page_geometry(context.settings.page_size),
        metadata=dict(metadata) if context.settings.include_metadata else {},
    )
