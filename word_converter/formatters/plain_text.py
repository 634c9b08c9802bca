"""Plain text formatter: the visible text of a Document.

WHY: A quick text preview is handy for checking a conversion without
opening Word, and it shows exactly which text the IR carries: every
character a reader would see, none of the styling.

HOW: Walks the block list and writes one line per paragraph-like block.
Lists get their marker or checkbox glyph, quotes a "> " prefix per
level, tables one " | " separated line per row, code blocks their raw
lines.

RULES:
- Styling is dropped entirely; hyperlinks keep only their text
- Empty paragraphs become empty lines
- Ordered list counters restart after any non-list block
- Output suffix: ".txt"
- Media type: "text/plain"
"""

from __future__ import annotations

from typing import Dict, List

from word_converter.core.ir import (
    Block,
    Blockquote,
    CodeBlock,
    CollapsibleSection,
    DefinitionItem,
    Document,
    FootnoteSection,
    Heading,
    HorizontalRule,
    Image,
    ListItem,
    Paragraph,
    Table,
    inline_text,
)
from word_converter.formatters.base import BaseFormatter, FormatterOutput

CHECKED_BOX = "☑"
UNCHECKED_BOX = "☐"


def render_blocks(blocks: List[Block]) -> List[str]:
    """Render blocks to text lines."""
    lines: List[str] = []
    counters: Dict[int, int] = {}

    for block in blocks:
        if not isinstance(block, ListItem):
            counters.clear()

        if isinstance(block, Paragraph):
            lines.append(inline_text(block.runs))
        elif isinstance(block, Heading):
            lines.append(inline_text(block.runs))
        elif isinstance(block, ListItem):
            indent = "  " * block.level
            if block.checked is not None:
                marker = CHECKED_BOX if block.checked else UNCHECKED_BOX
            elif block.ordered:
                counters[block.level] = counters.get(block.level, 0) + 1
                for deeper in [level for level in counters if level > block.level]:
                    del counters[deeper]
                marker = f"{counters[block.level]}."
            else:
                marker = "•"
            lines.append(f"{indent}{marker} {inline_text(block.runs)}")
        elif isinstance(block, Table):
            for row in block.rows:
                lines.append(" | ".join(inline_text(cell.runs) for cell in row))
        elif isinstance(block, CodeBlock):
            lines.extend(block.lines)
        elif isinstance(block, Blockquote):
            lines.append("> " * block.depth + inline_text(block.runs))
        elif isinstance(block, HorizontalRule):
            lines.append("---")
        elif isinstance(block, Image):
            lines.append(f"[Image: {block.alt}]" if block.alt else "[Image]")
        elif isinstance(block, CollapsibleSection):
            lines.append("▼ " + inline_text(block.summary))
            lines.extend(render_blocks(block.blocks))
            lines.append("")
        elif isinstance(block, DefinitionItem):
            lines.append(f"{block.term}: {inline_text(block.runs)}")
        elif isinstance(block, FootnoteSection):
            lines.extend(["", "Footnotes"])
            for number, runs in block.entries:
                lines.append(f"{number}. {inline_text(runs)}")
        else:
            raise TypeError(f"Unknown block kind: {type(block).__name__}")

    return lines


class PlainTextFormatter(BaseFormatter):
    """Formatter that produces the document's visible text."""

    @property
    def name(self) -> str:
        return "Plain Text"

    def format(self, document: Document) -> List[FormatterOutput]:
        content = "\n".join(line.rstrip() for line in render_blocks(document.blocks))
        if content:
            content += "\n"
        return [
            FormatterOutput(
                suffix=".txt",
                content=content,
                media_type="text/plain",
            )
        ]
