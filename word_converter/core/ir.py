"""Intermediate representation dataclasses for converted documents.

WHY: Markdown is parsed line by line and inline markup is nested, but a
Word document is a flat list of paragraphs made of flat runs. The IR is
the single, well-typed middle ground: the scanner produces it, the
formatters (docx, plain text) consume it, and neither needs to know the
other's details.

HOW: Three layers of dataclasses:
  TextStyle / StyledRun / Hyperlink / LineBreak: inline content
  Paragraph, Heading, ListItem, ...: block elements
  Document: blocks + styles + page

RULES:
- TextStyle is flat and immutable; nesting is resolved while formatting
  inline markup and never stored
- A Hyperlink only holds StyledRuns; hyperlinks never nest
- Block kinds form a closed set (BLOCK_TYPES); consumers dispatch over
  it exhaustively and raise TypeError on anything else
- Image width/height are pixels at 96 DPI
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import Dict, List, Optional, Tuple, Union

from word_converter.core.styles import StyleCatalog


@dataclass(frozen=True)
class TextStyle:
    """Formatting attributes of a run of text.

    RULES:
    - combine() is additive: flags are OR-ed, optional values are only
      replaced when the child supplies one
    - code marks inline code; code_block marks text inside a fenced block
    - font is an explicit per-run override and is still validated by the
      style resolver before use
    """

    bold: bool = False
    italic: bool = False
    strikethrough: bool = False
    underline: bool = False
    code: bool = False
    code_block: bool = False
    highlight: bool = False
    superscript: bool = False
    subscript: bool = False
    color: Optional[str] = None
    background_color: Optional[str] = None
    font: Optional[str] = None

    def combine(self, **changes: object) -> TextStyle:
        """Return a child style layered on top of this one."""
        merged = {}
        for name, value in changes.items():
            current = getattr(self, name)
            if isinstance(current, bool):
                merged[name] = current or bool(value)
            elif value is not None:
                merged[name] = value
        return replace(self, **merged)


PLAIN = TextStyle()


@dataclass(frozen=True)
class StyledRun:
    """A span of text with one fixed set of formatting attributes."""

    text: str
    style: TextStyle = PLAIN


@dataclass(frozen=True)
class LineBreak:
    """A hard line break inside a paragraph."""


@dataclass(frozen=True)
class Hyperlink:
    """Clickable text pointing at an external URL."""

    url: str
    runs: Tuple[StyledRun, ...]


Inline = Union[StyledRun, Hyperlink, LineBreak]


def inline_text(runs: List[Inline]) -> str:
    """Concatenate the visible text of inline content."""
    parts: List[str] = []
    for run in runs:
        if isinstance(run, StyledRun):
            parts.append(run.text)
        elif isinstance(run, Hyperlink):
            parts.extend(child.text for child in run.runs)
        elif isinstance(run, LineBreak):
            parts.append("\n")
        else:
            raise TypeError(f"Unknown inline kind: {type(run).__name__}")
    return "".join(parts)


# ---------------------------------------------------------------------------
# Block elements
# ---------------------------------------------------------------------------


@dataclass
class Paragraph:
    """Ordinary paragraph; an empty run list is a spacer line."""

    runs: List[Inline] = field(default_factory=list)


@dataclass
class Heading:
    level: int
    runs: List[Inline] = field(default_factory=list)

    def __post_init__(self) -> None:
        self.level = min(max(self.level, 1), 6)


@dataclass
class ListItem:
    """Bulleted, numbered, or task list entry.

    RULES:
    - level is 0–2
    - checked is None for ordinary items; True/False marks a task item,
      which is drawn with a checkbox glyph instead of a list marker
    """

    ordered: bool
    level: int
    runs: List[Inline] = field(default_factory=list)
    checked: Optional[bool] = None

    def __post_init__(self) -> None:
        self.level = min(max(self.level, 0), 2)


@dataclass
class TableCell:
    text: str
    runs: List[Inline] = field(default_factory=list)


@dataclass
class Table:
    """Pipe table; the first row is the header.

    RULES:
    - alignments holds one of "left" | "center" | "right" per column
    - every row has exactly column_count cells (normalized by the scanner)
    """

    rows: List[List[TableCell]]
    alignments: List[str] = field(default_factory=list)

    @property
    def column_count(self) -> int:
        return len(self.rows[0]) if self.rows else 0

    def alignment(self, column: int) -> str:
        return self.alignments[column] if column < len(self.alignments) else "left"


@dataclass
class CodeBlock:
    """Fenced code; line_runs holds one run list per line (highlighted or plain)."""

    lines: List[str]
    language: Optional[str] = None
    line_runs: List[List[StyledRun]] = field(default_factory=list)


@dataclass
class Blockquote:
    depth: int
    runs: List[Inline] = field(default_factory=list)


@dataclass
class HorizontalRule:
    pass


@dataclass
class Image:
    """Embedded picture; data is in a format Word can display (PNG/JPEG/GIF/BMP/TIFF)."""

    data: bytes
    width: int
    height: int
    alt: str = ""


@dataclass
class CollapsibleSection:
    """A <details> region, rendered expanded."""

    summary: List[Inline]
    blocks: List[Block] = field(default_factory=list)


@dataclass
class DefinitionItem:
    term: str
    runs: List[Inline] = field(default_factory=list)


@dataclass
class FootnoteSection:
    """Footnote definitions in display order: (number, definition runs)."""

    entries: List[Tuple[int, List[Inline]]] = field(default_factory=list)


Block = Union[
    Paragraph,
    Heading,
    ListItem,
    Table,
    CodeBlock,
    Blockquote,
    HorizontalRule,
    Image,
    CollapsibleSection,
    DefinitionItem,
    FootnoteSection,
]

BLOCK_TYPES = (
    Paragraph,
    Heading,
    ListItem,
    Table,
    CodeBlock,
    Blockquote,
    HorizontalRule,
    Image,
    CollapsibleSection,
    DefinitionItem,
    FootnoteSection,
)


# ---------------------------------------------------------------------------
# Document-level structures
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class NumberingDefinition:
    """One level of a list numbering scheme.

    RULES:
    - kind is "ordered" or "unordered"
    - indents are in twips; hanging is the marker's hanging indent
    - marker is a counter template such as "%1." or a bullet glyph
    """

    kind: str
    level: int
    left_indent: int
    hanging: int
    marker: str

    @property
    def is_bullet(self) -> bool:
        return self.kind == "unordered"


@dataclass(frozen=True)
class PageGeometry:
    """Page size and margins in twips."""

    name: str
    width: int
    height: int
    margin: int


@dataclass
class Document:
    """The complete intermediate representation of one converted note.

    RULES:
    - blocks already include the synthesized title and footnote section
    - styles is the resolved style catalog used for every run
    - numbering holds 2 kinds × 3 levels of list definitions
    - metadata is the parsed front matter (empty when none or excluded)
    """

    title: str
    blocks: List[Block]
    styles: StyleCatalog
    numbering: List[NumberingDefinition]
    page: PageGeometry
    metadata: Dict[str, str] = field(default_factory=dict)

    def numbering_for(self, ordered: bool, level: int) -> NumberingDefinition:
        kind = "ordered" if ordered else "unordered"
        for definition in self.numbering:
            if definition.kind == kind and definition.level == level:
                return definition
        raise KeyError(f"No numbering definition for {kind} level {level}")
