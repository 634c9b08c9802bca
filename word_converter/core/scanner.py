"""Line-oriented block scanner: markdown text → IR blocks.

WHY: The markdown dialect used in notes is line based (one construct per
line, tables and fences spanning consecutive lines, <details> regions
nesting arbitrary content). A small state machine over lines handles it
predictably, degrades gracefully on malformed input, and never loses
text.

HOW: BlockScanner walks the lines with a ScanMode (NORMAL,
IN_CODE_FENCE, IN_TABLE, IN_COLLAPSIBLE). In NORMAL mode each line is
tried against RULES, a declarative ordered table of LineRule(name,
match, handle); the first rule whose match() returns something handles
the line. Code fences and <details> regions switch the mode and buffer
lines until they close; consecutive table rows are buffered and flushed
as soon as a non-table line (or the end of input) is reached.

RULES:
- Rule order (first match wins): fence, horizontal rule, table row,
  <details>, HTML block line, image, blank line, heading, definition
  item, blockquote, task item, list item, paragraph
- Fence content is kept verbatim except for up to the opening fence's
  indentation; the language tag is the first word after the fence,
  lower-cased
- Table: first row is the header; an alignment row ":-:", "-:", "--"
  sets center/right/left; short rows are padded, extra cells are merged
  into the last cell with " | "
- <details> depth counts every opening and closing tag on each line;
  the inner content is re-scanned with each line indented two spaces
- List level = min(indent // 2, 2), tabs counting as four spaces
- Open fences, tables, and <details> regions are flushed at end of input
- Image failures produce "[Image not found: label]" paragraphs
"""

from __future__ import annotations

import enum
import logging
import re
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, List, Optional, Tuple

from bs4 import BeautifulSoup, Comment, NavigableString, Tag

from word_converter.core.context import ConversionContext
from word_converter.core.images import prepare_image
from word_converter.core.inline import InlineFormatter, highlight_code
from word_converter.core.ir import (
    Block,
    Blockquote,
    CodeBlock,
    CollapsibleSection,
    DefinitionItem,
    Heading,
    HorizontalRule,
    Inline,
    LineBreak,
    ListItem,
    Paragraph,
    StyledRun,
    Table,
    TableCell,
    inline_text,
)

logger = logging.getLogger(__name__)

_FENCE_RE = re.compile(r"^(\s*)(`{3,}|~{3,})(.*)$")
_HR_RE = re.compile(r"^\s*([-*_])(?:\s*\1){2,}\s*$")
_ALIGNMENT_CELL_RE = re.compile(r"^:?-+:?$")
_CELL_SPLIT_RE = re.compile(r"(?<!\\)\|")
_DETAILS_OPEN_RE = re.compile(r"<details\b[^>]*>", re.IGNORECASE)
_DETAILS_CLOSE_RE = re.compile(r"</details\s*>", re.IGNORECASE)
_SUMMARY_RE = re.compile(r"<summary[^>]*>([\s\S]*?)</summary\s*>", re.IGNORECASE)
_HTML_TAG_RE = re.compile(r"^<([a-zA-Z][\w:-]*)\b")
_MD_IMAGE_RE = re.compile(r"^!\[([^\]]*)\]\((.+)\)$")
_WIKI_IMAGE_RE = re.compile(r"^!\[\[([^\]]+)\]\]$")
_IMAGE_TITLE_RE = re.compile(r"\s+\"[^\"]*\"\s*$")
_WIDTH_RE = re.compile(r"^(\d+)(?:px)?$", re.IGNORECASE)
_HEADING_RE = re.compile(r"^(#{1,6})\s+(.+)$")
_DEFINITION_RE = re.compile(r"^:\s+(.+)$")
_BLOCKQUOTE_RE = re.compile(r"^\s*((?:>\s*)+)(.*)$")
_TASK_RE = re.compile(r"^(\s*)[-*+]\s+\[( |x|X)\]\s+(.*)$")
_UNORDERED_RE = re.compile(r"^(\s*)[-*+]\s+(.+)$")
_ORDERED_RE = re.compile(r"^(\s*)\d+[.)]\s+(.+)$")

HTML_BLOCK_TAGS = frozenset({
    "address", "article", "aside", "blockquote", "div", "figcaption", "figure",
    "footer", "header", "li", "main", "nav", "p", "section", "summary",
})
_HTML_STRUCTURAL_TAGS = HTML_BLOCK_TAGS | {"ul", "ol", "hr"}


class ScanMode(enum.Enum):
    NORMAL = "normal"
    IN_CODE_FENCE = "in_code_fence"
    IN_TABLE = "in_table"
    IN_COLLAPSIBLE = "in_collapsible"


def list_level(indent: str) -> int:
    return min(len(indent.expandtabs(4)) // 2, 2)


def is_table_row(line: str) -> bool:
    stripped = line.strip()
    return len(stripped) >= 2 and stripped.startswith("|") and stripped.endswith("|")


def split_table_row(line: str) -> List[str]:
    cells = _CELL_SPLIT_RE.split(line.strip())[1:-1]
    return [cell.strip().replace("\\|", "|") for cell in cells]


def parse_alignments(cells: List[str]) -> Optional[List[str]]:
    """Return column alignments if cells form an alignment row, else None."""
    if not cells or not all(_ALIGNMENT_CELL_RE.match(cell) for cell in cells):
        return None
    alignments = []
    for cell in cells:
        if cell.startswith(":") and cell.endswith(":"):
            alignments.append("center")
        elif cell.endswith(":"):
            alignments.append("right")
        else:
            alignments.append("left")
    return alignments


def normalize_row(cells: List[str], width: int) -> List[str]:
    """Pad a row to width cells; merge overflow into the last cell."""
    if len(cells) < width:
        logger.debug("Padding table row with %d empty cell(s)", width - len(cells))
        return cells + [""] * (width - len(cells))
    if len(cells) > width:
        logger.debug("Merging %d overflow cell(s) into the last column", len(cells) - width)
        return cells[:width - 1] + [" | ".join(cells[width - 1:])]
    return cells


def is_html_block_line(stripped: str) -> bool:
    if not stripped.startswith("<") or stripped.startswith(("</", "<!", "<?")):
        return False
    match = _HTML_TAG_RE.match(stripped)
    if match is None:
        return False
    return match.group(1).lower() not in ("details", "summary")


def parse_wiki_image(raw: str) -> Tuple[str, Optional[int]]:
    """Split "target#heading|150px" into ("target", 150)."""
    target, _, remainder = raw.partition("|")
    target = target.split("#")[0].split("^")[0].strip()
    width = None
    match = _WIDTH_RE.match(remainder.strip()) if remainder else None
    if match:
        width = int(match.group(1))
    return target, width


def parse_markdown_image(raw: str) -> Tuple[str, Optional[int]]:
    """Split 'path|200 "title"' into ("path", 200)."""
    target = raw.strip()
    title = _IMAGE_TITLE_RE.search(target)
    if title:
        target = target[:title.start()].strip()
    segments = target.split("|")
    target = segments[0].strip()
    if target.startswith("<") and target.endswith(">"):
        target = target[1:-1].strip()
    width = None
    for segment in segments[1:]:
        match = _WIDTH_RE.match(segment.strip())
        if match:
            width = int(match.group(1))
            break
    return target, width


@dataclass
class _Scan:
    """Mutable state of one pass over a line sequence."""

    lines: List[str]
    index: int = 0
    mode: ScanMode = ScanMode.NORMAL
    blocks: List[Block] = field(default_factory=list)
    fence_marker: str = ""
    fence_indent: int = 0
    fence_language: Optional[str] = None
    buffer: List[str] = field(default_factory=list)
    table_rows: List[List[str]] = field(default_factory=list)
    alignments: List[str] = field(default_factory=list)
    details_depth: int = 0

    def peek(self, offset: int = 1) -> Optional[str]:
        position = self.index + offset
        return self.lines[position] if position < len(self.lines) else None


Matcher = Callable[[str, _Scan], Any]
Handler = Callable[["BlockScanner", str, _Scan, Any], Awaitable[int]]


@dataclass(frozen=True)
class LineRule:
    """One grammar rule: match() returns a truthy match object or None;
    handle() consumes the line(s) and returns how many it used."""

    name: str
    match: Matcher
    handle: Handler


class BlockScanner:
    """Scans markdown into IR blocks for one conversion."""

    def __init__(self, context: ConversionContext, inline: Optional[InlineFormatter] = None) -> None:
        self._context = context
        self._inline = inline or InlineFormatter(context)

    async def scan(self, text: str) -> List[Block]:
        return await self.scan_lines(text.replace("\r\n", "\n").split("\n"))

    async def scan_lines(self, lines: List[str]) -> List[Block]:
        scan = _Scan(lines=list(lines))
        while scan.index < len(scan.lines):
            line = scan.lines[scan.index]
            if scan.mode is ScanMode.IN_CODE_FENCE:
                self._code_line(scan, line)
                scan.index += 1
                continue
            if scan.mode is ScanMode.IN_COLLAPSIBLE:
                await self._details_line(scan, line)
                scan.index += 1
                continue
            if scan.mode is ScanMode.IN_TABLE and not is_table_row(line):
                self._flush_table(scan)
            scan.index += await self._dispatch(scan, line)

        await self._finish(scan)
        return scan.blocks

    async def _dispatch(self, scan: _Scan, line: str) -> int:
        for rule in RULES:
            match = rule.match(line, scan)
            if match:
                return await rule.handle(self, line, scan, match)
        raise AssertionError("the paragraph rule matches every line")

    async def _finish(self, scan: _Scan) -> None:
        if scan.mode is ScanMode.IN_CODE_FENCE:
            logger.debug("Unterminated code fence flushed at end of input")
            self._flush_code(scan)
        elif scan.mode is ScanMode.IN_TABLE:
            self._flush_table(scan)
        elif scan.mode is ScanMode.IN_COLLAPSIBLE:
            logger.debug("Unterminated <details> flushed at end of input")
            await self._flush_details(scan)

    # -- code fences ----------------------------------------------------------

    async def _open_fence(self, line: str, scan: _Scan, match: Any) -> int:
        indent, marker, info = match.groups()
        scan.mode = ScanMode.IN_CODE_FENCE
        scan.fence_marker = marker
        scan.fence_indent = len(indent.expandtabs(4))
        words = info.strip().split()
        scan.fence_language = words[0].lower() if words else None
        scan.buffer = []
        return 1

    def _code_line(self, scan: _Scan, line: str) -> None:
        stripped = line.strip()
        marker = scan.fence_marker
        if stripped.startswith(marker) and not stripped.strip(marker[0]):
            self._flush_code(scan)
            return
        removable = len(line) - len(line.lstrip(" "))
        scan.buffer.append(line[min(removable, scan.fence_indent):])

    def _flush_code(self, scan: _Scan) -> None:
        lines = scan.buffer
        scan.blocks.append(
            CodeBlock(
                lines=lines,
                language=scan.fence_language,
                line_runs=highlight_code(lines, scan.fence_language),
            )
        )
        scan.buffer = []
        scan.fence_language = None
        scan.mode = ScanMode.NORMAL

    # -- tables ---------------------------------------------------------------

    async def _table_row(self, line: str, scan: _Scan, match: Any) -> int:
        if scan.mode is not ScanMode.IN_TABLE:
            scan.mode = ScanMode.IN_TABLE
            scan.table_rows = []
            scan.alignments = []
        cells = split_table_row(line)
        alignments = parse_alignments(cells)
        if alignments is not None:
            scan.alignments = alignments
        else:
            scan.table_rows.append(cells)
        return 1

    def _flush_table(self, scan: _Scan) -> None:
        rows = scan.table_rows
        scan.mode = ScanMode.NORMAL
        scan.table_rows = []
        if not rows:
            return
        width = len(rows[0])
        table_rows = [
            [TableCell(text=cell, runs=self._inline.format(cell)) for cell in normalize_row(row, width)]
            for row in rows
        ]
        alignments = (scan.alignments + ["left"] * width)[:width]
        scan.blocks.append(Table(rows=table_rows, alignments=alignments))
        scan.alignments = []

    # -- collapsible <details> regions ----------------------------------------

    async def _open_details(self, line: str, scan: _Scan, match: Any) -> int:
        scan.mode = ScanMode.IN_COLLAPSIBLE
        scan.details_depth = 0
        scan.buffer = []
        await self._details_line(scan, line)
        return 1

    async def _details_line(self, scan: _Scan, line: str) -> None:
        scan.details_depth += len(_DETAILS_OPEN_RE.findall(line))
        scan.details_depth -= len(_DETAILS_CLOSE_RE.findall(line))
        scan.buffer.append(line)
        if scan.details_depth <= 0:
            await self._flush_details(scan)

    async def _flush_details(self, scan: _Scan) -> None:
        block = "\n".join(scan.buffer)
        scan.buffer = []
        scan.mode = ScanMode.NORMAL

        summary_match = _SUMMARY_RE.search(block)
        summary_text = " ".join(summary_match.group(1).split()) if summary_match else ""
        if summary_match:
            block = block[:summary_match.start()] + block[summary_match.end():]
        block = _DETAILS_OPEN_RE.sub("", block, count=1)
        closings = list(_DETAILS_CLOSE_RE.finditer(block))
        if closings:
            last = closings[-1]
            block = block[:last.start()] + block[last.end():]
        inner = block.strip()

        nested: List[Block] = []
        if inner:
            nested = await self.scan_lines(["  " + part for part in inner.split("\n")])
        summary = self._inline.format(summary_text or "Details")
        scan.blocks.append(CollapsibleSection(summary=summary, blocks=nested))

    # -- HTML block lines -----------------------------------------------------

    async def _html_block(self, line: str, scan: _Scan, match: Any) -> int:
        soup = BeautifulSoup(line.strip(), "html.parser")
        blocks = self._html_children(soup.contents)
        if not blocks:
            fallback = soup.get_text().strip()
            if fallback:
                blocks = [Paragraph(self._inline.text_runs(fallback))]
        scan.blocks.extend(blocks)
        return 1

    def _html_children(self, nodes: List[Any]) -> List[Block]:
        """Structural children become blocks; runs of inline nodes become paragraphs."""
        blocks: List[Block] = []
        pending: List[Any] = []

        def flush() -> None:
            if not pending:
                return
            runs = self._inline.format_elements(list(pending))
            pending.clear()
            if inline_text(runs).strip():
                blocks.append(Paragraph(_trim_runs(runs)))
            elif any(isinstance(run, LineBreak) for run in runs):
                blocks.append(Paragraph([]))

        for node in nodes:
            if isinstance(node, Comment):
                continue
            if isinstance(node, Tag) and node.name.lower() in _HTML_STRUCTURAL_TAGS:
                flush()
                blocks.extend(self._html_element(node))
            elif isinstance(node, (Tag, NavigableString)):
                pending.append(node)
        flush()
        return blocks

    def _html_element(self, element: Tag) -> List[Block]:
        name = element.name.lower()
        if name == "hr":
            return [HorizontalRule()]
        if name in ("ul", "ol"):
            items = []
            for item in element.find_all("li", recursive=False):
                runs = self._inline.format_elements(item.contents)
                items.append(ListItem(ordered=name == "ol", level=0, runs=_trim_runs(runs)))
            return items
        return self._html_children(element.contents)

    # -- images ---------------------------------------------------------------

    async def _markdown_image(self, line: str, scan: _Scan, match: Any) -> int:
        alt, raw_target = match.group(1), match.group(2)
        target, width = parse_markdown_image(raw_target)
        scan.blocks.append(await self._image_block(target, width, alt, alt or raw_target))
        return 1

    async def _wiki_image(self, line: str, scan: _Scan, match: Any) -> int:
        raw = match.group(1)
        target, width = parse_wiki_image(raw)
        scan.blocks.append(await self._image_block(target, width, "", raw))
        return 1

    async def _image_block(self, target: str, width: Optional[int], alt: str, label: str) -> Block:
        data = None
        if target and self._context.resources is not None:
            data = await self._context.resources.load(target)
        image = prepare_image(data, width, alt) if data else None
        if image is None:
            logger.warning("Image not found: %s", label)
            return Paragraph([StyledRun(f"[Image not found: {label}]")])
        return image

    # -- single-line constructs -----------------------------------------------

    async def _horizontal_rule(self, line: str, scan: _Scan, match: Any) -> int:
        scan.blocks.append(HorizontalRule())
        return 1

    async def _blank(self, line: str, scan: _Scan, match: Any) -> int:
        scan.blocks.append(Paragraph([]))
        return 1

    async def _heading(self, line: str, scan: _Scan, match: Any) -> int:
        level = len(match.group(1))
        scan.blocks.append(Heading(level=level, runs=self._inline.format(match.group(2).rstrip())))
        return 1

    async def _definition(self, line: str, scan: _Scan, match: Any) -> int:
        scan.blocks.append(DefinitionItem(term=line.strip(), runs=self._inline.format(match.group(1))))
        return 2

    async def _blockquote(self, line: str, scan: _Scan, match: Any) -> int:
        depth = match.group(1).count(">")
        scan.blocks.append(Blockquote(depth=depth, runs=self._inline.format(match.group(2))))
        return 1

    async def _task_item(self, line: str, scan: _Scan, match: Any) -> int:
        indent, mark, text = match.groups()
        scan.blocks.append(
            ListItem(
                ordered=False,
                level=list_level(indent),
                runs=self._inline.format(text),
                checked=mark.lower() == "x",
            )
        )
        return 1

    async def _list_item(self, line: str, scan: _Scan, match: Any) -> int:
        ordered, found = match
        indent, text = found.groups()
        scan.blocks.append(ListItem(ordered=ordered, level=list_level(indent), runs=self._inline.format(text)))
        return 1

    async def _paragraph(self, line: str, scan: _Scan, match: Any) -> int:
        scan.blocks.append(Paragraph(self._inline.format(line.lstrip())))
        return 1


def _trim_runs(runs: List[Inline]) -> List[Inline]:
    """Strip whitespace from the outer edges of HTML-derived runs."""
    runs = list(runs)
    if runs and isinstance(runs[0], StyledRun):
        runs[0] = StyledRun(runs[0].text.lstrip(), runs[0].style)
    if runs and isinstance(runs[-1], StyledRun):
        runs[-1] = StyledRun(runs[-1].text.rstrip(), runs[-1].style)
    return [run for run in runs if not (isinstance(run, StyledRun) and not run.text)] or runs[:1]


def _match_definition(line: str, scan: _Scan) -> Any:
    stripped = line.strip()
    following = scan.peek()
    if not stripped or stripped.startswith("#") or following is None:
        return None
    return _DEFINITION_RE.match(following.strip())


def _match_list_item(line: str, scan: _Scan) -> Any:
    found = _UNORDERED_RE.match(line)
    if found:
        return False, found
    found = _ORDERED_RE.match(line)
    if found:
        return True, found
    return None


RULES: Tuple[LineRule, ...] = (
    LineRule("fence", lambda line, scan: _FENCE_RE.match(line), BlockScanner._open_fence),
    LineRule("horizontal_rule", lambda line, scan: _HR_RE.match(line), BlockScanner._horizontal_rule),
    LineRule("table_row", lambda line, scan: is_table_row(line), BlockScanner._table_row),
    LineRule(
        "details",
        lambda line, scan: re.match(r"^<details\b", line.strip(), re.IGNORECASE),
        BlockScanner._open_details,
    ),
    LineRule("html_block", lambda line, scan: is_html_block_line(line.strip()), BlockScanner._html_block),
    LineRule("markdown_image", lambda line, scan: _MD_IMAGE_RE.match(line.strip()), BlockScanner._markdown_image),
    LineRule("wiki_image", lambda line, scan: _WIKI_IMAGE_RE.match(line.strip()), BlockScanner._wiki_image),
    LineRule("blank", lambda line, scan: not line.strip(), BlockScanner._blank),
    LineRule("heading", lambda line, scan: _HEADING_RE.match(line.strip()), BlockScanner._heading),
    LineRule("definition", _match_definition, BlockScanner._definition),
    LineRule("blockquote", lambda line, scan: _BLOCKQUOTE_RE.match(line), BlockScanner._blockquote),
    LineRule("task_item", lambda line, scan: _TASK_RE.match(line), BlockScanner._task_item),
    LineRule("list_item", _match_list_item, BlockScanner._list_item),
    LineRule("paragraph", lambda line, scan: True, BlockScanner._paragraph),
)
