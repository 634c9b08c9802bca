"""Word (.docx) formatter built on python-docx.

WHY: The end product of a conversion is a Word package. python-docx
writes valid OOXML, but several constructs the notes need (external
hyperlinks, paragraph borders and shading, custom list numbering) have
no high-level API and must be written as raw elements in schema order.

HOW: DocxFormatter.render() creates a python-docx Document from the
default template, configures the section (page size, margins), the
paragraph styles (Normal, Heading 1–6, List Paragraph, Code Block), and
one numbering definition per list kind. Then every IR block is written
in order by _DocxBuilder, which dispatches over the closed set of block
kinds. The package is saved to memory and returned as bytes.

RULES:
- Sizes in the IR are half-points, twips, or pixels at 96 DPI
  (1 px = 9525 EMU)
- Inline code is bold and monospace, shaded F5F5F5 outside code blocks
- Code block lines: one paragraph per line, shaded F5F5F5
- Blockquote: left indent 0.3 in per level, left border CCCCCC size 12
- Horizontal rule: empty paragraph with a bottom border, 120 twips
  spacing above and below
- Table: "Table Grid", 6.5 in split evenly, header shaded E7E6E6, an
  empty paragraph before and after
- Collapsible section: "▼ " + summary, shaded E8E8E8 with a 999999 left
  border, nested blocks, then an empty paragraph
- Footnote section: empty paragraph, "Footnotes" heading (level 2),
  then "N. " in bold + definition for each entry
- Core properties: title always; author, subject, keywords from
  front matter when present in the document metadata
"""

from __future__ import annotations

import logging
from io import BytesIO
from typing import Dict, List, Optional, Sequence

from docx import Document as new_document
from docx.enum.style import WD_STYLE_TYPE
from docx.enum.text import WD_ALIGN_PARAGRAPH, WD_COLOR_INDEX
from docx.opc.constants import RELATIONSHIP_TYPE as RT
from docx.oxml import OxmlElement, parse_xml
from docx.oxml.ns import nsdecls, qn
from docx.shared import Emu, Pt, RGBColor, Twips

from word_converter.config import CODE_BLOCK_SHADING, INLINE_CODE_SHADING, inches_to_twips
from word_converter.core.ir import (
    PLAIN,
    Block,
    Blockquote,
    CodeBlock,
    CollapsibleSection,
    DefinitionItem,
    Document,
    FootnoteSection,
    Heading,
    HorizontalRule,
    Hyperlink,
    Image,
    Inline,
    LineBreak,
    ListItem,
    Paragraph,
    StyledRun,
    Table,
    TextStyle,
)
from word_converter.core.styles import HeadingStyle, StyleCatalog, resolve_font
from word_converter.formatters.base import BaseFormatter, FormatterOutput

logger = logging.getLogger(__name__)

DOCX_MEDIA_TYPE = "application/vnd.openxmlformats-officedocument.wordprocessingml.document"
EMU_PER_PIXEL = 9525
TABLE_WIDTH_INCHES = 6.5
TABLE_HEADER_SHADING = "E7E6E6"
SUMMARY_SHADING = "E8E8E8"
SUMMARY_BORDER_COLOR = "999999"
QUOTE_BORDER_COLOR = "CCCCCC"
QUOTE_INDENT_INCHES = 0.3
RULE_COLOR = "000000"
RULE_SPACING_TWIPS = 120
CODE_BLOCK_STYLE_NAME = "Code Block"
LIST_STYLE_NAME = "List Paragraph"
CHECKED_BOX = "☑"
UNCHECKED_BOX = "☐"
BOLD = TextStyle(bold=True)

_ALIGNMENTS = {
    "left": WD_ALIGN_PARAGRAPH.LEFT,
    "center": WD_ALIGN_PARAGRAPH.CENTER,
    "right": WD_ALIGN_PARAGRAPH.RIGHT,
}

# Elements that must follow w:shd / w:pBdr inside w:pPr (CT_PPrBase order).
_PPR_AFTER_SHD = (
    "w:tabs", "w:suppressAutoHyphens", "w:kinsoku", "w:wordWrap", "w:overflowPunct",
    "w:topLinePunct", "w:autoSpaceDE", "w:autoSpaceDN", "w:bidi", "w:adjustRightInd",
    "w:snapToGrid", "w:spacing", "w:ind", "w:contextualSpacing", "w:mirrorIndents",
    "w:suppressOverlap", "w:jc", "w:textDirection", "w:textAlignment",
    "w:textboxTightWrap", "w:outlineLvl", "w:divId", "w:cnfStyle", "w:rPr",
    "w:sectPr", "w:pPrChange",
)
_PPR_AFTER_BDR = ("w:shd",) + _PPR_AFTER_SHD
_RPR_AFTER_SHD = (
    "w:fitText", "w:vertAlign", "w:rtl", "w:cs", "w:em", "w:lang",
    "w:eastAsianLayout", "w:specVanish", "w:oMath",
)
_TCPR_AFTER_SHD = (
    "w:noWrap", "w:tcMar", "w:textDirection", "w:tcFitText", "w:vAlign",
    "w:hideMark", "w:headers", "w:cellIns", "w:cellDel", "w:cellMerge", "w:tcPrChange",
)
_THEME_FONT_ATTRIBUTES = ("w:asciiTheme", "w:hAnsiTheme", "w:eastAsiaTheme", "w:cstheme")


# ---------------------------------------------------------------------------
# Low-level OOXML helpers
# ---------------------------------------------------------------------------


def _shading(fill: str):
    shd = OxmlElement("w:shd")
    shd.set(qn("w:val"), "clear")
    shd.set(qn("w:color"), "auto")
    shd.set(qn("w:fill"), fill)
    return shd


def set_font_name(rpr, name: str) -> None:
    """Set every script slot of w:rFonts and drop theme font references."""
    fonts = rpr.get_or_add_rFonts()
    for attribute in _THEME_FONT_ATTRIBUTES:
        if fonts.get(qn(attribute)) is not None:
            del fonts.attrib[qn(attribute)]
    for slot in ("w:ascii", "w:hAnsi", "w:eastAsia", "w:cs"):
        fonts.set(qn(slot), name)


def shade_paragraph(paragraph, fill: str) -> None:
    ppr = paragraph._p.get_or_add_pPr()
    ppr.insert_element_before(_shading(fill), *_PPR_AFTER_SHD)


def border_paragraph(paragraph, side: str, color: str, size: int) -> None:
    ppr = paragraph._p.get_or_add_pPr()
    borders = OxmlElement("w:pBdr")
    edge = OxmlElement(f"w:{side}")
    edge.set(qn("w:val"), "single")
    edge.set(qn("w:sz"), str(size))
    edge.set(qn("w:space"), "1")
    edge.set(qn("w:color"), color)
    borders.append(edge)
    ppr.insert_element_before(borders, *_PPR_AFTER_BDR)


def shade_cell(cell, fill: str) -> None:
    tcpr = cell._tc.get_or_add_tcPr()
    tcpr.insert_element_before(_shading(fill), *_TCPR_AFTER_SHD)


def _level_xml(level: int, ordered: bool, marker: str, left: int, hanging: int) -> str:
    number_format = "decimal" if ordered else "bullet"
    return (
        f'<w:lvl w:ilvl="{level}">'
        f'<w:start w:val="1"/>'
        f'<w:numFmt w:val="{number_format}"/>'
        f'<w:lvlText w:val="{marker}"/>'
        f'<w:lvlJc w:val="left"/>'
        f'<w:pPr><w:ind w:left="{left}" w:hanging="{hanging}"/></w:pPr>'
        f"</w:lvl>"
    )


# ---------------------------------------------------------------------------
# Builder
# ---------------------------------------------------------------------------


class _DocxBuilder:
    """Writes one Document IR into a python-docx document."""

    def __init__(self, document: Document) -> None:
        self.ir = document
        self.styles: StyleCatalog = document.styles
        self.docx = new_document()
        self._num_ids: Dict[str, int] = {}

    def build(self) -> bytes:
        self._configure_section()
        self._configure_styles()
        self._configure_numbering()
        self._configure_properties()
        self._write_blocks(self.ir.blocks)
        buffer = BytesIO()
        self.docx.save(buffer)
        return buffer.getvalue()

    # -- document-wide definitions ---------------------------------------------

    def _configure_section(self) -> None:
        page = self.ir.page
        section = self.docx.sections[0]
        section.page_width = Twips(page.width)
        section.page_height = Twips(page.height)
        section.top_margin = Twips(page.margin)
        section.bottom_margin = Twips(page.margin)
        section.left_margin = Twips(page.margin)
        section.right_margin = Twips(page.margin)

    def _paragraph_style(self, name: str):
        try:
            return self.docx.styles[name]
        except KeyError:
            style = self.docx.styles.add_style(name, WD_STYLE_TYPE.PARAGRAPH)
            style.base_style = self.docx.styles["Normal"]
            return style

    def _configure_styles(self) -> None:
        catalog = self.styles
        normal = self.docx.styles["Normal"]
        set_font_name(normal.element.get_or_add_rPr(), catalog.body_font)
        normal.font.size = Pt(catalog.body_size / 2)
        if catalog.line_spacing:
            normal.paragraph_format.line_spacing = catalog.line_spacing / 240

        for level in range(1, 7):
            heading = catalog.heading(level)
            style = self._paragraph_style(f"Heading {level}")
            set_font_name(style.element.get_or_add_rPr(), heading.font)
            style.font.size = Pt(heading.size / 2)
            style.font.bold = True
            style.font.italic = False
            style.font.color.rgb = RGBColor.from_string(heading.color)

        self._paragraph_style(LIST_STYLE_NAME)
        code = self._paragraph_style(CODE_BLOCK_STYLE_NAME)
        set_font_name(code.element.get_or_add_rPr(), catalog.monospace_font)
        code.paragraph_format.space_before = Pt(0)
        code.paragraph_format.space_after = Pt(0)

    def _configure_numbering(self) -> None:
        numbering = self.docx.part.numbering_part.element
        existing = [int(node.get(qn("w:abstractNumId"))) for node in numbering.findall(qn("w:abstractNum"))]
        next_id = max(existing) + 1 if existing else 0

        for kind in ("ordered", "unordered"):
            levels = sorted(
                (definition for definition in self.ir.numbering if definition.kind == kind),
                key=lambda definition: definition.level,
            )
            if not levels:
                continue
            body = "".join(
                _level_xml(d.level, not d.is_bullet, d.marker, d.left_indent, d.hanging) for d in levels
            )
            abstract = parse_xml(
                f'<w:abstractNum {nsdecls("w")} w:abstractNumId="{next_id}">'
                f'<w:multiLevelType w:val="hybridMultilevel"/>{body}</w:abstractNum>'
            )
            first_num = numbering.find(qn("w:num"))
            if first_num is not None:
                first_num.addprevious(abstract)
            else:
                numbering.append(abstract)
            self._num_ids[kind] = numbering.add_num(next_id).numId
            next_id += 1

    def _configure_properties(self) -> None:
        properties = self.docx.core_properties
        metadata = {key.lower(): value for key, value in self.ir.metadata.items()}
        properties.title = self.ir.title or metadata.get("title", "")
        if metadata.get("author"):
            properties.author = metadata["author"]
        if metadata.get("subject"):
            properties.subject = metadata["subject"]
        keywords = metadata.get("keywords") or metadata.get("tags")
        if keywords:
            properties.keywords = keywords

    # -- runs ---------------------------------------------------------------------

    def _style_run(self, run, style: TextStyle, heading: Optional[HeadingStyle] = None) -> None:
        monospace = style.code or style.code_block
        font = run.font
        if heading is not None and not monospace:
            name = resolve_font([style.font], heading.font)
        else:
            name = self.styles.font_for(style.font, monospace)
        set_font_name(run._r.get_or_add_rPr(), name)
        font.size = Pt((heading.size if heading is not None else self.styles.body_size) / 2)

        if style.bold or style.code or heading is not None:
            font.bold = True
        if style.italic:
            font.italic = True
        if style.strikethrough:
            font.strike = True
        if style.underline:
            font.underline = True
        if style.highlight:
            font.highlight_color = WD_COLOR_INDEX.YELLOW
        color = style.color or (heading.color if heading is not None else None)
        if color:
            font.color.rgb = RGBColor.from_string(color)
        if style.superscript:
            font.superscript = True
        elif style.subscript:
            font.subscript = True

        fill = style.background_color
        if fill is None and style.code and not style.code_block:
            fill = INLINE_CODE_SHADING
        if fill:
            run._r.get_or_add_rPr().insert_element_before(_shading(fill), *_RPR_AFTER_SHD)

    def _add_runs(
        self, paragraph, runs: Sequence[Inline], heading: Optional[HeadingStyle] = None
    ) -> None:
        for item in runs:
            if isinstance(item, StyledRun):
                self._style_run(paragraph.add_run(item.text), item.style, heading)
            elif isinstance(item, LineBreak):
                paragraph.add_run().add_break()
            elif isinstance(item, Hyperlink):
                self._add_hyperlink(paragraph, item, heading)
            else:
                raise TypeError(f"Unknown inline kind: {type(item).__name__}")

    def _add_hyperlink(self, paragraph, link: Hyperlink, heading: Optional[HeadingStyle]) -> None:
        r_id = paragraph.part.relate_to(link.url, RT.HYPERLINK, is_external=True)
        element = OxmlElement("w:hyperlink")
        element.set(qn("r:id"), r_id)
        paragraph._p.append(element)
        for styled in link.runs:
            run = paragraph.add_run(styled.text)
            self._style_run(run, styled.style, heading)
            element.append(run._r)

    # -- blocks -------------------------------------------------------------------

    def _write_blocks(self, blocks: Sequence[Block]) -> None:
        for block in blocks:
            self._write_block(block)

    def _paragraph(self, runs: Sequence[Inline] = (), style: Optional[str] = None):
        paragraph = self.docx.add_paragraph(style=style)
        self._add_runs(paragraph, runs)
        return paragraph

    def _write_block(self, block: Block) -> None:
        if isinstance(block, Paragraph):
            self._paragraph(block.runs)
        elif isinstance(block, Heading):
            self._write_heading(block.level, block.runs)
        elif isinstance(block, ListItem):
            self._write_list_item(block)
        elif isinstance(block, Table):
            self._write_table(block)
        elif isinstance(block, CodeBlock):
            self._write_code(block)
        elif isinstance(block, Blockquote):
            paragraph = self._paragraph(block.runs)
            paragraph.paragraph_format.left_indent = Twips(
                inches_to_twips(QUOTE_INDENT_INCHES * block.depth)
            )
            border_paragraph(paragraph, "left", QUOTE_BORDER_COLOR, 12)
        elif isinstance(block, HorizontalRule):
            paragraph = self._paragraph()
            paragraph.paragraph_format.space_before = Twips(RULE_SPACING_TWIPS)
            paragraph.paragraph_format.space_after = Twips(RULE_SPACING_TWIPS)
            border_paragraph(paragraph, "bottom", RULE_COLOR, 8)
        elif isinstance(block, Image):
            self._write_image(block)
        elif isinstance(block, CollapsibleSection):
            summary = self._paragraph([StyledRun("▼ ", BOLD), *block.summary])
            shade_paragraph(summary, SUMMARY_SHADING)
            border_paragraph(summary, "left", SUMMARY_BORDER_COLOR, 12)
            self._write_blocks(block.blocks)
            self._paragraph()
        elif isinstance(block, DefinitionItem):
            self._paragraph([StyledRun(f"{block.term}: ", BOLD), *block.runs])
        elif isinstance(block, FootnoteSection):
            self._paragraph()
            self._write_heading(2, [StyledRun("Footnotes")])
            for number, runs in block.entries:
                self._paragraph([StyledRun(f"{number}. ", BOLD), *runs])
        else:
            raise TypeError(f"Unknown block kind: {type(block).__name__}")

    def _write_heading(self, level: int, runs: Sequence[Inline]) -> None:
        paragraph = self.docx.add_paragraph(style=f"Heading {level}")
        self._add_runs(paragraph, runs, heading=self.styles.heading(level))

    def _write_list_item(self, item: ListItem) -> None:
        paragraph = self.docx.add_paragraph(style=LIST_STYLE_NAME)
        geometry = self.ir.numbering_for(item.ordered, item.level)
        if item.checked is None:
            num_pr = paragraph._p.get_or_add_pPr().get_or_add_numPr()
            num_pr.get_or_add_ilvl().val = item.level
            num_pr.get_or_add_numId().val = self._num_ids[geometry.kind]
            self._add_runs(paragraph, item.runs)
            return
        paragraph.paragraph_format.left_indent = Twips(geometry.left_indent)
        paragraph.paragraph_format.first_line_indent = Twips(-geometry.hanging)
        glyph = CHECKED_BOX if item.checked else UNCHECKED_BOX
        self._add_runs(paragraph, [StyledRun(f"{glyph} ", PLAIN), *item.runs])

    def _write_table(self, block: Table) -> None:
        if not block.rows:
            return
        self._paragraph()
        columns = block.column_count
        table = self.docx.add_table(rows=len(block.rows), cols=columns)
        try:
            table.style = self.docx.styles["Table Grid"]
        except KeyError:
            logger.debug("Template has no 'Table Grid' style")
        table.autofit = False
        width = Twips(max(1, inches_to_twips(TABLE_WIDTH_INCHES) // columns))

        for row_index, (row, cells) in enumerate(zip(table.rows, block.rows)):
            for column, (cell, content) in enumerate(zip(row.cells, cells)):
                cell.width = width
                paragraph = cell.paragraphs[0]
                paragraph.alignment = _ALIGNMENTS.get(block.alignment(column), WD_ALIGN_PARAGRAPH.LEFT)
                self._add_runs(paragraph, content.runs)
                if row_index == 0:
                    shade_cell(cell, TABLE_HEADER_SHADING)
        self._paragraph()

    def _write_code(self, block: CodeBlock) -> None:
        line_runs: List[List[StyledRun]] = block.line_runs or [
            [StyledRun(line, TextStyle(code=True, code_block=True))] for line in block.lines
        ]
        for runs in line_runs:
            paragraph = self._paragraph(runs, style=CODE_BLOCK_STYLE_NAME)
            shade_paragraph(paragraph, CODE_BLOCK_SHADING)

    def _write_image(self, block: Image) -> None:
        paragraph = self.docx.add_paragraph()
        paragraph.alignment = WD_ALIGN_PARAGRAPH.CENTER
        paragraph.add_run().add_picture(
            BytesIO(block.data),
            width=Emu(max(1, block.width) * EMU_PER_PIXEL),
            height=Emu(max(1, block.height) * EMU_PER_PIXEL),
        )


class DocxFormatter(BaseFormatter):
    """Formatter that produces a Word .docx package."""

    @property
    def name(self) -> str:
        return "Word Document"

    def render(self, document: Document) -> bytes:
        """Serialize the Document IR to .docx bytes."""
        return _DocxBuilder(document).build()

    def format(self, document: Document) -> List[FormatterOutput]:
        return [
            FormatterOutput(
                suffix=".docx",
                content=self.render(document),
                media_type=DOCX_MEDIA_TYPE,
            )
        ]
