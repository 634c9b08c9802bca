"""Unit tests for document assembly.

WHY: The assembler adds everything the scanner does not produce: the
title heading, front matter, the footnote section, numbering and page
geometry. Footnote numbering must span the whole document, including
<details> regions.

HOW: assemble_document() is run on short notes with fresh contexts and
the resulting Document is inspected.
"""

import asyncio

from word_converter.config import ConverterSettings
from word_converter.core.assembler import assemble_document, build_numbering, page_geometry, strip_control_chars
from word_converter.core.ir import (
    CollapsibleSection,
    DefinitionItem,
    FootnoteSection,
    Heading,
    HorizontalRule,
    Paragraph,
    StyledRun,
    inline_text,
)


def assemble(make_context, markdown, title="Note", **settings):
    context = make_context(ConverterSettings(**settings), title=title)
    return asyncio.run(assemble_document(markdown, context))


class TestTitle:
    def test_title_heading_and_spacer(self, make_context):
        document = assemble(make_context, "body", title="My Note", include_filename_as_header=True)
        assert document.blocks[0] == Heading(level=1, runs=[StyledRun("My Note")])
        assert document.blocks[1] == Paragraph([])
        assert inline_text(document.blocks[2].runs) == "body"

    def test_no_title_by_default(self, make_context):
        document = assemble(make_context, "body", title="My Note")
        assert len(document.blocks) == 1
        assert document.title == "My Note"

    def test_title_is_not_parsed_as_markdown(self, make_context):
        document = assemble(make_context, "", title="*not italic*", include_filename_as_header=True)
        assert document.blocks[0].runs == [StyledRun("*not italic*")]


class TestFootnotes:
    NOTE = "First[^a] then[^b] again[^a].\n\n[^a]: Alpha def\n[^b]: Beta **def**"

    def test_section_in_first_seen_order(self, make_context):
        document = assemble(make_context, self.NOTE)
        section = document.blocks[-1]
        assert isinstance(section, FootnoteSection)
        assert [number for number, _ in section.entries] == [1, 2]
        assert [inline_text(runs) for _, runs in section.entries] == ["Alpha def", "Beta def"]

    def test_superscripts(self, make_context):
        document = assemble(make_context, self.NOTE)
        runs = document.blocks[0].runs
        assert [run.text for run in runs if run.style.superscript] == ["1", "2", "1"]

    def test_definitions_removed_from_body(self, make_context):
        document = assemble(make_context, self.NOTE)
        text = " ".join(inline_text(b.runs) for b in document.blocks if isinstance(b, Paragraph))
        assert "Alpha def" not in text

    def test_no_section_without_references(self, make_context):
        document = assemble(make_context, "plain\n\n[^unused]: never referenced")
        assert not any(isinstance(b, FootnoteSection) for b in document.blocks)

    def test_shared_counter_across_details(self, make_context):
        note = "out[^x]\n<details>\nin[^y] and[^x]\n</details>\n[^x]: X\n[^y]: Y"
        document = assemble(make_context, note)
        details = [b for b in document.blocks if isinstance(b, CollapsibleSection)][0]
        inner = [b for b in details.blocks if isinstance(b, Paragraph) and b.runs][0]
        assert [run.text for run in inner.runs if run.style.superscript] == ["2", "1"]
        section = document.blocks[-1]
        assert [inline_text(runs) for _, runs in section.entries] == ["X", "Y"]

    def test_missing_definition(self, make_context):
        document = assemble(make_context, "ref[^gone]")
        assert inline_text(document.blocks[-1].entries[0][1]) == "[Missing footnote: gone]"


class TestFrontMatter:
    NOTE = "---\ntitle: Report\nauthor: Ada\n---\n# Body"

    def test_dropped_by_default(self, make_context):
        document = assemble(make_context, self.NOTE)
        assert len(document.blocks) == 1
        assert isinstance(document.blocks[0], Heading)
        assert not any(isinstance(b, HorizontalRule) for b in document.blocks)
        assert document.metadata == {}

    def test_rendered_with_include_metadata(self, make_context):
        document = assemble(make_context, self.NOTE, include_metadata=True)
        items = [b for b in document.blocks if isinstance(b, DefinitionItem)]
        assert [(item.term, inline_text(item.runs)) for item in items] == [
            ("title", "Report"), ("author", "Ada"),
        ]
        assert document.metadata == {"title": "Report", "author": "Ada"}


class TestDocumentDefinitions:
    def test_numbering(self):
        numbering = build_numbering()
        assert len(numbering) == 6
        ordered = [d for d in numbering if d.kind == "ordered"]
        assert [d.marker for d in ordered] == ["%1.", "%2.", "%3."]
        assert [d.left_indent for d in ordered] == [259, 518, 778]
        assert all(d.hanging == 259 for d in numbering)
        assert all(d.marker == "•" for d in numbering if d.is_bullet)

    def test_page_geometry(self):
        letter = page_geometry("Letter")
        assert (letter.width, letter.height, letter.margin) == (12240, 15840, 1440)
        assert page_geometry("nonsense").name == "A4"

    def test_document_carries_page_and_styles(self, make_context):
        document = assemble(make_context, "x", page_size="Legal")
        assert document.page.name == "Legal"
        assert document.styles.body_font
        assert document.numbering_for(True, 2).marker == "%3."


class TestControlCharacters:
    def test_strip_keeps_whitespace(self):
        assert strip_control_chars("a\x00b\x0bc\x0cd\x1be\tf\ng\rh") == "abcde\tf\ng\rh"

    def test_removed_from_body_and_title(self, make_context):
        document = assemble(make_context, "form\x0cfeed\n\nesc \x1b[0m", title="Bad\x07 Title")
        assert document.title == "Bad Title"
        assert [inline_text(block.runs) for block in document.blocks] == ["formfeed", "", "esc [0m"]
