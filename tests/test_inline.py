"""Unit tests for the inline formatter.

WHY: Inline markup is where most visible text lives. Every nesting of
markdown emphasis, raw HTML tags and links must flatten into runs that
keep all text and carry the combined style.

HOW: Tests format single lines with a default (formatting-preserving)
context and inspect the resulting StyledRun / Hyperlink / LineBreak
lists. Code highlighting is tested through highlight_code().

RULES:
- Fixtures come from conftest.py (context, inline, make_context)
"""

import pytest

from word_converter.config import ConverterSettings
from word_converter.core.inline import InlineFormatter, highlight_code, syntax_color
from word_converter.core.ir import Hyperlink, LineBreak, StyledRun, inline_text


def _styled(runs):
    return [run for run in runs if isinstance(run, StyledRun)]


def _run_with(runs, text):
    for run in _styled(runs):
        if run.text == text:
            return run
    raise AssertionError(f"no run with text {text!r} in {runs!r}")


class TestMarkdownEmphasis:
    def test_bold_and_italic(self, inline):
        runs = inline.format("**bold** and *it*")
        assert inline_text(runs) == "bold and it"
        assert _run_with(runs, "bold").style.bold
        assert _run_with(runs, "it").style.italic
        plain = _run_with(runs, " and ").style
        assert not plain.bold and not plain.italic

    def test_nested_styles_accumulate(self, inline):
        runs = inline.format("**bold _both_**")
        both = _run_with(runs, "both").style
        assert both.bold and both.italic

    def test_inline_code(self, inline):
        runs = inline.format("use `x = 1` here")
        code = _run_with(runs, "x = 1").style
        assert code.code and not code.code_block

    def test_strikethrough(self, inline):
        assert _run_with(inline.format("~~gone~~"), "gone").style.strikethrough

    def test_highlight(self, inline):
        runs = inline.format("a ==marked **text**== b")
        assert _run_with(runs, "marked ").style.highlight
        strong = _run_with(runs, "text").style
        assert strong.highlight and strong.bold

    def test_superscript_and_subscript(self, inline):
        assert _run_with(inline.format("x^2^"), "2").style.superscript
        assert _run_with(inline.format("H~2~O"), "2").style.subscript

    def test_spaced_markers_stay_literal(self, inline):
        assert inline_text(inline.format("a ^ b ^ c")) == "a ^ b ^ c"
        assert inline_text(inline.format("a == b")) == "a == b"

    def test_emoji_shortcode(self, inline):
        assert inline_text(inline.format("hi :smile:")) == "hi \U0001F604"

    def test_unknown_shortcode_kept(self, inline):
        assert inline_text(inline.format("time :notanemoji:")) == "time :notanemoji:"

    def test_visible_text_preserved(self, inline):
        text = "Some **bold**, *italic*, `code`, ~~strike~~ and ==mark== text."
        assert inline_text(inline.format(text)) == "Some bold, italic, code, strike and mark text."

    def test_inline_image_becomes_alt_text(self, inline):
        assert inline_text(inline.format("see ![a chart](c.png) here")) == "see a chart here"


class TestLinks:
    def test_markdown_link(self, inline):
        runs = inline.format("[site](https://example.com)")
        assert len(runs) == 1
        link = runs[0]
        assert isinstance(link, Hyperlink)
        assert link.url == "https://example.com"
        assert link.runs[0].text == "site"
        assert link.runs[0].style.underline
        assert link.runs[0].style.color == "0563C1"

    def test_styled_link_text(self, inline):
        link = inline.format("[**bold** link](https://example.com)")[0]
        assert isinstance(link, Hyperlink)
        assert link.runs[0].style.bold
        assert inline_text([link]) == "bold link"

    def test_links_never_nest(self, inline):
        runs = inline.format('<a href="https://a.example">x [y](https://b.example)</a>')
        links = [run for run in runs if isinstance(run, Hyperlink)]
        assert len(links) == 1
        assert links[0].url == "https://a.example"
        assert inline_text(runs) == "x y"

    def test_html_anchor(self, inline):
        runs = inline.format_html('<a href="https://x.example">go</a>')
        assert isinstance(runs[0], Hyperlink)
        assert runs[0].url == "https://x.example"


class TestRawHtml:
    def test_html_tags_match_markdown(self, inline):
        html = inline.format("<b>bold</b> <i>it</i> <u>under</u> <mark>m</mark>")
        assert _run_with(html, "bold").style.bold
        assert _run_with(html, "it").style.italic
        assert _run_with(html, "under").style.underline
        assert _run_with(html, "m").style.highlight

    def test_span_color(self, inline):
        runs = inline.format('<span style="color: #ff0000; background-color: rgb(0, 0, 255)">red</span>')
        style = _run_with(runs, "red").style
        assert style.color == "FF0000"
        assert style.background_color == "0000FF"

    def test_syntax_class_color(self, inline):
        runs = inline.format('<span class="hljs-keyword">def</span>')
        assert _run_with(runs, "def").style.color == "569CD6"

    def test_br_and_comment(self, inline):
        runs = inline.format("a<br>b<!-- hidden -->")
        assert any(isinstance(run, LineBreak) for run in runs)
        assert inline_text(runs) == "a\nb"

    def test_unmatched_close_tag_dropped(self, inline):
        assert inline_text(inline.format("text</b> more")) == "text more"

    def test_format_html_falls_back_to_text(self, inline):
        runs = inline.format_html("<p>just <em>text</em></p>")
        assert inline_text(runs) == "just text"
        assert _run_with(runs, "text").style.italic


class TestFootnoteRefs:
    def test_disallowed_refs_stay_literal(self, context, inline):
        runs = inline.format("see[^x]", allow_footnotes=False)
        assert inline_text(runs) == "see[^x]"
        assert len(context.footnotes) == 0

    def test_refs_inside_html_counted(self, context, inline):
        inline.format_html("<p>a[^one] b[^two]</p>")
        assert context.footnotes.used_labels == ["one", "two"]


class TestPlainMode:
    @pytest.fixture
    def plain(self, make_context):
        return InlineFormatter(make_context(ConverterSettings(preserve_formatting=False)))

    def test_markup_left_as_text(self, plain):
        runs = plain.format("**bold** [link](https://x.example)")
        assert runs == [StyledRun("**bold** [link](https://x.example)")]

    def test_trailing_double_space_breaks(self, plain):
        runs = plain.format("line  ")
        assert runs == [StyledRun("line"), LineBreak()]

    def test_footnotes_still_numbered(self, plain):
        runs = plain.format("a[^n]")
        assert runs[1].text == "1"
        assert runs[1].style.superscript

    def test_empty_text_gives_one_empty_run(self, plain):
        assert plain.format("") == [StyledRun("")]


class TestHighlightCode:
    def test_one_run_list_per_line(self):
        lines = ["def f():", "", "    return 1"]
        result = highlight_code(lines, "python")
        assert len(result) == 3
        assert ["".join(run.text for run in runs) for runs in result] == lines
        assert all(run.style.code_block for runs in result for run in runs)

    def test_keyword_colored(self):
        first = highlight_code(["def f():"], "python")[0][0]
        assert first.text == "def"
        assert first.style.color == "569CD6"

    def test_unknown_language_plain(self):
        result = highlight_code(["some code"], "no-such-language")
        assert result == [[StyledRun("some code", result[0][0].style)]]
        assert result[0][0].style.color is None

    def test_no_language_plain(self):
        assert highlight_code(["x"], None)[0][0].style.color is None

    def test_syntax_color_helper(self):
        assert syntax_color("hljs-string other") == "CE9178"
        assert syntax_color(["plain"]) is None
