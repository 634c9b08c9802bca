"""Inline markup → styled runs.

WHY: Word paragraphs are flat lists of runs, each with one fixed set of
attributes, while inline markdown nests freely: emphasis inside links,
highlights inside bold, raw HTML tags wrapped around markdown. Every
level of nesting has to be flattened into concrete runs without losing
any visible text.

HOW: markdown-it-py parses one line of inline content (CommonMark with
raw HTML and strikethrough) extended by small inline rules for
"==mark==", "^sup^", "~sub~", ":emoji:" shortcodes and "[^label]"
footnote references. The token stream becomes a SyntaxTreeNode tree;
raw HTML open/close tags, which markdown-it leaves as separate leaf
tokens, are grouped into scopes. The tree is then walked depth-first
with an additive TextStyle: each scope adds attributes, nothing clears
them. Fragments of HTML that are not tag pairs are walked with
BeautifulSoup.

RULES:
- preserve_formatting off → one plain run (trailing double space adds a
  LineBreak); footnote references are still numbered
- Hyperlinks wrap only StyledRuns; other children follow the link, and
  links inside links are rendered as plain styled runs
- Link text is underlined and colored 0563C1 unless a color is set
- Footnote references become superscript numbers from the shared
  FootnoteTable, in first-seen order
- Fenced code is colored by Pygments token type with the same palette
  as "hljs-*" classed spans
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional, Sequence, Union

import emoji
from bs4 import BeautifulSoup, Comment, NavigableString, Tag
from markdown_it import MarkdownIt
from markdown_it.rules_inline import StateInline
from markdown_it.tree import SyntaxTreeNode
from pygments.lexers import get_lexer_by_name
from pygments.token import Token
from pygments.util import ClassNotFound

from word_converter.config import HYPERLINK_COLOR, SYNTAX_COLORS
from word_converter.core.context import ConversionContext
from word_converter.core.ir import PLAIN, Hyperlink, Inline, LineBreak, StyledRun, TextStyle
from word_converter.core.styles import css_color_to_hex

logger = logging.getLogger(__name__)

_FOOTNOTE_REF_RE = re.compile(r"\[\^([^\]]+)\]")
_EMOJI_RE = re.compile(r":([a-zA-Z0-9_+\-]+):")
_TAG_RE = re.compile(r"^<(/?)([a-zA-Z][a-zA-Z0-9-]*)(?:\s[^>]*?)?\s*(/?)>$", re.S)
_VOID_TAGS = frozenset({"br", "img", "hr", "wbr", "input"})

# Markdown node types and HTML tag names that switch on one style flag.
_STYLE_FLAGS: Dict[str, str] = {
    "strong": "bold",
    "b": "bold",
    "em": "italic",
    "i": "italic",
    "s": "strikethrough",
    "strike": "strikethrough",
    "del": "strikethrough",
    "u": "underline",
    "ins": "underline",
    "code": "code",
    "kbd": "code",
    "mark": "highlight",
    "sup": "superscript",
    "sub": "subscript",
}

FOOTNOTE_STYLE = TextStyle(superscript=True)
CODE_BLOCK_STYLE = TextStyle(code=True, code_block=True)


# ---------------------------------------------------------------------------
# markdown-it-py inline rules
# ---------------------------------------------------------------------------


def _footnote_ref_rule(state: StateInline, silent: bool) -> bool:
    if state.src[state.pos] != "[":
        return False
    match = _FOOTNOTE_REF_RE.match(state.src, state.pos, state.posMax)
    if match is None:
        return False
    if not silent:
        token = state.push("footnote_ref", "", 0)
        token.meta = {"label": match.group(1).strip()}
    state.pos = match.end()
    return True


def _mark_rule(state: StateInline, silent: bool) -> bool:
    start = state.pos
    if start + 2 > state.posMax or state.src[start:start + 2] != "==":
        return False
    end = state.src.find("==", start + 2, state.posMax)
    if end < 0:
        return False
    content = state.src[start + 2:end]
    if not content or content[0].isspace() or content[-1].isspace():
        return False

    if not silent:
        old_max = state.posMax
        state.push("mark_open", "mark", 1).markup = "=="
        state.pos = start + 2
        state.posMax = end
        state.md.inline.tokenize(state)
        state.posMax = old_max
        state.push("mark_close", "mark", -1).markup = "=="
    state.pos = end + 2
    return True


def _script_rule(marker: str, tag: str):
    """Build a rule for single-marker scripts such as ^sup^ and ~sub~.

    The content may not contain whitespace; "~~" belongs to strikethrough.
    """

    def rule(state: StateInline, silent: bool) -> bool:
        start = state.pos
        if state.src[start] != marker:
            return False
        if state.src[start + 1:start + 2] == marker:
            return False
        end = state.src.find(marker, start + 1, state.posMax)
        if end < 0:
            return False
        content = state.src[start + 1:end]
        if not content or any(ch.isspace() for ch in content):
            return False

        if not silent:
            state.push(f"{tag}_open", tag, 1).markup = marker
            state.push("text", "", 0).content = content
            state.push(f"{tag}_close", tag, -1).markup = marker
        state.pos = end + 1
        return True

    return rule


def _emoji_rule(state: StateInline, silent: bool) -> bool:
    if state.src[state.pos] != ":":
        return False
    match = _EMOJI_RE.match(state.src, state.pos, state.posMax)
    if match is None:
        return False
    glyph = emoji.emojize(match.group(0), language="alias")
    if glyph == match.group(0):
        return False
    if not silent:
        state.push("text", "", 0).content = glyph
    state.pos = match.end()
    return True


def build_markdown_parser() -> MarkdownIt:
    """Create the inline parser used for every conversion."""
    md = MarkdownIt("commonmark", {"html": True, "typographer": False, "breaks": False})
    md.enable("strikethrough")
    md.inline.ruler.before("link", "footnote_ref", _footnote_ref_rule)
    md.inline.ruler.push("mark", _mark_rule)
    md.inline.ruler.push("superscript", _script_rule("^", "sup"))
    md.inline.ruler.push("subscript", _script_rule("~", "sub"))
    md.inline.ruler.push("emoji", _emoji_rule)
    return md


_MD = build_markdown_parser()


# ---------------------------------------------------------------------------
# Style helpers
# ---------------------------------------------------------------------------


def syntax_color(classes: Union[str, Iterable[str], None]) -> Optional[str]:
    """Color for the first "hljs-*" class that has one in the palette."""
    if not classes:
        return None
    if isinstance(classes, str):
        classes = classes.split()
    for cls in classes:
        if cls.startswith("hljs-"):
            color = SYNTAX_COLORS.get(cls[len("hljs-"):])
            if color:
                return color
    return None


def _css_property(style_attr: Any, name: str) -> Optional[str]:
    if not style_attr:
        return None
    match = re.search(r"(?:^|;)\s*" + re.escape(name) + r"\s*:\s*([^;]+)", str(style_attr))
    return match.group(1).strip() if match else None


def _element_style(name: str, attrs: Dict[str, Any], style: TextStyle) -> TextStyle:
    flag = _STYLE_FLAGS.get(name)
    if flag:
        return style.combine(**{flag: True})
    if name in ("span", "font"):
        css = attrs.get("style")
        color = (
            syntax_color(attrs.get("class"))
            or css_color_to_hex(_css_property(css, "color"))
            or css_color_to_hex(attrs.get("color"))
        )
        background = css_color_to_hex(_css_property(css, "background-color"))
        return style.combine(color=color, background_color=background)
    return style


def _link_style(style: TextStyle) -> TextStyle:
    return style.combine(underline=True, color=style.color or HYPERLINK_COLOR)


# ---------------------------------------------------------------------------
# Raw HTML scopes
# ---------------------------------------------------------------------------


@dataclass
class _HtmlScope:
    """An inline HTML element whose open and close tags were separate tokens."""

    tag: str
    attrs: Dict[str, Any]
    children: List[Any] = field(default_factory=list)


def _parse_tag(html: str):
    """Classify a raw tag as ("open" | "close" | "void", name, attrs), or None."""
    match = _TAG_RE.match(html.strip())
    if match is None:
        return None
    closing, name, self_closing = match.groups()
    name = name.lower()
    if closing:
        return "close", name, {}
    element = BeautifulSoup(html, "html.parser").find(name)
    attrs = dict(element.attrs) if isinstance(element, Tag) else {}
    if self_closing or name in _VOID_TAGS:
        return "void", name, attrs
    return "open", name, attrs


def _group_html(nodes: Sequence[SyntaxTreeNode]) -> List[Any]:
    """Nest the siblings between raw open/close tags into _HtmlScope items.

    Unmatched closing tags are dropped; an unclosed tag scopes the rest
    of its siblings.
    """
    root: List[Any] = []
    stack: List[Any] = [(None, root)]
    for node in nodes:
        if node.type == "html_inline":
            parsed = _parse_tag(node.content)
            if parsed is not None and parsed[0] == "open":
                scope = _HtmlScope(parsed[1], parsed[2])
                stack[-1][1].append(scope)
                stack.append((scope, scope.children))
                continue
            if parsed is not None and parsed[0] == "close":
                for depth in range(len(stack) - 1, 0, -1):
                    if stack[depth][0].tag == parsed[1]:
                        del stack[depth:]
                        break
                continue
        stack[-1][1].append(node)
    return root


# ---------------------------------------------------------------------------
# Code highlighting
# ---------------------------------------------------------------------------

# Pygments token types → syntax classes; more specific types first.
_TOKEN_CLASSES = (
    (Token.Comment.Preproc, "meta"),
    (Token.Comment, "comment"),
    (Token.Literal.String.Interpol, "template-variable"),
    (Token.Literal.String.Symbol, "symbol"),
    (Token.Literal.String, "string"),
    (Token.Literal.Number, "number"),
    (Token.Keyword.Type, "type"),
    (Token.Keyword.Constant, "literal"),
    (Token.Keyword, "keyword"),
    (Token.Operator.Word, "keyword"),
    (Token.Name.Builtin, "built_in"),
    (Token.Name.Function, "function"),
    (Token.Name.Class, "title"),
    (Token.Name.Decorator, "meta"),
    (Token.Name.Attribute, "attr"),
    (Token.Name.Variable, "variable"),
    (Token.Literal, "literal"),
)


def token_class(ttype: Any) -> Optional[str]:
    for parent, name in _TOKEN_CLASSES:
        if ttype in parent:
            return name
    return None


def highlight_code(lines: Sequence[str], language: Optional[str]) -> List[List[StyledRun]]:
    """Split fenced code into per-line runs, colored when the language is known.

    RULES:
    - Always returns exactly one run list per input line
    - Unknown or missing languages give one plain code run per line
    - Every run carries code=True and code_block=True
    """
    plain = [[StyledRun(line, CODE_BLOCK_STYLE)] for line in lines]
    if not language:
        return plain
    try:
        lexer = get_lexer_by_name(language, stripnl=False, ensurenl=False)
    except ClassNotFound:
        logger.debug("No lexer for code language %r", language)
        return plain

    result: List[List[StyledRun]] = [[]]
    for ttype, value in lexer.get_tokens("\n".join(lines)):
        style = CODE_BLOCK_STYLE.combine(color=SYNTAX_COLORS.get(token_class(ttype) or ""))
        for index, piece in enumerate(value.split("\n")):
            if index > 0:
                result.append([])
            if not piece:
                continue
            line = result[-1]
            if line and line[-1].style == style:
                line[-1] = StyledRun(line[-1].text + piece, style)
            else:
                line.append(StyledRun(piece, style))

    result = result[:len(lines)]
    result.extend([] for _ in range(len(lines) - len(result)))
    return [runs or [StyledRun("", CODE_BLOCK_STYLE)] for runs in result]


# ---------------------------------------------------------------------------
# Inline formatter
# ---------------------------------------------------------------------------


class InlineFormatter:
    """Turns one piece of inline markdown (or HTML) into IR inline runs.

    WHY: The block scanner hands over the text of a heading, list item,
    table cell, quote, or paragraph; all of them share the same inline
    grammar and the same footnote numbering.

    HOW: format() parses with markdown-it-py and walks the syntax tree;
    format_html() walks a BeautifulSoup DOM. Both end in the same run
    helpers, so a <b> tag and **bold** produce identical runs.
    """

    def __init__(self, context: ConversionContext) -> None:
        self._context = context

    def format(self, text: str, allow_footnotes: bool = True) -> List[Inline]:
        if not self._context.preserve_formatting:
            return self._plain(text, allow_footnotes)

        tokens = _MD.parseInline(text)
        root = SyntaxTreeNode(tokens)
        nodes = root.children[0].children if root.children else []
        runs = self._render_nodes(nodes, PLAIN, False, allow_footnotes) if nodes else []
        return runs or self._plain(text, allow_footnotes)

    def format_html(
        self, html: str, style: TextStyle = PLAIN, allow_footnotes: bool = True
    ) -> List[Inline]:
        """Render an HTML fragment; falls back to its text content."""
        if not html:
            return []
        soup = BeautifulSoup(html, "html.parser")
        runs = self.format_elements(soup.contents, style, False, allow_footnotes)
        if not runs:
            fallback = soup.get_text()
            if fallback.strip():
                return self.text_runs(fallback, style, allow_footnotes)
        return runs

    # -- plain mode ---------------------------------------------------------

    def _plain(self, text: str, allow_footnotes: bool) -> List[Inline]:
        hard_break = text.endswith("  ")
        content = text[:-2] if hard_break else text
        runs: List[Inline] = list(self.text_runs(content, PLAIN, allow_footnotes))
        if hard_break:
            runs.append(LineBreak())
        return runs or [StyledRun("", PLAIN)]

    # -- shared run helpers -------------------------------------------------

    def _footnote_run(self, label: str) -> StyledRun:
        number = self._context.footnotes.reference(label)
        return StyledRun(str(number), FOOTNOTE_STYLE)

    def text_runs(
        self, text: str, style: TextStyle = PLAIN, allow_footnotes: bool = True
    ) -> List[Inline]:
        """Plain text runs with "[^label]" references turned into footnote numbers."""
        if not text:
            return []
        if not allow_footnotes:
            return [StyledRun(text, style)]
        runs: List[Inline] = []
        last = 0
        for match in _FOOTNOTE_REF_RE.finditer(text):
            if match.start() > last:
                runs.append(StyledRun(text[last:match.start()], style))
            runs.append(self._footnote_run(match.group(1).strip()))
            last = match.end()
        if last < len(text):
            runs.append(StyledRun(text[last:], style))
        return runs

    @staticmethod
    def _wrap_link(href: str, inner: List[Inline], in_link: bool) -> List[Inline]:
        if in_link:
            return inner
        text_runs = tuple(run for run in inner if isinstance(run, StyledRun))
        trailing = [run for run in inner if not isinstance(run, StyledRun)]
        if href and text_runs:
            return [Hyperlink(href, text_runs), *trailing]
        return inner

    # -- markdown syntax tree -----------------------------------------------

    def _render_nodes(
        self, nodes: Sequence[SyntaxTreeNode], style: TextStyle, in_link: bool, allow: bool
    ) -> List[Inline]:
        return self._render_items(_group_html(nodes), style, in_link, allow)

    def _render_items(
        self, items: Sequence[Any], style: TextStyle, in_link: bool, allow: bool
    ) -> List[Inline]:
        runs: List[Inline] = []
        for item in items:
            if isinstance(item, _HtmlScope):
                runs.extend(self._render_scope(item, style, in_link, allow))
            else:
                runs.extend(self._render_node(item, style, in_link, allow))
        return runs

    def _render_scope(
        self, scope: _HtmlScope, style: TextStyle, in_link: bool, allow: bool
    ) -> List[Inline]:
        if scope.tag == "a":
            inner = self._render_items(scope.children, _link_style(style), True, allow)
            return self._wrap_link(str(scope.attrs.get("href") or ""), inner, in_link)
        next_style = _element_style(scope.tag, scope.attrs, style)
        return self._render_items(scope.children, next_style, in_link, allow)

    def _render_node(
        self, node: SyntaxTreeNode, style: TextStyle, in_link: bool, allow: bool
    ) -> List[Inline]:
        kind = node.type
        if kind in ("text", "text_special"):
            return self.text_runs(node.content, style, allow)
        if kind in ("softbreak", "hardbreak"):
            return [LineBreak()]
        if kind == "code_inline":
            return [StyledRun(node.content, style.combine(code=True))]
        if kind == "footnote_ref":
            label = node.meta.get("label", "")
            if not allow:
                return [StyledRun(f"[^{label}]", style)]
            return [self._footnote_run(label)]
        if kind == "html_inline":
            return self._render_html_leaf(node.content, style, allow)
        if kind == "image":
            return [StyledRun(node.content, style)] if node.content else []
        if kind == "link":
            inner = self._render_nodes(node.children, _link_style(style), True, allow)
            return self._wrap_link(str(node.attrs.get("href") or ""), inner, in_link)
        if kind in _STYLE_FLAGS:
            next_style = style.combine(**{_STYLE_FLAGS[kind]: True})
            return self._render_nodes(node.children, next_style, in_link, allow)
        return self._render_nodes(node.children, style, in_link, allow)

    def _render_html_leaf(self, html: str, style: TextStyle, allow: bool) -> List[Inline]:
        if html.startswith("<!--"):
            return []
        parsed = _parse_tag(html)
        if parsed is None:
            return self.format_html(html, style, allow)
        _, name, attrs = parsed
        if name == "br":
            return [LineBreak()]
        if name == "img" and attrs.get("alt"):
            return [StyledRun(str(attrs["alt"]), style)]
        return []

    # -- BeautifulSoup DOM --------------------------------------------------

    def format_elements(
        self,
        nodes: Iterable[Any],
        style: TextStyle = PLAIN,
        in_link: bool = False,
        allow: bool = True,
    ) -> List[Inline]:
        runs: List[Inline] = []
        for node in nodes:
            if isinstance(node, Comment):
                continue
            if isinstance(node, NavigableString):
                runs.extend(self.text_runs(str(node), style, allow))
                continue
            if not isinstance(node, Tag):
                continue

            name = node.name.lower()
            if name == "br":
                runs.append(LineBreak())
            elif name == "img":
                if node.get("alt"):
                    runs.append(StyledRun(str(node["alt"]), style))
            elif name == "a":
                inner = self.format_elements(node.contents, _link_style(style), True, allow)
                runs.extend(self._wrap_link(str(node.get("href") or ""), inner, in_link))
            else:
                next_style = _element_style(name, dict(node.attrs), style)
                runs.extend(self.format_elements(node.contents, next_style, in_link, allow))
        return runs
