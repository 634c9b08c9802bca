"""Output formats a converted note can be written as.

FORMATTERS maps the keys accepted by ``--formats`` and by
MarkdownToDocxConverter.render() to formatter classes: "docx" for the
Word package, "plain_text" for the visible text. Classes are stored, not
instances; callers construct one per render.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Dict, Type

from word_converter.formatters.docx_writer import DocxFormatter
from word_converter.formatters.plain_text import PlainTextFormatter

if TYPE_CHECKING:
    from word_converter.formatters.base import BaseFormatter

FORMATTERS: Dict[str, Type[BaseFormatter]] = {
    "docx": DocxFormatter,
    "plain_text": PlainTextFormatter,
}
