"""Formatter interface shared by the Word and plain text writers.

WHY: A converted note is written either as a .docx package (the product)
or as its visible text (used by the CLI for quick review and by tests to
check that no words were lost). Both read the same Document IR, so the
converter's render() and the CLI's --formats flag treat them uniformly.

HOW: A formatter turns a Document into FormatterOutput records: a suffix,
the content, and its MIME type. DocxFormatter yields bytes, while
PlainTextFormatter yields str; the caller decides how to write each.

RULES:
- ``format()`` never mutates the Document; one IR may be rendered to
  several formats in a row
- ``suffix`` carries the dot (``".docx"``, ``".txt"``); the note's file
  stem is prepended by the caller
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import List, Union

from word_converter.core.ir import Document


@dataclass
class FormatterOutput:
    """A rendered file: bytes for a .docx package, text for plain text."""

    suffix: str
    content: Union[str, bytes]
    media_type: str


class BaseFormatter(ABC):
    """Renders an assembled Document; looked up by key in FORMATTERS."""

    @property
    @abstractmethod
    def name(self) -> str:
        """Label used in error messages, e.g. 'Word Document'."""

    @abstractmethod
    def format(self, document: Document) -> List[FormatterOutput]:
        """Render the document, title and footnote blocks included."""
