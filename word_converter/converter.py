"""Public entry point: markdown text → .docx bytes.

WHY: The host application calls one object with a note's text, its
title, and optionally the editor's theme snapshot and a link resolver.
Everything else (IR, scanner, formatters) is an implementation detail.

HOW: MarkdownToDocxConverter holds only immutable configuration
(settings, an optional httpx transport for tests). Each call builds a
fresh ConversionContext, opens a ResourceLoader for the duration of the
scan, assembles the Document IR, then hands it to a formatter.

RULES:
- No per-conversion state on the instance; concurrent convert() calls
  on one converter are independent
- Non-fatal problems never raise (they are logged and degraded)
- Packaging failures raise ConversionError, chained to the cause
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Dict, Iterable, List, Optional, Union

import httpx

from word_converter.config import ConverterSettings
from word_converter.core.assembler import assemble_document
from word_converter.core.context import ConversionContext
from word_converter.core.ir import Document
from word_converter.core.styles import StyleResolver, ThemeSnapshot
from word_converter.formatters import FORMATTERS
from word_converter.formatters.base import FormatterOutput
from word_converter.formatters.docx_writer import DocxFormatter
from word_converter.resources.loader import ResourceLoader, ResourceResolver

logger = logging.getLogger(__name__)

ThemeInput = Union[ThemeSnapshot, Dict[str, Any], None]


class ConversionError(Exception):
    """Raised when the converted document cannot be packaged.

    WHY: Every other problem in a conversion is absorbed (placeholders,
    fallbacks). A failure to serialize is the one the user must see, and
    callers need a single type to catch for it.

    RULES:
    - Always raised "from" the underlying exception
    """


def _snapshot(theme: ThemeInput) -> Optional[ThemeSnapshot]:
    if theme is None or isinstance(theme, ThemeSnapshot):
        return theme
    return ThemeSnapshot.from_dict(theme)


class MarkdownToDocxConverter:
    """Converts markdown notes into Word documents.

    Args:
        settings: Conversion options; defaults to ConverterSettings().
        transport: Optional httpx transport for remote image fetches
            (tests pass an httpx.MockTransport).
    """

    def __init__(
        self,
        settings: Optional[ConverterSettings] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.settings = settings or ConverterSettings()
        self._transport = transport

    async def build_document(
        self,
        markdown: str,
        title: str,
        theme: ThemeInput = None,
        resource_resolver: Optional[ResourceResolver] = None,
    ) -> Document:
        """Parse markdown into the Document IR without serializing it."""
        catalog = StyleResolver(self.settings, _snapshot(theme)).catalog()
        async with ResourceLoader(
            resource_resolver,
            timeout_s=self.settings.remote_fetch_timeout_s,
            transport=self._transport,
        ) as resources:
            context = ConversionContext(
                settings=self.settings,
                styles=catalog,
                title=title,
                resources=resources,
            )
            return await assemble_document(markdown, context)

    async def convert(
        self,
        markdown: str,
        title: str,
        theme: ThemeInput = None,
        resource_resolver: Optional[ResourceResolver] = None,
    ) -> bytes:
        """Convert markdown to .docx bytes.

        Raises:
            ConversionError: If the document cannot be packaged.
        """
        document = await self.build_document(markdown, title, theme, resource_resolver)
        try:
            return DocxFormatter().render(document)
        except Exception as exc:
            logger.error("Packaging %r failed: %s", title, exc)
            raise ConversionError(f"Could not package {title!r}: {exc}") from exc

    def convert_sync(
        self,
        markdown: str,
        title: str,
        theme: ThemeInput = None,
        resource_resolver: Optional[ResourceResolver] = None,
    ) -> bytes:
        """Blocking wrapper around convert() for callers without a loop."""
        return asyncio.run(self.convert(markdown, title, theme, resource_resolver))

    def render(self, document: Document, formats: Iterable[str] = ("docx",)) -> List[FormatterOutput]:
        """Run the named formatters over an assembled document.

        Raises:
            ValueError: If a format key is not registered.
            ConversionError: If a formatter fails.
        """
        outputs: List[FormatterOutput] = []
        for key in formats:
            if key not in FORMATTERS:
                available = ", ".join(sorted(FORMATTERS))
                raise ValueError(f"Unknown format '{key}'. Available formats: {available}")
            formatter = FORMATTERS[key]()
            try:
                outputs.extend(formatter.format(document))
            except Exception as exc:
                raise ConversionError(f"{formatter.name} output failed: {exc}") from exc
        return outputs
