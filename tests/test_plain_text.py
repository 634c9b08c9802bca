"""Unit tests for the plain text formatter."""

import asyncio

import pytest

from word_converter.core.assembler import assemble_document
from word_converter.core.ir import Paragraph, StyledRun
from word_converter.formatters import FORMATTERS
from word_converter.formatters.plain_text import PlainTextFormatter, render_blocks


def _text(make_context, markdown):
    document = asyncio.run(assemble_document(markdown, make_context()))
    outputs = PlainTextFormatter().format(document)
    assert len(outputs) == 1
    assert outputs[0].suffix == ".txt"
    assert outputs[0].media_type == "text/plain"
    return outputs[0].content


def test_registered():
    assert FORMATTERS["plain_text"] is PlainTextFormatter


def test_visible_text(make_context):
    markdown = (
        "# Heading\n"
        "Para with **bold**\n"
        "1. one\n"
        "2. two\n"
        "- [x] done\n"
        "> quote\n"
        "---\n"
        "| a | b |\n"
        "```\ncode line\n```"
    )
    assert _text(make_context, markdown) == (
        "Heading\n"
        "Para with bold\n"
        "1. one\n"
        "2. two\n"
        "☑ done\n"
        "> quote\n"
        "---\n"
        "a | b\n"
        "code line\n"
    )


def test_ordered_counter_restarts(make_context):
    assert _text(make_context, "1. a\n\n1. b") == "1. a\n\n1. b\n"


def test_footnotes_listed(make_context):
    text = _text(make_context, "x[^n]\n\n[^n]: note")
    assert text.endswith("Footnotes\n1. note\n")


def test_unknown_block_rejected():
    with pytest.raises(TypeError):
        render_blocks([Paragraph([StyledRun("ok")]), object()])


def test_leading_rules_around_prose_keep_text(make_context):
    text = _text(make_context, "---\nIntro paragraph\n---\nBody")
    assert "Intro paragraph" in text
    assert text.endswith("Body\n")
