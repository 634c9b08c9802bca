"""Shared test fixtures for the word_converter test suite.

WHY: Most test modules need the same building blocks: default settings,
a fresh per-conversion context, an inline formatter bound to it, and
real image bytes to feed the image pipeline.

HOW: Pytest fixtures build them from the public constructors. Images are
generated with Pillow so no binary files live in the repository.

RULES:
- Every fixture returns fresh objects; nothing is shared across tests
- Factory fixtures (make_image, make_context) take keyword overrides
"""

from io import BytesIO

import pytest
from PIL import Image as PILImage

from word_converter.config import ConverterSettings
from word_converter.core.context import ConversionContext
from word_converter.core.inline import InlineFormatter
from word_converter.core.styles import StyleResolver


def _encode_image(width, height, fmt="PNG"):
    buffer = BytesIO()
    PILImage.new("RGB", (width, height), (200, 40, 40)).save(buffer, format=fmt)
    return buffer.getvalue()


@pytest.fixture
def make_image():
    """Factory: make_image(width, height, fmt="PNG") → encoded bytes."""
    return _encode_image


@pytest.fixture
def make_context():
    """Factory: make_context(settings=None, **fields) → ConversionContext."""

    def build(settings=None, **kwargs):
        settings = settings or ConverterSettings()
        return ConversionContext(
            settings=settings,
            styles=StyleResolver(settings).catalog(),
            **kwargs,
        )

    return build


@pytest.fixture
def settings():
    return ConverterSettings()


@pytest.fixture
def context(make_context, settings):
    return make_context(settings)


@pytest.fixture
def inline(context):
    return InlineFormatter(context)


@pytest.fixture
def images():
    """Resolver table: link → bytes."""
    return {
        "img.png": _encode_image(300, 200),
        "wide.png": _encode_image(1000, 500),
    }


@pytest.fixture
def resolver(images):
    """Async resource resolver backed by the images fixture."""

    async def resolve(link):
        return images.get(link)

    return resolve
