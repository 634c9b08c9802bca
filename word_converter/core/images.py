"""Image probing and print sizing.

WHY: Word can only embed a handful of raster formats, and an image must
be given an explicit display size. Notes embed whatever the vault holds
(WEBP screenshots, oversized photos), so bytes have to be checked,
converted when needed, and scaled to fit the page.

HOW: prepare_image() opens the bytes with Pillow to learn the format
and natural size, re-encodes formats Word cannot read as PNG, and then
applies fit_dimensions().

RULES:
- Undecodable bytes → None (the caller renders a placeholder)
- A width override scales the height to keep the aspect ratio
- Without an override, images wider than MAX_IMAGE_WIDTH_PX are scaled
  down to it; narrower images keep their natural size
- Unknown natural size: 400×300, or w×w when a width override is given
"""

from __future__ import annotations

import logging
from io import BytesIO
from typing import Optional, Tuple

from PIL import Image as PILImage
from PIL import UnidentifiedImageError

from word_converter.config import MAX_IMAGE_WIDTH_PX
from word_converter.core.ir import Image

logger = logging.getLogger(__name__)

# Formats python-docx can read the header of.
WORD_IMAGE_FORMATS = frozenset({"PNG", "JPEG", "GIF", "BMP", "TIFF"})
DEFAULT_IMAGE_SIZE = (400, 300)


def fit_dimensions(
    natural_width: int, natural_height: int, width_override: Optional[int] = None
) -> Tuple[int, int]:
    """Return the (width, height) in pixels an image is placed at."""
    known = natural_width > 0 and natural_height > 0
    if width_override:
        if known:
            ratio = natural_height / natural_width
            return width_override, max(1, round(width_override * ratio))
        return width_override, width_override
    if not known:
        return DEFAULT_IMAGE_SIZE
    if natural_width > MAX_IMAGE_WIDTH_PX:
        ratio = natural_height / natural_width
        return MAX_IMAGE_WIDTH_PX, max(1, round(MAX_IMAGE_WIDTH_PX * ratio))
    return natural_width, natural_height


def _reencode_png(picture: PILImage.Image) -> bytes:
    if picture.mode not in ("1", "L", "LA", "P", "RGB", "RGBA"):
        picture = picture.convert("RGBA")
    buffer = BytesIO()
    picture.save(buffer, format="PNG")
    return buffer.getvalue()


def prepare_image(data: bytes, width_override: Optional[int] = None, alt: str = "") -> Optional[Image]:
    """Probe image bytes and build an Image block, or None if undecodable."""
    try:
        with PILImage.open(BytesIO(data)) as picture:
            natural_width, natural_height = picture.size
            if picture.format not in WORD_IMAGE_FORMATS:
                logger.debug("Converting %s image to PNG", picture.format)
                data = _reencode_png(picture)
    except (UnidentifiedImageError, OSError, ValueError) as exc:
        logger.warning("Could not decode image %r: %s", alt or "<unnamed>", exc)
        return None

    width, height = fit_dimensions(natural_width, natural_height, width_override)
    return Image(data=data, width=width, height=height, alt=alt)
