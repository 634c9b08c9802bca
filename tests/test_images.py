"""Unit tests for image probing and sizing."""

import pytest

from word_converter.core.images import DEFAULT_IMAGE_SIZE, fit_dimensions, prepare_image


class TestFitDimensions:
    def test_width_override_keeps_aspect(self):
        assert fit_dimensions(300, 200, 150) == (150, 100)

    def test_wide_image_scaled_to_print_width(self):
        assert fit_dimensions(1000, 500) == (680, 340)

    def test_narrow_image_keeps_natural_size(self):
        assert fit_dimensions(320, 240) == (320, 240)

    def test_override_may_enlarge(self):
        assert fit_dimensions(100, 50, 400) == (400, 200)

    def test_unknown_size(self):
        assert fit_dimensions(0, 0) == DEFAULT_IMAGE_SIZE
        assert fit_dimensions(0, 0, 250) == (250, 250)


class TestPrepareImage:
    def test_png_kept(self, make_image):
        data = make_image(300, 200)
        image = prepare_image(data, 150, alt="chart")
        assert image.data == data
        assert (image.width, image.height) == (150, 100)
        assert image.alt == "chart"

    @pytest.mark.parametrize("fmt", ["WEBP", "PPM"])
    def test_unsupported_format_reencoded_as_png(self, make_image, fmt):
        image = prepare_image(make_image(32, 16, fmt))
        assert image.data.startswith(b"\x89PNG")
        assert (image.width, image.height) == (32, 16)

    def test_garbage_returns_none(self):
        assert prepare_image(b"definitely not an image") is None
