"""Tests for the OpenCV drawing surface."""
import numpy as np
import pytest

from services.pose_overlay.core.DrawingContext import CvDrawingContext, Path2D, parse_color


class TestParseColor:

    def test_names_are_case_insensitive(self):
        assert parse_color("Red") == (0, 0, 255)
        assert parse_color("ORANGE") == (0, 165, 255)

    def test_hex_is_converted_to_bgr(self):
        assert parse_color("#e6194b") == (0x4b, 0x19, 0xe6)

    @pytest.mark.parametrize("bad", ["chartreuse-ish", "#12345", "#gggggg"])
    def test_unknown_color(self, bad):
        with pytest.raises(ValueError):
            parse_color(bad)


class TestCvDrawingContext:

    def test_fill_circle(self):
        image = np.zeros((40, 40, 3), dtype=np.uint8)
        ctx = CvDrawingContext(image)
        ctx.fill_style = "Green"
        circle = Path2D()
        circle.arc(20, 20, 4)
        ctx.fill(circle)

        assert tuple(image[20, 20]) == (0, 128, 0)
        assert tuple(image[0, 0]) == (0, 0, 0)

    def test_stroke_current_path(self):
        image = np.zeros((40, 40, 3), dtype=np.uint8)
        ctx = CvDrawingContext(image)
        ctx.stroke_style = "#ffffff"
        ctx.line_width = 2
        ctx.begin_path()
        ctx.move_to(5, 10)
        ctx.line_to(35, 10)
        ctx.stroke()

        assert tuple(image[10, 20]) == (255, 255, 255)
        assert image[30:].sum() == 0

    def test_begin_path_discards_previous_segments(self):
        image = np.zeros((40, 40, 3), dtype=np.uint8)
        ctx = CvDrawingContext(image)
        ctx.stroke_style = "White"
        ctx.move_to(0, 5)
        ctx.line_to(39, 5)
        ctx.begin_path()
        ctx.move_to(0, 30)
        ctx.line_to(39, 30)
        ctx.stroke()

        assert image[5].sum() == 0
        assert image[30].sum() > 0
