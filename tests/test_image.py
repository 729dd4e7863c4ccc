import os
import sys
import tempfile
import unittest
from io import BytesIO
from pathlib import Path

import numpy as np
from PIL import Image

ROOT = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(ROOT))

from config import ImageConfig
from flagcat_errors import EmptyImageError, UnsupportedImageFormatError
from flagcat_image import ImageColorizer, ImageFrame, ImageRenderer, ScrollBuffer, load_image
from flagcat_stripes import RenderState

RESET_NEWLINE = b"\x1b[0m\n"


def quadrant_frame():
    pixels = np.array([
        [[255, 0, 0], [0, 255, 0]],
        [[0, 0, 255], [255, 255, 255]],
    ], dtype=np.uint8)
    return ImageFrame(pixels)


def gradient_frame(width, height):
    pixels = np.zeros((height, width, 3), dtype=np.uint8)
    for y in range(height):
        pixels[y, :, 0] = y * 10
    return ImageFrame(pixels)


class ImageFrameTests(unittest.TestCase):
    def test_pixels_are_read_only(self):
        frame = quadrant_frame()
        with self.assertRaises(ValueError):
            frame.pixels[0, 0, 0] = 1

    def test_shape_checked(self):
        with self.assertRaises(ValueError):
            ImageFrame(np.zeros((2, 2), dtype=np.uint8))

    def test_pixel_access(self):
        frame = quadrant_frame()
        self.assertEqual((frame.width, frame.height), (2, 2))
        self.assertEqual(frame.pixel(1, 0), (0, 255, 0))

    def test_image_round_trip(self):
        frame = ImageFrame.from_image(quadrant_frame().to_image())
        self.assertTrue(np.array_equal(frame.pixels, quadrant_frame().pixels))


class LoadImageTests(unittest.TestCase):
    def setUp(self):
        self.tmp = tempfile.TemporaryDirectory()
        self.addCleanup(self.tmp.cleanup)

    def test_load_png(self):
        path = os.path.join(self.tmp.name, "logo.png")
        Image.new("RGBA", (3, 2), (10, 20, 30, 255)).save(path)
        frame = load_image(path)
        self.assertEqual((frame.width, frame.height), (3, 2))
        self.assertEqual(frame.pixel(2, 1), (10, 20, 30))

    def test_not_an_image(self):
        path = os.path.join(self.tmp.name, "notes.png")
        with open(path, "wb") as handle:
            handle.write(b"definitely not a picture")
        with self.assertRaises(UnsupportedImageFormatError):
            load_image(path)

    def test_missing_file(self):
        with self.assertRaises(UnsupportedImageFormatError):
            load_image(os.path.join(self.tmp.name, "missing.png"))


class ScrollBufferTests(unittest.TestCase):
    def test_windows(self):
        buffer = ScrollBuffer(gradient_frame(3, 12), visible_rows=5)
        self.assertEqual(buffer.total_screens, 3)
        heights = [window.shape[0] for window in buffer]
        self.assertEqual(heights, [5, 5, 2])
        self.assertIsNone(buffer.next_window())
        buffer.rewind()
        self.assertEqual(buffer.next_window()[0, 0, 0], 0)
        self.assertEqual(buffer.next_window()[0, 0, 0], 50)

    def test_visible_rows_must_be_positive(self):
        with self.assertRaises(ValueError):
            ScrollBuffer(gradient_frame(1, 1), 0)


class ImageRendererTests(unittest.TestCase):
    def test_small_image_fills_width(self):
        renderer = ImageRenderer(quadrant_frame(), columns=10, visible_rows=24,
                                 image_config=ImageConfig())
        self.assertEqual((renderer.resized.width, renderer.resized.height), (10, 10))
        self.assertFalse(renderer.needs_scrolling)

        screens = list(renderer.screens())
        self.assertEqual(len(screens), 1)
        rows = screens[0].split(b"\n")[:-1]
        self.assertEqual(len(rows), 10)
        self.assertEqual(rows[0], b"\x1b[48;2;255;0;0m" + b" " * 5
                         + b"\x1b[48;2;0;255;0m" + b" " * 5 + b"\x1b[0m")
        self.assertEqual(rows[9], b"\x1b[48;2;0;0;255m" + b" " * 5
                         + b"\x1b[48;2;255;255;255m" + b" " * 5 + b"\x1b[0m")

    def test_tall_image_scrolls(self):
        renderer = ImageRenderer(gradient_frame(2, 6), columns=4, visible_rows=5,
                                 image_config=ImageConfig())
        self.assertEqual(renderer.resized.height, 12)
        self.assertTrue(renderer.needs_scrolling)
        self.assertEqual(renderer.total_screens, 3)
        screens = list(renderer.screens())
        self.assertEqual([screen.count(RESET_NEWLINE) for screen in screens], [5, 5, 2])

    def test_render_paces_between_screens(self):
        renderer = ImageRenderer(gradient_frame(2, 6), columns=4, visible_rows=5,
                                 image_config=ImageConfig())
        calls = []
        sink = BytesIO()
        renderer.render(sink, calls.append)
        self.assertEqual(calls, [1, 2])
        self.assertEqual(sink.getvalue(), b"".join(renderer.screens()))

    def test_basic_colors(self):
        renderer = ImageRenderer(quadrant_frame(), columns=2, visible_rows=24,
                                 image_config=ImageConfig(), rgb24=False)
        first_row = next(renderer.screens()).split(b"\n")[0]
        self.assertEqual(first_row, b"\x1b[41m \x1b[42m \x1b[0m")

    def test_empty_image(self):
        empty = ImageFrame(np.zeros((0, 4, 3), dtype=np.uint8))
        with self.assertRaises(EmptyImageError):
            ImageRenderer(empty, columns=10, visible_rows=10)
        with self.assertRaises(EmptyImageError):
            ImageColorizer(empty)


class ImageColorizerTests(unittest.TestCase):
    def test_tiles_the_image(self):
        colorizer = ImageColorizer(quadrant_frame())
        self.assertEqual(colorizer.color_at(RenderState(row=0, col=1)), (0, 255, 0))
        self.assertEqual(colorizer.color_at(RenderState(row=3, col=2)), (0, 0, 255))

    def test_lines_restart_at_first_column(self):
        colorizer = ImageColorizer(quadrant_frame())
        state = RenderState(row=0, col=5, phase=0.0)
        colorizer.next_line(state)
        self.assertEqual((state.row, state.col, state.phase), (1, 0, 0.0))


if __name__ == "__main__":
    unittest.main()
