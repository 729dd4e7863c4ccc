#!/usr/bin/env python3
"""
🏳️‍🌈 flagcat - Image Renderer
=============================
Copyright (c) 2025 PNGN-Tec LLC

Images as Terminal Cells
========================
Shows a picture as a grid of background-colored spaces, one cell per
pixel of the resized image, and lets an image act as the color source
for ordinary text.

Pipeline
========
1. load_image(): decode with Pillow into an RGB ImageFrame
2. fit_dimensions() + ImageScaler: resize to terminal cells
3. ScrollBuffer: split images taller than the terminal into screens
4. Cell emission: background escape on color change, reset and
   newline at the end of each row

Pacing between screens is left to the caller.
"""

import logging
import math
from io import BytesIO
from pathlib import Path
from typing import BinaryIO, Callable, Iterator, Optional, Union

import numpy as np
from PIL import Image, UnidentifiedImageError

from config import ImageConfig, get_image_config
from flagcat_color import Color
from flagcat_errors import EmptyImageError, UnsupportedImageFormatError
from flagcat_scale import ScalingContext, get_scaler
from flagcat_stripes import RenderState
from flagcat_terminal import ColorGuard, PositionalColorizer, colored_output

logger = logging.getLogger('flagcat.image')


# ============================================================================
# IMAGE FRAME
# ============================================================================

class ImageFrame:
    """
    Immutable RGB pixel grid.

    Pixels are held in a read-only ``(height, width, 3)`` uint8 array.
    """

    def __init__(self, pixels: np.ndarray):
        array = np.array(pixels, dtype=np.uint8, copy=True)
        if array.ndim != 3 or array.shape[2] != 3:
            raise ValueError(f"Expected a (height, width, 3) array, got shape {array.shape}")
        array.setflags(write=False)
        self.pixels = array

    @classmethod
    def from_image(cls, image: Image.Image) -> "ImageFrame":
        if image.width == 0 or image.height == 0:
            return cls(np.zeros((image.height, image.width, 3), dtype=np.uint8))
        return cls(np.asarray(image.convert('RGB'), dtype=np.uint8))

    def to_image(self) -> Image.Image:
        return Image.fromarray(self.pixels.copy())

    @property
    def width(self) -> int:
        return self.pixels.shape[1]

    @property
    def height(self) -> int:
        return self.pixels.shape[0]

    @property
    def is_empty(self) -> bool:
        return self.width == 0 or self.height == 0

    def pixel(self, x: int, y: int) -> Color:
        r, g, b = self.pixels[y, x]
        return Color(int(r), int(g), int(b))

    def require_pixels(self) -> None:
        """
        Raises:
            EmptyImageError: if the frame has a zero dimension
        """
        if self.is_empty:
            raise EmptyImageError(f"Image has no pixels ({self.width}x{self.height})")

    def __repr__(self) -> str:
        return f"ImageFrame({self.width}x{self.height})"


def load_image(path: Union[str, Path]) -> ImageFrame:
    """
    Decode an image file into an RGB frame.

    Raises:
        UnsupportedImageFormatError: if the file cannot be read or
            decoded
    """
    try:
        with Image.open(path) as image:
            image.load()
            frame = ImageFrame.from_image(image)
    except (UnidentifiedImageError, OSError, ValueError) as e:
        raise UnsupportedImageFormatError(f"Cannot read image {str(path)!r}: {e}") from e

    logger.info(f"Loaded image {path} ({frame.width}x{frame.height})")
    return frame


def resize_frame(frame: ImageFrame, columns: int,
                 height: Optional[int] = None,
                 width: Optional[int] = None,
                 image_config: Optional[ImageConfig] = None) -> ImageFrame:
    """
    Resize a frame to terminal cells with fit_dimensions().

    Raises:
        EmptyImageError: if the frame has a zero dimension
    """
    frame.require_pixels()
    image_config = image_config or get_image_config()

    image = frame.to_image()
    context = ScalingContext.fit(image, columns, height, width,
                                 image_config.algorithm, image_config.cell_aspect_ratio)
    return ImageFrame.from_image(get_scaler().scale_image(image, context))


# ============================================================================
# TEXT COLORED BY AN IMAGE
# ============================================================================

class ImageColorizer(PositionalColorizer):
    """Colors each text cell with the pixel under it, tiling the image"""

    def __init__(self, frame: ImageFrame):
        frame.require_pixels()
        self.frame = frame
        logger.debug(f"ImageColorizer over {frame!r}")

    def color_at(self, state: RenderState) -> Color:
        return self.frame.pixel(state.col % self.frame.width, state.row % self.frame.height)


# ============================================================================
# SCROLLING
# ============================================================================

class ScrollBuffer:
    """
    Pages a frame taller than the terminal out one screen at a time.

    Every window is ``visible_rows`` rows high except possibly the last.
    """

    def __init__(self, frame: ImageFrame, visible_rows: int):
        if visible_rows <= 0:
            raise ValueError(f"Visible rows must be positive, got {visible_rows}")
        self.frame = frame
        self.visible_rows = visible_rows
        self.cursor = 0

    @property
    def total_screens(self) -> int:
        return math.ceil(self.frame.height / self.visible_rows)

    def has_next(self) -> bool:
        return self.cursor < self.frame.height

    def next_window(self) -> Optional[np.ndarray]:
        """Rows of the next screen, or None once the frame is exhausted"""
        if not self.has_next():
            return None
        window = self.frame.pixels[self.cursor:self.cursor + self.visible_rows]
        self.cursor += self.visible_rows
        return window

    def rewind(self) -> None:
        self.cursor = 0

    def __iter__(self) -> Iterator[np.ndarray]:
        while True:
            window = self.next_window()
            if window is None:
                return
            yield window


# ============================================================================
# IMAGE RENDERER
# ============================================================================

class ImageRenderer:
    """
    Renders a frame as background-colored cells.

    Args:
        frame: Decoded source image
        columns: Terminal width in cells
        visible_rows: Terminal height in rows
        height: Explicit image height in cells
        width: Explicit image width in cells
        image_config: Resampling and cell aspect settings
        rgb24: Emit 24-bit escapes instead of the basic colors

    Raises:
        EmptyImageError: if the frame has a zero dimension
    """

    def __init__(self, frame: ImageFrame, columns: int, visible_rows: int,
                 height: Optional[int] = None,
                 width: Optional[int] = None,
                 image_config: Optional[ImageConfig] = None,
                 rgb24: bool = True):
        self.source = frame
        self.visible_rows = visible_rows
        self.rgb24 = rgb24
        self.resized = resize_frame(frame, columns, height, width, image_config)

        logger.info(f"ImageRenderer: {frame.width}x{frame.height} -> "
                    f"{self.resized.width}x{self.resized.height} cells, "
                    f"{self.total_screens} screen(s)")

    @property
    def needs_scrolling(self) -> bool:
        return self.resized.height > self.visible_rows

    @property
    def total_screens(self) -> int:
        if not self.needs_scrolling:
            return 1
        return ScrollBuffer(self.resized, self.visible_rows).total_screens

    def encode_rows(self, rows: np.ndarray) -> bytes:
        """One background-colored space per pixel, reset and newline per row"""
        sink = BytesIO()
        out = ColorGuard(sink)
        for row in rows:
            for r, g, b in row:
                out.set_color(Color(int(r), int(g), int(b)), self.rgb24, background=True)
                sink.write(b' ')
            out.reset()
            sink.write(b'\n')
        return sink.getvalue()

    def screens(self) -> Iterator[bytes]:
        """Encoded screens in display order"""
        if not self.needs_scrolling:
            yield self.encode_rows(self.resized.pixels)
            return

        for window in ScrollBuffer(self.resized, self.visible_rows):
            yield self.encode_rows(window)

    def render(self, sink: BinaryIO,
               between_screens: Optional[Callable[[int], None]] = None) -> None:
        """
        Write every screen to ``sink``.

        Args:
            sink: Binary output stream
            between_screens: Called with the index of the next screen
                before every screen but the first
        """
        with colored_output(sink) as out:
            for index, screen in enumerate(self.screens()):
                if index and between_screens is not None:
                    between_screens(index)
                out.invalidate()
                out.write(screen)
                out.sink.flush()
                out.settle()
