#!/usr/bin/env python3
"""
🏳️‍🌈 flagcat - Color & Escape Module
====================================
Copyright (c) 2025 PNGN-Tec LLC

RGB Color Value and ANSI Escape Generation
===========================================
- Color: immutable, validated RGB triple (compares equal to plain tuples)
- Linear RGB interpolation with round-half-up channels
- 24-bit foreground/background escape sequences
- 8-color fallback for terminals without 24-bit support
- Color descriptor parsing through Pillow's ImageColor

Example Usage
=============
```python
from flagcat_color import Color, fg_escape, RESET

red = Color.from_hex("E40303")
print(fg_escape(red) + "hello" + RESET)
```
"""

import logging
import operator
from functools import lru_cache
from typing import Tuple, Union

from PIL import ImageColor

logger = logging.getLogger('flagcat.color')

# ============================================================================
# ANSI CODES
# ============================================================================

ESC = "\033"
RESET = "\033[0m"


class Color(tuple):
    """A single 24-bit RGB color; each channel is an int in [0, 255]."""

    __slots__ = ()

    def __new__(cls, r, g, b):
        channels = tuple(operator.index(ch) for ch in (r, g, b))
        for ch in channels:
            if not 0 <= ch <= 255:
                raise ValueError(f"Color channel out of range: {ch}")
        return super().__new__(cls, channels)

    def __getnewargs__(self):
        return tuple(self)

    def __repr__(self) -> str:
        return f"Color({self[0]}, {self[1]}, {self[2]})"

    @property
    def r(self) -> int:
        return self[0]

    @property
    def g(self) -> int:
        return self[1]

    @property
    def b(self) -> int:
        return self[2]

    @classmethod
    def from_hex(cls, value: Union[str, int]) -> "Color":
        """
        Build a color from ``0xRRGGBB`` or an ``RRGGBB`` string.

        Raises:
            ValueError: if the value is not a 6-digit hex color
        """
        if isinstance(value, int):
            if not 0 <= value <= 0xFFFFFF:
                raise ValueError(f"Hex color out of range: {value:#x}")
            return cls((value >> 16) & 0xFF, (value >> 8) & 0xFF, value & 0xFF)

        text = value.strip().lstrip('#')
        if len(text) != 6:
            raise ValueError(f"Color must have 6 hex digits: {value!r}")
        return cls.from_hex(int(text, 16))

    @classmethod
    def parse(cls, descriptor: str) -> "Color":
        """
        Parse a user color descriptor.

        Accepts ``RRGGBB`` with or without ``#`` and anything Pillow's
        ImageColor understands (``#rgb``, ``rgb(...)``, CSS names).

        Raises:
            ValueError: for unknown descriptors
        """
        text = descriptor.strip()
        if len(text) == 6 and all(c in '0123456789abcdefABCDEF' for c in text):
            return cls.from_hex(text)
        rgb = ImageColor.getrgb(text)
        return cls(*rgb[:3])

    @property
    def hex(self) -> str:
        return f"{self[0]:02X}{self[1]:02X}{self[2]:02X}"

    def __str__(self) -> str:
        return self.hex

    def interpolate(self, other: Tuple[int, int, int], t: float) -> "Color":
        """Linear blend toward ``other``; ``t`` is clamped to [0, 1]."""
        if t <= 0.0:
            return self
        if t >= 1.0:
            return Color(*other)
        return Color(*(int(a + (b - a) * t + 0.5) for a, b in zip(self, other)))

    def dist2(self, other: Tuple[int, int, int]) -> int:
        return sum((a - b) * (a - b) for a, b in zip(self, other))


# ============================================================================
# 8-COLOR FALLBACK
# ============================================================================

# Approximate RGB of the basic ANSI colors, indexed by SGR offset
BASIC_PALETTE = (
    (0, Color(0, 0, 0)),
    (1, Color(200, 0, 0)),
    (2, Color(0, 200, 0)),
    (3, Color(200, 200, 0)),
    (4, Color(0, 0, 200)),
    (5, Color(200, 0, 200)),
    (6, Color(0, 200, 200)),
    (7, Color(255, 255, 255)),
)


@lru_cache(maxsize=4096)
def nearest_basic_color(color: Color) -> int:
    """Index (0-7) of the closest basic ANSI color"""
    return min(BASIC_PALETTE, key=lambda entry: entry[1].dist2(color))[0]


# ============================================================================
# ESCAPE SEQUENCES
# ============================================================================

def fg_escape(color: Tuple[int, int, int], rgb24: bool = True) -> str:
    """Foreground color escape sequence"""
    r, g, b = color
    if rgb24:
        return f"\033[38;2;{r};{g};{b}m"
    return f"\033[{30 + nearest_basic_color(Color(r, g, b))}m"


def bg_escape(color: Tuple[int, int, int], rgb24: bool = True) -> str:
    """Background color escape sequence"""
    r, g, b = color
    if rgb24:
        return f"\033[48;2;{r};{g};{b}m"
    return f"\033[{40 + nearest_basic_color(Color(r, g, b))}m"
