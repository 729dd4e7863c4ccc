#!/usr/bin/env python3
"""
🏳️‍🌈 flagcat - Text Stream Renderer
===================================
Copyright (c) 2025 PNGN-Tec LLC

Streaming Text Colorizer
========================
Copies a byte stream to an output stream, wrapping every printable
cluster in the color sampled at its on-screen position. Everything
else (line terminators, control characters, invalid UTF-8, incoming
ANSI sequences) is copied unchanged, so stripping the color escapes
from the output gives back the input byte for byte.

Core Features
=============
- Single pass, bounded memory, flush per line for interactive pipes
- Redundant color escapes suppressed
- Cursor tracking through CR, tabs, wrapping and cursor escapes
- Pluggable color sources: flag pattern, image, or none
- Terminal always left in the default color, even on interrupt

Renderer States
===============
- AWAITING_CHAR: between elements
- IN_ESCAPE_PASSTHROUGH: forwarding an incoming escape sequence
- AT_LINE_END: handling a line terminator

Example Usage
=============
```python
import sys
from flagcat_pattern import preset_pattern, make_cyclic
from flagcat_terminal import create_renderer, FlagColorizer

colorizer = FlagColorizer(make_cyclic(preset_pattern("pride")))
renderer = create_renderer(colorizer)
renderer.render(sys.stdin.buffer, sys.stdout.buffer)
```
"""

import logging
import shutil
from contextlib import contextmanager
from enum import Enum
from io import BytesIO
from typing import Any, BinaryIO, Dict, Iterator, Optional, Union

from config import Orientation, StreamConfig, StripeConfig, get_stream_config, get_stripe_config
from flagcat_color import RESET, Color, bg_escape, fg_escape
from flagcat_pattern import Pattern, sample
from flagcat_stream import AnsiKind, ConsoleElement, ElementKind, classify_escape, iter_elements
from flagcat_stripes import RenderState, position_for
from flagcat_width import WidthCalculator, get_calculator

logger = logging.getLogger('flagcat.terminal')

RESET_BYTES = RESET.encode('ascii')


# ============================================================================
# RESET GUARD
# ============================================================================

class ColorGuard:
    """
    Output wrapper that remembers the active color.

    Escapes are written only when the requested color differs from the
    active one; ``reset()`` returns the terminal to its default colors.
    """

    def __init__(self, sink: BinaryIO):
        self.sink = sink
        self.active: Optional[Color] = None
        self.colored = False
        self.escapes_emitted = 0

    def write(self, data: bytes) -> None:
        self.sink.write(data)

    def write_text(self, text: str) -> None:
        self.sink.write(text.encode('utf-8'))

    def set_color(self, color: Color, rgb24: bool = True, background: bool = False) -> None:
        if color == self.active:
            return
        escape = bg_escape(color, rgb24) if background else fg_escape(color, rgb24)
        self.sink.write(escape.encode('ascii'))
        self.active = color
        self.colored = True
        self.escapes_emitted += 1

    def reapply(self, rgb24: bool = True, background: bool = False) -> None:
        """Re-emit the active color after the input reset the style"""
        color = self.active
        if color is not None:
            self.active = None
            self.set_color(color, rgb24, background)

    def invalidate(self) -> None:
        """Forget the active color; the next set_color() always emits"""
        self.active = None
        self.colored = True

    def settle(self) -> None:
        """Record that the output written so far ends in the default colors"""
        self.active = None
        self.colored = False

    def reset(self, best_effort: bool = False) -> None:
        """
        Emit the reset sequence if any color was set, then flush.

        Args:
            best_effort: Log and suppress I/O errors instead of raising
        """
        try:
            if self.colored:
                self.sink.write(RESET_BYTES)
            self.sink.flush()
        except (OSError, ValueError) as e:
            if not best_effort:
                raise
            logger.warning(f"Could not reset terminal colors: {e}")
        finally:
            self.active = None
            self.colored = False


@contextmanager
def colored_output(sink: BinaryIO) -> Iterator[ColorGuard]:
    """
    Scope in which colors may be written to ``sink``.

    The default colors are restored on every exit path. While another
    exception is propagating a failing reset is only logged.
    """
    guard = ColorGuard(sink)
    try:
        yield guard
    except BaseException:
        guard.reset(best_effort=True)
        raise
    else:
        guard.reset()


# ============================================================================
# COLOR SOURCES
# ============================================================================

class PositionalColorizer:
    """Base class for color sources keyed on the cursor position"""

    def color_at(self, state: RenderState) -> Color:
        raise NotImplementedError

    def next_line(self, state: RenderState) -> None:
        """Update ``state`` after a line terminator"""
        state.advance_line(Orientation.HORIZONTAL, 0.0)


class FlagColorizer(PositionalColorizer):
    """Colors cells by sampling a flag pattern along the stripe geometry"""

    def __init__(self, pattern: Pattern, stripes: Optional[StripeConfig] = None):
        self.pattern = pattern
        self.stripes = stripes or get_stripe_config()
        logger.debug(f"FlagColorizer for {pattern.name!r} "
                     f"({self.stripes.orientation.value}, speed={self.stripes.speed})")

    def color_at(self, state: RenderState) -> Color:
        position = position_for(state.row, state.col, self.stripes.orientation,
                                self.stripes.speed, state.phase)
        return sample(self.pattern, position)

    def next_line(self, state: RenderState) -> None:
        state.advance_line(self.stripes.orientation, self.stripes.phase_step,
                           self.stripes.carry_columns)


class NoopColorizer(PositionalColorizer):
    """Plain copy without any coloring"""

    def color_at(self, state: RenderState) -> Color:
        raise TypeError("NoopColorizer does not produce colors")


# ============================================================================
# TEXT STREAM RENDERER
# ============================================================================

class RendererState(Enum):
    AWAITING_CHAR = "awaiting_char"
    IN_ESCAPE_PASSTHROUGH = "in_escape_passthrough"
    AT_LINE_END = "at_line_end"


class TextStreamRenderer:
    """
    Colorizes a text stream cluster by cluster.

    The cursor position carries over between render() calls, so several
    inputs rendered in turn continue the same stripes. Call reset() to
    start again from the top-left corner.
    """

    def __init__(self, colorizer: PositionalColorizer,
                 stream_config: Optional[StreamConfig] = None,
                 wrap_columns: Optional[int] = None,
                 width_calculator: Optional[WidthCalculator] = None):
        """
        Initialize renderer.

        Args:
            colorizer: Source of cell colors
            stream_config: Tab size, chunking and escape handling
            wrap_columns: Terminal width at which the cursor wraps
                (None disables wrap tracking)
            width_calculator: Cluster width lookups
        """
        self.colorizer = colorizer
        self.config = stream_config or get_stream_config()
        self.wrap_columns = wrap_columns if wrap_columns and wrap_columns > 0 else None
        self.widths = width_calculator or get_calculator()

        self.state = RendererState.AWAITING_CHAR
        self.position = RenderState()

        self.stats = {
            'clusters_colored': 0,
            'escapes_emitted': 0,
            'raw_bytes': 0,
            'lines_processed': 0,
            'input_escapes': 0,
            'renders_completed': 0,
        }

        logger.info(f"TextStreamRenderer initialized: colorizer={type(colorizer).__name__}, "
                    f"wrap_columns={self.wrap_columns}, rgb24={self.config.rgb24}")

    def reset(self) -> None:
        self.position.reset()
        self.state = RendererState.AWAITING_CHAR

    def render(self, source: BinaryIO, sink: BinaryIO) -> None:
        """
        Colorize ``source`` into ``sink`` until end of input.

        Raises:
            InputError: if reading the source fails
            OSError: if writing the sink fails
        """
        if isinstance(self.colorizer, NoopColorizer):
            shutil.copyfileobj(source, sink)
            sink.flush()
            self.stats['renders_completed'] += 1
            return

        with colored_output(sink) as out:
            try:
                for element in iter_elements(source, self.config.chunk_size):
                    self._handle(element, out)
            finally:
                self.stats['escapes_emitted'] += out.escapes_emitted
                out.escapes_emitted = 0
                self.state = RendererState.AWAITING_CHAR

        self.stats['renders_completed'] += 1
        logger.debug(f"Render pass finished at row={self.position.row}, col={self.position.col}")

    def render_bytes(self, data: Union[bytes, str]) -> bytes:
        """Colorize an in-memory buffer and return the output"""
        if isinstance(data, str):
            data = data.encode('utf-8')
        sink = BytesIO()
        self.render(BytesIO(data), sink)
        return sink.getvalue()

    def _handle(self, element: ConsoleElement, out: ColorGuard) -> None:
        kind = element.kind
        pos = self.position

        if kind is ElementKind.GRAPHEME:
            out.set_color(self.colorizer.color_at(pos), self.config.rgb24)
            out.write_text(element.text)
            pos.advance_columns(self.widths.get_width(element.text), self.wrap_columns)
            self.stats['clusters_colored'] += 1

        elif kind is ElementKind.NEWLINE:
            self.state = RendererState.AT_LINE_END
            out.write_text(element.text)
            self.colorizer.next_line(pos)
            self.stats['lines_processed'] += 1
            if self.config.flush_on_newline:
                out.sink.flush()
            self.state = RendererState.AWAITING_CHAR

        elif kind is ElementKind.CARRIAGE_RETURN:
            out.write_text(element.text)
            pos.col = 0

        elif kind is ElementKind.TAB:
            out.write_text(element.text)
            tab = self.config.tab_size
            pos.col = (pos.col // tab + 1) * tab
            if self.wrap_columns and pos.col >= self.wrap_columns:
                pos.col = self.wrap_columns - 1

        elif kind is ElementKind.ESCAPE:
            self.state = RendererState.IN_ESCAPE_PASSTHROUGH
            self._passthrough_escape(element.text, out)
            self.state = RendererState.AWAITING_CHAR

        elif kind is ElementKind.RAW:
            out.write(element.raw)
            self.stats['raw_bytes'] += len(element.raw)

        else:
            out.write_text(element.text)

    def _passthrough_escape(self, sequence: str, out: ColorGuard) -> None:
        code = classify_escape(sequence)
        self.stats['input_escapes'] += 1

        keep_foreground = code.foreground and not self.config.strip_input_colors
        if code.foreground and not keep_foreground:
            sequence = code.without_foreground
        if sequence:
            out.write_text(sequence)

        if keep_foreground:
            out.invalidate()
        elif code.resets:
            out.reapply(self.config.rgb24)
        elif code.kind in (AnsiKind.MOVE_CURSOR, AnsiKind.SET_CURSOR):
            pos = self.position
            if code.col is not None:
                pos.col = code.col
            if code.row is not None:
                pos.row = code.row
            pos.col = max(pos.col + code.dcol, 0)
            pos.row = max(pos.row + code.drow, 0)

    def get_stats(self) -> Dict[str, Any]:
        """Get render statistics"""
        stats = self.stats.copy()
        stats['row'] = self.position.row
        stats['col'] = self.position.col
        stats['phase'] = self.position.phase
        stats['width_cache'] = self.widths.get_stats()
        return stats


# ============================================================================
# FACTORY FUNCTION
# ============================================================================

def create_renderer(colorizer: PositionalColorizer,
                    stream_config: Optional[StreamConfig] = None,
                    wrap_columns: Optional[int] = None) -> TextStreamRenderer:
    """Factory function for renderer creation"""
    return TextStreamRenderer(colorizer, stream_config, wrap_columns)
