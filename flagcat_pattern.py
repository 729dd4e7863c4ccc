#!/usr/bin/env python3
"""
🏳️‍🌈 flagcat - Pattern & Gradient Module
========================================
Copyright (c) 2025 PNGN-Tec LLC

Flag Pattern Model and Gradient Sampling
=========================================
A Pattern is an ordered, non-empty list of color stops with relative
widths. Patterns are normalized once (weights rescaled to sum to 1,
cumulative boundaries computed) and are immutable afterwards.

Core Features
=============
- normalize(): validate stops and compute boundaries
- mirror(): forward-then-backward playback (palindromic)
- make_cyclic(): last stop blends back into the first
- parse_custom(): user stop descriptors -> Pattern
- preset_pattern(): catalog name or alias -> Pattern
- sample(): color at any real position, wrapping modulo 1.0

Sampling
========
Stop ``i`` owns the band ``[b_i, b_i+1)`` and blends from its own color
toward stop ``i+1``. The final stop has no successor and is held solid,
so ``sample(p, 1 - eps)`` is the last stop's color. A deadzone ``d``
keeps the first ``d`` of every band solid before the blend starts.
The bracketing band is found with a binary search over the boundaries.
"""

import bisect
import logging
import math
from dataclasses import dataclass, replace
from typing import Iterable, Sequence, Tuple, Union

from config import flag_by_name
from flagcat_color import Color
from flagcat_errors import InvalidPatternError

logger = logging.getLogger('flagcat.pattern')


@dataclass(frozen=True)
class ColorStop:
    """One stripe: a color and its relative width"""
    color: Color
    weight: float = 1.0


@dataclass(frozen=True)
class Pattern:
    """
    Normalized, immutable flag pattern.

    Build with normalize(), mirror(), make_cyclic(), parse_custom() or
    preset_pattern(); never construct directly.

    Attributes:
        stops: Stops with weights rescaled to sum to 1
        boundaries: ``len(stops) + 1`` cumulative offsets from 0.0 to 1.0
        cyclic: Last stop blends into a closing copy of the first
        mirrored: Playback runs forward then backward
        deadzone: Solid leading fraction of each band
        name: Display name
    """
    stops: Tuple[ColorStop, ...]
    boundaries: Tuple[float, ...]
    cyclic: bool = False
    mirrored: bool = False
    deadzone: float = 0.0
    name: str = "custom"

    @property
    def colors(self) -> Tuple[Color, ...]:
        return tuple(stop.color for stop in self.stops)

    @property
    def sequence(self) -> Tuple[ColorStop, ...]:
        """Stops in playback order (doubled for mirrored patterns)"""
        if self.mirrored:
            return self.stops + tuple(reversed(self.stops))
        return self.stops


StopLike = Union[ColorStop, Color, Tuple[int, int, int]]


def _as_stop(item: StopLike) -> ColorStop:
    if isinstance(item, ColorStop):
        return item
    return ColorStop(Color(*item))


# ============================================================================
# CONSTRUCTION
# ============================================================================

def normalize(stops: Union["Pattern", Iterable[StopLike]], *,
              cyclic: bool = False,
              mirrored: bool = False,
              deadzone: float = 0.0,
              name: str = "custom") -> Pattern:
    """
    Rescale stop weights to sum to 1 and compute cumulative boundaries.

    Args:
        stops: Stops (or bare colors, weight 1) or an existing Pattern
        cyclic: Mark the pattern as already wrapped
        mirrored: Mark the pattern for forward/backward playback
        deadzone: Solid leading fraction of each band, in [0, 1)
        name: Display name

    Returns:
        Normalized Pattern

    Raises:
        InvalidPatternError: no stops, a non-positive weight or a
            deadzone outside [0, 1)
    """
    if isinstance(stops, Pattern):
        return normalize(stops.stops, cyclic=stops.cyclic, mirrored=stops.mirrored,
                         deadzone=stops.deadzone, name=stops.name)

    stop_list = [_as_stop(item) for item in stops]
    if not stop_list:
        raise InvalidPatternError("Pattern must contain at least one color")

    for stop in stop_list:
        if not (math.isfinite(stop.weight) and stop.weight > 0):
            raise InvalidPatternError(
                f"Stop weights must be positive numbers, got {stop.weight!r}",
                {'color': stop.color.hex})

    if not (math.isfinite(deadzone) and 0.0 <= deadzone < 1.0):
        raise InvalidPatternError(f"Deadzone must be in [0, 1), got {deadzone!r}")

    total = math.fsum(stop.weight for stop in stop_list)
    normalized = tuple(ColorStop(stop.color, stop.weight / total) for stop in stop_list)

    boundaries = [0.0]
    running = 0.0
    for stop in stop_list[:-1]:
        running += stop.weight
        boundaries.append(min(running / total, 1.0))
    boundaries.append(1.0)

    return Pattern(
        stops=normalized,
        boundaries=tuple(boundaries),
        cyclic=cyclic,
        mirrored=mirrored,
        deadzone=deadzone,
        name=name,
    )


def mirror(pattern: Pattern) -> Pattern:
    """Play the pattern forward then backward; a seamless loop of double length"""
    if pattern.mirrored:
        return pattern
    return replace(pattern, mirrored=True)


def make_cyclic(pattern: Pattern) -> Pattern:
    """
    Wrap the pattern so the last stop blends back into the first.

    The first stop's width is split between the opening stop and a
    closing copy appended at the end, so every stripe keeps its width
    and the loop has no seam.
    """
    if pattern.cyclic:
        return pattern

    first = pattern.stops[0]
    half = ColorStop(first.color, first.weight / 2)
    wrapped = (half,) + pattern.stops[1:] + (half,)
    return normalize(wrapped, cyclic=True, mirrored=pattern.mirrored,
                     deadzone=pattern.deadzone, name=pattern.name)


def with_deadzone(pattern: Pattern, deadzone: float) -> Pattern:
    """Copy of the pattern with a different deadzone"""
    if not (math.isfinite(deadzone) and 0.0 <= deadzone < 1.0):
        raise InvalidPatternError(f"Deadzone must be in [0, 1), got {deadzone!r}")
    return replace(pattern, deadzone=deadzone)


# ============================================================================
# PARSING
# ============================================================================

def _parse_descriptor(descriptor: str) -> ColorStop:
    text = descriptor.strip()
    if not text:
        raise InvalidPatternError("Empty color in custom pattern")

    color_part, sep, weight_part = text.partition(':')
    try:
        color = Color.parse(color_part)
    except ValueError:
        raise InvalidPatternError(f"Unknown color {color_part!r}") from None

    weight = 1.0
    if sep:
        try:
            weight = float(weight_part)
        except ValueError:
            raise InvalidPatternError(f"Invalid weight {weight_part!r} for {color_part!r}") from None

    return ColorStop(color, weight)


def parse_custom(descriptors: Union[str, Sequence[str]], *,
                 deadzone: float = 0.0,
                 name: str = "custom") -> Pattern:
    """
    Parse user stop descriptors into a Pattern.

    Each descriptor is ``COLOR[:WEIGHT]``; a single string is split on
    commas. Example: ``"E40303:2,FFED00,#24408E"``.

    Raises:
        InvalidPatternError: empty list, unknown color or bad weight
    """
    if isinstance(descriptors, str):
        descriptors = descriptors.split(',') if descriptors.strip() else []

    stops = [_parse_descriptor(item) for item in descriptors]
    pattern = normalize(stops, deadzone=deadzone, name=name)
    logger.debug(f"Parsed custom pattern with {len(pattern.stops)} stops")
    return pattern


def preset_pattern(name: str, *, deadzone: float = 0.0) -> Pattern:
    """
    Resolve a preset name or alias into a Pattern.

    Raises:
        InvalidPatternError: unknown preset name
    """
    preset = flag_by_name(name)
    if preset is None:
        raise InvalidPatternError(
            f"Invalid preset name {name}! - Use --presets to list all available flag presets")
    stops = [ColorStop(Color.from_hex(value)) for value in preset['stripes']]
    return normalize(stops, deadzone=deadzone, name=preset['name'])


# ============================================================================
# SAMPLING
# ============================================================================

def sample(pattern: Pattern, position: float) -> Color:
    """
    Color of the pattern at ``position``.

    The position always wraps modulo 1.0, so unbounded streams never
    run off the end. Mirrored patterns fold the wrapped position so
    ``sample(p, t) == sample(p, 1 - t)``.
    """
    t = position % 1.0
    if pattern.mirrored:
        t = 2.0 * t if t < 0.5 else 2.0 - 2.0 * t

    stops = pattern.stops
    boundaries = pattern.boundaries
    last = len(stops) - 1

    i = bisect.bisect_right(boundaries, t) - 1
    i = min(max(i, 0), last)

    if i == last:
        return stops[last].color

    start = boundaries[i]
    end = boundaries[i + 1]
    if end <= start:
        return stops[i].color

    local = (t - start) / (end - start)
    if pattern.deadzone:
        local = (local - pattern.deadzone) / (1.0 - pattern.deadzone)
    return stops[i].color.interpolate(stops[i + 1].color, local)
