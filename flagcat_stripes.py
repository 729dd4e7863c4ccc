#!/usr/bin/env python3
"""
🏳️‍🌈 flagcat - Stripe Position Module
=====================================
Copyright (c) 2025 PNGN-Tec LLC

Maps an output cell ``(row, col)`` to the continuous gradient position
fed to the sampler. The animation phase is explicit state carried in
RenderState and passed in as a parameter, so the mapping itself is a
pure function.

Formulas
========
- horizontal: ``col * speed + phase``
- vertical:   ``row * speed + phase``
- diagonal:   ``(row + col) * speed + phase``

Positions are not wrapped here; sample() reduces them modulo 1.0.
"""

import logging
from dataclasses import dataclass

from config import Orientation

logger = logging.getLogger('flagcat.stripes')


def position_for(row: int, col: int, orientation: Orientation,
                 speed: float, phase: float = 0.0) -> float:
    """Continuous gradient position of the cell at ``(row, col)``"""
    if orientation is Orientation.HORIZONTAL:
        return col * speed + phase
    if orientation is Orientation.VERTICAL:
        return row * speed + phase
    if orientation is Orientation.DIAGONAL:
        return (row + col) * speed + phase
    raise ValueError(f"Unknown orientation: {orientation!r}")


@dataclass
class RenderState:
    """
    Per-pass cursor and phase.

    Owned by exactly one renderer. Python ints never overflow, and the
    phase only ever reaches the sampler through a modulo, so counters
    can grow without bound on endless input.
    """
    row: int = 0
    col: int = 0
    phase: float = 0.0

    def advance_line(self, orientation: Orientation, phase_step: float,
                     carry_columns: bool = False) -> None:
        """Move to the next line after a line terminator"""
        self.row += 1
        if orientation is Orientation.HORIZONTAL or not carry_columns:
            self.col = 0
        if orientation is not Orientation.HORIZONTAL:
            self.phase += phase_step

    def advance_columns(self, width: int, wrap_columns=None) -> None:
        """Advance past a cell ``width`` columns wide, wrapping at ``wrap_columns``"""
        self.col += width
        if wrap_columns:
            while self.col >= wrap_columns:
                self.col -= wrap_columns
                self.row += 1

    def reset(self) -> None:
        self.row = 0
        self.col = 0
        self.phase = 0.0
