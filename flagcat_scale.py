#!/usr/bin/env python3
"""
🏳️‍🌈 flagcat - Image Scaling Module
===================================
Copyright (c) 2025 PNGN-Tec LLC

Terminal Image Fitting
======================
Computes the cell dimensions an image is shown at and resizes it with
Pillow. One pixel of the result becomes one terminal cell.

Core Features:
- Aspect-preserving fit to the terminal width, an explicit width,
  an explicit height, or both
- Cell aspect correction for non-square terminal cells
- Selectable resampling (nearest, box, bilinear, lanczos)
- Scale statistics per algorithm

Module Interface:
- fit_dimensions(): source size -> target size
- ScalingContext: source and target dimensions plus algorithm
- ImageScaler: performs and counts resize operations
- scale_image(): simple function interface
"""

import time
import threading
import logging
from typing import Dict, Tuple, Optional, Any
from dataclasses import dataclass

from PIL import Image

from config import ScalingAlgorithm, get_image_config
from flagcat_errors import EmptyImageError

# Configure logging
logger = logging.getLogger('flagcat.scale')

# PIL algorithm mapping
ALGORITHM_MAP = {
    ScalingAlgorithm.NEAREST: Image.Resampling.NEAREST,
    ScalingAlgorithm.BOX: Image.Resampling.BOX,
    ScalingAlgorithm.BILINEAR: Image.Resampling.BILINEAR,
    ScalingAlgorithm.LANCZOS: Image.Resampling.LANCZOS,
}


def _round_half_up(value: float) -> int:
    return int(value + 0.5)


def fit_dimensions(src_width: int, src_height: int, columns: int,
                   height: Optional[int] = None,
                   width: Optional[int] = None,
                   cell_aspect_ratio: float = 1.0) -> Tuple[int, int]:
    """
    Target size for showing an image in a terminal.

    The width target is ``width`` capped at ``columns`` (or ``columns``
    when no width is given). With an explicit ``height`` the image is
    scaled to fit inside both targets, otherwise to the width target.

    Args:
        src_width: Source width in pixels
        src_height: Source height in pixels
        columns: Terminal width in cells
        height: Requested height in cells
        width: Requested width in cells
        cell_aspect_ratio: Multiplier applied to the derived height

    Returns:
        (width, height) in cells, each at least 1

    Raises:
        EmptyImageError: if the source has no pixels
        ValueError: for non-positive targets
    """
    if src_width <= 0 or src_height <= 0:
        raise EmptyImageError(f"Image has no pixels ({src_width}x{src_height})")
    if columns <= 0:
        raise ValueError(f"Terminal width must be positive, got {columns}")
    if height is not None and height <= 0:
        raise ValueError(f"Image height must be positive, got {height}")
    if width is not None and width <= 0:
        raise ValueError(f"Image width must be positive, got {width}")
    if cell_aspect_ratio <= 0:
        raise ValueError(f"Cell aspect ratio must be positive, got {cell_aspect_ratio}")

    width_target = min(width, columns) if width is not None else columns

    scale = width_target / src_width
    if height is not None:
        scale = min(scale, height / src_height)

    target_width = max(1, _round_half_up(src_width * scale))
    target_height = max(1, _round_half_up(src_height * scale * cell_aspect_ratio))

    logger.debug(f"Fit {src_width}x{src_height} into {columns} columns "
                 f"(width={width}, height={height}) -> {target_width}x{target_height}")
    return target_width, target_height


@dataclass
class ScalingContext:
    """
    Context for image scaling operations.

    Defines source and target dimensions and the resampling algorithm.
    """
    # Source dimensions
    source_width: int
    source_height: int

    # Target dimensions (terminal cells)
    target_width: int
    target_height: int

    algorithm: ScalingAlgorithm = ScalingAlgorithm.NEAREST

    @property
    def needs_scaling(self) -> bool:
        """Check if scaling is needed"""
        return (self.source_width != self.target_width or
                self.source_height != self.target_height)

    @classmethod
    def fit(cls, image: Image.Image, columns: int,
            height: Optional[int] = None,
            width: Optional[int] = None,
            algorithm: Optional[ScalingAlgorithm] = None,
            cell_aspect_ratio: Optional[float] = None) -> "ScalingContext":
        """Context that fits ``image`` to the terminal using fit_dimensions()"""
        image_config = get_image_config()
        if algorithm is None:
            algorithm = image_config.algorithm
        if cell_aspect_ratio is None:
            cell_aspect_ratio = image_config.cell_aspect_ratio

        target_width, target_height = fit_dimensions(
            image.width, image.height, columns, height, width, cell_aspect_ratio)
        return cls(image.width, image.height, target_width, target_height, algorithm)


class ImageScaler:
    """
    Image scaler with usage statistics.

    Resizing is deterministic: the same image, size and algorithm
    always give the same pixels.
    """

    def __init__(self):
        self._stats_lock = threading.Lock()

        # Statistics
        self.stats = {
            'scale_operations': 0,
            'passthrough_operations': 0,
            'total_scale_time_ms': 0.0,
            'algorithm_usage': {algorithm: 0 for algorithm in ScalingAlgorithm},
        }

        logger.debug("ImageScaler initialized")

    def scale_image(self, image: Image.Image, context: ScalingContext) -> Image.Image:
        """
        Scale image according to context.

        Args:
            image: Source PIL Image
            context: Scaling context with parameters

        Returns:
            Scaled PIL Image (the source itself if no scaling is needed)
        """
        if not context.needs_scaling:
            with self._stats_lock:
                self.stats['passthrough_operations'] += 1
            return image

        start_time = time.perf_counter()
        scaled = image.resize((context.target_width, context.target_height),
                              ALGORITHM_MAP[context.algorithm])
        scale_time = (time.perf_counter() - start_time) * 1000

        with self._stats_lock:
            self.stats['scale_operations'] += 1
            self.stats['total_scale_time_ms'] += scale_time
            self.stats['algorithm_usage'][context.algorithm] += 1

        logger.debug(f"Scaled {context.source_width}x{context.source_height} -> "
                     f"{context.target_width}x{context.target_height} "
                     f"with {context.algorithm.value} in {scale_time:.1f}ms")
        return scaled

    def get_statistics(self) -> Dict[str, Any]:
        """
        Get scaler statistics.

        Returns:
            Dictionary of statistics and metrics
        """
        with self._stats_lock:
            stats = self.stats.copy()
            stats['algorithm_usage'] = {
                algorithm.value: count
                for algorithm, count in self.stats['algorithm_usage'].items()
            }

        if stats['scale_operations'] > 0:
            stats['avg_scale_time_ms'] = (
                stats['total_scale_time_ms'] / stats['scale_operations']
            )
        else:
            stats['avg_scale_time_ms'] = 0.0

        return stats


# Convenience functions

_default_scaler = None
_scaler_lock = threading.Lock()

def get_scaler() -> ImageScaler:
    """Get or create default scaler"""
    global _default_scaler

    if _default_scaler is None:
        with _scaler_lock:
            if _default_scaler is None:
                _default_scaler = ImageScaler()

    return _default_scaler

def scale_image(image: Image.Image, context: ScalingContext) -> Image.Image:
    """
    Scale image using default scaler.

    Args:
        image: Source image
        context: Scaling context

    Returns:
        Scaled image
    """
    return get_scaler().scale_image(image, context)
