#!/usr/bin/env python3
"""
🏳️‍🌈 flagcat - Configuration Module
===================================
Copyright (c) 2025 PNGN-Tec LLC

Centralized Configuration System
=================================
Complete configuration for the colorizing cat including:
- Terminal fallback dimensions and stream settings
- Stripe orientation, speed, phase and deadzone defaults
- Image resizing configuration
- Built-in flag preset catalog
- Environment variable overrides

Configuration Overview
======================
This module provides all constants and settings the renderers need,
plus the read-only preset table the CLI resolves ``--flag`` names
against. Nothing here touches the terminal or the file system.

Preset Catalog
==============
Presets are stored as an immutable mapping of lowercase key to
``{'name', 'aliases', 'stripes'}``. Stripes are 24-bit hex codes in
flag order (top to bottom). The catalog is built once at import and
never mutated, so lookups need no locking.
"""

import threading
import logging
import math
import os
from types import MappingProxyType
from typing import Dict, Any, Optional, Iterator
from dataclasses import dataclass, field
from enum import Enum

# Configure logging
logger = logging.getLogger('flagcat.config')

# ============================================================================
# TERMINAL DIMENSIONS
# ============================================================================

DEFAULT_TERMINAL_COLUMNS = 80   # Used when no terminal can be queried
DEFAULT_TERMINAL_ROWS = 24

# ============================================================================
# STREAM SETTINGS
# ============================================================================

TAB_SIZE = 8
READ_CHUNK_SIZE = 4096

# ============================================================================
# STRIPE DEFAULTS
# ============================================================================

DEFAULT_SPEED = 0.02        # Gradient cycles per column/row
DEFAULT_PHASE_STEP = 0.01   # Phase added per line (vertical/diagonal)
DEFAULT_DEADZONE = 0.6      # Solid fraction of each stripe before blending

# ============================================================================
# CONFIGURATION ENUMS
# ============================================================================

class Orientation(Enum):
    """Axis along which the gradient varies"""
    HORIZONTAL = "horizontal"
    VERTICAL = "vertical"
    DIAGONAL = "diagonal"


class ScalingAlgorithm(Enum):
    """Image scaling algorithms"""
    NEAREST = "nearest"
    BOX = "box"
    BILINEAR = "bilinear"
    LANCZOS = "lanczos"


# ============================================================================
# STRIPE CONFIGURATION
# ============================================================================

@dataclass
class StripeConfig:
    """
    Stripe geometry parameters.

    Attributes:
        orientation: Axis the gradient runs along
        speed: Gradient cycles per column (horizontal), row (vertical)
            or diagonal step
        phase_step: Offset added to the phase at every line terminator
            for vertical and diagonal orientations
        deadzone: Fraction of each stripe kept solid before blending
        carry_columns: Keep the column offset across line breaks for
            vertical/diagonal orientations instead of resetting it
    """

    orientation: Orientation = Orientation.DIAGONAL
    speed: float = DEFAULT_SPEED
    phase_step: float = DEFAULT_PHASE_STEP
    deadzone: float = DEFAULT_DEADZONE
    carry_columns: bool = False

    def validate(self) -> bool:
        """Validate stripe configuration"""
        if not isinstance(self.orientation, Orientation):
            raise ValueError(f"Unknown orientation: {self.orientation!r}")
        if not math.isfinite(self.speed):
            raise ValueError(f"Speed must be a finite number, got {self.speed}")
        if not math.isfinite(self.phase_step):
            raise ValueError(f"Phase step must be a finite number, got {self.phase_step}")
        if not 0.0 <= self.deadzone < 1.0:
            raise ValueError("Deadzone must be in [0, 1)")
        return True


# ============================================================================
# STREAM CONFIGURATION
# ============================================================================

@dataclass
class StreamConfig:
    """Text stream handling configuration"""

    tab_size: int = TAB_SIZE
    chunk_size: int = READ_CHUNK_SIZE

    # Flush after every line so interactive pipes stay live
    flush_on_newline: bool = True

    # Drop foreground color changes coming from the input itself
    strip_input_colors: bool = True

    # Emit 24-bit escapes; False falls back to the 8 basic colors
    rgb24: bool = True

    def validate(self) -> bool:
        """Validate stream configuration"""
        if self.tab_size <= 0:
            raise ValueError("Tab size must be positive")
        if self.chunk_size <= 0:
            raise ValueError("Chunk size must be positive")
        return True


# ============================================================================
# IMAGE CONFIGURATION
# ============================================================================

@dataclass
class ImageConfig:
    """Image resizing configuration"""

    algorithm: ScalingAlgorithm = ScalingAlgorithm.NEAREST

    # Cell width/height correction applied to the derived height
    cell_aspect_ratio: float = 1.0

    def validate(self) -> bool:
        """Validate image configuration"""
        if not isinstance(self.algorithm, ScalingAlgorithm):
            raise ValueError(f"Unknown scaling algorithm: {self.algorithm!r}")
        if self.cell_aspect_ratio <= 0:
            raise ValueError("Cell aspect ratio must be positive")
        return True


# ============================================================================
# MAIN CONFIGURATION CLASS
# ============================================================================

@dataclass
class FlagcatConfig:
    """Complete system configuration"""

    # Sub-configurations
    stripes: StripeConfig = field(default_factory=StripeConfig)
    stream: StreamConfig = field(default_factory=StreamConfig)
    image: ImageConfig = field(default_factory=ImageConfig)

    # System-wide settings
    debug_mode: bool = False
    log_level: str = "WARNING"

    def validate(self) -> bool:
        """Validate entire configuration"""
        self.stripes.validate()
        self.stream.validate()
        self.image.validate()
        if logging.getLevelName(self.log_level.upper()) == f"Level {self.log_level.upper()}":
            raise ValueError(f"Unknown log level: {self.log_level}")
        return True


# ============================================================================
# CONFIGURATION MANAGER (SINGLETON)
# ============================================================================

def _env_flag(value: str) -> bool:
    return value.lower() in ('true', '1', 'yes')


class ConfigurationManager:
    """
    Singleton configuration manager with runtime reloading.
    Environment overrides are applied once at creation and again on
    every reload without an explicit configuration.
    """

    _instance = None
    _lock = threading.Lock()

    def __new__(cls):
        if cls._instance is None:
            with cls._lock:
                if cls._instance is None:
                    cls._instance = super().__new__(cls)
                    cls._instance._initialized = False
        return cls._instance

    def __init__(self):
        if self._initialized:
            return

        self._config = FlagcatConfig()
        self._config_lock = threading.RLock()
        try:
            self._load_environment_overrides(self._config, os.environ)
            self._config.validate()
        except ValueError as e:
            logger.error(f"Ignoring invalid environment configuration: {e}")
            self._config = FlagcatConfig()

        self._initialized = True
        logger.debug("Configuration manager initialized")

    @staticmethod
    def _load_environment_overrides(config: FlagcatConfig, environ) -> None:
        """Load configuration overrides from environment variables"""

        # Stripe settings
        if 'FLAGCAT_SPEED' in environ:
            config.stripes.speed = float(environ['FLAGCAT_SPEED'])
        if 'FLAGCAT_PHASE_STEP' in environ:
            config.stripes.phase_step = float(environ['FLAGCAT_PHASE_STEP'])
        if 'FLAGCAT_DEADZONE' in environ:
            config.stripes.deadzone = float(environ['FLAGCAT_DEADZONE'])
        if 'FLAGCAT_ORIENTATION' in environ:
            config.stripes.orientation = Orientation(environ['FLAGCAT_ORIENTATION'].lower())

        # Stream settings
        if 'FLAGCAT_TAB_SIZE' in environ:
            config.stream.tab_size = int(environ['FLAGCAT_TAB_SIZE'])
        if 'FLAGCAT_NO_RGB24' in environ:
            config.stream.rgb24 = not _env_flag(environ['FLAGCAT_NO_RGB24'])

        # Image settings
        if 'FLAGCAT_SCALING' in environ:
            config.image.algorithm = ScalingAlgorithm(environ['FLAGCAT_SCALING'].lower())

        # Logging
        if 'FLAGCAT_LOG_LEVEL' in environ:
            config.log_level = environ['FLAGCAT_LOG_LEVEL'].upper()
        if 'FLAGCAT_DEBUG' in environ:
            config.debug_mode = _env_flag(environ['FLAGCAT_DEBUG'])

    @property
    def config(self) -> FlagcatConfig:
        """Get current configuration"""
        with self._config_lock:
            return self._config

    def reload(self, new_config: Optional[FlagcatConfig] = None, environ=None) -> bool:
        """
        Reload configuration.

        Args:
            new_config: New configuration to apply (rebuilt from the
                environment if None)
            environ: Mapping used instead of ``os.environ``

        Returns:
            True if reload successful, False if the old configuration
            was kept
        """
        with self._config_lock:
            old_config = self._config

            try:
                if new_config is None:
                    new_config = FlagcatConfig()
                    self._load_environment_overrides(
                        new_config, os.environ if environ is None else environ)
                new_config.validate()
                self._config = new_config

                logger.info("Configuration reloaded successfully")
                return True

            except ValueError as e:
                logger.error(f"Configuration reload failed: {e}")
                self._config = old_config
                return False


# ============================================================================
# PUBLIC API FUNCTIONS
# ============================================================================

_manager = ConfigurationManager()

def get_config() -> FlagcatConfig:
    """Get current system configuration"""
    return _manager.config

def reload_config(new_config: Optional[FlagcatConfig] = None, environ=None) -> bool:
    """Reload system configuration"""
    return _manager.reload(new_config, environ)

def get_stripe_config() -> StripeConfig:
    """Get stripe configuration"""
    return _manager.config.stripes

def get_stream_config() -> StreamConfig:
    """Get stream configuration"""
    return _manager.config.stream

def get_image_config() -> ImageConfig:
    """Get image configuration"""
    return _manager.config.image


# ============================================================================
# FLAG PRESET CATALOG
# ============================================================================

_FLAG_PRESETS = {
    'pride': {
        'name': 'Pride',
        'aliases': ('Rainbow',),
        'stripes': (0xE40303, 0xFF8C00, 0xFFED00, 0x008026, 0x24408E, 0x732982),
    },
    'progress': {
        'name': 'Progress',
        'aliases': (),
        'stripes': (0xE40303, 0xFF8C00, 0xFFED00, 0x008026, 0x24408E, 0x732982,
                    0x222222, 0x7C3F00, 0x5BCEFA, 0xF5A9B8, 0xFFFFFF),
    },
    'lesbian': {
        'name': 'Lesbian',
        'aliases': (),
        'stripes': (0xD52D00, 0xEF7627, 0xFF9A56, 0xFFFFFF, 0xD162A4, 0xB55690, 0xA30262),
    },
    'gay': {
        'name': 'Gay',
        'aliases': (),
        'stripes': (0x078D70, 0x26CEAA, 0x98E8C1, 0xFFFFFF, 0x7BADE2, 0x5049CC, 0x3D1A78),
    },
    # Bi stripes are 2:1:2, expressed by repeating the outer colors
    'bi': {
        'name': 'Bi',
        'aliases': ('Bisexual',),
        'stripes': (0xD60270, 0xD60270, 0x9B4F96, 0x0038A8, 0x0038A8),
    },
    'trans': {
        'name': 'Trans',
        'aliases': ('Transgender',),
        'stripes': (0x5BCEFA, 0xF5A9B8, 0xFFFFFF, 0xF5A9B8, 0x5BCEFA),
    },
    'pan': {
        'name': 'Pan',
        'aliases': ('Pansexual',),
        'stripes': (0xFF218C, 0xFFD800, 0x21B1FF),
    },
    'ace': {
        'name': 'Ace',
        'aliases': ('Asexual',),
        'stripes': (0x000000, 0xA3A3A3, 0xFFFFFF, 0x800080),
    },
    'nonbinary': {
        'name': 'Nonbinary',
        'aliases': ('Enby',),
        'stripes': (0xFCF434, 0xFFFFFF, 0x9C59D1, 0x2C2C2C),
    },
    'aro': {
        'name': 'Aro',
        'aliases': ('Aromantic',),
        'stripes': (0x3DA542, 0xA7D379, 0xFFFFFF, 0xA9A9A9, 0x000000),
    },
}

FLAG_PRESETS = MappingProxyType({
    key: MappingProxyType(entry) for key, entry in _FLAG_PRESETS.items()
})

DEFAULT_FLAG_PRESET = 'lesbian'


def iter_flag_presets() -> Iterator[Dict[str, Any]]:
    """Iterate over all flag presets in catalog order"""
    return iter(FLAG_PRESETS.values())


def flag_by_name(name: str) -> Optional[Dict[str, Any]]:
    """Find a flag preset by its name or any of its aliases (case-insensitive)"""
    wanted = name.strip().lower()
    for entry in FLAG_PRESETS.values():
        if entry['name'].lower() == wanted:
            return entry
        if any(alias.lower() == wanted for alias in entry['aliases']):
            return entry
    return None


def default_flag_preset() -> Dict[str, Any]:
    """The preset used when no flag, custom pattern or image is given"""
    return FLAG_PRESETS[DEFAULT_FLAG_PRESET]
