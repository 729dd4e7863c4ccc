#!/usr/bin/env python3
"""
🏳️‍🌈 flagcat - Exception Hierarchy
==================================
Copyright (c) 2025 PNGN-Tec LLC

Every error the engine raises on purpose derives from FlagcatError and
carries the process exit code the CLI should use for it. I/O failures
on the output stream are left as plain OSError.
"""

from typing import Any, Dict, Optional

# ============================================================================
# EXIT CODES
# ============================================================================

EXIT_OK = 0
EXIT_OUTPUT_ERROR = 1
EXIT_USAGE = 2
EXIT_INVALID_PATTERN = 3
EXIT_UNREADABLE_INPUT = 4
EXIT_BAD_IMAGE = 5
EXIT_EMPTY_IMAGE = 6
EXIT_INTERRUPTED = 130


class FlagcatError(Exception):
    """Base exception for all flagcat errors."""

    exit_code = EXIT_OUTPUT_ERROR

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self) -> str:
        if self.details:
            return f"{self.message} (Details: {self.details})"
        return self.message


class InvalidPatternError(FlagcatError):
    """Malformed, empty or unknown flag pattern."""

    exit_code = EXIT_INVALID_PATTERN


class InputError(FlagcatError):
    """An input file could not be opened or read."""

    exit_code = EXIT_UNREADABLE_INPUT


class UnsupportedImageFormatError(FlagcatError):
    """The image could not be read or decoded."""

    exit_code = EXIT_BAD_IMAGE


class EmptyImageError(FlagcatError):
    """The decoded image has a zero width or height."""

    exit_code = EXIT_EMPTY_IMAGE
