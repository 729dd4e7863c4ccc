#!/usr/bin/env python3
"""
🏳️‍🌈 flagcat - Console Stream Tokenizer
=======================================
Copyright (c) 2025 PNGN-Tec LLC

Byte Stream to Console Elements
===============================
Splits a raw byte stream into the elements the text renderer reacts
to, reading in bounded chunks so input of any length streams through
in constant memory.

Element Kinds
=============
- NEWLINE / CARRIAGE_RETURN / TAB
- CONTROL: any other control character (bell, backspace, DEL, C1)
- ESCAPE: a complete ANSI sequence (CSI, OSC or two-byte escape)
- GRAPHEME: one printable cluster, colored as a unit
- RAW: one byte that is not valid UTF-8

Chunk Boundaries
================
A multi-byte character, escape sequence or cluster cut off at the end
of a chunk is carried over to the next read. At end of input anything
still incomplete is emitted as-is: bytes as RAW, sequences as ESCAPE.
Joining every element's bytes reproduces the input exactly.
"""

import re
import logging
import unicodedata
from dataclasses import dataclass
from enum import Enum
from typing import BinaryIO, Iterator, List, Optional, Tuple

from config import READ_CHUNK_SIZE
from flagcat_errors import InputError
from flagcat_width import split_clusters

logger = logging.getLogger('flagcat.stream')

# Longest escape sequence or cluster carried across chunks before it is
# flushed as-is
MAX_CARRY_CHARS = 4096

# Complete sequences: CSI, OSC (BEL or ST terminated), other ESC sequences
ESCAPE_RE = re.compile(
    r'\x1b(?:\[[0-?]*[ -/]*[@-~]'
    r'|\][^\x07\x1b]*(?:\x07|\x1b\\)'
    r'|[ -/]*[0-Z\\^-~])'
)

# Prefixes that could still become a complete sequence
PARTIAL_ESCAPE_RE = re.compile(
    r'\x1b(?:\[[0-?]*[ -/]*|\][^\x07\x1b]*\x1b?|[ -/]*)\Z'
)

SPECIAL_CHARS = {'\n', '\r', '\t', '\x1b'}


class ElementKind(Enum):
    NEWLINE = "newline"
    CARRIAGE_RETURN = "carriage_return"
    TAB = "tab"
    CONTROL = "control"
    ESCAPE = "escape"
    GRAPHEME = "grapheme"
    RAW = "raw"


@dataclass(frozen=True)
class ConsoleElement:
    """One element of the console stream"""
    kind: ElementKind
    text: str = ''
    raw: bytes = b''

    def to_bytes(self) -> bytes:
        if self.kind is ElementKind.RAW:
            return self.raw
        return self.text.encode('utf-8')


def _is_control(char: str) -> bool:
    return unicodedata.category(char) == 'Cc'


def _byte_offset(text: str, index: int) -> int:
    return len(text[:index].encode('utf-8'))


def _scan_text(text: str, at_data_end: bool, final: bool,
               elements: List[ConsoleElement]) -> Optional[int]:
    """
    Tokenize valid text, appending to ``elements``.

    Returns:
        Character index where scanning stopped to wait for more data,
        or None if the whole text was consumed
    """
    can_wait = at_data_end and not final
    i = 0
    n = len(text)

    while i < n:
        char = text[i]

        if char == '\n':
            elements.append(ConsoleElement(ElementKind.NEWLINE, char))
            i += 1
        elif char == '\r':
            elements.append(ConsoleElement(ElementKind.CARRIAGE_RETURN, char))
            i += 1
        elif char == '\t':
            elements.append(ConsoleElement(ElementKind.TAB, char))
            i += 1
        elif char == '\x1b':
            match = ESCAPE_RE.match(text, i)
            if match:
                elements.append(ConsoleElement(ElementKind.ESCAPE, match.group()))
                i = match.end()
            elif PARTIAL_ESCAPE_RE.match(text, i):
                if can_wait and n - i < MAX_CARRY_CHARS:
                    return i
                elements.append(ConsoleElement(ElementKind.ESCAPE, text[i:]))
                i = n
            else:
                elements.append(ConsoleElement(ElementKind.CONTROL, char))
                i += 1
        elif _is_control(char):
            elements.append(ConsoleElement(ElementKind.CONTROL, char))
            i += 1
        else:
            j = i + 1
            while j < n and text[j] not in SPECIAL_CHARS and not _is_control(text[j]):
                j += 1

            clusters = split_clusters(text[i:j])
            # The last cluster may still gain combining marks from the next chunk
            if j == n and can_wait and len(clusters[-1]) < MAX_CARRY_CHARS:
                for cluster in clusters[:-1]:
                    elements.append(ConsoleElement(ElementKind.GRAPHEME, cluster))
                return n - len(clusters[-1])

            for cluster in clusters:
                elements.append(ConsoleElement(ElementKind.GRAPHEME, cluster))
            i = j

    return None


def scan(data: bytes, final: bool) -> Tuple[List[ConsoleElement], int]:
    """
    Tokenize a buffer.

    Args:
        data: Bytes read so far and not yet consumed
        final: True if no more data will follow

    Returns:
        (elements, consumed) where ``data[consumed:]`` must be prepended
        to the next read
    """
    elements: List[ConsoleElement] = []
    pos = 0
    size = len(data)

    while pos < size:
        try:
            text = data[pos:].decode('utf-8')
            bad = None
            truncated = False
        except UnicodeDecodeError as e:
            text = data[pos:pos + e.start].decode('utf-8')
            bad = (pos + e.start, pos + e.end)
            # Truncated multi-byte character at the chunk boundary
            truncated = (not final and pos + e.end == size
                         and e.reason == 'unexpected end of data')

        at_data_end = bad is None or truncated
        stop = _scan_text(text, at_data_end, final, elements)
        if stop is not None:
            return elements, pos + _byte_offset(text, stop)

        if bad is None:
            return elements, size

        bad_start, bad_end = bad
        if truncated:
            return elements, bad_start

        for byte in data[bad_start:bad_end]:
            elements.append(ConsoleElement(ElementKind.RAW, raw=bytes([byte])))
        pos = bad_end

    return elements, size


def iter_elements(source: BinaryIO, chunk_size: int = READ_CHUNK_SIZE) -> Iterator[ConsoleElement]:
    """
    Stream console elements from a binary source.

    Uses ``read1`` when available so interactive input is colored as it
    arrives instead of waiting for a full chunk.

    Raises:
        InputError: if reading from the source fails
    """
    read = getattr(source, 'read1', None) or source.read
    pending = b''

    while True:
        try:
            chunk = read(chunk_size)
        except OSError as e:
            raise InputError(f"read failed: {e}") from e

        final = not chunk
        elements, consumed = scan(pending + chunk, final)
        yield from elements

        if final:
            return
        pending = (pending + chunk)[consumed:]


# ============================================================================
# ANSI SEQUENCE CLASSIFICATION
# ============================================================================

class AnsiKind(Enum):
    RESET_STYLE = "reset_style"
    SET_COLOR = "set_color"
    MOVE_CURSOR = "move_cursor"
    SET_CURSOR = "set_cursor"
    OTHER = "other"


@dataclass(frozen=True)
class AnsiCode:
    """
    Classified escape sequence.

    Cursor codes carry absolute targets (``col``/``row``, zero-based)
    and relative moves (``dcol``/``drow``); absolute values apply first.
    Style codes note whether they reset the style or select a
    foreground color; ``without_foreground`` is the same sequence with
    the foreground selectors removed (empty if nothing else is left).
    """
    kind: AnsiKind
    col: Optional[int] = None
    row: Optional[int] = None
    dcol: int = 0
    drow: int = 0
    resets: bool = False
    foreground: bool = False
    without_foreground: str = ''


CSI_RE = re.compile(r'\x1b\[([0-?]*)[ -/]*([@-~])\Z')

FOREGROUND_PARAMS = set(range(30, 40)) | set(range(90, 98))

# Selectors followed by a color spec: 5;N or 2;R;G;B
EXTENDED_COLOR_PARAMS = (38, 48, 58)
EXTENDED_ARG_COUNTS = {'5': 1, '2': 3}


def _params(raw: str, default: int) -> List[int]:
    values = []
    for part in raw.split(';'):
        try:
            values.append(int(part) if part else default)
        except ValueError:
            values.append(default)
    return values


def _classify_sgr(raw: str) -> AnsiCode:
    parts = raw.split(';')
    kept: List[str] = []
    resets = False
    foreground = False

    i = 0
    while i < len(parts):
        head = parts[i].split(':')[0]
        value = int(head) if head.isdigit() else (0 if head == '' else -1)

        span = 1
        # Colon sub-parameters keep the whole color spec in one field
        if value in EXTENDED_COLOR_PARAMS and ':' not in parts[i] and i + 1 < len(parts):
            span += 1 + EXTENDED_ARG_COUNTS.get(parts[i + 1], 0)

        if value in FOREGROUND_PARAMS:
            foreground = True
        else:
            resets = resets or value == 0
            kept.extend(parts[i:i + span])
        i += span

    if foreground:
        kind = AnsiKind.SET_COLOR
    elif resets:
        kind = AnsiKind.RESET_STYLE
    else:
        kind = AnsiKind.OTHER

    stripped = f"\x1b[{';'.join(kept)}m" if kept else ''
    return AnsiCode(kind, resets=resets, foreground=foreground,
                    without_foreground=stripped)


def classify_escape(sequence: str) -> AnsiCode:
    """Classify an escape sequence by its effect on color and cursor"""
    match = CSI_RE.match(sequence)
    if not match:
        return AnsiCode(AnsiKind.OTHER)

    raw, final = match.group(1), match.group(2)
    if raw[:1] in ('?', '<', '=', '>'):
        return AnsiCode(AnsiKind.OTHER)

    if final == 'm':
        return _classify_sgr(raw)

    count = _params(raw, 1)[0]
    if final == 'A':
        return AnsiCode(AnsiKind.MOVE_CURSOR, drow=-count)
    if final == 'B':
        return AnsiCode(AnsiKind.MOVE_CURSOR, drow=count)
    if final == 'C':
        return AnsiCode(AnsiKind.MOVE_CURSOR, dcol=count)
    if final == 'D':
        return AnsiCode(AnsiKind.MOVE_CURSOR, dcol=-count)
    if final == 'E':
        return AnsiCode(AnsiKind.MOVE_CURSOR, col=0, drow=count)
    if final == 'F':
        return AnsiCode(AnsiKind.MOVE_CURSOR, col=0, drow=-count)
    if final == 'G':
        return AnsiCode(AnsiKind.SET_CURSOR, col=max(count - 1, 0))
    if final in ('H', 'f'):
        values = _params(raw, 1) + [1]
        return AnsiCode(AnsiKind.SET_CURSOR,
                        row=max(values[0] - 1, 0),
                        col=max(values[1] - 1, 0))

    return AnsiCode(AnsiKind.OTHER)
