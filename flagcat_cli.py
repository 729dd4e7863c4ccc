#!/usr/bin/env python3
"""
🏳️‍🌈 flagcat - Command Line Interface
=====================================
Copyright (c) 2025 PNGN-Tec LLC

Concatenate files to standard output, colored with the stripes of a
pride flag, a custom gradient or an image, or show an image as colored
terminal cells.

Usage
=====
    flagcat [OPTIONS] [FILE ...]

    flagcat notes.txt                 # default flag
    ls -l | flagcat --flag trans      # from stdin
    flagcat --custom "E40303:2,24408E" --loop mirror file.txt
    flagcat --show-image logo.png --page

Exit Codes
==========
0 success, 1 output failure, 2 usage error, 3 invalid pattern,
4 unreadable input, 5 unreadable image, 6 empty image, 130 interrupted.
"""

import argparse
import copy
import logging
import os
import sys
import time
from contextlib import contextmanager
from typing import BinaryIO, Callable, Iterator, Optional, Sequence, Tuple, Union

from config import (
    DEFAULT_TERMINAL_COLUMNS, DEFAULT_TERMINAL_ROWS,
    FlagcatConfig, Orientation, ScalingAlgorithm, default_flag_preset, get_config,
    iter_flag_presets,
)
from flagcat_color import Color
from flagcat_errors import EXIT_INTERRUPTED, EXIT_OK, EXIT_OUTPUT_ERROR, FlagcatError, InputError
from flagcat_image import ImageColorizer, ImageFrame, ImageRenderer, load_image, resize_frame
from flagcat_pattern import Pattern, make_cyclic, mirror, parse_custom, preset_pattern
from flagcat_terminal import (
    FlagColorizer, NoopColorizer, PositionalColorizer, TextStreamRenderer,
    colored_output, create_renderer,
)

logger = logging.getLogger('flagcat.cli')

PROG = 'flagcat'
LOG_FORMAT = '%(name)s: %(levelname)s: %(message)s'

STDOUT_FD = 1
STDERR_FD = 2


# ============================================================================
# ARGUMENT PARSING
# ============================================================================

def positive_int(value: str) -> int:
    number = int(value)
    if number <= 0:
        raise argparse.ArgumentTypeError(f"must be a positive integer, got {value}")
    return number


def positive_float(value: str) -> float:
    number = float(value)
    if not number > 0:
        raise argparse.ArgumentTypeError(f"must be a positive number, got {value}")
    return number


def size_mode(*modes: str) -> Callable[[str], Union[int, str]]:
    """Argument type accepting a positive integer or one of ``modes``"""
    def parse(value: str) -> Union[int, str]:
        if value.lower() in modes:
            return value.lower()
        return positive_int(value)
    parse.__name__ = 'size'
    return parse


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog=PROG,
        description='Concatenate files to standard output in the colors of a flag')

    parser.add_argument('files', nargs='*', default=['-'], metavar='FILE',
                        help="files to print; '-' reads standard input (default)")

    source = parser.add_mutually_exclusive_group()
    source.add_argument('-f', '--flag', metavar='NAME',
                        help=f"flag preset to color with (default: {default_flag_preset()['name']})")
    source.add_argument('-c', '--custom', metavar='STOPS',
                        help="custom gradient, comma-separated COLOR[:WEIGHT] stops")
    source.add_argument('-i', '--image', metavar='PATH',
                        help="color text with the pixels of an image")
    source.add_argument('--show-image', metavar='PATH',
                        help="show an image as colored cells instead of printing files")
    source.add_argument('-n', '--noop', action='store_true',
                        help="copy input without coloring")
    source.add_argument('--presets', action='store_true',
                        help="list available flag presets and exit")

    stripes = parser.add_argument_group('stripes')
    stripes.add_argument('-o', '--orientation', choices=[o.value for o in Orientation],
                         help="direction the stripes run in")
    stripes.add_argument('-s', '--speed', type=float,
                         help="gradient cycles per column")
    stripes.add_argument('--phase-step', type=float,
                         help="phase added per line for vertical and diagonal stripes")
    stripes.add_argument('--deadzone', type=float,
                         help="solid fraction of each stripe before blending, in [0, 1)")
    stripes.add_argument('--loop', choices=['cyclic', 'mirror', 'none'], default='cyclic',
                         help="how the gradient repeats (default: cyclic)")
    stripes.add_argument('--carry-columns', action='store_true', default=None,
                         help="keep the column offset across lines")

    image = parser.add_argument_group('images')
    image.add_argument('--image-width', type=size_mode('fit', 'original'), metavar='COLUMNS',
                       help="image width in cells, 'fit' (default) or 'original'; "
                            "capped at the terminal width")
    image.add_argument('--image-height', type=size_mode('ratio', 'original'), metavar='ROWS',
                       help="image height in cells, 'ratio' (default) or 'original'")
    image.add_argument('--cell-aspect-ratio', type=positive_float, metavar='RATIO',
                       help="height correction for non-square cells")
    image.add_argument('--scaling', choices=[a.value for a in ScalingAlgorithm],
                       help="resampling algorithm (default: nearest)")
    image.add_argument('--page', action='store_true',
                       help="wait for Enter between screens of a tall image")
    image.add_argument('--page-delay', type=positive_float, metavar='SECONDS',
                       help="pause between screens of a tall image")

    terminal = parser.add_argument_group('terminal')
    terminal.add_argument('-W', '--width', '--width-override', type=positive_int, metavar='COLUMNS',
                          help="terminal width override")
    terminal.add_argument('-H', '--height', type=positive_int, metavar='ROWS',
                          help="terminal height override")
    terminal.add_argument('-d', '--disable-rgb24', action='store_true', default=None,
                          help="use the 8 basic colors instead of 24-bit color")
    terminal.add_argument('--keep-input-colors', action='store_true', default=None,
                          help="pass color escapes from the input through")
    terminal.add_argument('--debug', action='store_true',
                          help="log debug output to stderr")

    return parser


# ============================================================================
# CONFIGURATION
# ============================================================================

def build_config(args: argparse.Namespace, base: Optional[FlagcatConfig] = None) -> FlagcatConfig:
    """
    Apply command-line options on top of the environment configuration.

    Raises:
        ValueError: if the combined configuration is invalid
    """
    config = copy.deepcopy(base or get_config())

    if args.orientation is not None:
        config.stripes.orientation = Orientation(args.orientation)
    if args.speed is not None:
        config.stripes.speed = args.speed
    if args.phase_step is not None:
        config.stripes.phase_step = args.phase_step
    if args.deadzone is not None:
        config.stripes.deadzone = args.deadzone
    if args.carry_columns is not None:
        config.stripes.carry_columns = args.carry_columns

    if args.disable_rgb24:
        config.stream.rgb24 = False
    if args.keep_input_colors:
        config.stream.strip_input_colors = False

    if args.scaling is not None:
        config.image.algorithm = ScalingAlgorithm(args.scaling)
    if args.cell_aspect_ratio is not None:
        config.image.cell_aspect_ratio = args.cell_aspect_ratio

    if args.debug:
        config.debug_mode = True
        config.log_level = 'DEBUG'

    config.validate()
    return config


def configure_logging(config: FlagcatConfig) -> None:
    """Route flagcat logs to stderr at the configured level"""
    root = logging.getLogger('flagcat')
    if not root.handlers:
        handler = logging.StreamHandler(sys.stderr)
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        root.addHandler(handler)
    root.setLevel(config.log_level.upper())
    root.propagate = False


def query_terminal_size(fallback: Tuple[int, int] = (DEFAULT_TERMINAL_COLUMNS,
                                                     DEFAULT_TERMINAL_ROWS)) -> Tuple[int, int]:
    """(columns, rows) of the terminal on stdout or stderr, else ``fallback``"""
    for fd in (STDOUT_FD, STDERR_FD):
        try:
            size = os.get_terminal_size(fd)
        except (ValueError, OSError):
            continue
        if size.columns > 0 and size.lines > 0:
            return size.columns, size.lines
    return fallback


def resolve_terminal_size(args: argparse.Namespace) -> Tuple[int, int]:
    columns, rows = query_terminal_size()
    if args.width is not None:
        columns = args.width
    if args.height is not None:
        rows = args.height
    logger.debug(f"Terminal size {columns}x{rows}")
    return columns, rows


# ============================================================================
# COLOR SOURCES
# ============================================================================

def build_pattern(args: argparse.Namespace, config: FlagcatConfig) -> Pattern:
    """
    Raises:
        InvalidPatternError: unknown preset or malformed custom stops
    """
    deadzone = config.stripes.deadzone
    if args.custom is not None:
        pattern = parse_custom(args.custom, deadzone=deadzone)
    else:
        pattern = preset_pattern(args.flag or default_flag_preset()['name'], deadzone=deadzone)

    if args.loop == 'cyclic':
        pattern = make_cyclic(pattern)
    elif args.loop == 'mirror':
        pattern = mirror(pattern)
    return pattern


def image_size(args: argparse.Namespace, frame: ImageFrame) -> Tuple[Optional[int], Optional[int]]:
    """(height, width) requested for ``frame``; None lets fit_dimensions() derive it"""
    width = frame.width if args.image_width == 'original' else args.image_width
    height = frame.height if args.image_height == 'original' else args.image_height
    return (height if isinstance(height, int) else None,
            width if isinstance(width, int) else None)


def build_colorizer(args: argparse.Namespace, config: FlagcatConfig,
                    columns: int) -> PositionalColorizer:
    if args.noop:
        return NoopColorizer()
    if args.image is not None:
        frame = load_image(args.image)
        height, width = image_size(args, frame)
        frame = resize_frame(frame, columns, height, width, config.image)
        return ImageColorizer(frame)
    return FlagColorizer(build_pattern(args, config), config.stripes)


# ============================================================================
# COMMANDS
# ============================================================================

def list_presets(sink: BinaryIO, rgb24: bool = True) -> None:
    """One line per preset: name, aliases and a colored swatch of its stripes"""
    with colored_output(sink) as out:
        for preset in iter_flag_presets():
            label = preset['name']
            if preset['aliases']:
                label += f" ({', '.join(preset['aliases'])})"
            out.write_text(f"{label:<28}")
            for value in preset['stripes']:
                out.set_color(Color.from_hex(value), rgb24)
                out.write_text('██')
            out.reset()
            out.write_text('\n')


def wait_for_enter(index: int) -> None:
    try:
        with open('/dev/tty') as tty:
            sys.stderr.write(f"-- screen {index + 1}, press Enter --")
            sys.stderr.flush()
            tty.readline()
    except OSError as e:
        logger.warning(f"Cannot page without a terminal: {e}")


def make_pager(args: argparse.Namespace) -> Optional[Callable[[int], None]]:
    if args.page:
        return wait_for_enter
    if args.page_delay:
        delay = args.page_delay
        return lambda index: time.sleep(delay)
    return None


def show_image(args: argparse.Namespace, config: FlagcatConfig, sink: BinaryIO,
               columns: int, rows: int) -> int:
    frame = load_image(args.show_image)
    height, width = image_size(args, frame)
    renderer = ImageRenderer(frame, columns, rows, height, width,
                             config.image, config.stream.rgb24)
    renderer.render(sink, make_pager(args))
    return EXIT_OK


@contextmanager
def open_input(path: str, stdin: BinaryIO) -> Iterator[BinaryIO]:
    """
    Binary handle for ``path``; ``-`` is standard input, left open.

    Raises:
        InputError: if the file cannot be opened
    """
    if path == '-':
        yield stdin
        return

    try:
        handle = open(path, 'rb')
    except OSError as e:
        raise InputError(e.strerror or str(e), {'path': path}) from e
    with handle:
        yield handle


def cat_files(renderer: TextStreamRenderer, files: Sequence[str],
              stdin: BinaryIO, sink: BinaryIO) -> int:
    """Render every file in order; unreadable files are reported and skipped"""
    status = EXIT_OK
    for path in files:
        try:
            with open_input(path, stdin) as source:
                renderer.render(source, sink)
        except InputError as e:
            sys.stderr.write(f"{PROG}: {path}: {e.message}\n")
            status = e.exit_code
    logger.debug(f"Render stats: {renderer.get_stats()}")
    return status


def main(argv: Optional[Sequence[str]] = None,
         stdin: Optional[BinaryIO] = None,
         stdout: Optional[BinaryIO] = None) -> int:
    """Entry point; returns the process exit code"""
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        config = build_config(args)
    except ValueError as e:
        parser.error(str(e))

    configure_logging(config)

    stdin = stdin if stdin is not None else sys.stdin.buffer
    stdout = stdout if stdout is not None else sys.stdout.buffer

    try:
        if args.presets:
            list_presets(stdout, config.stream.rgb24)
            return EXIT_OK

        columns, rows = resolve_terminal_size(args)

        if args.show_image is not None:
            return show_image(args, config, stdout, columns, rows)

        colorizer = build_colorizer(args, config, columns)
        is_tty = getattr(stdout, 'isatty', lambda: False)()
        wrap_columns = columns if (args.width is not None or is_tty) else None
        renderer = create_renderer(colorizer, config.stream, wrap_columns)
        return cat_files(renderer, args.files, stdin, stdout)

    except FlagcatError as e:
        sys.stderr.write(f"{PROG}: {e}\n")
        return e.exit_code
    except KeyboardInterrupt:
        return EXIT_INTERRUPTED
    except BrokenPipeError:
        # Keep the interpreter from failing again while flushing stdout at exit
        devnull = os.open(os.devnull, os.O_WRONLY)
        try:
            os.dup2(devnull, sys.stdout.fileno())
        except (OSError, ValueError) as e:
            logger.debug(f"Could not redirect stdout after broken pipe: {e}")
        finally:
            os.close(devnull)
        return EXIT_OUTPUT_ERROR
    except OSError as e:
        sys.stderr.write(f"{PROG}: write error: {e}\n")
        return EXIT_OUTPUT_ERROR


if __name__ == '__main__':
    sys.exit(main())
