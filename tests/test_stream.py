import sys
import unittest
from io import BytesIO
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(ROOT))

from flagcat_errors import InputError
from flagcat_stream import AnsiKind, ElementKind, classify_escape, iter_elements, scan


class ChunkedReader:
    """Returns at most ``size`` bytes per read"""

    def __init__(self, data, size=1):
        self.data = data
        self.size = size

    def read(self, n):
        chunk, self.data = self.data[:self.size], self.data[self.size:]
        return chunk


class FailingReader:
    def read(self, n):
        raise OSError("device unplugged")


def kinds(elements):
    return [element.kind for element in elements]


class ScanTests(unittest.TestCase):
    def test_basic_kinds(self):
        elements, consumed = scan(b"a\tb\r\n\x07", final=True)
        self.assertEqual(consumed, 6)
        self.assertEqual(kinds(elements), [
            ElementKind.GRAPHEME, ElementKind.TAB, ElementKind.GRAPHEME,
            ElementKind.CARRIAGE_RETURN, ElementKind.NEWLINE, ElementKind.CONTROL,
        ])

    def test_invalid_utf8_becomes_raw(self):
        elements, _ = scan(b"\xffAB", final=True)
        self.assertEqual(kinds(elements), [ElementKind.RAW, ElementKind.GRAPHEME, ElementKind.GRAPHEME])
        self.assertEqual(elements[0].raw, b"\xff")

    def test_truncated_character_is_carried(self):
        elements, consumed = scan(b"A\xe2\x82", final=False)
        self.assertEqual(consumed, 0)
        self.assertEqual(elements, [])

    def test_truncated_character_at_eof_is_raw(self):
        elements, consumed = scan(b"A\xe2\x82", final=True)
        self.assertEqual(consumed, 3)
        self.assertEqual(kinds(elements), [ElementKind.GRAPHEME, ElementKind.RAW, ElementKind.RAW])

    def test_last_cluster_held_until_more_data(self):
        elements, consumed = scan(b"ab", final=False)
        self.assertEqual([element.text for element in elements], ["a"])
        self.assertEqual(consumed, 1)

    def test_partial_escape_waits(self):
        elements, consumed = scan(b"x\n\x1b[3", final=False)
        self.assertEqual(consumed, 2)
        self.assertEqual(kinds(elements), [ElementKind.GRAPHEME, ElementKind.NEWLINE])

    def test_partial_escape_at_eof_passes_through(self):
        elements, _ = scan(b"\x1b[3", final=True)
        self.assertEqual(kinds(elements), [ElementKind.ESCAPE])
        self.assertEqual(elements[0].text, "\x1b[3")

    def test_lone_escape_is_control(self):
        elements, _ = scan(b"\x1b\n", final=True)
        self.assertEqual(kinds(elements), [ElementKind.CONTROL, ElementKind.NEWLINE])

    def test_osc_sequence(self):
        elements, _ = scan(b"\x1b]0;title\x07A", final=True)
        self.assertEqual(kinds(elements), [ElementKind.ESCAPE, ElementKind.GRAPHEME])
        self.assertEqual(elements[0].text, "\x1b]0;title\x07")


class IterElementsTests(unittest.TestCase):
    def test_one_byte_reads_reassemble_text(self):
        data = "e\u0301x\u4f60\x1b[31mZ".encode('utf-8')
        elements = list(iter_elements(ChunkedReader(data)))
        self.assertEqual([element.text for element in elements],
                         ["e\u0301", "x", "\u4f60", "\x1b[31m", "Z"])

    def test_round_trip_is_exact(self):
        data = b"plain \xc3\xa9\t\xff\x1b[1mbold\x1b[0m\r\n\x00end\xe2\x82"
        for size in (1, 2, 3, 7, 4096):
            elements = list(iter_elements(ChunkedReader(data, size), chunk_size=size))
            self.assertEqual(b"".join(element.to_bytes() for element in elements), data)

    def test_bytes_io_source(self):
        elements = list(iter_elements(BytesIO(b"hi\n")))
        self.assertEqual(kinds(elements), [ElementKind.GRAPHEME, ElementKind.GRAPHEME, ElementKind.NEWLINE])

    def test_read_errors_become_input_errors(self):
        with self.assertRaises(InputError):
            list(iter_elements(FailingReader()))


class ClassifyEscapeTests(unittest.TestCase):
    def test_style_codes(self):
        self.assertIs(classify_escape("\x1b[0m").kind, AnsiKind.RESET_STYLE)
        self.assertIs(classify_escape("\x1b[m").kind, AnsiKind.RESET_STYLE)
        self.assertIs(classify_escape("\x1b[31m").kind, AnsiKind.SET_COLOR)
        self.assertIs(classify_escape("\x1b[38;2;1;2;3m").kind, AnsiKind.SET_COLOR)
        self.assertIs(classify_escape("\x1b[1m").kind, AnsiKind.OTHER)

    def test_foreground_found_after_other_attributes(self):
        code = classify_escape("\x1b[01;34m")
        self.assertIs(code.kind, AnsiKind.SET_COLOR)
        self.assertTrue(code.foreground)
        self.assertEqual(code.without_foreground, "\x1b[01m")

    def test_foreground_only_sequence_strips_to_nothing(self):
        self.assertEqual(classify_escape("\x1b[38;5;202m").without_foreground, "")
        self.assertEqual(classify_escape("\x1b[39m").without_foreground, "")

    def test_background_arguments_are_not_foregrounds(self):
        code = classify_escape("\x1b[48;2;31;32;33m")
        self.assertIs(code.kind, AnsiKind.OTHER)
        self.assertFalse(code.foreground)

    def test_reset_combined_with_color(self):
        code = classify_escape("\x1b[0;31m")
        self.assertIs(code.kind, AnsiKind.SET_COLOR)
        self.assertTrue(code.resets)
        self.assertEqual(code.without_foreground, "\x1b[0m")

    def test_cursor_moves(self):
        up = classify_escape("\x1b[2A")
        self.assertIs(up.kind, AnsiKind.MOVE_CURSOR)
        self.assertEqual(up.drow, -2)
        self.assertEqual(classify_escape("\x1b[C").dcol, 1)
        next_line = classify_escape("\x1b[3E")
        self.assertEqual((next_line.col, next_line.drow), (0, 3))

    def test_absolute_positioning(self):
        home = classify_escape("\x1b[5;10H")
        self.assertIs(home.kind, AnsiKind.SET_CURSOR)
        self.assertEqual((home.row, home.col), (4, 9))
        self.assertEqual((classify_escape("\x1b[H").row, classify_escape("\x1b[H").col), (0, 0))
        self.assertEqual(classify_escape("\x1b[12G").col, 11)

    def test_everything_else(self):
        self.assertIs(classify_escape("\x1b[?25l").kind, AnsiKind.OTHER)
        self.assertIs(classify_escape("\x1b]0;t\x07").kind, AnsiKind.OTHER)
        self.assertIs(classify_escape("\x1b[2J").kind, AnsiKind.OTHER)


if __name__ == "__main__":
    unittest.main()
