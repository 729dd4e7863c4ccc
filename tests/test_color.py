import sys
import unittest
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(ROOT))

from flagcat_color import RESET, Color, bg_escape, fg_escape, nearest_basic_color


class ColorTests(unittest.TestCase):
    def test_channels_validated(self):
        with self.assertRaises(ValueError):
            Color(256, 0, 0)
        with self.assertRaises(ValueError):
            Color(0, -1, 0)
        with self.assertRaises(TypeError):
            Color(1.5, 0, 0)

    def test_equal_to_plain_tuple(self):
        self.assertEqual(Color(1, 2, 3), (1, 2, 3))
        self.assertEqual(Color(1, 2, 3).g, 2)

    def test_from_hex(self):
        self.assertEqual(Color.from_hex('#E40303'), (228, 3, 3))
        self.assertEqual(Color.from_hex('24408e'), (36, 64, 142))
        self.assertEqual(Color.from_hex(0xFF8C00), (255, 140, 0))
        with self.assertRaises(ValueError):
            Color.from_hex('12345')

    def test_hex_round_trip(self):
        self.assertEqual(Color(228, 3, 3).hex, 'E40303')
        self.assertEqual(str(Color(0, 0, 0)), '000000')

    def test_parse_names_and_hex(self):
        self.assertEqual(Color.parse('red'), (255, 0, 0))
        self.assertEqual(Color.parse('#00f'), (0, 0, 255))
        self.assertEqual(Color.parse('00FF00'), (0, 255, 0))
        with self.assertRaises(ValueError):
            Color.parse('not-a-color')

    def test_interpolate_midpoint_rounds_half_up(self):
        red = Color(255, 0, 0)
        blue = Color(0, 0, 255)
        self.assertEqual(red.interpolate(blue, 0.5), (128, 0, 128))

    def test_interpolate_clamps(self):
        red = Color(255, 0, 0)
        blue = Color(0, 0, 255)
        self.assertEqual(red.interpolate(blue, -1.0), red)
        self.assertEqual(red.interpolate(blue, 2.0), blue)


class EscapeTests(unittest.TestCase):
    def test_truecolor_escapes(self):
        self.assertEqual(fg_escape((1, 2, 3)), '\x1b[38;2;1;2;3m')
        self.assertEqual(bg_escape((1, 2, 3)), '\x1b[48;2;1;2;3m')
        self.assertEqual(RESET, '\x1b[0m')

    def test_basic_color_fallback(self):
        self.assertEqual(nearest_basic_color(Color(250, 10, 10)), 1)
        self.assertEqual(fg_escape((250, 10, 10), rgb24=False), '\x1b[31m')
        self.assertEqual(bg_escape((10, 10, 240), rgb24=False), '\x1b[44m')
        self.assertEqual(fg_escape((255, 255, 255), rgb24=False), '\x1b[37m')


if __name__ == "__main__":
    unittest.main()
