import sys
import unittest
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(ROOT))

from flagcat_width import WidthCalculator, get_width, split_clusters

FLAG_US = "\U0001F1FA\U0001F1F8"


class ClusterTests(unittest.TestCase):
    def test_combining_mark_joins_base(self):
        self.assertEqual(split_clusters("e\u0301x"), ["e\u0301", "x"])

    def test_regional_indicators_pair_up(self):
        self.assertEqual(split_clusters(FLAG_US), [FLAG_US])
        self.assertEqual(split_clusters(FLAG_US + "\U0001F1FA"), [FLAG_US, "\U0001F1FA"])

    def test_zwj_sequence_is_one_cluster(self):
        family = "\U0001F469\u200d\U0001F467"
        self.assertEqual(split_clusters(family + "a"), [family, "a"])

    def test_plain_text(self):
        self.assertEqual(split_clusters("abc"), ["a", "b", "c"])
        self.assertEqual(split_clusters(""), [])


class WidthTests(unittest.TestCase):
    def test_widths(self):
        self.assertEqual(get_width("A"), 1)
        self.assertEqual(get_width("\u4f60"), 2)
        self.assertEqual(get_width("e\u0301"), 1)
        self.assertEqual(get_width(FLAG_US), 2)
        self.assertEqual(get_width(""), 0)

    def test_cache_statistics(self):
        calc = WidthCalculator(cache_size=2)
        calc.get_width("a")
        calc.get_width("a")
        calc.get_width("b")
        calc.get_width("c")
        stats = calc.get_stats()
        self.assertEqual(stats['cache_hits'], 1)
        self.assertEqual(stats['calculations'], 3)
        self.assertEqual(stats['cache_evictions'], 1)
        self.assertEqual(stats['cache_entries'], 2)

    def test_uncached_calculator(self):
        calc = WidthCalculator(enable_cache=False)
        self.assertEqual(calc.get_widths(["a", "\u4f60"]), [1, 2])
        self.assertEqual(calc.get_stats()['cache_entries'], 0)


if __name__ == "__main__":
    unittest.main()
