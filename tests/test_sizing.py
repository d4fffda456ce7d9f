"""Tests for dimension rounding and the toktx thread heuristic."""

import unittest

from KTXBrew.core.sizing import (
    ceil_multiple_of_four, ceil_power_of_two, floor_power_of_two,
    is_multiple_of_four, is_power_of_two, preferred_power_of_two, thread_count,
)


class TestPowerOfTwo(unittest.TestCase):
    def test_is_power_of_two(self):
        for v in (0, 1, 2, 4, 8, 256, 4096):
            self.assertTrue(is_power_of_two(v), v)
        for v in (3, 5, 6, 12, 677, 1000):
            self.assertFalse(is_power_of_two(v), v)

    def test_floor_and_ceil(self):
        self.assertEqual(floor_power_of_two(677), 512)
        self.assertEqual(ceil_power_of_two(677), 1024)
        self.assertEqual(floor_power_of_two(512), 512)
        self.assertEqual(ceil_power_of_two(512), 512)

    def test_preferred_small_values_clamp_to_four(self):
        self.assertEqual(preferred_power_of_two(1), 4)
        self.assertEqual(preferred_power_of_two(3), 4)
        self.assertEqual(preferred_power_of_two(4), 4)

    def test_preferred_picks_closer(self):
        self.assertEqual(preferred_power_of_two(5), 4)
        self.assertEqual(preferred_power_of_two(700), 512)
        self.assertEqual(preferred_power_of_two(1000), 1024)

    def test_preferred_tie_rounds_up(self):
        # 6 is two away from both 4 and 8.
        self.assertEqual(preferred_power_of_two(6), 8)
        self.assertEqual(preferred_power_of_two(12), 16)
        self.assertEqual(preferred_power_of_two(768), 1024)


class TestMultipleOfFour(unittest.TestCase):
    def test_ceil_multiple_of_four(self):
        self.assertEqual(ceil_multiple_of_four(1000), 1000)
        self.assertEqual(ceil_multiple_of_four(677), 680)
        self.assertEqual(ceil_multiple_of_four(1), 4)
        self.assertEqual(ceil_multiple_of_four(5), 8)

    def test_is_multiple_of_four(self):
        self.assertTrue(is_multiple_of_four(680))
        self.assertFalse(is_multiple_of_four(677))


class TestThreadCount(unittest.TestCase):
    def test_heuristic(self):
        self.assertEqual(thread_count(8, 4), 6)
        self.assertEqual(thread_count(8, 20), 2)
        self.assertEqual(thread_count(8, 1), 8)

    def test_never_below_two(self):
        self.assertEqual(thread_count(1, 1), 2)
        self.assertEqual(thread_count(16, 1000), 2)


if __name__ == "__main__":
    unittest.main(verbosity=2)
