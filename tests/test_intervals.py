"""
Tests for svsweep/intervals.py, svsweep/ids.py and svsweep/throttle.py
"""

import logging
import unittest

from svsweep.datatypes import BreakendDirection, BreakendSummary, ContigDictionary, QueryInterval
from svsweep.ids import SequentialIdGenerator
from svsweep.intervals import IntervalFilter, merge_intervals, pad_intervals, parse_region
from svsweep.throttle import MessageThrottler


class TestIntervals(unittest.TestCase):
    def setUp(self):
        self.dictionary = ContigDictionary(["chr1", "chr2"], [1000, 500])

    def test_parse_region(self):
        self.assertEqual(
            parse_region("chr2:10-1,000", self.dictionary), QueryInterval(1, 10, 1000)
        )
        self.assertEqual(parse_region("chr1", self.dictionary), QueryInterval(0, 1, 1000))
        with self.assertRaises(ValueError):
            parse_region("chr1:20-10", self.dictionary)
        with self.assertRaises(KeyError):
            parse_region("chrX:1-10", self.dictionary)

    def test_merge_intervals(self):
        merged = merge_intervals(
            [
                QueryInterval(0, 50, 60),
                QueryInterval(0, 10, 20),
                QueryInterval(0, 21, 30),
                QueryInterval(1, 15, 25),
                QueryInterval(0, 55, 70),
            ]
        )
        self.assertEqual(
            merged,
            [
                QueryInterval(0, 10, 30),
                QueryInterval(0, 50, 70),
                QueryInterval(1, 15, 25),
            ],
        )

    def test_pad_intervals_by_fragment_size(self):
        # Maximum concordant fragment size of 75
        padded = pad_intervals(self.dictionary, [QueryInterval(0, 200, 300)], 76)
        self.assertEqual(padded, [QueryInterval(0, 124, 376)])

    def test_pad_intervals_clipped_to_contig(self):
        padded = pad_intervals(
            self.dictionary,
            [QueryInterval(1, 10, 20), QueryInterval(1, 450, 490)],
            50,
        )
        self.assertEqual(padded, [QueryInterval(1, 1, 70), QueryInterval(1, 400, 500)])

    def test_interval_filter(self):
        interval_filter = IntervalFilter([QueryInterval(0, 100, 200)])
        self.assertTrue(interval_filter.overlaps(0, 200, 210))
        self.assertTrue(interval_filter.overlaps(0, 90, 100))
        self.assertFalse(interval_filter.overlaps(0, 201, 210))
        self.assertFalse(interval_filter.overlaps(1, 100, 200))
        self.assertTrue(
            interval_filter.overlaps_breakend(
                BreakendSummary(0, BreakendDirection.FORWARD, 50, 100)
            )
        )


class TestSequentialIdGenerator(unittest.TestCase):
    def test_generate(self):
        generator = SequentialIdGenerator("svsweep")
        self.assertEqual(
            [generator.generate() for _ in range(3)],
            ["svsweep0", "svsweep1", "svsweep2"],
        )

    def test_for_interval(self):
        generator = SequentialIdGenerator.for_interval("svsweep", 3)
        self.assertEqual(generator.generate(), "svsweep3_0")


class TestMessageThrottler(unittest.TestCase):
    def test_throttles_per_class(self):
        throttler = MessageThrottler()
        log = logging.getLogger("svsweep.test")
        with self.assertLogs(log, level="WARNING") as cm:
            self.assertTrue(throttler.warn(log, "a", "first a"))
            self.assertFalse(throttler.warn(log, "a", "second a"))
            self.assertTrue(throttler.warn(log, "b", "first b"))
        self.assertEqual(len(cm.output), 2)
        self.assertEqual(throttler.suppressed(), {"a": 1})

    def test_log_summary(self):
        throttler = MessageThrottler(max_per_class=2)
        for _ in range(5):
            throttler.should_suppress("x")
        log = logging.getLogger("svsweep.test")
        with self.assertLogs(log, level="INFO") as cm:
            throttler.log_summary(log)
        self.assertIn("Suppressed 3 further 'x' messages", cm.output[0])


if __name__ == "__main__":
    unittest.main()
