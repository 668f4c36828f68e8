"""
Tests for svsweep/datatypes.py and svsweep/cigar_parsing.py
"""

import unittest

from svsweep import cigar_parsing
from svsweep.datatypes import (
    AlignmentRecord,
    BreakendDirection,
    BreakendSummary,
    BreakpointSummary,
    CalledBreakpoint,
    CigarElement,
    CigarOp,
    ContigDictionary,
)

F = BreakendDirection.FORWARD
B = BreakendDirection.BACKWARD


class TestBreakendSummary(unittest.TestCase):
    def test_start_after_end_rejected(self):
        with self.assertRaises(ValueError):
            BreakendSummary(0, F, 10, 9)
        with self.assertRaises(ValueError):
            BreakpointSummary(0, F, 10, 10, 0, B, 20, 19)

    def test_precise(self):
        breakend = BreakendSummary.precise(0, F, 10)
        self.assertTrue(breakend.is_precise)
        self.assertEqual(breakend.width, 1)
        self.assertEqual(breakend.reachable_key, (0, 10))

    def test_overlaps(self):
        breakend = BreakendSummary(1, B, 10, 20)
        self.assertTrue(breakend.overlaps(1, 20, 30))
        self.assertTrue(breakend.overlaps(1, 1, 10))
        self.assertFalse(breakend.overlaps(1, 21, 30))
        self.assertFalse(breakend.overlaps(0, 10, 20))

    def test_breakpoint_halves(self):
        breakpoint = BreakpointSummary(0, F, 10, 12, 1, B, 50, 55)
        self.assertEqual(breakpoint.local_breakend(), BreakendSummary(0, F, 10, 12))
        self.assertEqual(breakpoint.remote_breakend(), BreakendSummary(1, B, 50, 55))
        self.assertEqual(
            breakpoint.remote_breakpoint(),
            BreakpointSummary(1, B, 50, 55, 0, F, 10, 12),
        )

    def test_low_and_high_breakend(self):
        breakpoint = BreakpointSummary(0, F, 10, 10, 0, B, 20, 20)
        self.assertTrue(breakpoint.is_low_breakend)
        self.assertTrue(breakpoint.remote_breakpoint().is_high_breakend)
        across = BreakpointSummary(1, F, 10, 10, 0, B, 20, 20)
        self.assertTrue(across.is_high_breakend)

    def test_low_breakend_tie(self):
        breakpoint = BreakpointSummary(0, F, 10, 10, 0, B, 10, 10)
        self.assertTrue(breakpoint.is_low_breakend)
        self.assertTrue(breakpoint.remote_breakpoint().is_high_breakend)


class TestContigDictionary(unittest.TestCase):
    def setUp(self):
        self.dictionary = ContigDictionary(["chr1", "chr2"], [100, 200])

    def test_lookup(self):
        self.assertEqual(self.dictionary.index("chr2"), 1)
        self.assertEqual(self.dictionary.name(0), "chr1")
        self.assertEqual(self.dictionary.length(1), 200)
        with self.assertRaises(KeyError):
            self.dictionary.index("chrM")

    def test_header_dict(self):
        header = self.dictionary.to_header_dict(sort_order="unsorted")
        self.assertEqual(header["HD"]["SO"], "unsorted")
        self.assertEqual(
            header["SQ"], [{"SN": "chr1", "LN": 100}, {"SN": "chr2", "LN": 200}]
        )

    def test_mismatched_lengths(self):
        with self.assertRaises(ValueError):
            ContigDictionary(["chr1"], [1, 2])


class TestCalledBreakpoint(unittest.TestCase):
    def test_filtered(self):
        breakpoint = BreakpointSummary(0, F, 10, 10, 0, B, 20, 20)
        self.assertFalse(CalledBreakpoint("c0", breakpoint).is_filtered)
        self.assertFalse(
            CalledBreakpoint("c0", breakpoint, filters=("PASS",)).is_filtered
        )
        self.assertTrue(
            CalledBreakpoint("c0", breakpoint, filters=("LOW_SUPPORT",)).is_filtered
        )


class TestCigarParsing(unittest.TestCase):
    def test_parse_cigar(self):
        cigar = cigar_parsing.parse_cigar("2M3I4D4M")
        self.assertEqual(
            cigar,
            (
                CigarElement(2, CigarOp.MATCH),
                CigarElement(3, CigarOp.INSERTION),
                CigarElement(4, CigarOp.DELETION),
                CigarElement(4, CigarOp.MATCH),
            ),
        )
        self.assertEqual(cigar_parsing.cigar_to_string(cigar), "2M3I4D4M")
        self.assertEqual(cigar_parsing.reference_length(cigar), 10)
        self.assertEqual(cigar_parsing.query_length(cigar), 9)

    def test_parse_unavailable_cigar(self):
        self.assertEqual(cigar_parsing.parse_cigar("*"), ())
        self.assertEqual(cigar_parsing.parse_cigar(""), ())

    def test_parse_malformed_cigar(self):
        with self.assertRaises(ValueError):
            cigar_parsing.parse_cigar("3Q")
        with self.assertRaises(ValueError):
            cigar_parsing.parse_cigar("M3")

    def test_placeholder_ops(self):
        cigar = cigar_parsing.parse_cigar("1X4N1X3S")
        self.assertEqual(cigar_parsing.reference_length(cigar), 6)
        self.assertEqual(cigar_parsing.query_length(cigar), 5)

    def test_cigartuples(self):
        cigar = cigar_parsing.parse_cigar("5S10M2I3D8=1X")
        tuples = cigar_parsing.to_cigartuples(cigar)
        self.assertEqual(tuples, [(4, 5), (0, 10), (1, 2), (2, 3), (7, 8), (8, 1)])
        self.assertEqual(cigar_parsing.from_cigartuples(tuples), cigar)
        self.assertEqual(cigar_parsing.from_cigartuples(None), ())

    def test_clip_lengths(self):
        self.assertEqual(
            cigar_parsing.clip_lengths(cigar_parsing.parse_cigar("3S10M2S")), (3, 2)
        )
        self.assertEqual(
            cigar_parsing.clip_lengths(cigar_parsing.parse_cigar("10M7S")), (0, 7)
        )
        self.assertEqual(
            cigar_parsing.clip_lengths(cigar_parsing.parse_cigar("10M")), (0, 0)
        )

    def test_derive_anchors_breakpoint(self):
        record = AlignmentRecord(
            read_name="asm0",
            reference_index=0,
            alignment_start=9,
            cigar=cigar_parsing.parse_cigar("2M3I4D4M"),
            bases="NNAAATTTT",
            quals=(0,) * 9,
        )
        self.assertEqual(cigar_parsing.derive_anchors(record), (None, 2, 4))
        self.assertEqual(record.alignment_end, 18)


if __name__ == "__main__":
    unittest.main()
