"""
Tests for svsweep/assembly/encoder.py
"""

import unittest

from svsweep.assembly.encoder import AssemblyEncoder
from svsweep.cigar_parsing import derive_anchors
from svsweep.datatypes import (
    BreakendDirection,
    BreakendSummary,
    BreakpointSummary,
    ContigDictionary,
    Degradation,
)
from svsweep.throttle import MessageThrottler

F = BreakendDirection.FORWARD
B = BreakendDirection.BACKWARD


def quals(bases, qual=30):
    return [qual] * len(bases)


class TestAssemblyEncoder(unittest.TestCase):
    def setUp(self):
        self.dictionary = ContigDictionary(["chr1", "chr2"], [100, 200])
        self.throttler = MessageThrottler()
        self.encoder = AssemblyEncoder(
            self.dictionary, min_mapq=10.2, throttler=self.throttler
        )

    def test_anchored_forward_breakend(self):
        record = self.encoder.anchored_breakend(
            F, 0, 10, 3, "ACGTACG", quals("ACGTACG")
        )
        self.assertEqual(record.alignment_start, 8)
        self.assertEqual(record.cigar_string, "3M4S")
        self.assertEqual(record.alignment_end, 10)
        self.assertEqual(record.direction, F)
        self.assertEqual(record.bases, "ACGTACG")

    def test_anchored_backward_breakend(self):
        record = self.encoder.anchored_breakend(
            B, 0, 10, 3, "ACGTACG", quals("ACGTACG")
        )
        self.assertEqual(record.alignment_start, 10)
        self.assertEqual(record.cigar_string, "4S3M")
        self.assertEqual(record.direction, B)

    def test_anchored_breakend_evidence_ids(self):
        record = self.encoder.anchored_breakend(
            F, 0, 10, 3, "ACGTACG", quals("ACGTACG"), evidence_ids=["r2", "r1"]
        )
        self.assertEqual(record.evidence_ids, ("r2", "r1"))
        default = self.encoder.anchored_breakend(
            F, 0, 10, 3, "ACGTACG", quals("ACGTACG")
        )
        self.assertEqual(default.evidence_ids, ())

    def test_anchored_breakpoint(self):
        record = self.encoder.anchored_breakpoint(
            0, 10, 2, 0, 15, 4, "NNAAATTTT", quals("NNAAATTTT")
        )
        self.assertEqual(record.alignment_start, 9)
        self.assertEqual(record.cigar_string, "2M3I4D4M")
        self.assertIsNone(record.direction)
        # Last anchored base sits on the remote breakend
        self.assertEqual(record.alignment_end, 18)

    def test_breakpoint_without_insertion_or_deletion(self):
        record = self.encoder.anchored_breakpoint(
            0, 10, 2, 0, 11, 3, "AACCC", quals("AACCC")
        )
        self.assertEqual(record.cigar_string, "2M3M")

    def test_mapping_quality_rounded_up(self):
        record = self.encoder.anchored_breakend(F, 0, 10, 1, "AC", quals("AC"))
        self.assertEqual(record.mapping_quality, 11)

    def test_read_names_sequential(self):
        first = self.encoder.anchored_breakend(F, 0, 10, 1, "AC", quals("AC"))
        second = self.encoder.anchored_breakend(F, 0, 20, 1, "AC", quals("AC"))
        self.assertEqual(first.read_name, "asm0")
        self.assertEqual(second.read_name, "asm1")

    def test_unanchored_imprecise_forward(self):
        breakend = BreakendSummary(0, F, 5, 10)
        record = self.encoder.unanchored_breakend(breakend, "ACG", [30, 31, 32])
        self.assertEqual(record.cigar_string, "1X4N1X3S")
        self.assertEqual(record.alignment_start, 5)
        self.assertEqual(record.alignment_end, 10)
        self.assertEqual(record.bases, "NNACG")
        self.assertEqual(record.quals, (0, 0, 30, 31, 32))
        self.assertEqual(record.direction, F)

    def test_unanchored_imprecise_backward(self):
        breakend = BreakendSummary(0, B, 5, 10)
        record = self.encoder.unanchored_breakend(breakend, "ACG", [30, 31, 32])
        self.assertEqual(record.cigar_string, "3S1X4N1X")
        self.assertEqual(record.alignment_start, 5)
        self.assertEqual(record.alignment_end, 10)
        self.assertEqual(record.bases, "ACGNN")
        self.assertEqual(record.quals, (30, 31, 32, 0, 0))

    def test_unanchored_placeholder_is_minimal(self):
        cases = [
            (BreakendSummary.precise(0, F, 5), "1X3S", "NACG"),
            (BreakendSummary(0, F, 5, 6), "2X3S", "NNACG"),
            (BreakendSummary(0, F, 5, 7), "1X1N1X3S", "NNACG"),
        ]
        for breakend, cigar, bases in cases:
            record = self.encoder.unanchored_breakend(breakend, "ACG", quals("ACG"))
            self.assertEqual(record.cigar_string, cigar)
            self.assertEqual(record.bases, bases)
            self.assertEqual(record.query_length, len(record.bases))

    def test_unanchored_contig_edges(self):
        record = self.encoder.unanchored_breakend(
            BreakendSummary(0, F, 1, 3), "ACGT", quals("ACGT")
        )
        self.assertEqual(record.cigar_string, "1X1N1X4S")
        self.assertEqual(record.alignment_start, 1)

        record = self.encoder.unanchored_breakend(
            BreakendSummary(0, B, 10, 20), "ACGT", quals("ACGT")
        )
        self.assertEqual(record.cigar_string, "4S1X9N1X")
        self.assertEqual(record.alignment_end, 20)

    def test_unanchored_breakpoint_uses_local_breakend(self):
        breakpoint = BreakpointSummary(0, F, 5, 10, 1, B, 50, 60)
        record = self.encoder.unanchored_breakend(breakpoint, "ACG", quals("ACG"))
        self.assertEqual(record.reference_index, 0)
        self.assertEqual(record.cigar_string, "1X4N1X3S")
        self.assertEqual(record.direction, F)

    def test_negative_deletion_degrades_to_breakend(self):
        breakpoint = BreakpointSummary(0, F, 15, 15, 0, B, 10, 10)
        result = self.encoder.encode_result(
            breakpoint, 2, 3, "ACGTACGT", quals("ACGTACGT")
        )
        self.assertEqual(result.degradations, (Degradation.NEGATIVE_DELETION,))
        self.assertEqual(result.record.cigar_string, "2M6S")
        self.assertEqual(result.record.alignment_start, 14)
        self.assertEqual(result.record.direction, F)

    def test_cross_contig_breakpoint_degrades_to_breakend(self):
        breakpoint = BreakpointSummary(0, F, 10, 10, 1, B, 20, 20)
        result = self.encoder.encode_result(
            breakpoint, 2, 3, "ACGTACGT", quals("ACGTACGT")
        )
        self.assertTrue(result.is_degraded)
        self.assertEqual(
            result.degradations, (Degradation.CROSS_CONTIG_BREAKPOINT,)
        )
        self.assertEqual(result.record.cigar_string, "2M6S")

    def test_degradation_warnings_throttled(self):
        breakpoint = BreakpointSummary(0, F, 10, 10, 1, B, 20, 20)
        with self.assertLogs("svsweep.assembly.encoder", level="WARNING") as cm:
            for _ in range(3):
                self.encoder.encode(breakpoint, 2, 3, "ACGTACGT", quals("ACGTACGT"))
        self.assertEqual(len(cm.output), 1)
        self.assertEqual(
            self.throttler.suppressed(), {Degradation.CROSS_CONTIG_BREAKPOINT.value: 2}
        )

    def test_imprecise_anchored_breakend_rejected(self):
        with self.assertRaises(ValueError):
            self.encoder.encode(BreakendSummary(0, F, 5, 10), 2, 0, "ACGT", quals("ACGT"))

    def test_imprecise_remote_breakend_rejected(self):
        breakpoint = BreakpointSummary(0, F, 10, 10, 0, B, 20, 25)
        with self.assertRaises(ValueError):
            self.encoder.encode(breakpoint, 2, 2, "ACGT", quals("ACGT"))

    def test_breakpoint_requires_both_anchors(self):
        with self.assertRaises(ValueError):
            self.encoder.anchored_breakpoint(0, 10, 0, 0, 15, 4, "ACGT", quals("ACGT"))

    def test_invalid_anchor_counts_rejected(self):
        breakend = BreakendSummary.precise(0, F, 10)
        with self.assertRaises(ValueError):
            self.encoder.encode(breakend, -1, 0, "ACGT", quals("ACGT"))
        with self.assertRaises(ValueError):
            self.encoder.encode(breakend, 5, 0, "ACGT", quals("ACGT"))
        with self.assertRaises(ValueError):
            self.encoder.encode(breakend, 2, 0, "ACGT", [30])

    def test_anchor_on_wrong_side_rejected(self):
        with self.assertRaises(ValueError):
            self.encoder.encode(
                BreakendSummary.precise(0, B, 10), 2, 0, "ACGT", quals("ACGT")
            )
        with self.assertRaises(ValueError):
            self.encoder.encode(
                BreakendSummary.precise(0, F, 10), 0, 2, "ACGT", quals("ACGT")
            )

    def test_truncate_start(self):
        result = self.encoder.encode_result(
            BreakendSummary.precise(0, F, 2), 3, 0, "ACGTACG", quals("ACGTACG")
        )
        self.assertFalse(result.is_degraded)
        self.assertEqual(result.record.alignment_start, 1)
        self.assertEqual(result.record.cigar_string, "2M4S")
        self.assertEqual(result.record.bases, "CGTACG")
        self.assertEqual(len(result.record.quals), 6)

    def test_truncate_start_unrecoverable(self):
        breakend = BreakendSummary(0, F, -5, 10)
        result = self.encoder.encode_result(breakend, 0, 0, "ACG", quals("ACG"))
        self.assertEqual(result.degradations, (Degradation.TRUNCATE_START,))
        self.assertEqual(result.record.cigar_string, "1X14N1X3S")
        self.assertEqual(result.record.alignment_start, -5)
        self.assertEqual(result.record.bases, "NNACG")

        with self.assertLogs("svsweep.assembly.encoder", level="WARNING") as cm:
            for _ in range(2):
                self.encoder.encode(breakend, 0, 0, "ACG", quals("ACG"))
        self.assertEqual(len(cm.output), 1)
        self.assertIn("truncate start", cm.output[0])
        self.assertEqual(
            self.throttler.suppressed(), {Degradation.TRUNCATE_START.value: 1}
        )

    def test_truncate_start_never_empties_leading_operator(self):
        # Breakend at position 0 leaves no reference base for the anchor
        result = self.encoder.encode_result(
            BreakendSummary.precise(0, F, 0), 2, 0, "ACGTAC", quals("ACGTAC")
        )
        self.assertEqual(result.degradations, (Degradation.TRUNCATE_START,))
        self.assertEqual(result.record.cigar_string, "2M4S")
        self.assertEqual(result.record.alignment_start, -1)
        self.assertEqual(result.record.bases, "ACGTAC")

    def test_truncate_end(self):
        result = self.encoder.encode_result(
            BreakendSummary.precise(0, B, 99), 0, 3, "ACGTACG", quals("ACGTACG")
        )
        self.assertFalse(result.is_degraded)
        self.assertEqual(result.record.cigar_string, "4S2M")
        self.assertEqual(result.record.alignment_end, 100)
        self.assertEqual(result.record.bases, "ACGTAC")

    def test_truncate_end_unrecoverable(self):
        breakpoint = BreakpointSummary(0, F, 95, 95, 0, B, 102, 102)
        result = self.encoder.encode_result(
            breakpoint, 2, 2, "ACGT", quals("ACGT")
        )
        self.assertEqual(result.degradations, (Degradation.TRUNCATE_END,))
        self.assertEqual(result.record.cigar_string, "2M6D2M")
        self.assertEqual(result.record.alignment_end, 103)

    def test_truncation_idempotent(self):
        result = self.encoder.encode_result(
            BreakendSummary.precise(0, F, 2), 3, 0, "ACGTACG", quals("ACGTACG")
        )
        again = self.encoder.truncate_to_contig_bounds(result.record)
        self.assertEqual(again.record, result.record)
        self.assertFalse(again.is_degraded)

    def test_anchors_recoverable_from_record(self):
        forward = self.encoder.anchored_breakend(F, 0, 10, 3, "ACGTACG", quals("ACGTACG"))
        backward = self.encoder.anchored_breakend(B, 0, 10, 3, "ACGTACG", quals("ACGTACG"))
        breakpoint = self.encoder.anchored_breakpoint(
            0, 10, 2, 0, 15, 4, "NNAAATTTT", quals("NNAAATTTT")
        )
        unanchored = self.encoder.unanchored_breakend(
            BreakendSummary(0, B, 5, 10), "ACG", quals("ACG")
        )
        self.assertEqual(derive_anchors(forward), (F, 3, 0))
        self.assertEqual(derive_anchors(backward), (B, 0, 3))
        self.assertEqual(derive_anchors(breakpoint), (None, 2, 4))
        self.assertEqual(derive_anchors(unanchored), (B, 0, 0))

    def test_records_are_consistent(self):
        records = [
            self.encoder.anchored_breakend(F, 0, 50, 4, "ACGTAC", quals("ACGTAC")),
            self.encoder.anchored_breakpoint(
                0, 10, 2, 0, 15, 4, "NNAAATTTT", quals("NNAAATTTT")
            ),
            self.encoder.unanchored_breakend(
                BreakendSummary(1, B, 30, 40), "ACG", quals("ACG")
            ),
        ]
        for record in records:
            self.assertEqual(record.query_length, len(record.bases))
            self.assertEqual(len(record.bases), len(record.quals))
            self.assertTrue(all(e.length > 0 for e in record.cigar))
            self.assertTrue(any(e.op.consumes_reference for e in record.cigar))
            self.assertGreaterEqual(record.alignment_start, 1)


if __name__ == "__main__":
    unittest.main()
