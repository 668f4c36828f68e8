"""Conversion of assembly records to and from pysam alignments."""

from __future__ import annotations

import array
import logging
import pathlib
from typing import Iterable

import pysam

from svsweep.cigar_parsing import from_cigartuples, to_cigartuples
from svsweep.datatypes import AlignmentRecord, BreakendDirection, ContigDictionary

logger = logging.getLogger(__name__)

DIRECTION_TAG = "bd"
EVIDENCE_TAG = "ev"


def to_aligned_segment(
    record: AlignmentRecord, header: pysam.AlignmentHeader
) -> pysam.AlignedSegment:
    segment = pysam.AlignedSegment(header)
    segment.query_name = record.read_name
    segment.query_sequence = record.bases
    segment.flag = 0
    segment.reference_id = record.reference_index
    segment.reference_start = record.alignment_start - 1
    segment.mapping_quality = record.mapping_quality
    segment.cigartuples = to_cigartuples(record.cigar)
    segment.query_qualities = array.array("B", record.quals)
    if record.direction is not None:
        segment.set_tag(DIRECTION_TAG, record.direction.value, value_type="A")
    if record.evidence_ids:
        segment.set_tag(EVIDENCE_TAG, ",".join(record.evidence_ids), value_type="Z")
    return segment


def from_aligned_segment(segment: pysam.AlignedSegment) -> AlignmentRecord:
    direction = (
        BreakendDirection(segment.get_tag(DIRECTION_TAG))
        if segment.has_tag(DIRECTION_TAG)
        else None
    )
    evidence_ids = (
        tuple(str(segment.get_tag(EVIDENCE_TAG)).split(","))
        if segment.has_tag(EVIDENCE_TAG)
        else ()
    )
    quals = segment.query_qualities
    return AlignmentRecord(
        read_name=segment.query_name,
        reference_index=segment.reference_id,
        alignment_start=segment.reference_start + 1,
        cigar=from_cigartuples(segment.cigartuples),
        bases=segment.query_sequence or "",
        quals=tuple(quals) if quals is not None else (),
        mapping_quality=segment.mapping_quality,
        direction=direction,
        evidence_ids=evidence_ids,
    )


def write_bam(
    records: Iterable[AlignmentRecord],
    dictionary: ContigDictionary,
    bam_path: pathlib.Path,
) -> int:
    """Write records to a coordinate sorted and indexed BAM file."""
    unsorted_path = bam_path.with_name(f"svsweep.unsorted.{bam_path.name}")
    header = pysam.AlignmentHeader.from_dict(
        dictionary.to_header_dict(sort_order="unsorted")
    )
    count = 0
    with pysam.AlignmentFile(str(unsorted_path), "wb", header=header) as bam:
        for record in records:
            bam.write(to_aligned_segment(record, header))
            count += 1
    pysam.sort("-o", str(bam_path), str(unsorted_path))
    pysam.index(str(bam_path))
    unsorted_path.unlink()
    logger.info(f"Wrote {count} assembly records to {bam_path}")
    return count
