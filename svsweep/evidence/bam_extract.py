"""Extract directed breakend evidence from aligned short reads.

Three kinds of evidence are produced:
    * soft clips, as single breakend evidence at the clipped alignment edge,
    * CIGAR insertions and deletions, as breakpoint evidence spanning the
      event,
    * discordantly aligned read pairs, as imprecise breakpoint evidence whose
      intervals cover every position the fragment could have been joined at.
      Pairs with an unmapped mate only support the local breakend.
"""

from __future__ import annotations

import logging
import pathlib
from collections import defaultdict
from typing import Iterator, Sequence

import pysam

from svsweep.cigar_parsing import clip_lengths, from_cigartuples
from svsweep.config import ExtractionParameters
from svsweep.datatypes import (
    BreakendDirection,
    BreakendSummary,
    BreakpointSummary,
    CigarOp,
    ContigDictionary,
    DirectedEvidence,
    EvidenceKind,
    QueryInterval,
)
from svsweep.intervals import merge_intervals

logger = logging.getLogger(__name__)


def should_skip_read(read: pysam.AlignedSegment, min_mapq: int) -> bool:
    return (
        read.is_unmapped
        or read.is_secondary
        or read.is_supplementary
        or read.is_duplicate
        or read.is_qcfail
        or read.mapping_quality < min_mapq
    )


def read_label(read: pysam.AlignedSegment) -> str:
    segment = 2 if read.is_paired and read.is_read2 else 1
    return f"{read.query_name}/{segment}"


def _quals(read: pysam.AlignedSegment, start: int, end: int) -> tuple[int, ...]:
    if read.query_qualities is None:
        return ()
    return tuple(read.query_qualities[start:end])


def soft_clip_evidence(
    read: pysam.AlignedSegment,
    min_clip_length: int,
    source: str = "",
) -> list[DirectedEvidence]:
    cigar = from_cigartuples(read.cigartuples)
    start_clip, end_clip = clip_lengths(cigar)
    sequence = read.query_sequence or ""
    read_length = len(sequence)
    anchor_end = read_length - end_clip
    evidence = []
    if end_clip >= min_clip_length:
        evidence.append(
            DirectedEvidence(
                evidence_id=f"{read_label(read)}#{EvidenceKind.SOFT_CLIP}f",
                kind=EvidenceKind.SOFT_CLIP,
                # pysam reference_end is the 1-based position of the last
                # aligned base
                breakend=BreakendSummary.precise(
                    read.reference_id, BreakendDirection.FORWARD, read.reference_end
                ),
                source=source,
                mapq=read.mapping_quality,
                breakend_sequence=sequence[anchor_end:],
                breakend_quality=_quals(read, anchor_end, read_length),
                anchor_sequence=sequence[start_clip:anchor_end],
                anchor_quality=_quals(read, start_clip, anchor_end),
            )
        )
    if start_clip >= min_clip_length:
        evidence.append(
            DirectedEvidence(
                evidence_id=f"{read_label(read)}#{EvidenceKind.SOFT_CLIP}b",
                kind=EvidenceKind.SOFT_CLIP,
                breakend=BreakendSummary.precise(
                    read.reference_id,
                    BreakendDirection.BACKWARD,
                    read.reference_start + 1,
                ),
                source=source,
                mapq=read.mapping_quality,
                breakend_sequence=sequence[:start_clip],
                breakend_quality=_quals(read, 0, start_clip),
                anchor_sequence=sequence[start_clip:anchor_end],
                anchor_quality=_quals(read, start_clip, anchor_end),
            )
        )
    return evidence


def indel_evidence(
    read: pysam.AlignedSegment,
    min_indel_size: int,
    source: str = "",
) -> list[DirectedEvidence]:
    """Breakpoint evidence for each large insertion or deletion in the read.

    The local breakend sits on the last reference base before the event, the
    remote breakend on the first reference base after it.
    """
    sequence = read.query_sequence or ""
    reference_position = read.reference_start  # 0-based next reference base
    query_position = 0
    anchor_start = 0
    evidence = []
    for element in from_cigartuples(read.cigartuples):
        if element.op == CigarOp.SOFT_CLIP and query_position == 0:
            anchor_start = element.length
        is_event = element.op in (CigarOp.INSERTION, CigarOp.DELETION)
        if is_event and element.length >= min_indel_size:
            inserted = (
                sequence[query_position : query_position + element.length]
                if element.op == CigarOp.INSERTION
                else ""
            )
            skipped = element.length if element.op == CigarOp.DELETION else 0
            breakpoint = BreakpointSummary.from_breakends(
                BreakendSummary.precise(
                    read.reference_id,
                    BreakendDirection.FORWARD,
                    reference_position,
                ),
                BreakendSummary.precise(
                    read.reference_id,
                    BreakendDirection.BACKWARD,
                    reference_position + skipped + 1,
                ),
            )
            evidence.append(
                DirectedEvidence(
                    evidence_id=(
                        f"{read_label(read)}#{EvidenceKind.INDEL}"
                        f"{reference_position}"
                    ),
                    kind=EvidenceKind.INDEL,
                    breakend=breakpoint,
                    source=source,
                    mapq=read.mapping_quality,
                    breakend_sequence=inserted,
                    breakend_quality=_quals(
                        read, query_position, query_position + len(inserted)
                    ),
                    anchor_sequence=sequence[anchor_start:query_position],
                    anchor_quality=_quals(read, anchor_start, query_position),
                )
            )
        if element.op.consumes_reference:
            reference_position += element.length
        if element.op.consumes_query:
            query_position += element.length
    return evidence


def _pair_breakend(
    reference_index: int,
    is_reverse: bool,
    aligned_start: int,
    aligned_end: int,
    reach: int,
    contig_length: int,
) -> BreakendSummary:
    """Interval of breakend positions consistent with one read of a pair."""
    if is_reverse:
        return BreakendSummary(
            reference_index,
            BreakendDirection.BACKWARD,
            max(1, aligned_start - reach),
            aligned_start,
        )
    return BreakendSummary(
        reference_index,
        BreakendDirection.FORWARD,
        aligned_end,
        max(aligned_end, min(contig_length, aligned_end + reach)),
    )


def is_discordant(
    read: pysam.AlignedSegment, max_concordant_fragment_size: int
) -> bool:
    if not read.is_paired:
        return False
    if read.mate_is_unmapped:
        return True
    return (
        read.next_reference_id != read.reference_id
        or read.is_reverse == read.mate_is_reverse
        or abs(read.template_length) > max_concordant_fragment_size
    )


def discordant_pair_evidence(
    read: pysam.AlignedSegment,
    dictionary: ContigDictionary,
    max_concordant_fragment_size: int,
    source: str = "",
) -> DirectedEvidence | None:
    if not is_discordant(read, max_concordant_fragment_size):
        return None
    read_length = read.query_length or read.infer_read_length() or 0
    reach = max(0, max_concordant_fragment_size - read_length)
    local = _pair_breakend(
        read.reference_id,
        read.is_reverse,
        read.reference_start + 1,
        read.reference_end,
        reach,
        dictionary.length(read.reference_id),
    )
    breakend: BreakendSummary = local
    if not read.mate_is_unmapped:
        mate_start = read.next_reference_start + 1
        # Mate CIGAR is unknown; assume the mate aligns over its full length
        mate_end = mate_start + read_length - 1
        remote = _pair_breakend(
            read.next_reference_id,
            read.mate_is_reverse,
            mate_start,
            min(mate_end, dictionary.length(read.next_reference_id)),
            reach,
            dictionary.length(read.next_reference_id),
        )
        breakend = BreakpointSummary.from_breakends(local, remote)
    return DirectedEvidence(
        evidence_id=f"{read_label(read)}#{EvidenceKind.DISCORDANT_PAIR}",
        kind=EvidenceKind.DISCORDANT_PAIR,
        breakend=breakend,
        source=source,
        mapq=read.mapping_quality,
    )


def extract_read_evidence(
    read: pysam.AlignedSegment,
    dictionary: ContigDictionary,
    parameters: ExtractionParameters,
    max_concordant_fragment_size: int,
    source: str = "",
) -> list[DirectedEvidence]:
    if should_skip_read(read, parameters.min_mapq):
        return []
    evidence = soft_clip_evidence(read, parameters.min_clip_length, source)
    evidence.extend(indel_evidence(read, parameters.min_indel_size, source))
    pair = discordant_pair_evidence(
        read, dictionary, max_concordant_fragment_size, source
    )
    if pair is not None:
        evidence.append(pair)
    return evidence


class BamEvidenceSource:
    """Evidence source backed by a coordinate sorted, indexed BAM file.

    Evidence is materialized one contig at a time and sorted by breakend
    start before being streamed.
    """

    def __init__(
        self,
        bam_path: pathlib.Path,
        parameters: ExtractionParameters | None = None,
        max_concordant_fragment_size: int = 500,
    ) -> None:
        self.bam_path = bam_path
        self.parameters = parameters or ExtractionParameters()
        self._max_concordant_fragment_size = max_concordant_fragment_size
        with pysam.AlignmentFile(str(bam_path), "rb") as bam:
            self.dictionary = ContigDictionary.from_alignment_header(bam.header)

    @property
    def max_concordant_fragment_size(self) -> int:
        return self._max_concordant_fragment_size

    def _intervals_by_contig(
        self, intervals: Sequence[QueryInterval] | None
    ) -> dict[int, list[QueryInterval]]:
        if intervals is None:
            intervals = [
                QueryInterval(idx, 1, self.dictionary.length(idx))
                for idx in range(len(self.dictionary))
            ]
        by_contig: dict[int, list[QueryInterval]] = defaultdict(list)
        for interval in merge_intervals(intervals):
            by_contig[interval.reference_index].append(interval)
        return by_contig

    def iterator(
        self, intervals: Sequence[QueryInterval] | None = None
    ) -> Iterator[DirectedEvidence]:
        source = self.bam_path.name
        with pysam.AlignmentFile(str(self.bam_path), "rb") as bam:
            for reference_index, contig_intervals in sorted(
                self._intervals_by_contig(intervals).items()
            ):
                contig_evidence: dict[str, DirectedEvidence] = {}
                for interval in contig_intervals:
                    for read in bam.fetch(
                        self.dictionary.name(reference_index),
                        interval.start - 1,
                        interval.end,
                    ):
                        for evidence in extract_read_evidence(
                            read,
                            self.dictionary,
                            self.parameters,
                            self.max_concordant_fragment_size,
                            source,
                        ):
                            # Reads spanning two query intervals are fetched twice
                            contig_evidence[evidence.evidence_id] = evidence
                logger.debug(
                    f"Extracted {len(contig_evidence)} evidence from "
                    f"{self.dictionary.name(reference_index)}"
                )
                yield from sorted(
                    contig_evidence.values(), key=lambda e: e.start_key
                )
