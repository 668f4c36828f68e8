"""Encode assembled contigs as reference-anchored alignment records.

Three layouts are produced depending on how the contig is anchored:

    both anchored (breakpoint):   start M, [insertion I], [deletion D], end M
    one side anchored (breakend): M then S (forward), or S then M (backward)
    unanchored (breakend):        placeholder X[N]X block then S (forward),
                                  or S then the placeholder block (backward)

SAM records need at least one reference-consuming operation, hence the
placeholder block spanning the candidate interval of unanchored breakends.
Every record is finally truncated so it never extends past its contig.
"""

from __future__ import annotations

import dataclasses
import logging
import math
from typing import Iterable, Sequence

from svsweep import core_types, global_state
from svsweep.datatypes import (
    AlignmentRecord,
    AssembledContig,
    BreakendDirection,
    BreakendSummary,
    BreakpointSummary,
    CigarElement,
    CigarOp,
    ContigDictionary,
    Degradation,
    EncodeResult,
)
from svsweep.ids import IdGenerator, SequentialIdGenerator
from svsweep.throttle import MessageThrottler

logger = logging.getLogger(__name__)

PAD_BASES = ("", "N", "NN")
PAD_QUALS: tuple[tuple[int, ...], ...] = ((), (0,), (0, 0))


def _element(length: int, op: CigarOp) -> list[CigarElement]:
    return [CigarElement(length, op)] if length else []


class AssemblyEncoder:
    """Builds alignment records for assemblies against a reference."""

    def __init__(
        self,
        dictionary: ContigDictionary,
        id_generator: IdGenerator | None = None,
        min_mapq: float = 0.0,
        throttler: MessageThrottler | None = None,
    ) -> None:
        self.dictionary = dictionary
        self.id_generator = id_generator or SequentialIdGenerator("asm")
        # Default to the minimum mapping quality that is still valid
        self.mapping_quality = math.ceil(min_mapq)
        self.throttler = throttler or global_state.STATE_PROVIDER.throttler

    def encode(
        self,
        breakend: BreakendSummary,
        start_anchor_count: int,
        end_anchor_count: int,
        bases: str,
        quals: Sequence[int],
        evidence_ids: Iterable[core_types.EvidenceId] = (),
    ) -> AlignmentRecord:
        """Encode an assembly, logging any geometry fallbacks taken."""
        result = self.encode_result(
            breakend,
            start_anchor_count,
            end_anchor_count,
            bases,
            quals,
            evidence_ids,
        )
        self.log_degradations(result)
        return result.record

    def encode_contig(self, contig: AssembledContig) -> AlignmentRecord:
        return self.encode(
            contig.breakend,
            contig.start_anchor_count,
            contig.end_anchor_count,
            contig.bases,
            contig.quals,
            sorted(contig.evidence_ids),
        )

    def encode_result(
        self,
        breakend: BreakendSummary,
        start_anchor_count: int,
        end_anchor_count: int,
        bases: str,
        quals: Sequence[int],
        evidence_ids: Iterable[core_types.EvidenceId] = (),
    ) -> EncodeResult:
        """Encode an assembly without logging.

        Args:
            breakend: Breakend, or breakpoint when both ends are anchored.
            start_anchor_count: Number of leading bases aligned to the
                reference.
            end_anchor_count: Number of trailing bases aligned to the
                reference.
            bases: Assembly base sequence as per a positive strand read.
            quals: Per-base phred qualities.
            evidence_ids: Identifiers of the supporting evidence.

        Returns:
            The record and the fallbacks, if any, needed to produce it.

        Raises:
            ValueError: if the anchor counts are inconsistent with the
                sequence or the breakend.
        """
        if start_anchor_count < 0 or end_anchor_count < 0:
            raise ValueError(
                f"Anchor counts must be non-negative, got "
                f"{start_anchor_count} and {end_anchor_count}"
            )
        if start_anchor_count + end_anchor_count > len(bases):
            raise ValueError(
                f"{start_anchor_count + end_anchor_count} anchored bases "
                f"exceed assembly length {len(bases)}"
            )
        if len(bases) != len(quals):
            raise ValueError(
                f"Assembly has {len(bases)} bases but {len(quals)} qualities"
            )
        record, degradations = self._build_record(
            self.id_generator.generate(),
            breakend,
            start_anchor_count,
            end_anchor_count,
            bases,
            tuple(quals),
            tuple(evidence_ids),
        )
        truncated = self.truncate_to_contig_bounds(record)
        return EncodeResult(
            truncated.record, degradations + truncated.degradations
        )

    def anchored_breakend(
        self,
        direction: BreakendDirection,
        reference_index: core_types.ContigIdx,
        position: int,
        anchored_base_count: int,
        bases: str,
        quals: Sequence[int],
        evidence_ids: Iterable[core_types.EvidenceId] = (),
    ) -> AlignmentRecord:
        """Assembly anchored at `position`, the anchor base closest to the
        breakend."""
        breakend = BreakendSummary.precise(reference_index, direction, position)
        return self.encode(
            breakend,
            anchored_base_count if direction.is_forward else 0,
            anchored_base_count if direction.is_backward else 0,
            bases,
            quals,
            evidence_ids,
        )

    def anchored_breakpoint(
        self,
        start_reference_index: core_types.ContigIdx,
        start_position: int,
        start_anchor_count: int,
        end_reference_index: core_types.ContigIdx,
        end_position: int,
        end_anchor_count: int,
        bases: str,
        quals: Sequence[int],
        evidence_ids: Iterable[core_types.EvidenceId] = (),
    ) -> AlignmentRecord:
        if start_anchor_count <= 0 or end_anchor_count <= 0:
            raise ValueError("Breakpoint assemblies must be anchored at both ends")
        breakpoint = BreakpointSummary(
            start_reference_index,
            BreakendDirection.FORWARD,
            start_position,
            start_position,
            end_reference_index,
            BreakendDirection.BACKWARD,
            end_position,
            end_position,
        )
        return self.encode(
            breakpoint,
            start_anchor_count,
            end_anchor_count,
            bases,
            quals,
            evidence_ids,
        )

    def unanchored_breakend(
        self,
        breakend: BreakendSummary,
        bases: str,
        quals: Sequence[int],
        evidence_ids: Iterable[core_types.EvidenceId] = (),
    ) -> AlignmentRecord:
        """Assembly whose breakend cannot be exactly anchored to the
        reference."""
        return self.encode(breakend, 0, 0, bases, quals, evidence_ids)

    def _build_record(
        self,
        read_name: str,
        breakend: BreakendSummary,
        start_anchor_count: int,
        end_anchor_count: int,
        bases: str,
        quals: tuple[int, ...],
        evidence_ids: tuple[core_types.EvidenceId, ...],
    ) -> tuple[AlignmentRecord, tuple[Degradation, ...]]:
        is_breakpoint = False
        if start_anchor_count == 0 and end_anchor_count == 0:
            # Breakpoints require anchors, only the local side can be placed
            breakend = breakend.local_breakend()
            alignment_start, cigar, bases, quals = self._placeholder_layout(
                breakend, bases, quals
            )
        else:
            if not breakend.is_precise:
                raise ValueError(
                    "Imprecisely anchored breakends not supported by this "
                    f"constructor: {breakend}"
                )
            if start_anchor_count > 0 and end_anchor_count > 0:
                if not isinstance(breakend, BreakpointSummary):
                    raise ValueError(
                        "Assemblies anchored at both ends require a breakpoint"
                    )
                fallback = self._breakpoint_fallback(breakend)
                if fallback is not None:
                    record, degradations = self._build_record(
                        read_name,
                        breakend.local_breakend(),
                        start_anchor_count,
                        0,
                        bases,
                        quals,
                        evidence_ids,
                    )
                    return record, (fallback,) + degradations
                # Breakpoint alignment spanning the entire event
                is_breakpoint = True
                insert_size = len(bases) - start_anchor_count - end_anchor_count
                delete_size = breakend.start2 - breakend.start - 1
                alignment_start = breakend.start - start_anchor_count + 1
                cigar = (
                    _element(start_anchor_count, CigarOp.MATCH)
                    + _element(insert_size, CigarOp.INSERTION)
                    + _element(delete_size, CigarOp.DELETION)
                    + _element(end_anchor_count, CigarOp.MATCH)
                )
            elif start_anchor_count > 0:
                if breakend.direction != BreakendDirection.FORWARD:
                    raise ValueError(
                        "Start anchored breakend assemblies must be forward"
                    )
                alignment_start = breakend.start - start_anchor_count + 1
                cigar = _element(start_anchor_count, CigarOp.MATCH) + _element(
                    len(bases) - start_anchor_count, CigarOp.SOFT_CLIP
                )
            else:
                if breakend.direction != BreakendDirection.BACKWARD:
                    raise ValueError(
                        "End anchored breakend assemblies must be backward"
                    )
                alignment_start = breakend.start
                cigar = _element(
                    len(bases) - end_anchor_count, CigarOp.SOFT_CLIP
                ) + _element(end_anchor_count, CigarOp.MATCH)
        record = AlignmentRecord(
            read_name=read_name,
            reference_index=breakend.reference_index,
            alignment_start=alignment_start,
            cigar=tuple(cigar),
            bases=bases,
            quals=quals,
            mapping_quality=self.mapping_quality,
            direction=None if is_breakpoint else breakend.direction,
            evidence_ids=evidence_ids,
        )
        return record, ()

    @staticmethod
    def _breakpoint_fallback(breakpoint: BreakpointSummary) -> Degradation | None:
        if not breakpoint.remote_breakend().is_precise:
            raise ValueError(
                f"Imprecisely anchored breakpoints not supported: {breakpoint}"
            )
        if breakpoint.reference_index2 != breakpoint.reference_index:
            return Degradation.CROSS_CONTIG_BREAKPOINT
        if breakpoint.start2 - breakpoint.start - 1 < 0:
            return Degradation.NEGATIVE_DELETION
        return None

    @staticmethod
    def _placeholder_layout(
        breakend: BreakendSummary, bases: str, quals: tuple[int, ...]
    ) -> tuple[int, list[CigarElement], str, tuple[int, ...]]:
        """Represent the candidate interval as an N interval anchored by Xs,
        using placeholder mismatched bases."""
        length = breakend.width
        if length <= 2:
            placeholder = [CigarElement(length, CigarOp.MISMATCH)]
            pad = length
        else:
            placeholder = [
                CigarElement(1, CigarOp.MISMATCH),
                CigarElement(length - 2, CigarOp.SKIP),
                CigarElement(1, CigarOp.MISMATCH),
            ]
            pad = 2
        clip = _element(len(bases), CigarOp.SOFT_CLIP)
        if breakend.direction.is_forward:
            return (
                breakend.start,
                placeholder + clip,
                PAD_BASES[pad] + bases,
                PAD_QUALS[pad] + quals,
            )
        return (
            breakend.start,
            clip + placeholder,
            bases + PAD_BASES[pad],
            quals + PAD_QUALS[pad],
        )

    def truncate_to_contig_bounds(self, record: AlignmentRecord) -> EncodeResult:
        """Trim the record so it lies within [1, contig length].

        The leading (trailing) operation is shortened by the overhang and the
        corresponding bases and qualities are dropped. When that operation
        cannot absorb the overhang the record is returned unmodified.
        """
        degradations: list[Degradation] = []
        if record.alignment_start < 1 and record.cigar:
            overhang = 1 - record.alignment_start
            first = record.cigar[0]
            if first.op.consumes_reference and first.length - overhang >= 1:
                dropped = overhang if first.op.consumes_query else 0
                record = dataclasses.replace(
                    record,
                    alignment_start=1,
                    cigar=(CigarElement(first.length - overhang, first.op),)
                    + record.cigar[1:],
                    bases=record.bases[dropped:],
                    quals=record.quals[dropped:],
                )
            else:
                degradations.append(Degradation.TRUNCATE_START)
        contig_length = self.dictionary.length(record.reference_index)
        if record.alignment_end > contig_length and record.cigar:
            overhang = record.alignment_end - contig_length
            last = record.cigar[-1]
            if last.op.consumes_reference and last.length - overhang >= 1:
                kept = len(record.bases) - (
                    overhang if last.op.consumes_query else 0
                )
                record = dataclasses.replace(
                    record,
                    cigar=record.cigar[:-1]
                    + (CigarElement(last.length - overhang, last.op),),
                    bases=record.bases[:kept],
                    quals=record.quals[:kept],
                )
            else:
                degradations.append(Degradation.TRUNCATE_END)
        return EncodeResult(record, tuple(degradations))

    def log_degradations(self, result: EncodeResult) -> None:
        record = result.record
        for degradation in result.degradations:
            if degradation == Degradation.NEGATIVE_DELETION:
                message = (
                    "Negative deletions not supported by SAM specs. Breakpoint "
                    f"assembly {record.read_name} has been converted to "
                    "breakend. Sanity check failure: this should not be "
                    "possible for positional assembly."
                )
            elif degradation == Degradation.CROSS_CONTIG_BREAKPOINT:
                message = (
                    f"Breakpoint assembly {record.read_name} spans contigs and "
                    "has been converted to breakend."
                )
            else:
                side = (
                    "start" if degradation == Degradation.TRUNCATE_START else "end"
                )
                message = (
                    f"Attempted to truncate {side} of {record.read_name} with "
                    f"CIGAR {record.cigar_string} to contig bounds"
                )
            self.throttler.warn(logger, degradation.value, message)
