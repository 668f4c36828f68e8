"""
Convert between textual CIGAR strings, pysam cigartuples and `CigarElement`
sequences, and recover assembly anchor lengths from encoded records.

A CIGAR is represented internally as a tuple of `CigarElement(length, op)`.
"""

from __future__ import annotations

import logging
import re
from typing import Iterable, Sequence

from svsweep.datatypes import (
    AlignmentRecord,
    BreakendDirection,
    CigarElement,
    CigarOp,
)

logger = logging.getLogger(__name__)

CIGAR_REGEX = re.compile(r"(\d+)([MIDNSHP=X])")
_BAM_CODE_TO_OP = {op.bam_code: op for op in CigarOp}


def parse_cigar(cigar_str: str) -> tuple[CigarElement, ...]:
    """Parse a CIGAR string such as "2M3I4D4M".

    Args:
        cigar_str: CIGAR string; "*" denotes an unavailable CIGAR.

    Returns:
        The CIGAR operations in order.
    """
    if cigar_str in ("", "*"):
        return ()
    elements = CIGAR_REGEX.findall(cigar_str)
    if "".join(f"{n}{op}" for n, op in elements) != cigar_str:
        raise ValueError(f"Malformed CIGAR string: {cigar_str}")
    return tuple(CigarElement(int(n), CigarOp(op)) for n, op in elements)


def cigar_to_string(cigar: Iterable[CigarElement]) -> str:
    return "".join(str(e) for e in cigar)


def reference_length(cigar: Iterable[CigarElement]) -> int:
    """Number of reference bases spanned by the alignment."""
    return sum(e.length for e in cigar if e.op.consumes_reference)


def query_length(cigar: Iterable[CigarElement]) -> int:
    """Number of read bases (including soft clips) described by the CIGAR."""
    return sum(e.length for e in cigar if e.op.consumes_query)


def to_cigartuples(cigar: Iterable[CigarElement]) -> list[tuple[int, int]]:
    return [(e.op.bam_code, e.length) for e in cigar]


def from_cigartuples(
    cigartuples: Sequence[tuple[int, int]] | None,
) -> tuple[CigarElement, ...]:
    if not cigartuples:
        return ()
    return tuple(
        CigarElement(length, _BAM_CODE_TO_OP[code])
        for code, length in cigartuples
    )


def clip_lengths(cigar: Sequence[CigarElement]) -> tuple[int, int]:
    """Soft clipped base counts at the start and end of the read."""
    start_clip = end_clip = 0
    if cigar and cigar[0].op == CigarOp.SOFT_CLIP:
        start_clip = cigar[0].length
    if len(cigar) > 1 and cigar[-1].op == CigarOp.SOFT_CLIP:
        end_clip = cigar[-1].length
    return start_clip, end_clip


def derive_anchors(
    record: AlignmentRecord,
) -> tuple[BreakendDirection | None, int, int]:
    """Recover `(direction, start anchor, end anchor)` from an assembly record.

    Breakpoint records carry no direction tag and are anchored at both ends.
    Unanchored breakend records start (or end) with placeholder mismatches
    and report zero anchored bases.
    """
    cigar = record.cigar
    if not cigar:
        return record.direction, 0, 0
    first_anchor = cigar[0].length if cigar[0].op == CigarOp.MATCH else 0
    last_anchor = cigar[-1].length if cigar[-1].op == CigarOp.MATCH else 0
    if record.direction is None:
        return None, first_anchor, last_anchor
    if record.direction.is_forward:
        return record.direction, first_anchor, 0
    return record.direction, 0, last_anchor
