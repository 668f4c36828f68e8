"""Plain text evidence format.

One evidence per tab separated line; lines starting with `#` are comments.

    id kind chrom direction start end chrom2 direction2 start2 end2 mapq
    breakend_seq breakend_qual anchor_seq anchor_qual source

Positions are 1-based and inclusive. `.` marks an absent value: the remote
columns are `.` for evidence supporting only a single breakend. Qualities are
phred+33 encoded strings.
"""

from __future__ import annotations

import logging
from typing import Iterable, Iterator, TextIO

import pysam

from svsweep.datatypes import (
    BreakendDirection,
    BreakendSummary,
    BreakpointSummary,
    ContigDictionary,
    DirectedEvidence,
    EvidenceKind,
)

logger = logging.getLogger(__name__)

COLUMNS = [
    "id",
    "kind",
    "chrom",
    "direction",
    "start",
    "end",
    "chrom2",
    "direction2",
    "start2",
    "end2",
    "mapq",
    "breakend_seq",
    "breakend_qual",
    "anchor_seq",
    "anchor_qual",
    "source",
]
MISSING = "."


def _quals(field: str) -> tuple[int, ...]:
    if field == MISSING:
        return ()
    return tuple(pysam.qualitystring_to_array(field))


def _qual_str(quals: tuple[int, ...]) -> str:
    if not quals:
        return MISSING
    return pysam.qualities_to_qualitystring(quals)


def _seq(field: str) -> str:
    return "" if field == MISSING else field


def parse_evidence_line(
    line: str, dictionary: ContigDictionary
) -> DirectedEvidence:
    fields = line.rstrip("\n").split("\t")
    if len(fields) != len(COLUMNS):
        raise ValueError(
            f"Expected {len(COLUMNS)} columns, found {len(fields)}: {line!r}"
        )
    row = dict(zip(COLUMNS, fields))
    breakend = BreakendSummary(
        dictionary.index(row["chrom"]),
        BreakendDirection(row["direction"]),
        int(row["start"]),
        int(row["end"]),
    )
    if row["chrom2"] != MISSING:
        breakend = BreakpointSummary.from_breakends(
            breakend,
            BreakendSummary(
                dictionary.index(row["chrom2"]),
                BreakendDirection(row["direction2"]),
                int(row["start2"]),
                int(row["end2"]),
            ),
        )
    return DirectedEvidence(
        evidence_id=row["id"],
        kind=EvidenceKind(row["kind"]),
        breakend=breakend,
        source=_seq(row["source"]),
        mapq=int(row["mapq"]),
        breakend_sequence=_seq(row["breakend_seq"]),
        breakend_quality=_quals(row["breakend_qual"]),
        anchor_sequence=_seq(row["anchor_seq"]),
        anchor_quality=_quals(row["anchor_qual"]),
    )


def read_evidence_tsv(
    file: TextIO, dictionary: ContigDictionary
) -> Iterator[DirectedEvidence]:
    for line_number, line in enumerate(file, start=1):
        if not line.strip() or line.startswith("#"):
            continue
        try:
            yield parse_evidence_line(line, dictionary)
        except (KeyError, ValueError) as e:
            raise ValueError(f"Invalid evidence on line {line_number}: {e}") from e


def format_evidence_line(
    evidence: DirectedEvidence, dictionary: ContigDictionary
) -> str:
    breakend = evidence.breakend
    if isinstance(breakend, BreakpointSummary):
        remote = [
            dictionary.name(breakend.reference_index2),
            breakend.direction2.value,
            str(breakend.start2),
            str(breakend.end2),
        ]
    else:
        remote = [MISSING] * 4
    fields = [
        evidence.evidence_id,
        evidence.kind.value,
        dictionary.name(breakend.reference_index),
        breakend.direction.value,
        str(breakend.start),
        str(breakend.end),
        *remote,
        str(evidence.mapq),
        evidence.breakend_sequence or MISSING,
        _qual_str(evidence.breakend_quality),
        evidence.anchor_sequence or MISSING,
        _qual_str(evidence.anchor_quality),
        evidence.source or MISSING,
    ]
    return "\t".join(fields) + "\n"


def write_evidence_tsv(
    evidence: Iterable[DirectedEvidence],
    file: TextIO,
    dictionary: ContigDictionary,
) -> int:
    file.write("#" + "\t".join(COLUMNS) + "\n")
    count = 0
    for e in evidence:
        file.write(format_evidence_line(e, dictionary))
        count += 1
    return count
