from __future__ import annotations

import enum
from dataclasses import dataclass, field
from typing import NamedTuple

import pysam

from svsweep import core_types


class BreakendDirection(enum.StrEnum):
    """Side of the breakend on which the reference sequence is retained.

    `FORWARD` breakends keep the bases before (left of) the breakend position,
    `BACKWARD` breakends keep the bases after it.
    """

    FORWARD = "f"
    BACKWARD = "b"

    @property
    def is_forward(self) -> bool:
        return self == BreakendDirection.FORWARD

    @property
    def is_backward(self) -> bool:
        return self == BreakendDirection.BACKWARD

    @property
    def strand(self) -> str:
        """BEDPE strand notation."""
        return "+" if self == BreakendDirection.FORWARD else "-"


@dataclass(frozen=True)
class BreakendSummary:
    """Candidate location of one side of a structural variant.

    Positions are 1-based and inclusive; `start == end` for precise breakends.
    """

    reference_index: core_types.ContigIdx
    direction: BreakendDirection
    start: int
    end: int

    def __post_init__(self) -> None:
        if self.start > self.end:
            raise ValueError(
                f"Breakend interval start {self.start} is after end {self.end}"
            )

    @classmethod
    def precise(
        cls,
        reference_index: core_types.ContigIdx,
        direction: BreakendDirection,
        position: int,
    ) -> BreakendSummary:
        return cls(reference_index, direction, position, position)

    @property
    def is_precise(self) -> bool:
        return self.start == self.end

    @property
    def width(self) -> int:
        return self.end - self.start + 1

    @property
    def start_key(self) -> tuple[int, int]:
        return (self.reference_index, self.start)

    @property
    def reachable_key(self) -> tuple[int, int]:
        """Last coordinate at which this breakend can still be assembled."""
        return (self.reference_index, self.end)

    def local_breakend(self) -> BreakendSummary:
        return self

    def overlaps(self, reference_index: int, start: int, end: int) -> bool:
        return (
            self.reference_index == reference_index
            and self.start <= end
            and self.end >= start
        )

    def __str__(self) -> str:
        if self.is_precise:
            return f"{self.reference_index}:{self.start}{self.direction.value}"
        return (
            f"{self.reference_index}:{self.start}-{self.end}"
            f"{self.direction.value}"
        )


@dataclass(frozen=True)
class BreakpointSummary(BreakendSummary):
    """A novel adjacency: a local breakend paired with a remote breakend."""

    reference_index2: core_types.ContigIdx
    direction2: BreakendDirection
    start2: int
    end2: int

    def __post_init__(self) -> None:
        super().__post_init__()
        if self.start2 > self.end2:
            raise ValueError(
                f"Remote breakend interval start {self.start2} is after end "
                f"{self.end2}"
            )

    @classmethod
    def from_breakends(
        cls, local: BreakendSummary, remote: BreakendSummary
    ) -> BreakpointSummary:
        return cls(
            local.reference_index,
            local.direction,
            local.start,
            local.end,
            remote.reference_index,
            remote.direction,
            remote.start,
            remote.end,
        )

    def local_breakend(self) -> BreakendSummary:
        return BreakendSummary(
            self.reference_index, self.direction, self.start, self.end
        )

    def remote_breakend(self) -> BreakendSummary:
        return BreakendSummary(
            self.reference_index2, self.direction2, self.start2, self.end2
        )

    def remote_breakpoint(self) -> BreakpointSummary:
        return BreakpointSummary.from_breakends(
            self.remote_breakend(), self.local_breakend()
        )

    @property
    def is_low_breakend(self) -> bool:
        local = (self.reference_index, self.start, self.end)
        remote = (self.reference_index2, self.start2, self.end2)
        if local != remote:
            return local < remote
        return self.direction.is_forward

    @property
    def is_high_breakend(self) -> bool:
        return not self.is_low_breakend

    def __str__(self) -> str:
        return f"{self.local_breakend()}->{self.remote_breakend()}"


class EvidenceKind(enum.StrEnum):
    DISCORDANT_PAIR = "dp"
    SOFT_CLIP = "sc"
    INDEL = "id"
    SPLIT_READ = "sr"
    ASSEMBLY = "as"

    @property
    def is_assembly_input(self) -> bool:
        """Whether evidence of this kind contributes to local assembly graphs."""
        return self in (
            EvidenceKind.DISCORDANT_PAIR,
            EvidenceKind.SOFT_CLIP,
            EvidenceKind.INDEL,
        )


@dataclass(frozen=True)
class DirectedEvidence:
    """A single read-level observation supporting a breakend.

    Sequences are given as per a positive strand read over the breakend:
    for `FORWARD` breakends the anchor precedes the breakend sequence, for
    `BACKWARD` breakends it follows it.
    """

    evidence_id: core_types.EvidenceId
    kind: EvidenceKind
    breakend: BreakendSummary
    source: str = ""
    mapq: int = 0
    breakend_sequence: str = ""
    breakend_quality: tuple[int, ...] = ()
    anchor_sequence: str = ""
    anchor_quality: tuple[int, ...] = ()

    @property
    def reference_index(self) -> core_types.ContigIdx:
        return self.breakend.reference_index

    @property
    def direction(self) -> BreakendDirection:
        return self.breakend.direction

    @property
    def start_key(self) -> tuple[int, int]:
        return self.breakend.start_key

    @property
    def reachable_key(self) -> tuple[int, int]:
        return self.breakend.reachable_key


@dataclass(frozen=True)
class AssembledContig:
    """Locally assembled sequence anchored to one or both breakends."""

    breakend: BreakendSummary
    bases: str
    quals: tuple[int, ...]
    start_anchor_count: int
    end_anchor_count: int
    evidence_ids: frozenset[core_types.EvidenceId] = frozenset()


class CigarOp(enum.StrEnum):
    MATCH = "M"
    INSERTION = "I"
    DELETION = "D"
    SKIP = "N"
    SOFT_CLIP = "S"
    HARD_CLIP = "H"
    PADDING = "P"
    EQUAL = "="
    MISMATCH = "X"

    @property
    def consumes_reference(self) -> bool:
        return self in _REFERENCE_CONSUMING_OPS

    @property
    def consumes_query(self) -> bool:
        return self in _QUERY_CONSUMING_OPS

    @property
    def bam_code(self) -> int:
        """Operation code as used by `pysam.AlignedSegment.cigartuples`."""
        return _BAM_OP_ORDER.index(self.value)


_BAM_OP_ORDER = "MIDNSHP=X"
_REFERENCE_CONSUMING_OPS = frozenset(
    {CigarOp.MATCH, CigarOp.DELETION, CigarOp.SKIP, CigarOp.EQUAL, CigarOp.MISMATCH}
)
_QUERY_CONSUMING_OPS = frozenset(
    {
        CigarOp.MATCH,
        CigarOp.INSERTION,
        CigarOp.SOFT_CLIP,
        CigarOp.EQUAL,
        CigarOp.MISMATCH,
    }
)


class CigarElement(NamedTuple):
    length: int
    op: CigarOp

    def __str__(self) -> str:
        return f"{self.length}{self.op.value}"


@dataclass(frozen=True)
class AlignmentRecord:
    """Reference-anchored alignment of an assembled contig."""

    read_name: str
    reference_index: core_types.ContigIdx
    alignment_start: int  # 1-based leftmost reference position
    cigar: tuple[CigarElement, ...]
    bases: str
    quals: tuple[int, ...]
    mapping_quality: int = 0
    direction: BreakendDirection | None = None  # Breakend records only
    evidence_ids: tuple[core_types.EvidenceId, ...] = ()

    @property
    def reference_length(self) -> int:
        return sum(e.length for e in self.cigar if e.op.consumes_reference)

    @property
    def query_length(self) -> int:
        return sum(e.length for e in self.cigar if e.op.consumes_query)

    @property
    def alignment_end(self) -> int:
        return self.alignment_start + self.reference_length - 1

    @property
    def cigar_string(self) -> str:
        return "".join(str(e) for e in self.cigar)


class QueryInterval(NamedTuple):
    """1-based inclusive genomic interval used to restrict processing."""

    reference_index: core_types.ContigIdx
    start: int
    end: int


@dataclass
class ContigDictionary:
    """Ordered contig names and lengths of the reference genome."""

    names: list[str]
    lengths: list[int]

    def __post_init__(self) -> None:
        if len(self.names) != len(self.lengths):
            raise ValueError("Contig names and lengths differ in size")
        self._index = {name: idx for idx, name in enumerate(self.names)}

    def __len__(self) -> int:
        return len(self.names)

    def length(self, reference_index: core_types.ContigIdx) -> int:
        return self.lengths[reference_index]

    def name(self, reference_index: core_types.ContigIdx) -> str:
        return self.names[reference_index]

    def index(self, name: str) -> core_types.ContigIdx:
        if name not in self._index:
            raise KeyError(f"Contig {name} not present in sequence dictionary")
        return self._index[name]

    @classmethod
    def from_alignment_header(
        cls, header: pysam.AlignmentHeader
    ) -> ContigDictionary:
        return cls(list(header.references), list(header.lengths))

    @classmethod
    def from_fasta(cls, fasta_path: str) -> ContigDictionary:
        with pysam.FastaFile(fasta_path) as fasta:
            return cls(list(fasta.references), list(fasta.lengths))

    @classmethod
    def from_variant_header(
        cls, header: pysam.VariantHeader
    ) -> ContigDictionary:
        contigs = list(header.contigs.values())
        return cls(
            [contig.name for contig in contigs],
            [contig.length or 0 for contig in contigs],
        )

    def to_header_dict(self, sort_order: str = "coordinate") -> dict[str, object]:
        return {
            "HD": {"VN": "1.6", "SO": sort_order},
            "SQ": [
                {"SN": name, "LN": length}
                for name, length in zip(self.names, self.lengths)
            ],
        }


@dataclass
class CalledBreakpoint:
    """A breakpoint reported by clique grouping of per-evidence calls."""

    call_id: str
    breakpoint: BreakpointSummary
    evidence_ids: tuple[core_types.EvidenceId, ...] = ()
    quality: float = 0.0
    filters: tuple[str, ...] = ()
    attributes: dict[str, object] = field(default_factory=dict)

    @property
    def is_filtered(self) -> bool:
        return any(f != "PASS" for f in self.filters)

    @property
    def support(self) -> int:
        return len(self.evidence_ids)


class Degradation(enum.StrEnum):
    """Geometry issue recovered by falling back to a simpler record."""

    NEGATIVE_DELETION = "negative deletion"
    CROSS_CONTIG_BREAKPOINT = "cross-contig breakpoint"
    TRUNCATE_START = "truncating assembly start to contig bounds"
    TRUNCATE_END = "truncating assembly end to contig bounds"


class EncodeResult(NamedTuple):
    record: AlignmentRecord
    degradations: tuple[Degradation, ...] = ()

    @property
    def is_degraded(self) -> bool:
        return bool(self.degradations)
