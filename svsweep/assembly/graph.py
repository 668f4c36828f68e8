"""Per-direction local assembly graphs.

`DirectedAssemblyGraph` is the contract consumed by the evidence window
scheduler. `PileupAssemblyGraph` is a positional implementation of that
contract: rather than walking k-mer paths, it builds a quality weighted
consensus over the soft clipped and indel evidence anchored at the queried
position.
"""

from __future__ import annotations

import logging
from collections import Counter
from typing import Protocol

import numpy as np

from svsweep import core_types
from svsweep.datatypes import (
    AssembledContig,
    BreakendDirection,
    BreakendSummary,
    DirectedEvidence,
    EvidenceKind,
)
from svsweep.errors import GraphConsistencyError

logger = logging.getLogger(__name__)

CONSENSUS_BASES = "ACGTN"
_BASE_INDEX = {base: idx for idx, base in enumerate(CONSENSUS_BASES)}
DEFAULT_BASE_QUAL = 20
MAX_BASE_QUAL = 93  # Highest quality representable in SAM text


class DirectedAssemblyGraph(Protocol):
    direction: BreakendDirection

    def add_evidence(self, evidence: DirectedEvidence) -> None:
        """Start tracking `evidence`; each addition is later removed once."""
        ...

    def remove_evidence(self, evidence: DirectedEvidence) -> None:
        """Stop tracking `evidence`.

        Raises:
            GraphConsistencyError: if `evidence` is not currently tracked.
        """
        ...

    def assemble_variant(
        self, reference_index: core_types.ContigIdx, position: int
    ) -> AssembledContig | None:
        """Best supported contig whose breakend is anchored at `position`."""
        ...


def _consensus(
    sequences: list[tuple[str, tuple[int, ...]]], right_aligned: bool
) -> tuple[str, tuple[int, ...]]:
    """Quality weighted per-column consensus of the given sequences.

    Sequences are stacked flush left, or flush right when `right_aligned`.
    """
    length = max((len(seq) for seq, _ in sequences), default=0)
    if length == 0:
        return "", ()
    weights = np.zeros((length, len(CONSENSUS_BASES)), dtype=np.int64)
    for seq, quals in sequences:
        offset = length - len(seq) if right_aligned else 0
        for i, base in enumerate(seq.upper()):
            qual = quals[i] if i < len(quals) else DEFAULT_BASE_QUAL
            weights[offset + i, _BASE_INDEX.get(base, 4)] += max(qual, 1)
    best = weights.argmax(axis=1)
    bases = "".join(CONSENSUS_BASES[idx] for idx in best)
    quals = tuple(
        int(min(q, MAX_BASE_QUAL)) for q in weights[np.arange(length), best]
    )
    return bases, quals


class PileupAssemblyGraph:
    """Positional consensus assembler for a single breakend direction."""

    def __init__(self, direction: BreakendDirection, min_support: int = 1):
        self.direction = direction
        self.min_support = min_support
        self.evidence: Counter[DirectedEvidence] = Counter()

    def __len__(self) -> int:
        return sum(self.evidence.values())

    def _check_supported(self, evidence: DirectedEvidence) -> None:
        if not evidence.kind.is_assembly_input:
            raise GraphConsistencyError(
                f"Sanity check failure: unhandled evidence of kind "
                f"{evidence.kind!r} present in assembly graph"
            )
        if evidence.direction != self.direction:
            raise GraphConsistencyError(
                f"Evidence {evidence.evidence_id} has direction "
                f"{evidence.direction!r}, graph has {self.direction!r}"
            )

    def add_evidence(self, evidence: DirectedEvidence) -> None:
        self._check_supported(evidence)
        self.evidence[evidence] += 1

    def remove_evidence(self, evidence: DirectedEvidence) -> None:
        self._check_supported(evidence)
        if evidence not in self.evidence:
            raise GraphConsistencyError(
                f"Attempted to remove untracked evidence {evidence.evidence_id}"
            )
        self.evidence[evidence] -= 1
        if not self.evidence[evidence]:
            del self.evidence[evidence]

    def assemble_variant(
        self, reference_index: core_types.ContigIdx, position: int
    ) -> AssembledContig | None:
        anchored: list[DirectedEvidence] = []
        pairs: list[DirectedEvidence] = []
        for evidence in self.evidence:
            breakend = evidence.breakend
            if evidence.kind == EvidenceKind.DISCORDANT_PAIR:
                if breakend.overlaps(reference_index, position, position):
                    pairs.append(evidence)
            elif (
                breakend.is_precise
                and breakend.reference_index == reference_index
                and breakend.start == position
                and evidence.breakend_sequence
            ):
                anchored.append(evidence)
        if not anchored or len(anchored) + len(pairs) < self.min_support:
            return None

        is_forward = self.direction.is_forward
        # Forward: anchor bases precede the breakend sequence, so anchors are
        # stacked flush against the breakend on the right and breakend bases
        # extend rightwards from it.
        anchor_bases, anchor_quals = _consensus(
            [(e.anchor_sequence, e.anchor_quality) for e in anchored],
            right_aligned=is_forward,
        )
        breakend_bases, breakend_quals = _consensus(
            [(e.breakend_sequence, e.breakend_quality) for e in anchored],
            right_aligned=not is_forward,
        )
        if is_forward:
            bases = anchor_bases + breakend_bases
            quals = anchor_quals + breakend_quals
            start_anchor, end_anchor = len(anchor_bases), 0
        else:
            bases = breakend_bases + anchor_bases
            quals = breakend_quals + anchor_quals
            start_anchor, end_anchor = 0, len(anchor_bases)
        logger.debug(
            f"Assembled {len(bases)}bp {self.direction.name} contig at "
            f"{reference_index}:{position} from {len(anchored)} anchored and "
            f"{len(pairs)} read pair evidence"
        )
        return AssembledContig(
            breakend=BreakendSummary.precise(
                reference_index, self.direction, position
            ),
            bases=bases,
            quals=quals,
            start_anchor_count=start_anchor,
            end_anchor_count=end_anchor,
            evidence_ids=frozenset(
                e.evidence_id for e in anchored + pairs
            ),
        )
