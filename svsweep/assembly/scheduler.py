"""Single coordinate-sorted pass over read evidence, assembling a breakend
contig for each direction at each position.

Evidence is retained only while it can still contribute to a graph window,
so memory is bounded by the evidence within one fragment of the cursor.
"""

from __future__ import annotations

import heapq
import itertools
import logging
from typing import Iterable, Iterator

from svsweep import core_types
from svsweep.assembly.graph import DirectedAssemblyGraph, PileupAssemblyGraph
from svsweep.datatypes import AssembledContig, BreakendDirection, DirectedEvidence
from svsweep.errors import EvidenceOrderError

logger = logging.getLogger(__name__)

# Forward graph is always tried before the backward graph at a position
DIRECTIONS = (BreakendDirection.FORWARD, BreakendDirection.BACKWARD)

RetirementEntry = tuple[tuple[int, int], int, DirectedEvidence]


class EvidenceWindowScheduler:
    """Drives one assembly graph per breakend direction along the genome."""

    def __init__(
        self,
        forward_graph: DirectedAssemblyGraph,
        backward_graph: DirectedAssemblyGraph,
    ) -> None:
        self.graphs: dict[BreakendDirection, DirectedAssemblyGraph] = {
            BreakendDirection.FORWARD: forward_graph,
            BreakendDirection.BACKWARD: backward_graph,
        }
        # Min-heaps keyed by the last coordinate each evidence can reach
        self.active: dict[BreakendDirection, list[RetirementEntry]] = {
            direction: [] for direction in DIRECTIONS
        }
        self._insertion_order = itertools.count()
        self.current_reference_index: core_types.ContigIdx = -1
        self.current_position = -1

    @classmethod
    def with_pileup_graphs(cls, min_support: int = 1) -> EvidenceWindowScheduler:
        return cls(
            PileupAssemblyGraph(BreakendDirection.FORWARD, min_support),
            PileupAssemblyGraph(BreakendDirection.BACKWARD, min_support),
        )

    @property
    def cursor(self) -> tuple[int, int]:
        return (self.current_reference_index, self.current_position)

    def pending(self, direction: BreakendDirection) -> int:
        return len(self.active[direction])

    def add_evidence(
        self, evidence: DirectedEvidence | None
    ) -> list[AssembledContig]:
        """Assemble every position before `evidence`, then start tracking it.

        Raises:
            EvidenceOrderError: if `evidence` starts before a position that
                has already been assembled.
        """
        if evidence is None:
            return []
        if evidence.start_key < self.cursor:
            raise EvidenceOrderError(
                f"Evidence {evidence.evidence_id} at {evidence.breakend} "
                f"received after processing up to {self.cursor}: evidence "
                "must be sorted by breakend start"
            )
        result = self._process_up_to_excluding(*evidence.start_key)
        if evidence.kind.is_assembly_input:
            direction = evidence.direction
            self.graphs[direction].add_evidence(evidence)
            heapq.heappush(
                self.active[direction],
                (evidence.reachable_key, next(self._insertion_order), evidence),
            )
        else:
            logger.debug(
                f"Ignoring {evidence.kind.name} evidence "
                f"{evidence.evidence_id} for assembly"
            )
        return result

    def end_of_evidence(self) -> list[AssembledContig]:
        """Flush both graphs completely."""
        return self._process_up_to_excluding(
            self.current_reference_index + 1, 0
        )

    def _retire(self, direction: BreakendDirection) -> None:
        active = self.active[direction]
        while active and active[0][0] < self.cursor:
            _, _, evidence = heapq.heappop(active)
            self.graphs[direction].remove_evidence(evidence)

    def _process_up_to_excluding(
        self, reference_index: core_types.ContigIdx, position: int
    ) -> list[AssembledContig]:
        result: list[AssembledContig] = []
        target = (reference_index, position)
        while (
            self.active[BreakendDirection.FORWARD]
            or self.active[BreakendDirection.BACKWARD]
        ) and self.cursor != target:
            for direction in DIRECTIONS:
                assembly = self.graphs[direction].assemble_variant(
                    self.current_reference_index, self.current_position
                )
                if assembly is not None:
                    result.append(assembly)
            self.current_position += 1
            for direction in DIRECTIONS:
                self._retire(direction)
        # Cursor moves to the boundary even when nothing was pending
        self.current_reference_index = reference_index
        self.current_position = position
        return result


def assemble_contigs(
    evidence: Iterable[DirectedEvidence], scheduler: EvidenceWindowScheduler
) -> Iterator[AssembledContig]:
    """Stream assemblies from coordinate sorted evidence."""
    for e in evidence:
        yield from scheduler.add_evidence(e)
    yield from scheduler.end_of_evidence()
