"""Group breakpoint evidence into calls.

Evidence for a single direction pairing is merged into groups whose local and
remote breakend intervals all share a common position. Each group becomes one
`CalledBreakpoint` located at the intersection of its members' intervals.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Iterable, Iterator, Protocol

from svsweep.datatypes import (
    BreakendDirection,
    BreakendSummary,
    BreakpointSummary,
    CalledBreakpoint,
    DirectedEvidence,
    EvidenceKind,
)
from svsweep.ids import IdGenerator
from svsweep.output.vcf_attributes import LOW_SUPPORT_FILTER, VcfInfoAttributes

logger = logging.getLogger(__name__)

_COUNT_ATTRIBUTES = {
    EvidenceKind.ASSEMBLY: VcfInfoAttributes.BREAKPOINT_ASSEMBLY_COUNT,
    EvidenceKind.DISCORDANT_PAIR: VcfInfoAttributes.BREAKPOINT_READPAIR_COUNT,
    EvidenceKind.SPLIT_READ: VcfInfoAttributes.BREAKPOINT_SPLITREAD_COUNT,
    EvidenceKind.INDEL: VcfInfoAttributes.BREAKPOINT_INDEL_COUNT,
}
_QUAL_ATTRIBUTES = {
    EvidenceKind.ASSEMBLY: VcfInfoAttributes.BREAKPOINT_ASSEMBLY_QUAL,
    EvidenceKind.DISCORDANT_PAIR: VcfInfoAttributes.BREAKPOINT_READPAIR_QUAL,
    EvidenceKind.SPLIT_READ: VcfInfoAttributes.BREAKPOINT_SPLITREAD_QUAL,
    EvidenceKind.INDEL: VcfInfoAttributes.BREAKPOINT_INDEL_QUAL,
}


class CliqueGrouper(Protocol):
    def __call__(
        self,
        evidence: Iterable[DirectedEvidence],
        local_direction: BreakendDirection,
        remote_direction: BreakendDirection,
        id_generator: IdGenerator,
    ) -> Iterator[CalledBreakpoint]:
        """Calls supported by breakpoint evidence with the given directions.

        Args:
            evidence: Evidence sorted by local breakend start. Evidence with
                other directions, or supporting only a single breakend, is
                ignored.
        """
        ...


def intersect(a: BreakendSummary, b: BreakendSummary) -> BreakendSummary | None:
    if a.reference_index != b.reference_index or a.direction != b.direction:
        return None
    start = max(a.start, b.start)
    end = min(a.end, b.end)
    if start > end:
        return None
    return BreakendSummary(a.reference_index, a.direction, start, end)


@dataclass
class EvidenceGroup:
    local: BreakendSummary
    remote: BreakendSummary
    members: list[DirectedEvidence] = field(default_factory=list)

    def try_add(self, evidence: DirectedEvidence) -> bool:
        breakpoint = evidence.breakend
        assert isinstance(breakpoint, BreakpointSummary)
        local = intersect(self.local, breakpoint.local_breakend())
        remote = intersect(self.remote, breakpoint.remote_breakend())
        if local is None or remote is None:
            return False
        self.local, self.remote = local, remote
        self.members.append(evidence)
        return True


class GreedyCliqueGrouper:
    """Single pass grouping: each evidence joins the first open group it is
    consistent with, otherwise it starts a new group.

    A group is closed once the sweep has moved past the end of its local
    interval, since no later evidence can then intersect it.
    """

    def __init__(self, min_support: int = 1) -> None:
        self.min_support = min_support

    def __call__(
        self,
        evidence: Iterable[DirectedEvidence],
        local_direction: BreakendDirection,
        remote_direction: BreakendDirection,
        id_generator: IdGenerator,
    ) -> Iterator[CalledBreakpoint]:
        open_groups: list[EvidenceGroup] = []
        for e in evidence:
            breakpoint = e.breakend
            if (
                not isinstance(breakpoint, BreakpointSummary)
                or breakpoint.direction != local_direction
                or breakpoint.direction2 != remote_direction
            ):
                continue
            closed = [
                g for g in open_groups if g.local.reachable_key < e.start_key
            ]
            if closed:
                open_groups = [
                    g for g in open_groups if g.local.reachable_key >= e.start_key
                ]
                yield from self._emit(closed, id_generator)
            if not any(group.try_add(e) for group in open_groups):
                open_groups.append(
                    EvidenceGroup(
                        breakpoint.local_breakend(),
                        breakpoint.remote_breakend(),
                        [e],
                    )
                )
        yield from self._emit(open_groups, id_generator)

    def _emit(
        self, groups: list[EvidenceGroup], id_generator: IdGenerator
    ) -> Iterator[CalledBreakpoint]:
        for group in sorted(
            groups, key=lambda g: (g.local.start_key, g.remote.start_key)
        ):
            yield self.to_call(group, id_generator.generate())

    def to_call(self, group: EvidenceGroup, call_id: str) -> CalledBreakpoint:
        attributes: dict[str, object] = {}
        for kind, attribute in _COUNT_ATTRIBUTES.items():
            members = [e for e in group.members if e.kind == kind]
            attributes[attribute.key] = len(members)
            attributes[_QUAL_ATTRIBUTES[kind].key] = float(
                sum(e.mapq for e in members)
            )
        filters = (
            (LOW_SUPPORT_FILTER,)
            if len(group.members) < self.min_support
            else ("PASS",)
        )
        return CalledBreakpoint(
            call_id=call_id,
            breakpoint=BreakpointSummary.from_breakends(group.local, group.remote),
            evidence_ids=tuple(e.evidence_id for e in group.members),
            quality=float(sum(e.mapq for e in group.members)),
            filters=filters,
            attributes=attributes,
        )
