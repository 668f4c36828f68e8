"""Stream breakpoint calls for every breakend direction pairing.

Calls are produced in four passes over the evidence, one per
(local, remote) direction pairing in `DIRECTION_ORDER`. Each pass opens a
fresh evidence stream which is closed when the pass is exhausted.
"""

from __future__ import annotations

import logging
from typing import Callable, Generic, Iterable, Iterator, Sequence, TypeVar

from svsweep.calling.clique import CliqueGrouper, GreedyCliqueGrouper
from svsweep.datatypes import (
    BreakendDirection,
    CalledBreakpoint,
    DirectedEvidence,
    QueryInterval,
)
from svsweep.evidence.source import EvidenceSource, expand_query_intervals
from svsweep.ids import IdGenerator, SequentialIdGenerator
from svsweep.intervals import IntervalFilter

logger = logging.getLogger(__name__)

F = BreakendDirection.FORWARD
B = BreakendDirection.BACKWARD
DIRECTION_ORDER = ((F, F), (F, B), (B, F), (B, B))
DEFAULT_ID_PREFIX = "svsweep"

T = TypeVar("T")
_EXHAUSTED = object()


def close_quietly(resource: object) -> None:
    """Close `resource` if it supports closing."""
    close = getattr(resource, "close", None)
    if callable(close):
        close()


class PeekingIterator(Generic[T]):
    def __init__(self, iterator: Iterator[T]) -> None:
        self._iterator = iterator
        self._peeked: object = _EXHAUSTED
        self._done = False

    def has_next(self) -> bool:
        if self._peeked is not _EXHAUSTED:
            return True
        if self._done:
            return False
        try:
            self._peeked = next(self._iterator)
        except StopIteration:
            self._done = True
            return False
        return True

    def __iter__(self) -> PeekingIterator[T]:
        return self

    def __next__(self) -> T:
        if not self.has_next():
            raise StopIteration
        value = self._peeked
        self._peeked = _EXHAUSTED
        return value  # type: ignore[return-value]

    def close(self) -> None:
        self._done = True
        self._peeked = _EXHAUSTED
        close_quietly(self._iterator)


class BreakpointCallIterator:
    """Iterator over called breakpoints across all direction pairings.

    Examples:
        >>> with BreakpointCallIterator.from_source(source) as calls:
        ...     for call in calls:
        ...         ...
    """

    def __init__(
        self,
        iterator_factory: Callable[[], Iterator[DirectedEvidence]],
        grouper: CliqueGrouper | None = None,
        id_generator: IdGenerator | None = None,
        filter_intervals: Sequence[QueryInterval] | None = None,
    ) -> None:
        self.iterator_factory = iterator_factory
        self.grouper = grouper or GreedyCliqueGrouper()
        self.id_generator = id_generator or SequentialIdGenerator(
            DEFAULT_ID_PREFIX
        )
        self.filter = (
            IntervalFilter(filter_intervals)
            if filter_intervals is not None
            else None
        )
        self.direction_ordinal = 0
        self._underlying: Iterator[DirectedEvidence] | None = None
        self._calls: Iterator[CalledBreakpoint] | None = None
        self._current: PeekingIterator[CalledBreakpoint] | None = None
        self._reinitialise()

    @classmethod
    def from_evidence(
        cls,
        evidence: Iterable[DirectedEvidence],
        grouper: CliqueGrouper | None = None,
        id_prefix: str = DEFAULT_ID_PREFIX,
    ) -> BreakpointCallIterator:
        """Calls over sorted in-memory evidence, replayed for each pairing."""
        evidence = list(evidence)
        return cls(
            lambda: iter(evidence), grouper, SequentialIdGenerator(id_prefix)
        )

    @classmethod
    def from_source(
        cls,
        source: EvidenceSource,
        grouper: CliqueGrouper | None = None,
        intervals: Sequence[QueryInterval] | None = None,
        interval_number: int | None = None,
        id_prefix: str = DEFAULT_ID_PREFIX,
    ) -> BreakpointCallIterator:
        """Calls over an evidence source, optionally restricted to intervals.

        Evidence is queried over the intervals padded by the maximum
        concordant fragment size so that calls whose supporting reads lie
        just outside an interval are still found; calls are then reported
        only if a breakend overlaps an unpadded interval.

        Args:
            interval_number: Shard number, used to keep call identifiers
                unique across shards processed separately.
        """
        if intervals is None:
            return cls(
                lambda: source.iterator(),
                grouper,
                SequentialIdGenerator(id_prefix),
            )
        expanded = expand_query_intervals(source, intervals)
        logger.debug(
            f"Querying {len(expanded)} padded intervals for "
            f"{len(intervals)} requested intervals"
        )
        id_generator = (
            SequentialIdGenerator.for_interval(id_prefix, interval_number)
            if interval_number is not None
            else SequentialIdGenerator(id_prefix)
        )
        return cls(
            lambda: source.iterator(expanded),
            grouper,
            id_generator,
            filter_intervals=intervals,
        )

    @property
    def directions(self) -> tuple[BreakendDirection, BreakendDirection] | None:
        """(local, remote) direction pairing currently being processed."""
        if self.direction_ordinal >= len(DIRECTION_ORDER):
            return None
        return DIRECTION_ORDER[self.direction_ordinal]

    def _in_requested_intervals(self, call: CalledBreakpoint) -> bool:
        assert self.filter is not None
        return self.filter.overlaps_breakend(
            call.breakpoint.local_breakend()
        ) or self.filter.overlaps_breakend(call.breakpoint.remote_breakend())

    def _close_current(self) -> None:
        # Innermost last so wrapping generators are finalized first
        for resource in (self._current, self._calls, self._underlying):
            if resource is not None:
                close_quietly(resource)
        self._current = self._calls = self._underlying = None

    def _reinitialise(self) -> None:
        self._close_current()
        if self.directions is None:
            return
        local, remote = self.directions
        logger.debug(f"Calling {local.name}/{remote.name} breakpoints")
        self._underlying = self.iterator_factory()
        self._calls = self.grouper(
            self._underlying, local, remote, self.id_generator
        )
        calls: Iterator[CalledBreakpoint] = self._calls
        if self.filter is not None:
            calls = filter(self._in_requested_intervals, calls)
        self._current = PeekingIterator(calls)

    def has_next(self) -> bool:
        while self._current is not None:
            if self._current.has_next():
                return True
            self.direction_ordinal += 1
            self._reinitialise()
        return False

    def __iter__(self) -> BreakpointCallIterator:
        return self

    def __next__(self) -> CalledBreakpoint:
        if not self.has_next():
            raise StopIteration
        assert self._current is not None
        return next(self._current)

    def close(self) -> None:
        """Release the open evidence stream; safe to call repeatedly."""
        self.direction_ordinal = len(DIRECTION_ORDER)
        self._close_current()

    def __enter__(self) -> BreakpointCallIterator:
        return self

    def __exit__(self, exc_type, exc_value, traceback) -> None:
        self.close()
