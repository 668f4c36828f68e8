from __future__ import annotations

import logging
from typing import Iterable, Iterator, Protocol, Sequence

from svsweep.datatypes import ContigDictionary, DirectedEvidence, QueryInterval
from svsweep.intervals import IntervalFilter, pad_intervals

logger = logging.getLogger(__name__)


class EvidenceSource(Protocol):
    """Coordinate sorted provider of directed evidence."""

    dictionary: ContigDictionary

    @property
    def max_concordant_fragment_size(self) -> int: ...

    def iterator(
        self, intervals: Sequence[QueryInterval] | None = None
    ) -> Iterator[DirectedEvidence]:
        """Evidence sorted by breakend start.

        Args:
            intervals: If given, only evidence whose breakend overlaps one of
                these intervals is returned.
        """
        ...


def expand_query_intervals(
    source: EvidenceSource, intervals: Sequence[QueryInterval]
) -> list[QueryInterval]:
    """Pad intervals so evidence whose mate or clip can reach into them is
    still returned by a region query."""
    return pad_intervals(
        source.dictionary, intervals, source.max_concordant_fragment_size + 1
    )


class InMemoryEvidenceSource:
    def __init__(
        self,
        evidence: Iterable[DirectedEvidence],
        dictionary: ContigDictionary,
        max_concordant_fragment_size: int = 0,
    ) -> None:
        self.dictionary = dictionary
        self._max_concordant_fragment_size = max_concordant_fragment_size
        self.evidence = sorted(evidence, key=lambda e: e.start_key)

    @property
    def max_concordant_fragment_size(self) -> int:
        return self._max_concordant_fragment_size

    def __len__(self) -> int:
        return len(self.evidence)

    def iterator(
        self, intervals: Sequence[QueryInterval] | None = None
    ) -> Iterator[DirectedEvidence]:
        if intervals is None:
            yield from self.evidence
            return
        interval_filter = IntervalFilter(intervals)
        for evidence in self.evidence:
            if interval_filter.overlaps_breakend(evidence.breakend):
                yield evidence
