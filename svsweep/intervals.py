"""Genomic interval helpers used to restrict evidence queries and outputs."""

from __future__ import annotations

import logging
import re
from collections import defaultdict
from typing import Iterable

import intervaltree

from svsweep.datatypes import BreakendSummary, ContigDictionary, QueryInterval

logger = logging.getLogger(__name__)

REGION_PATTERN = re.compile(r"^(?P<chr>[^:]+)(?::(?P<start>[\d,]+)-(?P<end>[\d,]+))?$")


def parse_region(region: str, dictionary: ContigDictionary) -> QueryInterval:
    """Parse a `chr`, or `chr:start-end` (1-based, inclusive) region string."""
    match = REGION_PATTERN.match(region.strip())
    if not match:
        raise ValueError(f"Invalid region: {region}")
    reference_index = dictionary.index(match["chr"])
    if match["start"] is None:
        return QueryInterval(
            reference_index, 1, dictionary.length(reference_index)
        )
    start = int(match["start"].replace(",", ""))
    end = int(match["end"].replace(",", ""))
    if start < 1 or start > end:
        raise ValueError(f"Invalid region bounds: {region}")
    return QueryInterval(reference_index, start, end)


def merge_intervals(intervals: Iterable[QueryInterval]) -> list[QueryInterval]:
    """Sort intervals and merge those that overlap or abut."""
    merged: list[QueryInterval] = []
    for interval in sorted(intervals):
        if (
            merged
            and merged[-1].reference_index == interval.reference_index
            and interval.start <= merged[-1].end + 1
        ):
            last = merged[-1]
            merged[-1] = QueryInterval(
                last.reference_index, last.start, max(last.end, interval.end)
            )
        else:
            merged.append(interval)
    return merged


def pad_intervals(
    dictionary: ContigDictionary,
    intervals: Iterable[QueryInterval],
    expand_by: int,
) -> list[QueryInterval]:
    """Expand each interval by `expand_by` bases on both sides.

    Expanded intervals are clipped to the contig bounds and merged.
    """
    padded = [
        QueryInterval(
            interval.reference_index,
            max(1, interval.start - expand_by),
            min(
                dictionary.length(interval.reference_index),
                interval.end + expand_by,
            ),
        )
        for interval in intervals
    ]
    return merge_intervals(padded)


class IntervalFilter:
    """Overlap queries against a fixed set of genomic intervals."""

    def __init__(self, intervals: Iterable[QueryInterval]) -> None:
        self.intervals = merge_intervals(intervals)
        self.trees: dict[int, intervaltree.IntervalTree] = defaultdict(
            intervaltree.IntervalTree
        )
        for interval in self.intervals:
            # IntervalTree intervals are half-open
            self.trees[interval.reference_index].addi(
                interval.start, interval.end + 1
            )

    def overlaps(self, reference_index: int, start: int, end: int) -> bool:
        if reference_index not in self.trees:
            return False
        return self.trees[reference_index].overlaps(start, end + 1)

    def overlaps_breakend(self, breakend: BreakendSummary) -> bool:
        return self.overlaps(
            breakend.reference_index, breakend.start, breakend.end
        )
