"""BEDPE output of breakpoint calls, and conversion of VCF breakend calls.

Each breakpoint is written from the perspective of one of its breakends:
the low breakend (lower genomic coordinate), the high breakend, or both.
Filtered calls go to a separate file from unfiltered ones.
"""

from __future__ import annotations

import logging
import pathlib
import re
from typing import Iterable, Iterator, TextIO

import pysam

from svsweep.datatypes import (
    BreakendDirection,
    BreakpointSummary,
    CalledBreakpoint,
    ContigDictionary,
)
from svsweep.output.vcf_attributes import (
    EVIDENCE_SUPPORT_ATTRIBUTES,
    VcfInfoAttributes,
)

logger = logging.getLogger(__name__)

BEDPE_COLUMNS = [
    "chrom1",
    "start1",
    "end1",
    "chrom2",
    "start2",
    "end2",
    "name",
    "score",
    "strand1",
    "strand2",
] + [attribute.key for attribute in EVIDENCE_SUPPORT_ATTRIBUTES]

# t[p[, t]p], ]p]t and [p[t breakend notation
BREAKEND_ALT_PATTERN = re.compile(
    r"^(?P<before>[A-Za-z.]*)"
    r"(?P<bracket>[\[\]])(?P<chr>[^:\[\]]+):(?P<pos>\d+)(?P=bracket)"
    r"(?P<after>[A-Za-z.]*)$"
)


def _format_value(value: object) -> str:
    if value is None:
        return "."
    if isinstance(value, float):
        return f"{value:.2f}"
    if isinstance(value, (list, tuple)):
        return ",".join(_format_value(v) for v in value)
    return str(value)


class BedpeWriter:
    def __init__(self, dictionary: ContigDictionary, file: TextIO) -> None:
        self.dictionary = dictionary
        self.file = file
        self.records_written = 0

    def write_header(self) -> None:
        self.file.write("#" + "\t".join(BEDPE_COLUMNS) + "\n")

    def write(self, call: CalledBreakpoint) -> None:
        breakpoint = call.breakpoint
        fields = [
            self.dictionary.name(breakpoint.reference_index),
            str(breakpoint.start - 1),
            str(breakpoint.end),
            self.dictionary.name(breakpoint.reference_index2),
            str(breakpoint.start2 - 1),
            str(breakpoint.end2),
            call.call_id,
            _format_value(call.quality),
            breakpoint.direction.strand,
            breakpoint.direction2.strand,
        ] + [
            _format_value(call.attributes.get(attribute.key))
            for attribute in EVIDENCE_SUPPORT_ATTRIBUTES
        ]
        self.file.write("\t".join(fields) + "\n")
        self.records_written += 1


def working_path_for(path: pathlib.Path) -> pathlib.Path:
    """Temporary path an output is written to before being moved into place."""
    return path.with_name(f"svsweep.working.{path.name}")


def write_breakpoint_bedpe(
    calls: Iterable[CalledBreakpoint],
    dictionary: ContigDictionary,
    bedpe_path: pathlib.Path,
    bedpe_filtered_path: pathlib.Path,
    include_header: bool = False,
    write_low: bool = True,
    write_high: bool = False,
) -> tuple[int, int]:
    """Split calls into unfiltered and filtered BEDPE files.

    Outputs only appear at their final paths once every call is written.

    Returns:
        Number of (unfiltered, filtered) records written.

    Raises:
        ValueError: if neither low nor high breakends are requested.
    """
    if not write_low and not write_high:
        raise ValueError(
            "No breakends to be written. At least one of {low, high} "
            "breakends should be specified"
        )
    working = working_path_for(bedpe_path)
    working_filtered = working_path_for(bedpe_filtered_path)
    with open(working, "w") as out, open(working_filtered, "w") as out_filtered:
        writer = BedpeWriter(dictionary, out)
        writer_filtered = BedpeWriter(dictionary, out_filtered)
        if include_header:
            writer.write_header()
            writer_filtered.write_header()
        for call in calls:
            target = writer_filtered if call.is_filtered else writer
            # Calls are written from the perspective of their local breakend
            if call.breakpoint.is_low_breakend and write_low:
                target.write(call)
            if call.breakpoint.is_high_breakend and write_high:
                target.write(call)
    working.replace(bedpe_path)
    working_filtered.replace(bedpe_filtered_path)
    logger.info(
        f"Wrote {writer.records_written} calls to {bedpe_path} and "
        f"{writer_filtered.records_written} filtered calls to "
        f"{bedpe_filtered_path}"
    )
    return writer.records_written, writer_filtered.records_written


def parse_breakend_alt(
    alt: str,
) -> tuple[BreakendDirection, str, int, BreakendDirection] | None:
    """Parse VCF breakend notation.

    Returns:
        (local direction, remote contig, remote position, remote direction),
        or None if `alt` is not a breakend allele.
    """
    match = BREAKEND_ALT_PATTERN.match(alt)
    if not match or bool(match["before"]) == bool(match["after"]):
        return None
    local_direction = (
        BreakendDirection.FORWARD if match["before"] else BreakendDirection.BACKWARD
    )
    remote_direction = (
        BreakendDirection.FORWARD
        if match["bracket"] == "]"
        else BreakendDirection.BACKWARD
    )
    return local_direction, match["chr"], int(match["pos"]), remote_direction


def _confidence_interval(record: pysam.VariantRecord, key: str) -> tuple[int, int]:
    if key in record.header.info and key in record.info:
        low, high = record.info[key]
        return int(low), int(high)
    return 0, 0


def call_from_variant(
    record: pysam.VariantRecord, dictionary: ContigDictionary
) -> CalledBreakpoint | None:
    """Breakpoint call from a VCF breakend record; None for other variants."""
    if not record.alts or len(record.alts) != 1:
        return None
    parsed = parse_breakend_alt(record.alts[0])
    if parsed is None:
        return None
    local_direction, remote_contig, remote_position, remote_direction = parsed
    cipos = _confidence_interval(record, "CIPOS")
    cirpos = _confidence_interval(
        record,
        VcfInfoAttributes.CONFIDENCE_INTERVAL_REMOTE_BREAKEND_START_POSITION_KEY.key,
    )
    breakpoint = BreakpointSummary(
        dictionary.index(record.chrom),
        local_direction,
        record.pos + cipos[0],
        record.pos + cipos[1],
        dictionary.index(remote_contig),
        remote_direction,
        remote_position + cirpos[0],
        remote_position + cirpos[1],
    )
    attributes = {
        attribute.key: record.info[attribute.key]
        for attribute in EVIDENCE_SUPPORT_ATTRIBUTES
        if attribute.key in record.header.info and attribute.key in record.info
    }
    return CalledBreakpoint(
        call_id=record.id or f"{record.chrom}:{record.pos}",
        breakpoint=breakpoint,
        quality=record.qual or 0.0,
        filters=tuple(record.filter.keys()),
        attributes=attributes,
    )


def read_vcf_calls(
    vcf: pysam.VariantFile, dictionary: ContigDictionary
) -> Iterator[CalledBreakpoint]:
    skipped = 0
    for record in vcf:
        call = call_from_variant(record, dictionary)
        if call is None:
            skipped += 1
            continue
        yield call
    if skipped:
        logger.info(f"Ignored {skipped} records not in breakend notation")


def vcf_to_bedpe(
    vcf_path: pathlib.Path,
    bedpe_path: pathlib.Path,
    bedpe_filtered_path: pathlib.Path,
    dictionary: ContigDictionary | None = None,
    include_header: bool = False,
    write_low: bool = True,
    write_high: bool = False,
) -> tuple[int, int]:
    """Convert VCF breakend calls to BEDPE.

    Args:
        dictionary: Contig ordering used to decide low and high breakends;
            defaults to the contigs declared in the VCF header.
    """
    with pysam.VariantFile(str(vcf_path)) as vcf:
        if dictionary is None:
            dictionary = ContigDictionary.from_variant_header(vcf.header)
        return write_breakpoint_bedpe(
            read_vcf_calls(vcf, dictionary),
            dictionary,
            bedpe_path,
            bedpe_filtered_path,
            include_header,
            write_low,
            write_high,
        )
