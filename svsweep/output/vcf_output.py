from __future__ import annotations

import logging
import pathlib
from typing import Iterable

import pysam

from svsweep.datatypes import BreakendDirection, CalledBreakpoint, ContigDictionary
from svsweep.output.vcf_attributes import (
    EVIDENCE_SUPPORT_ATTRIBUTES,
    LOW_SUPPORT_FILTER,
    VcfInfoAttributes,
)

logger = logging.getLogger(__name__)

REMOTE_CI = VcfInfoAttributes.CONFIDENCE_INTERVAL_REMOTE_BREAKEND_START_POSITION_KEY


def format_breakend_alt(
    ref_base: str,
    direction: BreakendDirection,
    remote_contig: str,
    remote_position: int,
    remote_direction: BreakendDirection,
) -> str:
    bracket = "]" if remote_direction.is_forward else "["
    mate = f"{bracket}{remote_contig}:{remote_position}{bracket}"
    if direction.is_forward:
        return f"{ref_base}{mate}"
    return f"{mate}{ref_base}"


def breakend_header(dictionary: ContigDictionary) -> pysam.VariantHeader:
    header = pysam.VariantHeader()
    header.add_meta("fileformat", "VCFv4.2")
    for name, length in zip(dictionary.names, dictionary.lengths):
        header.contigs.add(name, length=length)
    header.info.add("SVTYPE", 1, "String", "Type of structural variant")
    header.info.add("IMPRECISE", 0, "Flag", "Imprecise structural variation")
    header.info.add(
        "CIPOS", 2, "Integer", "Confidence interval around POS for imprecise variants"
    )
    REMOTE_CI.add_to_header(header)
    for attribute in EVIDENCE_SUPPORT_ATTRIBUTES:
        attribute.add_to_header(header)
    header.filters.add(
        LOW_SUPPORT_FILTER, None, None, "Fewer supporting evidence than required"
    )
    return header


def write_breakpoint_vcf(
    calls: Iterable[CalledBreakpoint],
    dictionary: ContigDictionary,
    vcf_path: pathlib.Path,
) -> int:
    """Write calls as VCF breakend records, in the order given."""
    header = breakend_header(dictionary)
    count = 0
    with pysam.VariantFile(str(vcf_path), "w", header=header) as vcf:
        for call in calls:
            bp = call.breakpoint
            alt = format_breakend_alt(
                "N",
                bp.direction,
                dictionary.name(bp.reference_index2),
                bp.start2,
                bp.direction2,
            )
            record = vcf.new_record(
                contig=dictionary.name(bp.reference_index),
                start=bp.start - 1,
                stop=bp.start,
                alleles=("N", alt),
                id=call.call_id,
                qual=call.quality,
                filter=list(call.filters) or None,
            )
            record.info["SVTYPE"] = "BND"
            if not (bp.is_precise and bp.start2 == bp.end2):
                record.info["IMPRECISE"] = True
                record.info["CIPOS"] = (0, bp.end - bp.start)
                record.info[REMOTE_CI.key] = (0, bp.end2 - bp.start2)
            for attribute in EVIDENCE_SUPPORT_ATTRIBUTES:
                if attribute.key in call.attributes:
                    record.info[attribute.key] = call.attributes[attribute.key]
            vcf.write(record)
            count += 1
    logger.info(f"Wrote {count} breakend records to {vcf_path}")
    return count
