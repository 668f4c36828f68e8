from __future__ import annotations

import enum

import pysam

UNBOUNDED = "."

# FILTER applied to calls with fewer supporting evidence than required
LOW_SUPPORT_FILTER = "LOW_SUPPORT"


class VcfInfoAttributes(enum.Enum):
    """INFO fields describing the evidence supporting a breakpoint call."""

    REFERENCE_READ_COUNT = (
        "REF", "1", "Integer", "Count of reads mapping across this breakend"
    )
    REFERENCE_READPAIR_COUNT = (
        "REFPAIR",
        "1",
        "Integer",
        "Count of reference read pairs spanning this breakpoint supporting "
        "the reference allele",
    )
    CALLED_QUAL = (
        "CQ", "1", "Float", "Breakpoint quality score before evidence reallocation"
    )
    BREAKEND_QUAL = ("BQ", "1", "Float", "Quality score of breakend evidence")
    BREAKPOINT_ASSEMBLY_COUNT = (
        "AS", "1", "Integer", "Count of assemblies supporting breakpoint"
    )
    BREAKPOINT_READPAIR_COUNT = (
        "RP", "1", "Integer", "Count of read pairs supporting breakpoint"
    )
    BREAKPOINT_SPLITREAD_COUNT = (
        "SR", "1", "Integer", "Count of split reads supporting breakpoint"
    )
    BREAKPOINT_INDEL_COUNT = (
        "IC", "1", "Integer", "Count of read indels supporting breakpoint"
    )
    BREAKPOINT_ASSEMBLY_QUAL = (
        "ASQ", "1", "Float", "Quality score of assemblies supporting breakpoint"
    )
    BREAKPOINT_READPAIR_QUAL = (
        "RPQ", "1", "Float", "Quality score of read pairs supporting breakpoint"
    )
    BREAKPOINT_SPLITREAD_QUAL = (
        "SRQ", "1", "Float", "Quality score of split reads supporting breakpoint"
    )
    BREAKPOINT_INDEL_QUAL = (
        "IQ", "1", "Float", "Quality score of read indels supporting breakpoint"
    )
    BREAKEND_UNMAPPEDMATE_COUNT = (
        "BUM",
        "1",
        "Integer",
        "Count of read pairs (with one read unmapped) supporting just local "
        "breakend",
    )
    BREAKEND_SOFTCLIP_COUNT = (
        "BSC", "1", "Integer", "Count of soft clips supporting just local breakend"
    )
    CONFIDENCE_INTERVAL_REMOTE_BREAKEND_START_POSITION_KEY = (
        "CIRPOS",
        "2",
        "Integer",
        "Confidence interval around remote breakend POS for imprecise variants",
    )
    SELF_INTERSECTING = (
        "SELF", "0", "Flag", "Indicates a breakpoint is self-intersecting"
    )
    BREAKEND_ASSEMBLY_ID = (
        "BEID",
        UNBOUNDED,
        "String",
        "Breakend assemblies contributing support to the breakpoint.",
    )

    def __init__(
        self, key: str, number: str, value_type: str, description: str
    ) -> None:
        self.key = key
        self.number = number
        self.value_type = value_type
        self.description = description

    @classmethod
    def from_key(cls, key: str) -> VcfInfoAttributes | None:
        for attribute in cls:
            if attribute.key == key:
                return attribute
        return None

    def add_to_header(self, header: pysam.VariantHeader) -> None:
        if self.key not in header.info:
            header.info.add(
                self.key, self.number, self.value_type, self.description
            )


# Per-kind support counts and qualities reported alongside each call
EVIDENCE_SUPPORT_ATTRIBUTES = [
    VcfInfoAttributes.BREAKPOINT_ASSEMBLY_COUNT,
    VcfInfoAttributes.BREAKPOINT_READPAIR_COUNT,
    VcfInfoAttributes.BREAKPOINT_SPLITREAD_COUNT,
    VcfInfoAttributes.BREAKPOINT_INDEL_COUNT,
    VcfInfoAttributes.BREAKPOINT_ASSEMBLY_QUAL,
    VcfInfoAttributes.BREAKPOINT_READPAIR_QUAL,
    VcfInfoAttributes.BREAKPOINT_SPLITREAD_QUAL,
    VcfInfoAttributes.BREAKPOINT_INDEL_QUAL,
]
