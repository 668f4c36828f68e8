from . import bam_extract, source, tsv
from .bam_extract import BamEvidenceSource
from .source import EvidenceSource, InMemoryEvidenceSource

__all__ = [
    "BamEvidenceSource",
    "EvidenceSource",
    "InMemoryEvidenceSource",
    "bam_extract",
    "source",
    "tsv",
]
