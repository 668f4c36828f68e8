from __future__ import annotations

import logging
from typing import Iterable, Iterator

from svsweep.assembly.encoder import AssemblyEncoder
from svsweep.assembly.scheduler import EvidenceWindowScheduler, assemble_contigs
from svsweep.config import AssemblyParameters
from svsweep.datatypes import AlignmentRecord, ContigDictionary, DirectedEvidence
from svsweep.ids import SequentialIdGenerator
from svsweep.throttle import MessageThrottler

logger = logging.getLogger(__name__)


def assemble_records(
    evidence: Iterable[DirectedEvidence],
    dictionary: ContigDictionary,
    parameters: AssemblyParameters | None = None,
    throttler: MessageThrottler | None = None,
) -> Iterator[AlignmentRecord]:
    """Assemble coordinate sorted evidence into alignment records.

    Records are yielded in the order the sweep produces them: by anchor
    position, forward before backward at each position.
    """
    parameters = parameters or AssemblyParameters()
    scheduler = EvidenceWindowScheduler.with_pileup_graphs(
        parameters.min_support
    )
    encoder = AssemblyEncoder(
        dictionary,
        SequentialIdGenerator(parameters.assembly_id_prefix),
        parameters.min_mapq,
        throttler,
    )
    assembly_count = 0
    for contig in assemble_contigs(evidence, scheduler):
        assembly_count += 1
        yield encoder.encode_contig(contig)
    logger.info(f"Assembled {assembly_count} breakend contigs")
