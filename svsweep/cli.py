from __future__ import annotations

import logging
import logging.config
import pathlib
from typing import Annotated

import colorama
import typer

from svsweep import global_state
from svsweep.assembly.pipeline import assemble_records
from svsweep.calling import BreakpointCallIterator, GreedyCliqueGrouper
from svsweep.config import SvSweepConfig, load_config
from svsweep.datatypes import ContigDictionary
from svsweep.evidence import BamEvidenceSource, EvidenceSource, InMemoryEvidenceSource
from svsweep.evidence.tsv import read_evidence_tsv
from svsweep.intervals import parse_region
from svsweep.output import bedpe, sam_output, vcf_output

colorama.init()
svsweep_app = typer.Typer(
    help="Streaming structural variant breakpoint assembly and calling.",
    pretty_exceptions_show_locals=False,
)
logger = logging.getLogger(__name__)

ALIGNMENT_SUFFIXES = (".bam", ".cram")


def validate_evidence_file(evidence: pathlib.Path) -> pathlib.Path:
    if not evidence.exists():
        raise typer.BadParameter(f"Evidence file {evidence} does not exist.")
    return evidence


# Note: typer.Arguments are required, typer.Options are optional
EvidenceArg = Annotated[
    pathlib.Path,
    typer.Option(
        help="Coordinate sorted, indexed BAM file or tab separated evidence file.",
        callback=validate_evidence_file,
    ),
]
ReferenceArg = Annotated[
    pathlib.Path | None,
    typer.Option(
        help="Indexed reference FASTA. Required for tab separated evidence."
    ),
]
ConfigArg = Annotated[
    pathlib.Path | None,
    typer.Option("--config", help="JSON configuration file."),
]
BedpeArg = Annotated[
    pathlib.Path, typer.Option(help="BEDPE output file of unfiltered calls.")
]
BedpeFilteredArg = Annotated[
    pathlib.Path, typer.Option(help="BEDPE output file of filtered calls.")
]
IncludeHeaderFlag = Annotated[
    bool, typer.Option(help="Include header line with column names.")
]
LowFlag = Annotated[
    bool,
    typer.Option(
        "--low/--no-low",
        help="Write record at breakend with lower genomic coordinate.",
    ),
]
HighFlag = Annotated[
    bool,
    typer.Option(
        "--high/--no-high",
        help="Write record at breakend with higher genomic coordinate.",
    ),
]


def configure_logging(output_dir: pathlib.Path, config: SvSweepConfig) -> None:
    output_dir.mkdir(parents=True, exist_ok=True)
    global_state.STATE_PROVIDER.output_dir = output_dir
    if config.logging is not None:
        logging.config.dictConfig(config.logging.to_dict_config())
        return
    logging.basicConfig(
        filename=global_state.STATE_PROVIDER.log_filepath,
        filemode="w+",
        level=logging.DEBUG,
        format="%(asctime)s:%(levelname)-4s [%(filename)s:%(lineno)d] %(message)s",
        force=True,
    )


def open_evidence_source(
    evidence: pathlib.Path,
    reference: pathlib.Path | None,
    config: SvSweepConfig,
) -> EvidenceSource:
    fragment_size = config.calling.max_concordant_fragment_size
    if evidence.suffix in ALIGNMENT_SUFFIXES:
        return BamEvidenceSource(evidence, config.extraction, fragment_size)
    if reference is None:
        raise typer.BadParameter(
            "A reference is required to resolve contigs of tab separated evidence."
        )
    dictionary = ContigDictionary.from_fasta(str(reference))
    with open(evidence) as evidence_file:
        try:
            records = list(read_evidence_tsv(evidence_file, dictionary))
        except ValueError as e:
            raise typer.BadParameter(str(e)) from e
    logger.info(f"Loaded {len(records)} evidence from {evidence}")
    return InMemoryEvidenceSource(records, dictionary, fragment_size)


def _print_options(description: str, ctx: typer.Context) -> None:
    print(
        f"{colorama.Style.DIM}{colorama.Fore.LIGHTYELLOW_EX}"
        f"{description} with options: {ctx.params}"
        f"{colorama.Style.RESET_ALL}"
    )


@svsweep_app.command(help="Assemble breakend contigs and write their alignments.")
def assemble(
    ctx: typer.Context,
    evidence: EvidenceArg,
    output: Annotated[
        pathlib.Path, typer.Option(help="Output BAM of assembly alignments.")
    ],
    reference: ReferenceArg = None,
    config_file: ConfigArg = None,
) -> None:
    _print_options("Performing assembly", ctx)
    config = load_config(config_file)
    configure_logging(output.parent, config)
    state = global_state.STATE_PROVIDER

    source = open_evidence_source(evidence, reference, config)
    logger.info(state.timed_task_log("Starting assembly"))
    records = assemble_records(
        source.iterator(), source.dictionary, config.assembly, state.throttler
    )
    count = sam_output.write_bam(records, source.dictionary, output)
    logger.info(state.timed_task_log("Finished assembly"))
    state.throttler.log_summary(logger)
    print(
        f"{colorama.Fore.GREEN}Wrote {count} assembly records to {output}"
        f"{colorama.Style.RESET_ALL}"
    )


@svsweep_app.command(help="Call breakpoints from evidence and write them as BEDPE.")
def call(
    ctx: typer.Context,
    evidence: EvidenceArg,
    output: BedpeArg,
    output_filtered: BedpeFilteredArg,
    reference: ReferenceArg = None,
    region: Annotated[
        list[str] | None,
        typer.Option(
            help="Only report calls with a breakend in this region "
            "(chr or chr:start-end, 1-based). May be repeated."
        ),
    ] = None,
    output_vcf: Annotated[
        pathlib.Path | None,
        typer.Option(help="Also write calls as VCF breakend records."),
    ] = None,
    min_support: Annotated[
        int,
        typer.Option(
            min=1, help="Calls with fewer supporting evidence are filtered."
        ),
    ] = 1,
    include_header: IncludeHeaderFlag = False,
    write_low: LowFlag = True,
    write_high: HighFlag = False,
    config_file: ConfigArg = None,
) -> None:
    _print_options("Performing breakpoint calling", ctx)
    if not write_low and not write_high:
        raise typer.BadParameter(
            "At least one of --low and --high breakends must be written."
        )
    config = load_config(config_file)
    configure_logging(output.parent, config)
    state = global_state.STATE_PROVIDER

    source = open_evidence_source(evidence, reference, config)
    intervals = None
    if region:
        try:
            intervals = [parse_region(r, source.dictionary) for r in region]
        except (KeyError, ValueError) as e:
            raise typer.BadParameter(str(e)) from e
    logger.info(state.timed_task_log("Starting breakpoint calling"))
    with BreakpointCallIterator.from_source(
        source,
        GreedyCliqueGrouper(min_support),
        intervals,
        id_prefix=config.calling.id_prefix,
    ) as calls:
        called = list(calls)
    logger.info(state.timed_task_log(f"Called {len(called)} breakpoints"))
    written, filtered = bedpe.write_breakpoint_bedpe(
        called,
        source.dictionary,
        output,
        output_filtered,
        include_header,
        write_low,
        write_high,
    )
    if output_vcf is not None:
        vcf_output.write_breakpoint_vcf(called, source.dictionary, output_vcf)
    print(
        f"{colorama.Fore.GREEN}Wrote {written} calls and {filtered} filtered "
        f"calls{colorama.Style.RESET_ALL}"
    )


@svsweep_app.command(
    name="vcf-to-bedpe", help="Convert VCF breakend calls to BEDPE format."
)
def vcf_to_bedpe(
    ctx: typer.Context,
    input_vcf: Annotated[
        pathlib.Path,
        typer.Option(
            "--input", help="VCF containing structural variation breakend calls."
        ),
    ],
    output: BedpeArg,
    output_filtered: BedpeFilteredArg,
    include_header: IncludeHeaderFlag = False,
    write_low: LowFlag = True,
    write_high: HighFlag = False,
    config_file: ConfigArg = None,
) -> None:
    _print_options("Converting breakend calls", ctx)
    config = load_config(config_file)
    configure_logging(output.parent, config)
    try:
        written, filtered = bedpe.vcf_to_bedpe(
            input_vcf,
            output,
            output_filtered,
            include_header=include_header,
            write_low=write_low,
            write_high=write_high,
        )
    except ValueError as e:
        raise typer.BadParameter(str(e)) from e
    print(
        f"{colorama.Fore.GREEN}Wrote {written} calls and {filtered} filtered "
        f"calls{colorama.Style.RESET_ALL}"
    )
