from . import encoder, graph, pipeline, scheduler
from .encoder import AssemblyEncoder
from .graph import DirectedAssemblyGraph, PileupAssemblyGraph
from .scheduler import EvidenceWindowScheduler

__all__ = [
    "AssemblyEncoder",
    "DirectedAssemblyGraph",
    "EvidenceWindowScheduler",
    "PileupAssemblyGraph",
    "encoder",
    "graph",
    "pipeline",
    "scheduler",
]
