from . import clique, orchestrator
from .clique import CliqueGrouper, GreedyCliqueGrouper
from .orchestrator import DIRECTION_ORDER, BreakpointCallIterator

__all__ = [
    "DIRECTION_ORDER",
    "BreakpointCallIterator",
    "CliqueGrouper",
    "GreedyCliqueGrouper",
    "clique",
    "orchestrator",
]
