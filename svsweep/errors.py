"""Exceptions raised when a streaming invariant has been violated.

Both are fatal: the one-pass algorithms that raise them cannot revisit
retired state, so any output produced after the violation would be wrong.
"""

from __future__ import annotations


class EvidenceOrderError(ValueError):
    """Evidence was delivered out of coordinate-sorted order."""


class GraphConsistencyError(RuntimeError):
    """An assembly graph was asked to track or release evidence it cannot."""
