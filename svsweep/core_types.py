"""Primitive types, associated containers, and useful aliases within svsweep."""

ContigIdx = int  # Index of a contig within the sequence dictionary
EvidenceId = str
