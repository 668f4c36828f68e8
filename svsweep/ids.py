from __future__ import annotations

import itertools
from typing import Protocol


class IdGenerator(Protocol):
    def generate(self) -> str: ...


class SequentialIdGenerator:
    """Produces `<prefix><n>` identifiers, numbered from zero.

    Shards processed in parallel use distinct prefixes so that identifiers
    stay unique once their outputs are merged.
    """

    def __init__(self, prefix: str) -> None:
        self.prefix = prefix
        self._counter = itertools.count()

    @classmethod
    def for_interval(
        cls, prefix: str, interval_number: int
    ) -> SequentialIdGenerator:
        return cls(f"{prefix}{interval_number}_")

    def generate(self) -> str:
        return f"{self.prefix}{next(self._counter)}"
