from __future__ import annotations

import logging
from collections import Counter

logger = logging.getLogger(__name__)


class MessageThrottler:
    """Suppresses repeated diagnostics of the same class.

    The first message of each class is let through; later ones are counted
    so a summary can be reported at the end of a run.
    """

    def __init__(self, max_per_class: int = 1) -> None:
        self.max_per_class = max_per_class
        self.counts: Counter[str] = Counter()

    def should_suppress(self, message_class: str) -> bool:
        self.counts[message_class] += 1
        return self.counts[message_class] > self.max_per_class

    def warn(
        self, log: logging.Logger, message_class: str, message: str
    ) -> bool:
        """Log `message` at WARNING unless its class is already throttled.

        Returns:
            True if the message was logged.
        """
        if self.should_suppress(message_class):
            return False
        log.warning(message)
        return True

    def suppressed(self) -> dict[str, int]:
        return {
            message_class: count - self.max_per_class
            for message_class, count in self.counts.items()
            if count > self.max_per_class
        }

    def log_summary(self, log: logging.Logger = logger) -> None:
        for message_class, count in sorted(self.suppressed().items()):
            log.info(f"Suppressed {count} further '{message_class}' messages")
