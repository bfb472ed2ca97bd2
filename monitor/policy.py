"""Retry and suspension policy.

A character is retried at the normal cadence after every failed cycle.
Once `threshold` cycles in a row have failed, the character is suspended
until its owner authenticates again.
"""

from __future__ import annotations

from dataclasses import dataclass

from monitor.base import MonitoredEntity

DEFAULT_FAILURE_THRESHOLD = 8


@dataclass(frozen=True)
class SuspensionPolicy:
    """Counts consecutive failures per character."""

    threshold: int = DEFAULT_FAILURE_THRESHOLD

    def __post_init__(self):
        if self.threshold < 1:
            raise ValueError("threshold must be at least 1")

    def record_failure(self, entity: MonitoredEntity) -> None:
        entity.consecutive_failures += 1

    def record_success(self, entity: MonitoredEntity) -> None:
        entity.consecutive_failures = 0

    def is_exhausted(self, entity: MonitoredEntity) -> bool:
        """True once the character has used up its retry budget."""
        return entity.consecutive_failures >= self.threshold
