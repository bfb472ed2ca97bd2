"""Background scheduler for the skill monitor.

Polls one character per tick, spacing the ticks so that a full pass over
every character takes roughly one rotation period. Runs as a single
asyncio task alongside the Discord bot.
"""

from __future__ import annotations

import asyncio
import time
from collections.abc import Awaitable, Callable
from typing import Any

from logging_config import get_logger
from monitor.base import MonitoredEntity
from monitor.checkpoints import CheckpointError, CheckpointStore
from monitor.registry import EntityRegistry
from monitor.updater import EntityUpdater

logger = get_logger("monitor")

DEFAULT_PERIOD_SECONDS = 30 * 60


def tick_delay(period: float, size: int, elapsed: float) -> float:
    """Seconds to sleep after a tick.

    Args:
        period: Target duration of one full rotation
        size: Number of characters in the rotation
        elapsed: Time the tick itself took
    """
    return max(0.0, period / max(1, size) - elapsed)


class MonitorScheduler:
    """Round-robin polling loop over the entity registry."""

    def __init__(
        self,
        registry: EntityRegistry,
        updater: EntityUpdater,
        period: float = DEFAULT_PERIOD_SECONDS,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ):
        """Initialize the scheduler.

        Args:
            registry: Characters in rotation
            updater: Runs one update cycle
            period: Seconds for one full rotation
            clock: Monotonic clock, injectable for tests
            sleep: Async sleep, injectable for tests
        """
        self._registry = registry
        self._updater = updater
        self._period = period
        self._clock = clock
        self._sleep = sleep
        self._running = False
        self._ticks = 0

    @property
    def is_running(self) -> bool:
        """Check if the loop is running."""
        return self._running

    @property
    def period(self) -> float:
        return self._period

    async def restore(self, store: CheckpointStore) -> int:
        """Put every active stored character into the rotation.

        Returns:
            Number of characters restored
        """
        ids = store.load_active()
        for character_id in ids:
            await self._registry.register(MonitoredEntity(character_id))
        logger.info(f"Restored {len(ids)} character(s) from {store.folder}")
        return len(ids)

    async def tick(self) -> float:
        """Update the character under the cursor.

        Returns:
            Seconds to wait before the next tick

        Raises:
            CheckpointError: If the character's checkpoint cannot be read
        """
        started = self._clock()

        entity = await self._registry.current()
        if entity is None:
            return self._period

        try:
            outcome = await self._updater.update(entity)
        except CheckpointError:
            raise
        except Exception:
            logger.exception(
                "Unexpected error during update",
                extra={"character_id": entity.character_id},
            )
            outcome = "continue"

        if outcome == "suspend":
            size = await self._registry.unregister(entity)
            logger.info(
                f"Removed from rotation, {size} character(s) left",
                extra={"character_id": entity.character_id},
            )
        else:
            size = await self._registry.advance_past(entity)

        self._ticks += 1
        return tick_delay(self._period, size, self._clock() - started)

    async def run(self) -> None:
        """Tick forever. Only a fatal checkpoint error ends the loop."""
        if self._running:
            logger.info("Scheduler already running")
            return

        self._running = True
        logger.info(f"Starting skill monitor ({len(self._registry)} character(s))")
        try:
            while self._running:
                delay = await self.tick()
                await self._sleep(delay)
        finally:
            self._running = False

    def stop(self) -> None:
        """Stop after the current tick."""
        self._running = False

    def get_status(self) -> dict:
        """Get scheduler status for monitoring."""
        return {
            "running": self._running,
            "period_seconds": self._period,
            "characters": len(self._registry),
            "cursor": self._registry.cursor,
            "ticks": self._ticks,
        }
