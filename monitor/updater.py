"""One polling cycle for one character.

refresh token -> fetch skills and queue -> reconcile -> diff -> notify ->
persist. Transient failures are counted by the suspension policy; a
missing or corrupt checkpoint is not handled here and propagates.
"""

from __future__ import annotations

from collections.abc import Callable
from datetime import UTC, datetime, timedelta

from logging_config import get_logger
from monitor.base import (
    MonitoredEntity,
    NotificationError,
    Notifier,
    Outcome,
    ProgressSource,
    ProgressSourceError,
)
from monitor.changes import detect_changes, reconcile, remaining_queue
from monitor.checkpoints import Checkpoint, CheckpointStore
from monitor.formatting import format_changes, format_queue_summary, suspension_alert
from monitor.policy import SuspensionPolicy

logger = get_logger("monitor")


def utcnow() -> datetime:
    return datetime.now(UTC)


class EntityUpdater:
    """Runs the update protocol for a single character."""

    def __init__(
        self,
        store: CheckpointStore,
        source: ProgressSource,
        notifier: Notifier,
        policy: SuspensionPolicy | None = None,
        period: timedelta = timedelta(minutes=30),
        now: Callable[[], datetime] = utcnow,
    ):
        """Initialize the updater.

        Args:
            store: Checkpoint storage
            source: Token refresh and skill data
            notifier: Discord delivery
            policy: Failure counting; defaults to the standard threshold
            period: Rotation period, shown as the next expected update
            now: Clock used for reconciliation
        """
        self._store = store
        self._source = source
        self._notifier = notifier
        self._policy = policy or SuspensionPolicy()
        self._period = period
        self._now = now

    @property
    def policy(self) -> SuspensionPolicy:
        return self._policy

    async def update(self, entity: MonitoredEntity) -> Outcome:
        """Poll one character and report whether it stays in rotation.

        Raises:
            CheckpointError: If the character's checkpoint is missing or corrupt
        """
        log_extra = {"character_id": entity.character_id}
        logger.info("Refreshing skills", extra=log_extra)

        checkpoint = self._store.read(entity.character_id)

        try:
            await self._poll(entity, checkpoint)
        except ProgressSourceError as e:
            self._policy.record_failure(entity)
            logger.warning(
                f"Update failed ({entity.consecutive_failures}/{self._policy.threshold}): {e}",
                extra=log_extra,
            )
        else:
            self._policy.record_success(entity)

        suspend = self._policy.is_exhausted(entity)
        if suspend:
            logger.warning(
                f"Character has failed {entity.consecutive_failures} times in a row. "
                "Suspending account.",
                extra=log_extra,
            )
            checkpoint.suspended = True
            await self._notify(
                checkpoint.activity_thread_id,
                suspension_alert(checkpoint.owner_id, entity.consecutive_failures),
            )

        self._store.write(entity.character_id, checkpoint)
        return "suspend" if suspend else "continue"

    async def _poll(self, entity: MonitoredEntity, checkpoint: Checkpoint) -> None:
        """Fetch, reconcile, diff and notify; mutates `checkpoint` on success.

        Nothing is written into the checkpoint unless every fetch succeeded,
        so a failed cycle keeps the previous refresh token.
        """
        access_token, refresh_token = await self._source.refresh(checkpoint.refresh_token)
        skills = await self._source.fetch_snapshot(access_token, entity.character_id)
        queue = await self._source.fetch_queue(access_token, entity.character_id)

        now = self._now()
        current = reconcile(skills, queue, now)

        summary = await format_queue_summary(
            remaining_queue(queue, now),
            self._source.resolve_display_name,
            now,
            self._period,
        )
        await self._notify(checkpoint.channel_id, summary, replace=True)

        # First poll: everything would look new, so only record it
        if checkpoint.skills:
            events = detect_changes(checkpoint.skills, current)
            if events:
                text = await format_changes(events, self._source.resolve_display_name)
                await self._notify(checkpoint.activity_thread_id, text)

        checkpoint.skills = current
        checkpoint.refresh_token = refresh_token

    async def _notify(self, target: int, text: str, replace: bool = False) -> None:
        """Deliver a message; failures are logged and dropped."""
        try:
            if replace:
                await self._notifier.replace_last(target, text)
            else:
                await self._notifier.send(target, text)
        except NotificationError as e:
            logger.warning(f"Failed to notify {target}: {e}")
