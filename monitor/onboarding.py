"""Registering characters for monitoring.

A character is either brand new (a private channel is created for it),
suspended (its existing checkpoint and channel are reused), or already
monitored (the request is rejected).
"""

from __future__ import annotations

import asyncio

from logging_config import get_logger
from monitor.base import (
    ChannelProvisioner,
    MonitoredEntity,
    NotificationError,
    Notifier,
    ProvisioningError,
    RegistrationResult,
)
from monitor.checkpoints import Checkpoint, CheckpointError, CheckpointNotFound, CheckpointStore
from monitor.registry import EntityRegistry
from monitor.updater import EntityUpdater

logger = get_logger("onboarding")

ALREADY_MONITORED = "This character is already actively monitored."


class Onboarding:
    """Adds characters to the rotation."""

    def __init__(
        self,
        store: CheckpointStore,
        registry: EntityRegistry,
        updater: EntityUpdater,
        notifier: Notifier,
        provisioner: ChannelProvisioner,
        category_id: int,
    ):
        self._store = store
        self._registry = registry
        self._updater = updater
        self._notifier = notifier
        self._provisioner = provisioner
        self._category_id = category_id
        # One registration at a time; a character is not in the registry
        # until its first update finished.
        self._lock = asyncio.Lock()

    async def register(
        self,
        character_id: int,
        refresh_token: str,
        character_name: str,
        guild_id: int,
        owner_id: int,
    ) -> RegistrationResult:
        """Start monitoring a character.

        Args:
            character_id: EVE character id
            refresh_token: Fresh SSO refresh token
            character_name: Display name, used for the channel
            guild_id: Guild the /monitor command came from
            owner_id: Discord user who asked for monitoring

        Returns:
            RegistrationResult with the channel the character is reported in
        """
        log_extra = {"character_id": character_id}

        async with self._lock:
            if await self._registry.contains(character_id):
                return RegistrationResult(status="already_monitored", message=ALREADY_MONITORED)

            try:
                existing = self._store.read(character_id)
            except CheckpointNotFound:
                existing = None
            except CheckpointError as e:
                logger.error(f"Cannot register, checkpoint unreadable: {e}", extra=log_extra)
                return RegistrationResult(status="error", message="Internal error.")

            if existing is not None:
                if not existing.suspended:
                    return RegistrationResult(status="already_monitored", message=ALREADY_MONITORED)
                return await self._resurrect(existing, refresh_token)

            return await self._create(character_id, refresh_token, character_name, guild_id, owner_id)

    async def _resurrect(self, checkpoint: Checkpoint, refresh_token: str) -> RegistrationResult:
        """Reuse a suspended checkpoint and its channel."""
        checkpoint.refresh_token = refresh_token
        checkpoint.suspended = False
        self._store.write(checkpoint.character_id, checkpoint)

        logger.info("Resuming suspended character", extra={"character_id": checkpoint.character_id})
        await self._enroll(checkpoint.character_id)
        return RegistrationResult(status="resurrected", channel_id=checkpoint.channel_id)

    async def _create(
        self,
        character_id: int,
        refresh_token: str,
        character_name: str,
        guild_id: int,
        owner_id: int,
    ) -> RegistrationResult:
        """Create channel, checkpoint and rotation entry for a new character."""
        try:
            channel_id, thread_id = await self._provisioner.create_private_channel(
                guild_id, self._category_id, owner_id, character_name
            )
        except ProvisioningError as e:
            logger.error(f"Failed to create channel: {e}", extra={"character_id": character_id})
            return RegistrationResult(status="error", message=str(e))

        # Placeholder the status summary will replace
        try:
            await self._notifier.send(channel_id, "Update pending ...")
        except NotificationError as e:
            logger.warning(f"Failed to post placeholder: {e}", extra={"character_id": character_id})

        checkpoint = Checkpoint(
            character_id=character_id,
            character_name=character_name,
            refresh_token=refresh_token,
            owner_id=owner_id,
            guild_id=guild_id,
            channel_id=channel_id,
            activity_thread_id=thread_id,
        )
        self._store.write(character_id, checkpoint)

        logger.info(f"Now monitoring {character_name}", extra={"character_id": character_id})
        await self._enroll(character_id)
        return RegistrationResult(status="created", channel_id=channel_id)

    async def _enroll(self, character_id: int) -> None:
        """Update once right away, then join the rotation."""
        entity = MonitoredEntity(character_id)
        try:
            outcome = await self._updater.update(entity)
        except CheckpointError:
            raise
        except Exception:
            logger.exception("Initial update failed", extra={"character_id": character_id})
            outcome = "continue"

        if outcome == "continue":
            await self._registry.register(entity)
