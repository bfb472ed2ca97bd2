"""Authentications waiting for the OAuth callback.

`/monitor` creates an entry keyed by a random state token; the webserver
looks it up when the SSO redirects back. Entries that are not completed in
time are answered with a timeout message and dropped.
"""

from __future__ import annotations

import asyncio
import secrets
import time
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

from logging_config import get_logger

logger = get_logger("discord")

TIMEOUT_MESSAGE = "Authentication timed out. Use /monitor to try again."
SWEEP_INTERVAL = 60


@dataclass
class PendingAuth:
    """A /monitor command waiting for its login."""

    interaction: Any  # discord.Interaction
    guild_id: int
    user_id: int
    expires_at: float


class PendingAuthStore:
    """In-memory pending authentications keyed by OAuth state."""

    def __init__(
        self,
        timeout_seconds: float = 300,
        clock: Callable[[], float] = time.monotonic,
    ):
        self._timeout = timeout_seconds
        self._clock = clock
        self._pending: dict[str, PendingAuth] = {}

    def __len__(self) -> int:
        return len(self._pending)

    def create(self, interaction: Any) -> str:
        """Remember an interaction and return its state token."""
        state = secrets.token_urlsafe(24)
        self._pending[state] = PendingAuth(
            interaction=interaction,
            guild_id=interaction.guild_id,
            user_id=interaction.user.id,
            expires_at=self._clock() + self._timeout,
        )
        return state

    def exists(self, state: str) -> bool:
        return state in self._pending

    def get(self, state: str) -> PendingAuth | None:
        return self._pending.get(state)

    def remove(self, state: str) -> None:
        self._pending.pop(state, None)

    async def edit_response(self, state: str, text: str) -> None:
        """Replace the ephemeral reply of the pending /monitor command."""
        pending = self._pending.get(state)
        if pending is None:
            return
        try:
            await pending.interaction.edit_original_response(content=text)
        except Exception as e:
            # Interaction tokens expire; nothing left to tell the user then
            logger.warning(f"Failed to edit interaction response: {e}", extra={"state": state})

    async def sweep(self) -> int:
        """Expire overdue entries.

        Returns:
            Number of entries removed
        """
        now = self._clock()
        expired = [state for state, p in self._pending.items() if p.expires_at <= now]
        for state in expired:
            await self.edit_response(state, TIMEOUT_MESSAGE)
            self.remove(state)
        if expired:
            logger.info(f"Expired {len(expired)} pending authentication(s)")
        return len(expired)

    async def run_sweeper(self, interval: float = SWEEP_INTERVAL) -> None:
        """Sweep forever."""
        while True:
            await self.sweep()
            await asyncio.sleep(interval)
