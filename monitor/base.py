"""Base types for the skill monitor.

The monitor polls each registered character in turn and needs three
collaborators, all provided from outside the package:

1. ProgressSource - refreshes OAuth tokens and fetches skills / skill queue
2. Notifier - delivers text to Discord channels and threads
3. ChannelProvisioner - creates the private channel for a new character
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Literal

# Result of one update cycle, as seen by the scheduler
Outcome = Literal["continue", "suspend"]


class ProgressSourceError(Exception):
    """Transient failure talking to the progress source."""


class NotificationError(Exception):
    """A message could not be delivered."""


class ProvisioningError(Exception):
    """The notification channel for a new character could not be created."""


@dataclass
class SkillRecord:
    """One trained (or injected) skill of a character."""

    skill_id: int
    skillpoints_in_skill: int = 0
    trained_skill_level: int = 0
    active_skill_level: int = 0

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> SkillRecord:
        return cls(
            skill_id=int(data["skill_id"]),
            skillpoints_in_skill=int(data.get("skillpoints_in_skill", 0)),
            trained_skill_level=int(data.get("trained_skill_level", 0)),
            active_skill_level=int(data.get("active_skill_level", 0)),
        )

    def to_dict(self) -> dict[str, int]:
        return {
            "skill_id": self.skill_id,
            "skillpoints_in_skill": self.skillpoints_in_skill,
            "trained_skill_level": self.trained_skill_level,
            "active_skill_level": self.active_skill_level,
        }


@dataclass
class QueueItem:
    """An entry of the skill queue.

    Items without a finish date are paused training; they only ever
    appear at the end of the queue.
    """

    skill_id: int
    finished_level: int
    queue_position: int = 0
    finish_date: datetime | None = None
    level_start_sp: int = 0
    level_end_sp: int = 0

    def is_finished(self, now: datetime) -> bool:
        """Check if this item has completed training at `now`."""
        return self.finish_date is not None and self.finish_date <= now


@dataclass
class MonitoredEntity:
    """A character in the live rotation. Not persisted."""

    character_id: int
    consecutive_failures: int = 0

    def __repr__(self) -> str:
        return f"MonitoredEntity({self.character_id}, failures={self.consecutive_failures})"


@dataclass
class RegistrationResult:
    """Outcome of registering a character for monitoring."""

    status: Literal["created", "resurrected", "already_monitored", "error"]
    channel_id: int | None = None
    message: str = ""
    details: dict[str, Any] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return self.status in ("created", "resurrected")


class ProgressSource(ABC):
    """Where skills, skill queues and skill names come from."""

    @abstractmethod
    async def refresh(self, refresh_token: str) -> tuple[str, str]:
        """Exchange a refresh token.

        Returns:
            (access_token, new_refresh_token)

        Raises:
            ProgressSourceError: On any failure
        """
        ...

    @abstractmethod
    async def fetch_snapshot(self, access_token: str, character_id: int) -> list[SkillRecord]:
        """Fetch all skills of the character."""
        ...

    @abstractmethod
    async def fetch_queue(self, access_token: str, character_id: int) -> list[QueueItem]:
        """Fetch the skill queue, ordered by queue position."""
        ...

    @abstractmethod
    async def resolve_display_name(self, skill_id: int) -> str:
        """Look up the human readable name of a skill."""
        ...


class Notifier(ABC):
    """Outbound messages to the character's Discord targets."""

    @abstractmethod
    async def send(self, target: int, text: str) -> None:
        """Post a new message to `target`."""
        ...

    @abstractmethod
    async def replace_last(self, target: int, text: str) -> None:
        """Replace the most recent message in `target` with `text`."""
        ...


class ChannelProvisioner(ABC):
    """Creates the private channel a character is reported in."""

    @abstractmethod
    async def create_private_channel(
        self,
        guild_id: int,
        category_id: int,
        owner_id: int,
        display_name: str,
    ) -> tuple[int, int]:
        """Create the channel and its activity thread.

        Returns:
            (channel_id, activity_thread_id)

        Raises:
            ProvisioningError: If Discord refuses or the guild is unknown
        """
        ...
