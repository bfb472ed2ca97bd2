"""
Pytest configuration and fixtures.
"""

from __future__ import annotations

from datetime import UTC, datetime

import pytest

from monitor.base import (
    ChannelProvisioner,
    NotificationError,
    Notifier,
    ProgressSource,
    ProgressSourceError,
    ProvisioningError,
    QueueItem,
    SkillRecord,
)
from monitor.checkpoints import Checkpoint, CheckpointStore

NOW = datetime(2025, 1, 15, 12, 0, 0, tzinfo=UTC)


class FakeSource(ProgressSource):
    """ProgressSource with canned answers."""

    def __init__(self):
        self.skills: list[SkillRecord] = []
        self.queue: list[QueueItem] = []
        self.names: dict[int, str] = {}
        self.fail_refresh = False
        self.fail_snapshot = False
        self.fail_queue = False
        self.refresh_calls: list[str] = []
        self._counter = 0

    async def refresh(self, refresh_token: str) -> tuple[str, str]:
        self.refresh_calls.append(refresh_token)
        if self.fail_refresh:
            raise ProgressSourceError("refresh rejected")
        self._counter += 1
        return f"access-{self._counter}", f"refresh-{self._counter}"

    async def fetch_snapshot(self, access_token: str, character_id: int) -> list[SkillRecord]:
        if self.fail_snapshot:
            raise ProgressSourceError("skills unavailable")
        return list(self.skills)

    async def fetch_queue(self, access_token: str, character_id: int) -> list[QueueItem]:
        if self.fail_queue:
            raise ProgressSourceError("queue unavailable")
        return list(self.queue)

    async def resolve_display_name(self, skill_id: int) -> str:
        if skill_id not in self.names:
            raise ProgressSourceError(f"unknown skill {skill_id}")
        return self.names[skill_id]


class FakeNotifier(Notifier):
    """Records every message instead of delivering it."""

    def __init__(self):
        self.sent: list[tuple[int, str]] = []
        self.replaced: list[tuple[int, str]] = []
        self.fail = False

    async def send(self, target: int, text: str) -> None:
        if self.fail:
            raise NotificationError("discord down")
        self.sent.append((target, text))

    async def replace_last(self, target: int, text: str) -> None:
        if self.fail:
            raise NotificationError("discord down")
        self.replaced.append((target, text))

    def sent_to(self, target: int) -> list[str]:
        return [text for t, text in self.sent if t == target]


class FakeProvisioner(ChannelProvisioner):
    def __init__(self, channel_id: int = 500, thread_id: int = 501):
        self.calls: list[tuple[int, int, int, str]] = []
        self.channel_id = channel_id
        self.thread_id = thread_id
        self.fail = False

    async def create_private_channel(self, guild_id, category_id, owner_id, display_name):
        self.calls.append((guild_id, category_id, owner_id, display_name))
        if self.fail:
            raise ProvisioningError("Missing Permissions")
        return self.channel_id, self.thread_id


class FakeClock:
    """Monotonic clock that only moves when told to."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


def make_checkpoint(character_id: int = 42, **overrides) -> Checkpoint:
    values = dict(
        character_id=character_id,
        character_name="Test Pilot",
        refresh_token="refresh-0",
        owner_id=9000,
        guild_id=7000,
        channel_id=100,
        activity_thread_id=101,
    )
    values.update(overrides)
    return Checkpoint(**values)


@pytest.fixture
def store(tmp_path) -> CheckpointStore:
    return CheckpointStore(tmp_path)


@pytest.fixture
def source() -> FakeSource:
    return FakeSource()


@pytest.fixture
def notifier() -> FakeNotifier:
    return FakeNotifier()


@pytest.fixture
def provisioner() -> FakeProvisioner:
    return FakeProvisioner()
