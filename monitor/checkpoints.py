"""Durable per-character checkpoints.

Each character is kept in `<storage_folder>/char-<id>.json`, tagged with a
schema version. Records are replaced as a whole and written through a
temporary file so that a reader never sees half a record.
"""

from __future__ import annotations

import json
import os
import re
import tempfile
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from logging_config import get_logger
from monitor.base import SkillRecord

logger = get_logger("storage")

CHECKPOINT_VERSION = "1"

_FILENAME_RE = re.compile(r"^char-(\d+)\.json$")


class CheckpointError(Exception):
    """Base class for unreadable checkpoints."""


class CheckpointNotFound(CheckpointError):
    """No checkpoint exists for the character."""


class CheckpointCorrupt(CheckpointError):
    """The checkpoint exists but cannot be understood."""


class StorageConfigError(Exception):
    """The storage folder is missing or not a directory."""


@dataclass
class Checkpoint:
    """Everything that must survive a restart for one character."""

    character_id: int
    character_name: str
    refresh_token: str
    owner_id: int
    guild_id: int
    channel_id: int
    activity_thread_id: int
    suspended: bool = False
    skills: list[SkillRecord] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Checkpoint:
        """Build a checkpoint from its stored form.

        Raises:
            CheckpointCorrupt: On an unknown version or missing fields
        """
        version = data.get("version")
        if version != CHECKPOINT_VERSION:
            raise CheckpointCorrupt(f"Unsupported checkpoint version: {version!r}")

        try:
            return cls(
                character_id=int(data["character_id"]),
                character_name=str(data["character_name"]),
                refresh_token=str(data["refresh_token"]),
                owner_id=int(data["owner_id"]),
                guild_id=int(data["guild_id"]),
                channel_id=int(data["channel_id"]),
                activity_thread_id=int(data["activity_thread_id"]),
                suspended=bool(data.get("suspended", False)),
                skills=[SkillRecord.from_dict(s) for s in data.get("skills", [])],
            )
        except (KeyError, TypeError, ValueError) as e:
            raise CheckpointCorrupt(f"Invalid checkpoint: {e}") from e

    def to_dict(self) -> dict[str, Any]:
        return {
            "version": CHECKPOINT_VERSION,
            "character_id": self.character_id,
            "character_name": self.character_name,
            "refresh_token": self.refresh_token,
            "suspended": self.suspended,
            "owner_id": self.owner_id,
            "guild_id": self.guild_id,
            "channel_id": self.channel_id,
            "activity_thread_id": self.activity_thread_id,
            "skills": [s.to_dict() for s in self.skills],
        }


class CheckpointStore:
    """JSON file per character in a single folder."""

    def __init__(self, folder: str | Path):
        self._folder = Path(folder)
        if not self._folder.is_dir():
            raise StorageConfigError(f"Storage folder does not exist: {self._folder}")

    @property
    def folder(self) -> Path:
        return self._folder

    def _path(self, character_id: int) -> Path:
        return self._folder / f"char-{character_id}.json"

    def exists(self, character_id: int) -> bool:
        return self._path(character_id).is_file()

    def read(self, character_id: int) -> Checkpoint:
        """Read the checkpoint of a character.

        Raises:
            CheckpointNotFound: If there is no record
            CheckpointCorrupt: If the record cannot be parsed
        """
        path = self._path(character_id)
        try:
            raw = path.read_text(encoding="utf-8")
        except FileNotFoundError:
            raise CheckpointNotFound(f"Character {character_id} not found") from None

        try:
            data = json.loads(raw)
        except json.JSONDecodeError as e:
            raise CheckpointCorrupt(f"Invalid JSON in {path.name}: {e}") from e
        if not isinstance(data, dict):
            raise CheckpointCorrupt(f"Invalid checkpoint in {path.name}")

        return Checkpoint.from_dict(data)

    def write(self, character_id: int, checkpoint: Checkpoint) -> None:
        """Replace the checkpoint of a character atomically."""
        payload = json.dumps(checkpoint.to_dict(), indent=2)

        fd, tmp_path = tempfile.mkstemp(
            prefix=f".char-{character_id}.", suffix=".tmp", dir=self._folder
        )
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(payload)
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp_path, self._path(character_id))
        except BaseException:
            if os.path.exists(tmp_path):
                os.unlink(tmp_path)
            raise

    def list_ids(self) -> list[int]:
        """Ids of all stored characters, in directory order."""
        ids = []
        for entry in os.scandir(self._folder):
            match = _FILENAME_RE.match(entry.name)
            if match and entry.is_file():
                ids.append(int(match.group(1)))
        return ids

    def load_active(self) -> list[int]:
        """Ids of every readable, non-suspended checkpoint.

        Unreadable records are logged and skipped.
        """
        active = []
        for character_id in self.list_ids():
            try:
                checkpoint = self.read(character_id)
            except CheckpointError as e:
                logger.error(
                    f"Skipping unreadable checkpoint: {e}",
                    extra={"character_id": character_id},
                )
                continue
            if not checkpoint.suspended:
                active.append(character_id)
        return active
