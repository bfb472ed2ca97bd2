"""Skill data from ESI.

`EsiProgressSource` is the monitor's ProgressSource: token refresh goes
through SSO, skills and the skill queue through the character routes.
"""

from __future__ import annotations

import asyncio
from datetime import datetime
from typing import Any

import httpx

from esi._client import ESI_API_URL, EsiError, esi_request
from esi.oauth import EsiOAuth
from logging_config import get_logger
from monitor.base import ProgressSource, QueueItem, SkillRecord

logger = get_logger("esi")


def _parse_date(value: str | None) -> datetime | None:
    if not value:
        return None
    # ESI timestamps are ISO 8601 with a 'Z' suffix
    return datetime.fromisoformat(value.replace("Z", "+00:00"))


def parse_skills(data: Any) -> list[SkillRecord]:
    """Parse the body of the skills route."""
    try:
        return [SkillRecord.from_dict(s) for s in data["skills"]]
    except (KeyError, TypeError, ValueError) as e:
        raise EsiError(f"Invalid skills response: {e}") from e


def parse_queue(data: Any) -> list[QueueItem]:
    """Parse the body of the skill queue route, ordered by position."""
    try:
        items = [
            QueueItem(
                skill_id=int(q["skill_id"]),
                finished_level=int(q["finished_level"]),
                queue_position=int(q.get("queue_position", 0)),
                finish_date=_parse_date(q.get("finish_date")),
                level_start_sp=int(q.get("level_start_sp", 0)),
                level_end_sp=int(q.get("level_end_sp", 0)),
            )
            for q in data
        ]
    except (KeyError, TypeError, ValueError) as e:
        raise EsiError(f"Invalid skill queue response: {e}") from e
    return sorted(items, key=lambda q: q.queue_position)


class EsiProgressSource(ProgressSource):
    """ProgressSource backed by EVE SSO and ESI."""

    def __init__(self, oauth: EsiOAuth, transport: httpx.AsyncBaseTransport | None = None):
        self._oauth = oauth
        self._transport = transport
        # Skill ids are static reference data
        self._names: dict[int, str] = {}
        self._names_lock = asyncio.Lock()

    async def refresh(self, refresh_token: str) -> tuple[str, str]:
        return await self._oauth.exchange_refresh_token(refresh_token)

    async def fetch_snapshot(self, access_token: str, character_id: int) -> list[SkillRecord]:
        data = await esi_request(
            "GET",
            f"{ESI_API_URL}/v4/characters/{character_id}/skills/",
            access_token=access_token,
            transport=self._transport,
        )
        return parse_skills(data)

    async def fetch_queue(self, access_token: str, character_id: int) -> list[QueueItem]:
        data = await esi_request(
            "GET",
            f"{ESI_API_URL}/v2/characters/{character_id}/skillqueue/",
            access_token=access_token,
            transport=self._transport,
        )
        return parse_queue(data)

    async def resolve_display_name(self, skill_id: int) -> str:
        async with self._names_lock:
            if skill_id in self._names:
                return self._names[skill_id]

            data = await esi_request(
                "POST",
                f"{ESI_API_URL}/v3/universe/names/",
                json_data=[skill_id],
                transport=self._transport,
            )
            try:
                name = str(data[0]["name"])
            except (IndexError, KeyError, TypeError) as e:
                raise EsiError(f"No name for skill {skill_id}") from e

            self._names[skill_id] = name
            logger.debug(f"Resolved skill {skill_id} to {name!r}")
            return name
