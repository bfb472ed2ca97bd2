"""
Tests for Discord message text.
"""

from datetime import timedelta

import pytest

from monitor.base import ProgressSourceError, QueueItem
from monitor.changes import SkillInjected, TrainingCompleted
from monitor.formatting import (
    discord_timestamp,
    format_changes,
    format_queue_summary,
    level_to_roman,
    suspension_alert,
)
from tests.conftest import NOW

NAMES = {1: "Gunnery", 2: "Drones", 3: "Navigation"}


async def resolve(skill_id: int) -> str:
    if skill_id not in NAMES:
        raise ProgressSourceError("not found")
    return NAMES[skill_id]


@pytest.mark.parametrize(
    ("level", "roman"),
    [(1, "I"), (2, "II"), (3, "III"), (4, "IV"), (5, "V"), (0, "0")],
)
def test_level_to_roman(level, roman):
    assert level_to_roman(level) == roman


def test_discord_timestamp():
    assert discord_timestamp(NOW) == f"<t:{int(NOW.timestamp())}:R>"
    assert discord_timestamp(None) == "never"


@pytest.mark.asyncio
async def test_format_changes():
    text = await format_changes([TrainingCompleted(1, 4), SkillInjected(2)], resolve)

    assert text == "`Gunnery IV` has finished training.\n`Drones` has been injected."


@pytest.mark.asyncio
async def test_unknown_name_falls_back():
    text = await format_changes([TrainingCompleted(99, 1)], resolve)

    assert text == "`Unknown I` has finished training."


@pytest.mark.asyncio
async def test_empty_queue_summary():
    text = await format_queue_summary([], resolve, NOW, timedelta(minutes=30))

    next_update = discord_timestamp(NOW + timedelta(minutes=30))
    assert text == f"No skills are in training.\n\nNext update expected {next_update}."


@pytest.mark.asyncio
async def test_queue_summary_lists_items():
    end = NOW + timedelta(days=2)
    queue = [
        QueueItem(1, 3, queue_position=0, finish_date=NOW + timedelta(hours=5)),
        QueueItem(2, 5, queue_position=1, finish_date=end),
    ]

    text = await format_queue_summary(queue, resolve, NOW, timedelta(minutes=30))
    lines = text.split("\n")

    assert lines[0].startswith("- `Gunnery III` will finish training <t:")
    assert lines[1] == f"- `Drones V` will finish training {discord_timestamp(end)}."
    assert lines[3] == f"Skill queue will finish {discord_timestamp(end)}."


@pytest.mark.asyncio
async def test_long_queue_is_truncated():
    queue = [
        QueueItem(3, 1, queue_position=i, finish_date=NOW + timedelta(hours=i + 1))
        for i in range(8)
    ]

    text = await format_queue_summary(queue, resolve, NOW, timedelta(minutes=30))

    assert text.count("will finish training") == 5
    assert "... and 3 more." in text


def test_suspension_alert():
    assert suspension_alert(123, 8) == (
        "<@123>: Failed to retrieve Character information 8 times in a row. "
        "Please re-authenticate with /monitor to continue monitoring. Monitoring suspended."
    )
