"""Discord message text for the monitor."""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from datetime import datetime, timedelta

from logging_config import get_logger
from monitor.base import ProgressSourceError, QueueItem
from monitor.changes import ChangeEvent, SkillInjected, TrainingCompleted

logger = get_logger("monitor")

NameResolver = Callable[[int], Awaitable[str]]

ROMAN_NUMERALS = {1: "I", 2: "II", 3: "III", 4: "IV", 5: "V"}

# Queue entries listed before collapsing into "... and N more."
MAX_QUEUE_LINES = 5


def level_to_roman(level: int) -> str:
    """Render a skill level (1..5) as a roman numeral."""
    return ROMAN_NUMERALS.get(level, str(level))


def discord_timestamp(moment: datetime | None) -> str:
    """Relative Discord timestamp, or 'never' when there is none."""
    if moment is None:
        return "never"
    return f"<t:{int(moment.timestamp())}:R>"


async def _skill_name(resolve_name: NameResolver, skill_id: int) -> str:
    try:
        return await resolve_name(skill_id)
    except ProgressSourceError as e:
        logger.warning(f"Failed to lookup skill name for skill ID {skill_id}: {e}")
        return "Unknown"


async def format_changes(events: list[ChangeEvent], resolve_name: NameResolver) -> str:
    """One line per change event; empty string when nothing changed."""
    lines = []
    for event in events:
        name = await _skill_name(resolve_name, event.skill_id)
        if isinstance(event, TrainingCompleted):
            lines.append(f"`{name} {level_to_roman(event.level)}` has finished training.")
        elif isinstance(event, SkillInjected):
            lines.append(f"`{name}` has been injected.")
    return "\n".join(lines)


async def format_queue_summary(
    queue: list[QueueItem],
    resolve_name: NameResolver,
    now: datetime,
    period: timedelta,
) -> str:
    """Build the rolling status message shown in the character channel.

    Args:
        queue: Remaining (unfinished) queue items, in queue order
        resolve_name: Skill name lookup
        now: Current time, used for the next-update hint
        period: Time until this character is polled again
    """
    lines = []
    for item in queue[:MAX_QUEUE_LINES]:
        name = await _skill_name(resolve_name, item.skill_id)
        lines.append(
            f"- `{name} {level_to_roman(item.finished_level)}` "
            f"will finish training {discord_timestamp(item.finish_date)}."
        )
    if len(queue) > MAX_QUEUE_LINES:
        lines.append(f"... and {len(queue) - MAX_QUEUE_LINES} more.")

    if queue:
        lines.append("")
        lines.append(f"Skill queue will finish {discord_timestamp(queue[-1].finish_date)}.")
    else:
        lines.append("No skills are in training.")

    lines.append("")
    lines.append(f"Next update expected {discord_timestamp(now + period)}.")
    return "\n".join(lines)


def suspension_alert(owner_id: int, failures: int) -> str:
    """Message asking the owner to authenticate again."""
    return (
        f"<@{owner_id}>: Failed to retrieve Character information {failures} times in a row. "
        "Please re-authenticate with /monitor to continue monitoring. Monitoring suspended."
    )
