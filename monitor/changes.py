"""Skill change detection and queue reconciliation.

Both functions are pure: no I/O, no state.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import datetime

from monitor.base import QueueItem, SkillRecord


@dataclass(frozen=True)
class TrainingCompleted:
    """A skill reached a new trained level."""

    skill_id: int
    level: int


@dataclass(frozen=True)
class SkillInjected:
    """A skill appeared untrained (skillbook injected)."""

    skill_id: int


ChangeEvent = TrainingCompleted | SkillInjected


def detect_changes(
    before: list[SkillRecord],
    after: list[SkillRecord],
) -> list[ChangeEvent]:
    """Compare two snapshots and list what changed.

    Skills missing from `after` are ignored; skills cannot be untrained.

    Args:
        before: Previously stored snapshot
        after: Freshly fetched (and reconciled) snapshot

    Returns:
        Events in the iteration order of `after`
    """
    previous = {skill.skill_id: skill for skill in before}
    events: list[ChangeEvent] = []

    for skill in after:
        old = previous.get(skill.skill_id)
        if old is not None:
            if old.trained_skill_level != skill.trained_skill_level:
                events.append(TrainingCompleted(skill.skill_id, skill.trained_skill_level))
        elif skill.trained_skill_level == 0:
            events.append(SkillInjected(skill.skill_id))
        else:
            events.append(TrainingCompleted(skill.skill_id, skill.trained_skill_level))

    return events


def reconcile(
    skills: list[SkillRecord],
    queue: list[QueueItem],
    now: datetime,
) -> list[SkillRecord]:
    """Apply queue items that already finished to a skills snapshot.

    The skills endpoint lags behind the queue, so a finished queue item is
    more recent than the snapshot. The input list is not modified.
    """
    by_id = {skill.skill_id: skill for skill in skills}

    for item in sorted(queue, key=lambda q: q.queue_position):
        if not item.is_finished(now):
            # Queue is ordered; everything after this one is later still
            break
        skill = by_id.get(item.skill_id)
        if skill is not None and skill.trained_skill_level < item.finished_level:
            by_id[item.skill_id] = replace(skill, trained_skill_level=item.finished_level)

    return [by_id[skill.skill_id] for skill in skills]


def remaining_queue(queue: list[QueueItem], now: datetime) -> list[QueueItem]:
    """Queue items that have not finished yet."""
    return [item for item in queue if not item.is_finished(now)]
