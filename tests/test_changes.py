"""
Tests for change detection and queue reconciliation.
"""

from datetime import timedelta

from monitor.base import QueueItem, SkillRecord
from monitor.changes import (
    SkillInjected,
    TrainingCompleted,
    detect_changes,
    reconcile,
    remaining_queue,
)
from tests.conftest import NOW


def skill(skill_id: int, level: int) -> SkillRecord:
    return SkillRecord(skill_id=skill_id, trained_skill_level=level, active_skill_level=level)


class TestDetectChanges:
    def test_no_changes(self):
        before = [skill(1, 3), skill(2, 0)]
        assert detect_changes(before, [skill(1, 3), skill(2, 0)]) == []

    def test_level_change(self):
        events = detect_changes([skill(1, 2)], [skill(1, 3)])
        assert events == [TrainingCompleted(1, 3)]

    def test_new_untrained_skill_is_injected(self):
        events = detect_changes([skill(1, 2)], [skill(1, 2), skill(7, 0)])
        assert events == [SkillInjected(7)]

    def test_new_trained_skill_is_completed(self):
        # Injected and trained between two polls
        events = detect_changes([], [skill(7, 1)])
        assert events == [TrainingCompleted(7, 1)]

    def test_removed_skill_is_ignored(self):
        assert detect_changes([skill(1, 2), skill(2, 1)], [skill(1, 2)]) == []

    def test_order_follows_after(self):
        before = [skill(1, 1), skill(2, 1)]
        after = [skill(3, 0), skill(2, 2), skill(1, 2)]

        events = detect_changes(before, after)

        assert events == [SkillInjected(3), TrainingCompleted(2, 2), TrainingCompleted(1, 2)]
        assert detect_changes(before, after) == events


class TestReconcile:
    def test_finished_item_raises_level(self):
        skills = [skill(10, 2), skill(11, 4)]
        queue = [QueueItem(10, 3, queue_position=0, finish_date=NOW - timedelta(hours=1))]

        result = reconcile(skills, queue, NOW)

        assert result == [skill(10, 3), skill(11, 4)]
        assert detect_changes(skills, result) == [TrainingCompleted(10, 3)]

    def test_input_not_modified(self):
        skills = [skill(10, 2)]
        queue = [QueueItem(10, 3, finish_date=NOW - timedelta(minutes=5))]

        reconcile(skills, queue, NOW)

        assert skills[0].trained_skill_level == 2

    def test_stops_at_first_unfinished_item(self):
        skills = [skill(10, 2), skill(11, 1)]
        queue = [
            QueueItem(10, 3, queue_position=0, finish_date=NOW + timedelta(hours=1)),
            # Out of order finish date behind an unfinished item is not applied
            QueueItem(11, 2, queue_position=1, finish_date=NOW - timedelta(hours=1)),
        ]

        assert reconcile(skills, queue, NOW) == skills

    def test_paused_queue_changes_nothing(self):
        skills = [skill(10, 2)]
        queue = [QueueItem(10, 3, queue_position=0, finish_date=None)]

        assert reconcile(skills, queue, NOW) == skills

    def test_multiple_levels_of_same_skill(self):
        skills = [skill(10, 1)]
        queue = [
            QueueItem(10, 3, queue_position=1, finish_date=NOW - timedelta(minutes=10)),
            QueueItem(10, 2, queue_position=0, finish_date=NOW - timedelta(hours=2)),
        ]

        assert reconcile(skills, queue, NOW) == [skill(10, 3)]

    def test_never_downgrades(self):
        skills = [skill(10, 4)]
        queue = [QueueItem(10, 3, finish_date=NOW - timedelta(hours=1))]

        assert reconcile(skills, queue, NOW) == [skill(10, 4)]

    def test_unknown_skill_in_queue(self):
        skills = [skill(10, 4)]
        queue = [QueueItem(99, 1, finish_date=NOW - timedelta(hours=1))]

        assert reconcile(skills, queue, NOW) == [skill(10, 4)]


def test_remaining_queue():
    done = QueueItem(1, 2, queue_position=0, finish_date=NOW - timedelta(seconds=1))
    training = QueueItem(2, 3, queue_position=1, finish_date=NOW + timedelta(days=1))
    paused = QueueItem(3, 1, queue_position=2)

    assert remaining_queue([done, training, paused], NOW) == [training, paused]
