"""Skill monitoring core.

Polls the skills of every registered EVE character in turn, reports
finished training to Discord and suspends characters whose tokens keep
failing.

Usage:
    from monitor import CheckpointStore, EntityRegistry, EntityUpdater, MonitorScheduler

    store = CheckpointStore(folder)
    registry = EntityRegistry()
    updater = EntityUpdater(store, source, notifier)
    scheduler = MonitorScheduler(registry, updater)
    await scheduler.restore(store)
    await scheduler.run()
"""

from monitor.base import (
    ChannelProvisioner,
    MonitoredEntity,
    NotificationError,
    Notifier,
    ProgressSource,
    ProgressSourceError,
    ProvisioningError,
    QueueItem,
    RegistrationResult,
    SkillRecord,
)
from monitor.changes import SkillInjected, TrainingCompleted, detect_changes, reconcile
from monitor.checkpoints import (
    Checkpoint,
    CheckpointCorrupt,
    CheckpointError,
    CheckpointNotFound,
    CheckpointStore,
    StorageConfigError,
)
from monitor.onboarding import Onboarding
from monitor.policy import SuspensionPolicy
from monitor.registry import EntityRegistry
from monitor.scheduler import MonitorScheduler
from monitor.updater import EntityUpdater

__all__ = [
    "ChannelProvisioner",
    "Checkpoint",
    "CheckpointCorrupt",
    "CheckpointError",
    "CheckpointNotFound",
    "CheckpointStore",
    "EntityRegistry",
    "EntityUpdater",
    "MonitorScheduler",
    "MonitoredEntity",
    "NotificationError",
    "Notifier",
    "Onboarding",
    "ProgressSource",
    "ProgressSourceError",
    "ProvisioningError",
    "QueueItem",
    "RegistrationResult",
    "SkillInjected",
    "SkillRecord",
    "StorageConfigError",
    "SuspensionPolicy",
    "TrainingCompleted",
    "detect_changes",
    "reconcile",
]
