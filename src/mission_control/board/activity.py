"""Human-readable activity trail (rolling window of the latest 100 events)."""

from __future__ import annotations

from pathlib import Path

from ..constants import ACTIVITY_CAPACITY, ACTIVITY_FILE, ACTIVITY_LOCK_FILE
from .events import TaskMutated
from .journal import CappedLog
from .model import ActivityAction, ActivityEntry, MutationKind


def render_details(event: TaskMutated) -> tuple[ActivityAction, str]:
    title = event.task.title
    if event.kind == MutationKind.TASK_CREATED:
        return ActivityAction.CREATED, f'Task "{title}" added to {event.business_name}'
    if event.kind == MutationKind.TASK_MOVED:
        return ActivityAction.MOVED, f'"{title}" moved to {event.stage_name}'
    if event.kind == MutationKind.TASK_DELETED:
        return ActivityAction.DELETED, f'Task "{title}" was deleted'
    return ActivityAction.UPDATED, f'"{title}" was updated'


class ActivityLog(CappedLog[ActivityEntry]):
    """Append-only activity history; entries are never edited."""

    def __init__(self, data_dir: Path, capacity: int = ACTIVITY_CAPACITY) -> None:
        super().__init__(
            data_dir / ACTIVITY_FILE,
            data_dir / ACTIVITY_LOCK_FILE,
            key="activities",
            capacity=capacity,
            loader=ActivityEntry.from_dict,
            dumper=ActivityEntry.to_dict,
        )

    def record(self, event: TaskMutated) -> ActivityEntry:
        action, details = render_details(event)
        return self.append(ActivityEntry(action=action, details=details))
