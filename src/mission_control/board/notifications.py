"""Structured notification queue for the external monitoring consumer.

Unlike the activity trail this is machine-oriented: one entry per mutation
with ids, title and acting user, plus a ``read`` flag the consumer flips in
bulk once it has caught up.  Mutations performed by the automation identity
itself are not queued, so the consumer is never told about its own actions.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Optional

from loguru import logger

from ..constants import AUTOMATION_USER, NOTIFICATION_CAPACITY, NOTIFICATIONS_FILE, NOTIFICATIONS_LOCK_FILE
from .events import TaskMutated
from .journal import CappedLog
from .model import NotificationEntry


class NotificationQueue(CappedLog[NotificationEntry]):
    """Rolling window of the latest 50 notifications."""

    def __init__(
        self,
        data_dir: Path,
        capacity: int = NOTIFICATION_CAPACITY,
        automation_user: str = AUTOMATION_USER,
    ) -> None:
        super().__init__(
            data_dir / NOTIFICATIONS_FILE,
            data_dir / NOTIFICATIONS_LOCK_FILE,
            key="notifications",
            capacity=capacity,
            loader=NotificationEntry.from_dict,
            dumper=NotificationEntry.to_dict,
        )
        self.automation_user = automation_user

    def record(self, event: TaskMutated) -> Optional[NotificationEntry]:
        """Queue a notification for *event* unless the automation identity caused it."""
        if event.user == self.automation_user:
            logger.debug("Skipping self-notification for {} on {}", event.kind.value, event.task.id)
            return None
        entry = NotificationEntry(
            type=event.kind,
            task_id=event.task.id,
            task_title=event.task.title,
            user=event.user,
        )
        return self.append(entry)

    def unread(self, limit: Optional[int] = None) -> list[NotificationEntry]:
        entries = [n for n in self.list() if not n.read]
        return entries[:limit] if limit is not None else entries

    def mark_all_read(self) -> int:
        """Flip every ``read`` flag; returns the number of entries changed."""

        def _mark(item: dict[str, Any]) -> bool:
            if item.get("read"):
                return False
            item["read"] = True
            return True

        return self.update_all(_mark)
