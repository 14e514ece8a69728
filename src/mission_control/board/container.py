from __future__ import annotations

from pathlib import Path

from .activity import ActivityLog
from .engine import BoardEngine
from .events import EventBus, Listener
from .notifications import NotificationQueue
from .store import TaskStore


class BoardContainer:
    """Wire the store, side-channel logs and engine for one storage root.

    Opening the container loads the snapshot, so a malformed board file
    fails here, at startup.
    """

    def __init__(self, data_dir: Path) -> None:
        self.data_dir = data_dir.resolve()
        self.data_dir.mkdir(parents=True, exist_ok=True)

        self.store = TaskStore(self.data_dir)
        self.store.open()
        self.activity = ActivityLog(self.data_dir)
        self.notifications = NotificationQueue(self.data_dir)

        self.bus = EventBus()
        self.bus.subscribe("activity", self.activity.record)
        self.bus.subscribe("notifications", self.notifications.record)
        self.engine = BoardEngine(self.store, self.bus)

    def add_listener(self, name: str, listener: Listener) -> None:
        self.bus.subscribe(name, listener)
