"""Task model, reference sets and log entries for the board.

Everything here serializes to plain dicts with the camelCase keys used on
the wire, so the same shape is persisted, returned by the API and pushed to
live viewers.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, Optional

from ..constants import (
    DEFAULT_ASSIGNEE,
    DEFAULT_BUSINESS,
    STAGE_BACKLOG,
    UNKNOWN_NAME,
    UNKNOWN_USER,
)
from ..errors import NotFoundError
from ..utils import _now_iso


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------

class TaskPriority(str, Enum):
    """Priority level; ``sort_key`` puts urgent first."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    URGENT = "urgent"

    @property
    def sort_key(self) -> int:
        return {"urgent": 0, "high": 1, "medium": 2, "low": 3}[self.value]


class ActivityAction(str, Enum):
    CREATED = "created"
    UPDATED = "updated"
    MOVED = "moved"
    DELETED = "deleted"


class MutationKind(str, Enum):
    """Event names shared by notifications and the realtime push channel."""

    TASK_CREATED = "task_created"
    TASK_UPDATED = "task_updated"
    TASK_MOVED = "task_moved"
    TASK_DELETED = "task_deleted"


# ---------------------------------------------------------------------------
# Helper
# ---------------------------------------------------------------------------

def _generate_id() -> str:
    """Opaque task ID: ``task-<12hex>``."""
    return f"task-{uuid.uuid4().hex[:12]}"


def _entry_id() -> str:
    return str(uuid.uuid4())


# ---------------------------------------------------------------------------
# Reference sets
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class RefEntry:
    """A business or assignee: ``{id, name, color?}``."""

    id: str
    name: str
    color: Optional[str] = None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"id": self.id, "name": self.name}
        if self.color is not None:
            data["color"] = self.color
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "RefEntry":
        color = data.get("color")
        return cls(id=str(data["id"]), name=str(data.get("name", data["id"])), color=str(color) if color else None)


@dataclass(frozen=True)
class Stage:
    """A pipeline position; ``order`` defines the column sequence."""

    id: str
    name: str
    order: int

    def to_dict(self) -> dict[str, Any]:
        return {"id": self.id, "name": self.name, "order": self.order}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Stage":
        return cls(id=str(data["id"]), name=str(data.get("name", data["id"])), order=int(data.get("order", 0)))


# ---------------------------------------------------------------------------
# Task dataclass
# ---------------------------------------------------------------------------

@dataclass
class Task:
    """A work item on the board."""

    id: str = field(default_factory=_generate_id)
    title: str = ""
    description: str = ""
    business: str = DEFAULT_BUSINESS
    priority: TaskPriority = TaskPriority.MEDIUM
    stage: str = STAGE_BACKLOG
    assignee: str = DEFAULT_ASSIGNEE
    outcome: str = ""
    created_at: str = field(default_factory=_now_iso)
    updated_at: str = field(default_factory=_now_iso)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "title": self.title,
            "description": self.description,
            "business": self.business,
            "priority": self.priority.value,
            "stage": self.stage,
            "assignee": self.assignee,
            "outcome": self.outcome,
            "createdAt": self.created_at,
            "updatedAt": self.updated_at,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Task":
        """Deserialize a persisted record.

        Accepts the legacy ``column`` key and snake_case timestamps.  Raises
        ``ValueError`` when the id or title is missing or the priority is not
        a known level.
        """
        d = dict(data)
        task_id = str(d.get("id") or "").strip()
        if not task_id:
            raise ValueError(f"task record without id: {d!r}")
        title = str(d.get("title") or "")
        if not title.strip():
            raise ValueError(f"task {task_id} has no title")
        raw_priority = d.get("priority")
        try:
            priority = TaskPriority(str(raw_priority)) if raw_priority is not None else TaskPriority.MEDIUM
        except ValueError:
            raise ValueError(f"task {task_id} has unknown priority '{raw_priority}'") from None
        created = d.get("createdAt") or d.get("created_at") or _now_iso()
        updated = d.get("updatedAt") or d.get("updated_at") or created
        return cls(
            id=task_id,
            title=title,
            description=str(d.get("description") or ""),
            business=str(d.get("business") or DEFAULT_BUSINESS),
            priority=priority,
            stage=str(d.get("stage") or d.get("column") or STAGE_BACKLOG),
            assignee=str(d.get("assignee") or DEFAULT_ASSIGNEE),
            outcome=str(d.get("outcome") or ""),
            created_at=str(created),
            updated_at=str(updated),
        )

    def copy(self) -> "Task":
        return replace(self)


# ---------------------------------------------------------------------------
# Snapshot
# ---------------------------------------------------------------------------

@dataclass
class Snapshot:
    """The whole persisted board: reference sets plus the task collection.

    Tasks are indexed by id and keep insertion order.
    """

    businesses: list[RefEntry] = field(default_factory=list)
    stages: list[Stage] = field(default_factory=list)
    assignees: list[RefEntry] = field(default_factory=list)
    tasks: dict[str, Task] = field(default_factory=dict)

    # -- lookups ------------------------------------------------------------

    def get_task(self, task_id: str) -> Optional[Task]:
        return self.tasks.get(task_id)

    def require_task(self, task_id: str) -> Task:
        task = self.tasks.get(task_id)
        if task is None:
            raise NotFoundError(f"Task {task_id} not found")
        return task

    def list_tasks(self) -> list[Task]:
        return list(self.tasks.values())

    def has_stage(self, stage_id: str) -> bool:
        return any(s.id == stage_id for s in self.stages)

    def has_business(self, business_id: str) -> bool:
        return any(b.id == business_id for b in self.businesses)

    def has_assignee(self, assignee_id: str) -> bool:
        return any(a.id == assignee_id for a in self.assignees)

    def stage_name(self, stage_id: str) -> str:
        return next((s.name for s in self.stages if s.id == stage_id), UNKNOWN_NAME)

    def business_name(self, business_id: str) -> str:
        return next((b.name for b in self.businesses if b.id == business_id), UNKNOWN_NAME)

    def assignee_name(self, assignee_id: str) -> str:
        return next((a.name for a in self.assignees if a.id == assignee_id), UNKNOWN_NAME)

    def ordered_stages(self) -> list[Stage]:
        return sorted(self.stages, key=lambda s: s.order)

    # -- mutations ----------------------------------------------------------

    def add_task(self, task: Task) -> Task:
        if task.id in self.tasks:
            raise ValueError(f"Task {task.id} already exists")
        self.tasks[task.id] = task
        return task

    def put_task(self, task: Task) -> Task:
        self.require_task(task.id)
        self.tasks[task.id] = task
        return task

    def remove_task(self, task_id: str) -> Task:
        task = self.require_task(task_id)
        del self.tasks[task_id]
        return task

    # -- serialization ------------------------------------------------------

    def copy(self) -> "Snapshot":
        return Snapshot(
            businesses=list(self.businesses),
            stages=list(self.stages),
            assignees=list(self.assignees),
            tasks={tid: t.copy() for tid, t in self.tasks.items()},
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "businesses": [b.to_dict() for b in self.businesses],
            "stages": [s.to_dict() for s in self.ordered_stages()],
            "assignees": [a.to_dict() for a in self.assignees],
            "tasks": [t.to_dict() for t in self.tasks.values()],
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Snapshot":
        """Build a snapshot; raises ``KeyError``/``TypeError``/``ValueError`` on malformed input."""
        stages_raw = data.get("stages", data.get("columns"))
        for key, raw in (("businesses", data.get("businesses")), ("stages", stages_raw),
                         ("assignees", data.get("assignees")), ("tasks", data.get("tasks"))):
            if not isinstance(raw, list):
                raise TypeError(f"'{key}' must be a list")
        snapshot = cls(
            businesses=[RefEntry.from_dict(b) for b in data["businesses"]],
            stages=[Stage.from_dict(s) for s in stages_raw],
            assignees=[RefEntry.from_dict(a) for a in data["assignees"]],
        )
        for raw_task in data["tasks"]:
            if not isinstance(raw_task, dict):
                raise TypeError("task entries must be mappings")
            snapshot.add_task(Task.from_dict(raw_task))
        return snapshot


# ---------------------------------------------------------------------------
# Log entries
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class ActivityEntry:
    """Human-readable history line."""

    action: ActivityAction
    details: str
    id: str = field(default_factory=_entry_id)
    timestamp: str = field(default_factory=_now_iso)

    def to_dict(self) -> dict[str, Any]:
        return {"id": self.id, "action": self.action.value, "details": self.details, "timestamp": self.timestamp}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ActivityEntry":
        return cls(
            id=str(data.get("id") or _entry_id()),
            action=ActivityAction(str(data.get("action"))),
            details=str(data.get("details") or ""),
            timestamp=str(data.get("timestamp") or _now_iso()),
        )


@dataclass
class NotificationEntry:
    """Machine-oriented event for the monitoring consumer.

    ``read`` is the only field ever changed after the entry is queued.
    """

    type: MutationKind
    task_id: Optional[str]
    task_title: Optional[str]
    user: str = UNKNOWN_USER
    read: bool = False
    id: str = field(default_factory=_entry_id)
    created_at: str = field(default_factory=_now_iso)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "type": self.type.value,
            "taskId": self.task_id,
            "taskTitle": self.task_title,
            "user": self.user,
            "read": self.read,
            "createdAt": self.created_at,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "NotificationEntry":
        return cls(
            id=str(data.get("id") or _entry_id()),
            type=MutationKind(str(data.get("type"))),
            task_id=data.get("taskId"),
            task_title=data.get("taskTitle"),
            user=str(data.get("user") or UNKNOWN_USER),
            read=bool(data.get("read", False)),
            created_at=str(data.get("createdAt") or _now_iso()),
        )
