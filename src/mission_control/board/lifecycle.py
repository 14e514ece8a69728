"""Business rules for task creation and patches.

Pure functions: they take the current snapshot/task plus the caller's input
and either return the new task state or raise a typed
:class:`~mission_control.errors.BoardError`.  Nothing here touches storage,
logs or viewers.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Optional

from loguru import logger

from ..constants import (
    BACKLOG_ONLY_FIELDS,
    DEFAULT_ASSIGNEE,
    DEFAULT_BUSINESS,
    GATED_TRANSITION,
    PATCHABLE_FIELDS,
    REVIEWER_ID,
    STAGE_BACKLOG,
)
from ..errors import ForbiddenError, ValidationError
from ..utils import _iso_after, _now
from .model import Snapshot, Task, TaskPriority, _generate_id


@dataclass(frozen=True)
class Transition:
    """Result of applying a patch to a task."""

    task: Task
    old_stage: str
    new_stage: str

    @property
    def moved(self) -> bool:
        return self.old_stage != self.new_stage

    @property
    def gated(self) -> bool:
        return is_gated_move(self.old_stage, self.new_stage)


# ---------------------------------------------------------------------------
# Field checks
# ---------------------------------------------------------------------------

def _clean(fields: dict[str, Any]) -> dict[str, Any]:
    """Keep only known fields that were actually supplied."""
    return {k: v for k, v in fields.items() if k in PATCHABLE_FIELDS and v is not None}


def _plain(value: Any) -> str:
    return str(getattr(value, "value", value))


def _require_title(raw: Any) -> str:
    title = str(raw or "")
    if not title.strip():
        raise ValidationError("Task title is required")
    return title


def _coerce_priority(raw: Any) -> TaskPriority:
    if isinstance(raw, TaskPriority):
        return raw
    try:
        return TaskPriority(str(raw))
    except ValueError:
        valid = [p.value for p in TaskPriority]
        raise ValidationError(f"'priority' must be one of {valid}, got '{raw}'") from None


def _require_stage(snapshot: Snapshot, stage: Any) -> str:
    stage_id = str(stage)
    if not snapshot.has_stage(stage_id):
        valid = [s.id for s in snapshot.ordered_stages()]
        raise ValidationError(f"Unknown stage '{stage_id}'; expected one of {valid}")
    return stage_id


def _check_references(snapshot: Snapshot, business: str, assignee: str) -> None:
    # Dangling references are tolerated and shown as "Unknown".
    if not snapshot.has_business(business):
        logger.warning("Task references unknown business '{}'", business)
    if not snapshot.has_assignee(assignee):
        logger.warning("Task references unknown assignee '{}'", assignee)


def is_gated_move(old_stage: str, new_stage: str) -> bool:
    return (old_stage, new_stage) == GATED_TRANSITION


def editable_fields(task: Task) -> tuple[str, ...]:
    """Fields a caller may change on *task* in its current stage."""
    if task.stage == STAGE_BACKLOG:
        return PATCHABLE_FIELDS
    return tuple(f for f in PATCHABLE_FIELDS if f not in BACKLOG_ONLY_FIELDS)


# ---------------------------------------------------------------------------
# Operations
# ---------------------------------------------------------------------------

def build_task(fields: dict[str, Any], snapshot: Snapshot, now: Optional[datetime] = None) -> Task:
    """Validate creation input and return a new task with defaults applied."""
    data = _clean(fields)
    title = _require_title(data.get("title"))
    priority = _coerce_priority(data.get("priority", TaskPriority.MEDIUM))
    stage = _require_stage(snapshot, data.get("stage", STAGE_BACKLOG))
    business = str(data.get("business") or DEFAULT_BUSINESS)
    assignee = str(data.get("assignee") or DEFAULT_ASSIGNEE)
    _check_references(snapshot, business, assignee)

    stamp = (now or _now()).isoformat()
    return Task(
        id=_generate_id(),
        title=title,
        description=str(data.get("description") or ""),
        business=business,
        priority=priority,
        stage=stage,
        assignee=assignee,
        outcome=str(data.get("outcome") or ""),
        created_at=stamp,
        updated_at=stamp,
    )


def apply_patch(
    task: Task,
    patch: dict[str, Any],
    snapshot: Snapshot,
    now: Optional[datetime] = None,
) -> Transition:
    """Apply *patch* to a copy of *task*.

    Raises:
        ForbiddenError: a backlog-only field would change while the task is
            outside the backlog.
        ValidationError: blank title, bad priority, unknown stage, or an
            In Progress → Review move without a non-blank outcome.
    """
    changes = _clean(patch)

    current = task.to_dict()
    frozen = [
        name for name in BACKLOG_ONLY_FIELDS
        if name in changes and _plain(changes[name]) != str(current[name])
    ]
    if frozen and task.stage != STAGE_BACKLOG:
        raise ForbiddenError(
            f"Cannot change {', '.join(frozen)} once a task has left the backlog; "
            f"editable fields: {', '.join(editable_fields(task))}"
        )

    updated = task.copy()
    if "title" in changes:
        updated.title = _require_title(changes["title"])
    if "description" in changes:
        updated.description = str(changes["description"])
    if "priority" in changes:
        updated.priority = _coerce_priority(changes["priority"])
    if "business" in changes:
        updated.business = str(changes["business"])
    if "assignee" in changes:
        updated.assignee = str(changes["assignee"])
    if "outcome" in changes:
        updated.outcome = str(changes["outcome"])
    if "stage" in changes:
        updated.stage = _require_stage(snapshot, changes["stage"])

    if is_gated_move(task.stage, updated.stage):
        outcome = str(changes.get("outcome") or "")
        if not outcome.strip():
            raise ValidationError("An outcome is required to move a task from In Progress to Review")
        updated.assignee = REVIEWER_ID

    if "business" in changes or "assignee" in changes:
        _check_references(snapshot, updated.business, updated.assignee)

    updated.updated_at = _iso_after(task.updated_at, now)
    return Transition(task=updated, old_stage=task.stage, new_stage=updated.stage)
