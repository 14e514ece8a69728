"""Board engine: the entry point for every task mutation.

Each operation is a single :meth:`TaskStore.commit` whose mutator runs the
rules in :mod:`.lifecycle`.  After the commit succeeds one
:class:`~.events.TaskMutated` is emitted; the activity trail, the
notification queue and the realtime broadcaster all hang off that event.
"""

from __future__ import annotations

from typing import Any, Optional

from loguru import logger

from ..constants import UNKNOWN_USER
from .events import EventBus, TaskMutated
from .lifecycle import apply_patch, build_task
from .model import MutationKind, Snapshot, Task
from .store import TaskStore


class BoardEngine:
    """Create, update and delete tasks on the board.

    Parameters
    ----------
    store:
        The snapshot store that owns the task collection.
    bus:
        Receives a :class:`TaskMutated` after every successful commit.
    """

    def __init__(self, store: TaskStore, bus: Optional[EventBus] = None) -> None:
        self.store = store
        self.bus = bus or EventBus()

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def snapshot(self) -> Snapshot:
        return self.store.load()

    def get_task(self, task_id: str) -> Optional[Task]:
        return self.store.get_one(task_id)

    def get_board(self) -> list[tuple[str, list[Task]]]:
        """Tasks grouped by stage name in pipeline order, highest priority first."""
        snapshot = self.store.load()
        columns: list[tuple[str, list[Task]]] = []
        for stage in snapshot.ordered_stages():
            tasks = [t for t in snapshot.list_tasks() if t.stage == stage.id]
            tasks.sort(key=lambda t: t.priority.sort_key)
            columns.append((stage.name, tasks))
        return columns

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    def create_task(self, fields: dict[str, Any], *, user: str = UNKNOWN_USER) -> Task:
        """Validate *fields*, apply defaults and persist a new task."""
        names: dict[str, str] = {}

        def _create(snapshot: Snapshot) -> Task:
            task = snapshot.add_task(build_task(fields, snapshot))
            names["business"] = snapshot.business_name(task.business)
            names["stage"] = snapshot.stage_name(task.stage)
            return task

        task = self.store.commit(_create)
        logger.info("Created task {} ({}) by {}", task.id, task.title, user)
        self._emit(TaskMutated(
            kind=MutationKind.TASK_CREATED,
            task=task,
            user=user,
            new_stage=task.stage,
            stage_name=names["stage"],
            business_name=names["business"],
        ))
        return task

    def update_task(self, task_id: str, patch: dict[str, Any], *, user: str = UNKNOWN_USER) -> Task:
        """Apply a partial update; a stage change is reported as a move."""
        result: dict[str, Any] = {}

        def _update(snapshot: Snapshot) -> Task:
            transition = apply_patch(snapshot.require_task(task_id), patch, snapshot)
            snapshot.put_task(transition.task)
            result["transition"] = transition
            result["stage"] = snapshot.stage_name(transition.new_stage)
            result["business"] = snapshot.business_name(transition.task.business)
            return transition.task

        task = self.store.commit(_update)
        transition = result["transition"]
        if transition.moved:
            kind = MutationKind.TASK_MOVED
            logger.info(
                "Moved task {} {} -> {}{} by {}",
                task.id, transition.old_stage, transition.new_stage,
                " (gated, reassigned to reviewer)" if transition.gated else "", user,
            )
        else:
            kind = MutationKind.TASK_UPDATED
            logger.info("Updated task {} by {}", task.id, user)
        self._emit(TaskMutated(
            kind=kind,
            task=task,
            user=user,
            old_stage=transition.old_stage,
            new_stage=transition.new_stage,
            stage_name=result["stage"],
            business_name=result["business"],
        ))
        return task

    def delete_task(self, task_id: str, *, user: str = UNKNOWN_USER) -> Task:
        """Remove a task regardless of stage; returns the removed task."""
        names: dict[str, str] = {}

        def _delete(snapshot: Snapshot) -> Task:
            task = snapshot.remove_task(task_id)
            names["business"] = snapshot.business_name(task.business)
            names["stage"] = snapshot.stage_name(task.stage)
            return task

        task = self.store.commit(_delete)
        logger.info("Deleted task {} ({}) by {}", task.id, task.title, user)
        self._emit(TaskMutated(
            kind=MutationKind.TASK_DELETED,
            task=task,
            user=user,
            old_stage=task.stage,
            stage_name=names["stage"],
            business_name=names["business"],
        ))
        return task

    def _emit(self, event: TaskMutated) -> None:
        self.bus.emit(event)
