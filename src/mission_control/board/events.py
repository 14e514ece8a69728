"""Post-commit mutation events and their fan-out to independent consumers."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, Optional

from loguru import logger

from ..constants import UNKNOWN_USER
from .model import MutationKind, Task


@dataclass(frozen=True)
class TaskMutated:
    """One committed change to the board.

    ``stage_name``/``business_name`` are resolved at commit time so that
    consumers can render text without reading the store again.
    """

    kind: MutationKind
    task: Task
    user: str = UNKNOWN_USER
    old_stage: Optional[str] = None
    new_stage: Optional[str] = None
    stage_name: str = ""
    business_name: str = ""

    def payload(self) -> dict[str, Any]:
        """Data pushed to live viewers."""
        if self.kind == MutationKind.TASK_MOVED:
            return {"task": self.task.to_dict(), "oldStage": self.old_stage, "newStage": self.new_stage}
        return self.task.to_dict()


Listener = Callable[[TaskMutated], Any]


class EventBus:
    """Deliver each :class:`TaskMutated` to every listener in registration order.

    Listener failures are logged and swallowed; a committed mutation is never
    undone because a side channel failed.
    """

    def __init__(self) -> None:
        self._listeners: list[tuple[str, Listener]] = []

    def subscribe(self, name: str, listener: Listener) -> None:
        self._listeners.append((name, listener))

    def emit(self, event: TaskMutated) -> None:
        for name, listener in self._listeners:
            try:
                listener(event)
            except Exception:
                logger.exception("{} failed to handle {} for {}", name, event.kind.value, event.task.id)
