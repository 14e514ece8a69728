"""Seed reference data materialized on first boot."""

from __future__ import annotations

from .model import RefEntry, Snapshot, Stage
from ..constants import (
    STAGE_BACKLOG,
    STAGE_BLOCKED,
    STAGE_DONE,
    STAGE_IN_PROGRESS,
    STAGE_REVIEW,
    STAGE_TODO,
)


SEED_BUSINESSES = (
    RefEntry("korn-ferry", "Korn Ferry", "#4A90D9"),
    RefEntry("capture-health", "Capture Health", "#50C878"),
    RefEntry("inspectable", "Inspectable", "#FF6B6B"),
    RefEntry("synergy", "Synergy Property Development", "#FFB347"),
)

SEED_STAGES = (
    Stage(STAGE_BACKLOG, "Backlog", 0),
    Stage(STAGE_TODO, "To Do", 1),
    Stage(STAGE_IN_PROGRESS, "In Progress", 2),
    Stage(STAGE_BLOCKED, "Blocked", 3),
    Stage(STAGE_REVIEW, "Review", 4),
    Stage(STAGE_DONE, "Done", 5),
)

SEED_ASSIGNEES = (
    RefEntry("michael", "Michael", "#8B5CF6"),
    RefEntry("jarvis", "Jarvis", "#06B6D4"),
)


def default_snapshot() -> Snapshot:
    """Return a fresh board with the seed reference sets and no tasks."""
    return Snapshot(
        businesses=list(SEED_BUSINESSES),
        stages=list(SEED_STAGES),
        assignees=list(SEED_ASSIGNEES),
        tasks={},
    )
