"""Tests for the task lifecycle rules (board/lifecycle.py)."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from mission_control.board.bootstrap import default_snapshot
from mission_control.board.lifecycle import apply_patch, build_task, editable_fields, is_gated_move
from mission_control.board.model import Snapshot, Task, TaskPriority
from mission_control.errors import ForbiddenError, ValidationError


@pytest.fixture
def snapshot() -> Snapshot:
    return default_snapshot()


def _task(stage: str, **kwargs) -> Task:
    return Task(id="t1", title="Ship it", stage=stage, updated_at="2026-01-01T00:00:00+00:00", **kwargs)


class TestBuildTask:
    def test_defaults_applied(self, snapshot: Snapshot) -> None:
        task = build_task({"title": "Write docs"}, snapshot)
        assert task.stage == "backlog"
        assert task.priority == TaskPriority.MEDIUM
        assert task.business == "korn-ferry"
        assert task.assignee == "jarvis"
        assert task.created_at == task.updated_at
        assert task.id.startswith("task-")

    def test_ids_are_unique(self, snapshot: Snapshot) -> None:
        ids = {build_task({"title": f"T{i}"}, snapshot).id for i in range(50)}
        assert len(ids) == 50

    def test_explicit_fields_win(self, snapshot: Snapshot) -> None:
        task = build_task(
            {"title": "Lead", "priority": "urgent", "stage": "todo", "assignee": "michael", "business": "synergy"},
            snapshot,
        )
        assert task.priority == TaskPriority.URGENT
        assert task.stage == "todo"
        assert task.assignee == "michael"
        assert task.business == "synergy"

    @pytest.mark.parametrize("title", [None, "", "   "])
    def test_blank_title_rejected(self, snapshot: Snapshot, title) -> None:
        with pytest.raises(ValidationError, match="title"):
            build_task({"title": title}, snapshot)

    def test_bad_priority_rejected(self, snapshot: Snapshot) -> None:
        with pytest.raises(ValidationError, match="priority"):
            build_task({"title": "x", "priority": "P0"}, snapshot)

    def test_unknown_stage_rejected(self, snapshot: Snapshot) -> None:
        with pytest.raises(ValidationError, match="Unknown stage"):
            build_task({"title": "x", "stage": "archive"}, snapshot)

    def test_unknown_business_tolerated(self, snapshot: Snapshot) -> None:
        task = build_task({"title": "x", "business": "b1"}, snapshot)
        assert task.business == "b1"
        assert snapshot.business_name(task.business) == "Unknown"


class TestApplyPatch:
    def test_backlog_task_fully_editable(self, snapshot: Snapshot) -> None:
        result = apply_patch(_task("backlog"), {"title": "Renamed", "priority": "high"}, snapshot)
        assert result.task.title == "Renamed"
        assert result.task.priority == TaskPriority.HIGH
        assert not result.moved

    def test_original_task_untouched(self, snapshot: Snapshot) -> None:
        task = _task("backlog")
        apply_patch(task, {"title": "Renamed"}, snapshot)
        assert task.title == "Ship it"

    @pytest.mark.parametrize("field,value", [
        ("title", "New"),
        ("description", "changed"),
        ("business", "synergy"),
        ("priority", "urgent"),
    ])
    def test_backlog_only_field_forbidden_outside_backlog(self, snapshot: Snapshot, field: str, value: str) -> None:
        with pytest.raises(ForbiddenError) as excinfo:
            apply_patch(_task("todo"), {field: value}, snapshot)
        assert field in excinfo.value.message
        assert "assignee" in excinfo.value.message

    def test_forbidden_checked_before_stage(self, snapshot: Snapshot) -> None:
        with pytest.raises(ForbiddenError):
            apply_patch(_task("todo"), {"title": "New", "stage": "archive"}, snapshot)

    def test_unchanged_frozen_value_allowed(self, snapshot: Snapshot) -> None:
        result = apply_patch(_task("todo"), {"title": "Ship it", "priority": "medium", "stage": "in-progress"}, snapshot)
        assert result.task.stage == "in-progress"

    def test_allowed_fields_outside_backlog(self, snapshot: Snapshot) -> None:
        result = apply_patch(_task("blocked"), {"assignee": "michael", "outcome": "notes"}, snapshot)
        assert result.task.assignee == "michael"
        assert result.task.outcome == "notes"

    def test_gated_move_requires_outcome(self, snapshot: Snapshot) -> None:
        with pytest.raises(ValidationError, match="outcome"):
            apply_patch(_task("in-progress"), {"stage": "review"}, snapshot)

    def test_gated_move_blank_outcome_rejected(self, snapshot: Snapshot) -> None:
        with pytest.raises(ValidationError):
            apply_patch(_task("in-progress"), {"stage": "review", "outcome": "   "}, snapshot)

    def test_gated_move_stored_outcome_not_enough(self, snapshot: Snapshot) -> None:
        task = _task("in-progress", outcome="already there")
        with pytest.raises(ValidationError):
            apply_patch(task, {"stage": "review"}, snapshot)

    def test_gated_move_reassigns_reviewer(self, snapshot: Snapshot) -> None:
        result = apply_patch(
            _task("in-progress", assignee="jarvis"),
            {"stage": "review", "outcome": "Done: 3 files", "assignee": "jarvis"},
            snapshot,
        )
        assert result.task.stage == "review"
        assert result.task.assignee == "michael"
        assert result.task.outcome == "Done: 3 files"
        assert result.moved and result.gated

    def test_other_moves_to_review_not_gated(self, snapshot: Snapshot) -> None:
        result = apply_patch(_task("blocked"), {"stage": "review"}, snapshot)
        assert result.task.stage == "review"
        assert result.task.assignee == "jarvis"
        assert not result.gated

    def test_backwards_move_allowed(self, snapshot: Snapshot) -> None:
        result = apply_patch(_task("done"), {"stage": "backlog"}, snapshot)
        assert result.old_stage == "done"
        assert result.new_stage == "backlog"

    def test_unknown_stage_rejected(self, snapshot: Snapshot) -> None:
        with pytest.raises(ValidationError):
            apply_patch(_task("todo"), {"stage": "archive"}, snapshot)

    def test_updated_at_strictly_increases(self, snapshot: Snapshot) -> None:
        task = _task("backlog")
        frozen = datetime(2025, 1, 1, tzinfo=timezone.utc)
        result = apply_patch(task, {"title": "x"}, snapshot, now=frozen)
        assert datetime.fromisoformat(result.task.updated_at) > datetime.fromisoformat(task.updated_at)

    def test_updated_at_uses_clock_when_ahead(self, snapshot: Snapshot) -> None:
        task = _task("backlog")
        later = datetime(2026, 1, 1, tzinfo=timezone.utc) + timedelta(hours=1)
        result = apply_patch(task, {"title": "x"}, snapshot, now=later)
        assert result.task.updated_at == later.isoformat()

    def test_none_values_ignored(self, snapshot: Snapshot) -> None:
        result = apply_patch(_task("todo"), {"title": None, "assignee": "michael"}, snapshot)
        assert result.task.title == "Ship it"


class TestHelpers:
    def test_is_gated_move(self) -> None:
        assert is_gated_move("in-progress", "review")
        assert not is_gated_move("todo", "review")

    def test_editable_fields(self) -> None:
        assert "title" in editable_fields(_task("backlog"))
        assert editable_fields(_task("todo")) == ("stage", "assignee", "outcome")
