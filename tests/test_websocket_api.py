"""Tests for the /ws live update endpoint."""

from __future__ import annotations

from pathlib import Path

import pytest
from fastapi.testclient import TestClient

from mission_control.server.api import create_app


@pytest.fixture
def client(tmp_path: Path):
    app = create_app(data_dir=tmp_path / "data", enable_cors=False)
    with TestClient(app) as c:
        yield c


def test_connected_frame_first(client: TestClient) -> None:
    with client.websocket_connect("/ws") as ws:
        frame = ws.receive_json()
        assert frame["event"] == "connected"
        assert frame["data"]["viewers"] == 1
        assert "timestamp" in frame


def test_ping_pong(client: TestClient) -> None:
    with client.websocket_connect("/ws") as ws:
        ws.receive_json()
        ws.send_json({"action": "ping"})
        assert ws.receive_json()["event"] == "pong"


def test_mutations_pushed_in_order(client: TestClient) -> None:
    with client.websocket_connect("/ws") as ws:
        ws.receive_json()

        resp = client.post("/api/tasks", json={"title": "Leak", "stage": "in-progress"})
        task_id = resp.json()["id"]
        resp = client.put(f"/api/tasks/{task_id}", json={"stage": "review", "outcome": "Deployed v2"})
        assert resp.status_code == 200
        client.delete(f"/api/tasks/{task_id}")

        created = ws.receive_json()
        moved = ws.receive_json()
        deleted = ws.receive_json()

    assert created["event"] == "task_created"
    assert created["data"]["id"] == task_id
    assert moved["event"] == "task_moved"
    assert moved["data"]["oldStage"] == "in-progress"
    assert moved["data"]["newStage"] == "review"
    assert moved["data"]["task"]["assignee"] == "michael"
    assert deleted["event"] == "task_deleted"


def test_rejected_mutation_not_pushed(client: TestClient) -> None:
    with client.websocket_connect("/ws") as ws:
        ws.receive_json()
        task_id = client.post("/api/tasks", json={"title": "Leak", "stage": "in-progress"}).json()["id"]
        assert ws.receive_json()["event"] == "task_created"

        resp = client.put(f"/api/tasks/{task_id}", json={"stage": "review"})
        assert resp.status_code == 400

        ws.send_json({"action": "ping"})
        assert ws.receive_json()["event"] == "pong"


def test_every_viewer_receives_frames(client: TestClient) -> None:
    with client.websocket_connect("/ws") as first, client.websocket_connect("/ws") as second:
        first.receive_json()
        second.receive_json()
        client.post("/api/tasks", json={"title": "Shared"})
        assert first.receive_json()["event"] == "task_created"
        assert second.receive_json()["event"] == "task_created"
