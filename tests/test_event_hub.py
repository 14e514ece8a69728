"""Tests for the realtime broadcaster (server/ws_hub.py)."""

from __future__ import annotations

import asyncio
import json
import threading

from mission_control.board.events import TaskMutated
from mission_control.board.model import MutationKind, Task
from mission_control.server.ws_hub import Broadcaster, make_frame


class FakeSocket:
    def __init__(self, fail: bool = False) -> None:
        self.sent: list[dict] = []
        self.fail = fail

    async def send_text(self, data: str) -> None:
        if self.fail:
            raise RuntimeError("socket closed")
        self.sent.append(json.loads(data))


async def _drain() -> None:
    for _ in range(5):
        await asyncio.sleep(0)


def test_make_frame_shape() -> None:
    frame = json.loads(make_frame("task_created", {"id": "t1"}))
    assert frame["event"] == "task_created"
    assert frame["data"] == {"id": "t1"}
    assert "timestamp" in frame
    assert json.loads(make_frame("pong"))["data"] == {}


def test_publish_without_viewers() -> None:
    assert Broadcaster().publish("task_created", {}) == 0


def test_publish_reaches_all_viewers_in_order() -> None:
    async def run() -> list[FakeSocket]:
        hub = Broadcaster()
        sockets = [FakeSocket(), FakeSocket()]
        viewers = [hub.subscribe(ws) for ws in sockets]
        writers = [asyncio.create_task(hub.pump(v)) for v in viewers]

        assert hub.publish("task_created", {"n": 1}) == 2
        assert hub.publish("task_updated", {"n": 2}) == 2
        await _drain()
        for w in writers:
            w.cancel()
        return sockets

    sockets = asyncio.run(run())
    for ws in sockets:
        assert [f["event"] for f in ws.sent] == ["task_created", "task_updated"]


def test_full_queue_drops_for_that_viewer_only() -> None:
    async def run() -> None:
        hub = Broadcaster(queue_size=1)
        slow = hub.subscribe(FakeSocket())
        fast_ws = FakeSocket()
        fast = hub.subscribe(fast_ws)
        writer = asyncio.create_task(hub.pump(fast))

        hub.publish("task_created", {"n": 1})
        await _drain()
        delivered = hub.publish("task_created", {"n": 2})
        await _drain()

        assert delivered == 1
        assert slow.dropped == 1
        assert slow.queue.qsize() == 1
        assert fast.dropped == 0
        assert [f["data"]["n"] for f in fast_ws.sent] == [1, 2]
        assert hub.viewer_count == 2
        writer.cancel()

    asyncio.run(run())


def test_failed_send_unsubscribes_viewer() -> None:
    async def run() -> None:
        hub = Broadcaster()
        bad = hub.subscribe(FakeSocket(fail=True))
        good_ws = FakeSocket()
        good = hub.subscribe(good_ws)
        writers = [asyncio.create_task(hub.pump(v)) for v in (bad, good)]

        hub.publish("task_deleted", {"id": "t1"})
        await _drain()

        assert hub.viewer_count == 1
        assert len(good_ws.sent) == 1
        assert writers[0].done()
        writers[1].cancel()

    asyncio.run(run())


def test_publish_from_worker_thread() -> None:
    async def run() -> FakeSocket:
        hub = Broadcaster()
        ws = FakeSocket()
        viewer = hub.subscribe(ws)
        writer = asyncio.create_task(hub.pump(viewer))

        def _publish() -> None:
            for i in range(3):
                hub.publish("task_updated", {"n": i})

        thread = threading.Thread(target=_publish)
        thread.start()
        await asyncio.get_running_loop().run_in_executor(None, thread.join)
        await _drain()
        writer.cancel()
        return ws

    ws = asyncio.run(run())
    assert [f["data"]["n"] for f in ws.sent] == [0, 1, 2]


def test_publish_mutation_uses_move_payload() -> None:
    async def run() -> FakeSocket:
        hub = Broadcaster()
        ws = FakeSocket()
        writer = asyncio.create_task(hub.pump(hub.subscribe(ws)))
        task = Task(id="t1", title="A", stage="review")
        hub.publish_mutation(TaskMutated(
            kind=MutationKind.TASK_MOVED, task=task, user="jarvis", old_stage="in-progress", new_stage="review",
        ))
        await _drain()
        writer.cancel()
        return ws

    frame = asyncio.run(run()).sent[0]
    assert frame["event"] == "task_moved"
    assert frame["data"]["oldStage"] == "in-progress"
    assert frame["data"]["newStage"] == "review"
    assert frame["data"]["task"]["id"] == "t1"


def test_unsubscribe_is_idempotent() -> None:
    async def run() -> None:
        hub = Broadcaster()
        viewer = hub.subscribe(FakeSocket())
        hub.unsubscribe(viewer)
        hub.unsubscribe(viewer)
        assert hub.viewer_count == 0
        assert hub.publish("task_created", {}) == 0

    asyncio.run(run())


def test_loop_thread_publish_queues_immediately() -> None:
    async def run() -> None:
        hub = Broadcaster()
        viewer = hub.subscribe(FakeSocket())
        assert hub.publish("task_created", {"n": 1}) == 1
        assert hub.publish("task_updated", {"n": 2}) == 1
        frames = [json.loads(viewer.queue.get_nowait()) for _ in range(2)]
        assert [f["data"]["n"] for f in frames] == [1, 2]

    asyncio.run(run())
