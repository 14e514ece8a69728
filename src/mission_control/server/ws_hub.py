"""Realtime push channel for live board viewers.

A single WebSocket endpoint at ``/ws`` receives every committed mutation:

Protocol (server → client):
    {"event": "task_created", "data": {...task...}, "timestamp": "..."}
    {"event": "task_moved", "data": {"task": {...}, "oldStage": "...", "newStage": "..."}, "timestamp": "..."}
    {"event": "pong", "data": {}, "timestamp": "..."}

Protocol (client → server):
    {"action": "ping"}

Each viewer has a bounded outbound queue drained by its own writer task, so
``publish`` never waits on a socket.  A viewer whose queue is full simply
misses that frame; a viewer whose send fails is dropped from the set.
"""

from __future__ import annotations

import asyncio
import json
import threading
import time
from dataclasses import dataclass, field
from typing import Any, Optional, Protocol

from fastapi import WebSocket, WebSocketDisconnect
from loguru import logger

from ..board.events import TaskMutated
from ..constants import DEFAULT_VIEWER_QUEUE_SIZE
from ..utils import _now_iso


class _Socket(Protocol):
    async def send_text(self, data: str) -> None: ...


@dataclass(eq=False)
class Viewer:
    ws: _Socket
    queue: asyncio.Queue
    connected_at: float = field(default_factory=time.time)
    dropped: int = 0

    def offer(self, frame: str) -> bool:
        try:
            self.queue.put_nowait(frame)
            return True
        except asyncio.QueueFull:
            self.dropped += 1
            return False


def make_frame(event: str, data: Any = None) -> str:
    return json.dumps({"event": event, "data": data if data is not None else {}, "timestamp": _now_iso()})


class Broadcaster:
    """Registry of live viewers with non-blocking, in-order fan-out.

    Usage::

        broadcaster = Broadcaster()

        # In a FastAPI WebSocket endpoint:
        await broadcaster.handle_connection(websocket)

        # From the engine (any thread):
        broadcaster.publish("task_created", task.to_dict())
    """

    def __init__(self, queue_size: int = DEFAULT_VIEWER_QUEUE_SIZE) -> None:
        self._viewers: dict[int, Viewer] = {}
        self._queue_size = queue_size
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._lock = threading.Lock()

    @property
    def viewer_count(self) -> int:
        with self._lock:
            return len(self._viewers)

    def attach_loop(self, loop: asyncio.AbstractEventLoop) -> None:
        with self._lock:
            self._loop = loop

    # -- registry ----------------------------------------------------------

    def subscribe(self, ws: _Socket) -> Viewer:
        """Register a viewer; must be called from the server's event loop."""
        self.attach_loop(asyncio.get_running_loop())
        viewer = Viewer(ws=ws, queue=asyncio.Queue(maxsize=self._queue_size))
        with self._lock:
            self._viewers[id(viewer)] = viewer
            total = len(self._viewers)
        logger.debug("Viewer connected (total={})", total)
        return viewer

    def unsubscribe(self, viewer: Viewer) -> None:
        with self._lock:
            removed = self._viewers.pop(id(viewer), None)
            total = len(self._viewers)
        if removed is not None:
            logger.debug("Viewer disconnected (total={}, dropped_frames={})", total, viewer.dropped)

    # -- publishing ----------------------------------------------------------

    def publish(self, event: str, data: Any = None) -> int:
        """Queue one frame for every current viewer; returns how many accepted it.

        Safe to call from any thread.  On the server loop the frame is queued
        immediately.  Calls from other threads are handed to the loop with
        ``call_soon_threadsafe`` and return the viewer count; frames from one
        thread keep their order, but a loop-thread publish may overtake a
        foreign-thread publish that is still pending.
        """
        frame = make_frame(event, data)
        with self._lock:
            viewers = list(self._viewers.values())
            loop = self._loop
        if not viewers or loop is None:
            return 0
        try:
            running = asyncio.get_running_loop()
        except RuntimeError:
            running = None
        if running is loop:
            return self._fan_out(viewers, frame)
        try:
            loop.call_soon_threadsafe(self._fan_out, viewers, frame)
        except RuntimeError:
            logger.debug("Event loop closed; dropping {} frame", event)
            return 0
        return len(viewers)

    def publish_mutation(self, mutation: TaskMutated) -> int:
        return self.publish(mutation.kind.value, mutation.payload())

    def _fan_out(self, viewers: list[Viewer], frame: str) -> int:
        delivered = 0
        for viewer in viewers:
            if viewer.offer(frame):
                delivered += 1
            else:
                logger.debug("Viewer queue full; frame skipped (dropped={})", viewer.dropped)
        return delivered

    # -- connection handling ---------------------------------------------------

    async def pump(self, viewer: Viewer) -> None:
        """Drain *viewer*'s queue to its socket until a send fails."""
        while True:
            frame = await viewer.queue.get()
            try:
                await viewer.ws.send_text(frame)
            except Exception as exc:
                logger.debug("Send to viewer failed: {}", exc)
                self.unsubscribe(viewer)
                return

    async def handle_connection(self, websocket: WebSocket) -> None:
        """Accept a WebSocket and serve it until the client disconnects."""
        await websocket.accept()
        viewer = self.subscribe(websocket)
        writer = asyncio.create_task(self.pump(viewer))
        viewer.offer(make_frame("connected", {"viewers": self.viewer_count}))
        try:
            while True:
                raw = await websocket.receive_text()
                try:
                    msg = json.loads(raw)
                except json.JSONDecodeError:
                    continue
                if isinstance(msg, dict) and msg.get("action") == "ping":
                    viewer.offer(make_frame("pong", {}))
        except WebSocketDisconnect:
            pass
        finally:
            self.unsubscribe(viewer)
            writer.cancel()
