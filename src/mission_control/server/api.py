"""FastAPI application for the Mission Control board."""

from __future__ import annotations

from pathlib import Path
from typing import Any, Optional

from fastapi import APIRouter, Depends, FastAPI, Query, Request, WebSocket
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from loguru import logger

from .. import __version__
from ..board.container import BoardContainer
from ..board.engine import BoardEngine
from ..config import BoardConfig, load_board_config
from ..constants import ACTIVITY_CAPACITY, NOTIFICATION_CAPACITY
from ..errors import BoardError
from .auth import current_user
from .intake import ContactStore, create_intake_router
from .models import CreateTaskRequest, UpdateTaskRequest
from .ws_hub import Broadcaster


def _describe_invalid(exc: RequestValidationError) -> str:
    """One-line message for a body that failed schema validation."""
    parts = []
    for err in exc.errors():
        loc = ".".join(str(p) for p in err.get("loc", ()) if p != "body")
        parts.append(f"'{loc}' {err.get('msg', 'is invalid')}" if loc else str(err.get("msg", "Invalid request")))
    return "; ".join(parts) or "Invalid request"


def create_board_router(get_container: Any) -> APIRouter:
    """Create the authenticated board API router.

    Parameters
    ----------
    get_container:
        A callable returning the :class:`BoardContainer` for the app.
    """
    router = APIRouter(prefix="/api", tags=["board"], dependencies=[Depends(current_user)])

    def _engine() -> BoardEngine:
        return get_container().engine

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    @router.get("/data")
    async def get_data() -> dict[str, Any]:
        data = _engine().snapshot().to_dict()
        data["columns"] = data["stages"]
        return data

    @router.get("/activity")
    async def get_activity(limit: int = Query(ACTIVITY_CAPACITY, ge=1, le=ACTIVITY_CAPACITY)) -> dict[str, Any]:
        entries = get_container().activity.list(limit)
        return {"activities": [e.to_dict() for e in entries]}

    @router.get("/notifications")
    async def get_notifications(
        limit: int = Query(NOTIFICATION_CAPACITY, ge=1, le=NOTIFICATION_CAPACITY),
        unread_only: bool = Query(False),
    ) -> dict[str, Any]:
        queue = get_container().notifications
        entries = queue.unread(limit) if unread_only else queue.list(limit)
        return {"notifications": [n.to_dict() for n in entries]}

    @router.post("/notifications/read")
    async def mark_notifications_read() -> dict[str, Any]:
        updated = get_container().notifications.mark_all_read()
        return {"success": True, "updated": updated}

    # ------------------------------------------------------------------
    # Task lifecycle
    # ------------------------------------------------------------------

    @router.post("/tasks", status_code=201)
    async def create_task(body: CreateTaskRequest, user: str = Depends(current_user)) -> dict[str, Any]:
        task = _engine().create_task(body.fields(), user=user)
        return task.to_dict()

    @router.put("/tasks/{task_id}")
    async def update_task(
        task_id: str,
        body: UpdateTaskRequest,
        user: str = Depends(current_user),
    ) -> dict[str, Any]:
        task = _engine().update_task(task_id, body.patch(), user=user)
        return task.to_dict()

    @router.delete("/tasks/{task_id}")
    async def delete_task(task_id: str, user: str = Depends(current_user)) -> dict[str, Any]:
        _engine().delete_task(task_id, user=user)
        return {"success": True}

    return router


def create_app(
    data_dir: Optional[Path] = None,
    config: Optional[BoardConfig] = None,
    enable_cors: bool = True,
) -> FastAPI:
    """Create and configure the FastAPI application.

    Args:
        data_dir: Storage root; overrides the configured one.
        config: Pre-built configuration (loaded from file/env when omitted).
        enable_cors: Whether to allow cross-origin requests (the public
            intake form is posted from other sites).

    Returns:
        Configured app. Raises :class:`~mission_control.errors.SnapshotError`
        if the stored board cannot be read.
    """
    if config is None:
        config = load_board_config(data_dir)
    elif data_dir is not None:
        config.data_dir = data_dir.resolve()

    app = FastAPI(
        title="Mission Control",
        description="Shared task board with a gated review stage and live updates",
        version=__version__,
    )

    if enable_cors:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=["*"],
            allow_methods=["*"],
            allow_headers=["*"],
        )

    container = BoardContainer(config.data_dir)
    broadcaster = Broadcaster(queue_size=config.viewer_queue_size)
    container.add_listener("broadcast", broadcaster.publish_mutation)
    contacts = ContactStore(container.data_dir)

    app.state.config = config
    app.state.container = container
    app.state.broadcaster = broadcaster
    app.state.contacts = contacts
    logger.info("Board storage at {} (auth {})", container.data_dir, "on" if config.auth_enabled else "off")

    @app.exception_handler(BoardError)
    async def _board_error(request: Request, exc: BoardError) -> JSONResponse:
        logger.debug("{} {} rejected: {}", request.method, request.url.path, exc.message)
        return JSONResponse(status_code=exc.status_code, content={"error": exc.message})

    @app.exception_handler(RequestValidationError)
    async def _request_invalid(request: Request, exc: RequestValidationError) -> JSONResponse:
        return JSONResponse(status_code=400, content={"error": _describe_invalid(exc)})

    @app.get("/")
    async def root() -> dict[str, Any]:
        return {
            "name": "Mission Control",
            "version": __version__,
            "status": "running",
            "viewers": broadcaster.viewer_count,
        }

    @app.websocket("/ws")
    async def board_updates(websocket: WebSocket) -> None:
        await broadcaster.handle_connection(websocket)

    app.include_router(create_intake_router(lambda: container.engine, lambda: contacts))
    app.include_router(create_board_router(lambda: container))

    return app
