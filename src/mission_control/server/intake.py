"""Public lead-intake endpoint.

Submissions are kept in ``contacts.json`` and each one becomes an urgent
task on the board, created through the regular engine path so it is logged,
queued for the monitoring consumer and pushed to live viewers like any other.
"""

from __future__ import annotations

import threading
import uuid
from pathlib import Path
from typing import Any, Callable

from fastapi import APIRouter
from fastapi.responses import JSONResponse
from filelock import FileLock
from loguru import logger

from ..board.engine import BoardEngine
from ..board.model import Task
from ..constants import (
    CONTACTS_FILE,
    CONTACTS_LOCK_FILE,
    INTAKE_ASSIGNEE,
    INTAKE_BUSINESS,
    INTAKE_DEFAULT_CONTACT,
    INTAKE_DEFAULT_SERVICE,
    INTAKE_PRIORITY,
    INTAKE_STAGE,
    INTAKE_USER,
    LOCK_TIMEOUT,
)
from ..io_utils import _atomic_write_json, _load_data_with_error, _quarantine
from ..utils import _now_iso
from .models import ContactRequest, SuccessResponse

THANK_YOU = "Thank you! We will contact you within 24 hours."


class ContactStore:
    """Append-only list of intake submissions."""

    def __init__(self, data_dir: Path) -> None:
        self._path = data_dir / CONTACTS_FILE
        self._file_lock = FileLock(str(data_dir / CONTACTS_LOCK_FILE), timeout=LOCK_TIMEOUT)
        self._lock = threading.Lock()

    def _load(self) -> list[dict[str, Any]]:
        data, err = _load_data_with_error(self._path, {"submissions": []})
        if err:
            moved = _quarantine(self._path)
            logger.error("Unreadable {} ({}); moved aside to {}", self._path.name, err, moved)
            return []
        items = data.get("submissions", [])
        return list(items) if isinstance(items, list) else []

    def add(self, request: ContactRequest) -> dict[str, Any]:
        submission = {
            "id": str(uuid.uuid4()),
            "name": request.name,
            "email": request.email,
            "phone": request.phone,
            "service": request.service or INTAKE_DEFAULT_SERVICE,
            "preferredContact": request.preferredContact or INTAKE_DEFAULT_CONTACT,
            "message": request.message,
            "notified": False,
            "createdAt": _now_iso(),
        }
        with self._lock, self._file_lock:
            items = self._load()
            items.append(submission)
            _atomic_write_json(self._path, {"submissions": items})
        return submission

    def list(self) -> list[dict[str, Any]]:
        with self._lock, self._file_lock:
            return self._load()


def lead_task_fields(submission: dict[str, Any]) -> dict[str, Any]:
    """Task input summarizing one submission."""
    service = submission["service"]
    description = (
        f"**Contact:** {submission['name']}\n"
        f"**Email:** {submission['email']}\n"
        f"**Phone:** {submission['phone']}\n"
        f"**Service:** {service}\n"
        f"**Preferred Contact:** {submission['preferredContact']}\n\n"
        f"**Message:**\n{submission['message']}"
    )
    return {
        "title": f"Website Lead: {submission['name']} - {service}",
        "description": description,
        "business": INTAKE_BUSINESS,
        "priority": INTAKE_PRIORITY,
        "stage": INTAKE_STAGE,
        "assignee": INTAKE_ASSIGNEE,
    }


def submit_lead(engine: BoardEngine, contacts: ContactStore, request: ContactRequest) -> Task:
    submission = contacts.add(request)
    task = engine.create_task(lead_task_fields(submission), user=INTAKE_USER)
    logger.info("New contact form submission from {} ({})", submission["name"], submission["email"])
    return task


def create_intake_router(get_engine: Callable[[], BoardEngine], get_contacts: Callable[[], ContactStore]) -> APIRouter:
    """Create the unauthenticated intake router mounted at ``/api/contact``."""
    router = APIRouter(tags=["intake"])

    @router.post("/api/contact", response_model=SuccessResponse)
    async def contact(body: ContactRequest) -> Any:
        missing = body.missing_fields()
        if missing:
            logger.debug("Rejected contact submission missing {}", missing)
            return JSONResponse(status_code=400, content={"success": False, "message": "Missing required fields"})
        submit_lead(get_engine(), get_contacts(), body)
        return SuccessResponse(success=True, message=THANK_YOU)

    return router
