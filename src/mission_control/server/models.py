"""Pydantic request models for the board API.

Every field is optional text: the engine owns validation and answers
with the board's own error taxonomy.  Bodies that fail schema validation
(e.g. a number where text is expected) are mapped to 400 in ``create_app``.
"""

from __future__ import annotations

from typing import Any, Optional

from pydantic import AliasChoices, BaseModel, Field


class CreateTaskRequest(BaseModel):
    title: Optional[str] = None
    description: Optional[str] = None
    business: Optional[str] = None
    priority: Optional[str] = None
    stage: Optional[str] = Field(default=None, validation_alias=AliasChoices("stage", "column"))
    assignee: Optional[str] = None
    outcome: Optional[str] = None

    def fields(self) -> dict[str, Any]:
        return self.model_dump(exclude_none=True)


class UpdateTaskRequest(BaseModel):
    """Partial update; only non-null fields are applied."""

    title: Optional[str] = None
    description: Optional[str] = None
    business: Optional[str] = None
    priority: Optional[str] = None
    stage: Optional[str] = Field(default=None, validation_alias=AliasChoices("stage", "column"))
    assignee: Optional[str] = None
    outcome: Optional[str] = None

    def patch(self) -> dict[str, Any]:
        return self.model_dump(exclude_none=True)


class ContactRequest(BaseModel):
    """Public lead-intake form submission."""

    name: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    service: Optional[str] = None
    preferredContact: Optional[str] = None
    message: Optional[str] = None

    def missing_fields(self) -> list[str]:
        return [
            name for name in ("name", "email", "phone", "message")
            if not str(getattr(self, name) or "").strip()
        ]


class SuccessResponse(BaseModel):
    success: bool = True
    message: Optional[str] = None
