"""Error taxonomy shared by the board engine and the HTTP layer."""

from __future__ import annotations


class BoardError(Exception):
    """Base class for rejected board operations.

    ``status_code`` is the HTTP status the API surface answers with.
    No mutation is applied when one of these is raised.
    """

    status_code = 400

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class ValidationError(BoardError):
    """Missing or invalid input, including a gated move without an outcome."""

    status_code = 400


class NotFoundError(BoardError):
    """Operation on an unknown task id."""

    status_code = 404


class ForbiddenError(BoardError):
    """Edit of a backlog-only field on a task that has left the backlog."""

    status_code = 403


class SnapshotError(RuntimeError):
    """The persisted board snapshot cannot be read safely."""

    pass
