"""
Error types shared by the store, service and HTTP layers.

Every error carries a client-safe ``message`` and the HTTP status it maps to.
The FastAPI app registers a single handler for ``TodoError`` that renders
``{"success": false, "error": message}`` with that status.
"""
from __future__ import annotations


class TodoError(Exception):
    """Base class for errors that are reported to API clients."""

    status_code: int = 400

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class ValidationError(TodoError):
    """Input is malformed or breaks a business rule."""

    status_code = 400


class NotFoundError(TodoError):
    """The requested todo does not exist."""

    status_code = 404


class PersistenceError(TodoError):
    """Reading or writing the backing file failed."""

    status_code = 500
