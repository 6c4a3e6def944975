"""Typed application errors and their HTTP status codes."""

from __future__ import annotations


class AppError(Exception):
    """Base class for errors that map directly onto an HTTP response."""

    status_code = 500

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code


class Unauthorized(AppError):
    status_code = 401

    def __init__(self, message: str = "Unauthorized") -> None:
        super().__init__(message)


class Forbidden(AppError):
    status_code = 403

    def __init__(self, message: str = "Forbidden") -> None:
        super().__init__(message)


class NotFound(AppError):
    """Missing resources and resources owned by someone else look the same."""

    status_code = 404


class BadRequest(AppError):
    status_code = 400


class UpstreamGenerationFailure(AppError):
    """The LLM call failed or returned nothing usable."""

    status_code = 500


class PersistenceFailure(AppError):
    status_code = 500


class CorruptStagePayload(AppError):
    """A stored stage payload no longer matches its schema."""

    status_code = 500


class StartValidationRunError(AppError):
    """Raised by the validation orchestrator; carries its own status."""

    def __init__(self, message: str, status_code: int = 500) -> None:
        super().__init__(message, status_code)
