"""Error taxonomy shared by services and routes.

Services raise these; the handlers registered in ``app.main`` render them as
``{"error": message}`` with the matching HTTP status.
"""

from __future__ import annotations

from typing import Any


class AppError(Exception):
    status_code = 500

    def __init__(self, message: str, *, field: str | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.field = field

    def to_body(self) -> dict[str, Any]:
        return {"error": self.message}


class ValidationError(AppError):
    """Malformed or missing input."""

    status_code = 400


class UnauthorizedError(AppError):
    status_code = 401


class ForbiddenError(AppError):
    """Ownership / authorization failure."""

    status_code = 403


class NotFoundError(AppError):
    status_code = 404

    def __init__(self, resource: str) -> None:
        super().__init__(f"{resource} not found")
        self.resource = resource


class ConflictError(AppError):
    """Uniqueness or state conflict."""

    status_code = 409


class UnprocessableError(AppError):
    """Uploaded content failed parsing or schema validation."""

    status_code = 422

    def __init__(self, message: str, validation_errors: list[dict[str, Any]]) -> None:
        super().__init__(message)
        self.validation_errors = validation_errors

    def to_body(self) -> dict[str, Any]:
        return {"error": self.message, "validation_errors": self.validation_errors}


class RateLimitError(AppError):
    status_code = 429


class ServiceUnavailableError(AppError):
    status_code = 503
