"""
Typed failures raised by the identity, lifecycle and API layers.

Every error carries a machine-readable ``code`` and the HTTP status the API
surface maps it to. ``register_error_handlers`` in ``skillswap.error_handlers``
turns them into JSON responses.
"""

from __future__ import annotations

from typing import Any, Optional


class SkillSwapError(Exception):
    """Base class for all domain and infrastructure failures."""

    code = "INTERNAL_ERROR"
    http_status = 500

    def __init__(self, message: str, *, details: Optional[list[dict]] = None):
        super().__init__(message)
        self.message = message
        self.details = details

    def to_response(self) -> dict[str, Any]:
        body: dict[str, Any] = {"message": self.message, "code": self.code}
        if self.details:
            body["errors"] = self.details
        return body


class ValidationFailed(SkillSwapError):
    code = "VALIDATION_ERROR"
    http_status = 400


class Conflict(SkillSwapError):
    """Unique constraint violated (username or email already taken)."""

    code = "CONFLICT"
    http_status = 400


class InvalidCredentials(SkillSwapError):
    code = "INVALID_CREDENTIALS"
    http_status = 401

    def __init__(self, message: str = "Invalid username or password"):
        super().__init__(message)


class Unauthorized(SkillSwapError):
    code = "UNAUTHORIZED"
    http_status = 401

    def __init__(self, message: str = "Unauthorized"):
        super().__init__(message)


class Forbidden(SkillSwapError):
    code = "FORBIDDEN"
    http_status = 403

    def __init__(self, message: str = "Forbidden"):
        super().__init__(message)


class NotFound(SkillSwapError):
    code = "NOT_FOUND"
    http_status = 404

    def __init__(self, resource: str):
        super().__init__(f"{resource} not found")
        self.resource = resource


class InvalidReference(SkillSwapError):
    """A referenced record is missing or belongs to the wrong user."""

    code = "INVALID_REFERENCE"
    http_status = 400


class InvalidTransition(SkillSwapError):
    code = "INVALID_TRANSITION"
    http_status = 400


class InternalError(SkillSwapError):
    code = "INTERNAL_ERROR"
    http_status = 500
