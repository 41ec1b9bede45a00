"""Domain exceptions raised by the service layer.

Each exception carries the HTTP status it maps to and a machine-readable
``code``; ``main.create_app`` installs one handler that renders all of
them as ``{"error": message, "code": code}``.
"""
from __future__ import annotations


class DraftroomError(Exception):
    status_code: int = 500
    code: str = "internal_error"
    default_message: str = "Internal server error"

    def __init__(self, message: str | None = None, details: dict | None = None):
        self.message = message or self.default_message
        self.details = details
        super().__init__(self.message)

    def to_dict(self) -> dict:
        body: dict = {"error": self.message, "code": self.code}
        if self.details:
            body["details"] = self.details
        return body


class NotAuthenticatedError(DraftroomError):
    status_code = 401
    code = "not_authenticated"
    default_message = "Authentication required"


class ForbiddenError(DraftroomError):
    status_code = 403
    code = "forbidden"
    default_message = "You do not have access to this resource"


class NotFoundError(DraftroomError):
    status_code = 404
    code = "not_found"
    default_message = "Resource not found"


class ValidationFailedError(DraftroomError):
    status_code = 400
    code = "validation_error"
    default_message = "Validation failed"


class ConflictError(DraftroomError):
    status_code = 409
    code = "conflict"
    default_message = "The resource was modified concurrently, please retry"


class InternalError(DraftroomError):
    pass
