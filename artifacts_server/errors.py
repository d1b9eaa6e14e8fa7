# artifacts_server/errors.py
"""Error taxonomy shared by the store, the services and the HTTP layer."""
from __future__ import annotations

from typing import Any, Dict, Optional


class ArtifactServerError(Exception):
    """
    Base class for every failure the server reports to clients.

    Each subclass pins the HTTP status and a machine-checkable ``code``.
    ``message`` is what the client sees, so it must never carry internal
    diagnostics.
    """

    status_code = 500
    code = "internal_error"
    default_message = "Internal server error"

    def __init__(self, message: Optional[str] = None) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "success": False,
            "message": self.message,
            "status": self.status_code,
            "code": self.code,
        }


class ValidationError(ArtifactServerError):
    status_code = 400
    code = "validation_error"
    default_message = "Invalid request"


class InvalidIdError(ValidationError):
    code = "invalid_id"
    default_message = "Invalid artifact ID format"


class UnauthenticatedError(ArtifactServerError):
    status_code = 401
    code = "unauthenticated"
    default_message = "Authentication required"


class TokenExpiredError(UnauthenticatedError):
    # Distinct code so clients can re-authenticate instead of giving up
    code = "token_expired"
    default_message = "Authentication token has expired"


class ForbiddenError(ArtifactServerError):
    status_code = 403
    code = "forbidden"
    default_message = "You do not have permission to modify this artifact"


class NotFoundError(ArtifactServerError):
    status_code = 404
    code = "not_found"
    default_message = "Artifact not found"


class InternalError(ArtifactServerError):
    pass
