"""Error kinds surfaced by the API.

Each error is an ``HTTPException`` carrying a ``kind`` that the exception
handlers in ``care_portal.main`` render as ``{"error": kind, "message": ...}``.
"""
from typing import Optional, Dict

from fastapi import HTTPException, status


class PortalError(HTTPException):
    kind = "PortalError"
    http_status = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_message = "Request failed"

    def __init__(self, message: Optional[str] = None, headers: Optional[Dict[str, str]] = None):
        super().__init__(
            status_code=self.http_status,
            detail=message or self.default_message,
            headers=headers,
        )

    @property
    def message(self) -> str:
        return self.detail


class ValidationError(PortalError):
    kind = "ValidationError"
    http_status = status.HTTP_422_UNPROCESSABLE_ENTITY
    default_message = "Invalid request"


class DuplicateEmail(PortalError):
    kind = "DuplicateEmail"
    http_status = status.HTTP_409_CONFLICT
    default_message = "Email already registered"


class InvalidCredentials(PortalError):
    kind = "InvalidCredentials"
    http_status = status.HTTP_401_UNAUTHORIZED
    default_message = "Invalid email or password"


class Unauthenticated(PortalError):
    kind = "Unauthenticated"
    http_status = status.HTTP_401_UNAUTHORIZED
    default_message = "Could not validate credentials"

    def __init__(self, message: Optional[str] = None):
        super().__init__(message, headers={"WWW-Authenticate": "Bearer"})


class Forbidden(PortalError):
    kind = "Forbidden"
    http_status = status.HTTP_403_FORBIDDEN
    default_message = "Not enough permissions"


class NotFound(PortalError):
    kind = "NotFound"
    http_status = status.HTTP_404_NOT_FOUND
    default_message = "The requested resource was not found"


class InvalidTransition(PortalError):
    kind = "InvalidTransition"
    http_status = status.HTTP_409_CONFLICT
    default_message = "Status transition not allowed"


class RateLimited(PortalError):
    kind = "RateLimited"
    http_status = status.HTTP_429_TOO_MANY_REQUESTS
    default_message = "Too many requests. Please try again later."


class StoreUnavailable(PortalError):
    kind = "StoreUnavailable"
    http_status = status.HTTP_503_SERVICE_UNAVAILABLE
    default_message = "The service is temporarily unavailable. Please retry shortly."
