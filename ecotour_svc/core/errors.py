from __future__ import annotations

from fastapi import status


class ServiceError(Exception):
    """Base for errors raised by the service layer; routers let them bubble up to the app handlers."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_message = "Internal server error"

    def __init__(self, message: str | None = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class ValidationError(ServiceError):
    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "Invalid request"


class CapacityExceeded(ValidationError):
    default_message = "Event is full"


class NoParticipantsToRemove(ValidationError):
    default_message = "No participants to remove"


class AuthError(ServiceError):
    status_code = status.HTTP_401_UNAUTHORIZED
    default_message = "Authentication required"


class AuthzError(ServiceError):
    status_code = status.HTTP_403_FORBIDDEN
    default_message = "Forbidden"


class NotFoundError(ServiceError):
    status_code = status.HTTP_404_NOT_FOUND
    default_message = "Not found"


class ConflictError(ServiceError):
    status_code = status.HTTP_409_CONFLICT
    default_message = "Already exists"
