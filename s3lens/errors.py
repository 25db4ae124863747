from __future__ import annotations

from typing import Optional


class S3LensError(Exception):
    """Base class for failures surfaced to the user."""

    default_message = "Request failed"

    def __init__(self, message: Optional[str] = None, status: Optional[int] = None) -> None:
        self.message = message or self.default_message
        self.status = status
        super().__init__(self.message)


class NotAuthenticatedError(S3LensError):
    default_message = "Not authenticated"


class PermissionDeniedError(S3LensError):
    default_message = "Access denied"


class NotFoundError(S3LensError):
    default_message = "Not found"


class ServerError(S3LensError):
    default_message = "Server error. Please try again later."


class ApiError(S3LensError):
    pass


class PayloadTooLargeError(S3LensError):
    def __init__(self, limit: int, message: Optional[str] = None) -> None:
        self.limit = limit
        super().__init__(message or f"Content exceeds {limit} bytes")
