"""Error types raised by route handlers and rendered as JSON envelopes."""

from fastapi import status


class ApiError(Exception):
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class ValidationError(ApiError):
    """Missing or malformed request input."""
    status_code = status.HTTP_400_BAD_REQUEST


class NotFoundError(ApiError):
    status_code = status.HTTP_404_NOT_FOUND


class ConflictError(ApiError):
    status_code = status.HTTP_409_CONFLICT


class StorageError(ApiError):
    """Persistence failure. The message is logged, never sent to clients."""
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
