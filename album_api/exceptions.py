"""
Album domain errors.

Each error carries the HTTP status the uniform responder in
``album_api.main`` answers with.
"""
from typing import Optional

from fastapi import status


class AlbumError(Exception):
    """Base class for errors raised by album operations."""

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_detail = "Album operation failed"

    def __init__(self, detail: Optional[str] = None):
        self.detail = detail or self.default_detail
        super().__init__(self.detail)


class NotFoundError(AlbumError):
    """Requested album does not exist."""

    status_code = status.HTTP_404_NOT_FOUND
    default_detail = "Album not found"


class ForbiddenError(AlbumError):
    """Access policy denied the operation."""

    status_code = status.HTTP_403_FORBIDDEN
    default_detail = "You are not allowed to access this album"


class ConflictError(AlbumError):
    """Duplicate slug, or deleting an album that still has pictures."""

    status_code = status.HTTP_409_CONFLICT
    default_detail = "Album conflict"


class ExternalServiceError(AlbumError):
    """A Discord API call failed. Not retried."""

    status_code = status.HTTP_502_BAD_GATEWAY
    default_detail = "External service request failed"

    def __init__(self, detail: Optional[str] = None, service: str = "discord"):
        self.service = service
        super().__init__(detail)
