"""
Pydantic schemas package.
All schemas are exported here for easy import.
"""
from album_api.schemas.user import TokenPayload
from album_api.schemas.album import (
    AlbumCreate,
    AlbumDetail,
    AlbumDetailEnvelope,
    AlbumEnvelope,
    AlbumList,
    AlbumResponse,
    AlbumUpdate,
)

__all__ = [
    # User schemas
    "TokenPayload",
    # Album schemas
    "AlbumCreate",
    "AlbumDetail",
    "AlbumDetailEnvelope",
    "AlbumEnvelope",
    "AlbumList",
    "AlbumResponse",
    "AlbumUpdate",
]
