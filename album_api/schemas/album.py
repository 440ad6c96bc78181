"""
Album-related Pydantic schemas for request/response validation.
"""
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

SLUG_PATTERN = r"^[a-z0-9][a-z0-9_-]*$"


class AlbumCreate(BaseModel):
    """Schema for album creation."""

    name: str = Field(..., min_length=1, max_length=255)
    slug: str = Field(..., min_length=1, max_length=100, pattern=SLUG_PATTERN)
    private: bool = False
    community: bool = False


class AlbumUpdate(BaseModel):
    """Schema for updating album. Only name and slug can change."""

    name: Optional[str] = Field(None, min_length=1, max_length=255)
    slug: Optional[str] = Field(None, min_length=1, max_length=100, pattern=SLUG_PATTERN)


class AlbumResponse(BaseModel):
    """Public album fields. Channel and owner stay internal."""

    id: int
    name: str
    slug: str
    private: Optional[bool] = None

    model_config = ConfigDict(from_attributes=True)


class AlbumDetail(AlbumResponse):
    """Album with its computed picture count."""

    pictures_count: int = Field(0, alias="picturesCount")

    model_config = ConfigDict(from_attributes=True, populate_by_name=True)


class AlbumEnvelope(BaseModel):
    """Single album response body: ``{"album": {...}}``."""

    album: AlbumResponse


class AlbumDetailEnvelope(BaseModel):
    album: AlbumDetail


class AlbumList(BaseModel):
    """Album listing response body: ``{"albums": [...]}``."""

    albums: List[AlbumResponse]
