"""
Album request dependencies.

``load_album`` resolves the ``album_id`` path parameter before any handler
on ``/albums/{album_id}`` runs.
"""
from typing import Optional

from fastapi import Depends, Path, Request
from sqlalchemy.ext.asyncio import AsyncSession

from album_api.config import Settings, get_settings
from album_api.database import get_db
from album_api.dependencies.auth import get_optional_current_user
from album_api.models.user import User
from album_api.services.album import AlbumService
from album_api.services.album_controller import AlbumContext, AlbumController
from album_api.services.discord import ChannelCache, DiscordChannelGateway


def get_channel_gateway(request: Request) -> DiscordChannelGateway:
    """Gateway created in the application lifespan."""
    return request.app.state.channel_gateway


def get_channel_cache(request: Request) -> ChannelCache:
    return request.app.state.channel_cache


def get_album_controller(
    db: AsyncSession = Depends(get_db),
    gateway: DiscordChannelGateway = Depends(get_channel_gateway),
    channels: ChannelCache = Depends(get_channel_cache),
    settings: Settings = Depends(get_settings),
) -> AlbumController:
    return AlbumController(AlbumService(db), gateway, channels, settings)


async def load_album(
    album_id: int = Path(..., description="Album ID"),
    controller: AlbumController = Depends(get_album_controller),
    user: Optional[User] = Depends(get_optional_current_user),
) -> AlbumContext:
    """Resolve the album and its access flags for the requester."""
    return await controller.load(album_id, user)
