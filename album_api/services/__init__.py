"""
Services package.
Contains album business logic and the Discord integration.
"""
from album_api.services.album import AlbumService
from album_api.services.album_controller import AlbumContext, AlbumController
from album_api.services.discord import ChannelCache, DiscordChannelGateway

__all__ = [
    "AlbumService",
    "AlbumContext",
    "AlbumController",
    "ChannelCache",
    "DiscordChannelGateway",
]
