"""
Album controller: orchestrates the access policy, the album service and
the Discord channel gateway for each album endpoint.
"""
import logging
from dataclasses import dataclass
from typing import List, Optional

from album_api.config import Settings
from album_api.exceptions import ConflictError, ExternalServiceError, ForbiddenError, NotFoundError
from album_api.models.album import Album
from album_api.models.user import User
from album_api.schemas.album import AlbumCreate, AlbumDetail, AlbumUpdate
from album_api.services import access
from album_api.services.album import AlbumService
from album_api.services.discord import (
    Channel,
    ChannelCache,
    DiscordChannelGateway,
    Member,
    build_private_overwrites,
    channel_name_for,
)
from album_api.utils.logger import log_info, log_warning
from album_api.utils.prometheus_metrics import (
    album_access_denied_total,
    channel_compensations_total,
)

logger = logging.getLogger("album_api.albums")


@dataclass
class AlbumContext:
    """Album resolved from the path, with access flags computed once."""

    album: Album
    can_access: bool = False
    can_modify: bool = False


class AlbumController:
    """
    Album use cases.

    Args:
        albums: Album persistence service bound to the request session
        gateway: Discord channel gateway
        channels: Process-wide channel handle cache
        settings: Application settings (guild, parent channel, worker identity)
    """

    def __init__(
        self,
        albums: AlbumService,
        gateway: DiscordChannelGateway,
        channels: ChannelCache,
        settings: Settings,
    ):
        self.albums = albums
        self.gateway = gateway
        self.channels = channels
        self.settings = settings

    async def load(self, album_id: int, user: Optional[User]) -> AlbumContext:
        """
        Resolve an album and evaluate the access policy for ``user``.

        Raises:
            NotFoundError: If the album does not exist
        """
        album = await self.albums.get_album_by_id(album_id)
        if album is None:
            raise NotFoundError("Album not found")

        result = access.evaluate(album, user)
        return AlbumContext(
            album=album,
            can_access=result.can_access,
            can_modify=result.can_modify,
        )

    async def show(self, ctx: AlbumContext) -> AlbumDetail:
        if not ctx.can_access:
            album_access_denied_total.labels(operation="show").inc()
            raise ForbiddenError("You are not allowed to see this album")

        pictures_count = await self.albums.count_pictures(ctx.album.id)
        return AlbumDetail(
            id=ctx.album.id,
            name=ctx.album.name,
            slug=ctx.album.slug,
            private=ctx.album.private,
            pictures_count=pictures_count,
        )

    async def index(
        self,
        user: Optional[User],
        visibility: Optional[str] = None,
        admin: bool = False,
    ) -> List[Album]:
        # admin=true 이지만 album-admin 권한이 없으면 일반 목록으로 처리
        return await self.albums.list_albums(user, visibility=visibility, admin=admin)

    async def store(self, user: User, album_data: AlbumCreate) -> Album:
        """
        Create an album and its Discord channel.

        The channel is created first so no row ever points at a missing
        channel. If the row cannot be written or committed the channel is deleted
        again. Only a committed album is put in the channel cache.

        Args:
            user: Authenticated owner
            album_data: Album creation data

        Returns:
            Created Album model
        """
        channel = await self.gateway.create_channel(
            channel_name_for(album_data.slug),
            parent_id=self.settings.discord_parent_channel_id or None,
        )

        try:
            if album_data.private and not album_data.community:
                owner = await self._lookup_owner(user)
                await self.gateway.set_channel_permissions(
                    channel.id,
                    build_private_overwrites(
                        guild_id=self.gateway.guild_id,
                        worker_id=self.settings.discord_worker_id,
                        worker_type=self.settings.discord_worker_type,
                        owner=owner,
                    ),
                )

            album = await self.albums.create_album(user, album_data, channel.id)
            # 캐시에 넣기 전에 커밋해야 커밋 실패 시에도 채널이 정리됨
            await self.albums.commit()
        except Exception:
            await self._discard_channel(channel)
            raise

        self.channels.set(album.id, channel)
        log_info(
            "Album created",
            event="album",
            album_id=album.id,
            channel_id=channel.id,
            user_id=user.id,
            private=album.private,
            community=album.community,
        )
        return album

    async def update(self, ctx: AlbumContext, update_data: AlbumUpdate) -> Album:
        """
        Update album name/slug. A new slug renames the album's channel.

        Raises:
            ForbiddenError: If the requester cannot modify the album
            ConflictError: If the new slug is taken
        """
        if not ctx.can_modify:
            album_access_denied_total.labels(operation="update").inc()
            raise ForbiddenError("You are not allowed to update this album")

        previous_slug = ctx.album.slug
        album = await self.albums.update_album(
            ctx.album, name=update_data.name, slug=update_data.slug
        )

        if update_data.slug is not None and update_data.slug != previous_slug:
            channel = self._channel_for(album)
            renamed = await self.gateway.rename_channel(channel.id, channel_name_for(album.slug))
            self.channels.set(album.id, renamed)

        log_info("Album updated", event="album", album_id=album.id)
        return album

    async def destroy(self, ctx: AlbumContext) -> None:
        """
        Delete an empty album, then its channel.

        Raises:
            ForbiddenError: If the requester cannot modify the album
            ConflictError: If the album still has pictures
        """
        if not ctx.can_modify:
            album_access_denied_total.labels(operation="delete").inc()
            raise ForbiddenError("You are not allowed to delete this album")

        album = ctx.album
        if await self.albums.count_pictures(album.id):
            raise ConflictError("Album is not empty")

        channel = self._channel_for(album)
        album_id = album.id

        await self.albums.delete_album(album)
        await self.gateway.delete_channel(channel.id)
        self.channels.pop(album_id)

        log_info("Album deleted", event="album", album_id=album_id, channel_id=channel.id)

    def _channel_for(self, album: Album) -> Channel:
        channel = self.channels.get(album.id)
        if channel is None:
            # 재시작 후에는 캐시가 비어 있으므로 저장된 channel_id 사용
            channel = Channel(id=album.channel_id)
            self.channels.set(album.id, channel)
        return channel

    async def _lookup_owner(self, user: User) -> Optional[Member]:
        if not user.discord_id:
            return None
        try:
            return await self.gateway.lookup_member(self.gateway.guild_id, user.discord_id)
        except ExternalServiceError as e:
            log_warning(
                "Owner lookup failed, no extra channel grant",
                event="discord",
                user_id=user.id,
                error=e.detail,
            )
            return None

    async def _discard_channel(self, channel: Channel) -> None:
        channel_compensations_total.inc()
        log_warning(
            "Album not persisted, deleting its channel",
            event="album",
            channel_id=channel.id,
        )
        try:
            await self.gateway.delete_channel(channel.id)
        except ExternalServiceError as e:
            logger.error(
                "Orphaned Discord channel",
                extra={"event": "discord", "channel_id": channel.id, "error": e.detail},
            )
