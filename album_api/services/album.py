"""
Album service: persistence operations for albums.
"""
from typing import List, Optional

from sqlalchemy import func, or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from album_api.exceptions import ConflictError
from album_api.models.album import Album
from album_api.models.picture import Picture
from album_api.models.user import User
from album_api.schemas.album import AlbumCreate
from album_api.services.access import is_album_admin

VISIBILITY_PUBLIC = "public"
VISIBILITY_PRIVATE = "private"


class AlbumService:
    """
    Service for album CRUD against the database.
    Slug uniqueness is enforced by the unique index on ``albums.slug``.
    """

    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_album_by_id(self, album_id: int) -> Optional[Album]:
        """
        Get an album by ID with its creator loaded.

        Args:
            album_id: Album ID

        Returns:
            Album if found, None otherwise
        """
        result = await self.db.execute(
            select(Album)
            .where(Album.id == album_id)
            .options(selectinload(Album.created_by))
        )
        return result.scalar_one_or_none()

    async def list_albums(
        self,
        user: Optional[User],
        visibility: Optional[str] = None,
        admin: bool = False,
    ) -> List[Album]:
        """
        List albums visible to ``user``.

        Args:
            user: Requester, or None for anonymous requests
            visibility: "public", "private" or None for both
            admin: Return every album when the requester holds album-admin

        Returns:
            List of Album models, newest first
        """
        query = select(Album).order_by(Album.created_at.desc(), Album.id.desc())

        if admin and is_album_admin(user):
            result = await self.db.execute(query)
            return list(result.scalars().all())

        if visibility == VISIBILITY_PUBLIC:
            query = query.where(Album.private.is_(False))
        elif visibility == VISIBILITY_PRIVATE:
            if user is None:
                return []
            query = query.where(Album.private.is_(True), Album.created_by_id == user.id)
        elif user is None:
            query = query.where(Album.private.is_(False))
        else:
            query = query.where(
                or_(Album.private.is_(False), Album.created_by_id == user.id)
            )

        result = await self.db.execute(query)
        return list(result.scalars().all())

    async def create_album(
        self,
        user: User,
        album_data: AlbumCreate,
        channel_id: str,
    ) -> Album:
        """
        Create a new album row.

        Community albums are never private.

        Args:
            user: Owner of the album
            album_data: Album creation data
            channel_id: ID of the Discord channel already created for it

        Returns:
            Created Album model

        Raises:
            ConflictError: If the slug is already taken
        """
        album = Album(
            name=album_data.name,
            slug=album_data.slug,
            private=False if album_data.community else album_data.private,
            community=album_data.community,
            channel_id=channel_id,
            created_by_id=user.id,
        )
        self.db.add(album)
        await self._flush_or_conflict(album.slug)
        await self.db.refresh(album)
        return album

    async def update_album(
        self,
        album: Album,
        name: Optional[str] = None,
        slug: Optional[str] = None,
    ) -> Album:
        """
        Update album name and/or slug. Other fields are never touched.

        Raises:
            ConflictError: If the new slug is already taken
        """
        if name is not None:
            album.name = name
        if slug is not None:
            album.slug = slug

        await self._flush_or_conflict(album.slug)
        await self.db.refresh(album)
        return album

    async def delete_album(self, album: Album) -> None:
        """Delete an album row."""
        await self.db.delete(album)
        await self.db.flush()

    async def count_pictures(self, album_id: int) -> int:
        """Get the number of pictures in an album."""
        result = await self.db.execute(
            select(func.count(Picture.id)).where(Picture.album_id == album_id)
        )
        return result.scalar() or 0

    async def commit(self) -> None:
        """Commit the current transaction."""
        await self.db.commit()

    async def _flush_or_conflict(self, slug: str) -> None:
        try:
            await self.db.flush()
        except IntegrityError as e:
            await self.db.rollback()
            if not _is_slug_violation(e):
                # FK 위반 등은 DB 오류로 그대로 전달
                raise
            raise ConflictError(f"Album slug '{slug}' already exists") from e


def _is_slug_violation(error: IntegrityError) -> bool:
    message = str(error.orig).lower()
    return "unique" in message and "slug" in message
