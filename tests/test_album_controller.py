"""Service-level tests for AlbumService and AlbumController."""

import asyncio

import pytest
from sqlalchemy.exc import IntegrityError, OperationalError

from album_api.config import get_settings
from album_api.exceptions import ConflictError, ForbiddenError, NotFoundError
from album_api.models.picture import Picture
from album_api.models.user import User
from album_api.schemas.album import AlbumCreate, AlbumUpdate
from album_api.services.album import AlbumService
from album_api.services.album_controller import AlbumController
from album_api.services.discord import ChannelCache

from conftest import FakeChannelGateway


async def _user(session, username, abilities=(), discord_id=None) -> User:
    user = User(username=username, abilities=list(abilities), discord_id=discord_id)
    session.add(user)
    await session.flush()
    return user


@pytest.fixture
def gateway():
    return FakeChannelGateway()


@pytest.fixture
def controller(db_session, gateway):
    return AlbumController(AlbumService(db_session), gateway, ChannelCache(), get_settings())


@pytest.mark.asyncio
class TestAlbumController:
    """Album use cases against a real session and a fake Discord gateway."""

    async def test_owner_context_can_modify(self, db_session, controller) -> None:
        owner = await _user(db_session, "owner", ["manage-album"])
        stranger = await _user(db_session, "stranger")
        album = await controller.store(owner, AlbumCreate(name="Trip", slug="trip", private=True))

        owner_ctx = await controller.load(album.id, owner)
        stranger_ctx = await controller.load(album.id, stranger)

        assert (owner_ctx.can_access, owner_ctx.can_modify) == (True, True)
        assert (stranger_ctx.can_access, stranger_ctx.can_modify) == (False, False)
        with pytest.raises(ForbiddenError):
            await controller.show(stranger_ctx)
        detail = await controller.show(owner_ctx)
        assert detail.pictures_count == 0

    async def test_load_unknown_album(self, controller) -> None:
        with pytest.raises(NotFoundError):
            await controller.load(12345, None)

    async def test_store_persists_channel_id(self, db_session, controller, gateway) -> None:
        owner = await _user(db_session, "owner")

        album = await controller.store(owner, AlbumCreate(name="Trip", slug="trip"))

        (channel,) = gateway.channels.values()
        assert album.channel_id == channel.id
        assert album.created_by_id == owner.id
        assert controller.channels.get(album.id) is channel

    async def test_community_forces_public(self, db_session, controller) -> None:
        owner = await _user(db_session, "owner")

        album = await controller.store(
            owner, AlbumCreate(name="Club", slug="club", private=True, community=True)
        )

        assert album.private is False
        assert album.community is True

    async def test_duplicate_slug_deletes_new_channel(self, db_session, controller, gateway) -> None:
        owner = await _user(db_session, "owner")
        first = await controller.store(owner, AlbumCreate(name="First", slug="trip"))
        first_channel_id = first.channel_id

        with pytest.raises(ConflictError):
            await controller.store(owner, AlbumCreate(name="Second", slug="trip"))

        assert list(gateway.channels) == [first_channel_id]
        assert len(gateway.deleted) == 1

    async def test_commit_failure_discards_channel(
        self, db_session, controller, gateway, monkeypatch
    ) -> None:
        owner = await _user(db_session, "owner")

        async def failing_commit():
            raise OperationalError("COMMIT", {}, Exception("database is locked"))

        monkeypatch.setattr(controller.albums, "commit", failing_commit)

        with pytest.raises(OperationalError):
            await controller.store(owner, AlbumCreate(name="Trip", slug="trip"))

        assert gateway.channels == {}
        assert len(gateway.deleted) == 1
        assert len(controller.channels) == 0

    async def test_update_same_slug_does_not_rename(self, db_session, controller, gateway) -> None:
        owner = await _user(db_session, "owner")
        album = await controller.store(owner, AlbumCreate(name="Trip", slug="trip"))
        gateway.fail_on.add("rename_channel")
        ctx = await controller.load(album.id, owner)

        updated = await controller.update(ctx, AlbumUpdate(name="Trip 2", slug="trip"))

        assert updated.name == "Trip 2"

    async def test_update_refreshes_updated_at(self, db_session, controller) -> None:
        owner = await _user(db_session, "owner")
        album = await controller.store(owner, AlbumCreate(name="Trip", slug="trip"))
        before = album.updated_at
        ctx = await controller.load(album.id, owner)
        await asyncio.sleep(0.01)

        updated = await controller.update(ctx, AlbumUpdate(name="Trip 2"))

        assert updated.updated_at > before

    async def test_destroy_non_empty_album(self, db_session, controller, gateway) -> None:
        owner = await _user(db_session, "owner")
        album = await controller.store(owner, AlbumCreate(name="Trip", slug="trip"))
        db_session.add(Picture(album_id=album.id, url="https://cdn.example/1.jpg"))
        await db_session.flush()
        ctx = await controller.load(album.id, owner)

        with pytest.raises(ConflictError):
            await controller.destroy(ctx)

        assert gateway.deleted == []
        assert await controller.albums.get_album_by_id(album.id) is not None

    async def test_destroy_without_cached_channel(self, db_session, controller, gateway) -> None:
        owner = await _user(db_session, "owner")
        album = await controller.store(owner, AlbumCreate(name="Trip", slug="trip"))
        channel_id = album.channel_id
        controller.channels.pop(album.id)
        ctx = await controller.load(album.id, owner)

        await controller.destroy(ctx)

        assert gateway.deleted == [channel_id]

    async def test_destroy_forbidden(self, db_session, controller) -> None:
        owner = await _user(db_session, "owner")
        stranger = await _user(db_session, "stranger", ["manage-album"])
        album = await controller.store(owner, AlbumCreate(name="Trip", slug="trip"))
        ctx = await controller.load(album.id, stranger)

        with pytest.raises(ForbiddenError):
            await controller.destroy(ctx)


@pytest.mark.asyncio
class TestAlbumServiceListing:
    """Visibility modes of AlbumService.list_albums."""

    async def _seed(self, db_session):
        service = AlbumService(db_session)
        owner = await _user(db_session, "owner")
        other = await _user(db_session, "other")
        admin = await _user(db_session, "admin", ["album-admin"])
        for user, slug, private in (
            (owner, "a-public", False),
            (owner, "a-private", True),
            (other, "b-public", False),
            (other, "b-private", True),
        ):
            await service.create_album(user, AlbumCreate(name=slug, slug=slug, private=private), "c-" + slug)
        return service, owner, other, admin

    async def test_private_never_lists_other_users(self, db_session) -> None:
        service, owner, other, _ = await self._seed(db_session)

        for user in (owner, other):
            albums = await service.list_albums(user, visibility="private")
            assert albums
            assert all(a.created_by_id == user.id and a.private for a in albums)

    async def test_admin_sees_everything(self, db_session) -> None:
        service, _, _, admin = await self._seed(db_session)

        albums = await service.list_albums(admin, admin=True)

        assert len(albums) == 4

    async def test_admin_without_flag_uses_visibility(self, db_session) -> None:
        service, _, _, admin = await self._seed(db_session)

        albums = await service.list_albums(admin)

        assert sorted(a.slug for a in albums) == ["a-public", "b-public"]

    async def test_unknown_creator_is_not_a_slug_conflict(self, db_session) -> None:
        service = AlbumService(db_session)
        ghost = User(id=9999, username="ghost")

        with pytest.raises(IntegrityError):
            await service.create_album(ghost, AlbumCreate(name="Trip", slug="trip"), "c-trip")

    async def test_duplicate_slug_is_a_conflict(self, db_session) -> None:
        service, owner, _, _ = await self._seed(db_session)

        with pytest.raises(ConflictError) as exc_info:
            await service.create_album(owner, AlbumCreate(name="Again", slug="a-public"), "c-x")

        assert exc_info.value.detail == "Album slug 'a-public' already exists"

    async def test_count_pictures(self, db_session) -> None:
        service, _, _, _ = await self._seed(db_session)
        album = (await service.list_albums(None, visibility="public"))[0]
        db_session.add_all(
            [Picture(album_id=album.id, url=f"https://cdn.example/{i}.jpg") for i in range(3)]
        )
        await db_session.flush()

        assert await service.count_pictures(album.id) == 3
