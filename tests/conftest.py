"""Pytest fixtures and test env. Set env before importing the app."""

import os
import tempfile
from dataclasses import dataclass
from typing import Dict, List, Optional

import pytest
import pytest_asyncio

# Set test env before any project imports.
_tmpdir = tempfile.mkdtemp(prefix="album_api_test_")
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///" + os.path.join(_tmpdir, "test.db")
os.environ["LOG_DIR"] = os.path.join(_tmpdir, "logs")
os.environ["ENVIRONMENT"] = "DEV"
os.environ["JWT_SECRET_KEY"] = "test-secret-key"
os.environ["DISCORD_BOT_TOKEN"] = "test-bot-token"
os.environ["DISCORD_GUILD_ID"] = "900"
os.environ["DISCORD_PARENT_CHANNEL_ID"] = "parent-1"
os.environ["DISCORD_WORKER_ID"] = "worker-7"

from fastapi.testclient import TestClient

import album_api.models  # noqa: F401
from album_api.database import Base, engine, get_db_context
from album_api.dependencies.albums import get_channel_gateway
from album_api.exceptions import ExternalServiceError
from album_api.main import app
from album_api.models.album import Album
from album_api.models.picture import Picture
from album_api.models.user import User
from album_api.services.discord import Channel, Member, PermissionOverwrite
from album_api.utils.security import create_access_token

GUILD_ID = "900"
PARENT_ID = "parent-1"
WORKER_ID = "worker-7"


class FakeChannelGateway:
    """In-memory stand-in for DiscordChannelGateway."""

    def __init__(self, guild_id: str = GUILD_ID):
        self.guild_id = guild_id
        self.channels: Dict[str, Channel] = {}
        self.permissions: Dict[str, List[PermissionOverwrite]] = {}
        self.members: Dict[str, Member] = {}
        self.deleted: List[str] = []
        self.fail_on: set = set()
        self._next_id = 1000

    def _maybe_fail(self, operation: str) -> None:
        if operation in self.fail_on:
            raise ExternalServiceError(f"Discord API error 500: {operation} failed")

    async def create_channel(self, name: str, parent_id: Optional[str] = None) -> Channel:
        self._maybe_fail("create_channel")
        self._next_id += 1
        channel = Channel(id=str(self._next_id), name=name, parent_id=parent_id)
        self.channels[channel.id] = channel
        return channel

    async def set_channel_permissions(self, channel_id: str, overwrites) -> None:
        self._maybe_fail("set_channel_permissions")
        self.permissions[channel_id] = list(overwrites)

    async def rename_channel(self, channel_id: str, name: str) -> Channel:
        self._maybe_fail("rename_channel")
        channel = self.channels.setdefault(channel_id, Channel(id=channel_id))
        channel.name = name
        return channel

    async def delete_channel(self, channel_id: str) -> None:
        self._maybe_fail("delete_channel")
        self.channels.pop(channel_id, None)
        self.deleted.append(channel_id)

    async def lookup_member(self, guild_id: str, user_id: str) -> Optional[Member]:
        self._maybe_fail("lookup_member")
        return self.members.get(user_id)


@dataclass
class Account:
    id: int
    token: str

    @property
    def headers(self) -> Dict[str, str]:
        return {"Authorization": f"Bearer {self.token}"}


async def reset_db() -> None:
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
        await conn.run_sync(Base.metadata.create_all)


async def create_user(username: str, abilities=(), discord_id: Optional[str] = None) -> int:
    async with get_db_context() as session:
        user = User(username=username, abilities=list(abilities), discord_id=discord_id)
        session.add(user)
        await session.flush()
        return user.id


async def add_picture(album_id: int) -> None:
    async with get_db_context() as session:
        session.add(Picture(album_id=album_id, url=f"https://cdn.example/{album_id}.jpg"))


async def count_albums() -> int:
    from sqlalchemy import func, select

    async with get_db_context() as session:
        result = await session.execute(select(func.count(Album.id)))
        return result.scalar() or 0


@pytest.fixture
def gateway() -> FakeChannelGateway:
    return FakeChannelGateway()


@pytest.fixture
def client(gateway):
    app.dependency_overrides[get_channel_gateway] = lambda: gateway
    with TestClient(app) as test_client:
        test_client.portal.call(reset_db)
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture
def accounts(client) -> Dict[str, Account]:
    """
    Users:
        owner    - manage-album, in the guild (discord id 111)
        stranger - manage-album, not the creator
        admin    - album-admin + manage-album
        plain    - no abilities
    """
    seeds = {
        "owner": (["manage-album"], "111"),
        "stranger": (["manage-album"], "222"),
        "admin": (["album-admin", "manage-album"], None),
        "plain": ([], None),
    }
    result = {}
    for name, (abilities, discord_id) in seeds.items():
        user_id = client.portal.call(create_user, name, abilities, discord_id)
        result[name] = Account(id=user_id, token=create_access_token(user_id))
    return result


@pytest.fixture
def channel_cache(client):
    return client.app.state.channel_cache


@pytest_asyncio.fixture
async def db_session():
    """Session on a clean schema for service-level tests."""
    await reset_db()
    async with get_db_context() as session:
        yield session
