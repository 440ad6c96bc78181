"""Wire-level tests for the Discord channel gateway."""

import json

import httpx
import pytest
import pytest_asyncio
from pytest_httpx import HTTPXMock

from album_api.exceptions import ExternalServiceError
from album_api.services.discord import (
    VIEW_CHANNEL,
    ChannelCache,
    Channel,
    DiscordChannelGateway,
    Member,
    build_private_overwrites,
    channel_name_for,
)

API = "https://discord.test/api/v10"


@pytest_asyncio.fixture
async def discord():
    client = httpx.AsyncClient(base_url=API, headers={"Authorization": "Bot test-token"})
    gateway = DiscordChannelGateway(client, guild_id="900")
    yield gateway
    await gateway.aclose()


def test_channel_name_keeps_flower_prefix():
    assert channel_name_for("trip") == "🌸・trip"


def test_private_overwrites_without_owner():
    overwrites = build_private_overwrites("900", "worker-7", "member")
    assert [o.to_payload() for o in overwrites] == [
        {"id": "900", "type": 0, "allow": "0", "deny": str(VIEW_CHANNEL)},
        {"id": "worker-7", "type": 1, "allow": str(VIEW_CHANNEL), "deny": "0"},
    ]


def test_private_overwrites_with_owner_and_worker_role():
    overwrites = build_private_overwrites("900", "worker-7", "role", owner=Member(id="111"))
    payloads = [o.to_payload() for o in overwrites]
    assert payloads[1]["type"] == 0
    assert payloads[2] == {"id": "111", "type": 1, "allow": str(VIEW_CHANNEL), "deny": "0"}


def test_channel_cache_lifecycle():
    cache = ChannelCache()
    cache.set(1, Channel(id="555"))
    assert 1 in cache
    assert cache.get(1).id == "555"
    assert cache.pop(1).id == "555"
    assert cache.get(1) is None
    assert len(cache) == 0


@pytest.mark.asyncio
class TestDiscordChannelGateway:
    """Test Discord REST calls."""

    async def test_create_channel(self, discord, httpx_mock: HTTPXMock) -> None:
        httpx_mock.add_response(
            method="POST",
            url=f"{API}/guilds/900/channels",
            json={"id": "555", "name": "🌸・trip", "parent_id": "parent-1", "type": 0},
            status_code=201,
        )

        channel = await discord.create_channel("🌸・trip", parent_id="parent-1")

        assert channel == Channel(id="555", name="🌸・trip", parent_id="parent-1")
        request = httpx_mock.get_request()
        assert request.headers["Authorization"] == "Bot test-token"
        assert json.loads(request.content) == {
            "name": "🌸・trip",
            "type": 0,
            "parent_id": "parent-1",
        }

    async def test_set_channel_permissions_replaces_overwrites(
        self, discord, httpx_mock: HTTPXMock
    ) -> None:
        httpx_mock.add_response(method="PATCH", url=f"{API}/channels/555", json={"id": "555"})

        await discord.set_channel_permissions(
            "555", build_private_overwrites("900", "worker-7")
        )

        body = json.loads(httpx_mock.get_request().content)
        assert body["permission_overwrites"][0] == {
            "id": "900", "type": 0, "allow": "0", "deny": "1024",
        }
        assert body["permission_overwrites"][1]["id"] == "worker-7"

    async def test_rename_channel(self, discord, httpx_mock: HTTPXMock) -> None:
        httpx_mock.add_response(
            method="PATCH",
            url=f"{API}/channels/555",
            json={"id": "555", "name": "🌸・road-trip"},
        )

        channel = await discord.rename_channel("555", "🌸・road-trip")

        assert channel.name == "🌸・road-trip"
        assert json.loads(httpx_mock.get_request().content) == {"name": "🌸・road-trip"}

    async def test_delete_channel(self, discord, httpx_mock: HTTPXMock) -> None:
        httpx_mock.add_response(method="DELETE", url=f"{API}/channels/555", json={"id": "555"})

        await discord.delete_channel("555")

        assert httpx_mock.get_request().method == "DELETE"

    async def test_delete_missing_channel_is_tolerated(
        self, discord, httpx_mock: HTTPXMock
    ) -> None:
        httpx_mock.add_response(
            method="DELETE",
            url=f"{API}/channels/555",
            json={"message": "Unknown Channel", "code": 10003},
            status_code=404,
        )

        await discord.delete_channel("555")

    async def test_lookup_member(self, discord, httpx_mock: HTTPXMock) -> None:
        httpx_mock.add_response(
            method="GET",
            url=f"{API}/guilds/900/members/111",
            json={"user": {"id": "111", "username": "owner"}, "roles": []},
        )

        member = await discord.lookup_member("900", "111")

        assert member == Member(id="111", username="owner")

    async def test_lookup_unknown_member_returns_none(
        self, discord, httpx_mock: HTTPXMock
    ) -> None:
        httpx_mock.add_response(
            method="GET",
            url=f"{API}/guilds/900/members/999",
            json={"message": "Unknown Member", "code": 10007},
            status_code=404,
        )

        assert await discord.lookup_member("900", "999") is None

    async def test_server_error_raises_external_service_error(
        self, discord, httpx_mock: HTTPXMock
    ) -> None:
        httpx_mock.add_response(
            method="POST",
            url=f"{API}/guilds/900/channels",
            json={"message": "Missing Permissions", "code": 50013},
            status_code=403,
        )

        with pytest.raises(ExternalServiceError) as exc_info:
            await discord.create_channel("🌸・trip")

        assert "Missing Permissions" in exc_info.value.detail
        assert exc_info.value.status_code == 502

    async def test_rename_missing_channel_is_an_error(
        self, discord, httpx_mock: HTTPXMock
    ) -> None:
        httpx_mock.add_response(
            method="PATCH",
            url=f"{API}/channels/555",
            json={"message": "Unknown Channel"},
            status_code=404,
        )

        with pytest.raises(ExternalServiceError):
            await discord.rename_channel("555", "🌸・x")

    async def test_transport_error_raises_external_service_error(
        self, discord, httpx_mock: HTTPXMock
    ) -> None:
        httpx_mock.add_exception(httpx.ConnectError("connection refused"))

        with pytest.raises(ExternalServiceError):
            await discord.delete_channel("555")
