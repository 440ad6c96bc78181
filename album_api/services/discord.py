"""
Discord channel gateway.

Every album owns a text channel in the configured guild. This module wraps
the Discord REST API calls the album controller needs (create, rename,
re-permission, delete channels and look up members) and keeps the
in-process cache of channel handles keyed by album id.

API reference: https://discord.com/developers/docs/resources/channel
"""
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional

import httpx

from album_api.config import Settings
from album_api.exceptions import ExternalServiceError
from album_api.utils.prometheus_metrics import record_external_request

logger = logging.getLogger("album_api.discord")

# 기존 채널 이름과 호환되어야 하므로 변경 금지
CHANNEL_NAME_PREFIX = "🌸・"

# Permission bit for VIEW_CHANNEL
VIEW_CHANNEL = 1 << 10

GUILD_TEXT = 0

OVERWRITE_TYPES = {"role": 0, "member": 1}


def channel_name_for(slug: str) -> str:
    """Channel name used for the album with ``slug``."""
    return CHANNEL_NAME_PREFIX + slug


@dataclass
class Channel:
    """Handle of a Discord channel."""

    id: str
    name: Optional[str] = None
    parent_id: Optional[str] = None

    @classmethod
    def from_payload(cls, data: Dict[str, Any]) -> "Channel":
        return cls(
            id=str(data["id"]),
            name=data.get("name"),
            parent_id=data.get("parent_id"),
        )


@dataclass
class Member:
    """Guild member resolved from a Discord user id."""

    id: str
    username: Optional[str] = None

    @classmethod
    def from_payload(cls, data: Dict[str, Any]) -> "Member":
        user = data.get("user") or {}
        return cls(id=str(user.get("id")), username=user.get("username"))


@dataclass(frozen=True)
class PermissionOverwrite:
    """
    Permission overwrite for one role or member.

    ``allow``/``deny`` are permission bitsets (e.g. ``VIEW_CHANNEL``).
    """

    subject_id: str
    subject_type: str = "role"
    allow: int = 0
    deny: int = 0

    def to_payload(self) -> Dict[str, Any]:
        return {
            "id": self.subject_id,
            "type": OVERWRITE_TYPES[self.subject_type],
            "allow": str(self.allow),
            "deny": str(self.deny),
        }


@dataclass
class ChannelCache:
    """
    Channel handles keyed by album id.

    Filled when an album is created, read by update/delete. Entries live
    until the album is deleted or the process exits.
    """

    _channels: Dict[int, Channel] = field(default_factory=dict)

    def get(self, album_id: int) -> Optional[Channel]:
        return self._channels.get(album_id)

    def set(self, album_id: int, channel: Channel) -> None:
        self._channels[album_id] = channel

    def pop(self, album_id: int) -> Optional[Channel]:
        return self._channels.pop(album_id, None)

    def __contains__(self, album_id: int) -> bool:
        return album_id in self._channels

    def __len__(self) -> int:
        return len(self._channels)


class DiscordChannelGateway:
    """
    Async client for the channel operations of the Discord REST API.

    Calls are not retried. Any unexpected status or transport failure is
    raised as ExternalServiceError.
    """

    SERVICE = "discord"

    def __init__(self, client: httpx.AsyncClient, guild_id: str):
        self.client = client
        self.guild_id = guild_id

    @classmethod
    def from_settings(cls, settings: Settings) -> "DiscordChannelGateway":
        """Build a gateway with its own HTTP client from application settings."""
        client = httpx.AsyncClient(
            base_url=settings.discord_api_url.rstrip("/"),
            headers={
                "Authorization": f"Bot {settings.discord_bot_token}",
                "User-Agent": f"DiscordBot ({settings.app_name}, {settings.app_version})",
            },
            timeout=settings.discord_timeout_seconds,
        )
        return cls(client, settings.discord_guild_id)

    async def aclose(self) -> None:
        await self.client.aclose()

    async def _request(
        self,
        method: str,
        path: str,
        json: Optional[Any] = None,
        allow_not_found: bool = False,
    ) -> Optional[httpx.Response]:
        """
        Send one request to the Discord API.

        Args:
            method: HTTP method
            path: API path relative to the base URL
            json: Optional JSON body
            allow_not_found: Return None instead of raising on 404

        Returns:
            Response, or None for a tolerated 404

        Raises:
            ExternalServiceError: On transport errors or non-2xx responses
        """
        async with record_external_request(self.SERVICE):
            try:
                response = await self.client.request(method, path, json=json)
            except httpx.HTTPError as e:
                logger.error(
                    "Discord API request failed",
                    exc_info=e,
                    extra={"event": "discord", "method": method, "path": path},
                )
                raise ExternalServiceError(f"Discord API request failed: {type(e).__name__}") from e

            if response.status_code == 404 and allow_not_found:
                return None

            if response.is_error:
                message = _error_message(response)
                logger.error(
                    "Discord API error",
                    extra={
                        "event": "discord",
                        "method": method,
                        "path": path,
                        "status": response.status_code,
                        "error": message,
                    },
                )
                raise ExternalServiceError(
                    f"Discord API error {response.status_code}: {message}"
                )
            return response

    async def create_channel(self, name: str, parent_id: Optional[str] = None) -> Channel:
        """
        Create a text channel in the guild.

        Args:
            name: Channel name
            parent_id: Category channel to place it under

        Returns:
            Handle of the created channel
        """
        payload: Dict[str, Any] = {"name": name, "type": GUILD_TEXT}
        if parent_id:
            payload["parent_id"] = parent_id

        response = await self._request("POST", f"/guilds/{self.guild_id}/channels", json=payload)
        channel = Channel.from_payload(response.json())
        logger.info(
            "Discord channel created",
            extra={"event": "discord", "channel_id": channel.id},
        )
        return channel

    async def set_channel_permissions(
        self,
        channel_id: str,
        overwrites: Iterable[PermissionOverwrite],
    ) -> None:
        """Replace all permission overwrites of a channel."""
        await self._request(
            "PATCH",
            f"/channels/{channel_id}",
            json={"permission_overwrites": [o.to_payload() for o in overwrites]},
        )

    async def rename_channel(self, channel_id: str, name: str) -> Channel:
        response = await self._request("PATCH", f"/channels/{channel_id}", json={"name": name})
        return Channel.from_payload(response.json())

    async def delete_channel(self, channel_id: str) -> None:
        """Delete a channel. A channel that is already gone is not an error."""
        response = await self._request("DELETE", f"/channels/{channel_id}", allow_not_found=True)
        if response is None:
            logger.warning(
                "Discord channel already deleted",
                extra={"event": "discord", "channel_id": channel_id},
            )

    async def lookup_member(self, guild_id: str, user_id: str) -> Optional[Member]:
        """
        Look up a guild member by Discord user id.

        Returns:
            Member, or None if the user is not in the guild
        """
        response = await self._request(
            "GET", f"/guilds/{guild_id}/members/{user_id}", allow_not_found=True
        )
        if response is None:
            return None
        return Member.from_payload(response.json())


def _error_message(response: httpx.Response) -> str:
    try:
        data = response.json()
    except ValueError:
        return response.text[:200]
    if isinstance(data, dict):
        return str(data.get("message") or data)[:200]
    return str(data)[:200]


def build_private_overwrites(
    guild_id: str,
    worker_id: str,
    worker_type: str = "member",
    owner: Optional[Member] = None,
) -> List[PermissionOverwrite]:
    """
    Overwrites for a private album channel: hidden from @everyone, visible
    to the worker and, when resolvable, to the owner.
    """
    # @everyone 역할의 id는 guild id와 같음
    overwrites = [
        PermissionOverwrite(subject_id=guild_id, subject_type="role", deny=VIEW_CHANNEL),
        PermissionOverwrite(subject_id=worker_id, subject_type=worker_type, allow=VIEW_CHANNEL),
    ]
    if owner is not None:
        overwrites.append(
            PermissionOverwrite(subject_id=owner.id, subject_type="member", allow=VIEW_CHANNEL)
        )
    return overwrites
