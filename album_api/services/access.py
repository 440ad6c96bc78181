"""
Album access policy.

Decides, per request, whether the requester may see (``can_access``) and
change (``can_modify``) an album.
"""
from dataclasses import dataclass
from typing import Optional

from album_api.models.album import Album
from album_api.models.user import User

# Ability names granted by the identity service
ALBUM_ADMIN = "album-admin"
MANAGE_ALBUM = "manage-album"


@dataclass(frozen=True)
class AlbumAccess:
    """Result of the access policy. Both flags default to denied."""

    can_access: bool = False
    can_modify: bool = False


def is_album_admin(user: Optional[User]) -> bool:
    return user is not None and user.has_ability(ALBUM_ADMIN)


def evaluate(album: Album, requester: Optional[User]) -> AlbumAccess:
    """
    Compute access flags for ``requester`` on ``album``.

    Rules, all applied:
    1. A public album can be accessed by anyone, including anonymous callers.
    2. The creator and ``album-admin`` holders can access and modify.
    3. Anything else is denied.

    Args:
        album: Album with ``created_by_id`` set
        requester: Authenticated user, or None for anonymous requests

    Returns:
        AlbumAccess flags
    """
    can_access = not album.private
    can_modify = False

    if requester is not None and (
        (album.created_by_id is not None and requester.id == album.created_by_id)
        or is_album_admin(requester)
    ):
        can_access = True
        can_modify = True

    return AlbumAccess(can_access=can_access, can_modify=can_modify)
