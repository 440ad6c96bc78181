"""
Albums router.

GET endpoints are open to anonymous callers; the access policy decides
what they see. Creating needs an authenticated user, updating and deleting
additionally need the ``manage-album`` ability and ``can_modify`` on the
album itself.
"""
from typing import Literal, Optional

from fastapi import APIRouter, Depends, Query, Response, status

from album_api.dependencies.albums import get_album_controller, load_album
from album_api.dependencies.auth import (
    get_current_active_user,
    get_optional_current_user,
    require_ability,
)
from album_api.models.user import User
from album_api.schemas.album import (
    AlbumCreate,
    AlbumDetailEnvelope,
    AlbumEnvelope,
    AlbumList,
    AlbumResponse,
    AlbumUpdate,
)
from album_api.services.access import MANAGE_ALBUM, is_album_admin
from album_api.services.album_controller import AlbumContext, AlbumController
from album_api.utils.prometheus_metrics import album_operations_total

router = APIRouter(prefix="/albums", tags=["Albums"])


@router.get(
    "",
    response_model=AlbumList,
    response_model_exclude_none=True,
    summary="List albums",
)
async def list_albums(
    visibility: Optional[Literal["public", "private"]] = Query(None),
    admin: bool = Query(False),
    controller: AlbumController = Depends(get_album_controller),
    current_user: Optional[User] = Depends(get_optional_current_user),
) -> AlbumList:
    """
    List albums visible to the caller.

    - **visibility=public**: public albums only (``private`` omitted)
    - **visibility=private**: the caller's own private albums (``private`` omitted)
    - no visibility: public albums plus every album the caller created
    - **admin=true**: every album, for ``album-admin`` holders only
    """
    albums = await controller.index(current_user, visibility=visibility, admin=admin)
    hide_private = visibility is not None and not (admin and is_album_admin(current_user))

    items = []
    for album in albums:
        item = AlbumResponse.model_validate(album)
        if hide_private:
            item.private = None
        items.append(item)
    return AlbumList(albums=items)


@router.get(
    "/{album_id}",
    response_model=AlbumDetailEnvelope,
    summary="Get album",
)
async def get_album(
    ctx: AlbumContext = Depends(load_album),
    controller: AlbumController = Depends(get_album_controller),
) -> AlbumDetailEnvelope:
    """
    Get one album with its picture count.

    Private albums are only visible to their creator and ``album-admin`` holders.
    """
    return AlbumDetailEnvelope(album=await controller.show(ctx))


@router.post(
    "",
    response_model=AlbumEnvelope,
    status_code=status.HTTP_201_CREATED,
    summary="Create album",
)
async def create_album(
    album_data: AlbumCreate,
    current_user: User = Depends(get_current_active_user),
    controller: AlbumController = Depends(get_album_controller),
) -> AlbumEnvelope:
    """
    Create an album and its Discord channel.

    - **name**: Album name
    - **slug**: Unique slug, also used for the channel name
    - **private**: Hide the channel from everyone but the owner and the worker
    - **community**: Shared album; always public
    """
    try:
        album = await controller.store(current_user, album_data)
    except Exception:
        album_operations_total.labels(operation="create", result="failure").inc()
        raise

    album_operations_total.labels(operation="create", result="success").inc()
    return AlbumEnvelope(album=AlbumResponse.model_validate(album))


@router.put(
    "/{album_id}",
    response_model=AlbumEnvelope,
    dependencies=[Depends(require_ability(MANAGE_ALBUM))],
    summary="Update album",
)
async def update_album(
    update_data: AlbumUpdate,
    ctx: AlbumContext = Depends(load_album),
    controller: AlbumController = Depends(get_album_controller),
) -> AlbumEnvelope:
    """
    Update an album's name and/or slug.

    Changing the slug renames the album's Discord channel.
    """
    try:
        album = await controller.update(ctx, update_data)
    except Exception:
        album_operations_total.labels(operation="update", result="failure").inc()
        raise

    album_operations_total.labels(operation="update", result="success").inc()
    return AlbumEnvelope(album=AlbumResponse.model_validate(album))


@router.delete(
    "/{album_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    dependencies=[Depends(require_ability(MANAGE_ALBUM))],
    summary="Delete album",
)
async def delete_album(
    ctx: AlbumContext = Depends(load_album),
    controller: AlbumController = Depends(get_album_controller),
) -> Response:
    """
    Delete an empty album and its Discord channel.

    Albums that still contain pictures cannot be deleted (409).
    """
    try:
        await controller.destroy(ctx)
    except Exception:
        album_operations_total.labels(operation="delete", result="failure").inc()
        raise

    album_operations_total.labels(operation="delete", result="success").inc()
    return Response(status_code=status.HTTP_204_NO_CONTENT)
