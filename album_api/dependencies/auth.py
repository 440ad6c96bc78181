"""
Authentication dependencies for FastAPI.
"""
import logging
from typing import Callable, Optional

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from album_api.database import get_db
from album_api.models.user import User
from album_api.utils.security import decode_access_token

logger = logging.getLogger("album_api.auth")

# HTTP Bearer token security scheme
security = HTTPBearer(auto_error=False)


async def _get_user_by_id(db: AsyncSession, user_id: int) -> Optional[User]:
    result = await db.execute(select(User).where(User.id == user_id))
    return result.scalar_one_or_none()


async def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    db: AsyncSession = Depends(get_db),
) -> User:
    """
    Dependency to get the current authenticated user.

    Args:
        credentials: Bearer token from request header
        db: Database session

    Returns:
        Current authenticated User

    Raises:
        HTTPException: If token is missing, invalid, or user not found
    """
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )

    if not credentials:
        logger.warning("Auth failed", extra={"event": "auth", "reason": "no_token"})
        raise credentials_exception

    token_payload = decode_access_token(credentials.credentials)
    if token_payload is None:
        logger.warning("Auth failed", extra={"event": "auth", "reason": "invalid_or_expired_token"})
        raise credentials_exception

    user = await _get_user_by_id(db, token_payload.sub)
    if user is None:
        logger.warning("Auth failed", extra={"event": "auth", "reason": "user_not_found", "user_id": token_payload.sub})
        raise credentials_exception

    return user


async def get_current_active_user(
    current_user: User = Depends(get_current_user),
) -> User:
    """
    Dependency to get the current active user.

    Raises:
        HTTPException: If user is inactive
    """
    if not current_user.is_active:
        logger.warning("Inactive user rejected", extra={"event": "auth", "reason": "inactive", "user_id": current_user.id})
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Inactive user",
        )
    return current_user


async def get_optional_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    db: AsyncSession = Depends(get_db),
) -> Optional[User]:
    """
    Dependency to optionally get the current user.
    Returns None if no valid token is provided.
    """
    if not credentials:
        return None

    token_payload = decode_access_token(credentials.credentials)
    if token_payload is None:
        return None

    user = await _get_user_by_id(db, token_payload.sub)
    if user is None or not user.is_active:
        return None
    return user


def require_ability(ability: str) -> Callable:
    """
    Dependency factory: the authenticated user must hold ``ability``.

    Usage:
        @router.put("/{album_id}", dependencies=[Depends(require_ability("manage-album"))])
    """

    async def ability_gate(current_user: User = Depends(get_current_active_user)) -> User:
        if not current_user.has_ability(ability):
            logger.warning(
                "Ability missing",
                extra={"event": "auth", "reason": "ability", "ability": ability, "user_id": current_user.id},
            )
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"Missing ability: {ability}",
            )
        return current_user

    return ability_gate
