"""
JWT helpers for bearer authentication.

Tokens are issued by the identity service shared with the Discord bot;
this service only needs to verify them. ``create_access_token`` mirrors
the issuer and is used by tooling and tests.
"""
from datetime import datetime, timedelta
from typing import Optional

from jose import JWTError, jwt

from album_api.config import get_settings
from album_api.schemas.user import TokenPayload


def create_access_token(
    user_id: int,
    expires_delta: Optional[timedelta] = None,
) -> str:
    """
    Create a JWT access token.

    Args:
        user_id: User ID to encode in the token
        expires_delta: Optional expiration time delta

    Returns:
        Encoded JWT token string
    """
    settings = get_settings()
    if expires_delta is None:
        expires_delta = timedelta(minutes=settings.access_token_expire_minutes)

    to_encode = {
        "sub": str(user_id),  # JWT subject must be a string
        "exp": datetime.utcnow() + expires_delta,
    }
    return jwt.encode(
        to_encode,
        settings.jwt_secret_key,
        algorithm=settings.jwt_algorithm,
    )


def decode_access_token(token: str) -> Optional[TokenPayload]:
    """
    Decode and validate a JWT access token.

    Args:
        token: JWT token string

    Returns:
        TokenPayload if valid, None if invalid or expired
    """
    settings = get_settings()
    try:
        payload = jwt.decode(
            token,
            settings.jwt_secret_key,
            algorithms=[settings.jwt_algorithm],
        )
        user_id = payload.get("sub")
        exp = payload.get("exp")
        if user_id is None or exp is None:
            return None
        return TokenPayload(sub=int(user_id), exp=datetime.fromtimestamp(exp))
    except (JWTError, ValueError, TypeError):
        return None
