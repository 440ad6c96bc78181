"""
Database models package.
All models are exported here for easy import.
"""
from album_api.models.user import User
from album_api.models.album import Album
from album_api.models.picture import Picture

__all__ = ["User", "Album", "Picture"]
