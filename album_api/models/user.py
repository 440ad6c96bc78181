"""
User model: album owners and requesters.

Accounts are provisioned by the identity service shared with the Discord
bot; this service reads them to resolve bearer tokens and abilities.
"""
from datetime import datetime
from typing import TYPE_CHECKING, List, Optional

from sqlalchemy import JSON, Boolean, DateTime, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from album_api.database import Base

if TYPE_CHECKING:
    from album_api.models.album import Album


class User(Base):
    """User account with its granted abilities."""

    __tablename__ = "users"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    username: Mapped[str] = mapped_column(
        String(100), unique=True, index=True, nullable=False
    )
    # Discord user id, used to grant the owner access to a private channel
    discord_id: Mapped[Optional[str]] = mapped_column(String(32), nullable=True)
    abilities: Mapped[List[str]] = mapped_column(JSON, default=list, nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime, default=datetime.utcnow
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, default=datetime.utcnow, onupdate=datetime.utcnow
    )

    albums: Mapped[List["Album"]] = relationship(
        "Album", back_populates="created_by"
    )

    def has_ability(self, ability: str) -> bool:
        return ability in (self.abilities or [])

    def __repr__(self) -> str:
        return f"<User(id={self.id}, username={self.username})>"
