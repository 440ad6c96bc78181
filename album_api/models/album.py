"""
Album model: a photo collection backed by a Discord text channel.
"""
from datetime import datetime
from typing import TYPE_CHECKING, List, Optional

from sqlalchemy import Boolean, DateTime, ForeignKey, Integer, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from album_api.database import Base

if TYPE_CHECKING:
    from album_api.models.picture import Picture
    from album_api.models.user import User


class Album(Base):
    """
    Album model.

    ``channel_id`` is filled in from the channel created before the row is
    inserted. The picture count is always computed with a query and never
    stored on the row.
    """

    __tablename__ = "albums"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    slug: Mapped[str] = mapped_column(
        String(100), unique=True, index=True, nullable=False
    )
    private: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    community: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    channel_id: Mapped[str] = mapped_column(String(32), nullable=False)
    created_by_id: Mapped[Optional[int]] = mapped_column(
        Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True, index=True
    )

    # Timestamps
    created_at: Mapped[datetime] = mapped_column(
        DateTime, default=datetime.utcnow
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, default=datetime.utcnow, onupdate=datetime.utcnow
    )

    # Relationships
    created_by: Mapped[Optional["User"]] = relationship(
        "User", back_populates="albums"
    )
    pictures: Mapped[List["Picture"]] = relationship(
        "Picture", back_populates="album", passive_deletes=True
    )

    def __repr__(self) -> str:
        return f"<Album(id={self.id}, slug={self.slug})>"
