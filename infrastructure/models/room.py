"""Room database model definitions."""
import uuid

from sqlalchemy import Column, String, Uuid
from sqlalchemy.orm import relationship

from .base import Base, CreatedAtMixin


class RoomModel(CreatedAtMixin, Base):
    """ORM mapping for rooms table."""

    __tablename__ = "rooms"
    __table_args__ = {"comment": "问答房间"}

    id = Column(
        Uuid,
        primary_key=True,
        default=uuid.uuid4,
        comment="房间ID（UUID4）",
    )
    theme = Column(
        String(255),
        nullable=False,
        comment="房间主题",
    )

    messages = relationship(
        "MessageModel",
        back_populates="room",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    def __repr__(self) -> str:
        return f"<RoomModel(id={self.id}, theme='{self.theme}')>"
