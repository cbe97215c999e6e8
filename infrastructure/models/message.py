"""Message database model definitions."""
import uuid

from sqlalchemy import (
    BigInteger,
    Boolean,
    Column,
    ForeignKey,
    Index,
    String,
    Uuid,
    text,
)
from sqlalchemy.orm import relationship

from .base import Base, CreatedAtMixin


class MessageModel(CreatedAtMixin, Base):
    """ORM mapping for messages table."""

    __tablename__ = "messages"
    __table_args__ = (
        Index("ix_messages_room_created", "room_id", "created_at"),
        {"comment": "房间内的提问消息"},
    )

    id = Column(
        Uuid,
        primary_key=True,
        default=uuid.uuid4,
        comment="消息ID（UUID4）",
    )
    room_id = Column(
        Uuid,
        ForeignKey("rooms.id", ondelete="CASCADE"),
        nullable=False,
        comment="所属房间ID",
    )
    message = Column(
        String(2000),
        nullable=False,
        comment="消息内容",
    )
    reaction_count = Column(
        BigInteger,
        nullable=False,
        default=0,
        server_default=text("0"),
        comment="点赞数",
    )
    answered = Column(
        Boolean,
        nullable=False,
        default=False,
        server_default=text("false"),
        comment="是否已回答",
    )

    room = relationship("RoomModel", back_populates="messages")

    def __repr__(self) -> str:
        return (
            "<MessageModel(id={id}, room_id={room_id}, reactions={reactions}, answered={answered})>"
        ).format(
            id=self.id,
            room_id=self.room_id,
            reactions=self.reaction_count,
            answered=self.answered,
        )
