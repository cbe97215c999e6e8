"""Domain entity representing a message (question) posted in a room."""
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional
from uuid import UUID

from domain.common.exceptions import DomainValidationException

MESSAGE_MAX_LENGTH = 2000


@dataclass
class Message:
    """Aggregate root for a single question and its reaction/answer state."""

    id: Optional[UUID]
    room_id: UUID
    message: str
    reaction_count: int = 0
    answered: bool = False
    created_at: Optional[datetime] = None

    def __post_init__(self) -> None:
        self.message = (self.message or "").strip()
        if not self.message:
            raise DomainValidationException("消息内容不能为空", field="message")
        if len(self.message) > MESSAGE_MAX_LENGTH:
            raise DomainValidationException(
                "消息内容过长",
                field="message",
                details={"max": MESSAGE_MAX_LENGTH},
            )
        if self.reaction_count < 0:
            raise DomainValidationException("reaction_count 不能为负数", field="reaction_count")
        if self.created_at is not None and self.created_at.tzinfo is None:
            self.created_at = self.created_at.replace(tzinfo=timezone.utc)

    def belongs_to(self, room_id: UUID) -> bool:
        return self.room_id == room_id
