"""Domain entity representing a Q&A room."""
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional
from uuid import UUID

from domain.common.exceptions import DomainValidationException

THEME_MAX_LENGTH = 255


def _ensure_utc(dt: Optional[datetime]) -> Optional[datetime]:
    if dt is None:
        return None
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


@dataclass
class Room:
    """A topic that messages (questions) are posted into."""

    id: Optional[UUID]
    theme: str
    created_at: Optional[datetime] = None

    def __post_init__(self) -> None:
        self.theme = (self.theme or "").strip()
        if not self.theme:
            raise DomainValidationException("房间主题不能为空", field="theme")
        if len(self.theme) > THEME_MAX_LENGTH:
            raise DomainValidationException(
                "房间主题过长",
                field="theme",
                details={"max": THEME_MAX_LENGTH},
            )
        self.created_at = _ensure_utc(self.created_at)
