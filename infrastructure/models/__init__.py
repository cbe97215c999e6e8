"""Infrastructure models package exports."""
from .base import Base, metadata
from .room import RoomModel
from .message import MessageModel

__all__ = [
    "Base",
    "metadata",
    "RoomModel",
    "MessageModel",
]
