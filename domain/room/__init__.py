"""Room domain exports."""
from .entity import Room
from .repository import RoomRepository

__all__ = ["Room", "RoomRepository"]
