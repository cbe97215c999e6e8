"""Message domain exports."""
from .entity import Message
from .repository import MessageRepository

__all__ = ["Message", "MessageRepository"]
