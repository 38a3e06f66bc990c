"""Database models."""

from models.match import Match
from models.message import Message
from models.swipe import Swipe
from models.user import UserProfile

__all__ = [
    "UserProfile",
    "Swipe",
    "Match",
    "Message",
]
