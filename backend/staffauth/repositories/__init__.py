from .base import BaseRepository, Page, Pagination
from .user import UserRepository

__all__ = [
    "BaseRepository",
    "Page",
    "Pagination",
    "UserRepository",
]
