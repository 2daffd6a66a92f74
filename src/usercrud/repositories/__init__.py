"""
Repository layer initialization module.

Usage:
    from usercrud.repositories import UserRepository
"""

from .base_repository import BaseRepository
from .user_repository import UserRepository

__all__ = [
    "BaseRepository",
    "UserRepository",
]
