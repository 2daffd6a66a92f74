from .user_mapper import UserMapper

__all__ = ["UserMapper"]
