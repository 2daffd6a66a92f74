"""
Single import point for the ORM models.

Importing this package registers every model on `Base.metadata`, which Alembic
and the test fixtures rely on before calling `create_all`.

    from usercrud.models import User
"""

from .user import User

__all__ = [
    "User",
]
