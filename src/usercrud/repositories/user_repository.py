"""
User repository for user-specific lookups.

Extends BaseRepository with the lookups the user service needs: by username,
by email, and the two existence checks used before creating an account.
All matches are exact and case-sensitive; values are compared as given.
"""

import logging
from sqlalchemy.ext.asyncio import AsyncSession

from usercrud.models.user import User
from .base_repository import BaseRepository

logger = logging.getLogger(__name__)


class UserRepository(BaseRepository[User]):
    """
    Repository for User entity operations.
    """

    def __init__(self, db: AsyncSession):
        super().__init__(User, db)

    # =================================================================================================================
    # Read Operations (Single Entity)
    # =================================================================================================================

    async def find_by_username(self, username: str) -> User | None:
        """
        Get a user by their username.

        Args:
            username: The username to search for (case-sensitive)

        Returns:
            The User if found, None otherwise
        """
        user = await self.find_by_field("username", username)
        logger.debug("repo.user.find_by_username", extra={"found": user is not None})
        return user

        # Notes:
        #   - No strip()/lower(): "Alice" and "alice" are different usernames.
        #   - Could move to ilike for case-insensitive search if the product ever wants that.

    async def find_by_email(self, email: str) -> User | None:
        """
        Get a user by their email address (exact match, no normalisation).
        """
        user = await self.find_by_field("email", email)
        logger.debug("repo.user.find_by_email", extra={"found": user is not None})
        return user

    # =================================================================================================================
    # Validation / Existence Checks
    # =================================================================================================================

    async def exists_by_username(self, username: str) -> bool:
        """
        Check if a username is already taken.

        Uses `exists_by_field`, which selects only the id with LIMIT 1 instead of
        loading the whole row.
        """
        return await self.exists_by_field("username", username)

    async def exists_by_email(self, email: str) -> bool:
        return await self.exists_by_field("email", email)
