"""
Use cases for the User resource.

`UserService` owns the business rules (uniqueness of username and email on
create, partial password update) and the transaction boundary: repositories
only flush, the service commits once an operation has fully succeeded.

Uniqueness pre-checks on create are a fast path for a friendly 409. They are
not atomic with the INSERT, so two concurrent creates can both pass them; the
unique constraints on the table then reject the second row and the repository
maps that rejection to the same DuplicateResource.
"""

import logging
from uuid import UUID

from usercrud.exceptions.base import DuplicateResource
from usercrud.mappers.user_mapper import UserMapper
from usercrud.repositories.user_repository import UserRepository
from usercrud.schemas.user import CreateUserRequest, UpdateUserRequest, UserView

logger = logging.getLogger(__name__)

RESOURCE = "User"


class UserService:
    def __init__(self, repository: UserRepository, mapper: UserMapper):
        self.repository = repository
        self.mapper = mapper

    async def create_user(self, request: CreateUserRequest) -> UserView:
        """
        Create a user.

        Checks run in a fixed order so the reported conflict is deterministic:
        username first, then email.

        Raises:
            DuplicateResource: username or email already taken.
            RepositoryError: store failure.
        """
        if await self.repository.exists_by_username(request.username):
            logger.info("service.user.create.duplicate", extra={"field": "username"})
            raise DuplicateResource(RESOURCE, "username", request.username)

        if await self.repository.exists_by_email(request.email):
            logger.info("service.user.create.duplicate", extra={"field": "email"})
            raise DuplicateResource(RESOURCE, "email", request.email)

        user = await self.repository.save(self.mapper.to_entity(request))
        await self.repository.commit(user)

        logger.info("service.user.create.success", extra={"user_id": str(user.id)})
        return self.mapper.to_view(user)

    async def get_user_by_id(self, user_id: UUID) -> UserView | None:
        user = await self.repository.find_by_id(user_id)
        return self.mapper.to_view(user)

    async def get_user_by_username(self, username: str) -> UserView | None:
        user = await self.repository.find_by_username(username)
        return self.mapper.to_view(user)

    async def get_all_users(self) -> list[UserView]:
        return self.mapper.to_views(await self.repository.find_all())

    async def update_user(self, user_id: UUID, request: UpdateUserRequest) -> UserView | None:
        """
        Replace a user's fields. Returns None when the user does not exist.

        The password changes only when the request carries a non-empty one.
        There is no uniqueness pre-check here: a username or email taken by
        another user is only caught by the table constraint (DuplicateResource
        from the repository).
        """
        user = await self.repository.find_by_id(user_id)
        if user is None:
            logger.info("service.user.update.not_found", extra={"user_id": str(user_id)})
            return None

        user.username = request.username
        user.email = request.email
        user.first_name = request.first_name
        user.last_name = request.last_name
        if request.password:
            user.password = request.password

        user = await self.repository.update(user)
        await self.repository.commit(user)

        logger.info(
            "service.user.update.success",
            extra={"user_id": str(user_id), "password_changed": bool(request.password)},
        )
        return self.mapper.to_view(user)

    async def delete_user(self, user_id: UUID) -> bool:
        if not await self.repository.exists_by_id(user_id):
            logger.info("service.user.delete.not_found", extra={"user_id": str(user_id)})
            return False

        await self.repository.delete_by_id(user_id)
        await self.repository.commit()

        logger.info("service.user.delete.success", extra={"user_id": str(user_id)})
        return True
