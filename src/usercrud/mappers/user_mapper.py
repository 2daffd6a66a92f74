"""
Conversions between the User entity and its DTOs.
"""

from usercrud.models.user import User
from usercrud.schemas.user import CreateUserRequest, UserView


class UserMapper:
    """
    Stateless entity <-> DTO mapper.

    Both directions are None-safe: None in, None out.
    """

    def to_view(self, user: User | None) -> UserView | None:
        if user is None:
            return None
        # Explicit field list: the password is never copied out of the entity
        return UserView(
            id=user.id,
            username=user.username,
            email=user.email,
            first_name=user.first_name,
            last_name=user.last_name,
            active=user.active,
            created_at=user.created_at,
            updated_at=user.updated_at,
        )

    def to_views(self, users: list[User]) -> list[UserView]:
        return [self.to_view(user) for user in users]

    def to_entity(self, request: CreateUserRequest | None) -> User | None:
        """
        Build an unsaved User from a create request.

        id and timestamps are left to the first flush; `active` falls back to
        the column default (True).
        """
        if request is None:
            return None
        return User(
            username=request.username,
            email=request.email,
            password=request.password,
            first_name=request.first_name,
            last_name=request.last_name,
        )
