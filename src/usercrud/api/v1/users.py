"""
HTTP routes for the User resource.

The router is built by `create_user_router` from an explicit session factory
and mapper; each request gets its own session and its own `UserService`.
"""

from typing import AsyncIterator
from uuid import UUID

from fastapi import APIRouter, Depends, Response, status
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from usercrud.api.v1.error_handlers import ErrorTranslatingRoute
from usercrud.mappers.user_mapper import UserMapper
from usercrud.repositories.user_repository import UserRepository
from usercrud.schemas.user import CreateUserRequest, UpdateUserRequest, UserView
from usercrud.services.user_service import UserService


def create_user_router(
    session_maker: async_sessionmaker[AsyncSession],
    mapper: UserMapper,
) -> APIRouter:
    router = APIRouter(prefix="/api/users", tags=["users"], route_class=ErrorTranslatingRoute)

    async def get_user_service() -> AsyncIterator[UserService]:
        # Session closes (and rolls back anything uncommitted) when the request ends
        async with session_maker() as session:
            yield UserService(UserRepository(session), mapper)

    @router.post("", response_model=UserView, status_code=status.HTTP_201_CREATED)
    async def create_user(
        request: CreateUserRequest,
        service: UserService = Depends(get_user_service),
    ) -> UserView:
        return await service.create_user(request)

    @router.get("", response_model=list[UserView])
    async def get_all_users(service: UserService = Depends(get_user_service)) -> list[UserView]:
        return await service.get_all_users()

    @router.get("/username/{username}", response_model=UserView)
    async def get_user_by_username(
        username: str,
        service: UserService = Depends(get_user_service),
    ):
        user = await service.get_user_by_username(username)
        if user is None:
            return Response(status_code=status.HTTP_404_NOT_FOUND)
        return user

    @router.get("/{user_id}", response_model=UserView)
    async def get_user(
        user_id: UUID,
        service: UserService = Depends(get_user_service),
    ):
        user = await service.get_user_by_id(user_id)
        if user is None:
            return Response(status_code=status.HTTP_404_NOT_FOUND)
        return user

    @router.put("/{user_id}", response_model=UserView)
    async def update_user(
        user_id: UUID,
        request: UpdateUserRequest,
        service: UserService = Depends(get_user_service),
    ):
        user = await service.update_user(user_id, request)
        if user is None:
            return Response(status_code=status.HTTP_404_NOT_FOUND)
        return user

    @router.delete("/{user_id}", status_code=status.HTTP_204_NO_CONTENT)
    async def delete_user(
        user_id: UUID,
        service: UserService = Depends(get_user_service),
    ) -> Response:
        if not await service.delete_user(user_id):
            return Response(status_code=status.HTTP_404_NOT_FOUND)
        return Response(status_code=status.HTTP_204_NO_CONTENT)

    return router
