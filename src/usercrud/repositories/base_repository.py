"""
Base repository class providing common database operations.

Repositories wrap an `AsyncSession` and expose the handful of persistence
operations the service layer needs: save, lookup, existence checks, listing,
update, delete and commit.

Writes run inside `db_error_handler`, which rolls the session back and turns
store-level failures into `DuplicateResource` (unique violations) or the opaque
`RepositoryError`. Reads wrap unexpected failures in `RepositoryError` too, so a
caller never sees a raw SQLAlchemy exception.
"""
import time
import logging
from typing import TypeVar, Generic, Type, Any
from uuid import UUID

from sqlalchemy import select, delete
from sqlalchemy.ext.asyncio import AsyncSession

from usercrud.database.base import Base
from usercrud.exceptions.base import RepositoryError
from usercrud.exceptions.mapper import db_error_handler
from usercrud.models.user import utcnow

# Type variable for the model class
ModelType = TypeVar("ModelType", bound=Base)

logger = logging.getLogger(__name__)


class BaseRepository(Generic[ModelType]):
    """
    Generic base repository providing common CRUD operations.

    Type Parameters:
        ModelType: The SQLAlchemy model class this repository manages.

    The repository never commits on its own: `save`, `update` and `delete_by_id`
    only flush, and the caller decides when the unit of work ends by calling
    `commit()`.
    """

    def __init__(self, model: Type[ModelType], db: AsyncSession):
        """
        Args:
            model: The SQLAlchemy model class (e.g. `User`, not `User()`);
                used to build queries such as `select(self.model)`.
            db: The async database session for this unit of work.
        """
        self.model = model
        self.db = db

    @property
    def resource_type(self) -> str:
        return self.model.__name__

    # =================================================================================================================
    # Write Operations
    # =================================================================================================================

    async def save(self, entity: ModelType) -> ModelType:
        """
        Persist a new entity.

        `flush()` sends the INSERT so the generated id and timestamps exist, and
        `refresh()` reloads anything the database filled in. Nothing is committed.

        Raises:
            DuplicateResource: a unique constraint rejected the row.
            RepositoryError: any other database failure.
        """
        logger.debug("repo.save.start", extra={"model": self.resource_type, "operation": "save"})
        start = time.perf_counter()

        async with db_error_handler(self.db, self.resource_type, entity):
            self.db.add(entity)
            await self.db.flush()
            await self.db.refresh(entity)

        logger.info(
            "repo.save.success",
            extra={
                "model": self.resource_type,
                "operation": "save",
                "id": str(getattr(entity, "id", None)),
                "duration_ms": int((time.perf_counter() - start) * 1000),
            },
        )
        return entity

    async def update(self, entity: ModelType) -> ModelType:
        """
        Flush the pending changes of an entity loaded through this session.

        The caller mutates the attributes; this method stamps `updated_at`
        (when the model has one), flushes the UPDATE and reloads the row.

        Raises:
            DuplicateResource: the new values collide with another row.
            RepositoryError: any other database failure.
        """
        start = time.perf_counter()

        async with db_error_handler(self.db, self.resource_type, entity):
            # Stamped explicitly so a no-op update still moves the timestamp
            if hasattr(entity, "updated_at"):
                entity.updated_at = utcnow()
            await self.db.flush()
            await self.db.refresh(entity)

        logger.info(
            "repo.update.success",
            extra={
                "model": self.resource_type,
                "operation": "update",
                "id": str(getattr(entity, "id", None)),
                "duration_ms": int((time.perf_counter() - start) * 1000),
            },
        )
        return entity

    async def delete_by_id(self, entity_id: UUID) -> None:
        """
        Delete the row with the given id. Deleting a missing id is a no-op;
        callers check `exists_by_id` first when they care.
        """
        async with db_error_handler(self.db, self.resource_type):
            result = await self.db.execute(delete(self.model).where(self.model.id == entity_id))

        logger.info(
            "repo.delete.success",
            extra={
                "model": self.resource_type,
                "operation": "delete",
                "id": str(entity_id),
                "rows": result.rowcount,
            },
        )

    async def commit(self, entity: ModelType | None = None) -> None:
        """
        End the unit of work.

        Unique violations that only surface at commit time (deferred constraints,
        a concurrent insert on another connection) are mapped like flush errors.
        Pass the entity just written so such a conflict can name the colliding value.
        """
        async with db_error_handler(self.db, self.resource_type, entity):
            await self.db.commit()

    # =================================================================================================================
    # Read Operations
    # =================================================================================================================

    async def find_by_id(self, entity_id: UUID) -> ModelType | None:
        """
        Get an entity by its primary key.

        Returns:
            The entity if found, otherwise None.

        Raises:
            RepositoryError: If the query fails.
        """
        try:
            # Identity-map aware: an entity already loaded in this session is returned as-is
            entity = await self.db.get(self.model, entity_id)
        except Exception as e:
            logger.error(
                "repo.find_by_id.error",
                extra={"model": self.resource_type, "id": str(entity_id), "error": type(e).__name__},
            )
            raise RepositoryError(f"Failed to retrieve {self.resource_type}") from e

        logger.debug(
            "repo.find_by_id.done",
            extra={"model": self.resource_type, "id": str(entity_id), "found": entity is not None},
        )
        return entity

    async def find_by_field(self, field: str, value: Any) -> ModelType | None:
        """
        Find a single entity by any column, using an exact match.

        Raises:
            RepositoryError: If the field does not exist on the model or the query fails.
        """
        column = self._column(field)
        try:
            result = await self.db.execute(select(self.model).where(column == value))
            # 0 or 1 rows expected: every field looked up this way is unique
            return result.scalar_one_or_none()
        except Exception as e:
            logger.error(
                "repo.find_by_field.error",
                extra={"model": self.resource_type, "field": field, "error": type(e).__name__},
            )
            raise RepositoryError(f"Failed to retrieve {self.resource_type} by {field}") from e

    async def exists_by_field(self, field: str, value: Any) -> bool:
        """
        Whether any row holds `value` in `field`.

        Only the id is selected and the scan stops at the first hit, so this
        stays cheap on the unique, indexed columns it is used for.
        """
        column = self._column(field)
        try:
            result = await self.db.execute(select(self.model.id).where(column == value).limit(1))
            return result.first() is not None
        except Exception as e:
            logger.error(
                "repo.exists_by_field.error",
                extra={"model": self.resource_type, "field": field, "error": type(e).__name__},
            )
            raise RepositoryError(f"Failed to check {self.resource_type} by {field}") from e

    async def exists_by_id(self, entity_id: UUID) -> bool:
        return await self.exists_by_field("id", entity_id)

    async def find_all(self) -> list[ModelType]:
        """
        Return every row, oldest first.

        Ordered by `created_at` when the model has it (then `id`, to keep the
        order stable for rows created in the same instant). No pagination.
        """
        query = select(self.model)
        if hasattr(self.model, "created_at"):
            query = query.order_by(self.model.created_at.asc(), self.model.id.asc())

        try:
            result = await self.db.execute(query)
            entities = list(result.scalars().all())
        except Exception as e:
            logger.error(
                "repo.find_all.error",
                extra={"model": self.resource_type, "error": type(e).__name__},
            )
            raise RepositoryError(f"Failed to list {self.resource_type}") from e

        logger.debug("repo.find_all.done", extra={"model": self.resource_type, "count": len(entities)})
        return entities

    # =================================================================================================================
    # Helpers
    # =================================================================================================================

    def _column(self, field: str):
        # Safety check: only mapped columns may be used in a WHERE clause
        if field not in self.model.__table__.columns:
            raise RepositoryError(f"{self.resource_type} has no field '{field}'")
        return getattr(self.model, field)
