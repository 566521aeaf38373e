"""Base repository: generic get/create/update and pagination helpers."""

from typing import Any, Generic, TypeVar

from sqlalchemy import Select, func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from authz.domain.exceptions import ConflictError
from authz.infrastructure.persistence.database import Base

ModelType = TypeVar("ModelType", bound=Base)


class BaseRepository(Generic[ModelType]):
    """Base repository with get_by_id, create, update and paginate.

    Operates on the caller's session; never commits. Transaction boundaries
    belong to the service or store that opened the session.
    """

    def __init__(self, db: AsyncSession, model: type[ModelType]) -> None:
        self.db = db
        self.model = model

    async def _flush(self) -> None:
        """Flush; unique constraint violations (e.g. a concurrent writer) become ConflictError."""
        try:
            await self.db.flush()
        except IntegrityError as e:
            raise ConflictError(
                f"{self.model.__name__} conflicts with an existing record",
                table=self.model.__tablename__,
            ) from e

    async def get_by_id(self, entity_id: str) -> ModelType | None:
        """Return a single record by primary key, or None."""
        model: Any = self.model
        result = await self.db.execute(select(self.model).where(model.id == entity_id))
        return result.scalar_one_or_none()

    async def create(self, obj: ModelType) -> ModelType:
        """Persist a new record; server defaults are loaded before returning.

        Raises:
            ConflictError: The row violates a unique constraint.
        """
        self.db.add(obj)
        await self._flush()
        await self.db.refresh(obj)
        return obj

    async def update(self, obj: ModelType) -> ModelType:
        """Flush pending changes on an attached record.

        No refresh: server-side onupdate columns stay expired, which keeps
        already-loaded relationships intact for DTO mapping.

        Raises:
            ConflictError: The change violates a unique constraint.
        """
        await self._flush()
        return obj

    async def _count(self, stmt: Select[Any]) -> int:
        """Row count of an arbitrary select."""
        result = await self.db.execute(
            select(func.count()).select_from(stmt.order_by(None).subquery())
        )
        return result.scalar() or 0

    async def _paginate(
        self, stmt: Select[Any], page: int, limit: int
    ) -> tuple[list[Any], int]:
        """Return (rows for 1-based page, total row count)."""
        total = await self._count(stmt)
        result = await self.db.execute(stmt.offset((page - 1) * limit).limit(limit))
        return list(result.scalars().all()), total
