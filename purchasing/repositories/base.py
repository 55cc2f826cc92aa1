"""Shared async repository for tenant-owned models.

Every read goes through :meth:`BaseRepository._base_query`, which scopes the
statement to the repository's ``client_id`` and hides soft-deleted rows.
Subclasses add their own domain queries on top of it.
"""

from __future__ import annotations

from typing import Any, Generic, TypeVar

from sqlalchemy import Select, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from purchasing.db.base import Base

ModelT = TypeVar("ModelT", bound=Base)

# Columns callers may never overwrite through update()
_PROTECTED = frozenset({"id", "client_id", "created_at"})


class BaseRepository(Generic[ModelT]):
    model: type[ModelT]

    def __init__(self, session: AsyncSession, client_id: str):
        self._session = session
        self._client_id = client_id

    # ------------------------------------------------------------------
    # Statement builders
    # ------------------------------------------------------------------

    def _base_query(self) -> Select:
        stmt = select(self.model)
        if "client_id" in self.model.__table__.c:
            stmt = stmt.where(self.model.client_id == self._client_id)
        if "deleted_at" in self.model.__table__.c:
            stmt = stmt.where(self.model.deleted_at.is_(None))
        return stmt

    def _apply_filters(self, stmt: Select, filters: dict[str, Any] | None) -> Select:
        """AND an equality test onto *stmt* for each known column; ``None`` values are ignored."""
        columns = self.model.__table__.c
        for name, value in (filters or {}).items():
            if value is None or name not in columns:
                continue
            stmt = stmt.where(columns[name] == value)
        return stmt

    async def _count(self, stmt: Select) -> int:
        return (await self._session.execute(select(func.count()).select_from(stmt.subquery()))).scalar_one()

    # ------------------------------------------------------------------
    # Read
    # ------------------------------------------------------------------

    async def get_by_id(self, entity_id: str) -> ModelT | None:
        return await self.get_by(id=entity_id)

    async def get_by(self, **criteria: Any) -> ModelT | None:
        stmt = self._apply_filters(self._base_query(), criteria).limit(1)
        return (await self._session.scalars(stmt)).first()

    async def count(self, filters: dict[str, Any] | None = None) -> int:
        return await self._count(self._apply_filters(self._base_query(), filters))

    async def list(
        self,
        *,
        offset: int = 0,
        limit: int = 20,
        order_by: str = "created_at",
        order: str = "desc",
        filters: dict[str, Any] | None = None,
    ) -> tuple[list[ModelT], int]:
        """One page of rows plus the unpaginated total."""
        stmt = self._apply_filters(self._base_query(), filters)
        total = await self._count(stmt)

        column = self.model.__table__.c.get(order_by)
        if column is not None:
            stmt = stmt.order_by(column.desc() if order == "desc" else column.asc())
        rows = await self._session.scalars(stmt.offset(offset).limit(limit))
        return list(rows), total

    async def latest(self, limit: int = 3) -> list[ModelT]:
        stmt = self._base_query()
        if "created_at" in self.model.__table__.c:
            stmt = stmt.order_by(self.model.created_at.desc())
        return list(await self._session.scalars(stmt.limit(limit)))

    # ------------------------------------------------------------------
    # Write
    # ------------------------------------------------------------------

    async def create(self, **fields: Any) -> ModelT:
        if "client_id" in self.model.__table__.c:
            fields["client_id"] = self._client_id
        instance = self.model(**fields)
        self._session.add(instance)
        await self._session.flush()
        await self._session.refresh(instance)
        return instance

    async def update(self, entity_id: str, **fields: Any) -> ModelT | None:
        """Assign *fields* on the row and flush; ``updated_at`` is bumped by the column's onupdate."""
        instance = await self.get_by_id(entity_id)
        if instance is None:
            return None
        for name, value in fields.items():
            if name not in _PROTECTED:
                setattr(instance, name, value)
        await self._session.flush()
        return instance
