"""Generic async repository with soft-delete, pagination, and tenant isolation."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Generic, Iterable, TypeVar

from sqlalchemy import func, or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from cafe_erp.db.base import Base

ModelT = TypeVar("ModelT", bound=Base)


class BaseRepository(Generic[ModelT]):
    """Generic CRUD repository. All queries are filtered by tenant_id.

    Soft-deletes: rows with `deleted_at IS NOT NULL` are excluded from all
    standard reads. Hard-delete is intentionally never exposed.
    """

    model: type[ModelT]

    def __init__(self, session: AsyncSession, tenant_id: str):
        self._session = session
        self._tenant_id = tenant_id

    @property
    def session(self) -> AsyncSession:
        return self._session

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _base_query(self):
        """Return a SELECT filtered by tenant_id and excluding soft-deleted rows."""
        q = select(self.model).where(self.model.tenant_id == self._tenant_id)
        if hasattr(self.model, "deleted_at"):
            q = q.where(self.model.deleted_at.is_(None))
        return q

    # ------------------------------------------------------------------
    # Read
    # ------------------------------------------------------------------

    async def get_by_id(self, entity_id: str) -> ModelT | None:
        result = await self._session.execute(
            self._base_query().where(self.model.id == entity_id)
        )
        return result.scalars().first()

    async def get_many(self, entity_ids: Iterable[str]) -> dict[str, ModelT]:
        ids = list(set(entity_ids))
        if not ids:
            return {}
        result = await self._session.execute(
            self._base_query().where(self.model.id.in_(ids))
        )
        return {row.id: row for row in result.scalars().all()}

    async def find_one(self, **criteria: Any) -> ModelT | None:
        """First row matching all equality criteria (None values match NULL)."""
        q = self._base_query()
        for col_name, value in criteria.items():
            col = getattr(self.model, col_name)
            q = q.where(col.is_(None) if value is None else col == value)
        result = await self._session.execute(q.limit(1))
        return result.scalars().first()

    async def list(
        self,
        *,
        offset: int = 0,
        limit: int = 20,
        order_by: str = "created_at",
        order: str = "desc",
        filters: dict[str, Any] | None = None,
        search: str | None = None,
        search_fields: tuple[str, ...] = (),
    ) -> tuple[list[ModelT], int]:
        """Return (items, total_count) with pagination and optional column filters."""
        q = self._base_query()

        # Apply simple equality filters
        if filters:
            for col_name, value in filters.items():
                if value is not None and hasattr(self.model, col_name):
                    q = q.where(getattr(self.model, col_name) == value)

        if search and search_fields:
            pattern = f"%{search.lower()}%"
            clauses = [func.lower(getattr(self.model, f)).like(pattern) for f in search_fields]
            q = q.where(or_(*clauses))

        # Count
        count_q = select(func.count()).select_from(q.subquery())
        total = (await self._session.execute(count_q)).scalar_one()

        # Order + paginate
        col = getattr(self.model, order_by, None)
        if col is not None:
            q = q.order_by(col.desc() if order == "desc" else col.asc())
        q = q.offset(offset).limit(limit)

        items = (await self._session.execute(q)).scalars().all()
        return list(items), total

    # ------------------------------------------------------------------
    # Write
    # ------------------------------------------------------------------

    async def create(self, **kwargs: Any) -> ModelT:
        instance = self.model(tenant_id=self._tenant_id, **kwargs)
        self._session.add(instance)
        await self._session.flush()  # populate id
        await self._session.refresh(instance)
        return instance

    async def update(self, entity_id: str, **kwargs: Any) -> ModelT | None:
        kwargs.pop("id", None)
        kwargs.pop("tenant_id", None)
        if "updated_at" not in kwargs and hasattr(self.model, "updated_at"):
            kwargs["updated_at"] = datetime.now(timezone.utc)

        await self._session.execute(
            update(self.model)
            .where(self.model.id == entity_id)
            .where(self.model.tenant_id == self._tenant_id)
            .values(**kwargs)
        )
        await self._session.flush()
        return await self.get_by_id(entity_id)

    async def soft_delete(self, entity_id: str) -> bool:
        result = await self._session.execute(
            update(self.model)
            .where(self.model.id == entity_id)
            .where(self.model.tenant_id == self._tenant_id)
            .where(self.model.deleted_at.is_(None))
            .values(deleted_at=datetime.now(timezone.utc))
        )
        await self._session.flush()
        return result.rowcount > 0
