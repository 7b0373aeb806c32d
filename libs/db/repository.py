"""Per-entity repository over soft-deletable models.

The session-level interceptor already hides inactive rows; this narrow
interface keeps call sites to one method set (get / list / count / delete)
and turns "not found" into ``NotFoundError``.
"""

import uuid
from typing import Any, Generic, Optional, Sequence, TypeVar

from sqlalchemy import delete, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from libs.common.errors import NotFoundError
from libs.db.base import SoftDeleteMixin

ModelT = TypeVar("ModelT", bound=SoftDeleteMixin)


class SoftDeleteRepository(Generic[ModelT]):
    def __init__(self, db: AsyncSession, model: type[ModelT], resource_name: Optional[str] = None):
        self.db = db
        self.model = model
        self.resource_name = resource_name or model.__name__

    async def get_active(self, obj_id: uuid.UUID, *options: Any) -> Optional[ModelT]:
        query = select(self.model).where(self.model.id == obj_id)
        if options:
            query = query.options(*options)
        result = await self.db.execute(query)
        return result.scalar_one_or_none()

    async def get_active_or_404(self, obj_id: uuid.UUID, *options: Any) -> ModelT:
        obj = await self.get_active(obj_id, *options)
        if obj is None:
            raise NotFoundError.for_resource(self.resource_name)
        return obj

    async def reload(self, obj_id: uuid.UUID, *options: Any) -> ModelT:
        """Re-read a row, overwriting the in-session copy and loading ``options``."""
        query = (
            select(self.model)
            .where(self.model.id == obj_id)
            .options(*options)
            .execution_options(populate_existing=True)
        )
        result = await self.db.execute(query)
        obj = result.scalar_one_or_none()
        if obj is None:
            raise NotFoundError.for_resource(self.resource_name)
        return obj

    async def list_active(
        self,
        *criteria: Any,
        order_by: Sequence[Any] = (),
        options: Sequence[Any] = (),
        limit: Optional[int] = None,
        offset: Optional[int] = None,
    ) -> list[ModelT]:
        query = select(self.model).where(*criteria)
        if options:
            query = query.options(*options)
        if order_by:
            query = query.order_by(*order_by)
        if offset:
            query = query.offset(offset)
        if limit is not None:
            query = query.limit(limit)
        result = await self.db.execute(query)
        return list(result.scalars().unique().all())

    async def count_active(self, *criteria: Any) -> int:
        query = select(func.count()).select_from(self.model).where(*criteria)
        result = await self.db.execute(query)
        return result.scalar_one()

    async def soft_delete_where(self, *criteria: Any) -> int:
        """Soft-delete every active row matching ``criteria``; returns the row count."""
        result = await self.db.execute(delete(self.model).where(*criteria))
        return result.rowcount or 0

    async def soft_delete(self, obj_id: uuid.UUID) -> bool:
        """False when no active row had this id."""
        return await self.soft_delete_where(self.model.id == obj_id) > 0
