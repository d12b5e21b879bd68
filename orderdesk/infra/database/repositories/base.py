"""Generic async repository for SQLAlchemy 2.0."""
from __future__ import annotations

from typing import Any, ClassVar, Generic, List, Optional, TypeVar

from sqlalchemy import and_, func, select
from sqlalchemy.ext.asyncio import AsyncSession

ModelT = TypeVar("ModelT")


class BaseRepository(Generic[ModelT]):
    model: ClassVar[type]

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def get_by_id(self, id: int) -> Optional[ModelT]:
        return await self.session.get(self.model, id)  # type: ignore[return-value]

    async def get_for_update(self, id: int) -> Optional[ModelT]:
        """Fetch with a row lock (SELECT ... FOR UPDATE; a no-op on sqlite)."""
        stmt = (
            select(self.model)
            .where(self.model.id == id)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def get_many(self, ids: List[int]) -> List[ModelT]:
        if not ids:
            return []
        stmt = select(self.model).where(self.model.id.in_(ids)).order_by(self.model.id)
        result = await self.session.execute(stmt)
        return list(result.scalars().all())  # type: ignore[return-value]

    async def count(self) -> int:
        stmt = select(func.count()).select_from(self.model)
        result = await self.session.execute(stmt)
        return result.scalar_one()

    async def create(self, data: dict[str, Any]) -> ModelT:
        instance = self.model(**data)
        self.session.add(instance)
        await self.session.flush()
        await self.session.refresh(instance)
        return instance  # type: ignore[return-value]

    async def apply(self, instance: ModelT, data: dict[str, Any]) -> ModelT:
        """Write ``data`` onto an already-loaded instance."""
        for attr, value in data.items():
            setattr(instance, attr, value)
        await self.session.flush()
        await self.session.refresh(instance)
        return instance

    async def upsert(self, lookup: dict[str, Any], defaults: dict[str, Any]) -> tuple[ModelT, bool]:
        """Update the row matching ``lookup`` with ``defaults``, or create it."""
        conditions = [getattr(self.model, k) == v for k, v in lookup.items()]
        stmt = select(self.model).where(and_(*conditions)).limit(1)
        result = await self.session.execute(stmt)
        instance = result.scalar_one_or_none()
        if instance is not None:
            return await self.apply(instance, defaults), False
        instance = await self.create({**lookup, **defaults})
        return instance, True

    async def delete(self, id: int) -> bool:
        instance = await self.get_by_id(id)
        if instance is None:
            return False
        await self.session.delete(instance)
        await self.session.flush()
        return True
