"""Customer repository."""
from __future__ import annotations

from typing import List, Optional

from sqlalchemy import func, select

from orderdesk.infra.database.models.customer import Customer
from orderdesk.infra.database.models.order import Order
from orderdesk.infra.database.repositories.base import BaseRepository


class CustomerRepository(BaseRepository[Customer]):
    model = Customer

    async def get_by_phone(self, phone: str, *, for_update: bool = False) -> Optional[Customer]:
        stmt = select(Customer).where(Customer.phone == phone)
        if for_update:
            stmt = stmt.with_for_update().execution_options(populate_existing=True)
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def list_all(
        self,
        *,
        deleted: bool = False,
        search: Optional[str] = None,
        skip: int = 0,
        limit: Optional[int] = None,
    ) -> List[Customer]:
        stmt = select(Customer).where(Customer.is_deleted.is_(deleted))
        if deleted:
            stmt = stmt.order_by(Customer.deleted_at.desc())
        else:
            stmt = stmt.order_by(Customer.last_order_date.desc().nulls_last(), Customer.id.desc())
        if search:
            pattern = f"%{search}%"
            stmt = stmt.where(Customer.name.ilike(pattern) | Customer.phone.like(pattern))
        stmt = stmt.offset(skip)
        if limit is not None:
            stmt = stmt.limit(limit)
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def all_phones(self) -> List[str]:
        result = await self.session.execute(select(Customer.phone))
        return list(result.scalars().all())

    async def addresses_for_phone(self, phone: str) -> List[dict]:
        """Distinct delivery addresses used by a phone's live orders, most used first."""
        stmt = (
            select(
                Order.zip_code,
                Order.address1,
                Order.address2,
                func.count(Order.id).label("order_count"),
                func.max(Order.created_at).label("last_used"),
            )
            .where(Order.customer_phone == phone, Order.is_deleted.is_(False))
            .group_by(Order.zip_code, Order.address1, Order.address2)
            .order_by(func.count(Order.id).desc(), func.max(Order.created_at).desc())
        )
        result = await self.session.execute(stmt)
        return [dict(row._mapping) for row in result.all()]
