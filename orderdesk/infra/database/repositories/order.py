"""Order repository."""
from __future__ import annotations

from datetime import datetime
from typing import List, Optional

from sqlalchemy import select

from orderdesk.infra.database.models.order import Order
from orderdesk.infra.database.repositories.base import BaseRepository


class OrderRepository(BaseRepository[Order]):
    model = Order

    async def get_by_number(self, order_number: str) -> Optional[Order]:
        stmt = select(Order).where(Order.order_number == order_number)
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def numbers_with_prefix(self, prefix: str) -> List[str]:
        """All order numbers for one date prefix, deleted orders included."""
        stmt = select(Order.order_number).where(Order.order_number.like(f"{prefix}-%"))
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def list_all(
        self,
        *,
        status: Optional[str] = None,
        payment_status: Optional[str] = None,
        created_from: Optional[datetime] = None,
        created_to: Optional[datetime] = None,
        skip: int = 0,
        limit: Optional[int] = None,
    ) -> List[Order]:
        """Non-deleted orders: scheduled ones first by scheduled date, then newest first."""
        stmt = (
            select(Order)
            .where(Order.is_deleted.is_(False))
            .order_by(
                Order.scheduled_date.is_(None),
                Order.scheduled_date,
                Order.created_at.desc(),
                Order.id.desc(),
            )
        )
        if status:
            stmt = stmt.where(Order.status == status)
        if payment_status:
            stmt = stmt.where(Order.payment_status == payment_status)
        if created_from:
            stmt = stmt.where(Order.created_at >= created_from)
        if created_to:
            stmt = stmt.where(Order.created_at <= created_to)
        stmt = stmt.offset(skip)
        if limit is not None:
            stmt = stmt.limit(limit)
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def list_deleted(self) -> List[Order]:
        stmt = select(Order).where(Order.is_deleted.is_(True)).order_by(Order.deleted_at.desc())
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def list_by_customer(
        self,
        *,
        phone: Optional[str] = None,
        name: Optional[str] = None,
        include_deleted: bool = False,
    ) -> List[Order]:
        """Orders matching phone and/or name (both must match when both are given), newest first."""
        stmt = select(Order).order_by(Order.created_at.desc(), Order.id.desc())
        if phone is not None:
            stmt = stmt.where(Order.customer_phone == phone)
        if name is not None:
            stmt = stmt.where(Order.customer_name == name)
        if not include_deleted:
            stmt = stmt.where(Order.is_deleted.is_(False))
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def distinct_phones(self) -> List[str]:
        stmt = select(Order.customer_phone).distinct()
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

