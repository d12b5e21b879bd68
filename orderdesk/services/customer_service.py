"""CustomerService: the customer address book and its order aggregates."""
from __future__ import annotations

import asyncio
import logging
import weakref
from datetime import datetime
from typing import Any, Callable, List, Mapping, Optional, Union

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from orderdesk.core.exceptions import ConflictError, NotFoundError, ValidationError
from orderdesk.infra.database.models.base import utcnow
from orderdesk.infra.database.models.customer import Customer
from orderdesk.infra.database.models.order import Order
from orderdesk.infra.database.repositories.customer import CustomerRepository
from orderdesk.infra.database.repositories.order import OrderRepository
from orderdesk.lifecycle.customer_stats import aggregate, earliest_order
from orderdesk.schemas import (
    AddressUsage,
    CustomerCreate,
    CustomerUpdate,
    canonical_phone,
    parse_payload,
)

logger = logging.getLogger(__name__)

# event loop -> phone -> lock; a phone's entry lives only while someone holds or awaits it
_PHONE_LOCKS: "weakref.WeakKeyDictionary[asyncio.AbstractEventLoop, weakref.WeakValueDictionary[str, asyncio.Lock]]" = (
    weakref.WeakKeyDictionary()
)


def _phone_lock(phone: str) -> asyncio.Lock:
    locks = _PHONE_LOCKS.setdefault(asyncio.get_running_loop(), weakref.WeakValueDictionary())
    lock = locks.get(phone)
    if lock is None:
        lock = locks[phone] = asyncio.Lock()
    return lock


class CustomerService:
    def __init__(
        self,
        session: AsyncSession,
        *,
        clock: Optional[Callable[[], datetime]] = None,
    ) -> None:
        self._session = session
        self._now = clock or utcnow
        self._customers = CustomerRepository(session)
        self._orders = OrderRepository(session)

    # ── aggregates ────────────────────────────────────────────────

    async def recompute_stats(self, phone: str) -> Optional[Customer]:
        """Rewrite order_count / total_spent / last_order_date for ``phone`` from its live orders.

        Creates the customer from the phone's earliest order when none exists.
        Returns None when there is neither a customer nor an order.
        """
        async with _phone_lock(phone):
            customer = await self._customers.get_by_phone(phone, for_update=True)
            orders = await self._orders.list_by_customer(phone=phone)
            stats = aggregate(orders)
            if customer is None:
                seed = earliest_order(orders)
                if seed is None:
                    return None
                customer = await self._create_from_order(seed)
            customer = await self._customers.apply(
                customer,
                {
                    "order_count": stats.order_count,
                    "total_spent": stats.total_spent,
                    "last_order_date": stats.last_order_date,
                },
            )
        logger.debug(
            "CustomerService: stats for %s -> count=%d spent=%d",
            phone, stats.order_count, stats.total_spent,
        )
        return customer

    async def _create_from_order(self, order: Order) -> Customer:
        data = {
            "name": order.customer_name,
            "phone": order.customer_phone,
            "zip_code": order.zip_code,
            "address1": order.address1,
            "address2": order.address2,
            "user_id": order.user_id,
        }
        try:
            async with self._session.begin_nested():
                customer = await self._customers.create(data)
        except IntegrityError:
            # another worker created it between our read and insert
            customer = await self._customers.get_by_phone(order.customer_phone, for_update=True)
            if customer is None:
                raise
            return customer
        logger.info("CustomerService: created customer %s from order %s", customer.phone, order.order_number)
        return customer

    async def refresh_all_stats(self) -> int:
        """Recompute every phone seen in orders or customers. Returns the number of phones."""
        phones = set(await self._orders.distinct_phones()) | set(await self._customers.all_phones())
        for phone in sorted(phones):
            await self.recompute_stats(phone)
        logger.info("CustomerService: refreshed stats for %d phones", len(phones))
        return len(phones)

    # ── reads ─────────────────────────────────────────────────────

    async def list_customers(
        self,
        *,
        search: Optional[str] = None,
        skip: int = 0,
        limit: Optional[int] = None,
    ) -> List[Customer]:
        return await self._customers.list_all(search=search, skip=skip, limit=limit)

    async def list_deleted_customers(self) -> List[Customer]:
        return await self._customers.list_all(deleted=True)

    async def get_customer(self, id: int) -> Customer:
        customer = await self._customers.get_by_id(id)
        if customer is None or customer.is_deleted:
            raise NotFoundError(f"Customer {id} not found.", details={"id": id})
        return customer

    async def list_addresses(self, phone: str) -> List[AddressUsage]:
        rows = await self._customers.addresses_for_phone(canonical_phone(phone))
        return [AddressUsage.model_validate(row) for row in rows]

    # ── writes ────────────────────────────────────────────────────

    async def create_customer(self, data: Union[CustomerCreate, Mapping[str, Any]]) -> Customer:
        payload = parse_payload(CustomerCreate, data)
        if await self._customers.get_by_phone(payload.phone) is not None:
            raise ConflictError(
                f"A customer with phone {payload.phone} already exists.",
                details={"phone": payload.phone},
            )
        try:
            async with self._session.begin_nested():
                customer = await self._customers.create(payload.model_dump())
        except IntegrityError as exc:
            raise ConflictError(
                f"A customer with phone {payload.phone} already exists.",
                details={"phone": payload.phone},
                cause=exc,
            ) from exc
        logger.info("CustomerService: created customer %s (%s)", customer.id, customer.phone)
        # orders placed under this phone before the record existed still count
        return await self.recompute_stats(customer.phone) or customer

    async def update_customer(
        self, id: int, data: Union[CustomerUpdate, Mapping[str, Any]]
    ) -> Customer:
        payload = parse_payload(CustomerUpdate, data)
        changes = payload.model_dump(exclude_unset=True)
        customer = await self.get_customer(id)
        if "name" in changes and changes["name"] is None:
            raise ValidationError("Customer name cannot be cleared.", details={"field": "name"})
        if not changes:
            return customer
        customer = await self._customers.apply(customer, changes)
        logger.info("CustomerService: updated customer %s (%s)", id, sorted(changes))
        return customer

    async def _get_any(self, id: int) -> Customer:
        customer = await self._customers.get_by_id(id)
        if customer is None:
            raise NotFoundError(f"Customer {id} not found.", details={"id": id})
        return customer

    async def soft_delete_customer(self, id: int) -> Customer:
        customer = await self._get_any(id)
        if not customer.is_deleted:
            customer = await self._customers.apply(
                customer, {"is_deleted": True, "deleted_at": self._now()}
            )
            logger.info("CustomerService: customer %s moved to trash", id)
        return customer

    async def restore_customer(self, id: int) -> Customer:
        customer = await self._get_any(id)
        if customer.is_deleted:
            customer = await self._customers.apply(customer, {"is_deleted": False, "deleted_at": None})
            logger.info("CustomerService: customer %s restored", id)
        return customer

    async def permanent_delete_customer(self, id: int) -> None:
        """Remove the record. Orders are kept; the next order or recompute recreates it."""
        if not await self._customers.delete(id):
            raise NotFoundError(f"Customer {id} not found.", details={"id": id})
        logger.info("CustomerService: customer %s permanently deleted", id)

    async def soft_delete_customers(self, ids: List[int]) -> int:
        changed = 0
        for customer in await self._customers.get_many(ids):
            if not customer.is_deleted:
                await self._customers.apply(customer, {"is_deleted": True, "deleted_at": self._now()})
                changed += 1
        logger.info("CustomerService: %d of %d customers moved to trash", changed, len(ids))
        return changed

    async def restore_customers(self, ids: List[int]) -> int:
        changed = 0
        for customer in await self._customers.get_many(ids):
            if customer.is_deleted:
                await self._customers.apply(customer, {"is_deleted": False, "deleted_at": None})
                changed += 1
        logger.info("CustomerService: %d of %d customers restored", changed, len(ids))
        return changed

    async def permanent_delete_customers(self, ids: List[int]) -> int:
        deleted = 0
        for id in ids:
            if await self._customers.delete(id):
                deleted += 1
        logger.info("CustomerService: %d customers permanently deleted", deleted)
        return deleted
