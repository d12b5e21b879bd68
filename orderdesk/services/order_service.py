"""OrderService: intake, staff lifecycle actions, lookup and reporting for orders.

Every method runs inside the caller's session and only flushes; committing is
the caller's job (see ``session_scope``). Mutations that change a phone's order
set or paid amounts are followed by a customer-statistics recompute.
"""
from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Set, Union

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from orderdesk.config import OrderDeskConfig, load_orderdesk_config
from orderdesk.core.exceptions import (
    ConflictError,
    NotFoundError,
    PreconditionFailedError,
    ValidationError,
)
from orderdesk.infra.database.models.base import utcnow
from orderdesk.infra.database.models.order import Order
from orderdesk.infra.database.repositories.order import OrderRepository
from orderdesk.lifecycle.financials import derive, quote
from orderdesk.lifecycle.order_number import business_date, date_prefix, next_order_number
from orderdesk.lifecycle.reconciliation import ReconciliationResult, reconcile
from orderdesk.lifecycle.status_engine import (
    can_set_status,
    is_editable,
    plan_seller_shipped,
    plan_transition,
)
from orderdesk.lifecycle.types import (
    QUANTITY_COLUMNS,
    OrderStatus,
    PaymentStatus,
    PricingTable,
    StaffRole,
    WRAPPING,
)
from orderdesk.schemas import (
    FinancialUpdate,
    OrderCreate,
    OrderEdit,
    OrderOut,
    OrderView,
    PaymentUpdate,
    canonical_phone,
    parse_payload,
)
from orderdesk.services.customer_service import CustomerService
from orderdesk.services.pricing_service import PricingService

logger = logging.getLogger(__name__)

_QUANTITY_FIELDS = frozenset(QUANTITY_COLUMNS.values()) | {"extra_quantities"}


def _enum(enum_cls, value: Any, field: str):
    try:
        return enum_cls(value)
    except ValueError as exc:
        raise ValidationError(
            f"Invalid {field}: {value!r}",
            details={"field": field, "value": value, "allowed": [m.value for m in enum_cls]},
        ) from exc


class OrderService:
    def __init__(
        self,
        session: AsyncSession,
        *,
        config: Optional[OrderDeskConfig] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ) -> None:
        self._session = session
        self._config = config or load_orderdesk_config()
        self._now = clock or utcnow
        self._orders = OrderRepository(session)
        self._pricing = PricingService(session, self._config)
        self._customers = CustomerService(session, clock=self._now)

    # ── intake ────────────────────────────────────────────────────

    async def create_order(self, data: Union[OrderCreate, Mapping[str, Any]]) -> Order:
        """Validate, price and persist a new order under a fresh ``YYMMDD-N`` number."""
        payload = parse_payload(OrderCreate, data)
        table = await self._pricing.get_table()
        priced = quote(self._quantities(payload.model_dump()), table)
        now = self._now()

        row = payload.model_dump()
        row.update(
            shipping_fee=priced.shipping_fee,
            total_amount=priced.total_amount,
            status=OrderStatus.PENDING.value,
            payment_status=PaymentStatus.PENDING.value,
            created_at=now,
        )
        order = await self._insert_with_number(row, now)
        await self._customers.recompute_stats(order.customer_phone)
        logger.info(
            "OrderService: created order %s for %s (total=%d)",
            order.order_number, order.customer_phone, order.total_amount,
        )
        return order

    async def _insert_with_number(self, row: Dict[str, Any], now: datetime) -> Order:
        """Insert under the smallest free number for today; retry while the number is taken.

        Any other integrity failure propagates unchanged.
        """
        day = business_date(now, self._config.tzinfo)
        existing = await self._orders.numbers_with_prefix(date_prefix(day))
        taken: Set[str] = set()
        max_attempts = self._config.order_number_max_attempts
        last_exc: Optional[IntegrityError] = None
        for attempt in range(1, max_attempts + 1):
            candidate = next_order_number(existing, day, taken=taken)
            try:
                async with self._session.begin_nested():
                    return await self._orders.create({**row, "order_number": candidate})
            except IntegrityError as exc:
                if await self._orders.get_by_number(candidate) is None:
                    raise
                logger.warning(
                    "OrderService: order number %s already taken (attempt %d/%d)",
                    candidate, attempt, max_attempts,
                )
                taken.add(candidate)
                last_exc = exc
        raise ConflictError(
            f"Could not allocate an order number after {max_attempts} attempts.",
            details={"date": date_prefix(day), "tried": sorted(taken)},
            cause=last_exc,
        )

    @staticmethod
    def _quantities(values: Mapping[str, Any]) -> Dict[str, int]:
        quantities = {line: int(values.get(column) or 0) for line, column in QUANTITY_COLUMNS.items()}
        for line, qty in (values.get("extra_quantities") or {}).items():
            quantities[line] = quantities.get(line, 0) + int(qty)
        return quantities

    # ── reads ─────────────────────────────────────────────────────

    async def _require_live(self, id: int, *, for_update: bool = False) -> Order:
        if for_update:
            order = await self._orders.get_for_update(id)
        else:
            order = await self._orders.get_by_id(id)
        if order is None or order.is_deleted:
            raise NotFoundError(f"Order {id} not found.", details={"id": id})
        return order

    async def _require_any(self, id: int) -> Order:
        order = await self._orders.get_by_id(id)
        if order is None:
            raise NotFoundError(f"Order {id} not found.", details={"id": id})
        return order

    async def get_order(self, id: int) -> Order:
        return await self._require_live(id)

    async def get_order_by_number(self, order_number: str) -> Order:
        order = await self._orders.get_by_number(order_number.strip())
        if order is None or order.is_deleted:
            raise NotFoundError(
                f"Order {order_number} not found.", details={"order_number": order_number}
            )
        return order

    async def lookup_orders(
        self,
        *,
        phone: Optional[str] = None,
        name: Optional[str] = None,
    ) -> List[Order]:
        """Customer self-service lookup: live orders matching phone and/or name, newest first."""
        phone = phone.strip() if phone else None
        name = name.strip() if name else None
        if not phone and not name:
            raise ValidationError("Provide a phone number or a name to look up orders.")
        orders = await self._orders.list_by_customer(
            phone=canonical_phone(phone) if phone else None,
            name=name,
        )
        if not orders:
            raise NotFoundError(
                "No orders found for the given customer.",
                details={"phone": phone, "name": name},
            )
        return orders

    async def list_orders_with_financials(
        self,
        *,
        status: Optional[str] = None,
        payment_status: Optional[str] = None,
        created_from: Optional[datetime] = None,
        created_to: Optional[datetime] = None,
        skip: int = 0,
        limit: Optional[int] = None,
    ) -> List[OrderView]:
        """Live orders with cost, shipping and profit derived from the current pricing table."""
        table = await self._pricing.get_table()
        orders = await self._orders.list_all(
            status=status,
            payment_status=payment_status,
            created_from=created_from,
            created_to=created_to,
            skip=skip,
            limit=limit,
        )
        return [self._view(order, table) for order in orders]

    @staticmethod
    def _view(order: Order, table: PricingTable) -> OrderView:
        base = OrderOut.model_validate(order).model_dump()
        return OrderView.model_validate({**base, "financials": derive(order, table).to_dict()})

    async def list_deleted_orders(self) -> List[Order]:
        return await self._orders.list_deleted()

    # ── status ────────────────────────────────────────────────────

    async def change_status(
        self,
        id: int,
        status: Union[OrderStatus, str],
        *,
        actor: Union[StaffRole, str],
        delivered_date: Optional[datetime] = None,
    ) -> Order:
        target = _enum(OrderStatus, status, "status")
        role = _enum(StaffRole, actor, "actor")
        if delivered_date is not None and target is not OrderStatus.DELIVERED:
            raise ValidationError(
                "A delivered date can only accompany a move to delivered.",
                details={"status": target.value, "delivered_date": delivered_date.isoformat()},
            )
        order = await self._require_live(id, for_update=True)
        if not can_set_status(role, target):
            raise PreconditionFailedError(
                f"Only a manager can mark an order as {target.value}.",
                details={"id": id, "actor": role.value, "status": target.value},
            )
        previous = order.status
        order = await self._orders.apply(
            order, plan_transition(target, now=self._now(), delivered_date=delivered_date)
        )
        logger.info(
            "OrderService: order %s status %s -> %s by %s",
            order.order_number, previous, target.value, role.value,
        )
        return order

    async def set_scheduled_date(
        self, id: int, scheduled_date: Optional[datetime], *, actor: Union[StaffRole, str]
    ) -> Order:
        role = _enum(StaffRole, actor, "actor")
        order = await self._require_live(id, for_update=True)
        if order.status == OrderStatus.DELIVERED.value:
            raise PreconditionFailedError(
                "Delivered orders cannot be rescheduled.",
                details={"id": id, "status": order.status},
            )
        order = await self._orders.apply(order, {"scheduled_date": scheduled_date})
        logger.info(
            "OrderService: order %s scheduled for %s by %s",
            order.order_number, scheduled_date, role.value,
        )
        return order

    async def set_delivered_date(
        self, id: int, delivered_date: Optional[datetime], *, actor: Union[StaffRole, str]
    ) -> Order:
        role = _enum(StaffRole, actor, "actor")
        order = await self._require_live(id, for_update=True)
        if order.status != OrderStatus.DELIVERED.value:
            raise PreconditionFailedError(
                "Only delivered orders have a delivered date.",
                details={"id": id, "status": order.status},
            )
        order = await self._orders.apply(order, {"delivered_date": delivered_date})
        logger.info(
            "OrderService: order %s delivered date set to %s by %s",
            order.order_number, delivered_date, role.value,
        )
        return order

    async def set_seller_shipped(
        self,
        id: int,
        shipped: bool,
        *,
        actor: Union[StaffRole, str],
        shipped_date: Optional[datetime] = None,
    ) -> Order:
        """Toggle the carrier hand-off flag. Shipping also marks the order delivered."""
        role = _enum(StaffRole, actor, "actor")
        order = await self._require_live(id, for_update=True)
        if shipped and not can_set_status(role, OrderStatus.DELIVERED):
            raise PreconditionFailedError(
                "Only a manager can mark an order as shipped.",
                details={"id": id, "actor": role.value},
            )
        order = await self._orders.apply(
            order, plan_seller_shipped(shipped, now=self._now(), shipped_date=shipped_date)
        )
        logger.info(
            "OrderService: order %s seller_shipped=%s by %s",
            order.order_number, shipped, role.value,
        )
        return order

    async def set_seller_shipped_date(
        self, id: int, shipped_date: datetime, *, actor: Union[StaffRole, str]
    ) -> Order:
        role = _enum(StaffRole, actor, "actor")
        order = await self._require_live(id, for_update=True)
        if not order.seller_shipped:
            raise PreconditionFailedError(
                "Order has not been shipped by the seller.",
                details={"id": id},
            )
        order = await self._orders.apply(
            order, {"seller_shipped_date": shipped_date, "delivered_date": shipped_date}
        )
        logger.info(
            "OrderService: order %s shipped date set to %s by %s",
            order.order_number, shipped_date, role.value,
        )
        return order

    # ── payment & financials ──────────────────────────────────────

    async def reconcile_payment(
        self,
        id: int,
        payment_status: str,
        *,
        actor: Union[StaffRole, str],
        actual_paid_amount: Optional[int] = None,
        discount_reason: Optional[str] = None,
        is_discount: Optional[bool] = None,
    ) -> ReconciliationResult:
        """Record a payment-status change, classifying any deposited amount against the total.

        The stored status can differ from the requested one (a shortfall
        without a discount is stored as partial); check ``result.outcome``.
        """
        role = _enum(StaffRole, actor, "actor")
        payload = parse_payload(
            PaymentUpdate,
            {
                "payment_status": payment_status,
                "actual_paid_amount": actual_paid_amount,
                "discount_reason": discount_reason,
                "is_discount": is_discount,
            },
        )
        order = await self._require_live(id, for_update=True)
        result = reconcile(
            order.total_amount,
            payload.payment_status,
            now=self._now(),
            actual_paid_amount=payload.actual_paid_amount,
            discount_reason=payload.discount_reason,
            is_discount=payload.is_discount,
        )
        order = await self._orders.apply(order, result.changes())
        if result.overridden:
            logger.warning(
                "OrderService: order %s requested %s, stored %s (%s)",
                order.order_number, result.requested_status.value,
                result.payment_status.value, result.discount_reason,
            )
        logger.info(
            "OrderService: order %s payment %s (%s) by %s",
            order.order_number, result.payment_status.value, result.outcome.value, role.value,
        )
        await self._customers.recompute_stats(order.customer_phone)
        return result

    async def update_financials(
        self,
        id: int,
        data: Union[FinancialUpdate, Mapping[str, Any]],
        *,
        actor: Union[StaffRole, str],
    ) -> Order:
        """Staff edit of cost overrides, paid amount and discount. Allowed in any status."""
        role = _enum(StaffRole, actor, "actor")
        changes = parse_payload(FinancialUpdate, data).model_dump(exclude_unset=True)
        if not changes:
            raise ValidationError("No fields provided for update.")
        order = await self._require_live(id, for_update=True)
        order = await self._orders.apply(order, changes)
        logger.info(
            "OrderService: order %s financials %s updated by %s",
            order.order_number, sorted(changes), role.value,
        )
        if "actual_paid_amount" in changes:
            await self._customers.recompute_stats(order.customer_phone)
        return order

    # ── edits ─────────────────────────────────────────────────────

    async def edit_order(
        self,
        id: int,
        data: Union[OrderEdit, Mapping[str, Any]],
        *,
        actor: Optional[Union[StaffRole, str]] = None,
    ) -> Order:
        """Edit customer, address or quantities while the order is still pending/pending.

        ``actor`` is None for a customer editing their own order.
        """
        role = _enum(StaffRole, actor, "actor") if actor is not None else None
        changes = parse_payload(OrderEdit, data).model_dump(exclude_unset=True)
        if not changes:
            raise ValidationError("No fields provided for update.")
        order = await self._require_live(id, for_update=True)
        if not is_editable(order.status, order.payment_status):
            raise PreconditionFailedError(
                "Only orders that are pending in both status and payment can be edited.",
                details={"id": id, "status": order.status, "payment_status": order.payment_status},
            )

        quantity_edits = _QUANTITY_FIELDS.intersection(changes)
        if quantity_edits:
            for key in quantity_edits:
                if changes[key] is None:
                    changes[key] = {} if key == "extra_quantities" else 0
            merged = {column: getattr(order, column) for column in QUANTITY_COLUMNS.values()}
            merged["extra_quantities"] = dict(order.extra_quantities or {})
            merged.update({key: changes[key] for key in quantity_edits})
            quantities = self._quantities(merged)
            if not any(qty for line, qty in quantities.items() if line != WRAPPING):
                raise ValidationError(
                    "An order needs at least one product besides wrapping.",
                    details={"quantities": quantities},
                )
            priced = quote(quantities, await self._pricing.get_table())
            changes["shipping_fee"] = priced.shipping_fee
            changes["total_amount"] = priced.total_amount

        old_phone = order.customer_phone
        order = await self._orders.apply(order, changes)
        logger.info(
            "OrderService: order %s edited by %s (%s)",
            order.order_number, role.value if role else "customer", sorted(changes),
        )
        await self._recompute(old_phone, order.customer_phone)
        return order

    async def _recompute(self, *phones: str) -> None:
        for phone in dict.fromkeys(phones):
            await self._customers.recompute_stats(phone)

    # ── trash ─────────────────────────────────────────────────────

    async def soft_delete_order(self, id: int, *, actor: Union[StaffRole, str]) -> Order:
        role = _enum(StaffRole, actor, "actor")
        order = await self._require_any(id)
        if order.is_deleted:
            return order
        order = await self._orders.apply(order, {"is_deleted": True, "deleted_at": self._now()})
        logger.info("OrderService: order %s moved to trash by %s", order.order_number, role.value)
        await self._customers.recompute_stats(order.customer_phone)
        return order

    async def restore_order(self, id: int, *, actor: Union[StaffRole, str]) -> Order:
        role = _enum(StaffRole, actor, "actor")
        order = await self._require_any(id)
        if not order.is_deleted:
            return order
        order = await self._orders.apply(order, {"is_deleted": False, "deleted_at": None})
        logger.info("OrderService: order %s restored by %s", order.order_number, role.value)
        await self._customers.recompute_stats(order.customer_phone)
        return order

    async def permanent_delete_order(self, id: int, *, actor: Union[StaffRole, str]) -> None:
        role = _enum(StaffRole, actor, "actor")
        order = await self._require_any(id)
        phone, number = order.customer_phone, order.order_number
        await self._orders.delete(id)
        logger.info("OrderService: order %s permanently deleted by %s", number, role.value)
        await self._customers.recompute_stats(phone)

    async def bulk_soft_delete(self, ids: Iterable[int], *, actor: Union[StaffRole, str]) -> int:
        """Move several orders to trash. Unknown ids are skipped. Returns the number moved."""
        role = _enum(StaffRole, actor, "actor")
        ids = list(ids)
        now = self._now()
        phones: List[str] = []
        for order in await self._orders.get_many(ids):
            if order.is_deleted:
                continue
            await self._orders.apply(order, {"is_deleted": True, "deleted_at": now})
            phones.append(order.customer_phone)
        logger.info(
            "OrderService: %d of %d orders moved to trash by %s", len(phones), len(ids), role.value
        )
        await self._recompute(*phones)
        return len(phones)
