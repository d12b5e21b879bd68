"""Order status state machine.

Every transition is accepted; what a transition *does* is data: STATUS_RESETS
maps a target status to the fields it resets. The only gate is the
delivered-by-manager rule, which callers pass in as the acting role.
"""
from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, FrozenSet, Mapping, Optional

from orderdesk.lifecycle.types import OrderStatus, PaymentStatus, StaffRole

RESET_VALUES: Mapping[str, Any] = {
    "seller_shipped": False,
    "seller_shipped_date": None,
    "scheduled_date": None,
    "delivered_date": None,
}

STATUS_RESETS: Mapping[OrderStatus, FrozenSet[str]] = {
    OrderStatus.PENDING: frozenset(
        {"seller_shipped", "seller_shipped_date", "scheduled_date", "delivered_date"}
    ),
    OrderStatus.SCHEDULED: frozenset(
        {"delivered_date", "seller_shipped", "seller_shipped_date"}
    ),
    OrderStatus.DELIVERED: frozenset(),
}

DELIVERY_ROLES: FrozenSet[StaffRole] = frozenset({StaffRole.MANAGER})
"""Roles allowed to set status = delivered."""


def can_set_status(role: StaffRole, target: OrderStatus) -> bool:
    return target is not OrderStatus.DELIVERED or role in DELIVERY_ROLES


def plan_transition(
    target: OrderStatus,
    *,
    now: datetime,
    delivered_date: Optional[datetime] = None,
) -> Dict[str, Any]:
    """Column changes for moving an order to ``target``, applied in one write."""
    changes: Dict[str, Any] = {"status": target.value}
    for field_name in STATUS_RESETS[target]:
        changes[field_name] = RESET_VALUES[field_name]
    if target is OrderStatus.DELIVERED:
        changes["delivered_date"] = delivered_date or now
    return changes


def plan_seller_shipped(
    shipped: bool,
    *,
    now: datetime,
    shipped_date: Optional[datetime] = None,
) -> Dict[str, Any]:
    """Seller-shipped implies delivered (with the same date); un-shipping leaves status alone."""
    if not shipped:
        return {"seller_shipped": False, "seller_shipped_date": None}
    when = shipped_date or now
    return {
        "seller_shipped": True,
        "seller_shipped_date": when,
        "status": OrderStatus.DELIVERED.value,
        "delivered_date": when,
    }


def is_editable(status: str, payment_status: str) -> bool:
    """Orders can be edited only before fulfillment and payment have started."""
    return status == OrderStatus.PENDING.value and payment_status == PaymentStatus.PENDING.value
