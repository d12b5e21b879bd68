"""Customer aggregates as a pure function of the customer's orders.

Aggregates are always recomputed from scratch, never incremented in place.
"""
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Any, FrozenSet, Iterable, List, Optional

from orderdesk.lifecycle.types import PaymentStatus

COUNTED_PAYMENT_STATUSES: FrozenSet[str] = frozenset(
    {PaymentStatus.CONFIRMED.value, PaymentStatus.PARTIAL.value}
)
"""Payment statuses whose orders contribute to total_spent."""


@dataclass(frozen=True)
class CustomerStats:
    order_count: int = 0
    total_spent: int = 0
    last_order_date: Optional[datetime] = None


def _live(orders: Iterable[Any]) -> List[Any]:
    return [o for o in orders if not getattr(o, "is_deleted", False)]


def contribution(order: Any) -> int:
    if order.payment_status not in COUNTED_PAYMENT_STATUSES:
        return 0
    if order.actual_paid_amount is not None:
        return int(order.actual_paid_amount)
    return int(order.total_amount or 0)


def aggregate(orders: Iterable[Any]) -> CustomerStats:
    live = _live(orders)
    if not live:
        return CustomerStats()
    return CustomerStats(
        order_count=len(live),
        total_spent=sum(contribution(o) for o in live),
        last_order_date=max(o.created_at for o in live),
    )


def earliest_order(orders: Iterable[Any]) -> Optional[Any]:
    """Order a new customer record is seeded from (oldest by created_at, then id)."""
    live = _live(orders)
    if not live:
        return None
    return min(live, key=lambda o: (o.created_at, o.id))
