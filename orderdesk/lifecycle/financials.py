"""Order pricing and derived financials.

``quote`` prices a candidate order at intake (strict: unknown lines are
rejected). ``derive`` computes cost, shipping and profit for reporting
(lenient: lines missing from the current table are reported, not fatal).
Derived values are recomputed on every read and never stored, so a change to
the pricing table shows up in historical reports unless the order carries its
own cost override.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, Mapping, Optional, Tuple

from orderdesk.core.exceptions import ValidationError
from orderdesk.lifecycle.types import (
    COST_OVERRIDE_COLUMNS,
    QUANTITY_COLUMNS,
    PricingTable,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Quote:
    subtotal: int
    shipping_fee: int

    @property
    def total_amount(self) -> int:
        return self.subtotal + self.shipping_fee


@dataclass(frozen=True)
class OrderFinancials:
    small_box_cost: int
    large_box_cost: int
    total_cost: int
    shipping_fee: int
    net_profit: int
    unpriced_lines: Tuple[str, ...] = ()

    def to_dict(self) -> Dict[str, Any]:
        return {
            "small_box_cost": self.small_box_cost,
            "large_box_cost": self.large_box_cost,
            "total_cost": self.total_cost,
            "shipping_fee": self.shipping_fee,
            "net_profit": self.net_profit,
            "unpriced_lines": list(self.unpriced_lines),
        }


def quantities_of(order: Any) -> Dict[str, int]:
    """All line quantities of an order (column-backed lines plus extra lines), zeros dropped."""
    out: Dict[str, int] = {}
    for line, column in QUANTITY_COLUMNS.items():
        qty = int(getattr(order, column, 0) or 0)
        if qty:
            out[line] = qty
    for line, qty in (getattr(order, "extra_quantities", None) or {}).items():
        qty = int(qty or 0)
        if qty:
            out[line] = out.get(line, 0) + qty
    return out


def _shipping_quantity(quantities: Mapping[str, int], table: PricingTable) -> int:
    total = 0
    for line, qty in quantities.items():
        product = table.get(line)
        if product is not None and product.counts_toward_shipping:
            total += qty
    return total


def shipping_fee_for(quantities: Mapping[str, int], table: PricingTable) -> int:
    return table.shipping.fee_for(_shipping_quantity(quantities, table))


def validate_quantities(quantities: Mapping[str, int], table: PricingTable) -> None:
    unknown = sorted(line for line in quantities if line not in table)
    if unknown:
        raise ValidationError(
            f"Unknown product line(s): {', '.join(unknown)}",
            details={"unknown_lines": unknown},
        )
    negative = sorted(line for line, qty in quantities.items() if qty < 0)
    if negative:
        raise ValidationError(
            "Quantities must be non-negative",
            details={"negative_lines": negative},
        )


def quote(quantities: Mapping[str, int], table: PricingTable) -> Quote:
    """Price a candidate order. Raises ValidationError on unknown lines or negative quantities."""
    validate_quantities(quantities, table)
    subtotal = sum(qty * table.lines[line].unit_price for line, qty in quantities.items())
    return Quote(subtotal=subtotal, shipping_fee=shipping_fee_for(quantities, table))


def unit_cost(order: Any, line: str, table: PricingTable) -> Optional[int]:
    """Per-order override if present, else the table cost; None for lines the table lacks."""
    column = COST_OVERRIDE_COLUMNS.get(line)
    if column is not None:
        override = getattr(order, column, None)
        if override is not None:
            return int(override)
    product = table.get(line)
    return product.unit_cost if product is not None else None


def derive(order: Any, table: PricingTable) -> OrderFinancials:
    quantities = quantities_of(order)
    total_cost = 0
    unpriced = []
    for line, qty in quantities.items():
        cost = unit_cost(order, line, table)
        if cost is None:
            unpriced.append(line)
            continue
        total_cost += qty * cost
    if unpriced:
        logger.warning(
            "Order %s has lines missing from the pricing table: %s",
            getattr(order, "order_number", None), unpriced,
        )

    shipping_fee = shipping_fee_for(quantities, table)
    actual_paid = getattr(order, "actual_paid_amount", None) or 0
    return OrderFinancials(
        small_box_cost=unit_cost(order, "small_box", table) or 0,
        large_box_cost=unit_cost(order, "large_box", table) or 0,
        total_cost=total_cost,
        shipping_fee=shipping_fee,
        net_profit=actual_paid - total_cost - shipping_fee,
        unpriced_lines=tuple(sorted(unpriced)),
    )
