"""Core data structures for the order lifecycle layer."""
from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Mapping, Optional

from orderdesk.core.exceptions import ConfigurationError


class OrderStatus(str, Enum):
    """Fulfillment stage. Independent of PaymentStatus."""
    PENDING = "pending"
    SCHEDULED = "scheduled"
    DELIVERED = "delivered"


class PaymentStatus(str, Enum):
    """Financial reconciliation stage. Independent of OrderStatus."""
    PENDING = "pending"
    PARTIAL = "partial"
    CONFIRMED = "confirmed"
    REFUNDED = "refunded"


class StaffRole(str, Enum):
    """The two staff tiers. Authentication happens outside the core."""
    ADMIN = "admin"
    MANAGER = "manager"


SMALL_BOX = "small_box"
LARGE_BOX = "large_box"
WRAPPING = "wrapping"

BUILTIN_LINES = (SMALL_BOX, LARGE_BOX, WRAPPING)
"""Product lines backed by dedicated order columns; they cannot be removed."""

QUANTITY_COLUMNS: Dict[str, str] = {
    SMALL_BOX: "small_box_quantity",
    LARGE_BOX: "large_box_quantity",
    WRAPPING: "wrapping_quantity",
}

COST_OVERRIDE_COLUMNS: Dict[str, str] = {
    SMALL_BOX: "small_box_cost",
    LARGE_BOX: "large_box_cost",
}
"""Lines whose unit cost may be overridden per order."""


@dataclass(frozen=True)
class ProductLine:
    key: str
    name: str
    unit_price: int
    unit_cost: int
    counts_toward_shipping: bool = True
    """Whether this line's quantity counts toward the free-shipping threshold."""

    def __post_init__(self) -> None:
        if not self.key or not self.key.strip():
            raise ConfigurationError("product line key must be non-empty")
        for attr in ("unit_price", "unit_cost"):
            value = getattr(self, attr)
            if not isinstance(value, int) or value < 0:
                raise ConfigurationError(
                    f"{attr} for line {self.key!r} must be a non-negative integer",
                    details={"line": self.key, attr: value},
                )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "key": self.key,
            "name": self.name,
            "unit_price": self.unit_price,
            "unit_cost": self.unit_cost,
            "counts_toward_shipping": self.counts_toward_shipping,
        }

    @classmethod
    def from_dict(cls, d: Mapping[str, Any]) -> "ProductLine":
        return cls(
            key=str(d["key"]),
            name=str(d.get("name") or d["key"]),
            unit_price=int(d.get("unit_price", 0)),
            unit_cost=int(d.get("unit_cost", 0)),
            counts_toward_shipping=bool(d.get("counts_toward_shipping", True)),
        )


@dataclass(frozen=True)
class ShippingRule:
    """Flat fee below ``free_threshold`` counted units, free at or above it."""

    flat_fee: int
    free_threshold: int

    def __post_init__(self) -> None:
        if self.flat_fee < 0 or self.free_threshold < 0:
            raise ConfigurationError(
                "shipping fee and free-shipping threshold must be non-negative",
                details={"flat_fee": self.flat_fee, "free_threshold": self.free_threshold},
            )

    def fee_for(self, counted_quantity: int) -> int:
        return 0 if counted_quantity >= self.free_threshold else self.flat_fee

    def to_dict(self) -> Dict[str, int]:
        return {"flat_fee": self.flat_fee, "free_threshold": self.free_threshold}

    @classmethod
    def from_dict(cls, d: Mapping[str, Any]) -> "ShippingRule":
        return cls(flat_fee=int(d["flat_fee"]), free_threshold=int(d["free_threshold"]))


@dataclass(frozen=True)
class PricingTable:
    """Per-line unit price and cost plus the global shipping rule. Read-only input."""

    lines: Mapping[str, ProductLine] = field(default_factory=dict)
    shipping: ShippingRule = field(default_factory=lambda: ShippingRule(4000, 6))

    def get(self, key: str) -> Optional[ProductLine]:
        return self.lines.get(key)

    def __contains__(self, key: object) -> bool:
        return key in self.lines

    @classmethod
    def from_config(cls, config: Any) -> "PricingTable":
        """Default table from an OrderDeskConfig."""
        lines = {
            SMALL_BOX: ProductLine(SMALL_BOX, "한과1호", config.small_box_price, config.small_box_cost),
            LARGE_BOX: ProductLine(LARGE_BOX, "한과2호", config.large_box_price, config.large_box_cost),
            WRAPPING: ProductLine(
                WRAPPING, "보자기", config.wrapping_price, config.wrapping_cost,
                counts_toward_shipping=False,
            ),
        }
        return cls(
            lines=lines,
            shipping=ShippingRule(config.shipping_fee, config.free_shipping_threshold),
        )
