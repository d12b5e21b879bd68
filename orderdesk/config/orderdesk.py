"""
orderdesk.config.orderdesk – business settings: numbering, timezone, default pricing.

Env vars: ORDER_TIMEZONE, ORDER_NUMBER_MAX_ATTEMPTS, PRICE_SMALL_BOX, PRICE_LARGE_BOX,
PRICE_WRAPPING, COST_SMALL_BOX, COST_LARGE_BOX, COST_WRAPPING, SHIPPING_FEE,
FREE_SHIPPING_THRESHOLD.

The pricing values here only seed the table; once staff save prices through
PricingService the stored settings win.
"""
from __future__ import annotations

import os
from dataclasses import dataclass
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError


def _env_int(name: str, default: int) -> int:
    raw = os.environ.get(name)
    if raw is None or not raw.strip():
        return default
    return int(raw)


@dataclass(frozen=True)
class OrderDeskConfig:
    timezone: str = "Asia/Seoul"
    """Business timezone; decides the calendar date in order numbers."""

    order_number_max_attempts: int = 5
    """Inserts tried before giving up on a date-scoped order number."""

    small_box_price: int = 15000
    large_box_price: int = 18000
    wrapping_price: int = 1000
    small_box_cost: int = 0
    large_box_cost: int = 0
    wrapping_cost: int = 2000
    shipping_fee: int = 4000
    free_shipping_threshold: int = 6

    def __post_init__(self) -> None:
        try:
            ZoneInfo(self.timezone)
        except (ZoneInfoNotFoundError, ValueError) as exc:
            raise ValueError(f"timezone {self.timezone!r} is not a known IANA zone") from exc
        if self.order_number_max_attempts < 1:
            raise ValueError("order_number_max_attempts must be >= 1")
        for name in (
            "small_box_price",
            "large_box_price",
            "wrapping_price",
            "small_box_cost",
            "large_box_cost",
            "wrapping_cost",
            "shipping_fee",
            "free_shipping_threshold",
        ):
            value = getattr(self, name)
            if not isinstance(value, int) or value < 0:
                raise ValueError(f"{name} must be a non-negative integer, got {value!r}")

    @property
    def tzinfo(self) -> ZoneInfo:
        return ZoneInfo(self.timezone)

    @classmethod
    def from_env(cls) -> OrderDeskConfig:
        return cls(
            timezone=os.environ.get("ORDER_TIMEZONE", "Asia/Seoul"),
            order_number_max_attempts=_env_int("ORDER_NUMBER_MAX_ATTEMPTS", 5),
            small_box_price=_env_int("PRICE_SMALL_BOX", 15000),
            large_box_price=_env_int("PRICE_LARGE_BOX", 18000),
            wrapping_price=_env_int("PRICE_WRAPPING", 1000),
            small_box_cost=_env_int("COST_SMALL_BOX", 0),
            large_box_cost=_env_int("COST_LARGE_BOX", 0),
            wrapping_cost=_env_int("COST_WRAPPING", 2000),
            shipping_fee=_env_int("SHIPPING_FEE", 4000),
            free_shipping_threshold=_env_int("FREE_SHIPPING_THRESHOLD", 6),
        )


def load_orderdesk_config() -> OrderDeskConfig:
    return OrderDeskConfig.from_env()
