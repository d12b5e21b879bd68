"""Pydantic contracts for order intake, staff edits and reporting."""
from __future__ import annotations

from datetime import datetime
from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from orderdesk.lifecycle.types import BUILTIN_LINES, OrderStatus, PaymentStatus
from orderdesk.schemas.common import normalize_phone


def _check_extra_quantities(value: Dict[str, int]) -> Dict[str, int]:
    for line, qty in value.items():
        if not line or not line.strip():
            raise ValueError("extra product line keys must be non-empty")
        if line in BUILTIN_LINES:
            raise ValueError(f"{line!r} has its own quantity field")
        if qty < 0:
            raise ValueError(f"quantity for {line!r} must be non-negative")
    return {line: qty for line, qty in value.items() if qty}


class OrderCreate(BaseModel):
    """What the public order form hands to intake."""

    model_config = ConfigDict(str_strip_whitespace=True, extra="forbid")

    customer_name: str = Field(..., min_length=1, max_length=100)
    customer_phone: str = Field(..., min_length=1, max_length=20)
    zip_code: Optional[str] = Field(None, max_length=10)
    address1: str = Field(..., min_length=1)
    address2: Optional[str] = None
    special_requests: Optional[str] = None
    user_id: Optional[int] = None
    small_box_quantity: int = Field(0, ge=0)
    large_box_quantity: int = Field(0, ge=0)
    wrapping_quantity: int = Field(0, ge=0)
    extra_quantities: Dict[str, int] = Field(default_factory=dict)
    scheduled_date: Optional[datetime] = None

    @field_validator("customer_phone")
    @classmethod
    def _phone(cls, v: str) -> str:
        return normalize_phone(v)

    @field_validator("extra_quantities")
    @classmethod
    def _extras(cls, v: Dict[str, int]) -> Dict[str, int]:
        return _check_extra_quantities(v)

    @model_validator(mode="after")
    def _has_items(self) -> "OrderCreate":
        if not (
            self.small_box_quantity
            or self.large_box_quantity
            or any(self.extra_quantities.values())
        ):
            raise ValueError("an order needs at least one product")
        return self


class OrderEdit(BaseModel):
    """Customer-facing edit; only allowed while the order is pending/pending."""

    model_config = ConfigDict(str_strip_whitespace=True, extra="forbid")

    customer_name: Optional[str] = Field(None, min_length=1, max_length=100)
    customer_phone: Optional[str] = Field(None, min_length=1, max_length=20)
    zip_code: Optional[str] = Field(None, max_length=10)
    address1: Optional[str] = Field(None, min_length=1)
    address2: Optional[str] = None
    special_requests: Optional[str] = None
    small_box_quantity: Optional[int] = Field(None, ge=0)
    large_box_quantity: Optional[int] = Field(None, ge=0)
    wrapping_quantity: Optional[int] = Field(None, ge=0)
    extra_quantities: Optional[Dict[str, int]] = None

    @field_validator("customer_phone")
    @classmethod
    def _phone(cls, v: Optional[str]) -> Optional[str]:
        return normalize_phone(v) if v is not None else None

    @field_validator("extra_quantities")
    @classmethod
    def _extras(cls, v: Optional[Dict[str, int]]) -> Optional[Dict[str, int]]:
        return _check_extra_quantities(v) if v is not None else None

    @model_validator(mode="after")
    def _required_not_cleared(self) -> "OrderEdit":
        for name in ("customer_name", "customer_phone", "address1"):
            if name in self.model_fields_set and getattr(self, name) is None:
                raise ValueError(f"{name} cannot be cleared")
        return self


class PaymentUpdate(BaseModel):
    model_config = ConfigDict(extra="forbid")

    payment_status: PaymentStatus
    actual_paid_amount: Optional[int] = Field(None, ge=0)
    discount_reason: Optional[str] = None
    is_discount: Optional[bool] = Field(
        None,
        description="Explicit discount flag; when omitted a reason containing '할인' marks a discount.",
    )


class FinancialUpdate(BaseModel):
    """Staff financial edit. Only fields that are set are written; None clears a value."""

    model_config = ConfigDict(extra="forbid")

    small_box_cost: Optional[int] = Field(None, ge=0)
    large_box_cost: Optional[int] = Field(None, ge=0)
    actual_paid_amount: Optional[int] = Field(None, ge=0)
    discount_amount: Optional[int] = Field(None, ge=0)
    discount_reason: Optional[str] = None


class FinancialsOut(BaseModel):
    small_box_cost: int
    large_box_cost: int
    total_cost: int
    shipping_fee: int
    net_profit: int
    unpriced_lines: List[str] = Field(default_factory=list)


class OrderOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    order_number: str
    customer_name: str
    customer_phone: str
    zip_code: Optional[str] = None
    address1: str
    address2: Optional[str] = None
    special_requests: Optional[str] = None
    user_id: Optional[int] = None
    small_box_quantity: int
    large_box_quantity: int
    wrapping_quantity: int
    extra_quantities: Dict[str, int] = Field(default_factory=dict)
    shipping_fee: int
    total_amount: int
    actual_paid_amount: Optional[int] = None
    discount_amount: Optional[int] = None
    discount_reason: Optional[str] = None
    status: OrderStatus
    payment_status: PaymentStatus
    payment_confirmed_at: Optional[datetime] = None
    scheduled_date: Optional[datetime] = None
    delivered_date: Optional[datetime] = None
    seller_shipped: bool = False
    seller_shipped_date: Optional[datetime] = None
    is_deleted: bool = False
    deleted_at: Optional[datetime] = None
    created_at: datetime


class OrderView(OrderOut):
    """Order with derived financials attached (reporting / export)."""

    financials: FinancialsOut
