"""Order ORM model."""
from __future__ import annotations

from datetime import datetime
from typing import Optional

from sqlalchemy import Boolean, DateTime, Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from orderdesk.infra.database.models.base import Base, CreatedAtMixin, JSONType


class Order(Base, CreatedAtMixin):
    """A customer order. Financial totals beyond total_amount are derived, not stored.

    No updated_at column: a soft-delete/restore round-trip must leave the row
    identical apart from is_deleted/deleted_at.
    """

    __tablename__ = "orders"
    __table_args__ = (
        Index("ix_orders_order_number", "order_number", unique=True),
        Index("ix_orders_customer_phone_is_deleted", "customer_phone", "is_deleted"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    # Human-readable YYMMDD-N
    order_number: Mapped[str] = mapped_column(String(20), nullable=False)

    # Customer reference
    customer_name: Mapped[str] = mapped_column(Text, nullable=False)
    customer_phone: Mapped[str] = mapped_column(String(20), nullable=False)
    zip_code: Mapped[Optional[str]] = mapped_column(String(10), nullable=True)
    address1: Mapped[str] = mapped_column(Text, nullable=False)
    address2: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    special_requests: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    user_id: Mapped[Optional[int]] = mapped_column(Integer, nullable=True, index=True)

    # Line items
    small_box_quantity: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    large_box_quantity: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    wrapping_quantity: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    # Extra product lines: line key → quantity
    extra_quantities: Mapped[dict] = mapped_column(JSONType, nullable=False, default=dict)

    # Money (KRW, integer units)
    shipping_fee: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    total_amount: Mapped[int] = mapped_column(Integer, nullable=False)
    actual_paid_amount: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    discount_amount: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    discount_reason: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    # Per-order unit cost overrides (fall back to the pricing table)
    small_box_cost: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    large_box_cost: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)

    # Lifecycle
    status: Mapped[str] = mapped_column(String(16), nullable=False, default="pending")
    # pending | scheduled | delivered
    payment_status: Mapped[str] = mapped_column(String(16), nullable=False, default="pending")
    # pending | partial | confirmed | refunded
    payment_confirmed_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    scheduled_date: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    delivered_date: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    seller_shipped: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    seller_shipped_date: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)

    # Trash
    is_deleted: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False, index=True)
    deleted_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)

    def __repr__(self) -> str:  # pragma: no cover - debug helper
        return f"<Order id={self.id} number={self.order_number!r} status={self.status}/{self.payment_status}>"
