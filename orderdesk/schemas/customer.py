"""Pydantic contracts for the customer address book."""
from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from orderdesk.schemas.common import normalize_phone


class CustomerCreate(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True, extra="forbid")

    name: str = Field(..., min_length=1, max_length=100)
    phone: str = Field(..., min_length=1, max_length=20)
    zip_code: Optional[str] = Field(None, max_length=10)
    address1: Optional[str] = None
    address2: Optional[str] = None
    user_id: Optional[int] = None

    @field_validator("phone")
    @classmethod
    def _phone(cls, v: str) -> str:
        return normalize_phone(v)


class CustomerUpdate(BaseModel):
    """Identity/address edit. Aggregates are not editable (extra fields are rejected)."""

    model_config = ConfigDict(str_strip_whitespace=True, extra="forbid")

    name: Optional[str] = Field(None, min_length=1, max_length=100)
    zip_code: Optional[str] = Field(None, max_length=10)
    address1: Optional[str] = None
    address2: Optional[str] = None
    user_id: Optional[int] = None


class CustomerOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    phone: str
    zip_code: Optional[str] = None
    address1: Optional[str] = None
    address2: Optional[str] = None
    user_id: Optional[int] = None
    order_count: int
    total_spent: int
    last_order_date: Optional[datetime] = None
    is_deleted: bool = False
    deleted_at: Optional[datetime] = None


class AddressUsage(BaseModel):
    zip_code: Optional[str] = None
    address1: str
    address2: Optional[str] = None
    order_count: int
    last_used: Optional[datetime] = None
