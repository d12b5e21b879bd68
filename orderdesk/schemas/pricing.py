"""Pydantic contracts for pricing-table edits."""
from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field


class ProductLineInput(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True, extra="forbid")

    key: str = Field(..., min_length=1, max_length=64, pattern=r"^[a-z0-9_]+$")
    name: str = Field(..., min_length=1, max_length=100)
    unit_price: int = Field(..., ge=0)
    unit_cost: int = Field(..., ge=0)
    counts_toward_shipping: bool = True


class ShippingRuleInput(BaseModel):
    model_config = ConfigDict(extra="forbid")

    flat_fee: int = Field(..., ge=0)
    free_threshold: int = Field(..., ge=0)
