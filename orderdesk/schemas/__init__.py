"""Pydantic data contracts exchanged with intake, staff, lookup and reporting collaborators."""
from orderdesk.schemas.common import canonical_phone, normalize_phone, parse_payload
from orderdesk.schemas.customer import AddressUsage, CustomerCreate, CustomerOut, CustomerUpdate
from orderdesk.schemas.order import (
    FinancialsOut,
    FinancialUpdate,
    OrderCreate,
    OrderEdit,
    OrderOut,
    OrderView,
    PaymentUpdate,
)
from orderdesk.schemas.pricing import ProductLineInput, ShippingRuleInput

__all__ = [
    "normalize_phone",
    "canonical_phone",
    "parse_payload",
    "OrderCreate",
    "OrderEdit",
    "PaymentUpdate",
    "FinancialUpdate",
    "FinancialsOut",
    "OrderOut",
    "OrderView",
    "CustomerCreate",
    "CustomerUpdate",
    "CustomerOut",
    "AddressUsage",
    "ProductLineInput",
    "ShippingRuleInput",
]
