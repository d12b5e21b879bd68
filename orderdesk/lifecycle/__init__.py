"""
orderdesk.lifecycle – pure order lifecycle rules (no I/O).

  status_engine   – status transitions and their field resets
  reconciliation  – payment classification (confirmed / discounted / partial / overpaid)
  financials      – pricing at intake, cost / shipping / profit for reporting
  customer_stats  – customer aggregates from an order set
  order_number    – YYMMDD-N candidates
"""
from orderdesk.lifecycle.customer_stats import CustomerStats, aggregate
from orderdesk.lifecycle.financials import OrderFinancials, Quote, derive, quote
from orderdesk.lifecycle.order_number import next_order_number
from orderdesk.lifecycle.reconciliation import (
    ReconciliationOutcome,
    ReconciliationResult,
    reconcile,
)
from orderdesk.lifecycle.status_engine import STATUS_RESETS, plan_seller_shipped, plan_transition
from orderdesk.lifecycle.types import (
    OrderStatus,
    PaymentStatus,
    PricingTable,
    ProductLine,
    ShippingRule,
    StaffRole,
)

__all__ = [
    "OrderStatus",
    "PaymentStatus",
    "StaffRole",
    "PricingTable",
    "ProductLine",
    "ShippingRule",
    "STATUS_RESETS",
    "plan_transition",
    "plan_seller_shipped",
    "ReconciliationOutcome",
    "ReconciliationResult",
    "reconcile",
    "OrderFinancials",
    "Quote",
    "quote",
    "derive",
    "CustomerStats",
    "aggregate",
    "next_order_number",
]
