"""Service layer: Order, Customer and Pricing services."""
from orderdesk.services.customer_service import CustomerService
from orderdesk.services.order_service import OrderService
from orderdesk.services.pricing_service import PricingService

__all__ = [
    "OrderService",
    "CustomerService",
    "PricingService",
]
