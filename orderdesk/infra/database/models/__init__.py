"""
orderdesk.infra.database.models – SQLAlchemy 2.0 ORM models.

Exports Base, mixins, and all model classes.
"""
from orderdesk.infra.database.models.base import Base, CreatedAtMixin, TimestampMixin
from orderdesk.infra.database.models.customer import Customer
from orderdesk.infra.database.models.order import Order
from orderdesk.infra.database.models.setting import Setting

__all__ = [
    "Base",
    "CreatedAtMixin",
    "TimestampMixin",
    "Order",
    "Customer",
    "Setting",
]
