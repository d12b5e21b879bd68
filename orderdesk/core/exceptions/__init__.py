"""
Project exception system.

Usage:
    from orderdesk.core.exceptions import NotFoundError, ValidationError

    raise ValidationError("Invalid phone number", details={"field": "customer_phone"})
    raise NotFoundError(f"Order {order_id} not found", details={"order_id": order_id})

Callers translate ``exc.code`` / ``exc.http_status`` into user-facing responses;
the core never formats user-facing text itself.
"""
from orderdesk.core.exceptions.base import ProjectError
from orderdesk.core.exceptions.errors import (
    ConfigurationError,
    ConflictError,
    NotFoundError,
    PreconditionFailedError,
    ValidationError,
)

__all__ = [
    "ProjectError",
    "ConfigurationError",
    "ValidationError",
    "NotFoundError",
    "PreconditionFailedError",
    "ConflictError",
]
