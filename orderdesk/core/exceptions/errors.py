"""
Built-in exception types. Add new ones here.
"""
from __future__ import annotations

from orderdesk.core.exceptions.base import ProjectError


class ConfigurationError(ProjectError):
    """Invalid or missing configuration (including the pricing table)."""

    default_code = "CONFIGURATION_ERROR"
    default_http_status = 500


class ValidationError(ProjectError):
    """Input validation failed (identity fields, phone, quantities, amounts)."""

    default_code = "VALIDATION_ERROR"
    default_http_status = 400


class NotFoundError(ProjectError):
    """Order or customer not found, or soft-deleted where a live one was required."""

    default_code = "NOT_FOUND"
    default_http_status = 404


class PreconditionFailedError(ProjectError):
    """Operation not allowed in the record's current state or for the acting role."""

    default_code = "PRECONDITION_FAILED"
    default_http_status = 412


class ConflictError(ProjectError):
    """Resource state conflict (e.g. duplicate phone, order number exhausted)."""

    default_code = "CONFLICT"
    default_http_status = 409
