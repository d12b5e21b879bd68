"""Shared validation helpers for the pydantic contracts."""
from __future__ import annotations

import re
from typing import Any, Mapping, Type, TypeVar, Union

from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

from orderdesk.core.exceptions import ValidationError

M = TypeVar("M", bound=BaseModel)

_PHONE_STRIP = re.compile(r"[\s\-().]")
# Seoul (02) numbers have 9 or 10 digits; every other prefix has 10 or 11.
_PHONE_DIGITS = re.compile(r"^(02\d{7,8}|0[13-9]\d{8,9})$")


def normalize_phone(raw: str) -> str:
    """Canonical hyphenated Korean phone number (010-1234-5678, 02-123-4567).

    Raises ValueError for digit counts no Korean number has (a +82 prefix is
    accepted).
    """
    digits = _PHONE_STRIP.sub("", raw or "")
    if digits.startswith("+82"):
        digits = "0" + digits[3:].lstrip("0")
    if not _PHONE_DIGITS.match(digits):
        raise ValueError(f"malformed phone number: {raw!r}")
    head = 2 if digits.startswith("02") else 3
    return f"{digits[:head]}-{digits[head:-4]}-{digits[-4:]}"


def canonical_phone(raw: str) -> str:
    """normalize_phone, raising the project's ValidationError."""
    try:
        return normalize_phone(raw)
    except ValueError as exc:
        raise ValidationError(str(exc), details={"field": "phone", "value": raw}) from exc


def parse_payload(schema: Type[M], data: Union[M, Mapping[str, Any]]) -> M:
    """Validate ``data`` against ``schema``; pydantic errors become ValidationError."""
    if isinstance(data, schema):
        return data
    try:
        return schema.model_validate(data)
    except PydanticValidationError as exc:
        raise ValidationError(
            f"Invalid {schema.__name__}",
            details={"errors": exc.errors(include_url=False, include_context=False)},
            cause=exc,
        ) from exc
