"""Small coercion helpers for request payloads; all failures raise InvalidInput."""

from __future__ import annotations

import uuid
from decimal import Decimal, InvalidOperation
from typing import Any

from .errors import InvalidInput

# 9,999,999,999,999.99 fits Numeric(15, 2)
MAX_AMOUNT = Decimal("9999999999999.99")


def require_fields(payload: dict | None, *fields: str) -> dict:
    if payload is None:
        payload = {}
    if not isinstance(payload, dict):
        raise InvalidInput(detail="JSON object expected")
    missing = [f for f in fields if payload.get(f) in (None, "")]
    if missing:
        raise InvalidInput(detail=f"missing required fields: {', '.join(missing)}")
    return payload


def as_uuid(value: Any, field: str) -> str:
    if not isinstance(value, str):
        raise InvalidInput(detail=f"{field} must be a UUID string")
    try:
        return str(uuid.UUID(value))
    except ValueError:
        raise InvalidInput(detail=f"{field} must be a UUID string")


def as_optional_uuid(value: Any, field: str) -> str | None:
    if value in (None, ""):
        return None
    return as_uuid(value, field)


def as_decimal(value: Any, field: str, *, minimum: Decimal | None = None, allow_equal: bool = True) -> Decimal:
    # bool is an int subclass; reject it explicitly
    if isinstance(value, bool) or value is None:
        raise InvalidInput(detail=f"{field} must be a number")
    try:
        result = Decimal(str(value))
    except (InvalidOperation, ValueError):
        raise InvalidInput(detail=f"{field} must be a number")
    if not result.is_finite():
        raise InvalidInput(detail=f"{field} must be a finite number")
    if result > MAX_AMOUNT:
        raise InvalidInput(detail=f"{field} is too large")
    if minimum is not None:
        if allow_equal and result < minimum:
            raise InvalidInput(detail=f"{field} must be >= {minimum}")
        if not allow_equal and result <= minimum:
            raise InvalidInput(detail=f"{field} must be > {minimum}")
    return result


def as_positive_int(value: Any, field: str) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise InvalidInput(detail=f"{field} must be a positive integer")
    if value <= 0:
        raise InvalidInput(detail=f"{field} must be a positive integer")
    return value


def as_choice(value: Any, field: str, choices: tuple[str, ...]) -> str:
    if value not in choices:
        raise InvalidInput(detail=f"{field} must be one of {', '.join(choices)}")
    return value


def as_text(value: Any, field: str, *, max_length: int = 255, required: bool = True) -> str | None:
    if value is None or (isinstance(value, str) and not value.strip()):
        if required:
            raise InvalidInput(detail=f"{field} is required")
        return None
    if not isinstance(value, str):
        raise InvalidInput(detail=f"{field} must be a string")
    value = value.strip()
    if len(value) > max_length:
        raise InvalidInput(detail=f"{field} exceeds max length {max_length}")
    return value
