"""Validation helpers shared across the coordinator and its input surfaces."""

from __future__ import annotations

from datetime import date, datetime, time, timezone
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Optional

from .exceptions import ValidationError
from .models import parse_datetime

CATEGORY_MAX_LENGTH = 50
NOTE_MAX_LENGTH = 200


def quantize_two_decimals(amount: Decimal) -> Decimal:
    """Round the amount to two decimal places using HALF_UP rounding (10.005 -> 10.01)."""
    return amount.quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)


def parse_decimal(raw: object, field: str) -> Decimal:
    """Convert raw input to a finite Decimal without rounding."""
    if isinstance(raw, bool):
        raise ValidationError(f"{field} must be a numeric value")
    try:
        # str() first so floats keep their shortest repr (10.005, not 10.00499...).
        amount = Decimal(str(raw).strip())
    except (InvalidOperation, TypeError, ValueError) as exc:
        raise ValidationError(f"{field} must be a numeric value") from exc

    if not amount.is_finite():
        raise ValidationError(f"{field} must be a finite value")
    return amount


def parse_amount(raw: object, field: str) -> Decimal:
    """Convert raw input to a finite Decimal with exactly two fraction digits."""
    amount = parse_decimal(raw, field)
    try:
        return quantize_two_decimals(amount)
    except InvalidOperation as exc:
        # quantize fails once the result needs more digits than the context precision.
        raise ValidationError(f"{field} is too large") from exc


def validate_required_str(value: object, field: str, max_length: int) -> str:
    if not isinstance(value, str):
        raise ValidationError(f"{field} must be a string")
    trimmed = value.strip()
    if not trimmed:
        raise ValidationError(f"{field} cannot be empty")
    if len(trimmed) > max_length:
        raise ValidationError(f"{field} must be at most {max_length} characters")
    return trimmed


def validate_optional_str(value: object, field: str, max_length: int) -> Optional[str]:
    if value is None:
        return None
    if isinstance(value, str) and not value.strip():
        return None
    return validate_required_str(value, field, max_length)


def validate_datetime(value: object, field: str) -> datetime:
    """Accept datetimes, calendar dates and ISO 8601 strings; return UTC-aware datetime."""
    if isinstance(value, datetime):
        dt = value if value.tzinfo else value.replace(tzinfo=timezone.utc)
    elif isinstance(value, date):
        dt = datetime.combine(value, time.min, tzinfo=timezone.utc)
    elif isinstance(value, str):
        try:
            dt = parse_datetime(value)
        except ValueError as exc:
            raise ValidationError(f"{field} must be an ISO 8601 date or datetime") from exc
    else:
        raise ValidationError(f"{field} must be a datetime or ISO 8601 string")
    return dt.astimezone(timezone.utc)
