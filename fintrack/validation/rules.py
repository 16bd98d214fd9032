"""
Input Validation Rules

DESIGN DECISION: Every service checks its inputs with these helpers
before it touches storage. Each helper either returns the normalized
value or raises ValidationError with a message naming the field.

IMPORTANT: Validation NEVER silently fixes input. Whitespace is
stripped from names, nothing else is rewritten.
"""

from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from typing import Any, Optional, Union

from fintrack.errors import ValidationError
from fintrack.models import CategoryKind, DateRange


AmountLike = Union[Decimal, int, str]


def require_text(value: Optional[str], field: str) -> str:
    """Return value stripped, or fail if it is missing or blank."""
    if value is None or not isinstance(value, str) or not value.strip():
        raise ValidationError(f"{field} cannot be empty")
    return value.strip()


def to_decimal(value: Any, field: str) -> Decimal:
    """
    Convert an amount to Decimal.
    
    Floats are refused: a binary float cannot carry an exact
    monetary value, and converting one would hide the rounding.
    """
    if value is None:
        raise ValidationError(f"{field} is required")
    if isinstance(value, bool) or isinstance(value, float):
        raise ValidationError(
            f"{field} must be a Decimal, int or numeric string, got {type(value).__name__}"
        )
    if isinstance(value, Decimal):
        amount = value
    elif isinstance(value, (int, str)):
        try:
            amount = Decimal(str(value).strip())
        except InvalidOperation:
            raise ValidationError(f"{field} is not a valid amount: {value!r}")
    else:
        raise ValidationError(f"{field} has unsupported type {type(value).__name__}")
    
    if not amount.is_finite():
        raise ValidationError(f"{field} must be a finite amount")
    return amount


def require_positive(value: Any, field: str) -> Decimal:
    amount = to_decimal(value, field)
    if amount <= 0:
        raise ValidationError(f"{field} must be positive")
    return amount


def require_non_negative(value: Any, field: str) -> Decimal:
    amount = to_decimal(value, field)
    if amount < 0:
        raise ValidationError(f"{field} cannot be negative")
    return amount


def parse_kind(value: Any) -> CategoryKind:
    """Accept a CategoryKind or its string value (any case)."""
    if isinstance(value, CategoryKind):
        return value
    if isinstance(value, str):
        try:
            return CategoryKind(value.strip().lower())
        except ValueError:
            pass
    raise ValidationError(
        f"Invalid kind: {value!r}. Must be 'income' or 'expense'"
    )


def require_date(value: Any, field: str) -> date:
    if isinstance(value, datetime):
        return value.date()
    if not isinstance(value, date):
        raise ValidationError(f"{field} must be a date")
    return value


def require_date_range(start: Any, end: Any) -> DateRange:
    """Build an inclusive DateRange, failing if end precedes start."""
    start = require_date(start, "Start date")
    end = require_date(end, "End date")
    if end < start:
        raise ValidationError(
            f"Invalid period: start date {start} must be on or before end date {end}"
        )
    return DateRange(start=start, end=end)
