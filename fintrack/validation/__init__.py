"""Input validation package."""

from fintrack.validation.rules import (
    parse_kind,
    require_date,
    require_date_range,
    require_non_negative,
    require_positive,
    require_text,
    to_decimal,
)

__all__ = [
    "parse_kind",
    "require_date",
    "require_date_range",
    "require_non_negative",
    "require_positive",
    "require_text",
    "to_decimal",
]
