"""Shared ``@validates`` helpers for numeric model columns.

Each helper takes the attribute name and the incoming value, returns the
value unchanged when it is acceptable and raises ``ValueError`` otherwise.
``None`` is always let through; nullability is the column's concern.
"""

from decimal import Decimal


def _as_decimal(value) -> Decimal:
    return value if isinstance(value, Decimal) else Decimal(str(value))


def non_negative(key: str, value):
    if value is not None and _as_decimal(value) < 0:
        raise ValueError(f"{key} cannot be negative, got {value}")
    return value


def positive(key: str, value):
    if value is not None and _as_decimal(value) <= 0:
        raise ValueError(f"{key} must be positive, got {value}")
    return value


def in_range(key: str, value, low, high):
    """Inclusive range check, e.g. a 0-5 spice level."""
    if value is not None:
        v = _as_decimal(value)
        if v < low or v > high:
            raise ValueError(f"{key} must be between {low} and {high}, got {value}")
    return value
