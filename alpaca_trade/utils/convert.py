"""Value coercion helpers for JSON payloads.

Alpaca REST returns strings for monetary fields and numbers for market
data, so every converter here accepts both.
"""

from __future__ import annotations

from decimal import Decimal, InvalidOperation
from typing import Any


def to_decimal(value: float | int | str) -> Decimal:
    """Convert a float, int or string to Decimal safely.

    For string values (from REST APIs): Decimal(str_value) directly.
    For float values: Decimal(str(float_value)) to avoid IEEE 754
    precision issues.
    """
    if isinstance(value, bool):
        raise TypeError(f"Expected a number, got bool {value!r}")
    if isinstance(value, str):
        try:
            return Decimal(value)
        except InvalidOperation as e:
            raise ValueError(f"Not a decimal number: {value!r}") from e
    if isinstance(value, (int, float)):
        return Decimal(str(value))
    raise TypeError(f"Expected a number or numeric string, got {type(value).__name__}")


def to_int(value: Any) -> int:
    """Convert to int, accepting integral floats and numeric strings."""
    if isinstance(value, bool):
        raise TypeError(f"Expected an integer, got bool {value!r}")
    if isinstance(value, int):
        return value
    number = to_decimal(value)
    if number != number.to_integral_value():
        raise ValueError(f"Not an integral value: {value!r}")
    return int(number)


def to_bool(value: Any) -> bool:
    """Convert JSON booleans and their ``"true"``/``"false"`` string forms."""
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered == "true":
            return True
        if lowered == "false":
            return False
    raise ValueError(f"Not a boolean: {value!r}")


def to_str(value: Any) -> str:
    """Accept strings and numbers (ids sometimes arrive numeric)."""
    if isinstance(value, str):
        return value
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return str(value)
    raise TypeError(f"Expected a string, got {type(value).__name__}")


def to_str_tuple(value: Any) -> tuple[str, ...]:
    """Condition codes arrive as a list of strings or a single string."""
    if isinstance(value, str):
        return (value,)
    if isinstance(value, (list, tuple)):
        return tuple(to_str(item) for item in value)
    raise TypeError(f"Expected a list of strings, got {type(value).__name__}")
