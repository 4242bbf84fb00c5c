"""
Parsing and money helpers shared by services and routes. This includes:
- to_money / to_quantity: strict Decimal parsing for engine arguments.
- parse_decimal / parse_optional_int / parse_date: lenient parsing of request values.
- parse_choice: map raw strings to closed enums.
- require_reason: non-empty reason check for corrections and voids.
"""

from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Any, Type, TypeVar

from .errors import ValidationError

E = TypeVar("E")

CENT = Decimal("0.01")


def money(x: Decimal) -> Decimal:
    return x.quantize(CENT, rounding=ROUND_HALF_UP)


def parse_decimal(value: Any) -> Decimal | None:
    """Parse decimal from user input (accepts comma or dot). Returns None when blank or invalid."""
    if value is None:
        return None
    if isinstance(value, Decimal):
        return value
    if isinstance(value, (int, float)):
        return Decimal(str(value))
    raw = str(value).strip().replace(",", ".")
    if raw == "":
        return None
    try:
        result = Decimal(raw)
    except (InvalidOperation, ValueError):
        return None
    if not result.is_finite():
        return None
    return result


def parse_optional_int(value: Any) -> int | None:
    """Parse optional int from form/query/JSON."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    raw = str(value).strip()
    if raw == "":
        return None
    try:
        return int(raw)
    except ValueError:
        return None


def parse_date(value: Any) -> date | None:
    """Accept date/datetime objects or ISO 'YYYY-MM-DD' strings."""
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    raw = str(value).strip()
    if raw == "":
        return None
    try:
        return datetime.strptime(raw[:10], "%Y-%m-%d").date()
    except ValueError:
        return None


def to_money(value: Any, label: str, *, allow_zero: bool = False) -> Decimal:
    """Strict: parse a money amount rounded to cents, > 0 (or >= 0 with allow_zero)."""
    amount = parse_decimal(value)
    if amount is None:
        raise ValidationError(f"{label} must be a valid number.")
    amount = money(amount)
    if amount < 0 or (amount == 0 and not allow_zero):
        raise ValidationError(f"{label} must be {'zero or more' if allow_zero else 'greater than zero'}.")
    return amount


def to_quantity(value: Any, label: str = "Quantity") -> Decimal:
    """Strict: positive material quantity with two decimals."""
    return to_money(value, label)


def to_units(value: Any, label: str = "Quantity", *, allow_zero: bool = False) -> int:
    """Strict: whole product units."""
    if isinstance(value, bool):
        raise ValidationError(f"{label} must be a whole number.")
    if isinstance(value, int):
        units = value
    else:
        parsed = parse_decimal(value)
        if parsed is None or parsed != parsed.to_integral_value():
            raise ValidationError(f"{label} must be a whole number.")
        units = int(parsed)
    if units < 0 or (units == 0 and not allow_zero):
        raise ValidationError(f"{label} must be {'zero or more' if allow_zero else 'greater than zero'}.")
    return units


def require_date(value: Any, label: str) -> date:
    parsed = parse_date(value)
    if parsed is None:
        raise ValidationError(f"{label} is required (YYYY-MM-DD).")
    return parsed


def parse_choice(enum_cls: Type[E], value: Any, label: str) -> E:
    """Map a raw value to a member of a closed enum or raise ValidationError."""
    if isinstance(value, enum_cls):
        return value
    try:
        return enum_cls(str(value or "").strip().lower())
    except ValueError:
        allowed = ", ".join(m.value for m in enum_cls)
        raise ValidationError(f"Invalid {label}. Allowed: {allowed}.") from None


def require_reason(value: Any, label: str = "Reason") -> str:
    reason = (str(value) if value is not None else "").strip()
    if not reason:
        raise ValidationError(f"{label} is required.")
    return reason


def clean_text(value: Any) -> str | None:
    """Strip a free-text field; blank becomes None."""
    if value is None:
        return None
    text = str(value).strip()
    return text or None
