"""
mfg_erp/serializers.py

JSON-safe snapshots of model instances for the API responses.

NOTES:
- Captures scalar column values only (not relationships).
- Decimal -> string (no float rounding), Enum -> value, date/datetime -> ISO 8601.
"""

from __future__ import annotations

import enum
from datetime import date, datetime
from decimal import Decimal
from typing import Any, Dict, Iterable, Optional

from sqlalchemy import inspect

_HIDDEN = {"password_hash", "version"}


def json_safe(value: Any) -> Any:
    if value is None:
        return None
    if isinstance(value, enum.Enum):
        return value.value
    if isinstance(value, Decimal):
        return str(value)
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    return value


def serialize_model(instance: Any, extra: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
    """Column attributes of a mapped instance, keyed by attribute name."""
    data: Dict[str, Any] = {}
    for attr in inspect(instance).mapper.column_attrs:
        if attr.key in _HIDDEN:
            continue
        data[attr.key] = json_safe(getattr(instance, attr.key))
    if extra:
        data.update({k: json_safe(v) for k, v in extra.items()})
    return data


def serialize_many(instances: Iterable[Any]) -> list:
    return [serialize_model(i) for i in instances]


def serialize_sale(sale) -> Dict[str, Any]:
    data = serialize_model(sale, {"paid_amount": sale.paid_amount(), "amount_due": sale.amount_due()})
    data["items"] = serialize_many(sale.items)
    data["payments"] = serialize_many(sale.payments)
    return data


def serialize_batch(batch) -> Dict[str, Any]:
    data = serialize_model(batch, {"total_cost": batch.total_cost()})
    data["material_usages"] = serialize_many(batch.material_usages)
    data["costs"] = serialize_many(batch.costs)
    return data
