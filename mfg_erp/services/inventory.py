"""
mfg_erp/services/inventory.py

Stock primitives: raw-material stock and location-partitioned product inventory.

Every read-modify-write goes through a locked row. Locks on several inventory
rows are always taken in Location declaration order.
"""

from __future__ import annotations

from decimal import Decimal
from typing import Dict, Iterable, Type

from ..errors import ErpError, InsufficientStock, NegativeStock, ValidationError
from ..extensions import db
from ..models import (
    ActionType,
    Inventory,
    InventoryAdjustment,
    Location,
    Product,
    RawMaterial,
    Role,
    _to_decimal,
)
from ..security import ActingUser, require_role
from ..utils import money, parse_choice, require_reason
from .base import atomic, get_for_update, get_or_404

MODULE = "inventory"


# ---------------------------------------------------------------------
# Raw materials
# ---------------------------------------------------------------------
def apply_material_delta(
    material_id: int,
    delta: Decimal,
    error: Type[ErpError] = NegativeStock,
) -> RawMaterial:
    """stock_quantity += delta under a row lock; `error` when it would drop below zero."""
    material = get_for_update(RawMaterial, material_id, "Raw material")
    current = _to_decimal(material.stock_quantity)
    updated = money(current + delta)
    if updated < 0:
        raise error(
            f"Not enough stock of {material.name}: {current} {material.unit} available, "
            f"{money(-delta)} {material.unit} required.",
            material_id=material.id,
        )
    material.stock_quantity = updated
    return material


# ---------------------------------------------------------------------
# Product inventory
# ---------------------------------------------------------------------
def lock_inventory(product_id: int, location: Location) -> Inventory:
    """Locked inventory row for (product, location); created at zero when missing."""
    row = (
        Inventory.query
        .filter_by(product_id=product_id, location=location)
        .with_for_update()
        .populate_existing()
        .first()
    )
    if row is None:
        row = Inventory(product_id=product_id, location=location, quantity=0)
        db.session.add(row)
        db.session.flush()
    return row


def lock_inventory_rows(product_id: int, locations: Iterable[Location]) -> Dict[Location, Inventory]:
    order = list(Location)
    rows: Dict[Location, Inventory] = {}
    for location in sorted(set(locations), key=order.index):
        rows[location] = lock_inventory(product_id, location)
    return rows


def apply_inventory_delta(
    product_id: int,
    location: Location,
    delta: int,
    error: Type[ErpError] = InsufficientStock,
    row: Inventory | None = None,
) -> Inventory:
    """quantity += delta on one location; `error` when it would go negative."""
    if row is None:
        row = lock_inventory(product_id, location)
    updated = (row.quantity or 0) + delta
    if updated < 0:
        product = db.session.get(Product, product_id)
        name = product.name if product else f"#{product_id}"
        raise error(
            f"Not enough {name} in {location.value}: {row.quantity or 0} available, {-delta} required.",
            product_id=product_id,
            location=location.value,
        )
    row.quantity = updated
    return row


def product_stock(product_id: int) -> dict:
    """Quantities per location plus the total."""
    get_or_404(Product, product_id, "Product")
    stock = {location.value: 0 for location in Location}
    for row in Inventory.query.filter_by(product_id=product_id).all():
        stock[row.location.value] = row.quantity
    stock["total"] = sum(stock[location.value] for location in Location)
    return stock


def adjust_inventory(actor: ActingUser, product_id, location, quantity_change, reason) -> InventoryAdjustment:
    """Manual correction of one location. The result may not be negative."""
    with atomic(actor, MODULE, "Failed to adjust inventory") as outcome:
        require_role(actor, (Role.OWNER, Role.INCHARGE), "adjust inventory")
        location = parse_choice(Location, location, "location")
        try:
            change = int(quantity_change)
        except (TypeError, ValueError):
            raise ValidationError("Quantity change must be a whole number.") from None
        if change == 0:
            raise ValidationError("Quantity change cannot be zero.")
        reason = require_reason(reason)

        product = get_or_404(Product, product_id, "Product")
        row = apply_inventory_delta(product.id, location, change, error=InsufficientStock)

        adjustment = InventoryAdjustment(
            product_id=product.id,
            location=location,
            quantity_change=change,
            reason=reason,
            adjusted_by=actor.id,
        )
        db.session.add(adjustment)
        db.session.flush()

        outcome.record(
            ActionType.UPDATE,
            f"Adjusted {product.name} in {location.value} by {change:+d} (now {row.quantity}): {reason}",
            adjustment.id,
        )
    return adjustment
