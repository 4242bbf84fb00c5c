"""
mfg_erp/services/procurement.py

Procurement Engine: raw-material purchases and their side effects.

A purchase's effect while it exists is:
    material stock += quantity
    fund balance   -= total_amount   (when paid from a fund)

Edit and delete share one model: the compensating delta of the old effect
(reverse_effect) combined with the new effect (None for delete). Any failure
inside an edit or delete rolls back every part of it.

Lock order: fund rows first, then raw-material rows by ascending id.
"""

from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass, replace
from decimal import Decimal
from typing import Any, Dict, Mapping, Optional, Tuple

from ..errors import ValidationError
from ..extensions import db
from ..models import ActionType, FundUsageType, Purchase, RawMaterial, Role, _to_decimal
from ..security import ActingUser, require_role
from ..utils import clean_text, money, parse_optional_int, require_date, to_money, to_quantity
from . import funds
from .base import atomic, get_for_update, get_or_404, tolerance
from .inventory import apply_material_delta

MODULE = "purchases"
PURCHASE_ROLES = (Role.OWNER, Role.INCHARGE)

_TEXT_FIELDS = ("vendor_name", "vendor_contact", "invoice_number", "notes")


# ---------------------------------------------------------------------
# Effects (pure)
# ---------------------------------------------------------------------
@dataclass(frozen=True)
class PurchaseEffect:
    material_id: int
    quantity: Decimal
    fund_id: Optional[int]
    total_amount: Decimal

    @classmethod
    def of(cls, purchase: Purchase) -> "PurchaseEffect":
        return cls(
            material_id=purchase.material_id,
            quantity=_to_decimal(purchase.quantity),
            fund_id=purchase.fund_id,
            total_amount=_to_decimal(purchase.total_amount),
        )


def reverse_effect(effect: PurchaseEffect) -> PurchaseEffect:
    """The compensating delta: applying it undoes `effect`."""
    return replace(effect, quantity=-effect.quantity, total_amount=-effect.total_amount)


def net_changes(
    old: Optional[PurchaseEffect],
    new: Optional[PurchaseEffect],
) -> Tuple[Dict[int, Decimal], Dict[int, Decimal]]:
    """
    Net stock change per material and net fund draw per fund for old -> new.

    Create is (None, new); delete is (old, None). Zero entries are dropped, so
    an edit to identical values yields two empty dicts.
    """
    stock: Dict[int, Decimal] = defaultdict(Decimal)
    drawn: Dict[int, Decimal] = defaultdict(Decimal)
    parts = []
    if old is not None:
        parts.append(reverse_effect(old))
    if new is not None:
        parts.append(new)
    for effect in parts:
        stock[effect.material_id] += effect.quantity
        if effect.fund_id is not None:
            drawn[effect.fund_id] += effect.total_amount
    return (
        {k: money(v) for k, v in stock.items() if v != 0},
        {k: money(v) for k, v in drawn.items() if v != 0},
    )


# ---------------------------------------------------------------------
# Validation
# ---------------------------------------------------------------------
def _validated(values: Mapping[str, Any]) -> Dict[str, Any]:
    """Check and normalise purchase fields before any row is locked."""
    material_id = parse_optional_int(values.get("material_id"))
    if material_id is None:
        raise ValidationError("Raw material is required.")

    quantity = to_quantity(values.get("quantity"), "Quantity")
    unit_price = to_money(values.get("unit_price"), "Unit price")
    expected = money(quantity * unit_price)

    raw_total = values.get("total_amount")
    total = expected if raw_total in (None, "") else to_money(raw_total, "Total amount")
    if abs(total - expected) > tolerance():
        raise ValidationError(
            f"Total amount {total} does not match quantity x unit price ({expected}).",
        )

    fund_id = values.get("fund_id")
    if fund_id in ("", None):
        fund_id = None
    else:
        fund_id = parse_optional_int(fund_id)
        if fund_id is None:
            raise ValidationError("Invalid fund selected.")

    cleaned = {
        "material_id": material_id,
        "quantity": quantity,
        "unit_price": unit_price,
        "total_amount": total,
        "fund_id": fund_id,
        "purchase_date": require_date(values.get("purchase_date"), "Purchase date"),
    }
    for name in _TEXT_FIELDS:
        cleaned[name] = clean_text(values.get(name))
    return cleaned


def _current_values(purchase: Purchase) -> Dict[str, Any]:
    values = {
        "material_id": purchase.material_id,
        "quantity": purchase.quantity,
        "unit_price": purchase.unit_price,
        "total_amount": purchase.total_amount,
        "fund_id": purchase.fund_id,
        "purchase_date": purchase.purchase_date,
    }
    for name in _TEXT_FIELDS:
        values[name] = getattr(purchase, name)
    return values


def _apply_stock(stock_changes: Dict[int, Decimal]) -> None:
    for material_id in sorted(stock_changes):
        apply_material_delta(material_id, stock_changes[material_id])


def _detach_usage(purchase: Purchase):
    usage = purchase.fund_usage
    purchase.fund_usage = None
    purchase.fund_usage_id = None
    return usage


# ---------------------------------------------------------------------
# Operations
# ---------------------------------------------------------------------
def create_purchase(actor: ActingUser, **values: Any) -> Purchase:
    """Record a purchase: stock += quantity, and draw total_amount from the fund if given."""
    with atomic(actor, MODULE, "Failed to save purchase") as outcome:
        require_role(actor, PURCHASE_ROLES, "record purchases")
        data = _validated(values)
        material = get_or_404(RawMaterial, data["material_id"], "Raw material")
        if data["fund_id"] is not None:
            funds.lock_fund(data["fund_id"])

        purchase = Purchase(purchased_by=actor.id, **data)
        db.session.add(purchase)
        db.session.flush()

        if data["fund_id"] is not None:
            purchase.fund_usage = funds.allocate(
                data["fund_id"],
                data["total_amount"],
                FundUsageType.PURCHASE,
                purchase.id,
                actor,
                f"Purchase of {data['quantity']} {material.unit} {material.name}",
            )

        stock_changes, _ = net_changes(None, PurchaseEffect.of(purchase))
        _apply_stock(stock_changes)

        outcome.record(
            ActionType.CREATE,
            f"Added purchase of {data['quantity']} {material.unit} {material.name} for {data['total_amount']}",
            purchase.id,
        )
    return purchase


def edit_purchase(actor: ActingUser, purchase_id: int, changes: Mapping[str, Any]) -> Purchase:
    """
    Edit a purchase: reverse the previous effect and apply the new one.

    Keys missing from `changes` keep their current value; "fund_id": None
    removes the fund.
    """
    with atomic(actor, MODULE, "Failed to update purchase") as outcome:
        outcome.entity_id = purchase_id
        require_role(actor, PURCHASE_ROLES, "edit purchases")
        purchase = get_for_update(Purchase, purchase_id, "Purchase")

        merged = _current_values(purchase)
        merged.update(changes)
        if "total_amount" not in changes and ("quantity" in changes or "unit_price" in changes):
            # recomputed from the new quantity x unit price
            merged["total_amount"] = None
        data = _validated(merged)
        material = get_or_404(RawMaterial, data["material_id"], "Raw material")

        old = PurchaseEffect.of(purchase)
        new = PurchaseEffect(
            material_id=data["material_id"],
            quantity=data["quantity"],
            fund_id=data["fund_id"],
            total_amount=data["total_amount"],
        )

        # Funds: resize on the same fund, otherwise reverse then allocate
        if old.fund_id == new.fund_id and purchase.fund_usage is not None:
            funds.adjust(purchase.fund_usage, new.total_amount)
        else:
            usage = _detach_usage(purchase)
            if usage is not None:
                funds.reverse(usage)
            if new.fund_id is not None:
                purchase.fund_usage = funds.allocate(
                    new.fund_id,
                    new.total_amount,
                    FundUsageType.PURCHASE,
                    purchase.id,
                    actor,
                    f"Purchase of {new.quantity} {material.unit} {material.name}",
                )

        stock_changes, _ = net_changes(old, new)
        _apply_stock(stock_changes)

        for name, value in data.items():
            setattr(purchase, name, value)

        outcome.record(ActionType.UPDATE, f"Updated purchase #{purchase.id} ({material.name})", purchase.id)
    return purchase


def delete_purchase(actor: ActingUser, purchase_id: int) -> None:
    """Delete a purchase, taking its quantity back out of stock and refunding its fund."""
    with atomic(actor, MODULE, "Failed to delete purchase") as outcome:
        outcome.entity_id = purchase_id
        require_role(actor, PURCHASE_ROLES, "delete purchases")
        purchase = get_for_update(Purchase, purchase_id, "Purchase")
        old = PurchaseEffect.of(purchase)
        material_name = purchase.material.name

        usage = _detach_usage(purchase)
        if usage is not None:
            funds.reverse(usage)

        stock_changes, _ = net_changes(old, None)
        _apply_stock(stock_changes)

        db.session.delete(purchase)
        outcome.record(
            ActionType.DELETE,
            f"Deleted purchase #{purchase_id} of {old.quantity} {material_name}",
            purchase_id,
        )
