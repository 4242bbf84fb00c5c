"""
mfg_erp/services/manufacturing.py

Manufacturing Lifecycle.

Batch pipeline: pending -> cutting -> stitching -> ironing -> packaging -> completed
(see BatchStatus). Completing a batch credits the produced quantity to the
product's manufacturing inventory; from there a transfer moves it to wholesale.

IMPORTANT:
- Material usage and costs cannot be added to a completed batch.
- Deleting a batch reverses every stock and fund effect it had, in one transaction,
  and is refused once any of its output has been confirmed into another location.
"""

from __future__ import annotations

from collections import defaultdict
from datetime import date, datetime
from decimal import Decimal
from typing import Any, Dict, Iterable, List, Mapping, Optional

from sqlalchemy import func

from ..errors import InsufficientStock, InvalidTransition, NotReversible, ValidationError
from ..extensions import db
from ..models import (
    ActionType,
    BatchStatus,
    CostType,
    FundUsageType,
    InventoryTransfer,
    Location,
    ManufacturingBatch,
    ManufacturingCost,
    MaterialUsage,
    Product,
    ProductAdjustment,
    Purchase,
    RawMaterial,
    Role,
    TransferStatus,
    _to_decimal,
)
from ..security import ActingUser, require_role
from ..utils import (
    clean_text,
    money,
    parse_choice,
    parse_date,
    parse_optional_int,
    require_date,
    require_reason,
    to_money,
    to_quantity,
    to_units,
)
from . import funds, transfers
from .base import atomic, generate_reference, get_for_update, get_or_404
from .inventory import apply_inventory_delta, apply_material_delta

MODULE = "manufacturing"
BATCH_ROLES = (Role.OWNER, Role.INCHARGE)


def _lock_open_batch(batch_id: int) -> ManufacturingBatch:
    batch = get_for_update(ManufacturingBatch, batch_id, "Batch")
    if batch.status.is_terminal:
        raise InvalidTransition(f"Batch {batch.batch_number} is completed and can no longer be changed.")
    return batch


def _use_material(batch: ManufacturingBatch, material_id: int, quantity: Decimal, actor: ActingUser) -> MaterialUsage:
    material = apply_material_delta(material_id, -quantity, error=InsufficientStock)
    usage = MaterialUsage(
        batch=batch,
        material=material,
        quantity_used=quantity,
        recorded_by=actor.id,
    )
    db.session.add(usage)
    return usage


def _validated_materials(materials: Optional[Iterable[Mapping[str, Any]]]) -> Dict[int, Decimal]:
    """[{material_id, quantity}, ...] -> {material_id: total quantity}"""
    merged: Dict[int, Decimal] = defaultdict(Decimal)
    for line in materials or ():
        material_id = parse_optional_int(line.get("material_id"))
        if material_id is None:
            raise ValidationError("Each material line needs a material.")
        merged[material_id] += to_quantity(line.get("quantity"), "Material quantity")
    return dict(merged)


# ---------------------------------------------------------------------
# Batches
# ---------------------------------------------------------------------
def create_batch(
    actor: ActingUser,
    product_id: int,
    start_date=None,
    quantity_produced=0,
    expected_completion_date=None,
    notes: Optional[str] = None,
    materials: Optional[Iterable[Mapping[str, Any]]] = None,
) -> ManufacturingBatch:
    """Start a pending batch, optionally consuming an initial list of materials."""
    with atomic(actor, MODULE, "Failed to create batch") as outcome:
        require_role(actor, BATCH_ROLES, "create batches")
        quantity = to_units(quantity_produced or 0, "Quantity produced", allow_zero=True)
        start = require_date(start_date, "Start date")
        expected = parse_date(expected_completion_date)
        if expected is not None and expected < start:
            raise ValidationError("Expected completion date cannot be before the start date.")
        material_lines = _validated_materials(materials)

        product = get_or_404(Product, product_id, "Product")
        batch = ManufacturingBatch(
            batch_number=generate_reference("BATCH", ManufacturingBatch.batch_number),
            product_id=product.id,
            quantity_produced=quantity,
            status=BatchStatus.PENDING,
            start_date=start,
            expected_completion_date=expected,
            notes=clean_text(notes),
            created_by=actor.id,
        )
        db.session.add(batch)
        db.session.flush()

        for material_id in sorted(material_lines):
            _use_material(batch, material_id, material_lines[material_id], actor)

        outcome.record(ActionType.CREATE, f"Created batch {batch.batch_number} for {product.name}", batch.id)
    return batch


def record_material_usage(actor: ActingUser, batch_id: int, material_id, quantity) -> MaterialUsage:
    with atomic(actor, MODULE, "Failed to record material usage") as outcome:
        outcome.entity_id = batch_id
        require_role(actor, BATCH_ROLES, "record material usage")
        quantity = to_quantity(quantity, "Quantity used")
        material_id = parse_optional_int(material_id)
        if material_id is None:
            raise ValidationError("Raw material is required.")

        batch = _lock_open_batch(batch_id)
        usage = _use_material(batch, material_id, quantity, actor)
        db.session.flush()

        outcome.record(
            ActionType.CREATE,
            f"Used {quantity} {usage.material.unit} of {usage.material.name} in batch {batch.batch_number}",
            batch.id,
        )
    return usage


def add_cost(
    actor: ActingUser,
    batch_id: int,
    cost_type,
    amount,
    description: Optional[str] = None,
    fund_id=None,
) -> ManufacturingCost:
    """Record a batch cost; with a fund, the amount is drawn from it."""
    with atomic(actor, MODULE, "Failed to save manufacturing cost") as outcome:
        outcome.entity_id = batch_id
        require_role(actor, BATCH_ROLES, "record manufacturing costs")
        cost_type = parse_choice(CostType, cost_type, "cost type")
        amount = to_money(amount, "Amount")
        fund_id = parse_optional_int(fund_id)
        description = clean_text(description)

        batch = _lock_open_batch(batch_id)
        if fund_id is not None:
            funds.lock_fund(fund_id)
        cost = ManufacturingCost(
            batch=batch,
            cost_type=cost_type,
            amount=amount,
            description=description,
            fund_id=fund_id,
            recorded_by=actor.id,
        )
        db.session.add(cost)
        db.session.flush()

        if fund_id is not None:
            cost.fund_usage = funds.allocate(
                fund_id,
                amount,
                FundUsageType.MANUFACTURING_COST,
                cost.id,
                actor,
                description or f"{cost_type.value} cost for batch {batch.batch_number}",
            )

        outcome.record(
            ActionType.CREATE,
            f"Added {cost_type.value} cost of {amount} to batch {batch.batch_number}",
            batch.id,
        )
    return cost


def change_status(
    actor: ActingUser,
    batch_id: int,
    new_status,
    notes: Optional[str] = None,
    quantity_produced=None,
) -> ManufacturingBatch:
    """
    Move a batch forward.

    Non-owners may only advance one stage; owners may skip ahead. Completing
    credits quantity_produced to manufacturing inventory.
    """
    with atomic(actor, MODULE, "Failed to update batch status") as outcome:
        outcome.entity_id = batch_id
        require_role(actor, BATCH_ROLES, "change batch status")
        target = parse_choice(BatchStatus, new_status, "status")
        if quantity_produced not in (None, ""):
            quantity_produced = to_units(quantity_produced, "Quantity produced", allow_zero=True)
        else:
            quantity_produced = None

        batch = get_for_update(ManufacturingBatch, batch_id, "Batch")
        current = batch.status
        if current.is_terminal:
            raise InvalidTransition(f"Batch {batch.batch_number} is already completed.")
        if target not in current.allowed_targets(skip_allowed=actor.is_owner):
            raise InvalidTransition(
                f"Cannot move batch {batch.batch_number} from {current.value} to {target.value}.",
            )

        if quantity_produced is not None:
            batch.quantity_produced = quantity_produced

        if target is BatchStatus.COMPLETED:
            if (batch.quantity_produced or 0) <= 0:
                raise ValidationError("Quantity produced must be greater than zero to complete a batch.")
            batch.completion_date = date.today()
            apply_inventory_delta(batch.product_id, Location.MANUFACTURING, batch.quantity_produced)
            batch.quantity_credited = batch.quantity_produced

        now = datetime.utcnow()
        batch.status = target
        batch.status_changed_by = actor.id
        batch.status_changed_at = now
        notes = clean_text(notes)
        if notes:
            entry = f"[{now:%Y-%m-%d %H:%M}] {target.value}: {notes}"
            batch.status_notes = f"{batch.status_notes}\n{entry}" if batch.status_notes else entry

        outcome.record(
            ActionType.UPDATE,
            f"Batch {batch.batch_number} moved from {current.value} to {target.value}",
            batch.id,
        )
    return batch


def adjust_quantity(actor: ActingUser, batch_id: int, new_quantity, reason) -> ProductAdjustment:
    """Correct a completed batch's produced quantity. Stock is not touched."""
    with atomic(actor, MODULE, "Failed to adjust product quantity") as outcome:
        outcome.entity_id = batch_id
        require_role(actor, BATCH_ROLES, "adjust batch quantities")
        new_quantity = to_units(new_quantity, "Adjusted quantity", allow_zero=True)
        reason = require_reason(reason)

        batch = get_for_update(ManufacturingBatch, batch_id, "Batch")
        if batch.status is not BatchStatus.COMPLETED:
            raise InvalidTransition("Only completed batches can have their quantity adjusted.")

        adjustment = ProductAdjustment(
            batch=batch,
            product_id=batch.product_id,
            original_quantity=batch.quantity_produced,
            adjusted_quantity=new_quantity,
            reason=reason,
            adjusted_by=actor.id,
        )
        db.session.add(adjustment)
        previous = batch.quantity_produced
        batch.quantity_produced = new_quantity
        db.session.flush()

        outcome.record(
            ActionType.UPDATE,
            f"Adjusted batch {batch.batch_number} quantity from {previous} to {new_quantity}: {reason}",
            batch.id,
        )
    return adjustment


def delete_batch(actor: ActingUser, batch_id: int, reason) -> None:
    """
    Delete a batch and undo everything it did:
    material usages back to stock, cost fund usages back to their funds,
    and (if completed) its output out of manufacturing inventory.
    """
    with atomic(actor, MODULE, "Failed to delete batch") as outcome:
        outcome.entity_id = batch_id
        require_role(actor, (Role.OWNER,), "delete batches")
        reason = require_reason(reason, "Deletion reason")

        batch = get_for_update(ManufacturingBatch, batch_id, "Batch")
        batch_number = batch.batch_number

        linked = InventoryTransfer.query.filter_by(batch_id=batch.id).with_for_update().all()
        if any(t.status is TransferStatus.CONFIRMED for t in linked):
            raise NotReversible(
                f"Batch {batch_number} has confirmed inventory transfers and cannot be deleted.",
            )
        now = datetime.utcnow()
        for transfer in linked:
            if transfer.status is TransferStatus.PENDING:
                transfer.status = TransferStatus.REJECTED
                transfer.rejection_reason = f"Batch {batch_number} deleted: {reason}"
                transfer.resolved_by = actor.id
                transfer.resolved_at = now
            transfer.batch_id = None

        for cost in batch.costs:
            usage = cost.fund_usage
            if usage is not None:
                cost.fund_usage = None
                cost.fund_usage_id = None
                funds.reverse(usage)

        restored: Dict[int, Decimal] = defaultdict(Decimal)
        for usage in batch.material_usages:
            restored[usage.material_id] += _to_decimal(usage.quantity_used)
        for material_id in sorted(restored):
            apply_material_delta(material_id, restored[material_id])

        if batch.quantity_credited:
            apply_inventory_delta(
                batch.product_id,
                Location.MANUFACTURING,
                -batch.quantity_credited,
                error=InsufficientStock,
            )

        db.session.delete(batch)
        outcome.record(ActionType.DELETE, f"Deleted batch {batch_number}: {reason}", batch_id)


# ---------------------------------------------------------------------
# Hand-off to the transfer protocol
# ---------------------------------------------------------------------
def committed_transfer_quantity(batch_id: int) -> int:
    total = (
        db.session.query(func.coalesce(func.sum(InventoryTransfer.quantity), 0))
        .filter(
            InventoryTransfer.batch_id == batch_id,
            InventoryTransfer.status.in_([TransferStatus.PENDING, TransferStatus.CONFIRMED]),
        )
        .scalar()
    )
    return int(total or 0)


def initiate_batch_transfer(
    actor: ActingUser,
    batch_id: int,
    quantity=None,
    assignee_id=None,
    notes: Optional[str] = None,
) -> InventoryTransfer:
    """Send a completed batch's output from manufacturing to wholesale (pending until confirmed)."""
    with atomic(actor, transfers.MODULE, "Failed to initiate transfer") as outcome:
        require_role(actor, transfers.INITIATOR_ROLES, "initiate transfers")
        batch = get_for_update(ManufacturingBatch, batch_id, "Batch")
        if batch.status is not BatchStatus.COMPLETED:
            raise InvalidTransition("Only completed batches can be transferred.")

        available = (batch.quantity_produced or 0) - committed_transfer_quantity(batch.id)
        if available <= 0:
            raise ValidationError(f"Batch {batch.batch_number} has nothing left to transfer.")
        quantity = available if quantity in (None, "") else to_units(quantity, "Transfer quantity")
        if quantity > available:
            raise ValidationError(
                f"Only {available} units of batch {batch.batch_number} are available to transfer.",
            )

        transfer = transfers.create_transfer(
            actor,
            outcome,
            product_id=batch.product_id,
            quantity=quantity,
            from_location=Location.MANUFACTURING,
            to_location=Location.WHOLESALE,
            assignee_id=parse_optional_int(assignee_id),
            batch_id=batch.id,
            notes=clean_text(notes) or f"From batch {batch.batch_number}",
        )
    return transfer


# ---------------------------------------------------------------------
# Costing (read-only)
# ---------------------------------------------------------------------
def average_unit_price(material_id: int) -> Decimal:
    total, quantity = (
        db.session.query(func.sum(Purchase.total_amount), func.sum(Purchase.quantity))
        .filter(Purchase.material_id == material_id)
        .one()
    )
    quantity = _to_decimal(quantity)
    if quantity <= 0:
        return Decimal("0.00")
    return money(_to_decimal(total) / quantity)


def batch_costing(batch_id: int) -> dict:
    """Manufacturing costs by type, material cost at average purchase price, totals and cost per unit."""
    batch = get_or_404(ManufacturingBatch, batch_id, "Batch")

    by_type: Dict[str, Decimal] = defaultdict(Decimal)
    for cost in batch.costs:
        by_type[cost.cost_type.value] += _to_decimal(cost.amount)
    manufacturing_cost = money(sum(by_type.values(), Decimal("0.00")))

    materials: List[dict] = []
    material_cost = Decimal("0.00")
    for usage in batch.material_usages:
        price = average_unit_price(usage.material_id)
        line_cost = money(_to_decimal(usage.quantity_used) * price)
        material_cost += line_cost
        material: RawMaterial = usage.material
        materials.append(
            {
                "material_id": usage.material_id,
                "name": material.name,
                "quantity_used": str(usage.quantity_used),
                "unit_price": str(price),
                "cost": str(line_cost),
            }
        )
    material_cost = money(material_cost)

    total = money(manufacturing_cost + material_cost)
    produced = batch.quantity_produced or 0
    return {
        "batch_id": batch.id,
        "batch_number": batch.batch_number,
        "quantity_produced": produced,
        "costs_by_type": {k: str(money(v)) for k, v in by_type.items()},
        "manufacturing_cost": str(manufacturing_cost),
        "materials": materials,
        "material_cost": str(material_cost),
        "total_cost": str(total),
        "cost_per_unit": str(money(total / produced)) if produced > 0 else None,
    }
