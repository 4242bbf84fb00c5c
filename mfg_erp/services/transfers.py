"""
mfg_erp/services/transfers.py

Inventory Transfer Protocol (two-party confirmation).

    initiate  -> pending transfer, no stock moves, assignee notified
    confirm   -> source -= quantity, destination += quantity, status confirmed
    reject    -> status rejected, no stock moves

A transfer is resolved exactly once: a second confirm/reject raises NotPending.
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from ..errors import NotFound, NotPending, Unauthorized, ValidationError
from ..extensions import db
from ..models import (
    ActionType,
    InventoryTransfer,
    Location,
    Product,
    Role,
    TransferStatus,
    User,
)
from ..security import ActingUser, require_role
from ..utils import clean_text, parse_choice, parse_optional_int, require_reason, to_units
from .base import Outcome, atomic, get_for_update, get_or_404
from .inventory import apply_inventory_delta, lock_inventory_rows

MODULE = "inventory"
INITIATOR_ROLES = (Role.OWNER, Role.INCHARGE)

# Who receives stock at each destination
RECEIVING_ROLE = {
    Location.WHOLESALE: Role.SHOPKEEPER,
    Location.MANUFACTURING: Role.INCHARGE,
    Location.TRANSIT: Role.INCHARGE,
}


def default_assignee(to_location: Location) -> Optional[User]:
    """First active user (by id) holding the receiving role for the destination."""
    role = RECEIVING_ROLE[to_location]
    return (
        User.query
        .filter_by(role=role, is_active=True)
        .order_by(User.id.asc())
        .first()
    )


def create_transfer(
    actor: ActingUser,
    outcome: Outcome,
    product_id: int,
    quantity: int,
    from_location: Location,
    to_location: Location,
    assignee_id: Optional[int] = None,
    batch_id: Optional[int] = None,
    notes: Optional[str] = None,
) -> InventoryTransfer:
    """Insert a pending transfer inside the caller's transaction."""
    if from_location is to_location:
        raise ValidationError("Source and destination locations must be different.")

    product = get_or_404(Product, product_id, "Product")
    if assignee_id is not None:
        assignee = db.session.get(User, assignee_id)
        if assignee is None or not assignee.is_active:
            raise NotFound("Assigned user not found or inactive.")
    else:
        assignee = default_assignee(to_location)

    transfer = InventoryTransfer(
        product_id=product.id,
        batch_id=batch_id,
        quantity=quantity,
        from_location=from_location,
        to_location=to_location,
        status=TransferStatus.PENDING,
        initiated_by=actor.id,
        shopkeeper_id=assignee.id if assignee else None,
        notes=notes,
    )
    db.session.add(transfer)
    db.session.flush()

    outcome.record(
        ActionType.CREATE,
        f"Initiated transfer of {quantity} {product.name} from {from_location.value} to {to_location.value}",
        transfer.id,
    )
    if assignee is not None:
        outcome.notify(
            assignee.id,
            "inventory_transfer",
            f"{quantity} units of {product.name} are on their way from "
            f"{from_location.value} to {to_location.value}. Please confirm receipt.",
            transfer.id,
        )
    return transfer


def initiate(
    actor: ActingUser,
    product_id,
    quantity,
    from_location,
    to_location,
    assignee_id=None,
    notes: Optional[str] = None,
) -> InventoryTransfer:
    """Free-standing transfer. Batch output goes through manufacturing.initiate_batch_transfer."""
    with atomic(actor, MODULE, "Failed to initiate transfer") as outcome:
        require_role(actor, INITIATOR_ROLES, "initiate transfers")
        from_location = parse_choice(Location, from_location, "source location")
        to_location = parse_choice(Location, to_location, "destination location")
        quantity = to_units(quantity, "Transfer quantity")
        product_id = parse_optional_int(product_id)
        if product_id is None:
            raise ValidationError("Product is required.")

        transfer = create_transfer(
            actor,
            outcome,
            product_id=product_id,
            quantity=quantity,
            from_location=from_location,
            to_location=to_location,
            assignee_id=parse_optional_int(assignee_id),
            notes=clean_text(notes),
        )
    return transfer


def _lock_pending(transfer_id: int, actor: ActingUser) -> InventoryTransfer:
    transfer = get_for_update(InventoryTransfer, transfer_id, "Transfer")
    if transfer.status.is_resolved:
        raise NotPending(f"Transfer #{transfer.id} is already {transfer.status.value}.")
    if not actor.is_owner and actor.id != transfer.shopkeeper_id:
        raise Unauthorized("Only the assigned user or an owner can resolve this transfer.")
    return transfer


def confirm(actor: ActingUser, transfer_id: int, notes: Optional[str] = None) -> InventoryTransfer:
    """Receive a pending transfer: move the stock and mark it confirmed."""
    with atomic(actor, MODULE, "Failed to confirm transfer") as outcome:
        outcome.entity_id = transfer_id
        transfer = _lock_pending(transfer_id, actor)

        rows = lock_inventory_rows(transfer.product_id, (transfer.from_location, transfer.to_location))
        apply_inventory_delta(
            transfer.product_id,
            transfer.from_location,
            -transfer.quantity,
            row=rows[transfer.from_location],
        )
        apply_inventory_delta(
            transfer.product_id,
            transfer.to_location,
            transfer.quantity,
            row=rows[transfer.to_location],
        )

        transfer.status = TransferStatus.CONFIRMED
        transfer.resolved_by = actor.id
        transfer.resolved_at = datetime.utcnow()
        notes = clean_text(notes)
        if notes:
            transfer.notes = f"{transfer.notes}\n{notes}" if transfer.notes else notes

        outcome.record(
            ActionType.UPDATE,
            f"Confirmed receipt of {transfer.quantity} {transfer.product.name} "
            f"into {transfer.to_location.value} (transfer #{transfer.id})",
            transfer.id,
        )
    return transfer


def reject(actor: ActingUser, transfer_id: int, reason) -> InventoryTransfer:
    with atomic(actor, MODULE, "Failed to reject transfer") as outcome:
        outcome.entity_id = transfer_id
        reason = require_reason(reason, "Rejection reason")
        transfer = _lock_pending(transfer_id, actor)

        transfer.status = TransferStatus.REJECTED
        transfer.rejection_reason = reason
        transfer.resolved_by = actor.id
        transfer.resolved_at = datetime.utcnow()

        outcome.record(ActionType.UPDATE, f"Rejected transfer #{transfer.id}: {reason}", transfer.id)
    return transfer
