"""
mfg_erp/blueprints/inventory/routes.py

Inventory routes: stock lookup, manual adjustment and the transfer protocol.

Transfers:
- initiate: owner / incharge
- confirm / reject: the assigned user or an owner (checked by the service)
"""

from __future__ import annotations

from flask import Blueprint, request
from flask_login import current_user, login_required

from ...models import InventoryTransfer, Role, TransferStatus
from ...security import acting_user, roles_required
from ...serializers import serialize_many, serialize_model
from ...services import inventory, transfers
from ...utils import parse_choice
from ..common import ok, request_data

inventory_bp = Blueprint("inventory", __name__, url_prefix="/inventory")


@inventory_bp.route("/products/<int:product_id>/stock")
@login_required
def product_stock(product_id: int):
    return ok(stock=inventory.product_stock(product_id))


@inventory_bp.route("/adjust", methods=["POST"])
@login_required
@roles_required(Role.OWNER, Role.INCHARGE)
def adjust_inventory():
    data = request_data()
    adjustment = inventory.adjust_inventory(
        acting_user(),
        product_id=data.get("product_id"),
        location=data.get("location"),
        quantity_change=data.get("quantity_change"),
        reason=data.get("reason"),
    )
    return ok("Inventory adjusted.", adjustment=serialize_model(adjustment))


# ---------------------------------------------------------------------
# Transfers
# ---------------------------------------------------------------------
@inventory_bp.route("/transfers")
@login_required
def list_transfers():
    """Owners see every transfer; others see the ones assigned to them."""
    query = InventoryTransfer.query.order_by(InventoryTransfer.transfer_date.desc())
    status = request.args.get("status")
    if status:
        query = query.filter(InventoryTransfer.status == parse_choice(TransferStatus, status, "status"))
    if current_user.role is not Role.OWNER:
        query = query.filter(InventoryTransfer.shopkeeper_id == current_user.id)
    return ok(transfers=serialize_many(query.all()))


@inventory_bp.route("/transfers", methods=["POST"])
@login_required
@roles_required(*transfers.INITIATOR_ROLES)
def initiate_transfer():
    data = request_data()
    transfer = transfers.initiate(
        acting_user(),
        product_id=data.get("product_id"),
        quantity=data.get("quantity"),
        from_location=data.get("from_location"),
        to_location=data.get("to_location"),
        assignee_id=data.get("shopkeeper_id"),
        notes=data.get("notes"),
    )
    return ok("Transfer initiated.", 201, transfer=serialize_model(transfer))


@inventory_bp.route("/transfers/<int:transfer_id>/confirm", methods=["POST"])
@login_required
def confirm_transfer(transfer_id: int):
    data = request_data()
    transfer = transfers.confirm(acting_user(), transfer_id, notes=data.get("notes"))
    return ok("Receipt confirmed.", transfer=serialize_model(transfer))


@inventory_bp.route("/transfers/<int:transfer_id>/reject", methods=["POST"])
@login_required
def reject_transfer(transfer_id: int):
    data = request_data()
    transfer = transfers.reject(acting_user(), transfer_id, reason=data.get("reason"))
    return ok("Transfer rejected.", transfer=serialize_model(transfer))
