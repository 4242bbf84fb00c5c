"""
mfg_erp/blueprints/manufacturing/routes.py

Manufacturing batch routes.

- POST /manufacturing/batches                         create (optionally with materials)
- GET  /manufacturing/batches/<id>                    batch with usages and costs
- POST /manufacturing/batches/<id>/status             advance the pipeline
- POST /manufacturing/batches/<id>/materials          record material usage
- POST /manufacturing/batches/<id>/costs              record a cost (optionally fund-backed)
- POST /manufacturing/batches/<id>/adjust-quantity    correct a completed batch (reason required)
- POST /manufacturing/batches/<id>/delete             owner only, reason required
- POST /manufacturing/batches/<id>/transfer           send output to wholesale
- GET  /manufacturing/batches/<id>/costing            cost summary
"""

from __future__ import annotations

from flask import Blueprint
from flask_login import login_required

from ...models import ManufacturingBatch, Role
from ...security import acting_user, roles_required
from ...serializers import serialize_batch, serialize_model
from ...services import manufacturing
from ...services.base import get_or_404
from ...utils import parse_optional_int
from ..common import ok, request_data

manufacturing_bp = Blueprint("manufacturing", __name__, url_prefix="/manufacturing")

BATCH_ROLES = (Role.OWNER, Role.INCHARGE)


@manufacturing_bp.route("/batches")
@login_required
def list_batches():
    batches = ManufacturingBatch.query.order_by(ManufacturingBatch.created_at.desc()).all()
    return ok(batches=[serialize_model(b) for b in batches])


@manufacturing_bp.route("/batches", methods=["POST"])
@login_required
@roles_required(*BATCH_ROLES)
def create_batch():
    data = request_data()
    batch = manufacturing.create_batch(
        acting_user(),
        product_id=parse_optional_int(data.get("product_id")),
        start_date=data.get("start_date"),
        quantity_produced=data.get("quantity_produced") or 0,
        expected_completion_date=data.get("expected_completion_date"),
        notes=data.get("notes"),
        materials=data.get("materials") or [],
    )
    return ok(f"Batch {batch.batch_number} created.", 201, batch=serialize_batch(batch))


@manufacturing_bp.route("/batches/<int:batch_id>")
@login_required
def view_batch(batch_id: int):
    return ok(batch=serialize_batch(get_or_404(ManufacturingBatch, batch_id, "Batch")))


@manufacturing_bp.route("/batches/<int:batch_id>/status", methods=["POST"])
@login_required
@roles_required(*BATCH_ROLES)
def update_status(batch_id: int):
    data = request_data()
    batch = manufacturing.change_status(
        acting_user(),
        batch_id,
        new_status=data.get("status"),
        notes=data.get("notes"),
        quantity_produced=data.get("quantity_produced"),
    )
    return ok(f"Batch status updated to {batch.status.value}.", batch=serialize_model(batch))


@manufacturing_bp.route("/batches/<int:batch_id>/materials", methods=["POST"])
@login_required
@roles_required(*BATCH_ROLES)
def record_material(batch_id: int):
    data = request_data()
    usage = manufacturing.record_material_usage(
        acting_user(),
        batch_id,
        material_id=data.get("material_id"),
        quantity=data.get("quantity"),
    )
    return ok("Material usage recorded.", 201, usage=serialize_model(usage))


@manufacturing_bp.route("/batches/<int:batch_id>/costs", methods=["POST"])
@login_required
@roles_required(*BATCH_ROLES)
def add_cost(batch_id: int):
    data = request_data()
    cost = manufacturing.add_cost(
        acting_user(),
        batch_id,
        cost_type=data.get("cost_type"),
        amount=data.get("amount"),
        description=data.get("description"),
        fund_id=data.get("fund_id"),
    )
    return ok("Manufacturing cost saved.", 201, cost=serialize_model(cost))


@manufacturing_bp.route("/batches/<int:batch_id>/adjust-quantity", methods=["POST"])
@login_required
@roles_required(*BATCH_ROLES)
def adjust_quantity(batch_id: int):
    data = request_data()
    adjustment = manufacturing.adjust_quantity(
        acting_user(),
        batch_id,
        new_quantity=data.get("adjusted_quantity"),
        reason=data.get("reason"),
    )
    return ok("Product quantity adjusted.", adjustment=serialize_model(adjustment))


@manufacturing_bp.route("/batches/<int:batch_id>/delete", methods=["POST"])
@login_required
@roles_required(Role.OWNER)
def delete_batch(batch_id: int):
    data = request_data()
    manufacturing.delete_batch(acting_user(), batch_id, reason=data.get("reason"))
    return ok("Batch deleted.")


@manufacturing_bp.route("/batches/<int:batch_id>/transfer", methods=["POST"])
@login_required
@roles_required(*BATCH_ROLES)
def transfer_batch(batch_id: int):
    data = request_data()
    transfer = manufacturing.initiate_batch_transfer(
        acting_user(),
        batch_id,
        quantity=data.get("quantity"),
        assignee_id=data.get("shopkeeper_id"),
        notes=data.get("notes"),
    )
    return ok("Transfer initiated.", 201, transfer=serialize_model(transfer))


@manufacturing_bp.route("/batches/<int:batch_id>/costing")
@login_required
def batch_costing(batch_id: int):
    return ok(costing=manufacturing.batch_costing(batch_id))
