"""
mfg_erp/blueprints/purchases/routes.py

Raw-material purchase routes (owner / incharge).

Includes:
- list / view, raw-material stock (low-stock flag)
- create, edit (POST to the record), delete (POST to /delete)

IMPORTANT:
- UI is never trusted. Totals are re-validated and stock/fund effects are
  applied by services.procurement only.
"""

from __future__ import annotations

from flask import Blueprint
from flask_login import login_required

from ...models import Purchase, RawMaterial, Role
from ...security import acting_user, roles_required
from ...serializers import serialize_many, serialize_model
from ...services import procurement
from ...services.base import get_or_404
from ..common import ok, request_data

purchases_bp = Blueprint("purchases", __name__, url_prefix="/purchases")

PURCHASE_FIELDS = (
    "material_id",
    "quantity",
    "unit_price",
    "total_amount",
    "fund_id",
    "vendor_name",
    "vendor_contact",
    "invoice_number",
    "purchase_date",
    "notes",
)


def _purchase_fields(data: dict) -> dict:
    return {name: data[name] for name in PURCHASE_FIELDS if name in data}


@purchases_bp.route("/")
@login_required
@roles_required(Role.OWNER, Role.INCHARGE)
def list_purchases():
    purchases = Purchase.query.order_by(Purchase.purchase_date.desc(), Purchase.id.desc()).all()
    return ok(purchases=serialize_many(purchases))


@purchases_bp.route("/materials")
@login_required
@roles_required(Role.OWNER, Role.INCHARGE)
def list_materials():
    """Raw-material stock, low-stock items flagged."""
    materials = RawMaterial.query.order_by(RawMaterial.name.asc()).all()
    return ok(materials=[serialize_model(m, {"is_low_stock": m.is_low_stock}) for m in materials])


@purchases_bp.route("/<int:purchase_id>")
@login_required
@roles_required(Role.OWNER, Role.INCHARGE)
def view_purchase(purchase_id: int):
    return ok(purchase=serialize_model(get_or_404(Purchase, purchase_id, "Purchase")))


@purchases_bp.route("/", methods=["POST"])
@login_required
@roles_required(Role.OWNER, Role.INCHARGE)
def create_purchase():
    purchase = procurement.create_purchase(acting_user(), **_purchase_fields(request_data()))
    return ok("Purchase saved.", 201, purchase=serialize_model(purchase))


@purchases_bp.route("/<int:purchase_id>", methods=["POST"])
@login_required
@roles_required(Role.OWNER, Role.INCHARGE)
def edit_purchase(purchase_id: int):
    purchase = procurement.edit_purchase(acting_user(), purchase_id, _purchase_fields(request_data()))
    return ok("Purchase updated.", purchase=serialize_model(purchase))


@purchases_bp.route("/<int:purchase_id>/delete", methods=["POST"])
@login_required
@roles_required(Role.OWNER, Role.INCHARGE)
def delete_purchase(purchase_id: int):
    procurement.delete_purchase(acting_user(), purchase_id)
    return ok("Purchase deleted.")
