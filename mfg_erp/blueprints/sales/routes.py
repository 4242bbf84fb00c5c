"""
mfg_erp/blueprints/sales/routes.py

Sales and payment routes (owner / shopkeeper).

IMPORTANT:
- Shopkeepers only manage their own sales; the service enforces it.
- Payments cannot be edited; void with a reason and record again.
"""

from __future__ import annotations

from flask import Blueprint
from flask_login import current_user, login_required

from ...models import Role, Sale
from ...security import acting_user, roles_required
from ...serializers import serialize_model, serialize_sale
from ...services import sales
from ..common import ok, request_data

sales_bp = Blueprint("sales", __name__, url_prefix="/sales")

SALE_ROLES = (Role.OWNER, Role.SHOPKEEPER)
SALE_FIELDS = ("customer_id", "sale_date", "items", "discount_amount", "tax_amount", "shipping_cost", "notes")


@sales_bp.route("/")
@login_required
@roles_required(*SALE_ROLES)
def list_sales():
    query = Sale.query.order_by(Sale.sale_date.desc(), Sale.id.desc())
    if current_user.role is not Role.OWNER:
        query = query.filter(Sale.created_by == current_user.id)
    return ok(sales=[serialize_sale(s) for s in query.all()])


@sales_bp.route("/<int:sale_id>")
@login_required
@roles_required(*SALE_ROLES)
def view_sale(sale_id: int):
    return ok(sale=serialize_sale(sales.get_sale(acting_user(), sale_id)))


@sales_bp.route("/", methods=["POST"])
@login_required
@roles_required(*SALE_ROLES)
def create_sale():
    data = request_data()
    sale = sales.create_sale(
        acting_user(),
        customer_id=data.get("customer_id"),
        items=data.get("items") or [],
        sale_date=data.get("sale_date"),
        discount_amount=data.get("discount_amount"),
        tax_amount=data.get("tax_amount"),
        shipping_cost=data.get("shipping_cost"),
        notes=data.get("notes"),
    )
    return ok(f"Sale {sale.invoice_number} saved.", 201, sale=serialize_sale(sale))


@sales_bp.route("/<int:sale_id>", methods=["POST"])
@login_required
@roles_required(*SALE_ROLES)
def edit_sale(sale_id: int):
    data = request_data()
    changes = {name: data[name] for name in SALE_FIELDS if name in data}
    sale = sales.edit_sale(acting_user(), sale_id, changes)
    return ok("Sale updated.", sale=serialize_sale(sale))


@sales_bp.route("/<int:sale_id>/delete", methods=["POST"])
@login_required
@roles_required(*SALE_ROLES)
def delete_sale(sale_id: int):
    sales.delete_sale(acting_user(), sale_id)
    return ok("Sale deleted.")


# ---------------------------------------------------------------------
# Payments
# ---------------------------------------------------------------------
@sales_bp.route("/<int:sale_id>/payments", methods=["POST"])
@login_required
@roles_required(*SALE_ROLES)
def record_payment(sale_id: int):
    data = request_data()
    payment = sales.record_payment(
        acting_user(),
        sale_id,
        amount=data.get("amount"),
        method=data.get("payment_method") or data.get("method"),
        payment_date=data.get("payment_date"),
        reference_number=data.get("reference_number"),
        notes=data.get("notes"),
    )
    sale = payment.sale
    return ok(
        "Payment recorded.",
        201,
        payment=serialize_model(payment),
        payment_status=sale.payment_status.value,
        amount_due=str(sales.amount_due(sale)),
    )


@sales_bp.route("/payments/<int:payment_id>/void", methods=["POST"])
@login_required
@roles_required(*SALE_ROLES)
def void_payment(payment_id: int):
    data = request_data()
    payment = sales.void_payment(acting_user(), payment_id, reason=data.get("reason"))
    sale = payment.sale
    return ok(
        "Payment voided.",
        payment=serialize_model(payment),
        payment_status=sale.payment_status.value,
        amount_due=str(sales.amount_due(sale)),
    )
