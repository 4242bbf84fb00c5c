"""
mfg_erp/blueprints/funds/routes.py

Fund ledger routes.

- GET  /funds/                 funds visible to the user (owner: all, others: held by them)
- GET  /funds/<id>             balance, used amount and usages
- POST /funds/transfer         owner hands a new investment to a user
- POST /funds/<id>/usage       standalone draw against a fund
- POST /funds/<id>/return      return (part of) an investment
"""

from __future__ import annotations

from flask import Blueprint
from flask_login import current_user, login_required

from ...models import Fund, Role
from ...security import acting_user, roles_required
from ...serializers import serialize_many, serialize_model
from ...services import funds
from ...utils import parse_optional_int
from ..common import ok, request_data

funds_bp = Blueprint("funds", __name__, url_prefix="/funds")


@funds_bp.route("/")
@login_required
def list_funds():
    query = Fund.query.order_by(Fund.created_at.desc())
    if current_user.role is not Role.OWNER:
        query = query.filter(Fund.to_user_id == current_user.id)
    return ok(funds=serialize_many(query.all()))


@funds_bp.route("/<int:fund_id>")
@login_required
def view_fund(fund_id: int):
    return ok(fund=funds.fund_summary(fund_id))


@funds_bp.route("/transfer", methods=["POST"])
@login_required
@roles_required(Role.OWNER)
def transfer_funds():
    data = request_data()
    fund = funds.transfer(
        acting_user(),
        to_user_id=parse_optional_int(data.get("to_user_id")),
        amount=data.get("amount"),
        description=data.get("description"),
    )
    return ok("Funds transferred.", 201, fund=serialize_model(fund))


@funds_bp.route("/<int:fund_id>/usage", methods=["POST"])
@login_required
@roles_required(Role.OWNER, Role.INCHARGE)
def record_usage(fund_id: int):
    data = request_data()
    usage = funds.record_usage(
        acting_user(),
        fund_id,
        amount=data.get("amount"),
        usage_type=data.get("usage_type") or "other",
        reference_id=parse_optional_int(data.get("reference_id")),
        notes=data.get("notes"),
    )
    return ok("Fund usage recorded.", 201, usage=serialize_model(usage))


@funds_bp.route("/<int:fund_id>/return", methods=["POST"])
@login_required
def return_funds(fund_id: int):
    data = request_data()
    returned = funds.return_funds(acting_user(), fund_id, amount=data.get("amount"), notes=data.get("notes"))
    return ok("Funds returned.", 201, fund=serialize_model(returned))
