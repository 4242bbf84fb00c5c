"""
mfg_erp/services/sales.py

Sales & Payment Ledger.

- Sales take stock out of the WHOLESALE location.
- payment_status is always derived from (sum of non-voided payments, net_amount);
  it is never set directly.
- Payments are never edited or deleted: a wrong payment is voided (with a reason)
  and re-entered.
- A sale with live (non-voided) payments cannot be edited or deleted.
"""

from __future__ import annotations

from collections import defaultdict
from datetime import date, datetime
from decimal import Decimal
from typing import Any, Dict, Iterable, List, Mapping, Optional

from ..errors import NotReversible, OverPayment, Unauthorized, ValidationError
from ..extensions import db
from ..models import (
    ActionType,
    Customer,
    Location,
    Payment,
    PaymentMethod,
    PaymentStatus,
    Product,
    Role,
    Sale,
    SaleItem,
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
    to_units,
)
from .base import atomic, generate_reference, get_for_update, get_or_404, tolerance
from .inventory import apply_inventory_delta

MODULE = "sales"
PAYMENTS_MODULE = "payments"
SALE_ROLES = (Role.OWNER, Role.SHOPKEEPER)


# ---------------------------------------------------------------------
# Pure helpers
# ---------------------------------------------------------------------
def derive_payment_status(paid, net, epsilon: Decimal = Decimal("0.01")) -> PaymentStatus:
    """unpaid when nothing is paid, paid within epsilon of net, partial otherwise."""
    paid = money(_to_decimal(paid))
    net = money(_to_decimal(net))
    if paid <= 0:
        return PaymentStatus.UNPAID
    if paid >= net - epsilon:
        return PaymentStatus.PAID
    return PaymentStatus.PARTIAL


def amount_due(sale: Sale) -> Decimal:
    return sale.amount_due()


def line_quantities(lines: Iterable[Mapping[str, Any]]) -> Dict[int, int]:
    totals: Dict[int, int] = defaultdict(int)
    for line in lines:
        totals[line["product_id"]] += line["quantity"]
    return dict(totals)


def wholesale_changes(old_lines: Iterable[Mapping[str, Any]], new_lines: Iterable[Mapping[str, Any]]) -> Dict[int, int]:
    """
    Net wholesale stock change per product for old items -> new items.

    Old items are given back (reverse), new items are taken; zero entries dropped.
    """
    changes: Dict[int, int] = defaultdict(int)
    for product_id, quantity in line_quantities(old_lines).items():
        changes[product_id] += quantity
    for product_id, quantity in line_quantities(new_lines).items():
        changes[product_id] -= quantity
    return {k: v for k, v in changes.items() if v != 0}


def _validated_lines(items: Optional[Iterable[Mapping[str, Any]]]) -> List[dict]:
    lines = []
    for item in items or ():
        product_id = parse_optional_int(item.get("product_id"))
        if product_id is None:
            raise ValidationError("Each sale item needs a product.")
        quantity = to_units(item.get("quantity"), "Item quantity")
        unit_price = to_money(item.get("unit_price"), "Unit price", allow_zero=True)
        lines.append(
            {
                "product_id": product_id,
                "quantity": quantity,
                "unit_price": unit_price,
                "total_price": money(quantity * unit_price),
            }
        )
    if not lines:
        raise ValidationError("A sale needs at least one item.")
    return lines


def _validated_totals(lines: List[dict], discount, tax, shipping) -> Dict[str, Decimal]:
    total = money(sum((line["total_price"] for line in lines), Decimal("0.00")))
    discount = to_money(discount or 0, "Discount", allow_zero=True)
    tax = to_money(tax or 0, "Tax", allow_zero=True)
    shipping = to_money(shipping or 0, "Shipping cost", allow_zero=True)
    net = money(total - discount + tax + shipping)
    if net < 0:
        raise ValidationError("Net amount cannot be negative (discount exceeds total).")
    return {
        "total_amount": total,
        "discount_amount": discount,
        "tax_amount": tax,
        "shipping_cost": shipping,
        "net_amount": net,
    }


def _apply_wholesale(changes: Dict[int, int]) -> None:
    for product_id in sorted(changes):
        apply_inventory_delta(product_id, Location.WHOLESALE, changes[product_id])


def _item_lines(sale: Sale) -> List[dict]:
    return [{"product_id": i.product_id, "quantity": i.quantity} for i in sale.items]


def _check_sale_access(actor: ActingUser, sale: Sale) -> None:
    """Owners act on any sale; shopkeepers only on sales they created."""
    require_role(actor, SALE_ROLES, "manage sales")
    if not actor.is_owner and sale.created_by != actor.id:
        raise Unauthorized("You can only manage sales you created.")


def _refresh_status(sale: Sale) -> PaymentStatus:
    sale.payment_status = derive_payment_status(
        sale.paid_amount(), sale.net_amount, tolerance("PAYMENT_EPSILON")
    )
    return sale.payment_status


def _ensure_no_payments(sale: Sale, action: str) -> None:
    if sale.active_payments():
        raise NotReversible(f"Cannot {action} sale {sale.invoice_number}: it has recorded payments. Void them first.")


# ---------------------------------------------------------------------
# Sales
# ---------------------------------------------------------------------
def get_sale(actor: ActingUser, sale_id: int) -> Sale:
    """Load a sale the actor may see."""
    sale = get_or_404(Sale, sale_id, "Sale")
    _check_sale_access(actor, sale)
    return sale


def create_sale(
    actor: ActingUser,
    customer_id,
    items: Iterable[Mapping[str, Any]],
    sale_date=None,
    discount_amount=0,
    tax_amount=0,
    shipping_cost=0,
    notes: Optional[str] = None,
) -> Sale:
    with atomic(actor, MODULE, "Failed to save sale") as outcome:
        require_role(actor, SALE_ROLES, "record sales")
        lines = _validated_lines(items)
        totals = _validated_totals(lines, discount_amount, tax_amount, shipping_cost)
        sold_on = parse_date(sale_date) or date.today()
        customer = get_or_404(Customer, parse_optional_int(customer_id), "Customer")
        for line in lines:
            get_or_404(Product, line["product_id"], "Product")

        sale = Sale(
            invoice_number=generate_reference("INV", Sale.invoice_number, sold_on),
            customer_id=customer.id,
            sale_date=sold_on,
            payment_status=PaymentStatus.UNPAID,
            notes=clean_text(notes),
            created_by=actor.id,
            **totals,
        )
        for line in lines:
            sale.items.append(SaleItem(**line))
        db.session.add(sale)
        db.session.flush()

        _apply_wholesale(wholesale_changes([], lines))
        _refresh_status(sale)

        outcome.record(
            ActionType.CREATE,
            f"Created sale {sale.invoice_number} for {customer.name}, net {totals['net_amount']}",
            sale.id,
        )
    return sale


def edit_sale(actor: ActingUser, sale_id: int, changes: Mapping[str, Any]) -> Sale:
    """Replace items/charges of an unpaid sale; only the per-product stock delta is applied."""
    with atomic(actor, MODULE, "Failed to update sale") as outcome:
        outcome.entity_id = sale_id
        sale = get_for_update(Sale, sale_id, "Sale")
        _check_sale_access(actor, sale)
        _ensure_no_payments(sale, "edit")

        lines = _validated_lines(changes["items"]) if "items" in changes else [
            {
                "product_id": i.product_id,
                "quantity": i.quantity,
                "unit_price": _to_decimal(i.unit_price),
                "total_price": _to_decimal(i.total_price),
            }
            for i in sale.items
        ]
        totals = _validated_totals(
            lines,
            changes.get("discount_amount", sale.discount_amount),
            changes.get("tax_amount", sale.tax_amount),
            changes.get("shipping_cost", sale.shipping_cost),
        )
        if "customer_id" in changes:
            sale.customer_id = get_or_404(Customer, parse_optional_int(changes["customer_id"]), "Customer").id
        if "sale_date" in changes:
            sale.sale_date = require_date(changes["sale_date"], "Sale date")
        if "notes" in changes:
            sale.notes = clean_text(changes["notes"])
        for line in lines:
            get_or_404(Product, line["product_id"], "Product")

        _apply_wholesale(wholesale_changes(_item_lines(sale), lines))

        if "items" in changes:
            sale.items.clear()
            db.session.flush()
            for line in lines:
                sale.items.append(SaleItem(**line))
        for name, value in totals.items():
            setattr(sale, name, value)
        _refresh_status(sale)

        outcome.record(ActionType.UPDATE, f"Updated sale {sale.invoice_number}", sale.id)
    return sale


def delete_sale(actor: ActingUser, sale_id: int) -> None:
    with atomic(actor, MODULE, "Failed to delete sale") as outcome:
        outcome.entity_id = sale_id
        sale = get_for_update(Sale, sale_id, "Sale")
        _check_sale_access(actor, sale)
        _ensure_no_payments(sale, "delete")
        invoice_number = sale.invoice_number

        _apply_wholesale(wholesale_changes(_item_lines(sale), []))
        db.session.delete(sale)

        outcome.record(ActionType.DELETE, f"Deleted sale {invoice_number}", sale_id)


# ---------------------------------------------------------------------
# Payments
# ---------------------------------------------------------------------
def record_payment(
    actor: ActingUser,
    sale_id: int,
    amount,
    method=PaymentMethod.CASH,
    payment_date=None,
    reference_number: Optional[str] = None,
    notes: Optional[str] = None,
) -> Payment:
    with atomic(actor, PAYMENTS_MODULE, "Failed to record payment") as outcome:
        outcome.entity_id = sale_id
        amount = to_money(amount, "Payment amount")
        method = parse_choice(PaymentMethod, method or PaymentMethod.CASH, "payment method")
        paid_on = parse_date(payment_date) or date.today()

        sale = get_for_update(Sale, sale_id, "Sale")
        _check_sale_access(actor, sale)

        net = money(_to_decimal(sale.net_amount))
        paid = sale.paid_amount()
        if paid + amount > net + tolerance("PAYMENT_EPSILON"):
            raise OverPayment(
                f"Payment of {amount} exceeds the amount due ({money(net - paid)}) on {sale.invoice_number}.",
                sale_id=sale.id,
            )

        payment = Payment(
            amount=amount,
            payment_date=paid_on,
            method=method,
            reference_number=clean_text(reference_number),
            notes=clean_text(notes),
            recorded_by=actor.id,
        )
        sale.payments.append(payment)
        db.session.flush()
        status = _refresh_status(sale)

        outcome.record(
            ActionType.CREATE,
            f"Recorded {method.value} payment of {amount} on {sale.invoice_number} ({status.value})",
            payment.id,
        )
    return payment


def void_payment(actor: ActingUser, payment_id: int, reason) -> Payment:
    """Flag a payment as voided and recompute the sale's status. The row is kept."""
    with atomic(actor, PAYMENTS_MODULE, "Failed to void payment") as outcome:
        outcome.entity_id = payment_id
        reason = require_reason(reason, "Void reason")

        sale_id = get_or_404(Payment, payment_id, "Payment").sale_id
        sale = get_for_update(Sale, sale_id, "Sale")
        payment = get_for_update(Payment, payment_id, "Payment")
        _check_sale_access(actor, sale)
        if payment.is_voided:
            raise ValidationError("Payment is already voided.")

        payment.voided_at = datetime.utcnow()
        payment.voided_by = actor.id
        payment.void_reason = reason
        db.session.flush()
        status = _refresh_status(sale)

        outcome.record(
            ActionType.UPDATE,
            f"Voided payment #{payment.id} of {payment.amount} on {sale.invoice_number} ({status.value}): {reason}",
            payment.id,
        )
    return payment
