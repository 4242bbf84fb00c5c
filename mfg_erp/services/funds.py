"""
mfg_erp/services/funds.py

Fund Ledger.

A Fund is a single-directional allocation of money with a running balance.
The balance only moves through FundUsage rows:
- allocate(): creates a usage and decreases the balance
- reverse():  deletes a usage and restores the balance
- adjust():   resizes an existing usage (reverse-then-reapply on one fund)

allocate/reverse/adjust do NOT commit; they run inside the caller's atomic()
block (purchases, manufacturing costs). transfer/record_usage/return_funds are
complete operations with their own transaction.
"""

from __future__ import annotations

from decimal import Decimal
from typing import Optional

from ..errors import FundInactive, InsufficientBalance, NotFound, Unauthorized, ValidationError
from ..extensions import db
from ..models import (
    ActionType,
    Fund,
    FundStatus,
    FundType,
    FundUsage,
    FundUsageType,
    Role,
    User,
    _to_decimal,
)
from ..security import ActingUser, require_role
from ..utils import clean_text, money, parse_choice, to_money
from .base import atomic, get_for_update, get_or_404

MODULE = "funds"


def _status_for(balance: Decimal) -> FundStatus:
    return FundStatus.DEPLETED if balance == 0 else FundStatus.ACTIVE


def lock_fund(fund_id: int) -> Fund:
    return get_for_update(Fund, fund_id, "Fund")


# ---------------------------------------------------------------------
# Primitives (caller owns the transaction)
# ---------------------------------------------------------------------
def allocate(
    fund_id: int,
    amount: Decimal,
    purpose: FundUsageType,
    reference_id: Optional[int],
    actor: ActingUser,
    notes: Optional[str] = None,
) -> FundUsage:
    """Draw `amount` from the fund. FundInactive / InsufficientBalance on failure."""
    amount = money(_to_decimal(amount))
    if amount <= 0:
        raise ValidationError("Fund usage amount must be greater than zero.")

    fund = lock_fund(fund_id)
    if fund.status is not FundStatus.ACTIVE:
        raise FundInactive(f"Fund #{fund.id} is {fund.status.value}.", fund_id=fund.id)

    balance = _to_decimal(fund.balance)
    if amount > balance:
        raise InsufficientBalance(
            f"Fund #{fund.id} has {balance} available, {amount} requested.",
            fund_id=fund.id,
        )

    fund.balance = money(balance - amount)
    fund.status = _status_for(fund.balance)

    usage = FundUsage(
        fund=fund,
        amount=amount,
        usage_type=purpose,
        reference_id=reference_id,
        used_by=actor.id,
        notes=notes,
    )
    db.session.add(usage)
    db.session.flush()
    return usage


def reverse(usage: FundUsage) -> Fund:
    """
    Give the usage amount back to its fund and delete the usage.

    IMPORTANT: callers must detach the usage from its owner (purchase/cost) first.
    """
    fund = lock_fund(usage.fund_id)
    fund.balance = money(_to_decimal(fund.balance) + _to_decimal(usage.amount))
    if fund.status is FundStatus.DEPLETED and fund.balance > 0:
        fund.status = FundStatus.ACTIVE
    db.session.delete(usage)
    return fund


def adjust(usage: FundUsage, new_amount: Decimal) -> FundUsage:
    """
    Resize a usage in place.

    Same result as reversing the old amount and allocating the new one on the
    same fund, but the usage row (and its id) is kept.
    """
    new_amount = money(_to_decimal(new_amount))
    if new_amount <= 0:
        raise ValidationError("Fund usage amount must be greater than zero.")

    fund = lock_fund(usage.fund_id)
    if fund.status not in (FundStatus.ACTIVE, FundStatus.DEPLETED):
        raise FundInactive(f"Fund #{fund.id} is {fund.status.value}.", fund_id=fund.id)

    available = money(_to_decimal(fund.balance) + _to_decimal(usage.amount))
    if new_amount > available:
        raise InsufficientBalance(
            f"Fund #{fund.id} has {available} available, {new_amount} requested.",
            fund_id=fund.id,
        )

    fund.balance = money(available - new_amount)
    fund.status = _status_for(fund.balance)
    usage.amount = new_amount
    return usage


# ---------------------------------------------------------------------
# Operations
# ---------------------------------------------------------------------
def transfer(
    actor: ActingUser,
    to_user_id: int,
    amount,
    description: Optional[str] = None,
    from_user_id: Optional[int] = None,
) -> Fund:
    """Hand a new investment to a user. Never touches existing funds."""
    with atomic(actor, MODULE, "Failed to transfer funds") as outcome:
        require_role(actor, (Role.OWNER,), "transfer funds")
        amount = to_money(amount, "Amount")
        from_user_id = from_user_id or actor.id
        if from_user_id == to_user_id:
            raise ValidationError("Cannot transfer funds to the same user.")

        sender = db.session.get(User, from_user_id)
        receiver = db.session.get(User, to_user_id) if to_user_id is not None else None
        if sender is None or receiver is None:
            raise NotFound("Invalid user selected.")

        fund = Fund(
            fund_type=FundType.INVESTMENT,
            original_amount=amount,
            balance=amount,
            status=FundStatus.ACTIVE,
            from_user_id=sender.id,
            to_user_id=receiver.id,
            description=clean_text(description),
        )
        db.session.add(fund)
        db.session.flush()

        outcome.record(
            ActionType.CREATE,
            f"Transferred {amount} from {sender.username} to {receiver.username}",
            fund.id,
        )
    return fund


def record_usage(
    actor: ActingUser,
    fund_id: int,
    amount,
    usage_type=FundUsageType.OTHER,
    reference_id: Optional[int] = None,
    notes: Optional[str] = None,
) -> FundUsage:
    """Standalone draw against a fund (expenses outside purchases/batches)."""
    with atomic(actor, MODULE, "Failed to record fund usage") as outcome:
        require_role(actor, (Role.OWNER, Role.INCHARGE), "record fund usage")
        amount = to_money(amount, "Amount")
        usage_type = parse_choice(FundUsageType, usage_type, "usage type")
        usage = allocate(fund_id, amount, usage_type, reference_id, actor, clean_text(notes))
        outcome.record(
            ActionType.CREATE,
            f"Recorded {usage_type.value} usage of {amount} from fund #{fund_id}",
            usage.id,
        )
    return usage


def return_funds(actor: ActingUser, fund_id: int, amount, notes: Optional[str] = None) -> Fund:
    """
    Return part of an investment to the investor.

    The fund is drawn down by an 'other' usage; a 'return' Fund row records
    the money going back (holder -> investor).
    """
    with atomic(actor, MODULE, "Failed to return funds") as outcome:
        amount = to_money(amount, "Return amount")
        fund = lock_fund(fund_id)
        if fund.fund_type is not FundType.INVESTMENT:
            raise ValidationError("Only investment funds can be returned.")
        if not actor.is_owner and actor.id != fund.to_user_id:
            raise Unauthorized("Only the fund holder can return this fund.")

        notes = clean_text(notes)
        usage = allocate(fund.id, amount, FundUsageType.OTHER, None, actor, notes or "Fund return")

        returned = Fund(
            fund_type=FundType.RETURN,
            original_amount=amount,
            balance=Decimal("0.00"),
            status=FundStatus.RETURNED,
            from_user_id=fund.to_user_id,
            to_user_id=fund.from_user_id,
            description=notes,
            reference_fund_id=fund.id,
        )
        db.session.add(returned)
        db.session.flush()
        usage.reference_id = returned.id

        outcome.record(ActionType.CREATE, f"Returned {amount} from fund #{fund.id}", returned.id)
    return returned


# ---------------------------------------------------------------------
# Read helpers
# ---------------------------------------------------------------------
def fund_summary(fund_id: int) -> dict:
    fund = get_or_404(Fund, fund_id, "Fund")
    return {
        "id": fund.id,
        "type": fund.fund_type.value,
        "status": fund.status.value,
        "original_amount": str(money(_to_decimal(fund.original_amount))),
        "used_amount": str(fund.used_amount),
        "balance": str(money(_to_decimal(fund.balance))),
        "usages": [
            {
                "id": u.id,
                "type": u.usage_type.value,
                "amount": str(u.amount),
                "reference_id": u.reference_id,
                "used_at": u.used_at.isoformat() if u.used_at else None,
            }
            for u in fund.usages
        ],
    }
