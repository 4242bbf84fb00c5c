"""
Procurement engine: purchase create / edit / delete with stock and fund reversal
"""
from decimal import Decimal

import pytest

from mfg_erp.errors import (
    FundInactive,
    InsufficientBalance,
    NegativeStock,
    NotFound,
    Unauthorized,
    ValidationError,
)
from mfg_erp.models import ActionType, ActivityLog, FundStatus, FundUsage, Purchase
from mfg_erp.services import manufacturing, procurement
from mfg_erp.services.procurement import PurchaseEffect, net_changes, reverse_effect

from helpers import TODAY, refreshed


def _buy(actor, material, fund=None, quantity="10", unit_price="50", total="500", **extra):
    return procurement.create_purchase(
        actor,
        material_id=material.id,
        quantity=quantity,
        unit_price=unit_price,
        total_amount=total,
        fund_id=fund.id if fund else None,
        purchase_date=TODAY,
        vendor_name="Textile Mills",
        **extra,
    )


# ---------------------------------------------------------------------
# Pure effect arithmetic
# ---------------------------------------------------------------------
def test_reverse_effect_negates_quantity_and_amount():
    effect = PurchaseEffect(material_id=1, quantity=Decimal("10"), fund_id=2, total_amount=Decimal("500"))

    reversed_ = reverse_effect(effect)

    assert reversed_.material_id == 1
    assert reversed_.fund_id == 2
    assert reversed_.quantity == Decimal("-10")
    assert reversed_.total_amount == Decimal("-500")


def test_net_changes_identical_edit_is_empty():
    effect = PurchaseEffect(material_id=1, quantity=Decimal("10"), fund_id=2, total_amount=Decimal("500"))

    assert net_changes(effect, effect) == ({}, {})


def test_net_changes_material_and_fund_switch():
    old = PurchaseEffect(material_id=1, quantity=Decimal("10"), fund_id=2, total_amount=Decimal("500"))
    new = PurchaseEffect(material_id=3, quantity=Decimal("4"), fund_id=None, total_amount=Decimal("200"))

    stock, drawn = net_changes(old, new)

    assert stock == {1: Decimal("-10.00"), 3: Decimal("4.00")}
    assert drawn == {2: Decimal("-500.00")}


# ---------------------------------------------------------------------
# Create
# ---------------------------------------------------------------------
def test_create_purchase_adds_stock_and_draws_fund(incharge, make_material, make_fund):
    material = make_material(stock="5.00")
    fund = make_fund("1000.00")

    purchase = _buy(incharge, material, fund)

    assert refreshed(material).stock_quantity == Decimal("15.00")
    assert refreshed(fund).balance == Decimal("500.00")
    usage = FundUsage.query.one()
    assert usage.reference_id == purchase.id
    assert purchase.fund_usage_id == usage.id
    log = ActivityLog.query.filter_by(module="purchases").one()
    assert log.action_type is ActionType.CREATE


def test_create_purchase_without_fund(incharge, make_material):
    material = make_material()

    purchase = _buy(incharge, material, total=None)

    assert purchase.total_amount == Decimal("500.00")
    assert purchase.fund_usage_id is None
    assert refreshed(material).stock_quantity == Decimal("10.00")


def test_create_purchase_total_must_match(incharge, make_material):
    material = make_material()

    with pytest.raises(ValidationError):
        _buy(incharge, material, total="499.98")

    # within one cent is accepted
    _buy(incharge, material, quantity="3", unit_price="3.33", total="10.00")
    assert Purchase.query.count() == 1


def test_create_purchase_insufficient_fund_leaves_nothing(incharge, make_material, make_fund):
    material = make_material()
    fund = make_fund("100.00")

    with pytest.raises(InsufficientBalance):
        _buy(incharge, material, fund)

    assert Purchase.query.count() == 0
    assert refreshed(material).stock_quantity == Decimal("0.00")
    assert refreshed(fund).balance == Decimal("100.00")
    assert ActivityLog.query.filter_by(action_type=ActionType.ERROR).count() == 1


def test_create_purchase_roles(shopkeeper, make_material):
    with pytest.raises(Unauthorized):
        _buy(shopkeeper, make_material())


def test_create_purchase_unknown_material(incharge):
    with pytest.raises(NotFound):
        procurement.create_purchase(
            incharge, material_id=999, quantity="1", unit_price="1", purchase_date=TODAY,
        )


def test_create_purchase_unknown_fund_is_not_found(incharge, make_material):
    material = make_material()

    with pytest.raises(NotFound):
        procurement.create_purchase(
            incharge, material_id=material.id, quantity="1", unit_price="5", fund_id=999, purchase_date=TODAY,
        )

    assert Purchase.query.count() == 0
    assert refreshed(material).stock_quantity == Decimal("0.00")


# ---------------------------------------------------------------------
# Edit / delete
# ---------------------------------------------------------------------
def test_fund_and_stock_round_trip_scenario(incharge, make_material, make_fund):
    material = make_material(stock="2.00")
    fund = make_fund("1000.00")

    purchase = _buy(incharge, material, fund, quantity="10", unit_price="50", total="500")
    assert refreshed(fund).balance == Decimal("500.00")
    assert refreshed(material).stock_quantity == Decimal("12.00")

    procurement.edit_purchase(incharge, purchase.id, {"quantity": "8", "total_amount": "400"})
    assert refreshed(fund).balance == Decimal("600.00")
    assert refreshed(material).stock_quantity == Decimal("10.00")

    procurement.delete_purchase(incharge, purchase.id)
    assert refreshed(fund).balance == Decimal("1000.00")
    assert refreshed(fund).status is FundStatus.ACTIVE
    assert refreshed(material).stock_quantity == Decimal("2.00")
    assert FundUsage.query.count() == 0


def test_edit_to_identical_values_changes_nothing(incharge, make_material, make_fund):
    material = make_material()
    fund = make_fund("1000.00")
    purchase = _buy(incharge, material, fund)

    procurement.edit_purchase(
        incharge,
        purchase.id,
        {"quantity": "10", "unit_price": "50", "total_amount": "500", "fund_id": fund.id},
    )

    assert refreshed(fund).balance == Decimal("500.00")
    assert refreshed(material).stock_quantity == Decimal("10.00")
    assert FundUsage.query.count() == 1


def test_edit_quantity_alone_recomputes_total(incharge, make_material, make_fund):
    material = make_material()
    fund = make_fund("1000.00")
    purchase = _buy(incharge, material, fund)

    procurement.edit_purchase(incharge, purchase.id, {"quantity": "8"})

    purchase = refreshed(purchase)
    assert purchase.total_amount == Decimal("400.00")
    assert FundUsage.query.one().amount == Decimal("400.00")
    assert refreshed(fund).balance == Decimal("600.00")
    assert refreshed(material).stock_quantity == Decimal("8.00")

    procurement.edit_purchase(incharge, purchase.id, {"unit_price": "60"})
    assert refreshed(purchase).total_amount == Decimal("480.00")
    assert refreshed(fund).balance == Decimal("520.00")


def test_edit_switches_material(incharge, make_material):
    cotton = make_material("Cotton")
    denim = make_material("Denim")
    purchase = _buy(incharge, cotton)

    procurement.edit_purchase(incharge, purchase.id, {"material_id": denim.id})

    assert refreshed(cotton).stock_quantity == Decimal("0.00")
    assert refreshed(denim).stock_quantity == Decimal("10.00")


def test_edit_switches_fund(incharge, make_material, make_fund):
    material = make_material()
    first = make_fund("500.00")
    second = make_fund("800.00")
    purchase = _buy(incharge, material, first)
    assert refreshed(first).status is FundStatus.DEPLETED

    procurement.edit_purchase(incharge, purchase.id, {"fund_id": second.id})

    assert refreshed(first).balance == Decimal("500.00")
    assert refreshed(first).status is FundStatus.ACTIVE
    assert refreshed(second).balance == Decimal("300.00")
    usage = FundUsage.query.one()
    assert usage.fund_id == second.id
    assert refreshed(purchase).fund_usage_id == usage.id


def test_edit_removes_fund(incharge, make_material, make_fund):
    material = make_material()
    fund = make_fund("1000.00")
    purchase = _buy(incharge, material, fund)

    procurement.edit_purchase(incharge, purchase.id, {"fund_id": None})

    assert refreshed(fund).balance == Decimal("1000.00")
    assert refreshed(purchase).fund_usage_id is None
    assert FundUsage.query.count() == 0


def test_edit_failing_on_new_fund_rolls_back_everything(incharge, make_material, make_fund):
    material = make_material()
    first = make_fund("1000.00")
    poor = make_fund("50.00")
    purchase = _buy(incharge, material, first)

    with pytest.raises(InsufficientBalance):
        procurement.edit_purchase(incharge, purchase.id, {"fund_id": poor.id, "quantity": "12", "total_amount": "600"})

    assert refreshed(first).balance == Decimal("500.00")
    assert refreshed(poor).balance == Decimal("50.00")
    assert refreshed(material).stock_quantity == Decimal("10.00")
    assert refreshed(purchase).quantity == Decimal("10.00")


def test_edit_increase_on_depleted_fund(incharge, make_material, make_fund):
    material = make_material()
    fund = make_fund("500.00")
    purchase = _buy(incharge, material, fund)

    with pytest.raises(InsufficientBalance):
        procurement.edit_purchase(incharge, purchase.id, {"quantity": "11", "total_amount": "550"})
    assert refreshed(fund).balance == Decimal("0.00")


def test_edit_cannot_drive_stock_negative(incharge, make_material, product):
    material = make_material()
    purchase = _buy(incharge, material)
    manufacturing.create_batch(
        incharge, product.id, start_date=TODAY, materials=[{"material_id": material.id, "quantity": "7"}],
    )
    assert refreshed(material).stock_quantity == Decimal("3.00")

    with pytest.raises(NegativeStock):
        procurement.edit_purchase(incharge, purchase.id, {"quantity": "5", "total_amount": "250"})
    with pytest.raises(NegativeStock):
        procurement.delete_purchase(incharge, purchase.id)

    assert refreshed(material).stock_quantity == Decimal("3.00")
    assert Purchase.query.count() == 1


def test_edit_on_inactive_new_fund(incharge, make_material, make_fund):
    material = make_material()
    fund = make_fund("100.00")
    drained = make_fund("20.00")
    _buy(incharge, material, drained, quantity="1", unit_price="20", total="20")
    purchase = _buy(incharge, material, fund, quantity="1", unit_price="10", total="10")

    with pytest.raises(FundInactive):
        procurement.edit_purchase(incharge, purchase.id, {"fund_id": drained.id})
    assert refreshed(fund).balance == Decimal("90.00")


def test_delete_unknown_purchase(incharge):
    with pytest.raises(NotFound):
        procurement.delete_purchase(incharge, 12345)
