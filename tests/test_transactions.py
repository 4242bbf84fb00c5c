"""
Transaction boundary: optimistic versions, unexpected failures and sink isolation
"""
from decimal import Decimal

import pytest
from sqlalchemy import event, text
from sqlalchemy.exc import SQLAlchemyError

from mfg_erp import audit
from mfg_erp.errors import ConcurrencyConflict
from mfg_erp.extensions import db
from mfg_erp.models import (
    ActionType,
    ActivityLog,
    FundUsage,
    InventoryAdjustment,
    InventoryTransfer,
    Location,
    Notification,
    Purchase,
)
from mfg_erp.services import funds, inventory, procurement, transfers

from helpers import TODAY, inventory_qty, refreshed


def _bump_version(table, row_id):
    """Another writer commits a change to the row behind the session's back"""
    db.session.execute(text(f"UPDATE {table} SET version = version + 1 WHERE id = :id"), {"id": row_id})


@pytest.fixture()
def failing_inserts():
    """Make every INSERT of the given model fail until the test ends"""
    registered = []

    def _fail(model):
        def refuse(mapper, connection, target):
            raise SQLAlchemyError(f"{model.__tablename__} store unavailable")

        event.listen(model, "before_insert", refuse)
        registered.append((model, refuse))

    yield _fail

    for model, refuse in registered:
        event.remove(model, "before_insert", refuse)


# ---------------------------------------------------------------------
# Version columns
# ---------------------------------------------------------------------
def test_stale_fund_write_is_a_concurrency_conflict(monkeypatch, make_fund, incharge):
    fund = make_fund("100.00")
    lock_fund = funds.lock_fund

    def lock_then_race(fund_id):
        row = lock_fund(fund_id)
        _bump_version("funds", fund_id)
        return row

    monkeypatch.setattr(funds, "lock_fund", lock_then_race)

    with pytest.raises(ConcurrencyConflict):
        funds.record_usage(incharge, fund.id, "10")

    assert refreshed(fund).balance == Decimal("100.00")
    assert FundUsage.query.count() == 0
    entry = ActivityLog.query.one()
    assert entry.action_type is ActionType.ERROR
    assert entry.module == "funds"


def test_stale_inventory_write_is_a_concurrency_conflict(monkeypatch, incharge, product, stock_product):
    stock_product(product.id, Location.WHOLESALE, 10)
    lock_inventory = inventory.lock_inventory

    def lock_then_race(product_id, location):
        row = lock_inventory(product_id, location)
        _bump_version("inventory", row.id)
        return row

    monkeypatch.setattr(inventory, "lock_inventory", lock_then_race)

    with pytest.raises(ConcurrencyConflict):
        inventory.adjust_inventory(incharge, product.id, "wholesale", -3, "damaged in storage")

    db.session.expire_all()
    assert inventory_qty(product.id, Location.WHOLESALE) == 10
    assert InventoryAdjustment.query.count() == 0
    assert ActivityLog.query.filter_by(action_type=ActionType.ERROR).count() == 1


def test_version_increments_on_each_write(make_fund, incharge):
    fund = make_fund("100.00")
    first = refreshed(fund).version

    funds.record_usage(incharge, fund.id, "10")
    funds.record_usage(incharge, fund.id, "10")

    assert refreshed(fund).version == first + 2


# ---------------------------------------------------------------------
# Unexpected failures
# ---------------------------------------------------------------------
def test_unexpected_error_rolls_back_and_is_logged(monkeypatch, incharge, make_material, make_fund):
    material = make_material()
    fund = make_fund("1000.00")

    def broken(material_id, delta):
        raise RuntimeError("stock service down")

    monkeypatch.setattr(procurement, "apply_material_delta", broken)

    with pytest.raises(RuntimeError):
        procurement.create_purchase(
            incharge, material_id=material.id, quantity="2", unit_price="5", fund_id=fund.id, purchase_date=TODAY,
        )

    assert Purchase.query.count() == 0
    assert refreshed(fund).balance == Decimal("1000.00")
    entry = ActivityLog.query.one()
    assert entry.action_type is ActionType.ERROR
    assert "stock service down" in entry.description


# ---------------------------------------------------------------------
# Sink isolation
# ---------------------------------------------------------------------
def test_activity_sink_failure_keeps_the_purchase(failing_inserts, incharge, make_material):
    material = make_material()
    failing_inserts(ActivityLog)

    purchase = procurement.create_purchase(
        incharge, material_id=material.id, quantity="4", unit_price="5", purchase_date=TODAY,
    )

    assert Purchase.query.count() == 1
    assert refreshed(purchase).total_amount == Decimal("20.00")
    assert refreshed(material).stock_quantity == Decimal("4.00")
    assert ActivityLog.query.count() == 0
    assert audit.log_activity(incharge.id, ActionType.UPDATE, "purchases", "direct write") is False


def test_notification_sink_failure_keeps_the_transfer(
    failing_inserts, incharge, shopkeeper_user, product
):
    failing_inserts(Notification)

    transfer = transfers.initiate(incharge, product.id, 3, "manufacturing", "wholesale")

    assert InventoryTransfer.query.count() == 1
    assert transfer.shopkeeper_id == shopkeeper_user.id
    assert Notification.query.count() == 0
    assert ActivityLog.query.filter_by(action_type=ActionType.CREATE).count() == 1
    assert audit.notify(shopkeeper_user.id, "inventory_transfer", "retry") is False
