"""
Inventory transfer protocol: initiate, confirm exactly once, reject, manual adjustment
"""
import pytest

from mfg_erp.errors import InsufficientStock, NotPending, Unauthorized, ValidationError
from mfg_erp.models import InventoryAdjustment, Location, Notification, Role, TransferStatus
from mfg_erp.security import ActingUser
from mfg_erp.services import inventory, transfers

from helpers import inventory_qty, refreshed

MANUFACTURING = Location.MANUFACTURING
WHOLESALE = Location.WHOLESALE


def _initiate(actor, product, quantity=5, **kwargs):
    return transfers.initiate(actor, product.id, quantity, "manufacturing", "wholesale", **kwargs)


def test_initiate_moves_no_stock_and_notifies_assignee(incharge, shopkeeper_user, product, stock_product):
    stock_product(product.id, MANUFACTURING, 10)

    transfer = _initiate(incharge, product)

    assert transfer.status is TransferStatus.PENDING
    assert transfer.shopkeeper_id == shopkeeper_user.id
    assert inventory_qty(product.id, MANUFACTURING) == 10
    assert inventory_qty(product.id, WHOLESALE) == 0
    note = Notification.query.one()
    assert note.user_id == shopkeeper_user.id
    assert note.related_id == transfer.id


def test_default_assignee_is_first_active_shopkeeper(incharge, make_user, product):
    make_user("retired", Role.SHOPKEEPER, is_active=False)
    first = make_user("alice", Role.SHOPKEEPER)
    make_user("bob", Role.SHOPKEEPER)

    transfer = _initiate(incharge, product)

    assert transfer.shopkeeper_id == first.id


def test_initiate_validation(incharge, shopkeeper, product):
    with pytest.raises(ValidationError):
        transfers.initiate(incharge, product.id, 5, "wholesale", "wholesale")
    with pytest.raises(ValidationError):
        transfers.initiate(incharge, product.id, 0, "manufacturing", "wholesale")
    with pytest.raises(ValidationError):
        transfers.initiate(incharge, product.id, "2.5", "manufacturing", "wholesale")
    with pytest.raises(ValidationError):
        transfers.initiate(incharge, product.id, 1, "garage", "wholesale")
    with pytest.raises(Unauthorized):
        _initiate(shopkeeper, product)


def test_confirm_moves_stock_exactly_once(incharge, shopkeeper, product, stock_product):
    stock_product(product.id, MANUFACTURING, 10)
    transfer = _initiate(incharge, product, quantity=4)

    transfers.confirm(shopkeeper, transfer.id, notes="all boxes received")

    transfer = refreshed(transfer)
    assert transfer.status is TransferStatus.CONFIRMED
    assert transfer.resolved_by == shopkeeper.id
    assert inventory_qty(product.id, MANUFACTURING) == 6
    assert inventory_qty(product.id, WHOLESALE) == 4

    with pytest.raises(NotPending):
        transfers.confirm(shopkeeper, transfer.id)
    with pytest.raises(NotPending):
        transfers.reject(shopkeeper, transfer.id, "late")

    assert inventory_qty(product.id, MANUFACTURING) == 6
    assert inventory_qty(product.id, WHOLESALE) == 4


def test_confirm_only_by_assignee_or_owner(owner, incharge, shopkeeper_user, make_user, product, stock_product):
    stock_product(product.id, MANUFACTURING, 10)
    other = make_user("other-shop", Role.SHOPKEEPER)
    transfer = _initiate(incharge, product, quantity=2)

    with pytest.raises(Unauthorized):
        transfers.confirm(ActingUser(other.id, Role.SHOPKEEPER), transfer.id)
    with pytest.raises(Unauthorized):
        transfers.confirm(incharge, transfer.id)

    transfers.confirm(owner, transfer.id)
    assert inventory_qty(product.id, WHOLESALE) == 2


def test_confirm_with_insufficient_source_fails_atomically(incharge, shopkeeper, product, stock_product):
    stock_product(product.id, MANUFACTURING, 3)
    transfer = _initiate(incharge, product, quantity=5)

    with pytest.raises(InsufficientStock):
        transfers.confirm(shopkeeper, transfer.id)

    assert refreshed(transfer).status is TransferStatus.PENDING
    assert inventory_qty(product.id, MANUFACTURING) == 3
    assert inventory_qty(product.id, WHOLESALE) == 0


def test_reject_requires_reason_and_moves_nothing(incharge, shopkeeper, product, stock_product):
    stock_product(product.id, MANUFACTURING, 10)
    transfer = _initiate(incharge, product)

    with pytest.raises(ValidationError):
        transfers.reject(shopkeeper, transfer.id, "")

    transfers.reject(shopkeeper, transfer.id, "damaged in transit")

    transfer = refreshed(transfer)
    assert transfer.status is TransferStatus.REJECTED
    assert transfer.rejection_reason == "damaged in transit"
    assert inventory_qty(product.id, MANUFACTURING) == 10
    with pytest.raises(NotPending):
        transfers.confirm(shopkeeper, transfer.id)


def test_adjust_inventory_keeps_stock_non_negative(incharge, product, stock_product):
    stock_product(product.id, WHOLESALE, 4)

    with pytest.raises(InsufficientStock):
        inventory.adjust_inventory(incharge, product.id, "wholesale", -5, "stock count")
    with pytest.raises(ValidationError):
        inventory.adjust_inventory(incharge, product.id, "wholesale", -1, "")

    adjustment = inventory.adjust_inventory(incharge, product.id, "wholesale", -3, "stock count")

    assert adjustment.quantity_change == -3
    assert inventory_qty(product.id, WHOLESALE) == 1
    assert InventoryAdjustment.query.count() == 1
    assert inventory.product_stock(product.id) == {
        "manufacturing": 0,
        "wholesale": 1,
        "transit": 0,
        "total": 1,
    }
