"""
Pytest configuration and fixtures for the engine and API tests
"""
from decimal import Decimal

import pytest

from mfg_erp import create_app
from mfg_erp.extensions import db as _db
from mfg_erp.models import (
    Customer,
    Fund,
    FundStatus,
    FundType,
    Inventory,
    Product,
    RawMaterial,
    Role,
    User,
)
from mfg_erp.security import ActingUser

PASSWORD = "secret-pass-123"


@pytest.fixture()
def app():
    """Flask application on a fresh in-memory database for every test"""
    app = create_app("config.TestConfig")

    with app.app_context():
        _db.create_all()
        yield app
        _db.session.remove()
        _db.drop_all()


@pytest.fixture()
def db(app):
    return _db


@pytest.fixture()
def client(app):
    """Flask test client"""
    return app.test_client()


def _make_user(username, role, is_active=True):
    user = User(username=username, full_name=username.title(), role=role, is_active=is_active)
    user.set_password(PASSWORD)
    _db.session.add(user)
    _db.session.commit()
    return user


@pytest.fixture()
def owner_user(app):
    return _make_user("owner", Role.OWNER)


@pytest.fixture()
def incharge_user(app):
    return _make_user("incharge", Role.INCHARGE)


@pytest.fixture()
def shopkeeper_user(app):
    return _make_user("shopkeeper", Role.SHOPKEEPER)


@pytest.fixture()
def owner(owner_user):
    return ActingUser(owner_user.id, Role.OWNER)


@pytest.fixture()
def incharge(incharge_user):
    return ActingUser(incharge_user.id, Role.INCHARGE)


@pytest.fixture()
def shopkeeper(shopkeeper_user):
    return ActingUser(shopkeeper_user.id, Role.SHOPKEEPER)


@pytest.fixture()
def make_user(app):
    return _make_user


@pytest.fixture()
def make_fund(owner_user, incharge_user):
    """Investment fund held by the incharge user"""
    def _make(amount="1000.00"):
        amount = Decimal(amount)
        fund = Fund(
            fund_type=FundType.INVESTMENT,
            original_amount=amount,
            balance=amount,
            status=FundStatus.ACTIVE,
            from_user_id=owner_user.id,
            to_user_id=incharge_user.id,
        )
        _db.session.add(fund)
        _db.session.commit()
        return fund

    return _make


@pytest.fixture()
def make_material(app):
    def _make(name="Cotton fabric", stock="0.00", unit="meter"):
        material = RawMaterial(name=name, unit=unit, stock_quantity=Decimal(stock))
        _db.session.add(material)
        _db.session.commit()
        return material

    return _make


@pytest.fixture()
def product(app):
    item = Product(name="Denim Jacket", sku="DJ-001", unit_price=Decimal("45.00"))
    _db.session.add(item)
    _db.session.commit()
    return item


@pytest.fixture()
def customer(app):
    buyer = Customer(name="Corner Store", phone="555-0100")
    _db.session.add(buyer)
    _db.session.commit()
    return buyer


@pytest.fixture()
def stock_product(app):
    """Put units of a product at a location"""
    def _stock(product_id, location, quantity):
        row = Inventory.query.filter_by(product_id=product_id, location=location).first()
        if row is None:
            row = Inventory(product_id=product_id, location=location, quantity=0)
            _db.session.add(row)
        row.quantity = quantity
        _db.session.commit()
        return row

    return _stock
