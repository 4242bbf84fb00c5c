"""
JSON API: authentication, role gates, error envelope and a few end-to-end flows
"""
from decimal import Decimal

from mfg_erp.models import Location, Role, User

from conftest import PASSWORD
from helpers import TODAY, inventory_qty


def login(client, username):
    return client.post("/auth/login", json={"username": username, "password": PASSWORD})


def test_index(client):
    resp = client.get("/")

    assert resp.status_code == 200
    assert resp.get_json()["success"] is True


def test_login_and_me(client, owner_user):
    resp = login(client, "owner")
    assert resp.status_code == 200
    body = resp.get_json()
    assert body["user"]["username"] == "owner"
    assert "password_hash" not in body["user"]

    me = client.get("/auth/me").get_json()
    assert me["user"]["role"] == "owner"

    client.post("/auth/logout")
    assert client.get("/auth/me").status_code == 401


def test_login_rejects_bad_password_and_inactive_users(client, make_user):
    make_user("sleepy", Role.SHOPKEEPER, is_active=False)
    make_user("awake", Role.SHOPKEEPER)

    resp = client.post("/auth/login", json={"username": "awake", "password": "wrong"})
    assert resp.status_code == 403
    assert resp.get_json()["error"] == "unauthorized"

    assert login(client, "sleepy").status_code == 403
    assert client.post("/auth/login", json={}).status_code == 400


def test_unauthenticated_requests_get_json_401(client):
    resp = client.get("/funds/")

    assert resp.status_code == 401
    assert resp.get_json() == {"success": False, "error": "unauthenticated", "message": "Please log in."}


def test_transfer_funds_endpoint(client, owner_user, incharge_user):
    login(client, "owner")

    resp = client.post("/funds/transfer", json={"to_user_id": incharge_user.id, "amount": "750.00"})

    assert resp.status_code == 201
    fund = resp.get_json()["fund"]
    assert fund["balance"] == "750.00"
    assert fund["fund_type"] == "investment"
    assert fund["status"] == "active"

    summary = client.get(f"/funds/{fund['id']}").get_json()["fund"]
    assert summary["used_amount"] == "0.00"


def test_role_gate_returns_403(client, incharge_user, owner_user):
    login(client, "incharge")

    resp = client.post("/funds/transfer", json={"to_user_id": owner_user.id, "amount": "10"})

    assert resp.status_code == 403
    assert resp.get_json()["success"] is False


def test_engine_errors_use_the_envelope(client, incharge_user, make_material, make_fund):
    material = make_material()
    fund = make_fund("100.00")
    login(client, "incharge")

    resp = client.post(
        "/purchases/",
        json={
            "material_id": material.id,
            "quantity": "10",
            "unit_price": "50",
            "fund_id": fund.id,
            "purchase_date": TODAY,
        },
    )

    assert resp.status_code == 409
    body = resp.get_json()
    assert body["success"] is False
    assert body["error"] == "insufficient_balance"

    assert client.get("/purchases/999").status_code == 404
    bad = client.post("/purchases/", json={"material_id": material.id, "quantity": "-1", "unit_price": "1"})
    assert bad.status_code == 400
    assert bad.get_json()["error"] == "validation_error"


def test_purchase_flow_over_http(client, incharge_user, make_material, make_fund):
    material = make_material(stock="1.00")
    fund = make_fund("1000.00")
    login(client, "incharge")

    created = client.post(
        "/purchases/",
        json={
            "material_id": material.id,
            "quantity": "10",
            "unit_price": "50",
            "total_amount": "500",
            "fund_id": fund.id,
            "purchase_date": TODAY,
        },
    )
    assert created.status_code == 201
    purchase_id = created.get_json()["purchase"]["id"]

    edited = client.post(f"/purchases/{purchase_id}", json={"quantity": "8", "total_amount": "400"})
    assert edited.status_code == 200
    assert edited.get_json()["purchase"]["total_amount"] == "400.00"

    assert client.get(f"/funds/{fund.id}").get_json()["fund"]["balance"] == "600.00"

    assert client.post(f"/purchases/{purchase_id}/delete").status_code == 200
    assert client.get(f"/funds/{fund.id}").get_json()["fund"]["balance"] == "1000.00"


def test_transfer_endpoint_ignores_batch_link(client, incharge_user, shopkeeper_user, product):
    login(client, "incharge")

    resp = client.post(
        "/inventory/transfers",
        json={
            "product_id": product.id,
            "quantity": 5,
            "from_location": "manufacturing",
            "to_location": "wholesale",
            "batch_id": 1,
        },
    )

    assert resp.status_code == 201
    assert resp.get_json()["transfer"]["batch_id"] is None


def test_material_stock_listing_flags_low_stock(client, incharge_user, make_material):
    make_material("Thread", stock="0.00")
    make_material("Denim", stock="25.00")
    login(client, "incharge")

    materials = client.get("/purchases/materials").get_json()["materials"]

    assert [(m["name"], m["is_low_stock"]) for m in materials] == [("Denim", False), ("Thread", True)]


def test_sale_and_payment_over_http(client, shopkeeper_user, customer, product, stock_product):
    stock_product(product.id, Location.WHOLESALE, 20)
    login(client, "shopkeeper")

    created = client.post(
        "/sales/",
        json={
            "customer_id": customer.id,
            "sale_date": TODAY,
            "items": [{"product_id": product.id, "quantity": 4, "unit_price": "25"}],
        },
    )
    assert created.status_code == 201
    sale = created.get_json()["sale"]
    assert sale["net_amount"] == "100.00"
    assert inventory_qty(product.id, Location.WHOLESALE) == 16

    paid = client.post(f"/sales/{sale['id']}/payments", json={"amount": "40", "payment_method": "bank_transfer"})
    assert paid.status_code == 201
    assert paid.get_json()["payment_status"] == "partial"
    assert Decimal(paid.get_json()["amount_due"]) == Decimal("60.00")

    too_much = client.post(f"/sales/{sale['id']}/payments", json={"amount": "61"})
    assert too_much.status_code == 409
    assert too_much.get_json()["error"] == "over_payment"

    payment_id = paid.get_json()["payment"]["id"]
    voided = client.post(f"/sales/payments/{payment_id}/void", json={"reason": "wrong customer"})
    assert voided.get_json()["payment_status"] == "unpaid"


def test_sale_detail_limited_to_its_shopkeeper(client, shopkeeper_user, make_user, customer, product, stock_product):
    stock_product(product.id, Location.WHOLESALE, 5)
    make_user("second-shop", Role.SHOPKEEPER)
    login(client, "shopkeeper")
    sale_id = client.post(
        "/sales/",
        json={"customer_id": customer.id, "items": [{"product_id": product.id, "quantity": 1, "unit_price": "10"}]},
    ).get_json()["sale"]["id"]
    assert client.get(f"/sales/{sale_id}").status_code == 200

    client.post("/auth/logout")
    login(client, "second-shop")
    resp = client.get(f"/sales/{sale_id}")

    assert resp.status_code == 403
    assert resp.get_json()["error"] == "unauthorized"


def test_form_posts_with_json_encoded_items(client, shopkeeper_user, customer, product, stock_product):
    stock_product(product.id, Location.WHOLESALE, 5)
    login(client, "shopkeeper")

    resp = client.post(
        "/sales/",
        data={
            "customer_id": str(customer.id),
            "items": f'[{{"product_id": {product.id}, "quantity": 2, "unit_price": "10"}}]',
        },
    )

    assert resp.status_code == 201
    assert inventory_qty(product.id, Location.WHOLESALE) == 3


def test_seed_users_command_is_idempotent(app):
    runner = app.test_cli_runner()

    first = runner.invoke(args=["seed-users", "--password", "pw-123456"])
    second = runner.invoke(args=["seed-users", "--password", "pw-123456"])

    assert "3 created" in first.output
    assert "0 created" in second.output
    assert User.query.count() == 3
    assert User.query.filter_by(username="owner").one().check_password("pw-123456")
