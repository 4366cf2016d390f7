import threading
from unittest.mock import patch

import pytest
import requests
from sqlalchemy.exc import IntegrityError

from app import create_app
from config import TestConfig
from conftest import (
    auth_headers,
    count_orders,
    create_address,
    create_coupon,
    create_product,
    create_store,
    fake_response,
)
from database import db
from models.order import CARD, Order
from models.user import User
from services.orders import confirm_payment, prior_order_count

BUYER = "buyer-1"


def build_catalog(app):
    store_a = create_store(app, owner="seller-a", username="alpha")
    store_b = create_store(app, owner="seller-b", username="beta")
    return {
        "store_a": store_a,
        "store_b": store_b,
        "product_a": create_product(app, store_a, 20, name="Collar"),
        "product_b": create_product(app, store_b, 15, name="Leash"),
        "address": create_address(app, BUYER),
    }


@pytest.fixture
def catalog(app):
    return build_catalog(app)


def order_body(catalog, payment_method="CASH_ON_DELIVERY", coupon=None, items=None):
    body = {
        "addressId": catalog["address"],
        "paymentMethod": payment_method,
        "items": items
        or [{"id": catalog["product_a"], "quantity": 2}, {"id": catalog["product_b"], "quantity": 1}],
    }
    if coupon:
        body["couponCode"] = coupon
    return body


def stored_orders(app, user_id=BUYER):
    with app.app_context():
        orders = db.session.execute(
            db.select(Order).filter_by(user_id=user_id).order_by(Order.id)
        ).scalars().all()
        return [(o.store_id, o.total, o.is_paid, o.payment_method) for o in orders]


def cart_of(app, user_id=BUYER):
    with app.app_context():
        return db.session.get(User, user_id).cart


def test_cash_checkout_splits_orders_per_store(app, client, catalog):
    res = client.post("/api/orders", json=order_body(catalog), headers=auth_headers(BUYER))

    assert res.status_code == 200
    assert res.get_json()["message"] == "Order placed successfully"
    assert res.get_json()["amount"] == 60.00
    assert stored_orders(app) == [
        (catalog["store_a"], 45.00, False, "CASH_ON_DELIVERY"),
        (catalog["store_b"], 15.00, False, "CASH_ON_DELIVERY"),
    ]
    assert cart_of(app) == {}


def test_order_items_snapshot_server_side_price(app, client, catalog):
    body = order_body(catalog)
    body["items"][0]["price"] = 0.01  # ignored
    client.post("/api/orders", json=body, headers=auth_headers(BUYER))

    with app.app_context():
        order = db.session.execute(db.select(Order).order_by(Order.id)).scalars().first()
        assert [(i.product_id, i.quantity, i.price) for i in order.items] == [(catalog["product_a"], 2, 20)]


def test_percentage_coupon_then_single_shipping_fee(app, client, catalog):
    create_coupon(app, "SAVE10", discount=10)

    res = client.post("/api/orders", json=order_body(catalog, coupon="save10"), headers=auth_headers(BUYER))

    assert res.status_code == 200
    assert res.get_json()["amount"] == 54.50
    totals = [total for _, total, _, _ in stored_orders(app)]
    assert totals == [41.00, 13.50]


def test_first_seen_store_carries_shipping(app, client, catalog):
    items = [{"id": catalog["product_b"], "quantity": 1}, {"id": catalog["product_a"], "quantity": 2}]
    client.post("/api/orders", json=order_body(catalog, items=items), headers=auth_headers(BUYER))

    assert stored_orders(app) == [
        (catalog["store_b"], 20.00, False, "CASH_ON_DELIVERY"),
        (catalog["store_a"], 40.00, False, "CASH_ON_DELIVERY"),
    ]


def test_member_pays_no_shipping(app, client, catalog):
    res = client.post("/api/orders", json=order_body(catalog), headers=auth_headers(BUYER, plan="plus"))

    assert res.get_json()["amount"] == 55.00


def test_repeated_product_lines_are_merged(app, client, catalog):
    items = [{"id": catalog["product_a"], "quantity": 1}, {"id": catalog["product_a"], "quantity": 2}]
    res = client.post("/api/orders", json=order_body(catalog, items=items), headers=auth_headers(BUYER))

    assert res.status_code == 200
    assert res.get_json()["amount"] == 65.00


@pytest.mark.parametrize(
    "mutate",
    [
        lambda body: body.pop("addressId"),
        lambda body: body.pop("paymentMethod"),
        lambda body: body.update(items=[]),
        lambda body: body.update(paymentMethod="BITCOIN"),
        lambda body: body.update(items=[{"id": 1, "quantity": 0}]),
    ],
)
def test_missing_order_details(app, client, catalog, mutate):
    body = order_body(catalog)
    mutate(body)
    res = client.post("/api/orders", json=body, headers=auth_headers(BUYER))

    assert res.status_code == 400
    assert res.get_json() == {"error": "Missing order details"}


def test_checkout_requires_identity(client, catalog):
    assert client.post("/api/orders", json=order_body(catalog)).status_code == 401

    forged = {"Authorization": "Bearer " + "x.y.z"}
    res = client.post("/api/orders", json=order_body(catalog), headers=forged)
    assert res.status_code == 401
    assert res.get_json() == {"error": "Not authorized"}


def test_stale_product_fails_without_creating_orders(app, client, catalog):
    items = [{"id": catalog["product_a"], "quantity": 1}, {"id": 9999, "quantity": 1}]
    res = client.post("/api/orders", json=order_body(catalog, items=items), headers=auth_headers(BUYER))

    assert res.status_code == 404
    assert res.get_json() == {"error": "Product not found"}
    assert count_orders(app) == 0


def test_unknown_coupon_fails_before_any_order(app, client, catalog):
    res = client.post("/api/orders", json=order_body(catalog, coupon="NOPE"), headers=auth_headers(BUYER))

    assert res.status_code == 404
    assert res.get_json() == {"error": "Coupon not found"}
    assert count_orders(app) == 0


def test_address_must_belong_to_buyer(app, client, catalog):
    someone_else = create_address(app, "buyer-2")
    body = order_body(catalog)
    body["addressId"] = someone_else
    res = client.post("/api/orders", json=body, headers=auth_headers(BUYER))

    assert res.status_code == 404
    assert res.get_json() == {"error": "Address not found"}


def test_new_user_coupon_only_redeemed_once(app, client, catalog):
    create_coupon(app, "WELCOME", discount=20, for_new_user=True)

    first = client.post("/api/orders", json=order_body(catalog, coupon="WELCOME"), headers=auth_headers(BUYER))
    second = client.post("/api/orders", json=order_body(catalog, coupon="WELCOME"), headers=auth_headers(BUYER))

    assert first.status_code == 200
    assert second.status_code == 400
    assert second.get_json() == {"error": "Coupon valid for new users only"}
    assert count_orders(app) == 2


@pytest.fixture
def file_app(tmp_path):
    # in-memory SQLite shares one connection, so a real file is needed to race
    config = type(
        "FileConfig",
        (TestConfig,),
        {
            "SQLALCHEMY_DATABASE_URI": f"sqlite:///{tmp_path / 'shop.db'}",
            "SQLALCHEMY_ENGINE_OPTIONS": {"connect_args": {"timeout": 15}},
        },
    )
    app = create_app(config)
    yield app
    with app.app_context():
        db.session.remove()
        db.drop_all()
        db.engine.dispose()


def test_concurrent_new_user_coupon_checkouts_redeem_once(file_app):
    catalog = build_catalog(file_app)
    create_coupon(file_app, "WELCOME", discount=20, for_new_user=True)
    both_counted = threading.Barrier(2)

    def count_then_wait(user_id):
        count = prior_order_count(user_id)
        try:
            # only reached together when neither checkout holds the user lock
            both_counted.wait(timeout=1)
        except threading.BrokenBarrierError:
            pass
        return count

    results = []

    def checkout():
        res = file_app.test_client().post(
            "/api/orders", json=order_body(catalog, coupon="WELCOME"), headers=auth_headers(BUYER)
        )
        results.append((res.status_code, res.get_json()))

    with patch("services.orders.prior_order_count", count_then_wait):
        threads = [threading.Thread(target=checkout) for _ in range(2)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join(timeout=30)

    assert sorted(status for status, _ in results) == [200, 400]
    assert (400, {"error": "Coupon valid for new users only"}) in results
    assert count_orders(file_app) == 2


def test_checkout_takes_the_user_lock_first(app, client, catalog):
    with app.app_context():
        before = db.session.get(User, BUYER).checkout_version

    client.post("/api/orders", json=order_body(catalog), headers=auth_headers(BUYER))

    with app.app_context():
        assert db.session.get(User, BUYER).checkout_version == before + 1


def test_member_coupon_rejected_for_non_member(app, client, catalog):
    create_coupon(app, "PLUS", discount=10, for_member=True)

    res = client.post("/api/orders", json=order_body(catalog, coupon="PLUS"), headers=auth_headers(BUYER))
    assert res.status_code == 400
    assert res.get_json() == {"error": "Coupon valid for members only"}

    res = client.post("/api/orders", json=order_body(catalog, coupon="PLUS"), headers=auth_headers(BUYER, plan="plus"))
    assert res.status_code == 200
    assert res.get_json()["amount"] == 49.50


def test_card_checkout_opens_session_and_keeps_cart(app, client, catalog):
    stripe = fake_response(json={"id": "cs_test_1", "url": "https://checkout.stripe.com/c/cs_test_1"})
    with patch("services.upstream.requests.request", return_value=stripe) as send:
        res = client.post(
            "/api/orders",
            json=order_body(catalog, payment_method="CARD"),
            headers={**auth_headers(BUYER), "Origin": "https://shop.example"},
        )

    assert res.status_code == 200
    body = res.get_json()
    assert body["session"]["id"] == "cs_test_1"
    assert body["session"]["url"] == "https://checkout.stripe.com/c/cs_test_1"

    method, url = send.call_args.args
    form = send.call_args.kwargs["data"]
    assert (method, url) == ("POST", "https://api.stripe.com/v1/checkout/sessions")
    assert form["line_items[0][price_data][unit_amount]"] == 6000
    assert form["line_items[0][price_data][currency]"] == "aed"
    assert form["metadata[orderIds]"] == ",".join(str(i) for i in body["orderIds"])
    assert form["metadata[userId]"] == BUYER
    assert form["success_url"] == "https://shop.example/loading?nextUrl=orders"
    assert form["cancel_url"] == "https://shop.example/cart"
    assert send.call_args.kwargs["timeout"] == 10

    assert [paid for _, _, paid, _ in stored_orders(app)] == [False, False]
    assert cart_of(app) == {"1": 1}
    assert client.get("/api/orders", headers=auth_headers(BUYER)).get_json()["orders"] == []


def test_payment_confirmation_marks_orders_paid(app, client, catalog):
    stripe = fake_response(json={"id": "cs_test_2", "url": "https://checkout.stripe.com/c/cs_test_2"})
    with patch("services.upstream.requests.request", return_value=stripe):
        order_ids = client.post(
            "/api/orders", json=order_body(catalog, payment_method="CARD"), headers=auth_headers(BUYER)
        ).get_json()["orderIds"]

    with app.app_context():
        assert sorted(confirm_payment(order_ids, BUYER)) == sorted(order_ids)

    assert [paid for _, _, paid, _ in stored_orders(app)] == [True, True]
    assert cart_of(app) == {}
    listed = client.get("/api/orders", headers=auth_headers(BUYER)).get_json()["orders"]
    assert sorted(o["id"] for o in listed) == sorted(order_ids)


def test_payment_provider_failure_rolls_back_every_order(app, client, catalog):
    create_coupon(app, "WELCOME", discount=20, for_new_user=True)
    refused = fake_response(status=402, json={"error": {"message": "secret provider detail"}}, text="secret provider detail")

    with patch("services.upstream.requests.request", return_value=refused):
        res = client.post(
            "/api/orders", json=order_body(catalog, payment_method="CARD", coupon="WELCOME"), headers=auth_headers(BUYER)
        )

    assert res.status_code == 424
    assert res.get_json() == {"error": "Upstream service failed"}
    assert "secret" not in res.get_data(as_text=True)
    assert count_orders(app) == 0

    # nothing was committed, so the new-user coupon is still usable
    retry = client.post("/api/orders", json=order_body(catalog, coupon="WELCOME"), headers=auth_headers(BUYER))
    assert retry.status_code == 200


def test_payment_provider_timeout_is_reported_separately(app, client, catalog):
    with patch("services.upstream.requests.request", side_effect=requests.Timeout()):
        res = client.post("/api/orders", json=order_body(catalog, payment_method="CARD"), headers=auth_headers(BUYER))

    assert res.status_code == 424
    assert res.get_json() == {"error": "Upstream service timed out"}
    assert count_orders(app) == 0


def test_orders_listing_includes_items_and_address(app, client, catalog):
    client.post("/api/orders", json=order_body(catalog), headers=auth_headers(BUYER))

    orders = client.get("/api/orders", headers=auth_headers(BUYER)).get_json()["orders"]

    assert len(orders) == 2
    assert {o["storeId"] for o in orders} == {catalog["store_a"], catalog["store_b"]}
    assert all(o["address"]["id"] == catalog["address"] for o in orders)
    assert all(o["orderItems"][0]["product"]["name"] in ("Collar", "Leash") for o in orders)
    assert sum(o["total"] for o in orders) == pytest.approx(60.00, abs=0.01)


@pytest.mark.parametrize("session", [{"id": "cs_test_3"}, {"url": "https://checkout.stripe.com/c/x"}, ["cs_test_3"]])
def test_checkout_session_without_url_rolls_back(app, client, catalog, session):
    with patch("services.upstream.requests.request", return_value=fake_response(json=session)):
        res = client.post("/api/orders", json=order_body(catalog, payment_method="CARD"), headers=auth_headers(BUYER))

    assert res.status_code == 424
    assert res.get_json() == {"error": "Upstream service failed"}
    assert count_orders(app) == 0


def test_checkout_session_reply_that_is_not_json(app, client, catalog):
    reply = fake_response(text="<html>gateway</html>")
    reply.json.side_effect = ValueError("not json")
    with patch("services.upstream.requests.request", return_value=reply):
        res = client.post("/api/orders", json=order_body(catalog, payment_method="CARD"), headers=auth_headers(BUYER))

    assert res.status_code == 424
    assert count_orders(app) == 0


@pytest.mark.parametrize("field, value", [("status", "LOST"), ("payment_method", "BITCOIN")])
def test_order_status_and_payment_method_are_restricted(app, catalog, field, value):
    with app.app_context():
        order = Order(
            user_id=BUYER,
            store_id=catalog["store_a"],
            address_id=catalog["address"],
            total=20,
            payment_method=CARD,
        )
        setattr(order, field, value)
        db.session.add(order)
        with pytest.raises(IntegrityError):
            db.session.commit()
        db.session.rollback()
