import io
from unittest.mock import MagicMock

import jwt
import pytest

from app import create_app
from database import db
from models.address import Address
from models.coupon import Coupon
from models.order import Order
from models.product import Product
from models.store import STORE_ACTIVE, STORE_PENDING, Store
from models.user import User


@pytest.fixture
def app():
    app = create_app("config.TestConfig")
    yield app
    with app.app_context():
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app):
    return app.test_client()


def make_token(user_id, plan=None, secret="test-identity-secret-0123456789abcdef", **claims):
    payload = {"sub": user_id, **claims}
    if plan:
        payload["plan"] = plan
    return jwt.encode(payload, secret, algorithm="HS256")


def auth_headers(user_id, plan=None, **claims):
    return {"Authorization": f"Bearer {make_token(user_id, plan, **claims)}"}


def fake_response(status=200, json=None, text=""):
    response = MagicMock()
    response.status_code = status
    response.ok = 200 <= status < 300
    response.json.return_value = json if json is not None else {}
    response.text = text
    return response


def image_file(name="logo.png"):
    return (io.BytesIO(b"\x89PNG fake image bytes"), name)


# ---------- factories (each returns plain ids so callers need no session) ----------
def create_user(app, user_id="buyer-1"):
    with app.app_context():
        if db.session.get(User, user_id) is None:
            db.session.add(User(id=user_id, cart={"1": 1}))
            db.session.commit()
    return user_id


def create_store(app, owner="seller-1", username="acme", active=True):
    create_user(app, owner)
    with app.app_context():
        store = Store(
            user_id=owner,
            name=username.title(),
            username=username,
            description="A store",
            email=f"{username}@example.com",
            contact="555-0100",
            address="1 Market St",
            logo="https://ik.imagekit.io/shop/logo.webp",
            status=STORE_ACTIVE if active else STORE_PENDING,
            is_active=active,
        )
        db.session.add(store)
        db.session.commit()
        return store.id


def create_product(app, store_id, price, name="Item", in_stock=True):
    with app.app_context():
        product = Product(
            store_id=store_id,
            name=name,
            description=f"{name} description",
            mrp=price + 10,
            price=price,
            category="general",
            images=["https://ik.imagekit.io/shop/item.webp"],
            in_stock=in_stock,
        )
        db.session.add(product)
        db.session.commit()
        return product.id


def create_address(app, user_id="buyer-1"):
    create_user(app, user_id)
    with app.app_context():
        address = Address(
            user_id=user_id,
            name="Jane Buyer",
            email="jane@example.com",
            street="2 Side St",
            city="Dubai",
            state="Dubai",
            zip="00000",
            country="AE",
            phone="555-0199",
        )
        db.session.add(address)
        db.session.commit()
        return address.id


def create_coupon(app, code="SAVE10", discount=10, for_new_user=False, for_member=False, expires_at=None):
    with app.app_context():
        db.session.add(
            Coupon(
                code=code,
                description=f"{discount}% off",
                discount=discount,
                for_new_user=for_new_user,
                for_member=for_member,
                expires_at=expires_at,
            )
        )
        db.session.commit()
    return code


def count_orders(app, user_id="buyer-1"):
    with app.app_context():
        return db.session.scalar(
            db.select(db.func.count(Order.id)).where(Order.user_id == user_id)
        )
