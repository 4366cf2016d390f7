import os

import click
from flask import Flask, jsonify, request
from werkzeug.exceptions import HTTPException

from auth import identity_from_request
from database import db
from errors import MissingImageData, ShopError, ValidationError
# every model is imported so create_all sees its table
from models.address import Address  # noqa: F401
from models.coupon import Coupon
from models.order import Order, OrderItem  # noqa: F401
from models.product import Product
from models.rating import Rating  # noqa: F401
from models.store import STORE_ACTIVE, Store
from models.user import User
from schemas import ListingImageRequest, StockToggleRequest, parse
from services import accounts, assistant, orders, products, ratings, stores


def create_app(config_object="config.Config"):
    # ================== APP CONFIG ==================
    app = Flask(__name__)
    app.config.from_object(config_object)

    db.init_app(app)

    if app.config["SQLALCHEMY_DATABASE_URI"].startswith("sqlite:///"):
        os.makedirs(app.instance_path, exist_ok=True)

    with app.app_context():
        db.create_all()

    register_error_handlers(app)
    register_routes(app)
    register_commands(app)
    return app


# ================== ERRORS ==================
def register_error_handlers(app):
    @app.errorhandler(ShopError)
    def shop_error(exc):
        db.session.rollback()
        return jsonify({"error": exc.message}), exc.status_code

    @app.errorhandler(Exception)
    def unexpected_error(exc):
        if isinstance(exc, HTTPException):
            return jsonify({"error": exc.description}), exc.code
        db.session.rollback()
        app.logger.exception("Unhandled error on %s %s", request.method, request.path)
        return jsonify({"error": "Internal server error"}), 500


def json_body():
    body = request.get_json(silent=True)
    if not isinstance(body, dict):
        raise ValidationError("Request body must be a JSON object")
    return body


def request_origin(app):
    return request.headers.get("Origin") or app.config["FRONTEND_URL"]


# ================== ROUTES ==================
def register_routes(app):

    # ---------- ORDERS ----------
    @app.route("/api/orders", methods=["POST"])
    def place_order():
        identity = identity_from_request()
        result = orders.place_order(identity, json_body(), request_origin(app))
        return jsonify(result)

    @app.route("/api/orders", methods=["GET"])
    def my_orders():
        identity = identity_from_request()
        return jsonify({"orders": [o.to_dict() for o in orders.list_orders(identity)]})

    # ---------- RATING ----------
    @app.route("/api/rating", methods=["POST"])
    def add_rating():
        identity = identity_from_request()
        rating = ratings.add_rating(identity, json_body())
        return jsonify({"message": "Rating added successfully", "rating": rating.to_dict()})

    @app.route("/api/rating", methods=["GET"])
    def my_ratings():
        identity = identity_from_request()
        return jsonify({"ratings": [r.to_dict() for r in ratings.list_ratings(identity)]})

    # ---------- STORE ----------
    @app.route("/api/store/create", methods=["POST"])
    def create_store():
        identity = identity_from_request()
        result = stores.apply_for_store(identity, request.form.to_dict(), request.files.get("image"))
        return jsonify(result)

    @app.route("/api/store/create", methods=["GET"])
    def store_status():
        identity = identity_from_request()
        return jsonify({"status": stores.store_status(identity)})

    @app.route("/api/store/data")
    def store_data():
        return jsonify({"store": stores.store_profile(request.args.get("username", ""))})

    @app.route("/api/store/product", methods=["POST"])
    def add_product():
        identity = identity_from_request()
        products.add_product(identity, request.form.to_dict(), request.files.getlist("images"))
        return jsonify({"message": "Product added successfully"})

    @app.route("/api/store/product", methods=["GET"])
    def store_products():
        identity = identity_from_request()
        return jsonify({"products": [p.to_dict() for p in products.list_store_products(identity)]})

    @app.route("/api/store/stock-toggle", methods=["POST"])
    def stock_toggle():
        identity = identity_from_request()
        data = parse(StockToggleRequest, json_body(), ValidationError)
        product = products.toggle_stock(identity, data.product_id)
        return jsonify({"message": "Product stock updated successfully", "inStock": product.in_stock})

    @app.route("/api/store/ai", methods=["POST"])
    def listing_assistant():
        identity = identity_from_request()
        stores.seller_store(identity)
        data = parse(ListingImageRequest, json_body(), MissingImageData)
        listing = assistant.extract_listing(data.base64_image, data.mime_type)
        return jsonify(listing.to_dict())

    # ---------- CATALOG ----------
    @app.route("/api/products")
    def list_products():
        return jsonify({"products": [p.to_dict() for p in products.list_products()]})

    # ---------- CART ----------
    @app.route("/api/cart", methods=["GET"])
    def get_cart():
        identity = identity_from_request()
        return jsonify({"cart": accounts.get_cart(identity)})

    @app.route("/api/cart", methods=["POST"])
    def save_cart():
        identity = identity_from_request()
        cart = accounts.save_cart(identity, json_body().get("cart"))
        return jsonify({"message": "Cart updated", "cart": cart})

    # ---------- ADDRESS ----------
    @app.route("/api/address", methods=["GET"])
    def list_addresses():
        identity = identity_from_request()
        return jsonify({"addresses": [a.to_dict() for a in accounts.list_addresses(identity)]})

    @app.route("/api/address", methods=["POST"])
    def add_address():
        identity = identity_from_request()
        address = accounts.add_address(identity, json_body().get("address"))
        return jsonify({"message": "Address added successfully", "newAddress": address.to_dict()})


# ================== SAMPLE DATA ==================
def register_commands(app):
    @app.cli.command("seed")
    @click.option("--owner", default="demo-seller", help="Identity id that owns the demo store.")
    def seed(owner):
        """Insert a demo store, products and coupons into an empty database."""
        if db.session.execute(db.select(Product.id)).first() is not None:
            click.echo("Database already has products, nothing to do.")
            return

        user = db.session.get(User, owner) or User(id=owner, name="Demo Seller", cart={})
        store = Store(
            user=user,
            name="Demo Store",
            username="demostore",
            description="Sample storefront",
            email="demo@example.com",
            contact="0000000000",
            address="Demo street",
            logo="",
            status=STORE_ACTIVE,
            is_active=True,
        )
        sample_products = [
            Product(store=store, name="Men T-Shirt", description="Cotton tee", mrp=999, price=799, category="men"),
            Product(store=store, name="Men Jeans", description="Slim fit", mrp=1599, price=1299, category="men"),
            Product(store=store, name="Women Dress", description="Summer dress", mrp=1999, price=1499, category="women"),
            Product(store=store, name="Running Shoes", description="Lightweight", mrp=2499, price=1999, category="shoes"),
        ]
        coupons = [
            Coupon(code="NEW20", description="20% off your first order", discount=20, for_new_user=True, is_public=True),
            Coupon(code="PLUS10", description="10% off for members", discount=10, for_member=True, is_public=True),
        ]
        db.session.add_all([user, store, *sample_products, *coupons])
        db.session.commit()
        click.echo(f"Seeded {len(sample_products)} products and {len(coupons)} coupons.")


# ================== RUN ==================
if __name__ == "__main__":
    create_app().run(host="0.0.0.0", port=int(os.getenv("PORT", "5000")))
