from flask import current_app

from database import db
from errors import MissingProductDetails, ProductNotFound
from models.product import Product
from models.store import Store
from schemas import ProductListing, parse
from services import images
from services.stores import seller_store


def add_product(identity, form, files):
    store = seller_store(identity)
    files = [f for f in files if f and f.filename]
    if not files:
        raise MissingProductDetails()
    data = parse(ProductListing, form, MissingProductDetails)

    urls = [images.upload_optimized(f, "products", images.PRODUCT_WIDTH) for f in files]

    product = Product(store_id=store.id, images=urls, **data.model_dump())
    db.session.add(product)
    db.session.commit()
    current_app.logger.info("Product %s added to store %s", product.id, store.username)
    return product


def list_store_products(identity):
    store = seller_store(identity)
    return db.session.execute(
        db.select(Product).filter_by(store_id=store.id).order_by(Product.created_at.desc())
    ).scalars().all()


def toggle_stock(identity, product_id):
    store = seller_store(identity)
    product = db.session.execute(
        db.select(Product).filter_by(id=product_id, store_id=store.id)
    ).scalar_one_or_none()
    if product is None:
        raise ProductNotFound()

    product.in_stock = not product.in_stock
    db.session.commit()
    return product


def list_products():
    """In-stock products of active stores, newest first."""
    return db.session.execute(
        db.select(Product)
        .join(Store)
        .where(Product.in_stock.is_(True), Store.is_active.is_(True))
        .order_by(Product.created_at.desc())
    ).scalars().all()
