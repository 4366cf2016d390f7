"""Checkout: turn a cart into one order per store.

A checkout is a single database transaction. Orders for every store group,
their line items, the coupon check and the cart reset are committed together
or not at all; a failure anywhere, including the payment provider refusing to
open a session, rolls the whole checkout back. The user is locked before the
order history is read, so two checkouts of one user run one after the other.
"""

from flask import current_app

from database import db
from errors import AddressNotFound, CouponNotFound, MissingOrderDetails, ProductNotFound
from models.address import Address
from models.coupon import Coupon
from models.order import CARD, CASH_ON_DELIVERY, Order, OrderItem
from models.product import Product
from models.user import User
from schemas import PlaceOrderRequest, parse
from services.accounts import get_or_create_user, lock_user
from services.payments import create_checkout_session
from services.pricing import LineItem, check_coupon_eligibility, price_vendor_groups


def prior_order_count(user_id):
    return db.session.scalar(
        db.select(db.func.count(Order.id)).where(Order.user_id == user_id)
    )


def find_coupon(code):
    coupon = db.session.get(Coupon, code)
    if coupon is None or coupon.is_expired():
        raise CouponNotFound()
    return coupon


def group_by_store(lines):
    """Resolve cart lines against the catalogue, grouped by owning store.

    Prices come from the product rows, never from the client. Groups keep
    the order in which their first product appears in the cart, which
    decides who carries the shipping fee.
    """
    groups = {}
    for line in lines:
        product = db.session.get(Product, line.id)
        if product is None:
            raise ProductNotFound()
        items = groups.setdefault(product.store_id, {})
        if product.id in items:
            previous = items[product.id]
            items[product.id] = LineItem(product.id, previous.price, previous.quantity + line.quantity)
        else:
            items[product.id] = LineItem(product.id, product.price, line.quantity)
    return {store_id: list(items.values()) for store_id, items in groups.items()}


def place_order(identity, payload, origin):
    data = parse(PlaceOrderRequest, payload, MissingOrderDetails)

    try:
        lock_user(identity.user_id)
        user = get_or_create_user(identity)

        address = db.session.get(Address, data.address_id)
        if address is None or address.user_id != user.id:
            raise AddressNotFound()

        coupon = None
        if data.coupon_code:
            coupon = find_coupon(data.coupon_code)
            check_coupon_eligibility(coupon, prior_order_count(user.id), identity.is_member)

        groups = group_by_store(data.items)
        quote = price_vendor_groups(
            list(groups.values()),
            discount_percent=coupon.discount if coupon else 0,
            is_member=identity.is_member,
            shipping_fee=current_app.config["SHIPPING_FEE"],
        )

        orders = []
        for (store_id, items), total in zip(groups.items(), quote.totals):
            order = Order(
                user_id=user.id,
                store_id=store_id,
                address_id=address.id,
                total=total,
                payment_method=data.payment_method,
                is_paid=False,
                is_coupon_used=coupon is not None,
                coupon=coupon.to_dict() if coupon else {},
                items=[
                    OrderItem(product_id=item.product_id, quantity=item.quantity, price=item.price)
                    for item in items
                ],
            )
            db.session.add(order)
            orders.append(order)
        db.session.flush()
        order_ids = [order.id for order in orders]

        if data.payment_method == CARD:
            # cart stays until the payment is confirmed
            session = create_checkout_session(quote.amount, order_ids, user.id, origin)
            result = {"session": session, "orderIds": order_ids, "amount": quote.amount}
        else:
            user.cart = {}
            result = {"message": "Order placed successfully", "orderIds": order_ids, "amount": quote.amount}

        db.session.commit()
    except Exception:
        db.session.rollback()
        raise

    current_app.logger.info(
        "User %s placed orders %s (%s, %.2f)", identity.user_id, order_ids, data.payment_method, quote.amount
    )
    return result


def list_orders(identity):
    """Cash orders plus card orders that have actually been paid."""
    query = (
        db.select(Order)
        .where(
            Order.user_id == identity.user_id,
            db.or_(
                Order.payment_method == CASH_ON_DELIVERY,
                db.and_(Order.payment_method == CARD, Order.is_paid.is_(True)),
            ),
        )
        .order_by(Order.created_at.desc(), Order.id.desc())
    )
    return db.session.execute(query).scalars().all()


def confirm_payment(order_ids, user_id):
    """Mark a checkout's card orders paid and empty the buyer's cart.

    Called by the payment confirmation flow with the ids that were stored in
    the checkout session metadata.
    """
    try:
        orders = db.session.execute(
            db.select(Order).where(
                Order.id.in_(order_ids), Order.user_id == user_id, Order.payment_method == CARD
            )
        ).scalars().all()
        for order in orders:
            order.is_paid = True
        user = db.session.get(User, user_id)
        if orders and user is not None:
            user.cart = {}
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise
    return [order.id for order in orders]
