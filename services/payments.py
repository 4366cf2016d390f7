import time

from flask import current_app

from errors import UpstreamError
from services.upstream import call_upstream, require_setting


def to_minor_units(amount):
    return int(round(amount * 100))


def checkout_session_form(amount, order_ids, user_id, origin, expires_at):
    """Form fields for Stripe's ``POST /checkout/sessions``."""
    config = current_app.config
    return {
        "mode": "payment",
        "payment_method_types[0]": "card",
        "line_items[0][quantity]": 1,
        "line_items[0][price_data][currency]": config["CURRENCY"],
        "line_items[0][price_data][unit_amount]": to_minor_units(amount),
        "line_items[0][price_data][product_data][name]": "Order",
        "expires_at": expires_at,
        "success_url": f"{origin}/loading?nextUrl=orders",
        "cancel_url": f"{origin}/cart",
        "metadata[orderIds]": ",".join(str(order_id) for order_id in order_ids),
        "metadata[userId]": user_id,
        "metadata[appId]": config["STORE_APP_ID"],
    }


def create_checkout_session(amount, order_ids, user_id, origin):
    """Open a hosted card checkout for the unpaid orders of one checkout.

    The order ids travel in the session metadata; whoever confirms the
    payment later marks exactly those orders paid.
    """
    secret = require_setting("STRIPE_SECRET_KEY", "Stripe")
    expires_at = int(time.time()) + current_app.config["CHECKOUT_SESSION_MINUTES"] * 60

    response = call_upstream(
        "POST",
        f"{current_app.config['STRIPE_API_BASE']}/checkout/sessions",
        "Stripe",
        auth=(secret, ""),
        data=checkout_session_form(amount, order_ids, user_id, origin, expires_at),
    )
    try:
        session = response.json()
        session_id, url = session["id"], session["url"]
    except (ValueError, KeyError, TypeError):
        session_id = url = None
    if not session_id or not url:
        current_app.logger.error("Stripe returned no usable checkout session: %s", response.text)
        raise UpstreamError()

    current_app.logger.info("Checkout session %s opened for orders %s", session_id, order_ids)
    return {"id": session_id, "url": url, "expiresAt": expires_at}
