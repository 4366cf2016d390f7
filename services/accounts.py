from database import db
from errors import MissingAddressDetails, ValidationError
from models.address import Address
from models.user import User
from schemas import AddressRequest, parse


def lock_user(user_id):
    """Take the caller's write lock for the rest of the transaction.

    This has to be the first statement of the transaction. An UPDATE holds
    the row lock on server databases and the database write lock on SQLite
    (which ignores ``FOR UPDATE`` and only begins a transaction at the first
    write), so a second checkout of the same user waits here until the first
    one commits and only then reads the order history.
    """
    db.session.execute(
        db.update(User)
        .where(User.id == user_id)
        .values(checkout_version=User.checkout_version + 1)
    )


def get_or_create_user(identity):
    """Load the caller's User row, creating it on first sight."""
    user = db.session.get(User, identity.user_id)
    if user is None:
        user = User(id=identity.user_id, email=identity.email, name=identity.name, cart={})
        db.session.add(user)
        db.session.flush()
    return user


# ---------- CART ----------
def get_cart(identity):
    user = db.session.get(User, identity.user_id)
    return user.cart if user and user.cart else {}


def save_cart(identity, cart):
    if not isinstance(cart, dict):
        raise ValidationError("Cart must be an object")
    cleaned = {}
    for product_id, quantity in cart.items():
        if not isinstance(quantity, int) or isinstance(quantity, bool) or quantity < 0:
            raise ValidationError("Invalid cart quantity")
        if quantity:
            cleaned[str(product_id)] = quantity

    user = get_or_create_user(identity)
    user.cart = cleaned
    db.session.commit()
    return cleaned


# ---------- ADDRESS ----------
def add_address(identity, payload):
    data = parse(AddressRequest, payload, MissingAddressDetails)
    user = get_or_create_user(identity)
    address = Address(user_id=user.id, **data.model_dump())
    db.session.add(address)
    db.session.commit()
    return address


def list_addresses(identity):
    return db.session.execute(
        db.select(Address).filter_by(user_id=identity.user_id).order_by(Address.id)
    ).scalars().all()
