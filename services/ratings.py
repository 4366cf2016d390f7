from sqlalchemy.exc import IntegrityError

from database import db
from errors import AlreadyRated, OrderNotDelivered, OrderNotFound, ProductNotFound, ValidationError
from models.order import DELIVERED, Order
from models.rating import Rating
from schemas import RatingRequest, parse
from services.accounts import get_or_create_user


def add_rating(identity, payload):
    data = parse(RatingRequest, payload, ValidationError)

    order = db.session.execute(
        db.select(Order).filter_by(id=data.order_id, user_id=identity.user_id)
    ).scalar_one_or_none()
    if order is None:
        raise OrderNotFound()
    if not any(item.product_id == data.product_id for item in order.items):
        raise ProductNotFound()
    if order.status != DELIVERED:
        raise OrderNotDelivered()

    already = db.session.execute(
        db.select(Rating.id).filter_by(order_id=order.id, product_id=data.product_id)
    ).first()
    if already is not None:
        raise AlreadyRated()

    get_or_create_user(identity)
    rating = Rating(
        user_id=identity.user_id,
        order_id=order.id,
        product_id=data.product_id,
        rating=data.rating,
        review=data.review,
    )
    db.session.add(rating)
    try:
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        raise AlreadyRated()
    return rating


def list_ratings(identity):
    return db.session.execute(
        db.select(Rating).filter_by(user_id=identity.user_id).order_by(Rating.created_at.desc())
    ).scalars().all()
