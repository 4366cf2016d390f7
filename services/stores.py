from flask import current_app
from sqlalchemy.exc import IntegrityError

from database import db
from errors import DuplicateUsername, MissingStoreInfo, StoreNotFound, Unauthorized
from models.store import STORE_ACTIVE, STORE_PENDING, Store
from schemas import StoreApplication, parse
from services import images
from services.accounts import get_or_create_user

NOT_REGISTERED = "not registered"


def store_for_user(user_id):
    return db.session.execute(db.select(Store).filter_by(user_id=user_id)).scalar_one_or_none()


def username_taken(username):
    return db.session.execute(
        db.select(Store.id).where(db.func.lower(Store.username) == username.lower())
    ).first() is not None


def apply_for_store(identity, form, logo):
    """Register the caller's store, pending approval.

    Resubmitting after a store exists is not an error: the caller just gets
    the current status back.
    """
    if logo is None or not logo.filename:
        raise MissingStoreInfo()
    data = parse(StoreApplication, form, MissingStoreInfo)

    existing = store_for_user(identity.user_id)
    if existing is not None:
        return {"status": existing.status}

    if username_taken(data.username):
        current_app.logger.info("Store username %r already taken", data.username)
        raise DuplicateUsername()

    logo_url = images.upload_optimized(logo, "logos", images.LOGO_WIDTH)

    try:
        user = get_or_create_user(identity)
        store = Store(
            user_id=user.id,
            name=data.name,
            username=data.username,
            description=data.description,
            email=data.email,
            contact=data.contact,
            address=data.address,
            logo=logo_url,
            status=STORE_PENDING,
            is_active=False,
        )
        db.session.add(store)
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        current_app.logger.warning("Store for %s not saved, uploaded logo unused: %s", identity.user_id, logo_url)
        # lost a race on username or on the one-store-per-user rule
        existing = store_for_user(identity.user_id)
        if existing is not None:
            return {"status": existing.status}
        raise DuplicateUsername()
    except Exception:
        db.session.rollback()
        current_app.logger.warning("Store for %s not saved, uploaded logo unused: %s", identity.user_id, logo_url)
        raise

    current_app.logger.info("Store %s applied by %s", store.username, identity.user_id)
    return {"message": "applied, waiting for approval"}


def store_status(identity):
    store = store_for_user(identity.user_id)
    return store.status if store else NOT_REGISTERED


def seller_store(identity):
    """The caller's store, if it is approved for selling."""
    store = store_for_user(identity.user_id)
    if store is None or store.status != STORE_ACTIVE or not store.is_active:
        raise Unauthorized()
    return store


def store_profile(username):
    if not username or not username.strip():
        raise MissingStoreInfo("Missing username")
    store = db.session.execute(
        db.select(Store).where(
            Store.username == username.strip().lower(), Store.is_active.is_(True)
        )
    ).scalar_one_or_none()
    if store is None:
        raise StoreNotFound()

    data = store.to_dict()
    data["Product"] = [p.to_dict(with_ratings=True) for p in store.products if p.in_stock]
    return data
