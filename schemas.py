"""
Request schemas

One pydantic model per workflow input. Workflows validate their payload
against these before touching the database or any upstream service.
"""

from typing import List, Literal, Optional

import pydantic
from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator

from models.order import CARD, CASH_ON_DELIVERY


class CartLine(BaseModel):
    id: int = Field(..., description="Product id")
    quantity: int = Field(..., ge=1)


class PlaceOrderRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    address_id: int = Field(..., alias="addressId")
    items: List[CartLine] = Field(..., min_length=1)
    coupon_code: Optional[str] = Field(None, alias="couponCode")
    payment_method: Literal[CASH_ON_DELIVERY, CARD] = Field(..., alias="paymentMethod")

    @field_validator("coupon_code")
    @classmethod
    def blank_code_is_none(cls, v):
        if v is None:
            return None
        v = v.strip()
        return v.upper() or None


class RatingRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    order_id: int = Field(..., alias="orderId")
    product_id: int = Field(..., alias="productId")
    rating: int = Field(..., ge=1, le=5)
    review: str = ""


class StoreApplication(BaseModel):
    name: str = Field(..., min_length=1)
    username: str = Field(..., min_length=1, max_length=50)
    description: str = Field(..., min_length=1)
    email: EmailStr
    contact: str = Field(..., min_length=1)
    address: str = Field(..., min_length=1)

    @field_validator("username")
    @classmethod
    def lowercase_username(cls, v):
        return v.strip().lower()


class ProductListing(BaseModel):
    name: str = Field(..., min_length=1)
    description: str = Field(..., min_length=1)
    mrp: float = Field(..., gt=0)
    price: float = Field(..., gt=0)
    category: str = Field(..., min_length=1)


class ListingImageRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    base64_image: str = Field(..., alias="base64Image", min_length=1)
    mime_type: str = Field(..., alias="mimeType", pattern=r"^image/[\w.+-]+$")


class AddressRequest(BaseModel):
    name: str = Field(..., min_length=1)
    email: EmailStr
    street: str = Field(..., min_length=1)
    city: str = Field(..., min_length=1)
    state: str = Field(..., min_length=1)
    zip: str = Field(..., min_length=1)
    country: str = Field(..., min_length=1)
    phone: str = Field(..., min_length=1)


class StockToggleRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    product_id: int = Field(..., alias="productId")


def parse(schema, data, error_cls):
    """Validate ``data`` against ``schema`` or raise ``error_cls``."""
    try:
        return schema.model_validate(data or {})
    except pydantic.ValidationError:
        raise error_cls()
