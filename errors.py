"""Error taxonomy shared by every workflow.

Handlers never build error responses by hand: workflows raise one of these and
the app-level error handler turns it into ``{"error": message}`` with the
matching status code. Messages are short and stable so the frontend can show
them as-is.
"""


class ShopError(Exception):
    status_code = 400
    message = "Request failed"

    def __init__(self, message=None):
        if message:
            self.message = message
        super().__init__(self.message)


# ---------- 401 ----------
class Unauthorized(ShopError):
    status_code = 401
    message = "Not authorized"


# ---------- 400 ----------
class ValidationError(ShopError):
    status_code = 400
    message = "Invalid request"


class MissingOrderDetails(ValidationError):
    message = "Missing order details"


class MissingStoreInfo(ValidationError):
    message = "Missing store info"


class MissingProductDetails(ValidationError):
    message = "Missing product details"


class MissingAddressDetails(ValidationError):
    message = "Missing address details"


class MissingImageData(ValidationError):
    message = "Missing image data or mimeType"


class CouponIneligible(ValidationError):
    message = "Coupon valid for new users only"


class CouponMemberOnly(ValidationError):
    message = "Coupon valid for members only"


class OrderNotDelivered(ValidationError):
    message = "Order not delivered yet"


# ---------- 404 ----------
class NotFound(ShopError):
    status_code = 404
    message = "Not found"


class ProductNotFound(NotFound):
    message = "Product not found"


class OrderNotFound(NotFound):
    message = "Order not found"


class StoreNotFound(NotFound):
    message = "Store not found"


class CouponNotFound(NotFound):
    message = "Coupon not found"


class AddressNotFound(NotFound):
    message = "Address not found"


# ---------- 409 ----------
class Conflict(ShopError):
    status_code = 409
    message = "Conflict"


class DuplicateUsername(Conflict):
    message = "Username already taken"


class AlreadyRated(Conflict):
    message = "Product already rated"


# ---------- upstream ----------
class UpstreamError(ShopError):
    status_code = 424
    message = "Upstream service failed"


class UpstreamTimeout(UpstreamError):
    message = "Upstream service timed out"


class AssistantUnavailable(UpstreamError):
    message = "Listing assistant unavailable, try again later"


class MalformedAssistantResponse(ShopError):
    status_code = 422
    message = "Could not read product details from image"
