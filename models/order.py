from datetime import datetime

from database import db, one_of

CASH_ON_DELIVERY = "CASH_ON_DELIVERY"
CARD = "CARD"
PAYMENT_METHODS = (CASH_ON_DELIVERY, CARD)

ORDER_PLACED = "ORDER_PLACED"
PROCESSING = "PROCESSING"
SHIPPED = "SHIPPED"
DELIVERED = "DELIVERED"
ORDER_STATUSES = (ORDER_PLACED, PROCESSING, SHIPPED, DELIVERED)


class Order(db.Model):
    __tablename__ = "order"
    __table_args__ = (
        db.CheckConstraint(one_of("payment_method", PAYMENT_METHODS), name="order_payment_method_known"),
        db.CheckConstraint(one_of("status", ORDER_STATUSES), name="order_status_known"),
    )

    id = db.Column(db.Integer, primary_key=True)

    # Relations
    user_id = db.Column(db.String(64), db.ForeignKey("user.id"), nullable=False, index=True)
    store_id = db.Column(db.Integer, db.ForeignKey("store.id"), nullable=False)
    address_id = db.Column(db.Integer, db.ForeignKey("address.id"), nullable=False)

    # Order info
    total = db.Column(db.Float, nullable=False)  # this store's share, after discount and shipping
    payment_method = db.Column(db.String(20), nullable=False)
    is_paid = db.Column(db.Boolean, nullable=False, default=False)
    is_coupon_used = db.Column(db.Boolean, nullable=False, default=False)
    coupon = db.Column(db.JSON, nullable=False, default=dict)  # snapshot at order time
    status = db.Column(db.String(20), nullable=False, default=ORDER_PLACED)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    # Relationships
    user = db.relationship("User", backref="orders")
    store = db.relationship("Store")
    address = db.relationship("Address")
    items = db.relationship("OrderItem", back_populates="order", cascade="all, delete-orphan")

    def to_dict(self):
        return {
            "id": self.id,
            "userId": self.user_id,
            "storeId": self.store_id,
            "addressId": self.address_id,
            "total": self.total,
            "paymentMethod": self.payment_method,
            "isPaid": self.is_paid,
            "isCouponUsed": self.is_coupon_used,
            "coupon": self.coupon or {},
            "status": self.status,
            "createdAt": self.created_at.isoformat() if self.created_at else None,
            "orderItems": [item.to_dict() for item in self.items],
            "address": self.address.to_dict() if self.address else None,
        }


class OrderItem(db.Model):
    order_id = db.Column(db.Integer, db.ForeignKey("order.id"), primary_key=True)
    product_id = db.Column(db.Integer, db.ForeignKey("product.id"), primary_key=True)
    quantity = db.Column(db.Integer, nullable=False)
    price = db.Column(db.Float, nullable=False)  # unit price when ordered

    order = db.relationship("Order", back_populates="items")
    product = db.relationship("Product")

    def to_dict(self):
        return {
            "productId": self.product_id,
            "quantity": self.quantity,
            "price": self.price,
            "product": self.product.to_dict() if self.product else None,
        }
