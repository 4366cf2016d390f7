from datetime import datetime

from database import db


class Rating(db.Model):
    __table_args__ = (db.UniqueConstraint("order_id", "product_id", name="rating_order_product_key"),)

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.String(64), db.ForeignKey("user.id"), nullable=False, index=True)
    product_id = db.Column(db.Integer, db.ForeignKey("product.id"), nullable=False)
    order_id = db.Column(db.Integer, db.ForeignKey("order.id"), nullable=False)
    rating = db.Column(db.Integer, nullable=False)
    review = db.Column(db.Text, nullable=False, default="")
    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    product = db.relationship("Product", back_populates="ratings")

    def to_dict(self):
        return {
            "id": self.id,
            "userId": self.user_id,
            "productId": self.product_id,
            "orderId": self.order_id,
            "rating": self.rating,
            "review": self.review,
            "createdAt": self.created_at.isoformat() if self.created_at else None,
        }
