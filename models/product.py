from datetime import datetime

from database import db


class Product(db.Model):
    __table_args__ = (db.CheckConstraint("price >= 0", name="product_price_non_negative"),)

    id = db.Column(db.Integer, primary_key=True)
    store_id = db.Column(db.Integer, db.ForeignKey("store.id"), nullable=False, index=True)

    name = db.Column(db.String(150), nullable=False)
    description = db.Column(db.Text, nullable=False)
    mrp = db.Column(db.Float, nullable=False)
    price = db.Column(db.Float, nullable=False)
    category = db.Column(db.String(50), nullable=False)
    images = db.Column(db.JSON, nullable=False, default=list)  # ordered CDN urls
    in_stock = db.Column(db.Boolean, nullable=False, default=True)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    store = db.relationship("Store", back_populates="products")
    ratings = db.relationship("Rating", back_populates="product")

    def to_dict(self, with_ratings=False):
        data = {
            "id": self.id,
            "storeId": self.store_id,
            "name": self.name,
            "description": self.description,
            "mrp": self.mrp,
            "price": self.price,
            "category": self.category,
            "images": list(self.images or []),
            "inStock": self.in_stock,
            "createdAt": self.created_at.isoformat() if self.created_at else None,
        }
        if with_ratings:
            data["rating"] = [r.to_dict() for r in self.ratings]
        return data
