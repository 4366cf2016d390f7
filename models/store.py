from datetime import datetime

from database import db, one_of

STORE_PENDING = "pending"
STORE_ACTIVE = "active"
STORE_REJECTED = "rejected"
STORE_STATUSES = (STORE_PENDING, STORE_ACTIVE, STORE_REJECTED)


class Store(db.Model):
    __table_args__ = (db.CheckConstraint(one_of("status", STORE_STATUSES), name="store_status_known"),)

    id = db.Column(db.Integer, primary_key=True)
    # one store per user
    user_id = db.Column(db.String(64), db.ForeignKey("user.id"), nullable=False, unique=True)

    name = db.Column(db.String(100), nullable=False)
    username = db.Column(db.String(50), nullable=False, unique=True)  # always lowercase
    description = db.Column(db.Text, nullable=False)
    email = db.Column(db.String(120), nullable=False)
    contact = db.Column(db.String(30), nullable=False)
    address = db.Column(db.String(255), nullable=False)
    logo = db.Column(db.String(500), nullable=False)

    status = db.Column(db.String(20), nullable=False, default=STORE_PENDING)
    is_active = db.Column(db.Boolean, nullable=False, default=False)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    user = db.relationship("User", back_populates="store")
    products = db.relationship("Product", back_populates="store", order_by="Product.created_at.desc()")

    def to_dict(self):
        return {
            "id": self.id,
            "name": self.name,
            "username": self.username,
            "description": self.description,
            "email": self.email,
            "contact": self.contact,
            "address": self.address,
            "logo": self.logo,
            "status": self.status,
            "isActive": self.is_active,
            "createdAt": self.created_at.isoformat() if self.created_at else None,
        }
