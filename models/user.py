from database import db


class User(db.Model):
    # id comes from the identity provider
    id = db.Column(db.String(64), primary_key=True)
    email = db.Column(db.String(120))
    name = db.Column(db.String(100))
    cart = db.Column(db.JSON, nullable=False, default=dict)
    # bumped at the start of every checkout; the write is what locks the user
    checkout_version = db.Column(db.Integer, nullable=False, default=0)

    store = db.relationship("Store", back_populates="user", uselist=False)

    def to_dict(self):
        return {"id": self.id, "email": self.email, "name": self.name, "cart": self.cart or {}}
