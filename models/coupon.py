from datetime import datetime

from database import db


class Coupon(db.Model):
    code = db.Column(db.String(40), primary_key=True)  # stored uppercase
    description = db.Column(db.String(255), nullable=False, default="")
    discount = db.Column(db.Float, nullable=False)  # percent
    for_new_user = db.Column(db.Boolean, nullable=False, default=False)
    for_member = db.Column(db.Boolean, nullable=False, default=False)
    is_public = db.Column(db.Boolean, nullable=False, default=False)
    expires_at = db.Column(db.DateTime)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    def is_expired(self, now=None):
        return self.expires_at is not None and self.expires_at <= (now or datetime.utcnow())

    def to_dict(self):
        return {
            "code": self.code,
            "description": self.description,
            "discount": self.discount,
            "forNewUser": self.for_new_user,
            "forMember": self.for_member,
            "isPublic": self.is_public,
            "expiresAt": self.expires_at.isoformat() if self.expires_at else None,
        }
