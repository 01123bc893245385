"""Counter discount presets."""

from datetime import datetime
from salon.extensions import db
from salon.models.coupon import PERCENTAGE, FIXED


class Discount(db.Model):
    """A named discount staff can apply at the counter without a code."""
    __tablename__ = 'discounts'

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(100), nullable=False)
    type = db.Column(db.String(20), nullable=False)  # PERCENTAGE, FIXED
    value = db.Column(db.Integer, nullable=False)
    description = db.Column(db.String(255))
    display_order = db.Column(db.Integer, nullable=False, default=0)
    is_active = db.Column(db.Boolean, nullable=False, default=True)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    # Relationships
    sales = db.relationship('Sale', backref='discount', lazy='dynamic')

    def calculate_discount(self, amount):
        """Discount in yen on ``amount``, floored for percentages and capped for fixed amounts."""
        if self.type == PERCENTAGE:
            return amount * self.value // 100
        if self.type == FIXED:
            return min(self.value, amount)
        raise ValueError(f'Discount {self.id} has unknown type {self.type!r}')

    def to_dict(self):
        return {
            'id': self.id,
            'name': self.name,
            'type': self.type,
            'value': self.value,
            'description': self.description,
            'display_order': self.display_order,
            'is_active': self.is_active,
        }

    def __repr__(self):
        return f'<Discount {self.name}>'
