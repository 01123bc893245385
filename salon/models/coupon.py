"""Coupon models."""

from datetime import datetime
from salon.extensions import db
from salon.exceptions import CouponDataError

PERCENTAGE = 'PERCENTAGE'
FIXED = 'FIXED'
COUPON_TYPES = (PERCENTAGE, FIXED)

# 0=Sunday .. 6=Saturday
WEEKDAY_NAMES = ['Sun', 'Mon', 'Tue', 'Wed', 'Thu', 'Fri', 'Sat']


class Coupon(db.Model):
    """Discount coupon model."""
    __tablename__ = 'coupons'
    
    id = db.Column(db.Integer, primary_key=True)
    code = db.Column(db.String(50), unique=True, nullable=False, index=True)
    name = db.Column(db.String(100), nullable=False)
    description = db.Column(db.String(255))
    type = db.Column(db.String(20), nullable=False)  # PERCENTAGE, FIXED
    value = db.Column(db.Integer, nullable=False)
    valid_from = db.Column(db.DateTime, nullable=False)
    valid_until = db.Column(db.DateTime, nullable=False)
    usage_limit = db.Column(db.Integer)  # Null for unlimited
    usage_count = db.Column(db.Integer, nullable=False, default=0)
    usage_limit_per_customer = db.Column(db.Integer)
    minimum_amount = db.Column(db.Integer)
    
    # Restrictions, empty list means no restriction
    applicable_menu_ids = db.Column(db.JSON, nullable=False, default=list)
    applicable_category_ids = db.Column(db.JSON, nullable=False, default=list)
    applicable_weekdays = db.Column(db.JSON, nullable=False, default=list)
    start_time = db.Column(db.String(5))  # HH:MM
    end_time = db.Column(db.String(5))
    only_first_time = db.Column(db.Boolean, nullable=False, default=False)
    only_returning = db.Column(db.Boolean, nullable=False, default=False)
    
    is_active = db.Column(db.Boolean, nullable=False, default=True)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)
    
    # Relationships
    usages = db.relationship('CouponUsage', backref='coupon', lazy='dynamic', cascade='all, delete-orphan')
    
    def calculate_discount(self, amount):
        """Calculate discount amount for the given base amount (yen).

        Percentage discounts are floored so rounding always favours the salon;
        fixed discounts never exceed the amount they apply to.
        """
        if self.type == PERCENTAGE:
            return amount * self.value // 100
        if self.type == FIXED:
            return min(self.value, amount)
        raise CouponDataError(f'Coupon {self.code} has unknown type {self.type!r}')
    
    def discount_message(self, discount):
        """Confirmation text shown when the coupon is accepted."""
        if self.type == PERCENTAGE:
            return f'{self.value}% OFF: ¥{discount:,} discount'
        return f'¥{discount:,} discount'
    
    def condition_labels(self):
        """Short human-readable list of the coupon's usage conditions."""
        labels = []
        if self.minimum_amount:
            labels.append(f'Orders of ¥{self.minimum_amount:,} or more')
        if self.applicable_weekdays:
            days = '/'.join(WEEKDAY_NAMES[d] for d in sorted(self.applicable_weekdays))
            labels.append(f'{days} only')
        if self.start_time and self.end_time:
            labels.append(f'{self.start_time}-{self.end_time} only')
        if self.only_first_time:
            labels.append('First visit only')
        if self.only_returning:
            labels.append('Returning customers only')
        return labels
    
    def summary(self):
        """Public fields returned with a successful validation."""
        return {
            'id': self.id,
            'code': self.code,
            'name': self.name,
            'type': self.type,
            'value': self.value,
            'description': self.description,
        }
    
    def to_dict(self):
        data = self.summary()
        data.update({
            'valid_from': self.valid_from.isoformat(),
            'valid_until': self.valid_until.isoformat(),
            'usage_limit': self.usage_limit,
            'usage_count': self.usage_count,
            'usage_limit_per_customer': self.usage_limit_per_customer,
            'minimum_amount': self.minimum_amount,
            'applicable_menu_ids': list(self.applicable_menu_ids or []),
            'applicable_category_ids': list(self.applicable_category_ids or []),
            'applicable_weekdays': list(self.applicable_weekdays or []),
            'start_time': self.start_time,
            'end_time': self.end_time,
            'only_first_time': self.only_first_time,
            'only_returning': self.only_returning,
            'is_active': self.is_active,
            'created_at': self.created_at.isoformat() if self.created_at else None,
        })
        return data
    
    def __repr__(self):
        return f'<Coupon {self.code}>'


class CouponUsage(db.Model):
    """One redemption of a coupon on a sale."""
    __tablename__ = 'coupon_usages'
    
    id = db.Column(db.Integer, primary_key=True)
    coupon_id = db.Column(db.Integer, db.ForeignKey('coupons.id'), nullable=False, index=True)
    customer_id = db.Column(db.Integer, db.ForeignKey('users.id'), index=True)
    sale_id = db.Column(db.Integer, db.ForeignKey('sales.id'))
    used_at = db.Column(db.DateTime, default=datetime.utcnow)
    
    def to_dict(self):
        return {
            'id': self.id,
            'coupon_id': self.coupon_id,
            'customer_id': self.customer_id,
            'sale_id': self.sale_id,
            'used_at': self.used_at.isoformat() if self.used_at else None,
        }
    
    def __repr__(self):
        return f'<CouponUsage {self.coupon_id} by {self.customer_id}>'
