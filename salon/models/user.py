"""User model."""

from datetime import datetime
from flask_login import UserMixin
from salon.extensions import db, bcrypt


class User(UserMixin, db.Model):
    """User model for customers and salon staff."""
    __tablename__ = 'users'
    
    id = db.Column(db.Integer, primary_key=True)
    email = db.Column(db.String(120), unique=True, nullable=False, index=True)
    password_hash = db.Column(db.String(255), nullable=False)
    name = db.Column(db.String(100), nullable=False)
    phone = db.Column(db.String(20))
    role = db.Column(db.String(20), nullable=False, default='customer')  # customer, admin
    is_active = db.Column(db.Boolean, default=True)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)
    
    # Relationships
    sales = db.relationship('Sale', backref='customer', lazy='dynamic', foreign_keys='Sale.user_id')
    coupon_usages = db.relationship('CouponUsage', backref='customer', lazy='dynamic')
    
    def set_password(self, password):
        """Hash and set the password."""
        self.password_hash = bcrypt.generate_password_hash(password).decode('utf-8')
    
    def check_password(self, password):
        """Check if password matches."""
        return bcrypt.check_password_hash(self.password_hash, password)
    
    def is_admin(self):
        """Check if user is salon staff."""
        return self.role == 'admin'
    
    def is_customer(self):
        """Check if user is a customer."""
        return self.role == 'customer'
    
    def completed_sale_count(self):
        """Number of paid sales, used for first-time/returning checks."""
        return self.sales.filter_by(payment_status='PAID').count()
    
    def to_dict(self):
        return {
            'id': self.id,
            'email': self.email,
            'name': self.name,
            'phone': self.phone,
            'role': self.role,
            'is_active': self.is_active,
            'created_at': self.created_at.isoformat() if self.created_at else None,
        }
    
    def __repr__(self):
        return f'<User {self.email}>'
