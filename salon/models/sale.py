"""Sale (POS transaction) models."""

from datetime import datetime
from sqlalchemy import func
from salon.extensions import db


class Sale(db.Model):
    """A completed checkout at the salon counter."""
    __tablename__ = 'sales'
    
    id = db.Column(db.Integer, primary_key=True)
    sale_number = db.Column(db.String(50), unique=True, nullable=False, index=True)
    user_id = db.Column(db.Integer, db.ForeignKey('users.id'))  # Null for walk-in customers
    customer_name = db.Column(db.String(100))
    
    # Pricing, all yen, tax included
    subtotal = db.Column(db.Integer, nullable=False, default=0)
    tax_amount = db.Column(db.Integer, nullable=False, default=0)
    tax_rate = db.Column(db.Integer, nullable=False, default=10)
    discount_amount = db.Column(db.Integer, nullable=False, default=0)  # manual counter discount
    discount_id = db.Column(db.Integer, db.ForeignKey('discounts.id'))  # preset used for discount_amount
    coupon_id = db.Column(db.Integer, db.ForeignKey('coupons.id'))
    coupon_discount = db.Column(db.Integer, nullable=False, default=0)
    total_amount = db.Column(db.Integer, nullable=False)
    
    # Payment
    payment_method = db.Column(db.String(30), default='CASH')  # CASH, CREDIT_CARD, QR, ...
    payment_status = db.Column(db.String(20), default='PAID')  # PAID, CANCELLED
    
    sale_date = db.Column(db.Date, nullable=False)
    sale_time = db.Column(db.String(5), nullable=False)  # HH:MM
    note = db.Column(db.Text)
    created_by = db.Column(db.Integer, db.ForeignKey('users.id'))
    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    
    # Relationships
    items = db.relationship('SaleItem', backref='sale', lazy='dynamic',
                            cascade='all, delete-orphan', order_by='SaleItem.order_index')
    coupon = db.relationship('Coupon', backref=db.backref('sales', lazy='dynamic'))
    
    @staticmethod
    def generate_sale_number(sale_date):
        """Next sequential sale number for the given date.

        Longer numbers sort first so the sequence keeps counting past 999.
        """
        prefix = f"SALE-{sale_date.strftime('%Y%m%d')}-"
        latest = Sale.query.filter(
            Sale.sale_number.startswith(prefix)
        ).order_by(func.length(Sale.sale_number).desc(), Sale.sale_number.desc()).first()
        
        sequence = 1
        if latest:
            sequence = int(latest.sale_number.rsplit('-', 1)[1]) + 1
        return f'{prefix}{sequence:03d}'
    
    @staticmethod
    def included_tax(total, rate):
        """Tax contained in a tax-inclusive total."""
        return total * rate // (100 + rate)
    
    def to_dict(self, with_items=False):
        data = {
            'id': self.id,
            'sale_number': self.sale_number,
            'user_id': self.user_id,
            'customer_name': self.customer_name or (self.customer.name if self.customer else None),
            'subtotal': self.subtotal,
            'tax_amount': self.tax_amount,
            'tax_rate': self.tax_rate,
            'discount_amount': self.discount_amount,
            'discount_id': self.discount_id,
            'coupon': {'id': self.coupon.id, 'code': self.coupon.code, 'name': self.coupon.name}
                      if self.coupon else None,
            'coupon_discount': self.coupon_discount,
            'total_amount': self.total_amount,
            'payment_method': self.payment_method,
            'payment_status': self.payment_status,
            'sale_date': self.sale_date.isoformat(),
            'sale_time': self.sale_time,
            'note': self.note,
        }
        if with_items:
            data['items'] = [item.to_dict() for item in self.items]
        return data
    
    def __repr__(self):
        return f'<Sale {self.sale_number}>'


class SaleItem(db.Model):
    """Sale line item."""
    __tablename__ = 'sale_items'
    
    id = db.Column(db.Integer, primary_key=True)
    sale_id = db.Column(db.Integer, db.ForeignKey('sales.id'), nullable=False)
    item_type = db.Column(db.String(20), nullable=False)  # MENU, PRODUCT
    menu_id = db.Column(db.Integer, db.ForeignKey('menus.id'))
    category_id = db.Column(db.Integer, db.ForeignKey('menu_categories.id'))
    item_name = db.Column(db.String(150), nullable=False)  # Snapshot of menu/product name
    quantity = db.Column(db.Integer, nullable=False, default=1)
    unit_price = db.Column(db.Integer, nullable=False)
    subtotal = db.Column(db.Integer, nullable=False)
    order_index = db.Column(db.Integer, default=0)
    
    def to_dict(self):
        return {
            'item_type': self.item_type,
            'menu_id': self.menu_id,
            'category_id': self.category_id,
            'item_name': self.item_name,
            'quantity': self.quantity,
            'unit_price': self.unit_price,
            'subtotal': self.subtotal,
        }
    
    def __repr__(self):
        return f'<SaleItem {self.item_name} x {self.quantity}>'
