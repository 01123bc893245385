"""Menu and MenuCategory models."""

from datetime import datetime
from slugify import slugify
from salon.extensions import db


def _unique_slug(model, name, fallback):
    base_slug = slugify(name) if name else fallback
    base_slug = base_slug or fallback
    slug = base_slug
    counter = 1
    while model.query.filter_by(slug=slug).first() is not None:
        slug = f"{base_slug}-{counter}"
        counter += 1
    return slug


class MenuCategory(db.Model):
    """Menu category (cut, color, perm, ...)."""
    __tablename__ = 'menu_categories'
    
    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(100), nullable=False)
    slug = db.Column(db.String(120), unique=True, index=True)
    description = db.Column(db.String(255))
    display_order = db.Column(db.Integer, default=0)
    is_active = db.Column(db.Boolean, default=True)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    
    # Relationships
    menus = db.relationship('Menu', backref='category', lazy='dynamic', cascade='all, delete-orphan')
    
    def generate_slug(self):
        """Generate a unique slug for the category."""
        self.slug = _unique_slug(MenuCategory, self.name, 'category')
    
    def to_dict(self):
        return {
            'id': self.id,
            'name': self.name,
            'slug': self.slug,
            'description': self.description,
            'display_order': self.display_order,
            'is_active': self.is_active,
        }
    
    def __repr__(self):
        return f'<MenuCategory {self.name}>'


class Menu(db.Model):
    """A bookable salon service."""
    __tablename__ = 'menus'
    
    id = db.Column(db.Integer, primary_key=True)
    category_id = db.Column(db.Integer, db.ForeignKey('menu_categories.id'), nullable=False)
    name = db.Column(db.String(150), nullable=False)
    slug = db.Column(db.String(170), unique=True, index=True)
    description = db.Column(db.Text)
    price = db.Column(db.Integer, nullable=False)  # yen, tax included
    price_variable = db.Column(db.Boolean, default=False)  # shown as "from" price
    duration_mins = db.Column(db.Integer, default=60)
    display_order = db.Column(db.Integer, default=0)
    is_active = db.Column(db.Boolean, default=True)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)
    
    def generate_slug(self):
        """Generate a unique slug for the menu."""
        self.slug = _unique_slug(Menu, self.name, 'menu')
    
    def to_dict(self):
        return {
            'id': self.id,
            'category_id': self.category_id,
            'name': self.name,
            'slug': self.slug,
            'description': self.description,
            'price': self.price,
            'price_variable': self.price_variable,
            'duration_mins': self.duration_mins,
            'display_order': self.display_order,
            'is_active': self.is_active,
        }
    
    def __repr__(self):
        return f'<Menu {self.name}>'
