"""Public site routes."""

from flask import Blueprint, jsonify, current_app
from flask_wtf.csrf import generate_csrf
from salon.models import MenuCategory, Menu

main_bp = Blueprint('main', __name__)


@main_bp.route('/')
def index():
    return jsonify({'name': current_app.config['SALON_NAME']})


@main_bp.route('/csrf-token')
def csrf_token():
    """Token for clients that post JSON with the X-CSRFToken header."""
    return jsonify({'csrf_token': generate_csrf()})


@main_bp.route('/menus')
def menus():
    """Active menus grouped by category."""
    categories = MenuCategory.query.filter_by(
        is_active=True
    ).order_by(MenuCategory.display_order, MenuCategory.id).all()
    
    return jsonify({
        'categories': [{
            'id': c.id,
            'name': c.name,
            'slug': c.slug,
            'description': c.description,
            'menus': [m.to_dict() for m in c.menus.filter_by(
                is_active=True
            ).order_by(Menu.display_order, Menu.id)]
        } for c in categories]
    })
