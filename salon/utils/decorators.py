"""Role-based access decorators."""

from functools import wraps
from flask import jsonify
from flask_login import current_user


def customer_required(f):
    """Decorator to require a logged-in customer (staff may act as customers too)."""
    @wraps(f)
    def decorated_function(*args, **kwargs):
        if not current_user.is_authenticated:
            return jsonify({'error': 'Login required'}), 401
        if not current_user.is_customer() and not current_user.is_admin():
            return jsonify({'error': 'Access denied'}), 403
        return f(*args, **kwargs)
    return decorated_function


def admin_required(f):
    """Decorator to require admin role."""
    @wraps(f)
    def decorated_function(*args, **kwargs):
        if not current_user.is_authenticated:
            return jsonify({'error': 'Login required'}), 401
        if not current_user.is_admin():
            return jsonify({'error': 'Access denied. Admin privileges required.'}), 403
        return f(*args, **kwargs)
    return decorated_function
