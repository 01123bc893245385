"""Authentication routes."""

import logging
from flask import Blueprint, jsonify
from flask_login import login_user, logout_user, login_required, current_user
from salon.extensions import db
from salon.models import User
from salon.forms.auth import LoginForm, CustomerRegistrationForm, first_error

logger = logging.getLogger(__name__)

auth_bp = Blueprint('auth', __name__)


@auth_bp.route('/login', methods=['POST'])
def login():
    """User login."""
    if current_user.is_authenticated:
        return jsonify({'success': True, 'user': current_user.to_dict()})
    
    form = LoginForm()
    if not form.validate_on_submit():
        return jsonify({'success': False, 'message': first_error(form)}), 400
    
    user = User.query.filter_by(email=form.email.data.lower()).first()
    if not user or not user.check_password(form.password.data):
        return jsonify({'success': False, 'message': 'Invalid email or password.'}), 401
    
    if not user.is_active:
        return jsonify({
            'success': False,
            'message': 'Your account has been deactivated. Please contact the salon.'
        }), 403
    
    login_user(user, remember=form.remember.data)
    logger.info(f'User {user.id} logged in')
    return jsonify({'success': True, 'user': user.to_dict()})


@auth_bp.route('/register', methods=['POST'])
def register():
    """Customer registration."""
    form = CustomerRegistrationForm()
    if not form.validate_on_submit():
        return jsonify({'success': False, 'message': first_error(form)}), 400
    
    user = User(
        email=form.email.data.lower(),
        name=form.name.data,
        phone=form.phone.data or None,
        role='customer'
    )
    user.set_password(form.password.data)
    
    db.session.add(user)
    db.session.commit()
    
    return jsonify({'success': True, 'user': user.to_dict()}), 201


@auth_bp.route('/logout', methods=['POST'])
@login_required
def logout():
    """User logout."""
    logout_user()
    return jsonify({'success': True})


@auth_bp.route('/me')
@login_required
def me():
    """Currently logged-in user."""
    return jsonify({'user': current_user.to_dict()})
