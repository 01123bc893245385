"""Flask application factory."""

import logging
import os
from flask import Flask, jsonify
from .config import config
from .extensions import db, migrate, login_manager, bcrypt, csrf


def create_app(config_name=None):
    """Create and configure the Flask application."""
    if config_name is None:
        config_name = os.environ.get('FLASK_CONFIG', 'development')
    
    app = Flask(__name__)
    app.config.from_object(config[config_name])
    
    logging.basicConfig(
        level=app.config['LOG_LEVEL'],
        format='%(asctime)s %(levelname)s [%(name)s] %(message)s'
    )
    
    # Initialize extensions
    db.init_app(app)
    migrate.init_app(app, db)
    login_manager.init_app(app)
    bcrypt.init_app(app)
    csrf.init_app(app)
    
    os.makedirs(app.instance_path, exist_ok=True)
    
    # Register blueprints
    from .routes import register_blueprints
    register_blueprints(app)
    
    # User loader for Flask-Login
    from .models import User
    
    @login_manager.user_loader
    def load_user(user_id):
        return User.query.get(int(user_id))
    
    @login_manager.unauthorized_handler
    def unauthorized():
        return jsonify({'error': 'Login required'}), 401
    
    # Error handlers
    @app.errorhandler(400)
    def bad_request_error(error):
        return jsonify({'error': getattr(error, 'description', 'Bad request')}), 400
    
    @app.errorhandler(403)
    def forbidden_error(error):
        return jsonify({'error': 'Access denied'}), 403
    
    @app.errorhandler(404)
    def not_found_error(error):
        return jsonify({'error': 'Not found'}), 404
    
    @app.errorhandler(500)
    def internal_error(error):
        db.session.rollback()
        return jsonify({'error': 'Internal server error'}), 500
    
    app.logger.info('%s started with %s config', app.config['SALON_NAME'], config_name)
    return app
