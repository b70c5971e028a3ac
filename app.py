# app.py - Schedule Upload Application
"""
Main application file for the Schedule Upload service
Run with: gunicorn "app:create_app()"
"""

from flask import Flask, jsonify
from flask_cors import CORS
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from werkzeug.exceptions import HTTPException
from datetime import datetime
import logging
import os

# IMPORTANT: Import db from models FIRST before anything else
from models import db
from config import Config
from utils.session_store import AreaAuthenticator, FlaskSessionStore

# Set up logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)


def create_app(config_object=Config, session_store=None):
    """Application factory"""
    app = Flask(__name__)
    app.config.from_object(config_object)

    CORS(app, origins=app.config.get('CORS_ORIGINS', '*'))
    db.init_app(app)

    app.extensions['area_authenticator'] = AreaAuthenticator(
        app.config.get('AREA_PASSWORD_HASHES', {}),
        session_store or FlaskSessionStore(),
    )

    # Import blueprints
    from blueprints.api import api_bp
    from blueprints.auth import auth_bp
    from blueprints.upload import upload_bp

    app.register_blueprint(api_bp)
    app.register_blueprint(auth_bp)
    app.register_blueprint(upload_bp)

    register_error_handlers(app)

    @app.route('/health')
    def health_check():
        """Health check endpoint"""
        try:
            with db.engine.connect() as conn:
                conn.execute(text('SELECT 1'))
            return jsonify({
                'status': 'healthy',
                'database': 'connected',
                'timestamp': datetime.utcnow().isoformat()
            }), 200
        except SQLAlchemyError as e:
            logger.error(f"Health check failed: {e}")
            return jsonify({
                'status': 'unhealthy',
                'database': 'disconnected',
                'timestamp': datetime.utcnow().isoformat()
            }), 503

    initialize_database(app)
    logger.info(f"Schedule upload service started ({app.config.get('APP_ENV')})")
    return app


def register_error_handlers(app):
    """JSON error responses for every route"""

    @app.errorhandler(404)
    def not_found_error(error):
        return jsonify({'error': 'Not found'}), 404

    @app.errorhandler(413)
    def file_too_large(error):
        limit_mb = app.config['MAX_CONTENT_LENGTH'] // (1024 * 1024)
        return jsonify({'error': f'File is too large (max {limit_mb} MB)'}), 413

    @app.errorhandler(500)
    def internal_error(error):
        db.session.rollback()
        payload = {'error': 'Internal server error'}
        if app.config.get('APP_ENV') == 'development':
            payload['details'] = str(getattr(error, 'original_exception', error))
        return jsonify(payload), 500

    @app.errorhandler(HTTPException)
    def http_error(error):
        return jsonify({'error': error.description}), error.code


def initialize_database(app):
    """Create missing tables"""
    with app.app_context():
        try:
            db.create_all()
            logger.info("Database tables ready")
        except SQLAlchemyError as e:
            logger.error(f"Error initializing database: {e}")


# Run the application
if __name__ == '__main__':
    port = int(os.environ.get('PORT', 5000))
    debug = os.environ.get('APP_ENV', os.environ.get('FLASK_ENV')) == 'development'
    create_app().run(host='0.0.0.0', port=port, debug=debug)
