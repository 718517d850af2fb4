"""Flask application factory and initialization."""
import logging

from flask import Flask, jsonify
from backend.signup.config import Config, config as config_by_name
from backend.signup.extensions import init_extensions
from backend.signup import db
from backend.signup.validation.rules import RuleSet


def create_app(config_class=Config):
    """Create and configure the Flask application.

    Args:
        config_class: Configuration class to use, or its name in
            ``backend.signup.config.config`` ('development', 'testing', ...)

    Returns:
        Flask: Configured Flask application instance
    """
    if isinstance(config_class, str):
        config_class = config_by_name.get(config_class, config_by_name['default'])

    app = Flask(__name__)
    app.config.from_object(config_class)

    # Fail fast on an impossible age window (AGE_MIN > AGE_MAX)
    RuleSet.from_config(app.config)

    logging.basicConfig(
        level=app.config.get('LOG_LEVEL', 'INFO'),
        format='%(asctime)s %(levelname)s %(name)s: %(message)s',
    )

    # Initialize Flask extensions
    init_extensions(app)

    # Unique email/username indexes are the authoritative duplicate guard
    if app.config.get('ENSURE_INDEXES_ON_STARTUP'):
        with app.app_context():
            if not db.ensure_indexes():
                logging.getLogger(__name__).warning('Could not ensure DB indexes at startup')

    # Register health check endpoint
    @app.route('/api/health')
    def health_check():
        """Health check endpoint with database connectivity."""
        response = {
            "status": "ok",
            "service": "registration-api"
        }

        db_health = db.health_check()
        response["database"] = db_health
        if db_health.get('status') != 'healthy':
            response["status"] = "degraded"

        return jsonify(response)

    # Register blueprints
    register_blueprints(app)

    @app.after_request
    def after_request(response):
        """Allow the registration frontend to call the API."""
        response.headers['Access-Control-Allow-Origin'] = app.config['CORS_ORIGIN']
        response.headers['Access-Control-Allow-Methods'] = 'GET, POST, OPTIONS'
        response.headers['Access-Control-Allow-Headers'] = 'Content-Type'
        response.headers['Access-Control-Allow-Credentials'] = 'true'
        return response

    return app


def register_blueprints(app):
    """Register Flask blueprints with the application.

    Args:
        app: Flask application instance
    """
    # Import API blueprints here to avoid circular imports
    from backend.signup.blueprints.api.registration.routes import registration_bp

    app.register_blueprint(registration_bp, url_prefix='/api')
