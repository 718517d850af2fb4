"""Flask extensions initialization (Limiter) and database wiring."""
from flask_limiter import Limiter
from flask_limiter.util import get_remote_address
from . import db

# Initialize Flask extensions
limiter = Limiter(
    key_func=get_remote_address,
    default_limits=["200 per day", "50 per hour"],
    headers_enabled=True,
)


def init_extensions(app):
    """Initialize Flask extensions with app context.

    Args:
        app: Flask application instance
    """
    limiter.init_app(app)

    # Initialize MongoDB connection using db module
    db.init_app(app)
