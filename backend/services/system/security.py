"""
Security service for handling Rate Limiting and other security extensions.
"""
from flask import jsonify, request
from flask_limiter import Limiter
from flask_limiter.util import get_remote_address
from backend.services.system.logger_service import get_logger

logger = get_logger(__name__)

# Per-process memory storage: counters are not shared between workers.
limiter = Limiter(
    key_func=get_remote_address,
    storage_uri="memory://",
    strategy="fixed-window"
)


def user_id_rate_key() -> str:
    """Rate-limit key for endpoints that identify the caller by ?userId=."""
    return request.args.get('userId') or 'anonymous'


def rate_limit_exceeded(error):
    description = getattr(error, 'description', None) or 'Rate limit exceeded'
    logger.warning(
        "Rate limit exceeded",
        extra={'path': request.path, 'limit': str(description), 'rate_key': request.args.get('userId')}
    )
    if request.path.startswith('/api/nsfw-check'):
        message = f"Rate limit exceeded. Maximum {description.split(' per ')[0]} checks per minute."
    else:
        message = f"Rate limit exceeded: {description}"
    return jsonify({'error': message, 'retryAfter': 60}), 429


def configure_limiter(app):
    """
    Configure the limiter with the app instance and a JSON 429 response.
    """
    logger.info("Initializing Flask-Limiter for request rate limiting")
    limiter.init_app(app)
    app.register_error_handler(429, rate_limit_exceeded)
