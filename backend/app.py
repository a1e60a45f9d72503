"""
Main Flask application for the Marketplace backend.
Organized with modular feature blueprints: moderation, scheduled uploads,
audit log and system (health, download proxy, NSFW pre-check).
"""
import os
import time
import uuid
from dotenv import load_dotenv
from flask import Flask, request, g
from flask_cors import CORS
from flask_compress import Compress
from flask_talisman import Talisman

# Load environment variables from .env file
load_dotenv()

# Initialize logging service FIRST (before other imports)
from backend.services.system.logger_service import get_logger, log_request
logger = get_logger(__name__)

from backend.config.env_config import get_app_config
from backend.services.system.security import configure_limiter

# Import authentication middleware
from backend.services.system.auth_middleware import global_auth_middleware
from backend.services.system.ban_guard_middleware import make_ban_guard_middleware

# Import all feature blueprints
from backend.features.audit.index import audit_bp
from backend.features.moderation.index import moderation_bp, route_guard
from backend.features.uploads.index import uploads_bp
from backend.features.system.index import system_bp


# Create Flask app
app = Flask(__name__)

config = get_app_config()

def _resolve_service(path: str) -> str:
    parts = [segment for segment in (path or '').split('/') if segment]
    if not parts:
        return 'root'

    if parts[0] == 'api':
        if len(parts) < 2:
            return 'api'
        if parts[1] in ('admin', 'users', 'moderation'):
            return 'moderation'
        if parts[1] == 'scheduled-uploads':
            return 'uploads'
        if parts[1] in ('health', 'download', 'nsfw-check'):
            return 'system'
        return parts[1]

    return parts[0]


def _resolve_audit_risk(path: str) -> str:
    high_risk_paths = (
        '/api/admin',
        '/api/audit',
        '/api/scheduled-uploads',
    )
    if any(path.startswith(prefix) for prefix in high_risk_paths):
        return 'high'
    return 'medium'


@app.before_request
def _log_request_start():
    g.request_start = time.time()
    g.request_id = uuid.uuid4().hex
    g.request_service = _resolve_service(request.path)


@app.before_request
def _check_authentication():
    """Global authentication check for all API endpoints"""
    return global_auth_middleware()


# Runs after authentication: restricted users only reach the exempt endpoints
app.before_request(make_ban_guard_middleware(route_guard))


@app.after_request
def _log_request_end(response):
    duration_ms = None
    if hasattr(g, 'request_start'):
        duration_ms = round((time.time() - g.request_start) * 1000, 2)

    request_id = getattr(g, 'request_id', None)
    service = getattr(g, 'request_service', None) or _resolve_service(request.path)
    # Set by the auth middleware when the request carried valid credentials
    user_email = getattr(g, 'user_email', None)
    user_id = getattr(g, 'user_id', None)

    guard_decision = getattr(g, 'guard_decision', None)
    log_request(
        logger,
        request.method,
        request.path,
        user_id=user_id,
        request_id=request_id,
        request_query=request.query_string.decode('utf-8', errors='ignore') if request.query_string else '',
        request_service=service,
        request_status=response.status_code,
        request_duration_ms=duration_ms,
        user_email=user_email,
        remote_addr=request.headers.get('X-Forwarded-For', request.remote_addr),
        guard_allowed=guard_decision.allowed if guard_decision is not None else None,
    )

    if request.method in ('POST', 'PUT', 'PATCH', 'DELETE') and request.path != '/api/nsfw-check':
        logger.info(
            "AUDIT_EVENT",
            extra={
                'audit_action': 'API_CALL',
                'audit_resource': request.path,
                'audit_user_email': user_email or 'unknown',
                'audit_user_id': user_id or 'unknown',
                'audit_success': response.status_code < 400,
                'audit_risk_level': _resolve_audit_risk(request.path),
                'audit_timestamp': time.strftime('%Y-%m-%dT%H:%M:%SZ', time.gmtime()),
                'audit_source': 'backend',
                'audit_notes': {
                    'method': request.method,
                    'service': service,
                    'status': response.status_code,
                    'request_id': request_id,
                    'remote_addr': request.headers.get('X-Forwarded-For', request.remote_addr)
                }
            }
        )

    return response

# Initialize Security Headers (Talisman)
# Force HTTPS in production, set strict content security policy
is_production = config['environment'] == 'production'

# For a JSON API, block framing and plugins outright.
csp = {
    'default-src': ["'self'"],
    'frame-ancestors': ["'none'"],
    'form-action': ["'self'"],
}

Talisman(
    app,
    force_https=is_production,
    content_security_policy=csp,
    strict_transport_security=is_production,
    session_cookie_secure=is_production,
    session_cookie_http_only=True
)

# Initialize Rate Limiter
configure_limiter(app)

# Gzip JSON responses; proxied downloads are streamed through untouched
app.config['COMPRESS_STREAMS'] = False
Compress(app)

def _resolve_allowed_origins():
    raw_origins = config['frontend_origin']
    if not raw_origins or raw_origins.strip() == '*':
        return '*'

    origins = [origin.strip() for origin in raw_origins.split(',') if origin.strip()]
    return origins or '*'


CORS(
    app,
    resources={r"/*": {"origins": _resolve_allowed_origins()}},
    expose_headers=['Content-Disposition', 'Content-Length', 'Content-Type'],
    allow_headers='*',
    methods=['GET', 'POST', 'PUT', 'DELETE', 'OPTIONS']
)

# Register all blueprints
app.register_blueprint(audit_bp)
app.register_blueprint(moderation_bp)
app.register_blueprint(uploads_bp)
app.register_blueprint(system_bp)

if __name__ == '__main__':
    host = os.getenv('FLASK_RUN_HOST', os.getenv('HOST', '0.0.0.0'))
    port = int(os.getenv('FLASK_RUN_PORT', os.getenv('PORT', '5000')))

    logger.info(
        "Starting Flask server",
        extra={
            'host': host,
            'port': port,
            'environment': config['environment'],
            'frontend_origin': config['frontend_origin']
        }
    )

    app.run(debug=False, host=host, port=port, threaded=True)
