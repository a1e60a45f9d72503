"""
Global Authentication Middleware
Protects all API endpoints with Firebase token verification
Supports both Bearer tokens and Firebase session cookies
"""
from functools import wraps
from typing import Optional
from flask import request, jsonify, g
from firebase_admin import auth
from backend.services.firebase.firebase_client import ensure_firebase_app
from backend.services.system.logger_service import get_logger
from backend.services.system.session import Session

logger = get_logger(__name__)

# Endpoints that do not require authentication.
PUBLIC_ENDPOINTS = [
    '/api/health',
    '/health',
    '/api/download',  # Storage download proxy (object paths are unguessable asset paths)
    '/api/nsfw-check',  # Image pre-check (rate limited per userId)
]

# Session cookie name (must match the frontend session manager).
SESSION_COOKIE_NAME = 'marketplace-session'


class AuthenticationError(Exception):
    """Raised when a presented credential cannot be verified."""


def is_public_endpoint(path: str) -> bool:
    """Check whether the endpoint is public (no auth required)."""
    return path in PUBLIC_ENDPOINTS


def verify_firebase_token(id_token: str) -> dict:
    """
    Verify Firebase ID token and return decoded claims

    Raises:
        AuthenticationError: If token is invalid
    """
    ensure_firebase_app()
    try:
        return auth.verify_id_token(id_token, check_revoked=True)
    except auth.RevokedIdTokenError:
        raise AuthenticationError('Token has been revoked')
    except auth.ExpiredIdTokenError:
        raise AuthenticationError('Token has expired')
    except auth.InvalidIdTokenError:
        raise AuthenticationError('Invalid token')
    except Exception as e:
        raise AuthenticationError(f'Token verification failed: {str(e)}')


def verify_session_cookie(session_cookie: str) -> dict:
    """
    Verify Firebase session cookie and return decoded claims

    Raises:
        AuthenticationError: If session cookie is invalid
    """
    ensure_firebase_app()
    try:
        return auth.verify_session_cookie(session_cookie, check_revoked=True)
    except auth.RevokedSessionCookieError:
        raise AuthenticationError('Session has been revoked')
    except auth.ExpiredSessionCookieError:
        raise AuthenticationError('Session has expired')
    except auth.InvalidSessionCookieError:
        raise AuthenticationError('Invalid session')
    except Exception as e:
        raise AuthenticationError(f'Session verification failed: {str(e)}')


def _bind_session(claims: dict) -> Session:
    session = Session.from_claims(claims)
    g.session = session
    g.user_id = session.user_id
    g.user_email = session.email
    g.is_admin = session.is_admin
    return session


def authenticate_request() -> Optional[Session]:
    """Resolve the caller from a Bearer token or the session cookie, if any."""
    auth_header = request.headers.get('Authorization')
    if auth_header and auth_header.startswith('Bearer '):
        try:
            decoded_token = verify_firebase_token(auth_header.split('Bearer ')[1])
            session = _bind_session(decoded_token)
            logger.debug(
                "Bearer token auth passed",
                extra={'user_id': session.user_id, 'is_admin': session.is_admin, 'path': request.path}
            )
            return session
        except AuthenticationError as e:
            logger.debug(f"Bearer token verification failed: {e}")

    session_cookie = request.cookies.get(SESSION_COOKIE_NAME)
    if session_cookie:
        try:
            decoded_claims = verify_session_cookie(session_cookie)
            session = _bind_session(decoded_claims)
            logger.debug(
                "Session cookie auth passed",
                extra={'user_id': session.user_id, 'is_admin': session.is_admin, 'path': request.path}
            )
            return session
        except AuthenticationError as e:
            logger.debug(f"Session cookie verification failed: {e}")

    return None


def global_auth_middleware():
    """
    Global before_request handler for authentication
    Applied to all /api/* endpoints
    """
    if not request.path.startswith('/api'):
        return None

    # Skip OPTIONS requests (CORS preflight)
    if request.method == 'OPTIONS':
        return None

    if is_public_endpoint(request.path):
        # Public endpoints still pick up a session when one is presented.
        if request.headers.get('Authorization') or request.cookies.get(SESSION_COOKIE_NAME):
            authenticate_request()
        return None

    if authenticate_request() is not None:
        return None

    logger.warning(
        "Unauthorized API access attempt",
        extra={
            'path': request.path,
            'method': request.method,
            'ip': request.remote_addr,
            'user_agent': request.headers.get('User-Agent', 'unknown'),
            'has_auth_header': bool(request.headers.get('Authorization')),
            'has_session_cookie': bool(request.cookies.get(SESSION_COOKIE_NAME))
        }
    )
    return jsonify({
        'success': False,
        'error': 'Authentication required. Please provide a valid Bearer token in the Authorization header.'
    }), 401


def require_auth(f):
    """
    Decorator to require an authenticated session for an endpoint
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        if getattr(g, 'session', None) is None:
            logger.warning(
                "Missing session for protected endpoint",
                extra={'path': request.path, 'method': request.method, 'ip': request.remote_addr}
            )
            return jsonify({
                'success': False,
                'error': 'Authentication required'
            }), 401
        return f(*args, **kwargs)
    return decorated_function


def require_admin(f):
    """
    Decorator to require admin privileges
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        session = getattr(g, 'session', None)
        if session is None:
            return jsonify({
                'success': False,
                'error': 'Authentication required'
            }), 401
        if not session.is_admin:
            logger.warning(
                "Admin access denied",
                extra={'user_id': session.user_id, 'path': request.path}
            )
            return jsonify({
                'success': False,
                'error': 'Admin privileges required'
            }), 403
        return f(*args, **kwargs)
    return decorated_function
