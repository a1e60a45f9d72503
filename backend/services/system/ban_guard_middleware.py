"""
Ban guard before_request hook.
Runs after authentication; restricted users only reach the exempt endpoints.
"""
from typing import Callable
from flask import g, jsonify, request
from backend.features.moderation.service.route_guard import RouteGuard
from backend.services.system.logger_service import get_logger

logger = get_logger(__name__)

# Endpoints a banned or suspended user can still reach
GUARD_EXEMPT_ENDPOINTS = [
    '/health',
    '/api/health',
    '/api/download',
    '/api/moderation/ban-notice',
    '/api/moderation/guard',
]

GUARD_EXEMPT_PREFIXES = [
    '/api/nsfw-check',
]


def is_guard_exempt(path: str) -> bool:
    if path in GUARD_EXEMPT_ENDPOINTS:
        return True
    return any(path.startswith(prefix) for prefix in GUARD_EXEMPT_PREFIXES)


def make_ban_guard_middleware(route_guard: RouteGuard) -> Callable:
    """Build the hook around a RouteGuard instance."""

    def ban_guard_middleware():
        if request.method == 'OPTIONS' or not request.path.startswith('/api'):
            return None
        if is_guard_exempt(request.path):
            return None

        session = getattr(g, 'session', None)
        if session is None:
            return None

        decision = route_guard.evaluate(session)
        g.guard_decision = decision
        if decision.allowed:
            return None

        logger.warning(
            "Blocked request from restricted user",
            extra={'user_id': session.user_id, 'path': request.path, 'warning_type': decision.warning_type}
        )
        return jsonify({
            'success': False,
            'error': 'Your account is restricted',
            'redirect': decision.redirect_to,
            'warningType': decision.warning_type,
        }), 403

    return ban_guard_middleware
