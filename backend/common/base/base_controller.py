"""
Base Controller Class.
Provides standardized response handling for all controllers.
"""
from typing import Any, Optional, Tuple
from flask import g, jsonify, Response
from backend.services.system.logger_service import get_logger
from backend.services.system.session import Session

logger = get_logger(__name__)

class BaseController:
    """
    Abstract base class for all controllers.
    Enforces standardized response format.
    """

    def handle_response(self, data: Any, status: int = 200) -> Tuple[Response, int]:
        """
        Standardized success response.
        :param data: The payload to return.
        :param status: HTTP status code (default 200).
        :return: Flask JSON response.
        """
        # Payloads that already carry a `success` flag are returned unchanged.
        if isinstance(data, dict) and 'success' in data:
            return jsonify(data), status

        return jsonify({'success': True, 'data': data}), status

    def handle_error(self, message: str, status: int = 500, /, **fields: Any) -> Tuple[Response, int]:
        """
        Standardized error response.
        """
        if status >= 500:
            logger.error(f"Controller error ({status}): {message}")
        else:
            logger.warning(f"Controller error ({status}): {message}")
        return jsonify({'success': False, 'error': message, **fields}), status

    def current_session(self) -> Optional[Session]:
        """Session attached to this request by the auth middleware."""
        return getattr(g, 'session', None)

    def handle_validation_error(self, error: Exception, message: str = 'Invalid request') -> Tuple[Response, int]:
        """400 response for a pydantic ValidationError."""
        details = error.errors(include_url=False, include_context=False, include_input=False)
        return self.handle_error(message, 400, details=details)
