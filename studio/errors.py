"""
API error taxonomy.

Services raise these; the handlers registered by ``register_error_handlers``
turn them into JSON responses at the HTTP boundary.
"""
import logging

from flask import jsonify
from werkzeug.exceptions import HTTPException

logger = logging.getLogger(__name__)


class APIError(Exception):
    """Base class for errors that map to an HTTP response"""
    status_code = 500
    error_code = 'internal_error'
    default_message = 'An unexpected error occurred'

    def __init__(self, message=None, details=None, status_code=None):
        super().__init__(message or self.default_message)
        self.message = message or self.default_message
        self.details = details
        if status_code is not None:
            self.status_code = status_code

    def to_dict(self):
        body = {
            'success': False,
            'error': self.error_code,
            'message': self.message,
        }
        if self.details:
            body['details'] = self.details
        return body


class ValidationError(APIError):
    status_code = 400
    error_code = 'validation_error'
    default_message = 'Validation error'


class AuthError(APIError):
    status_code = 401
    error_code = 'unauthorized'
    default_message = 'Authentication required'


class ForbiddenError(APIError):
    status_code = 403
    error_code = 'forbidden'
    default_message = 'Insufficient permissions'


class NotFoundError(APIError):
    status_code = 404
    error_code = 'not_found'
    default_message = 'Resource not found'


class ConflictError(APIError):
    status_code = 409
    error_code = 'conflict'
    default_message = 'Resource already exists'


class InvalidTransitionError(APIError):
    status_code = 400
    error_code = 'invalid_transition'
    default_message = 'Status change not allowed'


class VerificationFailedError(APIError):
    status_code = 400
    error_code = 'verification_failed'
    default_message = 'Payment could not be verified'


class AmountMismatchError(APIError):
    status_code = 400
    error_code = 'amount_mismatch'
    default_message = 'Amount mismatch after verification.'


class GatewayError(APIError):
    """Payment gateway failure or timeout. Retryable by re-initiating."""
    status_code = 502
    error_code = 'gateway_error'
    default_message = 'Payment gateway request failed'


class GatewayConfigError(APIError):
    status_code = 500
    error_code = 'config_error'
    default_message = 'Server configuration error: payment gateway is not configured.'


class PersistenceError(APIError):
    status_code = 500
    error_code = 'persistence_error'
    default_message = 'Failed to save changes'


def field_error(field, message):
    """Build one entry of a ValidationError details list"""
    return {'field': field, 'message': message}


def register_error_handlers(app):
    """Map APIError subclasses and HTTP errors to JSON responses"""

    @app.errorhandler(APIError)
    def handle_api_error(e):
        if e.status_code >= 500:
            logger.error('%s: %s', e.error_code, e.message)
        return jsonify(e.to_dict()), e.status_code

    @app.errorhandler(404)
    def handle_not_found(e):
        return jsonify({'success': False, 'error': 'not_found', 'message': 'Resource not found'}), 404

    @app.errorhandler(405)
    def handle_method_not_allowed(e):
        return jsonify({'success': False, 'error': 'method_not_allowed', 'message': 'Method not allowed'}), 405

    @app.errorhandler(429)
    def handle_rate_limit(e):
        # Retry-After header is set by Flask-Limiter; read it back.
        retry_after = e.get_headers().get('Retry-After') if hasattr(e, 'get_headers') else None
        return jsonify({
            'success': False,
            'error': 'rate_limited',
            'message': 'Too many requests. Please try again later.',
            'retry_after': int(retry_after) if retry_after else 60,
        }), 429

    @app.errorhandler(Exception)
    def handle_unexpected(e):
        if isinstance(e, HTTPException):
            return jsonify({'success': False, 'error': e.name.lower().replace(' ', '_'),
                            'message': e.description}), e.code
        logger.exception('Unhandled exception')
        return jsonify({'success': False, 'error': 'internal_error',
                        'message': 'Internal server error'}), 500
