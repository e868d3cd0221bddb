"""
DocSearch HTTP Error Handling

Maps core exceptions and HTTP errors to JSON bodies.

Usage:
    from server.error_handlers import setup_error_handlers

    setup_error_handlers(app)
"""

import traceback
import logging

from flask import jsonify, request, current_app
from werkzeug.exceptions import HTTPException

from core.errors import DocSearchError

logger = logging.getLogger('docsearch.errors')


def setup_error_handlers(app):
    """Register error handlers with Flask app."""

    @app.errorhandler(DocSearchError)
    def handle_docsearch_error(error):
        """Handle DocSearch errors with their own status code."""
        log_method = logger.error if error.status_code >= 500 else logger.warning
        log_method(
            f'{error.error_type}: {error.message}',
            extra={
                'error_type': error.error_type,
                'details': error.details,
                'path': request.path
            }
        )

        response = jsonify(error.to_dict())
        response.status_code = error.status_code
        return response

    @app.errorhandler(404)
    def handle_not_found(error):
        return jsonify({
            'error': 'not_found',
            'message': f'Resource not found: {request.path}'
        }), 404

    @app.errorhandler(405)
    def handle_method_not_allowed(error):
        return jsonify({
            'error': 'method_not_allowed',
            'message': f'Method {request.method} not allowed for {request.path}'
        }), 405

    @app.errorhandler(413)
    def handle_request_too_large(error):
        return jsonify({
            'error': 'payload_too_large',
            'message': 'File too large'
        }), 413

    @app.errorhandler(HTTPException)
    def handle_http_exception(error):
        return jsonify({
            'error': error.name.lower().replace(' ', '_'),
            'message': error.description
        }), error.code

    @app.errorhandler(Exception)
    def handle_unexpected_error(error):
        """Handle any unexpected errors."""
        logger.exception(
            f'Unexpected error: {type(error).__name__}: {str(error)}',
            extra={
                'error_type': type(error).__name__,
                'path': request.path
            }
        )

        # Don't expose error details in production
        if current_app.debug:
            return jsonify({
                'error': 'unexpected_error',
                'message': str(error),
                'type': type(error).__name__,
                'traceback': traceback.format_exc()
            }), 500

        return jsonify({
            'error': 'internal_error',
            'message': 'Internal server error'
        }), 500
