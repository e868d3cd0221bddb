"""
Error Taxonomy for DocSearch

Exceptions raised by the core and consumed by the HTTP layer. Each error
carries the status code and error type it maps to, so the Flask handlers in
server/error_handlers.py can render any of them without special cases.

Usage:
    from core.errors import InvalidRequestError, NotFoundError

    if not query and not filters:
        raise InvalidRequestError("Search query or filters required")
"""

import logging
from functools import wraps

logger = logging.getLogger('docsearch.errors')


class DocSearchError(Exception):
    """Base exception for DocSearch errors."""

    status_code = 500
    error_type = 'internal_error'
    message = 'An unexpected error occurred'

    def __init__(self, message=None, **kwargs):
        super().__init__(message or self.message)
        self.message = message or self.message
        self.details = kwargs

    def to_dict(self):
        body = {
            'error': self.error_type,
            'message': self.message,
        }
        if self.details:
            body['details'] = self.details
        return body


class InvalidRequestError(DocSearchError):
    """Request rejected by validation. Never retried."""
    status_code = 400
    error_type = 'validation_error'
    message = 'Invalid request'


class NotFoundError(DocSearchError):
    """No active document with the requested id."""
    status_code = 404
    error_type = 'not_found'
    message = 'Document not found'


class StoreError(DocSearchError):
    """Persistence layer failure."""
    status_code = 500
    error_type = 'database_error'
    message = 'Database operation failed'


class SearchCountUpdateError(StoreError):
    """The post-search counter update failed. Logged, never surfaced."""
    error_type = 'search_count_error'
    message = 'Search count update failed'


class EmbeddingTierError(Exception):
    """
    A single embedding tier failed.

    Recovered inside the embedding chain by moving to the next tier.
    """

    def __init__(self, message: str, tier: str, original_error: Exception = None):
        super().__init__(message)
        self.tier = tier
        self.original_error = original_error


# =============================================================================
# Error Recovery Utilities
# =============================================================================

def safe_operation(default_value=None, log_errors=True):
    """
    Decorator for safe operation execution with fallback.

    Usage:
        @safe_operation(default_value=False)
        def bump_counters(ids):
            return repo.increment_search_count(ids)
    """
    def decorator(func):
        @wraps(func)
        def wrapper(*args, **kwargs):
            try:
                return func(*args, **kwargs)
            except Exception as e:
                if log_errors:
                    logger.error(
                        f'Error in {func.__name__}: {str(e)}',
                        extra={'function': func.__name__, 'error_type': type(e).__name__}
                    )
                return default_value
        return wrapper
    return decorator
