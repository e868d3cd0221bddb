"""
DocSearch Structured Logging Configuration

Provides:
- JSON structured logging for production
- Colorized console output for development
- Request logging middleware
- Audit records for uploads and searches

Usage:
    from server.logging_config import setup_logging, get_logger

    # At app startup
    setup_logging(app, level='INFO', json_format=True)

    # In modules
    logger = get_logger(__name__)
    logger.info('Message', extra={'document_id': 12})
"""

import logging
import json
import sys
import time
import uuid
from datetime import datetime, timezone

from flask import request, g

# Extras emitted by the request middleware, the audit logger and the service
LOG_FIELDS = (
    'request_id', 'method', 'path', 'status_code', 'duration_ms',
    'audit_type', 'document_id', 'title', 'category', 'team',
    'query', 'results_count', 'filters', 'search_mode',
    'error_type', 'details', 'function',
)


# =============================================================================
# Custom Formatters
# =============================================================================

class JSONFormatter(logging.Formatter):
    """One JSON object per line, carrying the known DocSearch fields."""

    def format(self, record):
        entry = {
            'ts': datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            'level': record.levelname,
            'logger': record.name,
            'message': record.getMessage(),
        }
        entry.update(
            (name, getattr(record, name)) for name in LOG_FIELDS if hasattr(record, name)
        )
        if record.exc_info:
            entry['error'] = self.formatException(record.exc_info)
        return json.dumps(entry, default=str)


class ColoredFormatter(logging.Formatter):
    """Console formatter: colored level, then document/search context inline."""

    LEVEL_COLORS = {
        logging.DEBUG: '\033[36m',
        logging.INFO: '\033[32m',
        logging.WARNING: '\033[33m',
        logging.ERROR: '\033[31m',
    }

    def format(self, record):
        color = self.LEVEL_COLORS.get(record.levelno, '\033[35m')
        line = f"{self.formatTime(record, '%H:%M:%S')} {color}{record.levelname:<7}\033[0m {record.name}: {record.getMessage()}"

        context = [
            f'{name}={getattr(record, name)}'
            for name in ('document_id', 'results_count', 'status_code', 'duration_ms')
            if hasattr(record, name)
        ]
        if context:
            line += f" [{' '.join(context)}]"
        if record.exc_info:
            line += '\n' + self.formatException(record.exc_info)
        return line


# =============================================================================
# Logger Setup
# =============================================================================

def setup_logging(app, level='INFO', json_format=False):
    """
    Configure logging for the Flask application.

    Args:
        app: Flask application instance
        level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        json_format: Use JSON lines instead of colored console output
    """
    numeric_level = getattr(logging, str(level).upper(), logging.INFO)

    root_logger = logging.getLogger()
    root_logger.setLevel(numeric_level)

    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(numeric_level)
    console_handler.setFormatter(JSONFormatter() if json_format else ColoredFormatter())

    root_logger.addHandler(console_handler)

    # Flask's own logger propagates to root
    app.logger.handlers = []
    app.logger.setLevel(numeric_level)

    app.logger.info('Logging configured', extra={
        'format': 'json' if json_format else 'colored',
        'level': level
    })

    return root_logger


def get_logger(name):
    """Get a logger with the given name."""
    return logging.getLogger(name)


# =============================================================================
# Request Logging Middleware
# =============================================================================

def setup_request_logging(app):
    """
    Log each request with a request ID and its duration.

    The request ID comes from X-Request-ID when the client sends one and
    is echoed back on the response.
    """
    logger = get_logger('docsearch.requests')

    @app.before_request
    def before_request():
        g.request_id = request.headers.get('X-Request-ID', str(uuid.uuid4()))
        g.start_time = time.time()

        logger.debug(
            f'{request.method} {request.path}',
            extra={
                'request_id': g.request_id,
                'method': request.method,
                'path': request.path,
                'remote_addr': request.remote_addr,
            }
        )

    @app.after_request
    def after_request(response):
        duration_ms = int((time.time() - g.get('start_time', time.time())) * 1000)

        if response.status_code >= 500:
            log_method = logger.error
        elif response.status_code >= 400:
            log_method = logger.warning
        else:
            log_method = logger.info

        request_id = g.get('request_id', 'unknown')
        log_method(
            f'{request.method} {request.path} -> {response.status_code}',
            extra={
                'request_id': request_id,
                'method': request.method,
                'path': request.path,
                'status_code': response.status_code,
                'duration_ms': duration_ms,
            }
        )

        response.headers['X-Request-ID'] = request_id
        return response


# =============================================================================
# Audit Logging
# =============================================================================

class AuditLogger:
    """
    Audit logger for uploads and searches.

    Usage:
        audit = AuditLogger()
        audit.log_search(query='brand', results_count=4, filters={})
    """

    def __init__(self):
        self.logger = get_logger('docsearch.audit')

    def log_upload(self, document_id, title, category, team):
        """Log an indexed upload."""
        self.logger.info(
            'Document uploaded',
            extra={
                'audit_type': 'upload',
                'document_id': document_id,
                'title': title,
                'category': category,
                'team': team,
            }
        )

    def log_search(self, query, results_count, filters=None):
        """Log a search operation."""
        self.logger.info(
            'Search performed',
            extra={
                'audit_type': 'search',
                'query': query[:100] if query else None,
                'results_count': results_count,
                'filters': filters or {},
                'search_mode': 'hybrid' if query else 'filter',
            }
        )
