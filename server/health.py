"""
DocSearch Health Check System

Health and readiness endpoints with:
- Database connectivity checks
- Embedding tier availability
- Resource usage monitoring

Endpoints:
- /api/health - Service status used by the frontend
- /health - Liveness check (is the process alive?)
- /ready - Readiness check (can it serve traffic?)
- /health/detailed - Full diagnostic report
"""

import sys
import time
from datetime import datetime, timezone

import psutil
from flask import Blueprint, current_app, jsonify

health_bp = Blueprint('health', __name__)

# Track startup time
STARTUP_TIME = time.time()

VERSION = '1.0.0'


def _service():
    return current_app.extensions['docsearch']


def check_database():
    """Check the document store answers a count query."""
    try:
        count = _service().repository.count()
        return {'status': 'ok', 'documents': count}
    except Exception as e:
        return {'status': 'error', 'error': str(e)}


def check_embeddings():
    """Availability of each embedding tier."""
    embedder = _service().embedder
    if not hasattr(embedder, 'get_health'):
        return {'status': 'ok'}

    try:
        return {
            'status': 'ok',
            'tiers': embedder.get_health(),
            'stats': embedder.get_stats(),
        }
    except Exception as e:
        return {'status': 'error', 'error': str(e)}


def get_system_resources():
    """Get current system resource usage."""
    try:
        process = psutil.Process()

        return {
            'memory': {
                'rss_mb': round(process.memory_info().rss / 1024 / 1024, 2),
                'percent': round(process.memory_percent(), 2)
            },
            'cpu': {
                'num_threads': process.num_threads()
            },
            'system': {
                'memory_available_mb': round(psutil.virtual_memory().available / 1024 / 1024, 2),
                'disk_free_gb': round(psutil.disk_usage('/').free / 1024 / 1024 / 1024, 2)
            }
        }
    except Exception as e:
        return {'status': 'error', 'error': str(e)}


# =============================================================================
# Health Endpoints
# =============================================================================

@health_bp.route('/api/health')
def api_health():
    """Service status for the frontend."""
    return jsonify({
        'status': 'OK',
        'timestamp': datetime.now(timezone.utc).isoformat().replace('+00:00', 'Z'),
        'version': VERSION,
    })


@health_bp.route('/health')
def liveness():
    """
    Liveness check.

    Returns 200 if the process is alive and can respond.
    """
    return jsonify({
        'status': 'ok',
        'uptime_seconds': int(time.time() - STARTUP_TIME)
    })


@health_bp.route('/ready')
def readiness():
    """
    Readiness check.

    Ready once the document store is reachable. Embeddings always have the
    hash tier to fall back on, so they never block readiness.
    """
    db_check = check_database()
    is_ready = db_check.get('status') == 'ok'

    response = {
        'status': 'ready' if is_ready else 'not_ready',
        'checks': {
            'database': db_check.get('status')
        }
    }

    return jsonify(response), 200 if is_ready else 503


@health_bp.route('/health/detailed')
def detailed_health():
    """Comprehensive status of all components."""
    return jsonify({
        'status': 'ok',
        'version': VERSION,
        'uptime_seconds': int(time.time() - STARTUP_TIME),
        'python_version': sys.version,
        'checks': {
            'database': check_database(),
            'embeddings': check_embeddings(),
        },
        'resources': get_system_resources()
    })
