#!/usr/bin/env python3
"""
DocSearch Web Server

Features:
- Document upload with automatic categorization and tagging
- Hybrid semantic + lexical search
- Health and readiness endpoints

Usage:
    python -m server.app serve --port 5000
    python -m server.app reindex
"""

import argparse
import atexit
import logging
import sys

from flask import Flask
from flask_cors import CORS

from core.config import Settings, load_settings
from core.service import DocumentService, build_service
from .api import documents_api
from .error_handlers import setup_error_handlers
from .health import health_bp
from .logging_config import AuditLogger, setup_logging, setup_request_logging

logger = logging.getLogger(__name__)


def create_app(settings: Settings = None, service: DocumentService = None, configure_logging: bool = True) -> Flask:
    """
    Application factory.

    Args:
        settings: Resolved settings; load_settings() when omitted
        service: Prebuilt service (tests); built from settings when omitted
        configure_logging: Install the root log handler

    Returns:
        Configured Flask app with the service in app.extensions['docsearch']
    """
    if settings is None:
        settings = service.settings if service is not None else load_settings()

    app = Flask(__name__)
    app.config['MAX_CONTENT_LENGTH'] = settings.max_upload_mb * 1024 * 1024

    CORS(app, origins=settings.cors_origin)

    if configure_logging:
        setup_logging(app, level=settings.log_level, json_format=settings.json_logs)
    setup_request_logging(app)
    setup_error_handlers(app)

    if service is None:
        service = build_service(settings, audit=AuditLogger())
        atexit.register(service.close)
    app.extensions['docsearch'] = service

    app.register_blueprint(health_bp)
    app.register_blueprint(documents_api, url_prefix='/api/documents')

    logger.info(f"DocSearch app created (db: {settings.db_path})")
    return app


# =============================================================================
# CLI
# =============================================================================

def main(argv=None):
    parser = argparse.ArgumentParser(description="DocSearch server")
    parser.add_argument('--config', help="YAML config file")
    subparsers = parser.add_subparsers(dest='command', required=True)

    serve_parser = subparsers.add_parser('serve', help="Run the HTTP server")
    serve_parser.add_argument('--host', default='0.0.0.0')
    serve_parser.add_argument('--port', type=int, default=5000)
    serve_parser.add_argument('--debug', action='store_true')

    subparsers.add_parser('reindex', help="Embed documents that have no embedding")

    args = parser.parse_args(argv)
    settings = load_settings(config_path=args.config)

    if args.command == 'serve':
        app = create_app(settings)
        print("=" * 60)
        print("  DocSearch Web Server")
        print("=" * 60)
        print(f"  Database: {settings.db_path}")
        print(f"  Uploads: {settings.upload_dir}")
        print(f"  Remote embeddings: {'enabled' if settings.remote_enabled else 'disabled'}")
        print(f"  Starting server on http://{args.host}:{args.port}")
        print("=" * 60)
        app.run(host=args.host, port=args.port, debug=args.debug)
        return 0

    service = build_service(settings)
    try:
        count = service.reindex_missing_embeddings()
    finally:
        service.close()
    print(f"Embedded {count} documents")
    return 0


if __name__ == '__main__':
    sys.exit(main())
